"""Export of reconciled documents to md, docx, and pdf.

Markdown is derived from the reconciled markup through the markup lexer. DOCX
bytes are built from that markdown with python-docx. PDF is a placeholder that
carries the reconciled markup for a downstream renderer.
"""

import html
import io
import re
from typing import Literal

from docx import Document
from pydantic import BaseModel

from app.core.document_generation import GeneratedOutput
from app.core.markup_lexer import tokenize

ExportFormat = Literal["md", "docx", "pdf"]

CONTENT_TYPES = {
    "md": "text/markdown; charset=utf-8",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "pdf": "application/pdf",
}

_TAG_NAME_RE = re.compile(r"^<\s*(/?)\s*([a-zA-Z][a-zA-Z0-9]*)")
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_NUMBERED_RE = re.compile(r"^\d+\.\s+(.*)$")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_LIST_ITEM_RE = re.compile(r"^\s*(- |\d+\. )")

_BLOCK_TAGS = {"p", "div", "section", "article", "header", "footer", "blockquote", "table", "tr"}


class ExportPayload(BaseModel):
    format: ExportFormat
    content_type: str
    filename: str
    text: str | None = None
    data: bytes | None = None
    placeholder: bool = False


def html_to_markdown(markup: str) -> str:
    out: list[str] = []
    lists: list[list] = []  # [kind, counter]

    for token in tokenize(markup):
        if token.kind == "text":
            out.append(re.sub(r"\s+", " ", html.unescape(token.text)))
            continue
        if token.kind == "placeholder":
            out.append(token.text)
            continue

        match = _TAG_NAME_RE.match(token.text)
        if not match:
            continue
        closing, name = match.group(1) == "/", match.group(2).lower()

        if name in {"h1", "h2", "h3", "h4", "h5", "h6"}:
            out.append("\n\n" if closing else "\n\n" + "#" * int(name[1]) + " ")
        elif name in _BLOCK_TAGS:
            out.append("\n\n")
        elif name in {"ul", "ol"}:
            if closing:
                if lists:
                    lists.pop()
            else:
                lists.append([name, 0])
            out.append("\n")
        elif name == "li" and not closing:
            indent = "  " * max(len(lists) - 1, 0)
            if lists and lists[-1][0] == "ol":
                lists[-1][1] += 1
                out.append(f"\n{indent}{lists[-1][1]}. ")
            else:
                out.append(f"\n{indent}- ")
        elif name == "br":
            out.append("\n")
        elif name == "hr":
            out.append("\n\n---\n\n")
        elif name in {"strong", "b"}:
            out.append("**")
        elif name in {"em", "i"}:
            out.append("_")

    text = "".join(out)
    lines = [
        line.rstrip() if _LIST_ITEM_RE.match(line) else line.strip() for line in text.split("\n")
    ]
    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text).strip() + "\n"


def _add_runs(paragraph, text: str) -> None:
    cursor = 0
    for match in _BOLD_RE.finditer(text):
        if match.start() > cursor:
            paragraph.add_run(text[cursor : match.start()])
        paragraph.add_run(match.group(1)).bold = True
        cursor = match.end()
    if cursor < len(text):
        paragraph.add_run(text[cursor:])


def markdown_to_docx(markdown: str) -> bytes:
    document = Document()
    for raw_line in markdown.splitlines():
        line = raw_line.strip()
        if not line or line == "---":
            continue

        heading = _HEADING_RE.match(line)
        numbered = _NUMBERED_RE.match(line)
        if heading:
            document.add_heading(heading.group(2), level=min(len(heading.group(1)), 4))
        elif line.startswith("- "):
            _add_runs(document.add_paragraph(style="List Bullet"), line[2:])
        elif numbered:
            _add_runs(document.add_paragraph(style="List Number"), numbered.group(1))
        else:
            _add_runs(document.add_paragraph(), line)

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def render_export(output: GeneratedOutput, fmt: ExportFormat) -> ExportPayload:
    """Convert an already reconciled output into an export payload."""
    filename = f"{output.output_id}.{fmt}"

    if fmt == "md":
        return ExportPayload(
            format="md",
            content_type=CONTENT_TYPES["md"],
            filename=filename,
            text=html_to_markdown(output.html),
        )

    if fmt == "docx":
        return ExportPayload(
            format="docx",
            content_type=CONTENT_TYPES["docx"],
            filename=filename,
            data=markdown_to_docx(html_to_markdown(output.html)),
        )

    return ExportPayload(
        format="pdf",
        content_type=CONTENT_TYPES["pdf"],
        filename=filename,
        text=output.html,
        placeholder=True,
    )
