"""Reconciling user edits with regenerated document content.

Generated markup marks its sections as
``<section data-section-id="..." data-title="...">...</section>``. When an
override exists for a section id, that section's effective content is the
override's ``edited_text``, no matter what the generator produced this time.
The override keyed ``full-doc`` replaces the whole document. Generated content
is still computed and kept alongside so callers can show what changed.
"""

import re
from typing import Literal

from pydantic import BaseModel, Field

from app.core.schemas_session import UserOverride

FULL_DOCUMENT_ID = "full-doc"

_SECTION_RE = re.compile(r"<section\b(?P<attrs>[^>]*)>(?P<body>.*?)</section>", re.DOTALL)
_ATTR_RE = re.compile(r'(?P<name>[\w-]+)\s*=\s*"(?P<value>[^"]*)"')


class PreviewSection(BaseModel):
    id: str
    title: str = ""
    html: str  # effective content
    generated_html: str
    status: Literal["complete", "incomplete"] = "complete"
    overridden: bool = False
    stale: bool = False  # override was made against different generated content


class ReconciledDocument(BaseModel):
    html: str
    generated_html: str
    sections: list[PreviewSection] = Field(default_factory=list)


def effective_content(
    section_id: str, generated: str, overrides: dict[str, UserOverride]
) -> str:
    override = overrides.get(section_id)
    return override.edited_text if override is not None else generated


def _preview_section(
    section_id: str, title: str, generated: str, overrides: dict[str, UserOverride]
) -> PreviewSection:
    override = overrides.get(section_id)
    incomplete = section_id == "render-error" or not generated.strip()
    return PreviewSection(
        id=section_id,
        title=title,
        html=effective_content(section_id, generated, overrides),
        generated_html=generated,
        status="incomplete" if incomplete else "complete",
        overridden=override is not None,
        stale=override is not None and override.original_text.strip() != generated.strip(),
    )


def reconcile_document(
    generated_html: str,
    overrides: dict[str, UserOverride],
    document_title: str = "",
) -> ReconciledDocument:
    """Apply overrides to freshly generated markup, section by section."""
    sections: list[PreviewSection] = []
    parts: list[str] = []
    cursor = 0

    for match in _SECTION_RE.finditer(generated_html):
        attrs = {m.group("name"): m.group("value") for m in _ATTR_RE.finditer(match.group("attrs"))}
        section_id = attrs.get("data-section-id")
        if not section_id:
            continue

        section = _preview_section(section_id, attrs.get("data-title", ""), match.group("body"), overrides)
        sections.append(section)

        parts.append(generated_html[cursor : match.start("body")])
        parts.append(section.html)
        cursor = match.end("body")

    parts.append(generated_html[cursor:])
    sectioned_html = "".join(parts)

    full_doc = _preview_section(FULL_DOCUMENT_ID, document_title, generated_html, overrides)
    html = full_doc.html if full_doc.overridden else sectioned_html
    full_doc = full_doc.model_copy(update={"html": html})

    return ReconciledDocument(
        html=html,
        generated_html=generated_html,
        sections=[full_doc, *sections],
    )
