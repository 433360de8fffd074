"""Lexer splitting rendered markup into tags, placeholders, and text runs.

Grammar, scanned left to right:

    placeholder := "{{{" ... "}}}" | "{{" ... "}}"
    tag         := "<!--" ... "-->" | "<" (letter | "/" | "!" | "?") ... ">"
    text        := anything else

An opener without its closer (or a "<" whose ">" comes after another "<") is
plain text. Concatenating the token texts always reproduces the input exactly.
"""

from dataclasses import dataclass
from typing import Literal

TokenKind = Literal["tag", "placeholder", "text"]


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str


def _placeholder_end(markup: str, start: int) -> int:
    """Index just past the placeholder starting at ``start``, or -1."""
    opener, closer = ("{{{", "}}}") if markup.startswith("{{{", start) else ("{{", "}}")
    end = markup.find(closer, start + len(opener))
    return -1 if end == -1 else end + len(closer)


def _tag_end(markup: str, start: int) -> int:
    """Index just past the tag starting at ``start``, or -1."""
    if markup.startswith("<!--", start):
        end = markup.find("-->", start + 4)
        return -1 if end == -1 else end + 3

    if start + 1 >= len(markup):
        return -1
    lead = markup[start + 1]
    if not (lead.isalpha() or lead in "/!?"):
        return -1

    end = markup.find(">", start + 1)
    if end == -1:
        return -1
    nested = markup.find("<", start + 1, end)
    if nested != -1:
        return -1
    return end + 1


def tokenize(markup: str) -> list[Token]:
    tokens: list[Token] = []
    text_start = 0
    i = 0
    n = len(markup)

    while i < n:
        end = -1
        kind: TokenKind | None = None
        if markup.startswith("{{", i):
            end, kind = _placeholder_end(markup, i), "placeholder"
        elif markup[i] == "<":
            end, kind = _tag_end(markup, i), "tag"

        if end == -1 or kind is None:
            i += 1
            continue

        if text_start < i:
            tokens.append(Token("text", markup[text_start:i]))
        tokens.append(Token(kind, markup[i:end]))
        i = text_start = end

    if text_start < n:
        tokens.append(Token("text", markup[text_start:]))
    return tokens


def detokenize(tokens: list[Token]) -> str:
    return "".join(token.text for token in tokens)
