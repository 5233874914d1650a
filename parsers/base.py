"""parsers/base.py — Shared parser utilities and types."""

import html
import re
from dataclasses import dataclass, field


@dataclass
class ParsedDocument:
    """Text pulled out of a document before (or instead of) remote structuring."""
    title: str
    author: str
    pages: list[str] = field(default_factory=list)
    sections: list[tuple[str, str]] = field(default_factory=list)   # (title, text)

    @property
    def full_text(self) -> str:
        return "\n\n".join(p for p in self.pages if p)


def clean_text(text: str) -> str:
    """Normalize text for TTS synthesis: plain quotes and dashes, single blank lines."""
    text = html.unescape(text)
    for src, dst in (
        ("\u2014", " - "), ("\u2013", " - "), ("\u00ad", ""),
        ("\u2018", "'"), ("\u2019", "'"), ("\u201c", '"'), ("\u201d", '"'),
    ):
        text = text.replace(src, dst)

    out = []
    for line in text.split("\n"):
        line = re.sub(r"[ \t]+", " ", line).strip()
        if line or (out and out[-1]):
            out.append(line)
    return "\n".join(out).strip()
