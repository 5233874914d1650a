"""structuring.py — Turn an uploaded PDF into a titled list of chapters.

Two structurers share one contract, structure(raw_bytes) -> StructuredDocument:
  OpenAIStructurer  — extracts the text locally, asks a chat model to organise it
  OutlineStructurer — offline: PDF outline, heading patterns, or page chunks
Both raise StructuringError on any failure.
"""

import json
from dataclasses import dataclass, field

from errors import StructuringError
from parsers import parse_pdf_bytes
from parsers.base import clean_text

UNTITLED = "Untitled"
UNKNOWN_AUTHOR = "Unknown Author"
DEFAULT_MODEL = "gpt-4o-mini"
MAX_SOURCE_CHARS = 100_000

SYSTEM_PROMPT = (
    "You split books into chapters for audiobook narration. "
    "Reply with valid JSON only."
)
USER_PROMPT = (
    "Extract the text from this book and organize it into logical chapters or sections. "
    "Return a JSON object with 'title', 'author', and a 'chapters' array where each item "
    "has a 'title' and 'content' string. If the book is very long, focus on providing the "
    "first 5-10 logical sections.\n\n"
    "BOOK TEXT:\n{text}"
)


@dataclass
class StructuredDocument:
    title: str
    author: str
    chapters: list[tuple[str, str]] = field(default_factory=list)   # (title, content)


def _document_from_payload(payload) -> StructuredDocument:
    """Validate the model's JSON and apply title/author fallbacks."""
    if not isinstance(payload, dict):
        raise StructuringError("Model reply is not a JSON object")
    raw_chapters = payload.get("chapters")
    if not isinstance(raw_chapters, list):
        raise StructuringError("Model reply has no 'chapters' array")

    chapters = []
    for n, item in enumerate(raw_chapters, start=1):
        if not isinstance(item, dict):
            continue
        content = clean_text(str(item.get("content") or ""))
        if not content:
            continue
        title = str(item.get("title") or "").strip() or f"Section {n}"
        chapters.append((title, content))
    if not chapters:
        raise StructuringError("No chapters found in document")

    return StructuredDocument(
        title=str(payload.get("title") or "").strip() or UNTITLED,
        author=str(payload.get("author") or "").strip() or UNKNOWN_AUTHOR,
        chapters=chapters,
    )


class OpenAIStructurer:
    def __init__(self, client, model: str = DEFAULT_MODEL, max_chars: int = MAX_SOURCE_CHARS):
        self.client = client
        self.model = model
        self.max_chars = max_chars

    @classmethod
    def from_settings(cls, settings):
        import openai

        client = openai.OpenAI(api_key=settings.openai_api_key, timeout=settings.request_timeout)
        return cls(client, model=settings.structuring_model)

    def structure(self, raw: bytes) -> StructuredDocument:
        try:
            parsed = parse_pdf_bytes(raw)
        except Exception as e:
            raise StructuringError(f"Could not read PDF: {e}") from e

        text = parsed.full_text[: self.max_chars]
        if not text.strip():
            raise StructuringError("PDF contains no extractable text")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": USER_PROMPT.format(text=text)},
                ],
                temperature=0.2,
                response_format={"type": "json_object"},
            )
            payload = json.loads((response.choices[0].message.content or "").strip() or "{}")
        except Exception as e:
            raise StructuringError(f"Structuring request failed: {e}") from e

        document = _document_from_payload(payload)
        # The PDF's own metadata wins over a model fallback
        if document.title == UNTITLED and parsed.title:
            document.title = parsed.title
        if document.author == UNKNOWN_AUTHOR and parsed.author:
            document.author = parsed.author
        return document


class OutlineStructurer:
    def structure(self, raw: bytes) -> StructuredDocument:
        try:
            parsed = parse_pdf_bytes(raw, with_sections=True)
        except Exception as e:
            raise StructuringError(f"Could not read PDF: {e}") from e
        if not parsed.sections:
            raise StructuringError("PDF contains no extractable text")
        return StructuredDocument(
            title=parsed.title or UNTITLED,
            author=parsed.author or UNKNOWN_AUTHOR,
            chapters=parsed.sections,
        )


def make_structurer(name: str, settings):
    if name == "outline":
        return OutlineStructurer()
    if name == "openai":
        return OpenAIStructurer.from_settings(settings)
    raise ValueError(f"Unknown structurer: {name!r}")
