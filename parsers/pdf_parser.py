"""parsers/pdf_parser.py — Pull text and chapter ranges out of PDF bytes using pymupdf."""

import re

from parsers.base import ParsedDocument, clean_text

PAGES_PER_SECTION = 20


def _chapters_from_outline(doc) -> list[tuple[str, int, int]] | None:
    """Chapter page ranges from the PDF bookmarks/outline, if it has two or more top-level entries."""
    toc = doc.get_toc()  # [[level, title, page_number], ...]
    if not toc:
        return None

    min_level = min(level for level, _, _ in toc)
    top = [(title, page) for level, title, page in toc if level == min_level]
    if len(top) < 2:
        return None

    ranges = []
    for i, (title, start_page) in enumerate(top):
        start = max(0, start_page - 1)
        end = top[i + 1][1] - 2 if i + 1 < len(top) else doc.page_count - 1
        ranges.append((title, start, max(start, end)))
    return ranges


def _chapters_from_heuristics(doc) -> list[tuple[str, int, int]]:
    """Fallback: pages that open with 'Chapter N', else fixed-size page chunks."""
    heading = re.compile(r"^(chapter\s+[\divxlcdm]+[.:]*\s*.*)", re.IGNORECASE | re.MULTILINE)
    starts = []
    for page_num in range(doc.page_count):
        m = heading.search(doc[page_num].get_text("text")[:500])
        if m:
            starts.append((m.group(1).strip(), page_num))

    if len(starts) >= 2:
        return [
            (title, start, starts[i + 1][1] - 1 if i + 1 < len(starts) else doc.page_count - 1)
            for i, (title, start) in enumerate(starts)
        ]

    return [
        (f"Section {n + 1}", first, min(first + PAGES_PER_SECTION - 1, doc.page_count - 1))
        for n, first in enumerate(range(0, doc.page_count, PAGES_PER_SECTION))
    ]


def parse_pdf_bytes(raw: bytes, with_sections: bool = False) -> ParsedDocument:
    """
    Read a PDF from memory.
    Always returns cleaned page text; with_sections=True also splits it into
    chapters: (1) PDF outline, (2) heading patterns, (3) fixed page chunks.
    """
    import fitz  # pymupdf

    doc = fitz.open(stream=raw, filetype="pdf")
    try:
        meta = doc.metadata or {}
        pages = [clean_text(page.get_text("text")) for page in doc]

        sections = []
        if with_sections:
            ranges = _chapters_from_outline(doc) or _chapters_from_heuristics(doc)
            for title, first, last in ranges:
                text = clean_text("\n\n".join(pages[first:min(last + 1, doc.page_count)]))
                if text:
                    sections.append((title.strip(), text))
    finally:
        doc.close()

    return ParsedDocument(
        title=(meta.get("title") or "").strip(),
        author=(meta.get("author") or "").strip(),
        pages=pages,
        sections=sections,
    )
