"""parsers/ — Local document text extraction."""

from pathlib import Path

from parsers.base import ParsedDocument

SUPPORTED_EXTENSIONS = {".pdf"}


def read_document(file_path: Path) -> bytes:
    """Read an upload from disk, rejecting formats we cannot structure."""
    file_path = Path(file_path)
    suffix = file_path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise ValueError(
            f"Unsupported file format: '{suffix}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
        )
    return file_path.read_bytes()


def parse_pdf_bytes(raw: bytes, with_sections: bool = False) -> ParsedDocument:
    from parsers.pdf_parser import parse_pdf_bytes as _parse
    return _parse(raw, with_sections=with_sections)
