import logging
import fitz  # pymupdf

logger = logging.getLogger(__name__)


class ResumeParseError(Exception):
    """The upload is not a readable PDF."""


def parse_resume(data: bytes) -> str:
    """Extract plain text from PDF bytes, page by page."""
    if not data:
        raise ResumeParseError("Empty file")

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        logger.warning(f"PDF open failed: {type(e).__name__}: {e}")
        raise ResumeParseError("Failed to parse PDF") from e

    text = ""
    try:
        for page in doc:
            text += page.get_text()
    except Exception as e:
        logger.warning(f"PDF text extraction failed: {type(e).__name__}: {e}")
        raise ResumeParseError("Failed to parse PDF") from e
    finally:
        doc.close()

    return text


class TextExtractor:
    """Document extraction collaborator handed to the resume routes."""

    def extract_text(self, data: bytes) -> str:
        return parse_resume(data)


def get_text_extractor() -> TextExtractor:
    """Dependency hook; tests override it with a stub."""
    return TextExtractor()
