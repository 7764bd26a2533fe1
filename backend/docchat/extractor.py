import logging
import os
from io import BytesIO

import fitz  # PyMuPDF
from docx import Document as DocxDocument

from .errors import ExtractionFailed, UnsupportedFileType

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".doc", ".docx", ".txt")


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def _extract_pdf(data: bytes) -> str:
    with fitz.open(stream=data, filetype="pdf") as doc:
        return "\n".join(page.get_text() for page in doc)


def _extract_docx(data: bytes) -> str:
    d = DocxDocument(BytesIO(data))
    return "\n".join(p.text for p in d.paragraphs)


def _extract_txt(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


_EXTRACTORS = {
    ".pdf": _extract_pdf,
    ".doc": _extract_docx,
    ".docx": _extract_docx,
    ".txt": _extract_txt,
}


def extract_text(data: bytes, extension: str) -> str:
    """Convert an uploaded file's bytes into plain text.

    Raises UnsupportedFileType for extensions outside SUPPORTED_EXTENSIONS and
    ExtractionFailed, chained to the parser's exception, when parsing fails.
    """
    ext = (extension or "").lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    extractor = _EXTRACTORS.get(ext)
    if extractor is None:
        raise UnsupportedFileType(details=f"Unsupported extension: {extension or '(none)'}")

    try:
        return extractor(data)
    except Exception as e:
        logger.error("Error extracting %s text: %s", ext, e)
        raise ExtractionFailed(f"Error extracting {ext.lstrip('.').upper()} text: {e}") from e
