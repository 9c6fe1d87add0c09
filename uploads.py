# uploads.py
#
# Description: validate a local .pdf or .txt file, extract its text and derive
#              the short snippet that is injected into the preamble.
#
# Usage examples (from the chat prompt):
#   :u notes.txt
#   :u ~/papers/attention.pdf

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from PyPDF2 import PdfReader

from errors import UploadRejected

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# constants
# --------------------------------------------------------------------------- #
ALLOWED_EXTENSIONS = (".pdf", ".txt")
MAX_UPLOAD_BYTES = 20 * 1024 * 1024
SNIPPET_LIMIT = 2000
TRUNCATION_MARKER = "\n[...truncated due to size...]"
NO_TEXT_SENTINEL = "(no text extracted)"

UPLOAD_ACK_USER = "I've uploaded the file: {path}"
UPLOAD_ACK_ASSISTANT = "I've received your file and will analyze its contents."

PdfExtractor = Callable[[Path], str]


@dataclass(frozen=True)
class UploadedFile:
    path: str
    text: str
    snippet: str
    warning: Optional[str] = None


# --------------------------------------------------------------------------- #
# helpers
# --------------------------------------------------------------------------- #
def make_snippet(text: str) -> str:
    """Return at most SNIPPET_LIMIT characters, marking any truncation."""
    if len(text) > SNIPPET_LIMIT:
        return text[:SNIPPET_LIMIT] + TRUNCATION_MARKER
    return text


def extract_pdf_text(path: Path) -> str:
    """Extract the text layer of a PDF; returns "" when nothing can be read."""
    try:
        reader = PdfReader(str(path))
        parts = [(page.extract_text() or "").strip() for page in reader.pages]
    except Exception as e:
        logger.warning("PDF text extraction failed", extra={"path": str(path), "error": str(e)})
        return ""
    return "\n".join(p for p in parts if p)


def _read_text_file(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise UploadRejected(f"Could not read {path}: {e}") from e


# --------------------------------------------------------------------------- #
# entry point
# --------------------------------------------------------------------------- #
def load_upload(raw_path: str, pdf_extractor: PdfExtractor = extract_pdf_text) -> UploadedFile:
    """
    Validate and ingest a file for use as conversation context.

    Args:
        raw_path: the path as typed by the user (``~`` is expanded).
        pdf_extractor: text extraction function used for PDF files.

    Returns:
        The uploaded file with its snippet. An empty extraction is not an
        error; the snippet is replaced by a sentinel and `warning` is set.

    Raises:
        UploadRejected: missing file, unsupported extension, file too large
        or an unreadable text file.
    """
    display_path = raw_path.strip()
    path = Path(display_path).expanduser()

    if not path.is_file():
        raise UploadRejected(f"File not found: {display_path}")

    ext = path.suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise UploadRejected("Only .pdf or .txt files are allowed.")

    size = path.stat().st_size
    if size > MAX_UPLOAD_BYTES:
        raise UploadRejected("File exceeds 20 MB limit.")

    text = pdf_extractor(path) if ext == ".pdf" else _read_text_file(path)

    warning = None
    snippet = make_snippet(text)
    if not text.strip():
        warning = f"Warning: No text extracted from {display_path}."
        snippet = NO_TEXT_SENTINEL

    logger.info(
        "File uploaded",
        extra={"path": display_path, "bytes": size, "chars": len(text)},
    )
    return UploadedFile(path=display_path, text=text, snippet=snippet, warning=warning)
