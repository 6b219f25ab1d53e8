"""
Text extraction for uploaded resumes.

The parser is chosen from the declared MIME type, falling back to the file
extension: PDF via PyMuPDF, DOCX via python-docx. Anything else (plain text,
legacy .doc) is decoded best-effort as UTF-8.
"""
import io
import logging
import re
from pathlib import Path
from typing import Optional

import fitz  # pymupdf
from docx import Document

logger = logging.getLogger(__name__)

PDF_TYPES = {"application/pdf"}
DOCX_TYPES = {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}


def detect_format(content_type: Optional[str], filename: Optional[str]) -> str:
    """Return "pdf", "docx" or "text"."""
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in PDF_TYPES:
        return "pdf"
    if mime in DOCX_TYPES:
        return "docx"
    suffix = Path(filename or "").suffix.lower()
    if suffix == ".pdf":
        return "pdf"
    if suffix == ".docx":
        return "docx"
    return "text"


def parse_pdf(data: bytes) -> str:
    text = ""
    with fitz.open(stream=data, filetype="pdf") as doc:
        for page in doc:
            text += page.get_text()
    return text


def parse_docx(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    parts = [para.text for para in doc.paragraphs if para.text]
    for table in doc.tables:
        for row in table.rows:
            for cell in row.cells:
                if cell.text:
                    parts.append(cell.text)
    return "\n".join(parts)


def decode_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _normalize(text: str) -> str:
    text = text.replace("\x00", "")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def parse_resume(data: bytes, content_type: Optional[str] = None, filename: Optional[str] = None) -> str:
    """
    Extract plain text from resume bytes.

    A document that fails to parse falls back to raw decoding instead of
    failing the upload.
    """
    fmt = detect_format(content_type, filename)
    try:
        if fmt == "pdf":
            text = parse_pdf(data)
        elif fmt == "docx":
            text = parse_docx(data)
        else:
            text = decode_text(data)
    except Exception as e:
        logger.warning(f"Could not parse {fmt} resume ({filename}), decoding raw bytes instead: {e}")
        text = decode_text(data)

    text = _normalize(text)
    logger.info(f"Extracted {len(text)} characters from {fmt} resume")
    return text
