"""
Text extraction for uploaded syllabus and submission files.
"""
import io
import logging

logger = logging.getLogger(__name__)


class DocumentError(Exception):
    """Raised when an uploaded document cannot be read."""


def extract_pdf_text(data: bytes) -> str:
    """Extract text from PDF bytes with PyMuPDF."""
    import fitz  # PyMuPDF

    try:
        pdf = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise DocumentError(
            "Failed to extract text from PDF. Please ensure the file is a valid PDF."
        ) from e
    try:
        return '\n'.join(page.get_text() for page in pdf)
    finally:
        pdf.close()


def extract_docx_text(data: bytes) -> str:
    """Extract paragraph text from a Word document."""
    from docx import Document

    try:
        doc = Document(io.BytesIO(data))
    except Exception as e:
        raise DocumentError("Failed to read Word document.") from e
    return '\n'.join(p.text for p in doc.paragraphs)


def extract_text(filename: str, data: bytes) -> str:
    """
    Extract plain text from an uploaded file based on its extension.

    .pdf and .docx are parsed; anything else (.txt, legacy .doc) is decoded
    as UTF-8 with undecodable bytes replaced.
    """
    lower = (filename or "").lower()
    if lower.endswith('.pdf'):
        return extract_pdf_text(data)
    if lower.endswith('.docx'):
        return extract_docx_text(data)
    return data.decode('utf-8', errors='replace')
