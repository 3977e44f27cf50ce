import io
from pathlib import PurePath

import fitz
from docx import Document

from errors import EmptyInputError, FormatError, UnsupportedFormatError
from logging_config import logger

PLAIN_TEXT_EXTENSIONS = {"txt", "md", "csv", ""}
IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "bmp", "tiff", "webp"}


def file_extension(filename: str) -> str:
    """Lowercased text after the last dot, '' when there is none."""
    suffix = PurePath(filename or "").suffix
    return suffix[1:].lower() if suffix else ""


def extract_pdf_text(file_bytes: bytes) -> str:
    try:
        with fitz.open(stream=file_bytes, filetype="pdf") as doc:
            return "\n".join(page.get_text("text") for page in doc)
    except Exception as e:
        logger.error(f"PDF text extraction failed: {e}", exc_info=True)
        raise FormatError("Could not read PDF document") from e


def extract_docx_text(file_bytes: bytes) -> str:
    try:
        doc = Document(io.BytesIO(file_bytes))
    except Exception as e:
        logger.error(f"DOCX text extraction failed: {e}", exc_info=True)
        raise FormatError("Could not read Word document") from e

    lines = [para.text for para in doc.paragraphs if para.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            row_text = " | ".join(cell.text.strip() for cell in row.cells if cell.text.strip())
            if row_text:
                lines.append(row_text)
    return "\n".join(lines)


def extract_text(file_bytes: bytes, filename: str) -> str:
    """
    Convert an uploaded file into plain text, dispatching on its extension.

    Raises EmptyInputError for missing bytes, UnsupportedFormatError for image
    files or undecodable unknown formats, FormatError when a PDF/DOCX backend
    cannot read the document.
    """
    ext = file_extension(filename)
    logger.info(f"Extracting text from: {filename} (ext: {ext or 'none'})")

    if not file_bytes:
        raise EmptyInputError(f"No file data provided for {filename}")

    if ext == "pdf":
        text = extract_pdf_text(file_bytes)
    elif ext == "docx":
        text = extract_docx_text(file_bytes)
    elif ext in PLAIN_TEXT_EXTENSIONS:
        text = file_bytes.decode("utf-8", errors="replace")
    elif ext in IMAGE_EXTENSIONS:
        raise UnsupportedFormatError(f"Cannot analyze content from image file ({filename}).")
    else:
        logger.warning(f"Attempting plain text read for unknown file type: {filename}")
        try:
            text = file_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UnsupportedFormatError(f"Unsupported file type for content analysis: {filename}") from e

    logger.info(f"Extracted text length: {len(text)} characters")
    return text
