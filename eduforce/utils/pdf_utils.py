import base64
import binascii
import io
import re

from PyPDF2 import PdfReader, errors

from eduforce.domain.errors import InvalidDocumentError, NoExtractableTextError
from ef_utils.logger_utils import logger

_DATA_URL_PREFIX = re.compile(r"^\s*data:[^,]*;base64,", re.IGNORECASE)


def decode_pdf_payload(payload: str, max_bytes: int = 0) -> bytes:
    """
    Decode a Base64 PDF payload, optionally prefixed with a data-URL header
    such as ``data:application/pdf;base64,``.
    """
    if not payload or not payload.strip():
        raise InvalidDocumentError("No PDF content provided for parsing.")

    base64_data = _DATA_URL_PREFIX.sub("", payload, count=1).strip()

    try:
        pdf_bytes = base64.b64decode(base64_data)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"PDF payload is not valid Base64: {e}")
        raise InvalidDocumentError() from e

    if not pdf_bytes:
        raise InvalidDocumentError()
    if max_bytes and len(pdf_bytes) > max_bytes:
        raise InvalidDocumentError(f"The PDF is too large. The limit is {max_bytes // (1024 * 1024)}MB.")
    return pdf_bytes


def _page_text(page) -> str:
    """Join a page's text fragments with single spaces."""
    raw = page.extract_text() or ""
    fragments = [line.strip() for line in raw.splitlines() if line.strip()]
    return " ".join(fragments)


def extract_text_from_pdf(payload: str, max_bytes: int = 0) -> str:
    """
    Extracts text from a Base64 encoded PDF using PyPDF2.

    Pages are kept in order, each page followed by a newline. Raises
    InvalidDocumentError for undecodable or corrupt input and
    NoExtractableTextError when the document has no text layer.
    """
    pdf_bytes = decode_pdf_payload(payload, max_bytes=max_bytes)

    try:
        pdf_reader = PdfReader(io.BytesIO(pdf_bytes))
        if pdf_reader.is_encrypted:
            raise InvalidDocumentError("Encrypted PDFs are not supported.")
        full_text = "".join(_page_text(page) + "\n" for page in pdf_reader.pages)
    except InvalidDocumentError:
        raise
    except errors.PdfReadError as e:
        logger.error(f"Could not read PDF file. It may be encrypted or corrupted: {e}")
        raise InvalidDocumentError() from e
    except Exception as e:
        logger.error(f"An unexpected error occurred during PDF text extraction: {e}", exc_info=True)
        raise InvalidDocumentError() from e

    if not full_text.strip():
        logger.warning("PyPDF2 extracted no text. The PDF might be image-based or scanned.")
        raise NoExtractableTextError()

    logger.info(f"Extracted {len(full_text)} characters from {len(pdf_reader.pages)} PDF page(s)")
    return full_text
