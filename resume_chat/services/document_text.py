"""Turn an uploaded resume file into plain text (or an image) for extraction."""

import io
import logging
import re
from pathlib import Path

from resume_chat.services.llm_client import ImageInput

logger = logging.getLogger(__name__)

IMAGE_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}
TEXT_SUFFIXES = {".txt", ".md"}


class UnsupportedDocument(ValueError):
    pass


def normalize_text(text: str) -> str:
    text = text.replace("\r", "\n")
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    # fix hyphenated line breaks: "engi-\nneer" -> "engineer"
    text = re.sub(r"(\w)-\n(\w)", r"\1\2", text)
    return text.strip()


def _looks_like_scanned_pdf(text_pages: list[str]) -> bool:
    low = sum(1 for t in text_pages if len((t or "").strip()) < 40)
    return low >= max(1, int(0.6 * len(text_pages)))


def extract_text_from_pdf(content: bytes, ocr_fallback: bool = True) -> str:
    import pdfplumber

    with pdfplumber.open(io.BytesIO(content)) as pdf:
        pages = [page.extract_text() or "" for page in pdf.pages]
    text = "\n".join(pages).strip()

    if ocr_fallback and (len(text) < 400 or _looks_like_scanned_pdf(pages)):
        try:
            import pytesseract
            from pdf2image import convert_from_bytes

            images = convert_from_bytes(content, dpi=300)
            ocr_text = "\n".join(pytesseract.image_to_string(img) for img in images).strip()
            if len(ocr_text) > len(text):
                text = ocr_text
        except Exception as e:
            # OCR needs tesseract and poppler binaries; keep the pdfplumber text without them.
            logger.warning("OCR fallback unavailable: %s", e)

    return normalize_text(text)


def extract_text_from_docx(content: bytes) -> str:
    from docx import Document

    document = Document(io.BytesIO(content))
    lines = [p.text for p in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            lines.append(" | ".join(cell.text for cell in row.cells))
    return normalize_text("\n".join(lines))


def read_upload(filename: str, content: bytes) -> tuple[str, str | None, ImageInput | None]:
    """Returns (parsed_from, text, image). Exactly one of text/image is set."""
    suffix = Path(filename or "").suffix.lower()
    if suffix == ".pdf":
        if not content.startswith(b"%PDF"):
            raise UnsupportedDocument("Invalid PDF file content.")
        return "pdf", extract_text_from_pdf(content), None
    if suffix == ".docx":
        return "docx", extract_text_from_docx(content), None
    if suffix in TEXT_SUFFIXES:
        return "txt", normalize_text(content.decode("utf-8", errors="replace")), None
    if suffix in IMAGE_TYPES:
        return "image", None, ImageInput(data=content, media_type=IMAGE_TYPES[suffix])
    raise UnsupportedDocument("Upload a PDF, DOCX, TXT, PNG, JPEG or WEBP file.")
