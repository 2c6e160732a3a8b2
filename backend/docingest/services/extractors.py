import io
import logging
import re
import threading
import zipfile
from typing import Callable

from docling.datamodel.base_models import InputFormat
from docling.datamodel.document import DocumentStream
from docling.datamodel.pipeline_options import PdfPipelineOptions
from docling.document_converter import DocumentConverter, PdfFormatOption
from pypdf import PdfReader

from docingest.models.documents import FileType

logger = logging.getLogger(__name__)

MIN_PDF_TEXT_LENGTH = 50

_SLIDE_PART = re.compile(r"^ppt/slides/slide(\d+)\.xml$", re.IGNORECASE)
_TEXT_RUN = re.compile(r"<a:t(?:\s[^>]*)?>(.*?)</a:t>", re.DOTALL)
_XML_ENTITIES = {"amp": "&", "lt": "<", "gt": ">", "quot": '"', "apos": "'"}
_XML_ENTITY = re.compile(r"&(amp|lt|gt|quot|apos);")

_converter: DocumentConverter | None = None
_ocr_converter: DocumentConverter | None = None
_converter_lock = threading.Lock()


def _get_converter() -> DocumentConverter:
    """Lazy-init singleton DocumentConverter (expensive to create)."""
    global _converter
    if _converter is None:
        with _converter_lock:
            if _converter is None:
                _converter = DocumentConverter()
    return _converter


def _get_ocr_converter() -> DocumentConverter:
    """Lazy-init DocumentConverter that OCRs every PDF page."""
    global _ocr_converter
    if _ocr_converter is None:
        with _converter_lock:
            if _ocr_converter is None:
                options = PdfPipelineOptions(do_ocr=True)
                options.ocr_options.force_full_page_ocr = True
                _ocr_converter = DocumentConverter(
                    format_options={
                        InputFormat.PDF: PdfFormatOption(pipeline_options=options)
                    }
                )
    return _ocr_converter


def _extract_text_pypdf(file_bytes: bytes) -> str:
    """Extract text from the PDF text layer using pypdf."""
    reader = PdfReader(io.BytesIO(file_bytes))
    pages = [page.extract_text() or "" for page in reader.pages]
    return "\n\n".join(pages)


def _stream(file_bytes: bytes, filename: str, suffix: str) -> DocumentStream:
    # docling picks the input format from the stream name
    if not filename.lower().endswith(suffix):
        filename = f"{filename}{suffix}"
    return DocumentStream(name=filename, stream=io.BytesIO(file_bytes))


def _ocr_pdf(file_bytes: bytes, filename: str) -> str:
    stream = _stream(file_bytes, filename, ".pdf")
    result = _get_ocr_converter().convert(stream)
    return result.document.export_to_text()


def extract_pdf_text(file_bytes: bytes, filename: str = "document.pdf") -> str:
    """Read the text layer, falling back to OCR for scanned PDFs.

    Returns an empty string when neither pass yields text.
    """
    try:
        text = _extract_text_pypdf(file_bytes)
    except Exception as e:
        logger.warning(f"pypdf could not read {filename}: {e}")
        text = ""

    if len(text.strip()) >= MIN_PDF_TEXT_LENGTH:
        return text

    logger.warning(f"No usable text layer in {filename}, falling back to OCR")
    try:
        return _ocr_pdf(file_bytes, filename)
    except Exception as e:
        logger.warning(f"OCR failed for {filename}: {e}")
        return ""


def extract_docx_text(file_bytes: bytes, filename: str = "document.docx") -> str:
    """Extract the body text of a Word document, dropping formatting."""
    try:
        stream = _stream(file_bytes, filename, ".docx")
        result = _get_converter().convert(stream)
        return result.document.export_to_text()
    except Exception as e:
        logger.warning(f"Word extraction failed for {filename}: {e}")
        return ""


def _unescape_xml(text: str) -> str:
    return _XML_ENTITY.sub(lambda m: _XML_ENTITIES[m.group(1)], text)


def extract_pptx_text(file_bytes: bytes, filename: str = "document.pptx") -> str:
    """Extract slide text in slide order, one ``--- Slide N ---`` section per slide."""
    try:
        with zipfile.ZipFile(io.BytesIO(file_bytes)) as archive:
            slides = []
            for name in archive.namelist():
                match = _SLIDE_PART.match(name)
                if match:
                    slides.append((int(match.group(1)), name))
            slides.sort()

            parts = []
            for position, (_, name) in enumerate(slides, start=1):
                xml = archive.read(name).decode("utf-8", errors="replace")
                texts = [
                    _unescape_xml(run).strip() for run in _TEXT_RUN.findall(xml)
                ]
                texts = [t for t in texts if t]
                if texts:
                    parts.append(f"--- Slide {position} ---\n{' '.join(texts)}")
    except Exception as e:
        logger.warning(f"PowerPoint extraction failed for {filename}: {e}")
        return ""

    return "\n\n".join(parts)


EXTRACTORS: dict[FileType, Callable[[bytes, str], str]] = {
    FileType.PDF: extract_pdf_text,
    FileType.DOCX: extract_docx_text,
    FileType.PPTX: extract_pptx_text,
}


def extract_text(file_bytes: bytes, file_type: FileType, filename: str) -> str:
    """Convert an upload to raw text. Never raises; failure yields ``""``."""
    return EXTRACTORS[file_type](file_bytes, filename)
