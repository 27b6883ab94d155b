"""Text extraction for PDF and Office documents."""
import io
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Tuple

import docx  # python-docx
import fitz  # PyMuPDF
import pptx  # python-pptx
from openpyxl import load_workbook

from config import EXTRACTION_TEXT_LIMIT
from models.document import ExtractionResult

logger = logging.getLogger(__name__)

PDF_EXTENSIONS = {".pdf"}
OFFICE_EXTENSIONS = {".docx", ".doc", ".xlsx", ".xlsm", ".xls", ".pptx", ".ppt"}
LEGACY_OFFICE_EXTENSIONS = {".doc", ".xls", ".ppt"}


class ExtractionError(Exception):
    """Text could not be extracted from a document."""


class TextExtractor:
    """Interface for turning raw document bytes into plain text."""

    def supports(self, file_name: str, mime_type: str = "") -> bool:
        raise NotImplementedError

    def extract(self, data: bytes, file_name: str, mime_type: str = "") -> ExtractionResult:
        """
        Extract plain text from a document.

        Raises:
            ExtractionError: If the document cannot be read
        """
        raise NotImplementedError


def normalize_whitespace(text: str) -> str:
    """Normalize line endings, trim lines and collapse runs of blank lines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[\t\f\v]+", " ", text).replace("\x00", " ")
    text = "\n".join(line.strip() for line in text.split("\n"))
    return re.sub(r"\n{3,}", "\n\n", text).strip()


class DocumentTextExtractor(TextExtractor):
    """Extracts text from PDF, DOCX, XLSX and PPTX files."""

    def __init__(self, text_limit: int = EXTRACTION_TEXT_LIMIT):
        """
        Args:
            text_limit: Maximum number of characters kept from a document
        """
        self.text_limit = text_limit

    def supports(self, file_name: str, mime_type: str = "") -> bool:
        ext = Path(file_name).suffix.lower()
        return ext in PDF_EXTENSIONS or ext in OFFICE_EXTENSIONS or mime_type == "application/pdf"

    def extract(self, data: bytes, file_name: str, mime_type: str = "") -> ExtractionResult:
        ext = Path(file_name).suffix.lower()
        if mime_type == "application/pdf" and not ext:
            ext = ".pdf"

        if not data:
            raise ExtractionError(f"{file_name} is empty")

        try:
            if ext in PDF_EXTENSIONS:
                text, metadata = self._extract_pdf(data)
            elif ext == ".docx":
                text, metadata = self._extract_docx(data)
            elif ext in (".xlsx", ".xlsm"):
                text, metadata = self._extract_xlsx(data)
            elif ext == ".pptx":
                text, metadata = self._extract_pptx(data)
            elif ext in LEGACY_OFFICE_EXTENSIONS:
                text = (
                    f"{file_name} uses the legacy binary {ext[1:].upper()} format, which is not "
                    f"supported for text extraction. Convert it to {ext[1:]}x to index its contents."
                )
                metadata = {}
            else:
                raise ExtractionError(f"Unsupported file type: {ext or mime_type or 'unknown'}")
        except ExtractionError:
            raise
        except Exception as e:
            # Parsers raise a wide range of library-specific errors on corrupt input
            error_msg = f"Failed to extract text from {file_name}: {str(e)}"
            logger.warning(error_msg)
            raise ExtractionError(error_msg) from e

        text = normalize_whitespace(text)
        if not text:
            text = (
                f"No extractable text was found in {file_name}. The file may contain only "
                f"images or be encrypted."
            )

        if len(text) > self.text_limit:
            text = (
                f"{text[:self.text_limit]}\n\n"
                f"[Note: only the first {self.text_limit} characters were extracted]"
            )
            metadata["truncated"] = True

        logger.debug(f"Extracted {len(text)} characters from {file_name}")
        return ExtractionResult(text=text, metadata=metadata)

    def _extract_pdf(self, data: bytes) -> Tuple[str, Dict[str, Any]]:
        pdf_document = fitz.open(stream=data, filetype="pdf")
        try:
            pages = [page.get_text() for page in pdf_document]
        finally:
            pdf_document.close()
        return "\n".join(pages), {"page_count": len(pages)}

    def _extract_docx(self, data: bytes) -> Tuple[str, Dict[str, Any]]:
        document = docx.Document(io.BytesIO(data))
        parts = [p.text for p in document.paragraphs if p.text.strip()]
        paragraph_count = len(parts)

        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" | ".join(cells))

        return "\n".join(parts), {"paragraph_count": paragraph_count}

    def _extract_xlsx(self, data: bytes) -> Tuple[str, Dict[str, Any]]:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        sheet_texts: List[str] = []
        sheet_names: List[str] = []
        row_count = 0

        try:
            for sheet_name in workbook.sheetnames:
                rows = []
                for row in workbook[sheet_name].iter_rows(values_only=True):
                    values = [str(cell) for cell in row if cell is not None and str(cell).strip()]
                    if values:
                        rows.append(" | ".join(values))
                if not rows:
                    continue
                row_count += len(rows)
                sheet_names.append(sheet_name)
                sheet_texts.append(f"Sheet: {sheet_name}\n" + "\n".join(rows))
        finally:
            workbook.close()

        return "\n\n".join(sheet_texts), {"sheet_names": sheet_names, "row_count": row_count}

    def _extract_pptx(self, data: bytes) -> Tuple[str, Dict[str, Any]]:
        presentation = pptx.Presentation(io.BytesIO(data))
        slides = []

        for index, slide in enumerate(presentation.slides, start=1):
            runs = [
                shape.text_frame.text.strip()
                for shape in slide.shapes
                if shape.has_text_frame and shape.text_frame.text.strip()
            ]
            if runs:
                slides.append(f"Slide {index}\n" + " ".join(runs))

        return "\n\n".join(slides), {"slide_count": len(slides)}
