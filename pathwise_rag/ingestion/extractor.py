"""
Text Extraction Module

Turns uploaded content (plain text, raw bytes, PDF files) into plain text.
"""

import io
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union

from PyPDF2 import PdfReader

from ..errors import ParseError

PDF_MAGIC = b"%PDF"

Content = Union[str, bytes, bytearray, "os.PathLike[str]", "ExtractedText"]


@dataclass
class ExtractedText:
    """Plain text pulled out of a document."""
    text: str
    num_pages: Optional[int] = None
    source: Optional[str] = None


class TextExtractor:
    """
    Extracts text from caller-supplied content.

    str is taken as already-extracted text. bytes starting with the PDF
    signature and paths ending in .pdf are parsed as PDF; other bytes and
    paths are decoded as UTF-8.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def extract(self, content: Content) -> ExtractedText:
        """
        Extract text from content.

        Raises:
            ParseError: The content is of an unsupported type or could not be read
        """
        if isinstance(content, ExtractedText):
            return content

        if isinstance(content, str):
            return ExtractedText(text=content)

        if isinstance(content, (bytes, bytearray)):
            data = bytes(content)
            if data.startswith(PDF_MAGIC):
                return self._parse_pdf(io.BytesIO(data))
            return ExtractedText(text=self._decode(data))

        if isinstance(content, os.PathLike):
            return self._extract_path(Path(content))

        raise ParseError(f"Unsupported document content type: {type(content).__name__}")

    def _extract_path(self, path: Path) -> ExtractedText:
        try:
            if path.suffix.lower() == ".pdf":
                with open(path, "rb") as f:
                    extracted = self._parse_pdf(f)
            else:
                extracted = ExtractedText(text=self._decode(path.read_bytes()))
        except OSError as e:
            raise ParseError(f"Failed to read {path}: {e}") from e

        extracted.source = path.name
        return extracted

    def _decode(self, data: bytes) -> str:
        try:
            return data.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise ParseError(f"Document is not valid {self.encoding} text: {e}") from e

    def _parse_pdf(self, stream: BinaryIO) -> ExtractedText:
        try:
            reader = PdfReader(stream)
            pages = [page.extract_text() or "" for page in reader.pages]
        except Exception as e:
            raise ParseError(f"Failed to parse PDF: {e}") from e

        text = "\n".join(p for p in pages if p.strip())
        return ExtractedText(text=text, num_pages=len(pages))
