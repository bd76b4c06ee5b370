"""Plain-text extraction from a reference PDF, used as the composer's style sample."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

from pydantic import BaseModel, Field
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from paper_architect.core.errors import InputError

logger = logging.getLogger(__name__)


class ReferencePage(BaseModel):
    page_number: int
    text: str


class ReferenceDocument(BaseModel):
    total_pages: int
    pages: list[ReferencePage] = Field(default_factory=list)
    full_text: str = ""


def _page_text(page) -> str:
    # Same joining as text-item concatenation: runs of whitespace collapse to single spaces.
    raw = page.extract_text() or ""
    return " ".join(raw.split())


def extract_pdf_text(source: str | Path | BinaryIO) -> ReferenceDocument:
    """Read every page; pages are separated by a blank line in ``full_text``.

    Raises InputError when the file cannot be opened or is not a readable PDF.
    """
    pages: list[ReferencePage] = []
    full_text = ""
    try:
        reader = PdfReader(source)
        for i, page in enumerate(reader.pages, start=1):
            text = _page_text(page)
            pages.append(ReferencePage(page_number=i, text=text))
            full_text += text + "\n\n"
    except (OSError, PyPdfError) as e:
        raise InputError(f"Cannot read reference PDF {source}: {e}") from e
    logger.info("Extracted reference text: pages=%d chars=%d", len(pages), len(full_text))
    return ReferenceDocument(total_pages=len(pages), pages=pages, full_text=full_text.strip())
