# =============================================================================
# PDF Parser — Per-Page Text Extraction
# =============================================================================
#
# Turns a PDF on disk into a list of Page objects, one per physical page,
# each tagged with its 1-indexed page number and the uploaded filename.
#
# Two backends behind the same PdfParser protocol:
#   - PypdfParser   (default) — pypdf text extraction, page for page.
#                               Blank pages are kept as empty Pages; the
#                               chunker drops them as noise later.
#   - DoclingParser           — Docling layout-aware extraction. Items are
#                               grouped back into pages by provenance, tables
#                               exported as markdown.
#
# Downstream code only sees our own Page dataclass, never pypdf or Docling
# types, so switching backends touches only this module.
# =============================================================================

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from pypdf import PdfReader

from pdf_chat.config import settings
from pdf_chat.errors import ExtractionFailed

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class Page:
    """
    The text of a single physical PDF page.

    Owned transiently by the ingestion worker while one job is processed.
    """

    text: str
    page_number: int  # 1-indexed
    filename: str
    metadata: dict = field(default_factory=dict)
    # metadata keys:
    #   source_path: str — where the upload lived on disk
    #   total_pages: int — page count of the whole PDF


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class PdfParser(Protocol):
    """Anything that can turn a PDF path into per-page text."""

    def parse(self, file_path: Path, filename: str) -> list[Page]:
        ...


# ---------------------------------------------------------------------------
# Implementation 1: pypdf
# ---------------------------------------------------------------------------


class PypdfParser:
    """Plain per-page text extraction with pypdf."""

    def parse(self, file_path: Path, filename: str) -> list[Page]:
        try:
            reader = PdfReader(str(file_path))
            texts = [page.extract_text() or "" for page in reader.pages]
        except Exception as exc:
            raise ExtractionFailed(
                f"Failed to extract content from PDF '{filename}': {exc}"
            ) from exc

        total = len(texts)
        return [
            Page(
                text=text,
                page_number=number,
                filename=filename,
                metadata={"total_pages": total},
            )
            for number, text in enumerate(texts, start=1)
        ]


# ---------------------------------------------------------------------------
# Implementation 2: Docling
# ---------------------------------------------------------------------------
# The DocumentConverter loads ML models on first use (a few seconds), so
# one instance is created lazily and reused for every job.
# ---------------------------------------------------------------------------


class DoclingParser:
    """Layout-aware extraction with Docling, regrouped into pages."""

    def __init__(self) -> None:
        self._converter = None

    def _get_converter(self):
        if self._converter is None:
            try:
                from docling.datamodel.base_models import InputFormat
                from docling.datamodel.pipeline_options import PdfPipelineOptions
                from docling.document_converter import (
                    DocumentConverter,
                    PdfFormatOption,
                )
            except ImportError as exc:
                raise RuntimeError(
                    "Docling is not installed. Install with "
                    "`pip install -e '.[docling]'` or set PDF_PARSER=pypdf."
                ) from exc

            logger.info(
                "Initializing Docling DocumentConverter "
                "(first use, may take a few seconds)..."
            )
            pipeline_options = PdfPipelineOptions()
            pipeline_options.do_table_structure = True
            pipeline_options.do_ocr = True
            self._converter = DocumentConverter(
                format_options={
                    InputFormat.PDF: PdfFormatOption(
                        pipeline_options=pipeline_options,
                    ),
                }
            )
        return self._converter

    def parse(self, file_path: Path, filename: str) -> list[Page]:
        from docling_core.types.doc.labels import DocItemLabel

        converter = self._get_converter()
        try:
            result = converter.convert(str(file_path))
        except Exception as exc:
            raise ExtractionFailed(
                f"Docling failed to parse '{filename}': {exc}"
            ) from exc

        text_labels = {
            DocItemLabel.SECTION_HEADER, DocItemLabel.TITLE,
            DocItemLabel.TEXT, DocItemLabel.LIST_ITEM,
            DocItemLabel.CAPTION, DocItemLabel.FOOTNOTE,
        }
        blocks_by_page: dict[int, list[str]] = defaultdict(list)

        for item, _level in result.document.iterate_items():
            page_no = item.prov[0].page_no if getattr(item, "prov", None) else 0
            if page_no <= 0:
                continue
            label = getattr(item, "label", None)
            if label == DocItemLabel.TABLE:
                text = _table_to_markdown(item)
            elif label in text_labels:
                text = getattr(item, "text", "").strip()
            else:
                continue
            if text:
                blocks_by_page[page_no].append(text)

        page_count = len(result.document.pages) or max(blocks_by_page, default=0)
        return [
            Page(
                text="\n\n".join(blocks_by_page.get(number, [])),
                page_number=number,
                filename=filename,
                metadata={"total_pages": page_count},
            )
            for number in range(1, page_count + 1)
        ]


def _table_to_markdown(table_item: object) -> str:
    """Export a Docling TableItem as markdown, falling back to its text."""
    try:
        if hasattr(table_item, "export_to_dataframe"):
            return table_item.export_to_dataframe().to_markdown(index=False)
    except Exception as exc:
        logger.warning("Table export to DataFrame failed: %s", exc)

    text = getattr(table_item, "text", "")
    return text.strip() if text else ""


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

_parser: PypdfParser | DoclingParser | None = None


def get_pdf_parser() -> PypdfParser | DoclingParser:
    """Return the configured parser backend (lazy singleton)."""
    global _parser
    if _parser is None:
        if settings.pdf_parser == "docling":
            logger.info("Using Docling PDF parser")
            _parser = DoclingParser()
        else:
            logger.info("Using pypdf PDF parser")
            _parser = PypdfParser()
    return _parser
