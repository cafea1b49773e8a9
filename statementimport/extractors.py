"""Pulls raw text (PDF) or named-column rows (XLSX) out of uploaded statements.

Extraction is all-or-nothing: any failure to open or read the document raises
``DocumentUnreadable`` and no partial output is returned.
"""

import io
import logging
import os
import re
from typing import Any, Dict, List, Union

import fitz  # PyMuPDF
import pandas as pd
import pdfplumber

from .errors import DocumentUnreadable

logger = logging.getLogger(__name__)

Source = Union[str, os.PathLike, bytes]

PDF_MAGIC = b"%PDF"
ZIP_MAGIC = b"PK"
REQUIRED_COLUMNS = ("Date", "Description", "Amount")
OPTIONAL_COLUMNS = ("Type",)


def read_head(source: Source, size: int = 8) -> bytes:
  if isinstance(source, (bytes, bytearray)):
    return bytes(source[:size])
  try:
    with open(source, "rb") as f:
      return f.read(size)
  except OSError as e:
    raise DocumentUnreadable(f"Could not open {source}: {e}") from e


def looks_like_pdf(source: Source) -> bool:
  return read_head(source).startswith(PDF_MAGIC)


def looks_like_xlsx(source: Source) -> bool:
  return read_head(source).startswith(ZIP_MAGIC)


def _as_file(source: Source):
  if isinstance(source, (bytes, bytearray)):
    return io.BytesIO(source)
  return source


def _pages_with_pdfplumber(source: Source) -> List[str]:
  pages = []
  with pdfplumber.open(_as_file(source)) as pdf:
    for page_num, page in enumerate(pdf.pages):
      text = page.extract_text() or ""
      logger.debug(f"Page {page_num + 1} extracted, characters: {len(text)}")
      pages.append(text)
  return pages


def _pages_with_pymupdf(source: Source) -> List[str]:
  if isinstance(source, (bytes, bytearray)):
    doc = fitz.open(stream=bytes(source), filetype="pdf")
  else:
    doc = fitz.open(os.fspath(source))
  with doc:
    if doc.needs_pass:
      raise DocumentUnreadable("The PDF is password protected")
    return [page.get_text() for page in doc]


PDF_ENGINES = {
  "pdfplumber": _pages_with_pdfplumber,
  "pymupdf": _pages_with_pymupdf,
}


def extract_pdf_text(source: Source, engine: str = "pdfplumber", min_text_chars: int = 100) -> str:
  """Return the text of every page, one page after another."""
  if not looks_like_pdf(source):
    raise DocumentUnreadable("The file is not a valid PDF")
  try:
    reader = PDF_ENGINES[engine]
  except KeyError:
    raise ValueError(f"Unsupported PDF engine: {engine}")

  try:
    pages = reader(source)
  except DocumentUnreadable:
    raise
  except Exception as e:
    logger.error(f"PDF extraction with {engine} failed: {e}")
    raise DocumentUnreadable(
      "Error parsing PDF. Please try another file or check if it's password protected."
    ) from e

  text = "\n".join(pages)
  logger.info(f"Extracted {len(text)} characters from {len(pages)} pages with {engine}")
  if len(text.strip()) < min_text_chars:
    raise DocumentUnreadable(
      "The PDF appears to be empty or text couldn't be extracted. Try a different file."
    )
  return text


def _normalize_header(name: Any) -> str:
  return re.sub(r"\s+", " ", str(name)).strip().lower()


def _clean_cell(value: Any) -> Any:
  if value is None:
    return None
  if not isinstance(value, str) and pd.isna(value):
    return None
  return value


def extract_xlsx_rows(source: Source) -> List[Dict[str, Any]]:
  """Read the first sheet into dicts keyed by Date/Description/Amount/Type."""
  if not looks_like_xlsx(source):
    raise DocumentUnreadable("Please upload a valid Excel (.xlsx) file.")
  try:
    df = pd.read_excel(_as_file(source), sheet_name=0, engine="openpyxl")
  except Exception as e:
    logger.error(f"Spreadsheet extraction failed: {e}")
    raise DocumentUnreadable("Error parsing Excel file.") from e

  columns = {_normalize_header(c): c for c in df.columns}
  missing = [name for name in REQUIRED_COLUMNS if name.lower() not in columns]
  if missing:
    raise DocumentUnreadable(
      "Error parsing Excel file. Please ensure it has Date, Type, Description, and Amount columns."
    )
  if df.empty:
    raise DocumentUnreadable("No transactions found in the Excel file.")

  wanted = [name for name in REQUIRED_COLUMNS + OPTIONAL_COLUMNS if name.lower() in columns]
  rows = []
  for record in df.to_dict("records"):
    rows.append({name: _clean_cell(record[columns[name.lower()]]) for name in wanted})
  logger.info(f"Read {len(rows)} rows from the first sheet")
  return rows
