"""End-to-end import: document -> drafts -> review ledger -> bulk commit."""

import logging
import os
import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from .categorizer import INCOME_SUGGESTION, TRANSFER_SUGGESTION, Categorizer
from .committer import BulkCommitter
from .config import ImportSettings
from .dates import resolve_date, today_iso
from .errors import DocumentUnreadable, NoTransactionsFound
from .extractors import Source, extract_pdf_text, extract_xlsx_rows, looks_like_pdf, looks_like_xlsx
from .ledger import ReviewLedger
from .line_parser import LineParser
from .models import (
  HIGH,
  INCOME,
  LOW,
  TRANSFER,
  Account,
  CanonicalTransaction,
  Categorization,
  Category,
  DraftTransaction,
  ParsedLine,
)
from .row_parser import RowParser

logger = logging.getLogger(__name__)

PDF = "pdf"
XLSX = "xlsx"


def detect_source_type(document: Source, filename: Optional[str] = None) -> str:
  name = filename
  if name is None and not isinstance(document, (bytes, bytearray)):
    name = os.fspath(document)
  ext = os.path.splitext(name or "")[1].lower()
  if ext == ".pdf":
    return PDF
  if ext == ".xlsx":
    return XLSX
  if ext:
    raise DocumentUnreadable("Please upload a PDF or Excel (.xlsx) bank statement")
  if looks_like_pdf(document):
    return PDF
  if looks_like_xlsx(document):
    return XLSX
  raise DocumentUnreadable("Please upload a PDF or Excel (.xlsx) bank statement")


class StatementImporter:
  """Turns one uploaded statement into categorized draft transactions."""

  def __init__(
    self,
    categories: Iterable[Category] = (),
    accounts: Iterable[Account] = (),
    settings: Optional[ImportSettings] = None,
    categorizer: Optional[Categorizer] = None,
    line_parser: Optional[LineParser] = None,
  ):
    self.settings = settings or ImportSettings()
    self.categories = list(categories)
    self.accounts = list(accounts)
    self.categorizer = categorizer or Categorizer(self.categories)
    self.line_parser = line_parser or LineParser(
      transfer_type=self.settings.pdf_transfer_type,
      min_line_length=self.settings.min_line_length,
    )
    self.row_parser = RowParser(
      self.categorizer,
      transfer_type=self.settings.xlsx_transfer_type,
      year=self.settings.statement_year,
    )

  @property
  def default_account_id(self) -> str:
    return self.accounts[0].id if self.accounts else ""

  def extract(self, document: Source, filename: Optional[str] = None) -> List[DraftTransaction]:
    source_type = detect_source_type(document, filename)
    logger.info(f"Extracting {source_type} statement {filename or ''}".rstrip())
    if source_type == PDF:
      text = extract_pdf_text(
        document,
        engine=self.settings.pdf_engine,
        min_text_chars=self.settings.min_text_chars,
      )
      parsed = self.line_parser.parse_text(text)
      if not parsed:
        raise NoTransactionsFound("No transactions found. Please ensure it's a valid bank statement.")
    else:
      rows = extract_xlsx_rows(document)
      parsed = self.row_parser.parse_rows(rows)
      if not parsed:
        raise NoTransactionsFound("No valid transactions found. Please check your Excel format.")

    drafts = [self.build_draft(p, source_type) for p in parsed]
    logger.info(f"Created {len(drafts)} draft transactions, "
                f"{sum(1 for d in drafts if d.needs_review)} need review")
    return drafts

  def categorize(self, parsed: ParsedLine) -> Categorization:
    if parsed.type == INCOME:
      return Categorization(None, HIGH, INCOME_SUGGESTION)
    if parsed.type == TRANSFER:
      return Categorization(None, LOW, TRANSFER_SUGGESTION)
    return self.categorizer.categorize(parsed.description)

  def build_draft(self, parsed: ParsedLine, source: str = PDF) -> DraftTransaction:
    if parsed.date_token is None:
      iso_date, guessed = today_iso(), True
    else:
      iso_date, guessed = resolve_date(parsed.date_token, self.settings.statement_year)
    result = self.categorize(parsed)
    return DraftTransaction(
      id=uuid.uuid4().hex,
      note=parsed.description,
      amount=parsed.amount,
      date=iso_date,
      type=parsed.type,
      account_id=self.default_account_id,
      category=result.category_id,
      suggested_category_name=result.suggestion,
      confidence=result.confidence,
      skip_category=result.skip_category,
      is_transfer=parsed.type == TRANSFER,
      suggest_new_category=result.suggest_new_category,
      date_is_guessed=guessed,
      source=source,
    )


class ImportSession:
  """One upload-review-commit cycle against a persistence backend."""

  def __init__(self, backend, settings: Optional[ImportSettings] = None, session_id: Optional[str] = None):
    self.id = session_id or str(uuid.uuid4())
    self.backend = backend
    self.settings = settings or ImportSettings()
    self.categories = list(backend.list_categories())
    self.accounts = list(backend.list_accounts())
    self.importer = StatementImporter(self.categories, self.accounts, self.settings)
    self.committer = BulkCommitter(backend)
    self.ledger = ReviewLedger()
    self.filename: Optional[str] = None
    self.created_at = datetime.now()
    self.closed = False

  def load(self, document: Source, filename: Optional[str] = None) -> ReviewLedger:
    drafts = self.importer.extract(document, filename)
    self.ledger = ReviewLedger(drafts)
    self.filename = filename
    return self.ledger

  def commit(self) -> List[CanonicalTransaction]:
    ready_ids = [draft.id for draft in self.ledger.eligible()]
    submitted = self.committer.commit(self.ledger)
    self.ledger.remove(ready_ids)
    logger.info(f"Session {self.id}: committed {len(submitted)}, {len(self.ledger)} left to review")
    return submitted

  def cancel(self):
    """Discard every draft without touching the backend."""
    discarded = len(self.ledger)
    self.ledger.clear()
    self.closed = True
    logger.info(f"Session {self.id}: cancelled, {discarded} drafts discarded")
