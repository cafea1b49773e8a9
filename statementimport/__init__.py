"""
Statement Import Package

Heuristic extraction, categorization and review of bank statement transactions
from PDF and XLSX exports.
"""

from .backend import InMemoryBackend
from .categorizer import Categorizer, CategoryMapping
from .committer import BulkCommitter
from .config import ImportSettings
from .dates import normalize_date, resolve_date
from .errors import (
  CommitFailure,
  DocumentUnreadable,
  NoTransactionsFound,
  ReviewIncomplete,
  StatementImportError,
)
from .ledger import ReviewLedger
from .line_parser import LineParser, LinePattern
from .models import Account, CanonicalTransaction, Category, DraftTransaction
from .pipeline import ImportSession, StatementImporter
from .row_parser import RowParser

__version__ = "1.0.0"

__all__ = [
  "Account",
  "BulkCommitter",
  "CanonicalTransaction",
  "Categorizer",
  "Category",
  "CategoryMapping",
  "CommitFailure",
  "DocumentUnreadable",
  "DraftTransaction",
  "ImportSession",
  "ImportSettings",
  "InMemoryBackend",
  "LineParser",
  "LinePattern",
  "NoTransactionsFound",
  "ReviewIncomplete",
  "ReviewLedger",
  "RowParser",
  "StatementImportError",
  "StatementImporter",
  "normalize_date",
  "resolve_date",
]
