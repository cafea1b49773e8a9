"""Persistence backend interface and an in-memory implementation."""

import json
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Protocol

from .dates import is_iso_date
from .models import TRANSACTION_TYPES, Account, CanonicalTransaction, Category

logger = logging.getLogger(__name__)


class FinanceBackend(Protocol):
  def list_categories(self) -> List[Category]: ...

  def list_accounts(self) -> List[Account]: ...

  def bulk_insert_transactions(self, transactions: List[CanonicalTransaction]) -> bool: ...


class InMemoryBackend:
  """Holds reference data and stored transactions for a single process.

  A batch is validated in full before anything is stored, so a rejected batch
  leaves no partial inserts behind.
  """

  def __init__(self, categories: Iterable[Category] = (), accounts: Iterable[Account] = ()):
    self._categories = list(categories)
    self._accounts = list(accounts)
    self.transactions: List[Dict[str, Any]] = []
    self._lock = threading.Lock()

  @classmethod
  def from_dict(cls, data: Dict[str, Any]) -> "InMemoryBackend":
    return cls(
      categories=[Category.from_dict(c) for c in data.get("categories", [])],
      accounts=[Account.from_dict(a) for a in data.get("accounts", [])],
    )

  @classmethod
  def from_json(cls, path: str) -> "InMemoryBackend":
    with open(path, encoding="utf-8") as f:
      return cls.from_dict(json.load(f))

  def list_categories(self) -> List[Category]:
    return list(self._categories)

  def list_accounts(self) -> List[Account]:
    return list(self._accounts)

  def _validate(self, txn: CanonicalTransaction) -> Optional[str]:
    if txn.type not in TRANSACTION_TYPES:
      return f"unknown type {txn.type!r}"
    if txn.amount < 0:
      return "negative amount"
    if not is_iso_date(txn.date):
      return f"invalid date {txn.date!r}"
    account_ids = {a.id for a in self._accounts}
    if account_ids and txn.account_id not in account_ids:
      return f"unknown account {txn.account_id!r}"
    return None

  def bulk_insert_transactions(self, transactions: List[CanonicalTransaction]) -> bool:
    for txn in transactions:
      problem = self._validate(txn)
      if problem:
        logger.warning(f"Rejecting batch of {len(transactions)}: {problem}")
        return False
    with self._lock:
      self.transactions.extend(txn.to_dict() for txn in transactions)
    logger.info(f"Stored {len(transactions)} transactions")
    return True
