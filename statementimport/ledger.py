"""In-memory review ledger for drafts awaiting user confirmation."""

import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, Iterator, List, Optional

import pandas as pd

from .dates import is_iso_date
from .models import (
  INCOME,
  TRANSACTION_TYPES,
  TRANSFER,
  UNCATEGORIZED,
  JSON_KEYS,
  DraftTransaction,
  LedgerSummary,
  normalize_patch,
)

logger = logging.getLogger(__name__)

# Fields that decide whether a draft needs review.
REVIEW_INPUTS = {"type", "category", "skip_category", "is_transfer"}


def is_eligible(draft: DraftTransaction) -> bool:
  """Ready to import: income, a transfer or skipped row, or a reviewed category."""
  if draft.type == INCOME or draft.skip_category or draft.is_transfer:
    return True
  return bool(draft.category) and not draft.needs_review


def _coerce_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
  """Validate and coerce user-supplied values before they touch a draft."""
  patch = dict(patch)
  if "amount" in patch:
    try:
      patch["amount"] = abs(float(patch["amount"]))
    except (TypeError, ValueError):
      raise ValueError(f"Invalid amount: {patch['amount']!r}")
  if "type" in patch and patch["type"] not in TRANSACTION_TYPES:
    raise ValueError(f"Invalid transaction type: {patch['type']!r}")
  if "date" in patch and not is_iso_date(patch["date"]):
    raise ValueError(f"Invalid date, expected YYYY-MM-DD: {patch['date']!r}")
  for name in ("category", "sub_category", "account_id", "note"):
    if name in patch:
      patch[name] = "" if patch[name] is None else str(patch[name])
  if "note" in patch:
    patch["note"] = patch["note"].strip()
  for name in ("skip_category", "is_transfer", "suggest_new_category", "date_is_guessed"):
    if name in patch:
      patch[name] = bool(patch[name])
  return patch


class ReviewLedger:
  """Ordered drafts keyed by id, with single-row edit staging."""

  def __init__(self, drafts: Iterable[DraftTransaction] = ()):
    self._entries: "OrderedDict[str, DraftTransaction]" = OrderedDict()
    self._editing_id: Optional[str] = None
    self._scratch: Dict[str, Any] = {}
    for draft in drafts:
      self.add(draft)

  def __len__(self) -> int:
    return len(self._entries)

  def __iter__(self) -> Iterator[DraftTransaction]:
    return iter(list(self._entries.values()))

  def __contains__(self, draft_id: str) -> bool:
    return draft_id in self._entries

  def add(self, draft: DraftTransaction):
    if draft.id in self._entries:
      raise ValueError(f"Duplicate transaction id: {draft.id}")
    self._entries[draft.id] = draft

  def get(self, draft_id: str) -> DraftTransaction:
    try:
      return self._entries[draft_id]
    except KeyError:
      raise KeyError(f"Transaction not found: {draft_id}")

  def update_field(self, draft_id: str, patch: Dict[str, Any]) -> DraftTransaction:
    """Merge ``patch`` into one draft and keep ``needs_review`` in step."""
    draft = self.get(draft_id)
    changes = _coerce_patch(normalize_patch(patch))

    if "category" in changes:
      if changes["category"]:
        changes.setdefault("suggest_new_category", False)
      if changes["category"] != draft.category:
        changes.setdefault("sub_category", "")
    if "type" in changes:
      changes.setdefault("is_transfer", changes["type"] == TRANSFER)
    if "date" in changes:
      changes.setdefault("date_is_guessed", False)

    for name, value in changes.items():
      setattr(draft, name, value)
    if REVIEW_INPUTS.intersection(changes):
      draft.refresh_review_flag()
    return draft

  def delete(self, draft_id: str):
    self.get(draft_id)
    del self._entries[draft_id]
    if self._editing_id == draft_id:
      self.cancel_edit()

  def eligible(self) -> List[DraftTransaction]:
    return [draft for draft in self._entries.values() if is_eligible(draft)]

  def remove(self, draft_ids: Iterable[str]):
    for draft_id in list(draft_ids):
      if draft_id in self._entries:
        self.delete(draft_id)

  def clear(self):
    self._entries.clear()
    self.cancel_edit()

  # Edit staging ---------------------------------------------------------

  @property
  def editing_id(self) -> Optional[str]:
    return self._editing_id

  @property
  def scratch(self) -> Dict[str, Any]:
    return dict(self._scratch)

  def is_editing(self, draft_id: str) -> bool:
    return self._editing_id == draft_id

  def start_edit(self, draft_id: str) -> Dict[str, Any]:
    draft = self.get(draft_id)
    if self._editing_id and self._editing_id != draft_id:
      logger.debug(f"Discarding staged edit of {self._editing_id}")
    self._editing_id = draft_id
    self._scratch = draft.to_dict()
    return self.scratch

  def stage_edit(self, patch: Dict[str, Any]) -> Dict[str, Any]:
    if self._editing_id is None:
      raise ValueError("No transaction is being edited")
    changes = normalize_patch(patch)
    self._scratch.update({JSON_KEYS[name]: value for name, value in changes.items()})
    return self.scratch

  def commit_edit(self, draft_id: str) -> DraftTransaction:
    if self._editing_id != draft_id:
      raise ValueError(f"Transaction {draft_id} is not being edited")
    draft = self.get(draft_id)
    current = draft.to_dict()
    changed = {
      key: value for key, value in self._scratch.items()
      if key not in ("id", "needsReview") and current.get(key) != value
    }
    # Re-applying identical values must not reset derived fields.
    if changed:
      self.update_field(draft_id, changed)
    self.cancel_edit()
    return draft

  def cancel_edit(self):
    self._editing_id = None
    self._scratch = {}

  # Views ----------------------------------------------------------------

  def summary(self) -> LedgerSummary:
    drafts = list(self._entries.values())
    needs_review = sum(1 for d in drafts if d.needs_review)
    return LedgerSummary(
      total=len(drafts),
      ready_count=len(drafts) - needs_review,
      needs_review_count=needs_review,
      net_amount=round(sum(d.signed_amount for d in drafts), 2),
      guessed_date_count=sum(1 for d in drafts if d.date_is_guessed),
    )

  def new_category_suggestions(self) -> List[str]:
    suggestions = []
    for draft in self._entries.values():
      name = draft.suggested_category_name
      if draft.suggest_new_category and name != UNCATEGORIZED and name not in suggestions:
        suggestions.append(name)
    return suggestions

  def to_dicts(self) -> List[Dict[str, Any]]:
    return [draft.to_dict() for draft in self._entries.values()]

  def to_frame(self) -> pd.DataFrame:
    return pd.DataFrame(self.to_dicts())
