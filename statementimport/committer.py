"""Selects reviewed drafts and hands them to the persistence backend in one batch."""

import logging
from typing import List

from .errors import CommitFailure, ReviewIncomplete
from .ledger import ReviewLedger
from .models import EXPENSE, CanonicalTransaction, DraftTransaction

logger = logging.getLogger(__name__)


def to_canonical(draft: DraftTransaction) -> CanonicalTransaction:
  needs_category = draft.type == EXPENSE and not draft.skip_category
  return CanonicalTransaction(
    type=draft.type,
    amount=draft.amount,
    date=draft.date,
    note=draft.note,
    account_id=draft.account_id,
    category=(draft.sub_category or draft.category) if needs_category else "",
  )


class BulkCommitter:
  """Submits every eligible draft through ``sink.bulk_insert_transactions``.

  The sink is called once with the whole batch. Rows that are not eligible are
  left out silently; the ledger itself is never modified here.
  """

  def __init__(self, sink):
    self.sink = sink

  def eligible(self, ledger: ReviewLedger) -> List[DraftTransaction]:
    return ledger.eligible()

  def commit(self, ledger: ReviewLedger) -> List[CanonicalTransaction]:
    ready = self.eligible(ledger)
    if not ready:
      raise ReviewIncomplete("Please review and assign categories to all transactions")

    batch = [to_canonical(draft) for draft in ready]
    logger.info(f"Committing {len(batch)} of {len(ledger)} transactions")
    try:
      accepted = self.sink.bulk_insert_transactions(batch)
    except Exception as e:
      logger.error(f"Bulk insert failed: {e}")
      raise CommitFailure(f"Import failed: {e}") from e
    if accepted is False:
      raise CommitFailure("Import failed: the backend rejected the transactions")
    return batch
