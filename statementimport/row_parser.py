"""Turns spreadsheet rows (Date/Description/Amount) into parsed transactions."""

import logging
from typing import Any, Dict, List, Mapping, Optional

from .categorizer import Categorizer
from .dates import resolve_date
from .models import TRANSFER, ParsedLine

logger = logging.getLogger(__name__)

BALANCE_MARKERS = ("beginning balance", "ending balance")


def parse_cell_amount(value: Any) -> Optional[float]:
  """Parse ``$1,234.56``-style cells; returns None when not a number."""
  if isinstance(value, bool):
    return None
  text = str(value).replace("$", "").replace(",", "").strip()
  try:
    amount = float(text)
  except ValueError:
    return None
  if amount != amount:  # NaN
    return None
  return amount


class RowParser:
  def __init__(self, categorizer: Categorizer, transfer_type: str = TRANSFER, year: Optional[int] = None):
    self.categorizer = categorizer
    self.transfer_type = transfer_type
    self.year = year

  def parse(self, row: Mapping[str, Any]) -> Optional[ParsedLine]:
    raw_date = row.get("Date")
    raw_amount = row.get("Amount")
    if not raw_date or not raw_amount:
      return None

    description = str(row.get("Description") or "").strip()
    desc_lower = description.lower()
    if any(marker in desc_lower for marker in BALANCE_MARKERS):
      return None

    amount = parse_cell_amount(raw_amount)
    if amount is None:
      logger.debug(f"Unreadable amount {raw_amount!r}, skipping row")
      return None

    iso_date, guessed = resolve_date(raw_date, self.year)
    if guessed:
      logger.debug(f"Unreadable date {raw_date!r}, skipping row")
      return None

    return ParsedLine(
      description=description,
      amount=abs(amount),
      date_token=iso_date,
      type=self.categorizer.classify_type(description, self.transfer_type),
      pattern="spreadsheet-row",
    )

  def parse_rows(self, rows: List[Dict[str, Any]]) -> List[ParsedLine]:
    parsed = [p for p in (self.parse(row) for row in rows) if p is not None]
    logger.info(f"Parsed {len(parsed)} of {len(rows)} spreadsheet rows")
    return parsed
