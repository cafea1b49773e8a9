"""Date token normalization to ``YYYY-MM-DD``.

Statement dates arrive as month abbreviations without a year (``SEP02``),
numeric month-first dates, spreadsheet serial numbers, ISO strings or typed
cells. Anything that cannot be read falls back to today, and the caller is told
the date was guessed.
"""

import numbers
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional, Tuple

import pandas as pd

MONTHS = {
  "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4,
  "MAY": 5, "JUN": 6, "JUL": 7, "AUG": 8,
  "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}
MONTH_ABBR_RE = "|".join(MONTHS)

MONTH_DAY_RE = re.compile(rf"^({MONTH_ABBR_RE})\s?(\d{{1,2}})$", re.IGNORECASE)
NUMERIC_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SERIAL_RE = re.compile(r"^\d+(\.\d+)?$")
# Words pandas resolves against the clock rather than the statement.
RELATIVE_WORDS = ("today", "now", "yesterday", "tomorrow")

# Spreadsheet serial 25569 is 1970-01-01.
SERIAL_UNIX_EPOCH = 25569
# Digit-only strings are read as serials only inside this range (roughly 1954 to 2119).
SERIAL_MIN = 20000
SERIAL_MAX = 80000
UNIX_EPOCH = datetime(1970, 1, 1)


def today_iso() -> str:
  return date.today().isoformat()


def _safe_date(year: int, month: int, day: int) -> Optional[str]:
  try:
    return date(year, month, day).isoformat()
  except ValueError:
    return None


def serial_to_iso(serial: float) -> Optional[str]:
  """Convert a spreadsheet serial day number into an ISO date."""
  try:
    moment = UNIX_EPOCH + timedelta(seconds=(float(serial) - SERIAL_UNIX_EPOCH) * 86400)
  except (OverflowError, ValueError):
    return None
  return moment.date().isoformat()


def _from_month_day(match, year: int) -> Optional[str]:
  month = MONTHS[match.group(1).upper()]
  return _safe_date(year, month, int(match.group(2)))


def _from_numeric(match) -> Optional[str]:
  month, day, year_part = match.groups()
  year = int(f"20{year_part}") if len(year_part) == 2 else int(year_part)
  return _safe_date(year, int(month), int(day))


def _from_any_string(text: str) -> Optional[str]:
  parsed = pd.to_datetime(text, errors="coerce")
  if pd.isna(parsed):
    return None
  return parsed.date().isoformat()


def resolve_date(value: Any, year: Optional[int] = None) -> Tuple[str, bool]:
  """Return ``(iso_date, guessed)`` for a raw date token.

  ``year`` is used for tokens that carry no year (``SEP02``) and defaults to
  the current year. ``guessed`` is True when today's date was substituted.
  """
  if year is None:
    year = date.today().year

  resolved = None
  if value is None or isinstance(value, bool):
    resolved = None
  elif isinstance(value, datetime):
    resolved = None if pd.isna(value) else value.date().isoformat()
  elif isinstance(value, date):
    resolved = value.isoformat()
  elif isinstance(value, numbers.Real):
    resolved = None if pd.isna(value) else serial_to_iso(value)
  else:
    text = str(value).strip()
    if text:
      match = MONTH_DAY_RE.match(text)
      if match:
        resolved = _from_month_day(match, year)
      elif NUMERIC_DATE_RE.match(text):
        resolved = _from_numeric(NUMERIC_DATE_RE.match(text))
      elif SERIAL_RE.match(text):
        serial = float(text)
        if SERIAL_MIN <= serial <= SERIAL_MAX:
          resolved = serial_to_iso(serial)
      elif ISO_DATE_RE.match(text):
        resolved = _safe_date(*(int(part) for part in text.split("-")))
      elif text.lower() not in RELATIVE_WORDS:
        resolved = _from_any_string(text)

  if resolved is None:
    return today_iso(), True
  return resolved, False


def normalize_date(value: Any, year: Optional[int] = None) -> str:
  return resolve_date(value, year)[0]


def is_iso_date(value: Any) -> bool:
  return isinstance(value, str) and bool(ISO_DATE_RE.match(value)) and \
    _safe_date(*(int(part) for part in value.split("-"))) is not None
