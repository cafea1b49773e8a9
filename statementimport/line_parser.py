"""Heuristic parsing of text lines pulled out of PDF bank statements.

Each line is tried against an ordered table of layouts; the first layout that
matches wins and later layouts are deliberately looser. New bank layouts are
added by extending the table, not the control flow.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from .dates import MONTH_ABBR_RE
from .models import EXPENSE, INCOME, ParsedLine

logger = logging.getLogger(__name__)

AMOUNT = r"\d[\d,]*\.\d{2}"
MONTH_DAY = rf"(?:{MONTH_ABBR_RE})\s?\d{{1,2}}"
NUMERIC_DATE = r"\d{1,2}[/-]\d{1,2}[/-]\d{2,4}"

INCOME_MARKERS = ("MOBILE DEPOSIT", "E-TRANSFER", "E-TFR", "DEPOSIT", "INTEREST", "CREDIT")
TRANSFER_MARKERS = ("TRANSFER", "TFR", "WIRE", "SEND")


def _marker_re(markers: Iterable[str]) -> str:
  return "|".join(re.escape(m) for m in markers)


INCOME_MARKER_RE = re.compile(rf"^(?:{_marker_re(INCOME_MARKERS)})\b", re.IGNORECASE)
TRANSFER_MARKER_RE = re.compile(rf"^(?:{_marker_re(TRANSFER_MARKERS)})\b", re.IGNORECASE)

NOISE_KEYWORDS = (
  "balance forward",
  "ending balance",
  "starting balance",
  "statement period",
  "account number",
  "statement date",
  "continued on",
)
PAGE_NUMBER_RE = re.compile(r"^page\s*\d+$", re.IGNORECASE)
DIGITS_ONLY_RE = re.compile(r"^\d+$")
WHITESPACE_RE = re.compile(r"\s+")


def parse_amount(text: str) -> float:
  return float(text.replace(",", ""))


def _squash(text: str) -> str:
  return WHITESPACE_RE.sub("", text)


@dataclass(frozen=True)
class LinePattern:
  """A named layout: regex plus a builder returning (description, amount, date token)."""

  name: str
  regex: re.Pattern
  build: Callable[[re.Match], Tuple[str, str, Optional[str]]]


def _marker_line(match: re.Match) -> Tuple[str, str, Optional[str]]:
  description = match.group(1).strip()
  if match.group(2):
    description = f"{description} {match.group(2).strip()}"
  return description, match.group(3), match.group(4)


DEFAULT_LINE_PATTERNS = (
  # "TIM HORTONS 5.99 SEP02"
  LinePattern(
    "description-amount-date",
    re.compile(rf"^(.+?)\s+({AMOUNT})\s+({MONTH_DAY})$", re.IGNORECASE),
    lambda m: (m.group(1), m.group(2), _squash(m.group(3))),
  ),
  # "SEP 02 TIM HORTONS 5.99"
  LinePattern(
    "date-description-amount",
    re.compile(rf"^({MONTH_DAY})\s+(.+?)\s+({AMOUNT})$", re.IGNORECASE),
    lambda m: (m.group(2), m.group(3), _squash(m.group(1))),
  ),
  # "09/02/2025 TIM HORTONS 5.99"
  LinePattern(
    "numeric-date-description-amount",
    re.compile(rf"^({NUMERIC_DATE})\s+(.+?)\s+({AMOUNT})$"),
    lambda m: (m.group(2), m.group(3), m.group(1)),
  ),
  LinePattern(
    "income-marker",
    re.compile(
      rf"^({_marker_re(INCOME_MARKERS)})\b\s*(.+?)?\s+({AMOUNT})(?:\s+({MONTH_DAY}))?",
      re.IGNORECASE,
    ),
    _marker_line,
  ),
  LinePattern(
    "transfer-marker",
    re.compile(
      rf"^({_marker_re(TRANSFER_MARKERS)})\b\s*(.+?)?\s+({AMOUNT})(?:\s+({MONTH_DAY}))?",
      re.IGNORECASE,
    ),
    _marker_line,
  ),
  # "5.99 SEP02 TIM HORTONS"
  LinePattern(
    "amount-date-description",
    re.compile(rf"^({AMOUNT})\s+({MONTH_DAY})\s+(.+)$", re.IGNORECASE),
    lambda m: (m.group(3), m.group(1), _squash(m.group(2))),
  ),
  # Anything with text before an amount; the date is unknown.
  LinePattern(
    "text-amount",
    re.compile(rf"(.+?)\s+({AMOUNT})"),
    lambda m: (m.group(1), m.group(2), None),
  ),
)

FALLBACK_MIN_DESCRIPTION = 3


def prepare_lines(text: str) -> List[str]:
  """Split extracted text into trimmed, whitespace-collapsed lines."""
  lines = []
  for raw in (text or "").splitlines():
    line = WHITESPACE_RE.sub(" ", raw).strip()
    if line:
      lines.append(line)
  return lines


def is_noise_line(line: str, min_length: int = 10) -> bool:
  """True for headers, footers, balances and fragments that are never transactions."""
  lower = line.lower()
  if len(line) < min_length:
    return True
  if any(keyword in lower for keyword in NOISE_KEYWORDS):
    return True
  if "description" in lower and ("withdrawal" in lower or "deposit" in lower):
    return True
  return bool(PAGE_NUMBER_RE.match(line) or DIGITS_ONLY_RE.match(line))


class LineParser:
  def __init__(
    self,
    patterns: Iterable[LinePattern] = DEFAULT_LINE_PATTERNS,
    transfer_type: str = EXPENSE,
    min_line_length: int = 10,
  ):
    self.patterns = tuple(patterns)
    self.transfer_type = transfer_type
    self.min_line_length = min_line_length

  def infer_type(self, description: str) -> str:
    if INCOME_MARKER_RE.match(description):
      return INCOME
    if TRANSFER_MARKER_RE.match(description):
      return self.transfer_type
    return EXPENSE

  def parse(self, line: str) -> Optional[ParsedLine]:
    """Parse one cleaned line, or return None when no layout fits."""
    line = WHITESPACE_RE.sub(" ", line or "").strip()
    for pattern in self.patterns:
      match = pattern.regex.search(line)
      if not match:
        continue
      description, amount, date_token = pattern.build(match)
      description = description.strip()
      if pattern.name == "text-amount" and len(description) <= FALLBACK_MIN_DESCRIPTION:
        continue
      logger.debug(f"Line matched {pattern.name}: {line}")
      return ParsedLine(
        description=description,
        amount=parse_amount(amount),
        date_token=date_token,
        type=self.infer_type(description),
        pattern=pattern.name,
      )
    return None

  def parse_text(self, text: str) -> List[ParsedLine]:
    lines = prepare_lines(text)
    logger.info(f"Processing {len(lines)} lines of statement text")
    parsed = []
    for line in lines:
      if is_noise_line(line, self.min_line_length):
        continue
      result = self.parse(line)
      if result is None:
        logger.debug(f"No layout matched, skipping: {line}")
        continue
      parsed.append(result)
    logger.info(f"Parsed {len(parsed)} transaction lines")
    return parsed
