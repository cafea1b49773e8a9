"""Data containers shared by the import pipeline.

Drafts are held in snake_case attributes; ``to_dict`` emits the camelCase keys
the review screen binds to, and ``normalize_patch`` accepts either spelling.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

INCOME = "income"
EXPENSE = "expense"
TRANSFER = "transfer"
TRANSACTION_TYPES = (INCOME, EXPENSE, TRANSFER)

HIGH = "high"
MEDIUM = "medium"
LOW = "low"
CONFIDENCE_LEVELS = (HIGH, MEDIUM, LOW)

UNCATEGORIZED = "Uncategorized"


def _pick(data: Dict[str, Any], *keys, default=None):
  for key in keys:
    if key in data and data[key] is not None:
      return data[key]
  return default


@dataclass(frozen=True)
class Category:
  id: str
  name: str
  icon: str = ""
  color: str = ""
  type: str = "need"
  budget: float = 0.0
  parent_id: Optional[str] = None

  @property
  def is_subcategory(self) -> bool:
    return bool(self.parent_id)

  @classmethod
  def from_dict(cls, data: Dict[str, Any]) -> "Category":
    return cls(
      id=str(data["id"]),
      name=str(data.get("name", "")),
      icon=str(data.get("icon") or ""),
      color=str(data.get("color") or ""),
      type=str(data.get("type") or "need"),
      budget=float(data.get("budget") or 0),
      parent_id=_pick(data, "parentId", "parent_id"),
    )

  def to_dict(self) -> Dict[str, Any]:
    return {
      "id": self.id,
      "name": self.name,
      "icon": self.icon,
      "color": self.color,
      "type": self.type,
      "budget": self.budget,
      "parentId": self.parent_id,
    }


@dataclass(frozen=True)
class Account:
  id: str
  name: str
  balance: float = 0.0
  color: str = ""
  type: str = ""

  @classmethod
  def from_dict(cls, data: Dict[str, Any]) -> "Account":
    return cls(
      id=str(data["id"]),
      name=str(data.get("name", "")),
      balance=float(_pick(data, "balance", "initialBalance", default=0)),
      color=str(data.get("color") or ""),
      type=str(data.get("type") or ""),
    )

  def to_dict(self) -> Dict[str, Any]:
    return asdict(self)


@dataclass
class ParsedLine:
  """One statement line or row that looked like a transaction."""

  description: str
  amount: float
  date_token: Any
  type: str
  pattern: str = ""


@dataclass(frozen=True)
class Categorization:
  category: Optional[Category]
  confidence: str
  suggestion: str
  skip_category: bool = False
  suggest_new_category: bool = False

  @property
  def category_id(self) -> str:
    return self.category.id if self.category else ""


# attribute name -> key used by the review screen
JSON_KEYS = {
  "id": "id",
  "note": "note",
  "amount": "amount",
  "date": "date",
  "type": "type",
  "account_id": "accountId",
  "category": "category",
  "sub_category": "subCategory",
  "suggested_category_name": "suggestedCategoryName",
  "confidence": "confidence",
  "skip_category": "skipCategory",
  "is_transfer": "isTransfer",
  "suggest_new_category": "suggestNewCategory",
  "needs_review": "needsReview",
  "date_is_guessed": "dateIsGuessed",
  "source": "source",
}
_ATTRIBUTES = {v: k for k, v in JSON_KEYS.items()}
READ_ONLY_FIELDS = {"id", "needs_review"}


def compute_needs_review(type_: str, category: str, skip_category: bool, is_transfer: bool) -> bool:
  return type_ == EXPENSE and not skip_category and not is_transfer and not category


@dataclass
class DraftTransaction:
  """A parsed transaction waiting for review before it is committed."""

  id: str
  note: str
  amount: float
  date: str
  type: str = EXPENSE
  account_id: str = ""
  category: str = ""
  sub_category: str = ""
  suggested_category_name: str = UNCATEGORIZED
  confidence: str = LOW
  skip_category: bool = False
  is_transfer: bool = False
  suggest_new_category: bool = False
  needs_review: bool = field(default=False)
  date_is_guessed: bool = False
  source: str = ""

  def __post_init__(self):
    self.amount = abs(float(self.amount))
    self.category = self.category or ""
    self.sub_category = self.sub_category or ""
    self.refresh_review_flag()

  def refresh_review_flag(self) -> bool:
    self.needs_review = compute_needs_review(
      self.type, self.category, self.skip_category, self.is_transfer
    )
    return self.needs_review

  @property
  def is_income(self) -> bool:
    return self.type == INCOME

  @property
  def signed_amount(self) -> float:
    return self.amount if self.is_income else -self.amount

  def to_dict(self) -> Dict[str, Any]:
    return {JSON_KEYS[name]: value for name, value in asdict(self).items()}


def normalize_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
  """Map a patch keyed by attribute names or JSON keys to attribute names."""
  normalized = {}
  for key, value in patch.items():
    name = key if key in JSON_KEYS else _ATTRIBUTES.get(key)
    if name is None:
      raise ValueError(f"Unknown transaction field: {key}")
    if name in READ_ONLY_FIELDS:
      raise ValueError(f"Field '{key}' cannot be edited")
    normalized[name] = value
  return normalized


@dataclass(frozen=True)
class CanonicalTransaction:
  """The minimal shape handed to the persistence backend."""

  type: str
  amount: float
  date: str
  note: str
  account_id: str
  category: str

  def to_dict(self) -> Dict[str, Any]:
    return {
      "type": self.type,
      "amount": self.amount,
      "date": self.date,
      "note": self.note,
      "accountId": self.account_id,
      "category": self.category,
    }


@dataclass(frozen=True)
class LedgerSummary:
  total: int
  ready_count: int
  needs_review_count: int
  net_amount: float
  guessed_date_count: int = 0

  def to_dict(self) -> Dict[str, Any]:
    return {
      "total": self.total,
      "readyCount": self.ready_count,
      "needsReviewCount": self.needs_review_count,
      "netAmount": self.net_amount,
      "guessedDateCount": self.guessed_date_count,
    }
