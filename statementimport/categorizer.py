"""Keyword-based merchant categorization with confidence tags.

The keyword tables are immutable and injected, so a categorizer built with
custom tables behaves exactly like the default one apart from its data.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import (
  Categorization,
  Category,
  EXPENSE,
  HIGH,
  INCOME,
  LOW,
  MEDIUM,
  TRANSFER,
  UNCATEGORIZED,
)

logger = logging.getLogger(__name__)

TRANSFER_SUGGESTION = "Transfer/Internal"
INCOME_SUGGESTION = "Income"


@dataclass(frozen=True)
class CategoryMapping:
  keywords: Tuple[str, ...]
  category_name: str
  confidence: str
  suggestion: str


# Order matters: the first mapping with a keyword hit wins.
DEFAULT_CATEGORY_MAPPINGS = (
  CategoryMapping(
    ("tim hortons", "starbucks", "coffee", "cafe", "restaurant", "pizza", "burger",
     "mcdonald", "subway", "food", "dining", "kfc", "wendys"),
    "food", HIGH, "Food",
  ),
  CategoryMapping(
    ("uber", "lyft", "taxi", "shell", "gas", "esso", "petro", "fuel", "parking",
     "transit", "bus"),
    "transport", HIGH, "Transport",
  ),
  CategoryMapping(
    ("walmart", "amazon", "dollarama", "store", "shop", "mall", "retail", "costco",
     "target"),
    "shopping", HIGH, "Shopping",
  ),
  CategoryMapping(
    ("netflix", "spotify", "prime", "entertainment", "movie", "cinema", "theatre",
     "disney"),
    "entertainment", HIGH, "Entertainment",
  ),
  CategoryMapping(
    ("insurance", "health", "medical", "doctor", "pharmacy", "prescription",
     "hospital"),
    "health", HIGH, "Healthcare",
  ),
  CategoryMapping(
    ("bell", "rogers", "telus", "hydro", "electric", "water", "utility", "internet",
     "phone", "cable"),
    "utilities", HIGH, "Utilities",
  ),
  CategoryMapping(
    ("tuition", "school", "education", "course", "university", "college", "books"),
    "education", HIGH, "Education",
  ),
  CategoryMapping(
    ("rent", "mortgage", "housing", "landlord", "property"),
    "housing", HIGH, "Housing",
  ),
  CategoryMapping(
    ("gym", "fitness", "yoga", "sports", "recreation"),
    "fitness", MEDIUM, "Fitness",
  ),
  CategoryMapping(
    ("salon", "haircut", "spa", "beauty", "nail"),
    "personal care", MEDIUM, "Personal Care",
  ),
)

DEFAULT_TRANSFER_KEYWORDS = ("e-transfer", "e-tfr", "transfer", "deposit", "pts to")
# Internal movement codes such as "HX1234" at the start of a description.
DEFAULT_TRANSFER_CODE_RE = re.compile(r"^(hx|hr)\d+", re.IGNORECASE)

# Spreadsheet exports carry no direction column worth trusting, so the
# description decides between income, transfer and expense.
DEFAULT_INCOME_KEYWORDS = ("deposit", "e-transfer", "claimsecure", "mobile deposit")
DEFAULT_TRANSFER_TYPE_KEYWORDS = ("tfr",)
DEFAULT_TRANSFER_TYPE_RE = re.compile(r"\b(hx|hr)\d+\b", re.IGNORECASE)


def top_level_categories(categories: Iterable[Category]) -> List[Category]:
  return [c for c in categories if not c.parent_id]


def subcategories_of(categories: Iterable[Category], parent_id: str) -> List[Category]:
  return [c for c in categories if c.parent_id and c.parent_id == parent_id]


def category_options(categories: Iterable[Category]) -> List[Dict[str, Any]]:
  """Flatten categories for a picker: each parent followed by its children."""
  categories = list(categories)
  options = []
  for parent in top_level_categories(categories):
    options.append({**parent.to_dict(), "isParent": True, "isSubcategory": False})
    for sub in subcategories_of(categories, parent.id):
      options.append({
        **sub.to_dict(),
        "isParent": False,
        "isSubcategory": True,
        "parentName": parent.name,
      })
  return options


class Categorizer:
  """Suggests a category and a direction for a statement description."""

  def __init__(
    self,
    categories: Iterable[Category] = (),
    mappings: Iterable[CategoryMapping] = DEFAULT_CATEGORY_MAPPINGS,
    transfer_keywords: Iterable[str] = DEFAULT_TRANSFER_KEYWORDS,
    transfer_code_pattern: re.Pattern = DEFAULT_TRANSFER_CODE_RE,
    income_keywords: Iterable[str] = DEFAULT_INCOME_KEYWORDS,
    transfer_type_keywords: Iterable[str] = DEFAULT_TRANSFER_TYPE_KEYWORDS,
    transfer_type_pattern: re.Pattern = DEFAULT_TRANSFER_TYPE_RE,
  ):
    self.categories = tuple(categories)
    self.mappings = tuple(mappings)
    self.transfer_keywords = tuple(k.lower() for k in transfer_keywords)
    self.transfer_code_pattern = transfer_code_pattern
    self.income_keywords = tuple(k.lower() for k in income_keywords)
    self.transfer_type_keywords = tuple(k.lower() for k in transfer_type_keywords)
    self.transfer_type_pattern = transfer_type_pattern
    self._parents = top_level_categories(self.categories)

  def is_transfer(self, description: str) -> bool:
    desc_lower = (description or "").lower()
    if any(keyword in desc_lower for keyword in self.transfer_keywords):
      return True
    return bool(self.transfer_code_pattern.search(desc_lower))

  def find_category(self, category_name: str) -> Optional[Category]:
    """First top-level category whose name contains ``category_name``."""
    target = category_name.lower()
    for category in self._parents:
      if target in category.name.lower():
        return category
    return None

  def match_mapping(self, description: str) -> Optional[CategoryMapping]:
    desc_lower = (description or "").lower()
    for mapping in self.mappings:
      for keyword in mapping.keywords:
        if keyword in desc_lower:
          return mapping
    return None

  def categorize(self, description: str) -> Categorization:
    if self.is_transfer(description):
      return Categorization(None, LOW, TRANSFER_SUGGESTION, skip_category=True)

    mapping = self.match_mapping(description)
    if mapping is None:
      return Categorization(None, LOW, UNCATEGORIZED)

    category = self.find_category(mapping.category_name)
    if category is None:
      logger.debug(f"'{description}' looks like {mapping.suggestion} but no such category exists")
      return Categorization(None, mapping.confidence, mapping.suggestion, suggest_new_category=True)
    return Categorization(category, mapping.confidence, mapping.suggestion)

  def classify_type(self, description: str, transfer_type: str = TRANSFER) -> str:
    """Infer the direction of a spreadsheet row from its description."""
    desc_lower = (description or "").lower()
    if any(keyword in desc_lower for keyword in self.income_keywords):
      return INCOME
    if self.transfer_type_pattern.search(desc_lower) or \
        any(keyword in desc_lower for keyword in self.transfer_type_keywords):
      return transfer_type
    return EXPENSE
