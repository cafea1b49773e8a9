"""Runtime settings for the import pipeline, read from the environment."""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import EXPENSE, TRANSFER

_ENV_PATH = os.path.join(os.path.dirname(__file__), "..", ".env")
load_dotenv(dotenv_path=_ENV_PATH, override=False)

ENV_PREFIX = "STATEMENT_IMPORT_"
PDF_ENGINES = ("pdfplumber", "pymupdf")
TRANSFER_TYPES = (EXPENSE, TRANSFER)


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
  v = os.getenv(ENV_PREFIX + name)
  return default if v is None or not v.strip() else v.strip()


class ImportSettings(BaseModel):
  model_config = ConfigDict(frozen=True)

  pdf_engine: str = "pdfplumber"
  min_text_chars: int = Field(default=100, ge=0)
  min_line_length: int = Field(default=10, ge=0)
  pdf_transfer_type: str = EXPENSE
  xlsx_transfer_type: str = TRANSFER
  statement_year: Optional[int] = None
  log_level: str = "INFO"

  @field_validator("pdf_engine")
  @classmethod
  def _check_engine(cls, v: str) -> str:
    v = v.lower()
    if v not in PDF_ENGINES:
      raise ValueError(f"Unsupported PDF engine: {v}")
    return v

  @field_validator("pdf_transfer_type", "xlsx_transfer_type")
  @classmethod
  def _check_transfer_type(cls, v: str) -> str:
    v = v.lower()
    if v not in TRANSFER_TYPES:
      raise ValueError(f"must be one of {', '.join(TRANSFER_TYPES)}")
    return v

  @field_validator("log_level")
  @classmethod
  def _upper_level(cls, v: str) -> str:
    return v.upper()

  @classmethod
  def from_env(cls) -> "ImportSettings":
    values = {
      "pdf_engine": _get_env("PDF_ENGINE"),
      "min_text_chars": _get_env("MIN_TEXT_CHARS"),
      "min_line_length": _get_env("MIN_LINE_LENGTH"),
      "pdf_transfer_type": _get_env("PDF_TRANSFER_TYPE"),
      "xlsx_transfer_type": _get_env("XLSX_TRANSFER_TYPE"),
      "statement_year": _get_env("STATEMENT_YEAR"),
      "log_level": _get_env("LOG_LEVEL"),
    }
    return cls(**{name: value for name, value in values.items() if value is not None})
