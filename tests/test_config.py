import os
import unittest
from unittest import mock

from pydantic import ValidationError

from statementimport.config import ImportSettings


class ImportSettingsTest(unittest.TestCase):
  def test_defaults(self):
    with mock.patch.dict(os.environ, {}, clear=True):
      settings = ImportSettings.from_env()
    self.assertEqual(settings, ImportSettings())
    self.assertEqual(settings.pdf_transfer_type, 'expense')
    self.assertEqual(settings.xlsx_transfer_type, 'transfer')
    self.assertIsNone(settings.statement_year)

  def test_environment_overrides(self):
    env = {
      'STATEMENT_IMPORT_PDF_ENGINE': 'PyMuPDF',
      'STATEMENT_IMPORT_MIN_TEXT_CHARS': '50',
      'STATEMENT_IMPORT_PDF_TRANSFER_TYPE': 'Transfer',
      'STATEMENT_IMPORT_STATEMENT_YEAR': '2024',
      'STATEMENT_IMPORT_LOG_LEVEL': 'debug',
    }
    with mock.patch.dict(os.environ, env, clear=True):
      settings = ImportSettings.from_env()
    self.assertEqual(settings.pdf_engine, 'pymupdf')
    self.assertEqual(settings.min_text_chars, 50)
    self.assertEqual(settings.pdf_transfer_type, 'transfer')
    self.assertEqual(settings.statement_year, 2024)
    self.assertEqual(settings.log_level, 'DEBUG')

  def test_blank_values_fall_back_to_defaults(self):
    with mock.patch.dict(os.environ, {'STATEMENT_IMPORT_STATEMENT_YEAR': '  ', 'STATEMENT_IMPORT_PDF_ENGINE': ''}, clear=True):
      settings = ImportSettings.from_env()
    self.assertIsNone(settings.statement_year)
    self.assertEqual(settings.pdf_engine, 'pdfplumber')

  def test_invalid_values(self):
    with mock.patch.dict(os.environ, {'STATEMENT_IMPORT_MIN_TEXT_CHARS': 'many'}, clear=True):
      with self.assertRaises(ValidationError):
        ImportSettings.from_env()
    with self.assertRaises(ValidationError):
      ImportSettings(pdf_engine='tabula')
    with self.assertRaises(ValidationError):
      ImportSettings(xlsx_transfer_type='income')
    with self.assertRaises(ValidationError):
      ImportSettings(min_line_length=-1)

  def test_settings_are_immutable(self):
    settings = ImportSettings()
    with self.assertRaises(ValidationError):
      settings.pdf_engine = 'pymupdf'
    self.assertEqual(settings.model_copy(update={'statement_year': 2023}).statement_year, 2023)


if __name__ == '__main__':
  unittest.main()
