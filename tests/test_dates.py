import unittest
from datetime import date, datetime

import pandas as pd

from statementimport.dates import is_iso_date, normalize_date, resolve_date, serial_to_iso


class NormalizeDateTest(unittest.TestCase):
  def test_month_abbreviation_uses_fallback_year(self):
    self.assertEqual(normalize_date('SEP2', 2025), '2025-09-02')
    self.assertEqual(normalize_date('SEP02', 2025), '2025-09-02')
    self.assertEqual(normalize_date('sep 2', 2025), '2025-09-02')

  def test_every_month_abbreviation(self):
    months = ['JAN', 'FEB', 'MAR', 'APR', 'MAY', 'JUN', 'JUL', 'AUG', 'SEP', 'OCT', 'NOV', 'DEC']
    for number, month in enumerate(months, start=1):
      self.assertEqual(normalize_date(f'{month}9', 2024), f'2024-{number:02d}-09')
      self.assertEqual(normalize_date(f'{month}28', 2024), f'2024-{number:02d}-28')

  def test_month_abbreviation_defaults_to_current_year(self):
    self.assertEqual(normalize_date('JAN15'), f'{date.today().year}-01-15')

  def test_numeric_dates_are_month_first(self):
    self.assertEqual(normalize_date('03/04/2024'), '2024-03-04')
    self.assertEqual(normalize_date('3-4-24'), '2024-03-04')
    self.assertEqual(normalize_date('12/31/99'), '2099-12-31')

  def test_spreadsheet_serials(self):
    self.assertEqual(normalize_date(45000), '2023-03-15')
    self.assertEqual(normalize_date(45123), '2023-07-16')
    self.assertEqual(normalize_date(45000.75), '2023-03-15')
    self.assertEqual(normalize_date('45000'), '2023-03-15')
    self.assertEqual(serial_to_iso(25569), '1970-01-01')

  def test_iso_passthrough_and_typed_cells(self):
    self.assertEqual(normalize_date('2024-02-29'), '2024-02-29')
    self.assertEqual(normalize_date(datetime(2024, 5, 6, 13, 30)), '2024-05-06')
    self.assertEqual(normalize_date(date(2024, 5, 6)), '2024-05-06')
    self.assertEqual(normalize_date(pd.Timestamp('2024-05-06')), '2024-05-06')

  def test_other_parseable_strings(self):
    self.assertEqual(normalize_date('March 15, 2024'), '2024-03-15')

  def test_unparseable_falls_back_to_today(self):
    today = date.today().isoformat()
    for value in ['not a date', '', None, 'FEB30', '13/45/2024', True]:
      iso, guessed = resolve_date(value, 2025)
      self.assertEqual(iso, today, value)
      self.assertTrue(guessed, value)

  def test_relative_words_are_guessed(self):
    for value in ['today', 'NOW', ' Yesterday ', 'tomorrow']:
      self.assertTrue(resolve_date(value, 2025)[1], value)

  def test_digit_strings_outside_serial_range_are_guessed(self):
    for value in ['2024', '7', '20240315']:
      iso, guessed = resolve_date(value, 2025)
      self.assertEqual(iso, date.today().isoformat(), value)
      self.assertTrue(guessed, value)
    self.assertEqual(resolve_date('45123', 2025), ('2023-07-16', False))

  def test_parsed_dates_are_not_guessed(self):
    self.assertEqual(resolve_date('OCT15', 2025), ('2025-10-15', False))

  def test_is_iso_date(self):
    self.assertTrue(is_iso_date('2025-01-31'))
    self.assertFalse(is_iso_date('2025-02-31'))
    self.assertFalse(is_iso_date('2025-1-31'))
    self.assertFalse(is_iso_date(20250131))


if __name__ == '__main__':
  unittest.main()
