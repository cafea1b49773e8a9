import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

import pandas as pd

from statementimport.__main__ import main


class CommandLineTest(unittest.TestCase):
  def test_preview_writes_csv(self):
    with tempfile.TemporaryDirectory() as tmp:
      statement = os.path.join(tmp, 'statement.xlsx')
      pd.DataFrame({
        'Date': [45123, 45124],
        'Description': ['STARBUCKS 0042', 'SPOTIFY P0123'],
        'Amount': ['4.50', '11.99'],
      }).to_excel(statement, index=False)
      reference = os.path.join(tmp, 'reference.json')
      with open(reference, 'w') as f:
        json.dump({'categories': [{'id': 'c1', 'name': 'Food'}], 'accounts': [{'id': 'a1', 'name': 'Visa'}]}, f)
      output = os.path.join(tmp, 'drafts.csv')

      out = io.StringIO()
      with redirect_stdout(out):
        code = main([statement, '--reference-data', reference, '--output', output])

      self.assertEqual(code, 0)
      self.assertIn('Total: 2  Ready: 1  Need review: 1', out.getvalue())
      self.assertIn('Suggested new categories: Entertainment', out.getvalue())
      drafts = pd.read_csv(output)
      self.assertEqual(list(drafts['accountId']), ['a1', 'a1'])

  def test_unreadable_file_exits_with_error(self):
    with tempfile.TemporaryDirectory() as tmp:
      path = os.path.join(tmp, 'statement.pdf')
      with open(path, 'wb') as f:
        f.write(b'nope')
      err = io.StringIO()
      with redirect_stderr(err):
        self.assertEqual(main([path]), 1)
      self.assertIn('Error:', err.getvalue())


if __name__ == '__main__':
  unittest.main()
