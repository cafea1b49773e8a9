import argparse
import logging
import sys

from .backend import InMemoryBackend
from .config import ImportSettings
from .errors import StatementImportError
from .pipeline import ImportSession


def main(argv=None):
  parser = argparse.ArgumentParser(description='Preview transactions extracted from a bank statement')
  parser.add_argument('statement', help='Input PDF or XLSX statement')
  parser.add_argument('--reference-data', help='JSON file with "categories" and "accounts" lists')
  parser.add_argument('--year', type=int, help='Year for dates printed without one (e.g. SEP02)')
  parser.add_argument('--output', help='Write the draft transactions to this CSV file')
  parser.add_argument('--log-level', help='Logging level (default from STATEMENT_IMPORT_LOG_LEVEL)')
  args = parser.parse_args(argv)

  settings = ImportSettings.from_env()
  if args.year:
    settings = settings.model_copy(update={'statement_year': args.year})
  logging.basicConfig(level=(args.log_level or settings.log_level).upper(), format='%(levelname)s | %(message)s')

  backend = InMemoryBackend.from_json(args.reference_data) if args.reference_data else InMemoryBackend()
  session = ImportSession(backend, settings)
  try:
    ledger = session.load(args.statement)
  except StatementImportError as e:
    print(f'Error: {e}', file=sys.stderr)
    return 1

  summary = ledger.summary()
  print(f'Total: {summary.total}  Ready: {summary.ready_count}  '
        f'Need review: {summary.needs_review_count}  Net amount: {summary.net_amount:.2f}')
  suggestions = ledger.new_category_suggestions()
  if suggestions:
    print(f'Suggested new categories: {", ".join(suggestions)}')
  if args.output:
    ledger.to_frame().to_csv(args.output, index=False)
    print(f'Wrote {summary.total} transactions to {args.output}')
  return 0


if __name__ == '__main__':
  sys.exit(main())
