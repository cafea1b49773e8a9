"""Exceptions raised by the statement import pipeline."""


class StatementImportError(Exception):
  """Base class for import failures surfaced to the user."""


class DocumentUnreadable(StatementImportError):
  """The file is not a readable PDF/XLSX or yields no text or rows."""


class NoTransactionsFound(StatementImportError):
  """The document was read but no line or row parsed as a transaction."""


class ReviewIncomplete(StatementImportError):
  """A commit was attempted while no row is ready to import."""


class CommitFailure(StatementImportError):
  """The persistence backend rejected the batch."""
