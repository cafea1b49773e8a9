import io
import os
import tempfile
import unittest
from datetime import datetime, timedelta

from fpdf import FPDF

import app as webapp
from statementimport import ImportSettings, InMemoryBackend
from statementimport.models import Account, Category

LINES = [
  'Sample Bank - Personal Chequing',
  'Statement Period Sep 1 to Oct 31',
  'TIM HORTONS 5.99 SEP02',
  'E-TRANSFER RECEIVED 500.00 OCT15',
  'UNKNOWN MERCHANT XYZ 42.00 OCT20',
]


def pdf_bytes(lines):
  pdf = FPDF()
  pdf.add_page()
  pdf.set_font('Helvetica', size=11)
  for line in lines:
    pdf.cell(0, 10, line, ln=True)
  return bytes(pdf.output())


class AppTest(unittest.TestCase):
  def setUp(self):
    self.tmp = tempfile.TemporaryDirectory()
    self.backend = InMemoryBackend(
      [Category(id='cat-food', name='Food'), Category(id='cat-misc', name='Misc')],
      [Account(id='acc-1', name='Chequing')],
    )
    webapp.app.config.update(
      TESTING=True,
      UPLOAD_FOLDER=self.tmp.name,
      BACKEND=self.backend,
      IMPORT_SETTINGS=ImportSettings(statement_year=2025),
      PROCESS_IN_BACKGROUND=False,
    )
    webapp.import_sessions.clear()
    self.client = webapp.app.test_client()

  def tearDown(self):
    webapp.import_sessions.clear()
    self.tmp.cleanup()

  def _upload(self, data, filename='statement.pdf'):
    return self.client.post(
      '/upload',
      data={'file': (io.BytesIO(data), filename)},
      content_type='multipart/form-data',
    )

  def _review(self):
    response = self._upload(pdf_bytes(LINES))
    self.assertEqual(response.status_code, 200)
    session_id = response.get_json()['session_id']
    return session_id, self.client.get(f'/sessions/{session_id}').get_json()

  def test_upload_review_and_commit(self):
    session_id, review = self._review()
    self.assertEqual(review['status'], 'review')
    self.assertEqual(review['summary']['total'], 3)
    self.assertEqual(review['summary']['needsReviewCount'], 1)
    self.assertEqual(review['accounts'][0]['id'], 'acc-1')
    self.assertEqual([o['id'] for o in review['category_options']], ['cat-food', 'cat-misc'])
    self.assertEqual(os.listdir(self.tmp.name), [])

    status = self.client.get(f'/status/{session_id}').get_json()
    self.assertEqual(status['status'], 'review')

    unknown = [t for t in review['transactions'] if t['note'] == 'UNKNOWN MERCHANT XYZ'][0]
    response = self.client.patch(f"/sessions/{session_id}/transactions/{unknown['id']}", json={'category': 'cat-misc'})
    self.assertEqual(response.status_code, 200)
    self.assertFalse(response.get_json()['transaction']['needsReview'])

    response = self.client.post(f'/sessions/{session_id}/commit')
    self.assertEqual(response.status_code, 200)
    self.assertEqual(response.get_json()['committed'], 3)
    self.assertEqual(len(self.backend.transactions), 3)
    self.assertNotIn(session_id, webapp.import_sessions)

  def test_commit_refused_until_reviewed(self):
    session_id, review = self._review()
    for txn in review['transactions']:
      if txn['note'] != 'UNKNOWN MERCHANT XYZ':
        self.client.delete(f"/sessions/{session_id}/transactions/{txn['id']}")
    response = self.client.post(f'/sessions/{session_id}/commit')
    self.assertEqual(response.status_code, 409)
    self.assertFalse(response.get_json()['success'])
    self.assertEqual(self.backend.transactions, [])

  def test_commit_failure_is_reported(self):
    session_id, _ = self._review()
    self.backend.bulk_insert_transactions = lambda batch: False
    response = self.client.post(f'/sessions/{session_id}/commit')
    self.assertEqual(response.status_code, 502)
    review = self.client.get(f'/sessions/{session_id}').get_json()
    self.assertEqual(review['summary']['total'], 3)

  def test_edit_flow(self):
    session_id, review = self._review()
    txn_id = review['transactions'][0]['id']
    response = self.client.post(f'/sessions/{session_id}/transactions/{txn_id}/edit')
    self.assertEqual(response.get_json()['form']['note'], 'TIM HORTONS')
    self.client.patch(f'/sessions/{session_id}/edit', json={'note': 'Tim Hortons #42', 'amount': 6.25})
    response = self.client.post(f'/sessions/{session_id}/edit/commit')
    self.assertEqual(response.status_code, 200)
    txn = response.get_json()['transaction']
    self.assertEqual((txn['note'], txn['amount']), ('Tim Hortons #42', 6.25))

    response = self.client.post(f'/sessions/{session_id}/edit/commit')
    self.assertEqual(response.status_code, 409)

  def test_bad_patch(self):
    session_id, review = self._review()
    txn_id = review['transactions'][0]['id']
    response = self.client.patch(f'/sessions/{session_id}/transactions/{txn_id}', json={'date': 'yesterday'})
    self.assertEqual(response.status_code, 400)
    response = self.client.patch(f'/sessions/{session_id}/transactions/nope', json={'note': 'x'})
    self.assertEqual(response.status_code, 404)

  def test_cancel_discards_session(self):
    session_id, _ = self._review()
    response = self.client.delete(f'/sessions/{session_id}')
    self.assertEqual(response.status_code, 200)
    self.assertEqual(self.backend.transactions, [])
    self.assertEqual(self.client.get(f'/sessions/{session_id}').status_code, 404)

  def test_upload_errors(self):
    response = self._upload(b'hello', filename='notes.txt')
    self.assertEqual(response.status_code, 400)

    response = self._upload(b'not a pdf at all', filename='statement.pdf')
    self.assertEqual(response.status_code, 400)
    self.assertEqual(response.get_json()['error_type'], 'DocumentUnreadable')

    response = self._upload(pdf_bytes(['This letter explains the changes to our service fees this year.'] * 3))
    self.assertEqual(response.status_code, 422)
    self.assertEqual(response.get_json()['error_type'], 'NoTransactionsFound')
    session_id = response.get_json()['session_id']
    self.assertEqual(self.client.get(f'/sessions/{session_id}').status_code, 409)

  def test_old_sessions_are_cleaned(self):
    session_id, _ = self._review()
    webapp.import_sessions[session_id]['created_at'] = datetime.now() - timedelta(hours=5)
    self.client.get('/')
    self.assertNotIn(session_id, webapp.import_sessions)

  def test_cleanup_tolerates_uploads_arriving_mid_scan(self):
    class ArrivesDuringScan:
      def __lt__(self, other):
        webapp.import_sessions['late'] = {'created_at': datetime.now()}
        return True

    webapp.import_sessions['old'] = {'created_at': ArrivesDuringScan()}
    webapp.cleanup_old_sessions()
    self.assertNotIn('old', webapp.import_sessions)
    self.assertIn('late', webapp.import_sessions)


if __name__ == '__main__':
  unittest.main()
