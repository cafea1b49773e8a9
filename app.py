import os
import uuid
import logging
import threading
from datetime import datetime, timedelta
from flask import Flask, request, jsonify
from werkzeug.utils import secure_filename

from statementimport import (
  CommitFailure,
  DocumentUnreadable,
  ImportSession,
  ImportSettings,
  InMemoryBackend,
  NoTransactionsFound,
  ReviewIncomplete,
)
from statementimport.categorizer import category_options

settings = ImportSettings.from_env()
logging.basicConfig(level=settings.log_level, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'your-secret-key-change-this-in-production')
app.config['UPLOAD_FOLDER'] = os.getenv('UPLOAD_FOLDER', 'uploads')
app.config['MAX_CONTENT_LENGTH'] = 20 * 1024 * 1024  # 20MB max file size
app.config['IMPORT_SETTINGS'] = settings
app.config['PROCESS_IN_BACKGROUND'] = True
app.config['SESSION_TTL_HOURS'] = 2

_reference_data = os.getenv('STATEMENT_IMPORT_REFERENCE_DATA')
app.config['BACKEND'] = InMemoryBackend.from_json(_reference_data) if _reference_data else InMemoryBackend()

ALLOWED_EXTENSIONS = ('.pdf', '.xlsx')

# Import sessions live in memory; one per upload.
import_sessions = {}


def cleanup_old_sessions():
  """Drop sessions older than the configured TTL and delete their files."""
  cutoff = datetime.now() - timedelta(hours=app.config['SESSION_TTL_HOURS'])
  expired = [sid for sid, job in list(import_sessions.items()) if job['created_at'] < cutoff]

  for sid in expired:
    job = import_sessions.pop(sid, None)
    if job:
      _remove_upload(job)
  if expired:
    logger.info(f"Removed {len(expired)} expired import sessions")


def _remove_upload(job):
  path = job.get('file_path')
  if path and os.path.exists(path):
    try:
      os.remove(path)
    except OSError as e:
      logger.warning(f"Could not remove {path}: {e}")


def _error(message, status):
  return jsonify({'success': False, 'error': message}), status


def _get_job(session_id):
  return import_sessions.get(session_id)


def _ready_job(session_id):
  """Return (job, error_response) for a session that has reached review."""
  job = _get_job(session_id)
  if not job:
    return None, _error('Session not found', 404)
  if job['status'] != 'review':
    return None, _error(f"Session is {job['status']}, not ready for review", 409)
  return job, None


def _review_payload(job):
  session = job['session']
  return {
    'success': True,
    'session_id': session.id,
    'status': job['status'],
    'filename': job['original_name'],
    'transactions': session.ledger.to_dicts(),
    'summary': session.ledger.summary().to_dict(),
    'editing_id': session.ledger.editing_id,
    'new_category_suggestions': session.ledger.new_category_suggestions(),
    'category_options': category_options(session.categories),
    'accounts': [a.to_dict() for a in session.accounts],
  }


@app.route('/')
def index():
  # Clean up old sessions on page load
  cleanup_old_sessions()
  return jsonify({'success': True, 'service': 'statement-import', 'active_sessions': len(import_sessions)})


@app.route('/upload', methods=['POST'])
def upload_statement():
  file = request.files.get('file')
  if not file or file.filename == '':
    return _error('No file selected', 400)

  if not file.filename.lower().endswith(ALLOWED_EXTENSIONS):
    return _error('Please upload a PDF or Excel (.xlsx) bank statement', 400)

  session_id = str(uuid.uuid4())
  filename = secure_filename(file.filename) or 'statement'
  os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
  file_path = os.path.join(app.config['UPLOAD_FOLDER'], f"{session_id}_{filename}")
  file.save(file_path)

  session = ImportSession(app.config['BACKEND'], app.config['IMPORT_SETTINGS'], session_id=session_id)
  import_sessions[session_id] = {
    'id': session_id,
    'status': 'processing',
    'message': 'Extracting transactions...',
    'session': session,
    'file_path': file_path,
    'original_name': file.filename,
    'created_at': datetime.now(),
  }

  if app.config['PROCESS_IN_BACKGROUND']:
    thread = threading.Thread(target=process_statement, args=(session_id,))
    thread.daemon = True
    thread.start()
  else:
    process_statement(session_id)

  job = import_sessions[session_id]
  return jsonify({
    'success': job['status'] != 'error',
    'session_id': session_id,
    'status': job['status'],
    'message': job['message'],
    'error': job.get('error'),
    'error_type': job.get('error_type'),
  }), (200 if job['status'] != 'error' else job['http_status'])


def process_statement(session_id):
  """Run extraction for one upload; the review stage opens only when it completes."""
  job = import_sessions.get(session_id)
  if not job:
    return

  session = job['session']
  try:
    ledger = session.load(job['file_path'], job['original_name'])
    job['status'] = 'review'
    job['message'] = f'Extracted {len(ledger)} transactions'
  except (DocumentUnreadable, NoTransactionsFound) as e:
    job['status'] = 'error'
    job['error'] = str(e)
    job['error_type'] = type(e).__name__
    job['http_status'] = 400 if isinstance(e, DocumentUnreadable) else 422
    job['message'] = str(e)
  except Exception as e:
    logger.exception(f"Processing failed for session {session_id}")
    job['status'] = 'error'
    job['error'] = f'Processing failed: {str(e)}'
    job['error_type'] = type(e).__name__
    job['http_status'] = 500
    job['message'] = job['error']
  finally:
    job['completed_at'] = datetime.now()
    _remove_upload(job)


@app.route('/status/<session_id>')
def get_status(session_id):
  """Get extraction status for an upload"""
  job = _get_job(session_id)
  if not job:
    return _error('Session not found', 404)

  response_data = {
    'success': True,
    'session_id': session_id,
    'status': job['status'],
    'message': job['message'],
  }
  if job['status'] == 'review':
    response_data['summary'] = job['session'].ledger.summary().to_dict()
  elif job['status'] == 'error':
    response_data['error'] = job.get('error', 'Unknown error')
    response_data['error_type'] = job.get('error_type')

  return jsonify(response_data)


@app.route('/sessions/<session_id>')
def get_session(session_id):
  job, error = _ready_job(session_id)
  if error:
    return error
  return jsonify(_review_payload(job))


@app.route('/sessions/<session_id>/transactions/<txn_id>', methods=['PATCH'])
def update_transaction(session_id, txn_id):
  job, error = _ready_job(session_id)
  if error:
    return error
  patch = request.get_json(silent=True)
  if not isinstance(patch, dict) or not patch:
    return _error('Expected a JSON object with the fields to change', 400)
  try:
    draft = job['session'].ledger.update_field(txn_id, patch)
  except KeyError:
    return _error('Transaction not found', 404)
  except ValueError as e:
    return _error(str(e), 400)
  return jsonify({
    'success': True,
    'transaction': draft.to_dict(),
    'summary': job['session'].ledger.summary().to_dict(),
  })


@app.route('/sessions/<session_id>/transactions/<txn_id>', methods=['DELETE'])
def delete_transaction(session_id, txn_id):
  job, error = _ready_job(session_id)
  if error:
    return error
  try:
    job['session'].ledger.delete(txn_id)
  except KeyError:
    return _error('Transaction not found', 404)
  return jsonify({'success': True, 'summary': job['session'].ledger.summary().to_dict()})


@app.route('/sessions/<session_id>/transactions/<txn_id>/edit', methods=['POST'])
def start_edit(session_id, txn_id):
  job, error = _ready_job(session_id)
  if error:
    return error
  try:
    form = job['session'].ledger.start_edit(txn_id)
  except KeyError:
    return _error('Transaction not found', 404)
  return jsonify({'success': True, 'editing_id': txn_id, 'form': form})


@app.route('/sessions/<session_id>/edit', methods=['PATCH'])
def stage_edit(session_id):
  job, error = _ready_job(session_id)
  if error:
    return error
  patch = request.get_json(silent=True)
  if not isinstance(patch, dict):
    return _error('Expected a JSON object with the fields to change', 400)
  try:
    form = job['session'].ledger.stage_edit(patch)
  except ValueError as e:
    return _error(str(e), 400)
  return jsonify({'success': True, 'editing_id': job['session'].ledger.editing_id, 'form': form})


@app.route('/sessions/<session_id>/edit/commit', methods=['POST'])
def commit_edit(session_id):
  job, error = _ready_job(session_id)
  if error:
    return error
  ledger = job['session'].ledger
  if ledger.editing_id is None:
    return _error('No transaction is being edited', 409)
  try:
    draft = ledger.commit_edit(ledger.editing_id)
  except KeyError:
    return _error('Transaction not found', 404)
  except ValueError as e:
    return _error(str(e), 400)
  return jsonify({'success': True, 'transaction': draft.to_dict(), 'summary': ledger.summary().to_dict()})


@app.route('/sessions/<session_id>/edit/cancel', methods=['POST'])
def cancel_edit(session_id):
  job, error = _ready_job(session_id)
  if error:
    return error
  job['session'].ledger.cancel_edit()
  return jsonify({'success': True})


@app.route('/sessions/<session_id>/commit', methods=['POST'])
def commit_session(session_id):
  job, error = _ready_job(session_id)
  if error:
    return error
  session = job['session']
  try:
    submitted = session.commit()
  except ReviewIncomplete as e:
    return _error(str(e), 409)
  except CommitFailure as e:
    return _error(str(e), 502)

  if len(session.ledger) == 0:
    import_sessions.pop(session_id, None)
  return jsonify({
    'success': True,
    'committed': len(submitted),
    'transactions': [t.to_dict() for t in submitted],
    'remaining': len(session.ledger),
  })


@app.route('/sessions/<session_id>', methods=['DELETE'])
def cancel_session(session_id):
  job = import_sessions.pop(session_id, None)
  if not job:
    return _error('Session not found', 404)
  job['session'].cancel()
  _remove_upload(job)
  return jsonify({'success': True})


if __name__ == '__main__':
  app.run(debug=os.getenv('FLASK_DEBUG') == '1', host='0.0.0.0', port=int(os.getenv('PORT', 5000)))
