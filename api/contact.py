# api/contact.py
"""
Contact form API endpoints
"""

import logging
from pathlib import Path

from flask import Blueprint, abort, current_app, jsonify, request, send_from_directory

from core.submission_log import SubmissionLogError
from services.contact import ContactForm

contact_bp = Blueprint('contact', __name__)
logger = logging.getLogger(__name__)


def request_payload() -> dict:
    """JSON body or URL-encoded form, whichever the client sent"""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    return data if isinstance(data, dict) else {}


@contact_bp.route('/send-with-reply', methods=['POST'])
async def send_with_reply():
    """
    Main contact form endpoint

    Emails the support inbox, sends the submitter an auto-reply and records
    the submission. Mail failures never fail the request.
    """
    logger.info(f"Received contact form submission from {request.remote_addr}")
    payload = request_payload()
    logger.debug(f"Body: {payload}")

    form = ContactForm.from_payload(payload)
    missing = form.missing_fields()
    if missing:
        logger.warning(f"Rejected submission, missing fields: {', '.join(missing)}")
        return jsonify({
            'success': False,
            'error': 'Missing required fields',
            'received': form.received()
        }), 400

    outcome = await current_app.contact_service.submit(form)

    if not outcome.succeeded:
        return jsonify({
            'success': False,
            'error': ('Processing failed, but submission was saved' if outcome.saved
                      else 'Processing failed and the submission could not be saved'),
            'data': {
                'reference': outcome.reference,
                'savedLocally': outcome.saved
            }
        }), 500

    return jsonify({
        'success': True,
        'message': 'Form submitted successfully',
        'data': {
            'reference': outcome.reference,
            'name': form.name,
            'email': form.email,
            'service': form.service,
            'timestamp': outcome.submitted_at,
            'emails_sent': {
                'to_support': outcome.support_sent,
                'to_client': outcome.auto_reply_sent
            }
        }
    })


@contact_bp.route('/send', methods=['POST'])
async def simple_send():
    """Forward the form to the support inbox without an auto-reply or record"""
    logger.info("Simple send endpoint called")
    form = ContactForm.from_payload(request_payload())

    try:
        result = await current_app.contact_service.send_simple(form)
    except Exception as e:
        logger.error(f"Simple send error: {e}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500

    return jsonify({'success': True, 'messageId': result.message_id})


@contact_bp.route('/save-submission', methods=['POST'])
def save_submission():
    """Store the raw request body as a backup record"""
    record = current_app.contact_service.save_backup(request_payload())
    return jsonify({
        'success': True,
        'message': 'Saved locally',
        'data': record
    })


@contact_bp.route('/submissions/view', methods=['GET'])
def view_submissions():
    """Most recent submissions, newest first"""
    limit = current_app.config.get('RECENT_SUBMISSIONS_LIMIT', 20)
    try:
        count, submissions = current_app.contact_service.recent_submissions(limit)
    except SubmissionLogError as e:
        logger.error(f"Failed to read submissions: {e}")
        return jsonify({'error': str(e)}), 500

    return jsonify({'count': count, 'submissions': submissions})


@contact_bp.route('/submissions/<path:filename>', methods=['GET'])
def submission_files(filename):
    """Static access to the submissions directory"""
    # Hidden files include the log's in-flight temp copies
    if any(part.startswith('.') for part in Path(filename).parts):
        abort(404)
    directory = Path(current_app.config['SUBMISSIONS_DIR']).resolve()
    return send_from_directory(directory, filename)
