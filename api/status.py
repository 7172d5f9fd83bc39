# api/status.py
"""
Service status and SMTP diagnostics endpoints
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

status_bp = Blueprint('status', __name__)
logger = logging.getLogger(__name__)

ENDPOINTS = {
    'health': '/health',
    'test': '/test',
    'test-smtp': '/test-smtp',
    'send-with-reply': '/send-with-reply',
    'view-submissions': '/submissions/view'
}


@status_bp.route('/', methods=['GET'])
def index():
    return jsonify({
        'status': 'online',
        'service': current_app.config['SERVICE_NAME'],
        'email': current_app.config['EMAIL_USER'],
        'endpoints': ENDPOINTS
    })


@status_bp.route('/health', methods=['GET'])
def health_check():
    """Basic health check endpoint"""
    config = current_app.config
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'server': config['SERVICE_NAME'],
        'version': config['VERSION'],
        'email': config['EMAIL_USER'],
        'smtp': f"{config['SMTP_HOST']}:{config['SMTP_PORT']}"
    })


@status_bp.route('/test-smtp', methods=['GET'])
async def test_smtp():
    """Verify the SMTP connection and credentials"""
    try:
        details = await current_app.contact_service.verify_smtp()
    except Exception as e:
        logger.error(f"SMTP verification failed: {e}")
        return jsonify({
            'success': False,
            'error': 'SMTP connection failed',
            'message': str(e)
        }), 500

    return jsonify({
        'success': True,
        'message': 'SMTP connection verified',
        'details': details
    })


@status_bp.route('/test', methods=['GET'])
async def test_email():
    """Send a test email to the support inbox"""
    try:
        result = await current_app.contact_service.send_test_email()
    except Exception as e:
        logger.error(f"Test email error: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Failed to send test email',
            'message': str(e)
        }), 500

    return jsonify({
        'success': True,
        'message': 'Test email sent successfully',
        'messageId': result.message_id
    })
