"""
Contact endpoints through the real Flask app; only SMTP is faked.
"""

import json
import re

import pytest

from app import create_app
from core.submission_log import SubmissionLog, SubmissionLogError

REFERENCE_RE = re.compile(r'^NL\d{8}$')


class FlakySubmissionLog(SubmissionLog):
    """Fails the first `failures` appends"""

    def __init__(self, path, failures=1):
        super().__init__(path)
        self.failures = failures

    def append(self, record):
        if self.failures:
            self.failures -= 1
            raise SubmissionLogError('disk full')
        super().append(record)


def make_app(mailer, submission_log, tmp_path):
    return create_app(
        'testing',
        mailer=mailer,
        submission_log=submission_log,
        config_overrides={'SUBMISSIONS_DIR': str(tmp_path)},
    )


# ---- Validation ----
def test_missing_field_is_rejected_with_received_fields(client, mailer, submission_log):
    r = client.post('/send-with-reply', json={'name': 'A', 'email': 'a@b.com', 'service': 'web'})
    assert r.status_code == 400
    data = r.get_json()
    assert data['success'] is False
    assert data['error'] == 'Missing required fields'
    assert data['received'] == {'name': 'A', 'email': 'a@b.com', 'service': 'web'}
    assert mailer.sent == []
    assert submission_log.read_all() == []


@pytest.mark.parametrize('field', ['name', 'email', 'service', 'message'])
def test_empty_required_field_counts_as_missing(client, valid_form, field):
    valid_form[field] = ''
    r = client.post('/send-with-reply', json=valid_form)
    assert r.status_code == 400
    assert r.get_json()['received'][field] == ''


def test_phone_is_optional(client, valid_form):
    r = client.post('/send-with-reply', json=valid_form)
    assert r.status_code == 200


def test_non_object_json_body_is_treated_as_empty(client):
    r = client.post('/send-with-reply', json=['name', 'email'])
    assert r.status_code == 400
    assert r.get_json()['received'] == {}


# ---- Main submission ----
def test_submission_sends_both_emails_and_is_logged(client, mailer, submission_log, valid_form):
    r = client.post('/send-with-reply', json=valid_form)
    assert r.status_code == 200
    body = r.get_json()
    assert body['success'] is True
    assert body['message'] == 'Form submitted successfully'

    data = body['data']
    assert REFERENCE_RE.match(data['reference'])
    assert data['name'] == 'A'
    assert data['email'] == 'a@b.com'
    assert data['service'] == 'web'
    assert re.match(r'^\d{4}/\d{2}/\d{2}, \d{2}:\d{2}:\d{2}$', data['timestamp'])
    assert data['emails_sent'] == {'to_support': True, 'to_client': True}

    support, auto_reply = mailer.sent
    assert support.to == 'support@example.com'
    assert support.reply_to == 'a@b.com'
    assert 'New Contact: A - web' in support.subject
    assert data['reference'] in support.html
    assert auto_reply.to == 'a@b.com'
    assert auto_reply.subject == "We've received your inquiry - NL Digital Solutions"

    records = submission_log.read_all()
    assert len(records) == 1
    record = records[0]
    assert record['id'] == data['reference']
    assert record['status'] == 'sent'
    assert record['phone'] == 'Not provided'
    assert record['emails'] == {'support': '<1@test.local>', 'autoReply': '<2@test.local>'}


def test_submission_succeeds_when_all_mail_fails(client, mailer, submission_log, valid_form):
    mailer.fail_all = True
    r = client.post('/send-with-reply', json=valid_form)
    assert r.status_code == 200
    data = r.get_json()['data']
    assert r.get_json()['success'] is True
    assert REFERENCE_RE.match(data['reference'])
    assert data['emails_sent'] == {'to_support': False, 'to_client': False}

    record = submission_log.read_all()[0]
    assert record['status'] == 'sent'
    assert record['emails'] == {'support': 'failed', 'autoReply': 'failed'}


def test_auto_reply_failure_does_not_affect_support_email(client, mailer, submission_log, valid_form):
    mailer.fail_for = {'a@b.com'}
    r = client.post('/send-with-reply', json=valid_form)
    assert r.get_json()['data']['emails_sent'] == {'to_support': True, 'to_client': False}
    assert submission_log.read_all()[0]['emails'] == {'support': '<1@test.local>', 'autoReply': 'failed'}


def test_support_failure_does_not_block_auto_reply(client, mailer, valid_form):
    mailer.fail_for = {'support@example.com'}
    r = client.post('/send-with-reply', json=valid_form)
    assert r.get_json()['data']['emails_sent'] == {'to_support': False, 'to_client': True}
    assert [m.to for m in mailer.sent] == ['a@b.com']


def test_auto_reply_is_skipped_for_several_addresses(client, mailer, submission_log, valid_form):
    valid_form['email'] = 'a@b.com, someone-else@example.com'
    r = client.post('/send-with-reply', json=valid_form)
    assert r.status_code == 200
    assert r.get_json()['data']['emails_sent'] == {'to_support': True, 'to_client': False}
    assert [m.to for m in mailer.sent] == ['support@example.com']
    assert submission_log.read_all()[0]['emails']['autoReply'] == 'failed'


def test_submissions_are_logged_in_order(client, submission_log, valid_form):
    for name in ['first', 'second', 'third']:
        r = client.post('/send-with-reply', json=dict(valid_form, name=name))
        assert r.status_code == 200

    assert [r['name'] for r in submission_log.read_all()] == ['first', 'second', 'third']


def test_duplicate_submissions_produce_duplicate_records(client, submission_log, valid_form):
    client.post('/send-with-reply', json=valid_form)
    client.post('/send-with-reply', json=valid_form)
    assert submission_log.count() == 2


def test_form_encoded_submission(client, submission_log):
    r = client.post('/send-with-reply', data={
        'name': 'Form User', 'email': 'form@b.com', 'phone': '0123',
        'service': 'seo', 'message': 'line one\nline two'
    })
    assert r.status_code == 200
    record = submission_log.read_all()[0]
    assert record['phone'] == '0123'
    assert record['message'] == 'line one\nline two'


def test_persistence_failure_returns_500_with_saved_reference(mailer, tmp_path, valid_form):
    log = FlakySubmissionLog(tmp_path / 'submissions.json', failures=1)
    app = make_app(mailer, log, tmp_path)

    with app.test_client() as client:
        r = client.post('/send-with-reply', json=valid_form)

    assert r.status_code == 500
    body = r.get_json()
    assert body['success'] is False
    assert body['error'] == 'Processing failed, but submission was saved'
    assert REFERENCE_RE.match(body['data']['reference'])
    assert body['data']['savedLocally'] is True

    record = log.read_all()[0]
    assert record['id'] == body['data']['reference']
    assert record['status'] == 'failed'
    assert record['error'] == 'disk full'
    assert 'emails' not in record


def test_persistence_failure_reports_unsaved_fallback(mailer, tmp_path, valid_form):
    log = FlakySubmissionLog(tmp_path / 'submissions.json', failures=2)
    app = make_app(mailer, log, tmp_path)

    with app.test_client() as client:
        r = client.post('/send-with-reply', json=valid_form)

    assert r.status_code == 500
    assert r.get_json()['data']['savedLocally'] is False
    assert log.read_all() == []


# ---- Simple send ----
def test_simple_send(client, mailer, submission_log):
    r = client.post('/send', json={'name': 'B', 'email': 'b@c.com', 'service': 'app', 'message': 'yo'})
    assert r.status_code == 200
    assert r.get_json() == {'success': True, 'messageId': '<1@test.local>'}

    (sent,) = mailer.sent
    assert sent.to == 'support@example.com'
    assert sent.subject == 'Contact Form: B'
    assert sent.reply_to == 'b@c.com'
    assert 'Phone: N/A' in sent.text
    assert submission_log.read_all() == []


def test_simple_send_failure(client, mailer):
    mailer.fail_all = True
    r = client.post('/send', json={'name': 'B', 'email': 'b@c.com'})
    assert r.status_code == 500
    body = r.get_json()
    assert body['success'] is False
    assert 'Mailbox unavailable' in body['error']


# ---- Raw save ----
def test_save_submission_stores_backup_record(client, submission_log):
    r = client.post('/save-submission', json={'name': 'C', 'note': 'offline'})
    assert r.status_code == 200
    body = r.get_json()
    assert body['success'] is True
    assert body['message'] == 'Saved locally'
    assert re.match(r'^BACKUP-\d{8}$', body['data']['id'])
    assert body['data']['name'] == 'C'

    assert submission_log.read_all() == [body['data']]


def test_save_submission_reports_success_even_if_write_fails(mailer, tmp_path):
    log = FlakySubmissionLog(tmp_path / 'submissions.json', failures=1)
    app = make_app(mailer, log, tmp_path)

    with app.test_client() as client:
        r = client.post('/save-submission', json={'name': 'C'})

    assert r.status_code == 200
    assert r.get_json()['success'] is True
    assert log.read_all() == []


# ---- Viewing ----
def test_view_returns_latest_twenty_newest_first(client, submission_log):
    for i in range(25):
        submission_log.append({'id': f'NL{i:08d}'})

    r = client.get('/submissions/view')
    assert r.status_code == 200
    body = r.get_json()
    assert body['count'] == 25
    assert len(body['submissions']) == 20
    assert body['submissions'][0]['id'] == 'NL00000024'
    assert body['submissions'][-1]['id'] == 'NL00000005'


def test_view_without_log_file(client):
    r = client.get('/submissions/view')
    assert r.status_code == 200
    assert r.get_json() == {'count': 0, 'submissions': []}


def test_view_with_corrupt_log_file(client, submission_log):
    submission_log.path.write_text('{not json', encoding='utf-8')
    r = client.get('/submissions/view')
    assert r.status_code == 500
    assert 'Corrupt' in r.get_json()['error']


def test_submissions_file_is_served(client, valid_form):
    client.post('/send-with-reply', json=valid_form)
    r = client.get('/submissions/submissions.json')
    assert r.status_code == 200
    records = json.loads(r.data)
    assert records[0]['name'] == 'A'
    r.close()


def test_unknown_submissions_file_is_404(client):
    r = client.get('/submissions/nothing-here.json')
    assert r.status_code == 404


def test_hidden_files_are_not_served(client, tmp_path):
    (tmp_path / '.submissions.json.x1y2.tmp').write_text('[]')
    (tmp_path / '.env').write_text('EMAIL_PASSWORD=secret')

    assert client.get('/submissions/.submissions.json.x1y2.tmp').status_code == 404
    r = client.get('/submissions/.env')
    assert r.status_code == 404
    assert b'secret' not in r.data
