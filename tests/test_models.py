import re

from core.models import Submission, SubmissionStatus, backup_record, timestamp_reference, utc_now_iso


def test_reference_format(monkeypatch):
    monkeypatch.setattr('core.models.time.time', lambda: 1760700000.5)
    assert timestamp_reference('NL') == 'NL00000500'
    assert timestamp_reference('BACKUP-') == 'BACKUP-00000500'


def test_new_submission_defaults():
    submission = Submission.new(name='A', email='a@b.com', service='web', message='hi')
    assert re.match(r'^NL\d{8}$', submission.id)
    assert submission.status is SubmissionStatus.SENT
    assert submission.timestamp.endswith('Z')


def test_sent_record_shape():
    submission = Submission.new(name='A', email='a@b.com', service='web', message='hi', phone='0123')
    submission.support_message_id = '<1@x>'

    record = submission.to_record()
    assert record['phone'] == '0123'
    assert record['status'] == 'sent'
    assert record['emails'] == {'support': '<1@x>', 'autoReply': 'failed'}
    assert 'error' not in record
    assert list(record)[:2] == ['id', 'timestamp']


def test_failed_record_shape():
    submission = Submission.new(name='A', email='a@b.com', service='web', message='hi')
    submission.mark_failed('boom')

    record = submission.to_record()
    assert record['status'] == 'failed'
    assert record['error'] == 'boom'
    assert record['phone'] == 'Not provided'
    assert 'emails' not in record


def test_backup_record_payload_wins():
    record = backup_record({'name': 'C', 'timestamp': 'client-side'})
    assert record['id'].startswith('BACKUP-')
    assert record['timestamp'] == 'client-side'
    assert record['name'] == 'C'


def test_utc_timestamp_format():
    assert re.match(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$', utc_now_iso())
