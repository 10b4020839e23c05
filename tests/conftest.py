"""
Pytest configuration and fixtures for all tests.
"""

import json
import os
import sys
import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-west-2')
os.environ.setdefault('ENVIRONMENT', 'test')
os.environ.setdefault('LOG_LEVEL', 'INFO')
os.environ.setdefault('OUTPUT_BUCKET', 'parsed-emails-test')

EVENTS_DIR = os.path.join(os.path.dirname(__file__), 'events')


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment variables for all tests."""
    # Environment variables are already set above
    yield


@pytest.fixture
def sqs_event():
    """Sample SQS event with one direct SES notification."""
    with open(os.path.join(EVENTS_DIR, 'sqs-event.json')) as f:
        return json.load(f)


@pytest.fixture
def ses_notification():
    """Decoded SES notification from the sample event."""
    with open(os.path.join(EVENTS_DIR, 'sqs-event.json')) as f:
        return json.loads(json.load(f)['Records'][0]['body'])


@pytest.fixture
def make_record(ses_notification):
    """Build an SQS record around a (possibly modified) SES notification."""
    def _make(notification=None, message_id='test-message-id'):
        body = ses_notification if notification is None else notification
        return {'messageId': message_id, 'body': json.dumps(body)}
    return _make


@pytest.fixture
def sample_email_content():
    """Sample raw email content in MIME format."""
    return b"""From: Alice Sender <sender@example.com>
To: recipient@yourdomain.com
Subject: Test Email Subject
MIME-Version: 1.0
Content-Type: multipart/alternative; boundary="boundary123"

--boundary123
Content-Type: text/plain; charset="UTF-8"

This is a test email body in plain text.

--boundary123
Content-Type: text/html; charset="UTF-8"

<html><body><p>This is a test email body in <strong>HTML</strong>.</p></body></html>

--boundary123--
"""
