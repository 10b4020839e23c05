"""
Tests for the email intake pipeline.
"""

import json
import pytest
from unittest.mock import patch, MagicMock
from botocore.exceptions import ClientError
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from config import Settings
from domain.email_processor import EmailProcessor


@pytest.fixture
def settings():
    return Settings(environment='test', output_bucket='parsed-emails-test')


@pytest.fixture
def processor(settings):
    return EmailProcessor(settings)


def _s3_body(raw):
    return {'Body': MagicMock(read=lambda: raw)}


class TestProcessSesRecord:
    """Test EmailProcessor.process_ses_record()."""

    @patch('services.s3.s3_client')
    def test_success_uploads_record(self, mock_s3_client, processor, sqs_event, sample_email_content):
        """Test the happy path fetches, parses and stores the record."""
        mock_s3_client.get_object.return_value = _s3_body(sample_email_content)

        result = processor.process_ses_record(sqs_event['Records'][0])

        assert result.success is True
        assert result.message_id == 'test-message-id'
        assert result.output_key == 'parsed/test/2025/11/12/o3vrnil0e2ic28trm7dfhrc2v0clambda4nbp0g1.json'
        mock_s3_client.get_object.assert_called_once_with(
            Bucket='ses-emails-123456789012-dev',
            Key='test-email-key'
        )

        put_kwargs = mock_s3_client.put_object.call_args[1]
        assert put_kwargs['Bucket'] == 'parsed-emails-test'
        assert put_kwargs['Key'] == result.output_key
        assert put_kwargs['ContentType'] == 'application/json'

        record = json.loads(put_kwargs['Body'].decode('utf-8'))
        assert record['from'] == {'address': 'sender@example.com', 'name': 'Alice Sender'}
        assert record['subject'] == 'Test Email Subject'
        assert 'plain text' in record['text_body']
        assert record['source'] == 's3://ses-emails-123456789012-dev/test-email-key'

    @patch('services.s3.s3_client')
    def test_upload_disabled(self, mock_s3_client, sqs_event, sample_email_content):
        """Test no upload happens without an output bucket."""
        mock_s3_client.get_object.return_value = _s3_body(sample_email_content)

        result = EmailProcessor(Settings()).process_ses_record(sqs_event['Records'][0])

        assert result.success is True
        assert result.output_key is None
        mock_s3_client.put_object.assert_not_called()

    @patch('services.s3.s3_client')
    def test_invalid_notification_is_not_fetched(self, mock_s3_client, processor):
        """Test parse failures return early without touching S3."""
        record = {'messageId': 'bad-1', 'body': json.dumps({'invalid': 'data'})}

        result = processor.process_ses_record(record)

        assert result.success is False
        assert result.message_id == 'bad-1'
        assert result.metadata is None
        assert result.error_message.startswith('Invalid SES notification:')
        assert 'mail: expected an object' in result.error_message
        mock_s3_client.get_object.assert_not_called()

    @patch('services.s3.s3_client')
    def test_deeply_nested_body_is_a_failed_result(self, mock_s3_client, processor):
        """Test a pathologically nested body is reported, not raised."""
        record = {'messageId': 'deep-1', 'body': '{"a":' * 100000 + '1' + '}' * 100000}

        result = processor.process_ses_record(record)

        assert result.success is False
        assert result.message_id == 'deep-1'
        assert 'nested too deeply' in result.error_message
        mock_s3_client.get_object.assert_not_called()

    @patch('services.s3.s3_client')
    def test_out_of_range_timestamp_is_a_failed_result(self, mock_s3_client, processor, ses_notification, make_record):
        """Test a timestamp that cannot be shown in UTC fails parsing before any S3 call."""
        ses_notification['mail']['timestamp'] = '0001-01-01T00:00:00+01:00'

        result = processor.process_ses_record(make_record(ses_notification))

        assert result.success is False
        assert 'mail.timestamp: timestamp out of range' in result.error_message
        mock_s3_client.get_object.assert_not_called()

    @patch('services.s3.s3_client')
    def test_sender_domain_not_allowed(self, mock_s3_client, sqs_event):
        """Test the allow-list rejects other sender domains before fetching."""
        processor = EmailProcessor(Settings(allowed_sender_domains=frozenset({'partner.org'})))

        result = processor.process_ses_record(sqs_event['Records'][0])

        assert result.success is False
        assert result.metadata is not None
        assert result.error_message == 'Sender domain not allowed: example.com'
        mock_s3_client.get_object.assert_not_called()

    @patch('services.s3.s3_client')
    def test_sender_domain_allowed(self, mock_s3_client, sqs_event, sample_email_content):
        """Test the allow-list accepts listed sender domains."""
        mock_s3_client.get_object.return_value = _s3_body(sample_email_content)
        processor = EmailProcessor(Settings(allowed_sender_domains=frozenset({'example.com'})))

        assert processor.process_ses_record(sqs_event['Records'][0]).success is True

    @patch('services.s3.s3_client')
    def test_s3_fetch_error(self, mock_s3_client, processor, sqs_event):
        """Test S3 errors become a failed result, not an exception."""
        mock_s3_client.get_object.side_effect = ClientError(
            {'Error': {'Code': 'NoSuchKey', 'Message': 'The specified key does not exist.'}},
            'GetObject'
        )

        result = processor.process_ses_record(sqs_event['Records'][0])

        assert result.success is False
        assert 'Email file not found in S3' in result.error_message
        mock_s3_client.put_object.assert_not_called()

    @patch('services.s3.s3_client')
    def test_upload_error(self, mock_s3_client, processor, sqs_event, sample_email_content):
        """Test upload failures become a failed result."""
        mock_s3_client.get_object.return_value = _s3_body(sample_email_content)
        mock_s3_client.put_object.side_effect = ClientError(
            {'Error': {'Code': 'AccessDenied', 'Message': 'Access Denied'}},
            'PutObject'
        )

        result = processor.process_ses_record(sqs_event['Records'][0])

        assert result.success is False
        assert 'AccessDenied' in result.error_message

    @patch('services.s3.s3_client')
    def test_email_too_large(self, mock_s3_client, sqs_event):
        """Test emails over the size limit are rejected."""
        mock_s3_client.get_object.return_value = _s3_body(b'x' * 2048)
        processor = EmailProcessor(Settings(max_email_size_bytes=1024))

        result = processor.process_ses_record(sqs_event['Records'][0])

        assert result.success is False
        assert 'Email too large' in result.error_message


class TestOutputKey:
    """Test output key layout."""

    def test_output_key_uses_prefix_environment_and_utc_date(self, make_record, ses_notification):
        """Test key is {prefix}{env}/{yyyy}/{mm}/{dd}/{mail id}.json in UTC."""
        from domain.ses_notification import parse_sqs_record

        ses_notification['mail']['timestamp'] = '2025-12-31T23:30:00-02:00'
        ses_notification['mail']['messageId'] = '<id/with?odd#chars>'
        metadata = parse_sqs_record(make_record(ses_notification)).unwrap()

        processor = EmailProcessor(Settings(environment='prod', output_key_prefix='out/'))

        assert processor.output_key_for(metadata) == 'out/prod/2026/01/01/id_with_odd_chars.json'


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
