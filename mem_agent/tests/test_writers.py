"""
Unit tests for the metric sink writers.
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock, patch

import psycopg2
import pytest
import requests
from botocore.exceptions import ClientError, NoCredentialsError

from mem_agent.cloudwatch_writer import CloudWatchWriter
from mem_agent.db import INSERT_SQL, PostgreSQLWriter
from mem_agent.dimensions import Dimension
from mem_agent.errors import ConfigError
from mem_agent.file_writer import FileWriter
from mem_agent.http_writer import HTTPWriter
from mem_agent.publisher import MetricRecord
from mem_agent.units import Unit

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
DIMS = (Dimension('InstanceId', 'i-0abc'),)
RECORDS = [
    MetricRecord('MemoryUtilization', NOW, Unit.PERCENT, 25.0, DIMS),
    MetricRecord('MemoryUsed', NOW, Unit.MEGABYTES, 250.0, DIMS),
    MetricRecord('MemoryAvailable', NOW, Unit.MEGABYTES, 750.0, DIMS),
]


class TestPostgreSQLWriter:
    """Test PostgreSQLWriter"""

    def _writer(self, pool):
        with patch('mem_agent.db.SimpleConnectionPool', return_value=pool) as pool_cls:
            writer = PostgreSQLWriter('postgresql://agent:secret@db/metrics')
        pool_cls.assert_called_once_with(1, 2, 'postgresql://agent:secret@db/metrics')
        return writer

    def test_submit_batch_inserts_all_records(self):
        pool = Mock()
        conn = MagicMock()
        pool.getconn.return_value = conn
        writer = self._writer(pool)

        with patch('mem_agent.db.execute_batch') as execute_batch:
            writer.submit_batch('System/Linux', RECORDS)

        cursor = conn.cursor.return_value.__enter__.return_value
        execute_batch.assert_called_once()
        args = execute_batch.call_args[0]
        assert args[0] is cursor
        assert args[1] == INSERT_SQL
        assert args[2][1] == (
            NOW, 'System/Linux', 'MemoryUsed', 'Megabytes', 250.0, json.dumps({'InstanceId': 'i-0abc'})
        )
        assert len(args[2]) == 3
        conn.commit.assert_called_once()
        pool.putconn.assert_called_once_with(conn)

    def test_submit_batch_rolls_back_on_error(self):
        pool = Mock()
        conn = MagicMock()
        pool.getconn.return_value = conn
        writer = self._writer(pool)

        with patch('mem_agent.db.execute_batch', side_effect=psycopg2.OperationalError('gone')):
            with pytest.raises(psycopg2.OperationalError):
                writer.submit_batch('System/Linux', RECORDS)

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        pool.putconn.assert_called_once_with(conn)

    def test_empty_batch_is_skipped(self):
        pool = Mock()
        writer = self._writer(pool)

        writer.submit_batch('System/Linux', [])

        pool.getconn.assert_not_called()

    def test_connection_failure_is_credentials_error(self):
        with patch('mem_agent.db.SimpleConnectionPool',
                   side_effect=psycopg2.OperationalError('password authentication failed')):
            with pytest.raises(ConfigError) as exc_info:
                PostgreSQLWriter('postgresql://agent:wrong@db/metrics')

        assert exc_info.value.stage == 'credentials'

    def test_close_closes_pool(self):
        pool = Mock()
        self._writer(pool).close()

        pool.closeall.assert_called_once()


class TestCloudWatchWriter:
    """Test CloudWatchWriter"""

    def _session(self, credentials='creds'):
        session = Mock()
        session.get_credentials.return_value = credentials
        return session

    def test_submit_batch_puts_metric_data(self):
        session = self._session()
        writer = CloudWatchWriter('eu-west-1', session=session)

        writer.submit_batch('System/Linux', RECORDS)

        session.client.assert_called_once_with('cloudwatch', region_name='eu-west-1')
        client = session.client.return_value
        client.put_metric_data.assert_called_once()
        kwargs = client.put_metric_data.call_args[1]
        assert kwargs['Namespace'] == 'System/Linux'
        assert len(kwargs['MetricData']) == 3
        assert kwargs['MetricData'][1] == {
            'MetricName': 'MemoryUsed',
            'Timestamp': NOW,
            'Unit': 'Megabytes',
            'Value': 250.0,
            'Dimensions': [{'Name': 'InstanceId', 'Value': 'i-0abc'}],
        }

    def test_static_keys_passed_to_session(self):
        with patch('mem_agent.cloudwatch_writer.boto3.session.Session') as session_cls:
            CloudWatchWriter('us-east-1', access_key_id='AKIAEXAMPLE', secret_access_key='secret')

        session_cls.assert_called_once_with(
            aws_access_key_id='AKIAEXAMPLE',
            aws_secret_access_key='secret',
            region_name='us-east-1',
        )

    def test_missing_credentials_is_credentials_error(self):
        with pytest.raises(ConfigError) as exc_info:
            CloudWatchWriter('us-east-1', session=self._session(credentials=None))

        assert exc_info.value.stage == 'credentials'

    def test_credential_lookup_failure_is_credentials_error(self):
        session = Mock()
        session.get_credentials.side_effect = NoCredentialsError()

        with pytest.raises(ConfigError) as exc_info:
            CloudWatchWriter('us-east-1', session=session)

        assert exc_info.value.stage == 'credentials'
        session.client.assert_not_called()

    def test_client_error_propagates(self):
        session = self._session()
        session.client.return_value.put_metric_data.side_effect = ClientError(
            {'Error': {'Code': 'Throttling', 'Message': 'Rate exceeded'}}, 'PutMetricData'
        )
        writer = CloudWatchWriter('us-east-1', session=session)

        with pytest.raises(ClientError):
            writer.submit_batch('System/Linux', RECORDS)

    def test_empty_batch_is_skipped(self):
        session = self._session()
        CloudWatchWriter('us-east-1', session=session).submit_batch('System/Linux', [])

        session.client.return_value.put_metric_data.assert_not_called()

    def test_close_closes_client(self):
        session = self._session()
        CloudWatchWriter('us-east-1', session=session).close()

        session.client.return_value.close.assert_called_once()


class TestHTTPWriter:
    """Test HTTPWriter"""

    def test_submit_batch_posts_json(self):
        session = Mock()
        session.headers = {}
        writer = HTTPWriter('https://metrics.example.com/v1/batch', 'token-123', session=session)

        writer.submit_batch('System/Linux', RECORDS)

        session.post.assert_called_once()
        url = session.post.call_args[0][0]
        payload = session.post.call_args[1]['json']
        assert url == 'https://metrics.example.com/v1/batch'
        assert payload['namespace'] == 'System/Linux'
        assert [m['name'] for m in payload['metrics']] == [
            'MemoryUtilization', 'MemoryUsed', 'MemoryAvailable',
        ]
        assert payload['metrics'][1]['unit'] == 'Megabytes'
        assert 'timeout' not in session.post.call_args[1]
        assert session.headers['Authorization'] == 'Bearer token-123'
        session.post.return_value.raise_for_status.assert_called_once()

    def test_http_error_propagates(self):
        session = Mock()
        session.headers = {}
        session.post.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError('503')
        writer = HTTPWriter('https://metrics.example.com/v1/batch', 'token-123', session=session)

        with pytest.raises(requests.exceptions.HTTPError):
            writer.submit_batch('System/Linux', RECORDS)

    def test_connection_error_propagates(self):
        session = Mock()
        session.headers = {}
        session.post.side_effect = requests.exceptions.ConnectionError('Connection refused')
        writer = HTTPWriter('https://metrics.example.com/v1/batch', 'token-123', session=session)

        with pytest.raises(requests.exceptions.ConnectionError):
            writer.submit_batch('System/Linux', RECORDS)

    def test_close_closes_session(self):
        session = Mock()
        session.headers = {}
        HTTPWriter('https://metrics.example.com', 't', session=session).close()

        session.close.assert_called_once()


class TestFileWriter:
    """Test FileWriter"""

    def test_creates_output_dir(self, tmp_path):
        FileWriter(str(tmp_path / 'nested' / 'out'))

        assert (tmp_path / 'nested' / 'out').is_dir()

    def test_submit_batch_appends_jsonl(self, tmp_path):
        writer = FileWriter(str(tmp_path))

        writer.submit_batch('System/Linux', RECORDS)
        writer.submit_batch('System/Linux', RECORDS[:1])

        files = list(tmp_path.glob('metrics-*.jsonl'))
        assert len(files) == 1
        lines = [json.loads(line) for line in files[0].read_text().splitlines()]
        assert len(lines) == 4
        assert lines[0] == {
            'namespace': 'System/Linux',
            'name': 'MemoryUtilization',
            'timestamp': '2026-01-01T12:00:00+00:00',
            'unit': 'Percent',
            'value': 25.0,
            'dimensions': {'InstanceId': 'i-0abc'},
        }

    def test_daily_file_name(self, tmp_path):
        writer = FileWriter(str(tmp_path))
        today = datetime.now(timezone.utc).strftime('%Y-%m-%d')

        writer.submit_batch('System/Linux', RECORDS)

        assert (tmp_path / f'metrics-{today}.jsonl').exists()

    def test_empty_batch_writes_nothing(self, tmp_path):
        FileWriter(str(tmp_path)).submit_batch('System/Linux', [])

        assert list(tmp_path.iterdir()) == []
