"""
CloudWatch writer for memory metrics.

Sends each batch with a single PutMetricData call. Unit names on the
records (Percent, Bytes, Kilobytes, ...) are CloudWatch standard units.
"""

from typing import List, Optional

import boto3
from botocore.exceptions import BotoCoreError

from mem_agent.errors import ConfigError


class CloudWatchWriter:
    """Submits metric batches to Amazon CloudWatch"""

    def __init__(
        self,
        region: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        session: Optional[boto3.session.Session] = None,
    ):
        """
        Resolve credentials and create the CloudWatch client.

        Static keys are used when given; otherwise boto3's default chain
        (environment, shared config, instance profile) applies.

        Raises:
            ConfigError: If no credentials can be resolved (stage 'credentials')
        """
        try:
            self.session = session or boto3.session.Session(
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                region_name=region,
            )
            credentials = self.session.get_credentials()
        except BotoCoreError as e:
            raise ConfigError(f"Cannot resolve AWS credentials: {e}", stage='credentials') from e

        if credentials is None:
            raise ConfigError("No AWS credentials found", stage='credentials')

        self.client = self.session.client('cloudwatch', region_name=region)

    def submit_batch(self, namespace: str, records: List) -> None:
        """PutMetricData for a batch; botocore errors propagate"""
        if not records:
            return

        metric_data = [
            {
                'MetricName': r.name,
                'Timestamp': r.timestamp,
                'Unit': r.unit.value,
                'Value': r.value,
                'Dimensions': [{'Name': d.name, 'Value': d.value} for d in r.dimensions],
            }
            for r in records
        ]
        self.client.put_metric_data(Namespace=namespace, MetricData=metric_data)

    def close(self):
        self.client.close()
