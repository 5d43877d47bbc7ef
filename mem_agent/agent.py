#!/usr/bin/env python3
"""
Memory agent daemon - main loop for sampling and publishing memory metrics.
"""

import logging
import sys
import time
from typing import Callable, Optional

import click

from logcore import setup_logging
from mem_agent.cloudwatch_writer import CloudWatchWriter
from mem_agent.config import AgentConfig, build_config, load_config_file
from mem_agent.db import PostgreSQLWriter
from mem_agent.dimensions import build_dimensions, dimensions_as_dict
from mem_agent.errors import AgentError, ConfigError, GraceExhaustedError, PublishError
from mem_agent.file_writer import FileWriter
from mem_agent.grace import Action, GraceController
from mem_agent.http_writer import HTTPWriter
from mem_agent.publisher import MetricPublisher
from mem_agent.sampler import MemorySampler

logger = logging.getLogger(__name__)


class MonitoringAgent:
    """Samples memory and publishes it on a fixed period"""

    def __init__(
        self,
        sampler: MemorySampler,
        publisher: MetricPublisher,
        grace: GraceController,
        period: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.sampler = sampler
        self.publisher = publisher
        self.grace = grace
        self.period = period
        self.running = False
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: AgentConfig, writer, **kwargs) -> 'MonitoringAgent':
        """Wire the pipeline for a validated configuration and an open writer"""
        publisher = MetricPublisher(
            writer,
            namespace=config.namespace,
            unit=config.unit,
            dimensions=build_dimensions(config.dimension_pairs),
        )
        return cls(
            sampler=MemorySampler(),
            publisher=publisher,
            grace=GraceController(config.grace),
            period=config.period,
            **kwargs
        )

    def stop(self):
        """Finish the current tick and leave the loop"""
        self.running = False

    def run(self):
        """
        Main daemon loop.

        The first tick fires one period after start. Ticks never overlap: a
        slow tick delays the next one, and missed ticks are dropped rather
        than queued.

        Raises:
            HostStatError: Memory could not be read (fatal immediately)
            GraceExhaustedError: Too many consecutive publish failures
        """
        self.running = True
        deadline = self._clock() + self.period

        try:
            while self.running:
                delay = deadline - self._clock()
                if delay > 0:
                    self._sleep(delay)
                if not self.running:
                    break
                self.tick()
                deadline = self._next_deadline(deadline)
        finally:
            self._cleanup()

    def tick(self) -> Action:
        """Single sample-publish cycle"""
        sample = self.sampler.sample()

        error: Optional[PublishError] = None
        try:
            self.publisher.publish(sample)
        except PublishError as e:
            error = e

        action = self.grace.record(error)
        if error is not None:
            logger.error("publish failed", extra={'context': {
                'error': str(error),
                'failures': self.grace.failures,
                'grace': self.grace.threshold,
            }})

        if action is Action.ABORT:
            raise GraceExhaustedError(self.grace.failures, self.grace.threshold) from error
        return action

    def _next_deadline(self, deadline: float) -> float:
        deadline += self.period
        now = self._clock()
        if deadline < now:
            # Fire once right away, then stay on the period grid
            skipped = int((now - deadline) // self.period)
            deadline += skipped * self.period
            logger.warning("tick overrun", extra={'context': {
                'period': self.period,
                'skipped_ticks': skipped,
            }})
        return deadline

    def _cleanup(self):
        self.running = False
        try:
            self.publisher.close()
        except Exception:
            logger.exception("close failed")


def create_writer(config: AgentConfig):
    """
    Open the metrics sink selected by ``config.output``.

    Raises:
        ConfigError: If required settings or credentials are missing, or the
            sink cannot be reached
    """
    if config.output == 'file':
        if not config.output_dir:
            raise ConfigError("output_dir not configured for file output mode")
        try:
            return FileWriter(config.output_dir)
        except OSError as e:
            raise ConfigError(f"Cannot use output_dir {config.output_dir}: {e}") from e

    if config.output == 'cloudwatch':
        return CloudWatchWriter(
            config.aws_region,
            access_key_id=config.aws_access_key_id,
            secret_access_key=config.aws_secret_access_key,
        )

    if config.output == 'http':
        if not config.endpoint:
            raise ConfigError("endpoint not configured for http output mode")
        if not config.api_token:
            raise ConfigError("api_token not configured for http output mode", stage='credentials')
        return HTTPWriter(config.endpoint, config.api_token)

    if not config.postgres_url:
        raise ConfigError("postgres_url not configured for postgres output mode", stage='credentials')
    return PostgreSQLWriter(config.postgres_url)


def _fatal(error: AgentError):
    """Log a fatal error under its stage label and exit non-zero"""
    logger.critical(error.stage, exc_info=error, extra={'context': {
        'error': str(error),
        'error_type': type(error).__name__,
    }})
    sys.exit(1)


@click.command()
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Path to config.yml (reads the monitoring section)')
@click.option('--namespace', envvar='MEM_AGENT_NAMESPACE', default=None,
              help='Metric namespace [default: System/Linux]')
@click.option('--period', '-p', envvar='MEM_AGENT_PERIOD', type=int, default=None,
              help='Period (in seconds) to take metric measurement [default: 5]')
@click.option('--grace', '-g', envvar='MEM_AGENT_GRACE', type=int, default=None,
              help='Number of consecutive put errors allowed before a forced exit [default: 3]')
@click.option('--unit', '-u', envvar='MEM_AGENT_UNIT', default=None,
              help='Unit for used/available memory: bytes, kilobytes, megabytes, gigabytes [default: bytes]')
@click.option('--level', '-l', envvar='MEM_AGENT_LOG_LEVEL', default=None,
              help='Log level: debug, info, warn, error, fatal [default: info]')
@click.option('--output', envvar='MEM_AGENT_OUTPUT', default=None,
              help='Metrics sink: postgres, cloudwatch, http or file [default: postgres]')
@click.option('--postgres-url', envvar='OBSERV_DB_URL', default=None, help='PostgreSQL connection string')
@click.option('--aws-access-key-id', envvar='AWS_ACCESS_KEY_ID', default=None, help='AWS Access Key ID')
@click.option('--aws-secret-access-key', envvar='AWS_SECRET_ACCESS_KEY', default=None, help='AWS Secret Key')
@click.option('--aws-region', envvar='AWS_REGION', default=None, help='AWS Region [default: us-east-1]')
@click.option('--endpoint', envvar='MEM_AGENT_ENDPOINT', default=None, help='HTTP ingestion endpoint')
@click.option('--api-token', envvar='MEM_AGENT_API_TOKEN', default=None, help='HTTP bearer token')
@click.option('--output-dir', envvar='MEM_AGENT_OUTPUT_DIR', default=None, help='Directory for file output')
@click.option('--instance-id', envvar='INSTANCE_ID', default=None, help='EC2 Instance ID')
@click.option('--autoscaling-group-name', envvar='AUTOSCALING_GROUP_NAME', default=None,
              help='AutoScaling Group Name')
@click.option('--instance-type', envvar='INSTANCE_TYPE', default=None, help='EC2 Instance Type')
@click.option('--image-id', envvar='IMAGE_ID', default=None, help='EC2 Image ID')
def main(config_path: Optional[str], **overrides):
    """Publish host memory utilization metrics"""
    setup_logging('info', name='mem_agent')

    try:
        file_values = load_config_file(config_path) if config_path else {}
        config = build_config(file_values, overrides)
        setup_logging(config.level, name='mem_agent')
        writer = create_writer(config)
    except ConfigError as e:
        _fatal(e)

    agent = MonitoringAgent.from_config(config, writer)
    logger.info("start", extra={'context': {
        'namespace': config.namespace,
        'period': config.period,
        'grace': config.grace,
        'unit': config.unit.value,
        'output': config.output,
        'dimensions': dimensions_as_dict(agent.publisher.dimensions),
    }})

    try:
        agent.run()
    except AgentError as e:
        _fatal(e)


if __name__ == '__main__':
    main()
