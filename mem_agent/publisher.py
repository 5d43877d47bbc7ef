"""
Turns memory samples into metric batches and ships them to a sink.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Tuple

from mem_agent.dimensions import Dimension, dimensions_as_dict
from mem_agent.errors import PublishError
from mem_agent.sampler import Sample
from mem_agent.units import Unit, convert

logger = logging.getLogger(__name__)

METRIC_UTILIZATION = 'MemoryUtilization'
METRIC_USED = 'MemoryUsed'
METRIC_AVAILABLE = 'MemoryAvailable'


@dataclass(frozen=True)
class MetricRecord:
    """One metric data point"""
    name: str
    timestamp: datetime
    unit: Unit
    value: float
    dimensions: Tuple[Dimension, ...] = ()

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'timestamp': self.timestamp.isoformat(),
            'unit': self.unit.value,
            'value': self.value,
            'dimensions': dimensions_as_dict(self.dimensions),
        }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_batch(
    sample: Sample,
    unit: Unit,
    dimensions: Tuple[Dimension, ...],
    timestamp: datetime,
) -> List[MetricRecord]:
    """
    Build the three memory records for one sample.

    All records share the same timestamp. Utilization is always in percent;
    used and available are converted into the configured unit.
    """
    return [
        MetricRecord(METRIC_UTILIZATION, timestamp, Unit.PERCENT,
                     convert(Unit.PERCENT, sample.utilization), dimensions),
        MetricRecord(METRIC_USED, timestamp, unit,
                     convert(unit, sample.used), dimensions),
        MetricRecord(METRIC_AVAILABLE, timestamp, unit,
                     convert(unit, sample.free), dimensions),
    ]


class MetricPublisher:
    """Publishes memory samples as one batch per call"""

    def __init__(
        self,
        writer,  # any object with submit_batch() and close()
        namespace: str,
        unit: Unit,
        dimensions: Tuple[Dimension, ...] = (),
        now: Callable[[], datetime] = _utc_now,
    ):
        self.writer = writer
        self.namespace = namespace
        self.unit = unit
        self.dimensions = dimensions
        self._now = now

    def publish(self, sample: Sample) -> List[MetricRecord]:
        """
        Build and submit the batch for a sample.

        Every record is logged before the submit, whatever its outcome.

        Raises:
            PublishError: If the sink rejects the batch
        """
        records = build_batch(sample, self.unit, self.dimensions, self._now())

        for record in records:
            logger.info("metric", extra={'context': {
                'name': record.name,
                'timestamp': record.timestamp.isoformat(),
                'unit': record.unit.value,
                'value': record.value,
            }})

        start = time.monotonic()
        try:
            self.writer.submit_batch(self.namespace, records)
        except Exception as e:
            logger.error("put", extra={'context': {
                'namespace': self.namespace,
                'duration_ms': round((time.monotonic() - start) * 1000, 3),
                'error': str(e),
            }})
            raise PublishError(f"Failed to put metrics to {self.namespace}: {e}") from e

        logger.info("put", extra={'context': {
            'namespace': self.namespace,
            'duration_ms': round((time.monotonic() - start) * 1000, 3),
            'records': len(records),
        }})
        return records

    def close(self):
        """Close the underlying writer"""
        self.writer.close()
