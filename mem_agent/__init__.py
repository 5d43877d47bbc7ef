"""
mem_agent: Host memory metrics daemon

Samples memory utilization on a fixed period and publishes it to a metrics
sink (PostgreSQL, HTTP or JSONL files), tagged with host dimensions.
"""

from mem_agent.agent import MonitoringAgent
from mem_agent.grace import Action, GraceController
from mem_agent.publisher import MetricPublisher, MetricRecord
from mem_agent.sampler import MemorySampler, Sample

__all__ = [
    'Action',
    'GraceController',
    'MemorySampler',
    'MetricPublisher',
    'MetricRecord',
    'MonitoringAgent',
    'Sample',
]
__version__ = '1.0.0'
