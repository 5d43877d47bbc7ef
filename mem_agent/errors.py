"""
Error types raised by the memory agent.

Each error carries a short ``stage`` label that the CLI logs before exiting,
so operators can tell which part of the pipeline failed.
"""


class AgentError(Exception):
    """Base class for all agent failures"""
    stage = 'agent'


class ConfigError(AgentError):
    """Configuration validation error (fatal at startup)"""
    stage = 'config'

    def __init__(self, message: str, stage: str = 'config'):
        super().__init__(message)
        self.stage = stage


class InvalidUnitError(ConfigError):
    """Unknown memory unit token"""

    def __init__(self, token: str):
        super().__init__(f"Invalid memory unit: {token!r}")
        self.token = token


class HostStatError(AgentError):
    """Reading memory statistics from the host failed"""
    stage = 'sample'


class PublishError(AgentError):
    """Submitting a metric batch to the sink failed"""
    stage = 'put'


class GraceExhaustedError(AgentError):
    """Too many consecutive publish failures"""
    stage = 'put'

    def __init__(self, failures: int, threshold: int):
        super().__init__(
            f"exceeded grace count: {failures} consecutive failures (threshold {threshold})"
        )
        self.failures = failures
        self.threshold = threshold
