"""
Agent configuration.

Settings come from CLI flags (or their environment variables), then the
``monitoring`` section of an optional YAML file, then built-in defaults.
The result is an immutable AgentConfig built once at startup.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from logcore import parse_level
from mem_agent.errors import ConfigError
from mem_agent.units import Unit, parse_unit

DEFAULTS = {
    'period': 5,
    'grace': 3,
    'unit': 'bytes',
    'namespace': 'System/Linux',
    'level': 'info',
    'output': 'postgres',
    'aws_region': 'us-east-1',
}

VALID_OUTPUTS = ['postgres', 'cloudwatch', 'http', 'file']

# Config key -> dimension name, in the order they are attached
IDENTITY_DIMENSIONS = [
    ('instance_id', 'InstanceId'),
    ('autoscaling_group_name', 'AutoScalingGroupName'),
    ('instance_type', 'InstanceType'),
    ('image_id', 'ImageId'),
]


@dataclass(frozen=True)
class AgentConfig:
    """Validated, read-only agent settings"""
    period: int
    grace: int
    unit: Unit
    namespace: str
    level: str
    output: str
    dimension_pairs: Tuple[Tuple[str, str], ...] = ()
    postgres_url: Optional[str] = None
    endpoint: Optional[str] = None
    api_token: Optional[str] = None
    output_dir: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = 'us-east-1'


def load_config_file(config_path) -> Dict[str, Any]:
    """
    Read the ``monitoring`` section of a YAML config file.

    Raises:
        ConfigError: If the file is missing, not valid YAML, or malformed
    """
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    section = data.get('monitoring', {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError("'monitoring' section must be a mapping")
    return section


def _int_setting(name: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ConfigError(f"{name} must be a whole number, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if number < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {number}")
    return number


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == '':
        return None
    return os.path.expandvars(str(value))


def build_config(
    file_values: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> AgentConfig:
    """
    Merge settings and validate them.

    ``overrides`` holds CLI/environment values; None entries fall through to
    the file values and then to DEFAULTS.

    Raises:
        ConfigError: On any invalid setting (InvalidUnitError for units)
    """
    merged: Dict[str, Any] = dict(DEFAULTS)
    merged.update(file_values or {})
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})

    period = _int_setting('period', merged['period'], minimum=1)
    grace = _int_setting('grace', merged['grace'], minimum=0)
    unit = parse_unit(merged['unit'])

    level = str(merged['level']).lower()
    try:
        parse_level(level)
    except ValueError as e:
        raise ConfigError(str(e))

    output = merged['output']
    if output not in VALID_OUTPUTS:
        raise ConfigError(f"Invalid output: {output}. Must be one of {VALID_OUTPUTS}")

    namespace = merged['namespace']
    if not namespace or not isinstance(namespace, str):
        raise ConfigError("namespace must be a non-empty string")

    pairs = [(dim_name, merged.get(key) or '') for key, dim_name in IDENTITY_DIMENSIONS]

    extra = merged.get('dimensions') or {}
    if not isinstance(extra, dict):
        raise ConfigError("'dimensions' must be a mapping of name: value")
    # Non-string values are dropped later by the dimension builder
    pairs.extend((name, value) for name, value in extra.items())

    return AgentConfig(
        period=period,
        grace=grace,
        unit=unit,
        namespace=namespace,
        level=level,
        output=output,
        dimension_pairs=tuple(pairs),
        postgres_url=_optional_str(merged.get('postgres_url')),
        endpoint=_optional_str(merged.get('endpoint')),
        api_token=_optional_str(merged.get('api_token')),
        output_dir=_optional_str(merged.get('output_dir')),
        aws_access_key_id=_optional_str(merged.get('aws_access_key_id')),
        aws_secret_access_key=_optional_str(merged.get('aws_secret_access_key')),
        aws_region=_optional_str(merged['aws_region']) or DEFAULTS['aws_region'],
    )
