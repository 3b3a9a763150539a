"""
Build-time configuration for the TAP stack.

Caller options are merged over the defaults below into one immutable
TapConfig that every layer construct reads from.
"""

import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from aws_cdk import (
    aws_codebuild as codebuild,
    aws_ec2 as ec2,
    aws_lambda as lambda_,
    aws_rds as rds,
)
from constructs import Node

logger = logging.getLogger(__name__)

RESOURCE_PREFIX = "tap"

# Performance Insights is not available on this instance type
SMALLEST_INSTANCE_TYPE = "t3.micro"

_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off")

# CloudFormation names of the general-purpose build sizes, keyed by enum member
BUILD_COMPUTE_TYPES = {
    "SMALL": "BUILD_GENERAL1_SMALL",
    "MEDIUM": "BUILD_GENERAL1_MEDIUM",
    "LARGE": "BUILD_GENERAL1_LARGE",
    "X_LARGE": "BUILD_GENERAL1_XLARGE",
    "X2_LARGE": "BUILD_GENERAL1_2XLARGE",
}


@dataclass(frozen=True)
class TapConfig:
    """
    Resolved configuration for one stack build.

    Attributes:
        lambda_runtime: Runtime of the API function
        rds_engine_version: MySQL engine version
        rds_instance_class: Database instance class
        rds_instance_size: Database instance size
        codebuild_image: Build image for the pipeline build project
        codebuild_compute_type: Build compute size
        backup_retention_days: Automated database backup retention
        enable_xray_tracing: Active tracing on the function and gateway stage
        enable_cloudwatch_alarms: Declare the threshold alarms
        environment_suffix: Appended to resource names to isolate environments
    """

    lambda_runtime: lambda_.Runtime
    rds_engine_version: rds.MysqlEngineVersion
    rds_instance_class: ec2.InstanceClass
    rds_instance_size: ec2.InstanceSize
    codebuild_image: codebuild.IBuildImage
    codebuild_compute_type: codebuild.ComputeType
    backup_retention_days: int
    enable_xray_tracing: bool
    enable_cloudwatch_alarms: bool
    environment_suffix: str

    @property
    def resource_prefix(self) -> str:
        if self.environment_suffix:
            return f"{RESOURCE_PREFIX}-{self.environment_suffix}"
        return RESOURCE_PREFIX

    @property
    def rds_instance_type(self) -> ec2.InstanceType:
        return ec2.InstanceType.of(self.rds_instance_class, self.rds_instance_size)

    @property
    def performance_insights_enabled(self) -> bool:
        return performance_insights_supported(
            self.rds_instance_class, self.rds_instance_size
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain, JSON-serializable view of the configuration."""
        return {
            "lambda_runtime": self.lambda_runtime.name,
            "rds_engine_version": self.rds_engine_version.mysql_full_version,
            "rds_instance_type": self.rds_instance_type.to_string(),
            "codebuild_image": self.codebuild_image.image_id,
            "codebuild_compute_type": BUILD_COMPUTE_TYPES.get(
                self.codebuild_compute_type.name, self.codebuild_compute_type.name
            ),
            "backup_retention_days": self.backup_retention_days,
            "enable_xray_tracing": self.enable_xray_tracing,
            "enable_cloudwatch_alarms": self.enable_cloudwatch_alarms,
            "environment_suffix": self.environment_suffix,
        }


DEFAULTS = TapConfig(
    lambda_runtime=lambda_.Runtime.PYTHON_3_12,
    rds_engine_version=rds.MysqlEngineVersion.VER_8_0,
    rds_instance_class=ec2.InstanceClass.T3,
    rds_instance_size=ec2.InstanceSize.MICRO,
    codebuild_image=codebuild.LinuxBuildImage.STANDARD_7_0,
    codebuild_compute_type=codebuild.ComputeType.SMALL,
    backup_retention_days=7,
    enable_xray_tracing=True,
    enable_cloudwatch_alarms=True,
    environment_suffix="",
)

OPTION_NAMES = tuple(f.name for f in fields(TapConfig))


def resolve_config(options: Optional[Mapping[str, Any]] = None) -> TapConfig:
    """
    Merge caller options over DEFAULTS.

    An option that is missing or None falls back to its default; any other
    value, including False and 0, is kept as given.
    """
    options = dict(options or {})
    unknown = sorted(set(options) - set(OPTION_NAMES))
    if unknown:
        raise TypeError(f"Unknown TAP stack option(s): {', '.join(unknown)}")

    resolved = {}
    for name in OPTION_NAMES:
        value = options.get(name)
        resolved[name] = getattr(DEFAULTS, name) if value is None else value

    config = TapConfig(**resolved)
    logger.debug("Resolved TAP configuration: %s", config.to_dict())
    return config


def performance_insights_supported(
    instance_class: ec2.InstanceClass, instance_size: ec2.InstanceSize
) -> bool:
    # Class aliases (T3 / BURSTABLE3) render to the same instance type string
    instance_type = ec2.InstanceType.of(instance_class, instance_size)
    return instance_type.to_string() != SMALLEST_INSTANCE_TYPE


def bucket_name(purpose: str, account: str, region: str, suffix: str = "") -> str:
    """Globally unique bucket name: tap-{purpose}-{account}-{region}[-{suffix}]"""
    name = f"{RESOURCE_PREFIX}-{purpose}-{account}-{region}"
    if suffix:
        name = f"{name}-{suffix}"
    return name


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"Context value for '{key}' is not a boolean: {value!r}")


def _parse_int(key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Context value for '{key}' is not an integer: {value!r}") from e


# CDK context key -> (option name, parser)
CONTEXT_OPTIONS = {
    "envSuffix": ("environment_suffix", lambda key, value: str(value)),
    "backupRetentionDays": ("backup_retention_days", _parse_int),
    "enableXRayTracing": ("enable_xray_tracing", _parse_bool),
    "enableCloudWatchAlarms": ("enable_cloudwatch_alarms", _parse_bool),
}


def config_from_context(node: Node) -> Dict[str, Any]:
    """Read stack options passed with `cdk synth -c key=value`."""
    options = {}
    for key, (name, parse) in CONTEXT_OPTIONS.items():
        value = node.try_get_context(key)
        if value is None:
            continue
        options[name] = parse(key, value)
    return options
