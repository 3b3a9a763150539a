from typing import NamedTuple

from aws_cdk import (
    Duration,
    aws_cloudwatch as cloudwatch,
)
from constructs import Construct

from stacks.api import TapApi
from stacks.config import TapConfig
from stacks.database import TapDatabase

ALARM_PERIOD = Duration.minutes(5)
EVALUATION_PERIODS = 2


class AlarmDefinition(NamedTuple):
    """One threshold alarm and the metric it watches."""

    construct_id: str
    name: str
    # Which resource emits the metric ("function", "rest_api" or "database")
    source: str
    metric: str
    statistic: str
    threshold: float
    description: str


ALARM_DEFINITIONS = [
    AlarmDefinition(
        "LambdaErrorAlarm", "lambda-errors", "function", "metric_errors", "Sum", 5,
        "Lambda function error rate is high",
    ),
    AlarmDefinition(
        "LambdaDurationAlarm", "lambda-duration", "function", "metric_duration",
        "Average", 10000,  # milliseconds
        "Lambda function duration is high",
    ),
    AlarmDefinition(
        "Api4xxAlarm", "api-4xx-errors", "rest_api", "metric_client_error", "Sum", 10,
        "API Gateway 4XX error rate is high",
    ),
    AlarmDefinition(
        "Api5xxAlarm", "api-5xx-errors", "rest_api", "metric_server_error", "Sum", 5,
        "API Gateway 5XX error rate is high",
    ),
    AlarmDefinition(
        "DatabaseCpuAlarm", "db-cpu-utilization", "database", "metric_cpu_utilization",
        "Average", 80,  # percent
        "Database CPU utilization is high",
    ),
    AlarmDefinition(
        "DatabaseConnectionsAlarm", "db-connections", "database",
        "metric_database_connections", "Average", 80,
        "Database connection count is high",
    ),
]


class TapAlarms(Construct):
    """
    Threshold alarms over the function, gateway and database metrics.

    No alarm actions are attached; alarm state is visible in CloudWatch only.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: TapConfig,
        api: TapApi,
        database: TapDatabase,
    ) -> None:
        super().__init__(scope, construct_id)

        sources = {
            "function": api.function,
            "rest_api": api.rest_api,
            "database": database.instance,
        }

        self.alarms = {}
        for definition in ALARM_DEFINITIONS:
            metric = getattr(sources[definition.source], definition.metric)(
                period=ALARM_PERIOD,
                statistic=definition.statistic,
            )
            self.alarms[definition.construct_id] = cloudwatch.Alarm(
                self,
                definition.construct_id,
                alarm_name=f"{config.resource_prefix}-{definition.name}",
                alarm_description=definition.description,
                metric=metric,
                threshold=definition.threshold,
                evaluation_periods=EVALUATION_PERIODS,
                comparison_operator=cloudwatch.ComparisonOperator.GREATER_THAN_THRESHOLD,
                treat_missing_data=cloudwatch.TreatMissingData.NOT_BREACHING,
            )
