"""
Unit tests for the observability layer
Tests that the six threshold alarms exist only when alarms are enabled
"""

import aws_cdk as core
import aws_cdk.assertions as assertions
import pytest

from stacks.observability import ALARM_DEFINITIONS
from stacks.tap_stack import TapStack

ENV = core.Environment(account="111122223333", region="us-east-1")

# alarm name -> (namespace, metric, statistic, threshold)
EXPECTED_ALARMS = {
    "tap-lambda-errors": ("AWS/Lambda", "Errors", "Sum", 5),
    "tap-lambda-duration": ("AWS/Lambda", "Duration", "Average", 10000),
    "tap-api-4xx-errors": ("AWS/ApiGateway", "4XXError", "Sum", 10),
    "tap-api-5xx-errors": ("AWS/ApiGateway", "5XXError", "Sum", 5),
    "tap-db-cpu-utilization": ("AWS/RDS", "CPUUtilization", "Average", 80),
    "tap-db-connections": ("AWS/RDS", "DatabaseConnections", "Average", 80),
}


class TestObservability:
    """Test class for the TAP alarms"""

    @pytest.fixture
    def app(self):
        """Create CDK app for testing"""
        return core.App(context={"aws:cdk:bundling-stacks": []})

    @pytest.fixture
    def stack(self, app):
        """Create TAP stack for testing"""
        return TapStack(app, "test-tap-stack", env=ENV)

    @pytest.fixture
    def template(self, stack):
        """Create CDK template for assertions"""
        return assertions.Template.from_stack(stack)

    def test_six_alarms_when_enabled(self, stack, template):
        """Alarms flag on declares exactly six alarms"""
        template.resource_count_is("AWS::CloudWatch::Alarm", 6)
        assert len(stack.alarms.alarms) == 6

    @pytest.mark.parametrize("alarm_name", sorted(EXPECTED_ALARMS))
    def test_alarm_thresholds(self, template, alarm_name):
        """Each alarm watches its metric over 5 minutes, 2 periods"""
        namespace, metric, statistic, threshold = EXPECTED_ALARMS[alarm_name]

        template.has_resource_properties("AWS::CloudWatch::Alarm", {
            "AlarmName": alarm_name,
            "Namespace": namespace,
            "MetricName": metric,
            "Statistic": statistic,
            "Threshold": threshold,
            "Period": 300,
            "EvaluationPeriods": 2,
            "ComparisonOperator": "GreaterThanThreshold",
        })

    def test_alarms_have_no_actions(self, template):
        """Alarm state is observable but nothing is notified"""
        for alarm in template.find_resources("AWS::CloudWatch::Alarm").values():
            assert "AlarmActions" not in alarm["Properties"]
        template.resource_count_is("AWS::SNS::Topic", 0)

    def test_alarms_reference_stack_resources(self, stack, template):
        """Alarm dimensions point at this stack's function, API and database"""
        template.has_resource_properties("AWS::CloudWatch::Alarm", {
            "AlarmName": "tap-lambda-errors",
            "Dimensions": [{
                "Name": "FunctionName",
                "Value": stack.resolve(stack.api.function.function_name),
            }],
        })
        template.has_resource_properties("AWS::CloudWatch::Alarm", {
            "AlarmName": "tap-db-connections",
            "Dimensions": [{
                "Name": "DBInstanceIdentifier",
                "Value": stack.resolve(stack.database.instance.instance_identifier),
            }],
        })

    def test_no_alarms_when_disabled(self, app):
        """Alarms flag off declares no alarms at all"""
        stack = TapStack(
            app,
            "test-tap-stack-quiet",
            options={"enable_cloudwatch_alarms": False},
            env=ENV,
        )
        template = assertions.Template.from_stack(stack)

        template.resource_count_is("AWS::CloudWatch::Alarm", 0)
        assert stack.alarms is None

    def test_alarm_names_follow_environment_suffix(self, app):
        """Suffix reaches the alarm names"""
        stack = TapStack(
            app, "test-tap-stack-dev", options={"environment_suffix": "dev"}, env=ENV
        )
        template = assertions.Template.from_stack(stack)

        template.has_resource_properties("AWS::CloudWatch::Alarm", {
            "AlarmName": "tap-dev-lambda-errors",
        })

    def test_definition_table_is_complete(self, stack):
        """Each table row names a metric its source resource provides"""
        sources = {
            "function": stack.api.function,
            "rest_api": stack.api.rest_api,
            "database": stack.database.instance,
        }

        assert len({d.construct_id for d in ALARM_DEFINITIONS}) == 6
        for definition in ALARM_DEFINITIONS:
            assert callable(getattr(sources[definition.source], definition.metric))
            assert f"tap-{definition.name}" in EXPECTED_ALARMS
        assert set(stack.alarms.alarms) == {d.construct_id for d in ALARM_DEFINITIONS}
