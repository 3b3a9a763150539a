import os

from aws_cdk import (
    BundlingOptions,
    Duration,
    RemovalPolicy,
    aws_apigateway as apigateway,
    aws_ec2 as ec2,
    aws_iam as iam,
    aws_lambda as lambda_,
    aws_logs as logs,
    aws_secretsmanager as secretsmanager,
)
from constructs import Construct

from stacks.config import TapConfig
from stacks.network import TapNetwork

# Assets live in the repository checkout, next to the stacks package
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
HANDLER_ASSET = os.path.join(REPO_ROOT, "lambda")
LAYER_ASSET = os.path.join(REPO_ROOT, "lambda-layer")

API_VERSION = "1.0.0"

CORS_ALLOW_HEADERS = [
    "Content-Type",
    "X-Amz-Date",
    "Authorization",
    "X-Api-Key",
    "X-Request-ID",
]


class TapApi(Construct):
    """
    API function and the REST API in front of it.

    Both routes (GET / and GET /health) proxy to the same Lambda integration.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: TapConfig,
        network: TapNetwork,
    ) -> None:
        super().__init__(scope, construct_id)

        tracing = config.enable_xray_tracing

        # Network identity of the function; the database admits only this group
        self.security_group = ec2.SecurityGroup(
            self,
            "FunctionSecurityGroup",
            vpc=network.vpc,
            description="Security group for the TAP API function",
            allow_all_outbound=True,
        )

        self.log_group = logs.LogGroup(
            self,
            "ApiFunctionLogs",
            retention=logs.RetentionDays.ONE_MONTH,
            removal_policy=RemovalPolicy.DESTROY,
        )

        # Handler dependencies (the X-Ray SDK), installed at synth time
        self.dependencies_layer = lambda_.LayerVersion(
            self,
            "DependenciesLayer",
            code=lambda_.Code.from_asset(
                LAYER_ASSET,
                bundling=BundlingOptions(
                    image=config.lambda_runtime.bundling_image,
                    command=[
                        "bash",
                        "-c",
                        "pip install -r requirements.txt -t /asset-output/python",
                    ],
                ),
            ),
            compatible_runtimes=[config.lambda_runtime],
            description="Dependencies for the TAP API function",
        )

        self.function = lambda_.Function(
            self,
            "ApiLambda",
            function_name=f"{config.resource_prefix}-api-handler",
            runtime=config.lambda_runtime,
            handler="api_handler.handler",
            code=lambda_.Code.from_asset(HANDLER_ASSET),
            layers=[self.dependencies_layer],
            vpc=network.vpc,
            vpc_subnets=network.compute_subnets,
            security_groups=[self.security_group],
            environment={
                "APP_ENV": "production",
                "APP_VERSION": API_VERSION,
                "TRACING_ENABLED": "true" if tracing else "false",
            },
            tracing=lambda_.Tracing.ACTIVE if tracing else lambda_.Tracing.DISABLED,
            timeout=Duration.seconds(30),
            memory_size=256,
            log_group=self.log_group,
        )

        if tracing:
            self.function.role.add_managed_policy(
                iam.ManagedPolicy.from_aws_managed_policy_name("AWSXRayDaemonWriteAccess")
            )

        self.access_log_group = logs.LogGroup(
            self,
            "ApiAccessLogs",
            retention=logs.RetentionDays.ONE_MONTH,
            removal_policy=RemovalPolicy.DESTROY,
        )

        self.rest_api = apigateway.RestApi(
            self,
            "TapApi",
            rest_api_name=f"{config.resource_prefix}-api",
            description="TAP API Gateway",
            cloud_watch_role=True,
            default_cors_preflight_options=apigateway.CorsOptions(
                allow_origins=apigateway.Cors.ALL_ORIGINS,
                allow_methods=apigateway.Cors.ALL_METHODS,
                allow_headers=CORS_ALLOW_HEADERS,
            ),
            deploy_options=apigateway.StageOptions(
                stage_name="prod",
                tracing_enabled=tracing,
                data_trace_enabled=tracing,
                logging_level=apigateway.MethodLoggingLevel.INFO,
                metrics_enabled=True,
                access_log_destination=apigateway.LogGroupLogDestination(
                    self.access_log_group
                ),
                access_log_format=apigateway.AccessLogFormat.json_with_standard_fields(
                    caller=False,
                    http_method=True,
                    ip=True,
                    protocol=True,
                    request_time=True,
                    resource_path=True,
                    response_length=True,
                    status=True,
                    user=False,
                ),
            ),
        )

        # The stack publishes its own API URL output
        self.rest_api.node.try_remove_child("Endpoint")

        self.integration = apigateway.LambdaIntegration(self.function)
        self.rest_api.root.add_method("GET", self.integration)
        self.rest_api.root.add_resource("health").add_method("GET", self.integration)

    @property
    def url(self) -> str:
        return self.rest_api.url

    def add_database(
        self, secret: secretsmanager.ISecret, host: str, database_name: str
    ) -> None:
        """Point the function at the database once it has been declared."""
        self.function.add_environment("DB_SECRET_ARN", secret.secret_arn)
        self.function.add_environment("DB_HOST", host)
        self.function.add_environment("DB_NAME", database_name)
