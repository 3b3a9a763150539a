from aws_cdk import (
    Annotations,
    Duration,
    RemovalPolicy,
    aws_ec2 as ec2,
    aws_rds as rds,
)
from constructs import Construct

from stacks.api import TapApi
from stacks.config import SMALLEST_INSTANCE_TYPE, TapConfig
from stacks.network import TapNetwork

DATABASE_NAME = "tapdb"
DATABASE_USER = "admin"
MYSQL_PORT = 3306


class TapDatabase(Construct):
    """
    MySQL instance in the isolated subnets.

    Reachable on the MySQL port from the API function's security group only.
    Deletion protection is off and removal is destructive, which suits
    non-production environments.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: TapConfig,
        network: TapNetwork,
        api: TapApi,
    ) -> None:
        super().__init__(scope, construct_id)

        self.security_group = ec2.SecurityGroup(
            self,
            "DatabaseSecurityGroup",
            vpc=network.vpc,
            description="Security group for RDS database",
            allow_all_outbound=False,
        )
        self.security_group.add_ingress_rule(
            api.security_group,
            ec2.Port.tcp(MYSQL_PORT),
            "Allow Lambda access to database",
        )

        self.performance_insights_enabled = config.performance_insights_enabled
        if not self.performance_insights_enabled:
            Annotations.of(self).add_info(
                f"Performance Insights disabled: not supported on {SMALLEST_INSTANCE_TYPE}"
            )

        self.instance = rds.DatabaseInstance(
            self,
            "TapDatabase",
            engine=rds.DatabaseInstanceEngine.mysql(version=config.rds_engine_version),
            instance_type=config.rds_instance_type,
            vpc=network.vpc,
            vpc_subnets=network.database_subnets,
            security_groups=[self.security_group],
            port=MYSQL_PORT,
            database_name=DATABASE_NAME,
            credentials=rds.Credentials.from_generated_secret(DATABASE_USER),
            storage_encrypted=True,
            backup_retention=Duration.days(config.backup_retention_days),
            deletion_protection=False,
            delete_automated_backups=True,
            removal_policy=RemovalPolicy.DESTROY,
            monitoring_interval=Duration.seconds(60),
            enable_performance_insights=self.performance_insights_enabled,
            performance_insight_retention=(
                rds.PerformanceInsightRetention.DEFAULT
                if self.performance_insights_enabled
                else None
            ),
        )

        self.secret = self.instance.secret
        self.secret.grant_read(api.function)

        api.add_database(self.secret, self.endpoint, DATABASE_NAME)

    @property
    def endpoint(self) -> str:
        return self.instance.instance_endpoint.hostname
