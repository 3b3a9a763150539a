from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from stacks.config import TapConfig


class TapNetwork(Construct):
    def __init__(self, scope: Construct, construct_id: str, config: TapConfig) -> None:
        super().__init__(scope, construct_id)

        # VPC with 2 Availability Zones and a single NAT gateway
        self.vpc = ec2.Vpc(
            self,
            "TapVpc",
            vpc_name=f"{config.resource_prefix}-vpc",
            max_azs=2,
            nat_gateways=1,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24,
                ),
                ec2.SubnetConfiguration(
                    name="Private",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=24,
                ),
                # No route to the NAT gateway or the internet gateway
                ec2.SubnetConfiguration(
                    name="Database",
                    subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                    cidr_mask=24,
                ),
            ],
        )

        self.compute_subnets = ec2.SubnetSelection(
            subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS
        )
        self.database_subnets = ec2.SubnetSelection(
            subnet_type=ec2.SubnetType.PRIVATE_ISOLATED
        )
