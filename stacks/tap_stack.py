#!/usr/bin/env python3
from typing import Any, Mapping, Optional

from aws_cdk import (
    Stack,
    CfnOutput,
)
from constructs import Construct

from stacks.api import TapApi
from stacks.config import resolve_config
from stacks.database import TapDatabase
from stacks.network import TapNetwork
from stacks.observability import TapAlarms
from stacks.pipeline import TapPipeline
from stacks.website import TapWebsite


class TapStack(Stack):
    """
    Web application footprint: network, static website, API, database,
    delivery pipeline and optional alarms.

    Layers are declared in dependency order; each receives the handles of
    the layers it references.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        options: Optional[Mapping[str, Any]] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.config = resolve_config(options)

        self.network = TapNetwork(self, "Network", self.config)
        self.website = TapWebsite(self, "Website", self.config)
        self.api = TapApi(self, "Api", self.config, network=self.network)
        self.database = TapDatabase(
            self, "Database", self.config, network=self.network, api=self.api
        )
        self.pipeline = TapPipeline(self, "Pipeline", self.config, website=self.website)

        self.alarms = None
        if self.config.enable_cloudwatch_alarms:
            self.alarms = TapAlarms(
                self, "Alarms", self.config, api=self.api, database=self.database
            )

        self._publish_outputs()

    def _publish_outputs(self) -> None:
        CfnOutput(
            self,
            "WebsiteURL",
            value=self.website.url,
            description="Website URL",
        )

        CfnOutput(
            self,
            "ApiURL",
            value=self.api.url,
            description="API Gateway URL",
        )

        CfnOutput(
            self,
            "DatabaseEndpoint",
            value=self.database.endpoint,
            description="RDS Database Endpoint",
        )

        CfnOutput(
            self,
            "PipelineSourceBucket",
            value=self.pipeline.source_bucket.bucket_name,
            description="Pipeline Source S3 Bucket",
        )
