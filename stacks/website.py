from aws_cdk import (
    Stack,
    RemovalPolicy,
    aws_s3 as s3,
    aws_cloudfront as cloudfront,
    aws_cloudfront_origins as origins,
)
from constructs import Construct

from stacks.config import TapConfig, bucket_name

ROOT_DOCUMENT = "index.html"


class TapWebsite(Construct):
    def __init__(self, scope: Construct, construct_id: str, config: TapConfig) -> None:
        super().__init__(scope, construct_id)

        stack = Stack.of(self)

        # S3 bucket for the built static site (served only through CloudFront)
        self.bucket = s3.Bucket(
            self,
            "WebsiteBucket",
            bucket_name=bucket_name(
                "website", stack.account, stack.region, config.environment_suffix
            ),
            encryption=s3.BucketEncryption.S3_MANAGED,
            versioned=True,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            enforce_ssl=True,
            removal_policy=RemovalPolicy.DESTROY,
            auto_delete_objects=True,
        )

        # Single-page-application fallback: unknown paths serve the root document.
        # Behind origin access control S3 answers 403 for missing keys.
        spa_fallback = [
            cloudfront.ErrorResponse(
                http_status=status,
                response_http_status=200,
                response_page_path=f"/{ROOT_DOCUMENT}",
            )
            for status in (404, 403)
        ]

        self.distribution = cloudfront.Distribution(
            self,
            "WebsiteDistribution",
            comment=f"{config.resource_prefix} static website",
            default_behavior=cloudfront.BehaviorOptions(
                origin=origins.S3BucketOrigin.with_origin_access_control(self.bucket),
                viewer_protocol_policy=cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
                cache_policy=cloudfront.CachePolicy.CACHING_OPTIMIZED,
            ),
            default_root_object=ROOT_DOCUMENT,
            error_responses=spa_fallback,
        )

    @property
    def url(self) -> str:
        return f"https://{self.distribution.distribution_domain_name}"
