from typing import Any, Dict

from aws_cdk import (
    Stack,
    RemovalPolicy,
    aws_codebuild as codebuild,
    aws_codepipeline as codepipeline,
    aws_codepipeline_actions as codepipeline_actions,
    aws_iam as iam,
    aws_s3 as s3,
)
from constructs import Construct

from stacks.config import TapConfig, bucket_name
from stacks.website import TapWebsite

# Object an external uploader puts into the source bucket to start a release
SOURCE_OBJECT_KEY = "source.zip"


def build_spec() -> Dict[str, Any]:
    """Install, build, test and package everything as the build artifact."""
    return {
        "version": "0.2",
        "phases": {
            "install": {
                "runtime-versions": {"nodejs": "18"},
            },
            "pre_build": {
                "commands": ["npm install"],
            },
            "build": {
                "commands": ["npm run build", "npm run test"],
            },
            "post_build": {
                "commands": ["echo Build completed on `date`"],
            },
        },
        "artifacts": {
            "files": ["**/*"],
        },
    }


class TapPipeline(Construct):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: TapConfig,
        website: TapWebsite,
    ) -> None:
        super().__init__(scope, construct_id)

        stack = Stack.of(self)
        prefix = config.resource_prefix

        # S3 bucket for CodePipeline artifacts
        self.artifacts_bucket = self._bucket(
            "PipelineArtifacts",
            bucket_name(
                "pipeline-artifacts", stack.account, stack.region, config.environment_suffix
            ),
        )

        # S3 bucket the pipeline pulls its source archive from
        self.source_bucket = self._bucket(
            "PipelineSource",
            bucket_name(
                "pipeline-source", stack.account, stack.region, config.environment_suffix
            ),
        )

        self.build_project = codebuild.PipelineProject(
            self,
            "TapBuildProject",
            project_name=f"{prefix}-build",
            environment=codebuild.BuildEnvironment(
                build_image=config.codebuild_image,
                compute_type=config.codebuild_compute_type,
            ),
            build_spec=codebuild.BuildSpec.from_object(build_spec()),
        )

        # Object access limited to the three buckets the build touches
        self.build_project.add_to_role_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["s3:GetObject", "s3:PutObject", "s3:GetObjectVersion"],
                resources=[
                    self.source_bucket.arn_for_objects("*"),
                    self.artifacts_bucket.arn_for_objects("*"),
                    website.bucket.arn_for_objects("*"),
                ],
            )
        )

        self.source_output = codepipeline.Artifact("SourceOutput")
        self.build_output = codepipeline.Artifact("BuildOutput")

        self.pipeline = codepipeline.Pipeline(
            self,
            "TapPipeline",
            pipeline_name=f"{prefix}-pipeline",
            artifact_bucket=self.artifacts_bucket,
            stages=[
                codepipeline.StageProps(
                    stage_name="Source",
                    actions=[
                        codepipeline_actions.S3SourceAction(
                            action_name="S3Source",
                            bucket=self.source_bucket,
                            bucket_key=SOURCE_OBJECT_KEY,
                            output=self.source_output,
                        )
                    ],
                ),
                codepipeline.StageProps(
                    stage_name="Build",
                    actions=[
                        codepipeline_actions.CodeBuildAction(
                            action_name="Build",
                            project=self.build_project,
                            input=self.source_output,
                            outputs=[self.build_output],
                        )
                    ],
                ),
                codepipeline.StageProps(
                    stage_name="Deploy",
                    actions=[
                        codepipeline_actions.S3DeployAction(
                            action_name="Deploy",
                            bucket=website.bucket,
                            input=self.build_output,
                        )
                    ],
                ),
            ],
        )

    def _bucket(self, construct_id: str, name: str) -> s3.Bucket:
        return s3.Bucket(
            self,
            construct_id,
            bucket_name=name,
            encryption=s3.BucketEncryption.S3_MANAGED,
            versioned=True,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            removal_policy=RemovalPolicy.DESTROY,
            auto_delete_objects=True,
        )
