#!/usr/bin/env python3
import os

import aws_cdk as cdk

from stacks.config import config_from_context
from stacks.tap_stack import TapStack

app = cdk.App()

# Environment configuration
env = cdk.Environment(
    account=app.node.try_get_context("account") or os.getenv("CDK_DEFAULT_ACCOUNT"),
    region=app.node.try_get_context("region")
    or os.getenv("CDK_DEFAULT_REGION")
    or "us-east-1",
)

# Stack options from `cdk synth -c envSuffix=dev -c enableCloudWatchAlarms=false`
options = config_from_context(app.node)
env_suffix = options.get("environment_suffix", "")

tap = TapStack(
    app,
    f"TapStack-{env_suffix}" if env_suffix else "TapStack",
    options=options,
    env=env,
)

cdk.Tags.of(app).add("Project", "tap")
cdk.Tags.of(app).add("Environment", env_suffix or "default")

app.synth()
