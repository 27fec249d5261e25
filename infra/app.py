#!/usr/bin/env python3
"""
CDK Application for the Planning Poker App

Synthesizes the delivery pipeline stack for the selected environment.
"""

import logging
import os
import sys

import aws_cdk as cdk

from infra.pipeline_stack import PlanningPokerAppStack
from planning_poker_infra import configure_logging
from planning_poker_infra.config import PipelineConfig, load_config
from planning_poker_infra.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def create_stack(app: cdk.App, environment: str, config: PipelineConfig) -> PlanningPokerAppStack:
    """Create the tagged stack for `environment` inside `app`."""
    account = app.node.try_get_context(f"{environment}_account") or os.environ.get("CDK_DEFAULT_ACCOUNT")
    region = (
        app.node.try_get_context(f"{environment}_region")
        or os.environ.get("CDK_DEFAULT_REGION")
        or config.aws_region
    )

    stack = PlanningPokerAppStack(
        app,
        f"planning-poker-app-{environment}",
        config=config,
        env=cdk.Environment(account=account, region=region),
        description=f"Planning Poker App delivery pipeline for {environment} environment"
    )

    cdk.Tags.of(stack).add("App", "planning-poker-app")
    cdk.Tags.of(stack).add("Environment", environment)
    cdk.Tags.of(stack).add("Project", "PlanningPoker")

    return stack


def main():
    """Main CDK application entry point."""
    app = cdk.App()

    environment = app.node.try_get_context("environment") or os.environ.get("ENVIRONMENT", "dev")

    try:
        config = load_config(environment)
    except ConfigurationError as e:
        configure_logging()
        logger.error("Refusing to synthesize %s: %s", environment, e)
        sys.exit(1)

    configure_logging(config.log_level)
    create_stack(app, environment, config)

    app.synth()


if __name__ == "__main__":
    main()
