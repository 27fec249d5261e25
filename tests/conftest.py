"""Pytest configuration and shared fixtures for Planning Poker App infrastructure tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Template

from infra.pipeline_stack import PlanningPokerAppStack
from planning_poker_infra.config import OPTIONAL_VARIABLES, REQUIRED_VARIABLES, PipelineConfig


@pytest.fixture
def pipeline_env() -> dict[str, str]:
    """Environment variables a deploy shell would export."""
    return {
        "SOURCE_ACTION_OWNER": "poker-team",
        "SOURCE_ACTION_REPO": "planning-poker-app",
        "SECRETS_MANAGER_ID": "github/planning-poker",
        "REACT_APP_WEB_SOCKET_URL": "wss://ws.poker.example.com",
        "REACT_APP_API_URL": "https://api.poker.example.com",
    }


@pytest.fixture
def sample_config() -> PipelineConfig:
    """Sample configuration for testing."""
    config_data = {
        "environment": "dev",
        "aws_region": "us-east-1",
        "source": {
            "owner": "poker-team",
            "repo": "planning-poker-app",
            "secret_id": "github/planning-poker",
        },
        "build": {
            "web_socket_url": "wss://ws.poker.example.com",
            "api_url": "https://api.poker.example.com",
        },
    }
    return PipelineConfig(**config_data)


@pytest.fixture
def make_template():
    """Synthesize a stack for a config and return its assertions Template."""

    def _make(config: PipelineConfig) -> Template:
        app = cdk.App()
        stack = PlanningPokerAppStack(app, "TestPlanningPokerStack", config=config)
        return Template.from_stack(stack)

    return _make


@pytest.fixture
def template(sample_config, make_template) -> Template:
    return make_template(sample_config)


@pytest.fixture
def mock_codepipeline_client():
    """Mock CodePipeline client for testing."""
    mock_client = MagicMock()
    mock_client.get_pipeline_state.return_value = {
        "pipelineName": "PlanningPokerAppPipeline",
        "stageStates": [
            {
                "stageName": "Source",
                "latestExecution": {"pipelineExecutionId": "abc", "status": "Succeeded"},
                "actionStates": [
                    {"actionName": "PlanningPokerAppGitHubAction",
                     "latestExecution": {"status": "Succeeded", "lastStatusChange": "2024-05-01 10:00:00"}}
                ],
            },
            {
                "stageName": "Build",
                "latestExecution": {"pipelineExecutionId": "abc", "status": "Failed"},
                "actionStates": [],
            },
            {"stageName": "Deploy", "actionStates": []},
        ],
    }
    return mock_client


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the host shell's pipeline variables out of the tests."""
    for var in [*REQUIRED_VARIABLES, *OPTIONAL_VARIABLES, "ENVIRONMENT"]:
        monkeypatch.delenv(var, raising=False)
    yield
