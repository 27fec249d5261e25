"""Read the live state of the deployed CodePipeline."""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import PipelineStatusError

logger = logging.getLogger(__name__)


def pipeline_status(
    pipeline_name: str,
    client: Any | None = None,
    region_name: str | None = None,
) -> list[dict[str, str]]:
    """Return the latest execution status of each pipeline stage.

    Args:
        pipeline_name: Name of the CodePipeline
        client: Optional pre-built ``codepipeline`` client
        region_name: Region used when no client is given

    Returns:
        One ``{"stage", "status", "last_change"}`` dict per stage, in order

    Raises:
        PipelineStatusError: If the pipeline state cannot be fetched
    """
    try:
        client = client or boto3.client("codepipeline", region_name=region_name)
        response = client.get_pipeline_state(name=pipeline_name)
    except (ClientError, BotoCoreError) as e:
        logger.error("Failed to read state of pipeline %s: %s", pipeline_name, e)
        raise PipelineStatusError(
            f"Unable to read pipeline state: {e}", pipeline_name=pipeline_name
        ) from e

    stages = []
    for stage in response.get("stageStates", []):
        latest = stage.get("latestExecution") or {}
        changes = [
            (action.get("latestExecution") or {}).get("lastStatusChange")
            for action in stage.get("actionStates", [])
        ]
        changes = [changed for changed in changes if changed is not None]
        last_change = str(max(changes)) if changes else ""
        stages.append(
            {
                "stage": stage.get("stageName", ""),
                "status": latest.get("status", "NotStarted"),
                "last_change": last_change,
            }
        )
    return stages
