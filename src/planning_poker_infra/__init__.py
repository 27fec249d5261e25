"""Planning Poker App infrastructure.

CDK definitions and operator tooling for the GitHub -> CodeBuild -> S3 ->
CloudFront delivery pipeline of the Planning Poker web app.
"""

import logging

__version__ = "0.1.0"

from .config import PipelineConfig, load_config
from .exceptions import ConfigurationError, PipelineStatusError, PlanningPokerInfraError

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for scripts and the CDK app."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


__all__ = [
    "ConfigurationError",
    "PipelineConfig",
    "PipelineStatusError",
    "PlanningPokerInfraError",
    "configure_logging",
    "load_config",
]
