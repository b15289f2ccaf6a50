"""
Collector modules: the social data client and the batch phases built on it.
"""

from .client import (
    TwitterAPIClient,
    TwitterAPIError,
    ProfileMetadata,
    MentionResult,
    RetryConfig,
    create_client,
)
from .orchestrator import (
    CircleUpdateOrchestrator,
    RunConfig,
    RunStats,
    RunPhase,
)

__all__ = [
    "TwitterAPIClient",
    "TwitterAPIError",
    "ProfileMetadata",
    "MentionResult",
    "RetryConfig",
    "create_client",
    "CircleUpdateOrchestrator",
    "RunConfig",
    "RunStats",
    "RunPhase",
]
