"""
Remote module - Garmin Connect access and the insight marker contract.
"""

from insightsync.remote.client import (
    GarminConnectRemote,
    RemoteActivityClient,
    has_remote_insight,
    upsert_remote_comment,
)
from insightsync.remote.markers import (
    INSIGHT_MARKER,
    format_insight_comment,
    has_insight_marker,
)

__all__ = [
    "GarminConnectRemote",
    "INSIGHT_MARKER",
    "RemoteActivityClient",
    "format_insight_comment",
    "has_insight_marker",
    "has_remote_insight",
    "upsert_remote_comment",
]
