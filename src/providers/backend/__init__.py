"""Backend providers.

ChurchApiClient is the single outbound path to the church platform's REST
API, shared by the proxy routes, the dashboard aggregation and the cached
content feeds.
"""

from src.providers.backend.church_api_client import (
    ChurchApiClient,
    UpstreamResponse,
    extract_results,
)

__all__ = ["ChurchApiClient", "UpstreamResponse", "extract_results"]
