"""
Agent Analytics command-line client

Query a hosted web-analytics account from the terminal.

Example:
    >>> from agent_analytics import AnalyticsClient
    >>>
    >>> client = AnalyticsClient(
    ...     base_url='https://api.agentanalytics.sh',
    ...     api_key='aak_your_key'
    ... )
    >>>
    >>> # List projects
    >>> projects = client.projects.list()
    >>>
    >>> # Last week's totals for one of them
    >>> stats = client.stats.summary('my-site', days=7)
"""

__version__ = "0.3.0"

from .client import AnalyticsClient
from .exceptions import (
    AnalyticsError,
    AnalyticsAPIError,
    AnalyticsNotFoundError,
    AnalyticsAuthenticationError,
    AnalyticsConnectionError,
)

__all__ = [
    "AnalyticsClient",
    "AnalyticsError",
    "AnalyticsAPIError",
    "AnalyticsNotFoundError",
    "AnalyticsAuthenticationError",
    "AnalyticsConnectionError",
]
