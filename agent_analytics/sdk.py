"""Client construction from the loaded configuration."""

from .client import AnalyticsClient
from .config import Config, resolve_api_key, resolve_base_url
from .exceptions import AnalyticsError


class NotLoggedInError(AnalyticsError):
    """No API key in the environment or the config file."""


def get_client(config: Config) -> AnalyticsClient:
    """Build an API client for the configured account.

    The API key is resolved in this order:
    1. AGENT_ANALYTICS_API_KEY env var (AGENT_ANALYTICS_KEY is also accepted)
    2. api_key stored in config.json by `agent-analytics login`

    Returns:
        AnalyticsClient instance

    Raises:
        NotLoggedInError: If no API key is available
    """
    api_key = resolve_api_key(config)
    if not api_key:
        raise NotLoggedInError("Not logged in. Run: agent-analytics login --token <key>")
    return AnalyticsClient(base_url=resolve_base_url(config), api_key=api_key)
