from config.settings.app_config import (
    DEFAULT_FETCH_POLICIES,
    FetchPolicy,
    Settings,
    get_settings,
)

__all__ = ["DEFAULT_FETCH_POLICIES", "FetchPolicy", "Settings", "get_settings"]
