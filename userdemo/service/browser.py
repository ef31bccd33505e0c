from __future__ import annotations

import webbrowser

from ..domain.errors import ConfigurationError, RelayError
from ..logging_conf import get_logger

logger = get_logger("service.browser")

# Pages of the account site that can be opened directly.
TARGET_PATHS = {
    "login": "/login",
    "profile": "/profile",
    "register": "/register",
}


class BrowserLaunchError(RelayError):
    code = "browser_error"
    status_code = 500


def target_url(server_url: str, target: str | None) -> str:
    """Resolve a page target against the backend URL; unknown targets map to the root."""
    if not server_url:
        raise ConfigurationError("server URL is not configured")
    return server_url + TARGET_PATHS.get(target or "", "")


def open_url(url: str) -> None:
    """Open `url` in the user's default browser.

    Raises:
        BrowserLaunchError: if no browser could be started.
    """
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        raise BrowserLaunchError(f"failed to open browser: {e}") from e
    if not opened:
        raise BrowserLaunchError("failed to open browser: no browser available")
    logger.info("browser.opened", extra={"event": "browser_opened", "url": url})
