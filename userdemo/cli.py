from __future__ import annotations

import argparse
import sys
import threading

import uvicorn

from .logging_conf import get_logger, setup_logging
from .main import create_app
from .service import browser
from .service.context import RelayContext
from .service.settings_store import SettingsStore, get_config_path_from_env

logger = get_logger("cli")

_BROWSER_DELAY_S = 0.5


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the demo server."""
    parser = argparse.ArgumentParser(description="User API demo relay server")
    parser.add_argument("--config", default=str(get_config_path_from_env()))
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=None, help="overrides the settings file")
    parser.add_argument(
        "--open-browser",
        action=argparse.BooleanOptionalAction,
        default=sys.platform.startswith("win"),
        help="open the local UI once the server is up",
    )
    return parser.parse_args(argv)


def _open_later(url: str) -> None:
    def _run() -> None:
        try:
            browser.open_url(url)
        except browser.BrowserLaunchError as e:
            logger.warning("browser.failed", extra={"event": "browser_failed", "error": str(e)})

    timer = threading.Timer(_BROWSER_DELAY_S, _run)
    timer.daemon = True
    timer.start()


def main(argv: list[str] | None = None) -> None:
    setup_logging()
    args = parse_args(sys.argv[1:] if argv is None else argv)
    store = SettingsStore(args.config)
    settings = store.load()
    context = RelayContext(settings, store)
    port = args.port or settings.port
    local_url = f"http://localhost:{port}"
    logger.info(
        "server.banner",
        extra={
            "event": "server_banner",
            "url": local_url,
            "config": args.config,
            "configured": settings.has_static_key,
        },
    )
    if args.open_browser:
        # No HTML pages ship with the relay; the interactive API docs are the UI.
        _open_later(f"{local_url}/docs")
    # log_config=None keeps uvicorn on the JSON handler installed above.
    uvicorn.run(create_app(context), host=args.host, port=port, log_config=None)


if __name__ == "__main__":
    main()
