"""Helpers to launch the local web dashboard."""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from typing import Optional

import uvicorn

from .config import TrackerSettings
from .webapp import create_app


def run_dashboard(
    *,
    settings: Optional[TrackerSettings] = None,
    open_browser: bool = True,
    log_level: str = "info",
) -> None:
    """Start the FastAPI dashboard and optional browser tab."""
    resolved = settings or TrackerSettings()
    app = create_app(settings=resolved)

    if open_browser:
        url = f"http://{resolved.host}:{resolved.port}/docs"
        threading.Thread(
            target=_launch_browser_after_delay, args=(url,), daemon=True
        ).start()

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=resolved.host, port=resolved.port, log_level=log_level)


def _launch_browser_after_delay(url: str) -> None:
    time.sleep(1.0)
    try:
        webbrowser.open(url)
    except Exception:
        logging.getLogger(__name__).exception("Failed to launch browser for %s", url)
