"""logfire setup for the deep research CLI and for applications embedding the orchestrator.

Configuration happens once per process; later calls are no-ops. Records are
shipped to logfire only when a token is present, so a machine without one
runs with local output only.

    from openrouter_deep_research.core.logging import configure_logging
    configure_logging(enable_console=True)
"""

import os
import sys
import threading
from typing import Any

import logfire

SERVICE_NAME = "openrouter-deep-research"
LOG_LEVEL_ENV = "DEEP_RESEARCH_LOG_LEVEL"

_configured = False
_config_lock = threading.Lock()


def _logfire_options(enable_console: bool) -> dict[str, Any]:
    return {
        "service_name": SERVICE_NAME,
        "console": logfire.ConsoleOptions(verbose=True) if enable_console else False,
        "min_level": os.getenv(LOG_LEVEL_ENV, "debug").strip().lower(),
        "send_to_logfire": "if-token-present",
    }


def configure_logging(enable_console: bool = False) -> None:
    """Configure logfire for deep research runs if not already configured.

    Args:
        enable_console: Mirror spans and records to the terminal (``--verbose``)
    """
    global _configured

    if _configured:
        return

    with _config_lock:
        if _configured:
            return
        try:
            logfire.configure(**_logfire_options(enable_console))
        except Exception as e:
            # logfire cannot report its own setup failure
            print(f"Failed to configure logfire: {e}", file=sys.stderr)
            return
        _configured = True


def is_configured() -> bool:
    return _configured
