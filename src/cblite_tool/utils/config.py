"""Runtime settings loaded from environment variables.

cblite keeps no configuration file.  The handful of tunables live in
the environment so a shell profile can adjust them.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

LOG = logging.getLogger(__name__)

DEFAULT_LOG_LEVEL: str = "WARNING"
DEFAULT_HISTORY_PATH: str = "~/.cblite_history"
DEFAULT_SERVE_PORT: int = 59840


@dataclass(frozen=True, slots=True)
class Settings:
    """Environment-derived settings for a single run."""

    log_level: str = DEFAULT_LOG_LEVEL
    """Threshold for the stderr log handler (``CBLITE_LOG_LEVEL``)."""

    history_path: Path = Path(DEFAULT_HISTORY_PATH).expanduser()
    """Interactive shell history file (``CBLITE_HISTORY``)."""

    serve_port: int = DEFAULT_SERVE_PORT
    """Default port for ``serve`` (``CBLITE_SERVE_PORT``)."""


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from *environ* (default ``os.environ``).

    An unparseable port is logged and replaced by the default.
    """
    env = os.environ if environ is None else environ

    port_text = env.get("CBLITE_SERVE_PORT", "")
    try:
        port = int(port_text) if port_text else DEFAULT_SERVE_PORT
    except ValueError:
        LOG.warning(
            "Ignoring CBLITE_SERVE_PORT=%r: not an integer, using %d",
            port_text,
            DEFAULT_SERVE_PORT,
        )
        port = DEFAULT_SERVE_PORT

    return Settings(
        log_level=env.get("CBLITE_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        history_path=Path(env.get("CBLITE_HISTORY", DEFAULT_HISTORY_PATH)).expanduser(),
        serve_port=port,
    )
