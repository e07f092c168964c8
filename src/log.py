"""Process-wide logging setup."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(name)s: [%(levelname)s] %(message)s"


def setup_logging(program: str, level: str = "INFO") -> None:
    """Attach a single stderr handler to the root logger.

    Calling it again replaces the previous handler, so the CLI and the
    server can both call it without duplicating lines.
    """
    root = logging.getLogger("")
    for handler in list(root.handlers):
        if getattr(handler, "_ladder_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(f"{program} {LOG_FORMAT}"))
    handler._ladder_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
