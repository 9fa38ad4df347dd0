"""Logging setup for mixtape entry points."""

from __future__ import annotations

import logging

# third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("apscheduler.executors.default", "httpx", "hishel", "spotipy")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with a terse CLI format.

    ``force=True`` reconfigures handlers, which the CLI uses when ``--verbose`` is
    passed after an earlier default setup. Noisy client libraries are capped at
    WARNING unless DEBUG output was requested.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=force,
    )
    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
