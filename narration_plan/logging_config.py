from __future__ import annotations

import logging

from narration_plan.config import LoggingSettings

ENGINE_LOGGER_NAME = "narration_plan"


def configure_logging(settings: LoggingSettings, *, verbose: bool = False) -> None:
    """Configure process-wide logging once at startup.

    ``verbose`` lowers only the engine loggers to DEBUG so per-stage
    decisions (cue matches, merges, emphasis picks) become visible.
    """

    logging.basicConfig(
        level=getattr(logging, settings.level.upper(), logging.INFO),
        format=settings.format,
        force=True,
    )
    if verbose:
        logging.getLogger(ENGINE_LOGGER_NAME).setLevel(logging.DEBUG)
