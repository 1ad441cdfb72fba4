"""Logging configuration."""

import logging
import sys

from networth.settings import get_settings


def setup_logging() -> None:
	"""Configure root logging; uvicorn runs without its own config and propagates here."""
	settings = get_settings()

	logging.basicConfig(
		level=getattr(logging, settings.log_level.upper(), logging.INFO),
		format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
		handlers=[logging.StreamHandler(sys.stdout)],
	)

	# Every refresh logs a request line otherwise
	logging.getLogger("httpx").setLevel(logging.WARNING)
