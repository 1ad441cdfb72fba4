from __future__ import annotations

from contextlib import suppress
import logging
import os
from pathlib import Path
import tempfile

from pydantic import TypeAdapter, ValidationError

from networth.schemas import HistoryEntry

logger = logging.getLogger(__name__)

HISTORY_ADAPTER = TypeAdapter(list[HistoryEntry])


class PersistenceError(RuntimeError):
	"""Raised when the history log cannot be read or written."""


class HistoryStore:
	"""Net worth history kept as one JSON array, rewritten in full on every append.

	Appends are expected to come from a single writer; the refresh scheduler
	serializes them.
	"""

	def __init__(self, path: Path) -> None:
		self.path = Path(path)

	def read_all(self) -> list[HistoryEntry]:
		"""Return every entry in append order, or an empty list if no log exists yet."""
		try:
			payload = self.path.read_bytes()
		except FileNotFoundError:
			return []
		except OSError as exc:
			raise PersistenceError(f"Failed to read history from {self.path}.") from exc

		if not payload.strip():
			return []

		try:
			return HISTORY_ADAPTER.validate_json(payload)
		except ValidationError as exc:
			raise PersistenceError(f"History file {self.path} is malformed.") from exc

	def append(self, entry: HistoryEntry) -> int:
		"""Add one entry to the end of the log and return the new entry count."""
		history = self.read_all()
		history.append(entry)
		self._write(history)
		return len(history)

	def _write(self, history: list[HistoryEntry]) -> None:
		payload = HISTORY_ADAPTER.dump_json(history, by_alias=True, indent=2)
		temp_path: str | None = None
		try:
			self.path.parent.mkdir(parents=True, exist_ok=True)
			with tempfile.NamedTemporaryFile(
				mode="wb",
				dir=self.path.parent,
				prefix=f".{self.path.name}.",
				suffix=".tmp",
				delete=False,
			) as handle:
				temp_path = handle.name
				handle.write(payload)
				handle.flush()
				os.fsync(handle.fileno())
			os.replace(temp_path, self.path)
		except OSError as exc:
			if temp_path is not None:
				with suppress(FileNotFoundError):
					os.unlink(temp_path)
			raise PersistenceError(f"Failed to write history to {self.path}.") from exc

		logger.debug("Wrote %d history entries to %s", len(history), self.path)
