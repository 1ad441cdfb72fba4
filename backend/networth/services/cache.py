from __future__ import annotations

from networth.models import NetWorthSnapshot


class SnapshotCache:
	"""Hold the latest snapshot, keeping it until a newer one replaces it."""

	def __init__(self) -> None:
		self._snapshot: NetWorthSnapshot | None = None

	def get(self) -> NetWorthSnapshot | None:
		return self._snapshot

	def replace(self, snapshot: NetWorthSnapshot) -> NetWorthSnapshot:
		# Single reference swap; readers see the old or the new snapshot, never a mix.
		self._snapshot = snapshot
		return snapshot
