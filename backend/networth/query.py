from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
import logging
from typing import Callable, Iterable

from networth.formatting import format_currency
from networth.history import HistoryStore, PersistenceError
from networth.models import NetWorthSnapshot, utc_now
from networth.schemas import HistoryEntry, NetWorthDetails, to_epoch_millis
from networth.services.cache import SnapshotCache

logger = logging.getLogger(__name__)

DEFAULT_CHANGE_WINDOW_DAYS = 30


def find_baseline_entry(entries: Iterable[HistoryEntry], cutoff_millis: int) -> HistoryEntry | None:
	"""Return the newest entry at or before the cutoff; later appends win ties."""
	baseline: HistoryEntry | None = None
	for entry in entries:
		if entry.timestamp > cutoff_millis:
			continue
		if baseline is None or entry.timestamp >= baseline.timestamp:
			baseline = entry
	return baseline


class QueryService:
	"""Answer net worth questions from the cached snapshot and the history log.

	Never triggers a fetch. `None` means the answer is not available yet.
	"""

	def __init__(
		self,
		cache: SnapshotCache,
		history: HistoryStore,
		change_window_days: int = DEFAULT_CHANGE_WINDOW_DAYS,
		now: Callable[[], datetime] | None = None,
	) -> None:
		self.cache = cache
		self.history = history
		self.change_window = timedelta(days=change_window_days)
		self._now = now or utc_now

	def current_net_worth(self) -> Decimal | None:
		snapshot = self.cache.get()
		return None if snapshot is None else snapshot.net_worth

	def change_30_days(self) -> Decimal | None:
		snapshot = self.cache.get()
		if snapshot is None:
			return None
		return self._change_since_window(snapshot)

	def _change_since_window(self, snapshot: NetWorthSnapshot) -> Decimal | None:
		try:
			entries = self.history.read_all()
		except PersistenceError:
			logger.exception("Error calculating net worth change from history.")
			return None

		cutoff_millis = to_epoch_millis(self._now() - self.change_window)
		baseline = find_baseline_entry(entries, cutoff_millis)
		if baseline is None:
			return None
		return snapshot.net_worth - baseline.net_worth

	def details(self) -> NetWorthDetails | None:
		snapshot = self.cache.get()
		if snapshot is None:
			return None

		change = self._change_since_window(snapshot)
		return NetWorthDetails(
			net_worth=snapshot.net_worth,
			currency=snapshot.currency,
			formatted=format_currency(snapshot.net_worth, snapshot.currency),
			last_updated=snapshot.last_updated,
			account_count=snapshot.account_count,
			change_30_days=change,
			change_30_days_formatted=(
				format_currency(change, snapshot.currency) if change is not None else None
			),
		)
