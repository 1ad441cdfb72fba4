from __future__ import annotations

import asyncio
from contextlib import suppress
from datetime import datetime
import enum
import logging
from typing import Callable, Protocol

from networth.calculator import DEFAULT_CURRENCY, compute_net_worth
from networth.formatting import format_currency
from networth.history import HistoryStore, PersistenceError
from networth.models import NetWorthSnapshot, utc_now
from networth.schemas import AccountSet, HistoryEntry
from networth.services.cache import SnapshotCache
from networth.services.simplefin import AuthError, QuotaError, UpstreamError

logger = logging.getLogger(__name__)


class AccountSource(Protocol):
	async def fetch_accounts(self) -> AccountSet: ...


class SchedulerState(enum.Enum):
	UNINITIALIZED = "uninitialized"
	ACTIVE = "active"
	STOPPED = "stopped"


class RefreshScheduler:
	"""Own the snapshot cache and keep it current on a fixed interval.

	`start` performs the first refresh inline and fails loudly if it cannot
	produce a snapshot. After that, refreshes run in a background task and a
	failed cycle leaves the previous snapshot in place.
	"""

	def __init__(
		self,
		client: AccountSource,
		history: HistoryStore,
		cache: SnapshotCache | None = None,
		interval_seconds: float = 4 * 60 * 60,
		fallback_currency: str = DEFAULT_CURRENCY,
		now: Callable[[], datetime] | None = None,
	) -> None:
		self.client = client
		self.history = history
		self.cache = cache or SnapshotCache()
		self.interval_seconds = interval_seconds
		self.fallback_currency = fallback_currency
		self.state = SchedulerState.UNINITIALIZED
		self._now = now or utc_now
		self._refresh_lock = asyncio.Lock()
		self._stop_requested = asyncio.Event()
		self._task: asyncio.Task[None] | None = None

	@property
	def is_active(self) -> bool:
		return self.state is SchedulerState.ACTIVE

	async def start(self) -> NetWorthSnapshot:
		if self.state is not SchedulerState.UNINITIALIZED:
			raise RuntimeError(f"Scheduler cannot start from state {self.state.value}.")

		snapshot = await self.refresh()
		self.state = SchedulerState.ACTIVE
		self._task = asyncio.create_task(self._run_loop(), name="networth-refresh")
		logger.info(
			"Net worth cache initialized; auto-refresh every %s seconds.",
			f"{self.interval_seconds:g}",
		)
		return snapshot

	async def refresh(self) -> NetWorthSnapshot:
		"""Run one fetch, compute, cache, and persist cycle."""
		async with self._refresh_lock:
			logger.info("Fetching net worth from the aggregation service.")
			account_set = await self.client.fetch_accounts()
			result = compute_net_worth(account_set.accounts, self.fallback_currency)
			snapshot = self.cache.replace(
				NetWorthSnapshot.from_result(result, account_set.errors, self._now()),
			)
			logger.info(
				"Net worth updated: %s across %d accounts.",
				format_currency(snapshot.net_worth, snapshot.currency),
				snapshot.account_count,
			)
			for warning in snapshot.errors:
				logger.warning("Aggregation service warning: %s", warning)

			self._persist(snapshot)
			return snapshot

	def _persist(self, snapshot: NetWorthSnapshot) -> None:
		try:
			entry_count = self.history.append(HistoryEntry.from_snapshot(snapshot))
		except PersistenceError:
			logger.exception("Failed to save net worth history; cached value is still current.")
			return

		logger.info("Net worth logged to history (%d entries total).", entry_count)

	async def _run_loop(self) -> None:
		while not self._stop_requested.is_set():
			with suppress(asyncio.TimeoutError):
				await asyncio.wait_for(self._stop_requested.wait(), timeout=self.interval_seconds)
			if self._stop_requested.is_set():
				break
			await self._run_scheduled_refresh()

	async def _run_scheduled_refresh(self) -> None:
		try:
			await self.refresh()
		except AuthError:
			logger.error(
				"Scheduled refresh rejected: credentials were revoked. "
				"Serving the last snapshot until a new access URL is configured.",
			)
		except QuotaError:
			logger.error("Scheduled refresh rejected for payment or quota reasons.")
		except UpstreamError as exc:
			logger.error("Scheduled refresh failed upstream (status %s): %s", exc.status_code, exc)
		except Exception:
			logger.exception("Scheduled net worth refresh failed.")

	async def stop(self, grace_seconds: float = 10.0) -> None:
		"""Stop the recurring refresh, giving an in-flight cycle time to finish."""
		self._stop_requested.set()
		task, self._task = self._task, None
		if self.state is SchedulerState.ACTIVE:
			self.state = SchedulerState.STOPPED
		if task is None or task.done():
			return

		# A CancelledError here belongs to the caller and propagates.
		try:
			await asyncio.wait_for(task, timeout=grace_seconds)
		except asyncio.TimeoutError:
			logger.warning("Refresh still running after %ss; abandoned on shutdown.", grace_seconds)
