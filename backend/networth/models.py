from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal


def utc_now() -> datetime:
	"""Return the current UTC timestamp."""
	return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class AccountBalance:
	name: str
	balance: Decimal


@dataclass(frozen=True, slots=True)
class NetWorthResult:
	total: Decimal
	currency: str
	breakdown: tuple[AccountBalance, ...]


@dataclass(frozen=True, slots=True)
class NetWorthSnapshot:
	"""One complete refresh result; replaced wholesale, never mutated."""

	net_worth: Decimal
	currency: str
	last_updated: datetime
	accounts: tuple[AccountBalance, ...] = ()
	errors: tuple[str, ...] = ()

	@property
	def account_count(self) -> int:
		return len(self.accounts)

	@classmethod
	def from_result(
		cls,
		result: NetWorthResult,
		errors: list[str] | tuple[str, ...],
		last_updated: datetime,
	) -> NetWorthSnapshot:
		return cls(
			net_worth=result.total,
			currency=result.currency,
			last_updated=last_updated,
			accounts=result.breakdown,
			errors=tuple(errors),
		)
