from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from networth.models import NetWorthSnapshot


def to_iso_utc(value: datetime) -> str:
	"""Render a timestamp as ISO-8601 UTC with millisecond precision and a Z suffix."""
	if value.tzinfo is None:
		value = value.replace(tzinfo=timezone.utc)

	return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_epoch_millis(value: datetime) -> int:
	if value.tzinfo is None:
		value = value.replace(tzinfo=timezone.utc)

	return int(value.timestamp() * 1000)


class Organization(BaseModel):
	model_config = ConfigDict(populate_by_name=True, extra="ignore")

	sfin_url: str = Field(default="", alias="sfin-url")
	domain: Optional[str] = None
	name: Optional[str] = None
	url: Optional[str] = None
	id: Optional[str] = None


class Account(BaseModel):
	"""One account as reported by the aggregation service."""

	model_config = ConfigDict(populate_by_name=True, extra="ignore")

	id: str
	name: str
	currency: str
	balance: str
	available_balance: Optional[str] = Field(default=None, alias="available-balance")
	balance_date: Optional[int] = Field(default=None, alias="balance-date")
	org: Optional[Organization] = None
	extra: Optional[dict[str, Any]] = None

	@field_validator("balance", "available_balance", mode="before")
	@classmethod
	def coerce_balance_to_text(cls, value: Any) -> Any:
		if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
			return str(value)
		return value


class AccountSet(BaseModel):
	model_config = ConfigDict(extra="ignore")

	errors: list[str] = Field(default_factory=list)
	accounts: list[Account] = Field(default_factory=list)

	@field_validator("errors", "accounts", mode="before")
	@classmethod
	def default_missing_lists(cls, value: Any) -> Any:
		return [] if value is None else value


class HistoryEntry(BaseModel):
	"""A persisted net worth observation, keyed the way the history file stores it."""

	model_config = ConfigDict(frozen=True, populate_by_name=True)

	timestamp: int
	date: str
	net_worth: Decimal = Field(alias="netWorth")
	currency: str
	account_count: int = Field(alias="accountCount")

	@field_serializer("net_worth")
	def serialize_net_worth(self, value: Decimal) -> float:
		return float(value)

	@classmethod
	def from_snapshot(cls, snapshot: NetWorthSnapshot) -> HistoryEntry:
		return cls(
			timestamp=to_epoch_millis(snapshot.last_updated),
			date=to_iso_utc(snapshot.last_updated),
			net_worth=snapshot.net_worth,
			currency=snapshot.currency,
			account_count=snapshot.account_count,
		)


class NetWorthDetails(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	net_worth: Decimal = Field(alias="netWorth")
	currency: str
	formatted: str
	last_updated: datetime = Field(alias="lastUpdated")
	account_count: int = Field(alias="accountCount")
	change_30_days: Optional[Decimal] = Field(default=None, alias="change30Days")
	change_30_days_formatted: Optional[str] = Field(default=None, alias="change30DaysFormatted")

	@field_serializer("net_worth", "change_30_days")
	def serialize_amount(self, value: Decimal | None) -> float | None:
		return None if value is None else float(value)

	@field_serializer("last_updated")
	def serialize_last_updated(self, value: datetime) -> str:
		return to_iso_utc(value)


class HealthRead(BaseModel):
	status: str = "ok"


class ErrorRead(BaseModel):
	error: str
