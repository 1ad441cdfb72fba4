from __future__ import annotations

from decimal import Decimal, InvalidOperation
import re
from typing import Iterable

from networth.models import AccountBalance, NetWorthResult
from networth.schemas import Account

DEFAULT_CURRENCY = "USD"
URI_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


def is_custom_currency(currency: str) -> bool:
	"""Custom units such as reward points are identified by a URL instead of an ISO code."""
	return bool(URI_SCHEME_PATTERN.match(currency.strip()))


def parse_balance(value: str) -> Decimal:
	try:
		balance = Decimal(value.strip())
	except (InvalidOperation, AttributeError) as exc:
		raise ValueError(f"Invalid balance: {value!r}") from exc

	if not balance.is_finite():
		raise ValueError(f"Invalid balance: {value!r}")
	return balance


def compute_net_worth(
	accounts: Iterable[Account],
	fallback_currency: str = DEFAULT_CURRENCY,
) -> NetWorthResult:
	"""Sum balances across standard-currency accounts.

	The result currency is that of the last included account. Accounts in
	different currencies are added without conversion.
	"""
	total = Decimal("0")
	currency = fallback_currency
	breakdown: list[AccountBalance] = []

	for account in accounts:
		if is_custom_currency(account.currency):
			continue

		balance = parse_balance(account.balance)
		total += balance
		breakdown.append(AccountBalance(name=account.name, balance=balance))
		currency = account.currency

	return NetWorthResult(total=total, currency=currency, breakdown=tuple(breakdown))
