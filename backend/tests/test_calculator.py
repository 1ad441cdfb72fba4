from decimal import Decimal

import pytest

from networth.calculator import compute_net_worth, is_custom_currency, parse_balance
from networth.models import AccountBalance
from networth.schemas import Account


def make_account(name: str, balance: str, currency: str = "USD") -> Account:
	return Account(id=f"ACT-{name}", name=name, currency=currency, balance=balance)


def test_compute_net_worth_excludes_reward_point_accounts() -> None:
	result = compute_net_worth(
		[
			make_account("Checking", "1000.00"),
			make_account("Points", "5000", "http://rewards.example/points"),
		],
	)

	assert result.total == Decimal("1000.00")
	assert result.currency == "USD"
	assert result.breakdown == (AccountBalance(name="Checking", balance=Decimal("1000.00")),)


def test_compute_net_worth_sums_decimal_balances_exactly() -> None:
	result = compute_net_worth(
		[
			make_account("A", "0.10"),
			make_account("B", "0.20"),
			make_account("Card", "-1234.56"),
		],
	)

	assert result.total == Decimal("-1234.26")
	assert [item.name for item in result.breakdown] == ["A", "B", "Card"]


def test_compute_net_worth_uses_currency_of_last_included_account() -> None:
	result = compute_net_worth(
		[
			make_account("Euro savings", "10", "EUR"),
			make_account("Checking", "20", "USD"),
			make_account("Miles", "900", "https://airline.example/miles"),
		],
	)

	assert result.total == Decimal("30")
	assert result.currency == "USD"


def test_compute_net_worth_defaults_when_no_account_qualifies() -> None:
	empty = compute_net_worth([])
	only_points = compute_net_worth(
		[make_account("Points", "5000", "https://rewards.example/points")],
		fallback_currency="CAD",
	)

	assert empty.total == Decimal("0")
	assert empty.currency == "USD"
	assert empty.breakdown == ()
	assert only_points.total == Decimal("0")
	assert only_points.currency == "CAD"


@pytest.mark.parametrize(
	("currency", "expected"),
	[
		("USD", False),
		("eur", False),
		("http://rewards.example/points", True),
		("https://www.example.com/flight-miles", True),
		("  https://padded.example/units", True),
		("httpcoin", False),
	],
)
def test_is_custom_currency_detects_url_shaped_codes(currency: str, expected: bool) -> None:
	assert is_custom_currency(currency) is expected


def test_parse_balance_rejects_non_numeric_values() -> None:
	with pytest.raises(ValueError, match="Invalid balance"):
		parse_balance("twelve")

	with pytest.raises(ValueError, match="Invalid balance"):
		parse_balance("NaN")
