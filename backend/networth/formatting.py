from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

TWO_PLACES = Decimal("0.01")
CURRENCY_SYMBOLS = {
	"USD": "$",
	"CAD": "CA$",
	"AUD": "A$",
	"EUR": "€",
	"GBP": "£",
	"JPY": "¥",
	"CNY": "CN¥",
	"INR": "₹",
	"MXN": "MX$",
}


def quantize_amount(amount: Decimal) -> Decimal:
	return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_plain(amount: Decimal) -> str:
	"""Render an amount with exactly two fraction digits and no grouping."""
	return f"{quantize_amount(amount):.2f}"


def format_currency(amount: Decimal, currency: str) -> str:
	"""Render an amount the way an en-US currency formatter would, e.g. -$1,234.50."""
	code = currency.strip().upper()
	sign = "-" if amount < 0 else ""
	magnitude = f"{quantize_amount(abs(amount)):,.2f}"
	symbol = CURRENCY_SYMBOLS.get(code)
	if symbol is not None:
		return f"{sign}{symbol}{magnitude}"
	return f"{sign}{code} {magnitude}"
