"""
Rental price calculation.

Everything here is pure: no database, no Flask context, no mutation of the
inputs. The same inputs always produce the same quote, so the UI can call it
freely for previews before a rental is committed.

A rate card is a plain dict:

    {"ref": "equipment:7", "weekly_rate": ..., "monthly_rate": ..., "deposit_amount": ...}

Monetary values may be Decimal, int, float or numeric strings; they are
normalized to Decimal with two decimals.
"""

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from math import ceil

from rental_engine.utils.errors import ValidationError


CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Calendar days billed by one unit of each pricing period
PERIOD_DAYS = {
    "weekly": 7,
    "monthly": 30,
}


def to_money(value, field: str = "amount") -> Decimal:
    if value is None:
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}.", errors={field: ["Not a valid amount."]})
    if not amount.is_finite():
        raise ValidationError(f"Invalid {field}.", errors={field: ["Not a valid amount."]})
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def count_days(start_date: date, end_date: date) -> int:
    """Inclusive calendar days: a same-day rental is 1 day."""
    if start_date is None or end_date is None:
        raise ValidationError("start_date and end_date are required.")
    if end_date < start_date:
        raise ValidationError(
            "end_date must be on or after start_date.",
            errors={"end_date": ["Must be on or after start_date."]},
        )
    return (end_date - start_date).days + 1


def count_periods(pricing_period: str, days: int) -> int:
    unit = PERIOD_DAYS.get(pricing_period)
    if unit is None:
        raise ValidationError(
            "pricing_period must be 'weekly' or 'monthly'.",
            errors={"pricing_period": ["Must be one of: weekly, monthly."]},
        )
    return max(1, ceil(days / unit))


def select_rate(card: dict, pricing_period: str) -> Decimal:
    field = "weekly_rate" if pricing_period == "weekly" else "monthly_rate"
    rate = to_money(card.get(field), field)
    if rate < ZERO:
        raise ValidationError(f"Negative {field} for {card.get('ref')}.")
    return rate


def percentage_of(amount, percentage) -> Decimal:
    """percentage (e.g. 15 for 15%) of amount, rounded half-up to cents."""
    base = to_money(amount)
    pct = Decimal(str(percentage or 0))
    return (base * pct / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)


def _price_line(card: dict, pricing_period: str, periods: int) -> dict:
    rate = select_rate(card, pricing_period)
    deposit = to_money(card.get("deposit_amount"), "deposit_amount")
    if deposit < ZERO:
        raise ValidationError(f"Negative deposit_amount for {card.get('ref')}.")
    return {
        "ref": card.get("ref"),
        "rate": rate,
        "periods": periods,
        "subtotal": (rate * periods).quantize(CENT),
        # Deposits are flat holds, never multiplied by periods
        "deposit": deposit,
    }


def quote(
    primary: dict | None,
    pricing_period: str,
    accessories: list[dict] | None,
    start_date: date,
    end_date: date,
    discount=None,
    fee=None,
) -> dict:
    """
    Price one primary item plus accessories over [start_date, end_date].

    periods = ceil(days / 7) for weekly, ceil(days / 30) for monthly, min 1.
    Discount and fee are flat amounts applied once to the aggregate subtotal;
    final_total = max(0, subtotal - discount + fee).
    """
    if not primary:
        raise ValidationError(
            "A primary item is required.",
            errors={"primary": ["Missing primary item."]},
        )

    days = count_days(start_date, end_date)
    periods = count_periods(pricing_period, days)

    discount_amount = to_money(discount, "discount")
    fee_amount = to_money(fee, "fee")
    if discount_amount < ZERO or fee_amount < ZERO:
        raise ValidationError("Discount and fee must not be negative.")

    primary_line = _price_line(primary, pricing_period, periods)
    accessory_lines = [_price_line(card, pricing_period, periods) for card in (accessories or [])]

    subtotal = primary_line["subtotal"] + sum((x["subtotal"] for x in accessory_lines), ZERO)
    deposit_amount = primary_line["deposit"] + sum((x["deposit"] for x in accessory_lines), ZERO)

    final_total = subtotal - discount_amount + fee_amount
    if final_total < ZERO:
        final_total = ZERO

    return {
        "pricing_period": pricing_period,
        "start_date": start_date,
        "end_date": end_date,
        "days": days,
        "periods": periods,
        "primary": primary_line,
        "accessories": accessory_lines,
        "subtotal": subtotal,
        "discount_amount": discount_amount,
        "fee_amount": fee_amount,
        "final_total": final_total,
        "deposit_amount": deposit_amount,
    }


def _line_to_dict(line: dict) -> dict:
    return {
        "ref": line["ref"],
        "rate": str(line["rate"]),
        "periods": line["periods"],
        "subtotal": str(line["subtotal"]),
        "deposit": str(line["deposit"]),
    }


def quote_to_dict(q: dict) -> dict:
    """JSON-friendly copy of a quote: money as strings, dates as ISO."""
    return {
        "pricing_period": q["pricing_period"],
        "start_date": q["start_date"].isoformat(),
        "end_date": q["end_date"].isoformat(),
        "days": q["days"],
        "periods": q["periods"],
        "primary": _line_to_dict(q["primary"]),
        "accessories": [_line_to_dict(x) for x in q["accessories"]],
        "subtotal": str(q["subtotal"]),
        "discount_amount": str(q["discount_amount"]),
        "fee_amount": str(q["fee_amount"]),
        "final_total": str(q["final_total"]),
        "deposit_amount": str(q["deposit_amount"]),
    }
