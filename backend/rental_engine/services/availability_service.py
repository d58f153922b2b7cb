from datetime import date, timedelta

from flask import current_app

from rental_engine.extensions.db import db
from rental_engine.models.rental import Rental
from rental_engine.models.reservation_day import ReservationDay
from rental_engine.utils.errors import ValidationError


# Rental statuses that occupy the resource calendar
OCCUPYING_STATUSES = (
    "pending",
    "confirmed",
    "active",
)

RESOURCE_TYPES = ("equipment", "product")


def resource_key(resource_type: str, resource_id: int) -> str:
    if resource_type not in RESOURCE_TYPES:
        raise ValidationError(
            "resource_type must be 'equipment' or 'product'.",
            errors={"resource_type": ["Must be one of: equipment, product."]},
        )
    return f"{resource_type}:{int(resource_id)}"


def ranges_overlap(start1: date, end1: date, start2: date, end2: date) -> bool:
    """
    True if the inclusive day ranges [start1, end1] and [start2, end2] share a day.
    """
    return start1 <= end2 and start2 <= end1


def validate_range(start_date: date, end_date: date, max_days: int | None = None) -> None:
    if start_date is None or end_date is None:
        raise ValidationError("start_date and end_date are required.")
    if end_date < start_date:
        raise ValidationError(
            "end_date must be on or after start_date.",
            errors={"end_date": ["Must be on or after start_date."]},
        )
    if max_days is not None and (end_date - start_date).days + 1 > max_days:
        raise ValidationError(
            f"A rental cannot be longer than {max_days} days.",
            errors={"end_date": [f"Range exceeds {max_days} days."]},
        )


def iter_days(start_date: date, end_date: date):
    d = start_date
    while d <= end_date:
        yield d
        d += timedelta(days=1)


def _overlapping_rentals(key: str, start_date: date, end_date: date, exclude_rental_id: int | None = None):
    q = (
        Rental.query.filter(Rental.resource_key == key)
        .filter(Rental.status.in_(OCCUPYING_STATUSES))
        .filter(Rental.start_date <= end_date)
        .filter(Rental.end_date >= start_date)
    )
    if exclude_rental_id is not None:
        q = q.filter(Rental.id != exclude_rental_id)
    return q.order_by(Rental.start_date.asc(), Rental.id.asc()).all()


def check_availability(
    key: str,
    start_date: date,
    end_date: date,
    exclude_rental_id: int | None = None,
) -> dict:
    """
    Whether `key` is free over [start_date, end_date].

    A conflict is a normal outcome, so it is reported in the result rather
    than raised: {"available", "conflicting_rental_ids", "blocked_ranges"}.
    """
    validate_range(start_date, end_date)

    conflicts = _overlapping_rentals(key, start_date, end_date, exclude_rental_id)

    if conflicts:
        current_app.logger.info(
            "[availability] conflict resource=%s range=%s..%s rentals=%s",
            key,
            start_date.isoformat(),
            end_date.isoformat(),
            [r.id for r in conflicts],
        )

    return {
        "available": not conflicts,
        "conflicting_rental_ids": [r.id for r in conflicts],
        "blocked_ranges": [
            {
                "rental_id": r.id,
                "start_date": r.start_date.isoformat(),
                "end_date": r.end_date.isoformat(),
                "status": r.status,
            }
            for r in conflicts
        ],
    }


def list_reserved_windows(key: str, from_date: date, to_date: date) -> list[dict]:
    """Occupied windows (resource, dates, rental, status) intersecting [from_date, to_date]."""
    validate_range(from_date, to_date)

    return [
        {
            "resource_key": r.resource_key,
            "start_date": r.start_date.isoformat(),
            "end_date": r.end_date.isoformat(),
            "rental_id": r.id,
            "status": r.status,
        }
        for r in _overlapping_rentals(key, from_date, to_date)
    ]


def reserve_window(rental: Rental) -> None:
    """
    Claim every day of the rental's range for its resource.

    Must run inside the transaction that inserts the rental; the unique
    (resource_key, day) constraint rejects the commit if another rental
    claimed any of these days first.
    """
    if rental.id is None:
        db.session.flush()

    db.session.add_all(
        [
            ReservationDay(resource_key=rental.resource_key, day=d, rental_id=rental.id)
            for d in iter_days(rental.start_date, rental.end_date)
        ]
    )


def release_window(rental: Rental) -> int:
    """Drop the rental's day claims; returns the number of freed days."""
    freed = (
        ReservationDay.query.filter(ReservationDay.rental_id == rental.id)
        .delete(synchronize_session=False)
    )
    current_app.logger.info(
        "[availability] released resource=%s rental=%s days=%s",
        rental.resource_key,
        rental.id,
        freed,
    )
    return int(freed or 0)
