from datetime import datetime

from flask import current_app

from rental_engine.models.deposit_event import DepositEvent
from rental_engine.models.rental import Rental
from rental_engine.utils.errors import InvalidTransitionError


# held -> released | forfeited; both are final
DEPOSIT_TRANSITIONS = {
    "held": ("released", "forfeited"),
    "released": (),
    "forfeited": (),
}


def _record(rental: Rental, action: str, note: str | None, amount=None) -> DepositEvent:
    text = (note or "").strip()[:300] or None

    event = DepositEvent(
        action=action,
        amount=rental.deposit_amount if amount is None else amount,
        note=text,
    )
    rental.deposit_events.append(event)
    return event


def hold(rental: Rental, note: str | None = None) -> DepositEvent:
    """Open the ledger of a new rental with a hold for its full deposit."""
    if rental.deposit_events:
        raise InvalidTransitionError(rental.deposit_status, "held", "Deposit is already held.")

    rental.deposit_status = "held"
    for line in rental.accessories:
        line.deposit_status = "held"
    return _record(rental, "held", note)


def extend_hold(rental: Rental, new_total, note: str | None = None) -> DepositEvent:
    """Raise an open hold to new_total; the event records only the added amount."""
    if rental.deposit_status != "held":
        raise InvalidTransitionError(rental.deposit_status, "held", f"Deposit is already {rental.deposit_status}.")

    added = new_total - rental.deposit_amount
    rental.deposit_amount = new_total
    current_app.logger.info("[deposit] extended rental=%s added=%s total=%s", rental.id, added, new_total)
    return _record(rental, "held", note, amount=added)


def _settle(rental: Rental, target: str, note: str | None) -> DepositEvent:
    current = rental.deposit_status or "held"
    if target not in DEPOSIT_TRANSITIONS.get(current, ()):
        raise InvalidTransitionError(
            current,
            target,
            f"Deposit is already {current}.",
        )

    rental.deposit_status = target
    rental.deposit_settled_at = datetime.utcnow()
    if note:
        rental.deposit_notes = note.strip() or rental.deposit_notes
    for line in rental.accessories:
        line.deposit_status = target

    current_app.logger.info(
        "[deposit] %s rental=%s amount=%s",
        target,
        rental.id,
        rental.deposit_amount,
    )
    return _record(rental, target, note)


def release(rental: Rental, note: str | None = None) -> DepositEvent:
    return _settle(rental, "released", note)


def forfeit(rental: Rental, note: str | None = None) -> DepositEvent:
    return _settle(rental, "forfeited", note)


def deposit_event_to_dict(event: DepositEvent) -> dict:
    return {
        "id": event.id,
        "action": event.action,
        "amount": str(event.amount) if event.amount is not None else None,
        "note": event.note,
        "created_at": event.created_at.isoformat() if event.created_at else None,
    }
