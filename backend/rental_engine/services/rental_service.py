from datetime import date, datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from rental_engine.extensions.db import db
from rental_engine.models.rental import Rental
from rental_engine.models.rental_accessory import RentalAccessory
from rental_engine.models.user import User
from rental_engine.services import availability_service, catalog_service, deposit_service, pricing_service
from rental_engine.utils.errors import (
    ApiError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
)
from rental_engine.utils.security import is_admin


RENTAL_MAX_DAYS_DEFAULT = 366
DEFAULT_CANCEL_REASON = "Cancelled by request"

# operation -> (allowed source statuses, target status)
TRANSITIONS = {
    "confirm": (("pending",), "confirmed"),
    "pickup": (("confirmed",), "active"),
    "return": (("active",), "completed"),
    "cancel": (("pending", "confirmed"), "cancelled"),
}


def _get_max_days() -> int:
    try:
        v = int(current_app.config.get("RENTAL_MAX_DAYS", RENTAL_MAX_DAYS_DEFAULT))
        return max(1, v)
    except (TypeError, ValueError):
        return RENTAL_MAX_DAYS_DEFAULT


def _get_default_cancel_reason() -> str:
    return current_app.config.get("RENTAL_DEFAULT_CANCEL_REASON") or DEFAULT_CANCEL_REASON


def _today() -> date:
    return datetime.utcnow().date()


def _money(value) -> str | None:
    if value is None:
        return None
    return str(pricing_service.to_money(value))


def _iso(value) -> str | None:
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Derived view
# ---------------------------------------------------------------------------

def is_overdue(rental: Rental, today: date | None = None) -> bool:
    """Computed at read time, never stored: active and past its end_date."""
    today = today or _today()
    return rental.status == "active" and today > rental.end_date


def display_status(rental: Rental, today: date | None = None) -> str:
    return "overdue" if is_overdue(rental, today) else rental.status


def _accessory_line_to_dict(line: RentalAccessory) -> dict:
    return {
        "id": line.id,
        "accessory_id": line.accessory_id,
        "name": line.accessory.name if line.accessory else None,
        "selected_color": line.selected_color,
        "weekly_rate": _money(line.weekly_rate),
        "monthly_rate": _money(line.monthly_rate),
        "rate": _money(line.rate),
        "line_subtotal": _money(line.line_subtotal),
        "deposit_amount": _money(line.deposit_amount),
        "deposit_status": line.deposit_status,
    }


def rental_to_dict(rental: Rental, today: date | None = None) -> dict:
    resource_type = rental.resource_key.split(":", 1)[0] if rental.resource_key else None
    primary = rental.equipment if rental.equipment_id is not None else rental.product_template
    occupying = rental.status in availability_service.OCCUPYING_STATUSES

    return {
        "id": rental.id,
        "user_id": rental.user_id,
        "user": {
            "id": rental.user.id,
            "name": rental.user.name,
            "email": rental.user.email,
        }
        if rental.user
        else None,
        "resource_key": rental.resource_key,
        "resource_type": resource_type,
        "equipment_id": rental.equipment_id,
        "product_template_id": rental.product_template_id,
        "primary": {"id": primary.id, "name": primary.name} if primary else None,
        "pricing_period": rental.pricing_period,
        "start_date": _iso(rental.start_date),
        "end_date": _iso(rental.end_date),
        "days": rental.days,
        "periods": rental.periods,
        "weekly_rate": _money(rental.weekly_rate),
        "monthly_rate": _money(rental.monthly_rate),
        "primary_rate": _money(rental.primary_rate),
        "primary_deposit": _money(rental.primary_deposit),
        "accessories": [_accessory_line_to_dict(x) for x in rental.accessories],
        "subtotal": _money(rental.subtotal),
        "discount_amount": _money(rental.discount_amount),
        "fee_amount": _money(rental.fee_amount),
        "final_total": _money(rental.final_total),
        "student_discount_applied": bool(rental.student_discount_applied),
        "new_equipment_fee_applied": bool(rental.new_equipment_fee_applied),
        "deposit_amount": _money(rental.deposit_amount),
        "deposit_status": rental.deposit_status,
        "deposit_settled_at": _iso(rental.deposit_settled_at),
        "deposit_notes": rental.deposit_notes,
        "deposit_events": [deposit_service.deposit_event_to_dict(e) for e in rental.deposit_events],
        "status": rental.status,
        "display_status": display_status(rental, today),
        "is_overdue": is_overdue(rental, today),
        "reservation_window": {
            "resource_key": rental.resource_key,
            "start_date": _iso(rental.start_date),
            "end_date": _iso(rental.end_date),
        }
        if occupying
        else None,
        "notes": rental.notes,
        "pickup_date": _iso(rental.pickup_date),
        "return_date": _iso(rental.return_date),
        "damage_reported": bool(rental.damage_reported),
        "cancelled_at": _iso(rental.cancelled_at),
        "cancelled_reason": rental.cancelled_reason,
        "created_at": _iso(rental.created_at),
        "updated_at": _iso(rental.updated_at),
    }


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

def _price_request(data: dict, renter: User | None, apply_student_discount: bool = True):
    """
    Resolve catalog items and price them.

    Returns (resource_key, primary, [(accessory, color)], quote, adjustments).
    The catalog is read once here; the rental stores copies of these rates.
    """
    key, primary = catalog_service.resolve_primary(
        equipment_id=data.get("equipment_id"),
        product_template_id=data.get("product_template_id"),
    )
    pairs = catalog_service.resolve_accessories(data.get("accessories"))

    primary_card = catalog_service.get_rates(primary)
    accessory_cards = [catalog_service.get_rates(acc) for acc, _ in pairs]

    base = pricing_service.quote(
        primary_card,
        data["pricing_period"],
        accessory_cards,
        data["start_date"],
        data["end_date"],
    )

    adjustments = catalog_service.resolve_adjustments(
        renter if apply_student_discount else None,
        primary,
        base["subtotal"],
    )

    priced = pricing_service.quote(
        primary_card,
        data["pricing_period"],
        accessory_cards,
        data["start_date"],
        data["end_date"],
        discount=adjustments["discount"],
        fee=adjustments["fee"],
    )
    return key, primary, pairs, priced, adjustments


def quote_rental(data: dict, current_user_id: int) -> dict:
    """Price preview; persists nothing and reserves nothing."""
    availability_service.validate_range(data["start_date"], data["end_date"], max_days=_get_max_days())

    renter = db.session.get(User, current_user_id)
    key, _, _, q, adjustments = _price_request(
        data,
        renter,
        apply_student_discount=bool(data.get("apply_student_discount")),
    )

    result = pricing_service.quote_to_dict(q)
    result["resource_key"] = key
    result["student_discount_eligible"] = bool(renter is not None and renter.is_student)
    result["student_discount_applied"] = adjustments["student_discount_applied"]
    result["new_equipment_fee_applied"] = adjustments["new_equipment_fee_applied"]
    return result


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

def _raise_conflict(availability: dict) -> None:
    raise ConflictError(
        "The item is already reserved for the selected dates.",
        conflicting_rental_ids=availability["conflicting_rental_ids"],
        blocked_ranges=availability["blocked_ranges"],
    )


def create_rental(data: dict, current_user_id: int, roles: list[str] | None = None) -> dict:
    """
    Create a rental in 'pending' status.

    - Resolve the renter (admins may book on behalf of another user).
    - Price the request from the catalog and snapshot the rates.
    - Check availability, then insert the rental together with its day
      claims in one transaction. A concurrent booking that slips past the
      check loses on the (resource_key, day) unique constraint.
    - Open the deposit ledger with a hold.
    """
    roles = roles or []

    renter_id = current_user_id
    requested_user_id = data.get("user_id")
    if requested_user_id is not None and requested_user_id != current_user_id:
        if not is_admin(roles):
            raise ApiError(
                "Only admins can create rentals for other users.",
                403,
                payload={"code": "ADMIN_REQUIRED"},
            )
        renter_id = requested_user_id

    renter: User | None = db.session.get(User, renter_id)
    if not renter or not renter.is_active:
        raise NotFoundError("User not found.")

    start_date: date = data["start_date"]
    end_date: date = data["end_date"]
    availability_service.validate_range(start_date, end_date, max_days=_get_max_days())

    key, primary, pairs, q, adjustments = _price_request(data, renter)

    availability = availability_service.check_availability(key, start_date, end_date)
    if not availability["available"]:
        _raise_conflict(availability)

    primary_line = q["primary"]
    rental = Rental(
        user_id=renter.id,
        equipment_id=primary.id if key.startswith("equipment:") else None,
        product_template_id=primary.id if key.startswith("product:") else None,
        resource_key=key,
        start_date=start_date,
        end_date=end_date,
        pricing_period=q["pricing_period"],
        days=q["days"],
        periods=q["periods"],
        weekly_rate=pricing_service.to_money(primary.weekly_rate),
        monthly_rate=pricing_service.to_money(primary.monthly_rate),
        primary_rate=primary_line["rate"],
        primary_deposit=primary_line["deposit"],
        subtotal=q["subtotal"],
        discount_amount=q["discount_amount"],
        fee_amount=q["fee_amount"],
        final_total=q["final_total"],
        student_discount_applied=adjustments["student_discount_applied"],
        new_equipment_fee_applied=adjustments["new_equipment_fee_applied"],
        deposit_amount=q["deposit_amount"],
        deposit_status="held",
        status="pending",
        notes=(data.get("notes") or "").strip() or None,
    )

    for (accessory, color), line in zip(pairs, q["accessories"]):
        rental.accessories.append(
            RentalAccessory(
                accessory_id=accessory.id,
                selected_color=(color or "").strip() or None,
                weekly_rate=pricing_service.to_money(accessory.weekly_rate),
                monthly_rate=pricing_service.to_money(accessory.monthly_rate),
                rate=line["rate"],
                line_subtotal=line["subtotal"],
                deposit_amount=line["deposit"],
                deposit_status="held",
            )
        )

    db.session.add(rental)
    try:
        db.session.flush()
        availability_service.reserve_window(rental)
        deposit_service.hold(rental)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        again = availability_service.check_availability(key, start_date, end_date)
        if again["available"]:
            raise _concurrent_update(
                None,
                "The reservation could not be saved because of a concurrent change. Try again.",
            )
        current_app.logger.info("[rentals] create lost race resource=%s range=%s..%s", key, start_date, end_date)
        _raise_conflict(again)

    current_app.logger.info(
        "[rentals] created id=%s resource=%s range=%s..%s total=%s deposit=%s",
        rental.id,
        key,
        start_date.isoformat(),
        end_date.isoformat(),
        rental.final_total,
        rental.deposit_amount,
    )
    return rental_to_dict(rental)


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

def _require_rental(rental_id: int, for_update: bool = False) -> Rental:
    if for_update:
        rental = db.session.get(Rental, rental_id, with_for_update=True, populate_existing=True)
    else:
        rental = db.session.get(Rental, rental_id)
    if not rental:
        raise NotFoundError("Rental not found.")
    return rental


def _require_owner_or_admin(rental: Rental, current_user_id: int, roles: list[str] | None) -> None:
    if rental.user_id != current_user_id and not is_admin(roles or []):
        raise ApiError("You can only access your own rentals.", 403)


def get_rental(rental_id: int, current_user_id: int, roles: list[str] | None = None) -> dict:
    rental = _require_rental(rental_id)
    _require_owner_or_admin(rental, current_user_id, roles)
    return rental_to_dict(rental)


def list_rentals(
    current_user_id: int,
    roles: list[str] | None,
    status: str | None = None,
    user_id: int | None = None,
    resource_type: str | None = None,
    resource_id: int | None = None,
    page: int | str = 1,
    per_page: int | str = 20,
) -> dict:
    """Regular users see their own rentals; admins may see all or filter by user."""
    try:
        page_int = max(int(page), 1)
    except (TypeError, ValueError):
        page_int = 1
    try:
        per_page_int = min(max(int(per_page), 1), 100)
    except (TypeError, ValueError):
        per_page_int = 20

    query = Rental.query
    if not is_admin(roles or []):
        query = query.filter(Rental.user_id == current_user_id)
    elif user_id is not None:
        query = query.filter(Rental.user_id == user_id)

    if status:
        query = query.filter(Rental.status == status)

    if resource_type and resource_id is not None:
        key = availability_service.resource_key(resource_type, resource_id)
        query = query.filter(Rental.resource_key == key)

    total = int(query.order_by(None).with_entities(func.count(Rental.id)).scalar() or 0)
    items = (
        query.order_by(Rental.created_at.desc(), Rental.id.desc())
        .offset((page_int - 1) * per_page_int)
        .limit(per_page_int)
        .all()
    )

    today = _today()
    return {
        "page": page_int,
        "per_page": per_page_int,
        "total": total,
        "items": [rental_to_dict(x, today) for x in items],
    }


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def _concurrent_update(rental_id: int | None, message: str | None = None) -> ApiError:
    return ApiError(
        message or "The rental was modified by another request. Reload it and try again.",
        409,
        payload={"code": "CONCURRENT_UPDATE", "rental_id": rental_id},
    )


def _guard(rental: Rental, operation: str) -> str:
    allowed_from, target = TRANSITIONS[operation]
    if rental.status not in allowed_from:
        raise InvalidTransitionError(rental.status, target)
    return target


def _commit_transition(rental: Rental, operation: str) -> None:
    rental_id = rental.id
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise _concurrent_update(rental_id)

    current_app.logger.info("[rentals] %s id=%s status=%s", operation, rental_id, rental.status)


def _other_active_rentals(rental: Rental) -> int:
    return (
        Rental.query.filter(Rental.resource_key == rental.resource_key)
        .filter(Rental.status == "active")
        .filter(Rental.id != rental.id)
        .count()
    )


def confirm_rental(rental_id: int) -> dict:
    """Operator acknowledgement; dates and prices are not rechecked."""
    rental = _require_rental(rental_id, for_update=True)
    rental.status = _guard(rental, "confirm")
    _commit_transition(rental, "confirm")
    return rental_to_dict(rental)


def pickup_rental(rental_id: int) -> dict:
    rental = _require_rental(rental_id, for_update=True)
    target = _guard(rental, "pickup")

    equipment = rental.equipment
    if equipment is not None and equipment.status in catalog_service.EQUIPMENT_NOT_RENTABLE:
        raise ApiError(
            f"Equipment is {equipment.status} and cannot be handed out.",
            409,
            payload={"code": "EQUIPMENT_UNAVAILABLE", "equipment_status": equipment.status},
        )

    rental.status = target
    rental.pickup_date = datetime.utcnow()
    if equipment is not None:
        equipment.status = "rented"

    _commit_transition(rental, "pickup")
    return rental_to_dict(rental)


def return_rental(rental_id: int, damage_reported: bool = False, notes: str | None = None) -> dict:
    """
    Close an active rental. The deposit is released, or forfeited when the
    damage process reported damage. Not idempotent: a second call fails.

    The unit goes back to 'available' only if nobody else has it out and an
    operator did not move it to maintenance/retired meanwhile.
    """
    rental = _require_rental(rental_id, for_update=True)
    rental.status = _guard(rental, "return")
    rental.return_date = datetime.utcnow()
    rental.damage_reported = bool(damage_reported)

    availability_service.release_window(rental)

    if rental.damage_reported:
        deposit_service.forfeit(rental, notes or "Damage reported on return")
    else:
        deposit_service.release(rental, notes or "Returned in good condition")

    equipment = rental.equipment
    if (
        equipment is not None
        and equipment.status not in catalog_service.EQUIPMENT_NOT_RENTABLE
        and not _other_active_rentals(rental)
    ):
        equipment.status = "available"

    _commit_transition(rental, "return")
    return rental_to_dict(rental)


def cancel_rental(
    rental_id: int,
    current_user_id: int,
    roles: list[str] | None = None,
    reason: str | None = None,
) -> dict:
    rental = _require_rental(rental_id, for_update=True)
    _require_owner_or_admin(rental, current_user_id, roles)

    rental.status = _guard(rental, "cancel")
    rental.cancelled_at = datetime.utcnow()
    rental.cancelled_reason = (reason or "").strip() or _get_default_cancel_reason()

    availability_service.release_window(rental)
    # Nothing was collected against an unconfirmed hold
    deposit_service.release(rental, "Rental cancelled")

    _commit_transition(rental, "cancel")
    return rental_to_dict(rental)


# ---------------------------------------------------------------------------
# Changes to an existing rental
# ---------------------------------------------------------------------------

def _require_pending(rental: Rental, action: str) -> None:
    """Dates, lines and totals are frozen once the rental leaves 'pending'."""
    if rental.status != "pending":
        raise ApiError(
            f"Cannot {action} a rental that is {rental.status}.",
            409,
            payload={"code": "RENTAL_LOCKED", "current_status": rental.status},
        )


def _snapshot_cards(rental: Rental) -> tuple[dict, list[dict]]:
    """Rate cards rebuilt from the rental's own snapshots, not the live catalog."""
    primary_card = {
        "ref": rental.resource_key,
        "weekly_rate": rental.weekly_rate,
        "monthly_rate": rental.monthly_rate,
        "deposit_amount": rental.primary_deposit,
    }
    accessory_cards = [
        {
            "ref": f"accessory:{line.accessory_id}",
            "weekly_rate": line.weekly_rate,
            "monthly_rate": line.monthly_rate,
            "deposit_amount": line.deposit_amount,
        }
        for line in rental.accessories
    ]
    return primary_card, accessory_cards


def _reprice(rental: Rental) -> dict:
    """Recompute the totals of a pending rental in place; returns the quote."""
    primary_card, accessory_cards = _snapshot_cards(rental)

    base = pricing_service.quote(
        primary_card,
        rental.pricing_period,
        accessory_cards,
        rental.start_date,
        rental.end_date,
    )
    primary = rental.equipment if rental.equipment_id is not None else rental.product_template
    with db.session.no_autoflush:
        adjustments = catalog_service.resolve_adjustments(rental.user, primary, base["subtotal"])

    q = pricing_service.quote(
        primary_card,
        rental.pricing_period,
        accessory_cards,
        rental.start_date,
        rental.end_date,
        discount=adjustments["discount"],
        fee=adjustments["fee"],
    )

    rental.days = q["days"]
    rental.periods = q["periods"]
    rental.subtotal = q["subtotal"]
    rental.discount_amount = q["discount_amount"]
    rental.fee_amount = q["fee_amount"]
    rental.final_total = q["final_total"]
    rental.student_discount_applied = adjustments["student_discount_applied"]
    rental.new_equipment_fee_applied = adjustments["new_equipment_fee_applied"]
    for line, priced in zip(rental.accessories, q["accessories"]):
        line.rate = priced["rate"]
        line.line_subtotal = priced["subtotal"]
    return q


def add_accessory(rental_id: int, accessory_id: int, selected_color: str | None = None) -> dict:
    """Add one accessory line to a pending rental, reprice it and grow the deposit hold."""
    rental = _require_rental(rental_id, for_update=True)
    _require_pending(rental, "add accessories to")

    if any(line.accessory_id == accessory_id for line in rental.accessories):
        raise ApiError(
            "Accessory already added to this rental.",
            409,
            payload={"code": "ACCESSORY_ALREADY_ADDED", "accessory_id": accessory_id},
        )

    [(accessory, color)] = catalog_service.resolve_accessories(
        [{"accessory_id": accessory_id, "selected_color": selected_color}]
    )
    line = RentalAccessory(
        accessory_id=accessory.id,
        selected_color=(color or "").strip() or None,
        weekly_rate=pricing_service.to_money(accessory.weekly_rate),
        monthly_rate=pricing_service.to_money(accessory.monthly_rate),
        rate=pricing_service.ZERO,
        line_subtotal=pricing_service.ZERO,
        deposit_amount=pricing_service.to_money(accessory.deposit_amount),
        deposit_status=rental.deposit_status,
    )
    rental.accessories.append(line)

    q = _reprice(rental)
    deposit_service.extend_hold(rental, q["deposit_amount"], f"Accessory {accessory.id} added")

    _commit_transition(rental, "add_accessory")
    return rental_to_dict(rental)


def reschedule_rental(
    rental_id: int,
    start_date: date,
    end_date: date,
    current_user_id: int,
    roles: list[str] | None = None,
) -> dict:
    """
    Move a pending rental to new dates and reprice it.

    Availability is checked against every other rental of the resource; the
    old day claims are swapped for the new ones in the same transaction.
    """
    rental = _require_rental(rental_id, for_update=True)
    _require_owner_or_admin(rental, current_user_id, roles)
    _require_pending(rental, "reschedule")

    availability_service.validate_range(start_date, end_date, max_days=_get_max_days())

    key = rental.resource_key
    availability = availability_service.check_availability(key, start_date, end_date, exclude_rental_id=rental.id)
    if not availability["available"]:
        _raise_conflict(availability)

    availability_service.release_window(rental)
    rental.start_date = start_date
    rental.end_date = end_date
    _reprice(rental)

    try:
        db.session.flush()
        availability_service.reserve_window(rental)
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise _concurrent_update(rental_id)
    except IntegrityError:
        db.session.rollback()
        again = availability_service.check_availability(key, start_date, end_date, exclude_rental_id=rental_id)
        if again["available"]:
            raise _concurrent_update(rental_id)
        _raise_conflict(again)

    current_app.logger.info(
        "[rentals] reschedule id=%s resource=%s range=%s..%s total=%s",
        rental_id,
        key,
        start_date.isoformat(),
        end_date.isoformat(),
        rental.final_total,
    )
    return rental_to_dict(rental)


def update_notes(rental_id: int, notes: str | None, current_user_id: int, roles: list[str] | None = None) -> dict:
    rental = _require_rental(rental_id, for_update=True)
    _require_owner_or_admin(rental, current_user_id, roles)

    rental.notes = (notes or "").strip() or None
    _commit_transition(rental, "notes")
    return rental_to_dict(rental)
