"""
Read-only access to the rentable catalog: equipment units, product templates,
accessories and pricing modifiers. Nothing here mutates catalog rows.
"""

from decimal import Decimal

from rental_engine.extensions.db import db
from rental_engine.models.accessory import Accessory
from rental_engine.models.equipment import Equipment
from rental_engine.models.pricing_modifier import PricingModifier
from rental_engine.models.product_template import ProductTemplate
from rental_engine.services import pricing_service
from rental_engine.services.availability_service import resource_key
from rental_engine.utils.errors import NotFoundError, ValidationError


EQUIPMENT_NOT_RENTABLE = ("maintenance", "retired")


def get_rates(item) -> dict:
    """Rate card for an equipment unit, product template or accessory."""
    if isinstance(item, Equipment):
        ref = resource_key("equipment", item.id)
    elif isinstance(item, ProductTemplate):
        ref = resource_key("product", item.id)
    else:
        ref = f"accessory:{item.id}"

    return {
        "ref": ref,
        "name": item.name,
        "weekly_rate": item.weekly_rate,
        "monthly_rate": item.monthly_rate,
        "deposit_amount": item.deposit_amount,
    }


def resolve_primary(equipment_id: int | None = None, product_template_id: int | None = None):
    """
    Load the primary item of a rental. Returns (resource_key, item).

    Exactly one id must be given.
    """
    if (equipment_id is None) == (product_template_id is None):
        raise ValidationError(
            "Provide exactly one of equipment_id or product_template_id.",
            errors={"primary": ["Exactly one primary item is required."]},
        )

    if equipment_id is not None:
        equipment: Equipment | None = db.session.get(Equipment, equipment_id)
        if not equipment:
            raise NotFoundError("Equipment not found.")
        if equipment.status in EQUIPMENT_NOT_RENTABLE:
            raise ValidationError(f"Equipment is {equipment.status} and not available for rent.")
        return resource_key("equipment", equipment.id), equipment

    product: ProductTemplate | None = db.session.get(ProductTemplate, product_template_id)
    if not product or not product.is_active:
        raise NotFoundError("Product not found.")
    return resource_key("product", product.id), product


def resolve_accessories(selections: list[dict] | None) -> list[tuple[Accessory, str | None]]:
    """
    selections: [{"accessory_id": int, "selected_color": str | None}, ...]
    Returns [(Accessory, selected_color), ...] in request order.
    """
    selections = selections or []

    ids = [s["accessory_id"] for s in selections]
    if len(ids) != len(set(ids)):
        raise ValidationError(
            "Each accessory can only be selected once.",
            errors={"accessories": ["Duplicate accessory_id."]},
        )
    if not ids:
        return []

    found = {
        a.id: a
        for a in Accessory.query.filter(Accessory.id.in_(ids), Accessory.is_active.is_(True)).all()
    }
    missing = [i for i in ids if i not in found]
    if missing:
        raise NotFoundError(f"Accessory not found: {', '.join(str(i) for i in missing)}.")

    return [(found[s["accessory_id"]], s.get("selected_color")) for s in selections]


def get_active_modifier(name: str) -> PricingModifier | None:
    return PricingModifier.query.filter_by(name=name, is_active=True).first()


def resolve_adjustments(user, primary, subtotal: Decimal) -> dict:
    """
    Flat discount/fee amounts for a subtotal, from the catalog's modifiers.

    - student_discount: renter is a student.
    - new_equipment_fee: primary item is flagged new.
    """
    discount = pricing_service.ZERO
    fee = pricing_service.ZERO
    student_applied = False
    new_fee_applied = False

    if user is not None and getattr(user, "is_student", False):
        mod = get_active_modifier("student_discount")
        if mod is not None:
            discount = pricing_service.percentage_of(subtotal, mod.percentage)
            student_applied = True

    if getattr(primary, "is_new", False):
        mod = get_active_modifier("new_equipment_fee")
        if mod is not None:
            fee = pricing_service.percentage_of(subtotal, mod.percentage)
            new_fee_applied = True

    return {
        "discount": discount,
        "fee": fee,
        "student_discount_applied": student_applied,
        "new_equipment_fee_applied": new_fee_applied,
    }


def list_pricing_modifiers() -> list[dict]:
    q = PricingModifier.query.filter_by(is_active=True).order_by(PricingModifier.type, PricingModifier.name)
    return [
        {
            "id": m.id,
            "name": m.name,
            "display_name": m.display_name,
            "type": m.type,
            "percentage": str(m.percentage),
            "description": m.description,
        }
        for m in q.all()
    ]
