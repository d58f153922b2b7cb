from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rental_engine.schemas.rental_schemas import (
    AddAccessorySchema,
    CancelRentalSchema,
    QuoteQuerySchema,
    RentalCreateSchema,
    RescheduleRentalSchema,
    ReturnRentalSchema,
    UpdateRentalSchema,
)
from rental_engine.services import rental_service
from rental_engine.utils.responses import page_response, success_response
from rental_engine.utils.security import current_roles, current_user_id, require_admin

bp = Blueprint("rentals", __name__)

rental_create_schema = RentalCreateSchema()
quote_query_schema = QuoteQuerySchema()
cancel_rental_schema = CancelRentalSchema()
return_rental_schema = ReturnRentalSchema()
add_accessory_schema = AddAccessorySchema()
reschedule_rental_schema = RescheduleRentalSchema()
update_rental_schema = UpdateRentalSchema()


@bp.get("/ping")
def ping():
    return success_response(message="rentals ok")


@bp.get("/quote")
@jwt_required()
def quote():
    """
    Price preview, nothing is reserved.
    Query:
      ?equipment_id=1&pricing_period=weekly&start_date=2026-03-01&end_date=2026-03-10
      &accessory_id=3&accessory_id=4&apply_student_discount=true
    """
    args = request.args.to_dict()
    args.pop("accessory_id", None)
    args["accessory_ids"] = request.args.getlist("accessory_id")

    data = quote_query_schema.load(args)
    data["accessories"] = [{"accessory_id": i} for i in data.pop("accessory_ids")]

    result = rental_service.quote_rental(data, current_user_id())
    return success_response(data=result)


@bp.post("")
@jwt_required()
def create_rental():
    """
    Body JSON:
    {
      "equipment_id": 1,
      "pricing_period": "weekly",
      "start_date": "2026-03-01",
      "end_date": "2026-03-10",
      "accessories": [{"accessory_id": 3, "selected_color": "black"}]
    }
    """
    data = rental_create_schema.load(request.get_json() or {})
    rental = rental_service.create_rental(data, current_user_id(), current_roles())

    return success_response(
        message="Rental created",
        data=rental,
        status_code=201,
    )


@bp.get("")
@jwt_required()
def list_rentals():
    page = rental_service.list_rentals(
        current_user_id(),
        current_roles(),
        status=request.args.get("status") or None,
        user_id=request.args.get("user_id", type=int),
        resource_type=request.args.get("resource_type") or None,
        resource_id=request.args.get("resource_id", type=int),
        page=request.args.get("page", 1),
        per_page=request.args.get("per_page", 20),
    )
    return page_response(page["items"], page["page"], page["per_page"], page["total"])


@bp.get("/<int:rental_id>")
@jwt_required()
def get_rental(rental_id: int):
    rental = rental_service.get_rental(rental_id, current_user_id(), current_roles())
    return success_response(data=rental)


@bp.post("/<int:rental_id>/confirm")
@jwt_required()
def confirm_rental(rental_id: int):
    require_admin()
    rental = rental_service.confirm_rental(rental_id)
    return success_response(message="Rental confirmed", data=rental)


@bp.post("/<int:rental_id>/pickup")
@jwt_required()
def pickup_rental(rental_id: int):
    require_admin()
    rental = rental_service.pickup_rental(rental_id)
    return success_response(message="Rental picked up", data=rental)


@bp.post("/<int:rental_id>/return")
@jwt_required()
def return_rental(rental_id: int):
    require_admin()
    data = return_rental_schema.load(request.get_json(silent=True) or {})
    rental = rental_service.return_rental(
        rental_id,
        damage_reported=data.get("damage_reported", False),
        notes=data.get("notes"),
    )
    return success_response(message="Rental returned", data=rental)


@bp.post("/<int:rental_id>/cancel")
@jwt_required()
def cancel_rental(rental_id: int):
    data = cancel_rental_schema.load(request.get_json(silent=True) or {})
    rental = rental_service.cancel_rental(
        rental_id,
        current_user_id(),
        current_roles(),
        reason=data.get("reason"),
    )
    return success_response(message="Rental cancelled", data=rental)


@bp.put("/<int:rental_id>")
@jwt_required()
def update_rental(rental_id: int):
    """Body JSON: {"notes": "..."}; owner or admin."""
    data = update_rental_schema.load(request.get_json() or {})
    rental = rental_service.update_notes(rental_id, data.get("notes"), current_user_id(), current_roles())
    return success_response(message="Rental updated", data=rental)


@bp.post("/<int:rental_id>/reschedule")
@jwt_required()
def reschedule_rental(rental_id: int):
    data = reschedule_rental_schema.load(request.get_json() or {})
    rental = rental_service.reschedule_rental(
        rental_id,
        data["start_date"],
        data["end_date"],
        current_user_id(),
        current_roles(),
    )
    return success_response(message="Rental rescheduled", data=rental)


@bp.post("/<int:rental_id>/accessories")
@jwt_required()
def add_accessory(rental_id: int):
    """
    Body JSON: {"accessory_id": 3, "selected_color": "black"}
    Pending rentals only; the rental is repriced.
    """
    require_admin()
    data = add_accessory_schema.load(request.get_json() or {})
    rental = rental_service.add_accessory(rental_id, data["accessory_id"], data.get("selected_color"))
    return success_response(message="Accessory added", data=rental, status_code=201)
