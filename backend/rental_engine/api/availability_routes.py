from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from rental_engine.schemas.rental_schemas import AvailabilityQuerySchema
from rental_engine.services import availability_service
from rental_engine.utils.responses import success_response

bp = Blueprint("availability", __name__)

availability_query_schema = AvailabilityQuerySchema()


def _load_query() -> tuple[str, dict]:
    data = availability_query_schema.load(request.args.to_dict())
    key = availability_service.resource_key(data["resource_type"], data["resource_id"])
    return key, data


@bp.get("")
@jwt_required()
def check_availability():
    """
    ?resource_type=equipment&resource_id=1&start_date=2026-03-01&end_date=2026-03-10
    Optional exclude_rental_id ignores one rental (e.g. when editing it).
    """
    key, data = _load_query()
    result = availability_service.check_availability(
        key,
        data["start_date"],
        data["end_date"],
        exclude_rental_id=data.get("exclude_rental_id"),
    )
    result["resource_key"] = key
    return success_response(data=result)


@bp.get("/windows")
@jwt_required()
def list_windows():
    key, data = _load_query()
    windows = availability_service.list_reserved_windows(key, data["start_date"], data["end_date"])
    return success_response(data=windows)
