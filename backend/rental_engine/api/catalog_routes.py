from flask import Blueprint

from rental_engine.services import catalog_service
from rental_engine.utils.responses import success_response

bp = Blueprint("catalog", __name__)


@bp.get("/pricing-modifiers")
def list_pricing_modifiers():
    return success_response(data=catalog_service.list_pricing_modifiers())
