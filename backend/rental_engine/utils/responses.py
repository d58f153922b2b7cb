from flask import jsonify


def success_response(data=None, message="OK", status_code=200):
    payload = {"success": True, "message": message}
    if data is not None:
        payload["data"] = data
    response = jsonify(payload)
    response.status_code = status_code
    return response


def page_response(items: list, page: int, per_page: int, total: int, message="OK"):
    """Envelope for paginated listings: data = {items, page, per_page, total}."""
    return success_response(
        data={
            "items": items,
            "page": page,
            "per_page": per_page,
            "total": int(total),
        },
        message=message,
    )
