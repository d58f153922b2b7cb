from flask_jwt_extended import get_jwt, get_jwt_identity

from rental_engine.utils.errors import ApiError


ADMIN_ROLES = ("ADMIN", "SUPER_USER")


def current_user_id() -> int:
	"""Identity of the bearer token as int; tokens carry it as a string."""
	identity = get_jwt_identity()
	try:
		return int(identity)
	except (TypeError, ValueError):
		raise ApiError("Invalid token", 401)


def current_roles() -> list[str]:
	claims = get_jwt() or {}
	return [str(r) for r in (claims.get("roles") or [])]


def is_admin(roles: list[str] | None = None) -> bool:
	roles = current_roles() if roles is None else roles
	return any(str(r).upper() in ADMIN_ROLES for r in roles)


def require_admin() -> None:
	if not is_admin():
		raise ApiError("Not authorized (admin)", 403, payload={"code": "ADMIN_REQUIRED"})
