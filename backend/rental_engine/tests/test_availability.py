from datetime import date, timedelta

import pytest

from rental_engine.services import availability_service
from rental_engine.utils.errors import ValidationError


def _d(offset: int) -> str:
	return (date.today() + timedelta(days=offset)).isoformat()


def _create(client, headers, equipment_id, start: int, end: int):
	return client.post(
		"/api/rentals",
		json={
			"equipment_id": equipment_id,
			"pricing_period": "weekly",
			"start_date": _d(start),
			"end_date": _d(end),
		},
		headers=headers,
	)


@pytest.mark.parametrize(
	"a,b,expected",
	[
		((1, 5), (5, 9), True),  # shared boundary day
		((1, 5), (6, 9), False),  # adjacent
		((3, 4), (1, 9), True),  # contained
		((1, 1), (1, 1), True),
	],
)
def test_ranges_overlap_is_inclusive(a, b, expected):
	base = date(2026, 1, 1)
	s1, e1 = (base + timedelta(days=x) for x in a)
	s2, e2 = (base + timedelta(days=x) for x in b)
	assert availability_service.ranges_overlap(s1, e1, s2, e2) is expected
	assert availability_service.ranges_overlap(s2, e2, s1, e1) is expected


def test_resource_key_rejects_unknown_type():
	assert availability_service.resource_key("equipment", 7) == "equipment:7"
	assert availability_service.resource_key("product", 3) == "product:3"
	with pytest.raises(ValidationError):
		availability_service.resource_key("accessory", 1)


def test_validate_range_enforces_max_days():
	start = date(2026, 1, 1)
	availability_service.validate_range(start, start + timedelta(days=9), max_days=10)
	with pytest.raises(ValidationError):
		availability_service.validate_range(start, start + timedelta(days=10), max_days=10)


def test_free_resource_is_available(client, make_user, auth_header, make_equipment):
	user = make_user()
	bike = make_equipment()

	resp = client.get(
		"/api/availability",
		query_string={
			"resource_type": "equipment",
			"resource_id": bike.id,
			"start_date": _d(10),
			"end_date": _d(15),
		},
		headers=auth_header(user.id),
	)
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert data["available"] is True
	assert data["conflicting_rental_ids"] == []
	assert data["resource_key"] == f"equipment:{bike.id}"


def test_overlap_reports_conflicting_rentals(client, make_user, auth_header, make_equipment):
	user = make_user()
	bike = make_equipment()
	headers = auth_header(user.id)

	r = _create(client, headers, bike.id, 10, 15)
	assert r.status_code == 201
	rental_id = r.get_json()["data"]["id"]

	resp = client.get(
		"/api/availability",
		query_string={
			"resource_type": "equipment",
			"resource_id": bike.id,
			"start_date": _d(15),
			"end_date": _d(20),
		},
		headers=headers,
	)
	data = resp.get_json()["data"]
	assert data["available"] is False
	assert data["conflicting_rental_ids"] == [rental_id]
	assert data["blocked_ranges"][0]["start_date"] == _d(10)
	assert data["blocked_ranges"][0]["end_date"] == _d(15)

	# Adjacent window is free
	resp2 = client.get(
		"/api/availability",
		query_string={
			"resource_type": "equipment",
			"resource_id": bike.id,
			"start_date": _d(16),
			"end_date": _d(20),
		},
		headers=headers,
	)
	assert resp2.get_json()["data"]["available"] is True


def test_exclude_rental_id_ignores_that_rental(client, make_user, auth_header, make_equipment):
	user = make_user()
	bike = make_equipment()
	headers = auth_header(user.id)

	rental_id = _create(client, headers, bike.id, 30, 35).get_json()["data"]["id"]

	resp = client.get(
		"/api/availability",
		query_string={
			"resource_type": "equipment",
			"resource_id": bike.id,
			"start_date": _d(30),
			"end_date": _d(35),
			"exclude_rental_id": rental_id,
		},
		headers=headers,
	)
	assert resp.get_json()["data"]["available"] is True


def test_cancelled_rental_does_not_block(client, make_user, auth_header, make_equipment):
	user = make_user()
	bike = make_equipment()
	headers = auth_header(user.id)

	rental_id = _create(client, headers, bike.id, 40, 42).get_json()["data"]["id"]
	assert client.post(f"/api/rentals/{rental_id}/cancel", headers=headers).status_code == 200

	resp = client.get(
		"/api/availability",
		query_string={
			"resource_type": "equipment",
			"resource_id": bike.id,
			"start_date": _d(40),
			"end_date": _d(42),
		},
		headers=headers,
	)
	assert resp.get_json()["data"]["available"] is True


def test_reserved_windows_lists_occupied_ranges(client, make_user, auth_header, make_equipment):
	user = make_user()
	bike = make_equipment()
	headers = auth_header(user.id)

	first = _create(client, headers, bike.id, 50, 52).get_json()["data"]["id"]
	second = _create(client, headers, bike.id, 60, 61).get_json()["data"]["id"]
	_create(client, headers, bike.id, 90, 91)

	resp = client.get(
		"/api/availability/windows",
		query_string={
			"resource_type": "equipment",
			"resource_id": bike.id,
			"start_date": _d(45),
			"end_date": _d(70),
		},
		headers=headers,
	)
	assert resp.status_code == 200
	windows = resp.get_json()["data"]
	assert [w["rental_id"] for w in windows] == [first, second]
	assert all(w["resource_key"] == f"equipment:{bike.id}" for w in windows)


def test_availability_rejects_inverted_range(client, make_user, auth_header, make_equipment):
	user = make_user()
	bike = make_equipment()

	resp = client.get(
		"/api/availability",
		query_string={
			"resource_type": "equipment",
			"resource_id": bike.id,
			"start_date": _d(5),
			"end_date": _d(4),
		},
		headers=auth_header(user.id),
	)
	assert resp.status_code == 400
	assert resp.get_json()["success"] is False


def test_availability_requires_token(client):
	resp = client.get("/api/availability", query_string={"resource_type": "equipment", "resource_id": 1})
	assert resp.status_code == 401
