from decimal import Decimal
from itertools import count

import pytest

from sqlalchemy.pool import StaticPool
from flask_jwt_extended import create_access_token

from rental_engine import create_app
from rental_engine.config import TestConfig as BaseTestConfig
from rental_engine.extensions import db

# Import models so SQLAlchemy registers mappers/tables
import rental_engine.models  # noqa: F401
from rental_engine.models.accessory import Accessory
from rental_engine.models.equipment import Equipment
from rental_engine.models.pricing_modifier import PricingModifier
from rental_engine.models.product_template import ProductTemplate
from rental_engine.models.user import User


_seq = count(1)


class PytestConfig(BaseTestConfig):
	SQLALCHEMY_DATABASE_URI = "sqlite://"
	SQLALCHEMY_ENGINE_OPTIONS = {
		"connect_args": {"check_same_thread": False},
		"poolclass": StaticPool,
	}
	JWT_SECRET_KEY = "test-secret"


@pytest.fixture(scope="session")
def app():
	app = create_app(PytestConfig)
	with app.app_context():
		db.create_all()
		yield app
		db.session.remove()
		db.drop_all()


@pytest.fixture()
def client(app):
	return app.test_client()


@pytest.fixture()
def db_session(app):
	with app.app_context():
		yield db.session
		db.session.rollback()


@pytest.fixture()
def make_user(db_session):
	def _make_user(
		email: str | None = None,
		name: str = "Test User",
		is_student: bool = False,
	):
		u = User(
			email=email or f"user{next(_seq)}@test.com",
			name=name,
			is_student=is_student,
		)
		db_session.add(u)
		db_session.commit()
		return u

	return _make_user


@pytest.fixture()
def make_token(app):
	def _make_token(user_id: int, roles: list[str] | None = None) -> str:
		roles = roles or []
		with app.app_context():
			return create_access_token(identity=str(user_id), additional_claims={"roles": roles})

	return _make_token


@pytest.fixture()
def auth_header(make_token):
	def _auth_header(user_id: int, roles: list[str] | None = None) -> dict:
		token = make_token(user_id, roles=roles)
		return {"Authorization": f"Bearer {token}"}

	return _auth_header


@pytest.fixture()
def admin_header(make_user, auth_header):
	admin = make_user(name="Admin")
	return auth_header(admin.id, roles=["ADMIN"])


@pytest.fixture()
def make_equipment(db_session):
	def _make_equipment(
		weekly_rate="50.00",
		monthly_rate="150.00",
		deposit_amount="200.00",
		status: str = "available",
		is_new: bool = False,
		name: str = "Road bike",
	):
		e = Equipment(
			name=name,
			serial_number=f"SN-{next(_seq)}",
			weekly_rate=Decimal(weekly_rate),
			monthly_rate=Decimal(monthly_rate),
			deposit_amount=Decimal(deposit_amount),
			status=status,
			is_new=is_new,
		)
		db_session.add(e)
		db_session.commit()
		return e

	return _make_equipment


@pytest.fixture()
def make_product(db_session):
	def _make_product(
		weekly_rate="35.00",
		monthly_rate="100.00",
		deposit_amount="150.00",
		is_active: bool = True,
		is_new: bool = False,
	):
		p = ProductTemplate(
			name="City bike",
			weekly_rate=Decimal(weekly_rate),
			monthly_rate=Decimal(monthly_rate),
			deposit_amount=Decimal(deposit_amount),
			is_active=is_active,
			is_new=is_new,
		)
		db_session.add(p)
		db_session.commit()
		return p

	return _make_product


@pytest.fixture()
def make_accessory(db_session):
	def _make_accessory(
		weekly_rate="10.00",
		monthly_rate="25.00",
		deposit_amount="20.00",
		is_active: bool = True,
		name: str = "Helmet",
	):
		a = Accessory(
			name=name,
			weekly_rate=Decimal(weekly_rate),
			monthly_rate=Decimal(monthly_rate),
			deposit_amount=Decimal(deposit_amount),
			is_active=is_active,
		)
		db_session.add(a)
		db_session.commit()
		return a

	return _make_accessory


@pytest.fixture()
def make_modifier(db_session):
	"""Modifiers are global catalog rows; the ones created here are removed after the test."""
	created = []

	def _make_modifier(name: str, percentage="10.00", is_active: bool = True):
		kind = "discount" if name == "student_discount" else "fee"
		m = PricingModifier(
			name=name,
			display_name=name.replace("_", " ").title(),
			type=kind,
			percentage=Decimal(percentage),
			is_active=is_active,
		)
		db_session.add(m)
		db_session.commit()
		created.append(m.id)
		return m

	yield _make_modifier

	db_session.rollback()
	if created:
		PricingModifier.query.filter(PricingModifier.id.in_(created)).delete(synchronize_session=False)
		db_session.commit()
