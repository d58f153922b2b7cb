# backend/seed_catalog.py
from decimal import Decimal

from rental_engine import create_app
from rental_engine.extensions import db
from rental_engine.models import Accessory, Equipment, PricingModifier, ProductTemplate, User

app = create_app()

with app.app_context():
    if Equipment.query.first():
        raise RuntimeError("Catalog already seeded; refusing to insert duplicates.")

    admin = User.query.filter_by(email="admin@rental.test").first()
    if not admin:
        admin = User(email="admin@rental.test", name="Rental Admin")
        db.session.add(admin)

    db.session.add_all(
        [
            Equipment(
                name="Road bike 54cm",
                serial_number="RB-54-0001",
                weekly_rate=Decimal("50.00"),
                monthly_rate=Decimal("150.00"),
                deposit_amount=Decimal("200.00"),
                status="available",
            ),
            Equipment(
                name="E-bike commuter",
                serial_number="EB-0001",
                weekly_rate=Decimal("80.00"),
                monthly_rate=Decimal("240.00"),
                deposit_amount=Decimal("400.00"),
                status="available",
                is_new=True,
            ),
            ProductTemplate(
                name="City bike (any size)",
                weekly_rate=Decimal("35.00"),
                monthly_rate=Decimal("100.00"),
                deposit_amount=Decimal("150.00"),
            ),
            Accessory(
                name="Helmet",
                weekly_rate=Decimal("10.00"),
                monthly_rate=Decimal("25.00"),
                deposit_amount=Decimal("20.00"),
            ),
            Accessory(
                name="U-lock",
                weekly_rate=Decimal("5.00"),
                monthly_rate=Decimal("12.00"),
                deposit_amount=Decimal("15.00"),
            ),
            PricingModifier(
                name="student_discount",
                display_name="Student discount",
                type="discount",
                percentage=Decimal("15.00"),
                description="Applied to renters with a verified student status.",
            ),
            PricingModifier(
                name="new_equipment_fee",
                display_name="New equipment fee",
                type="fee",
                percentage=Decimal("10.00"),
                description="Applied when the rented item is flagged as new.",
            ),
        ]
    )
    db.session.commit()

    print("Demo catalog created.")
