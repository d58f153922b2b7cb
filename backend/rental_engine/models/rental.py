from datetime import datetime

from rental_engine.extensions import db


RENTAL_STATUSES = ("pending", "confirmed", "active", "completed", "cancelled")
DEPOSIT_STATUSES = ("held", "released", "forfeited")
PRICING_PERIODS = ("weekly", "monthly")


class Rental(db.Model):
    __tablename__ = "rentals"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Primary item: exactly one of equipment_id / product_template_id
    equipment_id = db.Column(
        db.Integer,
        db.ForeignKey("equipment.id", ondelete="RESTRICT"),
        nullable=True,
    )
    product_template_id = db.Column(
        db.Integer,
        db.ForeignKey("product_templates.id", ondelete="RESTRICT"),
        nullable=True,
    )

    # 'equipment:<id>' | 'product:<id>', denormalized for availability queries
    resource_key = db.Column(db.String(64), nullable=False, index=True)

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    pricing_period = db.Column(db.String(10), nullable=False)
    days = db.Column(db.Integer, nullable=False)
    periods = db.Column(db.Integer, nullable=False)

    # Rates copied from the catalog at creation time
    weekly_rate = db.Column(db.Numeric(10, 2), nullable=False)
    monthly_rate = db.Column(db.Numeric(10, 2), nullable=False)
    primary_rate = db.Column(db.Numeric(10, 2), nullable=False)
    primary_deposit = db.Column(db.Numeric(10, 2), nullable=False)

    subtotal = db.Column(db.Numeric(10, 2), nullable=False)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    fee_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    final_total = db.Column(db.Numeric(10, 2), nullable=False)

    student_discount_applied = db.Column(db.Boolean, nullable=False, default=False)
    new_equipment_fee_applied = db.Column(db.Boolean, nullable=False, default=False)

    deposit_amount = db.Column(db.Numeric(10, 2), nullable=False)
    deposit_status = db.Column(db.String(20), nullable=False, default="held")
    deposit_settled_at = db.Column(db.DateTime, nullable=True)
    deposit_notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)

    notes = db.Column(db.Text, nullable=True)

    pickup_date = db.Column(db.DateTime, nullable=True)
    return_date = db.Column(db.DateTime, nullable=True)
    damage_reported = db.Column(db.Boolean, nullable=False, default=False)

    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancelled_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # Optimistic lock: UPDATE ... WHERE version = :seen
    version = db.Column(db.Integer, nullable=False)

    user = db.relationship("User", lazy="joined")
    equipment = db.relationship("Equipment", lazy="joined")
    product_template = db.relationship("ProductTemplate", lazy="joined")

    accessories = db.relationship(
        "RentalAccessory",
        back_populates="rental",
        cascade="all, delete-orphan",
        order_by="RentalAccessory.id",
    )
    deposit_events = db.relationship(
        "DepositEvent",
        back_populates="rental",
        cascade="all, delete-orphan",
        order_by="DepositEvent.id",
    )

    __table_args__ = (
        db.CheckConstraint(
            "(equipment_id IS NULL) <> (product_template_id IS NULL)",
            name="ck_rentals_one_primary_item",
        ),
        db.CheckConstraint("end_date >= start_date", name="ck_rentals_date_range"),
        db.Index("ix_rentals_resource_status", "resource_key", "status"),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Rental id={self.id} resource={self.resource_key} status={self.status}>"
