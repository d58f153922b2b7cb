from datetime import datetime

from rental_engine.extensions import db


EQUIPMENT_STATUSES = ("available", "rented", "maintenance", "retired")


class Equipment(db.Model):
    """A physical, serialized unit that can be rented on its own."""

    __tablename__ = "equipment"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    name = db.Column(db.String(255), nullable=False)
    serial_number = db.Column(db.String(100), unique=True, nullable=True)

    weekly_rate = db.Column(db.Numeric(10, 2), nullable=False)
    monthly_rate = db.Column(db.Numeric(10, 2), nullable=False)
    deposit_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False, default="available")
    is_new = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    def __repr__(self) -> str:
        return f"<Equipment id={self.id} status={self.status}>"
