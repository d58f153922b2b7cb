from datetime import datetime

from rental_engine.extensions import db


class ProductTemplate(db.Model):
    """A catalog product rented by model rather than by serial number."""

    __tablename__ = "product_templates"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    name = db.Column(db.String(255), nullable=False)

    weekly_rate = db.Column(db.Numeric(10, 2), nullable=False)
    monthly_rate = db.Column(db.Numeric(10, 2), nullable=False)
    deposit_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_new = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<ProductTemplate id={self.id} name={self.name}>"
