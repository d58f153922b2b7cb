from rental_engine.extensions import db


class PricingModifier(db.Model):
    __tablename__ = "pricing_modifiers"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    # 'student_discount' | 'new_equipment_fee'
    name = db.Column(db.String(50), unique=True, nullable=False)
    display_name = db.Column(db.String(100), nullable=False)

    # 'discount' | 'fee'
    type = db.Column(db.String(20), nullable=False)

    # Percentage of the rental subtotal, e.g. 15.00
    percentage = db.Column(db.Numeric(5, 2), nullable=False)

    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<PricingModifier name={self.name} percentage={self.percentage}>"
