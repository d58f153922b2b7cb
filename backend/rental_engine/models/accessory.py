from rental_engine.extensions import db


class Accessory(db.Model):
    __tablename__ = "accessories"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    name = db.Column(db.String(255), nullable=False)

    weekly_rate = db.Column(db.Numeric(10, 2), nullable=False)
    monthly_rate = db.Column(db.Numeric(10, 2), nullable=False)
    deposit_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Accessory id={self.id} name={self.name}>"
