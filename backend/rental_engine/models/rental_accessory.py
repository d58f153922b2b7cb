from rental_engine.extensions import db


class RentalAccessory(db.Model):
    """Accessory line of a rental; rates and deposit are snapshots."""

    __tablename__ = "rental_accessories"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    rental_id = db.Column(
        db.Integer,
        db.ForeignKey("rentals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    accessory_id = db.Column(
        db.Integer,
        db.ForeignKey("accessories.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Informational only, no pricing effect
    selected_color = db.Column(db.String(50), nullable=True)

    weekly_rate = db.Column(db.Numeric(10, 2), nullable=False)
    monthly_rate = db.Column(db.Numeric(10, 2), nullable=False)
    rate = db.Column(db.Numeric(10, 2), nullable=False)
    line_subtotal = db.Column(db.Numeric(10, 2), nullable=False)

    deposit_amount = db.Column(db.Numeric(10, 2), nullable=False)
    deposit_status = db.Column(db.String(20), nullable=False, default="held")

    rental = db.relationship("Rental", back_populates="accessories")
    accessory = db.relationship("Accessory", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("rental_id", "accessory_id", name="uq_rental_accessories_line"),
    )
