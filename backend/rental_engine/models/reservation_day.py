from rental_engine.extensions import db


class ReservationDay(db.Model):
    """
    One occupied calendar day of a resource.

    The unique (resource_key, day) pair is what makes check-and-reserve
    atomic: two transactions claiming the same day cannot both commit.
    Rows exist only while the owning rental is pending, confirmed or active.
    """

    __tablename__ = "reservation_days"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    resource_key = db.Column(db.String(64), nullable=False)
    day = db.Column(db.Date, nullable=False)

    rental_id = db.Column(
        db.Integer,
        db.ForeignKey("rentals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        db.UniqueConstraint("resource_key", "day", name="uq_reservation_days_resource_day"),
    )

    def __repr__(self) -> str:
        return f"<ReservationDay {self.resource_key} {self.day} rental={self.rental_id}>"
