from datetime import datetime

from rental_engine.extensions import db


class DepositEvent(db.Model):
    __tablename__ = "deposit_events"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)

    rental_id = db.Column(
        db.Integer,
        db.ForeignKey("rentals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # 'held' | 'released' | 'forfeited'
    action = db.Column(db.String(20), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    note = db.Column(db.String(300), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    rental = db.relationship("Rental", back_populates="deposit_events")

    def __repr__(self) -> str:
        return f"<DepositEvent rental={self.rental_id} action={self.action} amount={self.amount}>"
