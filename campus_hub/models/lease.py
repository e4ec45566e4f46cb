# campus_hub/models/lease.py

from .base import db


class SweepLease(db.Model):
    """Named lease guarding a batch job against overlapping runs"""

    __tablename__ = "sweep_leases"

    name = db.Column(db.String(100), primary_key=True)
    holder = db.Column(db.String(100), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<SweepLease {self.name} holder={self.holder}>"
