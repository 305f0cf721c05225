from __future__ import annotations

from ..extensions import db
from payroll_ops.time_utils import to_utc_z


class IdCounter(db.Model):
    """
    Named identifier counters (orderSeq, lineSeq).

    current_value is the last value handed out.
    """
    __tablename__ = "id_counters"

    counter_name = db.Column(db.String(32), primary_key=True)
    current_value = db.Column(db.Integer, nullable=False, default=0)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "counter_name": self.counter_name,
            "current_value": self.current_value,
            "last_updated": to_utc_z(self.last_updated),
        }
