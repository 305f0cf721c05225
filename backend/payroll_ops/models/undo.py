from __future__ import annotations

import json

from ..extensions import db
from payroll_ops.time_utils import to_utc_z


class UndoAction(db.Model):
    """
    Undo ledger entry: before/after snapshots around one lifecycle action.

    Snapshots are stored as JSON text. Only the most recent entries are kept.
    """
    __tablename__ = "undo_actions"

    action_id = db.Column(db.String(40), primary_key=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    actor = db.Column(db.String(120), nullable=True)
    action_type = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(255), nullable=True)

    affected_ids_json = db.Column(db.Text, nullable=False, default="[]")
    before_state_json = db.Column(db.Text, nullable=False, default="[]")
    after_state_json = db.Column(db.Text, nullable=False, default="[]")

    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    undone = db.Column(db.Boolean, nullable=False, default=False)
    undone_at = db.Column(db.DateTime(timezone=True), nullable=True)
    undone_by = db.Column(db.String(120), nullable=True)

    @property
    def affected_ids(self) -> list[str]:
        return json.loads(self.affected_ids_json or "[]")

    @property
    def before_state(self) -> list[dict]:
        return json.loads(self.before_state_json or "[]")

    @property
    def after_state(self) -> list[dict]:
        return json.loads(self.after_state_json or "[]")

    def to_dict(self) -> dict:
        return {
            "action_id": self.action_id,
            "timestamp": to_utc_z(self.timestamp),
            "actor": self.actor,
            "action_type": self.action_type,
            "description": self.description,
            "affected_ids": self.affected_ids,
            "expires_at": to_utc_z(self.expires_at),
            "undone": self.undone,
            "undone_at": to_utc_z(self.undone_at),
            "undone_by": self.undone_by,
        }
