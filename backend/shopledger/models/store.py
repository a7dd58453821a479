from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class AppStoreEntry(db.Model):
    """
    One collection of one shop, stored whole.

    The ledger persists every collection (products, sales, cashEntries, ...)
    as a single JSON value keyed by (owner_id, key). Writes overwrite the
    whole value: two sessions saving the same key resolve last-write-wins.
    """
    __tablename__ = "app_store"

    owner_id = db.Column(db.String(64), primary_key=True)
    key = db.Column(db.String(64), primary_key=True)
    data = db.Column(db.JSON, nullable=True)

    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<AppStoreEntry owner_id={self.owner_id!r} key={self.key!r}>"

    def to_dict(self) -> dict:
        return {
            "owner_id": self.owner_id,
            "key": self.key,
            "data": self.data,
            "updated_at": to_utc_z(self.updated_at),
        }
