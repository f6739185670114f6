from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .types import UTCDateTime


class Event(db.Model):
    """Catalog event. Read-only from the purchase subsystem's point of view."""
    __tablename__ = "events"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_events_price_non_negative"),
    )

    id = db.Column(db.String(64), primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    subtitle = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    thumbnail_url = db.Column(db.String(500), nullable=True)
    is_live = db.Column(db.Boolean, nullable=False, default=False, index=True)
    viewers = db.Column(db.Integer, nullable=False, default=0)

    # Price in tokens
    price = db.Column(db.Integer, nullable=False)

    start_time = db.Column(UTCDateTime(), nullable=True)
    end_time = db.Column(UTCDateTime(), nullable=True)

    # Opaque playback locator handed out only to holders of an active grant
    stream_url = db.Column(db.String(500), nullable=True)

    created_at = db.Column(UTCDateTime(), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle or "",
            "description": self.description or "",
            "thumbnail_url": self.thumbnail_url,
            "is_live": bool(self.is_live),
            "viewers": self.viewers,
            "price": self.price,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time),
        }
