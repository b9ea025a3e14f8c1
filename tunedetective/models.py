from . import db
import json
from datetime import datetime, timezone

class PlaylistHistory(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), nullable=False, index=True)
    source = db.Column(db.String(16), nullable=False)   # "prompt" or "emotion"
    prompt = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text)
    playlist_json = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "source": self.source,
            "prompt": self.prompt,
            "description": self.description,
            "songs": json.loads(self.playlist_json),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
