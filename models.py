from datetime import datetime
from app import db
from sqlalchemy.types import JSON


class AppSetting(db.Model):
    """Local key-value store backing the decision session"""
    __tablename__ = 'app_settings'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(120), unique=True, nullable=False, index=True)
    value = db.Column(JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<AppSetting {self.key}>"


class SyncHistory(db.Model):
    __tablename__ = 'sync_history'
    __table_args__ = (
        db.Index('ix_sync_history_user_started', 'user_id', 'started_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(255), nullable=False)
    direction = db.Column(db.String(20), nullable=False)  # 'pull', 'seed', 'push'
    properties_count = db.Column(db.Integer, default=0)
    status = db.Column(db.String(20), default='completed')  # 'completed', 'failed'
    error_message = db.Column(db.Text)
    started_at = db.Column(db.DateTime, default=datetime.utcnow)
    completed_at = db.Column(db.DateTime)

    def __repr__(self):
        return f'<SyncHistory {self.direction} {self.user_id} - {self.status}>'

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'direction': self.direction,
            'properties_count': self.properties_count,
            'status': self.status,
            'error_message': self.error_message,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None
        }
