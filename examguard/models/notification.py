"""
Notification model for system notifications
"""
from datetime import datetime
from examguard import db
import uuid


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), nullable=False, index=True)

    # Notification type: exam_assigned
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text)

    # Link to source (exam_id)
    source_id = db.Column(db.String(36))
    source_type = db.Column(db.String(50))
    created_by = db.Column(db.String(36))

    # Status
    is_read = db.Column(db.Boolean, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)


def create_notification(user_id: str, type: str, title: str, message: str = None,
                        source_id: str = None, source_type: str = None, created_by: str = None):
    """Helper to create a notification (caller commits)"""
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        source_id=source_id,
        source_type=source_type,
        created_by=created_by,
    )
    db.session.add(notification)
    return notification
