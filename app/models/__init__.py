# SQLModel database models

from app.models.owner import Owner
from app.models.dog import Dog
from app.models.media import Media
from app.models.edit_token import EditToken
from app.models.moderation import ModerationSetting
from app.models.push_subscription import PushSubscription
from app.models.audit import AuditEntry

__all__ = [
    "Owner",
    "Dog",
    "Media",
    "EditToken",
    "ModerationSetting",
    "PushSubscription",
    "AuditEntry",
]
