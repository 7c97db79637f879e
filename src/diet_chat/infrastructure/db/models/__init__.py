"""Import all models so relationships resolve and Base.metadata is complete."""
from diet_chat.infrastructure.db.models.client import ClientModel, DietModel
from diet_chat.infrastructure.db.models.message import MessageModel
from diet_chat.infrastructure.db.models.outbox import OutboxMessageModel
from diet_chat.infrastructure.db.models.photo import MealPhotoModel
from diet_chat.infrastructure.db.models.push_subscription import (
    DeviceTokenModel,
    PushSubscriptionModel,
)

__all__ = [
    "ClientModel",
    "DeviceTokenModel",
    "DietModel",
    "MealPhotoModel",
    "MessageModel",
    "OutboxMessageModel",
    "PushSubscriptionModel",
]
