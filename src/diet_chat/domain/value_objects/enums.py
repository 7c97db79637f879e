from __future__ import annotations

from enum import StrEnum


class SenderRole(StrEnum):
    CLIENT = "client"
    DIETITIAN = "dietitian"


class RealtimeEvent(StrEnum):
    MESSAGE_INSERTED = "message.inserted"
    MESSAGE_UPDATED = "message.updated"
