from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, ForeignKey, Index, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from diet_chat.infrastructure.db.base import Base


class MealPhotoModel(Base):
    __tablename__ = "meal_photos"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    message_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("diet_messages.id", ondelete="CASCADE"),
        nullable=False,
    )
    client_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    diet_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    meal_tag_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    image_data: Mapped[str] = mapped_column(Text, nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    message = relationship("MessageModel", back_populates="photos")

    __table_args__ = (
        Index("ix_meal_photos_message", "message_id"),
        Index("ix_meal_photos_expires_at", "expires_at"),
    )
