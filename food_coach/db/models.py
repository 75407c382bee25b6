from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    phone: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    language: Mapped[str] = mapped_column(String(8), nullable=False, default="he")
    store_media: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    preferences: Mapped[Optional["Preferences"]] = relationship(
        "Preferences", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    meals: Mapped[list["Meal"]] = relationship("Meal", back_populates="user", cascade="all, delete-orphan")
    message_logs: Mapped[list["MessageLog"]] = relationship("MessageLog", back_populates="user")


class Preferences(Base):
    __tablename__ = "preferences"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    goal: Mapped[str] = mapped_column(String(32), nullable=False, default="general")
    tone: Mapped[str] = mapped_column(String(32), nullable=False, default="friendly")
    report_time: Mapped[str] = mapped_column(String(5), nullable=False, default="21:30")
    report_format: Mapped[str] = mapped_column(String(16), nullable=False, default="text")
    focus_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    dietary_restrictions_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    thresholds_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    user: Mapped[User] = relationship("User", back_populates="preferences")


class Meal(Base):
    __tablename__ = "meals"
    __table_args__ = (Index("ix_meals_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    source_type: Mapped[str] = mapped_column(String(8), nullable=False, default="TEXT")
    raw_text: Mapped[str] = mapped_column(Text, nullable=False)
    tags_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")

    user: Mapped[User] = relationship("User", back_populates="meals")


class MessageLog(Base):
    __tablename__ = "message_logs"
    __table_args__ = (Index("ix_message_logs_user_direction_created", "user_id", "direction", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    direction: Mapped[str] = mapped_column(String(3), nullable=False)
    message_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False, default="{}")

    user: Mapped[Optional[User]] = relationship("User", back_populates="message_logs")
