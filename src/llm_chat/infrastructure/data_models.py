"""
Shared data models.

`Message` is the wire form sent to the completion API. `MessageRecord` and
`SessionRecord` are the ORM tables; they never leave the session store,
which hands out the frozen `StoredMessage` / `SessionSnapshot` views instead.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

ROLE_USER = "user"
ROLE_SYSTEM = "system"
ROLE_ASSISTANT = "assistant"
ROLES = (ROLE_USER, ROLE_SYSTEM, ROLE_ASSISTANT)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    role: str  # "system" | "user" | "assistant"
    content: str


@dataclass(frozen=True)
class StoredMessage:
    id: int | None  # None when the message was never written (ephemeral mode)
    session_id: int
    role: str
    content: str
    created_at: datetime

    def pack(self) -> Message:
        """Strip the storage fields for delivery to the API."""
        return Message(role=self.role, content=self.content)


@dataclass(frozen=True)
class SessionSnapshot:
    id: int
    name: str
    hint: str
    active: bool
    messages: tuple[StoredMessage, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SessionSummary:
    name: str
    hint: str
    message_count: int
    active: bool


class Base(DeclarativeBase):
    pass


class SessionRecord(Base):
    """A named conversation with its reusable hint."""

    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    hint: Mapped[str] = mapped_column(Text, default="", nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    messages: Mapped[list["MessageRecord"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by=lambda: [MessageRecord.created_at, MessageRecord.id],
    )

    def to_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            id=self.id,
            name=self.name,
            hint=self.hint,
            active=self.active,
            messages=tuple(m.to_stored() for m in self.messages),
        )


class MessageRecord(Base):
    """A single chat turn (user, system or assistant) inside a session."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    session: Mapped[SessionRecord] = relationship(back_populates="messages")

    def to_stored(self) -> StoredMessage:
        return StoredMessage(
            id=self.id,
            session_id=self.session_id,
            role=self.role,
            content=self.content,
            created_at=self.created_at,
        )
