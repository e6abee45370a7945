from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import declarative_base, relationship
import enum
import uuid
from datetime import datetime, timezone

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BotDomain(str, enum.Enum):
    medical = "medical"
    legal = "legal"
    receptionist = "receptionist"


class Bot(Base):
    __tablename__ = "bots"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    uid = Column(String, nullable=False, unique=True, index=True)   # OpenMic identifier
    name = Column(String, nullable=False)
    domain = Column(String, nullable=False, default=BotDomain.medical.value)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    call_logs = relationship(
        "CallLog",
        back_populates="bot",
        cascade="all, delete-orphan",
    )


class CallLog(Base):
    __tablename__ = "call_logs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    bot_id = Column(String, ForeignKey("bots.id", ondelete="CASCADE"), nullable=False, index=True)
    transcript = Column(Text, nullable=False, default="")
    # "metadata" is reserved on declarative classes, so the attribute is renamed
    call_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    bot = relationship("Bot", back_populates="call_logs")
