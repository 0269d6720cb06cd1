from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, BigInteger, SmallInteger, DateTime, Text, JSON, UniqueConstraint, Index, CheckConstraint
from sqlalchemy.sql import func
from datetime import datetime
from festvote.core.db import Base
from festvote.voting.types import MAX_GROUP_NAME, MAX_SHOW_SLUG

# BIGINT primary keys only autoincrement on sqlite when declared as INTEGER
BigId = BigInteger().with_variant(Integer, "sqlite")


class VotingConfigRecord(Base):
    __tablename__ = "voting_config"
    show_slug: Mapped[str] = mapped_column(String(MAX_SHOW_SLUG), primary_key=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class VoteLogRecord(Base):
    __tablename__ = "vote_log"
    __table_args__ = (
        UniqueConstraint("show_slug", "group_name", "ip_hash", "vote_rank", name="uq_vote_log_identity_rank"),
        CheckConstraint("vote_rank BETWEEN 1 AND 3", name="ck_vote_log_rank"),
        Index("ix_vote_log_show_group", "show_slug", "group_name"),
        Index("ix_vote_log_show_origin", "show_slug", "origin_hash", "voted_at"),
    )
    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    show_slug: Mapped[str] = mapped_column(String(MAX_SHOW_SLUG), nullable=False)
    group_name: Mapped[str] = mapped_column(String(MAX_GROUP_NAME), nullable=False)
    performer_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    performer_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    vote_rank: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    ip_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    token: Mapped[str] = mapped_column(String(64), nullable=False)
    voted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    origin_hash: Mapped[str] = mapped_column(String(64), nullable=False, default="")


class Performer(Base):
    """Read-only view of the host's performer table."""
    __tablename__ = "performer"
    id: Mapped[int] = mapped_column(BigId, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
