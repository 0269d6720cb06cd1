from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Iterable, Optional, Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from festvote.models.models import Performer, VoteLogRecord, VotingConfigRecord
from festvote.voting.errors import DuplicateVoteError, PersistenceConflict, StorageUnavailable
from festvote.voting.types import PerformerInfo, VersionedConfig, VoteLogEntry, VotingConfig


def _utc(dt: datetime) -> datetime:
    # sqlite hands back naive timestamps; everything stored is UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _entry(rec: VoteLogRecord) -> VoteLogEntry:
    return VoteLogEntry(
        show_slug=rec.show_slug,
        group_name=rec.group_name,
        performer_id=int(rec.performer_id),
        performer_name=rec.performer_name or "",
        vote_rank=int(rec.vote_rank),
        ip_hash=rec.ip_hash,
        token=rec.token,
        voted_at=_utc(rec.voted_at),
        origin_hash=rec.origin_hash or "",
    )


@asynccontextmanager
async def _storage_errors(session: AsyncSession) -> AsyncIterator[None]:
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        await session.rollback()
        raise StorageUnavailable(str(e.orig or e)) from e


class SqlVotingStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def load_config(self, show_slug: str) -> VersionedConfig:
        async with _storage_errors(self.session):
            res = await self.session.execute(
                select(VotingConfigRecord.data, VotingConfigRecord.version).where(
                    VotingConfigRecord.show_slug == show_slug
                )
            )
            row = res.one_or_none()
        if row is None:
            return VersionedConfig(VotingConfig(), 0)
        data, version = row
        return VersionedConfig(VotingConfig.model_validate(data), int(version))

    async def save_config(self, show_slug: str, config: VotingConfig, expected_version: int) -> int:
        data = config.model_dump(mode="json")
        new_version = expected_version + 1
        async with _storage_errors(self.session):
            if expected_version == 0:
                try:
                    await self.session.execute(
                        insert(VotingConfigRecord).values(show_slug=show_slug, data=data, version=new_version)
                    )
                    await self.session.commit()
                except IntegrityError as e:
                    await self.session.rollback()
                    raise PersistenceConflict(show_slug, expected_version) from e
                return new_version

            res = await self.session.execute(
                update(VotingConfigRecord)
                .where(
                    VotingConfigRecord.show_slug == show_slug,
                    VotingConfigRecord.version == expected_version,
                )
                .values(data=data, version=new_version)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                await self.session.rollback()
                raise PersistenceConflict(show_slug, expected_version)
            await self.session.commit()
        return new_version

    async def append_vote_rows(self, rows: Sequence[VoteLogEntry]) -> None:
        if not rows:
            return
        values = [
            {
                "show_slug": r.show_slug,
                "group_name": r.group_name,
                "performer_id": r.performer_id,
                "performer_name": r.performer_name,
                "vote_rank": r.vote_rank,
                "ip_hash": r.ip_hash,
                "token": r.token,
                "voted_at": _utc(r.voted_at),
                "origin_hash": r.origin_hash,
            }
            for r in rows
        ]
        async with _storage_errors(self.session):
            try:
                await self.session.execute(insert(VoteLogRecord), values)
                await self.session.commit()
            except IntegrityError as e:
                await self.session.rollback()
                raise DuplicateVoteError("identity already has rows for this group") from e

    async def query_vote_log(
        self, show_slug: str, group_name: Optional[str] = None, limit: Optional[int] = None
    ) -> list[VoteLogEntry]:
        stmt = select(VoteLogRecord).where(VoteLogRecord.show_slug == show_slug)
        if group_name is not None:
            stmt = stmt.where(VoteLogRecord.group_name == group_name)
        stmt = stmt.order_by(VoteLogRecord.voted_at.desc(), VoteLogRecord.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        async with _storage_errors(self.session):
            res = await self.session.execute(stmt)
            return [_entry(rec) for rec in res.scalars().all()]

    async def recent_origin_votes(self, show_slug: str, origin_hash: str, since: datetime) -> list[VoteLogEntry]:
        stmt = (
            select(VoteLogRecord)
            .where(
                VoteLogRecord.show_slug == show_slug,
                VoteLogRecord.origin_hash == origin_hash,
                VoteLogRecord.voted_at >= _utc(since),
            )
            .order_by(VoteLogRecord.voted_at.desc(), VoteLogRecord.id.desc())
        )
        async with _storage_errors(self.session):
            res = await self.session.execute(stmt)
            return [_entry(rec) for rec in res.scalars().all()]

    async def shows_with_active_group(self) -> list[str]:
        async with _storage_errors(self.session):
            res = await self.session.execute(select(VotingConfigRecord.show_slug, VotingConfigRecord.data))
            rows = res.all()
        return sorted(slug for slug, data in rows if (data or {}).get("active_group"))


class SqlPerformerDirectory:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_many(self, performer_ids: Iterable[int]) -> dict[int, PerformerInfo]:
        ids = list(performer_ids)
        if not ids:
            return {}
        async with _storage_errors(self.session):
            res = await self.session.execute(select(Performer).where(Performer.id.in_(ids)))
            performers = res.scalars().all()
        return {
            int(p.id): PerformerInfo(id=int(p.id), name=p.name, bio=p.bio, photo_url=p.photo_url)
            for p in performers
        }
