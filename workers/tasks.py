from .celery_app import celery
import asyncio
import logging

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from festvote.core.config import settings
from festvote.services.voting import RoundController
from festvote.voting.errors import PersistenceConflict, StorageUnavailable
from festvote.voting.stores import SqlVotingStore, VotingStore

logger = logging.getLogger("festvote.voting")


async def close_expired_groups(store: VotingStore, controller: RoundController) -> dict:
    """Close every active group whose window has run out; conflicts wait for the next tick."""
    closed: list[str] = []
    skipped: list[str] = []
    for show_slug in await store.shows_with_active_group():
        try:
            if await controller.close_if_expired(show_slug):
                closed.append(show_slug)
        except PersistenceConflict:
            logger.warning("voting:auto-close skipped show=%s reason=conflict", show_slug)
            skipped.append(show_slug)
    return {"ok": True, "closed": closed, "skipped": skipped}


@celery.task(name="tasks.close_expired_voting_groups")
def close_expired_voting_groups() -> dict:
    """Beat task: auto-close expired voting groups across all shows."""

    async def _run() -> dict:
        engine = create_async_engine(settings.DATABASE_URL, echo=False)
        Session = async_sessionmaker(engine, expire_on_commit=False)
        try:
            async with Session() as session:
                store = SqlVotingStore(session)
                return await close_expired_groups(store, RoundController(store))
        except StorageUnavailable as e:
            logger.error("voting:auto-close storage unavailable error=%s", e)
            return {"ok": False, "error": "storage_unavailable"}
        finally:
            await engine.dispose()

    return asyncio.run(_run())
