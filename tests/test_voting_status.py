import pytest

from festvote.core.config import settings
from festvote.services.voting import RoundController, VotingStatusService, invalidate_status
from festvote.services.voting import status as status_module
from festvote.voting.errors import PersistenceConflict
from workers.tasks import close_expired_groups

SHOW = "summer-fest"


@pytest.fixture
def fake_cache(monkeypatch):
    data = {}

    async def _get(key):
        return data.get(key)

    async def _set(key, value, ttl):
        data[key] = value

    async def _delete(key):
        data.pop(key, None)

    monkeypatch.setattr(status_module, "cache_json_get", _get)
    monkeypatch.setattr(status_module, "cache_json_set", _set)
    monkeypatch.setattr(status_module, "cache_delete", _delete)
    monkeypatch.setattr(settings, "VOTING_STATUS_CACHE_TTL_S", 5)
    return data


@pytest.fixture
async def rounds(store, clock):
    controller = RoundController(store, clock)
    await controller.configure(SHOW, {"Group A": [1, 2], "Group B": [3]}, timer_duration=45)
    return controller


@pytest.mark.asyncio
async def test_status_lists_active_performers(rounds, store, performers, clock):
    await rounds.start_group(SHOW, "Group A")
    st = await VotingStatusService(store, performers, clock).status(SHOW)
    assert st.is_open and st.active_group == "Group A"
    assert st.time_remaining == 45
    assert [(p.id, p.bio) for p in st.performers] == [(1, "Bio 1"), (2, "Bio 2")]


@pytest.mark.asyncio
async def test_status_countdown_bypasses_cache(fake_cache, rounds, store, performers, clock):
    await rounds.start_group(SHOW, "Group A")
    service = VotingStatusService(store, performers, clock)
    assert (await service.status(SHOW)).time_remaining == 45
    assert f"voting:status:{SHOW}" in fake_cache

    clock.advance(50)
    st = await service.status(SHOW)
    assert st.time_remaining == 0
    assert st.is_expired


@pytest.mark.asyncio
async def test_status_cache_dropped_on_invalidate(fake_cache, rounds, store, performers, clock):
    service = VotingStatusService(store, performers, clock)
    assert not (await service.status(SHOW)).is_open

    await rounds.start_group(SHOW, "Group A")
    # still the cached snapshot until the operator path invalidates it
    assert not (await service.status(SHOW)).is_open
    await invalidate_status(SHOW)
    assert (await service.status(SHOW)).is_open


@pytest.mark.asyncio
async def test_auto_close_only_expired_groups(store, clock):
    rounds = RoundController(store, clock)
    for slug, duration in (("early-show", 30), ("late-show", 300), ("untimed-show", 0)):
        await rounds.configure(slug, {"Group A": [1]}, timer_duration=duration)
        await rounds.start_group(slug, "Group A")

    clock.advance(60)
    out = await close_expired_groups(store, rounds)
    assert out == {"ok": True, "closed": ["early-show"], "skipped": []}
    assert await store.shows_with_active_group() == ["late-show", "untimed-show"]


@pytest.mark.asyncio
async def test_auto_close_skips_conflicts(store, clock):
    rounds = RoundController(store, clock)
    await rounds.configure(SHOW, {"Group A": [1]}, timer_duration=10)
    await rounds.start_group(SHOW, "Group A")
    clock.advance(11)

    async def always_conflict(show_slug, config, expected_version):
        raise PersistenceConflict(show_slug, expected_version)

    store.save_config = always_conflict
    out = await close_expired_groups(store, rounds)
    assert out["skipped"] == [SHOW]
    assert out["closed"] == []
