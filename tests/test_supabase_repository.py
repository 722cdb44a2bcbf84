from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from supabase import PostgrestAPIError

from convivir.database import SupabaseProfileRepository
from convivir.errors import RepositoryUnavailable
from convivir.models import SearchFilters


class FakeQuery:
    """Imita el query builder de PostgREST: encadena filtros y los registra."""

    def __init__(self, client: "FakeClient", table: str):
        self.client = client
        self.ops: list[tuple] = [("table", table)]

    def __getattr__(self, name):
        def chain(*args, **kwargs):
            self.ops.append((name, *args, *sorted(kwargs.items())))
            return self

        return chain

    def execute(self):
        self.client.executed.append(self.ops)
        if self.client.failures:
            raise self.client.failures.pop(0)
        return SimpleNamespace(data=list(self.client.rows))


class FakeClient:
    def __init__(self, rows=None):
        self.rows = rows or []
        self.executed: list[list[tuple]] = []
        self.failures: list[Exception] = []

    def table(self, name):
        return FakeQuery(self, name)


def _repo(fake, **kwargs):
    options = {"table": "roommate_profiles", "poll_interval": 0.01, "retry_attempts": 1}
    options.update(kwargs)
    return SupabaseProfileRepository(client=fake, **options)


def test_get_maps_row_to_profile(make_profile):
    row = make_profile("ana", locations=("Palermo",)).to_db_dict()
    fake = FakeClient([row])

    profile = asyncio.run(_repo(fake).get("ana"))

    assert profile.id == "ana"
    assert profile.preferred_locations == {"Palermo"}
    assert ("eq", "id", "ana") in fake.executed[0]


def test_get_missing_returns_none():
    assert asyncio.run(_repo(FakeClient()).get("nadie")) is None


def test_upsert_sends_db_dict(make_profile):
    fake = FakeClient()
    profile = make_profile("ana")

    asyncio.run(_repo(fake).upsert("ana", profile))

    op = next(op for op in fake.executed[0] if op[0] == "upsert")
    assert op[1] == profile.to_db_dict()
    assert ("on_conflict", "id") in op


def test_delete_filters_by_id():
    fake = FakeClient()
    asyncio.run(_repo(fake).delete("ana"))
    assert ("delete",) in fake.executed[0]
    assert ("eq", "id", "ana") in fake.executed[0]


def test_query_all_pushes_filters_down(make_profile):
    fake = FakeClient([make_profile("bruno").to_db_dict()])
    filters = SearchFilters.model_validate(
        {
            "budget": {"min": 1000, "max": 5000},
            "locations": ["Palermo"],
            "lifestyle": {"smoking": False},
        }
    )

    profiles = asyncio.run(_repo(fake).query_all(filters))

    ops = fake.executed[0]
    assert [p.id for p in profiles] == ["bruno"]
    assert ("gte", "budget->min", 1000) in ops
    assert ("lte", "budget->max", 5000) in ops
    assert ("ov", "preferred_locations", ["Palermo"]) in ops
    assert ("eq", "lifestyle->>smoking", "false") in ops


def test_query_all_without_filters_selects_everything():
    fake = FakeClient()
    asyncio.run(_repo(fake).query_all())
    assert fake.executed[0] == [("table", "roommate_profiles"), ("select", "*")]


def test_transport_errors_become_repository_unavailable():
    fake = FakeClient()
    fake.failures.append(ConnectionError("sin red"))

    with pytest.raises(RepositoryUnavailable) as excinfo:
        asyncio.run(_repo(fake).get("ana"))

    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_transport_errors_are_retried(make_profile):
    fake = FakeClient([make_profile("ana").to_db_dict()])
    fake.failures.append(ConnectionError("sin red"))

    profile = asyncio.run(_repo(fake, retry_attempts=2).get("ana"))

    assert profile.id == "ana"
    assert len(fake.executed) == 2


def test_api_errors_are_not_retried():
    fake = FakeClient()
    fake.failures.append(PostgrestAPIError({"message": "permission denied", "code": "42501"}))

    with pytest.raises(RepositoryUnavailable):
        asyncio.run(_repo(fake, retry_attempts=3).get("ana"))

    assert len(fake.executed) == 1


def test_polling_subscription_emits_only_changes(make_profile):
    fake = FakeClient()
    repo = _repo(fake)
    seen = []

    async def scenario():
        unsubscribe = repo.subscribe("ana", seen.append)
        await asyncio.sleep(0.05)
        fake.rows = [make_profile("ana").to_db_dict()]
        await asyncio.sleep(0.05)
        unsubscribe()
        fake.rows = []
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert len(seen) == 2
    assert seen[0] is None
    assert seen[1].id == "ana"


def test_polling_subscription_reports_errors():
    fake = FakeClient()
    fake.failures.append(ConnectionError("sin red"))
    repo = _repo(fake)
    changes, errors = [], []

    async def scenario():
        repo.subscribe("ana", changes.append, errors.append)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert changes == []
    assert len(errors) == 1
    assert isinstance(errors[0], RepositoryUnavailable)


def _broken_row(profile_id):
    return {"id": profile_id, "budget": {"min": 500, "max": 100}}


def test_get_with_invalid_row_raises_repository_unavailable():
    fake = FakeClient([_broken_row("ana")])

    with pytest.raises(RepositoryUnavailable):
        asyncio.run(_repo(fake).get("ana"))


def test_query_all_skips_invalid_rows(make_profile):
    fake = FakeClient([_broken_row("roto"), make_profile("bruno").to_db_dict()])

    profiles = asyncio.run(_repo(fake).query_all())

    assert [p.id for p in profiles] == ["bruno"]


def test_polling_subscription_reports_invalid_rows():
    fake = FakeClient([_broken_row("ana")])
    repo = _repo(fake)
    changes, errors = [], []

    async def scenario():
        repo.subscribe("ana", changes.append, errors.append)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert changes == []
    assert len(errors) == 1
    assert isinstance(errors[0], RepositoryUnavailable)
