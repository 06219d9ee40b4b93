import pytest

import specsync.persistence as persistence
from specsync.errors import SessionNotFound
from specsync.persistence import (
    InMemorySessionRepository,
    SQLiteSessionRepository,
    get_repository,
)
from specsync.sessions.models import Command, Interaction, Result, Session, SessionStatus


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path):
    if request.param == "memory":
        return InMemorySessionRepository()
    return SQLiteSessionRepository(tmp_path / "sessions.db")


@pytest.mark.asyncio
async def test_repository_crud(repo):
    session = await repo.create_session(
        Session(type="component_spec", component_id="users", state={"foo": "bar"})
    )

    interaction = Interaction(step="initialize", command=Command.new("initialize", "shell", payload={"args": ["ls"]}))
    updated = await repo.append_interaction(session.id, interaction)
    assert [i.step for i in updated.interactions] == ["initialize"]
    assert updated.interactions[0].is_pending

    updated = await repo.complete_interaction(session.id, interaction.id, Result.ok({"x": 1}))
    completed = updated.interactions[0]
    assert completed.result.is_ok
    assert completed.result.data == {"x": 1}
    assert completed.completed_at is not None
    assert completed.command.payload == {"args": ["ls"]}

    updated = await repo.merge_state(session.id, {"files": {"design_file": "d.md"}})
    assert updated.state == {"foo": "bar", "files": {"design_file": "d.md"}}

    updated = await repo.update_status(session.id, SessionStatus.COMPLETE)
    assert updated.status is SessionStatus.COMPLETE

    fetched = await repo.get_session(session.id)
    assert fetched is not None
    assert fetched.component_id == "users"
    assert fetched.status is SessionStatus.COMPLETE
    assert len(fetched.interactions) == 1

    all_sessions = await repo.list_sessions()
    assert [s.id for s in all_sessions] == [session.id]


@pytest.mark.asyncio
async def test_interactions_keep_insertion_order(repo):
    session = await repo.create_session(Session(type="t"))
    for step in ["a", "b", "c"]:
        await repo.append_interaction(session.id, Interaction(step=step, command=Command.new(step, "noop")))

    fetched = await repo.get_session(session.id)
    assert [i.step for i in fetched.interactions] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_completing_twice_is_rejected(repo):
    session = await repo.create_session(Session(type="t"))
    interaction = Interaction(step="a", command=Command.new("a", "noop"))
    await repo.append_interaction(session.id, interaction)
    await repo.complete_interaction(session.id, interaction.id, Result.ok())

    with pytest.raises(ValueError):
        await repo.complete_interaction(session.id, interaction.id, Result.error("again"))


@pytest.mark.asyncio
async def test_child_sessions_are_linked_once(repo):
    parent = await repo.create_session(Session(type="t"))
    child = await repo.create_session(Session(type="t", parent_session_id=parent.id))

    await repo.add_child_session(parent.id, child.id)
    updated = await repo.add_child_session(parent.id, child.id)

    assert updated.child_session_ids == [child.id]
    fetched_child = await repo.get_session(child.id)
    assert fetched_child.parent_session_id == parent.id


@pytest.mark.asyncio
async def test_unknown_session(repo):
    assert await repo.get_session("missing") is None
    with pytest.raises(SessionNotFound):
        await repo.merge_state("missing", {})
    with pytest.raises(SessionNotFound):
        await repo.update_status("missing", SessionStatus.FAILED)


@pytest.mark.asyncio
async def test_in_memory_repository_returns_copies():
    repo = InMemorySessionRepository()
    session = await repo.create_session(Session(type="t"))

    session.state["leak"] = True
    fetched = await repo.get_session(session.id)

    assert fetched.state == {}


def test_get_repository_selects_backend(tmp_path, monkeypatch):
    monkeypatch.delenv("SPECSYNC_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("SPECSYNC_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setattr(persistence, "_repository_instance", None)

    repo = get_repository()
    assert isinstance(repo, InMemorySessionRepository)
    assert get_repository() is repo

    sqlite_repo = get_repository(f"sqlite://{tmp_path / 'x.db'}")
    assert isinstance(sqlite_repo, SQLiteSessionRepository)

    with pytest.raises(ValueError):
        get_repository("postgres://localhost/db")


@pytest.mark.asyncio
async def test_duplicate_session_id_is_rejected(repo):
    session = await repo.create_session(Session(type="t"))

    with pytest.raises(ValueError):
        await repo.create_session(Session(id=session.id, type="t"))
