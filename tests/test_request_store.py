"""Tests for the request store and lifecycle engine"""

import asyncio
import inspect
from datetime import timedelta

import pytest

from request_desk.models.principal import Principal, Role
from request_desk.models.request import Category, RequestStatus
from request_desk.services.category_catalog import CategoryCatalog
from request_desk.services.request_store import RequestStore
from request_desk.utils.exceptions import CategoryNotFound, ConfigError, RequestNotFound

RESIDENT_A = Principal(id="res-a", username="anna", full_name="Anna Resident", role=Role.RESIDENT)
RESIDENT_B = Principal(id="res-b", username="ben", full_name="Ben Resident", role=Role.RESIDENT)
ROADS_EMPLOYEE = Principal(
    id="emp-1", username="eve", full_name="Eve Employee", role=Role.EMPLOYEE,
    assigned_categories=frozenset({"roads"}),
)
IDLE_EMPLOYEE = Principal(id="emp-2", username="ian", full_name="Ian Employee", role=Role.EMPLOYEE)
ADMIN = Principal(id="adm-1", username="admin", full_name="Administrator", role=Role.ADMIN)


@pytest.fixture
def store():
    catalog = CategoryCatalog(
        [Category(id="roads", name="Roads"), Category(id="parks", name="Parks"), Category(id="water", name="Water")]
    )
    return RequestStore(catalog, latency_seconds=0)


def create(store, principal, category_id="roads", subject="Pothole", message="Deep hole on Main St"):
    return asyncio.run(store.create_request(principal, category_id, subject, message))


def close(store, request_id):
    return asyncio.run(store.close_request(request_id))


def test_create_request_scenario(store):
    request = create(store, RESIDENT_A)
    assert request.status == RequestStatus.OPEN
    assert request.category_name == "Roads"
    assert request.subject == "Pothole"
    assert request.resident_id == RESIDENT_A.id
    assert request.resident_name == "Anna Resident"
    assert request.created_at == request.updated_at
    assert request.deadline == request.created_at + timedelta(days=30)
    assert len(request.messages) == 1
    seed = request.messages[0]
    assert seed.sender_id == RESIDENT_A.id
    assert seed.sender_role == Role.RESIDENT
    assert seed.request_id == request.id
    assert seed.content == "Deep hole on Main St"
    assert seed.is_read is False
    assert seed.id != request.id


def test_create_request_is_asynchronous(store):
    pending = store.create_request(RESIDENT_A, "roads", "Pothole", "hi")
    assert inspect.iscoroutine(pending)
    assert store.all_requests() == []
    asyncio.run(pending)
    assert len(store.all_requests()) == 1


def test_create_unknown_category(store):
    with pytest.raises(CategoryNotFound):
        create(store, RESIDENT_A, category_id="nope")
    assert store.error == "Category not found"
    assert store.all_requests() == []


def test_create_without_principal_is_noop(store):
    assert create(store, None) is None
    assert store.all_requests() == []


def test_creation_is_monotonic_and_newest_first(store):
    created = [create(store, RESIDENT_A, subject=f"Issue {i}") for i in range(5)]
    requests = store.all_requests()
    assert len(requests) == 5
    assert requests[0].id == created[-1].id
    assert [r.id for r in requests] == [r.id for r in reversed(created)]
    ids = {r.id for r in requests} | {r.messages[0].id for r in requests}
    assert len(ids) == 10


def test_concurrent_creates_do_not_collide(store):
    async def burst():
        return await asyncio.gather(
            *[store.create_request(RESIDENT_A, "roads", f"Issue {i}", "msg") for i in range(20)]
        )

    created = asyncio.run(burst())
    assert len(store.all_requests()) == 20
    assert len({r.id for r in created}) == 20
    assert len({r.messages[0].id for r in created}) == 20


def test_visibility_per_role(store):
    a_roads = create(store, RESIDENT_A, "roads")
    a_parks = create(store, RESIDENT_A, "parks")
    b_water = create(store, RESIDENT_B, "water")

    assert store.visible_requests(None) == []
    assert {r.id for r in store.visible_requests(RESIDENT_A)} == {a_roads.id, a_parks.id}
    assert {r.id for r in store.visible_requests(RESIDENT_B)} == {b_water.id}
    assert [r.id for r in store.visible_requests(ROADS_EMPLOYEE)] == [a_roads.id]
    assert store.visible_requests(IDLE_EMPLOYEE) == []
    assert len(store.visible_requests(ADMIN)) == len(store.all_requests()) == 3


def test_visibility_is_recomputed_after_mutation(store):
    request = create(store, RESIDENT_A)
    store.send_message(ROADS_EMPLOYEE, request.id, "On it")
    visible = store.visible_requests(RESIDENT_A)
    assert len(visible[0].messages) == 2


def test_send_message_appends(store):
    request = create(store, RESIDENT_A)
    message = store.send_message(ROADS_EMPLOYEE, request.id, "Crew dispatched")
    assert message is not None
    assert message.sender_role == Role.EMPLOYEE
    assert message.sender_name == "Eve Employee"
    assert message.is_read is False

    updated = store.get_request(request.id)
    assert [m.content for m in updated.messages] == ["Deep hole on Main St", "Crew dispatched"]
    assert updated.updated_at >= updated.created_at
    assert updated.messages[1].timestamp >= updated.messages[0].timestamp
    assert updated.deadline == request.deadline


def test_send_message_noops(store):
    request = create(store, RESIDENT_A)
    assert store.send_message(None, request.id, "hello") is None
    assert store.send_message(RESIDENT_A, "req-missing", "hello") is None
    assert len(store.get_request(request.id).messages) == 1


def test_closed_request_rejects_messages(store):
    request = create(store, RESIDENT_A)
    close(store, request.id)
    assert store.send_message(RESIDENT_A, request.id, "still broken") is None
    closed = store.get_request(request.id)
    assert len(closed.messages) == 1
    assert closed.status == RequestStatus.CLOSED


def test_close_request(store):
    request = create(store, RESIDENT_A)
    closed = close(store, request.id)
    assert closed.status == RequestStatus.CLOSED
    assert closed.updated_at >= request.updated_at
    assert closed.deadline == request.deadline


def test_close_is_idempotent(store):
    request = create(store, RESIDENT_A)
    first = close(store, request.id)
    second = close(store, request.id)
    assert second.status == RequestStatus.CLOSED
    assert second.updated_at == first.updated_at
    assert store.get_request(request.id) == first


def test_close_unknown_is_noop(store):
    create(store, RESIDENT_A)
    assert close(store, "req-missing") is None
    assert all(r.status == RequestStatus.OPEN for r in store.all_requests())


def test_close_racing_message_never_tears(store):
    request = create(store, RESIDENT_A)

    async def race():
        closing = asyncio.ensure_future(store.close_request(request.id))
        await asyncio.sleep(0)
        sent = store.send_message(ROADS_EMPLOYEE, request.id, "racing")
        await closing
        return sent

    sent = asyncio.run(race())
    final = store.get_request(request.id)
    assert final.status == RequestStatus.CLOSED
    if sent is None:
        assert len(final.messages) == 1
    else:
        assert final.messages[-1].id == sent.id


def test_active_request_mirrors_mutations(store):
    request = create(store, RESIDENT_A)
    other = create(store, RESIDENT_A, subject="Other")
    store.set_active_request(request)
    assert store.active_request() is store.get_request(request.id)

    store.send_message(ROADS_EMPLOYEE, request.id, "reply")
    assert store.active_request() is store.get_request(request.id)
    assert len(store.active_request().messages) == 2

    close(store, request.id)
    assert store.active_request().status == RequestStatus.CLOSED

    # mutating another request leaves the selection alone
    store.send_message(RESIDENT_A, other.id, "ping")
    assert store.active_request().id == request.id


def test_set_active_request_resolves_stale_copy(store):
    request = create(store, RESIDENT_A)
    store.send_message(RESIDENT_A, request.id, "more")
    store.set_active_request(request)
    assert len(store.active_request().messages) == 2


def test_set_active_request_does_not_mutate_collection(store):
    create(store, RESIDENT_A)
    before = store.all_requests()
    store.set_active_request(before[0])
    store.set_active_request(None)
    assert store.active_request() is None
    assert store.all_requests() == before


def test_get_request_strict(store):
    with pytest.raises(RequestNotFound):
        store.get_request("req-missing", strict=True)
    assert store.get_request("req-missing") is None


def test_mark_read(store):
    request = create(store, RESIDENT_A)
    store.send_message(ROADS_EMPLOYEE, request.id, "reply")
    last_change = store.get_request(request.id).updated_at
    updated = store.mark_read(RESIDENT_A, request.id)
    own, reply = updated.messages
    assert reply.is_read is True
    assert own.is_read is False
    assert updated.updated_at == last_change
    assert store.get_request(request.id) is updated
    assert updated.unread_count == 1


def test_snapshot_round_trip(tmp_path, store):
    snapshot = tmp_path / "requests.json"
    store.init(snapshot)
    first = create(store, RESIDENT_A)
    second = create(store, RESIDENT_B, "water")
    close(store, first.id)
    store.teardown()

    reloaded = RequestStore(store.catalog, latency_seconds=0)
    reloaded.init(snapshot)
    assert [r.id for r in reloaded.all_requests()] == [second.id, first.id]
    assert reloaded.get_request(first.id).status == RequestStatus.CLOSED
    assert reloaded.get_request(first.id).deadline == first.deadline


def test_corrupt_snapshot_raises(tmp_path, store):
    snapshot = tmp_path / "requests.json"
    snapshot.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        store.init(snapshot)


def test_create_timeout_changes_nothing():
    store = RequestStore(CategoryCatalog(), latency_seconds=1.0)
    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(store.create_request(RESIDENT_A, "roads", "Pothole", "hi", timeout=0.01))
    assert store.all_requests() == []
    assert store.error is not None
