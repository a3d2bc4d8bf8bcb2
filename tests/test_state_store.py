from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest

from portaldb._constants import MIRROR_CURRENT_USER_KEY, MIRROR_DOCUMENT_KEY, MIRROR_LAST_SAVE_KEY
from portaldb.exceptions import (
    AccountExpiredError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    PortalError,
    PortalValidationError,
    RequestNotFoundError,
)
from portaldb.mirror import MemoryMirror
from portaldb.models import BugType, Document, RequestStatus, User, UserRole, to_epoch_ms
from portaldb.store import PortalStore


class _Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


@pytest.fixture
def clock() -> _Clock:
    return _Clock(_dt())


@pytest.fixture
def mirror() -> MemoryMirror:
    return MemoryMirror()


@pytest.fixture
def store(mirror: MemoryMirror, clock: _Clock) -> PortalStore:
    store = PortalStore(mirror, clock=clock, bootstrap_username="root", bootstrap_password="toor")
    store._document = store.default_document()  # noqa: SLF001
    return store


# ------------------------------------------------------------------
# load()
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_bootstrap_load_without_mirror_or_remote(mirror: MemoryMirror, clock: _Clock) -> None:
    store = PortalStore(mirror, clock=clock, bootstrap_username="root", bootstrap_password="toor")

    document = await store.load()

    assert len(document.users) == 1
    admin = document.users[0]
    assert admin.role == UserRole.ADMIN
    assert admin.username == "root"
    assert admin.expiry == to_epoch_ms(datetime(2036, 1, 1, tzinfo=UTC))
    assert document.bug_requests == []
    # Default document is mirrored straight away.
    assert Document.from_json(mirror.get(MIRROR_DOCUMENT_KEY) or "") == document
    assert mirror.get(MIRROR_LAST_SAVE_KEY) == _dt().isoformat()


@pytest.mark.asyncio
async def test_load_prefers_mirror_over_default(mirror: MemoryMirror, clock: _Clock) -> None:
    saved = Document(
        users=[User(username="boss", password="pw", role=UserRole.ADMIN, expiry=0)],
        last_updated=_dt(),
    )
    mirror.set(MIRROR_DOCUMENT_KEY, saved.to_json())

    document = await PortalStore(mirror, clock=clock).load()

    assert document == saved


@pytest.mark.asyncio
async def test_load_keeps_corrupt_mirror_untouched(mirror: MemoryMirror, clock: _Clock) -> None:
    mirror.set(MIRROR_DOCUMENT_KEY, "{not json")

    document = await PortalStore(mirror, clock=clock).load()

    assert [u.role for u in document.users] == [UserRole.ADMIN]
    assert mirror.get(MIRROR_DOCUMENT_KEY) == "{not json"
    assert mirror.get(MIRROR_LAST_SAVE_KEY) is None


@pytest.mark.asyncio
async def test_load_accepts_document_written_by_browser_app(mirror: MemoryMirror, clock: _Clock) -> None:
    raw = {
        "users": [
            {"username": "Nwalhost", "password": "pw", "role": "admin", "expiry": 2082758400000, "createdAt": 1700000000000},
            {"username": "bob", "password": "pw", "role": "user", "expiry": None, "createdAt": 1700000000000},
        ],
        "bugRequests": [
            {
                "id": 1700000000001,
                "targetNumber": "  ",
                "bugType": "crash-ios",
                "username": "bob",
                "status": "pending",
                "timestamp": "11/14/2023, 10:13:20 PM",
            }
        ],
        "lastUpdated": "2023-11-14T22:13:20.000Z",
    }
    mirror.set(MIRROR_DOCUMENT_KEY, json.dumps(raw))
    store = PortalStore(mirror, clock=clock)

    document = await store.load()

    assert [u.username for u in document.users] == ["Nwalhost", "bob"]
    assert document.bug_requests[0].target_number == "  "
    assert json.loads(mirror.get(MIRROR_DOCUMENT_KEY) or "") == raw
    with pytest.raises(AccountExpiredError):
        store.authenticate("bob", "pw")
    assert store.authenticate("Nwalhost", "pw").is_admin


@pytest.mark.asyncio
async def test_load_survives_mirror_read_failure(clock: _Clock) -> None:
    class _BrokenMirror(MemoryMirror):
        def get(self, key: str) -> str | None:
            raise OSError("disk gone")

    document = await PortalStore(_BrokenMirror(), clock=clock).load()

    assert len(document.users) == 1


def test_document_access_before_load_raises(mirror: MemoryMirror) -> None:
    with pytest.raises(PortalError):
        _ = PortalStore(mirror).document


# ------------------------------------------------------------------
# authenticate()
# ------------------------------------------------------------------


def test_created_user_can_authenticate(store: PortalStore) -> None:
    user = store.create_user("alice", "pw", 30)

    assert store.authenticate("alice", "pw") == user
    with pytest.raises(DuplicateUsernameError) as exc_info:
        store.create_user("alice", "other", 5)
    assert exc_info.value.username == "alice"


def test_usernames_are_case_sensitive(store: PortalStore) -> None:
    store.create_user("alice", "pw", 30)
    store.create_user("Alice", "pw2", 30)

    assert store.authenticate("Alice", "pw2").username == "Alice"
    with pytest.raises(InvalidCredentialsError):
        store.authenticate("ALICE", "pw")


def test_unknown_user_is_invalid_credentials(store: PortalStore) -> None:
    with pytest.raises(InvalidCredentialsError):
        store.authenticate("nouser", "x")


def test_wrong_password_is_invalid_credentials(store: PortalStore) -> None:
    with pytest.raises(InvalidCredentialsError):
        store.authenticate("root", "wrong")


def test_expired_user_rejected_even_with_correct_password(store: PortalStore, clock: _Clock) -> None:
    store.create_user("alice", "pw", 1)
    clock.advance(timedelta(days=1, milliseconds=1))

    with pytest.raises(AccountExpiredError) as exc_info:
        store.authenticate("alice", "pw")
    assert exc_info.value.username == "alice"


def test_expired_admin_still_authenticates(mirror: MemoryMirror, clock: _Clock) -> None:
    admin = User(username="root", password="toor", role=UserRole.ADMIN, expiry=0)
    store = PortalStore(mirror, clock=clock, document=Document(users=[admin]))

    assert store.authenticate("root", "toor") == admin


# ------------------------------------------------------------------
# Mutations
# ------------------------------------------------------------------


def test_create_user_sets_expiry_and_persists(store: PortalStore, mirror: MemoryMirror, clock: _Clock) -> None:
    user = store.create_user("alice", "pw", 30)

    assert user.role == UserRole.USER
    assert user.expiry == to_epoch_ms(_dt() + timedelta(days=30))
    assert user.created_at == to_epoch_ms(_dt())
    persisted = Document.from_json(mirror.get(MIRROR_DOCUMENT_KEY) or "")
    assert persisted.find_user("alice") == user
    assert persisted.last_updated == _dt()


@pytest.mark.parametrize(
    ("username", "password", "days"),
    [("", "pw", 5), ("alice", "", 5), ("alice", "pw", "5"), ("alice", "pw", True)],
)
def test_create_user_validates_input(store: PortalStore, username: str, password: str, days: object) -> None:
    with pytest.raises(PortalValidationError):
        store.create_user(username, password, days)  # type: ignore[arg-type]
    assert len(store.document.users) == 1


def test_record_bug_request_appends_and_persists(store: PortalStore, mirror: MemoryMirror) -> None:
    store.create_user("alice", "pw", 30)

    request = store.record_bug_request("alice", "628123", "crash-android")

    assert request.id == to_epoch_ms(_dt())
    assert request.bug_type == BugType.CRASH_ANDROID
    assert request.status == RequestStatus.PENDING
    assert request.username == "alice"
    persisted = Document.from_json(mirror.get(MIRROR_DOCUMENT_KEY) or "")
    assert persisted.bug_requests == [request]


def test_request_ids_stay_unique_within_one_millisecond(store: PortalStore) -> None:
    store.create_user("alice", "pw", 30)

    first = store.record_bug_request("alice", "1", BugType.CRASH_IOS)
    second = store.record_bug_request("alice", "2", BugType.CRASH_IOS)

    assert second.id == first.id + 1


def test_record_bug_request_rejects_empty_target(store: PortalStore) -> None:
    store.create_user("alice", "pw", 30)
    with pytest.raises(PortalValidationError):
        store.record_bug_request("alice", "", BugType.DELAY_MAKER)
    with pytest.raises(PortalValidationError):
        store.record_bug_request("alice", "  ", BugType.DELAY_MAKER)
    assert store.document.bug_requests == []


def test_record_bug_request_rejects_unknown_type_and_owner(store: PortalStore) -> None:
    store.create_user("alice", "pw", 30)
    with pytest.raises(PortalValidationError):
        store.record_bug_request("alice", "1", "crash-windows")
    with pytest.raises(PortalValidationError):
        store.record_bug_request("ghost", "1", BugType.DELAY_MAKER)
    with pytest.raises(PortalValidationError):
        store.record_bug_request("root", "1", BugType.DELAY_MAKER)


def test_mark_processed_is_idempotent(store: PortalStore) -> None:
    store.create_user("alice", "pw", 30)
    request = store.record_bug_request("alice", "628123", BugType.DELAY_MAKER)

    for _ in range(3):
        processed = store.mark_processed(request.id)
        assert processed.status == RequestStatus.COMPLETED

    assert [r.status for r in store.document.bug_requests] == [RequestStatus.COMPLETED]
    assert store.document.bug_requests[0].target_number == "628123"


def test_mark_processed_unknown_id_leaves_document_unchanged(store: PortalStore, mirror: MemoryMirror) -> None:
    store.create_user("alice", "pw", 30)
    store.record_bug_request("alice", "628123", BugType.DELAY_MAKER)
    before = store.document.to_json()
    mirrored = mirror.get(MIRROR_DOCUMENT_KEY)

    with pytest.raises(RequestNotFoundError) as exc_info:
        store.mark_processed(42)

    assert exc_info.value.request_id == 42
    assert store.document.to_json() == before
    assert mirror.get(MIRROR_DOCUMENT_KEY) == mirrored


def test_failed_mirror_write_keeps_previous_document(store: PortalStore) -> None:
    class _ReadOnlyMirror(MemoryMirror):
        def set(self, key: str, value: str) -> None:
            raise OSError("read-only")

    store._mirror = _ReadOnlyMirror()  # noqa: SLF001
    before = store.document

    with pytest.raises(OSError):
        store.create_user("alice", "pw", 30)
    assert store.document is before


# ------------------------------------------------------------------
# Queries and login memory
# ------------------------------------------------------------------


def test_queries(store: PortalStore) -> None:
    store.create_user("alice", "pw", 30)
    store.create_user("bob", "pw", 30)
    first = store.record_bug_request("alice", "1", BugType.CRASH_IOS)
    store.record_bug_request("bob", "2", BugType.CRASH_IOS)
    store.record_bug_request("alice", "3", BugType.DELAY_MAKER)
    store.mark_processed(first.id)

    assert [r.target_number for r in store.requests_for("alice")] == ["1", "3"]
    assert [u.username for u in store.regular_users()] == ["alice", "bob"]
    stats = store.stats()
    assert (stats.user_count, stats.request_count, stats.pending_count) == (3, 3, 2)


def test_login_is_remembered_until_logout(store: PortalStore, mirror: MemoryMirror) -> None:
    store.create_user("alice", "pw", 30)

    user = store.login("alice", "pw")

    assert json.loads(mirror.get(MIRROR_CURRENT_USER_KEY) or "")["user"]["username"] == "alice"
    assert store.restore_login() == user
    store.logout()
    assert mirror.get(MIRROR_CURRENT_USER_KEY) is None
    assert store.restore_login() is None


def test_restore_login_forgets_expired_user(store: PortalStore, mirror: MemoryMirror, clock: _Clock) -> None:
    store.create_user("alice", "pw", 1)
    store.login("alice", "pw")
    clock.advance(timedelta(days=2))

    assert store.restore_login() is None
    assert mirror.get(MIRROR_CURRENT_USER_KEY) is None


def test_failed_login_is_not_remembered(store: PortalStore, mirror: MemoryMirror) -> None:
    with pytest.raises(InvalidCredentialsError):
        store.login("root", "nope")
    assert mirror.get(MIRROR_CURRENT_USER_KEY) is None


@pytest.mark.asyncio
async def test_push_without_client_raises(store: PortalStore) -> None:
    with pytest.raises(PortalError):
        await store.push()
