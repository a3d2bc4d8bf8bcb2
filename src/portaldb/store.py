"""Local state store: the in-memory document and its durable mirror.

This is the only component allowed to mutate the document. Every mutation
builds a new document, writes it to the mirror, and only then makes it
current, so callers never observe a change that was not persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError

from portaldb._constants import (
    BOOTSTRAP_ADMIN_EXPIRY_YEARS,
    BOOTSTRAP_ADMIN_PASSWORD,
    BOOTSTRAP_ADMIN_USERNAME,
    MIRROR_CURRENT_USER_KEY,
    MIRROR_DOCUMENT_KEY,
    MIRROR_LAST_SAVE_KEY,
)
from portaldb.client import RemoteStoreClient
from portaldb.exceptions import (
    AccountExpiredError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    PortalError,
    PortalValidationError,
    RequestNotFoundError,
)
from portaldb.mirror import Mirror
from portaldb.models._base import to_epoch_ms
from portaldb.models.bug_request import BugRequest, BugType, RequestStatus
from portaldb.models.document import Document, DocumentStats
from portaldb.models.remote import RevisionToken
from portaldb.models.user import User, UserRole
from portaldb.session import LoginSession

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _add_years(value: datetime, years: int) -> datetime:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return value.replace(year=value.year + years, day=28)


def _display_timestamp(value: datetime) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


class PortalStore:
    """Owns one portal document for one running session.

    Parameters
    ----------
    mirror : Mirror
        Durable key-value slot the document is written to after every
        mutation.
    remote : RemoteStoreClient, optional
        Entered client consulted first by :meth:`load` and used by
        :meth:`push`.
    document : Document, optional
        Start from this document instead of calling :meth:`load`.
    clock : callable
        Returns the current aware datetime.
    bootstrap_username, bootstrap_password : str
        Credentials of the admin synthesized when nothing can be loaded.
    """

    def __init__(
        self,
        mirror: Mirror,
        *,
        remote: RemoteStoreClient | None = None,
        document: Document | None = None,
        clock: Callable[[], datetime] = _utcnow,
        bootstrap_username: str = BOOTSTRAP_ADMIN_USERNAME,
        bootstrap_password: str = BOOTSTRAP_ADMIN_PASSWORD,
    ) -> None:
        self._mirror = mirror
        self._remote = remote
        self._document = document
        self._clock = clock
        self._bootstrap_username = bootstrap_username
        self._bootstrap_password = bootstrap_password

    @property
    def document(self) -> Document:
        if self._document is None:
            raise PortalError("Store not loaded. Call 'await store.load()' first.")
        return self._document

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> Document:
        """Load the document: remote store, then mirror, then a fresh default.

        Never raises. Each failed step is logged and the next one is tried;
        the default document is written to the mirror immediately unless the
        mirror holds a document it could not parse.
        """
        raw: str | None = None
        document = await self._load_remote()
        if document is None:
            raw = self._read_mirror()
            if raw is not None:
                document = self._parse_mirror(raw)
        if document is None:
            document = self.default_document()
            self._document = document
            if raw is not None:
                # An unreadable mirror document is left for manual recovery
                _logger.warning("Not overwriting unreadable mirror document with the default document")
            else:
                try:
                    self._persist(document)
                except Exception as exc:
                    _logger.warning("Could not write default document to mirror: %s", exc)
            _logger.info("Initialized default document with bootstrap admin %r", self._bootstrap_username)
        else:
            self._document = document
        return document

    async def _load_remote(self) -> Document | None:
        if self._remote is None:
            return None
        try:
            snapshot = await self._remote.fetch()
        except Exception as exc:
            _logger.warning("Remote load failed, falling back to mirror: %s", exc)
            _logger.debug("Remote load failure details", exc_info=True)
            return None
        if not snapshot.exists:
            _logger.warning("Remote document does not exist yet, falling back to mirror")
            return None
        if not snapshot.document.users:
            _logger.warning("Remote document has no users, falling back to mirror")
            return None
        _logger.debug("Document loaded from remote revision=%s", snapshot.revision)
        return snapshot.document

    def _read_mirror(self) -> str | None:
        try:
            raw = self._mirror.get(MIRROR_DOCUMENT_KEY)
        except Exception as exc:
            _logger.warning("Mirror read failed, using default document: %s", exc)
            _logger.debug("Mirror read failure details", exc_info=True)
            return None
        if raw is None:
            _logger.debug("Mirror holds no document")
        return raw

    def _parse_mirror(self, raw: str) -> Document | None:
        try:
            document = Document.from_json(raw)
        except (ValidationError, ValueError) as exc:
            _logger.warning("Mirror document is unreadable, using default document: %s", exc)
            return None
        _logger.debug("Document loaded from mirror users=%d", len(document.users))
        return document

    def default_document(self) -> Document:
        """Build a document holding only the bootstrap admin."""
        now = self._clock()
        admin = User(
            username=self._bootstrap_username,
            password=self._bootstrap_password,
            role=UserRole.ADMIN,
            expiry=to_epoch_ms(_add_years(now, BOOTSTRAP_ADMIN_EXPIRY_YEARS)),
            created_at=to_epoch_ms(now),
        )
        return Document(users=[admin], bug_requests=[], last_updated=now)

    def _persist(self, document: Document) -> None:
        self._mirror.set(MIRROR_DOCUMENT_KEY, document.to_json())
        self._mirror.set(MIRROR_LAST_SAVE_KEY, self._clock().isoformat())

    def _commit(self, document: Document) -> None:
        self._persist(document)
        self._document = document

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self, username: str, password: str) -> User:
        """Return the user matching both *username* and *password*.

        Raises
        ------
        InvalidCredentialsError
            No user matches.
        AccountExpiredError
            The matching user is not an admin and has expired.
        """
        for user in self.document.users:
            if user.username == username and user.password == password:
                if user.is_expired(self._clock()):
                    raise AccountExpiredError(
                        f"Account {username!r} has expired",
                        username=username,
                    )
                return user
        raise InvalidCredentialsError("Invalid credentials", username=username)

    def login(self, username: str, password: str) -> User:
        """Authenticate and remember the user in the mirror."""
        user = self.authenticate(username, password)
        session = LoginSession(user=user, logged_in_at=self._clock())
        self._mirror.set(MIRROR_CURRENT_USER_KEY, session.to_json())
        return user

    def restore_login(self) -> User | None:
        """Return the remembered user if they can still log in.

        A remembered user that no longer authenticates (removed, password
        changed, expired) is forgotten.
        """
        raw = self._mirror.get(MIRROR_CURRENT_USER_KEY)
        if raw is None:
            return None
        try:
            session = LoginSession.from_json(raw)
            return self.authenticate(session.user.username, session.user.password)
        except (ValidationError, ValueError, PortalError) as exc:
            _logger.info("Discarding remembered login: %s", exc)
            self._mirror.delete(MIRROR_CURRENT_USER_KEY)
            return None

    def logout(self) -> None:
        self._mirror.delete(MIRROR_CURRENT_USER_KEY)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _next_request_id(self, now: datetime) -> int:
        candidate = to_epoch_ms(now)
        if self.document.bug_requests:
            candidate = max(candidate, max(r.id for r in self.document.bug_requests) + 1)
        return candidate

    def record_bug_request(self, owner: str, target: str, bug_type: BugType | str) -> BugRequest:
        """Record a pending request from the regular user *owner*.

        Raises
        ------
        PortalValidationError
            Empty target, unknown bug type, or an owner that is not an
            existing regular user.
        """
        if not target or not target.strip():
            raise PortalValidationError("Please enter target number")
        try:
            kind = BugType(bug_type)
        except ValueError as exc:
            raise PortalValidationError(f"Unknown bug type {bug_type!r}") from exc
        user = self.document.find_user(owner)
        if user is None:
            raise PortalValidationError(f"Unknown user {owner!r}")
        if user.is_admin:
            raise PortalValidationError("Admins cannot submit bug requests")

        now = self._clock()
        request = BugRequest(
            id=self._next_request_id(now),
            target_number=target,
            bug_type=kind,
            username=owner,
            status=RequestStatus.PENDING,
            timestamp=_display_timestamp(now),
        )
        document = self.document.model_copy(
            update={
                "bug_requests": [*self.document.bug_requests, request],
                "last_updated": now,
            }
        )
        self._commit(document)
        _logger.debug("Recorded bug request id=%d owner=%s type=%s", request.id, owner, kind)
        return request

    def create_user(self, username: str, password: str, expiry_days: int) -> User:
        """Add a regular user expiring *expiry_days* days from now.

        Raises
        ------
        PortalValidationError
            Empty username or password, or non-integer day count.
        DuplicateUsernameError
            The exact username is already taken.
        """
        if not username or not password:
            raise PortalValidationError("Please fill all fields")
        if isinstance(expiry_days, bool) or not isinstance(expiry_days, int):
            raise PortalValidationError(f"expiry_days must be an integer, got {expiry_days!r}")
        if self.document.find_user(username) is not None:
            raise DuplicateUsernameError(f"Username {username!r} already exists", username=username)

        now = self._clock()
        user = User(
            username=username,
            password=password,
            role=UserRole.USER,
            expiry=to_epoch_ms(now + timedelta(days=expiry_days)),
            created_at=to_epoch_ms(now),
        )
        document = self.document.model_copy(
            update={
                "users": [*self.document.users, user],
                "last_updated": now,
            }
        )
        self._commit(document)
        _logger.debug("Created user %s expiry_days=%d", username, expiry_days)
        return user

    def mark_processed(self, request_id: int) -> BugRequest:
        """Mark a request completed.

        The write is unconditional: processing an already completed request
        rewrites the same state.

        Raises
        ------
        RequestNotFoundError
            No request carries *request_id*; nothing is written.
        """
        processed: BugRequest | None = None
        requests: list[BugRequest] = []
        for request in self.document.bug_requests:
            if processed is None and request.id == request_id:
                processed = request.model_copy(update={"status": RequestStatus.COMPLETED})
                requests.append(processed)
            else:
                requests.append(request)
        if processed is None:
            raise RequestNotFoundError(f"Bug request {request_id} not found", request_id=request_id)

        document = self.document.model_copy(update={"bug_requests": requests, "last_updated": self._clock()})
        self._commit(document)
        return processed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def requests_for(self, username: str) -> list[BugRequest]:
        """Requests owned by *username*, oldest first."""
        return [r for r in self.document.bug_requests if r.username == username]

    def regular_users(self) -> list[User]:
        return [u for u in self.document.users if u.role == UserRole.USER]

    def stats(self) -> DocumentStats:
        document = self.document
        return DocumentStats(
            user_count=len(document.users),
            request_count=len(document.bug_requests),
            pending_count=sum(1 for r in document.bug_requests if r.is_pending),
        )

    # ------------------------------------------------------------------
    # Remote sync
    # ------------------------------------------------------------------

    async def push(self, client: RemoteStoreClient | None = None, *, message: str | None = None) -> RevisionToken | None:
        """Save the current document to the remote store.

        Uses *client* or the store's own remote client. Errors propagate
        unchanged, including :class:`RemoteWriteConflictError`.
        """
        target = client or self._remote
        if target is None:
            raise PortalError("No remote store client configured")
        revision = await target.save(self.document, message=message)
        _logger.info("Document pushed to %s", target.config.file_path)
        return revision
