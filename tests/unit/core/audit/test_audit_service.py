"""Tests for the audit query service."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from teamspace.adapters.db.memory import InMemoryStore
from teamspace.core.audit.recorder import AuditRecorder
from teamspace.core.audit.service import AuditService
from teamspace.core.audit.types import AuditAction, AuditLogFilter, EntityType
from teamspace.core.auth.types import PlatformRole
from teamspace.core.exceptions import BadRequestError, UnauthorizedError
from teamspace.core.pagination import encode_cursor


@pytest.fixture
def mock_reader() -> MagicMock:
    """Create mock audit reader."""
    reader = MagicMock()
    reader.list_events = AsyncMock(return_value=[])
    return reader


class TestScoping:
    """Non-admins only see their own events."""

    async def test_user_filter_forced_to_self(self, mock_reader: MagicMock) -> None:
        """A plain user's query is pinned to their identity."""
        actor = uuid4()

        await AuditService(mock_reader).list_events(actor, PlatformRole.USER)

        filters = mock_reader.list_events.await_args.args[0]
        assert filters.identity_id == actor

    async def test_user_cannot_ask_for_others(self, mock_reader: MagicMock) -> None:
        """Filtering on someone else is refused."""
        with pytest.raises(UnauthorizedError, match="your own audit logs"):
            await AuditService(mock_reader).list_events(
                uuid4(), PlatformRole.USER, AuditLogFilter(identity_id=uuid4())
            )

        mock_reader.list_events.assert_not_awaited()

    @pytest.mark.parametrize("role", [PlatformRole.ADMIN, PlatformRole.SUPER_ADMIN])
    async def test_admin_sees_everyone(self, mock_reader: MagicMock, role: PlatformRole) -> None:
        """Admins are unscoped unless they filter."""
        await AuditService(mock_reader).list_events(uuid4(), role)

        filters = mock_reader.list_events.await_args.args[0]
        assert filters.identity_id is None

    async def test_fetches_look_ahead_row(self, mock_reader: MagicMock) -> None:
        """The reader is asked for limit + 1 rows."""
        await AuditService(mock_reader).list_events(uuid4(), PlatformRole.ADMIN, limit=5)

        assert mock_reader.list_events.await_args.args[2] == 6


class TestWithStore:
    """End-to-end over the in-memory store."""

    async def test_filters_and_pages(self, store: InMemoryStore) -> None:
        """Events are filtered by action and paged newest first."""
        recorder = AuditRecorder(store)
        actor = uuid4()
        for _ in range(3):
            await recorder.record(actor, AuditAction.SIGN_IN, EntityType.USER, actor)
        await recorder.record(actor, AuditAction.SIGN_OUT, EntityType.USER, actor)
        service = AuditService(store)

        first = await service.list_events(
            actor, PlatformRole.USER, AuditLogFilter(action=AuditAction.SIGN_IN), limit=2
        )
        second = await service.list_events(
            actor,
            PlatformRole.USER,
            AuditLogFilter(action=AuditAction.SIGN_IN),
            cursor=first.page_info.end_cursor,
            limit=2,
        )

        assert len(first.data) == 2 and first.page_info.has_next_page
        assert len(second.data) == 1 and not second.page_info.has_next_page
        assert all(e.action is AuditAction.SIGN_IN for e in first.data + second.data)

    async def test_cursor_for_unknown_row(self, store: InMemoryStore) -> None:
        """A well-formed cursor naming no row pages from its key."""
        actor = uuid4()
        await AuditRecorder(store).record(actor, AuditAction.SIGN_IN, EntityType.USER, actor)
        service = AuditService(store)

        later = encode_cursor(datetime.now(UTC) + timedelta(minutes=1), uuid4())
        earlier = encode_cursor(datetime(2000, 1, 1, tzinfo=UTC), uuid4())

        newer = await service.list_events(actor, PlatformRole.ADMIN, cursor=later)
        older = await service.list_events(actor, PlatformRole.ADMIN, cursor=earlier)

        assert [e.identity_id for e in newer.data] == [actor]
        assert older.data == []

    async def test_malformed_cursor(self, mock_reader: MagicMock) -> None:
        """Undecodable cursors fail before the reader is queried."""
        with pytest.raises(BadRequestError, match="Invalid cursor format"):
            await AuditService(mock_reader).list_events(uuid4(), PlatformRole.ADMIN, cursor="%%%")

        mock_reader.list_events.assert_not_awaited()
