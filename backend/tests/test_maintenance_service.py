"""
Prompt & Pause Backend — Maintenance Service Tests
===================================================

What we test:
    ✅ Weekend-only scheduling and end-after-start
    ✅ Notify-complete on a window that never started sends nothing
    ✅ A second start notification is refused
    ✅ Missing email key fails before recipients are loaded
    ✅ A successful run updates the window and writes one audit row
    ✅ An aborted run leaves the window untouched
"""

import uuid
from datetime import date, time
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from promptpause.exceptions import (
    DatabaseError,
    EmailProviderUnavailableError,
    InvalidWindowStateError,
    NotFoundError,
    ValidationError,
)
from promptpause.models.maintenance import MaintenanceNotification
from promptpause.schemas.maintenance import (
    MaintenanceStatus,
    MaintenanceWindowCreate,
    MaintenanceWindowUpdate,
    NotificationType,
)
from promptpause.services.maintenance_service import (
    EmailBranding,
    MaintenanceService,
    validate_schedule,
)
from promptpause.services.notifier import MaintenanceNotifier, NotifierConfig


async def _no_sleep(_seconds):
    return None


@pytest.fixture
def email_client():
    client = MagicMock()
    client.ensure_configured = MagicMock()
    client.send_batch = AsyncMock(return_value=[])
    return client


@pytest.fixture
def service(email_client):
    notifier = MaintenanceNotifier(email_client, NotifierConfig(), sleep=_no_sleep)
    return MaintenanceService(notifier, EmailBranding(app_name="Prompt & Pause", app_url="https://app.test"))


def _audit_rows(db):
    return [c.args[0] for c in db.add.call_args_list if isinstance(c.args[0], MaintenanceNotification)]


class TestValidateSchedule:
    """Weekend-only scheduling rules."""

    def test_weekend_with_valid_times(self):
        validate_schedule(date(2026, 10, 25), time(1, 0), time(3, 30))

    def test_weekday_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_schedule(date(2026, 10, 21), time(1, 0), time(3, 0))
        assert "weekend" in exc_info.value.message

    @pytest.mark.parametrize("end", [time(2, 0), time(1, 0)])
    def test_end_must_follow_start(self, end):
        with pytest.raises(ValidationError):
            validate_schedule(date(2026, 10, 24), time(2, 0), end)


class TestWindowCrud:
    """Window create, update and cancel against a mocked session."""

    @pytest.mark.asyncio
    async def test_create_window_on_weekday_never_touches_db(self, service, mock_db_session):
        data = MaintenanceWindowCreate(
            scheduled_date=date(2026, 10, 21),
            start_time=time(2, 0),
            end_time=time(4, 0),
            affected_services=["Reflections"],
        )
        with pytest.raises(ValidationError):
            await service.create_window(mock_db_session, data, "admin@example.com")
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_window(self, service, mock_db_session):
        data = MaintenanceWindowCreate(
            scheduled_date=date(2026, 10, 24),
            start_time=time(2, 0),
            end_time=time(4, 0),
            affected_services=[" Reflections ", ""],
        )
        window = await service.create_window(mock_db_session, data, "admin@example.com")

        assert window.status == "scheduled"
        assert window.affected_services == ["Reflections"]
        assert window.created_by == "admin@example.com"
        mock_db_session.add.assert_called_once_with(window)
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_window_is_not_found(self, service, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await service.get_window(mock_db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_update_revalidates_schedule(self, service, mock_db_session, make_window):
        mock_db_session.get.return_value = make_window()
        with pytest.raises(ValidationError):
            await service.update_window(
                mock_db_session, uuid.uuid4(), MaintenanceWindowUpdate(end_time=time(1, 0))
            )

    @pytest.mark.asyncio
    async def test_update_sets_only_given_fields(self, service, mock_db_session, make_window):
        window = make_window()
        mock_db_session.get.return_value = window

        await service.update_window(
            mock_db_session,
            window.id,
            MaintenanceWindowUpdate(description=None, status=MaintenanceStatus.IN_PROGRESS, start_time=None),
        )

        assert window.description is None
        assert window.status == "in_progress"
        assert window.start_time == time(2, 0)

    @pytest.mark.asyncio
    async def test_completed_window_cannot_be_cancelled(self, service, mock_db_session, make_window):
        mock_db_session.get.return_value = make_window(status="completed")
        with pytest.raises(InvalidWindowStateError):
            await service.cancel_window(mock_db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_flush_failure_becomes_database_error(self, service, mock_db_session, make_window):
        mock_db_session.get.return_value = make_window()
        mock_db_session.flush.side_effect = OperationalError("UPDATE", {}, Exception("gone"))
        with pytest.raises(DatabaseError):
            await service.cancel_window(mock_db_session, uuid.uuid4())


class TestNotifyStart:
    """Start notification runs."""

    @pytest.mark.asyncio
    async def test_sends_and_records(self, service, email_client, mock_db_session, make_window, make_recipients):
        window = make_window()
        mock_db_session.get.return_value = window
        service.load_recipients = AsyncMock(return_value=make_recipients(150))

        summary = await service.notify_start(mock_db_session, window.id, "admin@example.com", notes="Go")

        assert summary.notification_type == NotificationType.PLANNED
        assert summary.total_recipients == 150
        assert email_client.send_batch.await_count == 2
        first_batch = email_client.send_batch.await_args_list[0].args[0]
        assert first_batch[0].subject == "Scheduled Maintenance: 2026-10-24"
        assert "User 0" in first_batch[0].html

        assert window.notification_sent is True
        assert window.notification_sent_at is not None
        assert window.status == "in_progress"
        assert window.notes == "Go"

        (audit,) = _audit_rows(mock_db_session)
        assert audit.notification_type == "planned"
        assert audit.recipient_count == 150
        assert audit.sent_by == "admin@example.com"
        assert audit.batch_details["success_count"] == 150

    @pytest.mark.asyncio
    async def test_second_start_is_refused(self, service, email_client, mock_db_session, make_window):
        mock_db_session.get.return_value = make_window(notification_sent=True, status="in_progress")
        service.load_recipients = AsyncMock()

        with pytest.raises(InvalidWindowStateError):
            await service.notify_start(mock_db_session, uuid.uuid4(), "admin@example.com")
        service.load_recipients.assert_not_awaited()
        email_client.send_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancelled_window_is_refused(self, service, email_client, mock_db_session, make_window):
        mock_db_session.get.return_value = make_window(status="cancelled")
        with pytest.raises(InvalidWindowStateError):
            await service.notify_start(mock_db_session, uuid.uuid4(), "admin@example.com")
        email_client.send_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_email_key_fails_before_loading_recipients(
        self, service, email_client, mock_db_session, make_window
    ):
        mock_db_session.get.return_value = make_window()
        email_client.ensure_configured.side_effect = EmailProviderUnavailableError("Email service is not configured")
        service.load_recipients = AsyncMock()

        with pytest.raises(EmailProviderUnavailableError):
            await service.notify_start(mock_db_session, uuid.uuid4(), "admin@example.com")
        service.load_recipients.assert_not_awaited()
        email_client.send_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_aborted_run_persists_nothing(
        self, service, email_client, mock_db_session, make_window, make_recipients
    ):
        """Batch 2 fails: no flags flipped, no audit row, no flush."""
        window = make_window()
        mock_db_session.get.return_value = window
        service.load_recipients = AsyncMock(return_value=make_recipients(250))
        email_client.send_batch.side_effect = [[], EmailProviderUnavailableError("unreachable")]

        with pytest.raises(EmailProviderUnavailableError):
            await service.notify_start(mock_db_session, window.id, "admin@example.com")

        assert window.notification_sent is False
        assert window.status == "scheduled"
        assert _audit_rows(mock_db_session) == []
        mock_db_session.flush.assert_not_awaited()


class TestNotifyComplete:
    """Completion notification runs."""

    @pytest.mark.asyncio
    async def test_never_started_window_sends_nothing(self, service, email_client, mock_db_session, make_window):
        """State is checked before recipients are loaded, so nothing is emailed."""
        mock_db_session.get.return_value = make_window()
        service.load_recipients = AsyncMock()

        with pytest.raises(InvalidWindowStateError):
            await service.notify_complete(mock_db_session, uuid.uuid4(), "admin@example.com")
        service.load_recipients.assert_not_awaited()
        email_client.send_batch.assert_not_called()
        assert _audit_rows(mock_db_session) == []

    @pytest.mark.asyncio
    async def test_completes_started_window(
        self, service, email_client, mock_db_session, make_window, make_recipients
    ):
        window = make_window(status="in_progress", notification_sent=True)
        mock_db_session.get.return_value = window
        service.load_recipients = AsyncMock(return_value=make_recipients(3))
        email_client.send_batch.return_value = []

        summary = await service.notify_complete(
            mock_db_session, window.id, "admin@example.com", improvements="Faster sync"
        )

        assert summary.total_succeeded == 3
        messages = email_client.send_batch.await_args.args[0]
        assert messages[0].subject == "Maintenance Complete - All Systems Operational"
        assert "Faster sync" in messages[0].html
        assert "https://app.test" in messages[0].html
        assert window.status == "completed"
        assert window.completion_notification_sent is True
        assert window.completed_at is not None
        (audit,) = _audit_rows(mock_db_session)
        assert audit.notification_type == "completed"

    @pytest.mark.asyncio
    async def test_second_completion_is_refused(self, service, mock_db_session, make_window):
        mock_db_session.get.return_value = make_window(
            status="in_progress", notification_sent=True, completion_notification_sent=True
        )
        with pytest.raises(InvalidWindowStateError):
            await service.notify_complete(mock_db_session, uuid.uuid4(), "admin@example.com")


class TestLoadRecipients:

    @pytest.mark.asyncio
    async def test_maps_rows(self, service, mock_db_session):
        row = MagicMock(user_id=uuid.UUID(int=1), email="a@example.com", preferred_name=None)
        result = MagicMock()
        result.all.return_value = [row]
        mock_db_session.execute.return_value = result

        (recipient,) = await service.load_recipients(mock_db_session)
        assert recipient.email == "a@example.com"
        assert recipient.display_name == "a"

    @pytest.mark.asyncio
    async def test_query_failure_is_database_error(self, service, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("gone"))
        with pytest.raises(DatabaseError):
            await service.load_recipients(mock_db_session)
