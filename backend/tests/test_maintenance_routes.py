"""
Prompt & Pause Backend — Maintenance Route Tests
=================================================

The ASGI app runs with mocked components on app.state; the admin check and
the current user are swapped through dependency overrides and patching.
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from promptpause.dependencies import get_current_user
from promptpause.exceptions import (
    EmailProviderUnavailableError,
    InvalidWindowStateError,
    NotFoundError,
    ValidationError,
)
from promptpause.schemas.maintenance import (
    BatchResult,
    FailureKind,
    NotificationType,
    RecipientFailure,
    SendSummary,
)
from promptpause.services.auth_service import AuthenticatedUser

ADMIN = AuthenticatedUser(id=uuid.UUID(int=42), email="admin@example.com")
BASE = "/api/admin/maintenance"


@pytest.fixture
def as_admin(app):
    app.dependency_overrides[get_current_user] = lambda: ADMIN
    with patch("promptpause.dependencies.is_admin", AsyncMock(return_value=True)):
        yield


def _summary(window_id, notification_type=NotificationType.PLANNED):
    failure = RecipientFailure(email="bad@example.com", error_kind=FailureKind.REJECTED, message="invalid")
    return SendSummary(
        notification_type=notification_type,
        window_id=window_id,
        total_recipients=150,
        total_succeeded=149,
        total_failed=1,
        batches=[
            BatchResult(batch_index=0, attempted=100, succeeded=100),
            BatchResult(batch_index=1, attempted=50, succeeded=49, failed=[failure]),
        ],
    )


class TestAccessControl:
    """Every admin route needs a valid token and an active admin."""

    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, client):
        response = await client.get(BASE)
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_rejected_token_is_401(self, app, client):
        from promptpause.exceptions import AuthenticationError

        app.state.auth_client.verify_token.side_effect = AuthenticationError()
        response = await client.get(BASE, headers={"Authorization": "Bearer expired"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_non_admin_is_403(self, app, client):
        app.state.auth_client.verify_token.return_value = AuthenticatedUser(
            id=uuid.uuid4(), email="someone@example.com"
        )
        with patch("promptpause.dependencies.is_admin", AsyncMock(return_value=False)):
            response = await client.post(
                f"{BASE}/{uuid.uuid4()}/notify-start", headers={"Authorization": "Bearer t"}
            )
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"
        app.state.maintenance_service.notify_start.assert_not_called()


@pytest.mark.usefixtures("as_admin")
class TestNotifyRoutes:
    """Notify endpoints map service outcomes to HTTP responses."""

    @pytest.mark.asyncio
    async def test_notify_start_returns_batch_result(self, app, client):
        window_id = uuid.uuid4()
        service = app.state.maintenance_service
        service.notify_start = AsyncMock(return_value=_summary(window_id))

        response = await client.post(f"{BASE}/{window_id}/notify-start", json={"notes": "Starting now"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Start notification sent to 149 of 150 users"
        assert body["batch_result"]["total_failed"] == 1
        assert body["batch_result"]["batches"][1]["failed"][0]["email"] == "bad@example.com"
        assert "attempted_emails" not in body["batch_result"]["batches"][0]
        service.notify_start.assert_awaited_once()
        assert service.notify_start.await_args.kwargs["notes"] == "Starting now"
        assert service.notify_start.await_args.args[2] == "admin@example.com"

    @pytest.mark.asyncio
    async def test_notify_complete_without_body(self, app, client):
        window_id = uuid.uuid4()
        service = app.state.maintenance_service
        service.notify_complete = AsyncMock(return_value=_summary(window_id, NotificationType.COMPLETED))

        response = await client.post(f"{BASE}/{window_id}/notify-complete")

        assert response.status_code == 200
        assert response.json()["message"] == "Completion notification sent to 149 of 150 users"
        assert service.notify_complete.await_args.kwargs["improvements"] is None

    @pytest.mark.asyncio
    async def test_notify_complete_with_unreadable_body(self, app, client):
        """A body that is not JSON is treated as no options, not a 422."""
        window_id = uuid.uuid4()
        service = app.state.maintenance_service
        service.notify_complete = AsyncMock(return_value=_summary(window_id, NotificationType.COMPLETED))

        response = await client.post(
            f"{BASE}/{window_id}/notify-complete",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert service.notify_complete.await_args.kwargs["improvements"] is None
        assert service.notify_complete.await_args.kwargs["notes"] is None

    @pytest.mark.asyncio
    async def test_notify_complete_passes_improvements(self, app, client):
        window_id = uuid.uuid4()
        service = app.state.maintenance_service
        service.notify_complete = AsyncMock(return_value=_summary(window_id, NotificationType.COMPLETED))

        response = await client.post(
            f"{BASE}/{window_id}/notify-complete", json={"improvements": "Faster sync"}
        )

        assert response.status_code == 200
        assert service.notify_complete.await_args.kwargs["improvements"] == "Faster sync"

    @pytest.mark.asyncio
    async def test_oversized_notes_is_422(self, app, client):
        app.state.maintenance_service.notify_start = AsyncMock()
        response = await client.post(f"{BASE}/{uuid.uuid4()}/notify-start", json={"notes": "x" * 2001})

        assert response.status_code == 422
        app.state.maintenance_service.notify_start.assert_not_called()

    @pytest.mark.asyncio
    async def test_never_started_window_is_400(self, app, client):
        app.state.maintenance_service.notify_complete = AsyncMock(
            side_effect=InvalidWindowStateError("Maintenance window has not started", status="scheduled")
        )
        response = await client.post(f"{BASE}/{uuid.uuid4()}/notify-complete")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_window_state"
        assert body["details"]["status"] == "scheduled"

    @pytest.mark.asyncio
    async def test_unknown_window_is_404(self, app, client):
        app.state.maintenance_service.notify_start = AsyncMock(
            side_effect=NotFoundError(resource="Maintenance window")
        )
        response = await client.post(f"{BASE}/{uuid.uuid4()}/notify-start")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_email_provider_down_is_500_without_context(self, app, client):
        app.state.maintenance_service.notify_start = AsyncMock(
            side_effect=EmailProviderUnavailableError("Email service is not configured", context={"missing": "RESEND_API_KEY"})
        )
        response = await client.post(f"{BASE}/{uuid.uuid4()}/notify-start")

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"
        assert "details" not in response.json()

    @pytest.mark.asyncio
    async def test_invalid_window_id_is_422(self, client):
        response = await client.post(f"{BASE}/not-a-uuid/notify-start")
        assert response.status_code == 422


@pytest.mark.usefixtures("as_admin")
class TestWindowRoutes:

    @pytest.mark.asyncio
    async def test_create_window(self, app, client, make_window):
        window = make_window()
        app.state.maintenance_service.create_window = AsyncMock(return_value=window)

        response = await client.post(
            BASE,
            json={
                "scheduled_date": "2026-10-24",
                "start_time": "02:00",
                "end_time": "04:00",
                "affected_services": ["Reflections"],
            },
        )

        assert response.status_code == 201
        assert response.json()["id"] == str(window.id)
        assert app.state.maintenance_service.create_window.await_args.kwargs["created_by"] == "admin@example.com"

    @pytest.mark.asyncio
    async def test_weekday_window_is_400(self, app, client):
        app.state.maintenance_service.create_window = AsyncMock(
            side_effect=ValidationError("Maintenance can only be scheduled on weekends", field="scheduled_date")
        )
        response = await client.post(
            BASE,
            json={
                "scheduled_date": "2026-10-21",
                "start_time": "02:00",
                "end_time": "04:00",
                "affected_services": ["Reflections"],
            },
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_empty_service_list_is_422(self, client):
        response = await client.post(
            BASE,
            json={"scheduled_date": "2026-10-24", "start_time": "02:00", "end_time": "04:00", "affected_services": []},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_window_detail(self, app, client, make_window):
        window = make_window()
        app.state.maintenance_service.get_window = AsyncMock(return_value=window)

        response = await client.get(f"{BASE}/{window.id}")

        assert response.status_code == 200
        assert response.json()["affected_services"] == ["Reflections", "Daily prompts"]
        assert response.json()["notifications"] == []

    @pytest.mark.asyncio
    async def test_status_route_is_not_a_window_id(self, app, client):
        from promptpause.schemas.maintenance import MaintenanceModeResponse

        app.state.maintenance_service.get_mode = AsyncMock(return_value=MaintenanceModeResponse(is_enabled=False))
        response = await client.get(f"{BASE}/status")

        assert response.status_code == 200
        assert response.json()["is_enabled"] is False

    @pytest.mark.asyncio
    async def test_enable_mode(self, app, client):
        from promptpause.schemas.maintenance import MaintenanceModeResponse

        app.state.maintenance_service.set_mode = AsyncMock(
            return_value=MaintenanceModeResponse(is_enabled=True, enabled_by="admin@example.com")
        )
        response = await client.post(f"{BASE}/enable", json={"notes": "DB upgrade"})

        assert response.status_code == 200
        args = app.state.maintenance_service.set_mode.await_args
        assert args.args[1] is True
        assert args.kwargs["notes"] == "DB upgrade"
