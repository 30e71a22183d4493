"""Tests for FastAPI web API.

Uses TestClient to test all endpoints.
"""

import asyncio
import os
import uuid
from unittest.mock import patch

import pytest
from conftest import FakeEngine, make_target
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from imageflasher import __version__
from imageflasher.config import Settings
from imageflasher.db import Base
from imageflasher.drives.selection import AvailableDrives
from imageflasher.flash.errors import FlashFailure
from imageflasher.flash.models import AttemptRecord  # noqa: F401
from imageflasher.flash.service import create_flash_controller
from web.app import create_app
from web.routers import config, drives, flash, health


def create_test_app() -> FastAPI:
    """Create a minimal FastAPI app for testing without lifespan."""
    application = FastAPI(title="Image Flasher API", version=__version__)
    application.include_router(health.router, tags=["health"])
    application.include_router(config.router, prefix="/config", tags=["config"])
    application.include_router(drives.router, prefix="/drives", tags=["drives"])
    application.include_router(flash.router, prefix="/flash", tags=["flash"])
    return application


@pytest.fixture
def drive_list():
    """Drives reported by the fake scanner; tests may change it."""
    return [
        make_target("/dev/sda", is_system=True, description="Internal SSD"),
        make_target("/dev/sdb"),
        make_target("/dev/sdc", is_read_only=True),
    ]


@pytest.fixture
def write_engine():
    return FakeEngine()


@pytest.fixture
def client(tmp_path, drive_list, write_engine):
    """Create a test client with a fresh SQLite database in tmp_path."""
    db_file = tmp_path / f"test_{uuid.uuid4().hex[:8]}.db"
    engine = create_engine(f"sqlite:///{db_file}", echo=False)
    Base.metadata.create_all(engine)
    session_factory = sessionmaker(bind=engine)

    app = create_test_app()
    app.state.session_factory = session_factory
    app.state.controller = create_flash_controller(
        Settings(_env_file=None),
        available=AvailableDrives(scanner=lambda: list(drive_list)),
        engine=write_engine,
        session_factory=session_factory,
    )

    with TestClient(app) as test_client:
        yield test_client

    engine.dispose()


def _select(client, image_file, devices):
    return client.put(
        "/flash/selection", json={"image": str(image_file), "devices": devices}
    )


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_health(self, client: TestClient) -> None:
        """GET /health returns status ok and the idle phase."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "version": __version__,
            "phase": "idle",
            "in_flight": False,
        }

    def test_health_during_warning(self, client: TestClient, image_file) -> None:
        """A pending warning shows up in the health phase."""
        _select(client, image_file, ["/dev/sda"])
        client.post("/flash/attempts")
        assert client.get("/health").json()["phase"] == "warning-pending"

    def test_root(self, client: TestClient) -> None:
        """GET / returns API info."""
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "Image Flasher API"
        assert response.json()["docs"] == "/docs"


class TestConfigEndpoint:
    """Test configuration endpoint."""

    def test_get_config(self, client: TestClient) -> None:
        """GET /config returns the flashing settings."""
        response = client.get("/config")
        assert response.status_code == 200
        data = response.json()
        assert data["large_drive_size"] == 128_000_000_000
        assert "block_size" in data
        assert "validate_write_on_success" in data


class TestDrivesEndpoint:
    """Test drive listing."""

    def test_list_drives(self, client: TestClient) -> None:
        """Drives come with their risk statuses."""
        response = client.get("/drives")
        assert response.status_code == 200
        data = {d["device"]: d for d in response.json()}
        assert data["/dev/sda"]["statuses"] == ["system-drive"]
        assert data["/dev/sdb"]["statuses"] == []
        assert data["/dev/sdc"]["statuses"] == ["locked"]

    def test_missing_image(self, client: TestClient, tmp_path) -> None:
        """Unknown image for status evaluation is a 404."""
        response = client.get("/drives", params={"image": str(tmp_path / "x.img")})
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "IMAGE_NOT_FOUND"


class TestSelection:
    """Test PUT /flash/selection."""

    def test_select(self, client: TestClient, image_file) -> None:
        """Image and drives are selected."""
        response = _select(client, image_file, ["/dev/sdb"])
        assert response.status_code == 200
        data = response.json()
        assert data["image"] == "ubuntu.img"
        assert data["devices"] == ["/dev/sdb"]
        assert data["state"]["phase"] == "idle"

    def test_unknown_drive(self, client: TestClient, image_file) -> None:
        """Unknown drives are a 404."""
        response = _select(client, image_file, ["/dev/sdz"])
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "DRIVE_NOT_FOUND"

    def test_locked_drive(self, client: TestClient, image_file) -> None:
        """Write-protected drives are a 409."""
        response = _select(client, image_file, ["/dev/sdc"])
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "DRIVE_LOCKED"

    def test_missing_image(self, client: TestClient, tmp_path) -> None:
        """Missing images are a 404."""
        response = _select(client, tmp_path / "gone.img", ["/dev/sdb"])
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "IMAGE_NOT_FOUND"


class TestAttempts:
    """Test the flash flow over HTTP."""

    def test_flash_safe_drive(self, client: TestClient, image_file, write_engine):
        """A safe selection is written and recorded."""
        _select(client, image_file, ["/dev/sdb"])

        response = client.post("/flash/attempts")

        assert response.status_code == 200
        data = response.json()
        assert data["decision"]["proceed"] is True
        assert data["state"]["phase"] == "idle"
        assert data["last_outcome"]["kind"] == "success"
        assert len(write_engine.calls) == 1

        history = client.get("/flash/history").json()
        assert len(history) == 1
        assert history[0]["devices"] == ["/dev/sdb"]

    def test_rescan_runs_off_the_event_loop(
        self, client: TestClient, image_file
    ) -> None:
        """The drive rescan before an attempt runs in a worker thread."""
        _select(client, image_file, ["/dev/sdb"])
        available = client.app.state.controller.selection.available

        with patch(
            "web.routers.flash.asyncio.to_thread", wraps=asyncio.to_thread
        ) as to_thread:
            response = client.post("/flash/attempts")

        assert response.status_code == 200
        to_thread.assert_called_once_with(available.refresh)
        assert response.json()["last_outcome"]["kind"] == "success"

    def test_empty_selection(self, client: TestClient, write_engine) -> None:
        """Nothing selected: nothing evaluated."""
        response = client.post("/flash/attempts")
        assert response.status_code == 200
        assert response.json()["decision"] is None
        assert write_engine.calls == []

    def test_system_drive_warning(
        self, client: TestClient, image_file, write_engine
    ) -> None:
        """A system drive needs confirmation before writing."""
        _select(client, image_file, ["/dev/sda", "/dev/sdb"])

        data = client.post("/flash/attempts").json()
        assert data["decision"]["proceed"] is False
        assert data["decision"]["system_drive_warning"] is True
        assert data["decision"]["warning_devices"] == ["/dev/sda"]
        assert data["state"]["phase"] == "warning-pending"
        assert write_engine.calls == []

        response = client.post("/flash/warning", json={"proceed": True})
        assert response.status_code == 200
        assert response.json()["state"]["phase"] == "idle"
        assert len(write_engine.calls) == 1

    def test_warning_declined(
        self, client: TestClient, image_file, write_engine
    ) -> None:
        """Declining keeps the drives unwritten."""
        _select(client, image_file, ["/dev/sda"])
        client.post("/flash/attempts")

        response = client.post("/flash/warning", json={"proceed": False})

        assert response.status_code == 200
        assert response.json()["state"]["phase"] == "idle"
        assert write_engine.calls == []

    def test_warning_not_pending(self, client: TestClient) -> None:
        """Answering a warning that isn't shown is a conflict."""
        response = client.post("/flash/warning", json={"proceed": True})
        assert response.status_code == 409
        assert response.json()["detail"]["phase"] == "idle"

    def test_failure_and_retry(
        self, client: TestClient, image_file, write_engine
    ) -> None:
        """A failure is held until answered; retry keeps the selection."""
        write_engine.error = FlashFailure("ENOSPC", "no room")
        _select(client, image_file, ["/dev/sdb"])

        data = client.post("/flash/attempts").json()
        assert data["state"]["phase"] == "error-pending"
        assert data["state"]["error_message"].startswith("Not enough space")

        # Pressing flash again does nothing until the error is answered
        assert client.post("/flash/attempts").json()["decision"] is None

        data = client.post("/flash/error", json={"retry": True}).json()
        assert data["state"]["phase"] == "idle"
        assert data["devices"] == ["/dev/sdb"]

        write_engine.error = None
        data = client.post("/flash/attempts").json()
        assert data["last_outcome"]["kind"] == "success"
        assert len(write_engine.calls) == 2

    def test_failure_and_abandon(
        self, client: TestClient, image_file, write_engine
    ) -> None:
        """Abandoning clears the selection."""
        write_engine.error = FlashFailure("EIO", "bad sector")
        _select(client, image_file, ["/dev/sdb"])
        client.post("/flash/attempts")

        data = client.post("/flash/error", json={"retry": False}).json()

        assert data["state"]["phase"] == "idle"
        assert data["image"] is None
        assert data["devices"] == []

    def test_error_not_pending(self, client: TestClient) -> None:
        """Answering an error that isn't held is a conflict."""
        response = client.post("/flash/error", json={"retry": True})
        assert response.status_code == 409

    def test_cancel_when_idle(self, client: TestClient) -> None:
        """There is nothing to cancel outside an attempt."""
        assert client.post("/flash/cancel").status_code == 409
        assert client.post("/flash/skip").status_code == 409

    def test_get_state(self, client: TestClient) -> None:
        """GET /flash/state returns the idle state."""
        data = client.get("/flash/state").json()
        assert data["state"]["phase"] == "idle"
        assert data["in_flight"] is False
        assert data["last_outcome"] is None


class TestHistory:
    """Test GET /flash/history."""

    def test_invalid_outcome(self, client: TestClient) -> None:
        """Invalid outcome filters are a 400."""
        response = client.get("/flash/history", params={"outcome": "bogus"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_outcome"

    def test_filter(self, client: TestClient, image_file, write_engine) -> None:
        """History can be filtered by outcome."""
        _select(client, image_file, ["/dev/sdb"])
        client.post("/flash/attempts")

        assert len(client.get("/flash/history?outcome=success").json()) == 1
        assert client.get("/flash/history?outcome=error").json() == []


class TestAppFactory:
    """Test the application factory and its lifespan."""

    def test_lifespan_creates_controller(self, tmp_path) -> None:
        """Startup prepares the database and a flash controller."""
        env = {
            "IMGFLASH_DB_URL": f"sqlite:///{tmp_path / 'app.db'}",
            "IMGFLASH_LOG_LEVEL": "CRITICAL",
        }
        with patch.dict(os.environ, env):
            app = create_app()
            with TestClient(app) as test_client:
                assert test_client.get("/flash/state").status_code == 200
                assert test_client.get("/flash/history").json() == []
            assert app.state.controller.state.is_idle
