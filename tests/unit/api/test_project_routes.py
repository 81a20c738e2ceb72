"""Unit tests for project routes."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pimanager.api import create_app
from pimanager.api.dependencies import get_state_store, get_supervisor
from pimanager.config import Settings
from pimanager.port_discovery import PortDiscovery
from pimanager.state_store import Project, ProjectStatus, StateStore
from pimanager.supervisor import Supervisor


@pytest.fixture
def supervisor(store: StateStore) -> Supervisor:
    """Create a Supervisor that never touches outside processes."""
    return Supervisor(
        state_store=store,
        port_discovery=PortDiscovery(find_port=lambda pid: "", interval=0.01, attempts=1),
        port_killer=MagicMock(return_value=[]),
    )


@pytest.fixture
def app(store: StateStore, supervisor: Supervisor, state_path: Path) -> FastAPI:
    """Create the API app with the store and supervisor overridden."""
    app = create_app(Settings(state_path=str(state_path)))

    def override_get_state_store():
        yield store

    def override_get_supervisor():
        yield supervisor

    app.dependency_overrides[get_state_store] = override_get_state_store
    app.dependency_overrides[get_supervisor] = override_get_supervisor
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create a test client (startup and shutdown hooks are not run)."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.unit
class TestListProjects:
    """Tests for GET /projects."""

    def test_list_empty(self, client: TestClient) -> None:
        """Returns an empty list when no projects exist."""
        response = client.get("/api/v1/projects")

        assert response.status_code == 200
        assert response.json() == {"data": [], "error": None}

    def test_list_sorted(self, client: TestClient, store: StateStore) -> None:
        """Projects are listed by ID with their live state."""
        store.add_project(Project(id="web", status=ProjectStatus.ACTIVE, progress=100))
        store.add_project(Project(id="api"))

        response = client.get("/api/v1/projects")

        data = response.json()["data"]
        assert [p["id"] for p in data] == ["api", "web"]
        assert data[1]["status"] == "ACTIVE"
        assert data[1]["progress"] == 100


@pytest.mark.unit
class TestSaveProject:
    """Tests for POST /projects."""

    def test_create(self, client: TestClient, state_path: Path) -> None:
        """201 with the stored project, which is persisted right away."""
        response = client.post(
            "/api/v1/projects",
            json={
                "id": "web",
                "description": "dashboard",
                "pipeline": [
                    {"name": "install", "cmd": "npm ci"},
                    {"name": "serve", "cmd": "npm start"},
                ],
                "path": "/srv/web",
                "port": 3000,
            },
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["id"] == "web"
        assert data["status"] == "IDLE"
        assert data["port"] == "3000"
        assert [s["name"] for s in data["pipeline"]] == ["install", "serve"]
        assert response.json()["error"] is None

        saved = json.loads(state_path.read_text())
        assert saved["projects"][0]["path"] == "/srv/web"

    def test_update_keeps_runtime_state(self, client: TestClient, store: StateStore) -> None:
        """Replacing a definition keeps status, progress and log."""
        store.add_project(
            Project(id="web", status=ProjectStatus.FAILED, progress=50, last_log="boom\n")
        )

        response = client.post("/api/v1/projects", json={"id": "web", "description": "v2"})

        data = response.json()["data"]
        assert data["description"] == "v2"
        assert data["status"] == "FAILED"
        assert data["progress"] == 50
        assert data["last_log"] == "boom\n"

    def test_runtime_fields_ignored(self, client: TestClient) -> None:
        """Clients cannot set status or progress directly."""
        response = client.post(
            "/api/v1/projects", json={"id": "web", "status": "ACTIVE", "progress": 100}
        )

        data = response.json()["data"]
        assert data["status"] == "IDLE"
        assert data["progress"] == 0

    @pytest.mark.parametrize("project_id", ["", "has space", "a/b"])
    def test_invalid_id(self, client: TestClient, project_id: str) -> None:
        """IDs must be non-empty and URL-safe."""
        response = client.post("/api/v1/projects", json={"id": project_id})

        assert response.status_code == 422

    def test_missing_step_command(self, client: TestClient) -> None:
        """Every pipeline step needs a command."""
        response = client.post(
            "/api/v1/projects", json={"id": "web", "pipeline": [{"name": "build"}]}
        )

        assert response.status_code == 422


@pytest.mark.unit
class TestGetProject:
    """Tests for GET /projects/{project_id}."""

    def test_get(self, client: TestClient, store: StateStore) -> None:
        """Returns the project with its log."""
        store.add_project(Project(id="web", last_log="===> [1/1] Running Step: serve\n"))

        response = client.get("/api/v1/projects/web")

        assert response.status_code == 200
        assert response.json()["data"]["last_log"] == "===> [1/1] Running Step: serve\n"

    def test_not_found(self, client: TestClient) -> None:
        """404 with the error envelope for unknown projects."""
        response = client.get("/api/v1/projects/missing")

        assert response.status_code == 404
        assert response.json() == {"data": None, "error": "not found"}


@pytest.mark.unit
class TestDeleteProject:
    """Tests for DELETE /projects/{project_id}."""

    def test_delete(self, client: TestClient, store: StateStore) -> None:
        """204 and the project is gone."""
        store.add_project(Project(id="web"))

        response = client.delete("/api/v1/projects/web")

        assert response.status_code == 204
        assert not store.has_project("web")

    def test_delete_unknown(self, client: TestClient) -> None:
        """Deleting an unknown project still succeeds."""
        response = client.delete("/api/v1/projects/missing")

        assert response.status_code == 204
