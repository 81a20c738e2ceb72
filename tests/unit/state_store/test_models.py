"""Unit tests for State Store models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from pimanager.state_store import HealthSample, PipelineStep, Project, ProjectStatus


@pytest.mark.unit
class TestProject:
    """Tests for the Project model."""

    def test_defaults(self) -> None:
        """A new project is idle with nothing run yet."""
        project = Project(id="web")

        assert project.status == ProjectStatus.IDLE
        assert project.pipeline == []
        assert project.progress == 0
        assert project.current_step == ""
        assert project.last_log == ""
        assert project.port == ""
        assert project.is_running is False

    def test_empty_id_rejected(self) -> None:
        """Project IDs cannot be empty."""
        with pytest.raises(ValidationError):
            Project(id="")

    @pytest.mark.parametrize("progress", [-1, 101])
    def test_progress_bounds(self, progress: int) -> None:
        """Progress stays within 0..100."""
        with pytest.raises(ValidationError):
            Project(id="web", progress=progress)

    def test_null_pipeline_and_status_normalized(self) -> None:
        """Snapshots with null pipeline or empty status load as defaults."""
        project = Project.model_validate({"id": "web", "pipeline": None, "status": ""})

        assert project.pipeline == []
        assert project.status == ProjectStatus.IDLE

    def test_numeric_port_stored_as_string(self) -> None:
        """Ports given as numbers are kept as strings."""
        assert Project(id="web", port=8080).port == "8080"

    @pytest.mark.parametrize("status", [ProjectStatus.BOOTING, ProjectStatus.ACTIVE])
    def test_is_running(self, status: ProjectStatus) -> None:
        """Booting and active projects count as running."""
        assert Project(id="web", status=status).is_running is True

    def test_json_round_trip(self) -> None:
        """Dumped JSON validates back into an equal project."""
        project = Project(
            id="web",
            description="dashboard",
            pipeline=[PipelineStep(name="build", cmd="make")],
            status=ProjectStatus.FAILED,
            progress=50,
            last_log="===> [1/2] Running Step: build\n",
        )

        assert Project.model_validate_json(project.model_dump_json()) == project

    def test_status_serialized_as_string(self) -> None:
        """Status is written as its plain name."""
        dumped = Project(id="web", status=ProjectStatus.ACTIVE).model_dump(mode="json")

        assert dumped["status"] == "ACTIVE"

    def test_repr(self) -> None:
        """repr shows id, status and progress."""
        assert repr(Project(id="web", progress=40)) == (
            "<Project(id='web', status='IDLE', progress=40)>"
        )


@pytest.mark.unit
class TestPipelineStep:
    """Tests for the PipelineStep model."""

    def test_frozen(self) -> None:
        """Steps are immutable once created."""
        step = PipelineStep(name="build", cmd="make")

        with pytest.raises(ValidationError):
            step.cmd = "rm -rf /"


@pytest.mark.unit
class TestHealthSample:
    """Tests for the HealthSample model."""

    def test_time_defaults_to_now_utc(self) -> None:
        """Samples are timestamped in UTC when created."""
        sample = HealthSample(cpu_usage=12.5)

        assert isinstance(sample.time, datetime)
        assert sample.time.utcoffset() is not None
        assert sample.time.utcoffset().total_seconds() == 0
