"""Unit tests for step processes."""

import os
import signal

import pytest

from pimanager.supervisor import StepProcess, describe_exit


@pytest.mark.unit
class TestDescribeExit:
    """Tests for describe_exit."""

    @pytest.mark.parametrize(
        ("returncode", "expected"),
        [
            (0, "exit status 0"),
            (3, "exit status 3"),
            (-signal.SIGKILL, "signal: SIGKILL"),
            (-signal.SIGTERM, "signal: SIGTERM"),
        ],
    )
    def test_describe(self, returncode: int, expected: str) -> None:
        """Exit codes and signals are described like the shell reports them."""
        assert describe_exit(returncode) == expected

    def test_unknown_signal(self) -> None:
        """Signal numbers without a name are shown as numbers."""
        assert describe_exit(-250) == "signal: 250"


@pytest.mark.unit
class TestStepProcess:
    """Tests for StepProcess."""

    def test_stdout_and_stderr_merged(self) -> None:
        """Both output streams reach the callback."""
        chunks: list[str] = []
        process = StepProcess.spawn("echo out; echo err >&2")

        process.stream(chunks.append)

        assert process.wait() == 0
        output = "".join(chunks)
        assert "out\n" in output
        assert "err\n" in output

    def test_multibyte_characters_split_across_reads(self) -> None:
        """UTF-8 sequences cut by the chunk size are decoded intact."""
        chunks: list[str] = []
        process = StepProcess.spawn("printf 'h\\303\\251llo \\342\\234\\223'")

        process.stream(chunks.append, chunk_size=1)
        process.wait()

        assert "".join(chunks) == "héllo ✓"

    def test_invalid_utf8_replaced(self) -> None:
        """Undecodable bytes become replacement characters."""
        chunks: list[str] = []
        process = StepProcess.spawn("printf 'a\\377b'")

        process.stream(chunks.append)
        process.wait()

        assert "".join(chunks) == "a\ufffdb"

    def test_nonzero_exit(self) -> None:
        """The shell's exit status is returned by wait."""
        process = StepProcess.spawn("exit 4")

        process.stream(lambda _: None)

        assert process.wait() == 4

    def test_working_directory(self, tmp_path) -> None:
        """Commands run in the given directory."""
        chunks: list[str] = []
        process = StepProcess.spawn("pwd", cwd=str(tmp_path))

        process.stream(chunks.append)
        process.wait()

        assert os.path.realpath("".join(chunks).strip()) == os.path.realpath(tmp_path)

    def test_missing_working_directory(self, tmp_path) -> None:
        """A nonexistent directory fails at spawn time."""
        with pytest.raises(OSError):
            StepProcess.spawn("true", cwd=str(tmp_path / "missing"))

    def test_leads_own_process_group(self) -> None:
        """Each step runs in a new session and process group."""
        process = StepProcess.spawn("sleep 5")
        try:
            assert process.pgid == process.pid
            assert process.pgid != os.getpgid(0)
        finally:
            process.kill_group()
            process.wait()

    def test_kill_group(self) -> None:
        """kill_group SIGKILLs a running step."""
        process = StepProcess.spawn("sleep 30")

        assert process.kill_group() is True
        assert process.wait() == -signal.SIGKILL

    def test_kill_after_release_is_noop(self) -> None:
        """Once released, the group is never signalled."""
        process = StepProcess.spawn("true")
        process.stream(lambda _: None)
        process.wait()

        process.release()

        assert process.is_released() is True
        assert process.kill_group() is False
