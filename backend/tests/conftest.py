"""
Pytest configuration for backend tests.
"""

import sys
from pathlib import Path
from typing import List, Optional

import pytest

# Add backend to Python path for test imports
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from app.config import ServiceSettings  # noqa: E402
from app.execution.errors import TranscodeError  # noqa: E402
from app.execution.models import Invocation  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that execute a real ffmpeg binary"
    )


class FakeExecutor:
    """
    Stands in for FFmpegExecutor.

    Records every invocation and "produces" its output by writing bytes to
    the trailing output path. Can be told to fail on a given label, or to
    skip writing output (to simulate a silent ffmpeg failure).
    """

    def __init__(
        self,
        fail_on: Optional[str] = None,
        write_output: bool = True,
        payload: bytes = b"\x00\x00\x00\x18ftypmp42fake-video",
    ):
        self.fail_on = fail_on
        self.write_output = write_output
        self.payload = payload
        self.invocations: List[Invocation] = []
        self.seen_files: List[List[str]] = []

    def run(self, invocation: Invocation) -> None:
        self.invocations.append(invocation)
        output = Path(invocation.args[-1])
        self.seen_files.append(sorted(p.name for p in output.parent.iterdir()))

        if self.fail_on is not None and invocation.label == self.fail_on:
            raise TranscodeError(
                "ffmpeg exited with code 1",
                exit_code=1,
                stderr="Invalid data found when processing input",
                label=invocation.label,
            )
        if self.write_output:
            output.write_bytes(self.payload)


@pytest.fixture
def work_dir(tmp_path) -> Path:
    """Working area that does not exist until a request creates it."""
    return tmp_path / "work"


@pytest.fixture
def settings(work_dir) -> ServiceSettings:
    return ServiceSettings(work_dir=work_dir, ffmpeg_path="/usr/bin/ffmpeg")


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def make_executor():
    """Factory for executors with custom failure behaviour."""
    return FakeExecutor
