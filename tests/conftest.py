"""
Pytest configuration and fixtures for kafka-replay tests.

In-memory fakes live in fakes.py; this module only provides fixtures.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from fakes import build_container, make_records
from kafka_replay.schema import Record


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_records() -> list[Record]:
    """Ten records, two of which contain ERROR."""
    payloads = [
        b"INFO started",
        b"INFO connected",
        b"ERROR timeout talking to db",
        b"INFO retrying",
        b"WARN slow response",
        b"INFO ok",
        b"ERROR disk full",
        b"INFO cleanup",
        b"DEBUG tick",
        b"INFO stopped",
    ]
    return make_records(payloads)


@pytest.fixture
def container_file(temp_dir: Path, sample_records: list[Record]) -> Path:
    """A container file holding sample_records."""
    path = temp_dir / "messages.bin"
    path.write_bytes(build_container(sample_records))
    return path
