"""
Shared test configuration and fixtures for storage-core library.
"""

import logging
import pytest
import tempfile
import shutil
from pathlib import Path

from storage_core import StorageSettings
from storage_core.services import LocalStorage


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def storage_settings():
    """Default settings with a small stream chunk size."""
    return StorageSettings(stream_chunk_size=4)


@pytest.fixture
def storage(storage_settings):
    """Create a LocalStorage instance for testing."""
    return LocalStorage(settings=storage_settings, logger=logging.getLogger("tests.storage"))


@pytest.fixture
def populated_dir(temp_dir):
    """
    Directory holding two text files, an extensionless file and a subdirectory.

        populated/
            a.txt
            b.txt
            README
            sub/
                c.txt
            folder.d/
    """
    root = temp_dir / "populated"
    (root / "sub").mkdir(parents=True)
    (root / "folder.d").mkdir()
    (root / "a.txt").write_text("alpha", encoding="utf-8")
    (root / "b.txt").write_text("beta", encoding="utf-8")
    (root / "README").write_text("readme", encoding="utf-8")
    (root / "sub" / "c.txt").write_text("gamma", encoding="utf-8")
    return root
