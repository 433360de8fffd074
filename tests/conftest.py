"""Pytest configuration and fixtures."""

import asyncio
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

# Settings are cached on first use, which can happen at collection time
os.environ["CLARITY_ENV"] = "test"
os.environ["CONFIG_DIR"] = str(CONFIG_DIR)
os.environ["STORAGE_DIR"] = tempfile.mkdtemp(prefix="clarity-test-")
for _name in ("CONFIG_BASE_URL", "ANALYSIS_SERVICE_URL", "TRANSLATION_SERVICE_URL"):
    os.environ.pop(_name, None)

from app.core.catalog import Catalog, ConfigSource  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Fail fast if the bundled catalogs are not where the tests expect them."""
    assert (CONFIG_DIR / "questions.json").exists()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def config_source() -> ConfigSource:
    return ConfigSource(config_dir=CONFIG_DIR, base_url="")


@pytest.fixture
def catalog(config_source) -> Catalog:
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(config_source.load_catalog())
    finally:
        loop.close()

