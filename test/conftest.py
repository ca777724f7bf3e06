from __future__ import annotations

import os
from pathlib import Path

import pytest

# Load dotenv files early so test settings and fixtures can read them via os.getenv
try:  # pragma: no cover
    from dotenv import load_dotenv

    TEST_ROOT = Path(__file__).resolve().parent
    # Load test/.env first, then fallback to test/.env.example for defaults
    load_dotenv(TEST_ROOT / ".env", override=False)
    load_dotenv(TEST_ROOT / ".env.example", override=False)
except Exception:
    pass

# Import test settings after dotenv is loaded
from test.settings import test_settings


@pytest.fixture(scope="session")
def test_config():
    """Fixture providing test configuration from Pydantic settings model.

    Returns:
        TestSettings: Test configuration with all environment variables loaded
    """
    return test_settings


@pytest.fixture
def policy_dir(tmp_path: Path) -> Path:
    """Empty directory owning a fresh exec-policy.json."""
    path = tmp_path / "policy"
    path.mkdir()
    return path


@pytest.fixture
def requires_process_tests(test_config) -> None:
    """Skip tests that spawn real processes when disabled or not on POSIX."""
    if os.name != "posix":
        pytest.skip("process tests use POSIX shells")
    if not test_config.test.run_process_tests:
        pytest.skip("process tests disabled (EXECNODE_TEST__RUN_PROCESS_TESTS=false)")
