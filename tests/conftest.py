"""Shared fixtures for the reconciliation test suite."""

from pathlib import Path
import logging

import pytest

from ledger_reconcile.config import ReconConfig
from ledger_reconcile.utils.logging_config import PACKAGE_LOGGER
from tests.helpers import SAMPLE_LEDGER, SAMPLE_STATEMENT


@pytest.fixture
def config() -> ReconConfig:
    return ReconConfig()


@pytest.fixture
def sample_files(tmp_path: Path) -> tuple[Path, Path]:
    """Write the sample ledger and statement to disk."""
    ledger = tmp_path / "main.journal"
    ledger.write_text(SAMPLE_LEDGER, encoding="utf-8")
    statement = tmp_path / "statement.csv"
    statement.write_text(SAMPLE_STATEMENT, encoding="utf-8")
    return ledger, statement


@pytest.fixture(autouse=True)
def reset_package_logger():
    """setup_logging binds handlers to whatever stderr was current; drop them."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []
