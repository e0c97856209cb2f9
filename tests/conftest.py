# tests/conftest.py
"""Shared test fixtures and helpers.

Test datasource:
- MemoryDatasource: in-memory datasource assigning sequential integer ids,
  with list-truncation rollback and injectable start/stop/insert failures.
  Tests get the class through the ``memory_datasource`` fixture.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from fixpoint.contracts import InsertionError
from fixpoint.plugins.base import BaseDatasource

pytest_plugins = ["pytester"]

# =============================================================================
# Test Datasource
# =============================================================================


class MemoryDatasource(BaseDatasource):
    """Datasource keeping rows in a list.

    Documents are stored with an "id" assigned from 1 upwards. A "tags"
    field is declared as the entity's tags instead of being stored. A
    document with "fail": True is rejected with InsertionError; an empty
    document creates no entity.
    """

    name = "memory"

    def __init__(
        self,
        datasource_id: str,
        config: dict[str, Any] | None = None,
        *,
        fail_start: bool = False,
        fail_stop: bool = False,
        events: list[str] | None = None,
    ) -> None:
        super().__init__(datasource_id, config)
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.rows: list[dict[str, Any]] = []
        self.inserted: list[dict[str, Any]] = []
        # Shared between datasources to observe ordering
        self.events = events if events is not None else []
        self._next_id = 1

    def _open(self) -> None:
        if self.fail_start:
            raise ConnectionError(f"{self.datasource_id} unreachable")
        self.events.append(f"start:{self.datasource_id}")

    def _close(self) -> None:
        self.events.append(f"stop:{self.datasource_id}")
        if self.fail_stop:
            raise RuntimeError(f"{self.datasource_id} failed to stop")

    def _handle(self) -> list[dict[str, Any]]:
        return self.rows

    @contextmanager
    def run_with_rollback(self) -> Iterator["MemoryDatasource"]:
        mark = len(self.rows)
        next_id = self._next_id
        self.events.append(f"begin:{self.datasource_id}")
        try:
            yield self
        finally:
            del self.rows[mark:]
            self._next_id = next_id
            self.events.append(f"rollback:{self.datasource_id}")

    def insert_document(self, document: dict[str, Any]) -> dict[str, Any] | None:
        self.inserted.append(document)
        if not document:
            return None
        if document.get("fail"):
            raise InsertionError("memory datasource rejected the document", details={"document": document})
        payload = {key: value for key, value in document.items() if key != "tags"}
        row = {"id": self._next_id, **payload}
        self._next_id += 1
        self.rows.append(row)
        return {"data": row, "tags": document.get("tags", ())}


@pytest.fixture(scope="session")
def memory_datasource() -> type[MemoryDatasource]:
    """The MemoryDatasource class, for tests to instantiate."""
    return MemoryDatasource


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """URL of a file-backed SQLite database unique to the test."""
    return f"sqlite:///{tmp_path / 'fixpoint.db'}"


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
