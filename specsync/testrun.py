"""Test-run records reported by executors."""

from __future__ import annotations

import json
import posixpath
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from .sessions.models import Result


class TestFailure(BaseModel):
    """One failing test: the file it lives in and its title."""

    __test__ = False

    file: str
    title: str
    message: Optional[str] = None

    def matches(self, test_file: str) -> bool:
        return posixpath.normpath(self.file) == posixpath.normpath(test_file)


class TestRun(BaseModel):
    __test__ = False

    stats: Dict[str, int] = Field(default_factory=dict)
    failures: List[TestFailure] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.stats.get("tests", 0)

    @property
    def passes(self) -> int:
        return self.stats.get("passes", max(self.total - len(self.failures), 0))

    def failures_for(self, test_file: str) -> List[TestFailure]:
        return [f for f in self.failures if f.matches(test_file)]


def parse_test_run(result: Result) -> Optional[TestRun]:
    """Read a :class:`TestRun` from a result's data, or from JSON on stdout.

    Returns ``None`` when neither carries a test report.
    """
    candidates: List[Any] = [result.data.get("test_run")]
    if "stats" in result.data or "failures" in result.data:
        candidates.append(result.data)
    if result.stdout:
        try:
            candidates.append(json.loads(result.stdout))
        except ValueError:
            pass

    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        try:
            return TestRun.model_validate(candidate)
        except ValidationError:
            continue
    return None
