from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from trivy_pr_commenter.config import CommenterConfig
from trivy_pr_commenter.github.commenter import PostOutcome, PostResult

FIXTURES = Path(__file__).parent / "fixtures"

_ENV_VARS = (
    "INPUT_GITHUB_TOKEN",
    "GITHUB_TOKEN",
    "GITHUB_REPOSITORY",
    "GITHUB_API_URL",
    "GITHUB_WORKSPACE",
    "GITHUB_EVENT_PATH",
    "INPUT_WORKING_DIRECTORY",
    "INPUT_SOFT_FAIL_COMMENTER",
    "INPUT_REPORT_FILE",
    "INPUT_LOG_LEVEL",
    "PR_NUMBER",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    # cli.main() binds a handler to the captured stdout of the test that ran it.
    package_logger = logging.getLogger("trivy_pr_commenter")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def fixture_path():
    return lambda name: FIXTURES / name


@pytest.fixture
def write_report(tmp_path):
    def _write(payload, name: str = "report.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config():
    return CommenterConfig(token="t0ken", owner="acme", repo="infra")


class FakeCommenter:
    """Records every post and answers with a fixed outcome (or one per call)."""

    def __init__(self, *outcomes: PostOutcome) -> None:
        self._outcomes = list(outcomes) or [PostOutcome.WRITTEN]
        self.calls: list[tuple[str, str, int, int]] = []
        self.closed = False

    def write_multiline_comment(self, path: str, body: str, start_line: int, end_line: int) -> PostResult:
        self.calls.append((path, body, start_line, end_line))
        outcome = self._outcomes[0] if len(self._outcomes) == 1 else self._outcomes.pop(0)
        message = f"boom posting to {path}" if outcome is PostOutcome.FAILED else ""
        return PostResult(outcome, message)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_commenter():
    return FakeCommenter
