from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from trivy_pr_commenter.errors import NotAPullRequest

DEFAULT_EVENT_PATH = "/github/workflow/event.json"


def _to_pr_number(value: Any, source: str) -> int:
    if isinstance(value, bool):
        raise NotAPullRequest(f"{source} is not a pull request number: {value!r}")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise NotAPullRequest(f"{source} is not a pull request number: {value!r}") from None
    if number <= 0:
        raise NotAPullRequest(f"{source} is not a pull request number: {value!r}")
    return number


def _number_from_event(event: Any) -> Any:
    if not isinstance(event, dict):
        return None
    if event.get("number") is not None:
        return event["number"]
    pull_request = event.get("pull_request")
    if isinstance(pull_request, dict):
        return pull_request.get("number")
    return None


def extract_pull_request_number(environ: Mapping[str, str] | None = None) -> int:
    """Find the pull request this run belongs to.

    `PR_NUMBER` wins when set. Otherwise the GitHub event payload is read from
    `GITHUB_EVENT_PATH` (or the fixed container path) and its `number`, or
    `pull_request.number`, is used. Raises NotAPullRequest when neither gives a
    usable number.
    """
    env = os.environ if environ is None else environ

    pr_number = env.get("PR_NUMBER")
    if pr_number:
        return _to_pr_number(pr_number, "PR_NUMBER")

    event_path = Path(env.get("GITHUB_EVENT_PATH") or DEFAULT_EVENT_PATH)
    try:
        event = json.loads(event_path.read_text(encoding="utf-8"))
    except OSError:
        raise NotAPullRequest(f"GitHub event payload not found in {event_path}") from None
    except json.JSONDecodeError as exc:
        raise NotAPullRequest(f"GitHub event payload in {event_path} is not valid JSON: {exc}") from None

    number = _number_from_event(event)
    if number is None:
        raise NotAPullRequest(f"no pull request number in {event_path}")
    return _to_pr_number(number, str(event_path))
