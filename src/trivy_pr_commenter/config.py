from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from trivy_pr_commenter.errors import ConfigMissing

DEFAULT_REPORT_PATH = "trivy_results.json"
PUBLIC_API_URL = "https://api.github.com"


def normalize_working_directory(value: str | None) -> str:
    """Turn `./infra`, `infra/` or `infra` into `infra/`; empty stays empty."""
    if not value:
        return ""
    value = value.strip()
    if value.startswith("./"):
        value = value[2:]
    value = value.rstrip("/")
    if not value or value == ".":
        return ""
    return value + "/"


def _is_true(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


@dataclass(frozen=True)
class CommenterConfig:
    token: str
    owner: str
    repo: str
    api_url: str = PUBLIC_API_URL
    workspace: str = ""
    working_directory: str = ""
    soft_fail: bool = False
    report_path: str = DEFAULT_REPORT_PATH

    @staticmethod
    def from_env(
        environ: Mapping[str, str] | None = None,
        report_path: str | None = None,
    ) -> "CommenterConfig":
        env = os.environ if environ is None else environ

        token = env.get("INPUT_GITHUB_TOKEN") or env.get("GITHUB_TOKEN")
        if not token:
            raise ConfigMissing("the INPUT_GITHUB_TOKEN has not been set")

        repository = env.get("GITHUB_REPOSITORY", "")
        split = repository.split("/")
        if len(split) != 2 or not all(split):
            raise ConfigMissing(
                f"unexpected value for GITHUB_REPOSITORY. Expected <organisation/name>, found {repository!r}"
            )
        owner, repo = split

        return CommenterConfig(
            token=token,
            owner=owner,
            repo=repo,
            api_url=env.get("GITHUB_API_URL") or PUBLIC_API_URL,
            workspace=env.get("GITHUB_WORKSPACE", ""),
            working_directory=normalize_working_directory(env.get("INPUT_WORKING_DIRECTORY")),
            soft_fail=_is_true(env.get("INPUT_SOFT_FAIL_COMMENTER")),
            report_path=report_path or env.get("INPUT_REPORT_FILE") or DEFAULT_REPORT_PATH,
        )
