from __future__ import annotations

import pytest

from trivy_pr_commenter.config import (
    DEFAULT_REPORT_PATH,
    PUBLIC_API_URL,
    CommenterConfig,
    normalize_working_directory,
)
from trivy_pr_commenter.errors import ConfigMissing

BASE_ENV = {"INPUT_GITHUB_TOKEN": "t0ken", "GITHUB_REPOSITORY": "acme/infra"}


def test_defaults():
    config = CommenterConfig.from_env(BASE_ENV)

    assert config.token == "t0ken"
    assert (config.owner, config.repo) == ("acme", "infra")
    assert config.api_url == PUBLIC_API_URL
    assert config.working_directory == ""
    assert config.soft_fail is False
    assert config.report_path == DEFAULT_REPORT_PATH


def test_all_settings():
    env = {
        **BASE_ENV,
        "GITHUB_API_URL": "https://github.example.com/api/v3",
        "GITHUB_WORKSPACE": "/github/workspace",
        "INPUT_WORKING_DIRECTORY": "./terraform/",
        "INPUT_SOFT_FAIL_COMMENTER": "TRUE",
        "INPUT_REPORT_FILE": "scan.json",
    }
    config = CommenterConfig.from_env(env)

    assert config.api_url == "https://github.example.com/api/v3"
    assert config.workspace == "/github/workspace"
    assert config.working_directory == "terraform/"
    assert config.soft_fail is True
    assert config.report_path == "scan.json"


def test_cli_report_path_overrides_env():
    config = CommenterConfig.from_env({**BASE_ENV, "INPUT_REPORT_FILE": "scan.json"}, report_path="other.json")
    assert config.report_path == "other.json"


def test_github_token_fallback():
    config = CommenterConfig.from_env({"GITHUB_TOKEN": "fallback", "GITHUB_REPOSITORY": "acme/infra"})
    assert config.token == "fallback"


def test_missing_token():
    with pytest.raises(ConfigMissing, match="INPUT_GITHUB_TOKEN"):
        CommenterConfig.from_env({"GITHUB_REPOSITORY": "acme/infra"})


@pytest.mark.parametrize("repository", ["", "acme", "acme/infra/extra", "/infra"])
def test_bad_repository(repository):
    with pytest.raises(ConfigMissing, match="GITHUB_REPOSITORY"):
        CommenterConfig.from_env({"INPUT_GITHUB_TOKEN": "t0ken", "GITHUB_REPOSITORY": repository})


@pytest.mark.parametrize("value", ["false", "yes", "1", ""])
def test_soft_fail_only_on_true(value):
    config = CommenterConfig.from_env({**BASE_ENV, "INPUT_SOFT_FAIL_COMMENTER": value})
    assert config.soft_fail is False


@pytest.mark.parametrize(
    "value, expected",
    [(None, ""), ("", ""), (".", ""), ("./", ""), ("infra", "infra/"), ("./infra/", "infra/"), ("a/b//", "a/b/")],
)
def test_normalize_working_directory(value, expected):
    assert normalize_working_directory(value) == expected
