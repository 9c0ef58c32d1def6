from __future__ import annotations

import argparse
import os
from contextlib import closing

from dotenv import load_dotenv

from trivy_pr_commenter.config import CommenterConfig
from trivy_pr_commenter.dispatcher import DispatchSummary, dispatch
from trivy_pr_commenter.errors import CommenterError, ConfigMissing, NotAPullRequest, ReportError
from trivy_pr_commenter.github.commenter import GitHubCommenter
from trivy_pr_commenter.github.pull_request import extract_pull_request_number
from trivy_pr_commenter.log import configure_logging, get_logger
from trivy_pr_commenter.report.loader import load_report

load_dotenv()  # Local runs can keep the GitHub variables in a .env file.

logger = get_logger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="trivy-pr-commenter",
        description="Post Trivy findings as review comments on the current GitHub pull request.",
    )
    parser.add_argument(
        "report_path",
        nargs="?",
        default=None,
        help="Trivy JSON report (default: $INPUT_REPORT_FILE or trivy_results.json)",
    )
    return parser.parse_args(argv)


def _fail(message: str) -> int:
    # GitHub Actions workflow command; shows up as an annotation on the run.
    logger.error("::error::%s", message)
    return 1


def create_commenter(config: CommenterConfig, pr_number: int) -> GitHubCommenter:
    return GitHubCommenter.connect(
        config.token,
        config.owner,
        config.repo,
        pr_number,
        api_url=config.api_url,
    )


def _finish(summary: DispatchSummary, config: CommenterConfig) -> int:
    logger.info(
        "Comments written: %d, already present: %d, outside the diff: %d, without a location: %d",
        summary.written,
        summary.already_written,
        summary.not_in_diff,
        summary.skipped,
    )
    if summary.errors:
        logger.error("There were %d errors:", len(summary.errors))
        for message in summary.errors:
            logger.error("%s", message)
    elif not summary.comment_written:
        if config.soft_fail:
            logger.info("No comments were written; soft fail is enabled")
        else:
            logger.info("No comments were written for any finding")
    return summary.exit_code(config.soft_fail)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(os.environ.get("INPUT_LOG_LEVEL") or "INFO")
    logger.info("Starting the github commenter")

    try:
        config = CommenterConfig.from_env(report_path=args.report_path)
    except ConfigMissing as exc:
        return _fail(str(exc))
    logger.info("Working in repository %s", config.repo)

    try:
        pr_number = extract_pull_request_number()
    except NotAPullRequest as exc:
        logger.info("Not a PR, nothing to comment on, exiting (%s)", exc)
        return 0
    logger.info("Working in PR %d", pr_number)

    try:
        report = load_report(config.report_path)
    except ReportError as exc:
        return _fail(f"failed to load trivy report: {exc}")
    if not report.findings:
        logger.info("No results found in trivy report, exiting")
        return 0
    logger.info("Trivy found %d issues", len(report.findings))

    try:
        commenter = create_commenter(config, pr_number)
    except CommenterError as exc:
        return _fail(f"failed to create commenter: {exc}")

    if config.workspace:
        logger.info("Working in GITHUB_WORKSPACE %s", config.workspace)
    with closing(commenter):
        summary = dispatch(report, commenter, config)

    return _finish(summary, config)


def run() -> None:
    raise SystemExit(main())
