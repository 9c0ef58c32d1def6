from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from trivy_pr_commenter.config import CommenterConfig
from trivy_pr_commenter.github.commenter import PostOutcome, ReviewCommenter
from trivy_pr_commenter.log import get_logger
from trivy_pr_commenter.report.models import Finding, ScanReport

logger = get_logger(__name__)

COMMENT_TEMPLATE = """:warning: trivy found a **{severity}** severity issue from rule `{id}`:
> {description}"""


@dataclass(frozen=True)
class CommentRequest:
    finding_id: str
    path: str
    body: str
    start_line: int
    end_line: int


@dataclass
class DispatchSummary:
    written: int = 0
    already_written: int = 0
    not_in_diff: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def comment_written(self) -> bool:
        return self.written + self.already_written > 0

    def exit_code(self, soft_fail: bool = False) -> int:
        if self.errors:
            return 1
        if self.comment_written:
            return 0
        return 0 if soft_fail else 1


def normalize_path(path: str, workspace: str = "", working_directory: str = "") -> str:
    """Rewrite a report path into the path GitHub uses for the pull request diff."""
    workspace = workspace.rstrip("/")
    if workspace and path.startswith(workspace + "/"):
        path = path[len(workspace) + 1:]
    while path.startswith("./"):
        path = path[2:]
    if working_directory and not path.startswith(working_directory):
        path = working_directory + path
    return path


def format_urls(urls: list[str]) -> str:
    return " and ".join(f"[here]({url})" for url in urls)


def render_comment(finding: Finding) -> str:
    body = COMMENT_TEMPLATE.format(
        severity=finding.severity_label.strip() or finding.severity.value,
        id=finding.id,
        description=finding.description,
    )
    links = finding.links
    if links:
        body += f"\n\nMore information available {format_urls(links)}"
    return body


def build_requests(finding: Finding, config: CommenterConfig) -> list[CommentRequest]:
    body = render_comment(finding)
    return [
        CommentRequest(
            finding_id=finding.id,
            path=normalize_path(loc.path, config.workspace, config.working_directory),
            body=body,
            start_line=loc.start_line,
            end_line=loc.end_line,
        )
        for loc in finding.valid_locations
    ]


def _log_source_lines(request: CommentRequest) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    source = Path(request.path)
    if not source.is_file():
        return
    try:
        with source.open(encoding="utf-8", errors="replace") as handle:
            for number, line in enumerate(handle, 1):
                if number > request.end_line:
                    break
                if number >= request.start_line:
                    logger.debug("Line %d: %s", number, line.rstrip("\n"))
    except OSError as exc:
        logger.debug("Could not read %s: %s", source, exc)


def dispatch(report: ScanReport, commenter: ReviewCommenter, config: CommenterConfig) -> DispatchSummary:
    summary = DispatchSummary()

    for finding in report.findings:
        requests = build_requests(finding, config)
        if not requests:
            logger.info(
                "%s (%s in %s) has no line to comment on; skipping",
                finding.id or "<no id>",
                finding.kind,
                finding.target or "<no target>",
            )
            summary.skipped += 1
            continue

        for request in requests:
            logger.info(
                "Preparing comment for violation of rule %s in %s (lines %d to %d)",
                request.finding_id,
                request.path,
                request.start_line,
                request.end_line,
            )
            _log_source_lines(request)

            result = commenter.write_multiline_comment(
                request.path, request.body, request.start_line, request.end_line
            )
            if result.outcome is PostOutcome.WRITTEN:
                summary.written += 1
                logger.info("  Comment written for violation of rule %s in %s", request.finding_id, request.path)
            elif result.outcome is PostOutcome.ALREADY_WRITTEN:
                summary.already_written += 1
                logger.info("  Ignoring - comment already written")
            elif result.outcome is PostOutcome.NOT_IN_DIFF:
                summary.not_in_diff += 1
                logger.info("  Ignoring - change not part of the current PR")
            else:
                summary.errors.append(result.message)
                logger.warning("  Ran into some kind of error")
                logger.warning("    %s", result.message)

    return summary
