from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Iterator

from pydantic import ValidationError

from trivy_pr_commenter.errors import ReportMalformed, ReportNotFound
from trivy_pr_commenter.log import get_logger
from trivy_pr_commenter.report.models import Finding, Location, ScanReport
from trivy_pr_commenter.report.schemas import (
    FlatReport,
    Misconfiguration,
    NestedReport,
    Result,
    Vulnerability,
)

logger = get_logger(__name__)

SHAPE_LEGACY = "legacy"
SHAPE_RESULTS = "results"
SHAPE_FLAT = "flat"


def detect_shape(payload: Any) -> str:
    """Pick the report variant from its top-level structure.

    - a JSON array is a pre-0.20 Trivy report (list of results)
    - an object with `Results` is the current nested Trivy schema
    - an object with `results` is a single flat list of findings
    """
    if isinstance(payload, list):
        return SHAPE_LEGACY
    if isinstance(payload, dict):
        if "Results" in payload:
            return SHAPE_RESULTS
        if "results" in payload:
            return SHAPE_FLAT
        if not payload:
            # `{}` is what Trivy writes for an artifact with nothing to report.
            return SHAPE_RESULTS
    raise ReportMalformed("unrecognised report layout: expected a list of results, `Results` or `results`")


def _description_from_misconfiguration(misconf: Misconfiguration) -> str:
    return misconf.message or misconf.description or misconf.title


def _misconfiguration_locations(target: str, misconf: Misconfiguration) -> list[Location]:
    cause = misconf.cause_metadata
    locations = [Location(path=target, start_line=cause.start_line, end_line=cause.end_line)]

    for occurrence in [*cause.occurrences, *misconf.occurrences]:
        if not occurrence.filename:
            continue
        locations.append(
            Location(
                path=occurrence.filename,
                start_line=occurrence.location.start_line,
                end_line=occurrence.location.end_line,
            )
        )

    # Occurrences often repeat the primary location.
    unique: list[Location] = []
    for loc in locations:
        if loc not in unique:
            unique.append(loc)
    return unique


def _finding_from_misconfiguration(result: Result, misconf: Misconfiguration) -> Finding:
    return Finding(
        id=misconf.id or misconf.avd_id,
        kind="misconfiguration",
        target=result.target,
        title=misconf.title,
        description=_description_from_misconfiguration(misconf),
        severity=misconf.severity,
        severity_label=misconf.severity,
        primary_url=misconf.primary_url,
        references=tuple(misconf.references),
        locations=tuple(_misconfiguration_locations(result.target, misconf)),
    )


def _finding_from_vulnerability(result: Result, vuln: Vulnerability) -> Finding:
    # Package-level: there is no line in the target to anchor a comment to.
    return Finding(
        id=vuln.vulnerability_id,
        kind="vulnerability",
        target=result.target,
        title=vuln.title,
        description=vuln.description or vuln.title,
        severity=vuln.severity,
        severity_label=vuln.severity,
        primary_url=vuln.primary_url,
        references=tuple(vuln.references),
    )


def _findings_from_results(results: list[Result]) -> Iterator[Finding]:
    for result in results:
        for misconf in result.misconfigurations or []:
            if misconf.status.upper() == "PASS":
                continue
            yield _finding_from_misconfiguration(result, misconf)
        for vuln in result.vulnerabilities or []:
            yield _finding_from_vulnerability(result, vuln)


def _parse_legacy(payload: Any) -> list[Finding]:
    results = [Result.model_validate(item) for item in payload]
    return list(_findings_from_results(results))


def _parse_results(payload: Any) -> list[Finding]:
    report = NestedReport.model_validate(payload)
    return list(_findings_from_results(report.results or []))


def _parse_flat(payload: Any) -> list[Finding]:
    report = FlatReport.model_validate(payload)
    findings: list[Finding] = []
    for item in report.results or []:
        findings.append(
            Finding(
                id=item.rule_id or item.long_id,
                kind="flat",
                target=item.location.filename,
                title=item.rule_description,
                description=item.description or item.rule_description,
                severity=item.severity,
                severity_label=item.severity,
                references=tuple(item.links),
                locations=(
                    Location(
                        path=item.location.filename,
                        start_line=item.location.start_line,
                        end_line=item.location.end_line,
                    ),
                ),
            )
        )
    return findings


_PARSERS: dict[str, Callable[[Any], list[Finding]]] = {
    SHAPE_LEGACY: _parse_legacy,
    SHAPE_RESULTS: _parse_results,
    SHAPE_FLAT: _parse_flat,
}


def parse_report(payload: Any) -> ScanReport:
    shape = detect_shape(payload)
    try:
        findings = _PARSERS[shape](payload)
    except ValidationError as exc:
        raise ReportMalformed(f"report does not match the {shape} schema: {exc}") from exc
    return ScanReport(shape=shape, findings=tuple(findings))


def load_report(report_path: str | Path) -> ScanReport:
    """Read a Trivy JSON report and normalize it into findings.

    Raises ReportNotFound when the file cannot be opened and ReportMalformed
    when it is not JSON or matches none of the supported layouts.
    """
    path = Path(report_path)
    logger.info("Loading trivy report from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ReportNotFound(f"could not open {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ReportMalformed(f"{path} is not UTF-8 text: {exc}") from exc

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ReportMalformed(f"{path} is not valid JSON: {exc}") from exc

    report = parse_report(payload)
    logger.info("Trivy report loaded successfully (%s layout, %d findings)", report.shape, len(report))
    return report
