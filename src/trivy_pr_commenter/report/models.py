from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str | None) -> "Severity":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNKNOWN


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    start_line: int = 0
    end_line: int = 0

    @model_validator(mode="before")
    @classmethod
    def _clamp_end_line(cls, data):
        # Trivy reports 0 for "unknown"; a range never ends before it starts.
        if isinstance(data, dict):
            start = data.get("start_line") or 0
            end = data.get("end_line") or 0
            if isinstance(start, int) and isinstance(end, int) and start >= 1 and end < start:
                data = {**data, "end_line": start}
        return data

    @property
    def is_valid(self) -> bool:
        return bool(self.path.strip()) and self.start_line >= 1


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    kind: str
    target: str = ""
    title: str = ""
    description: str = ""
    severity: Severity = Severity.UNKNOWN
    severity_label: str = ""
    primary_url: str = ""
    references: tuple[str, ...] = ()
    locations: tuple[Location, ...] = ()

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value):
        if isinstance(value, Severity):
            return value
        return Severity.parse(value)

    @property
    def links(self) -> list[str]:
        """Primary URL first, then references, without duplicates."""
        seen: set[str] = set()
        links: list[str] = []
        for url in (self.primary_url, *self.references):
            if url and url not in seen:
                seen.add(url)
                links.append(url)
        return links

    @property
    def valid_locations(self) -> list[Location]:
        return [loc for loc in self.locations if loc.is_valid]


class ScanReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    shape: str
    findings: tuple[Finding, ...] = ()

    def __len__(self) -> int:
        return len(self.findings)
