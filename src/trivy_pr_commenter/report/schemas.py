from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _TrivyModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data):
        # Trivy and tfsec write `null` for empty lists and strings; treat it as absent.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class OccurrenceLocation(_TrivyModel):
    start_line: int = Field(0, alias="StartLine")
    end_line: int = Field(0, alias="EndLine")


class Occurrence(_TrivyModel):
    resource: str = Field("", alias="Resource")
    filename: str = Field("", alias="Filename")
    location: OccurrenceLocation = Field(default_factory=OccurrenceLocation, alias="Location")


class CauseMetadata(_TrivyModel):
    resource: str = Field("", alias="Resource")
    provider: str = Field("", alias="Provider")
    service: str = Field("", alias="Service")
    start_line: int = Field(0, alias="StartLine")
    end_line: int = Field(0, alias="EndLine")
    occurrences: list[Occurrence] = Field(default_factory=list, alias="Occurrences")


class Misconfiguration(_TrivyModel):
    type: str = Field("", alias="Type")
    id: str = Field("", alias="ID")
    avd_id: str = Field("", alias="AVDID")
    title: str = Field("", alias="Title")
    description: str = Field("", alias="Description")
    message: str = Field("", alias="Message")
    resolution: str = Field("", alias="Resolution")
    severity: str = Field("", alias="Severity")
    primary_url: str = Field("", alias="PrimaryURL")
    references: list[str] = Field(default_factory=list, alias="References")
    status: str = Field("", alias="Status")
    cause_metadata: CauseMetadata = Field(default_factory=CauseMetadata, alias="CauseMetadata")
    occurrences: list[Occurrence] = Field(default_factory=list, alias="Occurrences")


class Vulnerability(_TrivyModel):
    vulnerability_id: str = Field("", alias="VulnerabilityID")
    pkg_name: str = Field("", alias="PkgName")
    installed_version: str = Field("", alias="InstalledVersion")
    fixed_version: str = Field("", alias="FixedVersion")
    title: str = Field("", alias="Title")
    description: str = Field("", alias="Description")
    severity: str = Field("", alias="Severity")
    primary_url: str = Field("", alias="PrimaryURL")
    references: list[str] = Field(default_factory=list, alias="References")


class Result(_TrivyModel):
    target: str = Field("", alias="Target")
    result_class: str = Field("", alias="Class")
    type: str = Field("", alias="Type")
    vulnerabilities: list[Vulnerability] | None = Field(None, alias="Vulnerabilities")
    misconfigurations: list[Misconfiguration] | None = Field(None, alias="Misconfigurations")


class NestedReport(_TrivyModel):
    schema_version: int = Field(0, alias="SchemaVersion")
    artifact_name: str = Field("", alias="ArtifactName")
    artifact_type: str = Field("", alias="ArtifactType")
    results: list[Result] | None = Field(None, alias="Results")


class FlatLocation(_TrivyModel):
    filename: str = ""
    start_line: int = 0
    end_line: int = 0


class FlatResult(_TrivyModel):
    rule_id: str = ""
    long_id: str = ""
    rule_description: str = ""
    description: str = ""
    severity: str = ""
    links: list[str] = Field(default_factory=list)
    location: FlatLocation = Field(default_factory=FlatLocation)


class FlatReport(_TrivyModel):
    results: list[FlatResult] | None = None
