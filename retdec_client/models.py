from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator


class OutputKind(str, Enum):
    HLL = "hll"  # high-level source
    DSM = "dsm"  # disassembly
    CG = "cg"  # call graph
    CFGS = "cfgs"  # per-function control-flow graphs
    ARCHIVE = "archive"
    BINARY = "binary"  # compiled from the submitted source (c mode)


class JobHandle(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    links: Mapping[str, str] = Field(default_factory=dict)

    @field_validator("links", mode="after")
    @classmethod
    def _freeze_links(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @staticmethod
    def from_id(job_id: str, api_url: str) -> "JobHandle":
        base = f"{api_url.rstrip('/')}/decompiler/decompilations/{job_id}"
        return JobHandle(
            id=job_id,
            links={
                "decompilation": base,
                "status": f"{base}/status",
                "outputs": f"{base}/outputs",
            },
        )

    def link(self, name: str) -> str:
        try:
            return self.links[name]
        except KeyError:
            raise KeyError(f"Job {self.id} has no '{name}' link") from None

    @property
    def decompilation_url(self) -> str:
        return self.link("decompilation")

    @property
    def status_url(self) -> str:
        return self.link("status")

    @property
    def outputs_url(self) -> str:
        return self.link("outputs")


class Phase(BaseModel):
    """One progress phase as reported by the status endpoint.

    Instances compare and hash on every field, warnings included, so the same
    phase name reappearing with a new completion value or a new warning counts
    as a distinct phase.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    part: str | None = None
    name: str
    description: str = ""
    completion: int = 0
    warnings: frozenset[str] = frozenset()

    @field_validator("warnings", mode="before")
    @classmethod
    def _null_warnings(cls, value: Any) -> Any:
        return () if value is None else value


class ArtifactStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    generated: bool = False
    failed: bool = False
    error: str | None = None


class StatusSnapshot(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    pending: bool = False
    running: bool = False
    finished: bool = False
    succeeded: bool = False
    failed: bool = False
    error: str | None = None
    completion: int = 0
    phases: list[Phase] = Field(default_factory=list)
    cg: ArtifactStatus | None = None
    cfgs: dict[str, ArtifactStatus] | None = None
    archive: ArtifactStatus | None = None


class ErrorResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: int | None = None
    message: str = ""
    description: str | None = None


OutputLink = Union[str, dict[str, str]]


class OutputsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    links: dict[str, OutputLink] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _bare_mapping(cls, data: Any) -> Any:
        # Accept both {"links": {...}} and the bare kind -> link mapping.
        if isinstance(data, dict) and "links" not in data:
            return {"links": data}
        return data


class EchoResponse(RootModel[dict[str, Any]]):
    pass
