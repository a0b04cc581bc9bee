"""Validation and statistics reports for graphs and projects."""

from pydantic import BaseModel, Field


class ValidationReport(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationReport":
        return cls(valid=not errors, errors=errors)


class GraphStats(BaseModel):
    graph_id: str
    sub_agent_count: int
    external_agent_count: int
    tool_count: int
    transfer_count: int
    delegate_count: int
    initialized: bool


class ProjectStats(BaseModel):
    project_id: str
    tenant_id: str
    graph_count: int
    initialized: bool
