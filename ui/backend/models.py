"""Pydantic models for the deploy API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from site_publisher.deploy import DeployOutcome, DeployStatus


class BuildRequest(BaseModel):
    """Request payload for building the site."""

    clean: bool = False
    search_index: bool = True
    base_url: str | None = None


class DeployRequest(BaseModel):
    """Request payload for a synchronous or background deploy."""

    target: str | None = Field(default=None, min_length=1)
    message: str | None = None
    build: bool = False
    clean: bool = False
    search_index: bool = True
    production: bool | None = None


class OutcomeResponse(BaseModel):
    """Serialized deploy outcome."""

    status: DeployStatus
    message: str
    data: dict[str, Any]
    error: str | None

    @classmethod
    def from_outcome(cls, outcome: DeployOutcome) -> OutcomeResponse:
        return cls.model_validate(outcome.to_dict())


class SettingsFieldResponse(BaseModel):
    """One settings form field."""

    key: str
    type: str
    label: str
    help: str | None = None
    default: Any = None
    required: bool = False
    options: dict[str, str] | None = None
    placeholder: str | None = None


class TargetResponse(BaseModel):
    """Serialized deployment target summary."""

    id: str
    name: str
    description: str
    icon: str
    configured: bool
    active: bool
    config_errors: list[str]
    settings_fields: list[SettingsFieldResponse]


class StatusResponse(BaseModel):
    """Remote state of the active target."""

    target: str
    status: dict[str, Any] | None


class JobResponse(BaseModel):
    """Serialized background deploy job."""

    job_id: str
    target_id: str | None
    state: str
    submitted_at: str
    finished_at: str | None
    outcome: OutcomeResponse | None
