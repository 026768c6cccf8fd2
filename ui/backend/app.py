"""FastAPI application exposing build and deploy actions."""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, HTTPException

from site_publisher.config import load_site_config
from site_publisher.deploy import (
    BuildOptions,
    DeploymentOrchestrator,
    DeployOptions,
    DeployOutcome,
    DeployWorker,
)
from ui.backend.models import (
    BuildRequest,
    DeployRequest,
    JobResponse,
    OutcomeResponse,
    SettingsFieldResponse,
    StatusResponse,
    TargetResponse,
)


class BackendState:
    """Holds shared state for the API."""

    def __init__(
        self,
        orchestrator: DeploymentOrchestrator | None = None,
        worker: DeployWorker | None = None,
    ) -> None:
        if orchestrator is None:
            site_root = Path.cwd()
            orchestrator = DeploymentOrchestrator(
                config=load_site_config(site_root / "site.yaml"), site_root=site_root
            )
        self.orchestrator = orchestrator
        self.worker = worker or DeployWorker(orchestrator)


def _outcome_or_error(outcome: DeployOutcome) -> OutcomeResponse:
    """Return the outcome, or raise HTTP 400 carrying it when it is a failure."""
    response = OutcomeResponse.from_outcome(outcome)
    if outcome.is_failure():
        raise HTTPException(status_code=400, detail=response.model_dump(mode="json"))
    return response


def _deploy_options(payload: DeployRequest) -> DeployOptions:
    return DeployOptions(
        message=payload.message,
        build=payload.build,
        build_options=BuildOptions(clean=payload.clean, search_index=payload.search_index),
        production=payload.production,
    )


def create_app(
    orchestrator: DeploymentOrchestrator | None = None,
    worker: DeployWorker | None = None,
) -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(title="Site Publisher API")
    state = BackendState(orchestrator, worker)

    @app.get("/api/deploy/targets", response_model=list[TargetResponse])
    def list_targets() -> list[TargetResponse]:
        active = state.orchestrator.active_target_id()
        return [
            TargetResponse(
                id=target_id,
                name=target.name,
                description=target.description,
                icon=target.icon,
                configured=target.is_configured(),
                active=target_id == active,
                config_errors=state.orchestrator.config_errors(target_id),
                settings_fields=[
                    SettingsFieldResponse(**field.to_dict()) for field in target.settings_fields()
                ],
            )
            for target_id, target in state.orchestrator.targets().items()
        ]

    @app.post("/api/build", response_model=OutcomeResponse)
    def build_site(payload: BuildRequest) -> OutcomeResponse:
        outcome = state.orchestrator.build(
            BuildOptions(
                clean=payload.clean,
                search_index=payload.search_index,
                base_url=payload.base_url,
            )
        )
        return _outcome_or_error(outcome)

    @app.post("/api/deploy", response_model=OutcomeResponse)
    def deploy_site(payload: DeployRequest) -> OutcomeResponse:
        options = _deploy_options(payload)
        if payload.target is None:
            outcome = state.orchestrator.deploy(options)
        else:
            outcome = state.orchestrator.deploy_to(payload.target, options)
        return _outcome_or_error(outcome)

    @app.get("/api/deploy/status", response_model=StatusResponse)
    def deploy_status() -> StatusResponse:
        return StatusResponse(
            target=state.orchestrator.active_target_id(),
            status=state.orchestrator.status(),
        )

    @app.post("/api/deploy/targets/{target_id}/test", response_model=OutcomeResponse)
    def test_target(target_id: str) -> OutcomeResponse:
        if state.orchestrator.get_target(target_id) is None:
            raise HTTPException(status_code=404, detail="Deployment target not found")
        return _outcome_or_error(state.orchestrator.test_connection(target_id))

    @app.post("/api/deploy/jobs", response_model=JobResponse, status_code=202)
    def submit_job(payload: DeployRequest) -> JobResponse:
        if payload.target is not None and state.orchestrator.get_target(payload.target) is None:
            raise HTTPException(status_code=404, detail="Deployment target not found")
        job = state.worker.submit(payload.target, _deploy_options(payload))
        return JobResponse.model_validate(job.to_dict())

    @app.get("/api/deploy/jobs/{job_id}", response_model=JobResponse)
    def get_job(job_id: str) -> JobResponse:
        try:
            job = state.worker.get(job_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Job not found") from exc
        return JobResponse.model_validate(job.to_dict())

    @app.post("/api/deploy/jobs/{job_id}/cancel", response_model=JobResponse)
    def cancel_job(job_id: str) -> JobResponse:
        try:
            job = state.worker.cancel(job_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Job not found") from exc
        return JobResponse.model_validate(job.to_dict())

    return app
