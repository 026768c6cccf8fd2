from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx

from site_publisher.deploy.base import DeployOptions
from site_publisher.deploy.cloudflare import UPLOAD_BATCH_SIZE, CloudflareTarget
from site_publisher.deploy.runtime import CancelToken
from site_publisher.deploy.transport import HttpTransport

SETTINGS = {"account_id": "acc", "project_name": "blog", "api_token": "cftok"}


def _many_pages(root: Path, count: int) -> Path:
    root.mkdir(parents=True)
    for index in range(count):
        (root / f"page-{index:03d}.html").write_text(f"<p>{index}</p>", encoding="utf-8")
    return root


def _created() -> httpx.Response:
    return httpx.Response(
        200, json={"success": True, "result": {"id": "cf-1", "url": "https://cf-1.blog.pages.dev"}}
    )


def test_uploads_in_batches_and_succeeds(
    tmp_path: Path, make_transport: Callable[..., HttpTransport]
) -> None:
    source = _many_pages(tmp_path / "public", UPLOAD_BATCH_SIZE * 2 + 5)
    uploads: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/deployments"):
            return _created()
        uploads.append(request.content.count(b'name="/page-'))
        return httpx.Response(200, json={"success": True})

    target = CloudflareTarget(transport=make_transport(handler))
    target.configure(SETTINGS)

    outcome = target.deploy(source)

    assert outcome.is_success()
    assert outcome.message == "Deployed to Cloudflare Pages"
    assert uploads == [UPLOAD_BATCH_SIZE, UPLOAD_BATCH_SIZE, 5]
    assert outcome.data["deployment_id"] == "cf-1"
    assert outcome.data["branch"] == "main"
    assert outcome.data["files_total"] == 105
    assert outcome.data["files_uploaded"] == 105
    assert outcome.data["failed_batches"] == 0


def test_partial_upload_is_a_failure_with_counts(
    tmp_path: Path, make_transport: Callable[..., HttpTransport]
) -> None:
    source = _many_pages(tmp_path / "public", UPLOAD_BATCH_SIZE * 2 + 20)
    batch_numbers: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/deployments"):
            return _created()
        batch_numbers.append(len(batch_numbers) + 1)
        if len(batch_numbers) == 2:
            return httpx.Response(413, text="payload too large")
        return httpx.Response(200, json={"success": True})

    target = CloudflareTarget(transport=make_transport(handler))
    target.configure(SETTINGS)

    outcome = target.deploy(source)

    assert outcome.is_failure()
    assert outcome.message == "Failed to upload 1 file batch(es)"
    assert outcome.data["files_total"] == 120
    assert outcome.data["files_uploaded"] == 70
    assert outcome.data["failed_batches"] == 1
    assert "batch 2: HTTP 413" in (outcome.error or "")
    assert batch_numbers == [1, 2, 3]


def test_deployment_creation_error(
    artifact_dir: Path, make_transport: Callable[..., HttpTransport]
) -> None:
    target = CloudflareTarget(
        transport=make_transport(
            lambda request: httpx.Response(
                403, json={"success": False, "errors": [{"message": "Authentication error"}]}
            )
        )
    )
    target.configure(SETTINGS)

    outcome = target.deploy(artifact_dir)

    assert outcome.is_failure()
    assert outcome.message == "Failed to create Cloudflare deployment: Authentication error"


def test_missing_deployment_id(
    artifact_dir: Path, make_transport: Callable[..., HttpTransport]
) -> None:
    target = CloudflareTarget(
        transport=make_transport(lambda request: httpx.Response(200, json={"result": {}}))
    )
    target.configure(SETTINGS)

    assert target.deploy(artifact_dir).message == "No deployment ID received"


def test_branch_override_and_cancellation(
    tmp_path: Path, make_transport: Callable[..., HttpTransport]
) -> None:
    source = _many_pages(tmp_path / "public", UPLOAD_BATCH_SIZE + 1)
    token = CancelToken()
    branches: list[bytes] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/deployments"):
            branches.append(request.content)
            return _created()
        token.cancel()
        return httpx.Response(200, json={"success": True})

    target = CloudflareTarget(transport=make_transport(handler))
    target.configure(SETTINGS)

    outcome = target.deploy(source, DeployOptions(branch="preview", cancel=token))

    assert outcome.is_failure()
    assert outcome.message == "Cloudflare upload cancelled"
    assert outcome.data["files_uploaded"] == UPLOAD_BATCH_SIZE
    assert outcome.data["branch"] == "preview"
    assert b'"preview"' in branches[0]


def test_connection_and_status(make_transport: Callable[..., HttpTransport]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/deployments"):
            return httpx.Response(
                200, json={"result": [{"id": "cf-9", "environment": "production"}]}
            )
        return httpx.Response(404, json={"errors": [{"message": "Project not found"}]})

    target = CloudflareTarget(transport=make_transport(handler))
    target.configure(SETTINGS)

    status = target.status()
    outcome = target.test_connection()

    assert status is not None and status["id"] == "cf-9"
    assert outcome.message == "Cannot access Cloudflare project: Project not found"
    assert CloudflareTarget().validate_config({}) == [
        "Account ID is required",
        "Project name is required",
        "API token is required",
    ]


def test_non_object_bodies_do_not_raise(
    artifact_dir: Path, make_transport: Callable[..., HttpTransport]
) -> None:
    target = CloudflareTarget(
        transport=make_transport(lambda request: httpx.Response(200, json=["cf-1"]))
    )
    target.configure(SETTINGS)

    outcome = target.deploy(artifact_dir)

    assert outcome.is_failure()
    assert outcome.message == "No deployment ID received"
    assert target.status() == {"status": "no_deployments"}
