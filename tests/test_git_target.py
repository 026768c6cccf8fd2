from __future__ import annotations

import json
import shutil
import subprocess  # nosec B404
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from site_publisher.deploy.base import DeployOptions
from site_publisher.deploy.git import FALLBACK_USER_NAME, GitTarget
from site_publisher.deploy.transport import HttpTransport
from tests.fakes import FakeRunner


def _working_copy(tmp_path: Path) -> Path:
    repo = tmp_path / "site"
    (repo / ".git").mkdir(parents=True)
    return repo


def test_requires_git_working_copy(tmp_path: Path, fake_runner: FakeRunner) -> None:
    target = GitTarget(tmp_path, runner=fake_runner)

    assert not target.is_configured()
    outcome = target.deploy(tmp_path)

    assert outcome.is_failure()
    assert outcome.message == "Git CI/CD is not configured"
    assert "not a git working copy" in (outcome.error or "")
    assert fake_runner.calls == []


def test_clean_tree_reports_no_changes(tmp_path: Path, fake_runner: FakeRunner) -> None:
    repo = _working_copy(tmp_path)
    fake_runner.respond(["git", "config", "user.name"], stdout="Editor\n")
    target = GitTarget(repo, runner=fake_runner)

    outcome = target.deploy(repo)

    assert outcome.is_success()
    assert outcome.message == "No changes to deploy"
    assert ("git", "push", "origin", "main") not in fake_runner.commands("git")


def test_push_flow_commits_and_pushes(tmp_path: Path, fake_runner: FakeRunner) -> None:
    repo = _working_copy(tmp_path)
    fake_runner.respond(["git", "config", "user.name"], exit_code=1)
    fake_runner.respond(["git", "status", "--porcelain"], stdout=" M content/post.md\n")
    fake_runner.respond(["git", "push"], stderr="To origin\n   abc..def  release -> release")
    fake_runner.respond(
        ["git", "log", "-1"],
        stdout="def456\x1fPublish post\x1f2026-10-19 10:00:00 +0000\x1fEditor\n",
    )
    target = GitTarget(repo, runner=fake_runner)
    target.configure({"branch": "release"})

    outcome = target.deploy(repo, DeployOptions(message="Publish post"))

    commands = fake_runner.commands("git")
    assert ("git", "config", "user.name", FALLBACK_USER_NAME) in commands
    assert ("git", "add", "-A") in commands
    assert ("git", "commit", "-m", "Publish post") in commands
    assert ("git", "push", "origin", "release") in commands
    assert outcome.is_success()
    assert outcome.message == "Pushed to release"
    assert outcome.data["commit"]["hash"] == "def456"
    assert outcome.data["commit"]["author"] == "Editor"
    assert "pipeline" not in outcome.data
    assert all(call.cwd == repo for call in fake_runner.calls)


def test_push_failure_returns_output_and_skips_pipeline(
    tmp_path: Path,
    fake_runner: FakeRunner,
    make_transport: Callable[..., HttpTransport],
) -> None:
    repo = _working_copy(tmp_path)
    fake_runner.respond(["git", "status", "--porcelain"], stdout="?? new.md\n")
    fake_runner.respond(["git", "push"], exit_code=1, stderr="rejected: non-fast-forward")
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": 1})

    target = GitTarget(repo, runner=fake_runner, transport=make_transport(handler))
    target.configure(
        {
            "trigger_pipeline": True,
            "gitlab": {"url": "https://gitlab.example/", "project_id": 12, "trigger_token": "t"},
        }
    )

    outcome = target.deploy(repo)

    assert outcome.is_failure()
    assert outcome.message == "Git push failed"
    assert "non-fast-forward" in (outcome.error or "")
    assert "pipeline" not in outcome.data
    assert seen == []


def test_nothing_to_commit_is_tolerated(tmp_path: Path, fake_runner: FakeRunner) -> None:
    repo = _working_copy(tmp_path)
    fake_runner.respond(["git", "status", "--porcelain"], stdout="?? new.md\n")
    fake_runner.respond(["git", "commit"], exit_code=1, stdout="nothing to commit")
    target = GitTarget(repo, runner=fake_runner)

    assert target.deploy(repo).is_success()


def test_gitlab_pipeline_trigger_is_recorded(
    tmp_path: Path,
    fake_runner: FakeRunner,
    make_transport: Callable[..., HttpTransport],
) -> None:
    repo = _working_copy(tmp_path)
    fake_runner.respond(["git", "status", "--porcelain"], stdout=" M a.md\n")
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": 77, "status": "created", "web_url": "https://gl/p"})

    target = GitTarget(repo, runner=fake_runner, transport=make_transport(handler))
    target.configure(
        {
            "trigger_pipeline": True,
            "gitlab": {"url": "https://gitlab.example/", "project_id": 12, "trigger_token": "t"},
        }
    )

    outcome = target.deploy(repo)

    assert outcome.is_success()
    pipeline = outcome.data["pipeline"]
    assert pipeline.ok
    assert pipeline.payload["id"] == 77
    assert str(seen[0].url) == "https://gitlab.example/api/v4/projects/12/trigger/pipeline"
    assert b"ref=main" in seen[0].content


def test_failed_github_dispatch_does_not_fail_push(
    tmp_path: Path,
    fake_runner: FakeRunner,
    make_transport: Callable[..., HttpTransport],
) -> None:
    repo = _working_copy(tmp_path)
    fake_runner.respond(["git", "status", "--porcelain"], stdout=" M a.md\n")
    bodies: list[dict[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(404, json={"message": "Not Found"})

    target = GitTarget(repo, runner=fake_runner, transport=make_transport(handler))
    target.configure(
        {
            "platform": "github",
            "trigger_pipeline": True,
            "github": {"repo": "owner/site", "token": "ghp"},
        }
    )

    outcome = target.deploy(repo)

    assert outcome.is_success()
    assert outcome.data["pipeline"].ok is False
    assert outcome.data["pipeline"].message == "Failed to trigger workflow (HTTP 404)"
    assert bodies == [{"ref": "main"}]


def test_validate_config_reports_incomplete_pipeline(
    tmp_path: Path, fake_runner: FakeRunner
) -> None:
    target = GitTarget(_working_copy(tmp_path), runner=fake_runner)

    problems = target.validate_config({"trigger_pipeline": True, "platform": "gitlab"})

    assert problems == ["GitLab pipeline trigger needs url, project_id and trigger_token"]
    assert target.validate_config({"platform": "svn"})[0].startswith("platform")


def test_status_lists_pending_changes(tmp_path: Path, fake_runner: FakeRunner) -> None:
    repo = _working_copy(tmp_path)
    fake_runner.respond(["git", "branch", "--show-current"], stdout="main\n")
    fake_runner.respond(["git", "remote", "get-url"], stdout="git@example:site.git\n")
    fake_runner.respond(["git", "status", "--porcelain"], stdout=" M content/a.md\n?? b.md\n")
    fake_runner.respond(["git", "log", "-1"], exit_code=128)

    status = GitTarget(repo, runner=fake_runner).status()

    assert status is not None
    assert status["branch"] == "main"
    assert status["remote_url"] == "git@example:site.git"
    assert status["last_commit"] is None
    assert status["pending_changes"] == [
        {"status": "M", "file": "content/a.md"},
        {"status": "??", "file": "b.md"},
    ]


def test_connection_uses_ls_remote(tmp_path: Path, fake_runner: FakeRunner) -> None:
    repo = _working_copy(tmp_path)
    fake_runner.respond(["git", "ls-remote"], exit_code=128, stderr="Could not read from remote")
    target = GitTarget(repo, runner=fake_runner)

    outcome = target.test_connection()

    assert outcome.is_failure()
    assert outcome.message == "Cannot connect to Git remote"
    assert fake_runner.commands("git") == [("git", "ls-remote", "origin", "HEAD")]


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
def test_deploy_pushes_to_local_bare_remote(tmp_path: Path) -> None:
    remote = tmp_path / "remote.git"
    repo = tmp_path / "site"
    repo.mkdir()

    def git(*args: str, cwd: Path = repo) -> str:
        completed = subprocess.run(  # noqa: S603  # nosec B603
            ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
        )
        return completed.stdout

    git("init", "--bare", str(remote), cwd=tmp_path)
    git("init")
    git("checkout", "-b", "main")
    git("remote", "add", "origin", str(remote))
    (repo / "index.md").write_text("# Home\n", encoding="utf-8")

    target = GitTarget(repo)
    outcome = target.deploy(repo, DeployOptions(message="Initial publish"))

    assert outcome.is_success(), outcome.error
    assert outcome.data["commit"]["message"] == "Initial publish"
    assert "Initial publish" in git("log", "--format=%s", "main", cwd=remote)
    assert target.deploy(repo).message == "No changes to deploy"
