from __future__ import annotations

import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest

from site_publisher.deploy.artifacts import clean_directory, iter_artifact_files, zip_directory
from site_publisher.deploy.builder import HugoSiteBuilder
from tests.fakes import FakeRunner


def test_build_runs_hugo_in_site_root(tmp_path: Path, fake_runner: FakeRunner) -> None:
    fake_runner.respond(["hugo"], stdout="Total in 42 ms")
    builder = HugoSiteBuilder(runner=fake_runner)

    outcome = builder.build(tmp_path, base_url="https://example.com/")

    assert outcome.is_success()
    assert outcome.data == {"public_dir": str(tmp_path / "public"), "output": "Total in 42 ms"}
    (call,) = fake_runner.calls
    assert call.args == ("hugo", "--minify", "--baseURL", "https://example.com/")
    assert call.cwd == tmp_path


def test_build_failure_and_missing_tool(
    tmp_path: Path, make_runner: Callable[..., FakeRunner]
) -> None:
    failing = make_runner()
    failing.respond(["hugo"], exit_code=255, stderr="Error: template not found")
    missing = make_runner(available=[])

    failed = HugoSiteBuilder(runner=failing).build(tmp_path)
    absent = HugoSiteBuilder(runner=missing).build(tmp_path)

    assert failed.message == "Hugo build failed"
    assert failed.error == "Error: template not found"
    assert absent.message == "hugo is not installed"
    assert missing.calls == []


def test_search_index_uses_pagefind(tmp_path: Path, fake_runner: FakeRunner) -> None:
    public = tmp_path / "public"
    fake_runner.respond(["pagefind"], stdout="Indexed 3 pages")

    outcome = HugoSiteBuilder(runner=fake_runner).build_search_index(tmp_path, public)

    assert outcome.data["output"] == "Indexed 3 pages"
    assert fake_runner.commands("pagefind") == [("pagefind", "--site", str(public))]


def test_custom_command_is_used(
    tmp_path: Path, make_runner: Callable[..., FakeRunner]
) -> None:
    runner = make_runner(available=["zola"])
    HugoSiteBuilder(runner=runner, command=["zola", "build"]).build(tmp_path)

    assert runner.calls[0].args == ("zola", "build")
    with pytest.raises(ValueError):
        HugoSiteBuilder(runner=runner, command=[])


def test_artifact_helpers(artifact_dir: Path, tmp_path: Path) -> None:
    files = [relative for relative, _ in iter_artifact_files(artifact_dir)]
    archive = tmp_path / "site.zip"

    count = zip_directory(artifact_dir, archive)

    assert files == ["blog/post.html", "index.html"]
    assert count == 2
    with zipfile.ZipFile(archive) as opened:
        assert sorted(opened.namelist()) == files
    assert clean_directory(artifact_dir) == 2
    assert list(artifact_dir.iterdir()) == []
    assert clean_directory(tmp_path / "fresh") == 0
    assert (tmp_path / "fresh").is_dir()
