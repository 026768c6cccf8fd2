"""Helpers for walking, packing and cleaning the build artifact directory."""

from __future__ import annotations

import shutil
import zipfile
from collections.abc import Iterator
from pathlib import Path


def iter_artifact_files(source_dir: Path) -> Iterator[tuple[str, Path]]:
    """Yield ``(relative_posix_path, absolute_path)`` for every file, sorted."""
    root = source_dir.resolve()
    for path in sorted(root.rglob("*")):
        if path.is_file():
            yield path.relative_to(root).as_posix(), path


def clean_directory(directory: Path) -> int:
    """Remove every child of ``directory`` but keep the directory itself."""
    if not directory.exists():
        directory.mkdir(parents=True, exist_ok=True)
        return 0
    removed = 0
    for child in directory.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()
        removed += 1
    return removed


def zip_directory(source_dir: Path, archive_path: Path) -> int:
    """Write every artifact file into ``archive_path`` and return the file count."""
    count = 0
    with zipfile.ZipFile(
        archive_path, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False
    ) as archive:
        for relative, path in iter_artifact_files(source_dir):
            archive.write(path, arcname=relative)
            count += 1
    return count
