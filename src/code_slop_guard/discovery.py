# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Iterable, Iterator

from code_slop_guard.core import SourceFile

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = {".ts", ".tsx", ".js", ".jsx"}

DEFAULT_EXCLUDE_DIRS = {
    "node_modules",
    ".next",
    "dist",
    "build",
    "coverage",
    "generated",
    ".vercel",
    ".git",
    "out",
    "temp",
    "types",
}

CORE_APP_DIRS = ("app/", "components/", "lib/", "hooks/", "services/")


def _is_excluded(rel: Path, exclude_dirs: set[str]) -> bool:
    for part in rel.parts[:-1]:
        if part in exclude_dirs or part.startswith("."):
            return True
    return rel.name.endswith(".d.ts")


def _is_ignored(rel_posix: str, ignore_paths: Iterable[str]) -> bool:
    return any(fnmatch.fnmatch(rel_posix, pattern) for pattern in ignore_paths)


def iter_candidate_files(
    root: Path,
    *,
    extensions: set[str] | None = None,
    exclude_dirs: set[str] | None = None,
    ignore_paths: Iterable[str] = (),
) -> Iterator[Path]:
    include = extensions or DEFAULT_EXTENSIONS
    exclude = exclude_dirs or DEFAULT_EXCLUDE_DIRS
    ignore = list(ignore_paths)
    for path in root.rglob("*"):
        if not path.is_file() or path.suffix.lower() not in include:
            continue
        rel = path.relative_to(root)
        if _is_excluded(rel, exclude) or _is_ignored(rel.as_posix(), ignore):
            continue
        yield path


def discover_files(
    root: str | Path,
    *,
    quiet: bool = False,
    ignore_paths: Iterable[str] = (),
    extensions: set[str] | None = None,
    exclude_dirs: set[str] | None = None,
) -> list[str]:
    """Sorted posix paths, relative to ``root``, of the sources to scan.

    Quiet mode keeps only files under the core application directories.
    """
    root_path = Path(root).resolve()
    if not root_path.is_dir():
        raise NotADirectoryError(f"root must be an existing directory: {root_path}")

    found = sorted(
        p.relative_to(root_path).as_posix()
        for p in iter_candidate_files(root_path, extensions=extensions, exclude_dirs=exclude_dirs, ignore_paths=ignore_paths)
    )
    selected = [rel for rel in found if rel.startswith(CORE_APP_DIRS)] if quiet else found
    logger.info(f"Found {len(found)} files to analyze ({len(selected)} in {'quiet' if quiet else 'full'} mode)")
    return selected


def read_sources(root: str | Path, paths: Iterable[str]) -> list[SourceFile]:
    """Read every file up front. Any read error aborts the run."""
    root_path = Path(root)
    return [SourceFile(rel, (root_path / rel).read_text(encoding="utf-8")) for rel in paths]
