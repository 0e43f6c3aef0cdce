""".gitignore-aware filtering for file discovery."""

import logging
import os
import pathlib
from typing import Dict, Iterable, List, Optional, Set

import pathspec

logger = logging.getLogger(__name__)

_ALWAYS_SKIP_DIRS: Set[str] = {
    ".git", "node_modules", "__pycache__", ".venv", "venv",
    ".mypy_cache", ".pytest_cache", ".tox", ".eggs",
    "dist", "build", ".next", "coverage", ".stream-runner",
}

_ALWAYS_SKIP_EXTENSIONS: Set[str] = {
    ".pyc", ".pyo", ".so", ".dylib", ".o", ".a", ".class",
}

_gitignore_cache: Dict[str, Optional[pathspec.PathSpec]] = {}


def load_gitignore(working_directory: str) -> Optional[pathspec.PathSpec]:
    """Load and cache the .gitignore of a project root. None when there is none."""
    if working_directory in _gitignore_cache:
        return _gitignore_cache[working_directory]

    spec = None
    gitignore_path = os.path.join(working_directory, ".gitignore")
    if os.path.isfile(gitignore_path):
        try:
            with open(gitignore_path, "r", encoding="utf-8", errors="replace") as f:
                spec = pathspec.PathSpec.from_lines("gitwildmatch", f)
        except OSError as e:
            logger.debug(f"Failed to read .gitignore: {e}")

    _gitignore_cache[working_directory] = spec
    return spec


def is_ignored(rel_path: str, gitignore_spec: Optional[pathspec.PathSpec],
               extra: Optional[pathspec.PathSpec] = None) -> bool:
    """True if a relative file path sits in a skipped directory or matches an ignore spec."""
    parts = pathlib.PurePath(rel_path).parts
    if any(p in _ALWAYS_SKIP_DIRS for p in parts[:-1]):
        return True
    _, ext = os.path.splitext(rel_path)
    if ext in _ALWAYS_SKIP_EXTENSIONS:
        return True
    if gitignore_spec and gitignore_spec.match_file(rel_path):
        return True
    if extra and extra.match_file(rel_path):
        return True
    return False


def filter_paths(paths: Iterable[str], working_directory: str,
                 ignore: Optional[List[str]] = None) -> List[str]:
    """Drop ignored paths. `ignore` adds caller-supplied gitwildmatch patterns."""
    spec = load_gitignore(working_directory)
    extra = pathspec.PathSpec.from_lines("gitwildmatch", ignore) if ignore else None
    return [p for p in paths if not is_ignored(p, spec, extra)]


def invalidate_gitignore_cache(working_directory: Optional[str] = None) -> None:
    """Clear cached .gitignore specs. Call when .gitignore changes."""
    if working_directory:
        _gitignore_cache.pop(working_directory, None)
    else:
        _gitignore_cache.clear()
