"""
Backend abstraction for the side effects of tools and artifacts.
Every path a tool touches is resolved against one working directory and may not leave it.
"""

import logging
import os
import pathlib
import shutil
import signal
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class Backend(ABC):
    """Filesystem and shell access for one project directory."""

    @property
    @abstractmethod
    def working_directory(self) -> str:
        """Absolute path of the project directory."""

    @abstractmethod
    def read_file(self, path: str) -> str:
        """Text content of a file."""

    @abstractmethod
    def write_file(self, path: str, content: str) -> None:
        """Replace a file's content, creating parent directories."""

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def is_dir(self, path: str) -> bool:
        ...

    @abstractmethod
    def run_command(self, command: str, cwd: str, timeout: int = 30) -> Tuple[str, str, int]:
        """Run a shell command to completion. Returns (stdout, stderr, returncode); -1 on timeout."""

    @abstractmethod
    def run_background(self, command: str, cwd: str = ".") -> int:
        """Start a detached shell command and return its pid without waiting."""

    @abstractmethod
    def search(self, pattern: str, path: str, include: Optional[str] = None,
               cwd: str = ".", ignore_case: bool = False) -> str:
        """Regex search over file contents. Returns 'path:line:text' lines."""

    @abstractmethod
    def glob_find(self, pattern: str, cwd: str) -> List[str]:
        """Files (not directories) matching a glob, relative to cwd and sorted."""

    def resolve_path(self, path: str) -> str:
        if os.path.isabs(path):
            return os.path.normpath(path)
        return os.path.normpath(os.path.join(self.working_directory, path))


# ============================================================
# Local Backend
# ============================================================

_SEARCH_TIMEOUT = 15
_SEARCH_MAX_PER_FILE = 100


class LocalBackend(Backend):
    """Backend on the local filesystem, confined to working_directory."""

    def __init__(self, working_directory: str = "."):
        self._root = os.path.abspath(working_directory)

    @property
    def working_directory(self) -> str:
        return self._root

    def confine(self, path: str) -> str:
        """Absolute form of path. Raises ValueError when it points outside the working directory."""
        full = self.resolve_path(path)
        if full != self._root and not full.startswith(self._root + os.sep):
            raise ValueError(f"Path escapes working directory: {path!r}")
        return full

    def _cwd(self, cwd: str) -> str:
        return self._root if cwd in ("", ".") else self.confine(cwd)

    def read_file(self, path: str) -> str:
        with open(self.confine(path), "r", encoding="utf-8", errors="replace") as f:
            return f.read()

    def write_file(self, path: str, content: str) -> None:
        full = self.confine(path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "w", encoding="utf-8") as f:
            f.write(content)
        logger.debug(f"Wrote {len(content)} chars to {full}")

    def file_exists(self, path: str) -> bool:
        return os.path.exists(self.confine(path))

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(self.confine(path))

    def run_command(self, command: str, cwd: str, timeout: int = 30) -> Tuple[str, str, int]:
        # Own session so a timeout can take down the whole process group
        proc = subprocess.Popen(
            command, shell=True, cwd=self._cwd(cwd), text=True,
            stdout=subprocess.PIPE, stderr=subprocess.PIPE, start_new_session=True,
        )
        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            _terminate_group(proc)
            stdout, stderr = proc.communicate(timeout=5)
            logger.warning(f"Command timed out after {timeout}s: {command[:120]}")
            return stdout or "", f"Command timed out after {timeout}s\n{stderr or ''}", -1
        return stdout or "", stderr or "", proc.returncode

    def run_background(self, command: str, cwd: str = ".") -> int:
        proc = subprocess.Popen(
            command, shell=True, cwd=self._cwd(cwd),
            stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        logger.info(f"Started background command pid={proc.pid}: {command[:120]}")
        return proc.pid

    def search(self, pattern: str, path: str, include: Optional[str] = None,
               cwd: str = ".", ignore_case: bool = False) -> str:
        target = self.confine(path) if path else self._root
        if shutil.which("rg"):
            cmd = ["rg", "--line-number", "--no-heading", "--color=never", "-m", str(_SEARCH_MAX_PER_FILE)]
            if ignore_case:
                cmd.append("--ignore-case")
            if include:
                cmd += ["--glob", include]
        else:
            cmd = ["grep", "-rnE", "--color=never"]
            if ignore_case:
                cmd.append("-i")
            if include:
                cmd += ["--include", include]
        cmd += ["--", pattern, target]

        result = subprocess.run(cmd, capture_output=True, text=True, timeout=_SEARCH_TIMEOUT, cwd=self._cwd(cwd))
        # rc 1 means no matches for both rg and grep
        if result.returncode > 1:
            raise ValueError((result.stderr or "").strip() or f"search exited with code {result.returncode}")
        return (result.stdout or "").strip()

    def glob_find(self, pattern: str, cwd: str) -> List[str]:
        base = pathlib.Path(self._cwd(cwd))
        return [p.relative_to(base).as_posix() for p in sorted(base.glob(pattern)) if p.is_file()]


def _terminate_group(proc: subprocess.Popen) -> None:
    try:
        os.killpg(os.getpgid(proc.pid), signal.SIGTERM)
    except OSError:
        pass
    try:
        proc.kill()
    except OSError:
        pass
