"""Git tools: GitStatus, GitDiff, GitCommit, GitPush. Commands run through the Backend."""

import logging
import shlex
from typing import Any, Dict, List, Optional

from backend import Backend
from tools._common import ToolResult, as_bool

logger = logging.getLogger(__name__)

_GIT_TIMEOUT = 60


def _git(backend: Backend, args: str, timeout: int = _GIT_TIMEOUT):
    return backend.run_command(f"git {args}", cwd=".", timeout=timeout)


def _not_a_repo(backend: Backend) -> Optional[ToolResult]:
    _, _, rc = _git(backend, "rev-parse --git-dir", timeout=10)
    if rc != 0:
        return ToolResult(success=False, error="Not a git repository. Initialize with: git init")
    return None


def parse_porcelain(stdout: str) -> Dict[str, str]:
    """Parse 'git status --porcelain' output into path -> 'M'|'A'|'D'|'U'."""
    result = {}
    for line in (stdout or "").splitlines():
        if len(line) < 3:
            continue
        idx, wt = line[0], line[1]
        path = line[2:].lstrip()
        if " -> " in path:
            path = path.split(" -> ", 1)[1].strip()
        if path.startswith('"') and path.endswith('"') and len(path) >= 2:
            path = path[1:-1].replace('\\"', '"')
        path = path.replace("\\", "/").rstrip("/")
        if not path:
            continue
        if idx == "?" and wt == "?":
            result[path] = "U"
        elif idx == "D" or wt == "D":
            result[path] = "D"
        elif idx == "A" or wt == "A":
            result[path] = "A"
        else:
            result[path] = "M"
    return result


def git_status(backend: Backend, **kw: Any) -> ToolResult:
    """Show the working tree status and current branch."""
    err = _not_a_repo(backend)
    if err:
        return err
    try:
        status, stderr, rc = _git(backend, "status")
        if rc != 0:
            return ToolResult(success=False, error=f"Git status failed: {stderr.strip()}")
        branch, _, _ = _git(backend, "branch --show-current")
        porcelain, _, _ = _git(backend, "status --porcelain")
        return ToolResult(
            success=True, output=status,
            data={"branch": branch.strip(), "files": parse_porcelain(porcelain)},
        )
    except Exception as e:
        return ToolResult(success=False, error=f"Git status failed: {e}")


def git_diff(backend: Backend, staged: bool = False, file: Optional[str] = None, **kw: Any) -> ToolResult:
    """Show unstaged (or staged) changes, optionally for one file."""
    staged = as_bool(staged)
    err = _not_a_repo(backend)
    if err:
        return err
    args = "diff"
    if staged:
        args += " --cached"
    if file:
        args += f" -- {shlex.quote(str(file))}"
    try:
        stdout, stderr, rc = _git(backend, args)
        if rc != 0:
            return ToolResult(success=False, error=f"Git diff failed: {stderr.strip()}")
        if not stdout.strip():
            return ToolResult(success=True, output="No staged changes" if staged else "No unstaged changes",
                              data={"has_changes": False})
        return ToolResult(success=True, output=stdout,
                          data={"staged": staged, "file": file, "has_changes": True})
    except Exception as e:
        return ToolResult(success=False, error=f"Git diff failed: {e}")


def git_commit(backend: Backend, message: Optional[str] = None, add_all: bool = False,
               files: Optional[List[str]] = None, **kw: Any) -> ToolResult:
    """Stage (everything, or the given files) and commit."""
    add_all = as_bool(add_all)
    err = _not_a_repo(backend)
    if err:
        return err
    if isinstance(files, str):
        files = [files]
    files = files or []
    try:
        if add_all:
            _, stderr, rc = _git(backend, "add -A")
            if rc != 0:
                return ToolResult(success=False, error=f"git add failed: {stderr.strip()}")
            logger.info("Staged all changes")
        elif files:
            quoted = " ".join(shlex.quote(str(f)) for f in files)
            _, stderr, rc = _git(backend, f"add -- {quoted}")
            if rc != 0:
                return ToolResult(success=False, error=f"git add failed: {stderr.strip()}")
            logger.info(f"Staged {len(files)} file(s)")

        stat, _, _ = _git(backend, "diff --cached --stat")
        if not stat.strip():
            return ToolResult(success=False,
                              error="No staged changes to commit. Use add_all: true or specify files.")

        if not message:
            shortstat, _, _ = _git(backend, "diff --cached --shortstat")
            message = f"Update files\n\n{shortstat.strip()}"

        stdout, stderr, rc = _git(backend, f"commit -m {shlex.quote(str(message))}")
        if rc != 0:
            detail = (stderr or stdout).strip()
            if "hook" in detail.lower():
                return ToolResult(success=False, output=detail, error=f"Pre-commit hook failed: {detail}")
            return ToolResult(success=False, output=detail, error=f"Git commit failed: {detail}")

        commit_hash, _, _ = _git(backend, "rev-parse --short HEAD")
        oneline, _, _ = _git(backend, "log -1 --oneline")
        logger.info(f"Created commit {commit_hash.strip()}")
        return ToolResult(
            success=True,
            output=f"Created commit: {oneline.strip()}\n\nChanges:\n{stat}",
            data={"commit": commit_hash.strip(), "files_changed": max(len(stat.strip().splitlines()) - 1, 0)},
        )
    except Exception as e:
        return ToolResult(success=False, error=f"Git commit failed: {e}")


def git_push(backend: Backend, remote: str = "origin", branch: Optional[str] = None,
             force: bool = False, set_upstream: bool = False, **kw: Any) -> ToolResult:
    """Push the current (or given) branch to a remote."""
    force, set_upstream = as_bool(force), as_bool(set_upstream)
    err = _not_a_repo(backend)
    if err:
        return err
    try:
        target = branch
        if not target:
            current, _, _ = _git(backend, "branch --show-current")
            target = current.strip()
        if not target:
            return ToolResult(success=False, error="Could not determine the branch to push (detached HEAD?)")

        flags = []
        if set_upstream:
            flags.append("-u")
        if force:
            flags.append("--force")
            logger.warning(f"Force pushing {target} to {remote}")
        args = " ".join(["push"] + flags + [shlex.quote(remote), shlex.quote(target)])
        stdout, stderr, rc = _git(backend, args, timeout=120)
        output = stdout + (f"\n{stderr}" if stderr else "")
        if rc != 0:
            return ToolResult(success=False, output=output.strip(), error=f"Git push failed: {stderr.strip()}")
        return ToolResult(
            success=True,
            output=f"Pushed to {remote}/{target}\n\n{output.strip()}",
            data={"remote": remote, "branch": target, "force": force},
        )
    except Exception as e:
        return ToolResult(success=False, error=f"Git push failed: {e}")
