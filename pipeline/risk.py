"""
Risk classification of pending tool calls.

A Bash command is only bucketed once the platform profile flags it as
dangerous; the bucket markers below decide how dangerous.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional, Pattern, Tuple

from tools._common import as_bool, as_text
from .platform_profile import PlatformProfile, detect_platform

logger = logging.getLogger(__name__)


class RiskLevel(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass
class RiskAssessment:
    level: RiskLevel = RiskLevel.LOW
    warnings: List[str] = field(default_factory=list)

    def raise_to(self, level: RiskLevel, warning: Optional[str] = None) -> None:
        if level > self.level:
            self.level = level
        if warning and warning not in self.warnings:
            self.warnings.append(warning)


def _markers(*pairs: Tuple[str, str]) -> Tuple[Tuple[Pattern, str], ...]:
    return tuple((re.compile(p, re.IGNORECASE), msg) for p, msg in pairs)


_CRITICAL_MARKERS = _markers(
    (r"\brm\s+(?:-{1,2}[\w-]+\s+)*(?:/|/\*|~/?|\*|\$HOME/?)(?=\s|;|&|\||$)", "Deletes the root or home directory"),
    (r"\bmkfs(?:\.\w+)?\b", "Creates a filesystem"),
    (r"\b(?:fdisk|parted|wipefs|diskpart)\b", "Repartitions or wipes a disk"),
    (r"\bdd\s", "Raw disk copy (dd)"),
    (r"\bshred\b", "Irrecoverably overwrites files"),
    (r">\s*/dev/(?:sd[a-z]|nvme|hd[a-z]|disk)", "Writes directly to a block device"),
    (r":\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:", "Fork bomb"),
    (r"\bformat\s+[a-z]:", "Formats a drive"),
)

_HIGH_MARKERS = _markers(
    (r"\b(?:sudo|su|doas)\b", "Runs with elevated privileges"),
    (r"\bkill\s+-(?:9|KILL)\b", "Force-kills processes"),
    (r"\b(?:killall|pkill)\b", "Kills processes by name"),
    (r"\brm\s+(?:-[a-z]*[rf][a-z]*|--recursive|--force)\b", "Forced or recursive delete"),
    (r"\b(?:shutdown|reboot|halt|poweroff)\b", "Shuts down or restarts the system"),
    (r"\binit\s+[06]\b", "Changes the system runlevel"),
    (r"\b(?:systemctl|service)\b.*\b(?:stop|disable|mask)\b", "Stops or disables a service"),
    (r"\bchown\s+-R\b", "Recursive ownership change"),
    (r"\b(?:del|erase)\b.*\s/[sq]\b", "Recursive or quiet delete"),
    (r"\b(?:rd|rmdir)\s+/s\b", "Recursive directory removal"),
    (r"\breg\s+(?:delete|add)\b", "Modifies the registry"),
    (r"\btaskkill\s+/f\b", "Force-kills processes"),
    (r"\bsc\s+delete\b", "Deletes a service"),
    (r"\b(?:netsh|wmic)\b.*\bdelete\b", "Deletes system configuration"),
    (r"\bpowershell\b.*-encodedcommand", "Runs an encoded PowerShell command"),
    (r">\s*/(?:etc|boot|sys)/", "Writes into a system directory"),
)

_MEDIUM_MARKERS = _markers(
    (r"\bchmod\s+(?:-R\s+)?777\b", "Makes files world-writable"),
    (r"\b(?:eval|exec)\b", "Evaluates dynamic code"),
    (r"\b(?:curl|wget)\b.*\|\s*(?:ba|z)?sh\b", "Pipes a download into a shell"),
    (r"\biex\b|\binvoke-expression\b", "Evaluates dynamic PowerShell"),
    (r"\|\s*(?:powershell|cmd)\b", "Pipes into a shell"),
    (r"`[^`]+`|\$\([^)]+\)", "Command substitution"),
)

_BUCKETS = (
    (RiskLevel.CRITICAL, _CRITICAL_MARKERS),
    (RiskLevel.HIGH, _HIGH_MARKERS),
    (RiskLevel.MEDIUM, _MEDIUM_MARKERS),
)

_UNIX_CRITICAL_FILES = (r"/etc/passwd$", r"/etc/shadow$", r"/etc/sudoers", r"/root/")
_WINDOWS_CRITICAL_FILES = (r"SAM$", r"SYSTEM$", r"ntuser\.dat", r"HKEY_")

_INJECTION_MARKERS = re.compile(r"<script|<iframe", re.IGNORECASE)


class RiskAssessor:
    """Classifies a tool call into a RiskLevel with human-readable warnings."""

    def __init__(self, profile: Optional[PlatformProfile] = None,
                 long_command_threshold: int = 150,
                 protected_branches: Iterable[str] = ("main", "master")):
        self.profile = profile or detect_platform()
        self.long_command_threshold = long_command_threshold
        self.protected_branches = tuple(protected_branches)
        critical = _WINDOWS_CRITICAL_FILES if self.profile.is_windows else _UNIX_CRITICAL_FILES
        self._critical_files = tuple(re.compile(p, re.IGNORECASE) for p in critical)

    def assess(self, tool_name: str, params: Optional[Dict[str, Any]] = None) -> RiskAssessment:
        params = params or {}
        risk = RiskAssessment()
        if tool_name == "Bash":
            self._assess_command(str(params.get("command") or ""), risk)
        elif tool_name in ("Write", "Edit"):
            self._assess_file_write(params, risk)
        elif tool_name == "GitPush":
            self._assess_push(params, risk)
        elif tool_name == "GitCommit":
            if as_bool(params.get("add_all")):
                risk.raise_to(RiskLevel.MEDIUM, "Stages all changes (add_all)")
        logger.debug(f"Risk for {tool_name}: {risk.level.label} {risk.warnings}")
        return risk

    # ------------------------------------------------------------------

    def _assess_command(self, command: str, risk: RiskAssessment) -> None:
        if self.profile.is_dangerous_command(command):
            for level, markers in _BUCKETS:
                for pattern, message in markers:
                    if pattern.search(command):
                        risk.raise_to(level, message)
            if not risk.warnings:
                risk.raise_to(RiskLevel.HIGH, "Potentially dangerous command detected")
            return

        if len(command) > self.long_command_threshold:
            risk.raise_to(
                RiskLevel.MEDIUM,
                f"Long command ({len(command)} characters); review it before running",
            )

    def _assess_file_write(self, params: Dict[str, Any], risk: RiskAssessment) -> None:
        file_path = str(params.get("file_path") or params.get("path") or "")
        if file_path:
            if self.profile.is_sensitive_file(file_path):
                risk.raise_to(RiskLevel.HIGH, f"Sensitive file: {file_path}")
                if any(p.search(file_path) for p in self._critical_files):
                    risk.raise_to(RiskLevel.CRITICAL, "Critical system file")
            if self.profile.is_system_dir(file_path):
                risk.raise_to(RiskLevel.HIGH, f"System directory: {file_path}")

        content = params.get("content")
        if content is None:
            content = params.get("new_string")
        if not content:
            return
        content = as_text(content)
        if self.profile.matching_patterns(content):
            risk.raise_to(RiskLevel.MEDIUM, "Content contains dangerous command patterns")
        elif any(self.profile.dangerous_prefix(line) for line in content.splitlines()):
            risk.raise_to(RiskLevel.MEDIUM, "Content contains dangerous commands")
        if _INJECTION_MARKERS.search(content):
            risk.raise_to(RiskLevel.MEDIUM, "Content contains script injection markers")

    def _assess_push(self, params: Dict[str, Any], risk: RiskAssessment) -> None:
        if not as_bool(params.get("force")):
            return
        branch = str(params.get("branch") or "main")
        if branch in self.protected_branches:
            risk.raise_to(RiskLevel.CRITICAL, f"Force push to protected branch '{branch}'")
        else:
            risk.raise_to(RiskLevel.HIGH, "Force push")
