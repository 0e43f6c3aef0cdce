"""
OS-specific pattern sets used to classify commands and file paths.
"""

import logging
import os
import platform
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

UNIX = "unix"
MACOS = "macos"
WINDOWS = "windows"


@dataclass(frozen=True)
class PlatformProfile:
    """Dangerous commands, dangerous regexes, sensitive files and system dirs for one OS"""
    kind: str
    shell: str
    dangerous_commands: Tuple[str, ...]
    dangerous_patterns: Tuple[Pattern, ...]
    sensitive_files: Tuple[Pattern, ...]
    system_dirs: Tuple[Pattern, ...]

    @property
    def is_windows(self) -> bool:
        return self.kind == WINDOWS

    def describe(self) -> str:
        label = {WINDOWS: "Windows", MACOS: "macOS"}.get(self.kind, "Linux/Unix")
        return f"{label} ({self.shell.upper()})"

    def dangerous_prefix(self, command: str) -> Optional[str]:
        """The dangerous command the given command line starts with, matched on whole words."""
        lowered = command.strip().lower()
        for prefix in self.dangerous_commands:
            if lowered == prefix or lowered.startswith(prefix + " ") or lowered.startswith(prefix + "\t"):
                return prefix
        return None

    def matching_patterns(self, text: str) -> Tuple[Pattern, ...]:
        return tuple(p for p in self.dangerous_patterns if p.search(text))

    def is_dangerous_command(self, command: str) -> bool:
        return self.dangerous_prefix(command) is not None or bool(self.matching_patterns(command))

    def is_sensitive_file(self, file_path: str) -> bool:
        return any(p.search(file_path) for p in self.sensitive_files)

    def is_system_dir(self, file_path: str) -> bool:
        return any(p.search(file_path) for p in self.system_dirs)


def _compile(*patterns: str, flags: int = re.IGNORECASE) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, flags) for p in patterns)


_COMMON_COMMANDS = ("eval", "exec")

_UNIX_COMMANDS = _COMMON_COMMANDS + (
    "rm", "rmdir", "dd", "mkfs", "fdisk", "parted", "shred", "wipefs",
    "kill", "killall", "pkill", "shutdown", "reboot", "halt", "init",
    "systemctl", "service", "chown", "chmod", "chgrp", "sudo", "su", "doas",
)

_WINDOWS_COMMANDS = _COMMON_COMMANDS + (
    "del", "deltree", "rmdir", "format", "diskpart", "rd", "erase",
    "reg delete", "reg add", "shutdown", "restart", "taskkill", "netsh",
    "sc delete", "wmic", "powershell -encodedcommand", "cmd /c", "start /b",
)

_COMMON_PATTERNS = (
    r"\beval\s*\(",
    r"\bexec\s*\(",
    r"<script>",
    r"`[^`]+`",
    r"\$\([^)]+\)",
)

_UNIX_PATTERNS = _COMMON_PATTERNS + (
    r"\brm\s+-rf\s+/",
    r"\brm\s+-rf\s+\*",
    r"\brm\s+-rf\s+~/",
    r"\brm\s+-[a-z]*r[a-z]*f",
    r"\brm\s+-[a-z]*f[a-z]*r",
    r"\bdd\s+if=",
    r"\bdd\s+of=",
    r"\bmkfs\.",
    r"\bfdisk\b",
    r"\bparted\b",
    r">\s*/dev/sd[a-z]",
    r">\s*/dev/nvme",
    r"\bcurl\b.*\|\s*(ba)?sh\b",
    r"\bwget\b.*\|\s*(ba)?sh\b",
    r"\bchmod\s+(-R\s+)?777",
    r"\bchown\s+-R\b",
    r"\bkill\s+-9\s+-1\b",
    r"\bkillall\s+-9\b",
    r":\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:",
    r"\bsudo\s+rm\b",
    r"\bsudo\s+dd\b",
    r"\bsystemctl\b.*\b(stop|disable)\b",
    r"\bservice\b.*\bstop\b",
    r"\binit\s+[06]\b",
    r"\bshutdown\s+-[hr]\b",
    r"\breboot\b",
    r"\bhalt\b",
    r">\s*/etc/",
    r">\s*/boot/",
    r">\s*/sys/",
)

_WINDOWS_PATTERNS = _COMMON_PATTERNS + (
    r"\bdel\s+/s\s+/q",
    r"\brmdir\s+/s\s+/q",
    r"\brd\s+/s\s+/q",
    r"\bformat\s+[a-z]:",
    r"\bdiskpart\b",
    r"\breg\s+delete\b",
    r"\breg\s+add\b.*/f",
    r"\bshutdown\s+/[sr]\b",
    r"\btaskkill\s+/f\b",
    r"\bnetsh\b.*\bdelete\b",
    r"\bsc\s+delete\b",
    r"\bwmic\b.*\bdelete\b",
    r"\bpowershell\b.*-encodedcommand",
    r"\biex\s*\(",
    r"\binvoke-expression\b",
    r"\|\s*powershell\b",
    r"\|\s*cmd\b",
    r">\s*[a-z]:\\(?:Windows|System32|Program Files)",
)

_COMMON_SENSITIVE = (
    r"\.env$",
    r"\.env\.",
    r"password",
    r"secret",
    r"credential",
    r"token",
    r"api[_-]?key",
    r"private[_-]?key",
    r"\.pem$",
    r"\.key$",
    r"\.crt$",
    r"\.p12$",
    r"\.pfx$",
)

_UNIX_SENSITIVE = _COMMON_SENSITIVE + (
    r"/\.ssh/",
    r"/\.aws/",
    r"/\.kube/",
    r"/\.docker/",
    r"/\.gnupg/",
    r"/\.config/gcloud/",
    r"/etc/passwd$",
    r"/etc/shadow$",
    r"/etc/sudoers",
    r"/etc/ssh/sshd_config$",
    r"/etc/ssl/",
    r"/root/",
    r"/var/log/auth",
    r"/var/log/secure",
    r"\.bash_history$",
    r"\.zsh_history$",
)

_WINDOWS_SENSITIVE = _COMMON_SENSITIVE + (
    r"\\\.ssh\\",
    r"\\\.aws\\",
    r"\\\.azure\\",
    r"\\AppData\\Roaming",
    r"\\AppData\\Local",
    r"HKEY_",
    r"\.reg$",
    r"SAM$",
    r"SYSTEM$",
    r"\\Windows\\System32\\config\\",
    r"\\boot\.ini$",
    r"\\ntuser\.dat",
)

_UNIX_SYSTEM_DIRS = (
    r"^/bin/", r"^/sbin/", r"^/usr/bin/", r"^/usr/sbin/", r"^/etc/", r"^/boot/",
    r"^/sys/", r"^/proc/", r"^/dev/", r"^/root/", r"^/var/log/",
    r"^/Library/", r"^/System/",
)

_WINDOWS_SYSTEM_DIRS = (
    r"^[a-z]:\\Windows\\",
    r"^[a-z]:\\Program Files",
    r"^[a-z]:\\System32",
    r"^[a-z]:\\ProgramData",
)


def profile_for(kind: str, shell: Optional[str] = None) -> PlatformProfile:
    """Build the profile of a platform kind (unix, macos, windows) explicitly."""
    if kind == WINDOWS:
        return PlatformProfile(
            kind=WINDOWS,
            shell=shell or "cmd",
            dangerous_commands=_WINDOWS_COMMANDS,
            dangerous_patterns=_compile(*_WINDOWS_PATTERNS),
            sensitive_files=_compile(*_WINDOWS_SENSITIVE),
            system_dirs=_compile(*_WINDOWS_SYSTEM_DIRS),
        )
    if kind not in (UNIX, MACOS):
        raise ValueError(f"Unknown platform kind: {kind!r}")
    return PlatformProfile(
        kind=kind,
        shell=shell or "bash",
        dangerous_commands=_UNIX_COMMANDS,
        dangerous_patterns=_compile(*_UNIX_PATTERNS),
        sensitive_files=_compile(*_UNIX_SENSITIVE),
        # System paths are case-sensitive on Unix
        system_dirs=_compile(*_UNIX_SYSTEM_DIRS, flags=0),
    )


def _detect_shell(kind: str) -> str:
    if kind == WINDOWS:
        return "powershell" if os.getenv("PSModulePath") else "cmd"
    shell = os.getenv("SHELL", "/bin/bash")
    if "zsh" in shell:
        return "zsh"
    if "bash" in shell:
        return "bash"
    return "sh"


@lru_cache(maxsize=1)
def detect_platform() -> PlatformProfile:
    """Profile of the running OS, detected once per process."""
    system = platform.system()
    if system == "Windows":
        kind = WINDOWS
    elif system == "Darwin":
        kind = MACOS
    else:
        kind = UNIX
    profile = profile_for(kind, _detect_shell(kind))
    logger.info(f"Platform profile: {profile.describe()}")
    return profile
