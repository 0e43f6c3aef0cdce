"""
Configuration module for Stream Runner.
Handles environment variables and application settings for the execution pipeline.
"""

import os
from dataclasses import dataclass, field
from typing import List, Tuple
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_list(name: str, default: str = "") -> Tuple[str, ...]:
    """Comma-separated environment variable as a tuple of non-empty items."""
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


# Tools gated by the approval prompt unless APPROVAL_TOOLS overrides them
DEFAULT_APPROVAL_TOOLS = "Bash,Write,Edit,GitCommit,GitPush"


@dataclass
class ApprovalSettings:
    """Approval gate configuration"""
    enabled: bool = _env_bool("APPROVAL_ENABLED", "true")
    tools: Tuple[str, ...] = _env_list("APPROVAL_TOOLS", DEFAULT_APPROVAL_TOOLS)
    # Substrings that approve a call silently when found in its serialized parameters
    auto_approve_patterns: Tuple[str, ...] = _env_list("AUTO_APPROVE_PATTERNS")


@dataclass
class AppConfig:
    """Application-specific configuration"""
    title: str = "Stream Runner"
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_file: str = os.getenv("LOG_FILE", "stream_runner.log")
    working_directory: str = os.getenv("WORKING_DIRECTORY", ".")
    # Shell commands run by the Bash tool
    command_timeout: int = int(os.getenv("COMMAND_TIMEOUT", "30"))
    # Hooks: user commands fired around each tool call
    hooks_enabled: bool = _env_bool("HOOKS_ENABLED", "true")
    hook_timeout: float = float(os.getenv("HOOK_TIMEOUT", "30"))
    # Boss mode: skip every approval prompt for the whole session
    bypass_approvals: bool = _env_bool("BYPASS_APPROVALS", "false")
    # Send file artifacts through the approval gate as Write calls
    approve_artifacts: bool = _env_bool("APPROVE_ARTIFACTS", "false")
    long_command_threshold: int = int(os.getenv("LONG_COMMAND_THRESHOLD", "150"))
    protected_branches: Tuple[str, ...] = _env_list("PROTECTED_BRANCHES", "main,master")
    approval: ApprovalSettings = field(default_factory=ApprovalSettings)

    def state_directory(self) -> str:
        """Per-project directory holding hooks and other runner state."""
        return os.path.join(os.path.abspath(self.working_directory), ".stream-runner")

    def hooks_path(self) -> str:
        return os.path.join(self.state_directory(), "hooks.json")


def approval_tool_names(settings: ApprovalSettings) -> List[str]:
    """Return the approval-gated tool names in configured order."""
    return list(dict.fromkeys(settings.tools))
