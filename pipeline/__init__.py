"""
Pipeline package - turns streamed model output into executed tool calls.

Modules:
- events: Task, ToolCall, Artifact and PipelineEvent data types
- blocks: fenced-block classification (tool call, artifact, plain code)
- detector: incremental detection over a chunked stream
- platform_profile: OS-specific dangerous command and sensitive path patterns
- risk: risk classification of pending tool calls
- approval: approval gate and the rich console prompt
- hooks: user shell hooks around tool execution
- executor: sequential task queue
"""

from .events import (
    Artifact,
    ArtifactAction,
    FailureKind,
    InvalidTransition,
    PipelineEvent,
    Task,
    TaskKind,
    TaskStatus,
    ToolCall,
)
from .blocks import BlockParseError, parse_block
from .detector import StreamDetector
from .platform_profile import PlatformProfile, detect_platform, profile_for
from .risk import RiskAssessment, RiskAssessor, RiskLevel
from .approval import (
    ApprovalConfig,
    ApprovalDecision,
    ApprovalGate,
    ApprovalRequest,
    ConsoleApprovalPrompt,
)
from .hooks import HookDispatcher, HookOutcome
from .executor import SequentialExecutor

__all__ = [
    # Data types
    "Artifact",
    "ArtifactAction",
    "FailureKind",
    "InvalidTransition",
    "PipelineEvent",
    "Task",
    "TaskKind",
    "TaskStatus",
    "ToolCall",

    # Detection
    "BlockParseError",
    "parse_block",
    "StreamDetector",

    # Risk and approval
    "PlatformProfile",
    "detect_platform",
    "profile_for",
    "RiskAssessment",
    "RiskAssessor",
    "RiskLevel",
    "ApprovalConfig",
    "ApprovalDecision",
    "ApprovalGate",
    "ApprovalRequest",
    "ConsoleApprovalPrompt",

    # Execution
    "HookDispatcher",
    "HookOutcome",
    "SequentialExecutor",
]
