"""
Approval gate: decides whether a pending tool call may run.

Order of checks: configuration (is the tool gated at all), the configured and
session auto-approve patterns, then an interactive prompt scored by the
RiskAssessor. "Remember" answers extend a session allow-list owned by the
gate; the configured ApprovalConfig is never mutated.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from rich.console import Console
from rich.markup import escape as rich_escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from config import ApprovalSettings, approval_tool_names
from .risk import RiskAssessment, RiskAssessor, RiskLevel

logger = logging.getLogger(__name__)

CHOICE_ONCE = "once"
CHOICE_CANCEL = "cancel"
CHOICE_REMEMBER = "remember"
CHOICES = (CHOICE_ONCE, CHOICE_CANCEL, CHOICE_REMEMBER)

REASON_PATTERN = "auto-approved by pattern"
REASON_ONCE = "approved by user"
REASON_REMEMBER = "approved by user (remembered)"
REASON_DECLINED = "declined by user"

_PARAM_PREVIEW_CHARS = 200


@dataclass
class ApprovalConfig:
    """Which tools need approval, plus the configured auto-approve substrings"""
    enabled: bool = True
    tools_requiring_approval: Dict[str, bool] = field(default_factory=dict)
    auto_approve_patterns: Tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings: ApprovalSettings,
                      known_tools: Optional[Dict[str, bool]] = None) -> "ApprovalConfig":
        gated = set(approval_tool_names(settings))
        tools = {name: name in gated for name in (known_tools or {})}
        tools.update({name: True for name in gated})
        return cls(
            enabled=settings.enabled,
            tools_requiring_approval=tools,
            auto_approve_patterns=tuple(settings.auto_approve_patterns),
        )


@dataclass
class ApprovalRequest:
    """What the prompt shows the user"""
    tool_name: str
    params: Dict[str, Any]
    risk: RiskAssessment
    default: str = CHOICE_ONCE


@dataclass
class ApprovalDecision:
    approved: bool
    reason: str
    remembered: Optional[str] = None
    risk: Optional[RiskAssessment] = None


@dataclass
class ApprovalRecord:
    tool_name: str
    approved: bool
    reason: str
    risk_level: Optional[RiskLevel] = None
    timestamp: float = field(default_factory=time.time)


PromptFn = Callable[[ApprovalRequest], Awaitable[str]]


def truncate_params(params: Dict[str, Any], limit: int = _PARAM_PREVIEW_CHARS) -> Dict[str, Any]:
    """Copy of params with every string value cut to `limit` characters."""
    out = {}
    for key, value in params.items():
        if isinstance(value, str) and len(value) > limit:
            out[key] = value[:limit] + f"... ({len(value) - limit} more chars)"
        else:
            out[key] = value
    return out


def remember_signature(tool_name: str, params: Dict[str, Any]) -> str:
    """Allow-list entry derived from an approved call."""
    if tool_name == "Bash":
        words = str(params.get("command") or "").split()
        if words:
            return words[0].lower()
    elif tool_name in ("Write", "Edit"):
        path = params.get("file_path") or params.get("path")
        if path:
            return str(path).lower()
    return tool_name.lower()


class ApprovalGate:
    """Per-session approval state: config, session allow-list and decision history."""

    def __init__(self, config: ApprovalConfig, assessor: RiskAssessor,
                 prompt_fn: Optional[PromptFn] = None):
        self.config = config
        self.assessor = assessor
        self.prompt_fn = prompt_fn
        self.session_patterns: List[str] = []
        self.history: List[ApprovalRecord] = []

    def requires_approval(self, tool_name: str) -> bool:
        if not self.config.enabled:
            return False
        return bool(self.config.tools_requiring_approval.get(tool_name, False))

    def matching_pattern(self, params: Dict[str, Any]) -> Optional[str]:
        serialized = json.dumps(params, default=str).lower()
        for pattern in list(self.config.auto_approve_patterns) + self.session_patterns:
            if pattern and pattern.lower() in serialized:
                return pattern
        return None

    async def request(self, tool_name: str, params: Optional[Dict[str, Any]] = None) -> ApprovalDecision:
        """Ask whether tool_name may run with params. Never raises for prompt failures."""
        params = params or {}
        pattern = self.matching_pattern(params)
        if pattern is not None:
            logger.info(f"{tool_name} auto-approved by pattern {pattern!r}")
            return self._record(tool_name, ApprovalDecision(approved=True, reason=REASON_PATTERN))

        risk = self.assessor.assess(tool_name, params)
        default = CHOICE_CANCEL if risk.level == RiskLevel.CRITICAL else CHOICE_ONCE
        if self.prompt_fn is None:
            logger.warning(f"No approval prompt configured; declining {tool_name}")
            return self._record(tool_name, ApprovalDecision(False, REASON_DECLINED, risk=risk))

        try:
            choice = await self.prompt_fn(ApprovalRequest(tool_name, params, risk, default))
        except Exception:
            logger.exception(f"Approval prompt failed for {tool_name}")
            choice = CHOICE_CANCEL

        if choice == CHOICE_REMEMBER:
            signature = remember_signature(tool_name, params)
            if signature not in self.session_patterns:
                self.session_patterns.append(signature)
            logger.info(f"{tool_name} approved; remembering {signature!r} for this session")
            decision = ApprovalDecision(True, REASON_REMEMBER, remembered=signature, risk=risk)
        elif choice == CHOICE_ONCE:
            decision = ApprovalDecision(True, REASON_ONCE, risk=risk)
        else:
            logger.info(f"{tool_name} declined (risk {risk.level.label})")
            decision = ApprovalDecision(False, REASON_DECLINED, risk=risk)
        return self._record(tool_name, decision)

    def _record(self, tool_name: str, decision: ApprovalDecision) -> ApprovalDecision:
        self.history.append(ApprovalRecord(
            tool_name=tool_name,
            approved=decision.approved,
            reason=decision.reason,
            risk_level=decision.risk.level if decision.risk else None,
        ))
        return decision

    def statistics(self) -> Dict[str, Any]:
        by_tool: Dict[str, Dict[str, int]] = {}
        for rec in self.history:
            counts = by_tool.setdefault(rec.tool_name, {"approved": 0, "declined": 0})
            counts["approved" if rec.approved else "declined"] += 1
        approved = sum(1 for r in self.history if r.approved)
        return {
            "total": len(self.history),
            "approved": approved,
            "declined": len(self.history) - approved,
            "auto_approved": sum(1 for r in self.history if r.reason == REASON_PATTERN),
            "by_tool": by_tool,
        }

    def clear_history(self) -> None:
        self.history.clear()

    def reset_auto_approve(self) -> None:
        self.session_patterns.clear()


# ============================================================
# Console prompt
# ============================================================

_LEVEL_STYLES = {
    RiskLevel.LOW: "#3fb950",
    RiskLevel.MEDIUM: "#e3b341",
    RiskLevel.HIGH: "#f85149",
    RiskLevel.CRITICAL: "bold #f85149",
}


class ConsoleApprovalPrompt:
    """Renders an approval request with rich and reads the answer from the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render(self, request: ApprovalRequest) -> Panel:
        style = _LEVEL_STYLES[request.risk.level]
        table = Table.grid(padding=(0, 1))
        table.add_column(style="#8b949e")
        table.add_column()
        table.add_row("Tool", f"[bold]{rich_escape(request.tool_name)}[/bold]")
        table.add_row("Risk", f"[{style}]{request.risk.level.label.upper()}[/{style}]")
        for warning in request.risk.warnings:
            table.add_row("", f"[#e3b341]⚠ {rich_escape(warning)}[/#e3b341]")
        params = json.dumps(truncate_params(request.params), indent=2, default=str)
        table.add_row("Params", rich_escape(params))
        return Panel(table, title="Approval required", border_style=style)

    def _ask(self, request: ApprovalRequest) -> str:
        self.console.print(self.render(request))
        return Prompt.ask(
            "Execute once, cancel, or execute and remember?",
            console=self.console,
            choices=list(CHOICES),
            default=request.default,
        )

    async def __call__(self, request: ApprovalRequest) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._ask, request)
