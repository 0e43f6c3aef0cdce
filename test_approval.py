"""Tests for the approval gate."""

import asyncio
from io import StringIO

from rich.console import Console

from config import ApprovalSettings
from pipeline.approval import (
    CHOICE_CANCEL,
    CHOICE_ONCE,
    CHOICE_REMEMBER,
    REASON_DECLINED,
    REASON_ONCE,
    REASON_PATTERN,
    REASON_REMEMBER,
    ApprovalConfig,
    ApprovalGate,
    ApprovalRequest,
    ConsoleApprovalPrompt,
    remember_signature,
    truncate_params,
)
from pipeline.platform_profile import profile_for
from pipeline.risk import RiskAssessment, RiskAssessor, RiskLevel
from tools import TOOLS_REQUIRING_APPROVAL


class ScriptedPrompt:
    """Answers approval requests from a list and records what it was shown."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.requests = []

    async def __call__(self, request):
        self.requests.append(request)
        return self.answers.pop(0)


def _gate(prompt=None, patterns=()):
    config = ApprovalConfig(
        enabled=True,
        tools_requiring_approval={"Bash": True, "Write": True, "Read": False},
        auto_approve_patterns=tuple(patterns),
    )
    return ApprovalGate(config, RiskAssessor(profile_for("unix")), prompt_fn=prompt)


def test_requires_approval():
    gate = _gate()
    assert gate.requires_approval("Bash")
    assert not gate.requires_approval("Read")
    assert not gate.requires_approval("Unknown")
    gate.config.enabled = False
    assert not gate.requires_approval("Bash")


def test_config_from_settings():
    settings = ApprovalSettings(enabled=True, tools=("Bash", "GitPush"), auto_approve_patterns=("npm test",))
    config = ApprovalConfig.from_settings(settings, TOOLS_REQUIRING_APPROVAL)
    assert config.tools_requiring_approval["Bash"] is True
    assert config.tools_requiring_approval["GitPush"] is True
    assert config.tools_requiring_approval["Write"] is False
    assert config.auto_approve_patterns == ("npm test",)


def test_pattern_match_skips_prompt():
    prompt = ScriptedPrompt()
    gate = _gate(prompt, patterns=("NPM TEST",))
    decision = asyncio.run(gate.request("Bash", {"command": "npm test -- --watch=false"}))
    assert decision.approved
    assert decision.reason == REASON_PATTERN
    assert prompt.requests == []


def test_approve_once():
    prompt = ScriptedPrompt(CHOICE_ONCE)
    gate = _gate(prompt)
    decision = asyncio.run(gate.request("Bash", {"command": "ls"}))
    assert decision.approved
    assert decision.reason == REASON_ONCE
    assert decision.risk.level == RiskLevel.LOW
    assert gate.session_patterns == []


def test_cancel_declines():
    gate = _gate(ScriptedPrompt(CHOICE_CANCEL))
    decision = asyncio.run(gate.request("Bash", {"command": "ls"}))
    assert not decision.approved
    assert decision.reason == REASON_DECLINED


def test_remember_extends_session_patterns():
    prompt = ScriptedPrompt(CHOICE_REMEMBER)
    gate = _gate(prompt)

    async def run():
        first = await gate.request("Bash", {"command": "pytest -x tests"})
        second = await gate.request("Bash", {"command": "pytest -k smoke"})
        return first, second

    first, second = asyncio.run(run())
    assert first.reason == REASON_REMEMBER
    assert first.remembered == "pytest"
    assert second.reason == REASON_PATTERN
    assert len(prompt.requests) == 1
    assert gate.config.auto_approve_patterns == ()

    gate.reset_auto_approve()
    assert gate.session_patterns == []


def test_critical_risk_defaults_to_cancel():
    prompt = ScriptedPrompt(CHOICE_CANCEL, CHOICE_ONCE)
    gate = _gate(prompt)

    async def run():
        await gate.request("Bash", {"command": "rm -rf /"})
        await gate.request("Bash", {"command": "ls"})

    asyncio.run(run())
    assert prompt.requests[0].default == CHOICE_CANCEL
    assert prompt.requests[0].risk.level == RiskLevel.CRITICAL
    assert prompt.requests[1].default == CHOICE_ONCE


def test_prompt_failure_declines():
    async def broken(request):
        raise RuntimeError("terminal closed")

    gate = _gate(broken)
    decision = asyncio.run(gate.request("Bash", {"command": "ls"}))
    assert not decision.approved
    assert decision.reason == REASON_DECLINED


def test_no_prompt_declines():
    decision = asyncio.run(_gate().request("Write", {"file_path": "a.txt", "content": "x"}))
    assert not decision.approved


def test_statistics_and_history():
    gate = _gate(ScriptedPrompt(CHOICE_ONCE, CHOICE_CANCEL), patterns=("echo",))

    async def run():
        await gate.request("Bash", {"command": "echo hi"})
        await gate.request("Bash", {"command": "ls"})
        await gate.request("Write", {"file_path": "a.txt", "content": "x"})

    asyncio.run(run())
    stats = gate.statistics()
    assert stats["total"] == 3
    assert stats["approved"] == 2
    assert stats["declined"] == 1
    assert stats["auto_approved"] == 1
    assert stats["by_tool"] == {
        "Bash": {"approved": 2, "declined": 0},
        "Write": {"approved": 0, "declined": 1},
    }

    gate.clear_history()
    assert gate.statistics()["total"] == 0


def test_remember_signature():
    assert remember_signature("Bash", {"command": "NPM run build"}) == "npm"
    assert remember_signature("Write", {"file_path": "Src/App.py"}) == "src/app.py"
    assert remember_signature("Edit", {"path": "a.txt"}) == "a.txt"
    assert remember_signature("GitPush", {}) == "gitpush"
    assert remember_signature("Bash", {"command": ""}) == "bash"


def test_truncate_params():
    out = truncate_params({"content": "x" * 250, "line_number": 3})
    assert out["content"].startswith("x" * 200)
    assert "50 more chars" in out["content"]
    assert out["line_number"] == 3


def test_console_prompt_renders_risk_and_params():
    console = Console(file=StringIO(), width=100, color_system=None)
    prompt = ConsoleApprovalPrompt(console)
    risk = RiskAssessment(RiskLevel.HIGH, ["Runs with elevated privileges"])
    console.print(prompt.render(ApprovalRequest("Bash", {"command": "sudo ls"}, risk)))
    output = console.file.getvalue()
    assert "Approval required" in output
    assert "HIGH" in output
    assert "Runs with elevated privileges" in output
    assert "sudo ls" in output
