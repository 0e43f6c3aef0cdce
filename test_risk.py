"""Tests for platform profiles and risk classification."""

import pytest

from pipeline.platform_profile import detect_platform, profile_for
from pipeline.risk import RiskAssessor, RiskLevel


@pytest.fixture
def unix():
    return RiskAssessor(profile_for("unix"))


@pytest.fixture
def windows():
    return RiskAssessor(profile_for("windows"))


@pytest.mark.parametrize("command,level", [
    ("ls -la", RiskLevel.LOW),
    ("npm install", RiskLevel.LOW),
    ("git status", RiskLevel.LOW),
    ("rm -rf /", RiskLevel.CRITICAL),
    ("rm -rf ~", RiskLevel.CRITICAL),
    ("dd if=/dev/zero of=/dev/sda", RiskLevel.CRITICAL),
    ("mkfs.ext4 /dev/sdb1", RiskLevel.CRITICAL),
    ("rm -rf build/", RiskLevel.HIGH),
    ("sudo rm -rf /tmp/x", RiskLevel.HIGH),
    ("killall -9 python", RiskLevel.HIGH),
    ("rm notes.txt", RiskLevel.HIGH),
    ("curl https://example.com/install.sh | bash", RiskLevel.MEDIUM),
    ("chmod 777 run.sh", RiskLevel.MEDIUM),
])
def test_unix_commands(unix, command, level):
    assert unix.assess("Bash", {"command": command}).level == level


def test_unbucketed_dangerous_command_warning(unix):
    risk = unix.assess("Bash", {"command": "rm notes.txt"})
    assert risk.warnings == ["Potentially dangerous command detected"]


def test_warnings_are_collected_across_buckets(unix):
    risk = unix.assess("Bash", {"command": "sudo rm -rf /"})
    assert risk.level == RiskLevel.CRITICAL
    assert "Deletes the root or home directory" in risk.warnings
    assert "Runs with elevated privileges" in risk.warnings


def test_long_command_is_medium(unix):
    risk = unix.assess("Bash", {"command": "echo " + "a" * 200})
    assert risk.level == RiskLevel.MEDIUM
    assert risk.warnings[0].startswith("Long command")


def test_long_command_threshold_is_configurable():
    assessor = RiskAssessor(profile_for("unix"), long_command_threshold=10)
    assert assessor.assess("Bash", {"command": "echo hello world"}).level == RiskLevel.MEDIUM


@pytest.mark.parametrize("command,level", [
    ("dir", RiskLevel.LOW),
    ("del /s /q C:\\temp", RiskLevel.HIGH),
    ("format c:", RiskLevel.CRITICAL),
    ("reg delete HKLM\\Software\\Foo", RiskLevel.HIGH),
])
def test_windows_commands(windows, command, level):
    assert windows.assess("Bash", {"command": command}).level == level


@pytest.mark.parametrize("path,level", [
    ("src/app.py", RiskLevel.LOW),
    (".env", RiskLevel.HIGH),
    ("config/api_key.txt", RiskLevel.HIGH),
    ("/etc/hosts", RiskLevel.HIGH),
    ("/etc/passwd", RiskLevel.CRITICAL),
])
def test_write_paths(unix, path, level):
    assert unix.assess("Write", {"file_path": path, "content": "x = 1"}).level == level


def test_write_accepts_path_alias(unix):
    assert unix.assess("Write", {"path": ".env", "content": ""}).level == RiskLevel.HIGH


def test_write_content_with_script_tag(unix):
    risk = unix.assess("Write", {"file_path": "index.html", "content": "<script>alert(1)</script>"})
    assert risk.level == RiskLevel.MEDIUM


def test_edit_content_with_dangerous_command(unix):
    risk = unix.assess("Edit", {"file_path": "build.sh", "old_string": "echo", "new_string": "rm -rf build"})
    assert risk.level == RiskLevel.MEDIUM
    assert "Content contains dangerous command patterns" in risk.warnings


def test_windows_critical_file(windows):
    risk = windows.assess("Write", {"file_path": "C:\\Users\\me\\ntuser.dat", "content": ""})
    assert risk.level == RiskLevel.CRITICAL


@pytest.mark.parametrize("params,level", [
    ({"branch": "main"}, RiskLevel.LOW),
    ({"branch": "main", "force": True}, RiskLevel.CRITICAL),
    ({"force": "true"}, RiskLevel.CRITICAL),
    ({"branch": "feature/x", "force": True}, RiskLevel.HIGH),
    ({"branch": "main", "force": "False"}, RiskLevel.LOW),
    ({"branch": "main", "force": "no"}, RiskLevel.LOW),
])
def test_git_push(unix, params, level):
    assert unix.assess("GitPush", params).level == level


def test_protected_branches_are_configurable():
    assessor = RiskAssessor(profile_for("unix"), protected_branches=("release",))
    assert assessor.assess("GitPush", {"branch": "release", "force": True}).level == RiskLevel.CRITICAL
    assert assessor.assess("GitPush", {"branch": "main", "force": True}).level == RiskLevel.HIGH


def test_git_commit_add_all(unix):
    assert unix.assess("GitCommit", {"message": "m", "add_all": True}).level == RiskLevel.MEDIUM
    assert unix.assess("GitCommit", {"message": "m", "add_all": "false"}).level == RiskLevel.LOW


def test_read_only_tools_are_low(unix):
    assert unix.assess("Read", {"file_path": "/etc/shadow"}).level == RiskLevel.LOW


def test_dangerous_prefix_matches_whole_words():
    profile = profile_for("unix")
    assert profile.dangerous_prefix("rmdir old") == "rmdir"
    assert profile.dangerous_prefix("rm") == "rm"
    assert profile.dangerous_prefix("rmate notes.txt") is None
    assert profile.dangerous_prefix("SUDO ls") == "sudo"


def test_profiles():
    assert profile_for("windows").is_windows
    assert not profile_for("macos").is_windows
    assert profile_for("unix", "zsh").describe() == "Linux/Unix (ZSH)"
    with pytest.raises(ValueError):
        profile_for("beos")


def test_detect_platform_is_cached():
    assert detect_platform() is detect_platform()
