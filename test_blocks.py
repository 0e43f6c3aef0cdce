"""Tests for fenced-block classification."""

import pytest

from pipeline.blocks import BlockParseError, parse_block, parse_artifact_header
from pipeline.events import Artifact, ToolCall


def test_tool_call_block():
    unit = parse_block("tool-call\nTool: Read\nParameters:\n  file_path: a.txt")
    assert isinstance(unit, ToolCall)
    assert unit.name == "Read"
    assert unit.params == {"file_path": "a.txt"}


def test_tool_call_underscore_annotation_and_no_params():
    unit = parse_block("tool_call\nTool: GitStatus\nParameters:")
    assert unit == ToolCall(name="GitStatus", params={})


def test_values_are_json_decoded_when_possible():
    body = "\n".join([
        "tool-call",
        "Tool: Edit",
        "Parameters:",
        "  file_path: app.py",
        '  old_string: "x = 1"',
        "  line_number: 3",
        "  replace_all: true",
        '  files: ["a.py", "b.py"]',
    ])
    unit = parse_block(body)
    assert unit.params == {
        "file_path": "app.py",
        "old_string": "x = 1",
        "line_number": 3,
        "replace_all": True,
        "files": ["a.py", "b.py"],
    }


def test_continuation_lines_join_previous_value():
    body = "tool-call\nTool: Write\nParameters:\n  file_path: notes.txt\n  content: first line\n  second line\n\n  third line"
    unit = parse_block(body)
    assert unit.params["content"] == "first line\nsecond line\nthird line"


def test_line_ending_in_colon_is_a_continuation():
    body = "tool-call\nTool: Write\nParameters:\n  file_path: a.txt\n  content: intro\n  items:"
    unit = parse_block(body)
    assert unit.params["content"] == "intro\nitems:"


def test_parameter_order_is_preserved():
    body = "tool-call\nTool: Bash\nParameters:\n  command: ls\n  cwd: src\n  timeout: 5"
    assert list(parse_block(body).params) == ["command", "cwd", "timeout"]


def test_missing_tool_name_raises():
    with pytest.raises(BlockParseError):
        parse_block("tool-call\nParameters:\n  command: ls")


def test_artifact_block_with_language():
    unit = parse_block("python src/app.py\nprint('hi')\n")
    assert isinstance(unit, Artifact)
    assert unit.file_path == "src/app.py"
    assert unit.language == "python"
    assert unit.content == "print('hi')\n"
    assert unit.content_hash


def test_artifact_block_without_language():
    unit = parse_block("docs/notes.md\n# Title")
    assert isinstance(unit, Artifact)
    assert unit.language is None
    assert unit.file_path == "docs/notes.md"


@pytest.mark.parametrize("annotation", ["pyproject.toml", "setup.cfg", "config.ini", "ts web/index.ts"])
def test_artifact_extension_allow_list(annotation):
    assert isinstance(parse_block(f"{annotation}\nbody"), Artifact)


@pytest.mark.parametrize("annotation", ["python", "", "bash", "tool.exe", "a b c.py"])
def test_plain_code_blocks_are_not_instructions(annotation):
    assert parse_block(f"{annotation}\nprint(1)") is None


def test_mislabeled_tool_call_is_recovered():
    unit = parse_block("json\nTool: Bash\nParameters:\n  command: ls -la")
    assert unit == ToolCall(name="Bash", params={"command": "ls -la"})


def test_tool_call_inside_artifact_annotation_is_recovered():
    unit = parse_block("md plan.md\nTool: Glob\nParameters:\n  pattern: **/*.py")
    assert isinstance(unit, ToolCall)
    assert unit.params == {"pattern": "**/*.py"}


def test_parse_artifact_header_does_not_split_file_name():
    assert parse_artifact_header("main.py") == (None, "main.py")
    assert parse_artifact_header("python main.py") == ("python", "main.py")


def test_tool_call_signature_includes_params():
    a = ToolCall("Read", {"file_path": "a.txt"})
    b = ToolCall("Read", {"file_path": "b.txt"})
    assert a.signature() != b.signature()
    assert a.signature() == ToolCall("Read", {"file_path": "a.txt"}).signature()
