"""
Tools invoked by detected tool calls.
Every tool takes the session Backend first and returns a ToolResult; failures are values, not exceptions.
"""

from tools._common import ToolResult  # noqa: F401
from tools.gitignore import filter_paths, invalidate_gitignore_cache  # noqa: F401
from tools.smart_edit import EditResult, apply_edit, line_preview  # noqa: F401
from tools.file_ops import read_file, write_file, edit_file  # noqa: F401
from tools.search_ops import glob_find, grep  # noqa: F401
from tools.external_ops import run_command, todo_write  # noqa: F401
from tools.git_ops import git_status, git_diff, git_commit, git_push  # noqa: F401
from tools.schemas import (  # noqa: F401
    TOOL_DEFINITIONS,
    TOOL_IMPLEMENTATIONS,
    TOOL_NAME_NORMALIZE,
    TOOLS_REQUIRING_APPROVAL,
)
from tools.dispatch import ToolRegistry, build_default_registry  # noqa: F401
