"""Tool schema definitions and the name -> implementation map."""

from typing import Any, Dict, List

from tools.file_ops import read_file, write_file, edit_file
from tools.search_ops import glob_find, grep
from tools.external_ops import run_command, todo_write
from tools.git_ops import git_status, git_diff, git_commit, git_push


TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": "Read",
        "description": "Read a file from the working directory. Returns line-numbered content. Large files are summarised; use offset/limit to page.",
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "File path (relative to working directory)"},
                "offset": {"type": "integer", "description": "1-based line to start reading from"},
                "limit": {"type": "integer", "description": "Number of lines to read"},
            },
            "required": ["file_path"],
        },
    },
    {
        "name": "Write",
        "description": "Create a file or overwrite it completely. Parent directories are created.",
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "File path (relative to working directory)"},
                "content": {"type": "string", "description": "Full file content"},
            },
            "required": ["file_path", "content"],
        },
    },
    {
        "name": "Edit",
        "description": "Replace text in a file. Tries the given line number, then an exact match, then whitespace-tolerant matching. Fails instead of guessing when the target is ambiguous.",
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "File path (relative to working directory)"},
                "old_string": {"type": "string", "description": "Text to replace"},
                "new_string": {"type": "string", "description": "Replacement text"},
                "replace_all": {"type": "boolean", "description": "Replace every exact occurrence (default: false)"},
                "line_number": {"type": "integer", "description": "1-based line that contains old_string"},
            },
            "required": ["file_path", "old_string", "new_string"],
        },
    },
    {
        "name": "Glob",
        "description": "Find files matching a glob pattern (e.g. **/*.py). Respects .gitignore.",
        "input_schema": {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Glob pattern"},
                "path": {"type": "string", "description": "Directory to search in (default: working directory)"},
                "ignore": {"type": "array", "items": {"type": "string"}, "description": "Extra gitignore-style patterns to skip"},
            },
            "required": ["pattern"],
        },
    },
    {
        "name": "Grep",
        "description": "Search file contents with a regular expression. Returns path:line:text matches.",
        "input_schema": {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Regex to search for"},
                "path": {"type": "string", "description": "File or directory to search (default: working directory)"},
                "file_pattern": {"type": "string", "description": "Glob to filter files, e.g. *.py"},
                "case_insensitive": {"type": "boolean", "description": "Ignore case (default: false)"},
            },
            "required": ["pattern"],
        },
    },
    {
        "name": "Bash",
        "description": "Run a shell command in the working directory and return its output.",
        "input_schema": {
            "type": "object",
            "properties": {
                "command": {"type": "string", "description": "Shell command"},
                "cwd": {"type": "string", "description": "Directory to run in, relative to the working directory"},
                "timeout": {"type": "integer", "description": "Timeout in seconds"},
                "run_in_background": {"type": "boolean", "description": "Start detached and return immediately"},
            },
            "required": ["command"],
        },
    },
    {
        "name": "GitStatus",
        "description": "Show git status and the current branch.",
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": "GitDiff",
        "description": "Show unstaged or staged changes.",
        "input_schema": {
            "type": "object",
            "properties": {
                "staged": {"type": "boolean", "description": "Show staged changes (git diff --cached)"},
                "file": {"type": "string", "description": "Limit the diff to one file"},
            },
        },
    },
    {
        "name": "GitCommit",
        "description": "Stage changes and create a commit.",
        "input_schema": {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Commit message (generated from the diff stat if omitted)"},
                "add_all": {"type": "boolean", "description": "Stage all changes first (git add -A)"},
                "files": {"type": "array", "items": {"type": "string"}, "description": "Specific files to stage"},
            },
        },
    },
    {
        "name": "GitPush",
        "description": "Push commits to a remote. Never force push to a protected branch without being asked.",
        "input_schema": {
            "type": "object",
            "properties": {
                "remote": {"type": "string", "description": "Remote name (default: origin)"},
                "branch": {"type": "string", "description": "Branch to push (default: current branch)"},
                "force": {"type": "boolean", "description": "Force push"},
                "set_upstream": {"type": "boolean", "description": "Set upstream (git push -u)"},
            },
        },
    },
    {
        "name": "TodoWrite",
        "description": "Replace the task checklist for this session. Each item needs content and status (pending, in_progress, completed, cancelled).",
        "input_schema": {
            "type": "object",
            "properties": {
                "todos": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "content": {"type": "string"},
                            "status": {"type": "string", "enum": ["pending", "in_progress", "completed", "cancelled"]},
                            "activeForm": {"type": "string"},
                        },
                        "required": ["content", "status"],
                    },
                },
            },
            "required": ["todos"],
        },
    },
]


TOOL_IMPLEMENTATIONS = {
    "Read": read_file,
    "Write": write_file,
    "Edit": edit_file,
    "Glob": glob_find,
    "Grep": grep,
    "Bash": run_command,
    "GitStatus": git_status,
    "GitDiff": git_diff,
    "GitCommit": git_commit,
    "GitPush": git_push,
    "TodoWrite": todo_write,
}

# Lower-case and legacy spellings models emit for the same tools
TOOL_NAME_NORMALIZE = {
    "read_file": "Read",
    "write_file": "Write",
    "edit_file": "Edit",
    "run_command": "Bash",
    "bash": "Bash",
    "search": "Grep",
    "glob": "Glob",
}

# Default approval map; ApprovalSettings.tools decides which ones are gated at runtime
TOOLS_REQUIRING_APPROVAL = {
    "Bash": True,
    "Write": True,
    "Edit": True,
    "GitCommit": True,
    "GitPush": True,
    "Read": False,
    "Glob": False,
    "Grep": False,
    "GitStatus": False,
    "GitDiff": False,
    "TodoWrite": False,
}
