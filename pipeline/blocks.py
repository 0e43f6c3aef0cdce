"""
Fenced-block classification.

A block is the text strictly between an opening and a closing fence; its first
line is the fence annotation. Tool-call blocks look like::

    ```tool-call
    Tool: Edit
    Parameters:
      file_path: app.py
      old_string: "x = 1"
      new_string: "x = 2"
    ```

Artifact blocks carry a file path in the annotation (```python app/main.py)
and the file body verbatim.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple, Union

from .events import Artifact, ToolCall

logger = logging.getLogger(__name__)

TOOL_CALL_ANNOTATIONS = ("tool-call", "tool_call")

ARTIFACT_EXTENSIONS = (
    "ts", "js", "tsx", "jsx", "py", "java", "cpp", "c", "h", "css", "html", "json",
    "md", "txt", "sh", "yml", "yaml", "xml", "go", "rs", "rb", "php", "sql", "env",
    "toml", "cfg", "ini",
)

_ARTIFACT_HEADER_RE = re.compile(
    r"^(?:(\w+)\s+)?(\S+\.(?:" + "|".join(ARTIFACT_EXTENSIONS) + r"))$",
    re.IGNORECASE,
)
_TOOL_LINE_RE = re.compile(r"^\s*Tool:", re.MULTILINE)
_PARAMETERS_LINE_RE = re.compile(r"^\s*Parameters:", re.MULTILINE)


class BlockParseError(ValueError):
    """A block announced itself as a tool call but could not be read as one."""


def split_block(text: str) -> Tuple[str, str]:
    """(annotation, body) of a block."""
    annotation, _, body = text.partition("\n")
    return annotation.strip(), body


def looks_like_tool_call(body: str) -> bool:
    return bool(_TOOL_LINE_RE.search(body)) and bool(_PARAMETERS_LINE_RE.search(body))


def parse_value(raw: str) -> Any:
    """JSON value when the text is valid JSON, otherwise the text itself."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def parse_tool_call(body: str) -> ToolCall:
    """Read `Tool:` / `Parameters:` / `key: value` lines into a ToolCall."""
    name = ""
    params: Dict[str, Any] = {}
    in_params = False
    key: Optional[str] = None
    value_lines: List[str] = []

    def _flush():
        if key is not None:
            params[key] = parse_value("\n".join(value_lines).strip())

    for line in body.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if not in_params:
            if stripped.startswith("Tool:"):
                name = stripped[len("Tool:"):].strip()
            elif stripped.startswith("Parameters:"):
                in_params = True
            continue

        colon = stripped.find(":")
        if 0 < colon < len(stripped) - 1:
            _flush()
            key = stripped[:colon].strip()
            value_lines = [stripped[colon + 1:].strip()]
        elif key is not None:
            value_lines.append(stripped)
        else:
            logger.debug(f"Ignoring parameter line without a key: {stripped[:80]!r}")
    _flush()

    if not name:
        raise BlockParseError("tool-call block has no 'Tool:' line")
    return ToolCall(name=name, params=params)


def parse_artifact_header(annotation: str) -> Optional[Tuple[Optional[str], str]]:
    """(language, file_path) if the annotation names a file, else None."""
    m = _ARTIFACT_HEADER_RE.match(annotation)
    if not m:
        return None
    return m.group(1), m.group(2)


def parse_block(text: str) -> Union[ToolCall, Artifact, None]:
    """Classify one fenced block.

    Returns a ToolCall, an Artifact, or None for plain code. Raises
    BlockParseError for a tool-call block without a tool name.
    """
    annotation, body = split_block(text)

    if annotation.lower() in TOOL_CALL_ANNOTATIONS:
        return parse_tool_call(body)

    if looks_like_tool_call(body):
        # Models often label tool calls as json/text/markdown fences
        logger.info(f"Reading block annotated {annotation!r} as a tool call")
        return parse_tool_call(body)

    header = parse_artifact_header(annotation)
    if header:
        language, file_path = header
        return Artifact(file_path=file_path, content=body, language=language)
    return None
