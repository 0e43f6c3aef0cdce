"""
Incremental detection of tool calls and artifacts in streamed model output.

The detector scans buffer + chunk line by line with a fence-balance state
machine. Only complete blocks are parsed. What it hands back as the next
buffer is the smallest suffix it still needs: the partial last line when no
block is open, or the text from the open fence onward.
"""

import logging
from typing import List, Optional, Tuple

from backend import Backend
from .blocks import BlockParseError, parse_block
from .events import Artifact, ArtifactAction, Task, TaskKind, ToolCall

logger = logging.getLogger(__name__)

FENCE = "```"


class StreamDetector:
    """Turns a chunked text stream into DETECTED tasks, each unit at most once per turn."""

    def __init__(self, backend: Optional[Backend] = None):
        self.backend = backend
        self.hints: List[str] = []
        self._buffer = ""
        self._seen = set()
        self._counter = 0
        # Inner text of a block closed before its closing line ended
        self._closed_early: Optional[str] = None

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def in_block(self) -> bool:
        return self._buffer.startswith(FENCE) and "\n" in self._buffer

    def feed(self, chunk: str) -> List[Task]:
        tasks, self._buffer = self.detect(self._buffer, chunk)
        return tasks

    def flush(self) -> List[Task]:
        """End of stream: settle the last line and drop any unterminated block."""
        tasks, rest = self.detect(self._buffer, "\n") if self._buffer else ([], "")
        if rest.strip():
            annotation = rest.split("\n", 1)[0][len(FENCE):].strip()
            logger.warning(f"Stream ended inside an unterminated block ({annotation or 'no annotation'}); "
                           f"{len(rest)} chars dropped")
        self._buffer = ""
        self._closed_early = None
        return tasks

    def reset(self) -> None:
        """Start a new turn. Task ids keep counting."""
        self._buffer = ""
        self._seen.clear()
        self._closed_early = None
        self.hints.clear()

    def detect(self, buffer: str, chunk: str) -> Tuple[List[Task], str]:
        """Scan buffer + chunk. Returns (new tasks, next buffer)."""
        text = buffer + chunk
        tasks: List[Task] = []
        pos = 0
        open_at: Optional[int] = None

        while pos < len(text):
            newline = text.find("\n", pos)
            line_end = newline if newline != -1 else len(text)
            line = text[pos:line_end]

            if open_at is None:
                if newline == -1:
                    break  # annotation may still be growing
                if line.startswith(FENCE):
                    open_at = pos
                pos = newline + 1
                continue

            if not line.startswith(FENCE):
                if newline == -1:
                    break
                pos = newline + 1
                continue

            inner = text[open_at + len(FENCE):max(pos - 1, open_at + len(FENCE))]
            if newline == -1:
                # Closing fence without its newline: emit now, keep the block so the
                # rest of this line is consumed once it arrives
                if inner != self._closed_early:
                    task = self._process(inner)
                    if task:
                        tasks.append(task)
                    self._closed_early = inner
                return tasks, text[open_at:]

            if inner == self._closed_early and open_at == 0:
                self._closed_early = None
            else:
                task = self._process(inner)
                if task:
                    tasks.append(task)
            open_at = None
            pos = newline + 1

        rest = text[open_at:] if open_at is not None else text[pos:]
        return tasks, rest

    def _process(self, inner: str) -> Optional[Task]:
        try:
            unit = parse_block(inner)
        except BlockParseError as e:
            logger.warning(f"Unparseable tool-call block: {e}")
            self.hints.append(
                f"{e}. Tool calls need a 'Tool: <name>' line followed by 'Parameters:' and 'key: value' lines."
            )
            return None
        if unit is None:
            return None

        signature = unit.signature() if isinstance(unit, ToolCall) else unit.content_hash
        if signature in self._seen:
            logger.debug(f"Skipping duplicate {'tool call' if isinstance(unit, ToolCall) else 'artifact'}")
            return None
        self._seen.add(signature)

        self._counter += 1
        if isinstance(unit, ToolCall):
            task = Task(id=f"tool-{self._counter}", kind=TaskKind.TOOL_CALL, name=unit.name, payload=unit)
            logger.info(f"Detected tool call {task.id}: {unit.name}")
        else:
            unit.action = self._artifact_action(unit)
            task = Task(id=f"artifact-{self._counter}", kind=TaskKind.ARTIFACT,
                        name=f"Write {unit.file_path}", payload=unit)
            logger.info(f"Detected artifact {task.id}: {unit.file_path} ({len(unit.content)} chars)")
        return task

    def _artifact_action(self, artifact: Artifact) -> ArtifactAction:
        if self.backend is None:
            return ArtifactAction.CREATE
        try:
            exists = self.backend.file_exists(artifact.file_path)
        except ValueError as e:
            logger.warning(f"Cannot resolve artifact path {artifact.file_path}: {e}")
            return ArtifactAction.CREATE
        return ArtifactAction.UPDATE if exists else ArtifactAction.CREATE
