"""
Stream Runner - executes the tool calls and file artifacts embedded in model output.
Terminal driver: replays a transcript through the pipeline chunk by chunk, with Rich output.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Iterator, Optional, Tuple

from rich.console import Console
from rich.markup import escape as rich_escape
from rich.table import Table

from backend import LocalBackend
from config import AppConfig
from pipeline import (
    ApprovalConfig,
    ApprovalGate,
    ConsoleApprovalPrompt,
    HookDispatcher,
    PipelineEvent,
    RiskAssessor,
    SequentialExecutor,
    StreamDetector,
    TaskStatus,
)
from pipeline.approval import PromptFn
from tools import TOOLS_REQUIRING_APPROVAL, build_default_registry

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64

STATUS_STYLES = {
    TaskStatus.DETECTED: "#6e7681",
    TaskStatus.EXECUTING: "#58a6ff",
    TaskStatus.COMPLETED: "#3fb950",
    TaskStatus.FAILED: "#f85149",
}


def configure_logging(config: AppConfig) -> None:
    # Log to file so it doesn't interfere with the terminal output
    logging.basicConfig(
        filename=config.log_file,
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def chunk_text(text: str, size: int) -> Iterator[str]:
    """Split text into fixed-size chunks, the way a model stream delivers it."""
    size = max(1, size)
    for start in range(0, len(text), size):
        yield text[start:start + size]


def _event_printer(console: Console):
    async def on_event(event: PipelineEvent) -> None:
        if event.type == "task_start":
            console.print(f"[#58a6ff]▶[/#58a6ff] {rich_escape(event.content)}")
        elif event.type == "task_completed":
            console.print(f"  [#3fb950]✓ {rich_escape(event.content)}[/#3fb950]")
        elif event.type == "task_failed":
            console.print(f"  [#f85149]✗ {rich_escape(event.content)}[/#f85149]")
        elif event.type == "turn_halted":
            console.print(f"\n[bold #f85149]⚠ {rich_escape(event.content)}[/bold #f85149]")
    return on_event


def build_pipeline(
    config: AppConfig,
    console: Console,
    bypass: bool = False,
    approve_artifacts: bool = False,
    prompt_fn: Optional[PromptFn] = None,
) -> Tuple[StreamDetector, SequentialExecutor, ApprovalGate, HookDispatcher]:
    backend = LocalBackend(config.working_directory)
    registry = build_default_registry(backend, command_timeout=config.command_timeout)
    assessor = RiskAssessor(
        long_command_threshold=config.long_command_threshold,
        protected_branches=config.protected_branches,
    )
    gate = ApprovalGate(
        ApprovalConfig.from_settings(config.approval, TOOLS_REQUIRING_APPROVAL),
        assessor,
        prompt_fn=prompt_fn or ConsoleApprovalPrompt(console),
    )
    hooks = HookDispatcher(
        hooks_path=config.hooks_path(),
        working_directory=config.working_directory,
        timeout=config.hook_timeout,
        enabled=config.hooks_enabled,
    )
    executor = SequentialExecutor(
        registry, gate, hooks,
        bypass=bypass or config.bypass_approvals,
        approve_artifacts=approve_artifacts or config.approve_artifacts,
        on_event=_event_printer(console),
    )
    return StreamDetector(backend), executor, gate, hooks


async def run_transcript(
    text: str,
    config: AppConfig,
    console: Console,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    bypass: bool = False,
    approve_artifacts: bool = False,
    prompt_fn: Optional[PromptFn] = None,
) -> Tuple[StreamDetector, SequentialExecutor, ApprovalGate]:
    """Feed a transcript through the pipeline and wait for every detected task."""
    detector, executor, gate, hooks = build_pipeline(
        config, console, bypass=bypass, approve_artifacts=approve_artifacts, prompt_fn=prompt_fn,
    )
    await hooks.trigger("session_start", {})

    for chunk in chunk_text(text, chunk_size):
        for task in detector.feed(chunk):
            executor.enqueue(task)
        # Let the drain loop run between chunks, as it would during a live stream
        await asyncio.sleep(0)
    for task in detector.flush():
        executor.enqueue(task)

    await executor.wait_for_all()
    await hooks.trigger("assistant_response", {"assistant_response": text})
    await hooks.trigger("session_end", {})

    for hint in detector.hints:
        console.print(f"[#e3b341]hint:[/#e3b341] {rich_escape(hint)}")
    return detector, executor, gate


def render_status(executor: SequentialExecutor) -> Table:
    table = Table(title="Tasks", title_style="bold", header_style="bold #8b949e")
    table.add_column("ID", style="#8b949e")
    table.add_column("Task")
    table.add_column("Status")
    table.add_column("Detail", overflow="fold")
    for task in executor.tasks:
        style = STATUS_STYLES[task.status]
        detail = task.error or ""
        if task.status == TaskStatus.COMPLETED and hasattr(task.result, "output"):
            detail = task.result.output.split("\n", 1)[0]
        elif task.status == TaskStatus.COMPLETED and isinstance(task.result, dict):
            detail = f"{task.result.get('action', '')} ({task.result.get('lines', 0)} lines)"
        table.add_row(task.id, rich_escape(task.name), f"[{style}]{task.status.value}[/{style}]",
                      rich_escape(detail[:120]))
    summary = executor.summary()
    table.caption = (f"{summary['completed']} completed, {summary['failed']} failed, "
                     f"{summary['not_run']} not run")
    return table


def render_statistics(gate: ApprovalGate) -> Table:
    stats = gate.statistics()
    table = Table(title="Approvals", title_style="bold", header_style="bold #8b949e")
    table.add_column("Tool")
    table.add_column("Approved", justify="right", style="#3fb950")
    table.add_column("Declined", justify="right", style="#f85149")
    for tool, counts in sorted(stats["by_tool"].items()):
        table.add_row(tool, str(counts["approved"]), str(counts["declined"]))
    table.caption = (f"{stats['total']} decisions, {stats['approved']} approved "
                     f"({stats['auto_approved']} by pattern), {stats['declined']} declined")
    return table


def _read_transcript(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


# ============================================================
# Entry Point
# ============================================================

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Stream Runner - run the tool calls and artifacts in model output",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py reply.md                   Replay reply.md in the current directory
  python main.py reply.md --dir ~/project   Run against another project
  cat reply.md | python main.py - --bypass  Read stdin, skip approval prompts
        """,
    )
    parser.add_argument("transcript", help="File containing model output ('-' for stdin)")
    parser.add_argument("-d", "--dir", default=None,
                        help="Working directory (default: WORKING_DIRECTORY or current directory)")
    parser.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE,
                        help=f"Characters per simulated stream chunk (default: {DEFAULT_CHUNK_SIZE})")
    parser.add_argument("--bypass", action="store_true", help="Skip every approval prompt")
    parser.add_argument("--approve", action="store_true", help="Ask for approval before writing artifacts")
    parser.add_argument("--stats", action="store_true", help="Print approval statistics at the end")
    args = parser.parse_args(argv)

    config = AppConfig()
    if args.dir:
        config.working_directory = args.dir
    config.working_directory = os.path.abspath(os.path.expanduser(config.working_directory))
    if not os.path.isdir(config.working_directory):
        print(f"Error: {config.working_directory} is not a directory")
        return 1

    try:
        text = _read_transcript(args.transcript)
    except OSError as e:
        print(f"Error: cannot read transcript: {e}")
        return 1

    configure_logging(config)
    console = Console()
    console.print(f"[bold]{config.title}[/bold] [#6e7681]{rich_escape(config.working_directory)}[/#6e7681]")

    _, executor, gate = asyncio.run(run_transcript(
        text, config, console,
        chunk_size=args.chunk_size,
        bypass=args.bypass,
        approve_artifacts=args.approve,
    ))

    console.print()
    console.print(render_status(executor))
    if args.stats:
        console.print(render_statistics(gate))
    return 1 if executor.summary()["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
