# src/main.py — v2
"""CLI entry point: manage workflows and move artifacts between tools.

Usage:
    imageflow tools
    imageflow save <name> --source <tool> --step <tool> [--step <tool> ...]
    imageflow list --source <tool>
    imageflow delete <workflow_id>
    imageflow run <workflow_id> <file>
    imageflow send <source> <target> <file>
    imageflow receive <tool> [-o DIR]
    imageflow next <tool> <file>
    imageflow history --source <tool> [--clear]
    imageflow status

Each command is a separate process, so the handoff slot and the active run
of each tool live in the configured stores between invocations.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from imageflow.version import __version__

logger = logging.getLogger(__name__)

ACTIVE_RUN_KEY = "imageflow.active-run.{tool}"


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = _load_settings(args)
    except Exception as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    _setup_logging(settings, args.verbose)

    from imageflow.api.facade import WorkflowOrchestrator

    orchestrator = WorkflowOrchestrator(settings)
    try:
        return asyncio.run(args.func(orchestrator, args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1
    finally:
        orchestrator.close()


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="imageflow",
        description=f"imageflow v{__version__} - chain image tools into workflows",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--store-root", type=Path, default=None,
        help="Directory for file-backed stores (overrides IMAGEFLOW_STORE_ROOT)",
    )

    subparsers = parser.add_subparsers(dest="command")

    p_tools = subparsers.add_parser("tools", help="List known tools and their input formats")
    p_tools.set_defaults(func=_cmd_tools)

    p_save = subparsers.add_parser("save", help="Save or update a workflow")
    p_save.add_argument("name", help="Workflow name")
    p_save.add_argument("--source", required=True, help="Tool the workflow starts from")
    p_save.add_argument(
        "--step", dest="steps", action="append", default=[],
        help="Downstream tool (repeat in order)",
    )
    p_save.set_defaults(func=_cmd_save)

    p_list = subparsers.add_parser("list", help="List workflows of a source tool")
    p_list.add_argument("--source", required=True, help="Source tool")
    p_list.set_defaults(func=_cmd_list)

    p_delete = subparsers.add_parser("delete", help="Delete a workflow")
    p_delete.add_argument("workflow_id", help="Workflow id")
    p_delete.set_defaults(func=_cmd_delete)

    p_run = subparsers.add_parser("run", help="Start a workflow with a source tool output")
    p_run.add_argument("workflow_id", help="Workflow id")
    p_run.add_argument("file", type=Path, help="Output file of the source tool")
    p_run.set_defaults(func=_cmd_run)

    p_send = subparsers.add_parser("send", help="Hand one file to another tool")
    p_send.add_argument("source", help="Producing tool")
    p_send.add_argument("target", help="Receiving tool")
    p_send.add_argument("file", type=Path, help="File to hand off")
    p_send.set_defaults(func=_cmd_send)

    p_receive = subparsers.add_parser("receive", help="Take the file waiting for a tool")
    p_receive.add_argument("tool", help="Receiving tool")
    p_receive.add_argument(
        "-o", "--output", type=Path, default=Path("."),
        help="Directory to write the received file (default: .)",
    )
    p_receive.set_defaults(func=_cmd_receive)

    p_next = subparsers.add_parser("next", help="Continue the active run of a tool")
    p_next.add_argument("tool", help="Tool that just processed the run's file")
    p_next.add_argument("file", type=Path, help="Output file of that tool")
    p_next.set_defaults(func=_cmd_next)

    p_history = subparsers.add_parser("history", help="Show or clear run history")
    p_history.add_argument("--source", default=None, help="Source tool")
    p_history.add_argument("--clear", action="store_true", help="Clear history for all tools")
    p_history.set_defaults(func=_cmd_history)

    p_status = subparsers.add_parser("status", help="Show the pending handoff, if any")
    p_status.set_defaults(func=_cmd_status)

    return parser


async def _cmd_tools(orchestrator, args: argparse.Namespace) -> int:
    from imageflow.core.tools import TOOL_CATALOG, label_for_mime_type

    for tool_id, spec in TOOL_CATALOG.items():
        accepts = ", ".join(label_for_mime_type(m) for m in spec.accepts) or "-"
        print(f"  {tool_id.value:20s} {spec.title:26s} accepts: {accepts}")
    return 0


async def _cmd_save(orchestrator, args: argparse.Namespace) -> int:
    from imageflow.core.errors import ValidationError

    try:
        definition = orchestrator.save_workflow(args.name, args.source, args.steps)
    except ValidationError as exc:
        print(f"Cannot save workflow: {exc}", file=sys.stderr)
        return 1
    print(f"Saved {definition.name!r} ({definition.id})")
    print(f"  Steps: {_format_steps(definition.steps)}")
    return 0


async def _cmd_list(orchestrator, args: argparse.Namespace) -> int:
    if _parse_tool(args.source) is None:
        return 1
    definitions = orchestrator.list_workflows(args.source)
    if not definitions:
        print(f"No workflows for {args.source}")
        return 0
    for d in definitions:
        last = d.last_run_at.strftime("%Y-%m-%d %H:%M") if d.last_run_at else "never"
        print(f"  {d.id}  {d.name}")
        print(f"      {_format_steps(d.steps)}  runs: {d.run_count}  last: {last}")
    return 0


async def _cmd_delete(orchestrator, args: argparse.Namespace) -> int:
    orchestrator.delete_workflow(args.workflow_id)
    print(f"Deleted {args.workflow_id}")
    return 0


async def _cmd_run(orchestrator, args: argparse.Namespace) -> int:
    from imageflow.core.models import ArtifactRef

    if not args.file.is_file():
        logger.error("File not found: %s", args.file)
        return 1
    report = await orchestrator.run_workflow(args.workflow_id, ArtifactRef(path=args.file))
    print(report.message)
    return 0 if report.ok else 1


async def _cmd_send(orchestrator, args: argparse.Namespace) -> int:
    from imageflow.core.models import ArtifactRef

    if not args.file.is_file():
        logger.error("File not found: %s", args.file)
        return 1
    report = await orchestrator.hand_off(args.source, args.target, ArtifactRef(path=args.file))
    print(report.message)
    return 0 if report.ok else 1


async def _cmd_receive(orchestrator, args: argparse.Namespace) -> int:
    from imageflow.codec.artifact_codec import write_artifact
    from imageflow.workflows.run_context import remaining_steps

    tool_id = _parse_tool(args.tool)
    if tool_id is None:
        return 1
    received = orchestrator.receive(tool_id)
    if received is None:
        print(f"Nothing waiting for {tool_id.value}")
        return 1

    path = await write_artifact(received.artifact, args.output)
    print(f"Received {path} from {received.source_tool_id.value}")

    context = received.run_context
    key = ACTIVE_RUN_KEY.format(tool=tool_id.value)
    if context is None:
        orchestrator.stores.durable.remove(key)
        return 0

    orchestrator.stores.durable.set_json(key, context.model_dump(mode="json"))
    print(
        f"Workflow {context.workflow_name!r}: step "
        f"{context.current_step_index + 1} of {len(context.steps)}"
    )
    upcoming = remaining_steps(context)
    if upcoming:
        print(f"  Then: {_format_steps(upcoming)}")
    else:
        print("  This is the last step.")
    return 0


async def _cmd_next(orchestrator, args: argparse.Namespace) -> int:
    from imageflow.core.models import ArtifactRef
    from imageflow.workflows.run_context import parse_run_context

    tool_id = _parse_tool(args.tool)
    if tool_id is None:
        return 1
    if not args.file.is_file():
        logger.error("File not found: %s", args.file)
        return 1

    key = ACTIVE_RUN_KEY.format(tool=tool_id.value)
    context = parse_run_context(orchestrator.stores.durable.get_json(key))
    report = await orchestrator.continue_run(context, tool_id, ArtifactRef(path=args.file))
    print(report.message)
    if report.status in ("handed_off", "complete"):
        orchestrator.stores.durable.remove(key)
    return 0 if report.ok else 1


async def _cmd_history(orchestrator, args: argparse.Namespace) -> int:
    if args.clear:
        orchestrator.clear_history()
        print("Run history cleared")
        return 0
    if args.source is None:
        print("--source is required unless --clear is given", file=sys.stderr)
        return 1
    if _parse_tool(args.source) is None:
        return 1
    entries = orchestrator.history_for(args.source)
    if not entries:
        print(f"No runs from {args.source}")
        return 0
    for e in entries:
        print(f"  {e.created_at.strftime('%Y-%m-%d %H:%M')}  {e.workflow_name}")
        print(f"      {_format_steps(e.steps)}")
    return 0


async def _cmd_status(orchestrator, args: argparse.Namespace) -> int:
    package = orchestrator.channel.peek()
    if package is None:
        print("No handoff pending")
        return 0
    state = "expired" if orchestrator.channel.is_expired(package) else "pending"
    print(
        f"{package.file_name} ({package.mime_type}) from "
        f"{package.source_tool_id.value} to {package.target_tool_id.value}: {state}"
    )
    return 0


def _parse_tool(value: str):
    from imageflow.core.tools import parse_tool_id

    tool_id = parse_tool_id(value)
    if tool_id is None:
        logger.error("Unknown tool: %s (see 'imageflow tools')", value)
    return tool_id


def _format_steps(steps) -> str:
    return " -> ".join(s.value for s in steps)


def _load_settings(args: argparse.Namespace):
    from imageflow.config.settings import load_settings

    overrides: dict[str, object] = {}
    if args.store_root is not None:
        overrides["store_root"] = args.store_root
    return load_settings(**overrides)


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from imageflow.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
