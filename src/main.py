# src/main.py — v3
"""CLI entry point: serve, generate, send, generate-send, resume, status.

Usage:
    mailflow serve [--host H] [--port P]
    mailflow generate <instance> [options]
    mailflow send <instance> [options]
    mailflow generate-send <instance> [options]
    mailflow resume <instance> <approve|modify|reject> [info]
    mailflow status <instance> [--progress]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from mailflow.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from mailflow.config.settings import load_settings
    from mailflow.core.errors import WorkflowError

    try:
        settings = load_settings()
        _setup_logging(settings, args.verbose)
        if args.command == "serve":
            return _cmd_serve(args, settings)
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except WorkflowError as exc:
        _print_json(exc.to_dict())
        return 1
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    from mailflow.llm.client_factory import available_providers

    parser = argparse.ArgumentParser(
        prog="mailflow",
        description=f"mailflow v{__version__} — generate, review and deliver HTML email",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- serve ---
    p_serve = subparsers.add_parser("serve", help="Run the REST API")
    p_serve.add_argument("--host", default=None, help="Bind host (default: settings)")
    p_serve.add_argument("--port", type=int, default=None, help="Bind port (default: settings)")
    p_serve.set_defaults(func=_cmd_serve)

    # --- generate / send / generate-send ---
    for name, func, help_text in (
        ("generate", _cmd_generate, "Generate the instance email"),
        ("send", _cmd_send, "Review and send the instance email"),
        ("generate-send", _cmd_generate_send, "Generate, review and send"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("instance", help="Instance id (folder under AGENT_FOLDER)")
        p.add_argument("--prompt-file", default=None, help="Prompt template path")
        p.add_argument("-i", "--instructions", default=None,
                       help="Extra instructions, ';'-separated")
        p.add_argument("--html-path", default=None,
                       help="Artifact to send, or base artifact to revise")
        p.add_argument("--subject", default=None, help="Subject override")
        p.add_argument("--provider", default=None, choices=available_providers(),
                       help="Generation provider override")
        p.add_argument("--model", default=None, help="Model override")
        p.add_argument("--endpoint", default=None, help="Backend endpoint override")
        p.add_argument("--skip-review", action="store_true",
                       help="Bypass the review gate for this run")
        p.set_defaults(func=func)

    # --- resume ---
    p_resume = subparsers.add_parser("resume", help="Resume a paused run")
    p_resume.add_argument("instance", help="Instance id")
    p_resume.add_argument("decision", help="approve, modify or reject")
    p_resume.add_argument("info", nargs="?", default=None,
                          help="Revision text (modify) or reason (reject)")
    p_resume.set_defaults(func=_cmd_resume)

    # --- status ---
    p_status = subparsers.add_parser("status", help="Show instance state")
    p_status.add_argument("instance", help="Instance id")
    p_status.add_argument("--progress", action="store_true",
                          help="Print the full progress log instead")
    p_status.set_defaults(func=_cmd_status)

    return parser


def _cmd_serve(args: argparse.Namespace, settings: Any) -> int:
    """Run the REST API under uvicorn."""
    import uvicorn

    from mailflow.api.app import create_app

    app = create_app(settings)
    uvicorn.run(app, host=args.host or settings.host, port=args.port or settings.port)
    return 0


def _run_request(args: argparse.Namespace) -> Any:
    from mailflow.core.models import RunRequest

    return RunRequest(
        instance_id=args.instance,
        prompt_file=args.prompt_file,
        instructions=args.instructions,
        html_path=args.html_path,
        subject=args.subject,
        provider=args.provider,
        model=args.model,
        endpoint=args.endpoint,
        skip_review=args.skip_review,
    )


async def _cmd_generate(args: argparse.Namespace, settings: Any) -> int:
    from mailflow.api.facade import build_engine

    result = await build_engine(settings).generate(_run_request(args))
    _print_json({"htmlPath": result.html_path})
    return 0


async def _cmd_send(args: argparse.Namespace, settings: Any) -> int:
    from mailflow.api.facade import build_engine

    result = await build_engine(settings).send(_run_request(args))
    _print_json(result.model_dump(exclude_none=True))
    return 0


async def _cmd_generate_send(args: argparse.Namespace, settings: Any) -> int:
    from mailflow.api.facade import build_engine

    result = await build_engine(settings).generate_send(_run_request(args))
    _print_json(result.model_dump(exclude_none=True))
    return 0


async def _cmd_resume(args: argparse.Namespace, settings: Any) -> int:
    from mailflow.api.facade import build_engine

    result = await build_engine(settings).resume(args.instance, args.decision, args.info)
    _print_json(result.model_dump(exclude_none=True))
    return 0


async def _cmd_status(args: argparse.Namespace, settings: Any) -> int:
    from mailflow.api.facade import build_engine

    engine = build_engine(settings)
    if args.progress:
        entries = await engine.progress(args.instance, latest=False)
        for ts, message in entries or []:
            print(f"{ts}  {message}")
        return 0
    _print_json(await engine.status(args.instance))
    return 0


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _setup_logging(settings: Any, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from mailflow.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
