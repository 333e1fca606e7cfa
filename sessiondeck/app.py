"""SessionDeck CLI: inspect and manage sessions from a terminal."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

import yaml
from rich.console import Console
from rich.table import Table

from sessiondeck.engine.config import EngineConfig
from sessiondeck.engine.errors import SessionDeckError
from sessiondeck.engine.models import BranchStatus, SessionType
from sessiondeck.engine.session_manager import SessionManager
from sessiondeck.engine.yaml_config import discover_config_path, load_yaml_config

logger = logging.getLogger(__name__)

_STATUS_STYLE = {
    BranchStatus.EMPTY: "dim",
    BranchStatus.IN_PROGRESS: "yellow",
    BranchStatus.PUSHED: "cyan",
    BranchStatus.OPEN: "green",
    BranchStatus.MERGED: "magenta",
    BranchStatus.CLOSED: "red",
}


def configure_logging(config: EngineConfig, *, verbose: bool = False) -> Path:
    """Send logs to a rotating file under the config dir and to stderr.

    stderr only shows warnings unless ``verbose`` is set, so table output
    stays readable.
    """
    log_dir = config.logs_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "sessiondeck.log"

    root = logging.getLogger()
    root.setLevel(getattr(logging, config.log_level, logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"
    )
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.addHandler(file_handler)
    root.addHandler(stream_handler)
    return log_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sessiondeck",
        description="SessionDeck: manage agent sessions across git worktrees",
    )
    parser.add_argument(
        "--profile", metavar="ID",
        help="Profile to use (default: SESSIONDECK_PROFILE or the legacy config)",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="YAML config file (default: .sessiondeck/sessiondeck.yaml if present)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Echo debug logs to stderr",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List sessions")
    list_cmd.add_argument(
        "--all", action="store_true", help="Include archived sessions",
    )
    list_cmd.add_argument(
        "--status", action="store_true",
        help="Query git/gh for branch status before listing",
    )

    add_cmd = sub.add_parser("add", help="Create a session for a git working tree")
    add_cmd.add_argument("directory", help="Path to the working tree")
    add_cmd.add_argument("--agent", metavar="ID", help="Agent id (e.g. claude)")
    add_cmd.add_argument("--name", help="Display name (default: repo name)")
    add_cmd.add_argument("--review", action="store_true", help="Create a review session")

    for name, text in (
        ("remove", "Delete a session"),
        ("archive", "Archive a session"),
        ("unarchive", "Restore an archived session"),
    ):
        cmd = sub.add_parser(name, help=text)
        cmd.add_argument("session_id", help="Session id")

    sub.add_parser("refresh", help="Refresh branches and branch status for all sessions")
    return parser


def resolve_config(args: argparse.Namespace) -> EngineConfig:
    config = EngineConfig.from_env()
    config_path = Path(args.config) if args.config else discover_config_path()
    if config_path is not None:
        config = load_yaml_config(config_path, base=config)
    if args.profile:
        config.profile_id = args.profile
    return config


def render_sessions(console: Console, manager: SessionManager, *, include_archived: bool) -> None:
    sessions = manager.sessions if include_archived else manager.store.unarchived()
    if not sessions:
        console.print("No sessions.")
        return

    table = Table(title=f"Sessions ({manager.gateway.profile_id or 'default config'})")
    table.add_column("", width=1)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Branch")
    table.add_column("Status")
    table.add_column("Agent")
    table.add_column("Directory", overflow="fold")
    for session in sessions:
        marker = "*" if session.id == manager.store.active_session_id else ""
        style = _STATUS_STYLE.get(session.branch_status, "")
        name = session.name
        if session.session_type == SessionType.REVIEW:
            name += " (review)"
        if session.is_archived:
            name += " (archived)"
        table.add_row(
            marker,
            session.id,
            name,
            session.branch,
            f"[{style}]{session.branch_status.value}[/{style}]" if style else session.branch_status.value,
            session.agent_id or "-",
            session.directory,
        )
    console.print(table)


async def run_command(args: argparse.Namespace, config: EngineConfig, console: Console) -> int:
    manager = SessionManager.from_config(config)
    await manager.load()
    try:
        return await _dispatch(args, manager, console)
    finally:
        await manager.flush()


async def _dispatch(args: argparse.Namespace, manager: SessionManager, console: Console) -> int:
    if args.command == "list":
        if args.status:
            await manager.refresh_all_branch_statuses()
        render_sessions(console, manager, include_archived=args.all)
        return 0

    if args.command == "add":
        session = await manager.create(
            str(Path(args.directory).expanduser().resolve()),
            args.agent,
            name=args.name,
            session_type=SessionType.REVIEW if args.review else SessionType.DEFAULT,
        )
        console.print(f"Created [bold]{session.name}[/bold] ({session.id}) on {session.branch}")
    elif args.command == "remove":
        if not manager.remove(args.session_id):
            console.print(f"[red]No session {args.session_id}[/red]")
            return 1
        console.print(f"Removed {args.session_id}")
    elif args.command in ("archive", "unarchive"):
        manager.store.require(args.session_id)
        getattr(manager, args.command)(args.session_id)
        console.print(f"{args.command.capitalize()}d {args.session_id}")
    elif args.command == "refresh":
        changed = await manager.refresh_all_branches()
        statuses = await manager.refresh_all_branch_statuses()
        console.print(
            f"Refreshed {len(statuses)} sessions; {len(changed)} changed branch"
        )
        render_sessions(console, manager, include_archived=False)
    return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    console = Console()

    try:
        config = resolve_config(args)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        console.print(f"[red]Bad config: {exc}[/red]")
        sys.exit(2)

    log_file = configure_logging(config, verbose=args.verbose)
    logger.info(
        "sessiondeck %s cwd=%s profile=%s log=%s",
        args.command, Path.cwd(), config.profile_id or "<legacy>", log_file,
    )

    try:
        code = asyncio.run(run_command(args, config, console))
    except SessionDeckError as exc:
        logger.error("%s failed: %s", args.command, exc)
        console.print(f"[red]{exc}[/red]")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
