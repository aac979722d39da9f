"""
Main entry point for running bashshortcuts as a module.

Usage:
    python -m bashshortcuts [options] {list,add,remove,run} ...
"""

from __future__ import annotations
import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import List, Optional, Tuple

from .app import BashShortcuts
from .config import ShortcutsConfig, debug_enabled
from .events import EventType
from .shortcut import Shortcut


def _parse_flag(value: str) -> Tuple[str, str]:
    flag, sep, arg = value.partition("=")
    if not sep or not flag:
        raise argparse.ArgumentTypeError(f"Expected FLAG=VALUE, got {value!r}")
    return flag, arg


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bashshortcuts", description="Run named shell command shortcuts."
    )
    parser.add_argument("--settings", help="Settings file (JSON)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--no-notify", action="store_true", help="Log toasts instead of showing them"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List shortcuts ordered by position")

    add = sub.add_parser("add", help="Add a shortcut")
    add.add_argument("name")
    add.add_argument("cmd")
    add.add_argument("--app", action="store_true", help="Shortcut launches an app")
    add.add_argument("--hook", action="append", default=[], help="Hook id (repeatable)")
    add.add_argument("--position", type=int, help="Position (default: last)")

    remove = sub.add_parser("remove", help="Remove a shortcut")
    remove.add_argument("id")

    run = sub.add_parser("run", help="Run a shortcut and wait for it to end")
    run.add_argument("id")
    run.add_argument(
        "--flag", action="append", default=[], type=_parse_flag, help="FLAG=VALUE"
    )
    return parser


def cmd_list(core: BashShortcuts) -> int:
    running = core.running()
    for shortcut in core.get_shortcuts().values():
        marker = "  [running]" if shortcut.id in running else ""
        print(f"{shortcut.position:>3}  {shortcut.id}  {shortcut.name}{marker}")
    return 0


def cmd_add(core: BashShortcuts, args) -> int:
    position = args.position
    if position is None:
        existing = core.get_shortcuts()
        position = max((s.position for s in existing.values()), default=-1) + 1
    shortcut = Shortcut.create(
        args.name, args.cmd, position=position, is_app=args.app, hooks=args.hook
    )
    core.add_shortcut(shortcut)
    print(shortcut.id)
    return 0


def cmd_remove(core: BashShortcuts, args) -> int:
    try:
        core.remove_shortcut(args.id)
    except KeyError:
        print(f"No such shortcut: {args.id}", file=sys.stderr)
        return 1
    return 0


def cmd_run(core: BashShortcuts, args) -> int:
    shortcut = core.store.get_shortcut(args.id)
    if shortcut is None:
        print(f"No such shortcut: {args.id}", file=sys.stderr)
        return 1

    done = threading.Event()
    result = {"status": None}

    def on_event(event):
        if event.type is EventType.END:
            result["status"] = None if event.killed else event.status
            done.set()

    core.subscribe(shortcut.id, on_event)
    try:
        if not core.launch(shortcut, args.flag):
            print(f"Failed to launch {shortcut.name}", file=sys.stderr)
            return 1
        try:
            while not done.wait(0.5):
                pass
        except KeyboardInterrupt:
            core.kill(shortcut)
            done.wait(5)
    finally:
        core.unsubscribe(shortcut.id, on_event)

    status = result["status"]
    if status is None or status < 0:
        return 1
    return status


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose or debug_enabled() else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # A CLI process never receives the host's app.ended message
    options = {"notifications": not args.no_notify, "host_lifecycle": False}
    if args.settings:
        options["settings_path"] = Path(args.settings)
    core = BashShortcuts(ShortcutsConfig(**options))
    try:
        core.reconcile()
        if args.command == "list":
            return cmd_list(core)
        if args.command == "add":
            return cmd_add(core, args)
        if args.command == "remove":
            return cmd_remove(core, args)
        return cmd_run(core, args)
    finally:
        core.close()


if __name__ == "__main__":
    sys.exit(main())
