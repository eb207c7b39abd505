"""
Operator command line for the system lock.

    python -m accessgate.app_shell.cli set-pin --pin 482913
    python -m accessgate.app_shell.cli set-pin --change --current-pin 482913 --pin 902114
    python -m accessgate.app_shell.cli status
    python -m accessgate.app_shell.cli disable

Exit status is 0 on success and 1 on any refusal. PINs are never printed.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from accessgate.app_shell.config import Settings, validate_startup
from accessgate.app_shell.context import AccessContext
from accessgate.components import system_lock
from accessgate.rules.loader import load_rules

logger = logging.getLogger("cli")

DEFAULT_DEV_PIN = "1234"


def get_context() -> AccessContext:
    settings = Settings.from_env()
    try:
        rules = load_rules(Path(settings.rules_path))
    except (FileNotFoundError, ValueError) as e:
        logger.error("Cannot load rules: %s", e)
        sys.exit(1)

    validate_startup(rules, settings)
    ctx = AccessContext.create(rules, settings)
    ctx.init(start_reaper=False)
    return ctx


def handle_set_pin(ctx: AccessContext, args: argparse.Namespace) -> int:
    pin = args.pin
    if pin is None:
        logger.warning("No --pin given; using the development default. Change it before going live.")
        pin = DEFAULT_DEV_PIN
    pin_pattern = ctx.rules.system_lock.pin_pattern

    if args.change:
        if not args.current_pin:
            print("--change requires --current-pin", file=sys.stderr)
            return 1
        result = system_lock.run_change_pin(
            system_lock.ChangePinInput(current_pin=args.current_pin, new_pin=pin, actor=args.actor),
            ctx.store,
            ctx.hasher,
            ctx.clock,
            pin_pattern,
        )
    else:
        status = system_lock.run_status(system_lock.LockStatusInput(), ctx.store)
        if status.error is not None:
            print(f"Error: {status.message}", file=sys.stderr)
            return 1
        if status.status is not None and status.status.locked:
            print(
                "System lock is already configured. Use --change --current-pin to rotate it.",
                file=sys.stderr,
            )
            return 1
        result = system_lock.run_set_pin(
            system_lock.SetPinInput(pin=pin, actor=args.actor),
            ctx.store,
            ctx.hasher,
            ctx.clock,
            pin_pattern,
        )

    if not result.success:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    print(result.message)
    return 0


def handle_status(ctx: AccessContext, args: argparse.Namespace) -> int:
    result = system_lock.run_status(system_lock.LockStatusInput(), ctx.store)
    if not result.success or result.status is None:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    status = result.status
    if status.locked:
        set_at = status.set_at.isoformat() if status.set_at else "unknown"
        print(f"System lock: ACTIVE (set by {status.set_by} at {set_at})")
    else:
        print("System lock: not configured")
    return 0


def handle_disable(ctx: AccessContext, args: argparse.Namespace) -> int:
    result = system_lock.run_disable(system_lock.DisableLockInput(actor=args.actor), ctx.store)
    if not result.success:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1
    print(result.message)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Capsera access gate CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    set_pin = subparsers.add_parser("set-pin", help="Set or rotate the system lock PIN")
    set_pin.add_argument("--pin", help="New PIN, 4-6 digits (development default 1234)")
    set_pin.add_argument("--change", action="store_true", help="Rotate an existing PIN")
    set_pin.add_argument("--current-pin", help="Current PIN, required with --change")
    set_pin.add_argument("--actor", default="setup_script", help="Recorded as set_by")

    subparsers.add_parser("status", help="Show system lock status")

    disable = subparsers.add_parser("disable", help="Disable the system lock")
    disable.add_argument("--actor", default="setup_script", help="Recorded in the log")

    return parser


HANDLERS = {
    "set-pin": handle_set_pin,
    "status": handle_status,
    "disable": handle_disable,
}


def main(argv: list[str] | None = None, ctx: AccessContext | None = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    owns_context = ctx is None
    ctx = ctx or get_context()
    try:
        return HANDLERS[args.command](ctx, args)
    finally:
        if owns_context:
            ctx.teardown()


if __name__ == "__main__":
    sys.exit(main())
