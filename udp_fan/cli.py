"""Command line tool to query and control a fan board by hand."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from datetime import timedelta
from pathlib import Path

from .config import FanConfig, load_config_file
from .exceptions import ConfigError, UdpFanError
from .fan import UdpFan
from .models import FanState
from .transport import TransportRegistry


def build_arg_parser() -> argparse.ArgumentParser:
    """Return the parser for ``udp-fan``."""

    parser = argparse.ArgumentParser(
        prog="udp-fan", description="Control a UDP fan board"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    target = parser.add_argument_group("target")
    target.add_argument("--config", type=Path, help="YAML or JSON accessory file")
    target.add_argument("--name", help="Accessory name to pick from --config")
    target.add_argument("--host", help="Fan board address")
    target.add_argument("--port", type=int, help="Fan board UDP port")
    target.add_argument("--retries", type=int, help="Resend attempts per command")
    target.add_argument("--retry-delay", type=float, help="Pause between resends (ms)")
    target.add_argument("--timeout", type=float, help="Reply deadline per attempt (ms)")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("status", help="Print speed and power state")
    speed = commands.add_parser("speed", help="Get or set the speed percentage")
    speed.add_argument("percentage", nargs="?", type=float)
    power = commands.add_parser("power", help="Get or set the power state")
    power.add_argument("state", nargs="?", choices=("on", "off"))
    return parser


def resolve_config(args: argparse.Namespace) -> FanConfig:
    """Build the accessory configuration from command line arguments."""

    if args.config is not None:
        accessories = load_config_file(args.config)
        if args.name is not None:
            matches = [item for item in accessories if item.name == args.name]
            if not matches:
                raise ConfigError(f"No accessory named {args.name!r} in {args.config}")
            config = matches[0]
        elif accessories:
            config = accessories[0]
        else:
            raise ConfigError(f"{args.config} defines no accessories")
    elif args.host is not None and args.port is not None:
        config = FanConfig.from_dict({"host": args.host, "port": args.port})
    else:
        raise ConfigError("Either --config or both --host and --port are required")

    overrides: dict[str, object] = {}
    if args.retries is not None:
        overrides["max_retries"] = max(0, args.retries)
    if args.retry_delay is not None:
        overrides["retry_delay"] = timedelta(milliseconds=args.retry_delay)
    if args.timeout is not None:
        overrides["timeout"] = timedelta(milliseconds=args.timeout)
    return dataclasses.replace(config, **overrides) if overrides else config


def _format_state(name: str, state: FanState) -> str:
    return (
        f"{name}: speed={state.percentage:.2f} "
        f"level={state.speed_level} active={int(state.active)}"
    )


async def _async_run(args: argparse.Namespace, config: FanConfig) -> str:
    registry = TransportRegistry()
    transport = registry.acquire()
    fan = UdpFan(config, transport=transport)
    try:
        if args.command == "speed" and args.percentage is not None:
            state = await fan.async_set_speed(args.percentage)
        elif args.command == "power" and args.state is not None:
            state = await fan.async_set_active(args.state == "on")
        else:
            state = await fan.async_get_state()
    finally:
        await registry.async_release(transport)

    if args.command == "speed":
        return f"{state.percentage:.2f}"
    if args.command == "power":
        return "on" if state.active else "off"
    return _format_state(fan.name, state)


def main(argv: list[str] | None = None) -> int:
    """Run the tool and return the process exit code."""

    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = resolve_config(args)
        output = asyncio.run(_async_run(args, config))
    except UdpFanError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(output)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI
    raise SystemExit(main())
