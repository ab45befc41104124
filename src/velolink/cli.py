"""Command-line entry point.

Usage:
    velolink --list-ports
    velolink --port COM5 --mode racing --enable
    velolink --replay ride.log --dry-run          # no real key presses
    velolink --port /dev/rfcomm0 --serve          # plus the HTTP control API

Press Ctrl+C to stop; the session report is written on exit.
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading

from velolink.config import Settings, load_settings
from velolink.errors import ConfigError
from velolink.reporting.formatter import TextReportFormatter


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="velolink", description="Sensor device → keyboard bridge with ride telemetry")
    ap.add_argument("--config", help="JSON configuration file")
    ap.add_argument("--port", help="Serial port of the device")
    ap.add_argument("--baud", type=int, help="Serial baud rate")
    ap.add_argument("--list-ports", action="store_true", help="List serial ports and exit")
    ap.add_argument("--replay", metavar="FILE", help="Replay a recorded line file instead of a serial port")
    ap.add_argument("--replay-interval", type=float, default=0.0, help="Seconds between replayed lines")
    ap.add_argument("--mode", help="Game mode to start in (default, racing, fps, media, flight, presentation)")
    ap.add_argument("--enable", action="store_true", help="Start with data processing enabled")
    ap.add_argument("--wheel-diameter", type=float, help="Wheel diameter in millimetres")
    ap.add_argument("--report-dir", help="Directory for session reports")
    ap.add_argument("--dry-run", action="store_true", help="Log actions instead of pressing keys")
    ap.add_argument("--serve", action="store_true", help="Serve the HTTP control API")
    ap.add_argument("--host", default="127.0.0.1", help="Control API host")
    ap.add_argument("--api-port", type=int, default=8765, help="Control API port")
    ap.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
    return ap


def apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return *settings* with command-line overrides applied."""
    data = settings.model_dump()
    if args.port:
        data["serial"]["port"] = args.port
    if args.baud:
        data["serial"]["baud_rate"] = args.baud
    if args.mode:
        data["scenarios"]["game_mode"] = args.mode
    if args.enable:
        data["scenarios"]["processing_enabled"] = True
    if args.wheel_diameter:
        data["telemetry"]["wheel_diameter_mm"] = args.wheel_diameter
    if args.report_dir:
        data["telemetry"]["report_dir"] = args.report_dir
    if args.log_level:
        data["logging"]["level"] = args.log_level
    return Settings.model_validate(data)


def configure_logging(settings: Settings) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.logging.log_file:
        handlers.append(logging.FileHandler(settings.logging.log_file, encoding="utf-8"))
    logging.basicConfig(
        level=settings.logging.level.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def _build_invoker(settings: Settings, dry_run: bool):
    from velolink.input.invoker import NullActionInvoker, PynputActionInvoker

    if dry_run:
        return NullActionInvoker()
    return PynputActionInvoker(
        delay_between_keys_ms=settings.key_simulation.delay_between_keys_ms,
        game_input=settings.key_simulation.game_input,
    )


def _build_source(settings: Settings, args: argparse.Namespace):
    from velolink.transport.replay import ReplayLineSource
    from velolink.transport.serial_source import SerialLineSource

    if args.replay:
        return ReplayLineSource(args.replay, interval_s=args.replay_interval)
    if settings.serial.port:
        return SerialLineSource(settings.serial.port, settings.serial.baud_rate, settings.serial.timeout_s)
    return None


def _serve(client, host: str, port: int) -> threading.Thread:
    import uvicorn

    from velolink.web.app import create_app

    server = uvicorn.Server(uvicorn.Config(create_app(client), host=host, port=port, log_level="warning"))
    thread = threading.Thread(target=server.run, daemon=True, name="ControlAPI")
    thread.start()
    print(f"Control API on http://{host}:{port}", flush=True)
    return thread


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.list_ports:
        from velolink.transport.serial_source import available_ports

        ports = available_ports()
        if not ports:
            print("No serial ports found.")
        for i, p in enumerate(ports, 1):
            print(f"{i}. {p.path} - {p.manufacturer or 'Unknown'} ({p.description})")
        return 0

    try:
        settings = apply_args(load_settings(args.config), args)
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    configure_logging(settings)

    source = _build_source(settings, args)
    if source is None and not args.serve:
        print("ERROR: no serial port configured; use --port, --replay or --serve.", file=sys.stderr)
        return 2

    from velolink.client import VelolinkClient

    client = VelolinkClient(settings, _build_invoker(settings, args.dry_run), source, config_path=args.config)
    if not client.start():
        print(f"ERROR: could not open {getattr(source, 'port', None) or getattr(source, 'path', '')}.", file=sys.stderr)
        return 1

    if args.serve:
        _serve(client, args.host, args.api_port)

    status = client.dispatcher.status()
    print(
        f"Running in {status.mode.name} mode, processing "
        f"{'ENABLED' if status.enabled else 'DISABLED (lines are buffered)'}. Press Ctrl+C to stop.",
        flush=True,
    )

    try:
        client.run()
    except KeyboardInterrupt:
        pass
    finally:
        report = client.shutdown()
        print()
        print(TextReportFormatter().format(report))

    if client.stream is not None and client.stream.error is not None:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
