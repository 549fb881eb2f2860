"""Entry point for svcwatch — `svcwatch` console script."""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from svcwatch.api.server import create_app
from svcwatch.config import settings
from svcwatch.health.engine import Status
from svcwatch.health.scheduler import Monitor
from svcwatch.services.registry import ConfigError, MonitorConfig, load_config

console = Console()

_STATUS_STYLE = {
    Status.UP: "green",
    Status.DOWN: "red",
    Status.UNKNOWN: "yellow",
}


def _load(path: str) -> MonitorConfig:
    try:
        return load_config(path)
    except ConfigError as e:
        console.print(f"[red]Failed to load configuration: {e}[/red]")
        sys.exit(2)


def run_server(config_path: str, host: str, port: int) -> None:
    """Start monitoring and serve the dashboard + JSON API."""
    cfg = _load(config_path)
    console.print(
        Panel.fit(
            f"[bold]{cfg.dashboard.title}[/bold]\n"
            f"Config:   {config_path}\n"
            f"Services: {len(cfg.services)}\n"
            f"Bind:     {host}:{port}",
            title="svcwatch",
            border_style="green",
        )
    )

    app = create_app(monitor=Monitor(cfg.services), dashboard=cfg.dashboard)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


def run_check(config_path: str) -> int:
    """Probe every service once and print a table. Returns the exit code."""
    cfg = _load(config_path)
    monitor = Monitor(cfg.services)
    try:
        with console.status("[bold green]Checking services..."):
            results = monitor.run_once()
    finally:
        monitor.stop()

    table = Table(title=cfg.dashboard.title)
    table.add_column("Service")
    table.add_column("Status")
    table.add_column("Code", justify="right")
    table.add_column("Time (ms)", justify="right")
    table.add_column("Message")
    for r in results:
        style = _STATUS_STYLE[r.status]
        table.add_row(
            r.service_name,
            f"[{style}]{r.status.value}[/{style}]",
            str(r.status_code),
            str(r.response_time_ms),
            r.message,
        )
    console.print(table)

    return 1 if any(r.status is Status.DOWN for r in results) else 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="svcwatch HTTP uptime monitor")
    sub = parser.add_subparsers(dest="command")

    serve_parser = sub.add_parser("serve", help="Monitor services and serve the dashboard")
    serve_parser.add_argument("--config", default=settings.services_file, help="Services file")
    serve_parser.add_argument("--host", default=settings.api_host)
    serve_parser.add_argument("--port", type=int, default=settings.api_port)

    check_parser = sub.add_parser("check", help="Check every service once")
    check_parser.add_argument("--config", default=settings.services_file, help="Services file")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    if args.command == "serve":
        run_server(args.config, args.host, args.port)
    elif args.command == "check":
        sys.exit(run_check(args.config))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
