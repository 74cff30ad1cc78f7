"""Entry point for the checkplan engine."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from checkplan.catalog import load_catalog
from checkplan.config import settings
from checkplan.errors import CheckplanError, ValidationError
from checkplan.scheduling import (
    CheckRepository,
    DelayedCheckDetector,
    DeviceCatalog,
    DeviceRepository,
    Severity,
    week_of,
    week_range,
)
from checkplan.scheduling.models import utcnow
from checkplan.storage.kv_store import KVStore

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

_STYLE = {
    Severity.CRITICAL: "bold red",
    Severity.MODERATE: "dark_orange",
    Severity.RECENT: "yellow",
}


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting checkplan API Server", style="bold green"))
    uvicorn.run(
        "checkplan.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def show_delayed() -> None:
    """Print the overdue checks grouped by severity."""
    kv = KVStore()
    devices = DeviceRepository(kv)
    now = utcnow()
    groups = DelayedCheckDetector(CheckRepository(kv)).group_by_severity(now)
    total = sum(len(items) for items in groups.values())

    console.print(Panel(f"Delayed checks as of {week_of(now)}: {total}", style="bold blue"))
    if not total:
        return

    table = Table(show_lines=False)
    table.add_column("Severity")
    table.add_column("Device")
    table.add_column("Location")
    table.add_column("Week")
    table.add_column("Days overdue", justify="right")
    for severity, items in groups.items():
        for item in items:
            device = devices.get(item.check.device_id)
            table.add_row(
                f"[{_STYLE[severity]}]{severity.value}[/]",
                device.name if device else item.check.device_id,
                device.location if device else "",
                f"{item.check.week}/{item.check.year}",
                str(item.days_overdue),
            )
    console.print(table)


def show_week(value: str | None) -> None:
    try:
        day = date.fromisoformat(value) if value else utcnow().date()
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}, expected YYYY-MM-DD", field="date") from None
    iso = week_of(day)
    start, end = week_range(iso.year, iso.week)
    console.print(f"{day.isoformat()} → week {iso.week} of {iso.year} ({start} – {end})")


def import_devices(path: str) -> None:
    kv = KVStore()
    devices = load_catalog(path, DeviceCatalog(DeviceRepository(kv), CheckRepository(kv)))
    console.print(f"[green]Imported {len(devices)} devices[/green]")


def main() -> None:
    parser = argparse.ArgumentParser(description="checkplan maintenance check engine")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the API server")
    sub.add_parser("delayed", help="List overdue checks")

    week_parser = sub.add_parser("week", help="Show the ISO week of a date")
    week_parser.add_argument("date", nargs="?", help="YYYY-MM-DD (default: today, UTC)")

    import_parser = sub.add_parser("import-devices", help="Register devices from a YAML catalog")
    import_parser.add_argument("path", help="YAML file with a top-level 'devices' list")

    args = parser.parse_args()

    try:
        if args.command == "serve":
            run_server()
        elif args.command == "delayed":
            show_delayed()
        elif args.command == "week":
            show_week(args.date)
        elif args.command == "import-devices":
            import_devices(args.path)
        else:
            parser.print_help()
            sys.exit(1)
    except CheckplanError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
