"""Thin CLI wrapper for imageflasher.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import asyncio
import json
from typing import Annotated

import typer
from rich.console import Console

from imageflasher import __version__, messages
from imageflasher.config import get_settings, print_settings_json
from imageflasher.flash.controller import FlashController
from imageflasher.flash.orchestrator import AttemptOutcome
from imageflasher.logging_utils import configure_logging
from imageflasher.types import OutcomeKind

app = typer.Typer(
    name="imageflasher",
    help="Image Flasher - write disk images to removable drives safely",
    no_args_is_help=True,
)
console = Console()


def _print_raw(text: str) -> None:
    """Print machine-readable output without markup or line wrapping."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"imageflasher version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Image Flasher - write disk images to removable drives safely."""
    configure_logging(get_settings().log_level)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        _print_raw(print_settings_json(settings))
        return

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Storage:[/bold]")
    console.print(f"  Database URL:        {settings.db_url}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  Error reporting:     {settings.error_reporting}")
    console.print()
    console.print("[bold]Flashing:[/bold]")
    console.print(f"  Large drive size:    {settings.large_drive_size}")
    console.print(f"  Block size:          {settings.block_size}")
    console.print(f"  Verify writes:       {settings.validate_write_on_success}")


drives_app = typer.Typer(help="Inspect drives available for flashing")
app.add_typer(drives_app, name="drives")


@drives_app.command("list")
def drives_list(
    image: Annotated[
        str | None,
        typer.Option("--image", "-i", help="Evaluate risk statuses for this image"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List drives and their risk statuses."""
    from imageflasher.drives.constraints import make_risk_oracle
    from imageflasher.drives.device import SourceImage, list_drives

    settings = get_settings()
    oracle = make_risk_oracle(settings.large_drive_size)

    source: SourceImage | None = None
    if image:
        try:
            source = SourceImage.from_path(image)
        except OSError:
            console.print(f"[red]Image file not found: {image}[/red]")
            raise typer.Exit(code=1) from None

    drives = list_drives()

    if json_output:
        output = [
            {
                "device": d.device,
                "description": d.description,
                "size_bytes": d.size_bytes,
                "is_system": d.is_system,
                "is_read_only": d.is_read_only,
                "mount_points": list(d.mount_points),
                "statuses": sorted(s.value for s in oracle(d, source)),
            }
            for d in drives
        ]
        _print_raw(json.dumps(output, indent=2))
        return

    if not drives:
        console.print("[yellow]No drives found[/yellow]")
        return

    console.print(f"[bold]Found {len(drives)} drive(s):[/bold]")
    console.print()
    for d in drives:
        statuses = sorted(s.value for s in oracle(d, source))
        color = "red" if statuses else "green"
        console.print(f"  [{color}]{d.device}[/{color}]")
        console.print(f"    Description: {d.description}")
        console.print(f"    Size: {d.size_bytes if d.size_bytes is not None else '?'}")
        if d.mount_points:
            console.print(f"    Mounted at: {', '.join(d.mount_points)}")
        if statuses:
            console.print(f"    Warnings: {', '.join(statuses)}")
        console.print()


flash_app = typer.Typer(help="Flash images to drives")
app.add_typer(flash_app, name="flash")


def _print_warning(controller: FlashController) -> None:
    state = controller.state
    title, body = messages.warning_text(state.system_drive_warning)
    console.print(f"[bold red]WARNING:[/bold red] {title}")
    console.print(f"  {body}")
    for t in state.pending_warning_targets:
        statuses = ", ".join(sorted(s.value for s in t.statuses))
        console.print(f"    - {messages.describe_target(t.target)} ({statuses})")


def _announce_reselect() -> None:
    console.print("[yellow]Aborted: select other drives and run again[/yellow]")


async def _run_interactive(
    controller: FlashController, *, assume_yes: bool, interactive: bool
) -> bool:
    """Drive the controller through warning and error dialogs.

    Returns:
        True if the attempt ran to an end without a held error.
    """
    available = controller.selection.available
    while True:
        available.refresh()
        await controller.try_flash()

        if controller.state.warning_pending:
            if interactive:
                _print_warning(controller)
            proceed = assume_yes or (
                interactive
                and typer.confirm("Are you sure you want to continue?", default=False)
            )
            await controller.respond_to_warning(proceed)
            if not proceed:
                return False

        if not controller.state.error_pending:
            return True

        if interactive:
            console.print("[bold red]Attention[/bold red]")
            console.print(controller.state.error_message)
        retry = interactive and typer.confirm("Retry?", default=False)
        controller.respond_to_error(retry)
        if not retry:
            return False


@flash_app.command("write")
def flash_write(
    image_path: Annotated[str, typer.Argument(help="Path to image file")],
    devices: Annotated[
        list[str], typer.Argument(help="Device paths (e.g., /dev/sdX)")
    ],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Confirm drive warnings without asking"),
    ] = False,
    no_history: Annotated[
        bool,
        typer.Option("--no-history", help="Do not record the attempt"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON (non-interactive)"),
    ] = False,
) -> None:
    """Flash an image to one or more drives.

    System drives and unusually large drives need confirmation, either
    interactively or with --yes. After a failure you are offered a retry.
    """
    from imageflasher.db import init_history_db
    from imageflasher.drives.selection import SelectionError
    from imageflasher.flash.service import create_flash_controller
    from imageflasher.notify import ConsoleNotifier, LogNotifier

    settings = get_settings()

    session_factory = None if no_history else init_history_db(settings.db_url)

    controller = create_flash_controller(
        settings,
        notifier=LogNotifier() if json_output else ConsoleNotifier(console),
        session_factory=session_factory,
        on_reselect=None if json_output else _announce_reselect,
    )
    outcomes: list[AttemptOutcome] = []
    controller.add_outcome_listener(outcomes.append)

    selection = controller.selection
    selection.available.refresh()
    try:
        selection.select_image(image_path)
        for device in devices:
            selection.select_drive(device)
    except SelectionError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1) from None

    completed = asyncio.run(
        _run_interactive(controller, assume_yes=yes, interactive=not json_output)
    )
    outcome = outcomes[-1] if outcomes else None

    if json_output:
        output = {
            "outcome": outcome.to_dict() if outcome else None,
            "state": controller.state.to_dict(),
        }
        _print_raw(json.dumps(output, indent=2))
    elif outcome is None and completed:
        console.print("[yellow]Nothing was flashed[/yellow]")

    if not completed or outcome is None or outcome.kind is not OutcomeKind.SUCCESS:
        raise typer.Exit(code=1)


@flash_app.command("history")
def flash_history(
    outcome: Annotated[
        str | None,
        typer.Option("--outcome", "-o", help="Filter by outcome"),
    ] = None,
    device: Annotated[
        str | None,
        typer.Option("--device", "-d", help="Filter by device path"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum records to show"),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List recorded flash attempts."""
    from imageflasher.db import init_history_db
    from imageflasher.flash.history import attempt_record_to_dict, get_attempt_records

    outcome_filter: OutcomeKind | None = None
    if outcome:
        try:
            outcome_filter = OutcomeKind(outcome)
        except ValueError:
            console.print(f"[red]Invalid outcome: {outcome}[/red]")
            console.print(f"Valid values: {', '.join(k.value for k in OutcomeKind)}")
            raise typer.Exit(code=1) from None

    factory = init_history_db()
    with factory() as session:
        records = get_attempt_records(
            session, outcome=outcome_filter, device=device, limit=limit
        )

        if json_output:
            _print_raw(
                json.dumps([attempt_record_to_dict(r) for r in records], indent=2)
            )
            return

        if not records:
            console.print("[yellow]No flash attempts found[/yellow]")
            return

        console.print(f"[bold]Found {len(records)} flash attempt(s):[/bold]")
        console.print()
        for r in records:
            color = {
                "success": "green",
                "partial-failure": "yellow",
                "error": "red",
            }.get(r.outcome, "dim")
            console.print(f"  [{color}]#{r.id} {r.image}[/{color}]")
            console.print(f"    Outcome: {r.outcome}")
            console.print(f"    Devices: {', '.join(r.device_list)}")
            console.print(
                f"    Targets: {r.success_count} succeeded, {r.fail_count} failed"
            )
            if r.error_code:
                console.print(f"    Error: {r.error_code}")
            console.print(f"    Finished: {r.finished_at.isoformat()}")
            console.print()


if __name__ == "__main__":
    app()
