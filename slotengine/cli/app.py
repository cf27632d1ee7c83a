"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Dict, List, Optional, Tuple

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..adapters.json_store import JsonDataStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SlotEngineError
from ..domain.models import SlotView, WorkingInterval
from ..domain.slot_calculator import SlotCalculator
from ..records import BookingRequest, StaffRecord, parse_timestamp
from ..services.availability import AvailabilityService
from ..services.booking import BookingService

app = typer.Typer(
    name="slotengine",
    help="Compute bookable service slots and create bookings",
    add_completion=False
)

console = Console()

WEEKDAY_NAMES = ["Dom", "Seg", "Ter", "Qua", "Qui", "Sex", "Sáb"]

CONFLICT_LABELS = {
    "break": "intervalo",
    "booking": "agendado",
    "block": "bloqueado",
}


def configure_logging(level: str, verbose: bool = False) -> None:
    """Route log records through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load(config_file: Optional[Path], verbose: bool):
    """Load configuration and the data store."""
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    configure_logging(config.log_level, verbose)
    store = JsonDataStore.from_config(config)
    return config, store


def _build_availability(config: AppConfig, store: JsonDataStore) -> AvailabilityService:
    return AvailabilityService(
        catalog=store,
        schedules=store,
        bookings=store,
        blocks=store,
        slot_calculator=SlotCalculator(timezone=config.timezone),
        defaults=config.defaults,
    )


def _staff_names(store: JsonDataStore, tenant_id: str) -> Dict[str, str]:
    staff = asyncio.run(store.list_staff(tenant_id))
    return {member.id: member.name for member in staff}


async def _staff_schedules(store: JsonDataStore, tenant_id: str) -> List[Tuple[StaffRecord, List[WorkingInterval]]]:
    """Active staff with their schedule rows, fetched in one event loop."""
    staff = await store.list_staff(tenant_id)
    return [(member, await store.list_schedules(tenant_id, member.id)) for member in staff]


@app.command()
def slots(
    tenant: Annotated[str, typer.Argument(help="Tenant id")],
    service: Annotated[str, typer.Argument(help="Service id")],
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    staff: Annotated[Optional[str], typer.Option("--staff", "-s", help="Only this staff member")] = None,
    view: Annotated[SlotView, typer.Option("--view", help="all, available or any_staff")] = SlotView.ALL,
    now: Annotated[Optional[str], typer.Option("--now", help="Reference time (ISO-8601) instead of the clock")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
):
    """
    Show the bookable times of a service on one day.

    Examples:

        slotengine slots salao corte 2025-03-10

        slotengine slots salao corte 2025-03-10 --staff ana --view available

        slotengine slots salao corte 2025-03-10 --view any_staff
    """
    try:
        config, store = _load(config_file, verbose)
        availability = _build_availability(config, store)
        reference = parse_timestamp(now, config.timezone) if now else None

        found = asyncio.run(
            availability.get_slots(
                tenant_id=tenant,
                service_id=service,
                target_date=date,
                staff_id=staff,
                view=view,
                now=reference,
            )
        )
        names = _staff_names(store, tenant)

        console.print()
        if not found:
            console.print("[yellow]⚠ Nenhum horário disponível para esta data.[/yellow]\n")
            return

        table = Table(
            title=f"Horários em {date}",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Horário", style="bold")
        table.add_column("Profissional")
        table.add_column("Situação")

        for slot in found:
            if slot.available:
                status = "[green]livre[/green]"
            else:
                label = CONFLICT_LABELS.get(slot.conflict.value, "ocupado") if slot.conflict else "ocupado"
                status = f"[red]{label}[/red]"
            professional = names.get(slot.staff_id, slot.staff_id or "-")
            table.add_row(
                f"{slot.time_label()} – {slot.end.format('HH:mm')}",
                professional,
                status,
            )

        console.print(table)
        available_count = sum(1 for slot in found if slot.available)
        console.print(f"\n[bold green]✓ {available_count} de {len(found)} horário(s) livre(s)[/bold green]\n")

    except (SlotEngineError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Erro:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def book(
    tenant: Annotated[str, typer.Argument(help="Tenant id")],
    service: Annotated[str, typer.Argument(help="Service id")],
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    customer: Annotated[str, typer.Option("--customer", help="Customer name")],
    phone: Annotated[str, typer.Option("--phone", help="Customer phone")],
    staff: Annotated[Optional[str], typer.Option("--staff", "-s", help="Staff member; first free one if omitted")] = None,
    email: Annotated[Optional[str], typer.Option("--email", help="Customer e-mail")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Booking notes")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Reference time (ISO-8601) instead of the clock")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
):
    """
    Book a service at a given time after re-checking availability.
    """
    try:
        config, store = _load(config_file, verbose)
        availability = _build_availability(config, store)
        booking_service = BookingService(availability=availability, catalog=store, writer=store)
        reference = parse_timestamp(now, config.timezone) if now else None

        request = BookingRequest(
            tenant_id=tenant,
            service_id=service,
            date=date,
            time=time,
            customer_name=customer,
            customer_phone=phone,
            staff_id=staff,
            customer_email=email,
            notes=notes,
            created_via="cli",
        )
        booking = asyncio.run(booking_service.create_booking(request, now=reference))
        names = _staff_names(store, tenant)

        professional = names.get(booking.staff_id, booking.staff_id or "-")
        console.print(
            f"\n[green]✓ Agendamento confirmado[/green] {date} {time} "
            f"com {professional} (id {booking.id})\n"
        )

    except PydanticValidationError as e:
        console.print(f"[bold red]Erro:[/bold red] dados inválidos\n{escape(str(e))}")
        raise typer.Exit(1)

    except (SlotEngineError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Erro:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def list_staff(
    tenant: Annotated[str, typer.Argument(help="Tenant id")],
    config_file: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to config file"
    )
):
    """
    List a tenant's staff and their weekly schedule.
    """
    try:
        _, store = _load(config_file, verbose=False)
        staff = asyncio.run(_staff_schedules(store, tenant))

        if not staff:
            console.print("[yellow]Nenhum profissional cadastrado.[/yellow]")
            return

        table = Table(
            title="Profissionais",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Id", style="dim")
        table.add_column("Nome", style="bold yellow")
        table.add_column("Horários")

        for member, intervals in staff:
            schedule = ", ".join(
                f"{WEEKDAY_NAMES[interval.weekday]} {interval}" for interval in intervals
            )
            table.add_row(member.id, member.name, schedule or "-")

        console.print()
        console.print(table)
        console.print()

    except (SlotEngineError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Erro:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotengine[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
