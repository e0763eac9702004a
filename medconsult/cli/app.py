"""
Main CLI application using Typer.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..adapters.clock import SystemClock
from ..adapters.json_store import JsonConsultationStore
from ..adapters.memory_store import (
    InMemoryConsultationStore,
    InMemoryDoctorStore,
    InMemoryPatientStore,
)
from ..adapters.records import load_seed_data
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulerError
from ..domain.models import (
    Consultation,
    ConsultationStatus,
    ConsultationType,
    DoctorFilters,
    Medication,
    Pagination,
    Prescription,
)
from ..domain.slot_generator import SlotGenerator
from ..services.booking_scheduler import BookingScheduler
from ..services.doctor_directory import DoctorDirectory

app = typer.Typer(
    name="medconsult",
    help="Find doctors and book consultations",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]

STATUS_STYLES = {
    ConsultationStatus.SCHEDULED: "cyan",
    ConsultationStatus.ONGOING: "green",
    ConsultationStatus.COMPLETED: "dim",
    ConsultationStatus.CANCELLED: "red",
}


@dataclass
class Services:
    config: AppConfig
    directory: DoctorDirectory
    scheduler: BookingScheduler


def _build_services(config_file: Optional[Path]) -> Services:
    """Load configuration and seed data and wire up the services."""
    config = AppConfig.load_from_yaml(config_file or get_default_config_path())

    doctors, patients = [], []
    if config.data_file is not None:
        doctors, patients = load_seed_data(config.data_file)

    doctor_store = InMemoryDoctorStore(doctors)
    patient_store = InMemoryPatientStore(patients)
    if config.consultations_file is not None:
        consultation_store = JsonConsultationStore(config.consultations_file)
    else:
        consultation_store = InMemoryConsultationStore()

    clock = SystemClock(config.timezone)
    generator = SlotGenerator(timezone=config.timezone)

    directory = DoctorDirectory(
        doctor_store,
        generator,
        clock,
        preview_slots=config.directory.preview_slots,
        window_days=config.scheduling.window_days,
        annotation_workers=config.directory.annotation_workers,
    )
    scheduler = BookingScheduler(
        doctor_store,
        patient_store,
        consultation_store,
        generator,
        clock,
        window_days=config.scheduling.window_days,
        booking_horizon_days=config.scheduling.booking_horizon_days,
        enforce_start_time=config.scheduling.enforce_start_time,
        start_grace_minutes=config.scheduling.start_grace_minutes,
    )
    return Services(config=config, directory=directory, scheduler=scheduler)


@contextmanager
def _handle_errors():
    """Turn expected failures into a red message and exit code 1."""
    try:
        yield
    except (SchedulerError, ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _parse_datetime(value: str, tz: str) -> DateTime:
    try:
        parsed = pendulum.parse(value, tz=tz)
    except Exception as e:
        raise ValueError(f"Could not parse date/time '{value}': {e}") from e
    if not isinstance(parsed, DateTime):
        raise ValueError(f"Expected a date and time, got '{value}'")
    return parsed


def _build_prescription(medications: Optional[List[str]], instructions: str) -> Optional[Prescription]:
    if not medications and not instructions:
        return None

    parsed = []
    for value in medications or []:
        parts = [part.strip() for part in value.split(":")]
        if len(parts) != 4 or not all(parts):
            raise ValueError(f"Invalid medication '{value}', expected NAME:DOSAGE:FREQUENCY:DURATION")
        parsed.append(Medication(*parts))
    return Prescription(medications=tuple(parsed), instructions=instructions)


def _format_slot(slot: DateTime) -> str:
    return slot.format("ddd DD.MM.YYYY HH:mm")


def _print_consultation(consultation: Consultation, title: str) -> None:
    style = STATUS_STYLES[consultation.status]
    lines = [
        f"[bold]ID:[/bold] {consultation.id}",
        f"[bold]Doctor:[/bold] {consultation.doctor_name or consultation.doctor_id}"
        f" ({consultation.specialization})",
        f"[bold]Patient:[/bold] {consultation.patient_id}",
        f"[bold]When:[/bold] {_format_slot(consultation.scheduled_at)} ({consultation.duration} min)",
        f"[bold]Type:[/bold] {consultation.type}",
        f"[bold]Fee:[/bold] {consultation.fee:.2f}",
        f"[bold]Status:[/bold] [{style}]{consultation.status}[/{style}]",
    ]
    if consultation.cancellation_reason:
        lines.append(f"[bold]Reason:[/bold] {escape(consultation.cancellation_reason)}")
    if consultation.consultation_notes:
        lines.append(f"[bold]Notes:[/bold] {escape(consultation.consultation_notes)}")
    if consultation.prescription:
        for medication in consultation.prescription.medications:
            lines.append(
                f"[bold]Rx:[/bold] {escape(medication.name)} {escape(medication.dosage)}, "
                f"{escape(medication.frequency)}, {escape(medication.duration)}"
            )
    console.print(Panel.fit("\n".join(lines), title=title))


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """Doctor discovery and consultation booking."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@app.command()
def doctors(
    search: Annotated[Optional[str], typer.Option("--search", "-s", help="Match name or specialization")] = None,
    specialization: Annotated[Optional[str], typer.Option("--specialization", help="Exact specialization")] = None,
    min_rating: Annotated[Optional[float], typer.Option("--min-rating", help="Minimum rating")] = None,
    max_fee: Annotated[Optional[float], typer.Option("--max-fee", help="Maximum consultation fee")] = None,
    location: Annotated[Optional[str], typer.Option("--location", help="City or state")] = None,
    online: Annotated[Optional[bool], typer.Option("--online/--offline", help="Only online or offline doctors")] = None,
    page: Annotated[int, typer.Option("--page", help="Page number (1-based)")] = 1,
    limit: Annotated[Optional[int], typer.Option("--limit", help="Doctors per page")] = None,
    config_file: ConfigOption = None,
):
    """
    Search doctors, best rated first.

    Examples:

        medconsult doctors --search cardio --max-fee 80

        medconsult doctors --location berlin --online --page 2
    """
    with _handle_errors():
        services = _build_services(config_file)
        page_limit = min(limit or services.config.directory.page_limit,
                         services.config.directory.max_page_limit)

        result = services.directory.search(
            DoctorFilters(
                text_search=search,
                specialization=specialization,
                min_rating=min_rating,
                max_fee=max_fee,
                location=location,
                is_online=online,
            ),
            Pagination(page=page, limit=page_limit),
        )

        if not result.items:
            console.print("[yellow]No doctors found.[/yellow]")
            return

        table = Table(
            title=f"Doctors (page {result.page}/{result.total_pages}, {result.total} total)",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("ID", style="dim")
        table.add_column("Name", style="bold yellow")
        table.add_column("Specialization")
        table.add_column("Rating", justify="right")
        table.add_column("Fee", justify="right")
        table.add_column("Online")
        table.add_column("Next slots")

        for entry in result.items:
            doctor = entry.doctor
            table.add_row(
                doctor.id,
                doctor.name,
                doctor.specialization,
                f"{doctor.rating:.1f} ({doctor.review_count})",
                f"{doctor.consultation_fee:.2f}",
                "yes" if doctor.is_online else "no",
                ", ".join(slot.format("ddd HH:mm") for slot in entry.available_slots) or "-",
            )

        console.print()
        console.print(table)
        console.print()


@app.command()
def specializations(config_file: ConfigOption = None):
    """
    List the specializations of discoverable doctors.
    """
    with _handle_errors():
        services = _build_services(config_file)
        names = services.directory.specializations()
        if not names:
            console.print("[yellow]No specializations available.[/yellow]")
            return
        for name in names:
            console.print(f"  {name}")


@app.command()
def slots(
    doctor_id: Annotated[str, typer.Argument(help="Doctor ID")],
    date: Annotated[Optional[str], typer.Option("--date", help="First day (YYYY-MM-DD), defaults to today")] = None,
    days: Annotated[Optional[int], typer.Option("--days", help="Number of days to show")] = None,
    only_open: Annotated[bool, typer.Option("--open", help="Hide slots that are already booked")] = False,
    config_file: ConfigOption = None,
):
    """
    Show a doctor's bookable time slots.
    """
    with _handle_errors():
        services = _build_services(config_file)
        from_date = _parse_datetime(date, services.config.timezone) if date else None

        if only_open:
            found: List[DateTime] = services.scheduler.open_slots(doctor_id, from_date, days)
        else:
            found = services.directory.available_slots(doctor_id, from_date, days)

        if not found:
            console.print("[yellow]No available slots in this period.[/yellow]")
            return

        console.print(f"[bold green]{len(found)} slot(s) available:[/bold green]\n")
        for slot in found:
            console.print(f"  {_format_slot(slot)}")
        console.print()


@app.command()
def book(
    doctor_id: Annotated[str, typer.Argument(help="Doctor ID")],
    patient_id: Annotated[str, typer.Argument(help="Patient ID")],
    scheduled_at: Annotated[str, typer.Argument(help="Slot start, e.g. '2024-11-25 09:30'")],
    type: Annotated[ConsultationType, typer.Option("--type", "-t", help="Consultation type")] = ConsultationType.VIDEO,
    symptoms: Annotated[str, typer.Option("--symptoms", help="Short description of symptoms")] = "",
    config_file: ConfigOption = None,
):
    """
    Book a consultation in one of the doctor's slots.
    """
    with _handle_errors():
        services = _build_services(config_file)
        when = _parse_datetime(scheduled_at, services.config.timezone)
        consultation = services.scheduler.book(doctor_id, patient_id, type, when, symptoms)
        _print_consultation(consultation, "Consultation booked")


@app.command()
def instant(
    patient_id: Annotated[str, typer.Argument(help="Patient ID")],
    type: Annotated[ConsultationType, typer.Option("--type", "-t", help="Consultation type")] = ConsultationType.VIDEO,
    symptoms: Annotated[str, typer.Option("--symptoms", help="Short description of symptoms")] = "",
    config_file: ConfigOption = None,
):
    """
    Start a consultation right now with the best available online doctor.
    """
    with _handle_errors():
        services = _build_services(config_file)
        consultation = services.scheduler.start_instant(patient_id, type, symptoms)
        _print_consultation(consultation, "Instant consultation started")


@app.command()
def consultations(
    patient_id: Annotated[str, typer.Argument(help="Patient ID")],
    config_file: ConfigOption = None,
):
    """
    List a patient's consultations.
    """
    with _handle_errors():
        services = _build_services(config_file)
        found = services.scheduler.list_for_patient(patient_id)

        if not found:
            console.print("[yellow]No consultations found.[/yellow]")
            return

        table = Table(title=f"Consultations of {patient_id}", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("When")
        table.add_column("Doctor", style="bold yellow")
        table.add_column("Type")
        table.add_column("Fee", justify="right")
        table.add_column("Status")

        for consultation in found:
            style = STATUS_STYLES[consultation.status]
            table.add_row(
                consultation.id,
                _format_slot(consultation.scheduled_at),
                consultation.doctor_name or consultation.doctor_id,
                str(consultation.type),
                f"{consultation.fee:.2f}",
                f"[{style}]{consultation.status}[/{style}]",
            )

        console.print()
        console.print(table)
        console.print()


@app.command()
def transition(
    consultation_id: Annotated[str, typer.Argument(help="Consultation ID")],
    status: Annotated[ConsultationStatus, typer.Argument(help="Target status")],
    config_file: ConfigOption = None,
):
    """
    Move a consultation to a new status (ongoing, completed, cancelled).
    """
    with _handle_errors():
        services = _build_services(config_file)
        consultation = services.scheduler.transition(consultation_id, status)
        _print_consultation(consultation, "Consultation updated")


@app.command()
def complete(
    consultation_id: Annotated[str, typer.Argument(help="Consultation ID")],
    notes: Annotated[Optional[str], typer.Option("--notes", help="Consultation notes")] = None,
    medications: Annotated[
        Optional[List[str]],
        typer.Option("--medication", "-m", help="NAME:DOSAGE:FREQUENCY:DURATION, repeatable"),
    ] = None,
    instructions: Annotated[str, typer.Option("--instructions", help="Prescription instructions")] = "",
    config_file: ConfigOption = None,
):
    """
    Complete an ongoing consultation, optionally with notes and a prescription.

    Example:

        medconsult complete 3f2a... --notes "Rest" -m "Ibuprofen:400mg:3x daily:5 days"
    """
    with _handle_errors():
        services = _build_services(config_file)
        prescription = _build_prescription(medications, instructions)
        consultation = services.scheduler.complete(consultation_id, notes, prescription)
        _print_consultation(consultation, "Consultation completed")


@app.command()
def notes(
    consultation_id: Annotated[str, typer.Argument(help="Consultation ID")],
    text: Annotated[Optional[str], typer.Argument(help="Notes to store")] = None,
    medications: Annotated[
        Optional[List[str]],
        typer.Option("--medication", "-m", help="NAME:DOSAGE:FREQUENCY:DURATION, repeatable"),
    ] = None,
    instructions: Annotated[str, typer.Option("--instructions", help="Prescription instructions")] = "",
    config_file: ConfigOption = None,
):
    """
    Record notes or a prescription for an ongoing or completed consultation.
    """
    with _handle_errors():
        services = _build_services(config_file)
        prescription = _build_prescription(medications, instructions)
        consultation = services.scheduler.record_notes(consultation_id, text, prescription)
        _print_consultation(consultation, "Notes recorded")


@app.command()
def cancel(
    consultation_id: Annotated[str, typer.Argument(help="Consultation ID")],
    reason: Annotated[Optional[str], typer.Option("--reason", help="Why the consultation is cancelled")] = None,
    config_file: ConfigOption = None,
):
    """
    Cancel a scheduled or ongoing consultation.
    """
    with _handle_errors():
        services = _build_services(config_file)
        consultation = services.scheduler.cancel(consultation_id, reason)
        _print_consultation(consultation, "Consultation cancelled")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]medconsult[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
