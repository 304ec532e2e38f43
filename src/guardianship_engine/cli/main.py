"""
Guardianship Engine CLI

Command-line interface for inspecting guardianships and their compliance
position.

Usage:
    guardianship init --db guardianships.db
    guardianship create --file command.json
    guardianship list --active
    guardianship show --id <guardianship_id>
    guardianship check --id <guardianship_id>
    guardianship deadlines --id <guardianship_id>
    guardianship penalties --id <guardianship_id>
    guardianship score --id <guardianship_id>
    guardianship calendar --id <guardianship_id> --year 2025 --month 3
    guardianship events --id <guardianship_id>
"""

import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from typing_extensions import Annotated

from guardianship_engine.guardianship.commands import CreateGuardianship
from guardianship_engine.kernel.errors import GuardianshipEngineError
from guardianship_engine.kernel.logging import configure_logging
from guardianship_engine.service import GuardianshipService

# Configure logging to stderr (avoids polluting stdout for JSON output)
configure_logging(json_output=False, log_level="WARNING")

app = typer.Typer(
    name="guardianship",
    help="Guardianship Engine - Kenyan guardianship lifecycle and compliance",
    add_completion=False,
)

DEFAULT_DB = Path(".guardianship.db")


def get_service(db_path: Optional[Path] = None) -> GuardianshipService:
    """Get service instance"""
    db = db_path or DEFAULT_DB
    if not db.exists():
        typer.echo(f"Error: Database not found: {db}", err=True)
        typer.echo(f"Run 'guardianship init --db {db}' to initialize", err=True)
        raise typer.Exit(1)
    return GuardianshipService(db)


def fail(error: Exception) -> None:
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(1)


def echo_json(data: object) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


@app.command()
def init(
    db: Annotated[
        Path,
        typer.Option(help="Database path"),
    ] = DEFAULT_DB,
) -> None:
    """Initialize a new guardianship database"""
    if db.exists():
        typer.echo(f"Error: Database already exists: {db}", err=True)
        raise typer.Exit(1)

    GuardianshipService(db)
    typer.echo(f"✓ Initialized guardianship database: {db}")


@app.command()
def create(
    file: Annotated[Path, typer.Option("--file", help="CreateGuardianship command (JSON file)")],
    actor_id: Annotated[
        str,
        typer.Option("--actor", help="Actor establishing the guardianship"),
    ] = "system",
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """Establish a guardianship from a JSON command"""
    service = get_service(db)
    try:
        command = CreateGuardianship.model_validate_json(file.read_text())
    except (OSError, ValidationError) as e:
        fail(e)
    try:
        guardianship = service.create_guardianship(command, actor_id=actor_id)
    except GuardianshipEngineError as e:
        fail(e)

    typer.echo(f"✓ Created guardianship: {guardianship['guardianship_id']}")
    typer.echo(f"  Ward: {guardianship['ward']['ward_id']}")
    typer.echo(f"  Primary guardian: {guardianship['primary_guardian_id']}")
    typer.echo(f"  Bond status: {guardianship['bond_status']}")
    for warning in service.load(guardianship["guardianship_id"]).load_warnings:
        typer.echo(f"  ⚠ {warning}")


@app.command("list")
def list_guardianships(
    active: Annotated[bool, typer.Option("--active", help="Only active guardianships")] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """List guardianships"""
    service = get_service(db)
    guardianships = service.list_guardianships(active_only=active)

    if json_output:
        echo_json(guardianships)
        return
    if not guardianships:
        typer.echo("No guardianships")
        return

    counts = service.stats()
    typer.echo(
        f"Guardianships ({counts['total']} total, {counts['active']} active, "
        f"{counts['dissolved']} dissolved):"
    )
    for g in guardianships:
        status = "ACTIVE" if g["is_active"] else f"DISSOLVED ({g['dissolution_reason']})"
        typer.echo(f"  {g['guardianship_id']}: ward {g['ward_id']} [{status}]")


@app.command()
def show(
    guardianship_id: Annotated[str, typer.Option("--id", help="Guardianship ID")],
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """Show a guardianship as JSON"""
    service = get_service(db)
    try:
        echo_json(service.get_guardianship(guardianship_id))
    except GuardianshipEngineError as e:
        fail(e)


@app.command()
def check(
    guardianship_id: Annotated[str, typer.Option("--id", help="Guardianship ID")],
    actor_id: Annotated[
        str,
        typer.Option("--actor", help="Actor running the check"),
    ] = "system",
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """Run a compliance check and record its warnings"""
    service = get_service(db)
    try:
        warnings = service.check_compliance(guardianship_id, actor_id=actor_id)
    except GuardianshipEngineError as e:
        fail(e)

    if not warnings:
        typer.echo("✓ Compliant")
        return
    typer.echo(f"Compliance warnings ({len(warnings)}):")
    for warning in warnings:
        typer.echo(f"  ⚠ {warning}")


@app.command()
def deadlines(
    guardianship_id: Annotated[str, typer.Option("--id", help="Guardianship ID")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """List open compliance deadlines, most urgent first"""
    service = get_service(db)
    try:
        found = service.calculate_compliance_deadlines(guardianship_id)
    except GuardianshipEngineError as e:
        fail(e)

    if json_output:
        echo_json([d.model_dump(mode="json") for d in found])
        return
    if not found:
        typer.echo("No open deadlines")
        return
    for d in found:
        when = f"{d.days_overdue} days overdue" if d.is_overdue else f"due in {d.days_until_due} days"
        typer.echo(f"  [{d.priority.value}] {d.type.value}: {d.due_date.date().isoformat()} ({when})")
        typer.echo(f"    {d.legal_reference}")


@app.command()
def penalties(
    guardianship_id: Annotated[str, typer.Option("--id", help="Guardianship ID")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """Show penalties owed for overdue deadlines"""
    service = get_service(db)
    try:
        assessment = service.calculate_penalties(guardianship_id)
    except GuardianshipEngineError as e:
        fail(e)

    if json_output:
        echo_json(assessment.model_dump(mode="json"))
        return
    if not assessment.penalties:
        typer.echo("No penalties")
        return
    for p in assessment.penalties:
        waivable = " (waivable)" if p.can_be_waived else ""
        typer.echo(f"  {p.deadline_type.value}: KES {p.amount} for {p.days_overdue} days{waivable}")
    typer.echo(f"Total: KES {assessment.total_amount}")
    typer.echo(f"Pay by: {assessment.payment_deadline.date().isoformat()}")


@app.command()
def score(
    guardianship_id: Annotated[str, typer.Option("--id", help="Guardianship ID")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """Show the compliance score"""
    service = get_service(db)
    try:
        result = service.calculate_compliance_score(guardianship_id)
    except GuardianshipEngineError as e:
        fail(e)

    if json_output:
        echo_json(result.model_dump(mode="json"))
        return
    typer.echo(f"Compliance score: {result.overall}/100 ({result.trend.value})")
    typer.echo(f"  Timeliness: {result.timeliness}")
    typer.echo(f"  Completeness: {result.completeness}")
    typer.echo(f"  Accuracy: {result.accuracy}")
    typer.echo(f"  Documentation: {result.documentation}")
    typer.echo(f"  Compared to average: {result.compared_to_average:+d}")
    for recommendation in result.recommendations:
        typer.echo(f"  • {recommendation}")


@app.command()
def calendar(
    guardianship_id: Annotated[str, typer.Option("--id", help="Guardianship ID")],
    year: Annotated[int, typer.Option("--year", help="Calendar year")],
    month: Annotated[
        Optional[int],
        typer.Option("--month", help="Month (1-12); whole year if omitted"),
    ] = None,
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """Show deadlines, tasks and reminders for a period as JSON"""
    service = get_service(db)
    try:
        result = service.generate_compliance_calendar(guardianship_id, year, month)
    except GuardianshipEngineError as e:
        fail(e)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    echo_json(result.model_dump(mode="json"))


@app.command()
def events(
    guardianship_id: Annotated[str, typer.Option("--id", help="Guardianship ID")],
    db: Annotated[
        Optional[Path],
        typer.Option("--db", help="Database path"),
    ] = None,
) -> None:
    """Show the audit trail of a guardianship"""
    service = get_service(db)
    trail = service.get_events(guardianship_id)

    if not trail:
        typer.echo(f"No events for {guardianship_id}")
        return
    for event in trail:
        typer.echo(
            f"  v{event.version} {event.occurred_at.isoformat()} {event.event_type}"
            f" (actor: {event.actor_id or 'system'})"
        )


def main() -> None:
    """Main entry point"""
    app()


if __name__ == "__main__":
    main()
