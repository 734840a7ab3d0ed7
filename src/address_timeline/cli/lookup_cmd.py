"""Read-only diagnostic commands for inspecting a user's address timeline."""

import asyncio
from datetime import date

import typer

from address_timeline.lib.timeline.errors import TimelineError
from address_timeline.lib.timeline.taxonomy import Channel


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        msg = f"Invalid date '{value}', expected YYYY-MM-DD"
        raise typer.BadParameter(msg) from e


def lookup(
    smart_id: str = typer.Argument(..., help="Smart ID of the user"),
    target_date: str = typer.Argument(..., metavar="DATE", help="Day to resolve (YYYY-MM-DD)"),
    channel: Channel = typer.Option(Channel.MAIL, "--channel", "-c", help="Delivery channel"),
) -> None:
    """Print the address in effect for a user on a date as JSON."""
    target = _parse_date(target_date)
    try:
        output = asyncio.run(_lookup(smart_id, channel, target))
    except TimelineError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(output)


async def _lookup(smart_id: str, channel: Channel, target: date) -> str:
    """Async implementation of the effective-address lookup."""
    from address_timeline.core.config import get_settings
    from address_timeline.core.database import dispose_engine, get_session_factory, init_engine
    from address_timeline.services.resolution_service import resolve_for_smart_id

    settings = get_settings()
    init_engine(
        settings.database_url,
        schema=settings.database_schema,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )

    try:
        factory = get_session_factory()
        async with factory() as session:
            response = await resolve_for_smart_id(session, smart_id, channel, target)
        return response.model_dump_json(indent=2)
    finally:
        await dispose_engine()


def history(
    smart_id: str = typer.Argument(..., help="Smart ID of the user"),
    limit: int | None = typer.Option(None, "--limit", "-n", min=1, help="Maximum assignments to show"),
    as_json: bool = typer.Option(False, "--json", help="Print the history as one JSON document"),
) -> None:
    """List a user's assignment history, newest first."""
    try:
        lines = asyncio.run(_history(smart_id, limit, as_json=as_json))
    except TimelineError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    if not lines:
        typer.echo("No assignments found.")
        return
    for line in lines:
        typer.echo(line)


async def _history(smart_id: str, limit: int | None, *, as_json: bool = False) -> list[str]:
    """Async implementation of the history listing."""
    from address_timeline.core.config import get_settings
    from address_timeline.core.database import dispose_engine, get_session_factory, init_engine
    from address_timeline.schemas.assignment import AssignmentListResponse, AssignmentResponse
    from address_timeline.services.assignment_service import list_assignment_history
    from address_timeline.services.resolution_service import get_user_by_smart_id

    settings = get_settings()
    init_engine(
        settings.database_url,
        schema=settings.database_schema,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )

    try:
        factory = get_session_factory()
        async with factory() as session:
            user = await get_user_by_smart_id(session, smart_id)
            assignments = await list_assignment_history(
                session, user.id, limit=limit or settings.assignment_list_limit
            )
        if as_json:
            listing = AssignmentListResponse(
                items=[AssignmentResponse.model_validate(a) for a in assignments],
                total=len(assignments),
            )
            return [listing.model_dump_json(indent=2)]
        return [
            f"{a.start_date.isoformat()}  {(a.end_date.isoformat() if a.end_date else 'open'):<10}  "
            f"{a.status:<22}  {a.address.line_one}, {a.address.city} {a.address.zip_code}"
            for a in assignments
        ]
    finally:
        await dispose_engine()
