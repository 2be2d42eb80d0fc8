"""Spreadsheet ingestion CLI commands."""

import asyncio
from pathlib import Path

import typer

ingest_app = typer.Typer()


@ingest_app.command("file")
def ingest_file(
    file: Path = typer.Argument(..., help="Path to a filled .xlsx (or CSV) template", exists=True),  # noqa: B008
    username: str = typer.Option(..., "--as", help="Username of the uploading submitter"),
    batch_name: str | None = typer.Option(None, "--batch-name", help="Batch name (defaults to the file name)"),
    mode: str = typer.Option("submit", "--mode", help="draft or submit"),
    chunk_size: int | None = typer.Option(None, "--chunk-size", help="Rows per insert chunk"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and check duplicates without storing"),
) -> None:
    """Ingest a spreadsheet on behalf of a user."""
    if mode not in ("draft", "submit"):
        typer.echo("Error: --mode must be 'draft' or 'submit'", err=True)
        raise typer.Exit(code=2)
    asyncio.run(_ingest_file(file, username, batch_name or file.stem, mode, chunk_size, dry_run=dry_run))


async def _ingest_file(
    file_path: Path,
    username: str,
    batch_name: str,
    mode: str,
    chunk_size: int | None,
    *,
    dry_run: bool = False,
) -> None:
    from voter_intake.core.config import get_settings
    from voter_intake.core.database import dispose_engine, get_session_factory, init_engine
    from voter_intake.core.permissions import Actor
    from voter_intake.lib.intake import FormatError
    from voter_intake.lib.workflow import AuthorizationError
    from voter_intake.services.auth_service import get_user_by_username
    from voter_intake.services.ingest_service import IngestProgress, ingest, preview

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    def report(progress: IngestProgress) -> None:
        typer.echo(
            f"  chunk {progress.chunk_index + 1}/{progress.chunk_count}: "
            f"{progress.inserted}/{progress.total} rows ({progress.percent:.0f}%)"
        )

    try:
        factory = get_session_factory()
        async with factory() as session:
            user = await get_user_by_username(session, username)
            if user is None or not user.is_active:
                typer.echo(f"Error: no active user '{username}'", err=True)
                raise typer.Exit(code=1)

            actor = Actor(user_id=user.id, role=user.role)
            if dry_run:
                typer.echo(f"Checking {file_path} ({mode}, nothing is stored)...")
                try:
                    checked = await preview(
                        session,
                        file_bytes=file_path.read_bytes(),
                        actor=actor,
                        mode=mode,  # type: ignore[arg-type]
                    )
                except (FormatError, AuthorizationError) as e:
                    typer.echo(f"Error: {e}", err=True)
                    raise typer.Exit(code=1) from e

                typer.echo("\nPreview:")
                typer.echo(f"  Parsed rows:    {checked.total_parsed}")
                typer.echo(f"  With errors:    {checked.total_errors}")
                typer.echo(f"  Duplicates:     {checked.total_duplicates}")
                typer.echo(f"  Ready:          {checked.total_ready}")
                for issue in checked.validation_issues:
                    typer.echo(f"  row {issue.row_number} {issue.field}: {issue.message}")
                return

            typer.echo(f"Ingesting {file_path} as '{batch_name}' ({mode})...")
            try:
                result = await ingest(
                    session,
                    file_bytes=file_path.read_bytes(),
                    batch_name=batch_name,
                    file_name=file_path.name,
                    actor=actor,
                    mode=mode,  # type: ignore[arg-type]
                    chunk_size=chunk_size or settings.ingest_chunk_size,
                    chunk_timeout=settings.ingest_chunk_timeout_seconds,
                    on_progress=report,
                )
            except (FormatError, AuthorizationError) as e:
                typer.echo(f"Error: {e}", err=True)
                raise typer.Exit(code=1) from e

            typer.echo(f"\nIngest {result.status}:")
            typer.echo(f"  Batch:          {result.batch_id or '-'}")
            typer.echo(f"  Parsed rows:    {result.total_parsed}")
            typer.echo(f"  With errors:    {result.total_errors}")
            typer.echo(f"  Duplicates:     {result.total_duplicates}")
            typer.echo(f"  Inserted:       {result.total_inserted}")
            typer.echo(f"  Skipped:        {result.total_skipped}")
            for issue in result.validation_issues:
                typer.echo(f"  row {issue.row_number} {issue.field}: {issue.message}")
            if result.failure is not None:
                typer.echo(f"  Stopped at chunk {result.failure.chunk_index + 1}: {result.failure.message}", err=True)
                raise typer.Exit(code=1)
    finally:
        await dispose_engine()


@ingest_app.command("template")
def write_template(
    output: Path = typer.Argument(Path("voter_template.xlsx"), help="Output path"),  # noqa: B008
) -> None:
    """Write the empty upload template workbook."""
    from voter_intake.lib.intake import build_template

    output.write_bytes(build_template())
    typer.echo(f"Template written to {output}")
