"""Database migration CLI commands using Alembic programmatically."""

import typer
from loguru import logger

db_app = typer.Typer()

_CONFIG_OPTION = typer.Option("alembic.ini", "--config", "-c", help="Path to alembic.ini")


def _alembic_config(path: str):  # type: ignore[no-untyped-def]
    from alembic.config import Config

    return Config(path)


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
    config: str = _CONFIG_OPTION,
) -> None:
    """Run database migrations up to the target revision."""
    from alembic import command

    logger.info(f"Upgrading database to {revision}")
    command.upgrade(_alembic_config(config), revision)
    logger.info("Database upgrade complete")


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Target revision"),
    config: str = _CONFIG_OPTION,
) -> None:
    """Roll back to the target revision."""
    from alembic import command

    logger.info(f"Downgrading database to {revision}")
    command.downgrade(_alembic_config(config), revision)
    logger.info("Database downgrade complete")


@db_app.command()
def current(config: str = _CONFIG_OPTION) -> None:
    """Show the current database migration revision."""
    from alembic import command

    command.current(_alembic_config(config), verbose=True)
