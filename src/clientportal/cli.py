"""Command-line interface for the client portal.

This module provides the CLI commands for running and managing
the client portal authentication service.
"""

import asyncio
from typing import NoReturn

import click

from clientportal import __version__
from clientportal.core.config import get_settings
from clientportal.core.logging import configure_logging, get_logger


@click.group()
@click.version_option(version=__version__, prog_name="clientportal")
def cli() -> None:
    """Client Portal - authentication and session service.

    Settings are read from CLIENTPORTAL_* environment variables and .env.
    """


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind to (overrides config)")
@click.option("--port", type=int, default=None, help="Port to bind to (overrides config)")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    bind_host = host or settings.host
    bind_port = port or settings.port

    configure_logging(settings)
    logger = get_logger(__name__)
    logger.info(
        "Starting Client Portal server",
        host=bind_host,
        port=bind_port,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "clientportal.infrastructure.api.app:create_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


@cli.command()
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
def init_db(force: bool) -> None:
    """Create all database tables.

    Use this only in development. In production, run the Alembic migrations.
    """
    from clientportal.infrastructure.persistence.database import get_db_manager

    settings = get_settings()
    configure_logging(settings)

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations instead of init-db.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        click.confirm("This will create all database tables. Continue?", abort=True, default=False)

    async def initialize() -> None:
        db = get_db_manager()
        try:
            await db.create_tables()
            click.echo("Database initialized successfully.")
        finally:
            await db.disconnect()

    asyncio.run(initialize())


@cli.command()
@click.option("--config", "config_path", default="alembic.ini", show_default=True, help="Alembic config file")
@click.option("--revision", default="head", show_default=True, help="Target revision")
def migrate(config_path: str, revision: str) -> None:
    """Apply database migrations up to a revision."""
    from alembic import command
    from alembic.config import Config

    settings = get_settings()
    configure_logging(settings)

    alembic_cfg = Config(config_path)
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    alembic_cfg.attributes["configure_logger"] = False

    command.upgrade(alembic_cfg, revision)
    click.echo(f"Database migrated to {revision}.")


@cli.command()
def purge_tokens() -> None:
    """Delete expired verification, reset and refresh tokens."""
    from clientportal.domain.services.token_ledger import TokenLedger
    from clientportal.infrastructure.persistence.database import get_db_manager

    configure_logging(get_settings())

    async def purge() -> int:
        db = get_db_manager()
        try:
            async with db.session() as session:
                purged = await TokenLedger(session).purge_expired()
                await session.commit()
                return purged
        finally:
            await db.disconnect()

    click.echo(f"Purged {asyncio.run(purge())} expired token(s).")


@cli.command()
@click.option("--email", type=str, required=True, help="Email address")
@click.option("--first-name", type=str, required=True, help="Given name")
@click.option("--last-name", type=str, required=True, help="Family name")
@click.option(
    "--role",
    type=click.Choice(["admin", "manager", "staff"]),
    default="staff",
    show_default=True,
    help="Internal role to assign",
)
@click.option(
    "--password",
    type=str,
    default=None,
    help="Password (prompts if not provided)",
)
def create_user(
    email: str, first_name: str, last_name: str, role: str, password: str | None
) -> None:
    """Create an internal (non-client) user with a verified email.

    Self-service registration only creates client users; staff accounts
    are provisioned here.
    """
    from clientportal.core.exceptions import ConflictError
    from clientportal.domain.entities.role import Role
    from clientportal.domain.services.credential_store import CredentialStore
    from clientportal.domain.services.password_validator import default_password_validator
    from clientportal.infrastructure.persistence.database import get_db_manager

    settings = get_settings()
    configure_logging(settings)
    logger = get_logger(__name__)

    if password is None:
        password = click.prompt("Password", hide_input=True, confirmation_prompt=True)

    result = default_password_validator.validate(password)
    if not result.valid:
        click.echo(f"Error: {result.reason}", err=True)
        raise SystemExit(1)

    async def create() -> str:
        db = get_db_manager()
        try:
            async with db.session() as session:
                store = CredentialStore(session, settings)
                user = await store.create_user(
                    email=email,
                    raw_password=password,
                    first_name=first_name,
                    last_name=last_name,
                    role=Role(role),
                )
                await store.mark_email_verified(user)
                await session.commit()
                return user.id
        finally:
            await db.disconnect()

    try:
        user_id = asyncio.run(create())
    except ConflictError as e:
        click.echo(f"Error: {e.message}", err=True)
        raise SystemExit(1)

    logger.info("User created via CLI", user_id=user_id, role=role)
    click.echo(f"User created: {user_id} ({email}, {role})")


@cli.command()
def info() -> None:
    """Display configuration and system information."""
    settings = get_settings()

    click.echo(f"""
Client Portal v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}
  API Prefix:   {settings.api_prefix}
  Frontend URL: {settings.frontend_url}

Server:
  Host:         {settings.host}
  Port:         {settings.port}

Database:
  URL:          {settings.database_url}

Security:
  Access TTL:   {settings.jwt_access_expiration}
  Refresh TTL:  {settings.jwt_refresh_expiration}
  Lockout:      {settings.max_failed_login_attempts} attempts / {settings.lockout_minutes} minutes

Email:
  Delivery:     {"smtp" if settings.smtp_configured else "log file (" + settings.email_log_file + ")"}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    Called by the ``clientportal`` console script and ``python -m clientportal``.
    """
    cli()


if __name__ == "__main__":
    main()
