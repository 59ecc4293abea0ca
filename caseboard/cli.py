"""CLI tools for Caseboard administration."""

import click

from caseboard.db.enums import Role
from caseboard.db.models import User
from caseboard.db.session import SessionLocal


@click.group()
def cli():
    """Caseboard CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Board name")
@click.option("--color", default=None, help="Hex color, e.g. #3b82f6")
@click.option(
    "--column",
    "columns",
    multiple=True,
    help="Column name, in order (repeatable). Defaults to To Do / In Progress / Done",
)
def create_board(name: str, color: str | None, columns: tuple[str, ...]):
    """
    Create a board with its initial columns.

    Example:
        caseboard create-board --name "Hardware Orders" --column Backlog --column Done
    """
    from caseboard.services import board_service

    db = SessionLocal()
    try:
        board = board_service.create_board(db, name, color=color, columns=list(columns))
        click.echo(f"✓ Created board: {board.name}")
        click.echo(f"  ID: {board.id}")
        click.echo(f"  Slug: {board.slug}")
        for column in board.columns:
            marker = " (final)" if column.is_final else ""
            click.echo(f"  [{column.position}] {column.name}{marker}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email")
@click.option("--name", "display_name", required=True, help="Display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.MEMBER.value,
    show_default=True,
)
def create_user(email: str, display_name: str, role: str):
    """
    Create a user and print a session token for API access.

    Example:
        caseboard create-user --email "ops@example.com" --name "Ops" --role admin
    """
    from caseboard.core.security import create_session_token

    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email.lower()).first()
        if existing:
            click.echo(f"❌ User already exists: {email}")
            return

        user = User(email=email.lower(), display_name=display_name, role=role)
        db.add(user)
        db.commit()

        token = create_session_token(user.id, user.role, user.token_version)
        click.echo(f"✓ Created user: {user.email} ({user.role})")
        click.echo(f"  ID: {user.id}")
        click.echo(f"  Token: {token}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        caseboard revoke-sessions --email "user@example.com"
    """
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user:
            click.echo(f"❌ User not found: {email}")
            return

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--retention-days", type=int, default=None, help="Override TRASH_RETENTION_DAYS")
@click.option("--dry-run", is_flag=True, help="List eligible cases without deleting")
def purge_trash(retention_days: int | None, dry_run: bool):
    """
    Permanently delete cases that have sat in the trash past retention.

    Intended to run from cron.

    Example:
        caseboard purge-trash --retention-days 30
    """
    from caseboard.services import trash_service

    db = SessionLocal()
    try:
        if dry_run:
            eligible = trash_service.list_purge_eligible(db, retention_days=retention_days)
            click.echo(f"{len(eligible)} case(s) eligible for purge")
            for case in eligible:
                click.echo(f"  {case.id}  {case.title}  deleted {case.deleted_at:%Y-%m-%d}")
            return

        count = trash_service.purge_expired(db, retention_days=retention_days)
        click.echo(f"✓ Purged {count} case(s) from trash")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
