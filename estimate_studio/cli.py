import click
from flask.cli import with_appcontext
from sqlalchemy import func

from estimate_studio.extensions import db
from estimate_studio.models.user import User
from estimate_studio.services import snapshots, sheet_sync
from estimate_studio.services.errors import ServiceError
from estimate_studio.services.restore import restore_version


def _owner_id(email: str) -> str:
    user = db.session.query(User).filter(func.lower(User.email) == email.strip().lower()).one_or_none()
    if not user:
        raise click.ClickException(f"No user with email {email}")
    return user.id


@click.group()
def users():
    """User management."""


@users.command("create")
@click.option("--email", required=True)
@click.option("--password", required=True)
@with_appcontext
def users_create(email, password):
    email = email.strip().lower()
    if db.session.query(User).filter(func.lower(User.email) == email).count():
        raise click.ClickException("User already exists")

    user = User(email=email, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    click.echo(f"User created id={user.id} email={user.email}")


@click.group()
def versions():
    """Estimate version snapshots."""


@versions.command("create")
@click.option("--estimate-id", required=True)
@click.option("--owner-email", required=True)
@click.option("--name", default=None, help="Optional label, e.g. 'Sent to client'")
@with_appcontext
def versions_create(estimate_id, owner_email, name):
    try:
        version = snapshots.create_version(db.session, _owner_id(owner_email), estimate_id, name)
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"Version created id={version.id} number={version.version_number}")


@versions.command("restore")
@click.option("--estimate-id", required=True)
@click.option("--version-id", required=True)
@click.option("--owner-email", required=True)
@with_appcontext
def versions_restore(estimate_id, version_id, owner_email):
    try:
        result = restore_version(db.session, _owner_id(owner_email), estimate_id, version_id)
    except ServiceError as e:
        raise click.ClickException(e.message)
    src = result["restored_from"]
    click.echo(f"Restored estimate={estimate_id} from version {src['version_number']} ({src['name'] or 'unnamed'})")
    click.echo("Note: public links were re-issued and view passwords cleared.")


@click.group()
def sheets():
    """Spreadsheet import."""


@sheets.command("import")
@click.option("--estimate-id", required=True)
@click.option("--owner-email", required=True)
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def sheets_import(estimate_id, owner_email, path):
    try:
        parsed = sheet_sync.read_sheet(path)
        result = sheet_sync.replace_estimate_contents(db.session, _owner_id(owner_email), estimate_id, parsed)
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"Imported sections={result['sections']} items={result['items']} into estimate={estimate_id}")
    if result["ignored_views"]:
        click.echo(f"Ignored unknown views: {', '.join(result['ignored_views'])}")


def register_cli(app):
    app.cli.add_command(users)
    app.cli.add_command(versions)
    app.cli.add_command(sheets)
