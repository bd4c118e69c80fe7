"""Administrative command line.

Usage:
    python cli.py init-db
    python cli.py create-business "Institut Belle" --email contact@belle.fr
    python cli.py create-user anna@belle.fr --business-id 1
    python cli.py export-quotes --business-id 1 -o devis.csv
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click


def get_app_context():
    """Get Flask application context."""
    from app import create_app
    app = create_app()
    return app.app_context()


@click.group()
def cli():
    """Administration tools for the quote backend."""
    pass


@cli.command("init-db")
def init_db():
    """Create all tables."""
    with get_app_context():
        from extensions import db

        db.create_all()
        click.echo("Database initialized.")


@cli.command("create-business")
@click.argument("name")
@click.option("--email", default=None, help="Business contact email")
@click.option("--phone", default=None, help="Business phone")
def create_business(name: str, email: Optional[str], phone: Optional[str]):
    """Create a business (tenant)."""
    with get_app_context():
        from extensions import db
        from models import Business

        business = Business(name=name, email=email, phone=phone)
        db.session.add(business)
        db.session.commit()
        click.echo(f"Business created: id={business.id} name={business.name}")


@cli.command("create-user")
@click.argument("email")
@click.option("--business-id", type=int, required=True, help="Owning business id")
@click.option("--name", default=None, help="Display name")
def create_user(email: str, business_id: int, name: Optional[str]):
    """Create a user attached to a business."""
    with get_app_context():
        from extensions import db
        from models import Business, User

        if db.session.get(Business, business_id) is None:
            click.echo(f"Error: business {business_id} does not exist", err=True)
            sys.exit(1)
        if User.query.filter_by(email=email.lower()).first():
            click.echo(f"Error: user {email} already exists", err=True)
            sys.exit(1)
        user = User(email=email.lower(), name=name, business_id=business_id)
        db.session.add(user)
        db.session.commit()
        click.echo(f"User created: id={user.id} email={user.email}")


@cli.command("export-quotes")
@click.option("--business-id", type=int, required=True, help="Business to export")
@click.option("--output", "-o", type=click.Path(), help="Output file path")
def export_quotes_cmd(business_id: int, output: Optional[str]):
    """Export all quotes of a business as CSV."""
    with get_app_context():
        from flask import current_app

        from services.export import export_quotes
        from services.tenant import TenantContext

        ctx = TenantContext(user_id=None, business_id=business_id)
        content = export_quotes(ctx, current_app.config["APP_CONFIG"].date_format)
        if not content:
            click.echo("No quotes to export.", err=True)
            return
        if output:
            Path(output).write_text(content + "\n", encoding="utf-8")
            click.echo(f"Export written: {output}")
        else:
            click.echo(content)


if __name__ == "__main__":
    cli()
