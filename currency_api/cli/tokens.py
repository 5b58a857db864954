"""CLI command for issuing bearer tokens during local testing."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from currency_api.auth.tokens import current_token_service, roles_for


@click.command("issue-token")
@click.argument("client_id")
@with_appcontext
def issue_token(client_id: str) -> None:
    """Print a signed access token for CLIENT_ID."""

    client_id = client_id.strip()
    if not client_id or len(client_id) > 50:
        raise click.BadParameter("CLIENT_ID must be between 1 and 50 characters.")

    token = current_token_service().issue(client_id)
    click.echo(token.access_token)
    click.echo(
        f"roles={','.join(roles_for(client_id))} expires_at={token.expires_at.isoformat()}",
        err=True,
    )
