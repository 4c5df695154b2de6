#!/usr/bin/env python3
"""
CLI to verify DocuSign credentials and inspect envelopes
"""

import asyncio
from typing import Optional

import click
from pydantic import ValidationError

from ecm_docusign.core.config import get_docusign_settings
from ecm_docusign.core.logging import configure_logging
from ecm_docusign.integrations.esignature.base import SignatureError
from ecm_docusign.integrations.esignature.bootstrap import create_docusign_api_client, resolve_endpoints
from ecm_docusign.integrations.esignature.docusign_adapter import DocuSignSignatureEnvelopeAdapter
from ecm_docusign.models.envelope import EnvelopeStatus


@click.group()
def cli():
    """DocuSign adapter CLI tool"""
    configure_logging()


@cli.command()
def check():
    """Authenticate with DocuSign and validate account access"""
    try:
        settings = get_docusign_settings()
    except ValidationError as e:
        raise click.ClickException(f"Invalid DocuSign configuration: {e}")

    base_url, auth_server = resolve_endpoints(settings)
    click.echo(f"Base URL: {base_url}")
    click.echo(f"Auth server: {auth_server}")

    async def _check():
        api_client = await create_docusign_api_client(settings)
        await api_client.close()

    try:
        asyncio.run(_check())
    except SignatureError as e:
        raise click.ClickException(f"DocuSign check failed: {e.error_message}")

    click.echo(f"✅ Authenticated with access to account {settings.account_id}")


@cli.command(name="list")
@click.option(
    '--status',
    type=click.Choice([status.name for status in EnvelopeStatus], case_sensitive=False),
    default=EnvelopeStatus.SENT.name,
    help='Envelope status to list',
)
@click.option('--limit', type=int, default=None, help='Maximum number of envelopes')
def list_envelopes(status: str, limit: Optional[int]):
    """List envelopes in a given status"""
    try:
        settings = get_docusign_settings()
    except ValidationError as e:
        raise click.ClickException(f"Invalid DocuSign configuration: {e}")

    async def _list():
        async with await create_docusign_api_client(settings) as api_client:
            adapter = DocuSignSignatureEnvelopeAdapter(api_client, settings)
            return await adapter.get_envelopes_by_status(EnvelopeStatus[status.upper()], limit)

    try:
        envelopes = asyncio.run(_list())
    except SignatureError as e:
        raise click.ClickException(e.error_message)

    click.echo(f"Found {len(envelopes)} envelopes")
    for envelope in envelopes:
        click.echo(f"  {envelope.external_envelope_id}  {envelope.status.value:<10} {envelope.title or ''}")


if __name__ == "__main__":
    cli()
