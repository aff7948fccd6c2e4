"""
CertLedger CLI

Run the API server, hash certificate files, probe the ledger, and bootstrap admin accounts.
"""
import asyncio

import click
from rich.console import Console
from rich.table import Table

from certledger import __version__
from certledger.accounts import create_user
from certledger.config import get_config
from certledger.hashing import canonicalize, to_chain_hash
from certledger.ledger import get_ledger_client
from certledger.storage import close_store, get_store
from certledger.utils import DuplicateRecordError, compute_sha256, setup_logging

console = Console()


# ═══════════════════════════════════════════════════════════════════
# MAIN CLI GROUP
# ═══════════════════════════════════════════════════════════════════

@click.group()
@click.version_option(version=__version__)
def main():
    """
    CertLedger - death certificate registry and verification

    Certificates are pinned to IPFS and registered on-chain; insurers verify
    uploaded copies against the registry.
    """
    cfg = get_config()
    setup_logging(cfg.log_level, cfg.log_file)


# ═══════════════════════════════════════════════════════════════════
# SERVER
# ═══════════════════════════════════════════════════════════════════

@main.command()
@click.option('--host', default=None, help='Bind address (default: CERTLEDGER_API_HOST)')
@click.option('--port', default=None, type=int, help='Port (default: CERTLEDGER_API_PORT)')
@click.option('--reload', is_flag=True, help='Auto-reload on code changes')
def serve(host, port, reload):
    """Run the HTTP API with uvicorn"""
    import uvicorn

    cfg = get_config()
    host = host or cfg.api_host
    port = port or cfg.api_port
    console.print(f"\n[bold blue]CertLedger API[/bold blue] on http://{host}:{port}")
    uvicorn.run("certledger.api.main:app", host=host, port=port, reload=reload)


# ═══════════════════════════════════════════════════════════════════
# HASHING AND LEDGER
# ═══════════════════════════════════════════════════════════════════

@main.command(name='hash')
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False))
def hash_file(file_path):
    """Print the SHA-256 of a certificate file"""
    digest = compute_sha256(file_path)
    console.print(f"[cyan]sha256:[/cyan]  {digest}")
    console.print(f"[cyan]bytes32:[/cyan] {to_chain_hash(digest)}")


@main.command(name='verify-hash')
@click.argument('cert_hash')
def verify_hash(cert_hash):
    """Look up a certificate hash on the registry contract"""
    canonical = canonicalize(cert_hash)
    if canonical is None:
        raise click.BadParameter("expected 64 hex characters, optionally 0x-prefixed", param_hint="CERT_HASH")

    with console.status("[bold green]Querying ledger..."):
        result = asyncio.run(get_ledger_client().probe(canonical))

    table = Table(title="On-chain Lookup")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Hash", result.formatted_hash)
    table.add_row("Exists", str(result.exists))
    table.add_row("IPFS CID", result.ipfs_cid or "-")
    table.add_row("Registrar", result.registrar_address or "-")
    table.add_row("Timestamp", str(result.registration_timestamp))
    console.print(table)

    if result.error:
        console.print(f"\n[red]✗ Error: {result.error}[/red]")
        raise SystemExit(1)
    if result.exists:
        console.print("\n[green]✓ Registered on-chain[/green]")
    else:
        console.print("\n[yellow]Not registered[/yellow]")


# ═══════════════════════════════════════════════════════════════════
# ACCOUNTS
# ═══════════════════════════════════════════════════════════════════

@main.command(name='create-admin')
@click.argument('email')
@click.argument('name')
@click.password_option(help='Admin password (prompted if omitted)')
def create_admin(email, name, password):
    """Create an approved admin account"""
    try:
        user = create_user(
            get_store(),
            name=name,
            email=email,
            password=password,
            role="admin",
            approved=True,
        )
    except DuplicateRecordError as e:
        console.print(f"\n[red]✗ {e}[/red]")
        raise SystemExit(1)
    finally:
        close_store()

    console.print(f"\n[green]✓ Admin created[/green] id={user['id']} email={user['email']}")
    if not get_config().neo4j_configured:
        console.print("[yellow]Neo4j is not configured; the account lives only in this process.[/yellow]")


if __name__ == '__main__':
    main()
