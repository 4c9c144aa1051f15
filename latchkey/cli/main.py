"""latchkey CLI - encrypted secret manager for developers."""

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from .. import __version__
from ..utils.clipboard import copy_to_clipboard
from ..utils.display import list_table, record_table
from ..utils.logging import console, setup_logging
from ..vault import (
    SecretType,
    SessionConfig,
    Vault,
    VaultError,
    VaultNotFoundError,
    VaultStorage,
    get_vault_config,
)

MIN_MASTER_PASSWORD_LENGTH = 8

app = typer.Typer(
    name="latchkey",
    help="Local-first encrypted secret manager for developers.",
    no_args_is_help=True,
)
add_app = typer.Typer(help="Add a new secret.", no_args_is_help=True)
generate_app = typer.Typer(help="Generate random secrets.", no_args_is_help=True)
app.add_typer(add_app, name="add")
app.add_typer(generate_app, name="generate")


def _error(message: str) -> None:
    console.print(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(1)


def _success(message: str) -> None:
    console.print(f"[green]✓ {escape(message)}[/green]")


def _info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {escape(message)}")


@contextmanager
def _vault_errors():
    """Turn vault errors into a message and exit code 1."""
    try:
        yield
    except VaultNotFoundError:
        _error("Vault not initialized. Run 'latchkey init' first.")
    except VaultError as e:
        _error(str(e))


def _prompt_password() -> str:
    return typer.prompt("Master password", hide_input=True)


def _open_vault() -> Vault:
    return Vault(get_vault_config())


def _unlocked_vault() -> Vault:
    """Vault unlocked from the session cache or by prompting."""
    vault = _open_vault()
    with _vault_errors():
        vault.ensure_unlocked(_prompt_password)
    return vault


def _copy(value: str, label: str) -> None:
    if copy_to_clipboard(value):
        _success(f"{label} copied to clipboard!")
    else:
        console.print("[yellow]Clipboard unavailable; nothing was copied.[/yellow]")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        dir_okay=False,
        help="Append debug logs to this file",
    ),
):
    """Local-first encrypted secret manager for developers."""
    setup_logging("DEBUG" if verbose else "WARNING", log_file=log_file)


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force", "-f",
        help="Reinitialize an existing vault (deletes all secrets!)",
    ),
):
    """
    Initialize a new encrypted vault.
    """
    vault = _open_vault()

    if vault.exists and not force:
        _info("Use --force to reinitialize (this will delete all secrets!)")
        _error(f"Vault already exists at {vault.storage.vault_path}")

    if vault.exists and force:
        console.print("[yellow]! This will delete all existing secrets![/yellow]")
        if not typer.confirm("Are you sure you want to continue?", default=False):
            _info("Aborted.")
            raise typer.Exit(0)

    password = typer.prompt("New master password", hide_input=True, confirmation_prompt=True)
    if len(password) < MIN_MASTER_PASSWORD_LENGTH:
        _error(f"Master password must be at least {MIN_MASTER_PASSWORD_LENGTH} characters")

    with _vault_errors():
        vault.init(password, force=force)

    _success("Vault initialized successfully!")
    _info(f"Your encrypted vault is stored at {vault.storage.vault_path}")
    _info("Remember your master password - it cannot be recovered!")


@app.command()
def unlock(
    timeout: Optional[int] = typer.Option(
        None,
        "--timeout", "-t",
        min=0,
        help="Minutes to stay unlocked (overrides config, 0 = no session)",
    ),
):
    """
    Unlock the vault for a while so later commands skip the password.
    """
    vault = _open_vault()
    if not vault.exists:
        _error("Vault not initialized. Run 'latchkey init' first.")

    with _vault_errors():
        if vault.unlock_cached():
            _info("Vault is already unlocked.")
            return

        vault.unlock(_prompt_password())
        record = vault.start_session(timeout)

    if record is None:
        _success("Vault unlocked (session disabled).")
    else:
        minutes = timeout if timeout is not None else vault.session_config().timeout_minutes
        _success(f"Vault unlocked for {minutes} minutes.")


@app.command()
def lock():
    """
    Lock the vault (clear the cached session).
    """
    _open_vault().lock()
    _success("Vault locked. Master password will be required for next access.")


@app.command()
def status():
    """
    Show whether the vault exists and is unlocked.
    """
    vault = _open_vault()
    console.print(f"Vault: {escape(str(vault.storage.vault_path))}")

    if not vault.exists:
        console.print("State: [yellow]not initialized[/yellow]")
        return

    remaining = vault.session.time_remaining()
    if remaining is None:
        console.print("State: [red]locked[/red]")
    else:
        minutes = int(remaining.total_seconds() // 60)
        console.print(f"State: [green]unlocked[/green] ({minutes} min remaining)")


@add_app.command("password")
def add_password(
    name: str = typer.Option(..., "--name", "-n", prompt="Name (e.g. 'github-personal')"),
    password: str = typer.Option(..., "--password", "-p", prompt="Password", hide_input=True),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Username"),
    url: Optional[str] = typer.Option(None, "--url", help="Login URL"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
):
    """Add a password."""
    vault = _unlocked_vault()
    with _vault_errors():
        record = vault.add_password(
            name, password, description=description, username=username, url=url
        )
    _success(f"Password '{record.name}' added ({record.id}).")


@add_app.command("api-key")
def add_api_key(
    name: str = typer.Option(..., "--name", "-n", prompt="Name (e.g. 'stripe-api-key')"),
    key: str = typer.Option(..., "--key", "-k", prompt="API key", hide_input=True),
    service: Optional[str] = typer.Option(None, "--service", "-s", help="Service, e.g. Stripe"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
):
    """Add an API key."""
    vault = _unlocked_vault()
    with _vault_errors():
        record = vault.add_api_key(name, key, description=description, service=service)
    _success(f"API key '{record.name}' added ({record.id}).")


@add_app.command("note")
def add_note(
    name: str = typer.Option(..., "--name", "-n", prompt="Name (e.g. 'recovery-codes')"),
    content: str = typer.Option(..., "--content", "-c", prompt="Content"),
):
    """Add a private note."""
    vault = _unlocked_vault()
    with _vault_errors():
        record = vault.add_note(name, content)
    _success(f"Note '{record.name}' added ({record.id}).")


@add_app.command("db")
def add_db_credential(
    name: str = typer.Option(..., "--name", "-n", prompt="Name (e.g. 'prod-postgres')"),
    host: str = typer.Option(..., "--host", prompt="Host"),
    database: str = typer.Option(..., "--database", prompt="Database name"),
    username: str = typer.Option(..., "--username", "-u", prompt="Username"),
    password: str = typer.Option(..., "--password", "-p", prompt="Password", hide_input=True),
    port: Optional[int] = typer.Option(None, "--port", min=1, max=65535, help="Port"),
    db_type: Optional[str] = typer.Option(
        None, "--type", "-t", help="Database type (postgres/mysql/mongodb)"
    ),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
):
    """Add database credentials."""
    vault = _unlocked_vault()
    with _vault_errors():
        record = vault.add_db_credential(
            name,
            host,
            database,
            username,
            password,
            port=port,
            db_type=db_type,
            description=description,
        )
    _success(f"Database credential '{record.name}' added ({record.id}).")


@add_app.command("token")
def add_token(
    name: str = typer.Option(..., "--name", "-n", prompt="Name (e.g. 'jwt-secret')"),
    token: str = typer.Option(..., "--token", prompt="Token", hide_input=True),
    token_type: Optional[str] = typer.Option(
        None, "--type", "-t", help="Token type (jwt/oauth/bearer)"
    ),
    expires: Optional[datetime] = typer.Option(
        None,
        "--expires",
        formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"],
        help="Expiry date (local time)",
    ),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
):
    """Add a token."""
    expires_at = expires.astimezone(timezone.utc) if expires else None
    vault = _unlocked_vault()
    with _vault_errors():
        record = vault.add_token(
            name,
            token,
            description=description,
            token_type=token_type,
            expires_at=expires_at,
        )
    _success(f"Token '{record.name}' added ({record.id}).")


@app.command("list")
def list_secrets(
    kind: Optional[SecretType] = typer.Option(
        None,
        "--kind", "-k",
        case_sensitive=False,
        help="Only show one kind of secret",
    ),
):
    """
    List stored secrets (names only, never values).
    """
    vault = _unlocked_vault()
    kinds = [kind] if kind else list(SecretType)

    total = 0
    for secret_type in kinds:
        records = vault.list(secret_type)
        if not records:
            continue
        console.print(list_table(secret_type, records))
        total += len(records)

    if total == 0:
        _info("No secrets found. Use 'latchkey add' to add secrets.")
    else:
        _info(f"Total: {total} secrets")


@app.command()
def get(
    name_or_id: str = typer.Argument(..., help="Name or ID of the secret"),
    copy: bool = typer.Option(False, "--copy", "-c", help="Copy the secret value to clipboard"),
    mask: bool = typer.Option(False, "--mask", "-m", help="Hide secret values in the output"),
):
    """
    Show a secret by name or ID.
    """
    vault = _unlocked_vault()
    with _vault_errors():
        record = vault.get(name_or_id)

    console.print(record_table(record, show_secret=not mask))

    if copy:
        label = "Connection string" if record.kind is SecretType.DB_CREDENTIAL else "Secret"
        _copy(record.secret_value, label)


@app.command()
def delete(
    name_or_id: str = typer.Argument(..., help="Name or ID of the secret"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
):
    """
    Delete a secret by name or ID.
    """
    vault = _unlocked_vault()
    with _vault_errors():
        record = vault.get(name_or_id)

    if not force:
        console.print(
            f"[yellow]! You are about to delete the {record.kind.label} "
            f"'{escape(record.name)}' ({record.id})[/yellow]"
        )
        if not typer.confirm("Are you sure?", default=False):
            _info("Aborted.")
            raise typer.Exit(0)

    with _vault_errors():
        vault.delete(record.id)
    _success(f"Deleted {record.kind.label} '{record.name}'")


@generate_app.command("jwt")
def generate_jwt(
    copy: bool = typer.Option(False, "--copy", "-c", help="Copy to clipboard"),
):
    """Generate a JWT signing secret (512-bit)."""
    from ..utils.generators import generate_jwt_secret

    _print_generated("JWT secret", generate_jwt_secret(), copy)


@generate_app.command("key")
def generate_random_key(
    length: int = typer.Option(32, "--length", "-l", min=1, help="Length in bytes"),
    copy: bool = typer.Option(False, "--copy", "-c", help="Copy to clipboard"),
):
    """Generate a random hex key."""
    from ..utils.generators import generate_key

    _print_generated("Key", generate_key(length), copy)


@generate_app.command("password")
def generate_random_password(
    length: int = typer.Option(16, "--length", "-l", min=4, help="Length in characters"),
    symbols: bool = typer.Option(False, "--symbols", "-s", help="Include symbols"),
    copy: bool = typer.Option(False, "--copy", "-c", help="Copy to clipboard"),
):
    """Generate a random password."""
    from ..utils.generators import generate_password

    _print_generated("Password", generate_password(length, symbols=symbols), copy)


@generate_app.command("api-key")
def generate_random_api_key(
    copy: bool = typer.Option(False, "--copy", "-c", help="Copy to clipboard"),
):
    """Generate an API key with the lk_ prefix."""
    from ..utils.generators import generate_api_key

    _print_generated("API key", generate_api_key(), copy)


def _print_generated(label: str, value: str, copy: bool) -> None:
    console.print(f"[bold]{label}:[/bold]")
    console.print(escape(value), soft_wrap=True)
    if copy:
        _copy(value, label)


@app.command()
def config(
    timeout: Optional[int] = typer.Option(
        None,
        "--timeout", "-t",
        min=0,
        help="Unlock timeout in minutes (0 disables the session cache)",
    ),
    show: bool = typer.Option(False, "--show", "-s", help="Show current configuration"),
):
    """
    View or change settings.
    """
    storage = VaultStorage(get_vault_config())

    if timeout is not None:
        storage.save_config(SessionConfig(timeout_minutes=timeout))
        if timeout == 0:
            _success("Timeout disabled. Password will be required for every operation.")
        else:
            _success(f"Unlock timeout set to {timeout} minutes.")

    if show or timeout is None:
        current = storage.load_config()
        console.print("\n[bold]Current configuration[/bold]")
        console.print(f"  Vault directory: {escape(str(storage.vault_dir))}")
        console.print(f"  Unlock timeout: {current.timeout_minutes} minutes")


@app.command()
def version():
    """Show version information."""
    console.print(f"latchkey v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
