"""Rich renderables for secret records."""

from typing import Iterable, Optional

from rich.markup import escape
from rich.table import Table

from ..vault.models import SecretRecord, SecretType

MASK = "••••••••"

# (label, attribute) pairs shown for each kind, in order
DETAIL_FIELDS: dict[SecretType, list[tuple[str, str]]] = {
    SecretType.PASSWORD: [
        ("Description", "description"),
        ("Username", "username"),
        ("Password", "password"),
        ("URL", "url"),
    ],
    SecretType.API_KEY: [
        ("Description", "description"),
        ("Service", "service"),
        ("Key", "key"),
    ],
    SecretType.NOTE: [
        ("Content", "content"),
    ],
    SecretType.DB_CREDENTIAL: [
        ("Description", "description"),
        ("Type", "db_type"),
        ("Host", "host"),
        ("Port", "port"),
        ("Database", "database"),
        ("Username", "username"),
        ("Password", "password"),
        ("Connection", "connection_string"),
    ],
    SecretType.TOKEN: [
        ("Description", "description"),
        ("Type", "token_type"),
        ("Token", "token"),
        ("Expires", "expires_at"),
    ],
}

# Attributes masked unless the caller asks to show secrets
SECRET_FIELDS = {"password", "key", "content", "token", "connection_string"}


def format_value(record: SecretRecord, attr: str, show_secret: bool) -> Optional[str]:
    value = getattr(record, attr)
    if value is None or value == "":
        return None
    if attr in SECRET_FIELDS and not show_secret:
        return MASK
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d %H:%M")
    return escape(str(value))


def record_table(record: SecretRecord, show_secret: bool = False) -> Table:
    """Two-column detail view of one record."""
    table = Table(show_header=False, title=record.kind.label.title(), title_justify="left")
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("ID", f"[cyan]{record.id}[/cyan]")
    table.add_row("Name", f"[bold]{escape(record.name)}[/bold]")
    for label, attr in DETAIL_FIELDS[record.kind]:
        value = format_value(record, attr, show_secret)
        if value is None:
            continue
        if attr in SECRET_FIELDS:
            value = f"[yellow]{value}[/yellow]"
        table.add_row(label, value)
    table.add_row("Created", record.created_at.strftime("%Y-%m-%d %H:%M"))
    return table


def list_table(kind: SecretType, records: Iterable[SecretRecord]) -> Table:
    """One table per kind: id, name and a non-secret hint."""
    records = list(records)
    table = Table(title=f"{kind.label.title()}s ({len(records)})", title_justify="left")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Details", style="dim")
    for record in records:
        table.add_row(record.id, escape(record.name), escape(record.hint or ""))
    return table
