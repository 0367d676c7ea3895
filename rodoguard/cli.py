"""RodoGuard CLI application with Typer."""

import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer

from rodoguard import __version__
from rodoguard.app.adapters.pii_regex import detect, resolve_overlaps
from rodoguard.app.audit_service import AuditService
from rodoguard.audit.ledger import AuditQuery, PrivacyAction
from rodoguard.config import get_settings
from rodoguard.storage.encrypted_store import (
    EncryptedStoreFile,
    StoreDecryptionError,
    StoreLockedError,
)
from rodoguard.utils.cli_output import json_response
from rodoguard.utils.crypto import KeyMaterialError, resolve_key
from rodoguard.utils.log_scrub import install_pii_scrubbing

app = typer.Typer(
    name="rodoguard",
    help="Offline privacy protection for Polish legal data",
    add_completion=False,
    no_args_is_help=True,
)
audit_app = typer.Typer(help="Privacy audit ledger reporting")
app.add_typer(audit_app, name="audit")
keys_app = typer.Typer(help="Encryption key management")
app.add_typer(keys_app, name="keys")
store_app = typer.Typer(help="Encrypted store files")
app.add_typer(store_app, name="store")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"RodoGuard version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """RodoGuard - detect, anonymize and audit personal data."""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    install_pii_scrubbing()


def _resolve_key_or_exit() -> bytes | None:
    try:
        return resolve_key(get_settings())
    except KeyMaterialError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc


@app.command("scan")
def scan(
    path: Annotated[Path, typer.Argument(help="Text file to scan", exists=True, dir_okay=False)],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Report personal data kinds found in a file. Values are never printed."""
    text = path.read_text(encoding="utf-8", errors="replace")
    result = detect(text)
    spans = resolve_overlaps(result.spans)
    counts = Counter(span.kind.value for span in spans)

    if json_output:
        typer.echo(
            json_response(
                "scan_report",
                1,
                path=str(path),
                has_sensitive_data=result.has_sensitive_data,
                pii_match_count=len(spans),
                pii_kinds=dict(counts),
                matched_keywords=result.matched_keywords,
            )
        )
        return

    if not result.has_sensitive_data:
        typer.secho("No personal data detected", fg=typer.colors.GREEN)
        return

    typer.secho(f"{len(spans)} personal data match(es)", fg=typer.colors.YELLOW)
    for kind, count in counts.most_common():
        typer.echo(f"  {kind}: {count}")
    if result.matched_keywords:
        typer.echo(f"Keywords: {', '.join(result.matched_keywords)}")


@audit_app.command("query")
def audit_query(
    action: Annotated[
        PrivacyAction | None, typer.Option("--action", help="Filter by decision kind")
    ] = None,
    session_ref: Annotated[str | None, typer.Option("--session", help="Session reference")] = None,
    user_ref: Annotated[str | None, typer.Option("--user", help="User reference")] = None,
    since: Annotated[
        datetime | None, typer.Option("--since", help="Only entries at or after this time")
    ] = None,
    limit: Annotated[int | None, typer.Option("--limit", "-n", help="Maximum entries")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show privacy audit entries, newest first."""
    settings = get_settings()
    service = AuditService.from_settings(settings)

    if not service.is_enabled():
        typer.secho("No audit ledger found", fg=typer.colors.YELLOW)
        return

    entries = service.query(
        AuditQuery(
            action=action,
            session_ref=session_ref,
            user_ref=user_ref,
            since=since,
            limit=settings.clamp_audit_limit(limit),
        )
    )

    if json_output:
        typer.echo(
            json_response(
                "privacy_audit_log",
                1,
                total_entries=len(entries),
                entries=[entry.model_dump(mode="json") for entry in entries],
            )
        )
        return

    if not entries:
        typer.secho("No audit ledger entries found", fg=typer.colors.YELLOW)
        return

    for entry in entries:
        kinds = ",".join(kind.value for kind in entry.pii_kinds or [])
        typer.echo(
            f"{entry.timestamp.isoformat()} | {entry.action.value} | {entry.reason}"
            f" | matches={entry.pii_match_count or 0} kinds={kinds or '-'}"
        )


@audit_app.command("verify")
def audit_verify() -> None:
    """Verify audit ledger integrity."""
    service = AuditService.from_settings(get_settings())

    if not service.is_enabled():
        typer.secho("No audit ledger found", fg=typer.colors.YELLOW)
        return

    valid, error = service.verify()
    if valid:
        typer.secho("Audit ledger is valid", fg=typer.colors.GREEN)
        return

    message = error or "Audit ledger integrity check failed"
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@keys_app.command("status")
def keys_status() -> None:
    """Show where the store encryption key comes from. Never prints key material."""
    settings = get_settings()

    if not settings.db_encrypt:
        typer.secho("Encryption: disabled by configuration", fg=typer.colors.YELLOW)
        return

    if settings.get_db_passphrase() is not None:
        source = "environment (RODOGUARD_DB_KEY)"
    elif settings.get_db_key_path().exists():
        source = f"keyfile {settings.get_db_key_path()}"
    else:
        source = f"not yet generated (will be created at {settings.get_db_key_path()})"

    salt_path = settings.get_db_salt_path()
    typer.echo(f"Encryption: enabled (required={settings.require_encryption})")
    typer.echo(f"Key source: {source}")
    typer.echo(f"Salt file: {salt_path} ({'present' if salt_path.exists() else 'missing'})")


@store_app.command("encrypt")
def store_encrypt(
    source: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Plain file")],
    dest: Annotated[Path, typer.Argument(help="Encrypted container to write")],
) -> None:
    """Encrypt a file into a container."""
    key = _resolve_key_or_exit()
    if key is None:
        typer.secho("Encryption is disabled or no key is available", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    EncryptedStoreFile(dest, key).save(source.read_bytes())
    typer.secho(f"Encrypted store written to {dest}", fg=typer.colors.GREEN)


@store_app.command("decrypt")
def store_decrypt(
    source: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Container")],
    dest: Annotated[Path, typer.Argument(help="Plain file to write")],
) -> None:
    """Decrypt a container back to a plain file."""
    key = _resolve_key_or_exit()
    try:
        data = EncryptedStoreFile(source, key).load()
    except (StoreLockedError, StoreDecryptionError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(data or b"")
    typer.secho(f"Decrypted store written to {dest}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
