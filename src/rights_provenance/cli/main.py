"""
Rights Provenance CLI

Command-line interface for the rights ledger and chain of title.
Provides commands for keys, rights, supporting documents and title chains.

Usage:
    provenance init --db rights.db
    provenance keys generate --out studio.jwk.json
    provenance right create --key studio.jwk.json --type DISTRIBUTION \
        --valid-from 2025-01-01 --valid-until 2030-01-01 --territories US,CA --platforms ALL
    provenance right transfer --id 1 --to 0xabc... --type license --key studio.jwk.json
    provenance right check --id 1 --territory US --platform Netflix
    provenance document register --id contract-7 --file contract.pdf
    provenance title add --right 1 --document contract-7 --type ASSIGNMENT --key studio.jwk.json
    provenance title verify --right 1
"""

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import NoReturn, Optional

import typer
from typing_extensions import Annotated

from rights_provenance.documents.registry import SQLiteDocumentRegistry
from rights_provenance.kernel.errors import ProvenanceError
from rights_provenance.kernel.logging import configure_logging
from rights_provenance.kernel.signatures import (
    generate_signing_key,
    identity_for_key,
    load_signing_key,
    save_signing_key,
    sign_right_transfer,
)
from rights_provenance.kernel.time import unix_seconds
from rights_provenance.ledger import ProvenanceLedger

# Configure logging to stderr (avoids polluting stdout for JSON output)
configure_logging(json_output=False, log_level="WARNING")

app = typer.Typer(
    name="provenance",
    help="Rights Provenance - rights ledger with a verifiable chain of title",
    add_completion=False,
)

# Sub-apps
keys_app = typer.Typer(help="Signing key commands")
right_app = typer.Typer(help="Right issuance, transfer and validity commands")
document_app = typer.Typer(help="Supporting document registry commands")
title_app = typer.Typer(help="Chain of title commands")

app.add_typer(keys_app, name="keys")
app.add_typer(right_app, name="right")
app.add_typer(document_app, name="document")
app.add_typer(title_app, name="title")

# Global state
DEFAULT_DB = Path(".provenance.db")

DbOption = Annotated[
    Optional[Path],
    typer.Option("--db", envvar="PROVENANCE_DB", help="Database path"),
]
KeyOption = Annotated[
    Optional[Path],
    typer.Option("--key", help="Signing key file (JWK JSON); acts as its identity"),
]
ActorOption = Annotated[
    Optional[str],
    typer.Option("--actor", help="Acting identity (when no key is given)"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def resolve_db(db_path: Optional[Path] = None) -> Path:
    """Database path, which must already be initialized"""
    db = db_path or DEFAULT_DB
    if not db.exists():
        typer.echo(f"Error: Database not found: {db}", err=True)
        typer.echo(f"Run 'provenance init --db {db}' to initialize", err=True)
        raise typer.Exit(1)
    return db


def get_ledger(db_path: Optional[Path] = None) -> ProvenanceLedger:
    """Get ProvenanceLedger instance"""
    return ProvenanceLedger(resolve_db(db_path))


def resolve_actor(key: Optional[Path], actor: Optional[str]) -> str:
    """Identity of the caller: from the key file if given, else --actor"""
    if key is not None:
        return identity_for_key(load_signing_key(key))
    if actor:
        return actor
    fail("Provide --key or --actor")


def split_scope(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# Initialization command


@app.command()
def init(
    db: Annotated[
        Path,
        typer.Option(envvar="PROVENANCE_DB", help="Database path"),
    ] = DEFAULT_DB,
) -> None:
    """Initialize a new ledger database"""
    if db.exists():
        typer.echo(f"Error: Database already exists: {db}", err=True)
        raise typer.Exit(1)

    # Creating the ledger creates the schema
    ProvenanceLedger(db)
    typer.echo(f"✓ Initialized ledger database: {db}")


# Key commands


@keys_app.command("generate")
def keys_generate(
    out: Annotated[Path, typer.Option("--out", help="Where to write the key file")],
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing file")] = False,
) -> None:
    """Generate an Ed25519 signing key"""
    if out.exists() and not force:
        fail(f"Key file already exists: {out}")

    key = generate_signing_key()
    save_signing_key(key, out)
    os.chmod(out, 0o600)

    typer.echo(f"✓ Generated signing key: {out}")
    typer.echo(f"  Identity: {identity_for_key(key)}")


@keys_app.command("identity")
def keys_identity(
    key: Annotated[Path, typer.Option("--key", help="Signing key file")],
) -> None:
    """Print the identity a key signs as"""
    typer.echo(identity_for_key(load_signing_key(key)))


# Right commands


@right_app.command("create")
def right_create(
    right_type: Annotated[str, typer.Option("--type", help="Right type, e.g. DISTRIBUTION")],
    valid_from: Annotated[datetime, typer.Option("--valid-from", help="Start (UTC)")],
    valid_until: Annotated[datetime, typer.Option("--valid-until", help="Expiry (UTC)")],
    territories: Annotated[
        str,
        typer.Option("--territories", help="Territories (comma-separated, GLOBAL for any)"),
    ],
    platforms: Annotated[
        str,
        typer.Option("--platforms", help="Platforms (comma-separated, ALL for any)"),
    ],
    exclusive: Annotated[bool, typer.Option("--exclusive", help="Exclusive right")] = False,
    key: KeyOption = None,
    actor: ActorOption = None,
    db: DbOption = None,
) -> None:
    """Issue a new right owned by the caller"""
    ledger = get_ledger(db)
    owner = resolve_actor(key, actor)

    right_id = ledger.create_right(
        right_type,
        valid_from,
        valid_until,
        split_scope(territories),
        split_scope(platforms),
        is_exclusive=exclusive,
        actor_id=owner,
    )
    right = ledger.get_right(right_id)

    typer.echo(f"✓ Created right: {right_id}")
    typer.echo(f"  Type: {right.right_type}")
    typer.echo(f"  Owner: {right.original_owner}")
    typer.echo(f"  Valid: {right.valid_from} → {right.valid_until}")
    typer.echo(f"  Territories: {', '.join(right.territories)}")
    typer.echo(f"  Platforms: {', '.join(right.platforms)}")


@right_app.command("show")
def right_show(
    right_id: Annotated[int, typer.Option("--id", help="Right ID")],
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """Show a right, its restrictions and custody"""
    ledger = get_ledger(db)

    try:
        right = ledger.get_right(right_id)
    except ProvenanceError as e:
        fail(str(e))

    if json_output:
        typer.echo(right.model_dump_json(indent=2))
        return

    typer.echo(f"Right {right.right_id}: {right.right_type}")
    typer.echo(f"  Original owner: {right.original_owner}")
    if right.is_license:
        typer.echo(f"  Licensed from: {right.parent_right_id}")
    typer.echo(f"  Exclusive: {right.is_exclusive}")
    typer.echo(f"  Valid: {right.valid_from} → {right.valid_until}")
    typer.echo(f"  Territories: {', '.join(right.territories)}")
    typer.echo(f"  Platforms: {', '.join(right.platforms)}")

    restrictions = right.restriction_items()
    if restrictions:
        typer.echo("  Restrictions:")
        for restriction_type, details in restrictions:
            typer.echo(f"    {restriction_type}: {details}")

    holders = ledger.custody_holders(right_id)
    if holders:
        typer.echo("  Custody:")
        for holder, quantity in holders.items():
            typer.echo(f"    {holder}: {quantity}")


@right_app.command("list")
def right_list(
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """List all rights"""
    ledger = get_ledger(db)
    rights = ledger.list_rights()

    if json_output:
        typer.echo(json.dumps([r.model_dump(mode="json") for r in rights], indent=2))
        return

    if not rights:
        typer.echo("No rights issued")
        return

    typer.echo(f"Rights ({len(rights)}):")
    for right in rights:
        suffix = f" (license of {right.parent_right_id})" if right.is_license else ""
        typer.echo(f"  {right.right_id}: {right.right_type} - {right.original_owner}{suffix}")


@right_app.command("transfer")
def right_transfer(
    right_id: Annotated[int, typer.Option("--id", help="Right ID")],
    to: Annotated[str, typer.Option("--to", help="Recipient identity")],
    key: Annotated[Path, typer.Option("--key", help="Signing key of the current holder")],
    transfer_type: Annotated[
        str,
        typer.Option("--type", help="Transfer type (full, license, or a custom label)"),
    ] = "full",
    db: DbOption = None,
) -> None:
    """Sign and submit a transfer"""
    ledger = get_ledger(db)
    signing_key = load_signing_key(key)
    caller = identity_for_key(signing_key)

    signed_at = unix_seconds(datetime.now(timezone.utc))
    signature = sign_right_transfer(signing_key, right_id, to, signed_at)

    try:
        derived_id = ledger.transfer_right_with_signature(
            right_id,
            to,
            transfer_type,
            signature,
            actor_id=caller,
            signed_at=signed_at,
        )
    except ProvenanceError as e:
        fail(str(e))

    typer.echo(f"✓ Transferred right {right_id} ({transfer_type})")
    typer.echo(f"  From: {caller}")
    typer.echo(f"  To: {to}")
    if derived_id is not None:
        typer.echo(f"  License issued: {derived_id}")


@right_app.command("restrict")
def right_restrict(
    right_id: Annotated[int, typer.Option("--id", help="Right ID")],
    restriction_type: Annotated[str, typer.Option("--type", help="Restriction type")],
    details: Annotated[str, typer.Option("--details", help="Restriction details")],
    key: KeyOption = None,
    actor: ActorOption = None,
    db: DbOption = None,
) -> None:
    """Set a restriction on a right (replaces an earlier one of the same type)"""
    ledger = get_ledger(db)
    caller = resolve_actor(key, actor)

    try:
        ledger.add_right_restriction(right_id, restriction_type, details, actor_id=caller)
    except ProvenanceError as e:
        fail(str(e))

    typer.echo(f"✓ Restricted right {right_id}")
    typer.echo(f"  {restriction_type}: {details}")


@right_app.command("check")
def right_check(
    right_id: Annotated[int, typer.Option("--id", help="Right ID")],
    territory: Annotated[str, typer.Option("--territory", help="Requested territory")],
    platform: Annotated[str, typer.Option("--platform", help="Requested platform")],
    db: DbOption = None,
) -> None:
    """Check whether a right is usable in a territory on a platform (exit 1 if not)"""
    ledger = get_ledger(db)

    try:
        valid = ledger.verify_right_validity(right_id, territory, platform)
    except ProvenanceError as e:
        fail(str(e))

    if valid:
        typer.echo(f"✓ Right {right_id} is valid for {territory} / {platform}")
    else:
        typer.echo(f"✗ Right {right_id} is not valid for {territory} / {platform}")
        raise typer.Exit(1)


@right_app.command("history")
def right_history(
    right_id: Annotated[int, typer.Option("--id", help="Right ID")],
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """Show the transfer history of a right"""
    ledger = get_ledger(db)
    transfers = ledger.get_transfer_history(right_id)

    if json_output:
        typer.echo(json.dumps([t.model_dump(mode="json") for t in transfers], indent=2))
        return

    if not transfers:
        typer.echo(f"No transfers for right {right_id}")
        return

    typer.echo(f"Transfers for right {right_id} ({len(transfers)}):")
    for transfer in transfers:
        line = f"  {transfer.timestamp}: {transfer.from_actor} → {transfer.to_actor} [{transfer.transfer_type}]"
        if transfer.derived_right_id is not None:
            line += f" license {transfer.derived_right_id}"
        typer.echo(line)


@right_app.command("events")
def right_events(
    right_id: Annotated[int, typer.Option("--id", help="Right ID")],
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """Show the stored event log of a right (audit view)"""
    ledger = get_ledger(db)

    try:
        events = ledger.get_right_events(right_id)
    except ProvenanceError as e:
        fail(str(e))

    if json_output:
        typer.echo(json.dumps([e.model_dump(mode="json") for e in events], indent=2))
        return

    typer.echo(f"Events for right {right_id} ({len(events)}):")
    for event in events:
        typer.echo(f"  v{event.version} {event.occurred_at}: {event.event_type} by {event.actor_id}")


# Document commands


@document_app.command("register")
def document_register(
    document_id: Annotated[str, typer.Option("--id", help="Document ID")],
    file: Annotated[
        Optional[Path],
        typer.Option("--file", help="Document file to hash"),
    ] = None,
    content_hash: Annotated[
        Optional[str],
        typer.Option("--hash", help="Precomputed content hash"),
    ] = None,
    db: DbOption = None,
) -> None:
    """Register a supporting document as valid"""
    if file is None and content_hash is None:
        fail("Provide --file or --hash")

    registry = SQLiteDocumentRegistry(resolve_db(db))
    content = file.read_bytes() if file is not None else b""
    record = registry.register(document_id, content=content, content_hash=content_hash)

    typer.echo(f"✓ Registered document: {record.document_id}")
    typer.echo(f"  Hash: {record.content_hash}")


@document_app.command("revoke")
def document_revoke(
    document_id: Annotated[str, typer.Option("--id", help="Document ID")],
    db: DbOption = None,
) -> None:
    """Revoke a document so new title entries can no longer cite it"""
    registry = SQLiteDocumentRegistry(resolve_db(db))
    if not registry.revoke(document_id):
        fail(f"Document not found: {document_id}")
    typer.echo(f"✓ Revoked document: {document_id}")


@document_app.command("show")
def document_show(
    document_id: Annotated[str, typer.Option("--id", help="Document ID")],
    db: DbOption = None,
) -> None:
    """Show a registered document"""
    registry = SQLiteDocumentRegistry(resolve_db(db))
    record = registry.get(document_id)
    if record is None:
        fail(f"Document not found: {document_id}")

    typer.echo(f"Document {record.document_id}")
    typer.echo(f"  Hash: {record.content_hash}")
    typer.echo(f"  Valid: {record.is_valid}")
    typer.echo(f"  Registered: {record.registered_at}")


# Chain of title commands


@title_app.command("add")
def title_add(
    right_id: Annotated[int, typer.Option("--right", help="Right ID")],
    document_id: Annotated[str, typer.Option("--document", help="Supporting document ID")],
    entry_type: Annotated[str, typer.Option("--type", help="Entry type, e.g. ASSIGNMENT")],
    key: KeyOption = None,
    actor: ActorOption = None,
    db: DbOption = None,
) -> None:
    """Append an entry to a right's chain of title"""
    ledger = get_ledger(db)
    recorder = resolve_actor(key, actor)

    try:
        digest = ledger.add_title_entry(right_id, document_id, entry_type, actor_id=recorder)
    except ProvenanceError as e:
        fail(str(e))

    typer.echo(f"✓ Appended title entry for right {right_id}")
    typer.echo(f"  Document: {document_id}")
    typer.echo(f"  Digest: {digest}")


@title_app.command("chain")
def title_chain(
    right_id: Annotated[int, typer.Option("--right", help="Right ID")],
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """Show a right's chain of title"""
    ledger = get_ledger(db)
    entries = ledger.get_title_chain(right_id)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "right_id": right_id,
                    "latest_hash": ledger.latest_title_hash(right_id),
                    "entries": [e.model_dump(mode="json") for e in entries],
                },
                indent=2,
            )
        )
        return

    if not entries:
        typer.echo(f"No chain of title for right {right_id}")
        return

    typer.echo(f"Chain of title for right {right_id} ({len(entries)} entries):")
    for index, entry in enumerate(entries):
        typer.echo(f"\n  #{index} {entry.entry_type}")
        typer.echo(f"    Document: {entry.document_id}")
        typer.echo(f"    Recorder: {entry.recorder}")
        typer.echo(f"    Recorded: {entry.timestamp}")
        typer.echo(f"    Previous: {entry.previous_entry_hash}")
    typer.echo(f"\n  Latest hash: {ledger.latest_title_hash(right_id)}")


@title_app.command("verify")
def title_verify(
    right_id: Annotated[
        Optional[int],
        typer.Option("--right", help="Right ID (omit to verify every chain)"),
    ] = None,
    db: DbOption = None,
) -> None:
    """Replay chain(s) of title and report integrity (exit 1 on failure)"""
    ledger = get_ledger(db)

    if right_id is None:
        reports = ledger.verify_all_title_chains()
        if not reports:
            typer.echo("No chains of title recorded")
            return
    else:
        reports = [ledger.verify_title_chain_report(right_id)]

    failed = False
    for report in reports:
        if report.intact:
            typer.echo(f"✓ Right {report.right_id}: chain intact ({report.entry_count} entries)")
        else:
            failed = True
            typer.echo(f"✗ Right {report.right_id}: {report.reason}")
            if report.failed_index is not None:
                typer.echo(f"  Failed at entry #{report.failed_index}")

    if failed:
        raise typer.Exit(1)


# Monitoring commands


@app.command()
def serve(
    port: Annotated[int, typer.Option("--port", help="Health server port")] = 8080,
    metrics_port: Annotated[
        int,
        typer.Option("--metrics-port", help="Prometheus metrics port (0 disables)"),
    ] = 9090,
    db: DbOption = None,
) -> None:
    """Run the health check server (and Prometheus metrics endpoint)"""
    from rights_provenance.health_server import initialize_health_server, run_health_server
    from rights_provenance.kernel.metrics import start_metrics_server

    ledger = get_ledger(db)
    initialize_health_server(ledger.sqlite_path, ledger)

    if metrics_port:
        start_metrics_server(metrics_port)
        typer.echo(f"✓ Metrics on :{metrics_port}/metrics")

    typer.echo(f"✓ Health server on :{port}/health")
    run_health_server(port=port)


def main() -> None:
    """Main entry point"""
    app()


if __name__ == "__main__":
    main()
