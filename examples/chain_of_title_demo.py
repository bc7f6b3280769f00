#!/usr/bin/env python3
"""
Chain of Title Demonstration - Rights, Licenses and Tamper Evidence

This example walks a film's distribution right through its life:

1. A studio issues a distribution right for US/CA on all platforms
2. The studio licenses it to a streamer (a derived, non-exclusive right)
3. The studio sells the right outright to a distributor
4. Each step is documented in the chain of title
5. Someone edits a stored entry - and replay catches it

Run:
    python examples/chain_of_title_demo.py
"""

import json
import sqlite3
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from rights_provenance import ProvenanceLedger
from rights_provenance.documents.registry import InMemoryDocumentRegistry
from rights_provenance.kernel.signatures import (
    generate_signing_key,
    identity_for_key,
    sign_right_transfer,
)
from rights_provenance.kernel.time import TestTimeProvider, unix_seconds


def print_section(title: str) -> None:
    """Print section header"""
    print(f"\n{'='*70}")
    print(f"  {title}")
    print(f"{'='*70}\n")


def signed_transfer(ledger: ProvenanceLedger, key, right_id: int, to: str, transfer_type: str):
    signature = sign_right_transfer(key, right_id, to, unix_seconds(ledger.time_provider.now()))
    return ledger.transfer_right_with_signature(
        right_id, to, transfer_type, signature, actor_id=identity_for_key(key)
    )


def main() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "rights.db"
        time_provider = TestTimeProvider(datetime(2025, 3, 1, tzinfo=timezone.utc))
        documents = InMemoryDocumentRegistry()

        ledger = ProvenanceLedger(
            db_path, document_registry=documents, time_provider=time_provider
        )

        studio_key = generate_signing_key()
        studio = identity_for_key(studio_key)
        streamer = identity_for_key(generate_signing_key())
        distributor = identity_for_key(generate_signing_key())

        print_section("1. Issue a distribution right")
        right_id = ledger.create_right(
            "DISTRIBUTION",
            datetime(2025, 1, 1, tzinfo=timezone.utc),
            datetime(2032, 1, 1, tzinfo=timezone.utc),
            ["US", "CA"],
            ["ALL"],
            is_exclusive=True,
            actor_id=studio,
        )
        documents.register("production-agreement", b"production agreement, signed")
        ledger.add_title_entry(right_id, "production-agreement", "ORIGINATION", actor_id=studio)
        print(f"Right {right_id} issued to {studio}")
        print(f"  US on Netflix? {ledger.verify_right_validity(right_id, 'US', 'Netflix')}")
        print(f"  FR on Netflix? {ledger.verify_right_validity(right_id, 'FR', 'Netflix')}")

        print_section("2. License to a streamer")
        time_provider.advance_days(30)
        license_id = signed_transfer(ledger, studio_key, right_id, streamer, "license")
        documents.register("streaming-license", b"streaming license, signed")
        ledger.add_title_entry(right_id, "streaming-license", "LICENSE_GRANTED", actor_id=studio)
        license = ledger.get_right(license_id)
        print(f"License {license_id}: {license.right_type}, exclusive={license.is_exclusive}")
        print(f"  Expires with parent: {license.valid_until}")

        print_section("3. Sell the right outright")
        time_provider.advance_days(90)
        signed_transfer(ledger, studio_key, right_id, distributor, "full")
        documents.register("assignment", b"assignment of distribution right")
        ledger.add_title_entry(right_id, "assignment", "ASSIGNMENT", actor_id=studio)
        print(f"Custody now: {ledger.custody_holders(right_id)}")
        for transfer in ledger.get_transfer_history(right_id):
            print(f"  {transfer.timestamp:%Y-%m-%d} {transfer.transfer_type:8} → {transfer.to_actor}")

        print_section("4. Verify the chain of title")
        for index, entry in enumerate(ledger.get_title_chain(right_id)):
            print(f"  #{index} {entry.entry_type:16} {entry.document_id}")
        print(f"\nIntact: {ledger.verify_title_chain(right_id)}")

        print_section("5. Tamper with a stored entry")
        conn = sqlite3.connect(str(db_path))
        position, payload_json = conn.execute(
            "SELECT position, payload_json FROM events "
            "WHERE stream_id = ? AND version = 2",
            (f"title-{right_id}",),
        ).fetchone()
        payload = json.loads(payload_json)
        payload["document_id"] = "backdated-license"
        conn.execute(
            "UPDATE events SET payload_json = ? WHERE position = ?",
            (json.dumps(payload), position),
        )
        conn.commit()
        conn.close()

        replayed = ProvenanceLedger(
            db_path, document_registry=documents, time_provider=time_provider
        )
        report = replayed.verify_title_chain_report(right_id)
        print(f"Intact after edit: {report.intact}")
        print(f"  Broken at entry #{report.failed_index}: {report.reason}")


if __name__ == "__main__":
    main()
