"""
Chain of title digests and replay

Everything here is a pure function of a list of entries and a stored "latest
hash". A third party holding an export of the chain can run the exact same
replay without trusting the ledger that produced it.

Replay algorithm:

    acc = ZERO_DIGEST
    for entry in entries:
        entry.previous_entry_hash must equal acc
        acc = digest(entry)
    acc must equal the stored latest hash

Insertion, deletion, reordering or editing of any field of any entry changes
some digest downstream and breaks one of those equalities.
"""

from typing import Sequence

from rights_provenance.kernel.digest import ZERO_DIGEST, digest_fields
from rights_provenance.title.models import ChainVerification, TitleEntry


def title_entry_digest(entry: TitleEntry) -> str:
    """Digest over the entry's six fields, in their fixed order"""
    return digest_fields(
        entry.right_id,
        entry.document_id,
        entry.timestamp,
        entry.entry_type,
        entry.recorder,
        entry.previous_entry_hash,
    )


def replay_title_chain(
    right_id: int,
    entries: Sequence[TitleEntry],
    stored_latest_hash: str,
) -> ChainVerification:
    """Replay a chain and report where, if anywhere, it breaks"""
    if not entries:
        return ChainVerification(
            right_id=right_id,
            intact=False,
            entry_count=0,
            reason="chain is empty",
            stored_hash=stored_latest_hash,
        )

    acc = ZERO_DIGEST
    for index, entry in enumerate(entries):
        if entry.previous_entry_hash != acc:
            return ChainVerification(
                right_id=right_id,
                intact=False,
                entry_count=len(entries),
                failed_index=index,
                reason="previous_entry_hash does not match the preceding entry",
                computed_hash=acc,
                stored_hash=stored_latest_hash,
            )
        acc = title_entry_digest(entry)

    if acc != stored_latest_hash:
        return ChainVerification(
            right_id=right_id,
            intact=False,
            entry_count=len(entries),
            failed_index=len(entries) - 1,
            reason="final digest does not match the stored latest hash",
            computed_hash=acc,
            stored_hash=stored_latest_hash,
        )

    return ChainVerification(
        right_id=right_id,
        intact=True,
        entry_count=len(entries),
        computed_hash=acc,
        stored_hash=stored_latest_hash,
    )


def verify_chain_entries(entries: Sequence[TitleEntry], stored_latest_hash: str) -> bool:
    """
    Boolean form of the replay; False for an empty chain, never raises
    """
    right_id = entries[0].right_id if entries else 0
    return replay_title_chain(right_id, entries, stored_latest_hash).intact
