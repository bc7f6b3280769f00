"""
Title Module - the hash-linked chain of title

Each right has an independent, append-only log of provenance entries backed
by registry-validated documents. Any party can replay a chain to detect
insertion, deletion, reordering or editing of past entries.
"""

from rights_provenance.title.models import ChainVerification, TitleEntry
from rights_provenance.title.verification import (
    replay_title_chain,
    title_entry_digest,
    verify_chain_entries,
)

__all__ = [
    "TitleEntry",
    "ChainVerification",
    "title_entry_digest",
    "replay_title_chain",
    "verify_chain_entries",
]
