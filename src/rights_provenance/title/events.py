"""
Chain of Title Events

TitleEntryAdded carries the full entry so the chain can be rebuilt from the
event log alone, plus the entry's digest for indexers.
"""

from datetime import datetime

from pydantic import BaseModel


class TitleEntryAdded(BaseModel):
    """
    An entry was appended to a right's chain of title

    Notification fields: right_id, document_id, entry_type, entry_digest.
    """

    right_id: int
    document_id: str
    entry_type: str
    entry_digest: str
    timestamp: datetime
    recorder: str
    previous_entry_hash: str
