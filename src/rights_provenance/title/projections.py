"""
Chain of Title Projections

TitleChainLog holds, per right, the ordered entries and the "latest hash"
pointer. The pointer is taken from each TitleEntryAdded event as recorded,
never recomputed here - recomputation is the verifier's job.
"""

from collections import defaultdict

from rights_provenance.kernel.digest import ZERO_DIGEST
from rights_provenance.kernel.events import TITLE_STREAM, Event
from rights_provenance.title.models import ChainSummary, TitleEntry


class TitleChainLog:
    """
    Projection: chain of title per right
    """

    def __init__(self) -> None:
        self.entries: defaultdict[int, list[TitleEntry]] = defaultdict(list)
        self.latest_hashes: dict[int, str] = {}

    def apply_event(self, event: Event) -> None:
        if event.stream_type != TITLE_STREAM or event.event_type != "TitleEntryAdded":
            return

        p = event.payload
        self.entries[p["right_id"]].append(
            TitleEntry(
                right_id=p["right_id"],
                document_id=p["document_id"],
                timestamp=p["timestamp"],
                entry_type=p["entry_type"],
                recorder=p["recorder"],
                previous_entry_hash=p["previous_entry_hash"],
            )
        )
        self.latest_hashes[p["right_id"]] = p["entry_digest"]

    def chain(self, right_id: int) -> list[TitleEntry]:
        return list(self.entries.get(right_id, []))

    def latest_hash(self, right_id: int) -> str:
        """Digest of the most recent entry, or ZERO_DIGEST for an empty chain"""
        return self.latest_hashes.get(right_id, ZERO_DIGEST)

    def length(self, right_id: int) -> int:
        """Entry count, which is also the title stream's version"""
        return len(self.entries.get(right_id, []))

    def right_ids(self) -> list[int]:
        return sorted(r for r, entries in self.entries.items() if entries)

    def summaries(self) -> list[ChainSummary]:
        return [
            ChainSummary(
                right_id=right_id,
                entry_count=self.length(right_id),
                latest_hash=self.latest_hash(right_id),
            )
            for right_id in self.right_ids()
        ]
