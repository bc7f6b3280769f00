"""
Chain of Title Handlers - Command→Event transformation

Appending an entry:
1. Ask the document registry whether the cited document is valid
2. Link to the chain's current latest hash
3. Digest the new entry and emit TitleEntryAdded
"""

from rights_provenance.documents.registry import DocumentRegistry
from rights_provenance.kernel.errors import InvalidDocument, RightNotFound
from rights_provenance.kernel.events import (
    TITLE_STREAM,
    Event,
    create_event,
    title_stream_id,
)
from rights_provenance.kernel.ids import generate_id
from rights_provenance.kernel.metrics import invalid_documents_total
from rights_provenance.kernel.policy import LedgerPolicy
from rights_provenance.kernel.time import TimeProvider
from rights_provenance.title.commands import AddTitleEntry
from rights_provenance.title.events import TitleEntryAdded
from rights_provenance.title.models import TitleEntry
from rights_provenance.title.projections import TitleChainLog
from rights_provenance.title.verification import title_entry_digest


class TitleCommandHandlers:
    """Command handlers for the chain of title log"""

    def __init__(
        self,
        time_provider: TimeProvider,
        policy: LedgerPolicy,
        document_registry: DocumentRegistry,
    ) -> None:
        self.time_provider = time_provider
        self.policy = policy
        self.document_registry = document_registry

    def handle_add_title_entry(
        self,
        command: AddTitleEntry,
        command_id: str,
        actor_id: str,
        chain_log: TitleChainLog,
        right_exists: bool = True,
    ) -> list[Event]:
        """
        Handle AddTitleEntry command

        Args:
            command: AddTitleEntry command
            command_id: Idempotency key
            actor_id: Recorder of the entry
            chain_log: Current chains
            right_exists: Whether the rights ledger knows the right; only
                consulted when the policy requires it

        Returns:
            A single TitleEntryAdded event

        Raises:
            InvalidDocument: If the registry rejects the document
            RightNotFound: If the policy requires an issued right and it isn't
        """
        if not self.document_registry.verify_document(command.document_id):
            invalid_documents_total.inc()
            raise InvalidDocument(command.document_id)

        if self.policy.title_requires_existing_right and not right_exists:
            raise RightNotFound(command.right_id)

        now = self.time_provider.now()
        entry = TitleEntry(
            right_id=command.right_id,
            document_id=command.document_id,
            timestamp=now,
            entry_type=command.entry_type,
            recorder=actor_id,
            previous_entry_hash=chain_log.latest_hash(command.right_id),
        )
        entry_digest = title_entry_digest(entry)

        payload = TitleEntryAdded(
            right_id=entry.right_id,
            document_id=entry.document_id,
            entry_type=entry.entry_type,
            entry_digest=entry_digest,
            timestamp=entry.timestamp,
            recorder=entry.recorder,
            previous_entry_hash=entry.previous_entry_hash,
        ).model_dump(mode="json")

        event = create_event(
            event_id=generate_id(),
            stream_id=title_stream_id(command.right_id),
            stream_type=TITLE_STREAM,
            event_type="TitleEntryAdded",
            occurred_at=now,
            command_id=command_id,
            actor_id=actor_id,
            payload=payload,
            version=chain_log.length(command.right_id) + 1,
        )
        return [event]
