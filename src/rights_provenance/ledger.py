"""
ProvenanceLedger - Main façade

This is the primary interface to the rights provenance ledger. It hides the
event store, projections, handlers and guards behind a small API.

Example:
    >>> from rights_provenance import ProvenanceLedger
    >>> ledger = ProvenanceLedger("rights.db")
    >>> right_id = ledger.create_right(
    ...     "DISTRIBUTION", valid_from, valid_until, ["US"], ["ALL"], actor_id=studio
    ... )
    >>> ledger.verify_right_validity(right_id, "US", "Netflix")
    True
    >>> ledger.add_title_entry(right_id, "doc-42", "ASSIGNMENT", actor_id=studio)
    >>> ledger.verify_title_chain(right_id)
    True
"""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from rights_provenance.documents.registry import DocumentRegistry, SQLiteDocumentRegistry
from rights_provenance.kernel.bus import InProcessBus
from rights_provenance.kernel.errors import RightNotFound
from rights_provenance.kernel.event_store import SQLiteEventStore, StreamAppend
from rights_provenance.kernel.events import Event, right_stream_id
from rights_provenance.kernel.guard import MutationGuard
from rights_provenance.kernel.ids import RightIdAllocator, generate_id
from rights_provenance.kernel.logging import LogOperation, get_logger
from rights_provenance.kernel.metrics import (
    chain_verifications_total,
    restrictions_added_total,
    rights_created_total,
    title_entries_appended_total,
    track_command_duration,
    transfers_total,
)
from rights_provenance.kernel.policy import LedgerPolicy
from rights_provenance.kernel.time import RealTimeProvider, TimeProvider
from rights_provenance.rights.commands import AddRightRestriction, CreateRight, TransferRight
from rights_provenance.rights.custody import CustodyLedger
from rights_provenance.rights.handlers import RightsCommandHandlers
from rights_provenance.rights.invariants import is_right_valid, validate_right_exists
from rights_provenance.rights.models import Right, RightTransfer, transfer_metric_label
from rights_provenance.rights.projections import RightRegistry, TransferHistory
from rights_provenance.title.commands import AddTitleEntry
from rights_provenance.title.handlers import TitleCommandHandlers
from rights_provenance.title.models import ChainSummary, ChainVerification, TitleEntry
from rights_provenance.title.projections import TitleChainLog
from rights_provenance.title.verification import replay_title_chain

logger = get_logger(__name__)


class ProvenanceLedger:
    """
    Rights ledger + chain of title façade

    Provides a unified API for:
    - Issuing rights and deriving licenses
    - Signature-authenticated transfers
    - Restrictions and validity checks
    - Appending to and verifying chains of title
    """

    def __init__(
        self,
        sqlite_path: str | Path,
        document_registry: DocumentRegistry | None = None,
        policy: LedgerPolicy | None = None,
        time_provider: TimeProvider | None = None,
        bus: InProcessBus | None = None,
    ) -> None:
        """
        Initialize the ledger

        Args:
            sqlite_path: Path to SQLite database
            document_registry: Registry validating title documents (defaults
                to a SQLite registry in the same database file)
            policy: Ledger policy (uses defaults if None)
            time_provider: Time provider (uses real time if None)
            bus: Notification bus (a private one is created if None)
        """
        self.sqlite_path = Path(sqlite_path)
        self.policy = policy or LedgerPolicy()
        self.time_provider = time_provider or RealTimeProvider()
        self.bus = bus or InProcessBus()

        self.event_store = SQLiteEventStore(self.sqlite_path)
        self.document_registry = document_registry or SQLiteDocumentRegistry(self.sqlite_path)

        self.rights_handlers = RightsCommandHandlers(self.time_provider, self.policy)
        self.title_handlers = TitleCommandHandlers(
            self.time_provider, self.policy, self.document_registry
        )

        # Rights and title mutations are guarded independently, so a
        # RightTransferred subscriber may still record a title entry.
        self._rights_guard = MutationGuard()
        self._title_guard = MutationGuard()
        self._id_allocator = RightIdAllocator()

        # Projections
        self.right_registry = RightRegistry()
        self.transfer_history = TransferHistory()
        self.custody = CustodyLedger()
        self.title_log = TitleChainLog()

        self._rebuild_projections()

    def _apply(self, event: Event) -> None:
        self.right_registry.apply_event(event)
        self.transfer_history.apply_event(event)
        self.custody.apply_event(event)
        self.title_log.apply_event(event)
        if event.event_type == "RightCreated":
            self._id_allocator.observe(event.payload["right_id"])

    def _rebuild_projections(self) -> None:
        """Rebuild all projections from the event store"""
        events = self.event_store.load_all_events()
        for event in events:
            self._apply(event)
        logger.info(
            "Projections rebuilt",
            events=len(events),
            rights=len(self.right_registry.rights),
            chains=len(self.title_log.right_ids()),
        )

    def _commit(self, events: list[Event]) -> list[Event]:
        """
        Append events atomically, update projections, notify subscribers

        Events are grouped per stream; every stream is appended in the same
        transaction with its expected version.
        """
        batches: dict[str, StreamAppend] = {}
        for event in events:
            if event.stream_id not in batches:
                batches[event.stream_id] = StreamAppend(
                    stream_id=event.stream_id,
                    expected_version=event.version - 1,
                    events=[],
                )
            batches[event.stream_id].events.append(event)

        stored = self.event_store.append_streams(list(batches.values()))
        for event in stored:
            self._apply(event)
        self.bus.publish_events(stored)
        return stored

    def subscribe(self, event_type: str, handler: Callable[[Event], None]) -> None:
        """Receive notifications for an event type (or "*" for all)"""
        self.bus.subscribe(event_type, handler)

    # Rights operations

    @track_command_duration("CreateRight")
    def create_right(
        self,
        right_type: str,
        valid_from: datetime,
        valid_until: datetime,
        territories: list[str],
        platforms: list[str],
        is_exclusive: bool = False,
        *,
        actor_id: str,
    ) -> int:
        """
        Issue a new right owned by ``actor_id``

        Returns:
            The allocated right id
        """
        command = CreateRight(
            right_type=right_type,
            valid_from=valid_from,
            valid_until=valid_until,
            territories=territories,
            platforms=platforms,
            is_exclusive=is_exclusive,
        )
        right_id = self._id_allocator.allocate()

        with LogOperation(logger, "create_right", right_id=right_id, right_type=right_type):
            with self._rights_guard.hold(right_id):
                events = self.rights_handlers.handle_create_right(
                    command, generate_id(), actor_id, right_id
                )
                self._commit(events)

        rights_created_total.labels(origin="original").inc()
        return right_id

    @track_command_duration("TransferRight")
    def transfer_right_with_signature(
        self,
        right_id: int,
        to: str,
        transfer_type: str,
        signature: bytes,
        *,
        actor_id: str,
        signed_at: int | None = None,
    ) -> int | None:
        """
        Transfer a right on the strength of the caller's signature

        Args:
            right_id: Right being transferred
            to: Recipient identity
            transfer_type: "full", "license", or any other label
            signature: Envelope over (right_id, to, timestamp)
            actor_id: Caller; the signature must recover to this identity
            signed_at: Optional Unix timestamp the signature covers; when
                omitted the verification time is used

        Returns:
            The derived license's id for "license" transfers, else None

        Raises:
            RightNotFound: If the right doesn't exist
            InvalidTransferSignature: If the signature doesn't authenticate
            InsufficientCustody: If a "full" transfer has no unit to move
            ReentrantMutation: If called while this right is being mutated
        """
        command = TransferRight(
            right_id=right_id,
            to=to,
            transfer_type=transfer_type,
            signature=signature,
            signed_at=signed_at,
        )

        with LogOperation(
            logger,
            "transfer_right",
            right_id=right_id,
            transfer_type=transfer_type,
            signature=signature.hex(),
        ):
            with self._rights_guard.hold(right_id):
                events = self.rights_handlers.handle_transfer_right(
                    command,
                    generate_id(),
                    actor_id,
                    self.right_registry,
                    self.custody,
                    self._id_allocator.allocate,
                )
                self._commit(events)

        transfers_total.labels(transfer_type=transfer_metric_label(transfer_type)).inc()
        derived = [
            e.payload["right_id"] for e in events if e.event_type == "RightCreated"
        ]
        if derived:
            rights_created_total.labels(origin="license").inc()
            return derived[0]
        return None

    @track_command_duration("AddRightRestriction")
    def add_right_restriction(
        self,
        right_id: int,
        restriction_type: str,
        details: str,
        *,
        actor_id: str,
    ) -> None:
        """
        Set a restriction on a right (last write wins per restriction type)

        Raises:
            RightNotFound: If the right doesn't exist
            NotRightOwner: If the caller lacks restriction authority
        """
        command = AddRightRestriction(
            right_id=right_id, restriction_type=restriction_type, details=details
        )
        with LogOperation(
            logger, "add_right_restriction", right_id=right_id, restriction_type=restriction_type
        ):
            with self._rights_guard.hold(right_id):
                events = self.rights_handlers.handle_add_restriction(
                    command, generate_id(), actor_id, self.right_registry, self.custody
                )
                self._commit(events)

        restrictions_added_total.inc()

    def verify_right_validity(self, right_id: int, territory: str, platform: str) -> bool:
        """
        Is the right usable in ``territory`` on ``platform`` right now?

        Raises:
            RightNotFound: If the right was never issued
        """
        right = validate_right_exists(right_id, self.right_registry.rights)
        return is_right_valid(
            right, territory, platform, self.time_provider.now(), self.policy
        )

    def get_right(self, right_id: int) -> Right:
        """
        Snapshot of a right (mutating it does not affect the ledger)

        Raises:
            RightNotFound: If the right was never issued
        """
        right = self.right_registry.get(right_id)
        if right is None:
            raise RightNotFound(right_id)
        return right.model_copy(deep=True)

    def get_restrictions(self, right_id: int) -> list[tuple[str, str]]:
        """Restrictions as (type, details) pairs in first-added order"""
        return self.get_right(right_id).restriction_items()

    def list_rights(self) -> list[Right]:
        return [r.model_copy(deep=True) for r in self.right_registry.list_all()]

    def get_derived_licenses(self, parent_right_id: int) -> list[Right]:
        return [r.model_copy(deep=True) for r in self.right_registry.derived_from(parent_right_id)]

    def get_transfer_history(self, right_id: int) -> list[RightTransfer]:
        return self.transfer_history.for_right(right_id)

    def custody_balance(self, holder: str, right_id: int) -> int:
        return self.custody.balance_of(holder, right_id)

    def custody_holders(self, right_id: int) -> dict[str, int]:
        return self.custody.holders(right_id)

    def get_right_events(self, right_id: int) -> list[Event]:
        """
        Stored event log of one right, read back from the event store

        Raises:
            RightNotFound: If the right was never issued
        """
        validate_right_exists(right_id, self.right_registry.rights)
        return self.event_store.load_stream(right_stream_id(right_id))

    # Chain of title operations

    @track_command_duration("AddTitleEntry")
    def add_title_entry(
        self,
        right_id: int,
        document_id: str,
        entry_type: str,
        *,
        actor_id: str,
    ) -> str:
        """
        Append a document-backed entry to a right's chain of title

        Returns:
            The new entry's digest (now the chain's latest hash)

        Raises:
            InvalidDocument: If the document registry rejects the document
        """
        command = AddTitleEntry(
            right_id=right_id, document_id=document_id, entry_type=entry_type
        )
        with LogOperation(
            logger,
            "add_title_entry",
            right_id=right_id,
            document_id=document_id,
            entry_type=entry_type,
        ):
            with self._title_guard.hold(right_id):
                events = self.title_handlers.handle_add_title_entry(
                    command,
                    generate_id(),
                    actor_id,
                    self.title_log,
                    right_exists=self.right_registry.exists(right_id),
                )
                self._commit(events)

        title_entries_appended_total.inc()
        return events[0].payload["entry_digest"]

    def get_title_chain(self, right_id: int) -> list[TitleEntry]:
        """Entries in append order (empty if the right has no chain)"""
        return self.title_log.chain(right_id)

    def latest_title_hash(self, right_id: int) -> str:
        return self.title_log.latest_hash(right_id)

    def verify_title_chain_report(self, right_id: int) -> ChainVerification:
        """Replay a chain and explain the outcome"""
        report = replay_title_chain(
            right_id,
            self.title_log.chain(right_id),
            self.title_log.latest_hash(right_id),
        )
        if report.is_empty:
            result = "empty"
        else:
            result = "intact" if report.intact else "broken"
        chain_verifications_total.labels(result=result).inc()
        if result == "broken":
            logger.warning(
                "Chain of title integrity violation",
                right_id=right_id,
                failed_index=report.failed_index,
                reason=report.reason,
            )
        return report

    def verify_title_chain(self, right_id: int) -> bool:
        """
        Independently replay the chain; False if empty or tampered with
        """
        return self.verify_title_chain_report(right_id).intact

    def verify_all_title_chains(self) -> list[ChainVerification]:
        return [self.verify_title_chain_report(r) for r in self.title_log.right_ids()]

    def list_title_chains(self) -> list[ChainSummary]:
        return self.title_log.summaries()
