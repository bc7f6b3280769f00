"""
Rights Module Handlers - Command→Event transformation

Handlers are the decision-making layer. They:
1. Read current state (from projections passed in by the façade)
2. Validate invariants and signatures
3. Return the events to append, or raise without side effects

A handler never touches storage, so a rejected command leaves no trace.
"""

from datetime import datetime
from typing import Callable

from rights_provenance.kernel.errors import InvalidTransferSignature
from rights_provenance.kernel.events import (
    RIGHT_STREAM,
    Event,
    create_event,
    right_stream_id,
)
from rights_provenance.kernel.ids import generate_id
from rights_provenance.kernel.logging import get_logger
from rights_provenance.kernel.metrics import signature_rejections_total
from rights_provenance.kernel.policy import LedgerPolicy
from rights_provenance.kernel.signatures import verify_right_transfer_signature
from rights_provenance.kernel.time import TimeProvider
from rights_provenance.rights.commands import AddRightRestriction, CreateRight, TransferRight
from rights_provenance.rights.custody import OwnershipLedger
from rights_provenance.rights.events import (
    CustodyIssued,
    CustodyMoved,
    RightCreated,
    RightRestrictionAdded,
    RightTransferred,
)
from rights_provenance.rights.invariants import (
    resolve_signature_timestamp,
    validate_custody,
    validate_restriction_authority,
    validate_right_exists,
)
from rights_provenance.rights.models import NO_PARENT, Right, TransferType
from rights_provenance.rights.projections import RightRegistry

logger = get_logger(__name__)


class RightsCommandHandlers:
    """
    Command handlers for the rights module

    Handlers convert commands into events, enforcing invariants.
    """

    def __init__(self, time_provider: TimeProvider, policy: LedgerPolicy) -> None:
        self.time_provider = time_provider
        self.policy = policy

    def _right_event(
        self,
        right_id: int,
        event_type: str,
        payload: dict,
        version: int,
        now: datetime,
        command_id: str,
        actor_id: str | None,
    ) -> Event:
        return create_event(
            event_id=generate_id(),
            stream_id=right_stream_id(right_id),
            stream_type=RIGHT_STREAM,
            event_type=event_type,
            occurred_at=now,
            command_id=command_id,
            actor_id=actor_id,
            payload=payload,
            version=version,
        )

    def _issue(
        self,
        *,
        right_id: int,
        right_type: str,
        owner: str,
        valid_from: datetime,
        valid_until: datetime,
        territories: list[str],
        platforms: list[str],
        is_exclusive: bool,
        parent_right_id: int,
        now: datetime,
        command_id: str,
        actor_id: str | None,
    ) -> list[Event]:
        """RightCreated + one custody unit for the owner, in a fresh stream"""
        created = RightCreated(
            right_id=right_id,
            right_type=right_type,
            owner=owner,
            valid_from=valid_from,
            valid_until=valid_until,
            territories=list(territories),
            platforms=list(platforms),
            is_exclusive=is_exclusive,
            parent_right_id=parent_right_id,
            created_at=now,
        ).model_dump(mode="json")
        issued = CustodyIssued(right_id=right_id, holder=owner, quantity=1).model_dump(
            mode="json"
        )
        return [
            self._right_event(right_id, "RightCreated", created, 1, now, command_id, actor_id),
            self._right_event(right_id, "CustodyIssued", issued, 2, now, command_id, actor_id),
        ]

    def handle_create_right(
        self,
        command: CreateRight,
        command_id: str,
        actor_id: str,
        right_id: int,
    ) -> list[Event]:
        """
        Handle CreateRight command

        Args:
            command: CreateRight command
            command_id: Idempotency key
            actor_id: Caller, becomes the original owner
            right_id: Freshly allocated id

        Returns:
            RightCreated and CustodyIssued events for the new right's stream
        """
        return self._issue(
            right_id=right_id,
            right_type=command.right_type,
            owner=actor_id,
            valid_from=command.valid_from,
            valid_until=command.valid_until,
            territories=command.territories,
            platforms=command.platforms,
            is_exclusive=command.is_exclusive,
            parent_right_id=NO_PARENT,
            now=self.time_provider.now(),
            command_id=command_id,
            actor_id=actor_id,
        )

    def derive_license(
        self,
        parent: Right,
        licensee: str,
        license_id: int,
        now: datetime,
        command_id: str,
        actor_id: str | None,
    ) -> list[Event]:
        """
        Events issuing a non-exclusive license derived from ``parent``

        Scope is copied by value, restrictions are not copied, and the
        license expires together with its parent.
        """
        return self._issue(
            right_id=license_id,
            right_type=parent.right_type + self.policy.license_suffix,
            owner=licensee,
            valid_from=now,
            valid_until=parent.valid_until,
            territories=list(parent.territories),
            platforms=list(parent.platforms),
            is_exclusive=False,
            parent_right_id=parent.right_id,
            now=now,
            command_id=command_id,
            actor_id=actor_id,
        )

    def handle_transfer_right(
        self,
        command: TransferRight,
        command_id: str,
        actor_id: str,
        registry: RightRegistry,
        custody: OwnershipLedger,
        allocate_right_id: Callable[[], int],
    ) -> list[Event]:
        """
        Handle TransferRight command

        Validates:
        - Right exists
        - Signature over (right_id, to, timestamp) recovers to the caller
        - For "full" transfers, the caller holds a custody unit

        Args:
            command: TransferRight command
            command_id: Idempotency key
            actor_id: Caller requesting the transfer
            registry: Current rights
            custody: Current custody balances
            allocate_right_id: Allocator used only for license transfers

        Returns:
            Events for the right's stream, plus the license stream's events
            when transfer_type is "license"

        Raises:
            RightNotFound: If the right doesn't exist
            InvalidTransferSignature: If the signature doesn't authenticate
            InsufficientCustody: If a full transfer has nothing to move
        """
        now = self.time_provider.now()
        right = validate_right_exists(command.right_id, registry.rights)

        timestamp = resolve_signature_timestamp(
            command.right_id, actor_id, now, command.signed_at, self.policy
        )
        if not verify_right_transfer_signature(
            command.right_id, command.to, command.signature, actor_id, timestamp
        ):
            signature_rejections_total.inc()
            logger.warning(
                "Transfer signature rejected",
                right_id=command.right_id,
                transfer_type=command.transfer_type,
            )
            raise InvalidTransferSignature(command.right_id, actor_id)

        if command.transfer_type == TransferType.FULL.value:
            validate_custody(custody, command.right_id, actor_id)

        license_events: list[Event] = []
        derived_right_id: int | None = None
        if command.transfer_type == TransferType.LICENSE.value:
            derived_right_id = allocate_right_id()
            license_events = self.derive_license(
                right, command.to, derived_right_id, now, command_id, actor_id
            )

        version = registry.version(command.right_id)
        transferred = RightTransferred(
            right_id=command.right_id,
            from_actor=actor_id,
            to_actor=command.to,
            transfer_type=command.transfer_type,
            signature=command.signature.hex(),
            transferred_at=now,
            derived_right_id=derived_right_id,
        ).model_dump(mode="json")
        events = [
            self._right_event(
                command.right_id,
                "RightTransferred",
                transferred,
                version + 1,
                now,
                command_id,
                actor_id,
            )
        ]

        if command.transfer_type == TransferType.FULL.value:
            moved = CustodyMoved(
                right_id=command.right_id,
                from_holder=actor_id,
                to_holder=command.to,
                quantity=1,
            ).model_dump(mode="json")
            events.append(
                self._right_event(
                    command.right_id,
                    "CustodyMoved",
                    moved,
                    version + 2,
                    now,
                    command_id,
                    actor_id,
                )
            )

        return events + license_events

    def handle_add_restriction(
        self,
        command: AddRightRestriction,
        command_id: str,
        actor_id: str,
        registry: RightRegistry,
        custody: OwnershipLedger,
    ) -> list[Event]:
        """
        Handle AddRightRestriction command

        Raises:
            RightNotFound: If the right doesn't exist
            NotRightOwner: If the caller lacks restriction authority
        """
        now = self.time_provider.now()
        right = validate_right_exists(command.right_id, registry.rights)
        validate_restriction_authority(right, actor_id, custody, self.policy)

        payload = RightRestrictionAdded(
            right_id=command.right_id,
            restriction_type=command.restriction_type,
            details=command.details,
            added_by=actor_id,
            added_at=now,
        ).model_dump(mode="json")

        return [
            self._right_event(
                command.right_id,
                "RightRestrictionAdded",
                payload,
                registry.version(command.right_id) + 1,
                now,
                command_id,
                actor_id,
            )
        ]
