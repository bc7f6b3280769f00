"""
Custom exceptions for the rights provenance ledger

A small, explicit hierarchy lets callers tell "that right does not exist"
apart from "you are not allowed to do that" apart from "the document you
cited is not real" without parsing messages.

Fun fact: The first recorded chain of title disputes go back to Roman law,
where "nemo dat quod non habet" - nobody gives what they do not have - was
already the governing rule. We just enforce it with hashes.
"""


class ProvenanceError(Exception):
    """Base exception for all ledger errors"""

    pass


class EventStoreError(ProvenanceError):
    """Base class for event store errors"""

    pass


class CommandIdempotencyViolation(EventStoreError):
    """
    Raised when a command_id was already used for a different stream

    Re-submitting the exact same command to the same stream is not an error -
    the store returns the previously appended events instead.
    """

    def __init__(self, command_id: str, message: str = "") -> None:
        self.command_id = command_id
        super().__init__(
            message or f"Command {command_id} already processed (idempotency preserved)"
        )


class StreamVersionConflict(EventStoreError):
    """
    Raised when stream version doesn't match expected (optimistic locking)

    For a title chain this means someone else appended an entry first;
    the chain link we computed is stale.
    """

    def __init__(
        self, stream_id: str, expected_version: int, actual_version: int
    ) -> None:
        self.stream_id = stream_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Stream {stream_id} version mismatch: "
            f"expected {expected_version}, got {actual_version}"
        )


# Lookup failures


class NotFound(ProvenanceError):
    """Operation references a record that does not exist"""

    pass


class RightNotFound(NotFound):
    """Raised when a right id has never been issued"""

    def __init__(self, right_id: int) -> None:
        self.right_id = right_id
        super().__init__(f"Right {right_id} not found")


# Authority failures


class Unauthorized(ProvenanceError):
    """Caller lacks the authority required for the operation"""

    pass


class InvalidTransferSignature(Unauthorized):
    """Raised when a transfer signature does not recover to the caller"""

    def __init__(self, right_id: int, caller: str, reason: str = "") -> None:
        self.right_id = right_id
        self.caller = caller
        self.reason = reason
        detail = f" ({reason})" if reason else ""
        super().__init__(
            f"Transfer of right {right_id} not authorized by {caller}{detail}"
        )


class NotRightOwner(Unauthorized):
    """Raised when a non-owner tries to modify a right's restrictions"""

    def __init__(self, right_id: int, caller: str) -> None:
        self.right_id = right_id
        self.caller = caller
        super().__init__(f"{caller} is not authorized to restrict right {right_id}")


# Chain of title failures


class InvalidDocument(ProvenanceError):
    """Raised when a title entry cites a document the registry rejects"""

    def __init__(self, document_id: str) -> None:
        self.document_id = document_id
        super().__init__(f"Document {document_id} failed registry validation")


# Custody and concurrency failures


class InsufficientCustody(ProvenanceError):
    """Raised when a holder tries to move custody units they do not hold"""

    def __init__(self, right_id: int, holder: str, held: int, requested: int) -> None:
        self.right_id = right_id
        self.holder = holder
        self.held = held
        self.requested = requested
        super().__init__(
            f"{holder} holds {held} unit(s) of right {right_id}, cannot move {requested}"
        )


class ReentrantMutation(ProvenanceError):
    """
    Raised when a mutation re-enters a right that is already being mutated

    Typically a notification subscriber calling back into the ledger for the
    same right while the original transfer is still being finalized.
    """

    def __init__(self, right_id: int) -> None:
        self.right_id = right_id
        super().__init__(
            f"Right {right_id} is already being mutated in this context - "
            "re-entrant mutation rejected"
        )
