"""
Prometheus metrics for the rights provenance ledger.

Counts issuance, transfers, signature rejections and chain verifications so
operators can see both throughput and tampering signals.
"""

import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Histogram, start_http_server

# ============================================================================
# Event Store Metrics
# ============================================================================

events_appended_total = Counter(
    "provenance_events_appended_total",
    "Total number of events appended to the event store",
    ["stream_type", "event_type"],
)

events_loaded_total = Counter(
    "provenance_events_loaded_total",
    "Total number of events loaded from the event store",
    ["stream_type"],
)

stream_version_conflicts_total = Counter(
    "provenance_stream_version_conflicts_total",
    "Total number of optimistic locking version conflicts",
    ["stream_type"],
)

# ============================================================================
# Command Processing Metrics
# ============================================================================

command_duration_seconds = Histogram(
    "provenance_command_duration_seconds",
    "Duration of ledger operations in seconds",
    ["command_type"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

commands_processed_total = Counter(
    "provenance_commands_processed_total",
    "Total number of ledger operations processed",
    ["command_type", "status"],  # status: success, failure
)

# ============================================================================
# Rights Metrics
# ============================================================================

rights_created_total = Counter(
    "provenance_rights_created_total",
    "Total number of rights issued",
    ["origin"],  # origin: original, license
)

transfers_total = Counter(
    "provenance_transfers_total",
    "Total number of recorded right transfers",
    ["transfer_type"],  # transfer_type: full, license, other
)

signature_rejections_total = Counter(
    "provenance_signature_rejections_total",
    "Total number of transfers rejected for an invalid signature",
)

restrictions_added_total = Counter(
    "provenance_restrictions_added_total",
    "Total number of restriction updates",
)

# ============================================================================
# Chain of Title Metrics
# ============================================================================

title_entries_appended_total = Counter(
    "provenance_title_entries_appended_total",
    "Total number of chain of title entries appended",
)

invalid_documents_total = Counter(
    "provenance_invalid_documents_total",
    "Total number of title entries rejected for an invalid document",
)

chain_verifications_total = Counter(
    "provenance_chain_verifications_total",
    "Total number of chain of title verifications",
    ["result"],  # result: intact, broken, empty
)

# ============================================================================
# Helper Functions
# ============================================================================

P = ParamSpec("P")
R = TypeVar("R")


def track_command_duration(command_type: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator to track ledger operation duration and outcome.

    Args:
        command_type: Name of the operation being tracked
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            status = "success"
            try:
                return func(*args, **kwargs)
            except Exception:
                status = "failure"
                raise
            finally:
                duration = time.perf_counter() - start
                command_duration_seconds.labels(command_type=command_type).observe(duration)
                commands_processed_total.labels(
                    command_type=command_type, status=status
                ).inc()

        return wrapper

    return decorator


def start_metrics_server(port: int = 9090) -> None:
    """Start Prometheus metrics HTTP server on ``port``."""
    start_http_server(port)
