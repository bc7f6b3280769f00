"""
Test infrastructure components: logging, metrics, retry.

These tests verify the production hardening infrastructure works correctly.
"""

import sqlite3

import pytest

from rights_provenance.kernel.logging import (
    LogOperation,
    configure_logging,
    get_correlation_id,
    get_logger,
    is_production,
    redact_context,
    set_correlation_id,
)
from rights_provenance.kernel.metrics import (
    chain_verifications_total,
    commands_processed_total,
    events_appended_total,
    invalid_documents_total,
    restrictions_added_total,
    rights_created_total,
    signature_rejections_total,
    title_entries_appended_total,
    track_command_duration,
    transfers_total,
)
from rights_provenance.kernel.retry import retry_on_sqlite_lock
from rights_provenance.kernel.errors import InvalidDocument, InvalidTransferSignature
from rights_provenance.kernel.signatures import generate_signing_key, sign_right_transfer
from rights_provenance.kernel.time import unix_seconds
from rights_provenance.ledger import ProvenanceLedger
from rights_provenance.rights.models import transfer_metric_label


class TestLoggingFramework:
    """Test structured logging framework."""

    def test_configure_logging_console(self) -> None:
        configure_logging(json_output=False, log_level="INFO")
        assert get_logger(__name__) is not None

    def test_configure_logging_json(self) -> None:
        configure_logging(json_output=True, log_level="DEBUG")
        assert get_logger(__name__) is not None

    def test_correlation_id(self) -> None:
        cid = get_correlation_id()
        assert cid

        set_correlation_id("transfer-batch-42")
        assert get_correlation_id() == "transfer-batch-42"

    def test_redaction(self) -> None:
        redacted = redact_context({"signature": "ab" * 96, "private_key": "d", "right_id": 3})
        assert redacted == {
            "signature": "***REDACTED***",
            "private_key": "***REDACTED***",
            "right_id": 3,
        }

    def test_production_flag(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")
        assert is_production()
        monkeypatch.setenv("ENVIRONMENT", "development")
        assert not is_production()

    def test_log_operation_success(self) -> None:
        configure_logging(json_output=False, log_level="INFO")
        with LogOperation(get_logger(__name__), "test_operation", right_id=1):
            pass

    def test_log_operation_reraises(self) -> None:
        configure_logging(json_output=False, log_level="INFO")
        with pytest.raises(ValueError):
            with LogOperation(get_logger(__name__), "failing_operation", signature="secret"):
                raise ValueError("Test error")


class TestMetrics:
    """Test Prometheus metrics collection."""

    def test_track_command_duration_counts_outcomes(self) -> None:
        @track_command_duration("TestOperation")
        def operation(fail: bool) -> str:
            if fail:
                raise RuntimeError("nope")
            return "ok"

        success = commands_processed_total.labels(command_type="TestOperation", status="success")
        failure = commands_processed_total.labels(command_type="TestOperation", status="failure")
        before_success = success._value.get()
        before_failure = failure._value.get()

        assert operation(False) == "ok"
        with pytest.raises(RuntimeError):
            operation(True)

        assert success._value.get() == before_success + 1
        assert failure._value.get() == before_failure + 1

    def test_ledger_operations_update_metrics(
        self, ledger: ProvenanceLedger, studio: str, valid_window
    ) -> None:
        created = rights_created_total.labels(origin="original")
        appended = events_appended_total.labels(stream_type="right", event_type="RightCreated")
        empty = chain_verifications_total.labels(result="empty")
        before = (created._value.get(), appended._value.get(), empty._value.get())

        right_id = ledger.create_right(
            "COPYRIGHT", valid_window[0], valid_window[1], ["US"], ["ALL"], actor_id=studio
        )
        ledger.verify_title_chain(right_id)

        assert created._value.get() == before[0] + 1
        assert appended._value.get() == before[1] + 1
        assert empty._value.get() == before[2] + 1

    def test_free_text_inputs_do_not_become_labels(
        self, ledger: ProvenanceLedger, signing_key, studio: str, valid_window
    ) -> None:
        right_id = ledger.create_right(
            "COPYRIGHT", valid_window[0], valid_window[1], ["US"], ["ALL"], actor_id=studio
        )
        other = transfers_total.labels(transfer_type="other")
        before = (
            other._value.get(),
            restrictions_added_total._value.get(),
            title_entries_appended_total._value.get(),
        )

        for label in ["option", "first-look deal"]:
            signature = sign_right_transfer(
                signing_key, right_id, "0xb", unix_seconds(ledger.time_provider.now())
            )
            ledger.transfer_right_with_signature(right_id, "0xb", label, signature, actor_id=studio)
        ledger.add_right_restriction(right_id, "RATING", "PG", actor_id=studio)
        ledger.add_title_entry(right_id, "doc-assignment", "ASSIGNMENT", actor_id=studio)

        assert other._value.get() == before[0] + 2
        assert restrictions_added_total._value.get() == before[1] + 1
        assert title_entries_appended_total._value.get() == before[2] + 1
        assert transfer_metric_label("full") == "full"
        assert transfer_metric_label("license") == "license"
        assert transfer_metric_label("first-look deal") == "other"

    def test_rejections_counted(self, ledger: ProvenanceLedger, studio: str, valid_window) -> None:
        right_id = ledger.create_right(
            "COPYRIGHT", valid_window[0], valid_window[1], ["US"], ["ALL"], actor_id=studio
        )
        rejections_before = signature_rejections_total._value.get()
        invalid_before = invalid_documents_total._value.get()

        forged = sign_right_transfer(
            generate_signing_key(), right_id, "0xb", unix_seconds(ledger.time_provider.now())
        )
        with pytest.raises(InvalidTransferSignature):
            ledger.transfer_right_with_signature(right_id, "0xb", "full", forged, actor_id=studio)
        with pytest.raises(InvalidDocument):
            ledger.add_title_entry(right_id, "ghost", "ASSIGNMENT", actor_id=studio)

        assert signature_rejections_total._value.get() == rejections_before + 1
        assert invalid_documents_total._value.get() == invalid_before + 1


class TestRetryLogic:
    """Test retry logic with exponential backoff."""

    def test_retry_decorator(self) -> None:
        call_count = 0

        @retry_on_sqlite_lock(max_attempts=3, min_wait_ms=1, max_wait_ms=5)
        def flaky() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise sqlite3.OperationalError("database is locked")
            return "success"

        assert flaky() == "success"
        assert call_count == 2

    def test_retry_gives_up(self) -> None:
        @retry_on_sqlite_lock(max_attempts=2, min_wait_ms=1, max_wait_ms=5)
        def always_locked() -> None:
            raise sqlite3.OperationalError("database is locked")

        with pytest.raises(sqlite3.OperationalError):
            always_locked()

    def test_domain_errors_not_retried(self) -> None:
        call_count = 0

        @retry_on_sqlite_lock(max_attempts=3, min_wait_ms=1, max_wait_ms=5)
        def rejected() -> None:
            nonlocal call_count
            call_count += 1
            raise InvalidDocument("doc-1")

        with pytest.raises(InvalidDocument):
            rejected()
        assert call_count == 1
