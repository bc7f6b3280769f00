"""
Health check HTTP server for liveness, readiness and chain integrity probes.

Provides endpoints for monitoring the ledger process, its database, and the
integrity of every recorded chain of title.
"""

import sqlite3
from pathlib import Path
from typing import Any

from flask import Flask, jsonify

from rights_provenance import __version__
from rights_provenance.kernel.logging import get_logger

logger = get_logger(__name__)

app = Flask(__name__)

# Global state - will be set by initialize_health_server()
_db_path: Path | None = None
_ledger: Any = None  # ProvenanceLedger instance for integrity checks


def initialize_health_server(db_path: str | Path, ledger: Any = None) -> None:
    """
    Initialize the health server with the database path and ledger.

    Args:
        db_path: Path to SQLite database
        ledger: Optional ProvenanceLedger used for integrity checks
    """
    global _db_path, _ledger
    _db_path = Path(db_path)
    _ledger = ledger
    logger.info("Health server initialized", db_path=str(_db_path))


@app.route("/health/live", methods=["GET"])
def liveness() -> tuple[Any, int]:
    """
    Liveness probe - checks if the process is running.

    Returns:
        JSON response with status and 200 OK
    """
    return jsonify({"status": "alive", "service": "rights-provenance"}), 200


@app.route("/health/ready", methods=["GET"])
def readiness() -> tuple[Any, int]:
    """
    Readiness probe - checks the event store can be queried.

    Returns:
        JSON response with status and 200 OK if ready, 503 if not ready
    """
    if _db_path is None:
        logger.error("Readiness check failed: DB path not initialized")
        return (
            jsonify({"status": "not_ready", "reason": "database_path_not_initialized"}),
            503,
        )

    if not _db_path.exists():
        logger.error("Readiness check failed: DB file does not exist", db_path=str(_db_path))
        return (
            jsonify(
                {
                    "status": "not_ready",
                    "reason": "database_file_not_found",
                    "db_path": str(_db_path),
                }
            ),
            503,
        )

    try:
        conn = sqlite3.connect(str(_db_path), timeout=1.0)
        try:
            event_count = conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]
        finally:
            conn.close()

        logger.debug("Readiness check passed", event_count=event_count)
        return (
            jsonify({"status": "ready", "database": "accessible", "event_count": event_count}),
            200,
        )

    except sqlite3.Error as e:
        logger.error("Readiness check failed: DB error", error=str(e))
        return (
            jsonify(
                {
                    "status": "not_ready",
                    "reason": "database_operational_error",
                    "error": str(e),
                }
            ),
            503,
        )


@app.route("/health/integrity", methods=["GET"])
def integrity() -> tuple[Any, int]:
    """
    Integrity probe - replays every chain of title.

    Returns:
        200 if every chain is intact, 503 if any chain is broken or the
        ledger is not initialized
    """
    if _ledger is None:
        return jsonify({"status": "unknown", "reason": "ledger_not_initialized"}), 503

    reports = _ledger.verify_all_title_chains()
    broken = [r for r in reports if not r.intact]

    body: dict[str, Any] = {
        "status": "intact" if not broken else "compromised",
        "chains_checked": len(reports),
        "broken_chains": [
            {
                "right_id": r.right_id,
                "failed_index": r.failed_index,
                "reason": r.reason,
            }
            for r in broken
        ],
    }
    if broken:
        logger.error("Integrity check failed", broken_chains=len(broken))
        return jsonify(body), 503
    return jsonify(body), 200


@app.route("/health", methods=["GET"])
def detailed_health() -> tuple[Any, int]:
    """
    Detailed health check - database statistics plus ledger counts.
    """
    health_data: dict[str, Any] = {
        "status": "healthy",
        "service": "rights-provenance",
        "version": __version__,
    }

    if _db_path and _db_path.exists():
        try:
            conn = sqlite3.connect(str(_db_path), timeout=1.0)
            try:
                event_count = conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]
                stream_count = conn.execute(
                    "SELECT COUNT(DISTINCT stream_id) FROM events"
                ).fetchone()[0]
                page_count = conn.execute("PRAGMA page_count").fetchone()[0]
                page_size = conn.execute("PRAGMA page_size").fetchone()[0]
            finally:
                conn.close()

            health_data["database"] = {
                "status": "healthy",
                "path": str(_db_path),
                "event_count": event_count,
                "stream_count": stream_count,
                "size_mb": round((page_count * page_size) / (1024 * 1024), 2),
            }

        except sqlite3.Error as e:
            logger.error("Database health check failed", error=str(e))
            health_data["database"] = {"status": "unhealthy", "error": str(e)}
            health_data["status"] = "degraded"
    else:
        health_data["database"] = {"status": "not_initialized"}
        health_data["status"] = "degraded"

    if _ledger is not None:
        health_data["ledger"] = {
            "rights": len(_ledger.list_rights()),
            "title_chains": len(_ledger.list_title_chains()),
            "stored_right_streams": _ledger.event_store.count_streams("right"),
            "stored_title_streams": _ledger.event_store.count_streams("title_chain"),
        }

    status_code = 200 if health_data["status"] == "healthy" else 503
    return jsonify(health_data), status_code


def run_health_server(port: int = 8080, debug: bool = False) -> None:
    """
    Run the health check server.

    Args:
        port: Port to listen on (default: 8080)
        debug: Enable Flask debug mode (default: False)
    """
    logger.info("Starting health check server", port=port)
    app.run(host="0.0.0.0", port=port, debug=debug)
