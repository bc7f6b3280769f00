"""
CLI integration tests

Tests the provenance commands end to end against a temporary database.
Uses Typer's CliRunner for isolated command testing.

Fun fact: The first command-line interface (CLI) was created in 1964 for the
Dartmouth Time Sharing System.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from rights_provenance.cli.main import app


@pytest.fixture
def runner() -> CliRunner:
    """Typer CLI test runner"""
    return CliRunner()


@pytest.fixture
def db(runner: CliRunner, tmp_path: Path) -> Path:
    """Initialized ledger database"""
    db_path = tmp_path / "rights.db"
    result = runner.invoke(app, ["init", "--db", str(db_path)])
    assert result.exit_code == 0
    return db_path


@pytest.fixture
def studio_key(runner: CliRunner, tmp_path: Path) -> Path:
    key_path = tmp_path / "studio.jwk.json"
    result = runner.invoke(app, ["keys", "generate", "--out", str(key_path)])
    assert result.exit_code == 0
    return key_path


def identity(runner: CliRunner, key: Path) -> str:
    result = runner.invoke(app, ["keys", "identity", "--key", str(key)])
    assert result.exit_code == 0
    return result.stdout.strip()


def create_right(runner: CliRunner, db: Path, key: Path, territories: str = "US,CA") -> None:
    result = runner.invoke(
        app,
        [
            "right", "create",
            "--type", "DISTRIBUTION",
            "--valid-from", "2020-01-01",
            "--valid-until", "2099-01-01",
            "--territories", territories,
            "--platforms", "ALL",
            "--key", str(key),
            "--db", str(db),
        ],
    )
    assert result.exit_code == 0, result.output


# =============================================================================
# Initialization
# =============================================================================


def test_init_creates_database(runner: CliRunner, tmp_path: Path) -> None:
    db_path = tmp_path / "test.db"
    result = runner.invoke(app, ["init", "--db", str(db_path)])

    assert result.exit_code == 0
    assert db_path.exists()
    assert "initialized" in result.stdout.lower()


def test_init_with_existing_database(runner: CliRunner, db: Path) -> None:
    result = runner.invoke(app, ["init", "--db", str(db)])
    assert result.exit_code == 1


def test_missing_database(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(app, ["right", "list", "--db", str(tmp_path / "missing.db")])
    assert result.exit_code == 1


def test_db_from_environment(runner: CliRunner, db: Path) -> None:
    result = runner.invoke(app, ["right", "list"], env={"PROVENANCE_DB": str(db)})
    assert result.exit_code == 0
    assert "No rights issued" in result.stdout


# =============================================================================
# Keys
# =============================================================================


def test_keys_generate_refuses_overwrite(runner: CliRunner, studio_key: Path) -> None:
    result = runner.invoke(app, ["keys", "generate", "--out", str(studio_key)])
    assert result.exit_code == 1


def test_keys_identity(runner: CliRunner, studio_key: Path) -> None:
    assert identity(runner, studio_key).startswith("0x")


# =============================================================================
# Rights
# =============================================================================


def test_right_create_and_show(runner: CliRunner, db: Path, studio_key: Path) -> None:
    create_right(runner, db, studio_key)

    result = runner.invoke(app, ["right", "show", "--id", "1", "--json", "--db", str(db)])
    assert result.exit_code == 0
    right = json.loads(result.stdout)
    assert right["right_type"] == "DISTRIBUTION"
    assert right["territories"] == ["US", "CA"]
    assert right["original_owner"] == identity(runner, studio_key)


def test_right_show_unknown(runner: CliRunner, db: Path) -> None:
    result = runner.invoke(app, ["right", "show", "--id", "9", "--db", str(db)])
    assert result.exit_code == 1


def test_right_check(runner: CliRunner, db: Path, studio_key: Path) -> None:
    create_right(runner, db, studio_key)

    ok = runner.invoke(
        app, ["right", "check", "--id", "1", "--territory", "US", "--platform", "Netflix", "--db", str(db)]
    )
    assert ok.exit_code == 0

    out_of_scope = runner.invoke(
        app, ["right", "check", "--id", "1", "--territory", "FR", "--platform", "Netflix", "--db", str(db)]
    )
    assert out_of_scope.exit_code == 1


def test_right_transfer_full(runner: CliRunner, db: Path, studio_key: Path, tmp_path: Path) -> None:
    create_right(runner, db, studio_key)
    buyer = "0x" + "b" * 40

    result = runner.invoke(
        app,
        ["right", "transfer", "--id", "1", "--to", buyer, "--key", str(studio_key), "--db", str(db)],
    )
    assert result.exit_code == 0, result.output

    history = runner.invoke(app, ["right", "history", "--id", "1", "--json", "--db", str(db)])
    [transfer] = json.loads(history.stdout)
    assert transfer["to_actor"] == buyer
    assert transfer["transfer_type"] == "full"

    events = runner.invoke(app, ["right", "events", "--id", "1", "--json", "--db", str(db)])
    assert events.exit_code == 0, events.output
    assert [e["event_type"] for e in json.loads(events.stdout)] == [
        "RightCreated",
        "CustodyIssued",
        "RightTransferred",
        "CustodyMoved",
    ]

    # The studio no longer holds custody
    again = runner.invoke(
        app,
        ["right", "transfer", "--id", "1", "--to", buyer, "--key", str(studio_key), "--db", str(db)],
    )
    assert again.exit_code == 1


def test_right_transfer_license(runner: CliRunner, db: Path, studio_key: Path) -> None:
    create_right(runner, db, studio_key)

    result = runner.invoke(
        app,
        [
            "right", "transfer",
            "--id", "1",
            "--to", "0x" + "c" * 40,
            "--type", "license",
            "--key", str(studio_key),
            "--db", str(db),
        ],
    )
    assert result.exit_code == 0
    assert "License issued: 2" in result.stdout

    listing = runner.invoke(app, ["right", "list", "--db", str(db)])
    assert "license of 1" in listing.stdout


def test_right_transfer_with_wrong_key(runner: CliRunner, db: Path, studio_key: Path, tmp_path: Path) -> None:
    create_right(runner, db, studio_key)
    other_key = tmp_path / "other.jwk.json"
    runner.invoke(app, ["keys", "generate", "--out", str(other_key)])

    # Valid signature, but the signer holds no custody of right 1
    result = runner.invoke(
        app,
        ["right", "transfer", "--id", "1", "--to", "0xabc", "--key", str(other_key), "--db", str(db)],
    )
    assert result.exit_code == 1


def test_right_restrict(runner: CliRunner, db: Path, studio_key: Path) -> None:
    create_right(runner, db, studio_key)

    for details in ["PG-13", "R"]:
        result = runner.invoke(
            app,
            [
                "right", "restrict",
                "--id", "1",
                "--type", "RATING",
                "--details", details,
                "--key", str(studio_key),
                "--db", str(db),
            ],
        )
        assert result.exit_code == 0

    shown = json.loads(
        runner.invoke(app, ["right", "show", "--id", "1", "--json", "--db", str(db)]).stdout
    )
    assert shown["restrictions"] == {"RATING": "R"}

    stranger = runner.invoke(
        app,
        [
            "right", "restrict",
            "--id", "1",
            "--type", "RATING",
            "--details", "G",
            "--actor", "0xstranger",
            "--db", str(db),
        ],
    )
    assert stranger.exit_code == 1


def test_right_create_requires_identity(runner: CliRunner, db: Path) -> None:
    result = runner.invoke(
        app,
        [
            "right", "create",
            "--type", "COPYRIGHT",
            "--valid-from", "2020-01-01",
            "--valid-until", "2099-01-01",
            "--territories", "GLOBAL",
            "--platforms", "ALL",
            "--db", str(db),
        ],
    )
    assert result.exit_code == 1


# =============================================================================
# Documents and chain of title
# =============================================================================


def test_document_lifecycle(runner: CliRunner, db: Path, tmp_path: Path) -> None:
    contract = tmp_path / "contract.txt"
    contract.write_bytes(b"assignment of all rights")

    registered = runner.invoke(
        app, ["document", "register", "--id", "contract-1", "--file", str(contract), "--db", str(db)]
    )
    assert registered.exit_code == 0

    shown = runner.invoke(app, ["document", "show", "--id", "contract-1", "--db", str(db)])
    assert "Valid: True" in shown.stdout

    revoked = runner.invoke(app, ["document", "revoke", "--id", "contract-1", "--db", str(db)])
    assert revoked.exit_code == 0

    missing = runner.invoke(app, ["document", "revoke", "--id", "nope", "--db", str(db)])
    assert missing.exit_code == 1


def test_title_add_chain_verify(runner: CliRunner, db: Path, studio_key: Path) -> None:
    create_right(runner, db, studio_key)
    runner.invoke(app, ["document", "register", "--id", "contract-1", "--hash", "ab" * 32, "--db", str(db)])

    added = runner.invoke(
        app,
        [
            "title", "add",
            "--right", "1",
            "--document", "contract-1",
            "--type", "ASSIGNMENT",
            "--key", str(studio_key),
            "--db", str(db),
        ],
    )
    assert added.exit_code == 0, added.output

    chain = json.loads(
        runner.invoke(app, ["title", "chain", "--right", "1", "--json", "--db", str(db)]).stdout
    )
    assert len(chain["entries"]) == 1
    assert chain["entries"][0]["previous_entry_hash"] == "0" * 64

    verified = runner.invoke(app, ["title", "verify", "--right", "1", "--db", str(db)])
    assert verified.exit_code == 0
    assert "intact" in verified.stdout

    verified_all = runner.invoke(app, ["title", "verify", "--db", str(db)])
    assert verified_all.exit_code == 0


def test_title_add_rejects_unregistered_document(runner: CliRunner, db: Path) -> None:
    result = runner.invoke(
        app,
        [
            "title", "add",
            "--right", "1",
            "--document", "ghost",
            "--type", "ASSIGNMENT",
            "--actor", "0xrecorder",
            "--db", str(db),
        ],
    )
    assert result.exit_code == 1


def test_title_verify_empty_chain_fails(runner: CliRunner, db: Path) -> None:
    result = runner.invoke(app, ["title", "verify", "--right", "1", "--db", str(db)])
    assert result.exit_code == 1
