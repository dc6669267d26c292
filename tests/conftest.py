import pytest

from gengate.daemon.auth import issue_token
from gengate.daemon.db import init_db
from gengate.daemon.ledger import create_account


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh SQLite ledger per test."""
    monkeypatch.delenv("GENGATE_PG_DSN", raising=False)
    db_path = tmp_path / "gengate.db"
    monkeypatch.setenv("GENGATE_DB_PATH", str(db_path))
    init_db()
    return db_path


@pytest.fixture
def make_account(db):
    """Create an account and return its raw API token."""

    def _make(identity: str, balance: int = 0, role: str = "ordinary") -> str:
        token, token_sha = issue_token()
        create_account(identity, role=role, balance=balance, token_hash=token_sha)
        return token

    return _make
