"""Pytest configuration and fixtures."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from portfolioledger.core.models import EquityInstrument, OptionInstrument, OptionType
from portfolioledger.persistence import storage as storage_module
from portfolioledger.web import dependencies as web_dependencies


@pytest.fixture(scope="session", autouse=True)
def isolated_persistence(tmp_path_factory):
    """Ensure tests use an isolated SQLite database and reset caches between runs."""

    db_dir = tmp_path_factory.mktemp("persistence-db")
    db_path = db_dir / "portfolioledger.db"
    monkeypatch = pytest.MonkeyPatch()
    monkeypatch.setenv(storage_module.DB_ENV_VAR, str(db_path))
    storage_module.get_storage.cache_clear()
    try:
        yield
    finally:
        storage_module.get_storage.cache_clear()
        monkeypatch.undo()


@pytest.fixture
def fresh_db(tmp_path, monkeypatch):
    """Point the storage layer at an empty per-test database."""

    db_path = tmp_path / "ledger.db"
    monkeypatch.setenv(storage_module.DB_ENV_VAR, str(db_path))
    storage_module.get_storage.cache_clear()
    web_dependencies._get_cached_store.cache_clear()
    yield db_path
    storage_module.get_storage.cache_clear()
    web_dependencies._get_cached_store.cache_clear()


@pytest.fixture
def equity():
    return EquityInstrument(symbol="AAPL")


@pytest.fixture
def call_option():
    return OptionInstrument(
        underlying_symbol="AAPL",
        expiry=date(2025, 3, 21),
        strike=Decimal("200"),
        call_put=OptionType.CALL,
    )


@pytest.fixture
def put_option():
    return OptionInstrument(
        underlying_symbol="AAPL",
        expiry=date(2025, 3, 21),
        strike=Decimal("200"),
        call_put=OptionType.PUT,
    )


@pytest.fixture
def base_time():
    return datetime(2025, 1, 2, 10, 0)
