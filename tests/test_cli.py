"""CLI integration tests for portfolioledger commands."""

import json

from click.testing import CliRunner

from portfolioledger.cli.commands import main as portfolioledger_cli
from portfolioledger.persistence import storage as storage_module


def _invoke(runner, args, **kwargs):
    result = runner.invoke(portfolioledger_cli, args, **kwargs)
    assert result.exit_code == 0, result.output
    return result


def _invoke_json(runner, args):
    return json.loads(_invoke(runner, [*args, "--format", "json"]).output)


def _buy_and_sell_aapl(runner):
    _invoke(
        runner,
        ["trade", "equity", "AAPL", "--action", "buy", "-q", "100", "-p", "10"]
        + ["--date", "2025-01-02", "--notes", "starter position", "--tag", "core"],
    )
    _invoke(
        runner,
        ["trade", "equity", "aapl", "--action", "sell", "-q", "40", "-p", "12"]
        + ["--date", "2025-01-05"],
    )


def _sell_put(runner, price="1.5"):
    return _invoke(
        runner,
        ["trade", "option", "AAPL", "--expiry", "2025-03-21", "--strike", "200"]
        + ["--type", "put", "--action", "sto", "-q", "1", "-p", price, "--date", "2025-01-03"],
    )


def test_cli_help_lists_all_commands():
    """Root CLI help should list all registered subcommands."""
    runner = CliRunner()

    result = _invoke(runner, ["--help"])

    for command in (
        "trade",
        "transactions",
        "delete",
        "positions",
        "underlier",
        "pnl",
        "assign",
        "close",
        "export",
        "import",
    ):
        assert command in result.output


def test_cli_unknown_command_reports_error():
    runner = CliRunner()

    result = runner.invoke(portfolioledger_cli, ["unknown"])

    assert result.exit_code != 0
    assert "No such command" in result.output


def test_trade_equity_updates_positions_and_pnl(fresh_db):
    runner = CliRunner()

    _buy_and_sell_aapl(runner)

    positions = _invoke_json(runner, ["positions"])["positions"]
    assert len(positions) == 1
    assert positions[0]["display_name"] == "AAPL"
    assert positions[0]["quantity"] == "60"
    assert positions[0]["cost_basis"] == "600"

    pnl = _invoke_json(runner, ["pnl"])
    assert pnl["summary"]["equity_realized_pl"] == "80"
    assert pnl["summary"]["option_realized_pl"] == "0"
    assert len(pnl["realized_pls"]) == 1
    assert pnl["realized_pls"][0]["holding_days"] == 3


def test_trade_reports_recorded_transaction(fresh_db):
    runner = CliRunner()

    result = _sell_put(runner)

    assert "Recorded SELL TO OPEN 1 AAPL 03/21/25 200P @ $1.50" in result.output


def test_trade_rejects_invalid_input(fresh_db):
    runner = CliRunner()

    zero_quantity = runner.invoke(
        portfolioledger_cli,
        ["trade", "equity", "AAPL", "--action", "buy", "-q", "0", "-p", "10"],
    )
    assert zero_quantity.exit_code != 0
    assert "quantity" in zero_quantity.output

    bad_price = runner.invoke(
        portfolioledger_cli,
        ["trade", "equity", "AAPL", "--action", "buy", "-q", "1", "-p", "ten"],
    )
    assert bad_price.exit_code != 0
    assert "price must be a valid decimal number" in bad_price.output

    bad_expiry = runner.invoke(
        portfolioledger_cli,
        ["trade", "option", "AAPL", "--expiry", "03/21/2025", "--strike", "200"]
        + ["--type", "call", "--action", "bto", "-q", "1", "-p", "1"],
    )
    assert bad_expiry.exit_code != 0
    assert "Invalid expiry" in bad_expiry.output

    assert _invoke_json(runner, ["transactions"])["transactions"] == []


def test_transactions_search_and_limit(fresh_db):
    runner = CliRunner()
    _buy_and_sell_aapl(runner)
    _sell_put(runner)

    everything = _invoke_json(runner, ["transactions"])["transactions"]
    assert [txn["action"] for txn in everything] == ["sell", "sell_to_open", "buy"]

    searched = _invoke_json(runner, ["transactions", "--search", "STARTER"])["transactions"]
    assert [txn["notes"] for txn in searched] == ["starter position"]
    assert searched[0]["tags"] == ["core"]

    limited = _invoke_json(runner, ["transactions", "--limit", "1"])["transactions"]
    assert len(limited) == 1

    table = _invoke(runner, ["transactions", "--symbol", "MSFT"])
    assert "No transactions match the requested filters." in table.output


def test_delete_removes_transaction_by_prefix(fresh_db):
    runner = CliRunner()
    _buy_and_sell_aapl(runner)
    sale = _invoke_json(runner, ["transactions"])["transactions"][0]

    result = _invoke(runner, ["delete", sale["id"][:8], "--yes"])

    assert f"Deleted SELL 40 AAPL ({sale['id'][:8]})." in result.output
    remaining = _invoke_json(runner, ["transactions"])["transactions"]
    assert sale["id"] not in [txn["id"] for txn in remaining]
    assert len(remaining) == 1
    positions = _invoke_json(runner, ["positions"])["positions"]
    assert positions[0]["quantity"] == "100"


def test_delete_without_confirmation_aborts(fresh_db):
    runner = CliRunner()
    _buy_and_sell_aapl(runner)
    sale = _invoke_json(runner, ["transactions"])["transactions"][0]

    result = runner.invoke(portfolioledger_cli, ["delete", sale["id"]], input="n\n")

    assert result.exit_code != 0
    assert len(_invoke_json(runner, ["transactions"])["transactions"]) == 2


def test_delete_unknown_transaction_fails(fresh_db):
    runner = CliRunner()

    result = runner.invoke(portfolioledger_cli, ["delete", "deadbeef", "--yes"])

    assert result.exit_code != 0
    assert "No transaction found with id deadbeef" in result.output


def test_assign_short_put_buys_shares(fresh_db):
    runner = CliRunner()
    _sell_put(runner)
    opening = _invoke_json(runner, ["transactions"])["transactions"][0]

    result = _invoke(runner, ["assign", opening["id"], "--date", "2025-03-21"])

    assert "Recorded BUY TO CLOSE 1 AAPL 03/21/25 200P @ $0.00" in result.output
    assert "Recorded BUY 100 AAPL @ $199.99" in result.output

    positions = _invoke_json(runner, ["positions"])["positions"]
    assert [(pos["display_name"], pos["quantity"]) for pos in positions] == [("AAPL", "100")]
    assert positions[0]["average_price"] == "199.985"

    logged = _invoke_json(runner, ["transactions", "--search", "assignment"])["transactions"]
    assert len(logged) == 2
    assert logged[0]["link_group_id"] == logged[1]["link_group_id"]


def test_assign_rejects_equity_transaction(fresh_db):
    runner = CliRunner()
    _buy_and_sell_aapl(runner)
    purchase = _invoke_json(runner, ["transactions"])["transactions"][-1]

    result = runner.invoke(portfolioledger_cli, ["assign", purchase["id"]])

    assert result.exit_code != 0
    assert "does not reference an option" in result.output


def test_close_flattens_short_option(fresh_db):
    runner = CliRunner()
    _sell_put(runner)
    instrument_id = _invoke_json(runner, ["positions"])["positions"][0]["instrument_id"]

    result = _invoke(runner, ["close", instrument_id, "-p", "0.5", "--date", "2025-02-01"])

    assert "Recorded BUY TO CLOSE 1 AAPL 03/21/25 200P @ $0.50" in result.output
    assert _invoke_json(runner, ["positions"])["positions"] == []
    pnl = _invoke_json(runner, ["pnl"])
    assert pnl["summary"]["option_realized_pl"] == "100"

    again = runner.invoke(portfolioledger_cli, ["close", instrument_id, "-p", "0.5"])
    assert again.exit_code != 0
    assert "No open position" in again.output


def test_underlier_and_ticker_pnl(fresh_db):
    runner = CliRunner()
    _buy_and_sell_aapl(runner)
    _sell_put(runner)

    underlier = _invoke_json(runner, ["underlier", "aapl"])
    assert underlier["symbol"] == "AAPL"
    assert underlier["summary"]["open_option_contracts"] == 1
    assert underlier["realized_total"] == "230"

    pnl = _invoke_json(runner, ["pnl", "--ticker", "AAPL"])
    assert pnl["ticker"] == "AAPL"
    assert pnl["ticker_realized_pl"] == "230"

    table = _invoke(runner, ["underlier", "AAPL"])
    assert "Realized total: +$230.00" in table.output

    missing = _invoke(runner, ["underlier", "MSFT"])
    assert "No positions or realized P&L found for MSFT." in missing.output


def test_export_then_import_into_fresh_ledger(fresh_db, tmp_path, monkeypatch):
    runner = CliRunner()
    _buy_and_sell_aapl(runner)
    export_dir = tmp_path / "export"

    result = _invoke(runner, ["export", "--dir", str(export_dir)])
    assert "and 2 transactions to" in result.output
    assert (export_dir / "instruments.csv").exists()
    assert (export_dir / "transactions.csv").exists()

    reimport = _invoke(runner, ["import", "--dir", str(export_dir)])
    assert "Imported 0 new instruments (1 updated) and 0 transactions." in reimport.output
    assert "Skipped 2 transactions already in the ledger." in reimport.output

    monkeypatch.setenv(storage_module.DB_ENV_VAR, str(tmp_path / "other.db"))
    storage_module.get_storage.cache_clear()

    imported = _invoke(runner, ["import", "--dir", str(export_dir)])
    assert "Imported 1 new instruments (0 updated) and 2 transactions." in imported.output
    positions = _invoke_json(runner, ["positions"])["positions"]
    assert positions[0]["quantity"] == "60"

    _invoke(
        runner,
        ["trade", "equity", "AAPL", "--action", "sell", "-q", "60", "-p", "11"]
        + ["--date", "2025-01-06"],
    )
    assert _invoke_json(runner, ["positions"])["positions"] == []


def test_import_reports_missing_files(fresh_db, tmp_path):
    runner = CliRunner()

    result = runner.invoke(portfolioledger_cli, ["import", "--dir", str(tmp_path / "nope")])

    assert result.exit_code != 0
    assert "CSV file not found" in result.output
