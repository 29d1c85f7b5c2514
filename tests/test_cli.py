from click.testing import CliRunner

from otc_chain_recon.cli import main


def test_init_config_writes_yaml(tmp_path):
    output = tmp_path / "config.yaml"

    result = CliRunner().invoke(main, ["init-config", "-o", str(output)])

    assert result.exit_code == 0
    assert "delay_ms: 1200" in output.read_text(encoding="utf-8")


def test_reconcile_reports_ledger_errors(tmp_path, monkeypatch):
    monkeypatch.delenv("ETHERSCAN_API_KEY", raising=False)
    ledger = tmp_path / "ledger.csv"
    ledger.write_text("Cliente,Valor ME\nACME,10\n", encoding="utf-8")

    result = CliRunner().invoke(main, ["reconcile", str(ledger)])

    assert result.exit_code == 1
    assert "Hash" in result.output
