import pytest

from otc_chain_recon.config import (
    ReconConfig,
    _deep_merge,
    generate_default_config,
    load_config,
)
from otc_chain_recon.utils.exceptions import ConfigurationError

ETH_WALLET = "0x" + "AB" * 20
TRON_WALLET = "TXYZabcdefghijklmnopqrstuvwxyz1234"


@pytest.fixture(autouse=True)
def no_env_key(monkeypatch):
    monkeypatch.delenv("ETHERSCAN_API_KEY", raising=False)


def test_defaults():
    config = load_config(None)

    assert config.pipeline.delay_ms == 1200
    assert config.matching.tolerance == 0.01
    assert config.networks.tron.timeout_seconds == 15
    assert config.networks.tron.rate_limit_cooldown_seconds == 6
    assert config.networks.etherscan.max_rate_limit_retries == 2
    assert config.input.ledger.column_mappings["tx_hash"] == "Hash"
    assert not config.etherscan_enabled


def test_yaml_overrides_are_merged_into_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "pipeline:\n"
        "  delay_ms: 500\n"
        "networks:\n"
        "  etherscan:\n"
        "    api_key: file-key\n"
        "input:\n"
        "  ledger:\n"
        "    column_mappings:\n"
        "      client: Customer\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.pipeline.delay_ms == 500
    assert config.networks.etherscan.api_key == "file-key"
    assert config.networks.etherscan.chain_id == 1
    assert config.input.ledger.column_mappings["client"] == "Customer"
    assert config.input.ledger.column_mappings["amount"] == "Valor ME"
    assert config.config_file_path == str(path)


def test_api_key_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("ETHERSCAN_API_KEY", "  env-key  ")

    config = load_config(None)

    assert config.networks.etherscan.api_key == "env-key"
    assert config.etherscan_enabled


def test_invalid_wallets_are_dropped():
    config = ReconConfig(
        wallets={
            "ACME": [ETH_WALLET, "not-a-wallet"],
            "Globex": TRON_WALLET,
            "Initech": ["0x123"],
            "  ": [ETH_WALLET],
        }
    )

    assert config.wallets == {"ACME": [ETH_WALLET.lower()], "Globex": [TRON_WALLET]}


def test_deep_merge_keeps_unrelated_keys():
    merged = _deep_merge({"a": {"b": 1, "c": 2}, "d": 3}, {"a": {"b": 10}})
    assert merged == {"a": {"b": 10, "c": 2}, "d": 3}


def test_generated_config_loads_back(tmp_path):
    path = tmp_path / "nested" / "config.yaml"

    generate_default_config(path)
    config = load_config(path)

    assert path.read_text(encoding="utf-8").startswith("# OTC ledger")
    assert config.pipeline.delay_ms == 1200
    assert "Example Client" in config.wallets


def test_invalid_values_raise_configuration_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("pipeline:\n  delay_ms: soon\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        load_config(path)


def test_malformed_yaml_raises_configuration_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("pipeline: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_config(path)
