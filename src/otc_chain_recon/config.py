"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Any, Optional
import logging
import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .chain.identifiers import is_valid_address, normalize_address
from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ETHERSCAN_API_KEY_ENV = "ETHERSCAN_API_KEY"


class LedgerInputConfig(BaseModel):
    """Configuration for reading the OTC ledger."""

    encoding: str = "utf-8"
    delimiter: str = ","
    sheet_name: Optional[str] = None
    column_mappings: dict[str, str] = Field(
        default_factory=lambda: {
            "client": "Cliente",
            "amount": "Valor ME",
            "tx_hash": "Hash",
            "network": "Rede",
            "currency": "Moeda",
        }
    )


class InputConfig(BaseModel):
    """Configuration for input file parsing."""

    ledger: LedgerInputConfig = Field(default_factory=LedgerInputConfig)


class ExplorerConfig(BaseModel):
    """Connection settings shared by both explorer clients."""

    base_url: str
    timeout_seconds: float = 15.0
    rate_limit_cooldown_seconds: float = 6.0
    max_rate_limit_retries: int = 2


class EtherscanConfig(ExplorerConfig):
    """Etherscan v2 settings. No API key disables ERC20 lookups."""

    base_url: str = "https://api.etherscan.io/v2/api"
    chain_id: int = 1
    api_key: Optional[str] = None


class TronScanConfig(ExplorerConfig):
    """TronScan settings."""

    base_url: str = "https://apilist.tronscanapi.com/api/transaction-info"


class NetworksConfig(BaseModel):
    """Configuration for the explorer clients."""

    tron: TronScanConfig = Field(default_factory=TronScanConfig)
    etherscan: EtherscanConfig = Field(default_factory=EtherscanConfig)


class PipelineConfig(BaseModel):
    """Pacing of the sequential query pipeline."""

    delay_ms: int = 1200


class MatchingConfig(BaseModel):
    """Configuration for amount matching."""

    tolerance: float = 0.01


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    input: InputConfig = Field(default_factory=InputConfig)
    networks: NetworksConfig = Field(default_factory=NetworksConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    wallets: dict[str, list[str]] = Field(default_factory=dict)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None

    @field_validator("wallets", mode="before")
    @classmethod
    def _clean_wallets(cls, value: Any) -> dict[str, list[str]]:
        """Keep only well-formed addresses, normalized for comparison."""
        if not value:
            return {}
        cleaned: dict[str, list[str]] = {}
        for client, addresses in dict(value).items():
            name = str(client or "").strip()
            if not name:
                continue
            if isinstance(addresses, str):
                addresses = [addresses]
            valid = []
            for address in addresses or []:
                if is_valid_address(address):
                    valid.append(normalize_address(address))
                else:
                    logger.warning(f"Ignoring invalid wallet for {name}: {address!r}")
            if valid:
                cleaned[name] = valid
        return cleaned

    @property
    def etherscan_enabled(self) -> bool:
        return bool(self.networks.etherscan.api_key)


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "input": {
            "ledger": {
                "encoding": "utf-8",
                "delimiter": ",",
                "sheet_name": None,
                "column_mappings": {
                    "client": "Cliente",
                    "amount": "Valor ME",
                    "tx_hash": "Hash",
                    "network": "Rede",
                    "currency": "Moeda",
                },
            },
        },
        "networks": {
            "tron": {
                "base_url": "https://apilist.tronscanapi.com/api/transaction-info",
                "timeout_seconds": 15,
                "rate_limit_cooldown_seconds": 6,
                "max_rate_limit_retries": 2,
            },
            "etherscan": {
                "base_url": "https://api.etherscan.io/v2/api",
                "chain_id": 1,
                "api_key": None,
                "timeout_seconds": 15,
                "rate_limit_cooldown_seconds": 6,
                "max_rate_limit_retries": 2,
            },
        },
        "pipeline": {
            "delay_ms": 1200,
        },
        "matching": {
            "tolerance": 0.01,
        },
        "wallets": {},
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "log_file": None,
        },
    }


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    The Etherscan API key falls back to the ``ETHERSCAN_API_KEY``
    environment variable when the file does not set one.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or has invalid values
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Configuration file must be a mapping: {config_path}")

        # Deep merge user config into defaults
        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    load_dotenv()
    etherscan = config_dict["networks"]["etherscan"]
    if not etherscan.get("api_key"):
        etherscan["api_key"] = os.getenv(ETHERSCAN_API_KEY_ENV, "").strip() or None

    try:
        config = ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    if not config.etherscan_enabled:
        logger.warning("No Etherscan API key configured; ERC20 lookups are disabled")
    return config


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()
    config_dict["wallets"] = {
        "Example Client": ["0x0000000000000000000000000000000000000000"],
    }

    yaml_content = """# OTC ledger on-chain reconciliation configuration
# Leave networks.etherscan.api_key empty to read ETHERSCAN_API_KEY from the environment

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
