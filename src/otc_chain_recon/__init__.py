"""On-chain reconciliation of OTC desk ledgers against TRC20 and ERC20 stablecoin transfers."""

__version__ = "0.1.0"
