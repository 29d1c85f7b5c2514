"""Human-readable remediation messages attached to reconciliation outcomes."""

from typing import Optional

from ..models.chain import ChainObservation, Currency, Network
from ..models.ledger import LedgerGroup

NOT_FOUND_REASON = "Not found on TRC20 or ERC20 (or the network was unavailable)."


def _clients_label(group: LedgerGroup) -> str:
    return ", ".join(group.clients) if group.clients else "this record"


def describe_ledger_correction(
    group: LedgerGroup,
    network: Optional[Network],
    currency: Optional[Currency],
) -> Optional[str]:
    """
    Name the ledger columns whose declared value differs from the chain.

    Only columns the ledger actually filled in are compared. Returns None
    when nothing needs correcting.
    """
    changes = []
    declared_network = group.declared_network
    if declared_network and network and declared_network != network.value:
        changes.append(f'the "Network" column from {group.network.strip()} to {network.value}')

    declared_currency = group.declared_currency
    if declared_currency and currency and declared_currency != currency:
        changes.append(f'the "Currency" column from {group.currency.strip()} to {currency.value}')

    if not changes:
        return None
    return f"Ledger correction for client(s) {_clients_label(group)}: change {' and '.join(changes)}."


def other_network_message(group: LedgerGroup, observation: ChainObservation) -> str:
    """Message for a transfer that only matched on the other network."""
    correction = describe_ledger_correction(group, observation.network, observation.currency)
    if correction:
        return correction
    network = observation.network.value
    return (
        f"The transaction was completed on {network}. "
        f'Set the "Network" column to {network} in the ledger.'
    )


def both_networks_message(group: LedgerGroup, accepted: ChainObservation) -> str:
    """Message for a hash whose amount matched on both networks."""
    message = (
        "Transaction found with a matching amount on both TRC20 and ERC20; "
        f"{accepted.network.value} was accepted. Confirm which network and currency "
        'were used and adjust the "Network" and "Currency" columns.'
    )
    correction = describe_ledger_correction(group, accepted.network, accepted.currency)
    return f"{message} {correction}" if correction else message


AMOUNT_MISMATCH_BOTH_NETWORKS = (
    "The on-chain amount differs from the ledger on both networks. Check the amount "
    'and the network (TRC20/ERC20) in the ledger; if the operation ran on the other '
    'network, correct the "Network" column.'
)

NETWORK_CURRENCY_CONFLICT = (
    'Rows sharing this hash must have identical "Network" and "Currency" columns. '
    "Unify the values in the ledger."
)


def wallet_mismatch_message(
    group: LedgerGroup, destination: str, owner: Optional[str]
) -> str:
    """Explain a destination wallet that does not belong to the ledger's client."""
    clients = _clients_label(group)
    if owner:
        return (
            f'The transfer went to the wallet of client "{owner}" ({destination}), '
            f"but the ledger names client(s): {clients}. Check the destination wallet "
            "of this operation."
        )
    return (
        f"The on-chain destination ({destination}) is not registered for the ledger "
        f"client(s) ({clients}) nor for any other registered client. Check the wallet "
        "registry."
    )
