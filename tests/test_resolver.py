from decimal import Decimal

from otc_chain_recon.chain.identifiers import canonicalize_hash
from otc_chain_recon.matching.resolver import MultiNetworkResolver, amounts_match
from otc_chain_recon.models.chain import Currency, Network
from otc_chain_recon.utils.exceptions import ExplorerError, RateLimitExceededError

from tests.helpers import TX_HASH, StubClient


def _resolver(tron, ethereum, sleeps):
    return MultiNetworkResolver(
        tron, ethereum, tolerance=Decimal("0.01"), delay_seconds=1.2, sleep=sleeps.append
    )


def test_amounts_match_uses_inclusive_tolerance():
    tolerance = Decimal("0.01")
    assert amounts_match(Decimal("100"), Decimal("100.01"), tolerance)
    assert amounts_match(Decimal("100"), Decimal("99.99"), tolerance)
    assert not amounts_match(Decimal("100"), Decimal("100.02"), tolerance)
    assert not amounts_match(Decimal("100"), None, tolerance)


class TestFirstChoice:
    def test_undeclared_queries_tron_only_when_found(self, make_observation, sleeps):
        tron = StubClient(Network.TRC20, make_observation())
        ethereum = StubClient(Network.ERC20, make_observation(network=Network.ERC20))

        observation = _resolver(tron, ethereum, sleeps).first_choice(canonicalize_hash(TX_HASH))

        assert observation.network == Network.TRC20
        assert ethereum.calls == 0

    def test_declared_erc20_queries_ethereum_first(self, make_observation, sleeps):
        tron = StubClient(Network.TRC20, make_observation())
        ethereum = StubClient(Network.ERC20, make_observation(network=Network.ERC20))

        observation = _resolver(tron, ethereum, sleeps).first_choice(canonicalize_hash(TX_HASH), "ERC20")

        assert observation.network == Network.ERC20
        assert tron.calls == 0

    def test_declared_erc20_falls_back_to_tron(self, make_observation, sleeps):
        tron = StubClient(Network.TRC20, make_observation())
        ethereum = StubClient(Network.ERC20, None)

        observation = _resolver(tron, ethereum, sleeps).first_choice(canonicalize_hash(TX_HASH), "ERC20")
        assert observation.network == Network.TRC20

    def test_ethereum_fallback_requires_well_formed_hash(self, make_observation, sleeps):
        tron = StubClient(Network.TRC20, None)
        ethereum = StubClient(Network.ERC20, make_observation(network=Network.ERC20))

        resolver = _resolver(tron, ethereum, sleeps)
        assert resolver.first_choice(canonicalize_hash("0xshort")) is None
        assert ethereum.calls == 0

    def test_ethereum_fallback_requires_api_key(self, make_observation, sleeps):
        tron = StubClient(Network.TRC20, None)
        ethereum = StubClient(Network.ERC20, make_observation(network=Network.ERC20), enabled=False)

        assert _resolver(tron, ethereum, sleeps).first_choice(canonicalize_hash(TX_HASH)) is None
        assert ethereum.calls == 0

    def test_errors_are_recorded_and_other_network_tried(self, make_observation, sleeps):
        tron = StubClient(Network.TRC20, RateLimitExceededError("TronScan rate limit"))
        ethereum = StubClient(Network.ERC20, make_observation(network=Network.ERC20))
        errors = []

        resolver = _resolver(tron, ethereum, sleeps)
        observation = resolver.first_choice(canonicalize_hash(TX_HASH), None, errors)

        assert observation.network == Network.ERC20
        assert errors == ["TronScan rate limit"]


class TestResolve:
    def test_matching_first_choice_skips_disambiguation(self, make_group, make_observation, sleeps):
        tron = StubClient(Network.TRC20, make_observation("100"))
        ethereum = StubClient(Network.ERC20, None)

        resolution = _resolver(tron, ethereum, sleeps).resolve(make_group(amount="100"))

        assert resolution.observation.amount == Decimal("100")
        assert resolution.remediation is None
        assert tron.calls == 1
        assert sleeps == []

    def test_mismatch_accepts_other_network(self, make_group, make_observation, sleeps):
        tron = StubClient(Network.TRC20, make_observation("10"))
        eth_obs = make_observation("75", network=Network.ERC20, currency=Currency.USDC)
        ethereum = StubClient(Network.ERC20, eth_obs)

        resolution = _resolver(tron, ethereum, sleeps).resolve(make_group(amount="75", network="TRC20"))

        assert resolution.observation.network == Network.ERC20
        assert '"Network" column from TRC20 to ERC20' in resolution.remediation
        assert sleeps == [1.2]

    def test_both_networks_matching_prefers_tron(self, make_group, make_observation, sleeps):
        tron_obs = make_observation("50")
        eth_obs = make_observation("50", network=Network.ERC20)
        tron = StubClient(Network.TRC20, [None, tron_obs])
        ethereum = StubClient(Network.ERC20, [None, eth_obs])

        resolution = _resolver(tron, ethereum, sleeps).resolve(make_group(amount="50"))

        assert resolution.observation == tron_obs
        assert resolution.alternate == eth_obs
        assert "both TRC20 and ERC20" in resolution.remediation

    def test_neither_matching_keeps_first_observation(self, make_group, make_observation, sleeps):
        tron = StubClient(Network.TRC20, make_observation("10"))
        ethereum = StubClient(Network.ERC20, make_observation("20", network=Network.ERC20))

        resolution = _resolver(tron, ethereum, sleeps).resolve(make_group(amount="75"))

        assert resolution.observation.amount == Decimal("10")
        assert "differs from the ledger on both networks" in resolution.remediation

    def test_nothing_found_carries_reason_with_errors(self, make_group, sleeps):
        tron = StubClient(Network.TRC20, ExplorerError("TronScan HTTP 502: bad gateway"))
        ethereum = StubClient(Network.ERC20, None)

        resolution = _resolver(tron, ethereum, sleeps).resolve(make_group())

        assert resolution.observation is None
        assert resolution.reason.startswith("Not found on TRC20 or ERC20")
        assert "TronScan HTTP 502" in resolution.reason
