"""
Stable Jack provisioning plans.

Two layouts are provided:

- ``stable-jack``: Treasury, synthetic (fToken) and leveraged (xToken)
  tokens, Market, then initialization of Treasury and Market, then the
  RebalancePool.
- ``stable-jack-scroll``: the layout used for the Scroll Sepolia rollout,
  where the Treasury is initialized with its external references only and
  linked to the Market afterwards.

Parameter builders close over the deployment configuration and read earlier
outputs from the working state. They never touch the ledger.
"""

from __future__ import annotations

from typing import Callable, List

from chainplan.config.deployment import ProvisioningConfig
from chainplan.orchestration.models import (
    CallParameters,
    ResourceSpec,
    StepKind,
    WorkingState,
)
from chainplan.plans.validation import (
    require_address,
    require_fraction,
    require_positive,
    require_ratio,
    require_text,
    require_uint24,
)

Builder = Callable[[WorkingState], CallParameters]


def deploy_treasury(config: ProvisioningConfig) -> Builder:
    def build(state: WorkingState) -> CallParameters:
        ratio = require_ratio(config.initial_parameters.mint_ratio, "initial mint ratio")
        return CallParameters(
            args=(ratio,),
            arg_types=("uint256",),
            recorded={"initial_mint_ratio": ratio},
        )

    return build


def deploy_synthetic(config: ProvisioningConfig) -> Builder:
    def build(state: WorkingState) -> CallParameters:
        name = require_text(config.tokens.synthetic_name, "synthetic token name")
        symbol = require_text(config.tokens.synthetic_symbol, "synthetic token symbol")
        return CallParameters(
            args=(state.address("DeployTreasury"), name, symbol),
            arg_types=("address", "string", "string"),
        )

    return build


def deploy_leveraged(config: ProvisioningConfig) -> Builder:
    def build(state: WorkingState) -> CallParameters:
        name = require_text(config.tokens.leveraged_name, "leveraged token name")
        symbol = require_text(config.tokens.leveraged_symbol, "leveraged token symbol")
        return CallParameters(
            args=(
                state.address("DeployTreasury"),
                state.address("DeploySynthetic"),
                name,
                symbol,
            ),
            arg_types=("address", "address", "string", "string"),
        )

    return build


def initialize_treasury(config: ProvisioningConfig) -> Builder:
    def build(state: WorkingState) -> CallParameters:
        params = config.initial_parameters
        refs = config.references
        base_token = require_address(refs.base_token, "base token")
        price_oracle = require_address(refs.price_oracle, "price oracle")
        rate_provider = require_address(refs.rate_provider, "rate provider")
        beta = require_fraction(params.beta, "beta exposure")
        cap = require_positive(params.base_token_cap, "base token cap")
        interval = require_uint24(params.ema_sample_interval, "EMA sample interval")
        return CallParameters(
            args=(
                state.address("DeployMarket"),
                base_token,
                state.address("DeploySynthetic"),
                state.address("DeployLeveraged"),
                price_oracle,
                beta,
                cap,
                rate_provider,
                interval,
            ),
            arg_types=(
                "address",
                "address",
                "address",
                "address",
                "address",
                "uint256",
                "uint256",
                "address",
                "uint24",
            ),
            target=state.address("DeployTreasury"),
            recorded={
                "base_token": base_token,
                "price_oracle": price_oracle,
                "rate_provider": rate_provider,
                "beta": beta,
                "base_token_cap": cap,
                "ema_sample_interval": interval,
            },
        )

    return build


def initialize_market(config: ProvisioningConfig) -> Builder:
    def build(state: WorkingState) -> CallParameters:
        platform = require_address(config.platform_address, "platform")
        # gateway is only used on AVAX deployments; zero disables it
        gateway = require_address(config.gateway, "gateway", allow_zero=True)
        return CallParameters(
            args=(state.address("DeployTreasury"), platform, gateway),
            arg_types=("address", "address", "address"),
            target=state.address("DeployMarket"),
            recorded={"platform": platform, "gateway": gateway},
        )

    return build


def initialize_rebalance_pool(config: ProvisioningConfig) -> Builder:
    def build(state: WorkingState) -> CallParameters:
        return CallParameters(
            args=(state.address("DeployTreasury"), state.address("DeployMarket")),
            arg_types=("address", "address"),
            target=state.address("DeployRebalancePool"),
        )

    return build


def stable_jack_plan(config: ProvisioningConfig) -> List[ResourceSpec]:
    """Full Stable Jack system: five contracts and three initializations."""
    return [
        ResourceSpec(
            name="DeployTreasury",
            kind=StepKind.DEPLOY,
            resource="treasury",
            contract="Treasury",
            parameter_builder=deploy_treasury(config),
            description="Treasury holding the base token, with its initial mint ratio",
        ),
        ResourceSpec(
            name="DeploySynthetic",
            kind=StepKind.DEPLOY,
            resource="fToken",
            contract="FractionalToken",
            depends_on=("DeployTreasury",),
            parameter_builder=deploy_synthetic(config),
            description="Synthetic stable token minted by the treasury",
        ),
        ResourceSpec(
            name="DeployLeveraged",
            kind=StepKind.DEPLOY,
            resource="xToken",
            contract="LeveragedToken",
            depends_on=("DeployTreasury", "DeploySynthetic"),
            parameter_builder=deploy_leveraged(config),
            description="Leveraged token absorbing base token volatility",
        ),
        ResourceSpec(
            name="DeployMarket",
            kind=StepKind.DEPLOY,
            resource="market",
            contract="Market",
            description="Mint and redeem entry point",
        ),
        ResourceSpec(
            name="InitializeTreasury",
            kind=StepKind.INITIALIZE,
            resource="treasury",
            contract="Treasury",
            function=(
                "initialize(address,address,address,address,address,"
                "uint256,uint256,address,uint24)"
            ),
            depends_on=("DeployTreasury", "DeploySynthetic", "DeployLeveraged", "DeployMarket"),
            parameter_builder=initialize_treasury(config),
            description="Wire tokens, market and price/rate references into the treasury",
        ),
        ResourceSpec(
            name="InitializeMarket",
            kind=StepKind.INITIALIZE,
            resource="market",
            contract="Market",
            function="initialize(address,address,address)",
            depends_on=("DeployTreasury", "DeployMarket"),
            parameter_builder=initialize_market(config),
            description="Point the market at the treasury and platform",
        ),
        ResourceSpec(
            name="DeployRebalancePool",
            kind=StepKind.DEPLOY,
            resource="rebalancePool",
            contract="RebalancePool",
            description="Stability pool used for liquidations",
        ),
        ResourceSpec(
            name="InitializeRebalancePool",
            kind=StepKind.INITIALIZE,
            resource="rebalancePool",
            contract="RebalancePool",
            function="initialize(address,address)",
            depends_on=("DeployRebalancePool", "DeployTreasury", "DeployMarket"),
            parameter_builder=initialize_rebalance_pool(config),
            description="Attach the pool to treasury and market",
        ),
    ]


def initialize_treasury_references(config: ProvisioningConfig) -> Builder:
    def build(state: WorkingState) -> CallParameters:
        refs = config.references
        base_token = require_address(refs.base_token, "base token")
        rate_provider = require_address(refs.rate_provider, "rate provider")
        price_oracle = require_address(refs.price_oracle, "price oracle")
        return CallParameters(
            args=(base_token, rate_provider, price_oracle),
            arg_types=("address", "address", "address"),
            target=state.address("DeployTreasury"),
            recorded={
                "base_token": base_token,
                "rate_provider": rate_provider,
                "price_oracle": price_oracle,
            },
        )

    return build


def link_treasury_market(config: ProvisioningConfig) -> Builder:
    def build(state: WorkingState) -> CallParameters:
        market = state.address("DeployMarket")
        return CallParameters(
            args=(market,),
            arg_types=("address",),
            target=state.address("DeployTreasury"),
            recorded={"market": market},
        )

    return build


def stable_jack_scroll_plan(config: ProvisioningConfig) -> List[ResourceSpec]:
    """Treasury, Market and RebalancePool, linked after initialization."""
    return [
        ResourceSpec(
            name="DeployTreasury",
            kind=StepKind.DEPLOY,
            resource="treasury",
            contract="Treasury",
            parameter_builder=deploy_treasury(config),
        ),
        ResourceSpec(
            name="InitializeTreasury",
            kind=StepKind.INITIALIZE,
            resource="treasury",
            contract="Treasury",
            function="initialize(address,address,address)",
            depends_on=("DeployTreasury",),
            parameter_builder=initialize_treasury_references(config),
        ),
        ResourceSpec(
            name="DeployMarket",
            kind=StepKind.DEPLOY,
            resource="market",
            contract="Market",
        ),
        ResourceSpec(
            name="InitializeMarket",
            kind=StepKind.INITIALIZE,
            resource="market",
            contract="Market",
            function="initialize(address,address,address)",
            depends_on=("DeployTreasury", "DeployMarket"),
            parameter_builder=initialize_market(config),
        ),
        ResourceSpec(
            name="DeployRebalancePool",
            kind=StepKind.DEPLOY,
            resource="rebalancePool",
            contract="RebalancePool",
        ),
        ResourceSpec(
            name="InitializeRebalancePool",
            kind=StepKind.INITIALIZE,
            resource="rebalancePool",
            contract="RebalancePool",
            function="initialize(address,address)",
            depends_on=("DeployRebalancePool", "DeployTreasury", "DeployMarket"),
            parameter_builder=initialize_rebalance_pool(config),
        ),
        ResourceSpec(
            name="LinkTreasuryMarket",
            kind=StepKind.POST_CONFIGURE,
            resource="treasury",
            contract="Treasury",
            function="setMarket(address)",
            depends_on=("InitializeTreasury", "DeployMarket"),
            parameter_builder=link_treasury_market(config),
        ),
    ]
