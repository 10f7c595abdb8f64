"""Spend approvals for deposits into, and withdrawals out of, vaults and markets."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Awaitable, TypeVar

from .clients.base import RouterClient, TokenHelper, TransactionSender
from .constants import ETH_ADDRESS, GWEI, MAX_UINT256
from .domain import Allowance, GasPrices, RawTransaction, address_key
from .errors import AggregatorError, TransactionError, UnsupportedNetworkError
from .logger import get_logger
from .networks import ProviderKind, active_provider_kinds

logger = get_logger(__name__)

T = TypeVar("T")


class ApprovalState(str, Enum):
    NOT_STARTED = "not_started"
    EVALUATING = "evaluating"
    DIRECT_APPROVAL_NEEDED = "direct_approval_needed"
    ROUTER_APPROVAL_NEEDED = "router_approval_needed"
    ALREADY_SUFFICIENT = "already_sufficient"
    COMPLETED = "completed"


TRANSITIONS: dict[ApprovalState, frozenset[ApprovalState]] = {
    ApprovalState.NOT_STARTED: frozenset({ApprovalState.EVALUATING}),
    ApprovalState.EVALUATING: frozenset(
        {
            ApprovalState.DIRECT_APPROVAL_NEEDED,
            ApprovalState.ROUTER_APPROVAL_NEEDED,
            ApprovalState.ALREADY_SUFFICIENT,
        }
    ),
    ApprovalState.DIRECT_APPROVAL_NEEDED: frozenset({ApprovalState.COMPLETED}),
    ApprovalState.ROUTER_APPROVAL_NEEDED: frozenset({ApprovalState.COMPLETED}),
    ApprovalState.ALREADY_SUFFICIENT: frozenset({ApprovalState.COMPLETED}),
    ApprovalState.COMPLETED: frozenset(),
}


@dataclass(frozen=True)
class ApprovalIntent:
    """A request to let ``target`` (or its router) spend ``amount`` of ``token``."""

    target: str  # vault or market address
    underlying: str  # token the target accepts directly
    token: str  # token the account is spending
    amount: int
    account: str

    @property
    def is_native(self) -> bool:
        return address_key(self.token) == address_key(ETH_ADDRESS)

    @property
    def is_direct(self) -> bool:
        return address_key(self.token) == address_key(self.underlying)


@dataclass
class ApprovalDecision:
    intent: ApprovalIntent
    state: ApprovalState = ApprovalState.NOT_STARTED
    spender: str | None = None
    allowance: int | None = None
    history: list[ApprovalState] = field(default_factory=list)

    def advance(self, state: ApprovalState) -> None:
        if state not in TRANSITIONS[self.state]:
            raise ValueError(
                f"Invalid approval transition {self.state.value} -> {state.value}"
            )
        self.history.append(self.state)
        self.state = state


def fast_gas_price_wei(gas: GasPrices) -> str:
    """Convert the router's "fast" gas tier from gwei to a wei string."""
    return str(int(Decimal(str(gas.fast)) * GWEI))


class ApprovalWorkflow:
    """Decide whether a spend approval is needed, and submit it if so.

    Three paths exist: the native asset never needs approval; the target's
    own underlying token is approved directly on the token contract; any
    other token goes through the liquidity router.
    """

    def __init__(
        self,
        chain_id: int,
        helper: TokenHelper,
        router: RouterClient | None,
        sender: TransactionSender,
        partner_address: str | None = None,
        router_label: str = "yearn",
    ):
        self.chain_id = chain_id
        self.helper = helper
        self.router = router
        self.sender = sender
        self.partner_address = partner_address
        self.router_label = router_label

    def _spender_for(self, target: str) -> str:
        return self.partner_address or target

    def _router_required(self) -> RouterClient:
        if (
            self.router is None
            or ProviderKind.AGGREGATOR not in active_provider_kinds(self.chain_id)
        ):
            raise UnsupportedNetworkError(self.chain_id)
        return self.router

    async def evaluate(self, intent: ApprovalIntent) -> ApprovalDecision:
        """Work out which approval path ``intent`` needs. Reads only."""
        decision = ApprovalDecision(intent=intent)
        decision.advance(ApprovalState.EVALUATING)

        if intent.is_native:
            decision.spender = intent.target
            decision.allowance = MAX_UINT256
            decision.advance(ApprovalState.ALREADY_SUFFICIENT)
        elif intent.is_direct:
            spender = self._spender_for(intent.target)
            current = await _transact(
                self.helper.allowance(intent.token, intent.account, spender),
                f"read allowance of {spender} on {intent.token}",
            )
            decision.spender = spender
            decision.allowance = current
            decision.advance(
                ApprovalState.ALREADY_SUFFICIENT
                if current >= intent.amount
                else ApprovalState.DIRECT_APPROVAL_NEEDED
            )
        else:
            router = self._router_required()
            state = await _transact(
                router.zap_in_approval_state(
                    intent.account, intent.token, self.router_label
                ),
                f"read router approval state for {intent.token}",
            )
            decision.spender = state.spender
            decision.allowance = _parse_amount(state.allowance)
            decision.advance(
                ApprovalState.ALREADY_SUFFICIENT
                if state.is_approved
                else ApprovalState.ROUTER_APPROVAL_NEEDED
            )

        logger.debug(
            "Approval for %s of %s into %s: %s",
            intent.account,
            intent.token,
            intent.target,
            decision.state.value,
        )
        return decision

    async def approve_deposit(
        self,
        target: str,
        underlying: str,
        token: str,
        amount: int | str,
        account: str,
    ) -> object:
        """Approve spending ``token`` for a deposit into ``target`` if needed.

        The direct path approves exactly ``amount``; an existing non-zero
        allowance is not reset first.

        Returns:
            True when no approval was needed, otherwise whatever the
            transaction sender returned for the submitted approval

        Raises:
            TransactionError: If reading state, building or submitting fails
            UnsupportedNetworkError: If the router path is needed on a network
                without the aggregator
        """
        intent = ApprovalIntent(
            target=target,
            underlying=underlying,
            token=token,
            amount=int(amount),
            account=account,
        )
        decision = await self.evaluate(intent)

        if decision.state is ApprovalState.ALREADY_SUFFICIENT:
            decision.advance(ApprovalState.COMPLETED)
            return True

        if decision.state is ApprovalState.DIRECT_APPROVAL_NEEDED:
            spender = decision.spender or self._spender_for(target)
            transaction = await _transact(
                self.helper.build_approve_transaction(
                    token, spender, intent.amount, account
                ),
                f"build approval of {spender} on {token}",
            )
        else:
            router = self._router_required()
            gas = await _transact(router.gas(), "fetch router gas prices")
            transaction = await _transact(
                router.zap_in_approval_transaction(
                    account, token, fast_gas_price_wei(gas), self.router_label
                ),
                f"build router approval for {token}",
            )

        result = await self._submit(transaction)
        decision.advance(ApprovalState.COMPLETED)
        logger.info("Submitted approval for %s of %s into %s", account, token, target)
        return result

    async def allowance(
        self, target: str, underlying: str, token: str, account: str
    ) -> Allowance:
        """Report the current allowance relevant to depositing ``token`` into ``target``.

        The native asset reports the maximal allowance since it never needs
        approval.
        """
        if address_key(token) == address_key(ETH_ADDRESS):
            return Allowance(
                amount=str(MAX_UINT256), owner=account, spender=target, token=token
            )

        if address_key(token) == address_key(underlying):
            spender = self._spender_for(target)
            amount = await _transact(
                self.helper.allowance(token, account, spender),
                f"read allowance of {spender} on {token}",
            )
            return Allowance(
                amount=str(amount), owner=account, spender=spender, token=token
            )

        router = self._router_required()
        state = await _transact(
            router.zap_in_approval_state(account, token, self.router_label),
            f"read router approval state for {token}",
        )
        return Allowance(
            amount=state.allowance or "0",
            owner=state.owner or account,
            spender=state.spender or "",
            token=token,
        )

    async def approve_zap_out(
        self, vault: str, vault_token: str, token: str, account: str
    ) -> object:
        """Approve the router to withdraw ``vault`` shares into ``token`` if needed.

        Returns:
            False when no approval is needed, otherwise whatever the
            transaction sender returned for the submitted approval
        """
        if address_key(token) == address_key(vault_token):
            return False

        router = self._router_required()
        state = await _transact(
            router.zap_out_approval_state(account, vault),
            f"read router zap-out approval state for {vault}",
        )
        if state.is_approved:
            return False

        gas = await _transact(router.gas(), "fetch router gas prices")
        transaction = await _transact(
            router.zap_out_approval_transaction(
                account, vault, fast_gas_price_wei(gas)
            ),
            f"build router zap-out approval for {vault}",
        )
        result = await self._submit(transaction)
        logger.info("Submitted zap-out approval for %s on %s", account, vault)
        return result

    async def _submit(self, transaction: RawTransaction) -> object:
        return await _transact(
            self.sender.send_transaction(transaction), "submit approval transaction"
        )


async def _transact(call: Awaitable[T], action: str) -> T:
    """Await ``call``, surfacing any non-typed failure as a TransactionError."""
    try:
        return await call
    except AggregatorError:
        raise
    except Exception as e:
        raise TransactionError(f"Failed to {action}: {e}") from e


def _parse_amount(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.debug("Ignoring non-integer allowance %r", value)
        return None
