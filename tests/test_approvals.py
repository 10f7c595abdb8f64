from unittest.mock import AsyncMock

import pytest

from token_aggregator.approvals import (
    ApprovalDecision,
    ApprovalIntent,
    ApprovalState,
    ApprovalWorkflow,
    fast_gas_price_wei,
)
from token_aggregator.constants import ETH_ADDRESS, MAX_UINT256
from token_aggregator.domain import GasPrices, RouterApprovalState
from token_aggregator.errors import TransactionError, UnsupportedNetworkError

ACCOUNT = "0x00000000000000000000000000000000000000aa"
VAULT = "0xdA816459F1AB5631232FE5e97a05BBBb94970c95"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
PARTNER = "0x8ee392a4787397126C163Cb9844d7c447da419D8"
ROUTER_SPENDER = "0xB41e30AD5Bd1cC4D64A5EeA4A2e4bBe6cD55D7E8"


@pytest.fixture
def helper():
    helper = AsyncMock()
    helper.allowance.return_value = 0
    helper.build_approve_transaction.return_value = {"to": DAI, "data": "0x095ea7b3"}
    return helper


@pytest.fixture
def router():
    router = AsyncMock()
    router.zap_in_approval_state.return_value = RouterApprovalState(
        is_approved=False, owner=ACCOUNT, spender=ROUTER_SPENDER, allowance="0"
    )
    router.zap_out_approval_state.return_value = RouterApprovalState(is_approved=False)
    router.gas.return_value = GasPrices(standard=1, instant=5, fast=3)
    router.zap_in_approval_transaction.return_value = {"to": USDC, "data": "0xzapin"}
    router.zap_out_approval_transaction.return_value = {"to": VAULT, "data": "0xzapout"}
    return router


@pytest.fixture
def sender():
    sender = AsyncMock()
    sender.send_transaction.return_value = "0xtxhash"
    return sender


@pytest.fixture
def workflow(helper, router, sender):
    return ApprovalWorkflow(1, helper, router, sender)


def test_fast_gas_price_is_converted_to_wei():
    assert fast_gas_price_wei(GasPrices(standard=1, instant=5, fast=3)) == "3000000000"
    assert fast_gas_price_wei(GasPrices(standard=1, instant=5, fast=1.5)) == "1500000000"


def test_decision_rejects_invalid_transition():
    decision = ApprovalDecision(
        intent=ApprovalIntent(VAULT, DAI, DAI, 1, ACCOUNT)
    )
    with pytest.raises(ValueError, match="not_started -> completed"):
        decision.advance(ApprovalState.COMPLETED)


@pytest.mark.asyncio
async def test_native_asset_never_needs_approval(workflow, helper, router, sender):
    result = await workflow.approve_deposit(VAULT, DAI, ETH_ADDRESS, 10**18, ACCOUNT)

    assert result is True
    helper.allowance.assert_not_awaited()
    router.zap_in_approval_state.assert_not_awaited()
    sender.send_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_direct_path_skips_when_allowance_suffices(workflow, helper, sender):
    helper.allowance.return_value = 500

    assert await workflow.approve_deposit(VAULT, DAI, DAI, "500", ACCOUNT) is True
    helper.allowance.assert_awaited_once_with(DAI, ACCOUNT, VAULT)
    sender.send_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_direct_path_approves_exact_amount(workflow, helper, router, sender):
    helper.allowance.return_value = 100

    result = await workflow.approve_deposit(VAULT, DAI, DAI, 500, ACCOUNT)

    assert result == "0xtxhash"
    helper.build_approve_transaction.assert_awaited_once_with(DAI, VAULT, 500, ACCOUNT)
    sender.send_transaction.assert_awaited_once_with({"to": DAI, "data": "0x095ea7b3"})
    router.gas.assert_not_awaited()


@pytest.mark.asyncio
async def test_direct_path_uses_partner_as_spender(helper, router, sender):
    workflow = ApprovalWorkflow(1, helper, router, sender, partner_address=PARTNER)

    await workflow.approve_deposit(VAULT, DAI, DAI, 1, ACCOUNT)

    helper.allowance.assert_awaited_once_with(DAI, ACCOUNT, PARTNER)
    helper.build_approve_transaction.assert_awaited_once_with(DAI, PARTNER, 1, ACCOUNT)


@pytest.mark.asyncio
async def test_router_path_builds_zap_in_approval(workflow, router, sender):
    result = await workflow.approve_deposit(VAULT, DAI, USDC, 10**6, ACCOUNT)

    assert result == "0xtxhash"
    router.zap_in_approval_state.assert_awaited_once_with(ACCOUNT, USDC, "yearn")
    router.zap_in_approval_transaction.assert_awaited_once_with(
        ACCOUNT, USDC, "3000000000", "yearn"
    )
    sender.send_transaction.assert_awaited_once_with({"to": USDC, "data": "0xzapin"})


@pytest.mark.asyncio
async def test_router_path_skips_when_already_approved(workflow, router, sender):
    router.zap_in_approval_state.return_value = RouterApprovalState(is_approved=True)

    assert await workflow.approve_deposit(VAULT, DAI, USDC, 1, ACCOUNT) is True
    router.gas.assert_not_awaited()
    sender.send_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_router_path_on_network_without_aggregator(helper, router, sender):
    workflow = ApprovalWorkflow(250, helper, router, sender)

    with pytest.raises(UnsupportedNetworkError):
        await workflow.approve_deposit(VAULT, DAI, USDC, 1, ACCOUNT)
    router.zap_in_approval_state.assert_not_awaited()


@pytest.mark.asyncio
async def test_evaluate_records_state_history(workflow, helper):
    helper.allowance.return_value = 1

    decision = await workflow.evaluate(ApprovalIntent(VAULT, DAI, DAI, 2, ACCOUNT))

    assert decision.state is ApprovalState.DIRECT_APPROVAL_NEEDED
    assert decision.history == [ApprovalState.NOT_STARTED, ApprovalState.EVALUATING]
    assert decision.allowance == 1
    assert decision.spender == VAULT


@pytest.mark.asyncio
async def test_allowance_for_each_path(workflow, helper, router):
    helper.allowance.return_value = 42

    native = await workflow.allowance(VAULT, DAI, ETH_ADDRESS, ACCOUNT)
    assert native.amount == str(MAX_UINT256)
    assert native.spender == VAULT

    direct = await workflow.allowance(VAULT, DAI, DAI, ACCOUNT)
    assert (direct.amount, direct.spender, direct.owner) == ("42", VAULT, ACCOUNT)

    routed = await workflow.allowance(VAULT, DAI, USDC, ACCOUNT)
    assert routed.spender == ROUTER_SPENDER
    assert routed.amount == "0"
    assert routed.token == USDC


@pytest.mark.asyncio
async def test_zap_out_of_vault_token_needs_nothing(workflow, router, sender):
    assert await workflow.approve_zap_out(VAULT, DAI, DAI, ACCOUNT) is False
    router.zap_out_approval_state.assert_not_awaited()
    sender.send_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_zap_out_skips_when_already_approved(workflow, router, sender):
    router.zap_out_approval_state.return_value = RouterApprovalState(is_approved=True)

    assert await workflow.approve_zap_out(VAULT, DAI, USDC, ACCOUNT) is False
    router.zap_out_approval_state.assert_awaited_once_with(ACCOUNT, VAULT)
    sender.send_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_zap_out_submits_router_approval(workflow, router, sender):
    result = await workflow.approve_zap_out(VAULT, DAI, USDC, ACCOUNT)

    assert result == "0xtxhash"
    router.zap_out_approval_transaction.assert_awaited_once_with(
        ACCOUNT, VAULT, "3000000000"
    )


@pytest.mark.asyncio
async def test_submission_failure_is_a_transaction_error(workflow, sender):
    sender.send_transaction.side_effect = RuntimeError("user rejected")

    with pytest.raises(TransactionError, match="user rejected"):
        await workflow.approve_deposit(VAULT, DAI, DAI, 1, ACCOUNT)


@pytest.mark.asyncio
async def test_build_failure_is_a_transaction_error(workflow, helper, sender):
    helper.build_approve_transaction.side_effect = ValueError("gas estimation failed")

    with pytest.raises(TransactionError, match="gas estimation failed"):
        await workflow.approve_deposit(VAULT, DAI, DAI, 1, ACCOUNT)
    sender.send_transaction.assert_not_awaited()
