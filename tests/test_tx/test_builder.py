"""Tests for the Transaction Request Builder."""

from __future__ import annotations

import pytest

from substrate_tx.chain.models import CallKind, Credential
from substrate_tx.errors.tx_errors import (
    InvalidAddressError,
    InvalidAmountError,
    InvalidCallParamsError,
)
from substrate_tx.tx.builder import TransactionRequestBuilder

ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
BOB = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"
DOT = 10**12


@pytest.fixture
def builder(chain_client) -> TransactionRequestBuilder:
    return TransactionRequestBuilder(chain_client)


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------


class TestTransfer:
    async def test_builds_transfer_keep_alive(self, builder, credential) -> None:
        request = await builder.transfer(credential, BOB, DOT)
        assert request.kind == CallKind.TRANSFER
        assert request.call.name == "Balances.transfer_keep_alive"
        assert request.recipient == BOB
        assert request.amount == DOT
        assert request.sender_address == ALICE
        assert dict(request.params) == {"dest": BOB, "value": DOT}
        assert request.call.value == DOT

    async def test_request_is_immutable(self, builder, credential) -> None:
        request = await builder.transfer(credential, BOB, DOT)
        with pytest.raises(AttributeError):
            request.amount = 1  # type: ignore[misc]
        with pytest.raises(TypeError):
            request.params["value"] = 1  # type: ignore[index]

    async def test_requests_compare_by_identity(self, builder, credential) -> None:
        first = await builder.transfer(credential, BOB, DOT)
        second = await builder.transfer(credential, BOB, DOT)
        assert first != second
        assert first == first

    async def test_keypair_not_in_repr(self, builder) -> None:
        secret_keypair = "keypair-material"
        cred = Credential(address=ALICE, keypair=secret_keypair)
        request = await builder.transfer(cred, BOB, DOT)
        assert secret_keypair not in repr(request)

    async def test_generic_build_defaults_to_transfer(self, builder, credential) -> None:
        request = await builder.build(credential, BOB, DOT)
        assert request.kind == CallKind.TRANSFER


# ---------------------------------------------------------------------------
# Validation order
# ---------------------------------------------------------------------------


class TestValidation:
    @pytest.mark.parametrize("amount", [0, -5, 1.5, "100", True, None])
    async def test_invalid_amount(self, builder, chain_client, credential, amount) -> None:
        with pytest.raises(InvalidAmountError):
            await builder.transfer(credential, BOB, amount)
        assert chain_client.calls["validate_address"] == 0
        assert chain_client.calls["build_call"] == 0
        assert chain_client.network_calls == 0

    async def test_amount_checked_before_address(self, builder, credential) -> None:
        with pytest.raises(InvalidAmountError):
            await builder.transfer(credential, "not-an-address", 0)

    @pytest.mark.parametrize("recipient", ["not-an-address", "", None])
    async def test_invalid_address(self, builder, chain_client, credential, recipient) -> None:
        with pytest.raises(InvalidAddressError) as exc_info:
            await builder.build(credential, recipient, DOT, CallKind.TRANSFER)
        assert exc_info.value.code == "invalid-address"
        assert chain_client.calls["build_call"] == 0
        assert chain_client.calls["estimate_fee"] == 0
        assert chain_client.calls["submit"] == 0

    def test_validate_amount_returns_value(self) -> None:
        assert TransactionRequestBuilder.validate_amount(7) == 7

    async def test_unknown_kind_rejected(self, builder, credential) -> None:
        with pytest.raises(ValueError):
            await builder.build(credential, BOB, DOT, "teleport")  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Staking and governance
# ---------------------------------------------------------------------------


class TestStake:
    async def test_bond(self, builder, credential) -> None:
        request = await builder.stake(credential, 5 * DOT)
        assert request.kind == CallKind.STAKE
        assert request.recipient is None
        assert dict(request.params) == {"value": 5 * DOT, "payee": "Staked", "bond_extra": False}

    async def test_bond_extra(self, builder, credential) -> None:
        request = await builder.stake(credential, DOT, bond_extra=True)
        assert request.params["bond_extra"] is True

    async def test_payee_account(self, builder, credential) -> None:
        request = await builder.stake(credential, DOT, payee=BOB)
        assert request.params["payee"] == {"Account": BOB}

    async def test_invalid_payee(self, builder, credential) -> None:
        with pytest.raises(InvalidCallParamsError, match="payee"):
            await builder.stake(credential, DOT, payee="somewhere")


class TestVote:
    async def test_vote(self, builder, credential) -> None:
        request = await builder.vote(credential, 42, DOT, aye=False, conviction="Locked3x")
        assert request.kind == CallKind.VOTE
        assert request.recipient is None
        assert dict(request.params) == {
            "poll_index": 42,
            "value": DOT,
            "aye": False,
            "conviction": "Locked3x",
        }

    @pytest.mark.parametrize("poll_index", [-1, "3", None, True])
    async def test_invalid_poll_index(self, builder, credential, poll_index) -> None:
        with pytest.raises(InvalidCallParamsError, match="poll index"):
            await builder.vote(credential, poll_index, DOT)

    async def test_invalid_conviction(self, builder, credential) -> None:
        with pytest.raises(InvalidCallParamsError, match="conviction"):
            await builder.vote(credential, 1, DOT, conviction="Locked9x")

    async def test_amount_checked_before_params(self, builder, credential) -> None:
        with pytest.raises(InvalidAmountError):
            await builder.vote(credential, -1, 0)


class TestCrossChainTransfer:
    async def test_cross_chain_transfer(self, builder, credential) -> None:
        request = await builder.cross_chain_transfer(credential, BOB, DOT, dest_para_id=1000)
        assert request.kind == CallKind.CROSS_CHAIN_TRANSFER
        assert request.call.name == "XcmPallet.limited_reserve_transfer_assets"
        assert dict(request.params) == {"dest_para_id": 1000, "beneficiary": BOB, "value": DOT}

    @pytest.mark.parametrize("para_id", [0, -1, "1000", None])
    async def test_invalid_para_id(self, builder, credential, para_id) -> None:
        with pytest.raises(InvalidCallParamsError, match="parachain"):
            await builder.cross_chain_transfer(credential, BOB, DOT, dest_para_id=para_id)

    async def test_recipient_required(self, builder, credential) -> None:
        with pytest.raises(InvalidAddressError):
            await builder.build(
                credential, None, DOT, CallKind.CROSS_CHAIN_TRANSFER, {"dest_para_id": 1}
            )


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------


class TestBatch:
    async def test_preserves_order(self, builder, credential) -> None:
        first = await builder.transfer(credential, BOB, DOT)
        second = await builder.stake(credential, 2 * DOT)
        third = await builder.vote(credential, 7, 3 * DOT)
        batch = await builder.batch(credential, [first, second, third])
        assert batch.kind == CallKind.BATCH
        assert batch.call.name == "Utility.batch_all"
        assert batch.params["calls"] == (first.call, second.call, third.call)
        assert batch.amount == 6 * DOT
        assert batch.call.value == 6 * DOT

    async def test_empty_batch_rejected(self, builder, credential) -> None:
        with pytest.raises(InvalidCallParamsError, match="at least one"):
            await builder.batch(credential, [])

    async def test_rejects_foreign_sender(self, builder, credential) -> None:
        other = Credential(address=BOB)
        request = await builder.transfer(other, ALICE, DOT)
        with pytest.raises(InvalidCallParamsError, match="signed by"):
            await builder.batch(credential, [request])

    async def test_rejects_non_requests(self, builder, credential) -> None:
        with pytest.raises(InvalidCallParamsError, match="TransactionRequest"):
            await builder.batch(credential, ["transfer"])  # type: ignore[list-item]

    async def test_generic_build(self, builder, credential) -> None:
        first = await builder.transfer(credential, BOB, DOT)
        batch = await builder.build(credential, None, 0, CallKind.BATCH, {"requests": [first]})
        assert batch.params["calls"] == (first.call,)
