"""
End-to-end tests of the VestingClient facade against a mock ledger.
"""

import asyncio

import pytest

from vesting_client.core.errors import OwnerFetchFailure, Severity
from vesting_client.core.models import AccountContext, TransactionPhase
from vesting_client.system import VestingClient

from mocks import ANVIL, OTHER, OWNER, RECIPIENT, settle

MISMATCH_TEXT = "Please switch to Anvil's network (Chain ID: 31337). Current: Ethereum (ID: 1)"


@pytest.fixture
def client(ledger, clock):
    return VestingClient(ledger, required_chain_id=ANVIL, required_chain_name="Anvil", clock=clock)


async def connect(client, address=OWNER, chain_id=ANVIL):
    client.set_account_context(AccountContext(address=address, chain_id=chain_id))
    await settle()


class TestAccountContext:

    @pytest.mark.asyncio
    async def test_connect_fetches_owner(self, client, ledger):
        await connect(client)

        assert client.owner == OWNER
        assert client.is_owner is True
        assert client.owner_notice is None
        assert client.read_model.is_polling
        await client.close()
        assert not client.read_model.is_polling

    @pytest.mark.asyncio
    async def test_owner_comparison_ignores_case(self, client, ledger):
        ledger.owner_value = OWNER.lower()
        await connect(client, OWNER)

        assert client.is_owner is True
        await client.close()

    @pytest.mark.asyncio
    async def test_non_owner_sees_notice(self, client):
        await connect(client, OTHER)

        assert client.is_owner is False
        assert client.owner_notice == "This action is restricted to the contract owner."
        await client.close()

    @pytest.mark.asyncio
    async def test_disconnected(self, client, ledger):
        client.set_account_context(AccountContext())
        await settle()

        assert client.is_owner is None
        assert ledger.calls_named("owner") == []

    @pytest.mark.asyncio
    async def test_network_checked_only_on_chain_change(self, client, monkeypatch):
        evaluated = []
        evaluate = client.network_guard.evaluate

        def counting_evaluate(chain_id):
            evaluated.append(chain_id)
            return evaluate(chain_id)

        monkeypatch.setattr(client.network_guard, "evaluate", counting_evaluate)

        client.set_account_context(AccountContext())
        client.set_account_context(AccountContext())
        assert evaluated == []

        await connect(client, OWNER, ANVIL)
        await connect(client, OTHER, ANVIL)
        assert evaluated == [ANVIL]

        await connect(client, OTHER, 1)
        assert evaluated == [ANVIL, 1]
        await client.close()

    @pytest.mark.asyncio
    async def test_wrong_network_advisory(self, client):
        await connect(client, OWNER, 1)

        snapshot = client.status()
        assert snapshot.advisory == MISMATCH_TEXT
        assert snapshot.message == MISMATCH_TEXT
        assert snapshot.severity is Severity.ERROR

        await connect(client, OWNER, ANVIL)
        snapshot = client.status()
        assert snapshot.advisory is None
        assert snapshot.message == ""
        await client.close()


class TestCreateVestingSchedule:

    @pytest.mark.asyncio
    async def test_create_submits_amount_in_wei(self, client, ledger):
        await connect(client)
        phases = []

        async def on_transition(handle):
            phases.append((handle.phase, client.status().message))

        client.create_manager.add_transition_callback(on_transition)
        handle = await client.create_vesting_schedule(RECIPIENT, "0.1", "31536000", "2592000")

        assert handle.phase is TransactionPhase.CONFIRMED
        assert phases[0] == (TransactionPhase.SUBMITTING, "Creating vesting schedule...")
        (_, sender, request), = ledger.calls_named("create_vesting_schedule")
        assert sender == OWNER
        assert request.recipient == RECIPIENT
        assert request.amount_wei == 100000000000000000
        assert request.duration_seconds == 31536000
        assert request.cliff_seconds == 2592000
        assert client.status().message == "Vesting schedule created successfully!"
        await client.close()

    @pytest.mark.asyncio
    async def test_network_mismatch_blocks_submission(self, client, ledger):
        await connect(client, OWNER, 1)

        result = await client.create_vesting_schedule(RECIPIENT, "0.1", "100", "0")

        assert result is None
        assert ledger.calls_named("create_vesting_schedule") == []
        assert client.status().message == MISMATCH_TEXT
        assert client.status().severity is Severity.ERROR
        await client.close()

    @pytest.mark.asyncio
    async def test_invalid_recipient_blocks_submission(self, client, ledger):
        await connect(client)

        result = await client.create_vesting_schedule("0x123", "0.1", "100", "0")

        assert result is None
        assert ledger.calls_named("create_vesting_schedule") == []
        assert client.status().message == "Invalid recipient address."
        assert client.status().severity is Severity.ERROR
        await client.close()

    @pytest.mark.asyncio
    async def test_zero_amount_blocks_submission(self, client, ledger):
        await connect(client)

        result = await client.create_vesting_schedule(RECIPIENT, "0", "100", "0")

        assert result is None
        assert ledger.calls_named("create_vesting_schedule") == []
        assert client.status().message == "Amount must be greater than zero."
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount, duration, cliff, message", [
        ("0.1", "0", "0", "Duration must be greater than zero."),
        ("0.1", "100", "-1", "Cliff duration cannot be negative."),
        ("1e999999", "100", "0", "Invalid amount."),
        ("9" * 1200, "100", "0", "Amount is too large."),
    ])
    async def test_bad_parameters_block_submission(self, client, ledger, amount, duration, cliff, message):
        await connect(client)

        result = await client.create_vesting_schedule(RECIPIENT, amount, duration, cliff)

        assert result is None
        assert ledger.calls_named("create_vesting_schedule") == []
        assert client.status().message == message
        assert client.status().severity is Severity.ERROR
        await client.close()

    @pytest.mark.asyncio
    async def test_wallet_required(self, client, ledger):
        result = await client.create_vesting_schedule(RECIPIENT, "0.1", "100", "0")

        assert result is None
        assert ledger.calls == []
        assert client.status().message == "Please connect your wallet."

    @pytest.mark.asyncio
    async def test_non_owner_is_rejected(self, client, ledger):
        await connect(client, OTHER)

        result = await client.create_vesting_schedule(RECIPIENT, "0.1", "100", "0")

        assert result is None
        assert ledger.calls_named("create_vesting_schedule") == []
        assert client.status().message == "Only the contract owner can create vesting schedules."
        await client.close()

    @pytest.mark.asyncio
    async def test_unknown_owner_is_allowed(self, client, ledger):
        ledger.owner_error = OwnerFetchFailure()
        await connect(client, OTHER)
        assert client.owner is None

        handle = await client.create_vesting_schedule(RECIPIENT, "0.1", "100", "0")

        assert handle.phase is TransactionPhase.CONFIRMED
        assert len(ledger.calls_named("create_vesting_schedule")) == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_confirmed_schedule_fires_form_reset(self, client, ledger):
        await connect(client)
        resets = []
        client.register_schedule_created_handler(resets.append)

        ledger.submit_error = RuntimeError("User rejected the request.")
        await client.create_vesting_schedule(RECIPIENT, "0.1", "100", "0")
        assert resets == []

        ledger.submit_error = None
        handle = await client.create_vesting_schedule(RECIPIENT, "0.1", "100", "0")
        assert resets == [handle]
        await client.close()

    @pytest.mark.asyncio
    async def test_second_create_while_pending_is_rejected(self, client, ledger):
        await connect(client)
        ledger.receipt_gate = asyncio.Event()

        task = asyncio.create_task(client.create_vesting_schedule(RECIPIENT, "0.1", "100", "0"))
        await settle()
        assert client.busy is True
        assert client.status().busy is True

        result = await client.create_vesting_schedule(RECIPIENT, "0.2", "100", "0")
        assert result is None
        assert client.status().message == "A transaction of this kind is already in progress."
        assert len(ledger.calls_named("create_vesting_schedule")) == 1

        ledger.receipt_gate.set()
        handle = await task
        assert handle.phase is TransactionPhase.CONFIRMED
        assert client.busy is False
        await client.close()


class TestClaimBalance:

    @pytest.mark.asyncio
    async def test_confirmed_claim_refreshes_vested_amount_once(self, client, ledger):
        await connect(client, OTHER)
        ledger.vested[OTHER.lower()] = 25 * 10 ** 16

        handle = await client.claim_balance()

        assert handle.phase is TransactionPhase.CONFIRMED
        assert ledger.calls_named("claim_balance") == [("claim_balance", OTHER, OTHER)]
        assert ledger.calls_named("check_vested_amount") == [("check_vested_amount", OTHER)]
        assert client.vested_query.subject == OTHER
        assert client.vested_amount_display == "0.25"
        assert client.status().message == "Balance claimed successfully!"
        await client.close()

    @pytest.mark.asyncio
    async def test_failed_claim_does_not_refresh(self, client, ledger):
        await connect(client, OTHER)
        ledger.receipt_error = RuntimeError("execution reverted")

        handle = await client.claim_balance()

        assert handle.phase is TransactionPhase.FAILED
        assert ledger.calls_named("check_vested_amount") == []
        assert client.status().message == "Failed to confirm claim balance: execution reverted"
        await client.close()

    @pytest.mark.asyncio
    async def test_claim_requires_wallet(self, client, ledger):
        assert await client.claim_balance() is None

        assert ledger.calls == []
        assert client.status().message == "Please connect your wallet to claim."

    @pytest.mark.asyncio
    async def test_claim_needs_right_network(self, client, ledger):
        await connect(client, OTHER, 1)

        assert await client.claim_balance() is None
        assert ledger.calls_named("claim_balance") == []
        await client.close()

    @pytest.mark.asyncio
    async def test_claim_allowed_while_create_pending(self, client, ledger):
        await connect(client)
        ledger.receipt_gate = asyncio.Event()

        create_task = asyncio.create_task(client.create_vesting_schedule(RECIPIENT, "0.1", "100", "0"))
        await settle()
        claim_task = asyncio.create_task(client.claim_balance())
        await settle()

        assert len(ledger.calls_named("claim_balance")) == 1

        ledger.receipt_gate.set()
        await asyncio.gather(create_task, claim_task)
        await client.close()


class TestVestedAmountCheck:

    @pytest.mark.asyncio
    async def test_check_other_address(self, client, ledger):
        await connect(client)
        ledger.vested[RECIPIENT.lower()] = 10 ** 18

        query = await client.check_vested_amount(RECIPIENT)

        assert query.amount_wei == 10 ** 18
        assert client.vested_amount_display == "1"
        await client.close()

    @pytest.mark.asyncio
    async def test_check_without_schedule(self, client, ledger):
        await connect(client)

        query = await client.check_vested_amount(RECIPIENT)

        assert query.amount_wei is None
        assert client.vested_amount_display is None
        assert client.status().message == "No vesting schedule found for this address."
        await client.close()
