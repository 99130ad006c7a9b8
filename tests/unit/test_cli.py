"""
Unit tests for the ibtbridge command line.
"""

import json
import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ibtbridge import cli
from ibtbridge.bridge import (
    ChainSide,
    ChainVerification,
    Receipt,
    TransferDirection,
    TransferOutcome,
    TransferState,
    TransferStatus,
    VerificationResult,
)
from ibtbridge.errors import ErrorKind

ETH_USER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
SUI_USER = "0x" + "5e" * 32
ANVIL_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TOKEN = 10 ** 18


def make_outcome(status=TransferStatus.COMPLETED, source_receipt=None):
    return TransferOutcome(
        transfer_id="t-1",
        status=status,
        direction=TransferDirection.SOURCE_TO_DESTINATION,
        amount=TOKEN,
        source_party=ETH_USER,
        destination_party=SUI_USER,
        state=(
            TransferState.COMPLETED if status is TransferStatus.COMPLETED else TransferState.FAILED
        ),
        error_kind=None if status is TransferStatus.COMPLETED else ErrorKind.DESTINATION_OPERATION_FAILED,
        source_receipt=source_receipt,
    )


def burn_receipt():
    return Receipt(ChainSide.ACCOUNT, "0x" + "ab" * 32, TOKEN, "10", "burn")


@pytest.fixture
def service():
    service = MagicMock()
    service.close = AsyncMock()
    service.verify = AsyncMock()
    service.balances = AsyncMock()
    service.transfer = AsyncMock()
    service.mint_test_tokens = AsyncMock()
    with patch("ibtbridge.cli.BridgeService.from_settings", return_value=service):
        yield service


async def run(*argv, environ=None):
    args = cli.build_parser().parse_args(list(argv))
    return await cli.run(args, environ or {})


class TestParser:
    """Test argument parsing."""

    def test_transfer_arguments(self):
        """Test transfer takes a direction, an amount and optional parties."""
        args = cli.build_parser().parse_args(
            ["transfer", "sui-to-eth", "0.5", "--from", SUI_USER, "--to", ETH_USER]
        )
        assert args.command == "transfer"
        assert args.direction == "sui-to-eth"
        assert args.amount == "0.5"
        assert args.source == SUI_USER
        assert args.destination == ETH_USER

    def test_unknown_direction(self):
        """Test unknown directions are refused by argparse."""
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["transfer", "eth-to-btc", "1"])

    def test_command_required(self):
        """Test a subcommand is mandatory."""
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestExitCodes:
    """Test outcome exit codes."""

    def test_exit_codes(self):
        """Test completed, failed and partially completed outcomes."""
        assert cli.outcome_exit_code(make_outcome()) == cli.EXIT_COMPLETED
        assert cli.outcome_exit_code(make_outcome(TransferStatus.FAILED)) == cli.EXIT_FAILED
        partial = make_outcome(TransferStatus.FAILED, source_receipt=burn_receipt())
        assert cli.outcome_exit_code(partial) == cli.EXIT_PARTIAL


class TestRun:
    """Test command execution against a mocked service."""

    @pytest.mark.asyncio
    async def test_verify(self, service, capsys):
        """Test verify prints both chains and fails when one is not ready."""
        service.verify.return_value = VerificationResult(
            ChainVerification(ChainSide.ACCOUNT, True, "token contract verified"),
            ChainVerification(ChainSide.OBJECT, False, "missing: package"),
        )
        assert await run("verify") == cli.EXIT_FAILED
        printed = json.loads(capsys.readouterr().out)
        assert printed["ok"] is False
        assert printed["sui"]["detail"] == "missing: package"
        service.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_balance(self, service, capsys):
        """Test balances are printed as decimal token amounts."""
        service.balances.return_value = {"ethereum": 15 * TOKEN // 10, "sui": 0}
        assert await run("balance", "--ethereum", ETH_USER, "--sui", SUI_USER) == 0
        service.balances.assert_awaited_once_with(ETH_USER, SUI_USER)
        assert json.loads(capsys.readouterr().out) == {"ethereum": "1.5", "sui": "0.0"}

    @pytest.mark.asyncio
    async def test_transfer_partial(self, service, capsys):
        """Test a partial completion exits with its own code."""
        service.transfer.return_value = make_outcome(
            TransferStatus.FAILED, source_receipt=burn_receipt()
        )
        code = await run("transfer", "eth-to-sui", "1", "--from", ETH_USER, "--to", SUI_USER)
        assert code == cli.EXIT_PARTIAL
        service.transfer.assert_awaited_once_with(
            TransferDirection.SOURCE_TO_DESTINATION, "1", ETH_USER, SUI_USER
        )
        assert json.loads(capsys.readouterr().out)["partially_completed"] is True

    @pytest.mark.asyncio
    async def test_transfer_defaults_to_signer(self, service):
        """Test the signer address is used when no source is given."""
        service.transfer.return_value = make_outcome()
        code = await run(
            "transfer",
            "eth-to-sui",
            "1",
            "--to",
            SUI_USER,
            environ={"IBT_BRIDGE_ETHEREUM_PRIVATE_KEY": ANVIL_KEY},
        )
        assert code == cli.EXIT_COMPLETED
        assert service.transfer.call_args.args[2] == ETH_USER

    @pytest.mark.asyncio
    async def test_mint_test(self, service, capsys):
        """Test mint-test passes the chain and amount through."""
        service.mint_test_tokens.return_value = burn_receipt()
        assert await run("mint-test", "ethereum", "--to", ETH_USER, "--amount", "5") == 0
        service.mint_test_tokens.assert_awaited_once_with(ChainSide.ACCOUNT, ETH_USER, "5")
        assert json.loads(capsys.readouterr().out)["chain"] == "ethereum"

    @pytest.mark.asyncio
    async def test_missing_signer(self, service):
        """Test a command needing an address without a signer key."""
        with pytest.raises(SystemExit):
            await run("balance", "--ethereum", ETH_USER)
        service.close.assert_awaited_once()

    def test_sessions_from_environment(self):
        """Test signer sessions are built only for configured keys."""
        sessions = cli._sessions({"IBT_BRIDGE_ETHEREUM_PRIVATE_KEY": ANVIL_KEY})
        assert list(sessions) == [ChainSide.ACCOUNT]
        assert sessions[ChainSide.ACCOUNT].address == ETH_USER
        assert cli._sessions({}) == {}


class TestMain:
    """Test the entry point."""

    def test_configuration_error(self, capsys):
        """Test missing deployment identifiers exit with a readable error."""
        with patch.dict(os.environ, {}, clear=True), patch("ibtbridge.cli.setup_logging"):
            assert cli.main(["verify"]) == cli.EXIT_FAILED
        assert "error:" in capsys.readouterr().err
