#!/usr/bin/env python3
"""
IBT Bridge Demo

Runs the bridge against in-memory Ethereum and Sui ledgers:
- Test token minting on Ethereum
- Ethereum -> Sui transfer with balance remediation
- Sui -> Ethereum transfer from a single coin object
- Fragmented coins and a missing Sui package
- Resuming a transfer interrupted after the source burn

No node is needed. Against live chains, use the ``ibtbridge`` command with
the ``IBT_BRIDGE_*`` environment variables instead.
"""

import asyncio

from ibtbridge.bridge import BridgeService, ChainSide, OperationKind, format_amount
from ibtbridge.config import BridgeSettings
from ibtbridge.logging import LogConfig, LogLevel, setup_logging
from ibtbridge.testing import InMemoryAccountLedger, InMemoryObjectLedger

TOKEN_CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
SUI_PACKAGE = "0x" + "9a" * 32
SUI_ADMIN_CAP = "0x" + "ad" * 32
ALICE_ETH = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ALICE_SUI = "0x" + "5e" * 32


class IBTBridgeDemo:
    """Demonstrates IBT transfers between the two ledgers."""

    def __init__(self):
        self.ethereum = InMemoryAccountLedger(TOKEN_CONTRACT)
        self.sui = InMemoryObjectLedger(SUI_ADMIN_CAP)
        self.service = BridgeService(
            BridgeSettings(
                ethereum_contract=TOKEN_CONTRACT,
                sui_package_id=SUI_PACKAGE,
                sui_admin_cap_id=SUI_ADMIN_CAP,
            ),
            self.ethereum,
            self.sui,
        )

    async def show_balances(self) -> None:
        balances = await self.service.balances(ALICE_ETH, ALICE_SUI)
        for chain, amount in balances.items():
            print(f"    {chain:<9} {format_amount(amount)} IBT")

    def show_outcome(self, outcome) -> None:
        path = " -> ".join(state.value for state in outcome.history)
        if outcome.completed:
            print(f"  ✅ completed: {path}")
        else:
            print(f"  ❌ {outcome.error_kind.value}: {outcome.detail}")
            print(f"     {path}")

    async def demonstrate_test_mint(self) -> None:
        print("\n🪙 Minting test tokens on Ethereum...")
        receipt = await self.service.mint_test_tokens(ChainSide.ACCOUNT, ALICE_ETH, "25")
        print(f"  tx {receipt.transaction_id[:18]}... block {receipt.block_reference}")
        await self.show_balances()

    async def demonstrate_eth_to_sui(self) -> None:
        print("\n🌉 Bridging 40 IBT Ethereum -> Sui (balance is only 25)...")
        outcome = await self.service.transfer("eth-to-sui", "40", ALICE_ETH, ALICE_SUI)
        self.show_outcome(outcome)
        if outcome.remediation_receipt:
            print(f"  remediation minted {format_amount(outcome.remediation_receipt.amount)} IBT")
        await self.show_balances()

    async def demonstrate_sui_to_eth(self) -> None:
        print("\n🌉 Bridging 12.5 IBT Sui -> Ethereum...")
        outcome = await self.service.transfer("sui-to-eth", "12.5", ALICE_SUI, ALICE_ETH)
        self.show_outcome(outcome)
        await self.show_balances()

    async def demonstrate_fragmented_coins(self) -> None:
        print("\n🧩 Coins of 5 and 3 IBT cannot fund a transfer of 8...")
        bob = "0x" + "b0" * 32
        self.sui.add_coin(bob, 5 * 10 ** 18)
        self.sui.add_coin(bob, 3 * 10 ** 18)
        outcome = await self.service.transfer("sui-to-eth", "8", bob, ALICE_ETH)
        self.show_outcome(outcome)

    async def demonstrate_missing_package(self) -> None:
        print("\n🔍 Pre-flight verification with the Sui package missing...")
        self.sui.package_deployed = False
        outcome = await self.service.transfer("eth-to-sui", "1", ALICE_ETH, ALICE_SUI)
        self.show_outcome(outcome)
        self.sui.package_deployed = True

    async def demonstrate_resume(self) -> None:
        print("\n🔁 Sui stalls after the Ethereum burn, then recovers...")
        self.sui.stall(OperationKind.BRIDGE_MINT)
        outcome = await self.service.transfer("eth-to-sui", "2", ALICE_ETH, ALICE_SUI)
        self.show_outcome(outcome)
        print(f"  partially completed: {outcome.partially_completed}")

        self.sui.release()
        resumed = await self.service.resume(outcome)
        self.show_outcome(resumed)
        await self.show_balances()

    async def run_demo(self) -> None:
        print("🌉 IBT BRIDGE DEMO")
        print("=" * 60)
        await self.demonstrate_test_mint()
        await self.demonstrate_eth_to_sui()
        await self.demonstrate_sui_to_eth()
        await self.demonstrate_fragmented_coins()
        await self.demonstrate_missing_package()
        await self.demonstrate_resume()
        print("\n🎉 DEMO COMPLETED!")
        print("=" * 60)


async def main():
    """Main demo function."""
    setup_logging(LogConfig(level=LogLevel.ERROR, format_type="text"))
    await IBTBridgeDemo().run_demo()


if __name__ == "__main__":
    asyncio.run(main())
