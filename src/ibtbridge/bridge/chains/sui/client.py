"""
Sui JSON-RPC client for the IBT bridge.

Speaks the fullnode JSON-RPC API over aiohttp. Transport failures surface as
ChainUnavailableError; JSON-RPC error objects surface as SuiRPCError so the
ledger adapter can decide whether they mean "rejected" or "not yet known".
"""

import asyncio
import itertools
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from ....errors import ChainUnavailableError
from ....logging import get_logger

logger = get_logger(__name__)

DEFAULT_TX_OPTIONS = {
    "showEffects": True,
    "showEvents": True,
    "showObjectChanges": True,
}


class SuiRPCError(Exception):
    """A JSON-RPC error object returned by the Sui fullnode."""

    def __init__(self, method: str, code: Any, message: str, data: Any = None):
        super().__init__(f"{method}: {message} (code {code})")
        self.method = method
        self.code = code
        self.message = message
        self.data = data


@dataclass
class SuiConfig:
    """Sui client configuration."""

    rpc_url: str = "https://fullnode.devnet.sui.io:443"
    network: str = "sui:devnet"
    request_timeout: float = 30.0


class SuiClient:
    """Sui fullnode JSON-RPC client."""

    def __init__(self, config: SuiConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.session = session
        self._ids = itertools.count(1)

    async def _make_request(self, method: str, params: List[Any] = None) -> Any:
        """Make a JSON-RPC request and return its ``result``."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            async with self.session.post(
                self.config.rpc_url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            ) as response:
                if response.status != 200:
                    raise ChainUnavailableError(
                        f"Sui RPC {method} returned HTTP {response.status}",
                        endpoint=self.config.rpc_url,
                        chain="sui",
                    )
                body = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.warning(
                "Sui RPC - Unreachable",
                extra={"method": method, "endpoint": self.config.rpc_url, "error": str(e)},
            )
            raise ChainUnavailableError(
                f"Sui RPC {method} failed: {e}",
                endpoint=self.config.rpc_url,
                chain="sui",
                cause=e,
            ) from e

        error = body.get("error")
        if error:
            raise SuiRPCError(
                method, error.get("code"), error.get("message", str(error)), error.get("data")
            )
        return body.get("result")

    async def close(self) -> None:
        if self.session is not None and not self.session.closed:
            await self.session.close()

    async def get_object(self, object_id: str, show_content: bool = False) -> Dict[str, Any]:
        """``sui_getObject``; the result holds either ``data`` or ``error``."""
        options = {"showType": True, "showOwner": True, "showContent": show_content}
        return await self._make_request("sui_getObject", [object_id, options])

    async def get_coins(
        self,
        owner: str,
        coin_type: str,
        cursor: Optional[str] = None,
        limit: int = 50,
    ) -> Dict[str, Any]:
        """One page of ``suix_getCoins``."""
        return await self._make_request("suix_getCoins", [owner, coin_type, cursor, limit])

    async def get_all_coins(self, owner: str, coin_type: str) -> List[Dict[str, Any]]:
        """Every coin of ``coin_type`` owned by ``owner``, following pagination."""
        coins: List[Dict[str, Any]] = []
        cursor = None
        while True:
            page = await self.get_coins(owner, coin_type, cursor)
            coins.extend(page.get("data") or [])
            if not page.get("hasNextPage") or not page.get("nextCursor"):
                return coins
            cursor = page["nextCursor"]

    async def get_balance(self, owner: str, coin_type: str) -> Dict[str, Any]:
        return await self._make_request("suix_getBalance", [owner, coin_type])

    async def move_call(
        self,
        signer: str,
        package_id: str,
        module: str,
        function: str,
        type_arguments: List[str],
        arguments: List[Any],
        gas_budget: int,
        gas: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Build an unsigned Move call; returns ``{"txBytes": ...}``."""
        return await self._make_request(
            "unsafe_moveCall",
            [signer, package_id, module, function, type_arguments, arguments, gas, str(gas_budget)],
        )

    async def split_coin(
        self,
        signer: str,
        coin_object_id: str,
        split_amounts: List[int],
        gas_budget: int,
        gas: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Build an unsigned coin split; returns ``{"txBytes": ...}``."""
        return await self._make_request(
            "unsafe_splitCoin",
            [signer, coin_object_id, [str(amount) for amount in split_amounts], gas, str(gas_budget)],
        )

    async def execute_transaction_block(
        self,
        tx_bytes: str,
        signatures: List[str],
        options: Optional[Dict[str, Any]] = None,
        request_type: str = "WaitForLocalExecution",
    ) -> Dict[str, Any]:
        return await self._make_request(
            "sui_executeTransactionBlock",
            [tx_bytes, signatures, options or DEFAULT_TX_OPTIONS, request_type],
        )

    async def get_transaction_block(
        self, digest: str, options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return await self._make_request(
            "sui_getTransactionBlock", [digest, options or DEFAULT_TX_OPTIONS]
        )
