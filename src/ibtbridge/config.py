"""
Bridge configuration.

The bridge is driven by a fixed set of deployment identifiers (token contract
address, Move package id, capability object ids, network name) that are read
once at startup and never change for the lifetime of the process.
"""

import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from .bridge.amounts import TOKEN_DECIMALS
from .bridge.bridge_types import BridgeCapabilities, BridgeCapability, ChainSide
from .bridge.encoding import is_sui_address, normalize_eth_address, normalize_sui_address
from .errors import create_configuration_error

ENV_PREFIX = "IBT_BRIDGE_"

SUI_RPC_URLS = {
    "mainnet": "https://fullnode.mainnet.sui.io:443",
    "testnet": "https://fullnode.testnet.sui.io:443",
    "devnet": "https://fullnode.devnet.sui.io:443",
    "localnet": "http://127.0.0.1:9000",
}


@dataclass(frozen=True)
class BridgeSettings:
    """Immutable bridge settings."""

    ethereum_contract: str = ""
    ethereum_rpc_url: str = "http://127.0.0.1:8545"
    ethereum_chain_id: int = 31337  # local Anvil node
    ethereum_confirmations: int = 1
    sui_package_id: str = ""
    sui_admin_cap_id: str = ""
    sui_treasury_cap_id: str = ""
    sui_network: str = "sui:devnet"
    sui_rpc_url: str = ""
    sui_module: str = "ibt_token"
    sui_gas_budget: int = 50_000_000
    finality_timeout: float = 120.0
    poll_interval: float = 1.0
    token_decimals: int = TOKEN_DECIMALS

    @property
    def sui_network_name(self) -> str:
        """``devnet`` for ``sui:devnet``."""
        return self.sui_network.partition(":")[2]

    @property
    def resolved_sui_rpc_url(self) -> str:
        """Explicit ``sui_rpc_url``, or the public fullnode for the network."""
        return self.sui_rpc_url or SUI_RPC_URLS.get(self.sui_network_name, "")

    @property
    def sui_coin_type(self) -> str:
        return f"{self.sui_package_id}::{self.sui_module}::IBT_TOKEN"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeSettings":
        """Read ``IBT_BRIDGE_<FIELD>`` variables, e.g. ``IBT_BRIDGE_SUI_PACKAGE_ID``."""
        environ = os.environ if environ is None else environ
        data = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            if key in environ and environ[key] != "":
                data[f.name] = environ[key]
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeSettings":
        """Create settings from a dictionary, coercing numeric fields."""
        known = {f.name: f for f in fields(cls)}
        values = {}
        for name, value in data.items():
            if name not in known:
                continue
            default = known[name].default
            if isinstance(default, bool) or value is None:
                values[name] = value
            elif isinstance(default, int):
                values[name] = cls._coerce(name, value, int)
            elif isinstance(default, float):
                values[name] = cls._coerce(name, value, float)
            else:
                values[name] = str(value).strip()
        return cls(**values)

    @staticmethod
    def _coerce(name: str, value: Any, kind: type) -> Any:
        try:
            if kind is int and isinstance(value, str):
                return int(value.strip(), 0)
            return kind(value)
        except (TypeError, ValueError):
            raise create_configuration_error(name, value)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return asdict(self)

    def with_overrides(self, **changes: Any) -> "BridgeSettings":
        """Copy of these settings with some fields replaced."""
        return replace(self, **changes)

    def validate(self) -> "BridgeSettings":
        """Raise ConfigurationError for missing or malformed identifiers."""
        if not self.ethereum_contract:
            raise create_configuration_error("ethereum_contract")
        try:
            normalize_eth_address(self.ethereum_contract)
        except ValueError:
            raise create_configuration_error("ethereum_contract", self.ethereum_contract)

        for key in ("sui_package_id", "sui_admin_cap_id"):
            value = getattr(self, key)
            if not value:
                raise create_configuration_error(key)
            if not is_sui_address(value):
                raise create_configuration_error(key, value)

        if self.sui_treasury_cap_id and not is_sui_address(self.sui_treasury_cap_id):
            raise create_configuration_error("sui_treasury_cap_id", self.sui_treasury_cap_id)

        prefix, _, network = self.sui_network.partition(":")
        if prefix != "sui" or not network:
            raise create_configuration_error(
                "sui_network",
                self.sui_network,
                f"Sui network must look like 'sui:<name>', got {self.sui_network!r}",
            )
        if not self.resolved_sui_rpc_url:
            raise create_configuration_error(
                "sui_rpc_url",
                None,
                f"No RPC URL configured for Sui network {network!r}",
            )

        if not self.ethereum_rpc_url:
            raise create_configuration_error("ethereum_rpc_url")
        if self.ethereum_chain_id <= 0:
            raise create_configuration_error("ethereum_chain_id", self.ethereum_chain_id)
        if self.ethereum_confirmations < 0:
            raise create_configuration_error(
                "ethereum_confirmations", self.ethereum_confirmations
            )
        for key in ("finality_timeout", "poll_interval", "sui_gas_budget"):
            if getattr(self, key) <= 0:
                raise create_configuration_error(key, getattr(self, key))
        if self.token_decimals != TOKEN_DECIMALS:
            raise create_configuration_error(
                "token_decimals",
                self.token_decimals,
                f"IBT uses {TOKEN_DECIMALS} decimals on both chains",
            )
        return self

    def capabilities(self) -> BridgeCapabilities:
        """The bridge authorities, by identifier: the token contract and the Sui AdminCap."""
        account = None
        obj = None
        try:
            if self.ethereum_contract:
                account = BridgeCapability(
                    side=ChainSide.ACCOUNT,
                    capability_id=normalize_eth_address(self.ethereum_contract),
                    kind="contract_owner",
                )
            if self.sui_admin_cap_id:
                obj = BridgeCapability(
                    side=ChainSide.OBJECT,
                    capability_id=normalize_sui_address(self.sui_admin_cap_id),
                    kind="admin_cap",
                )
        except ValueError as e:
            raise create_configuration_error("capabilities", None, str(e))
        return BridgeCapabilities(account=account, object=obj)
