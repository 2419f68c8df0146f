"""Chain-state collaborators: stake info and code presence.

The checker itself never talks to a chain. It asks two questions of its
environment, each behind a small protocol:

  - ``StakeInfoProvider.get_stake_info(address)`` — stake and unstake delay
    recorded by the entrypoint for a factory or paymaster.
  - ``CodeProvider.has_code(address)`` — whether an address currently holds
    contract code.

``InMemoryChainState`` answers both from dictionaries for harnesses and tests;
``JsonRpcChainState`` answers them over an Ethereum JSON-RPC endpoint.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

from aarules.core.encoding import (
    address_to_bytes,
    function_selector,
    normalize_address,
    to_bytes,
)
from aarules.core.errors import ChainStateError, StakeQueryError
from aarules.core.types import StakeInfo

logger = logging.getLogger(__name__)

GET_DEPOSIT_INFO = "getDepositInfo(address)"

# DepositInfo(deposit, staked, stake, unstakeDelaySec, withdrawTime)
_DEPOSIT_INFO_WORDS = 5
_STAKE_WORD = 2
_UNSTAKE_DELAY_WORD = 3


@runtime_checkable
class StakeInfoProvider(Protocol):
    def get_stake_info(self, address: str) -> StakeInfo: ...


@runtime_checkable
class CodeProvider(Protocol):
    def has_code(self, address: str) -> bool: ...


@dataclass
class InMemoryChainState:
    """Dictionary-backed chain state.

    Unknown addresses have no code and zero stake.
    """

    code: dict[str, bytes] = field(default_factory=dict)
    stakes: dict[str, StakeInfo] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.code = {normalize_address(a): bytes(c) for a, c in self.code.items()}
        self.stakes = {normalize_address(a): s for a, s in self.stakes.items()}

    def set_code(self, address: str, code: bytes = b"\x00") -> None:
        self.code[normalize_address(address)] = bytes(code)

    def set_stake(self, address: str, stake: int, unstake_delay_sec: int) -> None:
        self.stakes[normalize_address(address)] = StakeInfo(
            stake=stake, unstake_delay_sec=unstake_delay_sec
        )

    def has_code(self, address: str) -> bool:
        return len(self.code.get(normalize_address(address), b"")) > 0

    def get_stake_info(self, address: str) -> StakeInfo:
        return self.stakes.get(normalize_address(address), StakeInfo())


class JsonRpcChainState:
    """Stake and code lookups against a JSON-RPC node.

    Usage::

        with JsonRpcChainState("http://localhost:8545", entry_point) as state:
            validator = UserOpValidator(stake_provider=state, code_provider=state)
    """

    def __init__(
        self,
        rpc_url: str,
        entry_point: str,
        *,
        block: str = "latest",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.entry_point = normalize_address(entry_point)
        self.block = block
        self._client = client or httpx.Client(timeout=timeout)
        self._ids = itertools.count(1)

    def __enter__(self) -> "JsonRpcChainState":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _rpc(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ChainStateError(f"{method} request to {self.rpc_url} failed: {exc}") from exc

        if not isinstance(data, dict):
            raise ChainStateError(f"{method} returned a malformed response")
        if data.get("error"):
            err = data["error"]
            raise ChainStateError(
                f"{method} returned error {err.get('code')}: {err.get('message')}"
            )
        if "result" not in data:
            raise ChainStateError(f"{method} response carries no result")
        return data["result"]

    def has_code(self, address: str) -> bool:
        result = self._rpc("eth_getCode", [normalize_address(address), self.block])
        return len(to_bytes(result)) > 0

    def get_stake_info(self, address: str) -> StakeInfo:
        call_data = function_selector(GET_DEPOSIT_INFO) + address_to_bytes(address).rjust(32, b"\x00")
        result = self._rpc(
            "eth_call",
            [{"to": self.entry_point, "data": "0x" + call_data.hex()}, self.block],
        )
        raw = to_bytes(result)
        if len(raw) < 32 * _DEPOSIT_INFO_WORDS:
            raise ChainStateError(
                f"getDepositInfo returned {len(raw)} bytes, expected {32 * _DEPOSIT_INFO_WORDS}"
            )
        words = [int.from_bytes(raw[i:i + 32], "big") for i in range(0, len(raw), 32)]
        return StakeInfo(stake=words[_STAKE_WORD], unstake_delay_sec=words[_UNSTAKE_DELAY_WORD])


class CachedStakeLookup:
    """One stake query per distinct address for the lifetime of a validation call.

    Any failure of the underlying provider is fatal for the call and surfaces
    as ``StakeQueryError``.
    """

    def __init__(self, provider: StakeInfoProvider) -> None:
        self._provider = provider
        self._cache: dict[str, StakeInfo] = {}

    def __call__(self, address: str) -> StakeInfo:
        address = normalize_address(address)
        if address not in self._cache:
            try:
                info = self._provider.get_stake_info(address)
            except Exception as exc:
                logger.error("Stake query for %s failed: %s", address, exc)
                raise StakeQueryError(address, str(exc)) from exc
            if not isinstance(info, StakeInfo):
                raise StakeQueryError(address, f"provider returned {type(info).__name__}")
            self._cache[address] = info
        return self._cache[address]

    @property
    def queried(self) -> list[str]:
        return list(self._cache)
