"""Shared fixtures for the rule checker test suite."""

from __future__ import annotations

from typing import Callable

import pytest

from aarules.core.chain_state import CachedStakeLookup, InMemoryChainState
from aarules.core.config import Settings
from aarules.core.types import InstructionRecord, Scope, UserOperation
from aarules.pipeline.orchestrator import UserOpValidator
from aarules.rules.base_rule import RuleContext
from aarules.tests.factories import (
    ENTRY_POINT,
    FACTORY,
    PAYMASTER,
    SENDER,
    SENDER_CREATOR,
    TOKEN,
    user_op,
)


# ── Configuration ────────────────────────────────────────────────────────────


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only, ignoring any local .env file."""
    return Settings(_env_file=None)


# ── Chain state ──────────────────────────────────────────────────────────────


@pytest.fixture
def chain_state() -> InMemoryChainState:
    """Chain state where every named contract is deployed and nobody is staked."""
    return InMemoryChainState(
        code={
            ENTRY_POINT: b"\x60\x80",
            SENDER: b"\x60\x80",
            PAYMASTER: b"\x60\x80",
            FACTORY: b"\x60\x80",
            TOKEN: b"\x60\x80",
            SENDER_CREATOR: b"\x60\x80",
        }
    )


# ── Operations ───────────────────────────────────────────────────────────────


@pytest.fixture
def plain_op() -> UserOperation:
    return user_op()


@pytest.fixture
def sponsored_op() -> UserOperation:
    return user_op(paymaster=PAYMASTER)


# ── Validator and rule contexts ──────────────────────────────────────────────


@pytest.fixture
def validator(chain_state: InMemoryChainState, settings: Settings) -> UserOpValidator:
    return UserOpValidator(
        ENTRY_POINT,
        stake_provider=chain_state,
        code_provider=chain_state,
        settings=settings,
    )


@pytest.fixture
def make_context(
    chain_state: InMemoryChainState, settings: Settings
) -> Callable[..., RuleContext]:
    """Build a RuleContext over a sub-trace, defaulting to the sender scope."""

    def _make(
        trace: list[InstructionRecord],
        scope: Scope = Scope.SENDER,
        op: UserOperation | None = None,
    ) -> RuleContext:
        return RuleContext(
            trace=trace,
            scope=scope,
            user_op=op or user_op(),
            entry_point=ENTRY_POINT,
            stake_lookup=CachedStakeLookup(chain_state),
            code_provider=chain_state,
            settings=settings,
        )

    return _make
