"""One stacking run: snapshot every account, decide, then act.

Each account's work runs as its own task. A failure in one account is
logged and recorded in its outcome; sibling tasks are never cancelled.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from eth_keys.exceptions import ValidationError
from loguru import logger

from stacker.config.settings import Settings
from stacker.node.client import StacksNodeClient
from stacker.node.stacking_client import StackingClient
from stacker.pox.cycles import POX_REWARD_LENGTH
from stacker.pox.decisions import (
    DEFAULT_POX_CONTRACT_SUFFIX,
    decide,
    ensure_supported_contract,
)
from stacker.pox.errors import ConfigurationError, UnsupportedPoxContractError
from stacker.pox.executor import (
    DEFAULT_STACKING_CYCLES,
    ActionExecutor,
    AuthorizationSigner,
    StackingBroadcaster,
)
from stacker.pox.fees import DEFAULT_START_FEE, FeeSequencer
from stacker.pox.types import (
    Account,
    AccountSnapshot,
    AccountStatus,
    Decision,
    ProtocolInfo,
    TxResult,
)
from stacker.signing.keys import build_account
from stacker.signing.signer import Pox4Signer


class ChainStatusSource(Protocol):
    async def get_pox_info(self) -> ProtocolInfo: ...

    async def get_account_status(self, address: str) -> AccountStatus: ...


@dataclass
class AccountOutcome:
    index: int
    address: str
    decision: Optional[Decision] = None
    result: Optional[TxResult] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunReport:
    pox_info: Optional[ProtocolInfo] = None
    outcomes: list[AccountOutcome] = field(default_factory=list)
    skipped_reason: Optional[str] = None

    @property
    def submitted(self) -> list[AccountOutcome]:
        return [o for o in self.outcomes if o.result is not None]

    @property
    def failed(self) -> list[AccountOutcome]:
        return [o for o in self.outcomes if not o.ok]


def build_accounts(settings: Settings) -> list[Account]:
    accounts = []
    for index, stacker in enumerate(settings.stackers):
        try:
            accounts.append(build_account(index, stacker.secret_key))
        except (ValueError, ValidationError) as e:
            raise ConfigurationError(f"stackers[{index}].secret_key is invalid: {e}")
    return accounts


class StackingRunner:
    def __init__(
        self,
        accounts: list[Account],
        chain: ChainStatusSource,
        broadcaster_factory: Callable[[ProtocolInfo], StackingBroadcaster],
        signer: AuthorizationSigner,
        stacking_cycles: int = DEFAULT_STACKING_CYCLES,
        start_fee: int = DEFAULT_START_FEE,
        reward_cycle_length: int = POX_REWARD_LENGTH,
        contract_suffix: str = DEFAULT_POX_CONTRACT_SUFFIX,
    ):
        self.accounts = accounts
        self.chain = chain
        self.broadcaster_factory = broadcaster_factory
        self.signer = signer
        self.stacking_cycles = stacking_cycles
        self.start_fee = start_fee
        self.reward_cycle_length = reward_cycle_length
        self.contract_suffix = contract_suffix

    async def _snapshot(self, account: Account) -> AccountSnapshot:
        status = await self.chain.get_account_status(account.stx_address)
        return AccountSnapshot.from_status(account, status)

    async def _process(
        self,
        account: Account,
        snapshot: AccountSnapshot | BaseException,
        pox_info: ProtocolInfo,
        executor: ActionExecutor,
    ) -> AccountOutcome:
        outcome = AccountOutcome(index=account.index, address=account.stx_address)
        log = logger.bind(account=account.index, stx_address=account.stx_address)

        if isinstance(snapshot, BaseException):
            if not isinstance(snapshot, Exception):
                raise snapshot
            log.error(f"Account {account.index} status query failed: {snapshot}")
            outcome.error = snapshot
            return outcome

        try:
            outcome.decision = decide(
                pox_info,
                snapshot,
                reward_cycle_length=self.reward_cycle_length,
                contract_suffix=self.contract_suffix,
            )
            if outcome.decision.requires_action:
                outcome.result = await executor.execute(
                    outcome.decision, pox_info, snapshot
                )
        except Exception as e:
            log.bind(
                burn_height=pox_info.current_burn_height,
                unlock_height=snapshot.unlock_height,
                balance=snapshot.balance,
                locked=snapshot.locked,
            ).error(f"Account {account.index} failed: {e}")
            outcome.error = e
        return outcome

    async def run(self) -> RunReport:
        pox_info = await self.chain.get_pox_info()
        report = RunReport(pox_info=pox_info)

        try:
            ensure_supported_contract(pox_info, self.contract_suffix)
        except UnsupportedPoxContractError as e:
            logger.warning(e.message)
            report.skipped_reason = e.message
            return report

        logger.bind(
            contract=pox_info.contract_id,
            burn_height=pox_info.current_burn_height,
            reward_cycle=pox_info.reward_cycle_id,
            min_threshold_ustx=pox_info.next_cycle_min_threshold_ustx,
        ).info(f"Evaluating {len(self.accounts)} account(s)")

        snapshots = await asyncio.gather(
            *(self._snapshot(account) for account in self.accounts),
            return_exceptions=True,
        )

        # Fees restart from the baseline every run
        executor = ActionExecutor(
            signer=self.signer,
            broadcaster=self.broadcaster_factory(pox_info),
            fee_sequencer=FeeSequencer(self.start_fee),
            stacking_cycles=self.stacking_cycles,
        )
        report.outcomes = list(
            await asyncio.gather(
                *(
                    self._process(account, snapshot, pox_info, executor)
                    for account, snapshot in zip(self.accounts, snapshots)
                )
            )
        )
        return report


async def run_once(settings: Settings, accounts: list[Account]) -> RunReport:
    """Wire the live node client, signer and broadcaster, then run once."""
    async with StacksNodeClient(
        settings.node.full_url, timeout=settings.request_timeout
    ) as node:
        runner = StackingRunner(
            accounts=accounts,
            chain=node,
            broadcaster_factory=lambda info: StackingClient(node, info.contract_id),
            signer=Pox4Signer(),
            stacking_cycles=settings.stacking_cycles,
            start_fee=settings.start_fee,
            reward_cycle_length=settings.reward_cycle_length,
            contract_suffix=settings.contract_suffix,
        )
        return await runner.run()
