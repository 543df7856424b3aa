from __future__ import annotations

import secrets
from typing import Callable, Protocol

from loguru import logger

from stacker.pox.fees import FeeSequencer
from stacker.pox.types import (
    MAX_U128,
    ActionKind,
    Account,
    AccountSnapshot,
    AuthorizationRequest,
    Decision,
    ProtocolInfo,
    SignatureTopic,
    StackExtendArgs,
    StackStxArgs,
    TxResult,
)

DEFAULT_STACKING_CYCLES = 10

# 48-bit space; wide enough that auth ids never need persisted replay state
AUTH_ID_UPPER_BOUND = 0xFFFFFFFFFFFF


def random_auth_id() -> int:
    return secrets.randbelow(AUTH_ID_UPPER_BOUND)


class AuthorizationSigner(Protocol):
    def sign(self, request: AuthorizationRequest) -> str: ...


class StackingBroadcaster(Protocol):
    async def stack(self, args: StackStxArgs) -> TxResult: ...

    async def stack_extend(self, args: StackExtendArgs) -> TxResult: ...


class ActionExecutor:
    """Turns a Stack or Extend decision into a signed, broadcast transaction.

    Each call signs a fresh authorization, draws the next fee and submits the
    call through the broadcaster. Broadcast results are logged and returned
    without interpretation.
    """

    def __init__(
        self,
        signer: AuthorizationSigner,
        broadcaster: StackingBroadcaster,
        fee_sequencer: FeeSequencer,
        stacking_cycles: int = DEFAULT_STACKING_CYCLES,
        auth_id_factory: Callable[[], int] = random_auth_id,
    ):
        self.signer = signer
        self.broadcaster = broadcaster
        self.fee_sequencer = fee_sequencer
        self.stacking_cycles = stacking_cycles
        self.auth_id_factory = auth_id_factory

    def authorization_request(
        self, kind: ActionKind, pox_info: ProtocolInfo, account: Account
    ) -> AuthorizationRequest:
        return AuthorizationRequest(
            topic=SignatureTopic.for_action(kind),
            reward_cycle=pox_info.reward_cycle_id,
            pox_address=account.pox_address,
            period=self.stacking_cycles,
            auth_id=self.auth_id_factory(),
            max_amount=MAX_U128,
            signer_private_key=account.signer_private_key,
        )

    async def execute(
        self, decision: Decision, pox_info: ProtocolInfo, snapshot: AccountSnapshot
    ) -> TxResult:
        if decision.kind == ActionKind.STACK:
            return await self._stack_stx(decision, pox_info, snapshot)
        if decision.kind == ActionKind.EXTEND:
            return await self._stack_extend(pox_info, snapshot)
        raise ValueError(f"Nothing to execute for decision: {decision.kind.value}")

    async def _stack_stx(
        self, decision: Decision, pox_info: ProtocolInfo, snapshot: AccountSnapshot
    ) -> TxResult:
        account = snapshot.account
        request = self.authorization_request(ActionKind.STACK, pox_info, account)
        signer_signature = self.signer.sign(request)
        args = StackStxArgs(
            pox_address=account.pox_address,
            amount_ustx=decision.amount,
            burn_block_height=pox_info.current_burn_height,
            cycles=self.stacking_cycles,
            fee=await self.fee_sequencer.next_fee(),
            nonce=snapshot.nonce,
            signer_key=account.signer_public_key,
            signer_signature=signer_signature,
            auth_id=request.auth_id,
            max_amount=request.max_amount,
            private_key=account.secret_key,
            compressed=account.compressed,
        )
        log = logger.bind(account=account.index, stx_address=account.stx_address)
        log.bind(**{**args.to_log_dict(), **request.to_log_dict()}).info(
            f"Account {account.index} stack-stx with args"
        )
        result = await self.broadcaster.stack(args)
        log.bind(**result.to_dict()).info(f"Account {account.index} stack-stx tx result")
        return result

    async def _stack_extend(
        self, pox_info: ProtocolInfo, snapshot: AccountSnapshot
    ) -> TxResult:
        account = snapshot.account
        request = self.authorization_request(ActionKind.EXTEND, pox_info, account)
        signer_signature = self.signer.sign(request)
        args = StackExtendArgs(
            pox_address=account.pox_address,
            extend_cycles=self.stacking_cycles,
            fee=await self.fee_sequencer.next_fee(),
            nonce=snapshot.nonce,
            signer_key=account.signer_public_key,
            signer_signature=signer_signature,
            auth_id=request.auth_id,
            max_amount=request.max_amount,
            private_key=account.secret_key,
            compressed=account.compressed,
        )
        log = logger.bind(account=account.index, stx_address=account.stx_address)
        log.bind(**{**args.to_log_dict(), **request.to_log_dict()}).info(
            f"Account {account.index} stack-extend with args"
        )
        result = await self.broadcaster.stack_extend(args)
        log.bind(**result.to_dict()).info(
            f"Account {account.index} stack-extend tx result"
        )
        return result
