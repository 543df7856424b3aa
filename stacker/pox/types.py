from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

MAX_U128 = 2**128 - 1


class ActionKind(Enum):
    STACK = "stack"
    EXTEND = "extend"
    SKIP = "skip"

    @classmethod
    def from_string(cls, value: str) -> "ActionKind":
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Invalid action kind value: {value}")


class SignatureTopic(Enum):
    STACK_STX = "stack-stx"
    STACK_EXTEND = "stack-extend"

    @classmethod
    def for_action(cls, kind: ActionKind) -> "SignatureTopic":
        if kind == ActionKind.STACK:
            return cls.STACK_STX
        if kind == ActionKind.EXTEND:
            return cls.STACK_EXTEND
        raise ValueError(f"No signature topic for action: {kind.value}")


def _parse_int(value: Any) -> int:
    """Node amounts come back as 0x-prefixed hex strings, heights as ints."""
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if value.startswith("0x"):
            return int(value, 16)
        return int(value)
    raise ValueError(f"Invalid integer value: {value!r}")


@dataclass(frozen=True)
class PoxAddress:
    """Bitcoin payout address as carried on-chain in a pox-addr tuple."""

    version: int
    hashbytes: bytes
    address: str

    def to_log_dict(self) -> dict:
        return {
            "address": self.address,
            "version": self.version,
            "hashbytes": self.hashbytes.hex(),
        }


@dataclass(frozen=True)
class ProtocolInfo:
    contract_id: str
    current_burn_height: int
    reward_cycle_id: int
    next_cycle_min_threshold_ustx: int
    reward_cycle_length: Optional[int] = None
    prepare_phase_length: Optional[int] = None

    @property
    def contract_address(self) -> str:
        return self.contract_id.split(".", 1)[0]

    @property
    def contract_name(self) -> str:
        return self.contract_id.split(".", 1)[-1]

    @classmethod
    def from_dict(cls, input: dict) -> "ProtocolInfo":
        next_cycle = input.get("next_cycle") or {}
        return cls(
            contract_id=input["contract_id"],
            current_burn_height=_parse_int(
                input.get("current_burnchain_block_height") or 0
            ),
            reward_cycle_id=_parse_int(input["reward_cycle_id"]),
            next_cycle_min_threshold_ustx=_parse_int(next_cycle["min_threshold_ustx"]),
            reward_cycle_length=input.get("reward_cycle_length"),
            prepare_phase_length=input.get("prepare_phase_block_length"),
        )


@dataclass(frozen=True)
class AccountStatus:
    balance: int
    locked: int
    unlock_height: int
    nonce: int = 0

    @classmethod
    def from_dict(cls, input: dict) -> "AccountStatus":
        return cls(
            balance=_parse_int(input["balance"]),
            locked=_parse_int(input["locked"]),
            unlock_height=_parse_int(input.get("unlock_height", 0)),
            nonce=_parse_int(input.get("nonce", 0)),
        )


@dataclass(frozen=True)
class Account:
    index: int
    stx_address: str
    pox_address: PoxAddress
    public_key: bytes
    signer_public_key: bytes
    target_slots: int
    secret_key: bytes = field(repr=False)
    signer_private_key: bytes = field(repr=False)
    compressed: bool = True

    @property
    def btc_address(self) -> str:
        return self.pox_address.address


@dataclass(frozen=True)
class AccountSnapshot:
    account: Account
    balance: int
    locked: int
    unlock_height: int
    nonce: int = 0

    @property
    def index(self) -> int:
        return self.account.index

    @classmethod
    def from_status(cls, account: Account, status: AccountStatus) -> "AccountSnapshot":
        return cls(
            account=account,
            balance=status.balance,
            locked=status.locked,
            unlock_height=status.unlock_height,
            nonce=status.nonce,
        )


@dataclass(frozen=True)
class Decision:
    kind: ActionKind
    amount: Optional[int] = None

    @classmethod
    def stack(cls, amount: int) -> "Decision":
        return cls(kind=ActionKind.STACK, amount=amount)

    @classmethod
    def extend(cls) -> "Decision":
        return cls(kind=ActionKind.EXTEND)

    @classmethod
    def skip(cls) -> "Decision":
        return cls(kind=ActionKind.SKIP)

    @property
    def requires_action(self) -> bool:
        return self.kind != ActionKind.SKIP


@dataclass(frozen=True)
class AuthorizationRequest:
    topic: SignatureTopic
    reward_cycle: int
    pox_address: PoxAddress
    period: int
    auth_id: int
    max_amount: int
    signer_private_key: bytes = field(repr=False)

    def to_log_dict(self) -> dict:
        return {
            "topic": self.topic.value,
            "reward_cycle": self.reward_cycle,
            "pox_address": self.pox_address.address,
            "period": self.period,
            "auth_id": self.auth_id,
            "max_amount": self.max_amount,
        }


@dataclass(frozen=True)
class StackStxArgs:
    pox_address: PoxAddress
    amount_ustx: int
    burn_block_height: int
    cycles: int
    fee: int
    nonce: int
    signer_key: bytes
    signer_signature: str
    auth_id: int
    max_amount: int
    private_key: bytes = field(repr=False)
    compressed: bool = True

    def to_log_dict(self) -> dict:
        return {
            "pox_address": self.pox_address.address,
            "amount_ustx": self.amount_ustx,
            "burn_block_height": self.burn_block_height,
            "cycles": self.cycles,
            "fee": self.fee,
            "nonce": self.nonce,
            "signer_key": self.signer_key.hex(),
            "signer_signature": self.signer_signature,
            "auth_id": self.auth_id,
            "max_amount": self.max_amount,
        }


@dataclass(frozen=True)
class StackExtendArgs:
    pox_address: PoxAddress
    extend_cycles: int
    fee: int
    nonce: int
    signer_key: bytes
    signer_signature: str
    auth_id: int
    max_amount: int
    private_key: bytes = field(repr=False)
    compressed: bool = True

    def to_log_dict(self) -> dict:
        return {
            "pox_address": self.pox_address.address,
            "extend_cycles": self.extend_cycles,
            "fee": self.fee,
            "nonce": self.nonce,
            "signer_key": self.signer_key.hex(),
            "signer_signature": self.signer_signature,
            "auth_id": self.auth_id,
            "max_amount": self.max_amount,
        }


@dataclass(frozen=True)
class TxResult:
    txid: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None
    reason_data: Optional[dict] = None

    @property
    def ok(self) -> bool:
        return self.txid is not None and self.error is None

    def to_dict(self) -> dict:
        return {
            "txid": self.txid,
            "error": self.error,
            "reason": self.reason,
            "reason_data": self.reason_data,
        }

    @classmethod
    def from_response(cls, input: Any) -> "TxResult":
        """Nodes answer a broadcast with the txid string, or an error object."""
        if isinstance(input, str):
            txid = input if input.startswith("0x") else f"0x{input}"
            return cls(txid=txid)
        if isinstance(input, dict):
            txid = input.get("txid")
            if txid and not txid.startswith("0x"):
                txid = f"0x{txid}"
            return cls(
                txid=txid,
                error=input.get("error"),
                reason=input.get("reason"),
                reason_data=input.get("reason_data"),
            )
        raise ValueError(f"Invalid broadcast response: {input!r}")
