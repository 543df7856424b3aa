"""Contract-call transactions: wire serialization and single-sig signing."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from stacker.signing.clarity import ClarityValue
from stacker.signing.hashes import hash160, sha512_256
from stacker.signing.keys import c32_address_decode, public_key_bytes
from stacker.signing.signer import TESTNET_CHAIN_ID, sign_recoverable

MAINNET_TX_VERSION = 0x00
TESTNET_TX_VERSION = 0x80

AUTH_TYPE_STANDARD = 0x04
HASH_MODE_P2PKH = 0x00
KEY_ENCODING_COMPRESSED = 0x00
KEY_ENCODING_UNCOMPRESSED = 0x01

ANCHOR_MODE_ANY = 0x03
POST_CONDITION_MODE_DENY = 0x02
PAYLOAD_CONTRACT_CALL = 0x02

MAX_NAME_LENGTH = 128
EMPTY_SIGNATURE = bytes(65)


def _u32(value: int) -> bytes:
    return value.to_bytes(4, "big")


def _u64(value: int) -> bytes:
    return value.to_bytes(8, "big")


def _length_prefixed_name(name: str) -> bytes:
    encoded = name.encode("ascii")
    if not 0 < len(encoded) <= MAX_NAME_LENGTH:
        raise ValueError(f"Invalid name: {name!r}")
    return bytes([len(encoded)]) + encoded


@dataclass(frozen=True)
class ContractCallPayload:
    contract_address: str
    contract_name: str
    function_name: str
    function_args: tuple[ClarityValue, ...] = ()

    def serialize(self) -> bytes:
        version, hash_bytes = c32_address_decode(self.contract_address)
        out = bytearray([PAYLOAD_CONTRACT_CALL, version])
        out += hash_bytes
        out += _length_prefixed_name(self.contract_name)
        out += _length_prefixed_name(self.function_name)
        out += _u32(len(self.function_args))
        for arg in self.function_args:
            out += arg.serialize()
        return bytes(out)


@dataclass(frozen=True)
class SingleSigSpendingCondition:
    signer: bytes
    nonce: int
    fee: int
    key_encoding: int = KEY_ENCODING_COMPRESSED
    signature: bytes = field(default=EMPTY_SIGNATURE)

    def cleared(self) -> "SingleSigSpendingCondition":
        return replace(self, nonce=0, fee=0, signature=EMPTY_SIGNATURE)

    def serialize(self) -> bytes:
        if len(self.signer) != 20:
            raise ValueError("Spending condition signer must be a 20-byte hash160")
        if len(self.signature) != 65:
            raise ValueError("Spending condition signature must be 65 bytes")
        return (
            bytes([HASH_MODE_P2PKH])
            + self.signer
            + _u64(self.nonce)
            + _u64(self.fee)
            + bytes([self.key_encoding])
            + self.signature
        )


@dataclass(frozen=True)
class ContractCallTransaction:
    spending_condition: SingleSigSpendingCondition
    payload: ContractCallPayload
    version: int = TESTNET_TX_VERSION
    chain_id: int = TESTNET_CHAIN_ID
    anchor_mode: int = ANCHOR_MODE_ANY
    post_condition_mode: int = POST_CONDITION_MODE_DENY

    def serialize(self) -> bytes:
        return (
            bytes([self.version])
            + _u32(self.chain_id)
            + bytes([AUTH_TYPE_STANDARD])
            + self.spending_condition.serialize()
            + bytes([self.anchor_mode, self.post_condition_mode])
            # no post conditions
            + _u32(0)
            + self.payload.serialize()
        )

    def txid(self) -> str:
        return sha512_256(self.serialize()).hex()

    def initial_sighash(self) -> bytes:
        cleared = replace(
            self, spending_condition=self.spending_condition.cleared()
        )
        return sha512_256(cleared.serialize())

    def presign_sighash(self) -> bytes:
        condition = self.spending_condition
        return sha512_256(
            self.initial_sighash()
            + bytes([AUTH_TYPE_STANDARD])
            + _u64(condition.fee)
            + _u64(condition.nonce)
        )

    def signed(self, private_key: bytes) -> "ContractCallTransaction":
        """Return a copy carrying a VRS signature over the presign sighash."""
        recovery_id, r, s = sign_recoverable(self.presign_sighash(), private_key)
        signature = bytes([recovery_id]) + r.to_bytes(32, "big") + s.to_bytes(32, "big")
        return replace(
            self,
            spending_condition=replace(self.spending_condition, signature=signature),
        )


def make_contract_call(
    contract_address: str,
    contract_name: str,
    function_name: str,
    function_args: list[ClarityValue],
    private_key: bytes,
    nonce: int,
    fee: int,
    compressed: bool = True,
    version: int = TESTNET_TX_VERSION,
    chain_id: int = TESTNET_CHAIN_ID,
) -> ContractCallTransaction:
    public_key = public_key_bytes(private_key, compressed)
    unsigned = ContractCallTransaction(
        spending_condition=SingleSigSpendingCondition(
            signer=hash160(public_key),
            nonce=nonce,
            fee=fee,
            key_encoding=(
                KEY_ENCODING_COMPRESSED if compressed else KEY_ENCODING_UNCOMPRESSED
            ),
        ),
        payload=ContractCallPayload(
            contract_address=contract_address,
            contract_name=contract_name,
            function_name=function_name,
            function_args=tuple(function_args),
        ),
        version=version,
        chain_id=chain_id,
    )
    return unsigned.signed(private_key)
