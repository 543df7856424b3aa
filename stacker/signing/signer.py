"""pox-4 signer authorizations (SIP-018 structured data signatures)."""

from __future__ import annotations

from eth_account import Account as EthAccount

from stacker.pox.types import AuthorizationRequest
from stacker.signing.clarity import StringAsciiCV, TupleCV, UIntCV, pox_address_cv
from stacker.signing.hashes import sha256

MAINNET_CHAIN_ID = 0x00000001
TESTNET_CHAIN_ID = 0x80000000

STRUCTURED_DATA_PREFIX = b"SIP018"
POX_SIGNER_DOMAIN_NAME = "pox-4-signer"
POX_SIGNER_DOMAIN_VERSION = "1.0.0"

SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def sign_recoverable(message_hash: bytes, private_key: bytes) -> tuple[int, int, int]:
    """Sign a 32-byte digest and return (recovery_id, r, s) with low S."""
    if len(message_hash) != 32:
        raise ValueError(f"Message hash must be 32 bytes, got {len(message_hash)}")
    signed = EthAccount.unsafe_sign_hash(message_hash, private_key)
    recovery_id = signed.v - 27 if signed.v >= 27 else signed.v
    r, s = signed.r, signed.s
    if s > SECP256K1_ORDER // 2:
        s = SECP256K1_ORDER - s
        recovery_id ^= 1
    return recovery_id, r, s


def signer_domain(chain_id: int) -> TupleCV:
    return TupleCV(
        {
            "name": StringAsciiCV(POX_SIGNER_DOMAIN_NAME),
            "version": StringAsciiCV(POX_SIGNER_DOMAIN_VERSION),
            "chain-id": UIntCV(chain_id),
        }
    )


def signer_message(request: AuthorizationRequest) -> TupleCV:
    return TupleCV(
        {
            "pox-addr": pox_address_cv(request.pox_address),
            "reward-cycle": UIntCV(request.reward_cycle),
            "topic": StringAsciiCV(request.topic.value),
            "period": UIntCV(request.period),
            "auth-id": UIntCV(request.auth_id),
            "max-amount": UIntCV(request.max_amount),
        }
    )


def structured_data_hash(domain: TupleCV, message: TupleCV) -> bytes:
    return sha256(
        STRUCTURED_DATA_PREFIX
        + sha256(domain.serialize())
        + sha256(message.serialize())
    )


class Pox4Signer:
    """Signs AuthorizationRequests for a single chain."""

    def __init__(self, chain_id: int = TESTNET_CHAIN_ID):
        self.chain_id = chain_id

    def digest(self, request: AuthorizationRequest) -> bytes:
        return structured_data_hash(
            signer_domain(self.chain_id), signer_message(request)
        )

    def sign(self, request: AuthorizationRequest) -> str:
        """Return the 65-byte RSV signature as hex, as pox-4 expects."""
        recovery_id, r, s = sign_recoverable(
            self.digest(request), request.signer_private_key
        )
        signature = r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([recovery_id])
        return signature.hex()
