"""Secret key parsing plus Stacks and Bitcoin address derivation."""

from __future__ import annotations

from dataclasses import dataclass, field

from eth_keys import keys

from stacker.pox.types import Account, PoxAddress
from stacker.signing.hashes import hash160, sha256d

C32_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

MAINNET_SINGLE_SIG_VERSION = 22
TESTNET_SINGLE_SIG_VERSION = 26

BTC_P2PKH_VERSION = 0x00
POX_ADDRESS_VERSION_P2PKH = 0x00

COMPRESSED_KEY_SUFFIX = "01"
CHECKSUM_SIZE = 4


# ── c32check ───────────────────────────────────────────────────────


def c32_encode(data: bytes) -> str:
    num = int.from_bytes(data, "big")
    chars = []
    while num > 0:
        num, remainder = divmod(num, 32)
        chars.append(C32_ALPHABET[remainder])
    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    return C32_ALPHABET[0] * leading_zeros + "".join(reversed(chars))


def c32_normalize(value: str) -> str:
    return value.upper().replace("O", "0").replace("L", "1").replace("I", "1")


def c32_decode(value: str) -> bytes:
    value = c32_normalize(value)
    stripped = value.lstrip(C32_ALPHABET[0])
    leading_zeros = len(value) - len(stripped)
    num = 0
    for char in stripped:
        digit = C32_ALPHABET.find(char)
        if digit < 0:
            raise ValueError(f"Invalid c32 character: {char!r}")
        num = num * 32 + digit
    body = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""
    return b"\x00" * leading_zeros + body


def c32_address(version: int, hash_bytes: bytes) -> str:
    if not 0 <= version < 32:
        raise ValueError(f"Invalid c32 address version: {version}")
    checksum = sha256d(bytes([version]) + hash_bytes)[:CHECKSUM_SIZE]
    return "S" + C32_ALPHABET[version] + c32_encode(hash_bytes + checksum)


def c32_address_decode(address: str) -> tuple[int, bytes]:
    """Return (version, hash160) for an S-prefixed c32check address."""
    if len(address) < 3 or address[0] != "S":
        raise ValueError(f"Invalid Stacks address: {address}")
    version = C32_ALPHABET.find(c32_normalize(address[1]))
    if version < 0:
        raise ValueError(f"Invalid Stacks address version: {address}")
    payload = c32_decode(address[2:])
    hash_bytes, checksum = payload[:-CHECKSUM_SIZE], payload[-CHECKSUM_SIZE:]
    if sha256d(bytes([version]) + hash_bytes)[:CHECKSUM_SIZE] != checksum:
        raise ValueError(f"Invalid Stacks address checksum: {address}")
    return version, hash_bytes


# ── base58check ────────────────────────────────────────────────────


def base58check_encode(version: int, payload: bytes) -> str:
    data = bytes([version]) + payload
    data += sha256d(data)[:CHECKSUM_SIZE]
    num = int.from_bytes(data, "big")
    chars = []
    while num > 0:
        num, remainder = divmod(num, 58)
        chars.append(B58_ALPHABET[remainder])
    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    return B58_ALPHABET[0] * leading_zeros + "".join(reversed(chars))


# ── Keys ───────────────────────────────────────────────────────────


def parse_secret_key(secret_key: str) -> tuple[bytes, bool]:
    """Parse a hex secret key into (32 raw bytes, compressed flag).

    Stacks keys carry a trailing 01 byte when the public key is compressed.
    """
    value = secret_key.strip().lower()
    if value.startswith("0x"):
        value = value[2:]
    if len(value) == 66 and value.endswith(COMPRESSED_KEY_SUFFIX):
        compressed = True
        value = value[:64]
    elif len(value) == 64:
        compressed = False
    else:
        raise ValueError("Secret key must be 32 bytes, optionally followed by 01")
    try:
        raw = bytes.fromhex(value)
    except ValueError:
        raise ValueError("Secret key is not valid hex")
    return raw, compressed


def public_key_bytes(private_key: bytes, compressed: bool = True) -> bytes:
    public_key = keys.PrivateKey(private_key).public_key
    if compressed:
        return public_key.to_compressed_bytes()
    return b"\x04" + public_key.to_bytes()


def public_key_to_btc_address(public_key: bytes, version: int = BTC_P2PKH_VERSION) -> str:
    return base58check_encode(version, hash160(public_key))


def public_key_to_pox_address(public_key: bytes) -> PoxAddress:
    return PoxAddress(
        version=POX_ADDRESS_VERSION_P2PKH,
        hashbytes=hash160(public_key),
        address=public_key_to_btc_address(public_key),
    )


@dataclass(frozen=True)
class StacksKeys:
    private_key: bytes = field(repr=False)
    compressed: bool
    public_key: bytes
    signer_public_key: bytes
    stx_address: str
    pox_address: PoxAddress


def derive_keys(
    secret_key: str, address_version: int = TESTNET_SINGLE_SIG_VERSION
) -> StacksKeys:
    """Derive everything an account needs from its configured secret key.

    The same key doubles as the signer key. The signer key and the payout
    address always use the 33-byte compressed public key; only the STX
    address follows the key's compression marker.
    """
    private_key, compressed = parse_secret_key(secret_key)
    public_key = public_key_bytes(private_key, compressed)
    signer_public_key = public_key_bytes(private_key, compressed=True)
    return StacksKeys(
        private_key=private_key,
        compressed=compressed,
        public_key=public_key,
        signer_public_key=signer_public_key,
        stx_address=c32_address(address_version, hash160(public_key)),
        pox_address=public_key_to_pox_address(signer_public_key),
    )


def build_account(index: int, secret_key: str) -> Account:
    """Build the account for the stacker at 0-based config position *index*.

    Later stackers claim proportionally more reward slots.
    """
    derived = derive_keys(secret_key)
    return Account(
        index=index,
        stx_address=derived.stx_address,
        pox_address=derived.pox_address,
        public_key=derived.public_key,
        signer_public_key=derived.signer_public_key,
        target_slots=index + 1,
        secret_key=derived.private_key,
        signer_private_key=derived.private_key,
        compressed=derived.compressed,
    )
