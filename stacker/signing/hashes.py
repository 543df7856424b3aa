import hashlib

from Crypto.Hash import RIPEMD160, SHA512


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha256d(data: bytes) -> bytes:
    """Double SHA-256 (Bitcoin-style), used for address checksums."""
    return sha256(sha256(data))


def ripemd160(data: bytes) -> bytes:
    # hashlib only has ripemd160 when OpenSSL still ships it
    return RIPEMD160.new(data).digest()


def hash160(data: bytes) -> bytes:
    """HASH160 = RIPEMD160(SHA256(data))."""
    return ripemd160(sha256(data))


def sha512_256(data: bytes) -> bytes:
    """SHA-512/256, the Stacks txid and sighash function."""
    return SHA512.new(data, truncate="256").digest()
