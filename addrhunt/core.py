"""
Core key generation and address derivation for Bitcoin P2PKH addresses.

Pipeline (verified against BIP-13 / SEC1 encodings):
  secret (32 bytes) -> secp256k1 public point -> SEC1 bytes
  -> HASH160 (RIPEMD160 of SHA256) -> version byte + checksum -> Base58
"""

import hashlib
import os
from dataclasses import dataclass

import base58
from Crypto.Hash import RIPEMD160
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

SECRET_SIZE = 32               # bytes
CHECKSUM_SIZE = 4              # bytes
MAINNET_P2PKH = 0x00
MAINNET_WIF = 0x80

# Order of the secp256k1 base point; valid private scalars are in [1, n-1]
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Serialization constants cached at module level for performance
_CURVE = ec.SECP256K1()
_X962 = serialization.Encoding.X962
_COMPRESSED = serialization.PublicFormat.CompressedPoint
_UNCOMPRESSED = serialization.PublicFormat.UncompressedPoint


def generate_secret() -> bytes:
    """Return a fresh 32-byte secret from the OS CSPRNG.

    Raises OSError if the entropy source fails; callers treat that as
    transient and retry.
    """
    return os.urandom(SECRET_SIZE)


def pubkey_bytes(secret: bytes, compressed: bool = True) -> bytes:
    """Compute the SEC1-encoded secp256k1 public key for a secret.

    Raises ValueError when the secret is not a valid private scalar.
    """
    if len(secret) != SECRET_SIZE:
        raise ValueError(f"Secret must be {SECRET_SIZE} bytes, got {len(secret)}")
    scalar = int.from_bytes(secret, "big")
    if not 0 < scalar < SECP256K1_ORDER:
        raise ValueError("Secret is outside the secp256k1 scalar range")
    prv = ec.derive_private_key(scalar, _CURVE)
    return prv.public_key().public_bytes(_X962, _COMPRESSED if compressed else _UNCOMPRESSED)


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data)), the 20-byte Bitcoin key hash."""
    return RIPEMD160.new(hashlib.sha256(data).digest()).digest()


def checksum(payload: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(payload).digest()).digest()[:CHECKSUM_SIZE]


def base58check(payload: bytes) -> str:
    """Append the double-SHA256 checksum and Base58-encode."""
    return base58.b58encode(payload + checksum(payload)).decode("ascii")


def secret_to_wif(secret: bytes, compressed: bool = True) -> str:
    """Encode a secret in wallet import format."""
    suffix = b"\x01" if compressed else b""
    return base58check(bytes([MAINNET_WIF]) + secret + suffix)


@dataclass(frozen=True)
class AddressScheme:
    """Immutable, picklable derivation parameters for workers.

    The scheme is passed to every worker process, so it must stay a plain
    value object.
    """
    compressed: bool = True
    version: int = MAINNET_P2PKH

    def derive(self, secret: bytes) -> str:
        """Derive the Base58Check address for a secret.

        This is the hot-path function called in the inner loop of each worker.
        Deterministic and side-effect free.
        """
        key_hash = hash160(pubkey_bytes(secret, self.compressed))
        return base58check(bytes([self.version]) + key_hash)

    def describe(self) -> str:
        kind = "compressed" if self.compressed else "uncompressed"
        return f"secp256k1 P2PKH ({kind}, version 0x{self.version:02x})"


DEFAULT_SCHEME = AddressScheme()
