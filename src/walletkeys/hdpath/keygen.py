"""BIP-32 private key derivation over secp256k1.

The master key is ``HMAC-SHA512(b"Bitcoin seed", seed)``: the left half is
the private scalar, the right half the chain code. Each child in the path is
then derived from its parent:

- hardened: ``HMAC-SHA512(chain, 0x00 || k || ser32(i + 2^31))``
- normal:   ``HMAC-SHA512(chain, serP(K) || ser32(i))``

and the child scalar is ``(I_L + k) mod order``. Invalid intermediate keys
are reported, never skipped over.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
import logging
import struct

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from walletkeys.core.exceptions import InvalidSecretKeyError, KeyDerivationError
from walletkeys.security.prf import Prf
from .bip32 import ChildNumber, HDPath

logger = logging.getLogger(__name__)

SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
PRIVATE_KEY_BYTES = 32
MASTER_KEY_HMAC_KEY = b"Bitcoin seed"


@dataclass(frozen=True)
class CurveContext:
    """
    secp256k1 parameters and point operations.

    Build one and pass it to every derivation call; it holds no mutable
    state and can be shared across threads.
    """

    curve: ec.EllipticCurve = field(default_factory=ec.SECP256K1)
    order: int = SECP256K1_ORDER

    def is_valid_scalar(self, value: int) -> bool:
        return 0 < value < self.order

    def public_key(self, secret: bytes, compressed: bool = True) -> bytes:
        """Return the SEC1 encoded public key for a 32-byte private scalar."""
        value = int.from_bytes(secret, "big")
        if not self.is_valid_scalar(value):
            raise InvalidSecretKeyError("private scalar is zero or not below the curve order")
        private_key = ec.derive_private_key(value, self.curve)
        fmt = (
            serialization.PublicFormat.CompressedPoint
            if compressed
            else serialization.PublicFormat.UncompressedPoint
        )
        return private_key.public_key().public_bytes(serialization.Encoding.X962, fmt)


@dataclass(frozen=True)
class SecretKey:
    """A validated 32-byte secp256k1 private scalar."""

    secret: bytes = field(repr=False)

    def __post_init__(self):
        if not isinstance(self.secret, (bytes, bytearray)) or len(self.secret) != PRIVATE_KEY_BYTES:
            raise InvalidSecretKeyError(f"secret key must be {PRIVATE_KEY_BYTES} bytes")
        value = int.from_bytes(self.secret, "big")
        if not 0 < value < SECP256K1_ORDER:
            raise InvalidSecretKeyError("secret key is zero or not below the curve order")
        object.__setattr__(self, "secret", bytes(self.secret))

    def to_bytes(self) -> bytes:
        return self.secret

    def hex(self) -> str:
        return self.secret.hex()

    def public_key(self, context: Optional[CurveContext] = None, compressed: bool = True) -> bytes:
        context = context or CurveContext()
        return context.public_key(self.secret, compressed=compressed)


@dataclass(frozen=True)
class ExtendedKey:
    """A private scalar together with its chain code."""

    private_key: bytes = field(repr=False)
    chain_code: bytes = field(repr=False)
    depth: int = 0

    @classmethod
    def from_seed(cls, seed: bytes, context: Optional[CurveContext] = None) -> "ExtendedKey":
        context = context or CurveContext()
        if not seed:
            raise KeyDerivationError("seed must not be empty")

        mac = Prf.HMAC_SHA512.keyed_context(MASTER_KEY_HMAC_KEY)
        mac.update(bytes(seed))
        digest = mac.digest()
        key, chain_code = digest[:32], digest[32:]

        if not context.is_valid_scalar(int.from_bytes(key, "big")):
            raise KeyDerivationError("seed produces an invalid master key")
        return cls(private_key=key, chain_code=chain_code)

    def derive_child(self, child: ChildNumber, context: Optional[CurveContext] = None) -> "ExtendedKey":
        context = context or CurveContext()
        if child.hardened:
            data = b"\x00" + self.private_key
        else:
            data = context.public_key(self.private_key, compressed=True)
        data += struct.pack(">I", child.raw_index)

        mac = Prf.HMAC_SHA512.keyed_context(self.chain_code)
        mac.update(data)
        digest = mac.digest()
        tweak = int.from_bytes(digest[:32], "big")
        if tweak >= context.order:
            raise KeyDerivationError(f"invalid child key at index {child} (I_L not below order)")

        value = (tweak + int.from_bytes(self.private_key, "big")) % context.order
        if value == 0:
            raise KeyDerivationError(f"invalid child key at index {child} (zero scalar)")

        return ExtendedKey(
            private_key=value.to_bytes(PRIVATE_KEY_BYTES, "big"),
            chain_code=digest[32:],
            depth=self.depth + 1,
        )

    def derive_path(self, path: HDPath, context: Optional[CurveContext] = None) -> "ExtendedKey":
        context = context or CurveContext()
        key = self
        for child in path:
            key = key.derive_child(child, context)
        return key


def derive_private_key(path: HDPath, seed: bytes, context: Optional[CurveContext] = None) -> SecretKey:
    """
    Derive the private key at ``path`` from ``seed``.

    Args:
        path: parsed derivation path.
        seed: master seed bytes (typically 64 bytes from a mnemonic).
        context: curve context; a fresh one is built when omitted.

    Returns:
        The derived :class:`SecretKey`.

    Raises:
        KeyDerivationError: if the master key or an intermediate child is invalid.
        InvalidSecretKeyError: if the final scalar is out of range.
    """
    context = context or CurveContext()
    extended = ExtendedKey.from_seed(seed, context).derive_path(path, context)
    logger.debug("derived private key at depth %d", extended.depth)

    if not context.is_valid_scalar(int.from_bytes(extended.private_key, "big")):
        raise InvalidSecretKeyError("derived scalar is zero or not below the curve order")
    return SecretKey(extended.private_key)
