"""Security helpers: PRF selection and passphrase key derivation for walletkeys.

This package provides:
- HMAC pseudo-random function selection (:mod:`walletkeys.security.prf`)
- PBKDF2 and scrypt key derivation with keystore parameter records
  (:mod:`walletkeys.security.kdf`)
"""

from .prf import Prf
from .kdf import (
    DEFAULT_DK_LENGTH,
    KDF_SALT_BYTES,
    Kdf,
    KdfDepthLevel,
    KdfParams,
    Pbkdf2,
    Scrypt,
)

__all__ = [
    "Prf",
    "DEFAULT_DK_LENGTH",
    "KDF_SALT_BYTES",
    "Kdf",
    "KdfDepthLevel",
    "KdfParams",
    "Pbkdf2",
    "Scrypt",
]
