"""HD path parsing and BIP-32 private key derivation."""

from .bip32 import HARDENED_OFFSET, ChildNumber, HDPath, hardened, normal, parse
from .keygen import CurveContext, ExtendedKey, SecretKey, derive_private_key

__all__ = [
    "HARDENED_OFFSET",
    "ChildNumber",
    "HDPath",
    "hardened",
    "normal",
    "parse",
    "CurveContext",
    "ExtendedKey",
    "SecretKey",
    "derive_private_key",
]
