"""Pseudo-random functions used as the inner function of PBKDF2."""

from __future__ import annotations

from enum import Enum
import hashlib
import hmac

from cryptography.hazmat.primitives import hashes


class Prf(Enum):
    # names follow the keystore record values
    HMAC_SHA256 = "hmac-sha256"
    HMAC_SHA512 = "hmac-sha512"

    @classmethod
    def default(cls) -> "Prf":
        return cls.HMAC_SHA256

    @property
    def digest_name(self) -> str:
        return "sha256" if self is Prf.HMAC_SHA256 else "sha512"

    def hash_algorithm(self) -> hashes.HashAlgorithm:
        """Return the hash object the PBKDF2 primitive is parameterized with."""
        if self is Prf.HMAC_SHA256:
            return hashes.SHA256()
        return hashes.SHA512()

    def keyed_context(self, passphrase: bytes | str) -> "hmac.HMAC":
        """
        Return an HMAC context keyed with ``passphrase``.

        HMAC accepts keys of any length (short keys are padded, long keys are
        hashed first), so this never fails on the key itself.
        """
        if isinstance(passphrase, str):
            passphrase = passphrase.encode("utf-8")
        return hmac.new(passphrase, digestmod=getattr(hashlib, self.digest_name))
