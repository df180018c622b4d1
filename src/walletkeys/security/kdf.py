"""Key derivation functions for keystore secrets.

Two algorithms are supported, mirroring the keystore record format:

- PBKDF2 with an HMAC pseudo-random function (:class:`Pbkdf2`)
- scrypt (:class:`Scrypt`), the default

:class:`KdfParams` bundles one algorithm with the output length and a
32-byte salt and is the unit persisted by keystore readers and writers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional, Union
import json
import logging
import math

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt as _ScryptPrimitive

from walletkeys.config import DEFAULT_SCRYPT_MAX_MEMORY
from walletkeys.core.exceptions import KdfExecutionError, KdfParameterError
from .prf import Prf

logger = logging.getLogger(__name__)

PBKDF2_KDF_NAME = "pbkdf2"
SCRYPT_KDF_NAME = "scrypt"

DEFAULT_DK_LENGTH = 32
KDF_SALT_BYTES = 32
ZERO_SALT = bytes(KDF_SALT_BYTES)

_U32_MAX = 2**32 - 1
_PBKDF2_FIELDS = ("prf", "c")
_SCRYPT_FIELDS = ("n", "r", "p")


class KdfDepthLevel(IntEnum):
    # scrypt work factor presets
    NORMAL = 1024
    HIGH = 8192
    ULTRA = 262_144

    @classmethod
    def from_name(cls, name: str) -> "KdfDepthLevel":
        try:
            return cls[name.strip().upper()]
        except KeyError as e:
            raise KdfParameterError(f"Unknown KDF depth level: {name!r}") from e


def _check_u32(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise KdfParameterError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > _U32_MAX:
        raise KdfParameterError(f"{name} must fit in an unsigned 32-bit integer")
    return value


def _encode_passphrase(passphrase: Union[str, bytes]) -> bytes:
    if isinstance(passphrase, str):
        return passphrase.encode("utf-8")
    return bytes(passphrase)


def _check_output_len(output_len: Any) -> int:
    if isinstance(output_len, bool) or not isinstance(output_len, int) or output_len <= 0:
        raise KdfParameterError("Output length must be a positive integer")
    return output_len


class Kdf:
    """
    Base of the two key derivation algorithms.

    Subclasses are frozen dataclasses; use :meth:`from_dict` to build the
    right one from a keystore record.
    """

    name: str = ""

    @staticmethod
    def default() -> "Kdf":
        return Scrypt(n=int(KdfDepthLevel.NORMAL), r=8, p=1)

    def derive(
        self,
        output_len: int,
        salt: bytes,
        passphrase: Union[str, bytes],
        *,
        max_memory: Optional[int] = None,
    ) -> bytes:
        raise NotImplementedError

    def validate(self, max_memory: Optional[int] = None) -> None:
        """Raise :class:`KdfParameterError` if the cost parameters can never derive."""
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError

    @staticmethod
    def from_dict(record: Dict[str, Any]) -> "Kdf":
        """
        Build a :class:`Pbkdf2` or :class:`Scrypt` from a record.

        The algorithm is picked by field presence (``prf``/``c`` or
        ``n``/``r``/``p``). An optional ``kdf`` name must agree with it.
        """
        if not isinstance(record, dict):
            raise KdfParameterError("KDF parameters must be a mapping")

        has_pbkdf2 = any(k in record for k in _PBKDF2_FIELDS)
        has_scrypt = any(k in record for k in _SCRYPT_FIELDS)
        if has_pbkdf2 and has_scrypt:
            raise KdfParameterError("KDF parameters mix PBKDF2 and scrypt fields")
        if not has_pbkdf2 and not has_scrypt:
            raise KdfParameterError("KDF parameters carry neither PBKDF2 nor scrypt fields")

        fields = _PBKDF2_FIELDS if has_pbkdf2 else _SCRYPT_FIELDS
        missing = [k for k in fields if k not in record]
        if missing:
            raise KdfParameterError(f"KDF parameters missing field(s): {', '.join(missing)}")

        kdf: Kdf
        if has_pbkdf2:
            try:
                prf = Prf(record["prf"])
            except ValueError as e:
                raise KdfParameterError(f"Unknown PRF: {record['prf']!r}") from e
            kdf = Pbkdf2(prf=prf, c=record["c"])
        else:
            kdf = Scrypt(n=record["n"], r=record["r"], p=record["p"])

        name = record.get("kdf")
        if name is not None and name != kdf.name:
            raise KdfParameterError(f"KDF name {name!r} does not match its parameters ({kdf.name})")
        return kdf


@dataclass(frozen=True)
class Pbkdf2(Kdf):
    """PBKDF2 with an HMAC PRF and ``c`` iterations. CPU cost only."""

    prf: Prf = field(default_factory=Prf.default)
    c: int = 262_144

    name = PBKDF2_KDF_NAME

    def __post_init__(self):
        if not isinstance(self.prf, Prf):
            raise KdfParameterError(f"prf must be a Prf, got {self.prf!r}")
        _check_u32("c", self.c)

    def derive(
        self,
        output_len: int,
        salt: bytes,
        passphrase: Union[str, bytes],
        *,
        max_memory: Optional[int] = None,
    ) -> bytes:
        _check_output_len(output_len)
        self.validate(max_memory)
        algorithm = self.prf.hash_algorithm()
        if output_len > _U32_MAX * algorithm.digest_size:
            raise KdfParameterError("PBKDF2 output length exceeds (2^32 - 1) blocks")

        try:
            kdf = PBKDF2HMAC(
                algorithm=algorithm,
                length=output_len,
                salt=bytes(salt),
                iterations=self.c,
            )
        except ValueError as e:
            raise KdfParameterError(f"Invalid PBKDF2 parameters: {e}") from e

        try:
            key = kdf.derive(_encode_passphrase(passphrase))
        except Exception as exc:
            logger.error("PBKDF2 derivation failed: %s", exc.__class__.__name__)
            raise KdfExecutionError("PBKDF2 failed") from exc

        logger.debug("PBKDF2 derivation completed (prf=%s, c=%d)", self.prf.value, self.c)
        return key

    def to_dict(self) -> Dict[str, Any]:
        return {"prf": self.prf.value, "c": self.c}

    def validate(self, max_memory: Optional[int] = None) -> None:
        if self.c == 0:
            raise KdfParameterError("PBKDF2 iteration count must be non-zero")


@dataclass(frozen=True)
class Scrypt(Kdf):
    """
    scrypt with work factor ``n``, block size ``r`` and parallelization ``p``.

    ``n`` must be an exact power of two; the cost exponent handed to the
    primitive is ``round(log2(n))``.
    """

    n: int = int(KdfDepthLevel.NORMAL)
    r: int = 8
    p: int = 1

    name = SCRYPT_KDF_NAME

    def __post_init__(self):
        _check_u32("n", self.n)
        _check_u32("r", self.r)
        _check_u32("p", self.p)

    @classmethod
    def from_level(cls, level: Union[KdfDepthLevel, str], r: int = 8, p: int = 1) -> "Scrypt":
        if isinstance(level, str):
            level = KdfDepthLevel.from_name(level)
        return cls(n=int(level), r=r, p=p)

    @property
    def log_n(self) -> int:
        if self.n == 0:
            raise KdfParameterError("scrypt work factor n must be non-zero")
        return int(round(math.log2(self.n)))

    def memory_required(self) -> int:
        """Approximate scrypt working memory in bytes."""
        return 128 * self.r * (self.n + self.p)

    def check_cost(self, max_memory: Optional[int] = None) -> int:
        """
        Validate the cost parameters and return the cost exponent.

        Raises:
            KdfParameterError: if the combination cannot be run.
        """
        if max_memory is None:
            max_memory = DEFAULT_SCRYPT_MAX_MEMORY
        log_n = self.log_n
        if self.n < 2 or (1 << log_n) != self.n:
            raise KdfParameterError(
                f"scrypt work factor n must be a power of two greater than 1, got {self.n}"
            )
        if self.r == 0 or self.p == 0:
            raise KdfParameterError("scrypt block size r and parallelization p must be non-zero")
        if self.r * self.p >= 2**30:
            raise KdfParameterError("scrypt r * p must be below 2^30")
        if log_n >= 16 * self.r:
            raise KdfParameterError(f"scrypt work factor 2^{log_n} too large for block size r={self.r}")
        needed = self.memory_required()
        if needed > max_memory:
            raise KdfParameterError(
                f"scrypt parameters need {needed} bytes of memory, limit is {max_memory}"
            )
        return log_n

    def derive(
        self,
        output_len: int,
        salt: bytes,
        passphrase: Union[str, bytes],
        *,
        max_memory: Optional[int] = None,
    ) -> bytes:
        _check_output_len(output_len)
        log_n = self.check_cost(max_memory)

        try:
            kdf = _ScryptPrimitive(salt=bytes(salt), length=output_len, n=1 << log_n, r=self.r, p=self.p)
        except ValueError as e:
            raise KdfParameterError(f"Invalid scrypt parameters: {e}") from e
        except UnsupportedAlgorithm as e:
            raise KdfExecutionError("scrypt is not supported by the crypto backend") from e

        try:
            key = kdf.derive(_encode_passphrase(passphrase))
        except Exception as exc:
            logger.error("scrypt derivation failed: %s", exc.__class__.__name__)
            raise KdfExecutionError("scrypt failed") from exc

        logger.debug("scrypt derivation completed (log_n=%d, r=%d, p=%d)", log_n, self.r, self.p)
        return key

    def to_dict(self) -> Dict[str, Any]:
        return {"n": self.n, "r": self.r, "p": self.p}

    def validate(self, max_memory: Optional[int] = None) -> None:
        self.check_cost(max_memory)


def decode_salt(raw: Any) -> bytes:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if not isinstance(raw, str):
        raise KdfParameterError("salt must be a hex string")
    text = raw[2:] if raw.lower().startswith("0x") else raw
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise KdfParameterError(f"salt is not valid hex: {e}") from e


@dataclass(frozen=True)
class KdfParams:
    """
    KDF choice, output length and salt, as stored in a keystore record.

    The all-zero salt only exists as a placeholder (see :meth:`placeholder`);
    :meth:`derive` refuses it. Production code should build instances with
    :meth:`new` and freshly generated random salt bytes.
    """

    kdf: Kdf
    dklen: int
    salt: bytes

    def __post_init__(self):
        if not isinstance(self.kdf, Kdf) or type(self.kdf) is Kdf:
            raise KdfParameterError(f"kdf must be Pbkdf2 or Scrypt, got {self.kdf!r}")
        if isinstance(self.dklen, bool) or not isinstance(self.dklen, int) or self.dklen <= 0:
            raise KdfParameterError("dklen must be a positive integer")
        if not isinstance(self.salt, (bytes, bytearray)):
            raise KdfParameterError("salt must be bytes")
        if len(self.salt) != KDF_SALT_BYTES:
            raise KdfParameterError(f"salt must be exactly {KDF_SALT_BYTES} bytes, got {len(self.salt)}")
        object.__setattr__(self, "salt", bytes(self.salt))

    @classmethod
    def new(
        cls,
        salt: bytes,
        kdf: Optional[Kdf] = None,
        dklen: int = DEFAULT_DK_LENGTH,
        *,
        max_memory: Optional[int] = None,
    ) -> "KdfParams":
        """
        Build parameters for real use; ``salt`` must be 32 random bytes.

        The cost parameters are checked here so that a record which can
        never derive is not written out in the first place.
        """
        if isinstance(salt, (bytes, bytearray)) and bytes(salt) == ZERO_SALT:
            raise KdfParameterError("all-zero salt is a placeholder and cannot be used")
        params = cls(kdf=kdf if kdf is not None else Kdf.default(), dklen=dklen, salt=salt)
        params.kdf.validate(max_memory)
        return params

    @classmethod
    def placeholder(cls) -> "KdfParams":
        """Default scrypt parameters with a zero salt. Not usable for encryption."""
        return cls(kdf=Kdf.default(), dklen=DEFAULT_DK_LENGTH, salt=ZERO_SALT)

    @property
    def is_placeholder(self) -> bool:
        return self.salt == ZERO_SALT

    def derive(self, passphrase: Union[str, bytes], *, max_memory: Optional[int] = None) -> bytes:
        if self.is_placeholder:
            raise KdfParameterError("refusing to derive with the all-zero placeholder salt")
        return self.kdf.derive(self.dklen, self.salt, passphrase, max_memory=max_memory)

    # ------------------------------------------------------------------
    # Persisted shape
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {"dklen": self.dklen, "salt": self.salt.hex()}
        record.update(self.kdf.to_dict())
        return record

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "KdfParams":
        if not isinstance(record, dict):
            raise KdfParameterError("KDF parameters must be a mapping")
        for key in ("dklen", "salt"):
            if key not in record:
                raise KdfParameterError(f"KDF parameters missing field: {key}")
        return cls(
            kdf=Kdf.from_dict(record),
            dklen=record["dklen"],
            salt=decode_salt(record["salt"]),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "KdfParams":
        try:
            record = json.loads(text)
        except ValueError as e:
            raise KdfParameterError(f"KDF parameters are not valid JSON: {e}") from e
        return cls.from_dict(record)
