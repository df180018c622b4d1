"""
Exceptions for walletkeys
Everything raised by the package derives from WalletKeysError so callers
can keep a single general error catcher
"""


class WalletKeysError(Exception):
    # general container for errors
    pass


class ConfigError(WalletKeysError):
    # raised when an environment setting has an unusable value
    pass


class PathError(WalletKeysError):
    # raised when an HD path string cannot be parsed
    pass


class PathFormatError(PathError):
    # raised when the root marker is missing or the grammar does not match
    pass


class ChildIndexError(PathError):
    # raised when a path segment is not a valid child index

    def __init__(self, segment: str, reason: str):
        self.segment = segment
        self.reason = reason
        super().__init__(f"Invalid HD path child index {segment!r}: {reason}")


class KeyDerivationError(WalletKeysError):
    # raised when the HD walk cannot produce a key
    pass


class InvalidSecretKeyError(KeyDerivationError):
    # raised when the resulting scalar is zero or not below the curve order
    pass


class KdfError(WalletKeysError):
    # general container for key derivation function errors
    pass


class KdfParameterError(KdfError):
    # raised when cost parameters, lengths or salts are not usable
    pass


class KdfExecutionError(KdfError):
    # raised when the underlying primitive fails
    pass
