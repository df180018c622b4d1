"""walletkeys: HD wallet private keys and keystore passphrase keys."""

__version__ = "0.1.0"
