"""
Command-line front end for walletkeys.

Commands:
    path PATH [--strict]
    -> prints the parsed child numbers, one per line

    derive-key PATH (--seed-hex HEX | --seed-file FILE)
    -> prints the private key and compressed public key in hex

    kdf-params --salt-hex HEX [--level LEVEL | --pbkdf2 [--prf PRF] [-c N]] [--dklen N]
    -> prints a KDF parameter record as JSON

    derive-kdf PARAMS_FILE
    -> prints the key derived from a passphrase with the stored parameters;
       the passphrase comes from WALLETKEYS_PASSPHRASE or an interactive prompt

Usage:
    walletkeys derive-key "m/44'/60'/0'/0/0" --seed-hex b155...c3fd
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional
import argparse
import getpass
import logging
import sys

from walletkeys.config import Settings, load_settings
from walletkeys.core.exceptions import WalletKeysError
from walletkeys.hdpath import CurveContext, HDPath, derive_private_key
from walletkeys.security import KdfParams, Pbkdf2, Prf, Scrypt
from walletkeys.security.kdf import decode_salt
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def _read_seed(args: argparse.Namespace) -> bytes:
    if args.seed_file:
        raw = Path(args.seed_file).expanduser().read_text(encoding="utf-8")
    else:
        raw = args.seed_hex
    text = raw.strip()
    if text.lower().startswith("0x"):
        text = text[2:]
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise WalletKeysError(f"seed is not valid hex: {e}") from e


def cmd_path(args: argparse.Namespace, settings: Settings) -> int:
    path = HDPath.parse(args.path, strict=args.strict)
    for child in path:
        print(child)
    return 0


def cmd_derive_key(args: argparse.Namespace, settings: Settings) -> int:
    context = CurveContext()
    path = HDPath.parse(args.path, strict=args.strict)
    key = derive_private_key(path, _read_seed(args), context)
    print(f"private_key: {key.hex()}")
    print(f"public_key:  {key.public_key(context).hex()}")
    return 0


def cmd_kdf_params(args: argparse.Namespace, settings: Settings) -> int:
    salt = decode_salt(args.salt_hex.strip())

    if args.pbkdf2:
        kdf = Pbkdf2(prf=Prf(args.prf), c=args.c)
    else:
        kdf = Scrypt.from_level(args.level or settings.kdf_level)
    params = KdfParams.new(salt, kdf=kdf, dklen=args.dklen, max_memory=settings.scrypt_max_memory)
    print(params.to_json())
    return 0


def cmd_derive_kdf(args: argparse.Namespace, settings: Settings) -> int:
    text = Path(args.params_file).expanduser().read_text(encoding="utf-8")
    params = KdfParams.from_json(text)

    passphrase = settings.passphrase
    if passphrase is None:
        try:
            passphrase = getpass.getpass("Passphrase: ")
        except (EOFError, KeyboardInterrupt) as e:
            raise WalletKeysError("no passphrase entered") from e

    key = params.derive(passphrase, max_memory=settings.scrypt_max_memory)
    print(key.hex())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="walletkeys",
        description="Derive HD wallet private keys and keystore passphrase keys.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_path = sub.add_parser("path", help="Parse and print an HD derivation path")
    p_path.add_argument("path")
    p_path.add_argument("--strict", action="store_true", help="Match the full path grammar first")
    p_path.set_defaults(func=cmd_path)

    p_key = sub.add_parser("derive-key", help="Derive a private key from a seed")
    p_key.add_argument("path")
    p_key.add_argument("--strict", action="store_true", help="Match the full path grammar first")
    seed = p_key.add_mutually_exclusive_group(required=True)
    seed.add_argument("--seed-hex", help="Seed bytes as hex")
    seed.add_argument("--seed-file", help="File containing the seed as hex")
    p_key.set_defaults(func=cmd_derive_key)

    p_params = sub.add_parser("kdf-params", help="Build a KDF parameter record")
    p_params.add_argument("--salt-hex", required=True, help="32 random bytes as hex")
    p_params.add_argument("--level", choices=["normal", "high", "ultra"], help="scrypt preset")
    p_params.add_argument("--pbkdf2", action="store_true", help="Use PBKDF2 instead of scrypt")
    p_params.add_argument("--prf", default=Prf.default().value, choices=[p.value for p in Prf])
    p_params.add_argument("-c", type=int, default=262_144, help="PBKDF2 iteration count")
    p_params.add_argument("--dklen", type=int, default=32, help="Derived key length in bytes")
    p_params.set_defaults(func=cmd_kdf_params)

    p_derive = sub.add_parser("derive-kdf", help="Derive a key from a passphrase")
    p_derive.add_argument("params_file", help="JSON file with the KDF parameter record")
    p_derive.set_defaults(func=cmd_derive_kdf)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
        configure_logging(settings.log_level)
        return args.func(args, settings)
    except (WalletKeysError, OSError) as e:
        logger.debug("command %s failed", args.command, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
