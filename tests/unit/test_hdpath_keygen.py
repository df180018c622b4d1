"""Unit tests for BIP-32 private key derivation."""

from unittest.mock import patch

import pytest
from eth_account import Account

from walletkeys.core.exceptions import InvalidSecretKeyError, KeyDerivationError
from walletkeys.hdpath.bip32 import HDPath, hardened, normal, parse
from walletkeys.hdpath.keygen import (
    SECP256K1_ORDER,
    CurveContext,
    ExtendedKey,
    SecretKey,
    derive_private_key,
)

REFERENCE_SEED = bytes.fromhex(
    "b15509eaa2d09d3efd3e006ef42151b3"
    "0367dc6e3aa5e44caba3fe4d3e352e65"
    "101fbdb86a96776b91946ff06f8eac59"
    "4dc6ee1d3e82a42dfe1b40fef6bcc3fd"
)
REFERENCE_ADDRESS = "0x79B9E1af57Ebb2600a134e28eA05e52A312957A6"

# BIP-32 test vector 1
TV1_SEED = bytes.fromhex("000102030405060708090a0b0c0d0e0f")
TV1_MASTER_KEY = "e8f32e723decf4051aefac8e2c93c9c5b214313817cdb01a1494b917c8436b35"
TV1_MASTER_CHAIN = "873dff81c02f525623fd1fe5167eac3a55a049de3d314bb42ee227ffed37d508"
TV1_MASTER_PUB = "0339a36013301597daef41fbe593a02cc513d0b55527ec2df1050e2e8ff49c85c2"


@pytest.fixture
def context():
    return CurveContext()


# ==============================================================================
# Tests: reference vectors
# ==============================================================================

def test_reference_seed_address(context):
    """The reference seed and path produce the known Ethereum address."""

    path = HDPath([hardened(44), hardened(60), hardened(160720), hardened(0), normal(0)])
    key = derive_private_key(path, REFERENCE_SEED, context)

    assert Account.from_key(key.to_bytes()).address == REFERENCE_ADDRESS


def test_bip32_vector1_master(context):
    master = ExtendedKey.from_seed(TV1_SEED, context)
    assert master.private_key.hex() == TV1_MASTER_KEY
    assert master.chain_code.hex() == TV1_MASTER_CHAIN
    assert master.depth == 0
    assert context.public_key(master.private_key).hex() == TV1_MASTER_PUB


def test_bip32_vector1_hardened_child(context):
    key = derive_private_key(parse("m/0'"), TV1_SEED, context)
    assert key.hex() == "edb2e14f9ee77d26dd93b4ecede8d16ed408ce149b6cd80b0715a2d911a0afea"


def test_bip32_vector1_normal_child(context):
    """m/0'/1 exercises the public-key branch of the walk."""
    key = derive_private_key(parse("m/0'/1"), TV1_SEED, context)
    assert key.hex() == "3c6cb8d0f6a264c91ea8b5030fadaa8e538b020f0a387421a12de9319dc93368"


def test_bip32_vector1_deep_path(context):
    key = derive_private_key(parse("m/0'/1/2'/2/1000000000"), TV1_SEED, context)
    assert key.hex() == "471b76e389e528d6de6d816857e012c5455051cad6660850e58372a6c3e6e7c8"


def test_derive_path_tracks_depth(context):
    master = ExtendedKey.from_seed(TV1_SEED, context)
    leaf = master.derive_path(parse("m/0'/1/2'"), context)
    assert leaf.depth == 3


# ==============================================================================
# Tests: determinism and context handling
# ==============================================================================

def test_derivation_is_deterministic(context):
    path = parse("m/44'/60'/0'/0/3")
    assert derive_private_key(path, REFERENCE_SEED, context) == derive_private_key(
        path, REFERENCE_SEED, context
    )


def test_context_is_optional():
    path = parse("m/44'/60'/0'/0/0")
    assert derive_private_key(path, REFERENCE_SEED) == derive_private_key(
        path, REFERENCE_SEED, CurveContext()
    )


def test_hardened_and_normal_differ(context):
    a = derive_private_key(parse("m/0"), TV1_SEED, context)
    b = derive_private_key(parse("m/0'"), TV1_SEED, context)
    assert a != b


# ==============================================================================
# Tests: failures
# ==============================================================================

def test_empty_seed_rejected(context):
    with pytest.raises(KeyDerivationError):
        derive_private_key(parse("m/0"), b"", context)


def test_invalid_master_key_reported(context):
    """A seed whose HMAC output is out of range is surfaced, not retried."""
    with patch("walletkeys.hdpath.keygen.CurveContext.is_valid_scalar", return_value=False):
        with pytest.raises(KeyDerivationError):
            ExtendedKey.from_seed(TV1_SEED, context)


def test_invalid_child_tweak_reported(context):
    """I_L at or above the curve order fails the step instead of skipping the index."""
    master = ExtendedKey.from_seed(TV1_SEED, context)
    small_order = CurveContext(order=1)
    with pytest.raises(KeyDerivationError) as excinfo:
        master.derive_child(hardened(0), small_order)
    assert "0'" in str(excinfo.value)


def test_invalid_final_scalar(context):
    with patch("walletkeys.hdpath.keygen.ExtendedKey.derive_path") as mock_walk:
        mock_walk.return_value = ExtendedKey(private_key=bytes(32), chain_code=bytes(32), depth=1)
        with pytest.raises(InvalidSecretKeyError):
            derive_private_key(parse("m/0"), TV1_SEED, context)


def test_invalid_secret_key_is_key_derivation_error():
    assert issubclass(InvalidSecretKeyError, KeyDerivationError)


# ==============================================================================
# Tests: SecretKey
# ==============================================================================

@pytest.mark.parametrize(
    "raw",
    [bytes(32), SECP256K1_ORDER.to_bytes(32, "big"), b"\x01" * 31, b"\x01" * 33],
)
def test_secret_key_rejects_invalid(raw):
    with pytest.raises(InvalidSecretKeyError):
        SecretKey(raw)


def test_secret_key_public_key_formats(context):
    key = SecretKey(bytes.fromhex(TV1_MASTER_KEY))
    compressed = key.public_key(context)
    uncompressed = key.public_key(context, compressed=False)

    assert compressed.hex() == TV1_MASTER_PUB
    assert len(uncompressed) == 65
    assert uncompressed[0] == 0x04
    assert uncompressed[1:33] == compressed[1:]


def test_secret_key_repr_hides_secret():
    key = SecretKey(bytes.fromhex(TV1_MASTER_KEY))
    assert TV1_MASTER_KEY not in repr(key)
