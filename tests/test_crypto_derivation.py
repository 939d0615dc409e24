"""
Hashing, address and deterministic derivation tests.

Coverage:
  - keccak256 input forms (bytes, text, hex string)
  - address validation / normalization / byte conversion
  - derive_address limits and stability
  - reward vault, stake record and escrow locations
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from stakeledger.constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    MAX_SEED_LENGTH,
    MAX_SEEDS,
    STAKE_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from stakeledger.crypto import (
    address_from_label,
    address_to_bytes,
    associated_token_address,
    bytes_to_address,
    derive_address,
    escrow_address,
    is_valid_address,
    keccak256,
    keccak256_hex,
    normalize_address,
    reward_vault_address,
    stake_record_address,
)
from stakeledger.exceptions import InvalidAddressError, InvalidSeedsError

EMPTY_KECCAK = "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"

ALICE = address_from_label("alice")
BOB = address_from_label("bob")
USDC = address_from_label("mint:usdc")
USDT = address_from_label("mint:usdt")


# ============================================================================
#  HASHING
# ============================================================================

class TestKeccak:

    def test_empty_bytes(self):
        assert keccak256(b"").hex() == EMPTY_KECCAK

    def test_text_and_bytes_agree(self):
        assert keccak256("stake") == keccak256(b"stake")

    def test_hex_string_is_decoded(self):
        assert keccak256("0x") == keccak256(b"")
        assert keccak256("0x0102") == keccak256(b"\x01\x02")

    def test_hex_output(self):
        assert keccak256_hex(b"") == "0x" + EMPTY_KECCAK

    def test_digest_length(self):
        assert len(keccak256(b"anything")) == 32


# ============================================================================
#  ADDRESSES
# ============================================================================

class TestAddressFormat:

    def test_valid_address(self):
        assert is_valid_address("0x" + "ab" * 32)

    @pytest.mark.parametrize("candidate", [
        "ab" * 32,              # missing prefix
        "0x" + "ab" * 31,       # too short
        "0x" + "ab" * 33,       # too long
        "0x" + "zz" * 32,       # not hex
        None,
        42,
    ])
    def test_invalid_addresses(self, candidate):
        assert not is_valid_address(candidate)

    def test_normalize_lowercases(self):
        assert normalize_address("0x" + "AB" * 32) == "0x" + "ab" * 32

    def test_normalize_rejects_garbage(self):
        with pytest.raises(InvalidAddressError):
            normalize_address("0xnothex")

    def test_bytes_round_trip(self):
        raw = address_to_bytes(ALICE)
        assert len(raw) == 32
        assert bytes_to_address(raw) == ALICE

    def test_bytes_to_address_length_checked(self):
        with pytest.raises(InvalidAddressError):
            bytes_to_address(b"\x00" * 20)

    def test_labels_are_deterministic(self):
        assert address_from_label("alice") == ALICE
        assert ALICE != BOB


# ============================================================================
#  DERIVATION
# ============================================================================

class TestDeriveAddress:

    def test_stable(self):
        first = derive_address([b"reward", USDC], STAKE_PROGRAM_ID)
        second = derive_address([b"reward", USDC], STAKE_PROGRAM_ID)
        assert first == second
        assert is_valid_address(first)

    def test_depends_on_every_input(self):
        base = derive_address([b"reward", USDC], STAKE_PROGRAM_ID)
        assert derive_address([b"reward", USDT], STAKE_PROGRAM_ID) != base
        assert derive_address([b"rewards", USDC], STAKE_PROGRAM_ID) != base
        assert derive_address([b"reward", USDC], TOKEN_PROGRAM_ID) != base

    def test_address_seed_equals_raw_bytes(self):
        assert derive_address([USDC], STAKE_PROGRAM_ID) == derive_address(
            [address_to_bytes(USDC)], STAKE_PROGRAM_ID
        )

    def test_seed_order_matters(self):
        assert derive_address([ALICE, USDC], STAKE_PROGRAM_ID) != derive_address(
            [USDC, ALICE], STAKE_PROGRAM_ID
        )

    def test_max_seeds(self):
        derive_address([b"s"] * MAX_SEEDS, STAKE_PROGRAM_ID)
        with pytest.raises(InvalidSeedsError):
            derive_address([b"s"] * (MAX_SEEDS + 1), STAKE_PROGRAM_ID)

    def test_max_seed_length(self):
        derive_address([b"x" * MAX_SEED_LENGTH], STAKE_PROGRAM_ID)
        with pytest.raises(InvalidSeedsError):
            derive_address([b"x" * (MAX_SEED_LENGTH + 1)], STAKE_PROGRAM_ID)

    def test_invalid_seeds_is_an_address_error(self):
        assert issubclass(InvalidSeedsError, InvalidAddressError)


class TestProgramAccounts:

    def test_reward_vault_per_token_class(self):
        assert reward_vault_address(USDC) == derive_address([b"reward", USDC], STAKE_PROGRAM_ID)
        assert reward_vault_address(USDC) != reward_vault_address(USDT)

    def test_stake_record_per_pair(self):
        expected = derive_address([b"stake_info", ALICE, USDC], STAKE_PROGRAM_ID)
        assert stake_record_address(ALICE, USDC) == expected
        assert stake_record_address(BOB, USDC) != expected
        assert stake_record_address(ALICE, USDT) != expected

    def test_escrow_is_associated_account_of_record(self):
        record = stake_record_address(ALICE, USDC)
        assert escrow_address(ALICE, USDC) == associated_token_address(record, USDC)

    def test_associated_token_address(self):
        expected = derive_address([ALICE, TOKEN_PROGRAM_ID, USDC], ASSOCIATED_TOKEN_PROGRAM_ID)
        assert associated_token_address(ALICE, USDC) == expected

    def test_program_id_scopes_accounts(self):
        other_program = address_from_label("other-program")
        assert stake_record_address(ALICE, USDC, other_program) != stake_record_address(ALICE, USDC)

    def test_case_insensitive_inputs(self):
        upper = "0x" + ALICE[2:].upper()
        assert stake_record_address(upper, USDC) == stake_record_address(ALICE, USDC)
