"""Tests for preimage format validation and hashing."""

import pytest

from lnpaywall.constants import REASON_BAD_FORMAT, REASON_BAD_HEX
from lnpaywall.errors import ClientError
from lnpaywall.preimage import PreimageFormatError, hash_preimage, validate_format

ZERO_PREIMAGE = "00" * 32
ZERO_PREIMAGE_HASH = "66687aadf862bd776c8fc18b8e9f8e20089714856ee233b3902a591d0d5f2925"


class TestValidateFormat:
    def test_valid_lowercase(self) -> None:
        validate_format("ab" * 32)

    def test_valid_uppercase(self) -> None:
        validate_format("AB" * 32)

    @pytest.mark.parametrize("value", ["", "a", "0" * 62, "0" * 63, "0" * 65, "0" * 128])
    def test_wrong_length(self, value: str) -> None:
        with pytest.raises(PreimageFormatError) as exc_info:
            validate_format(value)
        assert exc_info.value.message == REASON_BAD_FORMAT

    @pytest.mark.parametrize("value", ["g" * 64, "0" * 63 + "z", " " * 64, "0x" + "0" * 62])
    def test_non_hex(self, value: str) -> None:
        with pytest.raises(PreimageFormatError) as exc_info:
            validate_format(value)
        assert exc_info.value.message == REASON_BAD_HEX

    def test_is_client_error(self) -> None:
        with pytest.raises(ClientError) as exc_info:
            validate_format("nope")
        assert exc_info.value.status_code == 400


class TestHashPreimage:
    def test_known_vector(self) -> None:
        assert hash_preimage(ZERO_PREIMAGE) == ZERO_PREIMAGE_HASH

    def test_deterministic(self) -> None:
        preimage = "0123456789abcdef" * 4
        assert hash_preimage(preimage) == hash_preimage(preimage)

    def test_case_insensitive_input(self) -> None:
        assert hash_preimage("AB" * 32) == hash_preimage("ab" * 32)

    def test_output_is_64_hex(self) -> None:
        digest = hash_preimage("ff" * 32)
        assert len(digest) == 64
        int(digest, 16)
