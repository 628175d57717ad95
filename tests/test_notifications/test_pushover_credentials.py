"""
Tests for the stored 'token:userkey' Pushover credential form.
"""

import pytest

from notifications.channels import encode_pushover_credential, split_pushover_credential
from notifications.errors import CredentialError

from conftest import PUSHOVER_TOKEN, PUSHOVER_USER_KEY


class TestSplitPushoverCredential:
    """Tests for parsing a stored credential."""

    def test_encode_then_split(self):
        credential = encode_pushover_credential(PUSHOVER_TOKEN, PUSHOVER_USER_KEY)

        assert credential == f"{PUSHOVER_TOKEN}:{PUSHOVER_USER_KEY}"
        assert split_pushover_credential(credential) == (PUSHOVER_TOKEN, PUSHOVER_USER_KEY)

    def test_whitespace_is_trimmed(self):
        """Test that spaces around either half are ignored."""
        credential = f"  {PUSHOVER_TOKEN} : {PUSHOVER_USER_KEY}\n"

        assert split_pushover_credential(credential) == (PUSHOVER_TOKEN, PUSHOVER_USER_KEY)

    @pytest.mark.parametrize("credential", [None, "", PUSHOVER_TOKEN + PUSHOVER_USER_KEY])
    def test_missing_colon(self, credential):
        with pytest.raises(CredentialError, match="token:userkey"):
            split_pushover_credential(credential)

    def test_second_colon_rejected(self):
        """Test that a user key containing a colon is rejected."""
        with pytest.raises(CredentialError, match="colon"):
            split_pushover_credential(f"{PUSHOVER_TOKEN}:{PUSHOVER_USER_KEY}:extra")

    @pytest.mark.parametrize("credential", [
        f"abcde:{PUSHOVER_USER_KEY}",
        f"{PUSHOVER_TOKEN}:abcde",
        "short:userkey",
        f"   :{PUSHOVER_USER_KEY}",
    ])
    def test_short_halves_rejected(self, credential):
        with pytest.raises(CredentialError, match="length"):
            split_pushover_credential(credential)

    def test_credential_error_is_value_error(self):
        with pytest.raises(ValueError):
            split_pushover_credential("no-colon-here")
