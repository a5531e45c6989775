import pytest
from backend.payments.webhook_auth import authenticate


def test_matching_key_is_accepted():
    assert authenticate("secret-key", "secret-key") is True

@pytest.mark.parametrize("presented,configured", [
    ("wrong", "secret-key"),
    ("secret-key ", "secret-key"),
    (None, "secret-key"),
    ("", "secret-key"),
    ("secret-key", ""),
    (None, None),
    ("", ""),
])
def test_missing_or_wrong_key_is_refused(presented, configured):
    assert authenticate(presented, configured) is False

def test_non_ascii_keys_are_compared():
    assert authenticate("clé-é", "clé-é") is True
    assert authenticate("clé-é", "cle-e") is False
