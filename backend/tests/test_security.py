from lamont.core.security import get_password_hash, verify_password


def test_hash_then_verify_round_trip():
    digest = get_password_hash("correct-horse")
    assert digest != "correct-horse"
    assert verify_password("correct-horse", digest) is True


def test_verify_rejects_other_password():
    digest = get_password_hash("correct-horse")
    assert verify_password("battery-staple", digest) is False


def test_same_password_gets_distinct_salts():
    first = get_password_hash("correct-horse")
    second = get_password_hash("correct-horse")
    assert first != second
    assert verify_password("correct-horse", first)
    assert verify_password("correct-horse", second)


def test_unrecognised_digest_is_a_mismatch_not_an_error():
    assert verify_password("correct-horse", "not-a-bcrypt-hash") is False
