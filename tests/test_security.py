from common.security import hash_password, verify_password


def test_password_hash_is_salted_bcrypt():
    first = hash_password("correct horse")
    second = hash_password("correct horse")
    assert first.startswith("$2")
    assert first != second
    assert verify_password("correct horse", first)
    assert verify_password("correct horse", second)


def test_wrong_password_rejected():
    stored = hash_password("correct horse")
    assert not verify_password("battery staple", stored)


def test_missing_or_legacy_hash_rejected():
    assert not verify_password("anything", None)
    assert not verify_password("anything", "")
    assert not verify_password("anything", "5e884898da28047151d0e56f8dc6292773603d0d6aabbdd62a11ef721d1542d8")


def test_stored_hash_does_not_embed_password(make_user, db):
    user = make_user(email="hash@folio.test", password="s3cret-pass")
    assert "s3cret-pass" not in user.password_hash
    assert verify_password("s3cret-pass", user.password_hash)
