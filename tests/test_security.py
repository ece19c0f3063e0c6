from datetime import timedelta

from doctor_helper.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    decrypt_secret,
    encrypt_secret,
    get_password_hash,
    mask_secret,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = get_password_hash("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)


def test_tokens_carry_type_claim():
    access = decode_token(create_access_token({"sub": "user-1"}))
    refresh = decode_token(create_refresh_token({"sub": "user-1"}))

    assert access["sub"] == "user-1"
    assert access["type"] == "access"
    assert refresh["type"] == "refresh"


def test_expired_and_garbage_tokens_decode_to_none():
    expired = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1))
    assert decode_token(expired) is None
    assert decode_token("not-a-token") is None


def test_secret_encryption():
    encrypted = encrypt_secret("sk-123")
    assert encrypted != "sk-123"
    assert decrypt_secret(encrypted) == "sk-123"
    assert decrypt_secret("tampered") is None


def test_mask_secret():
    assert mask_secret("sk-123") != "sk-123"
    assert mask_secret("") == ""
    assert mask_secret(None) == ""
