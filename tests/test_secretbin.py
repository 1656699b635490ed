"""
SecretBin — Test Suite

Tests the content model, PBKDF2 + AES-256-GCM encryption,
the crypto URL codec and the password generator.
"""

import base64
import hashlib
import json
import os
import sys
import tempfile

import base58
import cbor2
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

# Add parent to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from secretbin import crypto, cryptourl, password
from secretbin.content import Secret, guess_content_type
from secretbin.errors import ErrorKind, SecretBinError


def open_secret(key_token, payload, pw='', compact=False):
    """Decrypt a payload the way a SecretBin web client would."""
    url = cryptourl.decode(payload)
    base_key = base58.b58decode(key_token)
    key = crypto.derive_key(base_key, pw, url.salt, url.iterations)
    plaintext = AESGCM(key).decrypt(url.nonce, url.ciphertext, None)
    return Secret.from_bytes(plaintext, compact)


# ==========================================================================
# Content Tests
# ==========================================================================

def test_content_attachment_type_deferred():
    """Empty content types are only filled in by finalize()."""
    secret = Secret(message="see attached")
    secret.add_attachment("report.pdf", "", b"%PDF-1.7")
    assert secret.attachments[0].content_type == ""

    secret.finalize()
    assert secret.attachments[0].content_type == "application/pdf"


def test_content_explicit_type_kept():
    secret = Secret()
    secret.add_attachment("data.bin", "application/x-custom", b"\x00\x01")
    secret.finalize()
    assert secret.attachments[0].content_type == "application/x-custom"


def test_content_unknown_extension():
    """Unknown extensions infer an empty type without failing."""
    assert guess_content_type("notes.zzzunknown") == ""
    assert guess_content_type("Makefile") == ""
    assert guess_content_type("photo.PNG") == "image/png"


def test_content_file_attachment():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "report.pdf")
        with open(path, 'wb') as f:
            f.write(b"%PDF-1.7 binary \xff\x00")

        secret = Secret()
        secret.add_file_attachment(path)

    a = secret.attachments[0]
    assert a.name == "report.pdf"
    assert a.content_type == ""
    assert a.data == b"%PDF-1.7 binary \xff\x00"


def test_content_missing_file_not_wrapped():
    """A missing file raises the filesystem's own error."""
    secret = Secret()
    try:
        secret.add_file_attachment("/nonexistent/dir/file.txt")
        assert False, "Should have raised OSError"
    except SecretBinError:
        assert False, "OSError must not be wrapped"
    except OSError:
        pass
    assert secret.attachments == []


def test_content_json_shape():
    """Legacy serialization: attachments always present, data base64."""
    empty = json.loads(Secret(message="hello").to_bytes())
    assert empty == {"message": "hello", "attachments": []}

    secret = Secret(message="hi", attachments=None)
    secret.finalize()
    assert json.loads(secret.to_bytes())["attachments"] == []

    secret.add_attachment("a.txt", "text/plain", b"\x00\xffabc")
    obj = json.loads(secret.to_bytes())
    att = obj["attachments"][0]
    assert att["name"] == "a.txt"
    assert att["contentType"] == "text/plain"
    assert base64.b64decode(att["data"]) == b"\x00\xffabc"


def test_content_cbor_shape():
    """Compact serialization keeps attachment data as raw bytes."""
    secret = Secret(message="hi")
    secret.add_attachment("a.bin", "application/octet-stream", bytes(range(256)))
    obj = cbor2.loads(secret.to_bytes(compact=True))
    assert obj["message"] == "hi"
    assert obj["attachments"][0]["data"] == bytes(range(256))


# ==========================================================================
# Crypto Tests
# ==========================================================================

def test_crypto_derive_key_matches_pbkdf2():
    """Derived key is PBKDF2-HMAC-SHA512(base_key || password)."""
    base_key = bytes(range(32))
    salt = bytes(range(16))
    expected = hashlib.pbkdf2_hmac('sha512', base_key + "pässword".encode('utf-8'), salt, 210000, 32)
    assert crypto.derive_key(base_key, "pässword", salt) == expected


def test_crypto_empty_password_still_derived():
    base_key = os.urandom(32)
    salt = os.urandom(16)
    derived = crypto.derive_key(base_key, "", salt)
    assert len(derived) == 32
    assert derived != base_key
    assert derived == hashlib.pbkdf2_hmac('sha512', base_key, salt, 210000, 32)


def test_crypto_seal_known_inputs():
    """Fixed inputs produce the AES-GCM output of the derived key."""
    base_key = b'\x11' * 32
    nonce = b'\x22' * 12
    salt = b'\x33' * 16
    plaintext = b'{"message":"hello","attachments":[]}'

    result = crypto.seal(plaintext, "pw", base_key, nonce, salt)
    key = hashlib.pbkdf2_hmac('sha512', base_key + b"pw", salt, 210000, 32)
    assert result.ciphertext == AESGCM(key).encrypt(nonce, plaintext, None)
    assert len(result.ciphertext) == len(plaintext) + crypto.TAG_SIZE

    again = crypto.seal(plaintext, "pw", base_key, nonce, salt)
    assert again.ciphertext == result.ciphertext


def test_crypto_parameter_sizes():
    result = crypto.encrypt_bytes(b"payload")
    assert len(result.base_key) == 32
    assert len(result.nonce) == 12
    assert len(result.salt) == 16
    assert result.iterations == 210000


def test_crypto_round_trip_legacy():
    """Encrypt then decrypt with the derived key recovers the secret."""
    secret = Secret(message="The documents are in the safe.")
    secret.add_attachment("report.pdf", "", os.urandom(2048))

    key, payload = crypto.encrypt(secret, "")
    assert isinstance(payload, cryptourl.Text)

    recovered = open_secret(key, payload)
    assert recovered.message == secret.message
    assert recovered.attachments[0].data == secret.attachments[0].data
    assert recovered.attachments[0].content_type == "application/pdf"


def test_crypto_round_trip_compact_with_password():
    secret = Secret(message="höher geheim")
    secret.add_attachment("blob.bin", "application/octet-stream", b"\x00" * 100)

    key, payload = crypto.encrypt(secret, "correct horse", compact=True)
    assert isinstance(payload, cryptourl.Binary)

    recovered = open_secret(key, payload, "correct horse", compact=True)
    assert recovered == secret


def test_crypto_wrong_password():
    """The password is a required second factor once set."""
    key, payload = crypto.encrypt(Secret(message="x"), "right")
    try:
        open_secret(key, payload, "wrong")
        assert False, "Should have failed authentication"
    except Exception as e:
        assert type(e).__name__ == "InvalidTag"


def test_crypto_file_attachment_content_type():
    """A file attached from disk gets its MIME type in the encrypted form."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "report.pdf")
        with open(path, 'wb') as f:
            f.write(b"%PDF-1.7\n\x00\xff")

        secret = Secret(message="quarterly numbers")
        secret.add_file_attachment(path)

    for compact in (False, True):
        key, payload = crypto.encrypt(secret, "", compact=compact)
        recovered = open_secret(key, payload, compact=compact)
        att = recovered.attachments[0]
        assert att.name == "report.pdf"
        assert att.content_type == "application/pdf"
        assert att.data == b"%PDF-1.7\n\x00\xff"

    key, payload = crypto.encrypt(Secret(message="x", attachments=[]), "")
    url = cryptourl.decode(payload)
    base_key = base58.b58decode(key)
    raw = AESGCM(crypto.derive_key(base_key, "", url.salt)).decrypt(url.nonce, url.ciphertext, None)
    assert json.loads(raw)["attachments"] == []


def test_crypto_fresh_per_call():
    """Same secret twice: different key, nonce, salt and ciphertext."""
    secret = Secret(message="same every time")
    key1, p1 = crypto.encrypt(secret, "")
    key2, p2 = crypto.encrypt(secret, "")
    u1, u2 = cryptourl.decode(p1), cryptourl.decode(p2)

    assert key1 != key2
    assert u1.nonce != u2.nonce
    assert u1.salt != u2.salt
    assert u1.ciphertext != u2.ciphertext


def test_crypto_key_token_is_base58_base_key():
    key, _ = crypto.encrypt(Secret(message="k"), "")
    assert len(base58.b58decode(key)) == 32


def test_crypto_randomness_failure():
    """A failing random source is fatal and reported by kind."""
    def broken(size):
        raise OSError("entropy pool unavailable")

    original = crypto.os.urandom
    crypto.os.urandom = broken
    try:
        crypto.encrypt(Secret(message="x"), "")
        assert False, "Should have raised SecretBinError"
    except SecretBinError as e:
        assert e.kind is ErrorKind.RANDOMNESS_FAILURE
    finally:
        crypto.os.urandom = original


# ==========================================================================
# Crypto URL Tests
# ==========================================================================

def test_cryptourl_legacy_format():
    url = cryptourl.CryptoURL(
        nonce=b'\x01' * 12, salt=b'\x02' * 16, iterations=210000, ciphertext=b'\xfe' * 20,
    )
    s = cryptourl.encode_legacy(url)
    nonce = base58.b58encode(url.nonce).decode()
    salt = base58.b58encode(url.salt).decode()
    expected = (
        "crypto://?algorithm=AES256-GCM&key-algorithm=pbkdf2"
        f"&nonce={nonce}"
        f"&salt={salt}"
        "&iter=210000&hash=SHA-512#"
        + base64.b64encode(b'\xfe' * 20).decode()
    )
    assert s == expected


def test_cryptourl_legacy_parse():
    """Parsing the produced string recovers every parameter."""
    _, payload = crypto.encrypt(Secret(message="parse me"), "")
    url = cryptourl.parse_legacy(payload.value)

    assert url.algorithm == "AES256-GCM"
    assert url.key_algorithm == "pbkdf2"
    assert url.hash == "SHA-512"
    assert url.iterations == 210000
    assert len(url.nonce) == 12
    assert len(url.salt) == 16
    assert cryptourl.encode_legacy(url) == payload.value


def test_cryptourl_compact_fields():
    """Compact form carries the same parameters with raw bytes."""
    _, payload = crypto.encrypt(Secret(message="compact"), "", compact=True)
    obj = cbor2.loads(payload.value)

    assert set(obj) == {"algorithm", "key-algorithm", "nonce", "salt", "iter", "hash", "data"}
    assert obj["algorithm"] == "AES256-GCM"
    assert obj["key-algorithm"] == "pbkdf2"
    assert obj["hash"] == "SHA-512"
    assert obj["iter"] == 210000
    assert isinstance(obj["nonce"], bytes) and len(obj["nonce"]) == 12
    assert isinstance(obj["salt"], bytes) and len(obj["salt"]) == 16
    assert isinstance(obj["data"], bytes)


def test_cryptourl_parse_errors():
    bad_inputs = [
        "https://example.com/",
        "crypto://?algorithm=AES256-GCM",
        "crypto://?algorithm=AES256-GCM&nonce=abc#AAAA",
        "crypto://?algorithm=AES256-GCM&key-algorithm=pbkdf2&nonce=2&salt=2&iter=x&hash=SHA-512#AAAA",
    ]
    for value in bad_inputs:
        try:
            cryptourl.parse_legacy(value)
            assert False, f"Should have rejected {value!r}"
        except SecretBinError as e:
            assert e.kind is ErrorKind.SECRET_PARSE

    for value in (b"\xff\xff", cbor2.dumps([1, 2]), cbor2.dumps({"algorithm": "AES256-GCM"})):
        try:
            cryptourl.parse_compact(value)
            assert False, f"Should have rejected {value!r}"
        except SecretBinError as e:
            assert e.kind is ErrorKind.SECRET_PARSE


# ==========================================================================
# Password Tests
# ==========================================================================

def test_password_default():
    pw = password.generate_password()
    assert len(pw) == 16
    assert any(c in password.UPPERCASE for c in pw)
    assert any(c in password.LOWERCASE for c in pw)
    assert any(c in password.DIGITS for c in pw)
    assert any(c in password.SYMBOLS for c in pw)


def test_password_single_set():
    opts = password.PasswordOptions(uppercase=False, lowercase=False, symbols=False, length=32)
    pw = password.generate_password(opts)
    assert len(pw) == 32
    assert all(c in password.DIGITS for c in pw)


def test_password_zero_length_uses_default():
    pw = password.generate_password(password.PasswordOptions(length=0))
    assert len(pw) == password.DEFAULT_LENGTH


def test_password_invalid_options():
    for opts in (
        password.PasswordOptions(length=6),
        password.PasswordOptions(uppercase=False, lowercase=False, digits=False, symbols=False),
    ):
        try:
            password.generate_password(opts)
            assert False, f"Should have raised ValueError for {opts}"
        except ValueError:
            pass


def test_password_unique():
    seen = {password.generate_password() for _ in range(50)}
    assert len(seen) == 50


# ==========================================================================
# Runner
# ==========================================================================

def run_all():
    tests = [
        # Content
        test_content_attachment_type_deferred,
        test_content_explicit_type_kept,
        test_content_unknown_extension,
        test_content_file_attachment,
        test_content_missing_file_not_wrapped,
        test_content_json_shape,
        test_content_cbor_shape,
        # Crypto
        test_crypto_derive_key_matches_pbkdf2,
        test_crypto_empty_password_still_derived,
        test_crypto_seal_known_inputs,
        test_crypto_parameter_sizes,
        test_crypto_round_trip_legacy,
        test_crypto_round_trip_compact_with_password,
        test_crypto_wrong_password,
        test_crypto_file_attachment_content_type,
        test_crypto_fresh_per_call,
        test_crypto_key_token_is_base58_base_key,
        test_crypto_randomness_failure,
        # Crypto URL
        test_cryptourl_legacy_format,
        test_cryptourl_legacy_parse,
        test_cryptourl_compact_fields,
        test_cryptourl_parse_errors,
        # Password
        test_password_default,
        test_password_single_set,
        test_password_zero_length_uses_default,
        test_password_invalid_options,
        test_password_unique,
    ]

    passed = 0
    failed = 0
    for t in tests:
        try:
            t()
            print(f"[PASS] {t.__name__}")
            passed += 1
        except Exception as e:
            print(f"[FAIL] {t.__name__}: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print(f"\n--- SecretBin tests: {passed} passed, {failed} failed ---")
    return failed == 0


if __name__ == "__main__":
    sys.exit(0 if run_all() else 1)
