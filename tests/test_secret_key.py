import pytest

from onetime import secret_key
from onetime.base32 import encode
from onetime.errors import (
    ArgumentOutOfRangeError,
    MissingValueError,
    SecretFormatError,
    SecretTooLongError,
)
from onetime.secret_key import SecretKey
from tests.conftest import RFC_SECRET_B32, RFC_SECRET_SHA1


def test_from_bytes():
    key = SecretKey(RFC_SECRET_SHA1)
    assert key.length == 20
    assert len(key) == 20
    assert key.export_base32() == RFC_SECRET_B32


def test_from_base32():
    key = SecretKey(RFC_SECRET_B32.lower())
    assert bytes(key.get_secret()) == RFC_SECRET_SHA1


def test_export_formats():
    key = SecretKey(b'foobar')
    assert key.export_base32() == 'MZXW 6YTB OI'
    assert key.export_base32(spacing=False, padding=True) == 'MZXW6YTBOI======'
    assert key.export_base32(spacing=False, uppercase=False) == 'mzxw6ytboi'


def test_generate_default_length():
    key = SecretKey.generate()
    assert key.length == 20
    assert SecretKey.generate().get_secret() != key.get_secret()


def test_generate_custom_length():
    assert SecretKey.generate(1024).length == 1024
    assert SecretKey.generate(1).length == 1


@pytest.mark.parametrize('length', [0, -1, 1025, 20.0, '20', True])
def test_generate_length_out_of_range(length):
    with pytest.raises(ArgumentOutOfRangeError):
        SecretKey.generate(length)


def test_max_length_accepted():
    assert SecretKey(bytes(1024)).length == 1024


def test_too_long_bytes():
    with pytest.raises(SecretTooLongError):
        SecretKey(bytes(1025))


def test_too_long_base32():
    with pytest.raises(SecretTooLongError):
        SecretKey(encode(bytes(1025)))


def test_too_long_is_value_error():
    with pytest.raises(ValueError):
        SecretKey(bytes(2000))


def test_invalid_base32():
    with pytest.raises(SecretFormatError):
        SecretKey('not base32!')


def test_missing_secret():
    with pytest.raises(MissingValueError):
        SecretKey(None)


def test_unsupported_type():
    with pytest.raises(SecretFormatError):
        SecretKey(12345)


def test_buffer_protected_at_rest():
    key = SecretKey(RFC_SECRET_SHA1)
    assert key.is_protected
    assert bytes(key._buffer[:20]) != RFC_SECRET_SHA1


def test_protection_changes_each_access():
    key = SecretKey(RFC_SECRET_SHA1)
    before = bytes(key._buffer)
    key.get_secret()
    assert key.is_protected
    assert bytes(key._buffer) != before


def test_get_secret_returns_copy():
    key = SecretKey(RFC_SECRET_SHA1)
    copy = key.get_secret()
    copy[:] = bytes(len(copy))
    assert bytes(key.get_secret()) == RFC_SECRET_SHA1


def test_protected_access_wipes_copy():
    key = SecretKey(RFC_SECRET_SHA1)
    with key.protected_access() as secret:
        assert bytes(secret) == RFC_SECRET_SHA1
        assert key.is_protected
    assert secret == bytearray(20)


def test_protected_access_wipes_on_error():
    key = SecretKey(RFC_SECRET_SHA1)
    with pytest.raises(RuntimeError):
        with key.protected_access() as secret:
            raise RuntimeError('boom')
    assert secret == bytearray(20)
    assert key.is_protected
    assert bytes(key.get_secret()) == RFC_SECRET_SHA1


def test_repr_hides_secret():
    key = SecretKey(b'foobar')
    assert 'foobar' not in repr(key)
    assert 'MZXW' not in repr(key)


class _RecordingCipher:
    """Wraps Cipher and records what each encryptor is fed and returns."""

    real = None
    seen = []

    def __init__(self, *args):
        self._cipher = _RecordingCipher.real(*args)

    def encryptor(self):
        return _RecordingContext(self._cipher.encryptor())


class _RecordingContext:
    def __init__(self, context):
        self._context = context

    def update(self, data):
        result = self._context.update(data)
        _RecordingCipher.seen.append(type(data))
        _RecordingCipher.seen.append(type(result))
        return result

    def update_into(self, data, buf):
        _RecordingCipher.seen.append(type(data))
        return self._context.update_into(data, buf)

    def finalize(self):
        return self._context.finalize()


def test_keystream_creates_no_immutable_copies(monkeypatch):
    monkeypatch.setattr(_RecordingCipher, 'real', secret_key.Cipher)
    monkeypatch.setattr(_RecordingCipher, 'seen', [])
    monkeypatch.setattr(secret_key, 'Cipher', _RecordingCipher)

    key = SecretKey(RFC_SECRET_SHA1)
    assert bytes(key.get_secret()) == RFC_SECRET_SHA1
    assert _RecordingCipher.seen
    assert bytes not in _RecordingCipher.seen


def test_scratch_buffer_wiped():
    key = SecretKey(RFC_SECRET_SHA1)
    assert key._scratch == bytearray(len(key._scratch))
    with key.protected_access():
        assert key._scratch == bytearray(len(key._scratch))
    key.export_base32()
    assert key._scratch == bytearray(len(key._scratch))
