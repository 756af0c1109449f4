import random

import pytest

from onetime.base32 import decode, encode
from onetime.errors import MissingValueError, SecretFormatError, SecretTooLongError


@pytest.mark.parametrize(
    ('data', 'text'),
    [
        (b'', ''),
        (b'f', 'MY======'),
        (b'fo', 'MZXQ===='),
        (b'foo', 'MZXW6==='),
        (b'foob', 'MZXW6YQ='),
        (b'fooba', 'MZXW6YTB'),
        (b'foobar', 'MZXW6YTBOI======'),
    ],
)
def test_rfc4648_vectors(data, text):
    assert encode(data, spacing=False, padding=True) == text
    assert decode(text) == data


def test_encode_default_is_spaced_unpadded_uppercase():
    assert encode(b'12345678901234567890') == 'GEZD GNBV GY3T QOJQ GEZD GNBV GY3T QOJQ'


def test_encode_spacing_counts_padding():
    assert encode(b'f', padding=True) == 'MY== ===='
    assert encode(b'foobar', padding=True) == 'MZXW 6YTB OI== ===='


def test_encode_spacing_without_padding():
    assert encode(b'foobar') == 'MZXW 6YTB OI'


def test_encode_lowercase():
    assert encode(b'foobar', spacing=False, uppercase=False) == 'mzxw6ytboi'


def test_encode_empty():
    assert encode(b'', spacing=True, padding=True) == ''


def test_decode_ignores_whitespace_and_case():
    assert decode(' mzxw 6ytb\toi\n') == b'foobar'
    assert decode('gezd gnbv gy3t qojq GEZD GNBV GY3T QOJQ') == b'12345678901234567890'


def test_decode_whitespace_in_padding():
    assert decode('MY== ====') == b'f'


def test_decode_partial_group_without_padding():
    # 5 leftover bits still produce a byte
    assert decode('M') == b'\x60'
    assert decode('MZX') == b'fn'


def test_decode_partial_group_with_padding():
    assert decode('M=') == b''


def test_decode_character_after_padding():
    with pytest.raises(SecretFormatError, match='padding'):
        decode('MY=A')


def test_decode_invalid_character():
    with pytest.raises(SecretFormatError, match='Invalid character'):
        decode('MY1')


def test_decode_none():
    with pytest.raises(MissingValueError):
        decode(None)


def test_decode_max_length():
    assert len(decode(encode(bytes(1024)))) == 1024

    with pytest.raises(SecretTooLongError):
        decode(encode(bytes(1025)))


def test_round_trip_all_lengths():
    rng = random.Random(4226)
    for length in range(1025):
        data = bytes(rng.getrandbits(8) for _ in range(length))
        assert decode(encode(data, spacing=False, padding=True, uppercase=True)) == data


def test_decode_returns_mutable_copy():
    data = decode('GEZD GNBV')
    assert isinstance(data, bytearray)
    data[:] = bytes(len(data))
    assert data == bytearray(5)


def test_encode_accepts_buffers():
    secret = bytearray(b'foobar')
    assert encode(memoryview(secret), spacing=False) == 'MZXW6YTBOI'
    assert encode(secret, spacing=False) == 'MZXW6YTBOI'
