"""
onetime package
===============

HOTP (RFC 4226) / TOTP (RFC 6238) one-time passwords with a protected
in-memory secret store.

──────────────────────────────────────────────
Core algorithm
──────────────────────────────────────────────
- HOTP: code = Truncate(HMAC(key=secret, msg=counter)) mod 10^digits
  -> counter advances every time a code is read or accepted.
- TOTP: HOTP with counter = floor(now / time_step), time_step = 30s by default.
- SHA1, SHA256 and SHA512 are supported; 4 to 9 digits.

──────────────────────────────────────────────
Quick example
──────────────────────────────────────────────
>>> from onetime import OneTimePassword
>>> otp = OneTimePassword("GEZD GNBV GY3T QOJQ GEZD GNBV GY3T QOJQ")
>>> otp.get_formatted_code()          # e.g. '287 082'
>>> otp.is_code_valid("287 082")

Neither SecretKey nor OneTimePassword is safe for concurrent use of one
instance; serialize access per instance.
"""

from .base32 import decode as base32_decode, encode as base32_encode
from .errors import (
    ArgumentOutOfRangeError,
    CodeFormatError,
    MissingValueError,
    ModeViolationError,
    OTPError,
    SecretFormatError,
    SecretTooLongError,
)
from .one_time_password import Algorithm, OneTimePassword
from .secret_key import SecretKey

__all__ = [
    "Algorithm",
    "ArgumentOutOfRangeError",
    "CodeFormatError",
    "MissingValueError",
    "ModeViolationError",
    "OTPError",
    "OneTimePassword",
    "SecretFormatError",
    "SecretKey",
    "SecretTooLongError",
    "base32_decode",
    "base32_encode",
]
