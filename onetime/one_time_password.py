"""
one_time_password.py — HOTP (RFC 4226) / TOTP (RFC 6238) code engine.

Core algorithm
--------------
- HOTP: code = Truncate(HMAC(key=secret, msg=counter)) mod 10^digits
  -> counter is explicit and advances every time a code is read or accepted.
- TOTP: HOTP with counter = floor(now / time_step)
  -> derived from the clock, never stored.
- Dynamic truncation: offset = last byte & 0x0F, take 4 bytes from offset,
  clear the top bit -> 31-bit unsigned integer.

Mode is selected by `time_step`: 0 means HOTP, 1..86400 seconds means TOTP.

An engine is not safe for concurrent use: get_code() and is_code_valid()
update the cache and (in HOTP) the counter. Serialize calls per instance;
distinct instances are independent.

Example:
    >>> otp = OneTimePassword(b"12345678901234567890")
    >>> otp.time_step = 0          # HOTP, counter reset to 0
    >>> otp.get_code()
    755224
    >>> otp.counter
    1
"""

import enum
import hmac
import logging
import time
from datetime import datetime, timezone
from typing import Callable, NamedTuple, Optional, Union

from .config import (
    DEFAULT_ALGORITHM,
    DEFAULT_DIGITS,
    DEFAULT_TIME_STEP,
    DEFAULT_TOLERANCE_NEXT,
    DEFAULT_TOLERANCE_PREV,
    MAX_CODE_DIGITS,
    MAX_COUNTER,
    MAX_DIGITS,
    MAX_TIME_STEP,
    MIN_DIGITS,
    SECRET_BYTES,
)
from .errors import (
    ArgumentOutOfRangeError,
    CodeFormatError,
    MissingValueError,
    ModeViolationError,
)
from .secret_key import SecretKey

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
"""Returns the current time as Unix seconds (time.time compatible)."""


class Algorithm(enum.Enum):
    """HMAC hash used for code derivation."""

    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA512 = "sha512"

    @classmethod
    def parse(cls, value: Union["Algorithm", str]) -> "Algorithm":
        """Accept an Algorithm or its name ("sha256", "SHA-256", ...)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.strip().upper().replace("-", "")
            if name in cls.__members__:
                return cls[name]
        raise ArgumentOutOfRangeError(f"Unknown algorithm {value!r}.")


class _CachedCode(NamedTuple):
    counter: int
    digits: int
    algorithm: Algorithm
    code: int


# digits -> group sizes used for display
_DISPLAY_GROUPS = {
    4: (2, 2),
    5: (2, 1, 2),
    6: (3, 3),
    7: (2, 3, 2),
    8: (3, 2, 3),
    9: (3, 3, 3),
}

_COUNTER_MASK = 0xFFFFFFFFFFFFFFFF


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_digits(value: int) -> int:
    if not _is_int(value) or not MIN_DIGITS <= value <= MAX_DIGITS:
        raise ArgumentOutOfRangeError(
            f"Number of digits to return must be between {MIN_DIGITS} and {MAX_DIGITS}."
        )
    return value


def _overrides(value: Optional[int], name: str) -> bool:
    """True when a per-call value replaces the configured one (None or <= 0 do not)."""
    if value is None:
        return False
    if not _is_int(value):
        raise ArgumentOutOfRangeError(f"{name} must be an integer, got {value!r}.")
    return value > 0


def _parse_code(code: str) -> Optional[int]:
    """
    Parse a typed code: whitespace ignored, digits only.

    Returns None when the code has more significant digits than any code can
    have (it can never be valid).
    """
    number = 0
    for ch in code:
        if ch.isspace():
            continue
        if ch not in "0123456789":
            raise CodeFormatError("Code must contain only numbers and whitespace.")
        if number >= 10 ** (MAX_CODE_DIGITS - 1):
            return None
        number = number * 10 + ord(ch) - 0x30
    return number


class OneTimePassword:
    """
    HOTP/TOTP generator and validator bound to one SecretKey.

    Defaults: 6 digits, SHA1, TOTP with a 30 second step, one previous code
    accepted during validation.
    """

    def __init__(
        self,
        secret: Union[SecretKey, bytes, bytearray, str],
        *,
        clock: Optional[Clock] = None,
    ):
        """
        Arguments:
            secret: a SecretKey, raw secret bytes or Base32 text
            clock: time source for TOTP; defaults to time.time

        Raises:
            MissingValueError: secret is None
            SecretTooLongError / SecretFormatError: see SecretKey
        """
        if secret is None:
            raise MissingValueError("Secret cannot be None.")
        self._secret_key = secret if isinstance(secret, SecretKey) else SecretKey(secret)
        self._clock: Clock = clock or time.time

        self._digits = DEFAULT_DIGITS
        self._algorithm = Algorithm.parse(DEFAULT_ALGORITHM)
        self._time_step = DEFAULT_TIME_STEP
        self._counter = 0
        self._tolerance_prev = DEFAULT_TOLERANCE_PREV
        self._tolerance_next = DEFAULT_TOLERANCE_NEXT
        self._cache: Optional[_CachedCode] = None

    @classmethod
    def generate(cls, length: int = SECRET_BYTES, *, clock: Optional[Clock] = None) -> "OneTimePassword":
        """Create an engine with a new random secret (160 bits by default)."""
        return cls(SecretKey.generate(length), clock=clock)

    # --- Setup -------------------------------------------------------------
    @property
    def secret_key(self) -> SecretKey:
        return self._secret_key

    @property
    def digits(self) -> int:
        """Number of digits to return (4-9, 6-8 recommended)."""
        return self._digits

    @digits.setter
    def digits(self, value: int) -> None:
        self._digits = _check_digits(value)

    @property
    def algorithm(self) -> Algorithm:
        return self._algorithm

    @algorithm.setter
    def algorithm(self, value: Union[Algorithm, str]) -> None:
        self._algorithm = Algorithm.parse(value)

    @property
    def tolerance_prev(self) -> int:
        """Number of previous codes accepted during validation (0 or more)."""
        return self._tolerance_prev

    @tolerance_prev.setter
    def tolerance_prev(self, value: int) -> None:
        if not _is_int(value) or value < 0:
            raise ArgumentOutOfRangeError("Number of previous codes to accept should be zero or more.")
        self._tolerance_prev = value

    @property
    def tolerance_next(self) -> int:
        """Number of future codes accepted during validation (0 or more)."""
        return self._tolerance_next

    @tolerance_next.setter
    def tolerance_next(self, value: int) -> None:
        if not _is_int(value) or value < 0:
            raise ArgumentOutOfRangeError("Number of future codes to accept should be zero or more.")
        self._tolerance_next = value

    @property
    def time_step(self) -> int:
        """
        TOTP time step in seconds (1-86400).
        Zero switches to HOTP and resets the counter to 0.
        """
        return self._time_step

    @time_step.setter
    def time_step(self, value: int) -> None:
        if not _is_int(value):
            raise ArgumentOutOfRangeError(f"Time step must be a whole number of seconds, got {value!r}.")
        if value == 0:
            self._time_step = 0
            self._counter = 0
            logger.debug("Switched to HOTP mode, counter reset to 0")
            return
        if not 0 < value <= MAX_TIME_STEP:
            raise ArgumentOutOfRangeError(f"Time step must be between 0 and {MAX_TIME_STEP} seconds.")
        if self._time_step == 0:
            logger.debug("Switched to TOTP mode (time step %ss)", value)
        self._time_step = value

    @property
    def mode(self) -> str:
        return "HOTP" if self._time_step == 0 else "TOTP"

    @property
    def counter(self) -> int:
        """
        Current counter: the stored value in HOTP mode, floor(now / time_step)
        in TOTP mode. Can only be set in HOTP mode.
        """
        if self._time_step == 0:
            return self._counter
        return self._timed_counter()

    @counter.setter
    def counter(self, value: int) -> None:
        if self._time_step != 0:
            raise ModeViolationError("Counter value can only be set in HOTP mode (time step is zero).")
        if not _is_int(value) or not 0 <= value <= MAX_COUNTER:
            raise ArgumentOutOfRangeError("Counter value must be a non-negative 64-bit number.")
        self._counter = value

    def _timed_counter(self) -> int:
        return int(self._clock()) // self._time_step

    @property
    def time_left(self) -> float:
        """Seconds until the TOTP code changes (0.0 in HOTP mode)."""
        if self._time_step == 0:
            return 0.0
        return self._time_step - (self._clock() % self._time_step)

    @property
    def next_change_time(self) -> Optional[datetime]:
        """UTC time at which the TOTP code changes, None in HOTP mode."""
        if self._time_step == 0:
            return None
        boundary = (self._timed_counter() + 1) * self._time_step
        return datetime.fromtimestamp(boundary, tz=timezone.utc)

    def copy_settings_from(self, other: "OneTimePassword") -> None:
        """Copy time step, algorithm, digits, counter (HOTP only) and tolerances."""
        self.time_step = other.time_step
        self.algorithm = other.algorithm
        self.digits = other.digits
        if self._time_step == 0:
            self.counter = other.counter
        self.tolerance_prev = other.tolerance_prev
        self.tolerance_next = other.tolerance_next

    # --- Code --------------------------------------------------------------
    def get_code(self, digits: Optional[int] = None) -> int:
        """
        Return the code for the current counter.
        In HOTP mode the counter is advanced by one on every call.

        Raises:
            ArgumentOutOfRangeError: digits outside 4..9
        """
        digits = self._digits if digits is None else _check_digits(digits)
        counter = self.counter

        cached = self._cache
        if cached is not None and cached[:3] == (counter, digits, self._algorithm):
            code = cached.code
        else:
            code = self._derive_code(counter, digits)
            self._cache = _CachedCode(counter, digits, self._algorithm, code)

        if self._time_step == 0:
            self._counter = counter + 1
        return code

    def get_formatted_code(self, digits: Optional[int] = None) -> str:
        """Return the code zero-padded and grouped for display ("755 224")."""
        digits = self._digits if digits is None else _check_digits(digits)
        text = f"{self.get_code(digits):0{digits}d}"
        parts = []
        start = 0
        for size in _DISPLAY_GROUPS[digits]:
            parts.append(text[start:start + size])
            start += size
        return " ".join(parts)

    def _derive_code(self, counter: int, digits: int) -> int:
        """
        RFC 4226 HOTP value for `counter`.

        1. counter -> 8-byte big-endian (negative window candidates wrap)
        2. HMAC(secret, counter bytes) with the configured hash
        3. dynamic truncation -> 31-bit integer
        4. modulo 10^digits
        """
        message = (counter & _COUNTER_MASK).to_bytes(8, "big")
        with self._secret_key.protected_access() as secret:
            digest = hmac.new(secret, message, self._algorithm.value).digest()

        offset = digest[-1] & 0x0F
        truncated = int.from_bytes(digest[offset:offset + 4], "big") & 0x7FFFFFFF
        return truncated % (10 ** digits)

    # --- Validate ----------------------------------------------------------
    def is_code_valid(
        self,
        code: Union[int, str],
        digits: Optional[int] = None,
        tolerance_prev: Optional[int] = None,
        tolerance_next: Optional[int] = None,
    ) -> bool:
        """
        Return True if `code` matches the current counter or one inside the
        tolerance window. In HOTP mode a match advances the counter past both
        the matched and the current counter.

        Arguments:
            code: non-negative integer, or digits (whitespace allowed)
            digits: digits to verify against; None or <= 0 uses `self.digits`
            tolerance_prev: previous codes to accept; None or <= 0 uses `self.tolerance_prev`
            tolerance_next: future codes to accept; None or <= 0 uses `self.tolerance_next`

        Raises:
            MissingValueError: code is None
            CodeFormatError: code text contains something other than digits/whitespace,
                or code is neither int nor str
            ArgumentOutOfRangeError: negative integer code, digits outside 4..9, or a
                non-integer digits/tolerance
        """
        if code is None:
            raise MissingValueError("Code cannot be None.")
        if isinstance(code, str):
            number = _parse_code(code)
            if number is None:
                logger.debug("Code rejected: more than %d digits", MAX_CODE_DIGITS)
                return False
        elif _is_int(code):
            if code < 0:
                raise ArgumentOutOfRangeError("Code must be a non-negative number.")
            number = code
        else:
            raise CodeFormatError(f"Code must be an integer or text, not {type(code).__name__}.")

        actual_digits = _check_digits(digits) if _overrides(digits, "digits") else self._digits
        actual_prev = tolerance_prev if _overrides(tolerance_prev, "tolerance_prev") else self._tolerance_prev
        actual_next = tolerance_next if _overrides(tolerance_next, "tolerance_next") else self._tolerance_next

        counter = self.counter
        expected = number.to_bytes(8, "big") if number <= MAX_COUNTER else b""

        # Every candidate is computed even after a match, so the time taken
        # does not depend on where in the window the code matched.
        any_valid = False
        valid_counter = counter
        for test_counter in self._window(counter, actual_prev, actual_next):
            candidate = self._derive_code(test_counter, actual_digits).to_bytes(8, "big")
            valid = hmac.compare_digest(candidate, expected)
            if valid:
                valid_counter = test_counter
            any_valid = valid or any_valid

        if any_valid and self._time_step == 0:
            self._counter = max(valid_counter, counter) + 1
            logger.debug("HOTP code accepted, counter advanced to %d", self._counter)
        elif not any_valid:
            logger.debug("%s code rejected (window -%d/+%d)", self.mode, actual_prev, actual_next)
        return any_valid

    @staticmethod
    def _window(counter: int, prev: int, next_: int):
        yield counter
        for i in range(1, prev + 1):
            yield counter - i
        for i in range(1, next_ + 1):
            yield counter + i

    def __repr__(self) -> str:
        return (
            f"<OneTimePassword mode={self.mode} digits={self._digits} "
            f"algorithm={self._algorithm.name} time_step={self._time_step}>"
        )
