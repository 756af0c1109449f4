"""
errors.py — Exception types raised by the onetime core.

Every error is raised before any state is touched, so a caught exception
always means "nothing changed". Each class also derives from the closest
builtin so callers that only know ``ValueError`` / ``TypeError`` keep working.
"""


class OTPError(Exception):
    """Base class for all onetime errors."""


class ArgumentOutOfRangeError(OTPError, ValueError):
    """A configuration value (digits, time step, tolerance, counter...) is out of range."""


class SecretTooLongError(ArgumentOutOfRangeError):
    """Secret cannot be longer than 8192 bits (1024 bytes)."""


class SecretFormatError(OTPError, ValueError):
    """Secret is not a valid Base32 string (or not a supported type)."""


class CodeFormatError(OTPError, ValueError):
    """Code must contain only numbers and whitespace."""


class ModeViolationError(OTPError, RuntimeError):
    """Operation is not supported in the current HOTP/TOTP mode."""


class MissingValueError(OTPError, TypeError):
    """A required value was not provided."""
