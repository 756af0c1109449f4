"""
config.py — Defaults and limits shared by the codec, secret store and engine.
"""

# --- Defaults --------------------------------------------------------------
DEFAULT_DIGITS = 6          # 6 digits, as most authenticator apps show
DEFAULT_TIME_STEP = 30      # TOTP step (seconds); 0 means HOTP
DEFAULT_TOLERANCE_PREV = 1  # one previous code accepted (clock drift / slow typing)
DEFAULT_TOLERANCE_NEXT = 0
DEFAULT_ALGORITHM = "SHA1"
SECRET_BYTES = 20           # 160-bit secret (common practice)

# --- Limits ----------------------------------------------------------------
MAX_SECRET_BYTES = 1024     # 8192 bits, size of the protected buffer
MIN_DIGITS = 4
MAX_DIGITS = 9
MAX_TIME_STEP = 86400       # one day
MAX_COUNTER = 2**64 - 1     # counter travels as an unsigned 64-bit integer
MAX_CODE_DIGITS = 9         # longer codes cannot be produced, never valid
