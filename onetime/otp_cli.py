#!/usr/bin/env python3
"""
otp_cli.py — CLI wrapper around the onetime engine.

Subcommands:
- new    : generate a random secret and print it as Base32
- code   : print the current code (HOTP: for --counter, then the next counter)
- watch  : show the TOTP code in real time
- verify : check a code against the current counter and tolerance window

The secret is taken from --secret or the ONETIME_SECRET environment variable.

Usage examples:
  onetime new --length 32
  onetime code --secret "GEZD GNBV GY3T QOJQ GEZD GNBV GY3T QOJQ" --digits 8
  onetime code --secret GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ --time-step 0 --counter 5
  onetime verify --secret GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ --code "287 082"
"""

import argparse
import logging
import os
import sys
import time

from .config import DEFAULT_DIGITS, DEFAULT_TIME_STEP, SECRET_BYTES
from .errors import OTPError
from .one_time_password import Algorithm, OneTimePassword
from .secret_key import SecretKey

logger = logging.getLogger(__name__)

SECRET_ENV = "ONETIME_SECRET"


def _build_engine(args) -> OneTimePassword:
    """Create an engine from the common --secret/--digits/... options."""
    secret = args.secret or os.environ.get(SECRET_ENV)
    otp = OneTimePassword(secret)
    otp.digits = args.digits
    otp.algorithm = args.algorithm
    otp.time_step = args.time_step
    if args.counter is not None:
        otp.counter = args.counter
    return otp


# --- CLI command handlers ---
def cmd_new(args) -> int:
    key = SecretKey.generate(args.length)
    print(key.export_base32(spacing=not args.no_spacing, padding=args.padding, uppercase=not args.lowercase))
    logger.debug("Generated %d-bit secret", key.length * 8)
    return 0


def cmd_code(args) -> int:
    otp = _build_engine(args)
    code = otp.get_formatted_code()
    if otp.mode == "HOTP":
        print(f"HOTP ({otp.digits}d, {otp.algorithm.name}): {code}  (next counter = {otp.counter})")
    else:
        print(f"TOTP ({otp.digits}d, {otp.algorithm.name}): {code}  (valid ~{otp.time_left:.0f}s)")
    return 0


def cmd_watch(args) -> int:
    otp = _build_engine(args)
    if otp.mode != "TOTP":
        print("[!] watch needs a TOTP time step (--time-step > 0)", file=sys.stderr)
        return 2

    print(f"Press Ctrl+C to quit. Generating {otp.digits}-digit TOTP every {otp.time_step}s...\n")
    last_code = None
    try:
        while True:
            code = otp.get_formatted_code()
            remaining = otp.time_left
            if code != last_code:
                print(f"TOTP ({otp.digits}d): {code}  (valid ~{remaining:2.0f}s)")
                last_code = code
            else:
                print(f".. {remaining:2.0f}s left", end="\r", flush=True)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nBye.")
    return 0


def cmd_verify(args) -> int:
    otp = _build_engine(args)
    otp.tolerance_prev = args.prev
    otp.tolerance_next = args.next

    if otp.is_code_valid(args.code):
        if otp.mode == "HOTP":
            print(f"[+] {otp.mode} code is VALID (next counter = {otp.counter})")
        else:
            print(f"[+] {otp.mode} code is VALID")
        return 0
    print(f"[-] {otp.mode} code is INVALID")
    return 1


# --- Argparse builder ---
def _add_engine_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--secret", help=f"Base32 secret (default: ${SECRET_ENV})")
    p.add_argument("--digits", type=int, default=DEFAULT_DIGITS, help="Number of OTP digits (4-9)")
    p.add_argument("--algorithm", default="SHA1", choices=[a.name for a in Algorithm], type=str.upper,
                   help="HMAC algorithm")
    p.add_argument("--time-step", type=int, default=DEFAULT_TIME_STEP,
                   help="TOTP time step in seconds, 0 for HOTP")
    p.add_argument("--counter", type=int, help="HOTP counter (only with --time-step 0)")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="onetime", description="HOTP/TOTP generator and validator")
    p.add_argument("--verbose", action="store_true", help="Verbose (debug) logging")
    sub = p.add_subparsers(dest="cmd")

    # new
    pn = sub.add_parser("new", help="Generate a random secret")
    pn.add_argument("--length", type=int, default=SECRET_BYTES, help="Secret length in bytes")
    pn.add_argument("--padding", action="store_true", help="Pad with '=' to a multiple of 8")
    pn.add_argument("--lowercase", action="store_true", help="Lower-case output")
    pn.add_argument("--no-spacing", action="store_true", help="Do not group by four characters")
    pn.set_defaults(func=cmd_new)

    # code
    pc = sub.add_parser("code", help="Print the current code")
    _add_engine_options(pc)
    pc.set_defaults(func=cmd_code)

    # watch
    pw = sub.add_parser("watch", help="Show TOTP code in real time")
    _add_engine_options(pw)
    pw.set_defaults(func=cmd_watch)

    # verify
    pv = sub.add_parser("verify", help="Verify an OTP code")
    _add_engine_options(pv)
    pv.add_argument("--code", required=True, help="OTP code to verify")
    pv.add_argument("--prev", type=int, default=1, help="Accepted previous codes")
    pv.add_argument("--next", type=int, default=0, help="Accepted future codes")
    pv.set_defaults(func=cmd_verify)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    if not hasattr(args, "func"):
        parser.print_help()
        return 0
    try:
        return args.func(args)
    except OTPError as e:
        print(f"[!] {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
