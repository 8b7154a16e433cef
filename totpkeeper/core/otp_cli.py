#!/usr/bin/env python3
"""
otp_cli.py — CLI cho totpkeeper

Cung cấp các subcommand:
- add    : lưu token (tên dịch vụ + secret)
- list   : liệt kê token kèm mã hiện tại
- code   : in mã hiện tại của một token
- watch  : hiển thị mã của một token theo thời gian thực
- delete : xóa token
- totp   : sinh mã TOTP cho một secret (không lưu)
- hotp   : sinh mã HOTP cho một secret + counter
"""

import argparse
import logging
import sys
import time

from . import otp_core
from .otp_generator import create_generator
from ..database import db_manager

logger = logging.getLogger(__name__)


def _generator(secret, digits, period, args):
    return create_generator(
        secret,
        digits=digits,
        period=period,
        hmac_sha1=otp_core.get_hmac_provider(args.hmac),
        strict=args.strict,
    )


def _load(name):
    token = db_manager.get_token(name)
    if token is None:
        print(f"[!] Token '{name}' not found.")
        sys.exit(1)
    return token


# --- CLI command handlers ---
def cmd_add(args):
    # sinh thử một mã trước khi lưu, giống luồng "Invalid secret key" của UI
    code = _generator(args.secret, args.digits, args.period, args).generate_token()
    ok, message = db_manager.add_token(args.name, args.secret, args.digits, args.period)
    if not ok:
        print(f"[!] {message}")
        sys.exit(1)
    print(f"[+] {message} Current code: {code}")


def cmd_list(args):
    tokens = db_manager.list_tokens(search=args.search, sort=args.sort)
    if not tokens:
        print("No tokens.")
        return
    now = int(time.time())
    for token in tokens:
        gen = _generator(token["secret"], token["digits"], token["period"], args)
        try:
            code, remaining = gen.snapshot(now)
        except otp_core.OTPError as e:
            logger.error("Error loading token '%s': %s", token["name"], e)
            print(f"{token['name']:<24} {'ERROR':>10}")
            continue
        print(f"{token['name']:<24} {code:>10}  ({remaining:2d}s)")


def cmd_code(args):
    token = _load(args.name)
    code, remaining = _generator(token["secret"], token["digits"], token["period"], args).snapshot()
    print(f"{code}  (valid ~{remaining:2d}s)")


def cmd_watch(args):
    token = _load(args.name)
    gen = _generator(token["secret"], token["digits"], token["period"], args)

    print(f"[{args.name}] Press Ctrl+C to quit. Generating {gen.digits}-digit TOTP every {gen.period}s...\n")
    last_code = None
    try:
        while True:
            code, remaining = gen.snapshot(int(time.time()))
            if code != last_code:
                print(f"TOTP ({gen.digits}d): {code}  (valid ~{remaining:2d}s)")
                last_code = code
            else:
                print(f".. {remaining:2d}s left", end='\r', flush=True)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nBye.")


def cmd_delete(args):
    if not db_manager.delete_token(args.name):
        print(f"[!] Token '{args.name}' not found.")
        sys.exit(1)
    print(f"[+] Token '{args.name}' deleted.")


def cmd_totp(args):
    gen = _generator(args.secret, args.digits, args.period, args)
    code, remaining = gen.snapshot(args.timestamp)
    print(f"TOTP ({args.digits}d): {code}  (valid ~{remaining:2d}s)")


def cmd_hotp(args):
    code = otp_core.hotp(args.secret, args.counter, args.digits,
                         hmac_sha1=otp_core.get_hmac_provider(args.hmac), strict=args.strict)
    print(f"HOTP({args.digits}d, counter={args.counter}): {code}")


def cmd_help(args):
    print("'totpkeeper -h' for help.")


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="totpkeeper", description="TOTP credential manager CLI")
    p.add_argument("--verbose", action="store_true", help="Verbose (debug) logging")
    p.add_argument("--strict", action="store_true",
                   help="Reject secrets that decode to no key bytes")
    p.add_argument("--hmac", choices=sorted(otp_core.HMAC_PROVIDERS), default="hashlib",
                   help="HMAC-SHA1 implementation")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    # add
    pa = sub.add_parser("add", help="Store a token (service name + secret)")
    pa.add_argument("--name", required=True, help="Service name")
    pa.add_argument("--secret", required=True, help="Base32 secret (spaces/lowercase allowed)")
    pa.add_argument("--digits", type=int, default=otp_core.DEFAULT_DIGITS, help="Number of OTP digits")
    pa.add_argument("--period", type=int, default=otp_core.DEFAULT_TIME_STEP, help="TOTP time step (seconds)")
    pa.set_defaults(func=cmd_add)

    # list
    pl = sub.add_parser("list", help="List tokens with their current codes")
    pl.add_argument("--search", help="Case-insensitive name filter")
    pl.add_argument("--sort", choices=sorted(db_manager.SORT_ORDERS), default="name")
    pl.set_defaults(func=cmd_list)

    # code
    pc = sub.add_parser("code", help="Print the current code of a token")
    pc.add_argument("--name", required=True)
    pc.set_defaults(func=cmd_code)

    # watch
    pw = sub.add_parser("watch", help="Show a token's code in real time")
    pw.add_argument("--name", required=True)
    pw.set_defaults(func=cmd_watch)

    # delete
    pd = sub.add_parser("delete", help="Delete a token")
    pd.add_argument("--name", required=True)
    pd.set_defaults(func=cmd_delete)

    # totp
    pt = sub.add_parser("totp", help="TOTP code for a secret (not stored)")
    pt.add_argument("--secret", required=True)
    pt.add_argument("--digits", type=int, default=otp_core.DEFAULT_DIGITS)
    pt.add_argument("--period", type=int, default=otp_core.DEFAULT_TIME_STEP)
    pt.add_argument("--timestamp", type=int, help="Unix time to use instead of now")
    pt.set_defaults(func=cmd_totp)

    # hotp
    ph = sub.add_parser("hotp", help="HOTP code for a secret and counter")
    ph.add_argument("--secret", required=True)
    ph.add_argument("--counter", type=int, required=True)
    ph.add_argument("--digits", type=int, default=otp_core.DEFAULT_DIGITS)
    ph.set_defaults(func=cmd_hotp)

    return p


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except otp_core.OTPError as e:
        logger.debug("OTP error: %r", e)
        print(f"[!] Invalid secret key ({e})")
        sys.exit(1)
    except ValueError as e:
        print(f"[!] {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
