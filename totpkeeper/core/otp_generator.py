#!/usr/bin/env python3
"""
otp_generator.py — TOTP generator object built on the otp_core pipeline.

A generator holds the normalized secret plus an immutable (digits, period)
configuration. Every call re-derives the key bytes and the counter; nothing
is cached between calls.

Usage:
  gen = create_generator("jbsw y3dp ehpk 3pxp")
  code = gen.generate_token()            # system clock
  code = gen.generate_token(now_seconds=59)
  gen.remaining_seconds(now_seconds=60)  # -> 30
"""

import inspect
import logging
import time
from contextlib import contextmanager
from typing import Optional, Tuple

from .otp_core import (
    DEFAULT_DIGITS,
    DEFAULT_TIME_STEP,
    CryptoUnavailable,
    HmacSha1,
    check_digest,
    counter_bytes,
    decode_base32,
    dynamic_truncate,
    format_code,
    generate_otp,
    hashlib_hmac_sha1,
    normalize_secret,
    remaining_seconds,
    sign,
)

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(time.time())


def _check_positive(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return value


class TOTPGenerator:
    """RFC 6238 code generator for one secret."""

    def __init__(self, secret: str, digits: int = DEFAULT_DIGITS,
                 period: int = DEFAULT_TIME_STEP, hmac_sha1: HmacSha1 = None,
                 strict: bool = False):
        self._secret = normalize_secret(secret)
        self._digits = _check_positive("digits", digits)
        self._period = _check_positive("period", period)
        self._hmac_sha1 = hmac_sha1 or hashlib_hmac_sha1
        self._strict = strict

    @property
    def secret(self) -> str:
        return self._secret

    @property
    def digits(self) -> int:
        return self._digits

    @property
    def period(self) -> int:
        return self._period

    @property
    def strict(self) -> bool:
        return self._strict

    def __repr__(self):
        # never print the secret
        return f"TOTPGenerator(digits={self._digits}, period={self._period}, strict={self._strict})"

    @contextmanager
    def _key(self):
        """Decode the key into a buffer that is zeroed once the call is done."""
        key = bytearray(decode_base32(self._secret, strict=self._strict))
        try:
            yield key
        finally:
            for i in range(len(key)):
                key[i] = 0

    def generate_token(self, now_seconds: Optional[float] = None) -> str:
        """
        Return the `digits`-long code for the instant `now_seconds`
        (system clock when None).

        Raises CryptoUnavailable if the HMAC primitive fails, and
        InvalidSecretShape in strict mode.
        """
        if now_seconds is None:
            now_seconds = _now()
        counter = counter_bytes(now_seconds, self._period)
        with self._key() as key:
            code = generate_otp(key, counter, self._digits, self._hmac_sha1)
        logger.debug("Generated TOTP for counter=%d", int(now_seconds // self._period))
        return code

    async def generate_token_async(self, now_seconds: Optional[float] = None) -> str:
        """Same as generate_token, but awaits an asynchronous HMAC provider."""
        if now_seconds is None:
            now_seconds = _now()
        counter = counter_bytes(now_seconds, self._period)
        with self._key() as key:
            digest = sign(key, counter, self._hmac_sha1)
            if inspect.isawaitable(digest):
                try:
                    digest = await digest
                except CryptoUnavailable:
                    logger.error("Async HMAC-SHA1 primitive unavailable")
                    raise
                except Exception as e:
                    logger.error("Async HMAC-SHA1 primitive failed: %s", e)
                    raise CryptoUnavailable("HMAC-SHA1 primitive could not be invoked") from e
        return format_code(dynamic_truncate(check_digest(digest)), self._digits)

    def remaining_seconds(self, now_seconds: Optional[float] = None) -> int:
        """Seconds until the next period boundary, in [1, period]."""
        if now_seconds is None:
            now_seconds = _now()
        return remaining_seconds(now_seconds, self._period)

    def snapshot(self, now_seconds: Optional[float] = None) -> Tuple[str, int]:
        """(code, remaining_seconds) read at a single instant."""
        if now_seconds is None:
            now_seconds = _now()
        return self.generate_token(now_seconds), self.remaining_seconds(now_seconds)


def create_generator(secret: str, digits: int = DEFAULT_DIGITS,
                     period: int = DEFAULT_TIME_STEP, hmac_sha1: HmacSha1 = None,
                     strict: bool = False) -> TOTPGenerator:
    """
    Build a TOTPGenerator. Any secret string is accepted; problems with the
    key only surface from generate_token() (and only in strict mode).
    """
    return TOTPGenerator(secret, digits=digits, period=period,
                         hmac_sha1=hmac_sha1, strict=strict)
