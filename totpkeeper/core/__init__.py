"""
totpkeeper.core
===============

Sinh mã OTP (HOTP/TOTP) theo chuẩn RFC 4226 & RFC 6238.

──────────────────────────────────────────────
Pipeline
──────────────────────────────────────────────
- normalize_secret: xóa khoảng trắng, chữ hoa, bỏ ký tự ngoài A–Z2–7, pad '='.
- decode_base32: Base32 -> raw key bytes (lenient mặc định, strict tùy chọn).
- counter_bytes: floor(now / period) dạng 8 byte big-endian.
- generate_otp: HMAC-SHA1 + dynamic truncation -> mã `digits` chữ số.

──────────────────────────────────────────────
Ví dụ sử dụng nhanh
──────────────────────────────────────────────
>>> from totpkeeper.core import create_generator
>>> gen = create_generator("jbsw y3dp ehpk 3pxp")
>>> code, remaining = gen.snapshot()
"""
from .otp_core import (
    CryptoUnavailable,
    InvalidSecretShape,
    OTPError,
    counter_bytes,
    decode_base32,
    dynamic_truncate,
    generate_otp,
    hotp,
    normalize_secret,
    remaining_seconds,
)
from .otp_generator import TOTPGenerator, create_generator

__all__ = [
    'CryptoUnavailable',
    'InvalidSecretShape',
    'OTPError',
    'TOTPGenerator',
    'counter_bytes',
    'create_generator',
    'decode_base32',
    'dynamic_truncate',
    'generate_otp',
    'hotp',
    'normalize_secret',
    'remaining_seconds',
]
