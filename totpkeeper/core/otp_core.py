#!/usr/bin/env python3
"""
otp_core.py — Core library cho TOTP / HOTP của totpkeeper.

Mục tiêu:
- Chứa các hàm thuần (pure functions) cho pipeline: chuẩn hóa secret -> giải mã Base32,
  tạo counter 8 byte, HMAC-SHA1 + dynamic truncation.
- Không đọc/ghi file, không giữ state — WebUI/REST API/CLI gọi trực tiếp.

Lưu ý:
- Bộ giải mã Base32 mặc định là "lenient": ký tự lạ bị bỏ qua, không raise lỗi.
  Một secret gõ sai vẫn cho ra mã trông hợp lệ nhưng SAI. Dùng strict=True nếu muốn từ chối.
- HMAC-SHA1 theo RFC4226/6238 (tương thích Google Authenticator).
"""

import hashlib
import hmac
import inspect
import logging
import math
import re
import struct
from typing import Callable

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # chuẩn: 6 chữ số
DEFAULT_TIME_STEP = 30      # TOTP step (giây)
BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
SHA1_DIGEST_SIZE = 20

_WHITESPACE_RE = re.compile(r"\s")
_NON_BASE32_RE = re.compile(r"[^A-Z2-7]")
_SYMBOL_VALUES = {symbol: index for index, symbol in enumerate(BASE32_ALPHABET)}

HmacSha1 = Callable[[bytes, bytes], bytes]


# --- Errors ----------------------------------------------------------------
class OTPError(Exception):
    """Base class cho mọi lỗi sinh mã OTP."""


class InvalidSecretShape(OTPError):
    """Secret không cho ra byte khóa hợp lệ (chỉ dùng ở strict mode)."""


class CryptoUnavailable(OTPError):
    """Không gọi được primitive HMAC-SHA1 (lỗi môi trường, không phải lỗi người dùng)."""


# --- Secret Normalizer -----------------------------------------------------
def normalize_secret(raw: str) -> str:
    """
    Chuẩn hóa secret người dùng nhập thành chuỗi Base32 hợp lệ.

    - Xóa toàn bộ khoảng trắng, chuyển sang chữ hoa.
    - Loại bỏ mọi ký tự ngoài A–Z và 2–7.
    - Thêm '=' bên phải cho đến khi độ dài chia hết cho 8.

    Không bao giờ raise: input rỗng hoặc toàn ký tự lạ -> "".

    Ví dụ: normalize_secret("jb sw y3d p- eh pk3p xp") -> "JBSWY3DPEHPK3PXP"
    """
    cleaned = _WHITESPACE_RE.sub("", raw).upper()
    cleaned = _NON_BASE32_RE.sub("", cleaned)
    padding = "=" * ((8 - len(cleaned) % 8) % 8)
    return cleaned + padding


# --- Base32 Decoder --------------------------------------------------------
def decode_base32(normalized: str, strict: bool = False) -> bytes:
    """
    Giải mã chuỗi Base32 (RFC 4648 alphabet) thành raw key bytes.

    Lenient mode (mặc định):
    - '=' và ký tự không thuộc alphabet bị bỏ qua, không góp bit nào.
    - Độ dài output = ceil(len(normalized) * 5 / 8), tính CẢ ký tự padding.
    - Nhóm bit cuối thiếu được thêm 0 bên phải; các byte thừa bằng 0.

    Strict mode:
    - Ký tự lạ (ngoài '=') -> InvalidSecretShape.
    - Chỉ trả về các byte đủ 8 bit (giống base64.b32decode).
    - Không có byte khóa nào -> InvalidSecretShape.

    Arguments:
        normalized: chuỗi đã qua normalize_secret (hoặc bất kỳ chuỗi nào)
        strict: bật kiểm tra chặt
    """
    bits = []
    for symbol in normalized:
        value = _SYMBOL_VALUES.get(symbol)
        if value is None:
            if strict and symbol != "=":
                raise InvalidSecretShape(f"Invalid base32 character: {symbol!r}")
            continue
        bits.append(format(value, "05b"))
    bit_string = "".join(bits)

    if strict:
        length = len(bit_string) // 8
        if length == 0:
            raise InvalidSecretShape("Secret has no usable key bytes")
    else:
        length = (len(normalized) * 5 + 7) // 8

    buffer = bytearray(length)
    for i in range(length):
        group = bit_string[i * 8:(i + 1) * 8]
        if group:
            buffer[i] = int(group.ljust(8, "0"), 2)
    return bytes(buffer)


# --- Counter Builder -------------------------------------------------------
def time_counter(now_seconds: float, period: int = DEFAULT_TIME_STEP) -> int:
    """counter = floor(now_seconds / period)"""
    return int(now_seconds // period)


def int_to_bytes(i: int) -> bytes:
    """
    Chuyển integer (counter) sang 8-byte big-endian như RFC4226 yêu cầu.

    Ví dụ: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'

    Raises:
        ValueError: counter âm hoặc vượt quá 64 bit
    """
    if not 0 <= i < 2 ** 64:
        raise ValueError(f"Counter out of range for 64-bit encoding: {i}")
    return struct.pack(">Q", i)


def counter_bytes(now_seconds: float, period: int = DEFAULT_TIME_STEP) -> bytes:
    """8 byte counter của time-step chứa now_seconds."""
    return int_to_bytes(time_counter(now_seconds, period))


def remaining_seconds(now_seconds: float, period: int = DEFAULT_TIME_STEP) -> int:
    """
    Số giây còn lại đến ranh giới period kế tiếp, trong khoảng [1, period].

    Đúng tại ranh giới (now chia hết cho period) trả về period, không phải 0.
    """
    return period - (math.floor(now_seconds) % period)


# --- HMAC providers --------------------------------------------------------
def hashlib_hmac_sha1(key: bytes, message: bytes) -> bytes:
    """HMAC-SHA1 bằng thư viện chuẩn (hmac + hashlib). Provider mặc định."""
    return hmac.new(key, message, hashlib.sha1).digest()


def cryptography_hmac_sha1(key: bytes, message: bytes) -> bytes:
    """
    HMAC-SHA1 bằng package `cryptography` (OpenSSL backend).

    Raises:
        CryptoUnavailable: nếu package `cryptography` chưa được cài
    """
    try:
        from cryptography.hazmat.primitives import hashes
        from cryptography.hazmat.primitives import hmac as crypto_hmac
    except ImportError as e:
        raise CryptoUnavailable("Python package 'cryptography' is not available") from e

    signer = crypto_hmac.HMAC(bytes(key), hashes.SHA1())
    signer.update(message)
    return signer.finalize()


HMAC_PROVIDERS = {
    "hashlib": hashlib_hmac_sha1,
    "cryptography": cryptography_hmac_sha1,
}


def get_hmac_provider(name: str) -> HmacSha1:
    """Tra provider theo tên ('hashlib' | 'cryptography')."""
    try:
        return HMAC_PROVIDERS[name]
    except KeyError:
        raise ValueError(f"Unknown HMAC provider: {name!r}") from None


# --- HOTP Engine -----------------------------------------------------------
def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    Áp dụng dynamic truncation theo RFC4226 §5.3.

    - offset = last_byte & 0x0F
    - Lấy 4 bytes từ offset, clear MSB (0x7F) cho byte đầu
    - Trả về integer 31-bit (unsigned)
    """
    offset = hmac_digest[-1] & 0x0F
    return (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )


def format_code(truncated: int, digits: int = DEFAULT_DIGITS) -> str:
    """otp = truncated % 10^digits, zero-pad cho đủ `digits` ký tự."""
    if digits <= 0:
        raise ValueError(f"digits must be positive, got {digits}")
    return str(truncated % (10 ** digits)).zfill(digits)


def check_digest(digest) -> bytes:
    """Kiểm tra output của provider: phải là 20 byte SHA1 digest."""
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != SHA1_DIGEST_SIZE:
        raise CryptoUnavailable("HMAC-SHA1 primitive returned an invalid digest")
    return bytes(digest)


def sign(key: bytes, message: bytes, hmac_sha1: HmacSha1 = hashlib_hmac_sha1):
    """
    Gọi primitive HMAC, gói mọi lỗi thành CryptoUnavailable.

    Có thể trả về awaitable nếu provider là async — caller tự xử lý.
    """
    try:
        return hmac_sha1(key, message)
    except CryptoUnavailable:
        logger.error("HMAC-SHA1 primitive unavailable")
        raise
    except Exception as e:
        logger.error("HMAC-SHA1 primitive failed: %s", e)
        raise CryptoUnavailable("HMAC-SHA1 primitive could not be invoked") from e


def generate_otp(key: bytes, counter: bytes, digits: int = DEFAULT_DIGITS,
                 hmac_sha1: HmacSha1 = hashlib_hmac_sha1) -> str:
    """
    Sinh mã OTP từ raw key và counter 8 byte.

    Steps:
    1. HMAC-SHA1(key, counter) -> 20 byte
    2. Dynamic truncate -> số 31-bit
    3. % 10^digits, zero-pad

    Raises:
        CryptoUnavailable: primitive lỗi hoặc trả về digest sai; provider async
        (trả về awaitable) phải đi qua đường async của TOTPGenerator.
    """
    digest = sign(key, counter, hmac_sha1)
    if inspect.isawaitable(digest):
        if inspect.iscoroutine(digest):
            digest.close()
        raise CryptoUnavailable("Asynchronous HMAC provider requires generate_token_async()")
    return format_code(dynamic_truncate(check_digest(digest)), digits)


def hotp(secret: str, counter: int, digits: int = DEFAULT_DIGITS,
         hmac_sha1: HmacSha1 = hashlib_hmac_sha1, strict: bool = False) -> str:
    """
    Sinh mã HOTP theo RFC4226 từ secret Base32 (chưa chuẩn hóa cũng được).

    Arguments:
        secret: Base32 secret người dùng nhập
        counter: integer counter (non-negative)
        digits: số chữ số OTP
    """
    key = decode_base32(normalize_secret(secret), strict=strict)
    return generate_otp(key, int_to_bytes(counter), digits, hmac_sha1)
