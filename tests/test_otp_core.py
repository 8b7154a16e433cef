import base64
import unittest

from totpkeeper.core.otp_core import (
    CryptoUnavailable,
    InvalidSecretShape,
    counter_bytes,
    cryptography_hmac_sha1,
    decode_base32,
    dynamic_truncate,
    format_code,
    generate_otp,
    get_hmac_provider,
    hashlib_hmac_sha1,
    hotp,
    int_to_bytes,
    normalize_secret,
    remaining_seconds,
)

# base32("12345678901234567890"), the RFC 4226 / RFC 6238 SHA-1 test key
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"
RFC_KEY = b"12345678901234567890"

RFC4226_CODES = [
    "755224", "287082", "359152", "969429", "338314",
    "254676", "287922", "162583", "399871", "520489",
]

RFC6238_SHA1_CODES = {
    59: "94287082",
    1111111109: "07081804",
    1111111111: "14050471",
    1234567890: "89005924",
    2000000000: "69279037",
}


class NormalizeSecretTests(unittest.TestCase):
    def test_strips_spaces_punctuation_and_case(self):
        self.assertEqual(normalize_secret("jb sw y3d p- eh pk3p xp"), "JBSWY3DPEHPK3PXP")

    def test_removes_all_whitespace_kinds(self):
        self.assertEqual(normalize_secret(" jbsw\ty3dp\nehpk\r3pxp "), "JBSWY3DPEHPK3PXP")

    def test_pads_to_multiple_of_eight(self):
        self.assertEqual(normalize_secret("abc"), "ABC=====")
        self.assertEqual(normalize_secret("MY"), "MY======")

    def test_digits_outside_alphabet_are_dropped(self):
        self.assertEqual(normalize_secret("0189"), "")
        self.assertEqual(normalize_secret("a1b8"), "AB======")

    def test_empty_and_invalid_input_normalize_to_empty(self):
        self.assertEqual(normalize_secret(""), "")
        self.assertEqual(normalize_secret("!!! ---"), "")

    def test_existing_padding_is_recomputed(self):
        self.assertEqual(normalize_secret("MY======"), "MY======")
        self.assertEqual(normalize_secret("MY="), "MY======")

    def test_idempotent_on_normalized_secret(self):
        for secret in ["JBSWY3DPEHPK3PXP", "ABC=====", RFC_SECRET, ""]:
            self.assertEqual(normalize_secret(secret), secret)

    def test_length_is_always_multiple_of_eight(self):
        samples = ["", "a", "ab", "abc d", "hello world 234567", "x" * 13, "?" * 9, RFC_SECRET]
        for raw in samples:
            self.assertEqual(len(normalize_secret(raw)) % 8, 0, raw)


class DecodeBase32Tests(unittest.TestCase):
    def test_matches_standard_decoder_for_full_quanta(self):
        for secret in ["JBSWY3DPEHPK3PXP", RFC_SECRET]:
            self.assertEqual(decode_base32(secret), base64.b32decode(secret))

    def test_rfc_key(self):
        self.assertEqual(decode_base32(RFC_SECRET), RFC_KEY)

    def test_lenient_counts_padding_and_zero_fills(self):
        # "MY" -> 10 bits; 8 symbols -> ceil(40 / 8) = 5 bytes
        self.assertEqual(decode_base32("MY======"), b"f\x00\x00\x00\x00")

    def test_partial_final_group_is_right_padded(self):
        # "MZ": 01100 11001 -> 0x66, then "01" -> 0b01000000
        self.assertEqual(decode_base32("MZ"), b"f\x40")

    def test_lenient_skips_unknown_characters(self):
        self.assertEqual(decode_base32("MY-*"), b"f\x00\x00")

    def test_empty_input_decodes_to_empty_key(self):
        self.assertEqual(decode_base32(""), b"")

    def test_strict_emits_whole_bytes_only(self):
        self.assertEqual(decode_base32("MY======", strict=True), b"f")
        self.assertEqual(decode_base32(RFC_SECRET, strict=True), RFC_KEY)

    def test_strict_rejects_empty_key(self):
        with self.assertRaises(InvalidSecretShape):
            decode_base32("", strict=True)
        with self.assertRaises(InvalidSecretShape):
            decode_base32("M=======", strict=True)

    def test_strict_rejects_unknown_characters(self):
        with self.assertRaises(InvalidSecretShape):
            decode_base32("MY-*", strict=True)


class CounterTests(unittest.TestCase):
    def test_counter_bytes_big_endian(self):
        self.assertEqual(counter_bytes(59, 30), b"\x00" * 7 + b"\x01")
        self.assertEqual(counter_bytes(1111111109, 30), bytes.fromhex("00000000023523EC"))
        self.assertEqual(counter_bytes(0, 30), b"\x00" * 8)

    def test_counter_floors_fractional_time(self):
        self.assertEqual(counter_bytes(89.99, 30), int_to_bytes(2))

    def test_counter_out_of_range(self):
        with self.assertRaises(ValueError):
            int_to_bytes(-1)
        with self.assertRaises(ValueError):
            int_to_bytes(2 ** 64)

    def test_remaining_seconds(self):
        self.assertEqual(remaining_seconds(0, 30), 30)
        self.assertEqual(remaining_seconds(60, 30), 30)
        self.assertEqual(remaining_seconds(59, 30), 1)
        self.assertEqual(remaining_seconds(61, 30), 29)
        self.assertEqual(remaining_seconds(59.9, 30), 1)

    def test_remaining_seconds_range(self):
        for now in range(0, 200):
            self.assertTrue(1 <= remaining_seconds(now, 7) <= 7)


class HotpEngineTests(unittest.TestCase):
    def test_dynamic_truncate_rfc_example(self):
        digest = bytes.fromhex("1f8698690e02ca16618550ef7f19da8e945b555a")
        self.assertEqual(dynamic_truncate(digest), 0x50EF7F19)
        self.assertEqual(format_code(dynamic_truncate(digest), 6), "872921")

    def test_truncation_masks_top_bit(self):
        digest = b"\xff" * 19 + b"\x00"
        self.assertEqual(dynamic_truncate(digest), 0x7FFFFFFF)

    def test_format_code_zero_pads(self):
        self.assertEqual(format_code(7, 6), "000007")
        self.assertEqual(format_code(1234567, 6), "234567")

    def test_rfc4226_vectors(self):
        for counter, expected in enumerate(RFC4226_CODES):
            self.assertEqual(hotp(RFC_SECRET, counter), expected)
            self.assertEqual(generate_otp(RFC_KEY, int_to_bytes(counter), 6), expected)

    def test_rfc4226_vectors_with_cryptography(self):
        for counter, expected in enumerate(RFC4226_CODES):
            self.assertEqual(hotp(RFC_SECRET, counter, hmac_sha1=cryptography_hmac_sha1), expected)

    def test_rfc6238_vectors(self):
        for now, expected in RFC6238_SHA1_CODES.items():
            code = generate_otp(RFC_KEY, counter_bytes(now, 30), 8)
            self.assertEqual(code, expected)

    def test_empty_key_still_produces_code(self):
        code = generate_otp(b"", int_to_bytes(1), 6)
        self.assertEqual(len(code), 6)
        self.assertTrue(code.isdigit())

    def test_provider_failure_raises_crypto_unavailable(self):
        def broken(key, message):
            raise RuntimeError("no HMAC here")

        with self.assertRaises(CryptoUnavailable) as ctx:
            generate_otp(RFC_KEY, int_to_bytes(0), 6, hmac_sha1=broken)
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)

    def test_short_digest_raises_crypto_unavailable(self):
        with self.assertRaises(CryptoUnavailable):
            generate_otp(RFC_KEY, int_to_bytes(0), 6, hmac_sha1=lambda k, m: b"\x00" * 10)

    def test_async_provider_rejected_on_sync_path(self):
        async def provider(key, message):
            return hashlib_hmac_sha1(key, message)

        with self.assertRaises(CryptoUnavailable):
            generate_otp(RFC_KEY, int_to_bytes(0), 6, hmac_sha1=provider)

    def test_get_hmac_provider(self):
        self.assertIs(get_hmac_provider("hashlib"), hashlib_hmac_sha1)
        self.assertIs(get_hmac_provider("cryptography"), cryptography_hmac_sha1)
        with self.assertRaises(ValueError):
            get_hmac_provider("md5")


if __name__ == "__main__":
    unittest.main()
