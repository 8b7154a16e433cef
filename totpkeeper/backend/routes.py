"""
TOTPKEEPER API ROUTES - FLASK BLUEPRINT

Các endpoint quản lý token (tên dịch vụ + secret) và sinh mã TOTP.

VÍ DỤ:
curl -X POST http://localhost:5000/api/tokens -H "Content-Type: application/json" -d '{"name": "github", "secret": "JBSWY3DPEHPK3PXP"}'
curl http://localhost:5000/api/tokens
curl "http://localhost:5000/api/tokens?search=git&sort=recent"
curl http://localhost:5000/api/tokens/github
curl -X DELETE http://localhost:5000/api/tokens/github
"""

import logging
import time

from flask import Blueprint, current_app, jsonify, request

from ..core.otp_core import (
    DEFAULT_DIGITS,
    DEFAULT_TIME_STEP,
    OTPError,
    get_hmac_provider,
)
from ..core.otp_generator import create_generator
from ..database import db_manager

logger = logging.getLogger(__name__)

tokens_bp = Blueprint('tokens', __name__, url_prefix='/api')

INVALID_SECRET = "Invalid secret key"


def _generator(secret: str, digits: int, period: int):
    """Tạo generator theo cấu hình app (strict mode, HMAC provider)."""
    return create_generator(
        secret,
        digits=digits,
        period=period,
        hmac_sha1=get_hmac_provider(current_app.config.get('HMAC_PROVIDER', 'hashlib')),
        strict=current_app.config.get('STRICT_SECRETS', False),
    )


def _timestamp(value) -> int:
    """timestamp do client gửi (test/debug), mặc định dùng đồng hồ hệ thống."""
    if value is None:
        return int(time.time())
    timestamp = int(value)
    if timestamp < 0:
        raise ValueError("'timestamp' must not be negative")
    return timestamp


def _positive_int(data: dict, key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"'{key}' must be a positive integer")
    return value


def _render_token(token: dict, now: int) -> dict:
    """Token + mã hiện tại. Lỗi sinh mã không làm hỏng cả danh sách."""
    item = {
        "name": token["name"],
        "digits": token["digits"],
        "period": token["period"],
        "created_at": token["created_at"],
    }
    try:
        gen = _generator(token["secret"], token["digits"], token["period"])
        item["code"], item["remaining"] = gen.snapshot(now)
    except OTPError as e:
        logger.error("Error generating code for token '%s': %s", token["name"], e)
        item["code"] = None
        item["remaining"] = None
        item["error"] = INVALID_SECRET
    return item


@tokens_bp.route('/tokens', methods=['GET'])
def list_tokens_route():
    """
    DANH SÁCH TOKEN KÈM MÃ HIỆN TẠI

      curl "http://localhost:5000/api/tokens?search=git&sort=name"

    Tham số:
      search: lọc theo tên (không phân biệt hoa thường)
      sort: 'name' (mặc định) hoặc 'recent'
    """
    search = request.args.get('search')
    sort = request.args.get('sort', 'name')
    try:
        now = _timestamp(request.args.get('timestamp'))
        tokens = db_manager.list_tokens(search=search, sort=sort)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"tokens": [_render_token(t, now) for t in tokens]})


@tokens_bp.route('/tokens', methods=['POST'])
def add_token_route():
    """
    THÊM TOKEN

    Input (JSON body):
      {
        "name": "github",             # BẮT BUỘC
        "secret": "JBSWY3DPEHPK3PXP", # BẮT BUỘC
        "digits": 6,
        "period": 30
      }

    Mã được sinh thử trước khi lưu: lỗi -> 400 "Invalid secret key", không lưu gì.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data.get('name') or 'secret' not in data:
        return jsonify({"error": "Name and secret are required"}), 400
    if not isinstance(data['name'], str) or not isinstance(data['secret'], str):
        return jsonify({"error": "Name and secret must be strings"}), 400

    name = data['name']
    secret = data['secret']
    try:
        digits = _positive_int(data, 'digits', DEFAULT_DIGITS)
        period = _positive_int(data, 'period', DEFAULT_TIME_STEP)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    now = int(time.time())
    try:
        code, remaining = _generator(secret, digits, period).snapshot(now)
    except OTPError as e:
        logger.error("Error adding token '%s': %s", name, e)
        return jsonify({"error": INVALID_SECRET}), 400

    success, message = db_manager.add_token(name, secret, digits, period)
    if not success:
        return jsonify({"error": message}), 409

    return jsonify({
        "message": message,
        "name": name,
        "code": code,
        "remaining": remaining,
    }), 201


@tokens_bp.route('/tokens/<string:name>', methods=['GET'])
def get_token_route(name):
    """
    MÃ HIỆN TẠI CỦA MỘT TOKEN

      curl http://localhost:5000/api/tokens/github
    """
    token = db_manager.get_token(name)
    if token is None:
        return jsonify({"error": f"Token '{name}' not found."}), 404

    try:
        now = _timestamp(request.args.get('timestamp'))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    item = _render_token(token, now)
    if item.get("error"):
        return jsonify(item), 422
    return jsonify(item)


@tokens_bp.route('/tokens/<string:name>', methods=['DELETE'])
def delete_token_route(name):
    """
    XÓA TOKEN

      curl -X DELETE http://localhost:5000/api/tokens/github
    """
    if not db_manager.delete_token(name):
        return jsonify({"error": f"Token '{name}' not found."}), 404
    return jsonify({"message": f"Token '{name}' deleted", "name": name})


@tokens_bp.route('/totp', methods=['POST'])
def totp_route():
    """
    SINH MÃ TOTP CHO MỘT SECRET (KHÔNG LƯU)

    Body: {"secret": "JBSWY3DPEHPK3PXP", "digits": 6, "period": 30, "timestamp": 59}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or 'secret' not in data:
        return jsonify({"error": "Secret is required"}), 400
    if not isinstance(data['secret'], str):
        return jsonify({"error": "Secret must be a string"}), 400

    try:
        digits = _positive_int(data, 'digits', DEFAULT_DIGITS)
        period = _positive_int(data, 'period', DEFAULT_TIME_STEP)
        now = _timestamp(data.get('timestamp'))
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    try:
        code, remaining = _generator(data['secret'], digits, period).snapshot(now)
    except OTPError as e:
        logger.error("Error generating ad-hoc code: %s", e)
        return jsonify({"error": INVALID_SECRET}), 400

    return jsonify({
        "code": code,
        "remaining": remaining,
        "timestamp": now,
        "digits": digits,
        "period": period,
    })
