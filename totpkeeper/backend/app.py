"""
FLASK APP MAIN ENTRY POINT - TOTPKEEPER BACKEND SERVER
========================================================

File chính để khởi chạy API server của totpkeeper.
Thiết lập Flask app, cấu hình CORS, và đăng ký routes.

CÁC TÍNH NĂNG CHÍNH
- CORS enabled cho frontend / browser extension
- Đăng ký blueprint /api từ backend/routes.py
- Mọi lỗi HTTP (404, 405, ...) trả về JSON
"""
import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from ..core.otp_core import get_hmac_provider
from .routes import tokens_bp

logger = logging.getLogger(__name__)

# KHỞI TẠO FLASK APP
app = Flask(__name__)

# CẤU HÌNH (override bằng biến môi trường)
# - TOTPKEEPER_STRICT=1: từ chối secret không cho ra byte khóa nào
# - TOTPKEEPER_HMAC: 'hashlib' (mặc định) hoặc 'cryptography'
app.config['STRICT_SECRETS'] = os.environ.get('TOTPKEEPER_STRICT', '0') == '1'
app.config['HMAC_PROVIDER'] = os.environ.get('TOTPKEEPER_HMAC', 'hashlib')


def check_config(config):
    """Kiểm tra cấu hình một lần lúc khởi động (provider HMAC không hợp lệ -> ValueError)"""
    get_hmac_provider(config['HMAC_PROVIDER'])


check_config(app.config)

# BẬT CORS (Cross-Origin Resource Sharing)
CORS(app)

app.register_blueprint(tokens_bp)


@app.errorhandler(HTTPException)
def handle_http_error(e):
    """Trả lỗi HTTP dạng JSON thay vì trang HTML của werkzeug"""
    return jsonify({"error": e.description}), e.code


# ROOT ENDPOINT - TRANG CHỦ API
@app.route('/', methods=['GET'])
def index():
    return jsonify({
        "service": "totpkeeper",
        "endpoints": {
            "GET /api/tokens": "List tokens with current codes (?search=&sort=name|recent)",
            "POST /api/tokens": "Add a token {name, secret, digits?, period?}",
            "GET /api/tokens/<name>": "Current code for one token",
            "DELETE /api/tokens/<name>": "Delete a token",
            "POST /api/totp": "Ad-hoc code for a secret {secret, digits?, period?, timestamp?}",
        }
    })


# KHỞI CHẠY SERVER
if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True, host='0.0.0.0', port=5000)
