import logging
import os
import sqlite3
import time

from ..core.otp_core import DEFAULT_DIGITS, DEFAULT_TIME_STEP
from .setup_database import setup_database

logger = logging.getLogger(__name__)

DATABASE_FILE = os.environ.get('TOTPKEEPER_DB', 'database/tokens.db')

SORT_ORDERS = {
    'name': 'lower(name) ASC, name ASC',
    'recent': 'created_at DESC, id DESC',
}


def get_db_connection():
    """Kết nối đến database (tự tạo bảng nếu file chưa tồn tại)"""
    if not os.path.exists(DATABASE_FILE):
        setup_database(DATABASE_FILE)
    conn = sqlite3.connect(DATABASE_FILE)
    conn.row_factory = sqlite3.Row  # Trả về kết quả dạng dictionary
    return conn


def add_token(name: str, secret: str, digits: int = DEFAULT_DIGITS,
              period: int = DEFAULT_TIME_STEP) -> tuple[bool, str]:
    """Lưu token mới (tên dịch vụ + secret như người dùng nhập)"""
    conn = get_db_connection()
    cursor = conn.cursor()

    try:
        cursor.execute(
            """INSERT INTO tokens (name, secret, digits, period, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (name, secret, digits, period, time.time())
        )
        conn.commit()
        logger.info("Token '%s' added", name)
        return (True, f"Token '{name}' added successfully.")
    except sqlite3.IntegrityError:
        error_message = f"Error: Token '{name}' already exists."
        logger.warning(error_message)
        return (False, error_message)
    finally:
        conn.close()


def get_token(name: str) -> dict | None:
    """Lấy token theo tên"""
    conn = get_db_connection()
    cursor = conn.cursor()

    cursor.execute(
        "SELECT name, secret, digits, period, created_at FROM tokens WHERE name = ?",
        (name,)
    )
    result = cursor.fetchone()

    conn.close()

    if result:
        return dict(result)

    logger.debug("Token '%s' not found in the database", name)
    return None


def list_tokens(search: str | None = None, sort: str = 'name') -> list[dict]:
    """
    Liệt kê token.

    - search: lọc theo tên, không phân biệt hoa thường (chuỗi con)
    - sort: 'name' (A-Z) hoặc 'recent' (mới nhất trước)
    """
    if sort not in SORT_ORDERS:
        raise ValueError(f"Unknown sort order: {sort!r}")

    query = "SELECT name, secret, digits, period, created_at FROM tokens"
    params = ()
    if search:
        query += " WHERE instr(lower(name), lower(?)) > 0"
        params = (search,)
    query += " ORDER BY " + SORT_ORDERS[sort]

    conn = get_db_connection()
    cursor = conn.cursor()
    cursor.execute(query, params)
    rows = [dict(row) for row in cursor.fetchall()]
    conn.close()
    return rows


def delete_token(name: str) -> bool:
    """Xóa token theo tên, trả về False nếu không có"""
    conn = get_db_connection()
    cursor = conn.cursor()

    cursor.execute("DELETE FROM tokens WHERE name = ?", (name,))
    conn.commit()
    deleted = cursor.rowcount > 0
    conn.close()

    if deleted:
        logger.info("Token '%s' deleted", name)
    return deleted


def token_exists(name: str) -> bool:
    """Kiểm tra token có tồn tại không"""
    conn = get_db_connection()
    cursor = conn.cursor()

    cursor.execute("SELECT id FROM tokens WHERE name = ?", (name,))
    result = cursor.fetchone()

    conn.close()

    return result is not None
