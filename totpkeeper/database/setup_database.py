import logging
import os
import sqlite3

logger = logging.getLogger(__name__)


def setup_database(path: str):
    """Tạo database và bảng tokens nếu chưa có"""

    # Đảm bảo thư mục tồn tại
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(path)
    cursor = conn.cursor()

    # Mỗi token là một cặp (tên dịch vụ, secret) kèm cấu hình digits/period
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS tokens (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        secret TEXT NOT NULL,
        digits INTEGER NOT NULL DEFAULT 6,
        period INTEGER NOT NULL DEFAULT 30,
        created_at REAL NOT NULL
    )
    ''')

    conn.commit()
    conn.close()
    logger.info("Database setup completed at %s", path)


if __name__ == "__main__":
    from .db_manager import DATABASE_FILE

    logging.basicConfig(level=logging.INFO)
    setup_database(DATABASE_FILE)
