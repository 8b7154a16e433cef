"""Token store (sqlite): các cặp (tên dịch vụ, secret)."""
