"""
Storage service for scraped BOOTH items.

A single `items` table keyed by an autoincrement id, looked up by url.
Prices are stored as decimal text so no precision is lost.
"""

import logging
import os
import sqlite3
from typing import Optional

from .models import PersistedItem

logger = logging.getLogger(__name__)


class ItemStorage:
    """商品儲存服務"""

    def __init__(self, db_path: str = "data/items.db"):
        self.db_path = db_path
        self._ensure_db_exists()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_db_exists(self):
        """確保資料庫檔案和資料表存在"""
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        conn = self._connect()
        conn.execute("PRAGMA journal_mode=WAL")
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                category TEXT NOT NULL DEFAULT '',
                price TEXT NOT NULL,
                url TEXT NOT NULL,
                image_url TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_items_url ON items(url)
        """)

        conn.commit()
        conn.close()

    def check_connection(self) -> str:
        """
        確認資料庫可連線

        Returns:
            SQLite 版本字串

        Raises:
            sqlite3.Error: 無法連線時
        """
        conn = self._connect()
        try:
            row = conn.execute("SELECT sqlite_version()").fetchone()
        finally:
            conn.close()
        return row[0]

    def find_by_url(self, url: str) -> Optional[PersistedItem]:
        """以 url 取得商品記錄，不存在時返回 None"""
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM items WHERE url = ? ORDER BY id LIMIT 1",
                (url,)
            ).fetchone()
        finally:
            conn.close()

        if row:
            return PersistedItem.from_row(dict(row))
        return None

    def insert(self, item: PersistedItem) -> PersistedItem:
        """
        新增商品記錄

        Args:
            item: record_new() 建立的記錄

        Returns:
            帶有資料庫 id 的記錄
        """
        conn = self._connect()
        try:
            cursor = conn.execute(
                """INSERT INTO items (
                    name, category, price, url, image_url, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    item.name,
                    item.category,
                    item.price,
                    item.url,
                    item.image_url,
                    item.created_at.isoformat(),
                    item.updated_at.isoformat(),
                )
            )
            conn.commit()
            item.id = cursor.lastrowid
        finally:
            conn.close()
        return item

    def update_price(self, item: PersistedItem) -> None:
        """
        更新價格（只寫入 price 與 updated_at）

        Args:
            item: record_price_change() 建立的記錄
        """
        if item.id is None:
            raise ValueError("Cannot update an item without id")

        conn = self._connect()
        try:
            conn.execute(
                "UPDATE items SET price = ?, updated_at = ? WHERE id = ?",
                (item.price, item.updated_at.isoformat(), item.id)
            )
            conn.commit()
        finally:
            conn.close()

    def count(self) -> int:
        """取得商品數量"""
        conn = self._connect()
        try:
            return conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
        finally:
            conn.close()
