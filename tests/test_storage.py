#!/usr/bin/env python3
"""
測試 ItemStorage 類別
"""
import unittest
import os
import tempfile
import shutil
from datetime import datetime, timedelta, timezone

from booth_notify.models import Item, record_new, record_price_change
from booth_notify.storage import ItemStorage

JST = timezone(timedelta(hours=9))


class TestItemStorage(unittest.TestCase):
    def setUp(self):
        """每個測試前創建臨時資料庫"""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "data", "test_items.db")
        self.storage = ItemStorage(db_path=self.db_path)
        self.item = Item(
            category="音楽",
            name="テスト商品",
            shop_name="テストショップ",
            price="1000.0",
            url="https://booth.pm/ja/items/1",
            image_url="https://booth.pximg.net/1.jpg",
        )

    def tearDown(self):
        """每個測試後清理臨時資料庫"""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_check_connection(self):
        """測試連線確認"""
        version = self.storage.check_connection()
        self.assertTrue(version.startswith("3."))

    def test_find_by_url_missing(self):
        """測試查詢不存在的商品"""
        self.assertIsNone(self.storage.find_by_url("https://booth.pm/ja/items/404"))

    def test_insert_and_find(self):
        """測試新增商品"""
        now = datetime(2024, 1, 1, 12, 0, tzinfo=JST)
        saved = self.storage.insert(record_new(self.item, now))
        self.assertIsNotNone(saved.id)

        found = self.storage.find_by_url(self.item.url)
        self.assertEqual(found.id, saved.id)
        self.assertEqual(found.name, "テスト商品")
        self.assertEqual(found.category, "音楽")
        self.assertEqual(found.price, "1000.0")
        self.assertEqual(found.image_url, "https://booth.pximg.net/1.jpg")
        self.assertEqual(found.created_at, now)
        self.assertEqual(found.updated_at, now)
        self.assertEqual(self.storage.count(), 1)

    def test_update_price(self):
        """測試更新價格（id 與 created_at 不變）"""
        created = datetime(2024, 1, 1, 12, 0, tzinfo=JST)
        updated = created + timedelta(days=1)
        saved = self.storage.insert(record_new(self.item, created))

        self.storage.update_price(record_price_change(saved, "800.0", updated))

        found = self.storage.find_by_url(self.item.url)
        self.assertEqual(found.id, saved.id)
        self.assertEqual(found.price, "800.0")
        self.assertEqual(found.created_at, created)
        self.assertEqual(found.updated_at, updated)
        self.assertEqual(self.storage.count(), 1)

    def test_update_without_id(self):
        """測試沒有 id 的記錄無法更新"""
        record = record_new(self.item, datetime.now(JST))
        with self.assertRaises(ValueError):
            self.storage.update_price(record)

    def test_price_precision_preserved(self):
        """測試價格以文字保存，不失精度"""
        self.item.price = "1234567890.123456789"
        self.storage.insert(record_new(self.item, datetime.now(JST)))
        found = self.storage.find_by_url(self.item.url)
        self.assertEqual(found.price, "1234567890.123456789")


if __name__ == "__main__":
    unittest.main()
