"""
變更判定

以 url 查詢既有記錄，將 candidate 分類為 NEW / PRICE_CHANGED / UNCHANGED。
價格以 Decimal 比較（"500.0" 與 "500.00" 視為相同）。
"""

from dataclasses import dataclass
from typing import Optional

from .models import ChangeKind, Item, PersistedItem, parse_price


@dataclass
class Classification:
    kind: ChangeKind
    existing: Optional[PersistedItem] = None


def prices_differ(old_price: str, new_price: str) -> bool:
    return parse_price(old_price) != parse_price(new_price)


def classify(candidate: Item, storage) -> Classification:
    """
    判定 candidate 的變更類型

    Args:
        candidate: 爬取到的商品
        storage: 提供 find_by_url() 的儲存服務

    Returns:
        Classification，existing 為資料庫中的既有記錄（NEW 時為 None）
    """
    existing = storage.find_by_url(candidate.url)
    if existing is None:
        return Classification(ChangeKind.NEW)
    if prices_differ(existing.price, candidate.price):
        return Classification(ChangeKind.PRICE_CHANGED, existing)
    return Classification(ChangeKind.UNCHANGED, existing)
