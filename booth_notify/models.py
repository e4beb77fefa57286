"""
資料模型

定義爬取商品、已儲存商品、變更事件、Rich-Text 標註和連結預覽等資料結構。
價格一律以 decimal 字串保存，比較時轉為 Decimal，避免浮點誤差。
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional


def normalize_price(raw: str) -> str:
    """
    將爬取到的原始價格轉為 decimal 字串

    沒有小數部分時補上 ".0"（"500" -> "500.0"）。
    空字串或無法解析的值視為 "0.0"。

    Args:
        raw: 原始價格字串（data-product-price 屬性值）

    Returns:
        正規化後的價格字串
    """
    raw = (raw or "").strip().replace(",", "")
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return "0.0"
    if not value.is_finite():
        return "0.0"
    if raw.lstrip("+-").isdigit():
        raw += ".0"
    return raw


def parse_price(price: str) -> Decimal:
    """將價格字串轉為 Decimal，無法解析時返回 0"""
    try:
        return Decimal(price)
    except (InvalidOperation, TypeError):
        return Decimal(0)


def display_price(price: str) -> str:
    """
    格式化訊息用的價格（去除尾端的 0）

    "500.0" -> "500", "1500.50" -> "1500.5"
    """
    value = parse_price(price).normalize()
    return format(value, "f")


@dataclass
class Item:
    """爬取到的商品（candidate）"""
    category: str
    name: str
    shop_name: str
    price: str
    url: str
    image_url: str = ""


@dataclass
class PersistedItem:
    """資料庫中的商品記錄（shop_name 不儲存）"""
    name: str
    category: str
    price: str
    url: str
    image_url: str
    created_at: datetime
    updated_at: datetime
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PersistedItem":
        return cls(
            id=row["id"],
            name=row["name"],
            category=row["category"],
            price=row["price"],
            url=row["url"],
            image_url=row["image_url"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


def record_new(item: Item, now: datetime) -> PersistedItem:
    """建立新商品記錄，created_at 與 updated_at 皆設為 now"""
    return PersistedItem(
        name=item.name,
        category=item.category,
        price=item.price,
        url=item.url,
        image_url=item.image_url,
        created_at=now,
        updated_at=now,
    )


def record_price_change(
    existing: PersistedItem,
    new_price: str,
    now: datetime
) -> PersistedItem:
    """更新價格，只變更 price 與 updated_at（id、created_at 保持不變）"""
    return replace(existing, price=new_price, updated_at=now)


class ChangeKind(Enum):
    NEW = "new"
    PRICE_CHANGED = "price_changed"
    UNCHANGED = "unchanged"


@dataclass
class ChangeEvent:
    """需要通知的變更事件"""
    kind: ChangeKind
    item: Item
    old_price: Optional[str] = None

    @property
    def new_price(self) -> str:
        return self.item.price


@dataclass
class RichTextSpan:
    """訊息中的標註範圍（UTF-8 位元組 offset，半開區間）"""
    start_byte: int
    end_byte: int
    text: str
    kind: str = "tag"


@dataclass
class BlobRef:
    """上傳到 Bluesky blob store 的圖片"""
    ref: Dict[str, Any]
    mime_type: str
    size: int

    def to_record(self) -> Dict[str, Any]:
        return {
            "$type": "blob",
            "ref": self.ref,
            "mimeType": self.mime_type,
            "size": self.size,
        }


@dataclass
class LinkPreview:
    """連結預覽（app.bsky.embed.external）"""
    uri: str
    title: str = ""
    description: str = ""
    image_url: Optional[str] = None
    thumb: Optional[BlobRef] = None

    def to_embed(self) -> Dict[str, Any]:
        external: Dict[str, Any] = {
            "uri": self.uri,
            "title": self.title,
            "description": self.description,
        }
        if self.thumb is not None:
            external["thumb"] = self.thumb.to_record()
        return {
            "$type": "app.bsky.embed.external",
            "external": external,
        }


@dataclass
class Notification:
    """
    格式化後的通知

    text 為 body 加上 hashtag，Twitter 與 Bluesky 使用；Discord 只使用 body。
    """
    title: str
    body: str
    text: str = ""

    def __post_init__(self):
        if not self.text:
            self.text = self.body


@dataclass
class RunResult:
    """一次執行的統計"""
    scraped: int = 0
    new: int = 0
    price_changed: int = 0
    unchanged: int = 0
    failed: int = 0
    sent: int = 0
    events: list = field(default_factory=list)
