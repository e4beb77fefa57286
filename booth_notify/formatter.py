"""
通知訊息格式化

新着 / 更新 兩種固定模板。訊息為純文字，不做 HTML/Markdown 跳脫。
"""

from typing import Optional

from .config import DEFAULT_HASHTAGS
from .models import ChangeEvent, ChangeKind, Item, Notification, display_price

NEW_HEADER = "【🆕新着情報🆕】"
UPDATE_HEADER = "【🆙更新情報🆙】"
TEST_PREFIX = "【テスト】"
PRICE_SEPARATOR = " -> "


def with_hashtags(body: str, hashtags: Optional[str] = DEFAULT_HASHTAGS) -> str:
    """在訊息末尾加上主題 hashtag"""
    if not hashtags:
        return body
    return f"{body}\n\n{hashtags}"


def _render(header: str, item: Item, price_line: str, hashtags: Optional[str]) -> Notification:
    title = f"{header} {item.shop_name} - {item.name}"
    body = (
        f"{header}\n\n"
        f"{item.category}\n"
        f"{item.name}\n"
        f"{price_line}\n\n"
        f"{item.url}\n"
        f"{item.shop_name}"
    )
    return Notification(title=title, body=body, text=with_hashtags(body, hashtags))


def format_new(
    item: Item,
    test: bool = False,
    hashtags: Optional[str] = DEFAULT_HASHTAGS
) -> Notification:
    """
    新商品通知

    Args:
        item: 新商品
        test: 是否為 debug 模式的測試訊息
        hashtags: 附加的 hashtag，None 時不附加

    Returns:
        Notification
    """
    header = TEST_PREFIX + NEW_HEADER if test else NEW_HEADER
    price_line = f"{display_price(item.price)}円"
    return _render(header, item, price_line, hashtags)


def format_price_changed(
    item: Item,
    old_price: str,
    test: bool = False,
    hashtags: Optional[str] = DEFAULT_HASHTAGS
) -> Notification:
    """價格更新通知（舊價格 -> 新價格）"""
    header = TEST_PREFIX + UPDATE_HEADER if test else UPDATE_HEADER
    price_line = (
        f"{display_price(old_price)}円"
        f"{PRICE_SEPARATOR}"
        f"{display_price(item.price)}円"
    )
    return _render(header, item, price_line, hashtags)


def format_event(
    event: ChangeEvent,
    test: bool = False,
    hashtags: Optional[str] = DEFAULT_HASHTAGS
) -> Notification:
    if event.kind == ChangeKind.NEW:
        return format_new(event.item, test=test, hashtags=hashtags)
    if event.kind == ChangeKind.PRICE_CHANGED:
        return format_price_changed(event.item, event.old_price, test=test, hashtags=hashtags)
    raise ValueError(f"Nothing to format for {event.kind}")
