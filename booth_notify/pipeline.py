"""
scrape -> 判定 -> 儲存 -> 格式化 -> 通知 的批次處理

列表頁只取得一次，由舊到新逐筆處理。儲存失敗的商品不通知；
單一通知管道失敗不影響其他管道與後續商品。
"""

import logging
import sqlite3
from datetime import datetime
from typing import List, Optional

from .classifier import classify
from .config import NotifyConfig
from .formatter import format_event, format_new
from .models import (
    ChangeEvent,
    ChangeKind,
    Item,
    Notification,
    RunResult,
    record_new,
    record_price_change,
)
from .notifier import BaseNotifier
from .richtext import extract_spans
from .storage import ItemStorage

logger = logging.getLogger(__name__)


def dispatch(
    notification: Notification,
    url: str,
    channels: List[BaseNotifier],
    debug: bool = False
) -> int:
    """
    發送通知到所有管道

    Returns:
        發送成功的管道數
    """
    spans = extract_spans(notification.text)
    sent = 0
    for channel in channels:
        if debug and not channel.enabled_in_debug:
            continue
        if channel.notify(notification, spans, url):
            sent += 1
        else:
            logger.warning(f"[{channel.name}] failed to notify {url}")
    return sent


def process_item(
    item: Item,
    storage: ItemStorage,
    now: datetime
) -> Optional[ChangeEvent]:
    """
    判定單一商品並寫入資料庫

    Returns:
        需要通知的 ChangeEvent；UNCHANGED 或寫入失敗時返回 None

    Raises:
        sqlite3.Error: 寫入失敗時（呼叫端記錄並略過）
    """
    result = classify(item, storage)

    if result.kind == ChangeKind.NEW:
        storage.insert(record_new(item, now))
        return ChangeEvent(ChangeKind.NEW, item)

    if result.kind == ChangeKind.PRICE_CHANGED:
        old_price = result.existing.price
        storage.update_price(record_price_change(result.existing, item.price, now))
        return ChangeEvent(ChangeKind.PRICE_CHANGED, item, old_price=old_price)

    return None


def run_pipeline(
    config: NotifyConfig,
    scraper,
    storage: ItemStorage,
    channels: List[BaseNotifier],
    now: Optional[datetime] = None,
) -> RunResult:
    """
    執行一次完整的批次處理

    Args:
        config: 執行設定
        scraper: BoothScraper
        storage: 儲存服務
        channels: 啟用的通知管道
        now: 寫入資料庫的時間（測試用），None 時使用目前時間

    Returns:
        RunResult

    Raises:
        ScrapeError: 列表頁無法取得時（不發送任何通知）
    """
    items = scraper.scrape(config.listing_url)
    result = RunResult(scraped=len(items))

    if config.debug:
        # debug 模式只處理最新的一筆，不寫入資料庫
        if items:
            item = items[0]
            notification = format_new(item, test=True, hashtags=config.hashtags)
            result.sent += dispatch(notification, item.url, channels, debug=True)
        return result

    for item in reversed(items):
        timestamp = now or datetime.now(config.tz)
        try:
            event = process_item(item, storage, timestamp)
        except sqlite3.Error as e:
            logger.error(f"Failed to save {item.url}: {e}")
            result.failed += 1
            continue

        if event is None:
            result.unchanged += 1
            continue

        if event.kind == ChangeKind.NEW:
            result.new += 1
            logger.info(f"New item: {item.name} ({item.url})")
        else:
            result.price_changed += 1
            logger.info(f"Price changed: {item.name} {event.old_price} -> {event.new_price}")
        result.events.append(event)

        notification = format_event(event, hashtags=config.hashtags)
        result.sent += dispatch(notification, item.url, channels)

    return result
