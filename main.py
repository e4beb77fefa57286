#!/usr/bin/env python3
"""
BOOTH 東方Project 新着通知 主程式
"""
import argparse
import logging
import sqlite3
import sys

from booth_notify.base_scraper import ScrapeError
from booth_notify.config import ConfigError, NotifyConfig, load_env
from booth_notify.notifier import BlueskyError, build_notifiers
from booth_notify.pipeline import run_pipeline
from booth_notify.scraper import BoothScraper
from booth_notify.storage import ItemStorage

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="BOOTH 新着/価格更新 通知")
    parser.add_argument("--debug", action="store_true", help="最新の1件だけをテスト通知する")
    parser.add_argument("--dry-run", action="store_true", help="通知を送信しない")
    parser.add_argument("--env", help="APP_ENV を上書きする")
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv=None) -> int:
    """主程式"""
    args = parse_args(argv)

    try:
        load_env(args.env)
        config = NotifyConfig.from_env()
    except (ConfigError, FileNotFoundError) as e:
        setup_logging("INFO")
        logger.error(f"Configuration error: {e}")
        return 1

    if args.debug:
        config.debug = True
    setup_logging(config.log_level)

    logger.info("touhou booth notify start!")

    # 初始化元件
    try:
        storage = ItemStorage(config.database_path)
        logger.info(f"SQLite {storage.check_connection()}")
    except sqlite3.Error as e:
        logger.error(f"Database connection failed: {e}")
        return 1

    channels = []
    if not args.dry_run:
        try:
            channels = build_notifiers(config)
        except BlueskyError as e:
            logger.error(str(e))
            return 1

    with BoothScraper(
        excluded_shop_prefix=config.excluded_shop_prefix,
        timeout=config.http_timeout,
    ) as scraper:
        try:
            result = run_pipeline(config, scraper, storage, channels)
        except ScrapeError as e:
            logger.error(f"getItems error: {e}")
            return 1
        finally:
            for channel in channels:
                channel.close()

    logger.info(
        f"Scraped {result.scraped}, new {result.new}, "
        f"price changed {result.price_changed}, unchanged {result.unchanged}, "
        f"failed {result.failed}, notifications sent {result.sent}"
    )
    logger.info("touhou booth notify successfully completed!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
