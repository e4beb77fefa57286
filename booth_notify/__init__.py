# booth_notify - BOOTH 新着/価格更新 通知
# Contains: scraper, classifier, formatter, richtext, link_preview, storage, notifier, pipeline

from .base_scraper import BaseScraper, ScrapeError
from .scraper import BoothScraper
from .storage import ItemStorage
from .config import NotifyConfig, ConfigError, load_env
from .notifier import (
    BaseNotifier,
    TwitterNotifier,
    DiscordNotifier,
    BlueskyNotifier,
    BlueskyError,
    build_notifiers,
)
from .pipeline import run_pipeline

__all__ = [
    'BaseScraper',
    'ScrapeError',
    'BoothScraper',
    'ItemStorage',
    'NotifyConfig',
    'ConfigError',
    'load_env',
    'BaseNotifier',
    'TwitterNotifier',
    'DiscordNotifier',
    'BlueskyNotifier',
    'BlueskyError',
    'build_notifiers',
    'run_pipeline',
]
