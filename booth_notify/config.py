"""
設定載入模組

從環境變數（與 .env.<APP_ENV> 檔案）建立明確的 NotifyConfig，
取代全域的 debug 旗標與時區設定。
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta, timezone
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# BOOTH 音楽カテゴリ / 東方Project / 新着順 / 在庫あり / ダウンロード商品
DEFAULT_LISTING_URL = (
    "https://booth.pm/ja/browse/%E9%9F%B3%E6%A5%BD"
    "?in_stock=true&new_arrival=true&q=%E6%9D%B1%E6%96%B9Project"
    "&sort=new&type=digital"
)

# 楽譜ショップは通知対象外
DEFAULT_EXCLUDED_SHOP_PREFIX = "楽譜"

DEFAULT_HASHTAGS = "#booth_pm #東方デジタル音楽\n#東方Project #東方楽曲 #東方アレンジ"

DEFAULT_BLUESKY_HOST = "https://bsky.social"


class ConfigError(ValueError):
    """必要的設定值不存在"""
    pass


def load_env(app_env: Optional[str] = None, env_dir: str = ".") -> str:
    """
    載入 .env.<APP_ENV> 檔案

    APP_ENV 未設定時視為 development；production 時不讀取檔案。

    Args:
        app_env: 覆寫 APP_ENV
        env_dir: .env 檔案所在目錄

    Returns:
        實際使用的 APP_ENV

    Raises:
        FileNotFoundError: 非 production 且 .env 檔案不存在時
    """
    if app_env:
        os.environ["APP_ENV"] = app_env
    env = os.environ.setdefault("APP_ENV", "development")

    if env != "production":
        env_file = os.path.join(env_dir, f".env.{env}")
        if not os.path.exists(env_file):
            raise FileNotFoundError(f"Error loading env file: {env_file}")
        load_dotenv(env_file)
        logger.debug(f"Loaded {env_file}")

    return env


def must_getenv(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigError(f"{name} environment variable not set")
    return value


def _get_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


@dataclass
class NotifyConfig:
    """執行設定"""
    database_path: str
    debug: bool = False
    utc_offset_hours: float = 9
    listing_url: str = DEFAULT_LISTING_URL
    http_timeout: float = 10.0
    excluded_shop_prefix: str = DEFAULT_EXCLUDED_SHOP_PREFIX
    hashtags: str = DEFAULT_HASHTAGS
    langs: List[str] = field(default_factory=lambda: ["ja"])
    log_level: str = "INFO"

    twitter_consumer_key: Optional[str] = None
    twitter_consumer_secret: Optional[str] = None
    twitter_access_token: Optional[str] = None
    twitter_access_token_secret: Optional[str] = None

    discord_bot_token: Optional[str] = None
    discord_channel_id: Optional[str] = None

    bluesky_handle: Optional[str] = None
    bluesky_password: Optional[str] = None
    bluesky_host: str = DEFAULT_BLUESKY_HOST

    @classmethod
    def from_env(cls) -> "NotifyConfig":
        """
        從環境變數建立設定

        Raises:
            ConfigError: DATABASE_PATH 未設定時
        """
        return cls(
            database_path=must_getenv("DATABASE_PATH"),
            debug=bool(os.getenv("DEBUG")),
            utc_offset_hours=_get_float("UTC_OFFSET_HOURS", 9),
            listing_url=os.getenv("LISTING_URL") or DEFAULT_LISTING_URL,
            http_timeout=_get_float("HTTP_TIMEOUT", 10.0),
            excluded_shop_prefix=os.getenv("EXCLUDED_SHOP_PREFIX") or DEFAULT_EXCLUDED_SHOP_PREFIX,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            twitter_consumer_key=os.getenv("TWITTER_CONSUMER_KEY"),
            twitter_consumer_secret=os.getenv("TWITTER_CONSUMER_SECRET"),
            twitter_access_token=os.getenv("TWITTER_ACCESS_TOKEN"),
            twitter_access_token_secret=os.getenv("TWITTER_ACCESS_TOKEN_SECRET"),
            discord_bot_token=os.getenv("DISCORD_BOT_TOKEN"),
            discord_channel_id=os.getenv("DISCORD_CHANNEL_ID"),
            bluesky_handle=os.getenv("BLUESKY_HANDLE"),
            bluesky_password=os.getenv("BLUESKY_PASSWORD"),
            bluesky_host=os.getenv("BLUESKY_HOST") or DEFAULT_BLUESKY_HOST,
        )

    @property
    def tz(self) -> timezone:
        return timezone(timedelta(hours=self.utc_offset_hours))

    @property
    def twitter_enabled(self) -> bool:
        return all([
            self.twitter_consumer_key,
            self.twitter_consumer_secret,
            self.twitter_access_token,
            self.twitter_access_token_secret,
        ])

    @property
    def discord_enabled(self) -> bool:
        return bool(self.discord_bot_token and self.discord_channel_id)

    @property
    def bluesky_enabled(self) -> bool:
        return bool(self.bluesky_handle and self.bluesky_password)
