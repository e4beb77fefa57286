"""
通知服務模組

各通知管道（Twitter、Bluesky、Discord）都實作同一個
notify(notification, spans, url) 介面。發送失敗只記錄 log，不拋出例外。
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from requests_oauthlib import OAuth1

from .link_preview import LinkPreviewBuilder
from .models import BlobRef, Notification, RichTextSpan
from .richtext import to_facets

logger = logging.getLogger(__name__)


class BaseNotifier(ABC):
    """通知管道基礎類別"""

    name = "base"
    # False 的管道在 debug 模式下不發送
    enabled_in_debug = True

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    def close(self) -> None:
        """釋放管道持有的連線"""
        pass

    @abstractmethod
    def notify(
        self,
        notification: Notification,
        spans: List[RichTextSpan],
        url: str
    ) -> bool:
        """
        發送通知

        Args:
            notification: 格式化後的通知
            spans: notification.text 的 hashtag / link 標註
            url: 商品頁面 URL

        Returns:
            是否發送成功
        """
        pass


class TwitterNotifier(BaseNotifier):
    """X (Twitter) 貼文"""

    name = "twitter"
    enabled_in_debug = False
    TWEET_URL = "https://api.twitter.com/2/tweets"

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        access_token: str,
        access_token_secret: str,
        timeout: float = 10.0,
    ):
        super().__init__(timeout)
        if not all([consumer_key, consumer_secret, access_token, access_token_secret]):
            raise ValueError("Twitter consumer key/secret and access token/secret must be set")
        self.auth = OAuth1(
            consumer_key,
            client_secret=consumer_secret,
            resource_owner_key=access_token,
            resource_owner_secret=access_token_secret,
        )

    def notify(self, notification, spans, url) -> bool:
        try:
            response = requests.post(
                self.TWEET_URL,
                json={"text": notification.text},
                auth=self.auth,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return True
        except Exception as e:
            logger.error(f"tweet error: {e}")
            return False


class DiscordNotifier(BaseNotifier):
    """Discord 頻道訊息（Bot token）"""

    name = "discord"
    API_BASE = "https://discord.com/api/v10"

    def __init__(self, bot_token: str, channel_id: str, timeout: float = 10.0):
        super().__init__(timeout)
        if not bot_token or not channel_id:
            raise ValueError("DISCORD_BOT_TOKEN and DISCORD_CHANNEL_ID must be set")
        self.bot_token = bot_token
        self.channel_id = channel_id

    def notify(self, notification, spans, url) -> bool:
        try:
            response = requests.post(
                f"{self.API_BASE}/channels/{self.channel_id}/messages",
                json={"content": notification.body},
                headers={"Authorization": f"Bot {self.bot_token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return True
        except Exception as e:
            logger.error(f"Error sending Discord message: {e}")
            return False


class BlueskyError(Exception):
    """Bluesky API 呼叫失敗"""
    pass


class BlueskyNotifier(BaseNotifier):
    """
    Bluesky 貼文

    建立時以 handle / password 登入（com.atproto.server.createSession），
    貼文包含 hashtag / link facet 和商品頁面的連結預覽。
    """

    name = "bluesky"

    def __init__(
        self,
        handle: str,
        password: str,
        host: str = "https://bsky.social",
        timeout: float = 10.0,
        tz: timezone = timezone.utc,
        langs: Optional[List[str]] = None,
        preview_builder: Optional[LinkPreviewBuilder] = None,
    ):
        super().__init__(timeout)
        if not handle or not password:
            raise ValueError("BLUESKY_HANDLE and BLUESKY_PASSWORD must be set")
        self.host = host.rstrip("/")
        self.tz = tz
        self.langs = langs or ["ja"]
        self.preview_builder = preview_builder or LinkPreviewBuilder(timeout=timeout)
        self.preview_builder.uploader = self.upload_blob

        self.access_jwt: Optional[str] = None
        self.did: Optional[str] = None
        self._create_session(handle, password)

    def close(self) -> None:
        self.preview_builder.close()

    def _xrpc_url(self, method: str) -> str:
        return f"{self.host}/xrpc/{method}"

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_jwt}"}

    def _create_session(self, identifier: str, password: str) -> None:
        """
        Raises:
            BlueskyError: 登入失敗時
        """
        try:
            response = requests.post(
                self._xrpc_url("com.atproto.server.createSession"),
                json={"identifier": identifier, "password": password},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise BlueskyError(f"Failed to create Bluesky session: {e}") from e

        self.access_jwt = data["accessJwt"]
        self.did = data["did"]
        logger.info(f"Logged in to Bluesky as {data.get('handle', identifier)}")

    def upload_blob(self, data: bytes, mime_type: str) -> Optional[BlobRef]:
        """上傳圖片（com.atproto.repo.uploadBlob）"""
        response = requests.post(
            self._xrpc_url("com.atproto.repo.uploadBlob"),
            data=data,
            headers={**self._auth_headers(), "Content-Type": mime_type},
            timeout=self.timeout,
        )
        response.raise_for_status()
        blob = response.json()["blob"]
        return BlobRef(ref=blob["ref"], mime_type=mime_type, size=blob.get("size", len(data)))

    def build_post(
        self,
        text: str,
        spans: List[RichTextSpan],
        url: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """組成 app.bsky.feed.post 記錄"""
        now = now or datetime.now(self.tz)
        post: Dict[str, Any] = {
            "$type": "app.bsky.feed.post",
            "text": text,
            "createdAt": now.isoformat(timespec="seconds"),
            "langs": self.langs,
        }
        facets = to_facets(spans)
        if facets:
            post["facets"] = facets
        if url:
            post["embed"] = self.preview_builder.build(url).to_embed()
        return post

    def notify(self, notification, spans, url) -> bool:
        try:
            post = self.build_post(notification.text, spans, url)
            response = requests.post(
                self._xrpc_url("com.atproto.repo.createRecord"),
                json={
                    "repo": self.did,
                    "collection": "app.bsky.feed.post",
                    "record": post,
                },
                headers=self._auth_headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            return True
        except Exception as e:
            logger.error(f"Error posting to Bluesky: {e}")
            return False


def build_notifiers(config) -> List[BaseNotifier]:
    """
    依憑證是否存在建立通知管道

    Args:
        config: NotifyConfig

    Returns:
        啟用的通知管道列表

    Raises:
        BlueskyError: Bluesky 登入失敗時
    """
    notifiers: List[BaseNotifier] = []
    if config.twitter_enabled:
        notifiers.append(TwitterNotifier(
            config.twitter_consumer_key,
            config.twitter_consumer_secret,
            config.twitter_access_token,
            config.twitter_access_token_secret,
            timeout=config.http_timeout,
        ))
    if config.discord_enabled:
        notifiers.append(DiscordNotifier(
            config.discord_bot_token,
            config.discord_channel_id,
            timeout=config.http_timeout,
        ))
    if config.bluesky_enabled:
        notifiers.append(BlueskyNotifier(
            config.bluesky_handle,
            config.bluesky_password,
            host=config.bluesky_host,
            timeout=config.http_timeout,
            tz=config.tz,
            langs=config.langs,
        ))
    logger.info(f"Enabled channels: {[n.name for n in notifiers]}")
    return notifiers
