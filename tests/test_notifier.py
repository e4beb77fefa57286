#!/usr/bin/env python3
"""
測試通知管道（Twitter、Discord、Bluesky）
"""
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch, MagicMock

import requests

from booth_notify.config import NotifyConfig
from booth_notify.models import LinkPreview, Notification
from booth_notify.notifier import (
    BlueskyError,
    BlueskyNotifier,
    DiscordNotifier,
    TwitterNotifier,
    build_notifiers,
)
from booth_notify.richtext import extract_spans

JST = timezone(timedelta(hours=9))
URL = "https://booth.pm/ja/items/1"


def _ok_response(payload=None):
    response = MagicMock()
    response.status_code = 200
    response.raise_for_status = MagicMock()
    response.json.return_value = payload or {}
    return response


def _session_response():
    return _ok_response({
        "accessJwt": "access",
        "refreshJwt": "refresh",
        "handle": "touhou.bsky.social",
        "did": "did:plc:test",
    })


class TestTwitterNotifier(unittest.TestCase):
    def setUp(self):
        self.notifier = TwitterNotifier("ck", "cs", "at", "ats")
        self.notification = Notification(title="title", body="body", text="body\n\n#booth_pm")

    def test_init_requires_credentials(self):
        with self.assertRaises(ValueError):
            TwitterNotifier("ck", "", "at", "ats")

    def test_disabled_in_debug(self):
        self.assertFalse(TwitterNotifier.enabled_in_debug)

    @patch("booth_notify.notifier.requests.post")
    def test_notify(self, mock_post):
        """測試發送推文（使用含 hashtag 的 text）"""
        mock_post.return_value = _ok_response()

        result = self.notifier.notify(self.notification, [], URL)

        self.assertTrue(result)
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://api.twitter.com/2/tweets")
        self.assertEqual(kwargs["json"], {"text": "body\n\n#booth_pm"})
        self.assertIs(kwargs["auth"], self.notifier.auth)

    @patch("booth_notify.notifier.requests.post")
    def test_notify_failure(self, mock_post):
        """測試發送失敗時返回 False"""
        mock_post.side_effect = requests.ConnectionError("boom")
        self.assertFalse(self.notifier.notify(self.notification, [], URL))


class TestDiscordNotifier(unittest.TestCase):
    def test_init_requires_channel(self):
        with self.assertRaises(ValueError):
            DiscordNotifier("token", "")

    @patch("booth_notify.notifier.requests.post")
    def test_notify(self, mock_post):
        """測試發送頻道訊息（不含 hashtag）"""
        mock_post.return_value = _ok_response()
        notifier = DiscordNotifier("token", "12345")
        notification = Notification(title="title", body="body", text="body\n\n#booth_pm")

        self.assertTrue(notifier.notify(notification, [], URL))

        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://discord.com/api/v10/channels/12345/messages")
        self.assertEqual(kwargs["json"], {"content": "body"})
        self.assertEqual(kwargs["headers"], {"Authorization": "Bot token"})

    @patch("booth_notify.notifier.requests.post")
    def test_notify_http_error(self, mock_post):
        response = _ok_response()
        response.raise_for_status.side_effect = requests.HTTPError("403")
        mock_post.return_value = response
        notifier = DiscordNotifier("token", "12345")
        self.assertFalse(notifier.notify(Notification(title="t", body="b"), [], URL))


class TestBlueskyNotifier(unittest.TestCase):
    def setUp(self):
        self.preview_builder = MagicMock()
        self.preview_builder.build.return_value = LinkPreview(
            uri=URL, title="Title", description="Description"
        )

    def _notifier(self, mock_post):
        mock_post.return_value = _session_response()
        return BlueskyNotifier(
            "touhou.bsky.social",
            "password",
            tz=JST,
            preview_builder=self.preview_builder,
        )

    @patch("booth_notify.notifier.requests.post")
    def test_login(self, mock_post):
        """測試建立 session"""
        notifier = self._notifier(mock_post)
        self.assertEqual(notifier.did, "did:plc:test")
        self.assertEqual(notifier.access_jwt, "access")
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://bsky.social/xrpc/com.atproto.server.createSession")
        self.assertEqual(kwargs["json"], {"identifier": "touhou.bsky.social", "password": "password"})
        self.assertEqual(self.preview_builder.uploader, notifier.upload_blob)

    @patch("booth_notify.notifier.requests.post")
    def test_login_failure(self, mock_post):
        """測試登入失敗時拋出 BlueskyError"""
        response = _ok_response()
        response.raise_for_status.side_effect = requests.HTTPError("401")
        mock_post.return_value = response
        with self.assertRaises(BlueskyError):
            BlueskyNotifier("touhou.bsky.social", "wrong", preview_builder=self.preview_builder)

    @patch("booth_notify.notifier.requests.post")
    def test_build_post(self, mock_post):
        """測試貼文記錄包含 facet 與 embed"""
        notifier = self._notifier(mock_post)
        text = f"新着\n{URL}\n\n#booth_pm"
        now = datetime(2024, 1, 1, 12, 0, tzinfo=JST)

        post = notifier.build_post(text, extract_spans(text), URL, now=now)

        self.assertEqual(post["text"], text)
        self.assertEqual(post["createdAt"], "2024-01-01T12:00:00+09:00")
        self.assertEqual(post["langs"], ["ja"])
        features = [f["features"][0]["$type"] for f in post["facets"]]
        self.assertEqual(features, ["app.bsky.richtext.facet#tag", "app.bsky.richtext.facet#link"])
        self.assertEqual(post["embed"]["external"]["title"], "Title")
        self.preview_builder.build.assert_called_once_with(URL)

    @patch("booth_notify.notifier.requests.post")
    def test_notify(self, mock_post):
        """測試 createRecord 呼叫"""
        notifier = self._notifier(mock_post)
        mock_post.return_value = _ok_response({"uri": "at://post", "cid": "cid"})
        notification = Notification(title="t", body="b", text="b #booth_pm")

        self.assertTrue(notifier.notify(notification, extract_spans(notification.text), URL))

        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://bsky.social/xrpc/com.atproto.repo.createRecord")
        self.assertEqual(kwargs["json"]["repo"], "did:plc:test")
        self.assertEqual(kwargs["json"]["collection"], "app.bsky.feed.post")
        self.assertEqual(kwargs["json"]["record"]["text"], "b #booth_pm")
        self.assertEqual(kwargs["headers"], {"Authorization": "Bearer access"})

    @patch("booth_notify.notifier.requests.post")
    def test_notify_failure(self, mock_post):
        notifier = self._notifier(mock_post)
        mock_post.side_effect = requests.ConnectionError("boom")
        self.assertFalse(notifier.notify(Notification(title="t", body="b"), [], URL))

    @patch("booth_notify.notifier.requests.post")
    def test_close_releases_preview_builder(self, mock_post):
        """測試 close 會關閉連結預覽的 session"""
        notifier = self._notifier(mock_post)
        notifier.close()
        self.preview_builder.close.assert_called_once()

    @patch("booth_notify.notifier.requests.post")
    def test_upload_blob(self, mock_post):
        """測試上傳圖片"""
        notifier = self._notifier(mock_post)
        mock_post.return_value = _ok_response({
            "blob": {"$type": "blob", "ref": {"$link": "bafkrei"}, "mimeType": "image/png", "size": 24}
        })

        blob = notifier.upload_blob(b"\x89PNG", "image/png")

        self.assertEqual(blob.ref, {"$link": "bafkrei"})
        self.assertEqual(blob.mime_type, "image/png")
        self.assertEqual(blob.size, 24)
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://bsky.social/xrpc/com.atproto.repo.uploadBlob")
        self.assertEqual(kwargs["headers"]["Content-Type"], "image/png")


class TestBuildNotifiers(unittest.TestCase):
    def test_no_credentials(self):
        config = NotifyConfig(database_path="items.db")
        self.assertEqual(build_notifiers(config), [])

    def test_twitter_and_discord(self):
        config = NotifyConfig(
            database_path="items.db",
            twitter_consumer_key="ck",
            twitter_consumer_secret="cs",
            twitter_access_token="at",
            twitter_access_token_secret="ats",
            discord_bot_token="token",
            discord_channel_id="12345",
        )
        names = [n.name for n in build_notifiers(config)]
        self.assertEqual(names, ["twitter", "discord"])

    @patch("booth_notify.notifier.requests.post")
    def test_bluesky(self, mock_post):
        mock_post.return_value = _session_response()
        config = NotifyConfig(
            database_path="items.db",
            bluesky_handle="touhou.bsky.social",
            bluesky_password="password",
        )
        notifiers = build_notifiers(config)
        self.assertEqual([n.name for n in notifiers], ["bluesky"])
        self.assertEqual(notifiers[0].tz, config.tz)


if __name__ == "__main__":
    unittest.main()
