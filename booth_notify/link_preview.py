"""
連結預覽產生器

取得商品頁面，判斷文字編碼，抽出 title / description / og:image，
必要時下載預覽圖片並上傳為 blob。任何步驟失敗都只會減少欄位，不會中止通知。
"""

import logging
import re
from typing import Callable, Optional

import requests
from bs4 import BeautifulSoup
from bs4.dammit import EncodingDetector, UnicodeDammit

from .models import BlobRef, LinkPreview

logger = logging.getLogger(__name__)

SNIFF_LENGTH = 1024

_CHARSET_RE = re.compile(r"charset=[\"']?([\w.:-]+)", re.IGNORECASE)

# (magic bytes, offset, mime type)
_IMAGE_SIGNATURES = [
    (b"\x89PNG\r\n\x1a\n", 0, "image/png"),
    (b"\xff\xd8\xff", 0, "image/jpeg"),
    (b"GIF87a", 0, "image/gif"),
    (b"GIF89a", 0, "image/gif"),
    (b"WEBP", 8, "image/webp"),
    (b"BM", 0, "image/bmp"),
]

Uploader = Callable[[bytes, str], Optional[BlobRef]]


def sniff_encoding(sample: bytes, content_type: Optional[str]) -> Optional[str]:
    """
    判斷 HTML 的文字編碼

    依序使用 Content-Type 的 charset、BOM、文件開頭的 <meta charset> 宣告。

    Args:
        sample: 回應內容開頭的位元組
        content_type: Content-Type header

    Returns:
        編碼名稱，無法判斷時返回 None
    """
    match = _CHARSET_RE.search(content_type or "")
    if match:
        return match.group(1).lower()
    _, bom_encoding = EncodingDetector.strip_byte_order_mark(sample)
    if bom_encoding:
        return bom_encoding
    return EncodingDetector.find_declared_encoding(sample, is_html=True)


def sniff_image_type(data: bytes, fallback: Optional[str] = None) -> str:
    """由 magic bytes 判斷圖片 MIME type"""
    for signature, offset, mime_type in _IMAGE_SIGNATURES:
        if data[offset:offset + len(signature)] == signature:
            if mime_type == "image/webp" and not data.startswith(b"RIFF"):
                continue
            return mime_type
    if fallback:
        return fallback.split(";")[0].strip()
    return "application/octet-stream"


def decode_html(body: bytes, content_type: Optional[str]) -> Optional[str]:
    """將回應內容解碼為字串，失敗時返回 None"""
    encoding = sniff_encoding(body[:SNIFF_LENGTH], content_type)
    if encoding:
        try:
            return body.decode(encoding, errors="replace")
        except LookupError:
            logger.debug(f"Unknown encoding {encoding}, falling back to detection")
    return UnicodeDammit(body, is_html=True).unicode_markup


def _meta_content(soup: BeautifulSoup, **attrs) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    return (tag.get("content") or "").strip()


class LinkPreviewBuilder:
    """app.bsky.embed.external 用的連結預覽"""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        uploader: Optional[Uploader] = None,
    ):
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.timeout = timeout
        self.uploader = uploader

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        """支援 context manager 用法"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def build(self, url: str) -> LinkPreview:
        """
        產生連結預覽

        Args:
            url: 商品頁面 URL

        Returns:
            LinkPreview；頁面無法取得時 title / description 皆為 url
        """
        fallback = LinkPreview(uri=url, title=url, description=url)

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch link preview for {url}: {e}")
            return fallback

        if response.status_code != 200:
            logger.warning(f"Link preview for {url} returned {response.status_code}")
            return fallback

        html = decode_html(response.content, response.headers.get("content-type"))
        if html is None:
            logger.warning(f"Failed to decode link preview for {url}")
            return fallback

        preview = self.parse(url, html)
        if preview.image_url and self.uploader is not None:
            preview.thumb = self._upload_image(preview.image_url)
        return preview

    def parse(self, url: str, html: str) -> LinkPreview:
        """從 HTML 抽出 title / description / og:image"""
        soup = BeautifulSoup(html, "html.parser")

        title = soup.title.get_text(strip=True) if soup.title else ""
        if not title:
            title = _meta_content(soup, property="og:title") or url

        description = (
            _meta_content(soup, name="description")
            or _meta_content(soup, property="description")
            or _meta_content(soup, property="og:description")
            or url
        )

        image_url = _meta_content(soup, property="og:image") or None

        return LinkPreview(
            uri=url,
            title=title,
            description=description,
            image_url=image_url,
        )

    def _upload_image(self, image_url: str) -> Optional[BlobRef]:
        try:
            response = self.session.get(image_url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch preview image {image_url}: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"Preview image {image_url} returned {response.status_code}")
            return None

        data = response.content
        mime_type = sniff_image_type(data, response.headers.get("content-type"))
        try:
            return self.uploader(data, mime_type)
        except Exception as e:
            logger.warning(f"Failed to upload preview image {image_url}: {e}")
            return None
