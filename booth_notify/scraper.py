"""
BOOTH 商品列表爬蟲

解析 li.item-card 卡片，並排除楽譜ショップ。
"""

import logging
from typing import List, Optional

from bs4 import BeautifulSoup

from .base_scraper import BaseScraper, ScrapeError
from .config import DEFAULT_EXCLUDED_SHOP_PREFIX
from .link_preview import decode_html
from .models import Item, normalize_price

logger = logging.getLogger(__name__)


CARD_SELECTOR = "li.item-card"
CATEGORY_SELECTOR = "div.item-card__category"
TITLE_SELECTOR = "div.item-card__title"
SHOP_NAME_SELECTOR = "div.item-card__shop-name"
LINK_SELECTOR = "div.item-card__title a"
IMAGE_SELECTOR = "div img"
PRICE_ATTR = "data-product-price"


def _select_text(element, selector: str) -> str:
    found = element.select_one(selector)
    return found.get_text(strip=True) if found else ""


def _select_attr(element, selector: str, attr: str) -> str:
    found = element.select_one(selector)
    if found is None:
        return ""
    return found.get(attr) or ""


class BoothScraper(BaseScraper):
    """BOOTH 列表頁爬蟲"""

    def __init__(self, excluded_shop_prefix: str = DEFAULT_EXCLUDED_SHOP_PREFIX, **kwargs):
        super().__init__(**kwargs)
        self.excluded_shop_prefix = excluded_shop_prefix

    def scrape(self, url: str) -> List[Item]:
        response = self._fetch(url)
        # Content-Type 沒有 charset 時 requests 會以 ISO-8859-1 解碼，改用原始位元組判斷編碼
        html = decode_html(response.content, response.headers.get("content-type"))
        if html is None:
            raise ScrapeError(f"Failed to decode {url}")
        items = self.parse_listing(html)
        logger.info(f"Scraped {len(items)} items from {url}")
        return items

    def parse_listing(self, html: str) -> List[Item]:
        """
        解析列表頁 HTML

        Args:
            html: 列表頁 HTML

        Returns:
            依頁面順序（新到舊）排列的商品列表
        """
        soup = BeautifulSoup(html, "html.parser")
        items = []
        for card in soup.select(CARD_SELECTOR):
            item = self.parse_product(card)
            if item is not None:
                items.append(item)
        return items

    def parse_product(self, element) -> Optional[Item]:
        shop_name = _select_text(element, SHOP_NAME_SELECTOR)
        if self.is_excluded(shop_name):
            logger.debug(f"Skipping excluded shop: {shop_name}")
            return None

        return Item(
            category=_select_text(element, CATEGORY_SELECTOR),
            name=_select_text(element, TITLE_SELECTOR),
            shop_name=shop_name,
            price=normalize_price(element.get(PRICE_ATTR) or ""),
            url=_select_attr(element, LINK_SELECTOR, "href"),
            image_url=_select_attr(element, IMAGE_SELECTOR, "src"),
        )

    def is_excluded(self, shop_name: str) -> bool:
        return bool(self.excluded_shop_prefix) and shop_name.startswith(self.excluded_shop_prefix)
