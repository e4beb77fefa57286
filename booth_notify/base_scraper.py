"""
爬蟲基礎類別模組

定義網站爬蟲的共用介面和行為，包括：
- 抽象方法定義 (scrape, parse_product)
- requests Session 初始化和關閉邏輯
- User-Agent 選擇
"""

import random
from abc import ABC, abstractmethod
from typing import List, Optional

import requests

from .models import Item


class ScrapeError(Exception):
    """列表頁無法取得（整次執行中止）"""
    pass


class BaseScraper(ABC):
    """
    爬蟲基礎類別

    網站特定的爬蟲繼承此類別並實作抽象方法。
    """

    DEFAULT_USER_AGENTS = [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    ]

    def __init__(
        self,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        user_agents: Optional[List[str]] = None,
    ):
        """
        初始化爬蟲

        Args:
            timeout: HTTP 請求逾時秒數
            session: 共用的 requests Session，None 時自行建立
            user_agents: 自訂 User-Agent 列表，若為 None 則使用預設列表
        """
        self.timeout = timeout
        self.user_agents = user_agents or self.DEFAULT_USER_AGENTS.copy()
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", self._get_user_agent())

    @abstractmethod
    def scrape(self, url: str) -> List[Item]:
        """
        爬取指定 URL 的商品資訊

        Raises:
            ScrapeError: 頁面無法取得時
        """
        pass

    @abstractmethod
    def parse_product(self, element) -> Optional[Item]:
        """
        解析單一商品元素

        Returns:
            Item，若應略過則返回 None
        """
        pass

    def _get_user_agent(self) -> str:
        return random.choice(self.user_agents)

    def _fetch(self, url: str) -> requests.Response:
        """
        取得頁面

        Raises:
            ScrapeError: 連線失敗或非 2xx 狀態碼
        """
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ScrapeError(f"Failed to fetch {url}: {e}") from e
        return response

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        """支援 context manager 用法"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
