"""
Rich-Text 標註

抽出訊息中的 hashtag 與 URL，offset 以 UTF-8 位元組計算
（Bluesky facet 以 byte 為單位）。
"""

import re
from typing import Any, Dict, List

from .models import RichTextSpan

TAG_RE = re.compile(r"\B#\S+")
LINK_RE = re.compile(r"https?://\S+")


def _byte_offset(text: str, index: int) -> int:
    return len(text[:index].encode("utf-8"))


def _extract(pattern, text: str, kind: str, strip: str = "") -> List[RichTextSpan]:
    spans = []
    for match in pattern.finditer(text):
        value = match.group(0)
        if strip and value.startswith(strip):
            value = value[len(strip):]
        spans.append(RichTextSpan(
            start_byte=_byte_offset(text, match.start()),
            end_byte=_byte_offset(text, match.end()),
            text=value,
            kind=kind,
        ))
    return spans


def extract_tags(text: str) -> List[RichTextSpan]:
    """抽出 hashtag（回傳的 text 不含 #）"""
    return _extract(TAG_RE, text, "tag", strip="#")


def extract_links(text: str) -> List[RichTextSpan]:
    """抽出 http(s) URL"""
    return _extract(LINK_RE, text, "link")


def extract_spans(text: str) -> List[RichTextSpan]:
    return extract_tags(text) + extract_links(text)


def to_facets(spans: List[RichTextSpan]) -> List[Dict[str, Any]]:
    """轉為 app.bsky.richtext.facet 記錄"""
    facets = []
    for span in spans:
        if span.kind == "tag":
            feature = {"$type": "app.bsky.richtext.facet#tag", "tag": span.text}
        else:
            feature = {"$type": "app.bsky.richtext.facet#link", "uri": span.text}
        facets.append({
            "index": {"byteStart": span.start_byte, "byteEnd": span.end_byte},
            "features": [feature],
        })
    return facets
