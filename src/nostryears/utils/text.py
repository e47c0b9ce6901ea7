"""URL and image detection on free-text event content.

Character counts exclude every URL-shaped substring so that link-heavy
posts are not rewarded for their length. Each URL occurrence is stripped
independently, so counts do not depend on URL order or repetition.

Examples:
    ```python
    count_chars_without_urls("look https://example.com/a.png nice")  # 10
    count_images("https://example.com/a.png?w=200 https://example.com/")  # 1
    ```
"""

from __future__ import annotations

import re


URL_PATTERN = re.compile(r"https?://[^\s<>\"{}|\\^`\[\]]+", re.IGNORECASE)

# Query string ignored; the path must end in one of these extensions.
IMAGE_URL_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif|webp|bmp|svg)(\?\S*)?$", re.IGNORECASE)


def remove_urls(text: str) -> str:
    """Remove every URL from *text*, then strip surrounding whitespace."""
    return URL_PATTERN.sub("", text).strip()


def count_chars_without_urls(text: str) -> int:
    """Number of characters (code points) left after :func:`remove_urls`."""
    return len(remove_urls(text))


def extract_urls(text: str) -> list[str]:
    return URL_PATTERN.findall(text)


def extract_image_urls(text: str) -> list[str]:
    """URLs in *text* whose path ends in a known image extension."""
    return [url for url in extract_urls(text) if IMAGE_URL_PATTERN.search(url)]


def count_images(text: str) -> int:
    return len(extract_image_urls(text))
