from __future__ import annotations

import math
from typing import Iterable

from ..prismic.richtext import as_text
from ..prismic.types import PostContent

WORDS_PER_MINUTE = 200


def count_words(content: Iterable[PostContent]) -> int:
    parts = []
    for section in content:
        parts.append(section.heading)
        parts.append(as_text(section.body))
    return len(" ".join(parts).split())


def reading_time(content: Iterable[PostContent], words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """Minutes needed to read the post, rounded up."""
    return math.ceil(count_words(content) / words_per_minute)
