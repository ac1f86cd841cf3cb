"""
news/slugs.py -- URL slugs derived from article titles.
"""

import re
import unicodedata

_NON_WORD_RE = re.compile(r"[^a-z0-9]+")
_MAX_SLUG_LEN = 120


def slugify(title: str) -> str:
    """Lowercase ASCII slug: "India wins series!" -> "india-wins-series".

    Accents are folded to their base letter; anything else that is not a
    letter or digit becomes a single hyphen. Returns "" for titles with no
    usable characters -- callers must reject that.
    """
    folded = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    slug = _NON_WORD_RE.sub("-", folded.lower()).strip("-")
    return slug[:_MAX_SLUG_LEN].rstrip("-")
