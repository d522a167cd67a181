"""Crawler and media-type predicates used by the interception test."""

from __future__ import annotations

import mimetypes
import re
from collections.abc import Callable
from urllib.parse import urlsplit

HTML_MEDIA_TYPE = "text/html"

# Tokens that identify automated clients. Matched case-insensitively anywhere
# in the User-Agent header.
CRAWLER_PATTERNS = (
    r"bot\b",
    r"bot[/\-_ ;)]",
    r"crawl",
    r"spider",
    r"slurp",
    r"scraper",
    r"archiver",
    r"facebookexternalhit",
    r"facebookcatalog",
    r"embedly",
    r"quora link preview",
    r"outbrain",
    r"pinterest",
    r"vkshare",
    r"w3c_validator",
    r"whatsapp",
    r"skypeuripreview",
    r"nuzzel",
    r"bitlybot",
    r"tumblr",
    r"flipboard",
    r"redditbot",
    r"google-(?:inspectiontool|read-aloud|structured-data-testing-tool|site-verification)",
    r"mediapartners-google",
    r"adsbot-google",
    r"lighthouse",
    r"chrome-lighthouse",
    r"headlesschrome",
    r"phantomjs",
    r"prerender",
    r"python-requests",
    r"python-httpx",
    r"aiohttp",
    r"curl/",
    r"wget/",
    r"go-http-client",
    r"okhttp",
    r"java/",
    r"libwww-perl",
)

_CRAWLER_RE = re.compile("|".join(CRAWLER_PATTERNS), re.IGNORECASE)

BotPredicate = Callable[[str], bool]


def is_bot(user_agent: str) -> bool:
    return bool(_CRAWLER_RE.search(user_agent.strip()))


def guess_media_type(path: str) -> str | None:
    """Media type implied by the path's extension, or None for extension-less paths."""
    media_type, _ = mimetypes.guess_type(urlsplit(path).path, strict=False)
    return media_type


def should_intercept(
    user_agent: str | None,
    path: str,
    *,
    internal_user_agent: str,
    is_bot: BotPredicate = is_bot,
) -> bool:
    if not user_agent:
        return False
    # Our own renderer loading the page
    if user_agent == internal_user_agent:
        return False
    if not is_bot(user_agent):
        return False
    media_type = guess_media_type(path)
    return media_type is None or media_type == HTML_MEDIA_TYPE
