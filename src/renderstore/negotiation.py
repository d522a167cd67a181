"""Choose between sending stored gzip bytes as-is or decompressed."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import Response

from renderstore.renderer import decompress

if TYPE_CHECKING:
    from renderstore.models.page import Page

HTML_CONTENT_TYPE = "text/html; charset=utf-8"


def accepts_gzip(accept_encoding: str | None) -> bool:
    if not accept_encoding:
        return False
    for coding in accept_encoding.split(","):
        name, _, params = coding.strip().partition(";")
        if name.strip().lower() not in ("gzip", "x-gzip"):
            continue
        # "gzip;q=0" is an explicit refusal
        quality = params.strip().replace(" ", "")
        return quality not in ("q=0", "q=0.0", "q=0.00", "q=0.000")
    return False


def page_response(page: Page, accept_encoding: str | None) -> Response:
    headers = {"Vary": "Accept-Encoding"}
    if accepts_gzip(accept_encoding):
        headers["Content-Encoding"] = "gzip"
        body = page.content
    else:
        body = decompress(page.content)
    return Response(
        content=body,
        status_code=200,
        headers=headers,
        media_type=HTML_CONTENT_TYPE,
    )
