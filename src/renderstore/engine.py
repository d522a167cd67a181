"""Cache-and-render decision engine.

For each request the engine decides whether to intercept it, resolves a page
through three tiers (in-process cache, remote store, fresh render), hands the
page to the caller's ``send`` and, concurrently, checks whether the served
page has expired. Expired pages are still served; their refresh runs as a
detached task that never holds up the response.

Failure policy:
  - Remote store errors are logged misses (RemoteStore never raises on reads).
  - Render errors turn the request into a pass-through: ``handle`` returns
    ``None`` and the embedding application serves the live page.
  - Persisting a freshly rendered page is best-effort and logged on failure.
    The in-process copy stays authoritative for this process until the next
    refresh overwrites both.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

import httpx
import structlog

from renderstore import detection
from renderstore.config import DEFAULT_EXPIRATION_OFFSET_SECONDS, Settings
from renderstore.errors import ErrorCode, RenderStoreError
from renderstore.hashing import canonical_url, url_to_key
from renderstore.memory import PageCache
from renderstore.models.page import Page, is_expired
from renderstore.renderer import Renderer
from renderstore.store.base import StoreConfig, validate_secret
from renderstore.store.http import build_http_client, default_config
from renderstore.store.remote import RemoteStore

if TYPE_CHECKING:
    from renderstore.detection import BotPredicate
    from renderstore.store.base import PageStore

log = structlog.get_logger()

SendPage = Callable[[Page], Awaitable[None]]


@dataclass(frozen=True)
class PageRequest:
    """The parts of an HTTP request the engine looks at."""

    scheme: str
    host: str
    path: str  # original path including the query string
    user_agent: str | None = None
    accept_encoding: str | None = None

    @property
    def url(self) -> str:
        return canonical_url(self.scheme, self.host, self.path)


class RenderStore:
    def __init__(
        self,
        store: PageStore,
        renderer: Renderer,
        cache: PageCache,
        *,
        expiration_offset: timedelta = timedelta(seconds=DEFAULT_EXPIRATION_OFFSET_SECONDS),
        http_client: httpx.AsyncClient | None = None,
        is_bot: BotPredicate = detection.is_bot,
        max_background_refreshes: int | None = None,
    ) -> None:
        self.cache = cache
        self._store = RemoteStore(store)
        self._renderer = renderer
        self._expiration_offset = expiration_offset
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(follow_redirects=True)
        self._is_bot = is_bot
        self._max_background_refreshes = max_background_refreshes
        self._refreshes: set[asyncio.Task[None]] = set()

    @classmethod
    def from_config(
        cls,
        config: StoreConfig | PageStore | str,
        *,
        settings: Settings | None = None,
        cache: PageCache | None = None,
        renderer: Renderer | None = None,
    ) -> RenderStore:
        """Build an engine from a custom store or from a secret string.

        A string is treated as the deployment secret and wired to the hosted
        persistence API. A ``StoreConfig`` with ``expiration_offset`` set
        overrides the configured default TTL.

        Raises:
            RenderStoreError: INVALID_SECRET for an empty or malformed secret.
        """
        settings = settings or Settings()
        if isinstance(config, str):
            secret = validate_secret(config)
            client = build_http_client(settings.store)
            config = default_config(secret, settings.store, client)
        else:
            client = build_http_client(settings.store)

        offset = timedelta(seconds=settings.cache.expiration_offset_seconds)
        if isinstance(config, StoreConfig) and config.expiration_offset is not None:
            offset = config.expiration_offset

        instance = cls(
            config,
            renderer or Renderer(settings.render),
            cache if cache is not None else PageCache(),
            expiration_offset=offset,
            http_client=client,
            max_background_refreshes=settings.cache.max_background_refreshes,
        )
        instance._owns_client = True
        return instance

    @property
    def expiration_offset(self) -> timedelta:
        return self._expiration_offset

    @property
    def in_flight_refreshes(self) -> int:
        return len(self._refreshes)

    # ------------------------------------------------------------------
    # Request path
    # ------------------------------------------------------------------

    def should_intercept(self, request: PageRequest) -> bool:
        return detection.should_intercept(
            request.user_agent,
            request.path,
            internal_user_agent=self._renderer.user_agent,
            is_bot=self._is_bot,
        )

    async def handle(self, request: PageRequest, send: SendPage) -> Page | None:
        """Serve *request* from the cache layer.

        Returns the page that was sent, or ``None`` when the request was not
        intercepted or could not be served and must go to the application.
        """
        if not self.should_intercept(request):
            return None

        url = request.url
        key = url_to_key(url)
        try:
            page, rendered = await self._resolve(url, key)
        except RenderStoreError as exc:
            log.warning("page_passthrough", url=url, code=exc.code.value, reason=exc.message)
            return None
        except Exception:
            log.error("page_passthrough", url=url, exc_info=True)
            return None

        if rendered:
            await asyncio.gather(send(page), self._store.set(page), self._check_freshness(page))
        else:
            await asyncio.gather(send(page), self._check_freshness(page))
        return page

    async def _resolve(self, url: str, key: str) -> tuple[Page, bool]:
        """Return ``(page, rendered)`` where *rendered* marks a fresh render."""
        page = self.cache.get(key)
        if page is not None:
            log.debug("memory_hit", key=key)
            return page, False

        page = await self._from_remote(url, key)
        if page is not None:
            log.debug("remote_hit", key=key)
            return self.cache.put(page), False

        log.info("cache_miss", url=url, key=key)
        page = await self._render(url, key)
        return self.cache.put(page), True

    async def _from_remote(self, url: str, key: str) -> Page | None:
        data = await self._store.get(key)
        # An empty payload is as good as absent
        if not data:
            return None

        if isinstance(data, str):
            try:
                response = await self._http_client.get(data)
                response.raise_for_status()
            except (httpx.HTTPError, httpx.InvalidURL):
                log.warning(
                    "remote_content_fetch_error",
                    code=ErrorCode.REMOTE_FETCH_FAILED.value,
                    key=key,
                    source=data,
                    exc_info=True,
                )
                return None
            content = response.content
            if not content:
                return None
        else:
            content = bytes(data)

        # Expiration is owned by the remote store and checked after sending.
        return Page(key=key, url=url, expiration=None, content=content)

    async def _render(self, url: str, key: str) -> Page:
        content = await self._renderer.render(url)
        return Page(
            key=key,
            url=url,
            expiration=time.time() + self._expiration_offset.total_seconds(),
            content=content,
        )

    # ------------------------------------------------------------------
    # Freshness and refresh
    # ------------------------------------------------------------------

    async def _check_freshness(self, page: Page) -> None:
        expiration = page.expiration
        if expiration is None:
            expiration = await self._store.get_expiration(page.key)
        if not is_expired(expiration):
            return
        log.info("page_expired", url=page.url, key=page.key, expiration=expiration)
        self._schedule_refresh(page.url)

    def _schedule_refresh(self, url: str) -> asyncio.Task[None] | None:
        limit = self._max_background_refreshes
        if limit is not None and len(self._refreshes) >= limit:
            log.info("refresh_skipped", url=url, in_flight=len(self._refreshes))
            return None
        task = asyncio.create_task(self._refresh(url), name=f"renderstore-refresh:{url}")
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)
        return task

    async def _refresh(self, url: str) -> None:
        try:
            await self.update(url)
        except Exception:
            log.warning("refresh_failed", url=url, exc_info=True)

    async def update(self, url: str) -> Page:
        """Re-render *url*, replace the in-process entry and persist it.

        Concurrent updates of the same URL are not deduplicated; the last
        one to finish wins.

        Raises:
            RenderStoreError: RENDER_FAILED if the page cannot be rendered.
        """
        page = await self._render(url, url_to_key(url))
        self.cache.put(page)
        await self._store.set(page)
        log.info("page_updated", url=url, key=page.key, expiration=page.expiration)
        return page

    async def remove(self, url: str) -> str:
        """Delete *url* from the remote store, then from memory. Returns its key.

        Raises:
            RenderStoreError: STORE_FAILED if the remote delete fails; the
                in-process entry is kept in that case.
        """
        key = url_to_key(url)
        await self._store.remove(key)
        self.cache.pop(key)
        log.info("page_removed", url=url, key=key)
        return key

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Wait for every in-flight background refresh to finish."""
        while self._refreshes:
            await asyncio.gather(*self._refreshes, return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self._renderer.aclose()
        if self._owns_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> RenderStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
