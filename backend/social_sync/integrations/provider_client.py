"""
HTTP client for the provider REST APIs (Facebook Graph, Instagram Graph,
Twitter v2).

A single `ProviderClient` serves every platform; all per-platform
differences come from its `PlatformDescriptor`. Reads are retried a bounded
number of times on rate limiting and network failures. Publish calls are
never retried, a retry after an ambiguous failure could post twice.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, timezone
from typing import Any, AsyncIterator

import httpx

from ..errors import NetworkError, NotConnected, ProviderError, RateLimited, Unauthenticated, ValidationError, sanitize
from ..models import Platform
from ..platforms import AuthMode, ContentRecord, MetricRecord, Page, PlatformDescriptor, PublishMode, ResourceRecord, get_descriptor
from ..settings import get_settings

logger = logging.getLogger(__name__)

MAX_RETRY_AFTER_SEC = 30.0


def _provider_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:400]
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict):
            return str(err.get("message") or err)
        if err:
            return str(err)
        if data.get("errors"):
            first = data["errors"][0]
            return str(first.get("message") or first.get("detail") or first) if isinstance(first, dict) else str(first)
        if data.get("detail"):
            return str(data["detail"])
    return resp.text[:400]


def _retry_after(resp: httpx.Response) -> float | None:
    value = resp.headers.get("retry-after")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _unix(d: date | datetime) -> int:
    if not isinstance(d, datetime):
        d = datetime.combine(d, time.min, tzinfo=timezone.utc)
    elif d.tzinfo is None:
        d = d.replace(tzinfo=timezone.utc)
    return int(d.timestamp())


class ProviderClient:
    """Token-gated REST client for one platform."""

    def __init__(
        self,
        descriptor: PlatformDescriptor,
        *,
        http: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff: float | None = None,
    ):
        settings = get_settings()
        self.descriptor = descriptor
        self._http = http
        self.timeout = timeout if timeout is not None else settings.provider_timeout_sec
        self.max_retries = max_retries if max_retries is not None else settings.provider_max_retries
        self.backoff = backoff if backoff is not None else settings.provider_retry_backoff_sec

    @property
    def platform(self) -> Platform:
        return self.descriptor.platform

    # ── transport ────────────────────────────────────────────

    def _auth(self, credential: str, params: dict, headers: dict, body: dict | None) -> None:
        if self.descriptor.auth_mode == AuthMode.bearer:
            headers["Authorization"] = f"Bearer {credential}"
        elif body is not None:
            body["access_token"] = credential
        else:
            params["access_token"] = credential

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._http is not None:
            return await self._http.request(method, url, timeout=self.timeout, **kwargs)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, **kwargs)

    async def _request(
        self,
        method: str,
        url: str,
        credential: str | None,
        *,
        params: dict | None = None,
        body: dict | None = None,
        retry: bool = True,
    ) -> dict:
        if not credential:
            raise NotConnected(f"{self.descriptor.label} account not connected")
        params = dict(params or {})
        headers: dict[str, str] = {}
        body = dict(body) if body is not None else None
        self._auth(credential, params, headers, body)

        tag = f"[provider:{self.platform.value}]"
        attempts = self.max_retries + 1 if retry else 1
        last_exc: ProviderError | None = None
        for attempt in range(attempts):
            try:
                resp = await self._send(method, url, params=params or None, json=body, headers=headers)
            except httpx.TimeoutException as exc:
                last_exc = NetworkError(f"{self.descriptor.label} request timed out", reason=str(exc) or "timeout")
            except httpx.TransportError as exc:
                last_exc = NetworkError(f"{self.descriptor.label} unreachable", reason=str(exc))
            else:
                if resp.status_code == 429:
                    last_exc = RateLimited(
                        f"{self.descriptor.label} rate limit exceeded",
                        reason=_provider_message(resp),
                        retry_after=_retry_after(resp),
                    )
                elif resp.status_code == 401:
                    raise Unauthenticated(
                        f"{self.descriptor.label} rejected the access token", reason=_provider_message(resp)
                    )
                elif resp.status_code >= 400:
                    message = _provider_message(resp)
                    logger.warning(f"{tag} {method} {url} -> {resp.status_code}: {sanitize(message)}")
                    raise ProviderError(f"{self.descriptor.label} request failed", reason=message)
                else:
                    return self._decode(resp)

            if attempt + 1 >= attempts:
                break
            delay = self.backoff * (2 ** attempt)
            if isinstance(last_exc, RateLimited) and last_exc.retry_after is not None:
                delay = min(last_exc.retry_after, MAX_RETRY_AFTER_SEC)
            logger.info(f"{tag} {method} {url} failed ({last_exc.reason}), retry {attempt + 1} in {delay:.1f}s")
            await asyncio.sleep(delay)

        assert last_exc is not None
        logger.warning(f"{tag} {method} {url} gave up: {last_exc.reason}")
        raise last_exc

    def _decode(self, resp: httpx.Response) -> dict:
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(f"{self.descriptor.label} returned invalid JSON", reason=resp.text[:400]) from exc
        if not isinstance(data, dict):
            return {"data": data}
        if data.get("error"):
            raise ProviderError(f"{self.descriptor.label} request failed", reason=_provider_message(resp))
        return data

    # ── reads ────────────────────────────────────────────────

    async def list_resources(self, credential: str) -> list[ResourceRecord]:
        d = self.descriptor
        payload = await self._request("GET", d.url(d.resources_path), credential, params=d.resources_params)
        if d.resources_are_list:
            items = payload.get("data") or []
        else:
            # single-account endpoints answer either bare or under "data"
            item = payload.get("data") if isinstance(payload.get("data"), dict) else payload
            items = [item] if item and item.get("id") else []
        return [d.parse_resource(item, credential) for item in items if item.get("id")]

    async def list_content_items(
        self,
        credential: str,
        parent: str,
        cursor: str | None = None,
        limit: int = 10,
    ) -> Page:
        d = self.descriptor
        params = {**d.content_params, d.page_size_param: d.clamp_page_size(limit)}
        if cursor:
            params[d.cursor_param] = cursor
        payload = await self._request("GET", d.url(d.content_path, parent=parent), credential, params=params)
        items: list[ContentRecord] = [d.parse_content(item) for item in payload.get("data") or [] if item.get("id")]
        return Page(items=items, next_cursor=d.next_cursor(payload))

    async def iter_content_items(
        self,
        credential: str,
        parent: str,
        cursor: str | None = None,
        limit: int = 10,
        max_pages: int = 1,
    ) -> AsyncIterator[Page]:
        """Follow continuation tokens for up to `max_pages` pages."""
        for _ in range(max(1, max_pages)):
            page = await self.list_content_items(credential, parent, cursor=cursor, limit=limit)
            yield page
            if not page.next_cursor or not page.items:
                return
            cursor = page.next_cursor

    async def fetch_metrics(
        self,
        credential: str,
        parent: str,
        since: date | datetime | None = None,
        until: date | datetime | None = None,
    ) -> list[MetricRecord]:
        d = self.descriptor
        params = dict(d.metrics_params)
        if d.metrics_take_range and since and until:
            params["since"] = _unix(since)
            params["until"] = _unix(until)
        try:
            payload = await self._request("GET", d.url(d.metrics_path, parent=parent), credential, params=params)
        except ProviderError as exc:
            if not d.metrics_optional or isinstance(exc, (RateLimited, NetworkError)):
                raise
            logger.warning(f"[provider:{self.platform.value}] metrics unavailable for {parent}: {exc.reason}")
            return []
        return d.parse_metrics(payload)

    # ── writes ───────────────────────────────────────────────

    async def publish_content(
        self,
        credential: str,
        parent: str,
        body: str,
        media_url: str | None = None,
    ) -> str:
        d = self.descriptor
        if d.publish_mode == PublishMode.feed:
            data: dict[str, Any] = {"message": body}
            if media_url:
                data["link"] = media_url
            payload = await self._request("POST", d.url("/{parent}/feed", parent=parent), credential, body=data, retry=False)
            remote_id = payload.get("id")
        elif d.publish_mode == PublishMode.container:
            if not media_url:
                raise ValidationError("Image URL required")
            container = await self._request(
                "POST",
                d.url("/{parent}/media", parent=parent),
                credential,
                body={"image_url": media_url, "caption": body or ""},
                retry=False,
            )
            container_id = container.get("id")
            if not container_id:
                raise ProviderError(f"{d.label} did not return a media container id")
            payload = await self._request(
                "POST",
                d.url("/{parent}/media_publish", parent=parent),
                credential,
                body={"creation_id": container_id},
                retry=False,
            )
            remote_id = payload.get("id")
        else:
            payload = await self._request("POST", d.url("/tweets"), credential, body={"text": body}, retry=False)
            remote_id = (payload.get("data") or {}).get("id")

        if not remote_id:
            raise ProviderError(f"{d.label} did not return a post id")
        logger.info(f"[provider:{self.platform.value}] published {remote_id} on {parent}")
        return str(remote_id)


def get_provider_client(platform: Platform | str, http: httpx.AsyncClient | None = None) -> ProviderClient:
    return ProviderClient(get_descriptor(platform), http=http)
