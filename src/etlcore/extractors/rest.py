# src/etlcore/extractors/rest.py
from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import aiohttp
from pydantic import PydanticUserError, TypeAdapter, ValidationError

from etlcore.config import Settings, load_settings
from etlcore.extractors.base import Extractor
from etlcore.extractors.errors import ExtractorError
from etlcore.fetchers.http import NETWORK_ERRORS, HttpFetcher, HttpResponse

logger = logging.getLogger(__name__)

_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})

_UNSET = object()


def _reject_constant(name: str) -> Any:
    # NaN, Infinity and -Infinity are accepted by the json module but are not JSON
    raise ValueError(f"invalid JSON constant {name}")


@lru_cache(maxsize=256)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def describe_type(target: Any) -> str:
    if target is Any:
        return "Any"
    if isinstance(target, type):
        return target.__name__
    return repr(target).replace("typing.", "")


def join_url(base_url: str, resource_path: str) -> str:
    return f"{base_url.rstrip('/')}/{resource_path.lstrip('/')}"


def default_field(resource_path: str) -> str:
    """`data` -> `data`, `/api/v1/items/` -> `items`."""
    segments = [s for s in resource_path.split("/") if s]
    return segments[-1] if segments else resource_path


class RestExtractor(Extractor):
    """
    Extracts one field from a JSON REST endpoint.

    GET {base_url}/{resource_path}, require a 2xx status, parse the body as
    JSON, pick `field` (the last segment of resource_path unless given) out of
    the top-level object and decode it into the caller's target type.

    The with_* builders return a new extractor and leave this one untouched.
    """

    def __init__(
        self,
        base_url: str,
        resource_path: str,
        *,
        field: Optional[str] = None,
        fetcher: Optional[HttpFetcher] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._base_url = base_url
        self._resource_path = resource_path
        self._field = field if field is not None else default_field(resource_path)
        self._fetcher = fetcher
        self._settings = settings
        self._method = "GET"
        self._headers: Tuple[Tuple[str, str], ...] = ()
        self._query: Tuple[Tuple[str, str], ...] = ()
        self._auth: Optional[aiohttp.BasicAuth] = None
        self._json_body: Any = _UNSET
        self._body: Optional[bytes | str] = None

    def __repr__(self) -> str:
        return f"RestExtractor(method={self._method!r}, url={self.url!r}, field={self._field!r})"

    # configuration

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def resource_path(self) -> str:
        return self._resource_path

    @property
    def field(self) -> str:
        return self._field

    @property
    def method(self) -> str:
        return self._method

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    @property
    def url(self) -> str:
        url = join_url(self._base_url, self._resource_path)
        if not self._query:
            return url
        sep = "&" if "?" in url else "?"
        return f"{url}{sep}{urlencode(self._query)}"

    @property
    def source_name(self) -> str:
        return "RestExtractor"

    def metadata(self) -> Dict[str, Any]:
        return {
            "source": "rest",
            "url": self.url,
            "method": self._method,
            "field": self._field,
        }

    def _copy(self, **changes: Any) -> "RestExtractor":
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)
        for name, value in changes.items():
            setattr(clone, f"_{name}", value)
        return clone

    def with_field(self, field: str) -> "RestExtractor":
        return self._copy(field=field)

    def with_method(self, method: str) -> "RestExtractor":
        upper = method.upper()
        if upper not in _METHODS:
            logger.warning("Unknown HTTP method %r, falling back to GET", method)
            upper = "GET"
        return self._copy(method=upper)

    def with_header(self, key: str, value: str) -> "RestExtractor":
        kept = tuple((k, v) for k, v in self._headers if k.lower() != key.lower())
        return self._copy(headers=kept + ((key, value),))

    def with_query_param(self, *pairs: Tuple[str, str], **params: str) -> "RestExtractor":
        return self._copy(query=self._query + tuple(pairs) + tuple(params.items()))

    def with_basic_auth(self, username: str, password: str) -> "RestExtractor":
        return self._copy(auth=aiohttp.BasicAuth(username, password))

    def with_auth_token(self, token: str) -> "RestExtractor":
        return self.with_header("Authorization", f"Bearer {token}")

    def with_json_body(self, value: Any) -> "RestExtractor":
        return self._copy(json_body=value, body=None)

    def with_body(self, body: bytes | str) -> "RestExtractor":
        return self._copy(body=body, json_body=_UNSET)

    def with_fetcher(self, fetcher: Optional[HttpFetcher]) -> "RestExtractor":
        return self._copy(fetcher=fetcher)

    # I/O

    async def _send(self, fetcher: HttpFetcher) -> HttpResponse:
        return await fetcher.request(
            self._method,
            self.url,
            headers=dict(self._headers),
            json=None if self._json_body is _UNSET else self._json_body,
            data=self._body,
            auth=self._auth,
        )

    async def _fetch(self) -> HttpResponse:
        url = self.url
        try:
            if self._fetcher is not None:
                return await self._send(self._fetcher)
            settings = self._settings or load_settings()
            async with HttpFetcher.from_settings(settings.http) as fetcher:
                return await self._send(fetcher)
        except NETWORK_ERRORS as exc:
            logger.warning("Network error for %s %s: %s", self._method, url, exc)
            raise ExtractorError.network(url, exc) from exc

    async def _fetch_ok(self) -> HttpResponse:
        resp = await self._fetch()
        if not resp.ok:
            logger.warning("%s %s returned %d", self._method, self.url, resp.status)
            raise ExtractorError.http(self.url, resp.status)
        return resp

    def _parse(self, resp: HttpResponse) -> Any:
        if not resp.body.strip():
            raise ExtractorError.parse(self.url, "empty response body")
        try:
            return json.loads(resp.body, parse_constant=_reject_constant)
        except (ValueError, UnicodeDecodeError) as exc:
            snippet = resp.body[:200].decode("utf-8", errors="replace")
            raise ExtractorError.parse(self.url, f"{exc} (body starts with {snippet!r})") from exc

    def _decode(self, value: Any, target: Any, field: Optional[str] = None) -> Any:
        expected = describe_type(target)
        try:
            # strict JSON mode: "42" stays a string, it never becomes an int
            return _adapter(target).validate_json(json.dumps(value), strict=True)
        except (ValidationError, PydanticUserError) as exc:
            raise ExtractorError.deserialization(self.url, expected, str(exc), field=field) from exc

    async def extract(self, target: Any = Any) -> Any:
        document = self._parse(await self._fetch_ok())

        if not isinstance(document, dict) or self._field not in document:
            logger.warning("Field %r missing from %s", self._field, self.url)
            raise ExtractorError.missing_field(self.url, self._field)

        value = self._decode(document[self._field], target, field=self._field)
        logger.info("Extracted %r from %s as %s", self._field, self.url, describe_type(target))
        return value

    async def extract_json(self, target: Any = Any) -> Any:
        document = self._parse(await self._fetch_ok())
        return self._decode(document, target)

    async def extract_text(self) -> str:
        resp = await self._fetch_ok()
        try:
            return resp.body.decode(resp.charset or "utf-8")
        except (UnicodeDecodeError, LookupError) as exc:
            raise ExtractorError.parse(self.url, f"body is not valid {resp.charset or 'utf-8'} text") from exc

    async def extract_bytes(self) -> bytes:
        resp = await self._fetch_ok()
        return resp.body

    async def ping(self) -> int:
        """
        Return the status of one request. Non-2xx statuses are reported, not
        raised; only network failures raise ExtractorError.
        """
        resp = await self._fetch()
        if resp.ok:
            logger.info("Ping %s succeeded with status %d", self.url, resp.status)
        else:
            logger.warning("Ping %s failed with status %d", self.url, resp.status)
        return resp.status
