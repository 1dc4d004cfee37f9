import asyncio
import random
from collections import Counter

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from etlcore.config import HttpSettings, Settings

HITS = web.AppKey("hits", Counter)


@web.middleware
async def count_hits(request, handler):
    request.app[HITS][request.path] += 1
    return await handler(request)


async def counted(request):
    await asyncio.sleep(random.uniform(0, 0.02))
    return web.json_response({"data": 42})


async def echo(request):
    raw = await request.read()
    payload = None
    if raw and request.content_type == "application/json":
        payload = await request.json()
    return web.json_response(
        {
            "data": {
                "method": request.method,
                "query": [[k, v] for k, v in request.query.items()],
                "authorization": request.headers.get("Authorization"),
                "trace": request.headers.get("X-Trace"),
                "user_agent": request.headers.get("User-Agent"),
                "json": payload,
                "body": raw.decode() if payload is None else None,
            }
        }
    )


async def slow(request):
    await asyncio.sleep(1)
    return web.json_response({"data": 1})


def build_app():
    app = web.Application(middlewares=[count_hits])
    app[HITS] = Counter()

    def static(body=None, *, status=200, text=None, raw=None, content_type=None, charset=None):
        async def handler(request):
            if body is not None:
                return web.json_response(body, status=status)
            if raw is not None:
                return web.Response(body=raw, status=status, content_type=content_type, charset=charset)
            return web.Response(text=text or "", status=status, content_type=content_type or "text/plain")
        return handler

    app.router.add_get("/api/data", static({"data": 42}))
    app.router.add_get("/api/user", static({"user": {"id": 1, "name": "ada", "tags": ["math"]}}))
    app.router.add_get("/api/items/", static({"items": [1, 2, 3], "count": 3}))
    app.router.add_get("/api/null/data", static({"data": None}))
    app.router.add_get("/missing/data", static({"other": 42}))
    app.router.add_get("/list/data", static([{"data": 1}]))
    app.router.add_get("/string/data", static({"data": "forty-two"}))
    app.router.add_get("/numeric-string/data", static({"data": "42"}))
    app.router.add_get("/fail/data", static(status=500))
    app.router.add_get("/notfound/data", static({"data": 1}, status=404))
    app.router.add_get("/empty/data", static())
    app.router.add_get("/blank/data", static(text="  \n "))
    app.router.add_get("/invalid/data", static(text="<html>not json</html>", content_type="text/html"))
    app.router.add_get("/binary/data", static(raw=b"\xff\xfe\x00garbage", content_type="application/json"))
    app.router.add_get("/nan/data", static(raw=b'{"data": NaN}', content_type="application/json"))
    app.router.add_get("/infinity/data", static(raw=b'{"data": [1, -Infinity]}', content_type="application/json"))
    app.router.add_get("/text", static(text="Hello, world!"))
    app.router.add_get("/bytes", static(raw=b"\x00\x01binary", content_type="application/octet-stream"))
    app.router.add_get("/latin1", static(raw="café".encode("latin-1"), content_type="text/plain", charset="latin-1"))
    app.router.add_get("/counted/data", counted)
    app.router.add_get("/slow/data", slow)
    app.router.add_route("*", "/echo/data", echo)
    return app


@pytest_asyncio.fixture
async def server():
    srv = TestServer(build_app())
    await srv.start_server()
    try:
        yield srv
    finally:
        await srv.close()


@pytest.fixture
def base_url(server):
    return f"http://{server.host}:{server.port}"


@pytest.fixture
def hits(server):
    return server.app[HITS]


@pytest.fixture
def settings():
    return Settings(http=HttpSettings(timeout_s=5))
