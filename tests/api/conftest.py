"""API test fixtures: a small FastAPI app wired with the codec + async test client.

Invariants:
    - Every test gets a fresh app with error handlers registered
    - Parser limit is 64 bytes so size tests stay small

Design Decisions:
    - httpx ASGITransport: in-process requests, no server
    - raise_app_exceptions=False: the catch-all handler's 500 response is asserted directly
"""

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from payloadkit.api.error_handlers import register_error_handlers
from payloadkit.api.integration import json_body, json_response
from payloadkit.parser import Parser


class Greeting(BaseModel):
    foo: str = ""


def build_app(parser: Parser) -> FastAPI:
    app = FastAPI()
    register_error_handlers(app, parser)

    @app.post("/echo")
    async def echo(payload: Greeting = Depends(json_body(Greeting, parser))):
        return json_response(
            {"error": False, "message": "decoded", "data": payload},
            headers={"X-Echo": "1"},
            parser=parser,
        )

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database password is hunter2")

    @app.get("/unencodable")
    async def unencodable():
        return json_response({"fn": object()}, parser=parser)

    @app.get("/items/{item_id}")
    async def item(item_id: int):
        return json_response({"id": item_id}, parser=parser)

    return app


@pytest.fixture
def codec_parser():
    return Parser(max_json_size=64)


@pytest.fixture
async def client(codec_parser):
    transport = ASGITransport(app=build_app(codec_parser), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
