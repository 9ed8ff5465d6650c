"""Redirect endpoint behavior tests."""

import datetime
import hashlib

import pytest
from httpx import AsyncClient

from tinyurl import codec
from tinyurl.enums import ErrorCode
from tinyurl.models import UrlRecord


async def _shorten(client: AsyncClient, url: str, domain: str) -> str:
    response = await client.post("/generate", json={"url": url, "domain": domain})
    assert response.status_code == 201
    return response.json()["short_code"]


@pytest.mark.asyncio
async def test_redirect_valid_code(client: AsyncClient, registered_domain: str) -> None:
    short_code = await _shorten(client, "https://www.google.com", registered_domain)

    # Follow redirect (httpx won't follow by default)
    response = await client.get(f"/{short_code}", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == "https://www.google.com"


@pytest.mark.asyncio
async def test_redirect_appends_query_params(client: AsyncClient, registered_domain: str) -> None:
    short_code = await _shorten(client, "https://www.python.org/search?q=asyncio", registered_domain)

    response = await client.get(f"/{short_code}?utm_source=mail&utm_medium=link", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == (
        "https://www.python.org/search?q=asyncio&utm_source=mail&utm_medium=link"
    )


@pytest.mark.asyncio
async def test_redirect_adds_query_to_bare_url(client: AsyncClient, registered_domain: str) -> None:
    short_code = await _shorten(client, "https://www.github.com", registered_domain)

    response = await client.get(f"/{short_code}?ref=home", follow_redirects=False)

    assert response.headers["location"] == "https://www.github.com?ref=home"


@pytest.mark.asyncio
async def test_redirect_unknown_code(client: AsyncClient) -> None:
    response = await client.get("/zzzz", follow_redirects=False)
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == ErrorCode.RECORD_NOT_EXISTS


@pytest.mark.asyncio
async def test_redirect_invalid_code(client: AsyncClient) -> None:
    response = await client.get("/ab-cd", follow_redirects=False)
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == ErrorCode.INVALID_CODE


@pytest.mark.asyncio
async def test_redirect_out_of_range_code(client: AsyncClient) -> None:
    response = await client.get(f"/{codec.encode(codec.MAX_ID + 1)}", follow_redirects=False)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_redirect_overlong_code(client: AsyncClient) -> None:
    response = await client.get("/" + "9" * 5000, follow_redirects=False)
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == ErrorCode.INVALID_CODE


@pytest.mark.asyncio
async def test_redirect_expired_link(client: AsyncClient, db_session) -> None:
    now = datetime.datetime.now(datetime.timezone.utc)
    db_session.add(
        UrlRecord(
            id=9001,
            origin_url="https://www.example.com/sale",
            hash=hashlib.md5(b"https://www.example.com/sale").hexdigest(),
            domain="t.ly/",
            create_time=now - datetime.timedelta(days=30),
            expire_time=now - datetime.timedelta(minutes=1),
        )
    )
    await db_session.commit()

    response = await client.get(f"/{codec.encode(9001)}", follow_redirects=False)

    assert response.status_code == 410
    assert response.json()["detail"]["code"] == ErrorCode.LINK_EXPIRED
