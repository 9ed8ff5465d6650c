"""Domain registration and short URL generation endpoint tests."""

import pytest
from httpx import AsyncClient

from tinyurl import codec
from tinyurl.enums import ErrorCode, IdStrategy
from tinyurl.exceptions import ClockRegressionError


@pytest.mark.asyncio
async def test_register_domain(client: AsyncClient) -> None:
    response = await client.post("/api/domains", json={"domain": "t.ly/"})

    assert response.status_code == 201
    data = response.json()
    assert data["domain"] == "t.ly/"
    assert data["id"] >= 1
    assert "create_time" in data


@pytest.mark.asyncio
async def test_register_duplicate_domain(client: AsyncClient) -> None:
    await client.post("/api/domains", json={"domain": "t.ly/"})

    response = await client.post("/api/domains", json={"domain": "t.ly/"})

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == ErrorCode.DOMAIN_EXISTS


@pytest.mark.asyncio
@pytest.mark.parametrize("domain", ["", "t .ly/"])
async def test_register_domain_validation(client: AsyncClient, domain: str) -> None:
    response = await client.post("/api/domains", json={"domain": domain})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_generate_short_url(client: AsyncClient, registered_domain: str) -> None:
    response = await client.post("/generate", json={"url": "https://www.example.com", "domain": registered_domain})

    assert response.status_code == 201
    data = response.json()
    assert data["short_url"] == f"{registered_domain}{data['short_code']}"
    assert codec.decode(data["short_code"]) > 0


@pytest.mark.asyncio
@pytest.mark.parametrize("id_strategy", [IdStrategy.AUTO_INCREMENT])
async def test_generate_with_store_assigned_id(client: AsyncClient, registered_domain: str) -> None:
    response = await client.post(
        "/generate",
        json={"url": "https://www.example.com/page", "domain": registered_domain},
    )

    assert response.status_code == 201
    assert response.json() == {"short_url": "t.ly/b", "short_code": "b"}


@pytest.mark.asyncio
async def test_generate_unregistered_domain(client: AsyncClient) -> None:
    response = await client.post("/generate", json={"url": "https://www.example.com", "domain": "nope.io/"})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == ErrorCode.DOMAIN_NOT_EXISTS
    assert "nope.io/" in detail["message"]


@pytest.mark.asyncio
async def test_generate_invalid_url(client: AsyncClient, registered_domain: str) -> None:
    response = await client.post("/generate", json={"url": "not-a-valid-url", "domain": registered_domain})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_generate_missing_domain(client: AsyncClient) -> None:
    response = await client.post("/generate", json={"url": "https://www.example.com"})

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("expire_date", ["tomorrow", "2001-01-01T00:00:00"])
async def test_generate_bad_expire_date(client: AsyncClient, registered_domain: str, expire_date: str) -> None:
    response = await client.post(
        "/generate",
        json={"url": "https://www.example.com", "domain": registered_domain, "expire_date": expire_date},
    )

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == ErrorCode.INVALID_EXPIRE_DATE


@pytest.mark.asyncio
async def test_generate_with_future_expire_date(client: AsyncClient, registered_domain: str) -> None:
    response = await client.post(
        "/generate",
        json={"url": "https://www.example.com", "domain": registered_domain, "expire_date": "2099-12-31T23:59:59"},
    )

    assert response.status_code == 201


@pytest.mark.asyncio
async def test_generate_during_clock_regression(client: AsyncClient, registered_domain: str, id_generator) -> None:
    def regressed() -> int:
        raise ClockRegressionError(1_000, 990)

    id_generator.next_id = regressed

    response = await client.post("/generate", json={"url": "https://www.example.com", "domain": registered_domain})

    assert response.status_code == 503
    assert response.json()["detail"]["code"] == ErrorCode.CLOCK_REGRESSION


@pytest.mark.asyncio
async def test_generate_with_clock_before_epoch(client: AsyncClient, registered_domain: str, id_generator) -> None:
    id_generator._clock = lambda: id_generator.epoch - 1

    response = await client.post("/generate", json={"url": "https://www.example.com", "domain": registered_domain})

    assert response.status_code == 503
    assert response.json()["detail"]["code"] == ErrorCode.CLOCK_OUT_OF_RANGE
