"""Tests for health endpoint."""

from typing import Any

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_endpoint_returns_200(client: AsyncClient) -> None:
    """Test that health endpoint returns 200 with expected fields."""
    response = await client.get("/health")

    assert response.status_code == 200

    data = response.json()
    assert data["service"] == "Transit Graph Loader"
    assert data["status"] == "healthy"
    assert "version" in data
    assert "environment" in data
    assert "timestamp" in data
    assert data["checks"]["database"] is True
    assert data["checks"]["databaseName"]
    assert data["issues"] == []


@pytest.mark.asyncio
async def test_health_endpoint_includes_version(client: AsyncClient) -> None:
    """Test that health endpoint includes app version."""
    response = await client.get("/health")
    data = response.json()

    assert data["version"] == "0.1.0"


@pytest.mark.asyncio
async def test_health_degraded_without_database(
    client: AsyncClient, mock_db_connection: Any
) -> None:
    """Test that an unreachable graph database degrades the status."""
    mock_db_connection.return_value = False

    response = await client.get("/health")
    data = response.json()

    assert response.status_code == 200
    assert data["status"] == "degraded"
    assert data["checks"]["database"] is False
    assert "unreachable" in data["issues"][0]


@pytest.mark.asyncio
async def test_health_endpoint_has_request_id_header(client: AsyncClient) -> None:
    """Test that health endpoint response includes X-Request-ID header."""
    response = await client.get("/health")

    assert "X-Request-ID" in response.headers
    assert len(response.headers["X-Request-ID"]) > 0


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"
