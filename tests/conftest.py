"""
Pytest configuration and fixtures for urbanflux tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import logging
import os
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Generator

import pytest
from testcontainers.postgres import PostgresContainer

from urbanflux.core.models import Borough, Coordinates, ServiceRequest
from urbanflux.observability.logger import ROOT_LOGGER_NAME
from urbanflux.warehouse import DatabaseConnectionPool, SchemaManager


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

TEST_DB_USER = "test_urbanflux"
TEST_DB_PASSWORD = "test_password"
TEST_DB_NAME = "test_urbanflux"


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username=TEST_DB_USER,
        password=TEST_DB_PASSWORD,
        dbname=TEST_DB_NAME,
    ) as postgres:
        yield postgres


@pytest.fixture(scope="session")
def db_pool(postgres_container) -> Generator[DatabaseConnectionPool, None, None]:
    """
    Open a connection pool against the test container and apply the schema

    Yields:
        Open DatabaseConnectionPool
    """
    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database=TEST_DB_NAME,
        user=TEST_DB_USER,
        password=TEST_DB_PASSWORD,
        min_size=1,
        max_size=4,
    )
    pool.open()
    SchemaManager(pool).initialize()

    yield pool

    pool.close()


@pytest.fixture(scope="function")
def clean_db(db_pool) -> Generator[DatabaseConnectionPool, None, None]:
    """
    Provide a clean database by truncating all tables before each test

    Yields:
        DatabaseConnectionPool over empty tables
    """
    with db_pool.get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("TRUNCATE TABLE service_requests")
            cur.execute("TRUNCATE TABLE etl_watermarks")
        conn.commit()

    yield db_pool


# =======================
# FILE FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_data_dir() -> str:
    """
    Get path to test data fixtures directory

    Returns:
        Path to tests/fixtures directory
    """
    return os.path.join(os.path.dirname(__file__), "fixtures")


@pytest.fixture(scope="session")
def sample_csv(test_data_dir) -> str:
    """NYC Open Data style export mixing clean, duplicate and malformed rows"""
    return os.path.join(test_data_dir, "service_requests_sample.csv")


# =======================
# RECORD FIXTURES
# =======================

@pytest.fixture
def make_request() -> Callable[..., ServiceRequest]:
    """
    Factory for ServiceRequest records with sensible defaults

    Returns:
        Callable accepting unique_key plus any field overrides
    """
    def _make(unique_key: int, **overrides) -> ServiceRequest:
        fields = {
            "unique_key": unique_key,
            "created_at": datetime(2024, 1, 15, 8, 30, tzinfo=timezone.utc),
            "closed_at": None,
            "complaint_type": "Noise - Residential",
            "descriptor": "Loud Music/Party",
            "borough": Borough.MANHATTAN,
            "coordinates": Coordinates(latitude=40.758, longitude=-73.9855),
        }
        fields.update(overrides)
        return ServiceRequest(**fields)

    return _make


# =======================
# LOGGING FIXTURES
# =======================

@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Drop handlers installed by setup_logging so they never outlive a test's captured streams"""
    yield
    logging.getLogger(ROOT_LOGGER_NAME).handlers.clear()
