"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone

import pytest

from intake.domain.entities.directory_user import DirectoryUser


@pytest.fixture
def t0():
    return datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def directory_users():
    return [
        DirectoryUser(name="Alice Owner", email="alice@example.com", role="AM"),
        DirectoryUser(name="Jane Doe", email="jane@example.com", role="SA", practices=["Security"]),
        DirectoryUser(name="Bob Smith", email="bob@example.com", role="SA", practices=["Data Center"]),
    ]
