"""Tests for the timeout-bounded collaborator wrapper."""

from __future__ import annotations

import asyncio

import pytest

from intake.application.collaborators import call
from intake.application.ports.assignment_repo import ConcurrentUpdateError
from intake.domain.value_objects.enums import ErrorKind


async def _returns(value):
    return value


async def _raises(exc):
    raise exc


async def _sleeps(seconds):
    await asyncio.sleep(seconds)


@pytest.mark.asyncio
async def test_success_wraps_value():
    result = await call("load", _returns([1, 2]))
    assert result.ok
    assert result.value == [1, 2]


@pytest.mark.asyncio
async def test_exception_becomes_downstream_failure():
    result = await call("load users", _raises(RuntimeError("connection refused")))
    assert not result.ok
    assert result.kind == ErrorKind.DOWNSTREAM_FAILURE
    assert "load users failed" in result.error
    assert "connection refused" in result.error


@pytest.mark.asyncio
async def test_timeout_becomes_downstream_failure():
    result = await call("fetch mail", _sleeps(5), timeout=0.05)
    assert not result.ok
    assert result.kind == ErrorKind.DOWNSTREAM_FAILURE
    assert "timed out" in result.error


@pytest.mark.asyncio
async def test_version_conflict_keeps_its_kind():
    result = await call("update assignment 1", _raises(ConcurrentUpdateError("version 3")))
    assert not result.ok
    assert result.kind == ErrorKind.CONCURRENT_UPDATE
