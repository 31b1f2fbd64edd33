"""Tests for the confirmation gate."""

import asyncio

import pytest

from toolpilot.agent.confirmation import (
    ConfirmationGate,
    ConfirmationStatus,
    sanitize_parameters,
)
from toolpilot.core.config import Config
from toolpilot.core.config.schema import DangerLevel


@pytest.fixture
def gate():
    return ConfirmationGate(timeout_s=1.0)


async def _wait_for_pending(gate):
    for _ in range(100):
        pending = gate.get_pending()
        if pending:
            return pending[0]
        await asyncio.sleep(0)
    raise AssertionError("no pending confirmation")


def test_requires_confirmation(gate):
    assert gate.requires_confirmation("delete_file")
    assert not gate.requires_confirmation("echo")


@pytest.mark.asyncio
async def test_approve(gate):
    task = asyncio.create_task(gate.request("write_file", {"path": "/tmp/x"}, run_id="r1"))
    pending = await _wait_for_pending(gate)
    assert pending.tool_name == "write_file"
    assert pending.run_id == "r1"
    assert pending.danger_level == DangerLevel.MEDIUM

    assert gate.approve(pending.id) is True
    assert await task is True
    assert gate.get_pending() == []


@pytest.mark.asyncio
async def test_deny(gate):
    task = asyncio.create_task(gate.request("delete_file", {"path": "/"}))
    pending = await _wait_for_pending(gate)
    assert gate.deny(pending.id) is True
    assert await task is False


@pytest.mark.asyncio
async def test_timeout_expires_as_denial():
    gate = ConfirmationGate(timeout_s=0.05)
    statuses = []
    gate.on_resolved(lambda req, status: statuses.append(status))

    assert await gate.request("write_file", {}) is False
    assert statuses == [ConfirmationStatus.EXPIRED]
    assert gate.get_pending() == []


@pytest.mark.asyncio
async def test_resolved_exactly_once(gate):
    statuses = []
    gate.on_resolved(lambda req, status: statuses.append(status))

    task = asyncio.create_task(gate.request("write_file", {}))
    pending = await _wait_for_pending(gate)
    assert gate.approve(pending.id) is True
    assert gate.deny(pending.id) is False
    assert gate.approve(pending.id) is False
    assert await task is True
    assert statuses == [ConfirmationStatus.APPROVED]


def test_resolve_unknown_id(gate):
    assert gate.approve("nope") is False
    assert gate.deny("nope") is False


@pytest.mark.asyncio
async def test_request_handler_gets_sanitized_preview(gate):
    seen = []
    gate.on_request(seen.append)
    long_text = "x" * 250

    task = asyncio.create_task(gate.request("write_file", {"path": "a", "content": long_text}))
    pending = await _wait_for_pending(gate)
    gate.approve(pending.id)
    await task

    assert len(seen) == 1
    assert seen[0].parameters["content"] == "x" * 100 + "..."
    assert seen[0].parameters["path"] == "a"
    assert seen[0].description.startswith("Write content to a file")
    # the stored request keeps the full value
    assert pending.parameters["content"] == long_text


@pytest.mark.asyncio
async def test_handler_can_approve_synchronously(gate):
    gate.on_request(lambda req: gate.approve(req.id))
    assert await gate.request("write_file", {}) is True


@pytest.mark.asyncio
async def test_failing_handler_does_not_block(gate):
    def broken(req):
        raise RuntimeError("ui crashed")

    gate.on_request(broken)
    gate.on_request(lambda req: gate.deny(req.id))
    assert await gate.request("write_file", {}) is False


@pytest.mark.asyncio
async def test_off_request(gate):
    seen = []
    gate.on_request(seen.append)
    gate.off_request(seen.append)
    gate.on_request(lambda req: gate.approve(req.id))
    await gate.request("write_file", {})
    assert seen == []


def test_sanitize_parameters():
    params = {"short": "abc", "exact": "y" * 100, "long": "z" * 101, "n": 5}
    out = sanitize_parameters(params)
    assert out["short"] == "abc"
    assert out["exact"] == "y" * 100
    assert out["long"] == "z" * 100 + "..."
    assert out["n"] == 5
    assert params["long"] == "z" * 101


def test_from_config():
    cfg = Config(security={"confirmation_timeout_s": 5, "rules": []})
    gate = ConfirmationGate.from_config(cfg)
    assert gate.timeout_s == 5
    assert not gate.requires_confirmation("delete_file")


@pytest.mark.asyncio
async def test_expired_request_cannot_be_resolved_later():
    gate = ConfirmationGate(timeout_s=0.05)
    seen, statuses = [], []
    gate.on_request(seen.append)
    gate.on_resolved(lambda req, status: statuses.append(status))

    assert await gate.request("write_file", {"path": "/tmp/x"}) is False

    confirmation_id = seen[0].id
    assert gate.approve(confirmation_id) is False
    assert gate.deny(confirmation_id) is False
    assert statuses == [ConfirmationStatus.EXPIRED]


@pytest.mark.asyncio
async def test_deny_run_only_touches_that_run(gate):
    first = asyncio.create_task(gate.request("write_file", {}, run_id="r1"))
    second = asyncio.create_task(gate.request("delete_file", {}, run_id="r1"))
    other = asyncio.create_task(gate.request("write_file", {}, run_id="r2"))
    for _ in range(100):
        if len(gate.get_pending()) == 3:
            break
        await asyncio.sleep(0)

    assert gate.deny_run("r1") == 2
    assert await first is False
    assert await second is False

    remaining = gate.get_pending()
    assert [r.run_id for r in remaining] == ["r2"]
    gate.approve(remaining[0].id)
    assert await other is True
    assert gate.deny_run("r1") == 0
