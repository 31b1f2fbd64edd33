"""Confirmation gate — suspend dangerous tool calls until approved, denied or expired."""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from toolpilot.agent.permissions import DangerPolicy
from toolpilot.core.config.schema import Config, DangerLevel

DEFAULT_TIMEOUT_S = 60.0
DENIED_ERROR = "Confirmation denied by user"

_MAX_PARAM_PREVIEW = 100


class ConfirmationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    EXPIRED = "expired"


class ConfirmationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    tool_name: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    danger_level: DangerLevel = DangerLevel.NONE
    description: str = ""
    run_id: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


RequestHandler = Callable[[ConfirmationRequest], None]
ResolvedHandler = Callable[[ConfirmationRequest, ConfirmationStatus], None]


class ConfirmationGate:
    """Pending-confirmation bookkeeping for one agent.

    Every request gets a future in ``_pending``. Whichever of approve, deny
    or timeout comes first pops the entry and sets the result, so a request
    is resolved exactly once; later attempts find nothing and return False.

    Parameters
    ----------
    policy : DangerPolicy, optional
        Decides which tools are gated. Defaults to the built-in rule table.
    timeout_s : float
        Seconds to wait before a request expires (expired = denied).
    """

    def __init__(
        self,
        policy: DangerPolicy | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self.policy = policy or DangerPolicy()
        self.timeout_s = timeout_s
        self._pending: dict[str, tuple[ConfirmationRequest, asyncio.Future[bool]]] = {}
        self._request_handlers: list[RequestHandler] = []
        self._resolved_handlers: list[ResolvedHandler] = []

    @classmethod
    def from_config(cls, config: Config) -> ConfirmationGate:
        return cls(
            policy=DangerPolicy.from_config(config),
            timeout_s=config.security.confirmation_timeout_s,
        )

    def requires_confirmation(self, tool_name: str) -> bool:
        return self.policy.requires_confirmation(tool_name)

    # ── Subscribers ─────────────────────────────────────────

    def on_request(self, handler: RequestHandler) -> None:
        if handler not in self._request_handlers:
            self._request_handlers.append(handler)

    def off_request(self, handler: RequestHandler) -> None:
        if handler in self._request_handlers:
            self._request_handlers.remove(handler)

    def on_resolved(self, handler: ResolvedHandler) -> None:
        if handler not in self._resolved_handlers:
            self._resolved_handlers.append(handler)

    def off_resolved(self, handler: ResolvedHandler) -> None:
        if handler in self._resolved_handlers:
            self._resolved_handlers.remove(handler)

    # ── Request / resolve ───────────────────────────────────

    async def request(
        self,
        tool_name: str,
        parameters: dict[str, Any],
        run_id: str = "",
    ) -> bool:
        """Create a ConfirmationRequest and wait for its decision.

        Returns True only on explicit approval. Never waits longer than
        ``timeout_s``.
        """
        request = ConfirmationRequest(
            tool_name=tool_name,
            parameters=parameters,
            danger_level=self.policy.get_danger_level(tool_name),
            description=self.policy.get_security_warning(tool_name) or f"Execute {tool_name}",
            run_id=run_id,
        )
        future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._pending[request.id] = (request, future)
        logger.info(
            f"Confirmation requested: id={request.id}, tool={tool_name}, "
            f"level={request.danger_level.value}"
        )
        self._notify_request(request)

        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            if self._resolve(request.id, ConfirmationStatus.EXPIRED):
                logger.warning(f"Confirmation expired after {self.timeout_s:g}s: {request.id}")
            return future.result()
        finally:
            # abandoned waiter (e.g. task cancelled): nothing can approve it anymore
            self._pending.pop(request.id, None)

    def approve(self, confirmation_id: str) -> bool:
        """Approve a pending request. False if unknown or already resolved."""
        return self._resolve(confirmation_id, ConfirmationStatus.APPROVED)

    def deny(self, confirmation_id: str) -> bool:
        """Deny a pending request. False if unknown or already resolved."""
        return self._resolve(confirmation_id, ConfirmationStatus.DENIED)

    def deny_run(self, run_id: str) -> int:
        """Deny every pending request of one run; returns how many were denied."""
        ids = [cid for cid, (request, _) in self._pending.items() if request.run_id == run_id]
        return sum(self._resolve(cid, ConfirmationStatus.DENIED) for cid in ids)

    def get_pending(self) -> list[ConfirmationRequest]:
        return [request for request, _ in self._pending.values()]

    def _resolve(self, confirmation_id: str, status: ConfirmationStatus) -> bool:
        entry = self._pending.pop(confirmation_id, None)
        if entry is None:
            return False
        request, future = entry
        if not future.done():
            future.set_result(status is ConfirmationStatus.APPROVED)
        logger.info(f"Confirmation {status.value}: id={confirmation_id}, tool={request.tool_name}")
        for handler in list(self._resolved_handlers):
            try:
                handler(request, status)
            except Exception as e:
                logger.error(f"Confirmation resolved-handler error: {e}")
        return True

    def _notify_request(self, request: ConfirmationRequest) -> None:
        preview = request.model_copy(update={"parameters": sanitize_parameters(request.parameters)})
        for handler in list(self._request_handlers):
            try:
                handler(preview)
            except Exception as e:
                logger.error(f"Confirmation request-handler error: {e}")


def sanitize_parameters(params: dict[str, Any]) -> dict[str, Any]:
    """Truncate long string values for display."""
    sanitized: dict[str, Any] = {}
    for key, value in params.items():
        if isinstance(value, str) and len(value) > _MAX_PARAM_PREVIEW:
            sanitized[key] = value[:_MAX_PARAM_PREVIEW] + "..."
        else:
            sanitized[key] = value
    return sanitized
