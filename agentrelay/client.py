"""Client for sending work to named remote agents."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

import httpx
from pydantic import ValidationError

from .cards import AgentCard
from .config import AgentEndpoint, PollingConfig, RelayConfig, load_config
from .envelope import RemoteTaskStatus
from .exceptions import (
    AllTransportsFailedError,
    PollTimeoutError,
    RemoteTaskFailedError,
    RemoteTaskNotFoundError,
    TransportError,
)
from .transports import AgentTransport, get_transport
from .utils.retry import poll_delay, sleep_or_cancel

logger = logging.getLogger(__name__)

T = TypeVar("T")

PollCallback = Callable[[int, RemoteTaskStatus], None]


class RemoteAgentClient:
    """Deliver work to remote agents over a primary and a fallback transport.

    Transport failures on the primary path are logged and trigger the
    fallback; callers only see :class:`AllTransportsFailedError` when every
    configured transport failed. Remote tasks that answer "working" are
    polled under :class:`PollingConfig` bounds.
    """

    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        primary: Optional[AgentTransport] = None,
        fallback: Optional[AgentTransport] = None,
    ) -> None:
        self.config = config or load_config()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.config.transport.timeout)
        self.primary = primary or get_transport(
            self.config.transport.primary, self._http, self.config
        )
        if fallback is None and self.config.transport.fallback:
            fallback = get_transport(self.config.transport.fallback, self._http, self.config)
        self.fallback = fallback

    async def __aenter__(self) -> "RemoteAgentClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    @property
    def transports(self) -> List[AgentTransport]:
        return [t for t in (self.primary, self.fallback) if t is not None]

    @property
    def status_transport(self) -> AgentTransport:
        """Transport used for task status polling."""
        return self.fallback or self.primary

    def endpoint(self, agent_name: str) -> AgentEndpoint:
        return self.config.resolve_agent(agent_name)

    async def _with_fallback(
        self,
        agent_name: str,
        operation: str,
        call: Callable[[AgentTransport], Awaitable[T]],
    ) -> Tuple[T, AgentTransport]:
        attempts: List[Tuple[str, Exception]] = []
        for transport in self.transports:
            try:
                return await call(transport), transport
            except TransportError as e:
                attempts.append((transport.name, e))
                if transport is not self.transports[-1]:
                    logger.warning(
                        f"{transport.name} transport failed to {operation} to "
                        f"{agent_name}: {e}; falling back"
                    )
        raise AllTransportsFailedError(agent_name, operation, attempts)

    async def send_message(
        self,
        agent_name: str,
        payload: Any,
        *,
        polling: Optional[PollingConfig] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_poll: Optional[PollCallback] = None,
    ) -> Any:
        """Send ``payload`` to ``agent_name`` and return its final response.

        If the agent answers with a working task, the task is polled on the
        transport that answered until it reaches a terminal state.

        Raises:
            AllTransportsFailedError: If every transport failed.
            RemoteTaskFailedError: If the remote task ended in a failed state.
            PollTimeoutError: If the task did not finish within the poll bounds.
            TaskCancelledError: If ``cancel_event`` was set while waiting.
        """
        endpoint = self.endpoint(agent_name)

        async def deliver(transport: AgentTransport) -> Any:
            answer = await transport.send_message(endpoint, payload)
            answered = RemoteTaskStatus.from_response(answer)
            # a working task without an id cannot be polled
            if answered is not None and answered.is_working and not answered.task_id:
                raise TransportError(
                    f"Working response from {agent_name} carries no task id",
                    transport=transport.name,
                    agent_name=agent_name,
                )
            return answer

        response, transport = await self._with_fallback(agent_name, "send message", deliver)

        status = RemoteTaskStatus.from_response(response)
        if status is not None and status.is_working and status.task_id:
            remote_id = status.task_id
            logger.info(f"Waiting for {agent_name} task {remote_id} to complete...")
            status = await self._wait(
                agent_name,
                remote_id,
                fetch=lambda: transport.get_task(endpoint, remote_id),
                polling=polling,
                cancel_event=cancel_event,
                on_poll=on_poll,
            )
            response = status.raw

        if status is not None and status.is_failed:
            raise RemoteTaskFailedError(
                agent_name,
                status.task_id,
                status.message or f"Task on {agent_name} ended in state {status.state}",
            )
        return response

    async def send_task(self, agent_name: str, payload: Any) -> str:
        """Create a task on ``agent_name`` and return its id immediately."""
        endpoint = self.endpoint(agent_name)
        task_id, _ = await self._with_fallback(
            agent_name, "send task", lambda t: t.create_task(endpoint, payload)
        )
        logger.info(f"Task {task_id} created on {agent_name}")
        return task_id

    async def poll_task_status(self, agent_name: str, task_id: str) -> RemoteTaskStatus:
        """Fetch the status of ``task_id`` once, without retry.

        Raises:
            RemoteTaskNotFoundError: If the agent does not know ``task_id``.
            TransportError: If the status request failed.
        """
        endpoint = self.endpoint(agent_name)
        response = await self.status_transport.get_task(endpoint, task_id)
        status = RemoteTaskStatus.from_response(response, task_id=task_id)
        if status is None:
            raise TransportError(
                f"Malformed task status for {task_id} from {agent_name}",
                transport=self.status_transport.name,
                agent_name=agent_name,
            )
        return status

    async def wait_for_task(
        self,
        agent_name: str,
        task_id: str,
        *,
        polling: Optional[PollingConfig] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_poll: Optional[PollCallback] = None,
    ) -> RemoteTaskStatus:
        """Block until ``task_id`` leaves the working state and return it.

        Raises:
            RemoteTaskFailedError: If the task ended in a failed state.
            PollTimeoutError: If the task did not finish within the poll bounds.
        """
        status = await self._wait(
            agent_name,
            task_id,
            fetch=lambda: self.poll_task_status(agent_name, task_id),
            polling=polling,
            cancel_event=cancel_event,
            on_poll=on_poll,
        )
        if status.is_failed:
            raise RemoteTaskFailedError(
                agent_name,
                task_id,
                status.message or f"Task {task_id} on {agent_name} ended in state {status.state}",
            )
        return status

    async def _wait(
        self,
        agent_name: str,
        task_id: str,
        *,
        fetch: Callable[[], Awaitable[Any]],
        polling: Optional[PollingConfig],
        cancel_event: Optional[asyncio.Event],
        on_poll: Optional[PollCallback],
    ) -> RemoteTaskStatus:
        policy = polling or self.config.polling
        started = time.monotonic()
        attempt = 0
        while True:
            attempt += 1
            waited = time.monotonic() - started
            if (policy.max_attempts is not None and attempt > policy.max_attempts) or (
                waited >= policy.max_wait
            ):
                raise PollTimeoutError(agent_name, task_id, waited, attempt - 1)

            delay = min(poll_delay(attempt, policy), policy.max_wait - waited)
            await sleep_or_cancel(delay, cancel_event)

            try:
                response = await fetch()
            except RemoteTaskNotFoundError:
                raise
            except TransportError as e:
                logger.warning(f"Poll {attempt} for {agent_name} task {task_id} failed: {e}")
                continue

            if isinstance(response, RemoteTaskStatus):
                status = response
            else:
                status = RemoteTaskStatus.from_response(response, task_id=task_id)
                if status is None:
                    logger.warning(f"Unrecognized task status from {agent_name}: {response}")
                    continue

            if on_poll is not None:
                on_poll(attempt, status)
            if not status.is_working:
                logger.info(f"Task {task_id} on {agent_name} finished: {status.state}")
                return status

    async def get_agent_card(self, agent_name: str) -> Optional[AgentCard]:
        """Return the agent's discovery card, or ``None`` if unavailable."""
        endpoint = self.endpoint(agent_name)

        async def fetch_card(transport: AgentTransport) -> AgentCard:
            card = await transport.get_card(endpoint)
            if not isinstance(card, dict):
                raise TransportError(
                    f"Agent card from {agent_name} is not an object",
                    transport=transport.name,
                    agent_name=agent_name,
                )
            try:
                return AgentCard.model_validate(card)
            except ValidationError as e:
                raise TransportError(
                    f"Invalid agent card from {agent_name}: {e}",
                    transport=transport.name,
                    agent_name=agent_name,
                ) from e

        try:
            card, _ = await self._with_fallback(agent_name, "get agent card", fetch_card)
        except AllTransportsFailedError as e:
            logger.warning(f"Failed to get agent card for {agent_name}: {e}")
            return None
        return card
