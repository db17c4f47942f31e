"""Automation monitor: wires REST snapshots and push events together.

The monitor owns the polling side (Job Listing and Job Control APIs) and
subscribes to the shared push channel; the ProgressReconciler it feeds is
the single source of the job list the presentation layer renders.

When the channel cannot connect, the monitor keeps working from snapshots
alone. A 401 from any call halts further polling until reset_auth().
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from relaydesk.api.http_client import AutomationClient
from relaydesk.channel.manager import ChannelManager
from relaydesk.config import RelaydeskConfig
from relaydesk.errors import AuthError, RequestError, TransportError
from relaydesk.events import DashboardEventEmitter
from relaydesk.protocol import JobRecord
from relaydesk.reconcile.progress import ProgressReconciler

logger = logging.getLogger(__name__)


class AutomationMonitor:
    """Keeps the reconciled automation list current.

    Attributes:
        is_loading: True while a snapshot refresh is in flight, held for at
            least ``loading_floor`` seconds so the indicator does not flicker.
        error: Message of the last failed refresh, cleared on success.
        auth_required: Set once a call answered 401; polling stops.
    """

    def __init__(
        self,
        client: AutomationClient,
        channel: ChannelManager | None = None,
        reconciler: ProgressReconciler | None = None,
        emitter: DashboardEventEmitter | None = None,
        progress_event: str = "automation-progress",
        loading_floor: float = 1.0,
        poll_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._channel = channel
        self._reconciler = reconciler or ProgressReconciler()
        self._emitter = emitter or DashboardEventEmitter()
        self._progress_event = progress_event
        self._loading_floor = loading_floor
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        self._unsubscribers: list[Callable[[], None]] = []
        self._poll_task: asyncio.Task | None = None
        self._live = False
        self.is_loading = False
        self.error: str | None = None
        self.auth_required = False

    @classmethod
    def from_config(
        cls,
        config: RelaydeskConfig,
        client: AutomationClient,
        channel: ChannelManager | None = None,
        emitter: DashboardEventEmitter | None = None,
    ) -> "AutomationMonitor":
        """Build a monitor from the ``monitor`` and ``channel`` config sections."""
        return cls(
            client,
            channel=channel,
            emitter=emitter,
            progress_event=config.channel.progress_event,
            loading_floor=config.monitor.loading_floor,
            poll_interval=config.monitor.poll_interval,
        )

    @property
    def records(self) -> list[JobRecord]:
        """Current reconciled automation list."""
        return self._reconciler.records

    @property
    def live(self) -> bool:
        """Whether push updates are currently flowing."""
        return self._live

    async def start(self, user_id: str | None = None) -> list[JobRecord]:
        """Subscribe to live progress for ``user_id`` and load the first snapshot.

        A channel failure is logged and reported as a notice; the monitor
        then runs on snapshots alone.

        Returns:
            The reconciled list after the first refresh.
        """
        if self._channel is not None and user_id and not self._unsubscribers:
            self._unsubscribers = [
                self._channel.on_event(self._progress_event, self._on_progress),
                self._channel.on_event("connect", self._on_connect),
                self._channel.on_event("disconnect", self._on_disconnect),
            ]
            try:
                await self._channel.connect()
            except TransportError as exc:
                logger.warning("Live progress unavailable, using snapshots only: %s", exc)
                await self._emitter.emit_notice(exc.to_notice())
            else:
                await self._set_live(True)
            await self._channel.subscribe(user_id)
        elif self._channel is None or not user_id:
            logger.info("No push channel or user id; progress refreshes from snapshots only")

        records = await self.refresh()
        if self._poll_interval and self._poll_task is None:
            self._poll_task = asyncio.create_task(self._poll())
        return records

    async def stop(self) -> None:
        """Detach from the channel and cancel polling.

        The shared channel stays connected for its other subscribers.
        """
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        task = self._poll_task
        self._poll_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def refresh(self) -> list[JobRecord]:
        """Replace the collection with a fresh snapshot.

        Transient failures keep the previous list and emit a notice.

        Raises:
            AuthError: The snapshot request answered 401. Polling halts.
        """
        if self.auth_required:
            logger.info("Skipping automation refresh: reauthentication required")
            return self.records

        self.is_loading = True
        started = self._clock()
        try:
            rows = await self._client.list_automations()
            records = self._reconciler.replace_snapshot(rows)
            self.error = None
            await self._emitter.emit_jobs_changed(records)
            return records
        except AuthError as exc:
            await self._halt(exc)
            raise
        except RequestError as exc:
            logger.error("Error fetching automations: %s", exc)
            self.error = exc.message
            await self._emitter.emit_notice(exc.to_notice())
            return self.records
        finally:
            remaining = self._loading_floor - (self._clock() - started)
            if remaining > 0:
                await self._sleep(remaining)
            self.is_loading = False

    async def pause(self, automation_id: str) -> bool:
        """Pause an automation, then refresh the whole list."""
        return await self._control(self._client.pause, automation_id, "pause")

    async def resume(self, automation_id: str) -> bool:
        """Resume an automation, then refresh the whole list."""
        return await self._control(self._client.resume, automation_id, "resume")

    async def delete(self, automation_id: str) -> bool:
        """Delete an automation, then refresh the whole list."""
        return await self._control(self._client.delete, automation_id, "delete")

    def reset_auth(self) -> None:
        """Clear the halt after the caller has reauthenticated."""
        self.auth_required = False
        if self._poll_interval and (self._poll_task is None or self._poll_task.done()):
            self._poll_task = asyncio.create_task(self._poll())

    async def _control(
        self,
        action: Callable[[str], Awaitable[str]],
        automation_id: str,
        verb: str,
    ) -> bool:
        """Run a control call; on success always reload the full list.

        Returns:
            True if the server accepted the call.
        """
        try:
            message = await action(automation_id)
        except AuthError as exc:
            await self._halt(exc)
            raise
        except RequestError as exc:
            logger.error("Failed to %s automation %s: %s", verb, automation_id, exc)
            notice = RequestError(f"Failed to {verb} automation", exc.status_code).to_notice()
            await self._emitter.emit_notice(notice)
            return False
        logger.info("Automation %s: %s", automation_id, message)
        await self.refresh()
        return True

    async def _halt(self, exc: AuthError) -> None:
        logger.error("Authentication failed for %s; halting automation polling", exc.resource)
        self.auth_required = True
        await self._emitter.emit_reauth_required(exc.resource)

    async def _poll(self) -> None:
        while not self.auth_required:
            await self._sleep(self._poll_interval)
            try:
                await self.refresh()
            except AuthError:
                return

    async def _on_progress(self, payload: Any) -> None:
        before = self._reconciler.records
        after = self._reconciler.apply_event(payload)
        if any(a is not b for a, b in zip(before, after)):
            await self._emitter.emit_jobs_changed(after)

    async def _on_connect(self, _data: Any) -> None:
        await self._set_live(True)

    async def _on_disconnect(self, _data: Any) -> None:
        await self._set_live(False)

    async def _set_live(self, live: bool) -> None:
        if live == self._live:
            return
        self._live = live
        await self._emitter.emit_channel_status(live)
