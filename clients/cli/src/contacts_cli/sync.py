"""Startup pull, push subscription and event routing for the contacts client."""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from contacts_cli import contacts_client
from contacts_cli.commands import Command, command_tag
from contacts_cli.dispatcher import CommandDispatcher
from contacts_cli.selection import SelectionTracker
from contacts_cli.snapshot import DEFAULT_NAMESPACE, Snapshot, SnapshotModel, full_address, parse_snapshot

logger = logging.getLogger(__name__)

STATE_IDLE = "idle"
STATE_LIVE = "live"
STATE_CLOSED = "closed"

Spawner = Callable[[Callable[[], None], str], None]


def _spawn_daemon(target: Callable[[], None], name: str) -> None:
    threading.Thread(target=target, name=name, daemon=True).start()


@dataclass
class ClientContext:
    """Everything the renderer and dispatcher need, owned by the controller."""

    our: str = ""
    snapshots: SnapshotModel = field(default_factory=SnapshotModel)
    tracker: SelectionTracker = field(default_factory=SelectionTracker)

    def __post_init__(self) -> None:
        # the tracker reconciles before any other listener sees the snapshot
        self.snapshots.subscribe(self.tracker.reconcile)

    def snapshot(self) -> Snapshot:
        return self.snapshots.current_snapshot()


@dataclass
class PushThread:
    thread: threading.Thread
    stop_event: threading.Event


def _start_push_thread(
    base_url: str,
    service: str,
    event_queue: "queue.Queue[dict[str, object]]",
    stop_event: threading.Event,
) -> threading.Thread:
    async def _push_loop() -> None:
        try:
            async for payload in contacts_client.updates_tail(base_url, service, stop_event=stop_event):
                event_queue.put({"type": "snapshot", "source": "push", "snapshot": parse_snapshot(payload)})
        except Exception:
            logger.exception("Push channel failed")
        event_queue.put({"type": "push_closed"})

    def _runner() -> None:
        asyncio.run(_push_loop())

    thread = threading.Thread(target=_runner, name="contacts-updates", daemon=True)
    thread.start()
    return thread


class SyncController:
    """Pulls, subscribes and routes every snapshot through the tracker.

    Network work happens on other threads; its results come back as events
    on ``event_queue`` and are applied by ``pump`` on the caller's thread, in
    arrival order.
    """

    def __init__(
        self,
        base_url: str,
        service: str,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        timeout_s: Optional[float] = None,
        context: Optional[ClientContext] = None,
        spawn: Spawner = _spawn_daemon,
        start_push: bool = True,
    ) -> None:
        self.base_url = base_url
        self.service = service
        self.namespace = namespace
        self.timeout_s = timeout_s
        self.context = context if context is not None else ClientContext()
        self.dispatcher = CommandDispatcher(
            base_url,
            service,
            self.context.snapshot,
            namespace=namespace,
            timeout_s=timeout_s,
        )
        self.event_queue: "queue.Queue[dict[str, object]]" = queue.Queue()
        self.state = STATE_IDLE
        self._spawn = spawn
        self._start_push = start_push
        self._push: Optional[PushThread] = None

    def resolve_identity(self) -> bool:
        try:
            self.context.our = full_address(contacts_client.fetch_our(self.base_url, self.timeout_s), self.namespace)
        except contacts_client.ContactsClientError as exc:
            logger.error("Identity lookup failed: %s", exc)
            return False
        return True

    def pull(self) -> bool:
        try:
            payload = contacts_client.fetch_state(self.base_url, self.service, self.timeout_s)
        except contacts_client.ContactsClientError as exc:
            logger.error("Initial state pull failed: %s", exc)
            return False
        self.apply(parse_snapshot(payload))
        return True

    def start(self) -> bool:
        """Resolve identity, pull, render, then open the push channel.

        Returns whether the first render had data. The push channel opens
        either way, so a later push can still fill an empty page.
        """

        identity_ok = self.resolve_identity()
        ok = self.pull() and identity_ok
        if self._start_push:
            self.open_push()
        else:
            self.state = STATE_LIVE
        return ok

    def open_push(self) -> None:
        if self._push is not None:
            return
        stop_event = threading.Event()
        thread = _start_push_thread(self.base_url, self.service, self.event_queue, stop_event)
        self._push = PushThread(thread=thread, stop_event=stop_event)
        self.state = STATE_LIVE

    def stop(self) -> None:
        if self._push is not None:
            self._push.stop_event.set()
            self._push.thread.join(timeout=0.5)
            self._push = None
        self.state = STATE_CLOSED

    def apply(self, snapshot: Snapshot) -> None:
        self.context.snapshots.replace(snapshot)

    def submit(self, command: Command, on_done: Optional[Callable[[bool], None]] = None) -> None:
        """Send ``command`` off-thread; ``on_done(ok)`` runs later from ``pump``."""

        def _send() -> None:
            ok = self.dispatcher.send(command)
            self.event_queue.put({"type": "command", "command": command, "ok": ok, "on_done": on_done})

        self._spawn(_send, f"contacts-{command_tag(command)}")

    def pump(self) -> int:
        """Apply every queued event; returns how many were handled."""

        handled = 0
        while True:
            try:
                event = self.event_queue.get_nowait()
            except queue.Empty:
                return handled
            handled += 1
            event_type = event.get("type")
            if event_type == "snapshot":
                snapshot = event["snapshot"]
                if isinstance(snapshot, Snapshot):
                    self.apply(snapshot)
            elif event_type == "command":
                callback = event.get("on_done")
                if callable(callback):
                    callback(bool(event.get("ok")))
            elif event_type == "push_closed":
                logger.info("Push channel closed")
                self._push = None
                self.state = STATE_CLOSED
