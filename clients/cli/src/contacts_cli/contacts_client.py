"""Minimal client for the contacts backend: stdlib HTTP plus an aiohttp push channel."""

from __future__ import annotations

import asyncio
import json
import socket
import threading
import urllib.error
import urllib.parse
import urllib.request
from typing import AsyncIterator, Dict, Optional

import aiohttp


class ContactsClientError(Exception):
    """Base exception for backend request failures."""


class ContactsClientHTTPError(ContactsClientError):
    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Contacts backend error {status_code}: {detail or 'no body'}")


def _build_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}{path}"


def _service_path(service: str, suffix: str) -> str:
    return f"/{service.strip('/')}/{suffix}"


def _read_http_error_detail(exc: urllib.error.HTTPError) -> str:
    try:
        return exc.read().decode("utf-8", errors="replace").strip()
    except Exception:
        return str(exc.reason or "")


def _open(request: urllib.request.Request, timeout: Optional[float]) -> bytes:
    try:
        if timeout is None:
            response_cm = urllib.request.urlopen(request)
        else:
            response_cm = urllib.request.urlopen(request, timeout=timeout)
        with response_cm as response:
            return response.read()
    except urllib.error.HTTPError as exc:
        raise ContactsClientHTTPError(exc.code, _read_http_error_detail(exc)) from exc
    except (urllib.error.URLError, socket.timeout, TimeoutError, ConnectionError) as exc:
        raise ContactsClientError(f"Request to {request.full_url} failed: {exc}") from exc


def fetch_our(base_url: str, timeout: Optional[float] = None) -> str:
    """Return the short local identity served at ``GET /our``."""

    request = urllib.request.Request(_build_url(base_url, "/our"), method="GET")
    return _open(request, timeout).decode("utf-8").strip()


def fetch_state(base_url: str, service: str, timeout: Optional[float] = None) -> Dict[str, object]:
    request = urllib.request.Request(
        _build_url(base_url, _service_path(service, "state")),
        headers={"Accept": "application/json"},
        method="GET",
    )
    raw = _open(request, timeout).decode("utf-8")
    try:
        payload = json.loads(raw) if raw else {}
    except json.JSONDecodeError as exc:
        raise ContactsClientError(f"Backend returned invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ContactsClientError("Backend state is not a JSON object")
    return payload


def post_command(
    base_url: str,
    service: str,
    command: Dict[str, object],
    timeout: Optional[float] = None,
) -> None:
    """Send one tagged command. Any non-2xx answer raises ``ContactsClientHTTPError``.

    The backend answers with a status only, so nothing is returned.
    """

    body = json.dumps(command).encode("utf-8")
    request = urllib.request.Request(
        _build_url(base_url, _service_path(service, "post")),
        data=body,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    _open(request, timeout)


def updates_url(base_url: str, service: str) -> str:
    parts = urllib.parse.urlsplit(base_url.rstrip("/"))
    scheme = "wss" if parts.scheme == "https" else "ws"
    path = parts.path + _service_path(service, "updates")
    return urllib.parse.urlunsplit((scheme, parts.netloc, path, "", ""))


async def updates_tail(
    base_url: str,
    service: str,
    *,
    stop_event: Optional[threading.Event] = None,
    heartbeat: float = 20.0,
    receive_timeout_s: float = 1.0,
) -> AsyncIterator[Dict[str, object]]:
    """Yield each snapshot pushed on the updates websocket until it closes.

    ``stop_event`` is polled between frames so a caller on another thread can
    end the stream. Frames are decoded but not validated.
    """

    ws_url = updates_url(base_url, service)
    async with aiohttp.ClientSession() as session:
        async with session.ws_connect(ws_url, heartbeat=heartbeat) as ws:
            while stop_event is None or not stop_event.is_set():
                try:
                    msg = await ws.receive(timeout=receive_timeout_s)
                except asyncio.TimeoutError:
                    continue
                if msg.type == aiohttp.WSMsgType.TEXT:
                    yield json.loads(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    yield json.loads(msg.data.decode("utf-8"))
                elif msg.type in (
                    aiohttp.WSMsgType.CLOSE,
                    aiohttp.WSMsgType.CLOSING,
                    aiohttp.WSMsgType.CLOSED,
                    aiohttp.WSMsgType.ERROR,
                ):
                    return
