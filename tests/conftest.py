"""Shared fakes for tiny_robots tests."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional, Union
from urllib.parse import parse_qs

import httpx

from tiny_robots.errors import DecodeError
from tiny_robots.models.events import Event
from tiny_robots.models.queue import QueueSession
from tiny_robots.transport.http import HttpClient

ENDPOINT = "https://chat.example.org"
USERNAME = "tiny-bot@chat.example.org"
SECRET = "s3cret"


def ok(**fields: Any) -> dict[str, Any]:
    return {"result": "success", "msg": "", **fields}


def error(msg: str, code: str = "BAD_REQUEST") -> dict[str, Any]:
    return {"result": "error", "msg": msg, "code": code}


def form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


class Recorder:
    """httpx MockTransport handler answering from a script of JSON bodies."""

    def __init__(self, *responses: Union[dict[str, Any], httpx.Response, Exception]):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        if isinstance(resp, httpx.Response):
            return resp
        status = 200 if resp.get("result") == "success" else 400
        return httpx.Response(status, content=json.dumps(resp).encode(), headers={"Content-Type": "application/json"})

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def make_http(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> HttpClient:
    return HttpClient(
        endpoint=ENDPOINT, username=USERNAME, secret=SECRET, transport=httpx.MockTransport(handler), **kwargs,
    )


class FakeQueues:
    """Stand-in for QueueAPI driven by scripted register/fetch outcomes."""

    def __init__(self, sessions: list[Union[QueueSession, Exception]], batches: Optional[list[Any]] = None):
        self.sessions = list(sessions)
        self.batches = list(batches or [])
        self.calls: list[tuple[str, Optional[QueueSession]]] = []

    async def register(self, event_types: Any = ("message",)) -> QueueSession:
        self.calls.append(("register", None))
        outcome = self.sessions.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def fetch(self, session: QueueSession) -> list[Union[Event, DecodeError]]:
        self.calls.append(("fetch", session))
        outcome = self.batches.pop(0) if self.batches else []
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def register_count(self) -> int:
        return sum(1 for name, _ in self.calls if name == "register")
