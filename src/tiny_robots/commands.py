"""Bang-command router.

Maps the prefix of an incoming message (``!hi``, ``!gif`` ...) to a handler
that replies through the chat client. Prefix matching is plain
``str.startswith`` on the message content, first match wins.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import quote, urlparse, urlunparse

import httpx

from tiny_robots.client import AsyncChatClient
from tiny_robots.config import Config
from tiny_robots.models.events import Event, Message
from tiny_robots.models.rocket import RoomMessage
from tiny_robots.rocket import AsyncRocketClient
from tiny_robots.shell import CommandResult, run_command

logger = logging.getLogger(__name__)

GIPHY_RANDOM_URL = "https://api.giphy.com/v1/gifs/random"
DEFAULT_GIF_TAG = "elephant"
DEFAULT_CI_REF = "master"
SUCCESS_EMOJI = "🎉"
FAILURE_EMOJI = "⛈"

CommandRunner = Callable[..., Awaitable[CommandResult]]
ChatMessage = Union[Message, RoomMessage]


class CommandRouter:
    _PREFIX_COMMANDS: tuple[tuple[str, str], ...] = (
        ("!hi", "_cmd_hi"),
        ("!failed", "_cmd_failed"),
        ("!rm", "_cmd_refuse"),
        ("!sh", "_cmd_refuse"),
        ("!gif", "_cmd_gif"),
        ("!godoc", "_cmd_godoc"),
        ("!test", "_cmd_test"),
        ("!ci", "_cmd_ci"),
    )

    def __init__(
        self,
        client: Union[AsyncChatClient, AsyncRocketClient],
        config: Config,
        http: httpx.AsyncClient | None = None,
        runner: CommandRunner = run_command,
    ) -> None:
        self._client = client
        self._config = config
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=config.request_timeout)
        self._run = runner

    def match(self, content: str) -> Optional[str]:
        for prefix, handler_name in self._PREFIX_COMMANDS:
            if content.startswith(prefix):
                return handler_name
        return None

    async def try_handle(self, message: ChatMessage) -> bool:
        """Run the command named by *message*, if any. Returns whether one matched."""
        if message.author and message.author == self._client.username:
            return False
        handler_name = self.match(message.content)
        if handler_name is None:
            return False
        try:
            await getattr(self, handler_name)(message)
        except Exception:
            logger.exception("Command %s failed for message %s", handler_name, message.id)
        return True

    async def __call__(self, event: Union[Event, RoomMessage]) -> None:
        if isinstance(event, (Message, RoomMessage)):
            await self.try_handle(event)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _cmd_hi(self, msg: ChatMessage) -> None:
        await self._client.replyf(msg, "%s said hi!", msg.author)

    async def _cmd_failed(self, msg: ChatMessage) -> None:
        result = await self._run("systemctl", "--failed")
        if not result.ok:
            logger.warning("systemctl --failed exited with %d: %s", result.returncode, result.output)
            return
        await self._client.replyf(msg, "```\n$ systemctl --failed\n%s```", result.output)

    async def _cmd_refuse(self, msg: ChatMessage) -> None:
        await self._client.replyf(
            msg, "```\n$ %s\n```\n\n... haha %s, very funny, but no thanks!", msg.content[1:], msg.author,
        )

    async def _cmd_gif(self, msg: ChatMessage) -> None:
        if not self._config.giphy_api_key:
            await self._client.reply(msg, "no Giphy API key configured")
            return
        fields = msg.content.split()
        search = fields[1] if len(fields) >= 2 else DEFAULT_GIF_TAG
        try:
            resp = await self._http.get(
                GIPHY_RANDOM_URL, params={"api_key": self._config.giphy_api_key, "tag": search},
            )
            resp.raise_for_status()
            image_url = _gif_url(resp.json())
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning("Random gif for %r failed: %s", search, e)
            return
        await self._client.replyf(msg, "here's some %s: %s", search, image_url)

    async def _cmd_godoc(self, msg: ChatMessage) -> None:
        fields = msg.content.split()
        if len(fields) < 2:
            return
        await self._client.replyf(msg, "https://godoc.org/%s", fields[1])

    async def _cmd_test(self, msg: ChatMessage) -> None:
        fields = msg.content.split()
        if len(fields) < 3:
            await self._client.reply(msg, "usage: !test <project> <branch-or-ref>")
            return
        project, ref = fields[1], fields[2]
        if not _safe_name(project) or ref.startswith("-"):
            await self._client.replyf(msg, "invalid project or ref: %s %s", project, ref)
            return
        project_path = str(Path(self._config.projects_dir) / project)

        result = await self._run("git", "-C", project_path, "fetch")
        if not result.ok:
            logger.warning("git fetch in %s failed: %s", project_path, result.output)
            await self._client.replyf(msg, 'git fetch: "%s"', result.output.strip())
            return

        result = await self._run("git", "-C", project_path, "checkout", ref)
        if not result.ok:
            logger.warning("git checkout %s in %s failed: %s", ref, project_path, result.output)
            await self._client.replyf(msg, "no such branch: %s", ref)
            return

        result = await self._run("make", "test", cwd=project_path)
        emoji = SUCCESS_EMOJI
        if not result.ok:
            logger.info("make test in %s exited with %d", project_path, result.returncode)
            emoji = FAILURE_EMOJI
        await self._client.replyf(msg, "%s\n```\n%s\n```", emoji, result.output)

    async def _cmd_ci(self, msg: ChatMessage) -> None:
        fields = msg.content.split()
        if len(fields) < 2:
            await self._client.reply(msg, "usage: !ci <project> [<branch-or-ref>]")
            return
        project = fields[1]
        ref = fields[2] if len(fields) >= 3 else DEFAULT_CI_REF
        base_url = self._config.gitlab_url.rstrip("/")

        try:
            resp = await self._http.post(
                f"{base_url}/api/v4/projects/{quote(project, safe='')}/pipeline",
                params={"ref": ref},
                headers={"Private-Token": self._config.gitlab_api_key},
            )
            data: Any = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("GitLab pipeline request for %s failed: %s", project, e)
            return

        if resp.status_code >= 400:
            logger.warning("GitLab error for %s: %r", project, data)
            error = data.get("message") if isinstance(data, dict) else data
            await self._client.replyf(msg, 'Could not start pipeline for "%s": %s', project, error)
            return

        await self._client.replyf(
            msg, "Pipeline %s for %s@%s (%s/%s/pipelines/%s)",
            data.get("status"), project, ref, base_url, project, data.get("id"),
        )


def _gif_url(payload: dict[str, Any]) -> str:
    data = payload["data"]
    url = data.get("image_url") or data["images"]["original"]["url"]
    return urlunparse(urlparse(url)._replace(scheme="https"))


def _safe_name(name: str) -> bool:
    return bool(name) and Path(name).name == name and not name.startswith(".")
