"""
tiny-robots CLI -- `tiny-robots` command.

Runs the bot until interrupted: the event poller answering bang commands and
the pipeline-status webhook, side by side. The rocket backend runs the bang
commands only.
"""

import asyncio
import logging
from typing import Any, Optional

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install tiny-robots[cli]")

from aiohttp import web

from tiny_robots import __version__
from tiny_robots.client import AsyncChatClient
from tiny_robots.commands import CommandRouter
from tiny_robots.config import BACKENDS, DISPATCH_MODES, Config, load_config
from tiny_robots.errors import ConfigError, TinyRobotsError
from tiny_robots.rocket import AsyncRocketClient
from tiny_robots.webhook import create_app

console = Console(stderr=True)
logger = logging.getLogger("tiny_robots")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def resolve_config(config_path: Optional[str], debug: bool = False, **flags: Any) -> Config:
    """A config file, when given, replaces the flags entirely (except --debug)."""
    if config_path:
        config = load_config(config_path)
    else:
        config = Config().merged(**flags)
    return config.merged(debug=True) if debug else config


async def serve(config: Config) -> None:
    if config.backend == "rocket":
        await serve_rocket(config)
        return
    client = AsyncChatClient(
        endpoint=config.endpoint,
        username=config.bot_email,
        key_file=config.key_file,
        timeout=config.request_timeout,
        debug=config.debug,
    )
    router = CommandRouter(client, config)
    poller = client.poller(router, interval=config.poll_interval, dispatch=config.dispatch)
    try:
        await poller.start()
        runner = web.AppRunner(create_app(client, config.webhook_stream))
        await runner.setup()
        try:
            await web.TCPSite(runner, config.webhook_host, config.webhook_port).start()
            logger.info("Pipeline webhook listening on %s:%d", config.webhook_host, config.webhook_port)
            await poller.run()
        finally:
            await runner.cleanup()
    finally:
        await router.aclose()
        await client.close()


async def serve_rocket(config: Config) -> None:
    """Answer bang commands in one Rocket.Chat room. The pipeline webhook is Zulip-only."""
    client = AsyncRocketClient(
        url=config.endpoint,
        username=config.bot_email,
        room_id=config.room_id,
        key_file=config.key_file,
        debug=config.debug,
    )
    router = CommandRouter(client, config)
    try:
        await client.connect()
        await client.on_each_message(router)
    finally:
        await router.aclose()
        await client.close()


@click.command()
@click.version_option(__version__)
@click.option("--endpoint", default=None, help="The URL of the Zulip instance (websocket URL for rocket)")
@click.option("--bot", "bot_email", default=None, help="The email address of the bot (username for rocket)")
@click.option("--key-file", default=None, help="File holding the bot's API key")
@click.option("--giphy", "giphy_api_key", default=None, help="The API key for Giphy")
@click.option("--gitlab", "gitlab_api_key", default=None, help="The API token for GitLab")
@click.option("--gitlab-url", default=None, help="The base URL of the GitLab instance")
@click.option("--webhook-port", type=int, default=None, help="Port of the pipeline-status webhook")
@click.option("--backend", type=click.Choice(BACKENDS), default=None, help="Chat platform to connect to")
@click.option("--room", "room_id", default=None, help="Room to listen in (rocket backend)")
@click.option("--dispatch", type=click.Choice(DISPATCH_MODES), default=None,
              help="Run command handlers inline (sync) or as background tasks (task)")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="The path to the config file (flags will be ignored)")
@click.option("--debug", is_flag=True, help="Log raw API responses")
def main(config_path: Optional[str], debug: bool, **flags: Any) -> None:
    """Chat bot for Zulip or Rocket.Chat: bang commands and CI pipeline notifications."""
    try:
        config = resolve_config(config_path, debug=debug, **flags)
    except ConfigError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise SystemExit(1)

    logging.basicConfig(level=logging.DEBUG if config.debug else logging.INFO, format=LOG_FORMAT)

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        pass
    except (TinyRobotsError, OSError) as e:
        console.print(f"[red]Startup failed:[/red] {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
