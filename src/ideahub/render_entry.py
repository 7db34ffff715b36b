from __future__ import annotations

import asyncio
import signal
import logging

from aiohttp import web
from dotenv import load_dotenv

from .bot import IdeaHubBot
from .config import load_settings
from .database import get_database_info
from .logging_setup import setup_logging

log = logging.getLogger("ideahub.render")


def build_health_app(bot: IdeaHubBot) -> web.Application:
    app = web.Application()

    async def health(_: web.Request) -> web.Response:
        body = {
            "ok": True,
            "service": "ideahub",
            "ready": bot.is_ready(),
            "stats": bot.stats.snapshot(),
        }
        try:
            body["database"] = await get_database_info(bot.settings.sqlite_path)
        except Exception as e:
            log.warning("Health check could not read database: %s", e)
            body["ok"] = False
        return web.json_response(body, status=200 if body["ok"] else 503)

    app.router.add_get("/", health)
    app.router.add_get("/healthz", health)
    return app


async def _start_web_server(bot: IdeaHubBot) -> web.AppRunner:
    runner = web.AppRunner(build_health_app(bot))
    await runner.setup()

    site = web.TCPSite(runner, "0.0.0.0", bot.settings.port)
    await site.start()

    log.info("Health server listening on 0.0.0.0:%s", bot.settings.port)
    return runner


async def _wait_for_shutdown(bot: IdeaHubBot, token: str) -> None:
    """Run the bot until it stops on its own or the host asks us to exit."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            log.debug("Signal %s not supported on this platform", sig.name)

    runner_task = asyncio.create_task(bot.start(token), name="ideahub-bot")
    stop_task = asyncio.create_task(stop.wait(), name="ideahub-stop")
    await asyncio.wait({runner_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

    if stop.is_set():
        log.info("Shutdown requested (stats: %s)", bot.stats.snapshot())
        await bot.close()
        await asyncio.wait({runner_task}, timeout=10)
    stop_task.cancel()

    if runner_task.done() and not runner_task.cancelled():
        runner_task.result()  # re-raise a crash of the gateway task


async def main_async() -> None:
    load_dotenv()
    settings = load_settings()
    setup_logging(settings.log_level)

    bot = IdeaHubBot(settings)
    runner = await _start_web_server(bot)
    try:
        async with bot:
            await _wait_for_shutdown(bot, settings.token)
    finally:
        await runner.cleanup()
        log.info("Health server stopped")


def main() -> None:
    asyncio.run(main_async())


if __name__ == "__main__":
    main()
