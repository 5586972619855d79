from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import uvicorn

from client.backend import BackendClient
from core.api import create_api_app
from core.config import AppConfig, load_config
from core.logging import configure_logging
from views.ticket_list import TicketListView

LOGGER = logging.getLogger(__name__)


async def _run_headless(view: TicketListView) -> None:
    await view.mount()
    try:
        await asyncio.Event().wait()
    finally:
        await view.unmount()


async def _run_dashboard(config: AppConfig) -> None:
    backend = BackendClient(config.backend)
    view = TicketListView(backend, config)
    try:
        if config.fastapi.enabled:
            api = create_api_app(view, api_key=config.fastapi.api_key)
            server = uvicorn.Server(
                uvicorn.Config(
                    app=api,
                    host=config.fastapi.host,
                    port=config.fastapi.port,
                    log_level=config.logging.level.lower(),
                )
            )
            LOGGER.info("Serving ticket list on %s:%s", config.fastapi.host, config.fastapi.port)
            await server.serve()
        else:
            await _run_headless(view)
    finally:
        await backend.close()


def main() -> None:
    root = Path(__file__).resolve().parent
    config = load_config(root / "config" / "config.yaml")
    configure_logging(config.logging)
    asyncio.run(_run_dashboard(config))


if __name__ == "__main__":
    main()
