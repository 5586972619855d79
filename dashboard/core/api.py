from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, NoReturn

from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel

from core.errors import DashboardError, NotMountedError, ValidationError
from views.ticket_list import TicketListView


class FilterEdits(BaseModel):
    search: str | None = None
    origin: str | None = None
    destination: str | None = None
    status: str | None = None
    color: str | None = None
    delay: str | None = None


class ShortcutClick(BaseModel):
    dimension: str
    key: str


def _auth(x_api_key: str | None, expected: str) -> None:
    if not expected:
        return
    if x_api_key != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")


def _raise_http(error: DashboardError) -> NoReturn:
    if isinstance(error, NotMountedError):
        raise HTTPException(status_code=409, detail=error.user_message) from error
    if isinstance(error, ValidationError):
        raise HTTPException(status_code=422, detail=error.user_message) from error
    raise HTTPException(status_code=502, detail=error.user_message) from error


def serialize_view(view: TicketListView) -> dict[str, Any]:
    state = view.state
    start, end = view.paginator.window()
    return {
        "state": state.state.value,
        "loading": state.loading,
        "blocking": state.blocking,
        "background_refreshing": state.background_refreshing,
        "error": state.error,
        "refresh_error": state.refresh_error,
        "filters": asdict(state.filters),
        "pending_filters": asdict(view.pipeline.raw),
        "pagination": {
            "page": state.page,
            "page_size": view.paginator.page_size,
            "total_pages": state.total_pages,
            "total_count": state.total_count,
            "showing_from": start,
            "showing_to": end,
        },
        "stats": [asdict(card) for card in view.stat_cards()],
        "rows": [asdict(row) for row in view.rows()],
        "expanded": sorted(state.expanded_row_keys),
    }


def create_api_app(view: TicketListView, api_key: str = "") -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await view.mount()
        try:
            yield
        finally:
            await view.unmount()

    app = FastAPI(title="Consignment Desk", version="1.0.0", lifespan=lifespan)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok" if view.mounted else "unmounted"}

    @app.get("/view")
    async def get_view(x_api_key: str | None = Header(default=None)) -> dict[str, Any]:
        _auth(x_api_key, api_key)
        return serialize_view(view)

    @app.post("/view/filters")
    async def edit_filters(
        edits: FilterEdits, x_api_key: str | None = Header(default=None)
    ) -> dict[str, Any]:
        _auth(x_api_key, api_key)
        changes = {name: value for name, value in edits.model_dump().items() if value is not None}
        try:
            view.apply_filters(**changes)
        except DashboardError as exc:
            _raise_http(exc)
        return serialize_view(view)

    @app.post("/view/shortcut")
    async def click_shortcut(
        click: ShortcutClick, x_api_key: str | None = Header(default=None)
    ) -> dict[str, Any]:
        _auth(x_api_key, api_key)
        try:
            view.click_stat(click.dimension, click.key)
        except DashboardError as exc:
            _raise_http(exc)
        await view.settle()
        return serialize_view(view)

    @app.post("/view/page/{page}")
    async def go_to_page(page: int, x_api_key: str | None = Header(default=None)) -> dict[str, Any]:
        _auth(x_api_key, api_key)
        try:
            moved = view.go_to_page(page)
        except DashboardError as exc:
            _raise_http(exc)
        if not moved:
            raise HTTPException(status_code=422, detail=f"Page {page} is out of range")
        await view.settle()
        return serialize_view(view)

    @app.post("/view/rows/{ticket_id}/toggle")
    async def toggle_row(ticket_id: str, x_api_key: str | None = Header(default=None)) -> dict[str, Any]:
        _auth(x_api_key, api_key)
        try:
            expanded = view.toggle_row(ticket_id)
        except DashboardError as exc:
            _raise_http(exc)
        return {"ticket_id": ticket_id, "expanded": expanded}

    @app.get("/view/rows/{ticket_id}/timeline")
    async def timeline(ticket_id: str, x_api_key: str | None = Header(default=None)) -> dict[str, Any]:
        _auth(x_api_key, api_key)
        try:
            data = view.timeline_for(ticket_id)
        except DashboardError as exc:
            _raise_http(exc)
        if data is None:
            return {"ticket_id": ticket_id, "gr_no": None, "loading": False, "records": [], "empty_message": None}
        return {
            "ticket_id": ticket_id,
            "gr_no": data.gr_no,
            "loading": data.loading,
            "records": [asdict(record) for record in data.records],
            "empty_message": data.empty_message,
        }

    @app.post("/view/retry")
    async def retry(x_api_key: str | None = Header(default=None)) -> dict[str, Any]:
        _auth(x_api_key, api_key)
        try:
            await view.retry()
        except DashboardError as exc:
            _raise_http(exc)
        return serialize_view(view)

    @app.post("/view/export")
    async def export(x_api_key: str | None = Header(default=None)) -> dict[str, str]:
        _auth(x_api_key, api_key)
        try:
            path = await view.export()
        except DashboardError as exc:
            _raise_http(exc)
        return {"path": str(path)}

    return app
