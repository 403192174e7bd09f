"""HTTP bridge onto a running extension.

Exposes the coordinator's action namespace to other processes:

    page-bridge serve --uds /tmp/page-bridge.sock
    curl --unix-socket /tmp/page-bridge.sock -X POST localhost/tabs -d '{"html": "..."}'

Architecture:
    HTTP client ─[TCP/Unix socket]─> FastAPI ─> bridge context ─[fabric]─> coordinator ─> mediators

The bridge is a context like any other: it holds a router at ``bridge`` and
reaches the coordinator only through the fabric.
"""

from __future__ import annotations

__all__ = [
    'BRIDGE_ADDRESS',
    'BridgeContext',
    'create_app',
    'serve',
]

import contextlib
import logging
import traceback
import typing

import fastapi
import fastapi.responses
import uvicorn

from page_bridge.contexts.base import COORDINATOR_ADDRESS, Context
from page_bridge.errors import DeliveryError, RemoteActionError
from page_bridge.models import StrictModel
from page_bridge.runtime import Extension
from page_bridge.transport import Fabric

logger = logging.getLogger(__name__)

BRIDGE_ADDRESS = 'bridge'


class BridgeContext(Context):
    kind = 'bridge'

    def __init__(self, fabric: Fabric, *, request_timeout: float = 30.0) -> None:
        super().__init__(BRIDGE_ADDRESS, fabric, request_timeout=request_timeout)


class OpenTabRequest(StrictModel):
    html: str
    url: str = 'about:blank'
    active: bool = True


class ActionRequest(StrictModel):
    action: str
    payload: typing.Any = None


class ActionResponse(StrictModel):
    success: bool
    data: typing.Any = None
    error: str | None = None


def create_app(extension: Extension) -> fastapi.FastAPI:
    """FastAPI app serving ``extension``; the extension starts and stops with the app."""

    @contextlib.asynccontextmanager
    async def lifespan(app: fastapi.FastAPI) -> typing.AsyncIterator[None]:
        await extension.start()
        bridge = BridgeContext(extension.fabric, request_timeout=extension.config.request_timeout)
        await bridge.start()
        app.state.extension = extension
        app.state.bridge = bridge
        logger.info('HTTP bridge ready')

        yield

        await bridge.stop()
        await extension.shutdown()
        logger.info('HTTP bridge stopped')

    app = fastapi.FastAPI(title='page-bridge HTTP Bridge', lifespan=lifespan)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: fastapi.Request, exc: Exception) -> fastapi.responses.JSONResponse:
        """Return unhandled exceptions with full traceback."""
        tb_str = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return fastapi.responses.JSONResponse(
            status_code=500,
            content={'detail': f'{type(exc).__name__}: {exc}', 'traceback': tb_str},
        )

    @app.post('/tabs', status_code=201)
    async def open_tab(
        request: OpenTabRequest,
        ext: Extension = fastapi.Depends(get_extension),
    ) -> dict[str, int]:
        tab = await ext.open_tab(request.html, request.url, active=request.active)
        return {'tabId': tab.id}

    @app.delete('/tabs/{tab_id}')
    async def close_tab(tab_id: int, ext: Extension = fastapi.Depends(get_extension)) -> dict[str, bool]:
        if not await ext.close_tab(tab_id):
            raise fastapi.HTTPException(status_code=404, detail=f'No tab {tab_id}')
        return {'closed': True}

    @app.get('/tabs/{tab_id}/html')
    async def tab_html(tab_id: int, ext: Extension = fastapi.Depends(get_extension)) -> dict[str, str]:
        tab = ext.tabs.get(tab_id)
        if tab is None:
            raise fastapi.HTTPException(status_code=404, detail=f'No tab {tab_id}')
        return {'html': tab.document.serialize()}

    @app.post('/actions')
    async def run_action(
        request: ActionRequest,
        bridge: BridgeContext = fastapi.Depends(get_bridge),
    ) -> ActionResponse:
        """Invoke a coordinator action; ``sendToTab`` reaches a tab's mediator."""
        try:
            data = await bridge.router.call(COORDINATOR_ADDRESS, request.action, request.payload)
        except RemoteActionError as e:
            return ActionResponse(success=False, error=e.message)
        except DeliveryError as e:
            raise fastapi.HTTPException(status_code=503, detail=str(e)) from e
        return ActionResponse(success=True, data=data)

    @app.get('/settings')
    async def get_settings(bridge: BridgeContext = fastapi.Depends(get_bridge)) -> typing.Any:
        try:
            return await bridge.router.call(COORDINATOR_ADDRESS, 'getSettings')
        except DeliveryError as e:
            raise fastapi.HTTPException(status_code=503, detail=str(e)) from e

    return app


# FastAPI dependency functions
def get_extension(request: fastapi.Request) -> Extension:
    """Retrieve the extension from app.state."""
    extension: Extension = request.app.state.extension
    return extension


def get_bridge(request: fastapi.Request) -> BridgeContext:
    bridge: BridgeContext = request.app.state.bridge
    return bridge


async def serve(
    extension: Extension,
    *,
    host: str = '127.0.0.1',
    port: int = 8765,
    uds: str | None = None,
) -> None:
    """Serve the bridge until interrupted, on TCP or a Unix socket."""
    app = create_app(extension)
    if uds is not None:
        config = uvicorn.Config(app, uds=uds, log_level='warning')
        logger.info(f'Serving on unix socket {uds}')
    else:
        config = uvicorn.Config(app, host=host, port=port, log_level='warning')
        logger.info(f'Serving on http://{host}:{port}')
    await uvicorn.Server(config).serve()
