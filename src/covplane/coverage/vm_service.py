"""Dart VM service probing.

A functional run leaves behind many instrumentation ports (selenium launches
browsers, each with its own VM service), but only some still host isolates
worth snapshotting. Each candidate is asked for ``getVM`` over WebSocket and
kept when the reply lists at least one isolate.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence

import structlog
from websockets.asyncio.client import connect
from websockets.exceptions import WebSocketException

from covplane.config.constants import GET_VM_REQUEST, VM_SERVICE_WS_URL

logger = structlog.get_logger()


async def probe_isolates(port: int, timeout: float = 5.0) -> bool:
    """Return True if the VM service on ``port`` reports any isolate.

    Raises:
        OSError, TimeoutError, WebSocketException, ValueError: The port could
            not be reached or did not answer with a JSON-RPC reply.
    """
    url = VM_SERVICE_WS_URL.format(port=port)
    async with asyncio.timeout(timeout), connect(url, open_timeout=timeout, proxy=None) as ws:
        await ws.send(json.dumps(GET_VM_REQUEST))
        while True:
            reply = json.loads(await ws.recv())
            if isinstance(reply, dict) and reply.get("id") == GET_VM_REQUEST["id"]:
                break
    result = reply.get("result")
    isolates = result.get("isolates") if isinstance(result, dict) else None
    return isinstance(isolates, list) and len(isolates) > 0


async def _probe_or_false(port: int, timeout: float) -> bool:
    try:
        live = await probe_isolates(port, timeout)
    except (OSError, TimeoutError, WebSocketException, ValueError) as e:
        logger.debug("port_probe_failed", port=port, error=str(e) or type(e).__name__)
        return False
    logger.debug("port_probed", port=port, live=live)
    return live


async def filter_live_ports(ports: Sequence[int], timeout: float = 5.0) -> list[int]:
    """Probe ``ports`` concurrently and keep those with live isolates.

    Order follows ``ports``. An unreachable port is dropped, never raised.
    """
    if not ports:
        return []
    verdicts = await asyncio.gather(*(_probe_or_false(port, timeout) for port in ports))
    live = [port for port, ok in zip(ports, verdicts, strict=True) if ok]
    logger.info("ports_filtered", candidates=len(ports), live=len(live))
    return live
