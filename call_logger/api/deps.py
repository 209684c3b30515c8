"""
Service wiring shared by the routers.

One ``AppServices`` bundle is built per app and stored on ``app.state``;
routers pull it through ``get_services`` so tests can hand in fakes.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from call_logger.config import Settings
from call_logger.services.call_registry import CallRegistry, build_registry
from call_logger.services.dispatcher import EventDispatcher
from call_logger.services.live_updates import LiveUpdateHub
from call_logger.services.pbx_client import ThreeCXClient
from call_logger.services.sheets import ResultSink, SheetWriter
from call_logger.services.vapi_client import VapiClient


@dataclass
class AppServices:
    settings: Settings
    hub: LiveUpdateHub
    registry: CallRegistry
    sink: ResultSink
    vapi: VapiClient
    pbx: ThreeCXClient
    dispatcher: EventDispatcher


def build_services(
    settings: Settings,
    *,
    hub: LiveUpdateHub | None = None,
    registry: CallRegistry | None = None,
    sink: ResultSink | None = None,
    vapi: VapiClient | None = None,
    pbx: ThreeCXClient | None = None,
) -> AppServices:
    """Build the service bundle, using any collaborators passed in."""
    hub = hub or LiveUpdateHub(send_timeout=settings.live_send_timeout_seconds)
    sink = sink or SheetWriter.from_settings(settings)
    return AppServices(
        settings=settings,
        hub=hub,
        registry=registry or build_registry(settings.redis_url),
        sink=sink,
        vapi=vapi or VapiClient.from_settings(settings),
        pbx=pbx or ThreeCXClient.from_settings(settings),
        dispatcher=EventDispatcher(hub=hub, sink=sink),
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services
