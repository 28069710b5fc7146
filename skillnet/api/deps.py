from fastapi import Request

from skillnet.services.dispatch_service import DispatchService
from skillnet.services.manifest_broadcaster import ManifestBroadcaster


def get_dispatcher(request: Request) -> DispatchService:
    return request.app.state.node.dispatcher


def get_broadcaster(request: Request) -> ManifestBroadcaster:
    return request.app.state.node.broadcaster


def get_peer_address(request: Request) -> str:
    return request.client.host if request.client else ""
