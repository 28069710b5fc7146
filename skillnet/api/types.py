from typing import Annotated

from fastapi import Depends

from skillnet.api.deps import get_broadcaster, get_dispatcher, get_peer_address
from skillnet.services.dispatch_service import DispatchService
from skillnet.services.manifest_broadcaster import ManifestBroadcaster

Dispatcher = Annotated[DispatchService, Depends(get_dispatcher)]
Broadcaster = Annotated[ManifestBroadcaster, Depends(get_broadcaster)]
PeerAddress = Annotated[str, Depends(get_peer_address)]
