"""
Destination routes.

Lists the destinations accepted by the `dest` query parameter of the
transfer endpoints and the transfer service each one maps to.
"""

from fastapi import APIRouter, Depends

from app.schemas.transfer import DestinationInfo, DestinationList
from app.services.transfers_service import TransferDispatcher, get_dispatcher

router = APIRouter()


@router.get("", response_model=DestinationList)
async def list_destinations(dispatcher: TransferDispatcher = Depends(get_dispatcher)):
    """
    Retrieve the configured destinations.

    Returns:
        DestinationList: Destination keys with their service, and the default destination.

    Example:
        >>> GET /destinations
    """

    registry = dispatcher.registry
    return DestinationList(
        default=registry.default_destination,
        destinations=[
            DestinationInfo(destination=key, service=descriptor.key, name=descriptor.name)
            for key, descriptor in registry.items()
        ],
    )
