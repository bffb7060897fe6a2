from typing import Annotated
import uuid
import logging

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment_routing.database import get_db


logger = logging.getLogger(__name__)


async def get_store_id(
    x_store_id: Annotated[str, Header(alias="X-Store-ID")],
) -> uuid.UUID:
    """
    Dependency resolving the tenant for the request.

    Every routing query is scoped to this store.
    """
    try:
        return uuid.UUID(x_store_id)
    except ValueError:
        logger.warning(f"Invalid X-Store-ID header: {x_store_id}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Store-ID header must be a valid UUID",
        )


# Type aliases for cleaner dependency injection
DB = Annotated[AsyncSession, Depends(get_db)]
StoreID = Annotated[uuid.UUID, Depends(get_store_id)]
