"""Client management endpoints."""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_current_user
from core.database import get_session
from core.dates import utcnow
from core.exceptions import ValidationError
from core.ids import parse_uuid
from core.logging import get_logger
from core.queries import get_owned, ordering, parse_list_query, updated_fields
from domain.client.models import Client
from domain.client.schemas import (
    END_BEFORE_START_MESSAGE,
    ClientCreateRequest,
    ClientEnvelope,
    ClientListQuery,
    ClientListResponse,
    ClientResponse,
    ClientUpdateRequest,
    Pagination,
    end_date_is_valid,
)
from domain.common import MessageResponse
from domain.user.models import User

logger = get_logger(__name__)
router = APIRouter()


@router.get("", response_model=ClientListResponse)
async def list_clients(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    client_type: Optional[str] = Query(None, alias="type"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Paginated client list."""
    params = parse_list_query(
        ClientListQuery,
        page=page,
        limit=limit,
        type=client_type,
        sortBy=sort_by,
        sortOrder=sort_order,
    )

    filters = [Client.user_id == current_user.id]
    if params.type is not None:
        filters.append(Client.type == params.type)

    total = (
        await session.execute(select(func.count(Client.id)).where(*filters))
    ).scalar_one()

    sort_columns = {
        "createdAt": Client.created_at,
        "name": Client.name,
        "value": Client.value,
        "startDate": Client.start_date,
        "endDate": Client.end_date,
        "type": Client.type,
    }
    result = await session.execute(
        select(Client)
        .where(*filters)
        .order_by(*ordering(sort_columns[params.sort_by], params.sort_order, Client.id))
        .limit(params.limit)
        .offset((params.page - 1) * params.limit)
    )

    return ClientListResponse(
        clients=[ClientResponse.model_validate(c) for c in result.scalars().all()],
        pagination=Pagination(
            page=params.page,
            limit=params.limit,
            total=total,
            total_pages=0 if total == 0 else math.ceil(total / params.limit),
        ),
    )


@router.post("", response_model=ClientEnvelope, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    client = Client(
        user_id=current_user.id,
        name=payload.name,
        type=payload.type,
        value=payload.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    session.add(client)
    await session.commit()
    await session.refresh(client)

    logger.info("client_created", client_id=str(client.id))
    return ClientEnvelope(client=ClientResponse.model_validate(client))


@router.patch("/{client_id}", response_model=ClientEnvelope)
async def update_client(
    client_id: str,
    payload: ClientUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Partial update; the date order is checked on the merged values."""
    client = await get_owned(
        session, Client, parse_uuid(client_id, "client"), current_user.id, "Client"
    )
    changes = updated_fields(payload)

    start_date = changes.get("start_date", client.start_date)
    end_date = changes["end_date"] if "end_date" in changes else client.end_date
    if not end_date_is_valid(start_date, end_date):
        raise ValidationError(END_BEFORE_START_MESSAGE, field="endDate")

    for field, value in changes.items():
        setattr(client, field, value)
    client.updated_at = utcnow()

    await session.commit()
    await session.refresh(client)
    return ClientEnvelope(client=ClientResponse.model_validate(client))


@router.delete("/{client_id}", response_model=MessageResponse)
async def delete_client(
    client_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    client = await get_owned(
        session, Client, parse_uuid(client_id, "client"), current_user.id, "Client"
    )
    await session.delete(client)
    await session.commit()
    return MessageResponse(message="Client deleted successfully.")
