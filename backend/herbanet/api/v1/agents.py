# backend/herbanet/api/v1/agents.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.api.deps.gateways import get_notifier
from herbanet.core.directory import find_agent_by_code, promote_agent, register_distributor, register_stokis
from herbanet.core.errors import NotFound
from herbanet.core.network import (
    delete_agent,
    get_downlines,
    get_downlines_at_level,
    get_upline_chain,
    register_agent,
)
from herbanet.core.notifications import Notifier
from herbanet.crud.agent import get_agent, get_agent_by_user
from herbanet.db.session import get_db
from herbanet.schemas.agent import AgentOut, AgentRegister, NetworkEdgeOut, PromoteRequest, UplineOut

router = APIRouter(prefix="/agents", tags=["agents"])


@router.post("", response_model=AgentOut, status_code=status.HTTP_201_CREATED)
async def register_agent_endpoint(
    payload: AgentRegister,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    return await register_agent(db, notifier=notifier, **payload.model_dump())


@router.get("/by-code/{agent_code}", response_model=AgentOut)
async def get_agent_by_code_endpoint(agent_code: str, db: AsyncSession = Depends(get_db)):
    return await find_agent_by_code(db, agent_code)


@router.get("/by-user/{user_id}", response_model=AgentOut)
async def get_agent_by_user_endpoint(user_id: int, db: AsyncSession = Depends(get_db)):
    agent = await get_agent_by_user(db, user_id)
    if agent is None:
        raise NotFound(f"User {user_id} has no agent account")
    return agent


@router.get("/{agent_id}", response_model=AgentOut)
async def get_agent_endpoint(agent_id: int, db: AsyncSession = Depends(get_db)):
    return await get_agent(db, agent_id)


@router.delete("/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_agent_endpoint(agent_id: int, db: AsyncSession = Depends(get_db)):
    await delete_agent(db, agent_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{agent_id}/upline", response_model=UplineOut)
async def get_upline_endpoint(agent_id: int, db: AsyncSession = Depends(get_db)):
    edges = await get_upline_chain(db, agent_id)
    return UplineOut(agent_id=agent_id, edges=[NetworkEdgeOut.model_validate(e) for e in edges])


@router.get("/{agent_id}/downlines", response_model=List[NetworkEdgeOut])
async def get_downlines_endpoint(agent_id: int, db: AsyncSession = Depends(get_db)):
    return await get_downlines(db, agent_id)


@router.get("/{agent_id}/downlines/{level}", response_model=List[AgentOut])
async def get_downlines_at_level_endpoint(agent_id: int, level: int, db: AsyncSession = Depends(get_db)):
    return await get_downlines_at_level(db, agent_id, level)


@router.post("/{agent_id}/promote", response_model=AgentOut)
async def promote_agent_endpoint(agent_id: int, payload: PromoteRequest, db: AsyncSession = Depends(get_db)):
    return await promote_agent(db, agent_id, payload.rank)


@router.post("/{agent_id}/stokis", response_model=AgentOut)
async def register_stokis_endpoint(agent_id: int, db: AsyncSession = Depends(get_db)):
    return await register_stokis(db, agent_id)


@router.post("/{agent_id}/distributor", response_model=AgentOut)
async def register_distributor_endpoint(agent_id: int, db: AsyncSession = Depends(get_db)):
    return await register_distributor(db, agent_id)
