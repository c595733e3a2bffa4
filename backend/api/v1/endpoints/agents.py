# api/v1/endpoints/agents.py
from typing import List
from fastapi import APIRouter, Depends, status

from core.dependencies import get_agent_repository
from repositories.agent_repo import AgentRepository
from schemas.tracking import AgentCreate, AgentOut

router = APIRouter()


@router.get("", response_model=List[AgentOut])
def list_agents(agents: AgentRepository = Depends(get_agent_repository)):
    """All agents in the user directory, by name"""
    return [AgentOut(id=agent.id, name=agent.name) for agent in agents.list()]


@router.post("", response_model=AgentOut, status_code=status.HTTP_201_CREATED)
def create_agent(agent_in: AgentCreate, agents: AgentRepository = Depends(get_agent_repository)):
    agent = agents.create_agent(agent_in.name)
    return AgentOut(id=agent.id, name=agent.name)
