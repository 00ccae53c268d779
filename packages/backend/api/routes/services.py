"""Model service (chat backend) endpoints."""

import logging
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from api.dependencies import get_model_registry
from core.exceptions import ModelUnavailableError, ProviderError
from core.interfaces import ChatMessage, ChatOptions
from core.registry import ModelRegistry

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/services", tags=["services"])

Registry = Annotated[ModelRegistry, Depends(get_model_registry)]


class ServiceInfo(BaseModel):
    """Descriptor of a registered model service."""

    id: str
    name: str
    provider: str
    is_available: bool
    is_local: bool
    model_type: str | None = None
    status: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    description: str | None = None


class ServiceListResponse(BaseModel):
    """Registered services, flat and grouped by provider."""

    services: list[ServiceInfo]
    providers: dict[str, list[ServiceInfo]]


class MessageIn(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Request model for chat."""

    messages: list[MessageIn] = Field(min_length=1)
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    max_tokens: int | None = None
    system_prompt: str | None = None
    top_p: float | None = None
    top_k: int | None = None
    functions: list[dict[str, Any]] | None = None


class ChatResponse(BaseModel):
    """Response model for chat."""

    content: str
    model: str
    usage: dict[str, int] | None = None
    finish_reason: str | None = None


@router.get("", response_model=ServiceListResponse)
async def list_services(
    registry: Registry,
    available: Annotated[bool, Query(description="Only available services")] = False,
    local: Annotated[bool, Query(description="Only local services")] = False,
) -> ServiceListResponse:
    """List registered model services."""
    services = list(registry)
    if available:
        services = [s for s in services if s.is_available]
    if local:
        services = [s for s in services if s.is_local]

    items = [ServiceInfo(**s.describe()) for s in services]
    providers: dict[str, list[ServiceInfo]] = {}
    for item in items:
        providers.setdefault(item.provider, []).append(item)

    return ServiceListResponse(services=items, providers=providers)


@router.get("/{service_id}", response_model=ServiceInfo)
async def get_service(service_id: str, registry: Registry) -> ServiceInfo:
    service = registry.lookup(service_id)
    if service is None:
        raise HTTPException(status_code=404, detail=f"Model service {service_id} not found")
    return ServiceInfo(**service.describe())


@router.post("/{service_id}/chat", response_model=ChatResponse)
async def chat(service_id: str, request: ChatRequest, registry: Registry) -> ChatResponse:
    """Send a conversation to a registered model service."""
    service = registry.lookup(service_id)
    if service is None:
        raise HTTPException(status_code=404, detail=f"Model service {service_id} not found")

    messages = [ChatMessage(role=m.role, content=m.content) for m in request.messages]
    options = ChatOptions(
        temperature=request.temperature,
        max_tokens=request.max_tokens,
        system_prompt=request.system_prompt,
        top_p=request.top_p,
        top_k=request.top_k,
        functions=request.functions,
    )

    try:
        response = await service.send_message(messages, options)
    except ModelUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except ProviderError as e:
        logger.warning("Chat with %s failed: %s", service_id, e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    return ChatResponse(
        content=response.content,
        model=response.model,
        usage=response.usage,
        finish_reason=response.finish_reason,
    )
