"""
Gated AI endpoints

Every authenticated call passes through InteractionGate before the generator
is invoked. Anonymous calls are not metered.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Header
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List, Dict, Any, Tuple
from doctor_helper.database import get_db
from doctor_helper.models.user import User
from doctor_helper.middleware.auth import get_optional_user
from doctor_helper.schemas.chat import ChatRequest, ChatResponse
from doctor_helper.core.gating import InteractionGate, interaction_type_for
from doctor_helper.core.interactions import QuotaGate
from doctor_helper.core.system_config import get_generation_api_key
from doctor_helper.core.generation import (
    GenerationClient,
    GenerationError,
    build_content_parts,
    format_stream_chunk,
)
import json
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_generation_client(db: AsyncSession = Depends(get_db)) -> GenerationClient:
    """Generation client configured from settings and admin overrides"""
    return GenerationClient(api_key=await get_generation_api_key(db))


def get_request_id(
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    x_request_id: Optional[str] = Header(None, alias="X-Request-ID"),
) -> Optional[str]:
    """Client-supplied id used to deduplicate retried interactions"""
    return idempotency_key or x_request_id


def prepare_chat(chat_request: ChatRequest) -> Tuple[str, List[Dict[str, Any]]]:
    """Validate the request and build (interaction_type, content parts)"""
    message = chat_request.last_message
    health_report = None
    if chat_request.healthReport:
        # A report with no populated fields carries no context
        health_report = chat_request.healthReport.model_dump(exclude_defaults=True) or None

    if not message and not chat_request.image and not chat_request.document and not health_report:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No message content, image, document, or health report found."
        )

    try:
        parts = build_content_parts(
            message=message,
            document=chat_request.document,
            health_report=health_report,
            image=chat_request.image,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    interaction_type = interaction_type_for(
        image=chat_request.image,
        document=chat_request.document,
        health_report=health_report,
    )
    return interaction_type, parts


def require_configured(generator: GenerationClient):
    if not generator.api_key:
        logger.error("Generation API key is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error: missing generation API key"
        )


@router.post("/chat")
async def chat(
    chat_request: ChatRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
    generator: GenerationClient = Depends(get_generation_client),
    request_id: Optional[str] = Depends(get_request_id),
):
    """Stream a response in data-stream lines (0:<text>, 3:<error>)"""
    interaction_type, parts = prepare_chat(chat_request)
    require_configured(generator)

    await InteractionGate(db).admit(current_user, interaction_type, request_id=request_id)

    async def stream_body():
        try:
            async for text in generator.stream(parts):
                yield format_stream_chunk(text)
        except GenerationError as e:
            logger.error(f"Chat stream failed: {e}")
            yield f"3:{json.dumps('An internal server error occurred.')}\n"

    return StreamingResponse(stream_body(), media_type="text/plain; charset=utf-8")


@router.post("/mobile/chat", response_model=ChatResponse)
async def mobile_chat(
    chat_request: ChatRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
    generator: GenerationClient = Depends(get_generation_client),
    request_id: Optional[str] = Depends(get_request_id),
):
    """Non-streamed chat for the mobile client"""
    interaction_type, parts = prepare_chat(chat_request)
    require_configured(generator)

    outcome = await InteractionGate(db).admit(current_user, interaction_type, request_id=request_id)

    try:
        text = await generator.generate(parts)
    except GenerationError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="AI service is temporarily unavailable"
        ) from e

    remaining = limit = None
    if outcome.gated:
        stats = await QuotaGate(db).get_stats(outcome.user_id, outcome.plan_id)
        remaining, limit = stats.remaining, stats.limit

    return ChatResponse(
        response=text,
        interactionType=interaction_type,
        remaining=remaining,
        limit=limit,
    )
