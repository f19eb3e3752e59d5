"""API route wrapping the hosted text-generation provider."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..billing import AuthenticatedUser
from ..schemas.content import GeneratePostRequest, GeneratePostResponse
from ..services.content_generation import build_prompt, get_content_generator
from .dependencies import get_authenticated_user

logger = logging.getLogger("content")

router = APIRouter(tags=["content"])


@router.post("/generate-post", response_model=GeneratePostResponse)
def generate_post(
    payload: GeneratePostRequest,
    *,
    current_user: AuthenticatedUser = Depends(get_authenticated_user),
) -> GeneratePostResponse:
    prompt = build_prompt(
        request_type=payload.request_type,
        topic=payload.topic,
        tone=payload.tone,
        prompt=payload.prompt,
        category=payload.category,
    )
    logger.info("Generating post", extra={"user_id": current_user.id, "content_type": payload.request_type or "generate"})
    content = get_content_generator().generate(prompt)
    return GeneratePostResponse(content=content)
