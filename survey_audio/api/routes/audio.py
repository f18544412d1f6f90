"""
Audio routes.

POST /generate-audio runs the generation pipeline for one survey response.
POST /send-audio-message pushes an already generated audio to the contact.
"""
import asyncio

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from survey_audio.api.dependencies import get_generate_audio_use_case, get_send_audio_message_use_case
from survey_audio.core.exceptions import PipelineError
from survey_audio.core.usecases.generate_audio import GenerateAudioUseCase
from survey_audio.core.usecases.send_audio_message import SendAudioMessageUseCase
from survey_audio.schemas.generate_audio import (
    GenerateAudioRequest,
    GenerateAudioResponse,
    SendAudioMessageRequest,
    SendAudioMessageResponse
)


router = APIRouter(tags=["Audio"])


@router.post("/generate-audio", response_model=GenerateAudioResponse)
async def generate_audio(
    request: GenerateAudioRequest,
    use_case: GenerateAudioUseCase = Depends(get_generate_audio_use_case)
) -> JSONResponse:
    """
    Generate (or return the cached) personalized audio for a survey response.

    The status code mirrors the pipeline outcome: 400 for invalid input or
    script length, 404 when the survey response is missing, 409 while another
    invocation holds the job, 500 for synthesis and storage failures.
    The run is shielded so a client disconnect does not leave the job
    half-written.
    """
    result = await asyncio.shield(use_case.execute(request.to_command()))
    return JSONResponse(status_code=result.http_status, content=result.to_response())


@router.post("/send-audio-message", response_model=SendAudioMessageResponse)
async def send_audio_message(
    request: SendAudioMessageRequest,
    use_case: SendAudioMessageUseCase = Depends(get_send_audio_message_use_case)
) -> JSONResponse:
    """
    Send the newest completed audio for the email to the CRM contact.
    """
    try:
        delivery = await use_case.execute(request.contact_id, request.email)
    except PipelineError as e:
        body = SendAudioMessageResponse(
            success=False,
            error=e.message,
            error_code=e.error_code,
            attempts=e.details.get("attempts", [])
        )
        return JSONResponse(status_code=e.http_status, content=body.model_dump(exclude_none=True))

    body = SendAudioMessageResponse(
        success=True,
        message_id=delivery.message_id,
        method=delivery.method,
        attachment_url=delivery.attachment_url,
        attempts=delivery.attempts
    )
    return JSONResponse(status_code=200, content=body.model_dump(exclude_none=True))
