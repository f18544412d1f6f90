"""
Unit tests for the non-blocking webhook notifier.
"""
from unittest.mock import Mock

import pytest
import requests

from survey_audio.adapters.services.webhook_notifier import NullNotifier, WebhookNotifier
from survey_audio.core.ports.notifier import PipelineEvent
from tests.utils.mock_helpers import MockHelpers


@pytest.fixture
def session() -> Mock:
    session = Mock()
    session.post.return_value = MockHelpers.create_mock_response(status_code=204)
    return session


@pytest.fixture
def notifier(session) -> WebhookNotifier:
    settings = MockHelpers.create_test_settings(
        notification_webhook_url="https://hooks.test/audio",
        notification_backoff_seconds=0,
        notification_max_attempts=3
    )
    return WebhookNotifier(settings, session=session)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_notify_returns_immediately_and_delivers_on_drain(notifier, session):
    notifier.notify(PipelineEvent.AUDIO_COMPLETED, {"survey_response_id": "survey-1"})
    assert notifier.pending_count == 1

    await notifier.drain(timeout=2)

    args, kwargs = session.post.call_args
    assert args[0] == "https://hooks.test/audio"
    assert kwargs["json"]["event"] == "audio_completed"
    assert kwargs["json"]["payload"] == {"survey_response_id": "survey-1"}
    assert "occurred_at" in kwargs["json"]
    assert notifier.pending_count == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_delivery_is_retried(notifier, session):
    session.post.side_effect = [
        requests.ConnectionError("refused"),
        MockHelpers.create_mock_response(status_code=502),
        MockHelpers.create_mock_response(status_code=200),
    ]

    notifier.notify(PipelineEvent.AUDIO_FAILED, {"error": "boom"})
    await notifier.drain(timeout=2)

    assert session.post.call_count == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delivery_gives_up_without_raising(notifier, session):
    session.post.return_value = MockHelpers.create_mock_response(status_code=500)

    notifier.notify(PipelineEvent.CRM_SYNC_FAILED, {"error": "boom"})
    await notifier.drain(timeout=2)

    assert session.post.call_count == 3


@pytest.mark.unit
def test_notify_without_event_loop_is_dropped(notifier, session):
    notifier.notify(PipelineEvent.AUDIO_COMPLETED, {})
    assert notifier.pending_count == 0
    session.post.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_null_notifier():
    null = NullNotifier()
    null.notify(PipelineEvent.AUDIO_COMPLETED, {"survey_response_id": "survey-1"})
    await null.drain(timeout=1)
