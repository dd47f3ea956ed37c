import json

import httpx
import pytest

from voice_agent.core.dispatcher import FunctionCallResult
from voice_agent.core.webhook_sink import SessionWebhookSink


def recording_transport(requests, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json={"ok": status_code < 400})
    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_attached_sink_posts_lifecycle_events(manager, adapter):
    requests = []
    sink = SessionWebhookSink("https://hooks.test/session", transport=recording_transport(requests))
    sink.attach(manager)

    await manager.start_call("sdr")
    adapter.simulate("call-start")
    adapter.simulate("call-end")
    await manager._events.drain()

    types = [json.loads(r.content)["message"]["type"] for r in requests]
    assert types == ["call.started", "call.ended"]
    body = json.loads(requests[0].content)
    assert body["message"]["context"] == {"id": "sdr"}
    assert str(requests[0].url) == "https://hooks.test/session"


@pytest.mark.asyncio
async def test_function_call_payload():
    requests = []
    sink = SessionWebhookSink("https://hooks.test/session", transport=recording_transport(requests))
    await sink.emit_function_called(FunctionCallResult(name="qualify_lead", parameters={"score": 8}, result={"qualified": True}))

    message = json.loads(requests[0].content)["message"]
    assert message["type"] == "function.called"
    assert message["functionCall"] == {"name": "qualify_lead", "parameters": {"score": 8}, "result": {"qualified": True}}


@pytest.mark.asyncio
async def test_http_errors_are_not_raised():
    requests = []
    sink = SessionWebhookSink("https://hooks.test/session", transport=recording_transport(requests, 500))
    await sink.emit_call_error(RuntimeError("boom"))
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_disabled_without_url():
    sink = SessionWebhookSink()
    assert sink.enabled is False
    # No URL configured, nothing is sent
    await sink.emit_call_started()
