"""
HTTP description service adapter against a mocked transport.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from backend_activitylog.core.exceptions import DescriptionResolutionFailed, ScriptDecodeFailed
from backend_activitylog.describer.client import HttpDescriptionService
from backend_activitylog.describer.models import Description, ScriptStep

BASE_URL = "http://describer.test/"
APP = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def _service(handler) -> tuple[HttpDescriptionService, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def recorder(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return HttpDescriptionService(BASE_URL, client=client), seen


def test_describe_transaction_posts_call():
    tokens = [{"type": "text", "value": "Vote yes on "}, {"type": "address", "value": APP}]

    def handler(request):
        return httpx.Response(200, json={"description": "Vote yes on vote #1", "annotatedDescription": tokens})

    service, seen = _service(handler)
    result = asyncio.run(service.describe_transaction(APP, "0xdf133bca"))

    assert result == Description(description="Vote yes on vote #1", annotated_description=tokens)
    assert str(seen[0].url) == "http://describer.test/describe/transaction"
    assert json.loads(seen[0].content) == {"to": APP, "data": "0xdf133bca"}


def test_describe_transaction_http_error_is_resolution_failure():
    service, _ = _service(lambda request: httpx.Response(500, text="radspec crashed"))

    with pytest.raises(DescriptionResolutionFailed) as excinfo:
        asyncio.run(service.describe_transaction(APP, "0x"))
    assert excinfo.value.address == APP
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)


def test_describe_transaction_non_object_is_resolution_failure():
    service, _ = _service(lambda request: httpx.Response(200, json=["nope"]))

    with pytest.raises(DescriptionResolutionFailed):
        asyncio.run(service.describe_transaction(APP, "0x"))


def test_describe_script_accepts_list_and_wrapped_steps():
    steps = [
        {"to": APP.lower(), "description": "Pay 1 ETH", "annotatedDescription": None},
        {"to": APP, "description": "Transfer"},
    ]
    responses = iter([steps, {"steps": steps}])
    service, seen = _service(lambda request: httpx.Response(200, json=next(responses)))

    plain = asyncio.run(service.describe_script("0x00000001"))
    wrapped = asyncio.run(service.describe_script("0x00000001"))

    assert plain == wrapped
    assert plain == [
        ScriptStep(to=APP, description="Pay 1 ETH", annotated_description=None),
        ScriptStep(to=APP, description="Transfer", annotated_description=None),
    ]
    assert json.loads(seen[0].content) == {"script": "0x00000001"}
    assert seen[0].url.path == "/describe/script"


def test_describe_script_malformed_step_is_decode_failure():
    service, _ = _service(lambda request: httpx.Response(200, json=[{"description": "no target"}]))

    with pytest.raises(ScriptDecodeFailed):
        asyncio.run(service.describe_script("0x00000001"))


def test_describe_script_transport_error_is_decode_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    service, _ = _service(handler)

    with pytest.raises(ScriptDecodeFailed, match="connection refused"):
        asyncio.run(service.describe_script("0x00000001"))


def test_requires_base_url():
    with pytest.raises(ValueError):
        HttpDescriptionService("")
