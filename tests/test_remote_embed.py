import json

import httpx
import numpy as np
import pytest

from mealsearch.errors import ConfigurationMissing, TransportFailure
from mealsearch.remote_embed import RemoteEmbedder


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_embed_posts_expected_payload_and_normalizes():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [{"embedding": [3.0, 4.0, 0.0]}]})

    emb = RemoteEmbedder("sk-test", model="text-embedding-3-large", dim=3, client=_client(handler))
    vec = emb.embed("chicken soup")

    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"] == {
        "input": "chicken soup",
        "model": "text-embedding-3-large",
        "encoding_format": "float",
    }
    assert vec.dtype == np.float32
    assert vec.tolist() == pytest.approx([0.6, 0.8, 0.0], abs=1e-6)


def test_missing_key_is_configuration_missing():
    def handler(request):  # pragma: no cover - must not be called
        raise AssertionError("no request expected without a key")

    emb = RemoteEmbedder(None, client=_client(handler))
    with pytest.raises(ConfigurationMissing):
        emb.embed("soup")


def test_http_error_status_is_transport_failure():
    emb = RemoteEmbedder(
        "sk-test", dim=None, client=_client(lambda r: httpx.Response(401, json={"error": "bad key"}))
    )
    with pytest.raises(TransportFailure) as exc:
        emb.embed("soup")
    assert exc.value.status_code == 401


def test_timeout_is_transport_failure():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    emb = RemoteEmbedder("sk-test", dim=None, client=_client(handler))
    with pytest.raises(TransportFailure):
        emb.embed("soup")


def test_malformed_body_is_transport_failure():
    emb = RemoteEmbedder(
        "sk-test", dim=None, client=_client(lambda r: httpx.Response(200, json={"data": []}))
    )
    with pytest.raises(TransportFailure):
        emb.embed("soup")


def test_configuration_missing_and_transport_failure_are_distinct():
    assert not issubclass(ConfigurationMissing, TransportFailure)
    assert not issubclass(TransportFailure, ConfigurationMissing)
