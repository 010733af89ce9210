"""Tests for the WatsonX.ai client, options and models."""

import json

import httpx
import pytest

from model_autoconfig import CohereChatOptions, ConnectionSettings, MissingConfigurationError
from model_autoconfig.watsonx import (
    WatsonxAiApi,
    WatsonxAiChatModel,
    WatsonxAiChatOptions,
    WatsonxAiEmbeddingModel,
    WatsonxAiEmbeddingOptions,
)


def mock_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_missing_token_names_the_field():
    connection = ConnectionSettings(project_id="proj", iam_token=None)
    with pytest.raises(MissingConfigurationError) as excinfo:
        WatsonxAiApi(connection)
    assert excinfo.value.field == "iam_token"
    assert "token" in str(excinfo.value)


def test_missing_project_id_names_the_field():
    connection = ConnectionSettings(project_id="", iam_token="tok")
    with pytest.raises(MissingConfigurationError, match="project_id"):
        WatsonxAiApi(connection)


def test_chat_call_sends_merged_parameters(connection):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"results": [{"generated_text": "Hi there"}]})

    api = WatsonxAiApi(connection, http_client=mock_client(handler))
    defaults = (
        WatsonxAiChatOptions.builder()
        .model("google/flan-ul2")
        .temperature(0.7)
        .max_new_tokens(20)
        .build()
    )
    model = WatsonxAiChatModel(api, defaults)

    text = model.call("Hello", WatsonxAiChatOptions.builder().temperature(0.1).build())

    assert text == "Hi there"
    assert seen["url"] == (
        "https://wx.example.com/ml/v1/text/generation?version=2023-05-29"
    )
    assert seen["auth"] == "Bearer secret-token"
    assert seen["body"] == {
        "input": "Hello",
        "model_id": "google/flan-ul2",
        "parameters": {"temperature": 0.1, "max_new_tokens": 20},
        "project_id": "proj-123",
    }
    assert model.default_options.temperature == 0.7


def test_chat_call_without_model_is_rejected(connection):
    api = WatsonxAiApi(connection, http_client=mock_client(lambda r: httpx.Response(500)))
    model = WatsonxAiChatModel(api, WatsonxAiChatOptions.builder().build())
    with pytest.raises(ValueError, match="model"):
        model.call("Hello")


def test_http_errors_propagate(connection):
    api = WatsonxAiApi(connection, http_client=mock_client(lambda r: httpx.Response(401)))
    model = WatsonxAiChatModel(api, WatsonxAiChatOptions.builder().model("m").build())
    with pytest.raises(httpx.HTTPStatusError):
        model.call("Hello")


def test_resolve_options_accepts_other_provider_options(connection):
    api = WatsonxAiApi(connection)
    defaults = WatsonxAiChatOptions.builder().model("m").max_new_tokens(20).build()
    model = WatsonxAiChatModel(api, defaults)

    resolved = model.resolve_options(CohereChatOptions.builder().max_tokens(64).build())

    assert resolved.max_new_tokens == 64
    assert resolved.max_tokens == 64
    assert model.default_options is defaults


def test_embed_returns_vectors_in_order(connection):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200, json={"results": [{"embedding": [0.1, 0.2]}, {"embedding": [0.3, 0.4]}]}
        )

    api = WatsonxAiApi(connection, http_client=mock_client(handler))
    model = WatsonxAiEmbeddingModel(
        api, WatsonxAiEmbeddingOptions.builder().model("ibm/slate").build()
    )

    vectors = model.embed(["a", "b"])

    assert vectors == [[0.1, 0.2], [0.3, 0.4]]
    assert seen["url"].endswith("ml/v1/text/embeddings?version=2023-05-29")
    assert seen["body"] == {
        "inputs": ["a", "b"],
        "model_id": "ibm/slate",
        "project_id": "proj-123",
    }


def test_embed_empty_input_makes_no_request(connection):
    def handler(request):  # pragma: no cover
        raise AssertionError("no request expected")

    api = WatsonxAiApi(connection, http_client=mock_client(handler))
    model = WatsonxAiEmbeddingModel(api, WatsonxAiEmbeddingOptions())
    assert model.embed([]) == []


def test_embed_rejects_unexpected_shape(connection):
    api = WatsonxAiApi(
        connection, http_client=mock_client(lambda r: httpx.Response(200, json={}))
    )
    model = WatsonxAiEmbeddingModel(api, WatsonxAiEmbeddingOptions(model="m"))
    with pytest.raises(ValueError):
        model.embed(["a"])


def test_chat_options_mapping_routes_unknown_keys_to_additional():
    options = WatsonxAiChatOptions.from_mapping(
        {"model": "granite", "max_tokens": 100, "length_penalty": {"decay_factor": 2}}
    ).build()

    assert options.max_new_tokens == 100
    assert options.additional == {"length_penalty": {"decay_factor": 2}}
    assert options.to_dict() == {
        "model": "granite",
        "max_new_tokens": 100,
        "length_penalty": {"decay_factor": 2},
    }


def test_additional_properties_are_read_only():
    options = WatsonxAiChatOptions.builder().additional_property("x", 1).build()
    with pytest.raises(TypeError):
        options.additional["x"] = 2


@pytest.mark.parametrize(
    "base_url", ["https://gw.example.com/watsonx", "https://gw.example.com/watsonx/"]
)
def test_endpoints_are_appended_to_base_path(base_url):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"results": [{"generated_text": "ok"}]})

    connection = ConnectionSettings(base_url=base_url, project_id="p", iam_token="t")
    api = WatsonxAiApi(connection, http_client=mock_client(handler))
    WatsonxAiChatModel(api, WatsonxAiChatOptions(model="m")).call("Hello")

    assert seen["url"] == (
        "https://gw.example.com/watsonx/ml/v1/text/generation?version=2023-05-29"
    )


def test_leading_slash_endpoint_keeps_base_path():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"results": []})

    connection = ConnectionSettings(
        base_url="https://gw.example.com/watsonx",
        embedding_endpoint="/ml/v1/text/embeddings?version=2023-05-29",
        project_id="p",
        iam_token="t",
    )
    api = WatsonxAiApi(connection, http_client=mock_client(handler))
    WatsonxAiEmbeddingModel(api, WatsonxAiEmbeddingOptions(model="m")).embed(["a"])

    assert seen["url"].startswith("https://gw.example.com/watsonx/ml/v1/text/embeddings")
