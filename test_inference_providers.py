"""Tests for the inference providers and the async inference client."""

import io

import httpx
import pytest
import requests
from PIL import Image

from core.interfaces.inference import InferenceError, InferenceResult, InferenceUnavailable
from modules.inference.client import InferenceClient
from modules.inference.providers.gradio_provider import GradioInferenceProvider
from modules.inference.providers.http_provider import HttpInferenceProvider


def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), "red").save(buffer, "PNG")
    return buffer.getvalue()


def response(mocker, status=200, body=None):
    resp = mocker.Mock(spec=requests.Response)
    resp.status_code = status
    resp.ok = status < 400
    resp.reason = "Service Unavailable" if status == 503 else "OK"
    resp.text = ""
    resp.json.return_value = body or {}
    return resp


@pytest.fixture
def http_provider():
    provider = HttpInferenceProvider()
    assert provider.initialize({"endpoint": "http://proxy.local:3001/", "timeout_seconds": 5})
    return provider


def test_http_run_inference(http_provider, mocker):
    post = mocker.patch.object(
        http_provider._session, "post",
        return_value=response(mocker, body={"resultImage": "http://proxy/out.png", "analysisParams": "## 2 cars"}),
    )

    result = http_provider.run_inference(b"jpeg", "Vehicle Detector", 0.4, 0.5)

    assert result == InferenceResult(processed_ref="http://proxy/out.png", analysis_text="## 2 cars")
    url = post.call_args.args[0]
    assert url == "http://proxy.local:3001/api/gradio/process-image"
    assert post.call_args.kwargs["data"]["modelName"] == "Vehicle Detector"
    assert post.call_args.kwargs["timeout"] == 5.0


def test_http_503_is_unavailable(http_provider, mocker):
    mocker.patch.object(
        http_provider._session, "post",
        return_value=response(mocker, status=503, body={"error": "Gradio connection failed"}),
    )

    with pytest.raises(InferenceUnavailable):
        http_provider.run_inference(b"jpeg", "m", 0.4, 0.5)


def test_http_connection_error_is_unavailable(http_provider, mocker):
    mocker.patch.object(http_provider._session, "post", side_effect=requests.ConnectionError("refused"))

    with pytest.raises(InferenceUnavailable):
        http_provider.run_inference(b"jpeg", "m", 0.4, 0.5)


def test_http_server_error_is_inference_error(http_provider, mocker):
    mocker.patch.object(
        http_provider._session, "post",
        return_value=response(mocker, status=500, body={"details": "model crashed"}),
    )

    with pytest.raises(InferenceError, match="model crashed"):
        http_provider.run_inference(b"jpeg", "m", 0.4, 0.5)


def test_http_model_info(http_provider, mocker):
    mocker.patch.object(
        http_provider._session, "post",
        return_value=response(mocker, body={"data": ["Detects people and vehicles"]}),
    )

    info = http_provider.model_info("Generic Detection Model")

    assert info["description"] == "Detects people and vehicles"


def test_http_requires_endpoint():
    assert HttpInferenceProvider().initialize({}) is False


@pytest.fixture
def gradio_client(mocker):
    client = mocker.Mock()
    mocker.patch("modules.inference.providers.gradio_provider.Client", return_value=client)
    return client


@pytest.fixture
def gradio_provider(gradio_client):
    provider = GradioInferenceProvider()
    assert provider.initialize({"endpoint": "https://vision.example.com/"})
    return provider


def test_gradio_run_inference(gradio_provider, gradio_client):
    gradio_client.predict.return_value = ({"url": "https://vision.example.com/file/out.png"}, "## 1 person")

    result = gradio_provider.run_inference(png_bytes(), "Generic Detection Model", 0.4, 0.5)

    assert result.processed_ref == "https://vision.example.com/file/out.png"
    assert result.analysis_text == "## 1 person"
    kwargs = gradio_client.predict.call_args.kwargs
    assert kwargs["api_name"] == "/process_image"
    assert kwargs["model_name"] == "Generic Detection Model"


def test_gradio_connection_failure_is_unavailable(mocker):
    mocker.patch(
        "modules.inference.providers.gradio_provider.Client",
        side_effect=ConnectionError("name resolution failed"),
    )
    provider = GradioInferenceProvider()
    provider.initialize({"endpoint": "https://vision.example.com/"})

    with pytest.raises(InferenceUnavailable):
        provider.run_inference(png_bytes(), "m", 0.4, 0.5)


def test_gradio_rejects_undecodable_images(gradio_provider):
    with pytest.raises(InferenceError):
        gradio_provider.run_inference(b"not an image", "m", 0.4, 0.5)


def test_gradio_prediction_failure(gradio_provider, gradio_client):
    gradio_client.predict.side_effect = ValueError("queue full")

    with pytest.raises(InferenceError, match="queue full"):
        gradio_provider.run_inference(png_bytes(), "m", 0.4, 0.5)


@pytest.mark.parametrize("error", [
    httpx.ConnectError("Connection refused"),
    httpx.ReadTimeout("timed out"),
    ConnectionResetError("reset by peer"),
])
def test_gradio_dropped_connection_is_unavailable(gradio_provider, gradio_client, error):
    gradio_client.predict.side_effect = error

    with pytest.raises(InferenceUnavailable):
        gradio_provider.run_inference(png_bytes(), "m", 0.4, 0.5)
    assert gradio_provider._client is None


def test_gradio_model_info_dropped_connection_is_unavailable(gradio_provider, gradio_client):
    gradio_client.predict.side_effect = httpx.ConnectError("Connection refused")

    with pytest.raises(InferenceUnavailable):
        gradio_provider.model_info("Generic Detection Model")


@pytest.mark.asyncio
async def test_client_wraps_unexpected_errors(mocker):
    provider = mocker.Mock()
    provider.run_inference.side_effect = KeyError("resultImage")
    client = InferenceClient(provider)

    with pytest.raises(InferenceError):
        await client.run_inference(b"jpeg", "m", 0.4, 0.5)


@pytest.mark.asyncio
async def test_client_keeps_unavailable(mocker):
    provider = mocker.Mock()
    provider.run_inference.side_effect = InferenceUnavailable("down")
    client = InferenceClient(provider)

    with pytest.raises(InferenceUnavailable):
        await client.run_inference(b"jpeg", "m", 0.4, 0.5)
