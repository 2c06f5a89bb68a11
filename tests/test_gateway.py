"""
Test: Groq and Gemini gateways and provider selection. Zero network calls.
"""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests

import config
from config import GraderSettings
from services import gemini_ai
from services.gateway import build_gateway
from services.gemini_ai import GeminiClient
from services.groq_api import GroqChatClient
from utils.error_handler import ConfigError, GatewayError


def http_response(status_code=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


def groq_client(response=None, error=None):
    session = MagicMock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = response
    return GroqChatClient("secret", model_name="llama-test", timeout=30, session=session), session


class TestGroqChatClient:
    def test_request_payload(self):
        payload = {"choices": [{"message": {"content": '{"results": []}'}}]}
        client, session = groq_client(http_response(payload=payload))

        assert client.invoke("grade this") == '{"results": []}'
        url = session.post.call_args.args[0]
        kwargs = session.post.call_args.kwargs
        assert url == config.GROQ_API_URL
        assert kwargs["headers"] == {"Authorization": "Bearer secret"}
        assert kwargs["timeout"] == 30
        assert kwargs["json"] == {
            "model": "llama-test",
            "messages": [
                {"role": "system", "content": "You are a strict exam grader. Always return valid JSON only."},
                {"role": "user", "content": "grade this"},
            ],
            "temperature": 0.1,
            "max_tokens": 2048,
            "response_format": {"type": "json_object"},
        }

    def test_non_200_carries_status_and_body(self):
        client, _ = groq_client(http_response(status_code=429, text="rate limited"))
        with pytest.raises(GatewayError) as excinfo:
            client.invoke("p")
        assert excinfo.value.status_code == 429
        assert excinfo.value.body == "rate limited"

    @pytest.mark.parametrize("payload", [
        {"choices": []},
        {"error": "nope"},
        {"choices": [{"message": {"content": ""}}]},
        ValueError("not json"),
    ])
    def test_unexpected_shape(self, payload):
        client, _ = groq_client(http_response(payload=payload, text="body"))
        with pytest.raises(GatewayError) as excinfo:
            client.invoke("p")
        assert excinfo.value.status_code == 200

    def test_transport_error(self):
        client, _ = groq_client(error=requests.ConnectionError("connection reset"))
        with pytest.raises(GatewayError) as excinfo:
            client.invoke("p")
        assert excinfo.value.status_code is None

    def test_missing_key(self):
        with pytest.raises(ConfigError):
            GroqChatClient("")


@pytest.fixture
def fake_genai(monkeypatch):
    fake = MagicMock()
    monkeypatch.setattr(gemini_ai, "genai", fake)
    return fake


def gemini_response(text="", finish_reason=1, candidates=True):
    parts = [SimpleNamespace(text=text)] if text else []
    candidate = SimpleNamespace(finish_reason=finish_reason, safety_ratings=[],
                                content=SimpleNamespace(parts=parts))
    return SimpleNamespace(candidates=[candidate] if candidates else [], prompt_feedback="blocked")


class TestGeminiClient:
    def test_invoke_returns_text(self, fake_genai):
        fake_genai.GenerativeModel.return_value.generate_content.return_value = gemini_response('{"results": []}')
        client = GeminiClient("key", model_name="gemini-test")

        assert client.invoke("p") == '{"results": []}'
        fake_genai.configure.assert_called_once_with(api_key="key")
        assert fake_genai.GenerativeModel.call_args.args[0] == "gemini-test"

    def test_no_candidates(self, fake_genai):
        fake_genai.GenerativeModel.return_value.generate_content.return_value = gemini_response(candidates=False)
        with pytest.raises(GatewayError):
            GeminiClient("key").invoke("p")

    def test_safety_block(self, fake_genai):
        blocked = gemini_response("partial", finish_reason=fake_genai.types.FinishReason.SAFETY)
        fake_genai.GenerativeModel.return_value.generate_content.return_value = blocked
        with pytest.raises(GatewayError):
            GeminiClient("key").invoke("p")

    def test_empty_text(self, fake_genai):
        fake_genai.GenerativeModel.return_value.generate_content.return_value = gemini_response("")
        with pytest.raises(GatewayError):
            GeminiClient("key").invoke("p")

    def test_missing_key(self, fake_genai):
        with pytest.raises(ConfigError):
            GeminiClient(None)

    def test_configure_failure(self, fake_genai):
        fake_genai.configure.side_effect = RuntimeError("bad key")
        with pytest.raises(ConfigError):
            GeminiClient("key")


class TestBuildGateway:
    def test_groq_default_model(self):
        gateway = build_gateway(GraderSettings(master_spreadsheet_id="m", groq_api_key="k"))
        assert isinstance(gateway, GroqChatClient)
        assert gateway.model_name == config.DEFAULT_GROQ_MODEL

    def test_exam_model_override(self):
        settings = GraderSettings(master_spreadsheet_id="m", groq_api_key="k", request_timeout=15)
        gateway = build_gateway(settings, model=" llama-3.1-8b-instant ")
        assert gateway.model_name == "llama-3.1-8b-instant"
        assert gateway.timeout == 15

    def test_blank_override_uses_default(self):
        gateway = build_gateway(GraderSettings(master_spreadsheet_id="m", groq_api_key="k"), model="  ")
        assert gateway.model_name == config.DEFAULT_GROQ_MODEL

    def test_gemini(self, fake_genai):
        settings = GraderSettings(master_spreadsheet_id="m", model_provider="gemini", gemini_api_key="g")
        gateway = build_gateway(settings)
        assert isinstance(gateway, GeminiClient)
        assert gateway.model_name == config.DEFAULT_GEMINI_MODEL

    def test_unknown_provider(self):
        with pytest.raises(ConfigError):
            build_gateway(GraderSettings(master_spreadsheet_id="m", model_provider="hf", groq_api_key="k"))
