import asyncio
import json

import httpx
import pytest

from client.wordcoach.audio.types import AudioClip
from client.wordcoach.errors import (
    ConfigurationError,
    QuotaExceededError,
    SchemaError,
    TransientServiceError,
)
from client.wordcoach.services.evaluation import EvaluationClient
from client.wordcoach.store.settings_store import AppSettings

GOOD = {"score": 85, "phoneticMatch": "/test/", "feedback": "Good job", "isCorrect": True}
CLIP = AudioClip(b"fLaC-fake-bytes", "audio/flac")


def _chat(content) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


class FakeRemote:
    """Routes transcription and judgment calls; failures are scripted per stage."""

    def __init__(self, *, transcript="test", judgment=None, stt_failures=(), judge_failures=()) -> None:
        self.transcript = transcript
        self.judgment = judgment if judgment is not None else json.dumps(GOOD)
        self.stt_failures = list(stt_failures)
        self.judge_failures = list(judge_failures)
        self.calls = []
        self.judge_bodies = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer test-key"
        if request.url.path.endswith("/audio/transcriptions"):
            self.calls.append("transcribe")
            assert b'name="model"' in request.content
            assert b"whisper-1" in request.content
            assert b'filename="audio.flac"' in request.content
            if self.stt_failures:
                return self.stt_failures.pop(0)
            return httpx.Response(200, json={"text": self.transcript})
        if request.url.path.endswith("/chat/completions"):
            self.calls.append("judge")
            self.judge_bodies.append(json.loads(request.content))
            if self.judge_failures:
                return self.judge_failures.pop(0)
            return _chat(self.judgment)
        raise AssertionError(f"Unexpected request {request.url}")


class SleepRecorder:
    def __init__(self) -> None:
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _client(remote, sleep=None, api_key="test-key") -> EvaluationClient:
    return EvaluationClient(
        api_key,
        base_url="https://llm.example.com/v1",
        client=httpx.AsyncClient(transport=httpx.MockTransport(remote)),
        sleep=sleep or SleepRecorder(),
    )


def _evaluate(client, clip=CLIP, word="test"):
    return asyncio.run(client.evaluate(clip, word))


def test_well_formed_judgment_is_returned_unchanged():
    remote = FakeRemote()
    result = _evaluate(_client(remote))
    assert result.to_payload() == GOOD
    assert result.score == 85
    assert result.phonetic_match == "/test/"
    assert result.is_correct is True
    assert remote.calls == ["transcribe", "judge"]


def test_judgment_prompt_carries_word_and_transcript():
    remote = FakeRemote(transcript="  tesst ")
    _evaluate(_client(remote), word="thorough")
    body = remote.judge_bodies[0]
    assert body["response_format"] == {"type": "json_object"}
    assert body["model"] == "gpt-4o-mini"
    prompt = body["messages"][-1]["content"]
    assert '"thorough"' in prompt
    assert '"tesst"' in prompt


def test_empty_clip_is_scored_with_empty_transcript():
    low = {"score": 0, "phoneticMatch": "", "feedback": "Nothing was heard.", "isCorrect": False}
    remote = FakeRemote(judgment=json.dumps(low))
    result = _evaluate(_client(remote), clip=AudioClip(b"", "audio/flac"))
    assert result.score == 0
    assert remote.calls == ["judge"]
    assert 'said: ""' in remote.judge_bodies[0]["messages"][-1]["content"]


def test_transient_failures_retry_whole_sequence():
    sleep = SleepRecorder()
    remote = FakeRemote(judge_failures=[httpx.Response(503), httpx.Response(502), httpx.Response(429)])
    result = _evaluate(_client(remote, sleep))
    assert result.score == 85
    assert remote.calls.count("transcribe") == 4
    assert remote.calls.count("judge") == 4
    assert remote.calls[:2] == ["transcribe", "judge"]
    assert sleep.delays == [1.0, 2.0, 4.0]


def test_transcription_failure_skips_judgment_and_retries():
    sleep = SleepRecorder()
    remote = FakeRemote(stt_failures=[httpx.Response(500)])
    result = _evaluate(_client(remote, sleep))
    assert result.score == 85
    assert remote.calls == ["transcribe", "transcribe", "judge"]
    assert sleep.delays == [1.0]


def test_exhausted_retries_surface_busy_error():
    sleep = SleepRecorder()
    remote = FakeRemote(stt_failures=[httpx.Response(503) for _ in range(10)])
    with pytest.raises(TransientServiceError) as info:
        _evaluate(_client(remote, sleep))
    assert remote.calls == ["transcribe"] * 4
    assert sleep.delays == [1.0, 2.0, 4.0]
    assert "busy" in info.value.message


def test_network_errors_are_transient():
    sleep = SleepRecorder()
    attempts = []

    def handler(request):
        attempts.append(request.url.path)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection reset", request=request)
        if request.url.path.endswith("/audio/transcriptions"):
            return httpx.Response(200, json={"text": "test"})
        return _chat(json.dumps(GOOD))

    client = EvaluationClient(
        "test-key",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        sleep=sleep,
    )
    result = asyncio.run(client.evaluate(CLIP, "test"))
    assert result.score == 85
    assert sleep.delays == [1.0]


def test_invalid_credentials_fail_immediately():
    sleep = SleepRecorder()
    error = httpx.Response(
        401,
        json={"error": {"message": "Incorrect API key provided", "type": "invalid_request_error", "code": "invalid_api_key"}},
    )
    remote = FakeRemote(stt_failures=[error])
    with pytest.raises(ConfigurationError):
        _evaluate(_client(remote, sleep))
    assert remote.calls == ["transcribe"]
    assert sleep.delays == []


def test_missing_api_key_makes_no_request():
    remote = FakeRemote()
    with pytest.raises(ConfigurationError) as info:
        _evaluate(_client(remote, api_key=""))
    assert remote.calls == []
    assert "not configured" in info.value.message


def test_quota_exhaustion_is_not_retried():
    sleep = SleepRecorder()
    quota = httpx.Response(
        429,
        json={"error": {"message": "You exceeded your current quota.", "type": "insufficient_quota"}},
    )
    remote = FakeRemote(judge_failures=[quota])
    with pytest.raises(QuotaExceededError):
        _evaluate(_client(remote, sleep))
    assert remote.calls == ["transcribe", "judge"]
    assert sleep.delays == []


def test_judgment_missing_score_is_schema_error():
    sleep = SleepRecorder()
    partial = {k: v for k, v in GOOD.items() if k != "score"}
    remote = FakeRemote(judgment=json.dumps(partial))
    with pytest.raises(SchemaError):
        _evaluate(_client(remote, sleep))
    assert remote.calls == ["transcribe", "judge"]
    assert sleep.delays == []


@pytest.mark.parametrize(
    "content",
    [
        "not json at all",
        json.dumps({**GOOD, "score": 140}),
        json.dumps({**GOOD, "score": "85"}),
        json.dumps({**GOOD, "isCorrect": "yes"}),
        json.dumps({**GOOD, "extra": 1}),
        "",
    ],
)
def test_malformed_judgments_are_schema_errors(content):
    with pytest.raises(SchemaError):
        _evaluate(_client(FakeRemote(judgment=content)))


def test_judgment_without_choices_is_schema_error():
    def handler(request):
        if request.url.path.endswith("/audio/transcriptions"):
            return httpx.Response(200, json={"text": "test"})
        return httpx.Response(200, json={"choices": []})

    client = EvaluationClient("test-key", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(SchemaError):
        asyncio.run(client.evaluate(CLIP, "test"))


def test_from_settings_uses_backoff_and_models(monkeypatch):
    monkeypatch.delenv("WORDCOACH_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "env-key")
    settings = AppSettings(judge_model="small-judge", initial_backoff_ms=250, max_retries=1)
    client = EvaluationClient.from_settings(settings)
    assert client.api_key == "env-key"
    assert client.judge_model == "small-judge"
    assert client.initial_delay == 0.25
    assert client.max_retries == 1
    asyncio.run(client.close())


def test_corrupt_response_encoding_is_transient():
    sleep = SleepRecorder()

    def handler(request):
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not-gzip")

    client = EvaluationClient(
        "test-key",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        sleep=sleep,
    )
    with pytest.raises(TransientServiceError) as info:
        asyncio.run(client.evaluate(CLIP, "test"))
    assert "DecodingError" in info.value.detail
    assert sleep.delays == [1.0, 2.0, 4.0]


def test_redirect_loop_is_transient():
    def handler(request):
        return httpx.Response(302, headers={"Location": str(request.url)})

    client = EvaluationClient(
        "test-key",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True),
        sleep=SleepRecorder(),
        max_retries=0,
    )
    with pytest.raises(TransientServiceError) as info:
        asyncio.run(client.evaluate(CLIP, "test"))
    assert "TooManyRedirects" in info.value.detail
