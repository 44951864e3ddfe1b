from chatdelta.provider import ChatRequest, OpenAICompatibleProvider


# ---------------------------------------------------------------------------
# ChatRequest payload shaping
# ---------------------------------------------------------------------------

class TestChatRequest:
    def test_stream_payload_sets_streaming_and_usage(self):
        req = ChatRequest(
            model="gpt-4o", messages=[{"role": "user", "content": "hi"}],
        )
        payload = req.to_stream_payload()

        assert payload == {
            "model": "gpt-4o",
            "messages": [{"role": "user", "content": "hi"}],
            "stream": True,
            "stream_options": {"include_usage": True},
        }

    def test_optional_fields_forwarded_when_set(self):
        tools = [{"type": "function", "function": {"name": "f"}}]
        req = ChatRequest(
            model="m", messages=[], tools=tools,
            tool_choice="auto", temperature=0.2,
        )
        payload = req.to_stream_payload()

        assert payload["tools"] == tools
        assert payload["tool_choice"] == "auto"
        assert payload["temperature"] == 0.2

    def test_tool_choice_accepts_object(self):
        choice = {"type": "function", "function": {"name": "f"}}
        req = ChatRequest(model="m", messages=[], tool_choice=choice)
        assert req.to_stream_payload()["tool_choice"] == choice


# ---------------------------------------------------------------------------
# Provider configuration
# ---------------------------------------------------------------------------

class TestProviderConfig:
    def test_reads_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        p = OpenAICompatibleProvider(base_url="http://localhost:8000/v1")
        assert p.client.api_key == "sk-from-env"

    def test_defaults_api_key_to_dummy(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        p = OpenAICompatibleProvider(base_url="http://localhost:8000/v1")
        assert p.client.api_key == "DUMMY"

    def test_explicit_api_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        p = OpenAICompatibleProvider(
            base_url="http://localhost:8000/v1", api_key="real-key",
        )
        assert p.client.api_key == "real-key"

    def test_reads_base_url_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:11434/v1")
        p = OpenAICompatibleProvider(api_key="k")
        assert str(p.client.base_url).rstrip("/") == "http://localhost:11434/v1"

    def test_no_retries_by_default(self):
        p = OpenAICompatibleProvider(base_url="http://localhost/v1", api_key="k")
        assert p.client.max_retries == 0

    def test_uses_given_client(self):
        sentinel = object()
        p = OpenAICompatibleProvider(client=sentinel)
        assert p.client is sentinel
