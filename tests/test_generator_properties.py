"""
Property-based tests for the chat-completion candidate source.

The endpoint is served by ``httpx.MockTransport``.
"""

import asyncio
import json

import httpx
from hypothesis import given, settings
from hypothesis import strategies as st

from domain_suggester.config import GeneratorConfig
from domain_suggester.domain_utils import round_policy
from domain_suggester.enums import UpstreamErrorCode
from domain_suggester.exceptions import ConfigurationUpstreamError, TransientUpstreamError
from domain_suggester.generator import CandidateSource, ChatCompletionSource, build_messages


def completion(content: str, total_tokens: int = 150) -> dict:
    return {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"total_tokens": total_tokens},
    }


def make_source(handler, **overrides) -> ChatCompletionSource:
    config = GeneratorConfig(api_key=overrides.pop("api_key", "gsk_test"), **overrides)
    return ChatCompletionSource(config, transport=httpx.MockTransport(handler))


def generate(source: ChatCompletionSource, index: int = 0, excluded=None) -> str:
    async def run() -> str:
        async with source:
            return await source.generate("pet food", excluded or [], round_policy(index))

    return asyncio.run(run())


names = st.text(alphabet=st.sampled_from("abcdefghij"), min_size=1, max_size=8)


class TestPromptProperty:
    """Messages carry the round directive and the exclusion list."""

    def test_first_round_has_no_exclusions(self) -> None:
        messages = build_messages("pet food", [], round_policy(0))

        assert messages[0]["role"] == "system"
        assert "Avoid these already suggested names" not in messages[0]["content"]
        assert "Use the .com extension." in messages[0]["content"]
        assert messages[1] == {"role": "user", "content": "pet food"}

    @given(excluded=st.lists(names, min_size=1, max_size=20, unique=True))
    @settings(max_examples=50)
    def test_every_excluded_name_is_listed(self, excluded: list[str]) -> None:
        system = build_messages("pet food", excluded, round_policy(1))[0]["content"]

        assert "Avoid these already suggested names: " + ", ".join(excluded) in system
        assert ".io, .co, .app" in system


class TestRequestProperty:
    """One POST per round with the configured model and temperature."""

    @given(index=st.integers(min_value=0, max_value=4))
    @settings(max_examples=10)
    def test_payload(self, index: int) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=completion('[{"domain":"petpal.com"}]'))

        text = generate(make_source(handler), index=index)

        assert text == '[{"domain":"petpal.com"}]'
        assert len(seen) == 1
        request = seen[0]
        body = json.loads(request.content)
        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer gsk_test"
        assert body["model"] == "llama-3.1-8b-instant"
        assert body["max_tokens"] == 2000
        assert body["temperature"] == (0.3 if index == 0 else 0.4)

    def test_usage_is_accumulated(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=completion("[]", total_tokens=40))

        source = make_source(handler)

        async def run() -> None:
            async with source:
                await source.generate("a", [], round_policy(0))
                await source.generate("b", ["x"], round_policy(1))

        asyncio.run(run())

        assert source.total_tokens == 80

    @given(reported=st.integers(min_value=1, max_value=50000))
    @settings(max_examples=20)
    def test_last_usage_reflects_latest_call(self, reported: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=completion("[]", total_tokens=reported))

        source = make_source(handler)
        generate(source)

        assert source.last_usage_tokens == reported

    def test_missing_usage_leaves_last_usage_empty(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": [{"message": {"content": "[]"}}]})

        source = make_source(handler)
        generate(source)

        assert source.last_usage_tokens is None
        assert source.total_tokens == 0

    def test_null_content_becomes_empty_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": [{"message": {"content": None}}]})

        assert generate(make_source(handler)) == ""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(make_source(lambda r: httpx.Response(200)), CandidateSource)


class TestFailureProperty:
    """Credential problems are configuration errors; the rest is transient."""

    def test_missing_key_is_configuration_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("No request expected")

        source = make_source(handler, api_key="")
        assert not source.has_credentials

        try:
            generate(source)
        except ConfigurationUpstreamError as e:
            assert e.code == UpstreamErrorCode.AUTH_ERROR.value
        else:
            raise AssertionError("Expected ConfigurationUpstreamError")

    def test_plain_http_endpoint_is_refused(self) -> None:
        source = make_source(lambda r: httpx.Response(200), endpoint="http://example.com/v1/chat")

        try:
            generate(source)
        except ConfigurationUpstreamError as e:
            assert e.code == UpstreamErrorCode.TLS_ERROR.value
        else:
            raise AssertionError("Expected ConfigurationUpstreamError")

    @given(status=st.sampled_from([401, 403]))
    @settings(max_examples=5)
    def test_rejected_key(self, status: int) -> None:
        source = make_source(lambda r: httpx.Response(status, json={"error": "invalid"}))

        try:
            generate(source)
        except ConfigurationUpstreamError as e:
            assert e.details["http_status_code"] == status
        else:
            raise AssertionError("Expected ConfigurationUpstreamError")

    @given(status=st.sampled_from([400, 404, 429, 500, 503]))
    @settings(max_examples=10)
    def test_other_statuses_are_transient(self, status: int) -> None:
        source = make_source(lambda r: httpx.Response(status, text="nope"))

        try:
            generate(source)
        except TransientUpstreamError as e:
            assert e.code == UpstreamErrorCode.SERVER_ERROR.value
        else:
            raise AssertionError("Expected TransientUpstreamError")

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        try:
            generate(make_source(handler))
        except TransientUpstreamError as e:
            assert e.code == UpstreamErrorCode.TIMEOUT.value
        else:
            raise AssertionError("Expected TransientUpstreamError")

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        try:
            generate(make_source(handler))
        except TransientUpstreamError as e:
            assert e.code == UpstreamErrorCode.NETWORK_ERROR.value
        else:
            raise AssertionError("Expected TransientUpstreamError")

    @given(body=st.sampled_from(['{"choices": []}', '{"unexpected": true}', "not json", "[]"]))
    @settings(max_examples=10)
    def test_bad_response_shape(self, body: str) -> None:
        source = make_source(lambda r: httpx.Response(200, text=body))

        try:
            generate(source)
        except TransientUpstreamError as e:
            assert e.code == UpstreamErrorCode.PARSE_ERROR.value
        else:
            raise AssertionError("Expected TransientUpstreamError")
