"""Unit tests for the shared upstream error helpers."""

import httpx

from magotchi.errors import upstream_error_detail


def test_detail_prefers_error_message():
    response = httpx.Response(
        401, json={"error": {"type": "invalid_request_error", "message": "Incorrect API key"}}
    )
    assert upstream_error_detail(response, "OpenAI") == "Incorrect API key"


def test_detail_falls_back_to_plain_body():
    response = httpx.Response(502, text="Bad Gateway")
    assert upstream_error_detail(response, "Anthropic") == "Bad Gateway"


def test_detail_returns_json_body_without_error_message():
    response = httpx.Response(500, json={"detail": "boom"})
    assert upstream_error_detail(response, "Anthropic") == response.text


def test_detail_names_vendor_when_body_is_empty():
    assert upstream_error_detail(httpx.Response(503), "OpenAI") == "OpenAI API error: 503"
    assert upstream_error_detail(httpx.Response(503), "Anthropic") == "Anthropic API error: 503"
