from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import (
    GatewayTextGenerator,
    HttpClient,
    HttpResponse,
    LlmGatewayError,
    LlmStatusError,
    LlmTransportError,
    TextGenerator,
    reply_text,
    request_body,
    request_headers,
    strip_code_fences,
)

__all__ = [
    "GatewayTextGenerator",
    "HttpClient",
    "HttpResponse",
    "LlmGatewayError",
    "LlmStatusError",
    "LlmTransportError",
    "TextGenerator",
    "reply_text",
    "request_body",
    "request_headers",
    "strip_code_fences",
]
