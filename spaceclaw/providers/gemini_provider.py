"""Native Google Gemini provider implementation using google-genai SDK."""

import asyncio
import json
import logging
from typing import Any

import httpx
from google import genai
from google.genai import errors, types

from spaceclaw.providers.base import (
    LLMProvider,
    LLMResponse,
    ToolCallRequest,
    TransportError,
)

logger = logging.getLogger(__name__)

# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 120

# Gemini accepts a stricter JSON Schema subset and rejects these keywords
GEMINI_UNSUPPORTED_KEYS = frozenset({
    "additionalProperties",
    "unevaluatedProperties",
    "$schema",
    "$defs",
    "$ref",
    "definitions",
    "examples",
    "default",
    "title",
})


def strip_unsupported_keys(schema: Any) -> Any:
    """Recursively drop schema keywords Gemini rejects and upper-case type names."""
    if isinstance(schema, list):
        return [strip_unsupported_keys(item) for item in schema]
    if isinstance(schema, dict):
        cleaned: dict[str, Any] = {}
        for key, value in schema.items():
            if key in GEMINI_UNSUPPORTED_KEYS:
                continue
            if key == "type" and isinstance(value, str):
                cleaned[key] = value.upper()
            elif key == "properties" and isinstance(value, dict):
                # Property names are user data, never keywords
                cleaned[key] = {name: strip_unsupported_keys(sub) for name, sub in value.items()}
            else:
                cleaned[key] = strip_unsupported_keys(value)
        return cleaned
    return schema


def sanitize_parameters(raw: dict[str, Any] | None) -> dict[str, Any]:
    """
    Make a tool parameter schema acceptable to Gemini.

    Strips unsupported keywords and drops any ``required`` entry that has no
    matching declared property (Gemini rejects the whole request otherwise).

    Args:
        raw: JSON Schema for the tool's parameters.

    Returns:
        Sanitized schema with an ``OBJECT`` root type.
    """
    cleaned = strip_unsupported_keys(raw or {})
    cleaned["type"] = "OBJECT"

    props = cleaned.get("properties")
    required = cleaned.get("required")

    if isinstance(required, list) and isinstance(props, dict):
        kept = [name for name in required if name in props]
        if kept:
            cleaned["required"] = kept
        else:
            cleaned.pop("required")
    elif "required" in cleaned:
        cleaned.pop("required")

    return cleaned


class GeminiProvider(LLMProvider):
    """
    Native Google Gemini provider using google-genai SDK.

    Canonical ``assistant`` messages become ``model`` contents with
    ``function_call`` parts; canonical ``tool`` messages become
    ``function_response`` parts. Gemini does not always return call ids, so
    ids are synthesized per response when missing.
    """

    id = "google"
    name = "Google Gemini"

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gemini-2.5-flash",
        timeout: int = DEFAULT_TIMEOUT,
        max_tokens: int = 4096,
    ):
        super().__init__(api_key, api_base, default_model)
        self.timeout = timeout
        self.max_tokens = max_tokens

        # If api_key is None, SDK will try to use GOOGLE_API_KEY env var
        client_kwargs: dict[str, Any] = {}

        if api_key:
            client_kwargs["api_key"] = api_key

        # google-genai expects the timeout in milliseconds
        http_options_kwargs: dict[str, Any] = {"timeout": timeout * 1000}
        if api_base:
            http_options_kwargs["base_url"] = api_base
        client_kwargs["http_options"] = types.HttpOptions(**http_options_kwargs)

        self.client = genai.Client(**client_kwargs)

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        """
        Send a generate_content request via the Gemini API.

        Args:
            messages: Canonical message list.
            tools: Optional tool definitions in OpenAI format.

        Returns:
            LLMResponse with content or tool calls.
        """
        system, contents = self._convert_messages_to_gemini(messages)
        logger.debug("[google] complete() model=%s msgs=%d", self.default_model, len(messages))

        config_kwargs: dict[str, Any] = {"max_output_tokens": self.max_tokens}
        if system:
            config_kwargs["system_instruction"] = system
        if tools:
            config_kwargs["tools"] = [
                types.Tool(function_declarations=self._convert_tools_to_gemini(tools))
            ]
            config_kwargs["automatic_function_calling"] = types.AutomaticFunctionCallingConfig(
                disable=True
            )

        gen_config = types.GenerateContentConfig(**config_kwargs)

        try:
            # Run synchronous SDK call in thread pool to avoid blocking event loop
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    self.client.models.generate_content,
                    model=self.default_model,
                    contents=contents,
                    config=gen_config,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("Gemini API timeout after %ss", self.timeout)
            raise TransportError(self.id, f"API timeout after {self.timeout}s") from e
        except errors.APIError as e:
            logger.error("Gemini API error: %s", e)
            raise TransportError(self.id, f"API error: {e.message}") from e
        except httpx.HTTPError as e:
            logger.error("Gemini network error: %s", e)
            raise TransportError(self.id, f"Network error: {e}") from e
        except Exception as e:
            logger.exception("Unexpected Gemini API error")
            raise TransportError(self.id, f"Unexpected error: {e}") from e

        return self._parse_response(response)

    def _convert_tools_to_gemini(self, tools: list[dict[str, Any]]) -> list[types.FunctionDeclaration]:
        """
        Convert OpenAI-style tools to Gemini function declarations.

        Args:
            tools: List of tool definitions in OpenAI format.

        Returns:
            List of sanitized Gemini function declarations.
        """
        declarations = []
        for tool in tools:
            func = tool["function"]
            params = _drop_unknown_fields(sanitize_parameters(func.get("parameters")))
            declaration = types.FunctionDeclaration(
                name=func["name"],
                description=func.get("description", ""),
            )
            # Gemini rejects an OBJECT schema with no properties
            if params.get("properties"):
                declaration.parameters = types.Schema.model_validate(params)
            declarations.append(declaration)
        return declarations

    def _convert_messages_to_gemini(
        self, messages: list[dict[str, Any]]
    ) -> tuple[str, list[types.Content]]:
        """
        Convert canonical messages to google-genai contents.

        Args:
            messages: Canonical message list.

        Returns:
            Tuple of (system instruction, list of Content objects).
        """
        system = ""
        contents: list[types.Content] = []
        # tool_call_id -> function name, from the most recent assistant calls
        call_names: dict[str, str] = {}
        pending_responses: list[types.Part] = []

        for msg in messages:
            role = msg["role"]
            if role == "system":
                system = msg.get("content") or ""
                continue

            if pending_responses and role != "tool":
                contents.append(types.Content(role="user", parts=pending_responses))
                pending_responses = []

            if role == "user":
                text = msg.get("content")
                if not isinstance(text, str):
                    text = json.dumps(text or "")
                contents.append(types.Content(role="user", parts=[types.Part(text=text)]))

            elif role == "assistant":
                parts: list[types.Part] = []
                if msg.get("content"):
                    parts.append(types.Part(text=msg["content"]))
                for tc in msg.get("tool_calls") or []:
                    name = tc["function"]["name"]
                    call_names[tc["id"]] = name
                    parts.append(types.Part(function_call=types.FunctionCall(
                        name=name,
                        args=_parse_args(tc["function"].get("arguments")),
                    )))
                if parts:
                    contents.append(types.Content(role="model", parts=parts))

            elif role == "tool":
                call_id = msg.get("tool_call_id") or ""
                pending_responses.append(types.Part(function_response=types.FunctionResponse(
                    name=call_names.get(call_id, "tool"),
                    response={"content": msg.get("content") or ""},
                )))

        if pending_responses:
            contents.append(types.Content(role="user", parts=pending_responses))

        return system, contents

    def _parse_response(self, response: Any) -> LLMResponse:
        """
        Parse google-genai response into our standard format.

        Args:
            response: Raw response from google-genai API.

        Returns:
            LLMResponse with parsed content, tool calls, and metadata.
        """
        parts: list[Any] = []
        finish_reason = "stop"
        if response.candidates:
            candidate = response.candidates[0]
            if candidate.content and candidate.content.parts:
                parts = list(candidate.content.parts)
            if candidate.finish_reason:
                finish_reason = str(candidate.finish_reason.value)

        usage = {}
        if getattr(response, "usage_metadata", None):
            usage = {
                "prompt_tokens": response.usage_metadata.prompt_token_count or 0,
                "completion_tokens": response.usage_metadata.candidates_token_count or 0,
                "total_tokens": response.usage_metadata.total_token_count or 0,
            }

        tool_calls: list[ToolCallRequest] = []
        text_parts: list[str] = []
        for part in parts:
            if part.function_call:
                fc = part.function_call
                tool_calls.append(ToolCallRequest(
                    id=fc.id or f"gemini-{len(tool_calls)}",
                    name=fc.name,
                    arguments=json.dumps(dict(fc.args or {})),
                ))
            elif part.text and not part.thought:
                text_parts.append(part.text)

        if tool_calls:
            # Gemini does not echo text alongside function calls usefully
            return LLMResponse.calls(tool_calls, finish_reason=finish_reason, usage=usage)
        return LLMResponse.text("".join(text_parts), finish_reason=finish_reason, usage=usage)


def _parse_args(arguments: Any) -> dict[str, Any]:
    """Decode stored tool-call arguments into a Gemini ``args`` object."""
    if isinstance(arguments, dict):
        return arguments
    try:
        parsed = json.loads(arguments or "{}")
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _schema_field_names() -> frozenset[str]:
    """Field names and camelCase aliases accepted by ``types.Schema``."""
    names = set()
    for field_name, info in types.Schema.model_fields.items():
        names.add(field_name)
        if info.alias:
            names.add(info.alias)
    return frozenset(names)


def _drop_unknown_fields(schema: Any) -> Any:
    """Drop keywords ``types.Schema`` would reject as extra fields."""
    if isinstance(schema, list):
        return [_drop_unknown_fields(item) for item in schema]
    if not isinstance(schema, dict):
        return schema
    known = _schema_field_names()
    cleaned: dict[str, Any] = {}
    for key, value in schema.items():
        if key not in known:
            continue
        if key == "properties" and isinstance(value, dict):
            cleaned[key] = {name: _drop_unknown_fields(sub) for name, sub in value.items()}
        else:
            cleaned[key] = _drop_unknown_fields(value)
    return cleaned
