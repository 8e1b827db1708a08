"""Gemini generation client over the REST API.

Implements GenerationCapability with two calls:
- generate_structured(): JSON-mode generation validated against a Pydantic schema
- generate_with_tools(): function-calling loop, bounded by max_steps model calls

Example:
    >>> async with GeminiClient() as gemini:
    ...     content = await gemini.generate_structured(
    ...         api_key=key, model_id="gemini-1.5-flash",
    ...         system_prompt="...", user_prompt="...",
    ...         schema=InsightContent, temperature=0.3,
    ...     )
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
import orjson
from pydantic import BaseModel, ValidationError

from lexitrend.foundation.errors import JsonDict, LexiTrendError

from .protocols import ToolInvocation, ToolRunResult

if TYPE_CHECKING:
    from lexitrend.tools import BaseTool

logger = logging.getLogger("lexitrend.gemini")

M = TypeVar("M", bound=BaseModel)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
VALIDATION_MODEL = "gemini-1.5-flash"

# JSON Schema keys the Gemini schema subset understands
_SCHEMA_KEYS = frozenset({"description", "enum", "format", "minimum", "maximum", "minItems", "maxItems"})


def to_gemini_schema(schema: JsonDict, defs: JsonDict | None = None) -> JsonDict:
    """Convert a Pydantic JSON schema to Gemini's OpenAPI subset.

    Inlines $ref definitions, folds Optional (anyOf with null) into
    nullable, drops titles and defaults.
    """
    defs = defs if defs is not None else schema.get("$defs", {})
    if "$ref" in schema:
        return to_gemini_schema(defs[schema["$ref"].rsplit("/", 1)[-1]], defs)
    if "anyOf" in schema:
        variants = [s for s in schema["anyOf"] if s.get("type") != "null"]
        out = to_gemini_schema(variants[0], defs) if variants else {"type": "STRING"}
        if len(variants) < len(schema["anyOf"]):
            out["nullable"] = True
        if "description" in schema:
            out["description"] = schema["description"]
        return out

    out: JsonDict = {k: v for k, v in schema.items() if k in _SCHEMA_KEYS}
    if "type" in schema:
        out["type"] = str(schema["type"]).upper()
    if "properties" in schema:
        out["type"] = "OBJECT"
        out["properties"] = {name: to_gemini_schema(prop, defs) for name, prop in schema["properties"].items()}
        if schema.get("required"):
            out["required"] = list(schema["required"])
    if "items" in schema:
        out["items"] = to_gemini_schema(schema["items"], defs)
    return out


def _function_declaration(tool: BaseTool[Any]) -> JsonDict:
    return {
        "name": tool.metadata.name,
        "description": tool.metadata.description,
        "parameters": to_gemini_schema(tool.parameters_schema()),
    }


def _candidate_parts(data: JsonDict) -> list[JsonDict]:
    candidates = data.get("candidates") or []
    if not candidates:
        reason = (data.get("promptFeedback") or {}).get("blockReason", "no candidates returned")
        raise LexiTrendError.api(f"Gemini returned no candidates: {reason}", operation="gemini.generate")
    return (candidates[0].get("content") or {}).get("parts") or []


def _text_of(parts: list[JsonDict]) -> str:
    return "".join(p.get("text", "") for p in parts if "text" in p).strip()


class GeminiClient:
    """Async Gemini REST client.

    Args:
        base_url: API root (default: v1beta endpoint)
        timeout: Request timeout in seconds
        client: Pre-built httpx.AsyncClient (tests pass one with MockTransport)
    """

    __slots__ = ("_base_url", "_client", "_owns_client")

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _generate(self, api_key: str, model_id: str, body: JsonDict) -> JsonDict:
        url = f"{self._base_url}/models/{model_id}:generateContent"
        try:
            resp = await self._client.post(
                url,
                content=orjson.dumps(body),
                headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
            )
        except httpx.TimeoutException as e:
            raise LexiTrendError.network(f"Gemini request timed out: {e}", operation="gemini.generate", cause=e, model=model_id) from e
        except httpx.TransportError as e:
            raise LexiTrendError.network(f"Gemini request failed: {e}", operation="gemini.generate", cause=e, model=model_id) from e

        if resp.status_code >= 400:
            try:
                message = resp.json().get("error", {}).get("message") or resp.reason_phrase
            except ValueError:
                message = resp.text or resp.reason_phrase
            raise LexiTrendError.api(
                f"Gemini API error ({resp.status_code}): {message}",
                operation="gemini.generate", model=model_id, status=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise LexiTrendError.api("Gemini returned invalid JSON", operation="gemini.generate", cause=e) from e

    @staticmethod
    def _body(system_prompt: str, contents: list[JsonDict], generation_config: JsonDict, tools: JsonDict | None = None) -> JsonDict:
        body: JsonDict = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": contents,
            "generationConfig": generation_config,
        }
        if tools:
            body["tools"] = [tools]
        return body

    async def generate_structured(
        self,
        *,
        api_key: str,
        model_id: str,
        system_prompt: str,
        user_prompt: str,
        schema: type[M],
        temperature: float,
    ) -> M:
        config = {
            "temperature": temperature,
            "responseMimeType": "application/json",
            "responseSchema": to_gemini_schema(schema.model_json_schema(by_alias=True)),
        }
        contents = [{"role": "user", "parts": [{"text": user_prompt}]}]
        data = await self._generate(api_key, model_id, self._body(system_prompt, contents, config))
        text = _text_of(_candidate_parts(data))
        try:
            return schema.model_validate_json(text)
        except ValidationError as e:
            raise LexiTrendError.api(
                f"structured output does not match {schema.__name__}: {e.error_count()} errors",
                operation="gemini.generate_structured", cause=e, model=model_id,
            ) from e

    async def generate_with_tools(
        self,
        *,
        api_key: str,
        model_id: str,
        system_prompt: str,
        user_prompt: str,
        tools: Sequence[BaseTool[Any]],
        max_steps: int,
        temperature: float,
    ) -> ToolRunResult:
        """Run the model, executing requested tool calls, for at most max_steps model calls.

        Returns the text of the last model turn and every tool call made. If
        the budget runs out while the model still asks for tools, the text
        gathered so far is returned.
        """
        by_name = {t.metadata.name: t for t in tools}
        declarations = {"functionDeclarations": [_function_declaration(t) for t in tools]} if tools else None
        contents: list[JsonDict] = [{"role": "user", "parts": [{"text": user_prompt}]}]
        calls: list[ToolInvocation] = []
        text = ""

        for step in range(1, max_steps + 1):
            data = await self._generate(
                api_key, model_id, self._body(system_prompt, contents, {"temperature": temperature}, declarations),
            )
            parts = _candidate_parts(data)
            text = _text_of(parts) or text
            requested = [p["functionCall"] for p in parts if "functionCall" in p]
            if not requested:
                return ToolRunResult(text=text, tool_calls=calls, steps=step)

            responses: list[JsonDict] = []
            for call in requested:
                name, args = call.get("name", ""), call.get("args") or {}
                tool = by_name.get(name)
                result = await tool.invoke(args) if tool else {"error": "Unknown tool", "message": name}
                calls.append(ToolInvocation(name=name, args=args, result=result))
                responses.append({"functionResponse": {"name": name, "response": result}})
            contents.append({"role": "model", "parts": parts})
            contents.append({"role": "user", "parts": responses})

        logger.info(f"Tool loop for {model_id} stopped at step budget {max_steps}")
        return ToolRunResult(text=text, tool_calls=calls, steps=max_steps)

    async def validate_key(self, api_key: str) -> bool:
        """Minimal one-token call; any failure means the key is unusable."""
        body = {
            "contents": [{"role": "user", "parts": [{"text": "test"}]}],
            "generationConfig": {"maxOutputTokens": 1},
        }
        try:
            await self._generate(api_key, VALIDATION_MODEL, body)
        except LexiTrendError as e:
            logger.warning(f"API key validation failed: {e.message}")
            return False
        return True
