"""Tool definitions exposed to the generation capability.

A tool pairs metadata (name, description shown to the model) with a
Pydantic parameter schema and an async run method returning a JSON object
that is fed back to the model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lexitrend.foundation.errors import JsonDict

TParams = TypeVar("TParams", bound=BaseModel)


class ToolMetadata(BaseModel):
    """Metadata describing a tool.

    Attributes:
        name: Unique identifier (snake_case), used as the function name
        description: What the tool does, shown to the model
        category: Grouping category
        requires_api_key: Whether tool needs external credentials
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$")
    description: str = Field(..., min_length=10)
    category: str = "general"
    requires_api_key: bool = False


class BaseTool(ABC, Generic[TParams]):
    """A callable offered to the model.

    Subclasses set `metadata` and `params_schema` and implement `_arun`,
    which receives validated parameters and returns a JSON object.
    """

    metadata: ClassVar[ToolMetadata]
    params_schema: ClassVar[type[BaseModel]]

    @abstractmethod
    async def _arun(self, params: TParams) -> JsonDict: ...

    async def arun(self, params: TParams) -> JsonDict:
        return await self._arun(params)

    async def invoke(self, args: dict[str, Any]) -> JsonDict:
        """Validate raw model-supplied args and run. Invalid args become an error object."""
        try:
            params = self.params_schema.model_validate(args)
        except ValidationError as e:
            return {"error": "Invalid parameters", "message": str(e)}
        return await self.arun(params)  # type: ignore[arg-type]

    def parameters_schema(self) -> JsonDict:
        return self.params_schema.model_json_schema()
