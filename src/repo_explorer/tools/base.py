"""
Tool contract.

A tool is one repository operation exposed to an automated client: a
name, a description, and a pydantic model for its arguments. The model's
JSON Schema is what the client sees; the same model validates the call.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class ToolResult(BaseModel):
    """Outcome of one tool call.

    Attributes:
        success: False if the arguments were invalid or the operation failed
        output: Text for the client (indented JSON for structured results)
        error: What went wrong, when success is False
    """

    success: bool
    output: str
    error: str | None = None

    model_config = {"extra": "forbid"}


class BaseTool(ABC):
    """A named operation with validated arguments.

    Subclasses set ``name``, ``description`` and ``args_model`` and
    implement execute(). Tools that clone, pull or rewrite caches set
    ``mutating = True``.
    """

    name: str
    description: str
    args_model: type[BaseModel]
    mutating: bool = False

    @abstractmethod
    def execute(self, **kwargs: Any) -> ToolResult:
        """Run the operation.

        Never raises: invalid arguments and operation errors come back as
        ``ToolResult(success=False, error=...)``.
        """
        pass

    def get_schema(self) -> dict[str, Any]:
        """Function-calling description of the tool.

        Example:
            {
                "type": "function",
                "function": {
                    "name": "search_code",
                    "description": "Search for code across repositories...",
                    "parameters": {...JSON Schema of args_model...}
                }
            }
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.args_model.model_json_schema(),
            },
        }

    def validate_args(self, args: dict[str, Any]) -> BaseModel:
        """Raises pydantic.ValidationError for arguments the model rejects."""
        return self.args_model(**args)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"
