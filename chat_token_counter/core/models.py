"""
Chat messages and function specifications.

Messages are a closed set of role variants. Each variant carries only the
optional fields its role allows, so the framer can resolve them without
subtype dispatch.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Union


class ChatRole(Enum):
    """Roles accepted by the chat completions endpoint."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"


@dataclass(frozen=True)
class FunctionCall:
    """An assistant's request to call a named function."""
    name: str
    arguments: str = ""


@dataclass(frozen=True)
class SystemMessage:
    """Instructions framing the conversation."""
    content: Optional[str]
    name: Optional[str] = None
    role: ClassVar[ChatRole] = ChatRole.SYSTEM


@dataclass(frozen=True)
class UserMessage:
    """A message from the end user."""
    content: Optional[str]
    name: Optional[str] = None
    role: ClassVar[ChatRole] = ChatRole.USER


@dataclass(frozen=True)
class AssistantMessage:
    """A model reply, optionally requesting a function call."""
    content: Optional[str] = None
    name: Optional[str] = None
    function_call: Optional[FunctionCall] = None
    role: ClassVar[ChatRole] = ChatRole.ASSISTANT


@dataclass(frozen=True)
class FunctionMessage:
    """Result of a function call; `name` is the function that produced it."""
    name: str
    content: Optional[str]
    role: ClassVar[ChatRole] = ChatRole.FUNCTION


ChatMessage = Union[SystemMessage, UserMessage, AssistantMessage, FunctionMessage]


@dataclass(frozen=True)
class FunctionSpec:
    """A callable function offered to the model.

    `parameters` is a JSON-schema-shaped mapping. Its key order is
    significant and is preserved when rendered.
    """
    name: str
    parameters: Mapping[str, Any] = field(default_factory=dict)
    description: Optional[str] = None

    def __post_init__(self):
        """Validate function spec fields."""
        if not self.name:
            raise ValueError("function name is required and cannot be empty")
        if not isinstance(self.parameters, Mapping):
            raise ValueError(f"parameters of function '{self.name}' must be a mapping")


def message_from_dict(data: Mapping[str, Any]) -> ChatMessage:
    """Build a message variant from an OpenAI-shaped dict.

    Raises:
        ValueError: If the role is missing or unknown, or a function
            message has no name
    """
    if not isinstance(data, Mapping):
        raise ValueError("message must be a dictionary")

    role_str = data.get("role")
    try:
        role = ChatRole(role_str)
    except ValueError:
        valid_roles = [r.value for r in ChatRole]
        raise ValueError(f"message role must be one of: {valid_roles}, got {role_str!r}")

    content = data.get("content")
    name = data.get("name")

    if role == ChatRole.SYSTEM:
        return SystemMessage(content=content, name=name)
    if role == ChatRole.USER:
        return UserMessage(content=content, name=name)
    if role == ChatRole.ASSISTANT:
        function_call = None
        raw_call = data.get("function_call")
        if raw_call is not None:
            if not isinstance(raw_call, Mapping) or not raw_call.get("name"):
                raise ValueError("function_call must be a dictionary with a 'name'")
            function_call = FunctionCall(
                name=raw_call["name"],
                arguments=raw_call.get("arguments") or ""
            )
        return AssistantMessage(content=content, name=name, function_call=function_call)

    if not name:
        raise ValueError("function message requires a 'name'")
    return FunctionMessage(name=name, content=content)


def message_to_dict(message: ChatMessage) -> Dict[str, Any]:
    """Render a message variant in the shape the API expects."""
    data: Dict[str, Any] = {"role": message.role.value, "content": message.content}
    if message.name is not None:
        data["name"] = message.name
    function_call = getattr(message, "function_call", None)
    if function_call is not None:
        data["function_call"] = {
            "name": function_call.name,
            "arguments": function_call.arguments
        }
    return data


def function_from_dict(data: Mapping[str, Any]) -> FunctionSpec:
    """Build a FunctionSpec from an OpenAI-shaped dict.

    Raises:
        ValueError: If the name is missing or parameters is not a mapping
    """
    if not isinstance(data, Mapping):
        raise ValueError("function must be a dictionary")
    return FunctionSpec(
        name=data.get("name") or "",
        parameters=data.get("parameters") or {},
        description=data.get("description")
    )


def function_to_dict(function: FunctionSpec) -> Dict[str, Any]:
    """Render a FunctionSpec in the shape the API expects."""
    data: Dict[str, Any] = {"name": function.name}
    if function.description is not None:
        data["description"] = function.description
    data["parameters"] = dict(function.parameters)
    return data
