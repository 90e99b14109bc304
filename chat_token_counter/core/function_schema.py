"""
Function definition flattening and token counting.

When functions are enabled the service does not show the model raw JSON
schema. It renders the definitions as a TypeScript-like namespace, e.g.

    namespace functions {

    // Get the weather
    type get_weather = (_: {
    // City name
    city: string,
    unit?: "celsius" | "fahrenheit",
    }) => any;

    } // namespace functions

This module reproduces that rendering and counts its tokens alongside the
fixed overheads of function calling.
"""

import json
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from .model_family import FRAMING_TABLE, classify_model
from .message_framer import count_family_message_tokens
from .models import ChatMessage, ChatRole, FunctionSpec
from .tokenizer import TokenizerRegistry, default_registry

# Descriptions of properties nested this deep are not shown to the model
MAX_DESCRIPTION_INDENT = 2


@dataclass(frozen=True)
class SchemaNode:
    """One node of a JSON-schema-shaped parameter tree."""
    type: Optional[str] = None
    description: Optional[str] = None
    enum: Optional[Tuple[Any, ...]] = None
    items: Optional["SchemaNode"] = None
    properties: Tuple[Tuple[str, "SchemaNode"], ...] = ()
    required: Tuple[str, ...] = ()


def parse_schema(schema: Mapping[str, Any]) -> SchemaNode:
    """Build a SchemaNode tree from a schema mapping, keeping key order.

    Unknown keywords are ignored and loosely typed values are accepted as
    they are. The input must be a finite tree.
    """
    raw_type = schema.get("type")
    raw_enum = schema.get("enum")
    raw_items = schema.get("items")
    raw_properties = schema.get("properties")
    raw_required = schema.get("required")

    properties: List[Tuple[str, SchemaNode]] = []
    if isinstance(raw_properties, Mapping):
        for name, value in raw_properties.items():
            properties.append((str(name), parse_schema(value if isinstance(value, Mapping) else {})))

    return SchemaNode(
        type=None if raw_type is None else str(raw_type),
        description=schema.get("description"),
        enum=tuple(raw_enum) if isinstance(raw_enum, (list, tuple)) else None,
        items=parse_schema(raw_items) if isinstance(raw_items, Mapping) else None,
        properties=tuple(properties),
        required=tuple(str(n) for n in raw_required) if isinstance(raw_required, (list, tuple)) else ()
    )


def _literal(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _string_union(values: Sequence[Any]) -> str:
    return " | ".join(f'"{value}"' for value in values)


def render_type(node: SchemaNode, indent: int) -> str:
    """Render the type expression of a node."""
    if node.type == "string":
        if node.enum:
            return _string_union(node.enum)
        return "string"
    if node.type in ("number", "integer"):
        if node.enum:
            return " | ".join(_literal(value) for value in node.enum)
        return node.type
    if node.type == "array":
        if node.items is not None:
            return f"{render_type(node.items, indent)}[]"
        return "any[]"
    if node.type in ("boolean", "null"):
        return node.type
    if node.type == "object":
        return "\n".join(["{", render_properties(node, indent + 2), "}"])
    if node.type is None:
        if node.enum:
            return _string_union(node.enum)
        return "any"
    # Unrecognized types are shown verbatim
    return node.type


def render_properties(node: SchemaNode, indent: int) -> str:
    """Render the properties of an object node, one per line."""
    lines = []
    for name, prop in node.properties:
        if prop.description and indent < MAX_DESCRIPTION_INDENT:
            lines.append(f"// {prop.description}")
        if name in node.required:
            lines.append(f"{name}: {render_type(prop, indent)},")
        else:
            lines.append(f"{name}?: {render_type(prop, indent)},")
    return "\n".join(" " * indent + line for line in lines)


def render_function_definitions(functions: Sequence[FunctionSpec]) -> str:
    """Render function specs as the namespace block shown to the model."""
    lines = ["namespace functions {", ""]
    for function in functions:
        if function.description:
            lines.append(f"// {function.description}")
        parameters = parse_schema(function.parameters)
        if parameters.properties:
            lines.append(f"type {function.name} = (_: {{")
            lines.append(render_properties(parameters, 0))
            lines.append("}) => any;")
        else:
            # No-argument signature is the empty-object marker
            lines.append(f"type {function.name} = () => any;")
        lines.append("")
    lines.append("} // namespace functions")
    return "\n".join(lines)


def count_fun_message_tokens(
    model: str,
    messages: Sequence[ChatMessage],
    functions: Sequence[FunctionSpec],
    response_function_name: Optional[str] = None,
    registry: Optional[TokenizerRegistry] = None,
    aliases: Optional[Mapping[str, str]] = None
) -> int:
    """Count the prompt tokens of a request with function definitions.

    Args:
        model: Model identifier, e.g. "gpt-3.5-turbo"
        messages: Ordered chat messages
        functions: Function specs offered to the model
        response_function_name: Name of a function the model is forced to call
        registry: Tokenizer registry (defaults to the process-wide one)
        aliases: Optional model name aliases

    Returns:
        Predicted prompt token count

    Raises:
        ConfigurationError: If the model is not supported
    """
    family = classify_model(model, aliases)
    registry = registry or default_registry()
    tokenizer = registry.get_tokenizer(family)
    constants = FRAMING_TABLE.get_constants(family)

    tokens = count_family_message_tokens(family, messages, registry)

    if functions:
        tokens += tokenizer.count(render_function_definitions(functions))
        tokens += constants.functions_enabled
        # A system message shares its framing with the function namespace
        if any(message.role == ChatRole.SYSTEM for message in messages):
            tokens += constants.system_with_functions

    if response_function_name:
        tokens += tokenizer.count(response_function_name) + constants.forced_function

    return tokens
