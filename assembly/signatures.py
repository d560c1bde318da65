"""
Plain-text rendering of entity declarations.
"""

from typing import List

from extraction.config import (
    ALIAS,
    CLASS,
    ENUM,
    FUNCTION,
    NAMESPACE,
    QUALIFIER_KEYWORDS,
    STRUCT,
    VARIABLE,
)
from extraction.models import Entity, Parameter


def _is_leading(qualifier: str) -> bool:
    return qualifier in QUALIFIER_KEYWORDS or qualifier.startswith("explicit")


def render_parameter(parameter: Parameter) -> str:
    text = parameter.type
    if parameter.name:
        text = f"{text} {parameter.name}"
    if parameter.default is not None:
        text = f"{text} = {parameter.default}"
    return text


def render_template_head(entity: Entity) -> str:
    params = entity.signature.template_parameters
    if not params:
        return ""
    return f"template <{', '.join(params)}>"


def render_declaration(entity: Entity) -> str:
    """Render the declaration of ``entity`` the way it reads in a header.

    Example:
        ``static int add(int a, int b = 0) noexcept``
    """
    signature = entity.signature
    parts: List[str] = []
    head = render_template_head(entity)
    if head:
        parts.append(head)

    if entity.kind == FUNCTION:
        parts.extend(q for q in signature.qualifiers if _is_leading(q))
        if signature.return_type:
            parts.append(signature.return_type)
        params = ", ".join(render_parameter(p) for p in signature.parameters)
        parts.append(f"{entity.name}({params})")
        parts.extend(q for q in signature.qualifiers if not _is_leading(q))
    elif entity.kind in (CLASS, STRUCT):
        parts.append(f"{entity.kind} {entity.name}")
        if signature.bases:
            parts.append(": " + ", ".join(signature.bases))
    elif entity.kind == ENUM:
        parts.append(" ".join(["enum", *signature.qualifiers, entity.name]))
        if signature.underlying_type:
            parts.append(f": {signature.underlying_type}")
    elif entity.kind == ALIAS:
        parts.append(f"using {entity.name} = {signature.underlying_type or ''}".rstrip(" ="))
    elif entity.kind == VARIABLE:
        parts.extend(signature.qualifiers)
        if signature.underlying_type:
            parts.append(signature.underlying_type)
        parts.append(entity.name)
    elif entity.kind == NAMESPACE:
        parts.append(f"namespace {entity.name}")
    return " ".join(parts)
