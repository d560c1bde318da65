"""
AST traversal and declaration extraction logic.

This module walks a tree-sitter C++ AST and turns every namespace, record,
enum, function, variable and alias it meets into a ``Declaration`` carrying
its scope, signature, source span and the doc comment written right above it.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple

from tree_sitter import Node, Tree

from core.identifiers import ANONYMOUS_SEGMENT, normalize_cpp_name, split_qualified_name
from extraction.comments import is_doc_comment
from extraction.config import (
    ACCESS_SPECIFIER_NODE,
    ALIAS,
    ALIAS_DECLARATION_NODE,
    COMMENT_NODE,
    CONTAINER_TYPES,
    DECLARATION_NODE,
    DEFAULT_ACCESS,
    ENUM,
    ENUM_NODE,
    FIELD_DECLARATION_NODE,
    FUNCTION,
    FUNCTION_DECLARATOR,
    FUNCTION_DEFINITION_NODE,
    FUNCTION_NAME_NODES,
    METHOD_CLAUSE_NODES,
    NAME_NODES,
    NAMESPACE,
    NAMESPACE_NODE,
    PREPROCESSOR_CONTAINERS,
    QUALIFIER_KEYWORDS,
    RECORD_NODE_KINDS,
    TEMPLATE_PARAMETER_NAME_NODES,
    TEMPLATE_WRAPPER,
    TRAILING_QUALIFIER_NODES,
    TRANSPARENT_WRAPPERS,
    TYPEDEF_NODE,
    VARIABLE,
)
from extraction.models import Declaration, Parameter, Signature, SourceSpan

logger = logging.getLogger(__name__)

_SPACE_RE = re.compile(r"\s+")
_SPACE_BEFORE_RE = re.compile(r"\s+([*&,>)\[\]])")
_SPACE_AFTER_RE = re.compile(r"([<(\[])\s+")
_COMMA_RE = re.compile(r",(?=\S)")
_TEMPLATE_ARGS_RE = re.compile(r"<.*>$")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_]\w*")
_LAST_IDENTIFIER_RE = re.compile(r"([A-Za-z_]\w*)\s*$")


@dataclass(frozen=True)
class _Context:
    """Where the walker currently is."""

    scope: Tuple[str, ...] = ()
    access: Optional[str] = None


@dataclass
class _Walk:
    """Per-file state shared by the visitors."""

    source_bytes: bytes
    file_path: str
    declarations: List[Declaration] = field(default_factory=list)

    def text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def text_without(self, start: int, end: int, hole: Optional[Node]) -> str:
        """Source text of ``[start, end)`` with the span of ``hole`` cut out."""
        if hole is None or hole.start_byte < start or hole.end_byte > end:
            return self.source_bytes[start:end].decode("utf-8", errors="replace")
        head = self.source_bytes[start:hole.start_byte]
        tail = self.source_bytes[hole.end_byte:end]
        return (head + b" " + tail).decode("utf-8", errors="replace")

    def span(self, node: Node) -> SourceSpan:
        return SourceSpan(
            file=self.file_path,
            start_line=node.start_point.row + 1,
            end_line=node.end_point.row + 1,
        )

    def emit(
        self,
        kind: str,
        scope: Tuple[str, ...],
        name: str,
        signature: Signature,
        anchor: Node,
        ctx: _Context,
        is_definition: bool,
    ) -> None:
        declaration = Declaration(
            kind=kind,
            scope=scope,
            name=name,
            signature=signature,
            raw_comment=get_preceding_comments(anchor, self.source_bytes),
            span=self.span(anchor),
            access=ctx.access if scope == ctx.scope else None,
            is_definition=is_definition,
        )
        self.declarations.append(declaration)
        logger.debug(
            "Extracted %s: %s at %s:%d",
            kind,
            declaration.qualified_name,
            self.file_path,
            declaration.span.start_line,
        )


def render_type_text(text: str) -> str:
    """Collapse whitespace in a type spelling into one canonical form.

    Example:
        >>> render_type_text("const  std::vector< int > &")
        'const std::vector<int>&'
    """
    rendered = _SPACE_RE.sub(" ", text).strip()
    rendered = _SPACE_BEFORE_RE.sub(r"\1", rendered)
    rendered = _SPACE_AFTER_RE.sub(r"\1", rendered)
    rendered = _COMMA_RE.sub(", ", rendered)
    return rendered


def get_preceding_comments(node: Node, source_bytes: bytes) -> Optional[str]:
    """Collect the doc comments immediately preceding a declaration node.

    Walks backward through siblings to find comments that directly precede
    the node (with no blank line in between).

    Args:
        node: The AST node to find comments for.
        source_bytes: The raw source file bytes.

    Returns:
        Raw doc comment text in source order, or None if none found.
    """
    comments = []
    sibling = node.prev_named_sibling
    expected_end_row = node.start_point.row

    while sibling is not None and sibling.type == COMMENT_NODE:
        # Adjacency: a blank line ends the comment block
        gap = expected_end_row - sibling.end_point.row
        if gap > 1:
            break
        # A comment sharing a row with the code before it trails that code
        previous = sibling.prev_named_sibling
        if (
            previous is not None
            and previous.type != COMMENT_NODE
            and previous.end_point.row == sibling.start_point.row
        ):
            break

        comment_text = source_bytes[sibling.start_byte:sibling.end_byte].decode(
            "utf-8", errors="replace"
        )
        if is_doc_comment(comment_text):
            comments.append(comment_text)

        expected_end_row = sibling.start_point.row
        sibling = sibling.prev_named_sibling

    if not comments:
        return None
    comments.reverse()
    return "\n".join(comments)


def split_declared_name(text: str, scope: Tuple[str, ...]) -> Tuple[Tuple[str, ...], str]:
    """Split a possibly qualified declarator name against the current scope.

    ``Widget::draw`` declared inside ``ns`` yields ``(("ns", "Widget"), "draw")``;
    a leading ``::`` makes the name absolute. Template arguments on scope
    segments (``Box<T>::get``) are dropped.
    """
    parts = split_qualified_name(normalize_cpp_name(text))
    if parts and parts[0] == "":
        scope = ()
        parts = parts[1:]
    extra = tuple(_TEMPLATE_ARGS_RE.sub("", p) for p in parts[:-1])
    return scope + extra, parts[-1]


def unwrap_declarator(node: Node) -> Tuple[Node, str, str]:
    """Peel pointer/reference/array/init wrappers off a declarator.

    Returns:
        ``(core, prefix, suffix)`` where ``prefix`` holds the pointer and
        reference operators (``*``, ``&``, ``* const``) and ``suffix`` the
        array extents.
    """
    prefix = ""
    suffix = ""
    current = node
    while True:
        kind = current.type
        if kind == "pointer_declarator":
            cv = [c.text.decode("utf-8") for c in current.children if c.type == "type_qualifier"]
            prefix += "*" + "".join(f" {q}" for q in cv)
            inner = current.child_by_field_name("declarator")
        elif kind == "reference_declarator":
            operator = current.children[0].text.decode("utf-8") if current.children else "&"
            prefix += operator
            inner = current.named_children[-1] if current.named_children else None
        elif kind == "array_declarator":
            size = current.child_by_field_name("size")
            extent = size.text.decode("utf-8") if size is not None else ""
            suffix = f"[{extent}]" + suffix
            inner = current.child_by_field_name("declarator")
        elif kind == "init_declarator":
            inner = current.child_by_field_name("declarator")
        elif kind in ("attributed_declarator", "parenthesized_declarator"):
            inner = current.named_children[0] if current.named_children else None
        else:
            break
        if inner is None:
            break
        current = inner
    return current, prefix, suffix


def declarator_name_node(node: Optional[Node]) -> Optional[Node]:
    """Find the identifier a (parameter) declarator names, if any."""
    while node is not None:
        if node.type in NAME_NODES or node.type in ("qualified_identifier", "destructor_name"):
            return node
        inner = node.child_by_field_name("declarator")
        if inner is None:
            candidates = [
                c for c in node.named_children
                if c.type not in ("parameter_list", "type_qualifier", COMMENT_NODE)
            ]
            inner = candidates[-1] if candidates else None
        node = inner
    return None


def _leading_specifiers(
    walk: _Walk, decl_node: Node, type_node: Optional[Node], stop: Optional[Node]
) -> Tuple[List[str], List[str]]:
    """Split the specifiers written before the declarator.

    Returns:
        ``(qualifiers, cv)``: storage/function specifiers such as ``static``
        or ``virtual``, and cv-qualifiers that belong to the type.
    """
    qualifiers: List[str] = []
    cv: List[str] = []
    for child in decl_node.children:
        if stop is not None and child.start_byte >= stop.start_byte:
            break
        if type_node is not None and child == type_node:
            continue
        text = walk.text(child).strip()
        if text in QUALIFIER_KEYWORDS or child.type == "explicit_function_specifier":
            qualifiers.append(text)
        elif child.type == "type_qualifier":
            cv.append(text)
    return qualifiers, cv


def _declared_type(walk: _Walk, type_node: Optional[Node], cv: Sequence[str], prefix: str, suffix: str) -> Optional[str]:
    if type_node is None:
        return None
    base = " ".join([*cv, walk.text(type_node)])
    return render_type_text(base + prefix + suffix)


def extract_parameters(walk: _Walk, parameter_list: Optional[Node]) -> Tuple[Parameter, ...]:
    """Render the parameters of a ``parameter_list`` node.

    The type text is the parameter's source with its name cut out, so
    ``const T& value = T()`` renders as type ``const T&``, name ``value``,
    default ``T()``.
    """
    if parameter_list is None:
        return ()

    params: List[Parameter] = []
    for child in parameter_list.named_children:
        if child.type == COMMENT_NODE:
            continue
        if walk.text(child).strip() == "...":
            params.append(Parameter(type="..."))
            continue

        type_node = child.child_by_field_name("type")
        declarator = child.child_by_field_name("declarator")
        default = child.child_by_field_name("default_value")
        name_node = declarator_name_node(declarator)

        if declarator is not None:
            end = declarator.end_byte
        elif type_node is not None:
            end = type_node.end_byte
        else:
            end = child.end_byte
        type_text = render_type_text(walk.text_without(child.start_byte, end, name_node))
        params.append(
            Parameter(
                type=type_text,
                name=walk.text(name_node).strip() if name_node is not None else "",
                default=render_type_text(walk.text(default)) if default is not None else None,
            )
        )

    if len(params) == 1 and params[0].type == "void" and not params[0].name:
        return ()
    return tuple(params)


def _template_parameter_name(node: Node) -> Optional[str]:
    name = node.child_by_field_name("name")
    if name is not None:
        return name.text.decode("utf-8")
    declarator = node.child_by_field_name("declarator")
    if declarator is not None:
        found = declarator_name_node(declarator)
        return found.text.decode("utf-8") if found is not None else None
    for child in reversed(node.named_children):
        if child.type in TEMPLATE_PARAMETER_NAME_NODES:
            return child.text.decode("utf-8")
        if child.type.endswith("parameter_declaration"):
            return _template_parameter_name(child)
    return None


def extract_template_parameters(walk: _Walk, template_node: Node) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """Rendered template parameters and their names for a template_declaration."""
    parameter_list = template_node.child_by_field_name("parameters")
    if parameter_list is None:
        return (), ()
    rendered: List[str] = []
    names: List[str] = []
    for child in parameter_list.named_children:
        if child.type == COMMENT_NODE:
            continue
        rendered.append(render_type_text(walk.text(child)))
        name = _template_parameter_name(child)
        if name:
            names.append(name)
    return tuple(rendered), tuple(names)


@dataclass(frozen=True)
class _Template:
    """Template parameters that apply to the next declaration."""

    parameters: Tuple[str, ...] = ()
    names: Tuple[str, ...] = ()
    outer: Optional[Node] = None

    def extend(self, walk: _Walk, node: Node) -> "_Template":
        parameters, names = extract_template_parameters(walk, node)
        return _Template(
            parameters=self.parameters + parameters,
            names=self.names + names,
            outer=self.outer if self.outer is not None else node,
        )

    def anchor(self, node: Node) -> Node:
        """Node that owns the doc comment and source span of ``node``."""
        return self.outer if self.outer is not None else node

    def without_class_parameters(self, declared_name: str) -> "_Template":
        """Drop parameters used as arguments of the qualifying class.

        ``template <class T> T Box<T>::get()`` declares a member of ``Box<T>``;
        ``T`` belongs to the class, not to ``get``.
        """
        qualifier, separator, _ = declared_name.rpartition("::")
        if not separator or "<" not in qualifier:
            return self
        arguments = qualifier[qualifier.find("<") + 1:qualifier.rfind(">")]
        used = set(_IDENTIFIER_RE.findall(arguments))

        def owned(text: str) -> bool:
            match = _LAST_IDENTIFIER_RE.search(text.split("=", 1)[0])
            return match is None or match.group(1) not in used

        return replace(
            self,
            parameters=tuple(p for p in self.parameters if owned(p)),
            names=tuple(n for n in self.names if n not in used),
        )


_NO_TEMPLATE = _Template()


def detect_macro_broken_class(walk: _Walk, node: Node) -> Optional[Tuple[str, str]]:
    """Detect a class/struct that an export macro turned into a function_definition.

    Tree-sitter can misparse ``class API_EXPORT Widget { ... }`` as a
    function_definition whose declarator is the class name.

    Returns:
        ``(kind, name)`` if detected, None otherwise.
    """
    if node.type != FUNCTION_DEFINITION_NODE:
        return None

    stripped = walk.text(node).strip()
    for keyword, kind in (("class ", "class"), ("struct ", "struct")):
        if stripped.startswith(keyword):
            declarator = node.child_by_field_name("declarator")
            if declarator is not None and declarator.type == "identifier":
                name = normalize_cpp_name(walk.text(declarator))
                logger.info(
                    "Detected macro-broken %s '%s' at %s:%d",
                    kind,
                    name,
                    walk.file_path,
                    node.start_point.row + 1,
                )
                return kind, name
    return None


def _visit_children(walk: _Walk, container: Node, ctx: _Context) -> None:
    for child in container.children:
        if not child.is_named or child.type == COMMENT_NODE:
            continue
        if child.type == ACCESS_SPECIFIER_NODE:
            ctx = replace(ctx, access=walk.text(child).strip().rstrip(":").strip())
            continue
        _visit(walk, child, ctx, _NO_TEMPLATE)


def _visit(walk: _Walk, node: Node, ctx: _Context, template: _Template, anchor: Optional[Node] = None) -> None:
    kind = node.type

    if kind == TEMPLATE_WRAPPER:
        inner_template = template.extend(walk, node)
        parameters = node.child_by_field_name("parameters")
        for child in node.named_children:
            if child == parameters or child.type in (COMMENT_NODE, "requires_clause"):
                continue
            _visit(walk, child, ctx, inner_template, anchor)
            break

    elif kind == NAMESPACE_NODE:
        _visit_namespace(walk, node, ctx)

    elif kind in RECORD_NODE_KINDS:
        _visit_record(walk, node, ctx, template, anchor if anchor is not None else template.anchor(node))

    elif kind == ENUM_NODE:
        _visit_enum(walk, node, ctx, anchor if anchor is not None else template.anchor(node))

    elif kind in (DECLARATION_NODE, FIELD_DECLARATION_NODE):
        _visit_declaration(walk, node, ctx, template)

    elif kind == FUNCTION_DEFINITION_NODE:
        _visit_function_definition(walk, node, ctx, template)

    elif kind == ALIAS_DECLARATION_NODE:
        _visit_alias(walk, node, ctx, template)

    elif kind == TYPEDEF_NODE:
        _visit_typedef(walk, node, ctx)

    # extern "C" { ... } or extern "C" void f();
    elif kind in TRANSPARENT_WRAPPERS:
        body = node.child_by_field_name("body")
        if body is None:
            return
        if body.type == "declaration_list":
            _visit_children(walk, body, ctx)
        else:
            _visit(walk, body, ctx, template)

    elif kind in PREPROCESSOR_CONTAINERS or kind in CONTAINER_TYPES:
        _visit_children(walk, node, ctx)


def _visit_namespace(walk: _Walk, node: Node, ctx: _Context) -> None:
    name_node = node.child_by_field_name("name")
    if name_node is not None:
        segments = [s for s in split_qualified_name(normalize_cpp_name(walk.text(name_node))) if s]
    else:
        segments = [ANONYMOUS_SEGMENT]

    scope = ctx.scope
    ns_ctx = _Context(scope=scope)
    for segment in segments:
        walk.emit(NAMESPACE, scope, segment, Signature(), node, ns_ctx, is_definition=True)
        scope = scope + (segment,)
        ns_ctx = _Context(scope=scope)

    body = node.child_by_field_name("body")
    if body is not None:
        _visit_children(walk, body, _Context(scope=scope))


def _record_bases(walk: _Walk, node: Node) -> Tuple[str, ...]:
    clause = next((c for c in node.children if c.type == "base_class_clause"), None)
    if clause is None:
        return ()
    bases: List[str] = []
    current: List[str] = []
    for child in clause.children:
        text = walk.text(child).strip()
        if text == ":" or child.type == COMMENT_NODE:
            continue
        if text == ",":
            if current:
                bases.append(render_type_text(" ".join(current)))
            current = []
            continue
        current.append(text)
    if current:
        bases.append(render_type_text(" ".join(current)))
    return tuple(bases)


def _visit_record(
    walk: _Walk,
    node: Node,
    ctx: _Context,
    template: _Template,
    anchor: Node,
    name_override: Optional[str] = None,
) -> Optional[Tuple[Tuple[str, ...], str]]:
    """Emit a class/struct/union and walk its members.

    Returns:
        ``(scope, name)`` of the emitted record, None for anonymous or
        specialized records.
    """
    kind = RECORD_NODE_KINDS[node.type]
    name_node = node.child_by_field_name("name")
    body = node.child_by_field_name("body")

    if name_override is not None:
        scope, name = ctx.scope, name_override
    elif name_node is None:
        logger.debug("Skipping anonymous %s at %s:%d", node.type, walk.file_path, node.start_point.row + 1)
        return None
    elif name_node.type == "template_type":
        logger.debug(
            "Skipping specialization %s at %s:%d",
            walk.text(name_node),
            walk.file_path,
            node.start_point.row + 1,
        )
        return None
    else:
        scope, name = split_declared_name(walk.text(name_node), ctx.scope)

    signature = Signature(
        template_parameters=template.parameters,
        template_parameter_names=template.names,
        bases=_record_bases(walk, node),
    )
    walk.emit(kind, scope, name, signature, anchor, ctx, is_definition=body is not None)

    if body is not None:
        member_ctx = _Context(scope=scope + (name,), access=DEFAULT_ACCESS[node.type])
        _visit_children(walk, body, member_ctx)
    return scope, name


def _visit_enum(walk: _Walk, node: Node, ctx: _Context, anchor: Node, name_override: Optional[str] = None) -> Optional[Tuple[Tuple[str, ...], str]]:
    name_node = node.child_by_field_name("name")
    if name_override is not None:
        scope, name = ctx.scope, name_override
    elif name_node is None:
        logger.debug("Skipping anonymous enum at %s:%d", walk.file_path, node.start_point.row + 1)
        return None
    else:
        scope, name = split_declared_name(walk.text(name_node), ctx.scope)

    body = node.child_by_field_name("body")
    enumerators: List[str] = []
    if body is not None:
        for child in body.named_children:
            if child.type != "enumerator":
                continue
            enumerator_name = child.child_by_field_name("name")
            if enumerator_name is not None:
                enumerators.append(walk.text(enumerator_name))

    qualifiers = tuple(
        walk.text(c) for c in node.children if not c.is_named and walk.text(c) in ("class", "struct")
    )
    base = node.child_by_field_name("base")
    signature = Signature(
        qualifiers=qualifiers,
        underlying_type=render_type_text(walk.text(base)) if base is not None else None,
        enumerators=tuple(enumerators),
    )
    walk.emit(ENUM, scope, name, signature, anchor, ctx, is_definition=body is not None)
    return scope, name


def _visit_type_specifier(walk: _Walk, node: Node, ctx: _Context, template: _Template, anchor: Node, has_declarators: bool) -> None:
    """Emit the record/enum named by a declaration's type, when it declares one.

    ``class Foo;`` and ``class Foo { ... };`` declare ``Foo``, while
    ``class Foo* p;`` only mentions it.
    """
    body = node.child_by_field_name("body")
    if has_declarators and body is None:
        return
    if node.type in RECORD_NODE_KINDS:
        _visit_record(walk, node, ctx, template, anchor)
    elif node.type == ENUM_NODE:
        _visit_enum(walk, node, ctx, anchor)


def _trailing_qualifiers(walk: _Walk, declarator: Node) -> Tuple[List[str], Optional[Node]]:
    """Qualifiers written after a function's parameter list, plus its trailing return type."""
    qualifiers: List[str] = []
    trailing_return: Optional[Node] = None
    parameters = declarator.child_by_field_name("parameters")
    seen_parameters = parameters is None
    for child in declarator.children:
        if not seen_parameters:
            seen_parameters = child == parameters
            continue
        if child.type in TRAILING_QUALIFIER_NODES:
            qualifiers.append(render_type_text(walk.text(child)))
        elif child.type == "trailing_return_type":
            trailing_return = child
    return qualifiers, trailing_return


def _emit_function(
    walk: _Walk,
    decl_node: Node,
    declarator: Node,
    prefix: str,
    ctx: _Context,
    template: _Template,
    is_definition: bool,
) -> None:
    name_node = declarator.child_by_field_name("declarator")
    if name_node is None or name_node.type not in FUNCTION_NAME_NODES:
        logger.debug(
            "Skipping function declarator without a plain name at %s:%d",
            walk.file_path,
            declarator.start_point.row + 1,
        )
        return

    scope, name = split_declared_name(walk.text(name_node), ctx.scope)
    owned = template.without_class_parameters(walk.text(name_node))
    type_node = decl_node.child_by_field_name("type")
    leading, cv = _leading_specifiers(walk, decl_node, type_node, declarator)
    trailing, trailing_return = _trailing_qualifiers(walk, declarator)

    return_type = _declared_type(walk, type_node, cv, prefix, "")
    if trailing_return is not None:
        trailing_text = walk.text(trailing_return).strip()
        if trailing_text.startswith("->"):
            trailing_text = trailing_text[2:]
        return_type = render_type_text(trailing_text)

    # `virtual void f() = 0;`, `Foo() = default;`
    clause = decl_node.child_by_field_name("default_value")
    if clause is not None:
        trailing.append(render_type_text(f"= {walk.text(clause)}"))
    for child in decl_node.children:
        if child.type in METHOD_CLAUSE_NODES:
            trailing.append(render_type_text(walk.text(child).rstrip(";")))

    signature = Signature(
        return_type=return_type,
        parameters=extract_parameters(walk, declarator.child_by_field_name("parameters")),
        qualifiers=tuple(leading + trailing),
        template_parameters=owned.parameters,
        template_parameter_names=owned.names,
    )
    walk.emit(FUNCTION, scope, name, signature, template.anchor(decl_node), ctx, is_definition)


def _emit_variable(
    walk: _Walk,
    decl_node: Node,
    core: Node,
    prefix: str,
    suffix: str,
    ctx: _Context,
    template: _Template,
) -> None:
    if core.type not in NAME_NODES and core.type != "qualified_identifier":
        logger.debug("Skipping unnamed declarator at %s:%d", walk.file_path, core.start_point.row + 1)
        return
    scope, name = split_declared_name(walk.text(core), ctx.scope)
    type_node = decl_node.child_by_field_name("type")
    leading, cv = _leading_specifiers(walk, decl_node, type_node, core)
    signature = Signature(
        qualifiers=tuple(leading),
        template_parameters=template.parameters,
        template_parameter_names=template.names,
        underlying_type=_declared_type(walk, type_node, cv, prefix, suffix),
    )
    walk.emit(
        VARIABLE,
        scope,
        name,
        signature,
        template.anchor(decl_node),
        ctx,
        is_definition="extern" not in leading,
    )


def _visit_declaration(walk: _Walk, node: Node, ctx: _Context, template: _Template) -> None:
    type_node = node.child_by_field_name("type")
    declarators = node.children_by_field_name("declarator")
    anchor = template.anchor(node)

    if type_node is not None and (type_node.type in RECORD_NODE_KINDS or type_node.type == ENUM_NODE):
        _visit_type_specifier(
            walk,
            type_node,
            ctx,
            _NO_TEMPLATE if declarators else template,
            anchor,
            has_declarators=bool(declarators),
        )

    for declarator in declarators:
        core, prefix, suffix = unwrap_declarator(declarator)
        if core.type == FUNCTION_DECLARATOR:
            _emit_function(walk, node, core, prefix, ctx, template, is_definition=False)
        else:
            _emit_variable(walk, node, core, prefix, suffix, ctx, template)


def _visit_function_definition(walk: _Walk, node: Node, ctx: _Context, template: _Template) -> None:
    anchor = template.anchor(node)
    macro_broken = detect_macro_broken_class(walk, node)
    if macro_broken:
        kind, name = macro_broken
        scope, name = split_declared_name(name, ctx.scope)
        signature = Signature(
            template_parameters=template.parameters,
            template_parameter_names=template.names,
        )
        walk.emit(kind, scope, name, signature, anchor, ctx, is_definition=True)
        return

    declarator = node.child_by_field_name("declarator")
    if declarator is None:
        logger.debug("Function at %s:%d has no declarator", walk.file_path, node.start_point.row + 1)
        return
    core, prefix, _ = unwrap_declarator(declarator)
    if core.type != FUNCTION_DECLARATOR:
        logger.debug("Unexpected declarator %s at %s:%d", core.type, walk.file_path, core.start_point.row + 1)
        return
    body = node.child_by_field_name("body")
    _emit_function(walk, node, core, prefix, ctx, template, is_definition=body is not None)


def _visit_alias(walk: _Walk, node: Node, ctx: _Context, template: _Template) -> None:
    name_node = node.child_by_field_name("name")
    type_node = node.child_by_field_name("type")
    if name_node is None:
        return
    scope, name = split_declared_name(walk.text(name_node), ctx.scope)
    signature = Signature(
        template_parameters=template.parameters,
        template_parameter_names=template.names,
        underlying_type=render_type_text(walk.text(type_node)) if type_node is not None else None,
    )
    walk.emit(ALIAS, scope, name, signature, template.anchor(node), ctx, is_definition=True)


def _visit_typedef(walk: _Walk, node: Node, ctx: _Context) -> None:
    type_node = node.child_by_field_name("type")
    declarators = node.children_by_field_name("declarator")
    if type_node is None or not declarators:
        return

    named_type: Optional[str] = None
    if type_node.type in RECORD_NODE_KINDS or type_node.type == ENUM_NODE:
        has_body = type_node.child_by_field_name("body") is not None
        if type_node.child_by_field_name("name") is None and has_body:
            # typedef struct { ... } Name;
            first, _, _ = unwrap_declarator(declarators[0])
            name = walk.text(first).strip()
            if type_node.type == ENUM_NODE:
                _visit_enum(walk, type_node, ctx, node, name_override=name)
            else:
                _visit_record(walk, type_node, ctx, _NO_TEMPLATE, node, name_override=name)
            declarators = declarators[1:]
            named_type = name
        else:
            if has_body:
                _visit_type_specifier(walk, type_node, ctx, _NO_TEMPLATE, node, has_declarators=False)
            named_type = walk.text(type_node.child_by_field_name("name"))

    _, cv = _leading_specifiers(walk, node, type_node, declarators[0] if declarators else None)
    for declarator in declarators:
        core, prefix, suffix = unwrap_declarator(declarator)
        if core.type == FUNCTION_DECLARATOR:
            # typedef void (*Callback)(int);
            name_node = declarator_name_node(core.child_by_field_name("declarator"))
            if name_node is None:
                name_node = next(
                    (n for n in _iter_named(core) if n.type == "type_identifier"), None
                )
            if name_node is None:
                continue
            underlying = render_type_text(
                walk.text_without(type_node.start_byte, declarator.end_byte, name_node)
            )
            name = walk.text(name_node)
        else:
            name = walk.text(core).strip()
            base = named_type if named_type is not None else walk.text(type_node)
            underlying = render_type_text(" ".join([*cv, base]) + prefix + suffix)
        if name == named_type:
            # typedef struct Foo { ... } Foo;
            continue
        scope, name = split_declared_name(name, ctx.scope)
        walk.emit(ALIAS, scope, name, Signature(underlying_type=underlying), node, ctx, is_definition=True)


def _iter_named(node: Node):
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.named_children))


def extract_declarations(tree: Tree, source_bytes: bytes, file_path: str) -> List[Declaration]:
    """Extract every declaration from a parsed C++ AST.

    This is the main entry point for declaration extraction.

    Args:
        tree: The parsed AST tree.
        source_bytes: The raw source file bytes.
        file_path: File path relative to the project root.

    Returns:
        Declarations in source order.
    """
    walk = _Walk(source_bytes=source_bytes, file_path=file_path)
    _visit_children(walk, tree.root_node, _Context())
    logger.debug("Extracted %d declarations from %s", len(walk.declarations), file_path)
    return walk.declarations
