"""
figbind — binding IR extractor

File: src/figbind/ir/extractor.py

Purpose
- Parse generated ``*.figma.tsx`` / ``*.figma.ts`` source into a canonical,
  immutable ``BindingIR``: imports, ``figma.connect()`` descriptors, helper
  calls inside ``props``, the ``example`` function descriptor and ``variant``
  restrictions.

Functional requirements
- Malformed syntax raises ``ParseError`` with line and column; no partial IR.
- Connect kind is decided only by argument count and the shape of the
  leading arguments.
- Calls with an unexpected shape are still extracted as ``invalid``.

Non-functional requirements
- Pure: the same source always yields an equal IR.
"""

from __future__ import annotations

from typing import Final

from tree_sitter import Node

from figbind.domain.errors import ParseError
from figbind.domain.models import (
    BindingIR,
    ConnectConfig,
    ConnectDescriptor,
    ConnectKind,
    DisallowedExpression,
    EnumMapping,
    ExampleDescriptor,
    ExpressionKind,
    HelperCall,
    HelperKind,
    ImportDeclaration,
    ImportSpecifier,
    JSONScalar,
    PropsDescriptor,
    PropsReference,
    TemplateRegion,
    VariantDescriptor,
)
from figbind.ir.syntax import (
    SourceText,
    call_arguments,
    describe_syntax_error,
    dialect_for,
    find_syntax_error,
    property_key,
    string_value,
    walk,
)

CODE_CONNECT_MODULE: Final[str] = "@figma/code-connect"
DEFAULT_NAMESPACE: Final[str] = "figma"
DEFAULT_PROPS_PARAM: Final[str] = "props"

_FUNCTION_TYPES: Final[frozenset[str]] = frozenset(
    {"arrow_function", "function_expression", "function", "method_definition"}
)
_LOGICAL_OPERATORS: Final[frozenset[str]] = frozenset({"&&", "||", "??"})
# Postfix/arithmetic negation of literals (-1) is allowed; these are not.
_CONDITIONAL_UNARY_OPERATORS: Final[frozenset[str]] = frozenset(
    {"!", "~", "typeof", "void", "delete"}
)
_HELPER_KINDS: Final[dict[str, HelperKind]] = {kind.value: kind for kind in HelperKind}


def extract_ir(code: str, filename: str = "binding.figma.tsx") -> BindingIR:
    """Parse binding source into a ``BindingIR``; raise ``ParseError`` on bad syntax."""

    source = SourceText(code)
    tree = source.parse(dialect_for(filename))
    root = tree.root_node

    error_node = find_syntax_error(root)
    if error_node is not None:
        raise ParseError(
            filename=filename,
            line=source.line(error_node),
            column=source.column(error_node),
            detail=describe_syntax_error(error_node, source),
        )

    imports = tuple(
        _extract_import(node, source) for node in root.named_children if node.type == "import_statement"
    )
    namespace = resolve_namespace(imports)
    extractor = _ConnectExtractor(source, namespace)
    connects = tuple(
        extractor.extract(node)
        for node in walk(root)
        if extractor.namespace_method(node) == "connect"
    )
    return BindingIR(imports=imports, connects=connects, namespace=namespace)


def resolve_namespace(imports: tuple[ImportDeclaration, ...]) -> str:
    """Local name bound to the Code Connect module, ``figma`` when not imported."""

    for declaration in imports:
        if not is_code_connect_source(declaration.source):
            continue
        for specifier in declaration.specifiers:
            if specifier.kind in {"default", "namespace"}:
                return specifier.name
            if specifier.kind == "named" and specifier.name == DEFAULT_NAMESPACE:
                return specifier.alias or specifier.name
    return DEFAULT_NAMESPACE


def is_code_connect_source(source: str) -> bool:
    return source == CODE_CONNECT_MODULE or source.startswith(f"{CODE_CONNECT_MODULE}/")


def _extract_import(node: Node, source: SourceText) -> ImportDeclaration:
    source_node = node.child_by_field_name("source")
    module = string_value(source_node, source) if source_node is not None else ""
    specifiers: list[ImportSpecifier] = []
    for clause in node.named_children:
        if clause.type != "import_clause":
            continue
        for item in clause.named_children:
            if item.type == "identifier":
                specifiers.append(ImportSpecifier(kind="default", name=source.text(item)))
            elif item.type == "namespace_import":
                local = next((c for c in item.named_children if c.type == "identifier"), None)
                if local is not None:
                    specifiers.append(ImportSpecifier(kind="namespace", name=source.text(local)))
            elif item.type == "named_imports":
                for spec in item.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name_node = spec.child_by_field_name("name")
                    alias_node = spec.child_by_field_name("alias")
                    if name_node is None:
                        continue
                    name = source.text(name_node)
                    alias = source.text(alias_node) if alias_node is not None else None
                    specifiers.append(
                        ImportSpecifier(
                            kind="named",
                            name=name,
                            alias=alias if alias != name else None,
                        )
                    )
    return ImportDeclaration(source=module, specifiers=tuple(specifiers))


class _ConnectExtractor:
    def __init__(self, source: SourceText, namespace: str) -> None:
        self._source = source
        self._namespace = namespace

    def namespace_method(self, node: Node) -> str | None:
        """Method name of ``<namespace>.<method>(...)`` calls, else ``None``."""

        if node.type != "call_expression":
            return None
        callee = node.child_by_field_name("function")
        if callee is None or callee.type != "member_expression":
            return None
        obj = callee.child_by_field_name("object")
        prop = callee.child_by_field_name("property")
        if obj is None or prop is None or obj.type != "identifier":
            return None
        if self._source.text(obj) != self._namespace or prop.type != "property_identifier":
            return None
        return self._source.text(prop)

    def extract(self, call: Node) -> ConnectDescriptor:
        source = self._source
        args = call_arguments(call)
        argument_types = tuple(arg.type for arg in args)
        line, column = source.line(call), source.column(call)

        if len(args) == 2 and args[0].type == "string":
            return ConnectDescriptor(
                kind=ConnectKind.URL_ONLY,
                line=line,
                column=column,
                argument_types=argument_types,
                url=string_value(args[0], source),
                url_is_literal=True,
                config=self._config(args[1]),
            )

        if (
            len(args) == 3
            and args[0].type == "identifier"
            and args[1].type == "string"
            and args[2].type == "object"
        ):
            return ConnectDescriptor(
                kind=ConnectKind.COMPONENT,
                line=line,
                column=column,
                argument_types=argument_types,
                component=source.text(args[0]),
                url=string_value(args[1], source),
                url_is_literal=True,
                config=self._config(args[2]),
            )

        url_node: Node | None = None
        if len(args) == 2:
            url_node = args[0]
        elif len(args) >= 3:
            url_node = args[1]
        url_is_literal = url_node is not None and url_node.type == "string"
        return ConnectDescriptor(
            kind=ConnectKind.INVALID,
            line=line,
            column=column,
            argument_types=argument_types,
            component=(
                source.text(args[0]) if len(args) >= 3 and args[0].type == "identifier" else None
            ),
            url=string_value(url_node, source) if url_node is not None and url_is_literal else None,
            url_is_literal=url_is_literal,
            config=(
                self._config(args[-1]) if len(args) >= 2 and args[-1].type == "object" else None
            ),
        )

    # -- config -------------------------------------------------------------

    def _config(self, node: Node) -> ConnectConfig:
        source = self._source
        if node.type != "object":
            return ConnectConfig(
                is_object_literal=False, line=source.line(node), column=source.column(node)
            )

        props: PropsDescriptor | None = None
        example: ExampleDescriptor | None = None
        variant: VariantDescriptor | None = None
        for member in node.named_children:
            if member.type == "method_definition":
                if property_key(member.child_by_field_name("name"), source) == "example":
                    example = self._example(member)
                continue
            if member.type != "pair":
                continue
            key = property_key(member.child_by_field_name("key"), source)
            value = member.child_by_field_name("value")
            if value is None:
                continue
            if key == "props":
                props = self._props(value)
            elif key == "example":
                example = self._example(value)
            elif key == "variant":
                variant = self._variant(value)

        return ConnectConfig(
            is_object_literal=True,
            line=source.line(node),
            column=source.column(node),
            props=props,
            example=example,
            variant=variant,
        )

    def _props(self, node: Node) -> PropsDescriptor:
        if node.type != "object":
            return PropsDescriptor(is_object_literal=False)
        helpers: list[HelperCall] = []
        for member in node.named_children:
            if member.type != "pair":
                continue
            prop_name = property_key(member.child_by_field_name("key"), self._source)
            value = member.child_by_field_name("value")
            if prop_name is None or value is None:
                continue
            # Nested helpers (e.g. figma.instance inside a figma.boolean mapping) follow
            # their enclosing helper in document order.
            for candidate in walk(value):
                helper = self._helper(candidate, prop_name)
                if helper is not None:
                    helpers.append(helper)
        return PropsDescriptor(is_object_literal=True, helpers=tuple(helpers))

    def _helper(self, node: Node, prop_name: str) -> HelperCall | None:
        method = self.namespace_method(node)
        if method is None or method not in _HELPER_KINDS:
            return None
        source = self._source
        kind = _HELPER_KINDS[method]
        args = call_arguments(node)

        key: str | None = None
        key_is_literal = False
        if args:
            if args[0].type == "string":
                key = string_value(args[0], source)
                key_is_literal = True
            else:
                key = source.text(args[0])

        enum_mapping: tuple[EnumMapping, ...] | None = None
        enum_mapping_is_literal = False
        if kind is HelperKind.ENUM and len(args) > 1:
            enum_mapping_is_literal = args[1].type == "object"
            enum_mapping = self._enum_mapping(args[1]) if enum_mapping_is_literal else ()

        return HelperCall(
            prop_name=prop_name,
            helper_kind=kind,
            key=key,
            key_is_literal=key_is_literal,
            line=source.line(node),
            column=source.column(node),
            enum_mapping=enum_mapping,
            enum_mapping_is_literal=enum_mapping_is_literal,
        )

    def _enum_mapping(self, node: Node) -> tuple[EnumMapping, ...]:
        mappings: list[EnumMapping] = []
        for member in node.named_children:
            if member.type != "pair":
                continue
            figma_value = property_key(member.child_by_field_name("key"), self._source)
            value = member.child_by_field_name("value")
            if figma_value is None or value is None:
                continue
            is_literal, literal = self._literal(value)
            mappings.append(
                EnumMapping(
                    figma_value=figma_value,
                    code_value=literal,
                    code_value_is_literal=is_literal,
                )
            )
        return tuple(mappings)

    def _variant(self, node: Node) -> VariantDescriptor:
        source = self._source
        if node.type != "object":
            return VariantDescriptor(is_object_literal=False, line=source.line(node))
        restrictions: list[tuple[str, JSONScalar]] = []
        for member in node.named_children:
            if member.type != "pair":
                continue
            key = property_key(member.child_by_field_name("key"), source)
            value = member.child_by_field_name("value")
            if key is None or value is None:
                continue
            restrictions.append((key, self._literal(value)[1]))
        return VariantDescriptor(
            is_object_literal=True,
            restrictions=tuple(restrictions),
            line=source.line(node),
        )

    def _literal(self, node: Node) -> tuple[bool, JSONScalar]:
        source = self._source
        if node.type == "string":
            return True, string_value(node, source)
        if node.type == "number":
            raw = source.text(node)
            try:
                return True, int(raw)
            except ValueError:
                try:
                    return True, float(raw)
                except ValueError:
                    return True, raw
        if node.type in {"true", "false"}:
            return True, node.type == "true"
        if node.type in {"null", "undefined"}:
            return True, None
        return False, None

    # -- example ------------------------------------------------------------

    def _example(self, node: Node) -> ExampleDescriptor:
        source = self._source
        line, column = source.line(node), source.column(node)
        body = node.child_by_field_name("body")
        if node.type not in _FUNCTION_TYPES or body is None:
            return ExampleDescriptor(is_function=False, line=line, column=column)

        params, root_names, destructured = self._parameters(node)
        references: list[PropsReference] = []
        disallowed: list[DisallowedExpression] = []
        regions: list[TemplateRegion] = []

        for child in walk(body):
            reference = self._reference(child, root_names, destructured)
            if reference is not None:
                references.append(reference)
            expression = self._disallowed(child)
            if expression is not None:
                disallowed.append(expression)
            region = self._template_region(child)
            if region is not None:
                regions.append(region)

        return ExampleDescriptor(
            is_function=True,
            line=line,
            column=column,
            is_single_expression=body.type != "statement_block",
            params=params,
            props_references=tuple(references),
            disallowed_expressions=tuple(disallowed),
            template_regions=tuple(regions),
            body_text=source.text(body),
            body_line=source.line(body),
            body_column=source.column(body),
        )

    def _parameters(
        self, node: Node
    ) -> tuple[tuple[str, ...], frozenset[str], dict[str, str]]:
        source = self._source
        single = node.child_by_field_name("parameter")
        formal = node.child_by_field_name("parameters")
        patterns: list[Node] = []
        if single is not None:
            patterns.append(single)
        elif formal is not None:
            for param in formal.named_children:
                if param.type in {"required_parameter", "optional_parameter"}:
                    pattern = param.child_by_field_name("pattern")
                    if pattern is not None:
                        patterns.append(pattern)
                elif param.type != "comment":
                    patterns.append(param)

        names: list[str] = []
        destructured: dict[str, str] = {}
        for pattern in patterns:
            if pattern.type == "identifier":
                names.append(source.text(pattern))
            elif pattern.type == "object_pattern":
                names.append(source.text(pattern))
                destructured.update(self._destructured_names(pattern))
            else:
                names.append(source.text(pattern))

        if patterns and patterns[0].type == "identifier":
            roots = frozenset({source.text(patterns[0])})
        elif patterns:
            roots = frozenset()
        else:
            roots = frozenset({DEFAULT_PROPS_PARAM})
        return tuple(names), roots, destructured

    def _destructured_names(self, pattern: Node) -> dict[str, str]:
        """Map local binding name -> prop name for an object destructuring pattern."""

        source = self._source
        mapping: dict[str, str] = {}
        for member in pattern.named_children:
            if member.type == "shorthand_property_identifier_pattern":
                name = source.text(member)
                mapping[name] = name
            elif member.type == "object_assignment_pattern":
                left = member.child_by_field_name("left")
                if left is not None:
                    name = source.text(left)
                    mapping[name] = name
            elif member.type == "pair_pattern":
                key = property_key(member.child_by_field_name("key"), source)
                value = member.child_by_field_name("value")
                if key is None or value is None:
                    continue
                if value.type == "assignment_pattern":
                    value = value.child_by_field_name("left") or value
                if value.type == "identifier":
                    mapping[source.text(value)] = key
        return mapping

    def _reference(
        self,
        node: Node,
        roots: frozenset[str],
        destructured: dict[str, str],
    ) -> PropsReference | None:
        source = self._source
        if node.type == "member_expression":
            obj = node.child_by_field_name("object")
            prop = node.child_by_field_name("property")
            if (
                obj is not None
                and prop is not None
                and obj.type == "identifier"
                and source.text(obj) in roots
                and prop.type == "property_identifier"
            ):
                return PropsReference(
                    name=source.text(prop), line=source.line(node), column=source.column(node)
                )
        elif node.type == "identifier" and destructured:
            name = destructured.get(source.text(node))
            if name is not None:
                return PropsReference(name=name, line=source.line(node), column=source.column(node))
        return None

    def _disallowed(self, node: Node) -> DisallowedExpression | None:
        source = self._source
        line, column = source.line(node), source.column(node)
        if node.type == "ternary_expression":
            return DisallowedExpression(kind=ExpressionKind.TERNARY, line=line, column=column)
        if node.type == "binary_expression":
            operator_node = node.child_by_field_name("operator")
            operator = source.text(operator_node) if operator_node is not None else None
            kind = (
                ExpressionKind.LOGICAL if operator in _LOGICAL_OPERATORS else ExpressionKind.BINARY
            )
            return DisallowedExpression(kind=kind, line=line, column=column, operator=operator)
        if node.type == "unary_expression":
            operator_node = node.child_by_field_name("operator")
            operator = source.text(operator_node) if operator_node is not None else None
            if operator in _CONDITIONAL_UNARY_OPERATORS:
                return DisallowedExpression(
                    kind=ExpressionKind.UNARY, line=line, column=column, operator=operator
                )
        if node.type == "template_string" and _inside_substitution(node):
            return DisallowedExpression(
                kind=ExpressionKind.NESTED_TEMPLATE, line=line, column=column
            )
        return None

    def _template_region(self, node: Node) -> TemplateRegion | None:
        source = self._source
        if node.type == "template_string":
            return TemplateRegion(
                kind="template", text=self._static_text(node), line=source.line(node)
            )
        if node.type == "jsx_attribute":
            value = next(
                (child for child in node.named_children if child.type == "string"), None
            )
            if value is not None:
                return TemplateRegion(
                    kind="attribute", text=source.text(node), line=source.line(node)
                )
        return None

    def _static_text(self, template: Node) -> str:
        """Template text with every ``${...}`` substitution blanked (newlines kept)."""

        data = self._source.data
        chunks: list[bytes] = []
        cursor = template.start_byte
        for child in template.children:
            if child.type != "template_substitution":
                continue
            chunks.append(data[cursor : child.start_byte])
            blanked = bytes(b if b == 0x0A else 0x20 for b in data[child.start_byte : child.end_byte])
            chunks.append(blanked)
            cursor = child.end_byte
        chunks.append(data[cursor : template.end_byte])
        return b"".join(chunks).decode("utf-8", errors="replace")


def _inside_substitution(node: Node) -> bool:
    parent = node.parent
    while parent is not None:
        if parent.type == "template_substitution":
            return True
        parent = parent.parent
    return False


__all__ = [
    "CODE_CONNECT_MODULE",
    "DEFAULT_NAMESPACE",
    "extract_ir",
    "is_code_connect_source",
    "resolve_namespace",
]
