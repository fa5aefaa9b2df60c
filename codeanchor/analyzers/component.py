"""Component metadata extraction backed by tree-sitter."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from tree_sitter import Node

from ..logging import get_logger
from ..models import ComponentMetadata, FieldMetadata
from .resolver import ModuleResolver
from .tree_sitter import ParsedSource, ParsingSession, SourceSyntaxError

_COMPONENT_NAME = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_SOURCE_SUFFIX = re.compile(r"(\.d)?\.(tsx?|jsx?|mts|cts|mjs|cjs)$")
_PROPS_MARKER = "Props"

_NAMED_DECLARATIONS = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "abstract_class_declaration",
        "interface_declaration",
        "type_alias_declaration",
        "enum_declaration",
    }
)
_VARIABLE_DECLARATIONS = frozenset({"lexical_declaration", "variable_declaration"})
_FUNCTION_VALUES = frozenset({"arrow_function", "function_expression", "function"})
_MEMBER_SEPARATORS = frozenset({";", ","})


class AnalysisError(Exception):
    """Raised when a component file cannot be turned into metadata."""

    def __init__(self, path: Path | str, cause: BaseException | str | None = None) -> None:
        self.path = str(path)
        self.cause = cause
        message = f"Failed to analyze component: {self.path}"
        if cause:
            message = f"{message} ({cause})"
        super().__init__(message)


class ComponentAnalyzer:
    """Extracts name, props, direct local imports and JSDoc presence from a component."""

    def __init__(
        self,
        session: ParsingSession | None = None,
        resolver: ModuleResolver | None = None,
    ) -> None:
        self.session = session or ParsingSession()
        self.resolver = resolver or ModuleResolver()
        self.logger = get_logger("analyzers.component")

    def analyze(self, path: Path | str) -> ComponentMetadata:
        """Return metadata for ``path`` or raise ``AnalysisError``."""
        file_path = Path(path).resolve()
        try:
            parsed = self.session.parse(file_path)
        except (OSError, SourceSyntaxError) as exc:
            raise AnalysisError(file_path, exc) from exc

        name = self._component_name(parsed)
        if not name:
            raise AnalysisError(file_path, "no component name could be resolved")

        documented = False
        defaults = _destructured_defaults(parsed)
        fields: List[FieldMetadata] = []
        for declaration in self._props_declarations(parsed):
            for member in _property_members(declaration):
                field, has_doc = self._field(parsed, member, defaults)
                fields.append(field)
                documented = documented or has_doc

        if not documented:
            documented = any(
                _jsdoc_comments(parsed, statement)
                for statement in parsed.root.named_children
                if _is_declaration(statement)
            )

        self.logger.debug("Analyzed %s: %s with %d field(s)", file_path, name, len(fields))
        return ComponentMetadata(
            name=name,
            file_path=str(file_path),
            fields=fields,
            dependencies=self._resolve_imports(parsed),
            has_documentation=documented,
        )

    def dependencies(self, path: Path | str) -> List[str]:
        """Return the direct local imports of ``path``.

        Read and parse failures propagate so callers can decide how to treat them.
        """
        parsed = self.session.parse(Path(path).resolve())
        return self._resolve_imports(parsed)

    # ------------------------------------------------------------------
    # Name resolution

    def _component_name(self, parsed: ParsedSource) -> str:
        for name in _exported_names(parsed):
            if _COMPONENT_NAME.match(name):
                return name
        return _SOURCE_SUFFIX.sub("", parsed.path.name)

    # ------------------------------------------------------------------
    # Props

    @staticmethod
    def _props_declarations(parsed: ParsedSource) -> Iterator[Node]:
        for statement in parsed.root.named_children:
            declaration = _unwrap_export(statement)
            if declaration is None:
                continue
            if declaration.type not in {"interface_declaration", "type_alias_declaration"}:
                continue
            name_node = declaration.child_by_field_name("name")
            if name_node is not None and _PROPS_MARKER in parsed.text(name_node):
                yield declaration

    def _field(
        self, parsed: ParsedSource, member: Node, defaults: Dict[str, str]
    ) -> tuple[FieldMetadata, bool]:
        name = _strip_quotes(parsed.text(member.child_by_field_name("name")))
        annotation = member.child_by_field_name("type")
        type_signature = "any"
        if annotation is not None and annotation.named_children:
            type_signature = " ".join(parsed.text(annotation.named_children[0]).split())

        docs = _jsdoc_comments(parsed, member)
        description: Optional[str] = None
        default_value: Optional[str] = None
        if docs:
            description, default_value = _parse_jsdoc(docs[0])
        if default_value is None:
            default_value = defaults.get(name)

        optional = any(child.type == "?" for child in member.children)
        return (
            FieldMetadata(
                name=name,
                type_signature=type_signature,
                required=not optional,
                description=description,
                default_value=default_value,
            ),
            bool(docs),
        )

    # ------------------------------------------------------------------
    # Dependencies

    def _resolve_imports(self, parsed: ParsedSource) -> List[str]:
        dependencies: List[str] = []
        for statement in parsed.root.named_children:
            if statement.type != "import_statement":
                continue
            source = statement.child_by_field_name("source")
            if source is None:
                continue
            resolved = self.resolver.resolve(_strip_quotes(parsed.text(source)), parsed.path)
            if resolved is None or resolved == parsed.path:
                continue
            resolved_str = str(resolved)
            if resolved_str not in dependencies:
                dependencies.append(resolved_str)
        return dependencies


def _unwrap_export(statement: Node) -> Optional[Node]:
    if statement.type == "export_statement":
        return statement.child_by_field_name("declaration")
    return statement


def _is_declaration(statement: Node) -> bool:
    declaration = _unwrap_export(statement)
    if declaration is None:
        return statement.type == "export_statement"
    return declaration.type in _NAMED_DECLARATIONS or declaration.type in _VARIABLE_DECLARATIONS


def _is_default_export(statement: Node) -> bool:
    return any(child.type == "default" for child in statement.children)


def _exported_names(parsed: ParsedSource) -> Iterator[str]:
    for statement in parsed.root.named_children:
        if statement.type != "export_statement" or _is_default_export(statement):
            continue
        declaration = statement.child_by_field_name("declaration")
        if declaration is not None:
            yield from _declared_names(parsed, declaration)
            continue
        for clause in statement.named_children:
            if clause.type != "export_clause":
                continue
            for specifier in clause.named_children:
                if specifier.type != "export_specifier":
                    continue
                exported = specifier.child_by_field_name("alias") or specifier.child_by_field_name("name")
                if exported is not None:
                    yield parsed.text(exported)


def _declared_names(parsed: ParsedSource, declaration: Node) -> Iterator[str]:
    if declaration.type in _NAMED_DECLARATIONS:
        name_node = declaration.child_by_field_name("name")
        if name_node is not None:
            yield parsed.text(name_node)
    elif declaration.type in _VARIABLE_DECLARATIONS:
        for declarator in declaration.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is not None and name_node.type == "identifier":
                yield parsed.text(name_node)


def _property_members(declaration: Node) -> Iterator[Node]:
    if declaration.type == "interface_declaration":
        body = declaration.child_by_field_name("body")
    else:
        body = declaration.child_by_field_name("value")
        if body is not None and body.type != "object_type":
            body = None
    if body is None:
        return
    for member in body.named_children:
        if member.type == "property_signature" and member.child_by_field_name("name") is not None:
            yield member


def _jsdoc_comments(parsed: ParsedSource, node: Node) -> List[str]:
    """Return the JSDoc blocks directly attached to ``node`` in source order."""
    comments: List[str] = []
    sibling = node.prev_sibling
    while sibling is not None:
        if sibling.type in _MEMBER_SEPARATORS:
            sibling = sibling.prev_sibling
            continue
        if sibling.type != "comment":
            break
        text = parsed.text(sibling)
        if text.startswith("/**"):
            comments.append(text)
        sibling = sibling.prev_sibling
    comments.reverse()
    return comments


def _parse_jsdoc(comment: str) -> tuple[Optional[str], Optional[str]]:
    """Split a JSDoc block into its description and ``@default`` tag value."""
    body = comment[3:]
    if body.endswith("*/"):
        body = body[:-2]

    description: List[str] = []
    default_value: Optional[str] = None
    in_tags = False
    for raw in body.splitlines():
        line = raw.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        if line.startswith("@"):
            in_tags = True
            tag, _, value = line.partition(" ")
            if tag in {"@default", "@defaultValue"} and value.strip():
                default_value = value.strip()
            continue
        if not in_tags:
            description.append(line)

    text = "\n".join(description).strip()
    return (text or None), default_value


def _destructured_defaults(parsed: ParsedSource) -> Dict[str, str]:
    """Best-effort ``{ name = value }`` defaults from top-level component parameters.

    Only object patterns written directly in a parameter list are inspected, so a
    default assigned any other way is not reported.
    """
    defaults: Dict[str, str] = {}
    for function in _top_level_functions(parsed.root.named_children):
        parameters = function.child_by_field_name("parameters")
        if parameters is None:
            continue
        for parameter in parameters.named_children:
            pattern = parameter.child_by_field_name("pattern")
            if pattern is None or pattern.type != "object_pattern":
                continue
            for prop in pattern.named_children:
                if prop.type == "object_assignment_pattern":
                    left = prop.child_by_field_name("left")
                    right = prop.child_by_field_name("right")
                elif prop.type == "pair_pattern":
                    left = prop.child_by_field_name("key")
                    value = prop.child_by_field_name("value")
                    if value is None or value.type != "assignment_pattern":
                        continue
                    right = value.child_by_field_name("right")
                else:
                    continue
                if left is not None and right is not None:
                    defaults.setdefault(_strip_quotes(parsed.text(left)), parsed.text(right))
    return defaults


def _top_level_functions(statements: Iterable[Node]) -> Iterator[Node]:
    for statement in statements:
        if statement.type == "export_statement":
            inner = statement.child_by_field_name("declaration") or statement.child_by_field_name("value")
            if inner is None:
                continue
            statement = inner
        if statement.type in {"function_declaration", "generator_function_declaration"}:
            yield statement
        elif statement.type in _FUNCTION_VALUES:
            yield statement
        elif statement.type in _VARIABLE_DECLARATIONS:
            for declarator in statement.named_children:
                value = declarator.child_by_field_name("value") if declarator.type == "variable_declarator" else None
                if value is not None:
                    yield from _function_values(value)
        elif statement.type == "call_expression":
            yield from _function_values(statement)


def _function_values(value: Node) -> Iterator[Node]:
    if value.type in _FUNCTION_VALUES:
        yield value
    elif value.type == "call_expression":
        # forwardRef(...), memo(...) and similar wrappers
        arguments = value.child_by_field_name("arguments")
        if arguments is not None:
            for argument in arguments.named_children:
                if argument.type in _FUNCTION_VALUES:
                    yield argument


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {"'", '"', "`"}:
        return text[1:-1]
    return text


__all__ = ["AnalysisError", "ComponentAnalyzer"]
