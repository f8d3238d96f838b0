"""
Semantic model reader.

Builds a UnitModel from Python source using the built-in ast module. The
source is never executed: marker decorators and JsonKey(...) options are
decoded with ast.literal_eval.
"""

from __future__ import annotations

import ast
import io
import logging
from dataclasses import dataclass
from typing import Any

from ..config import ClassOverride, FieldOverride
from ..errors import ClassNotFoundError, ConfigurationError, InvalidGenerationSourceError
from .nodes import AnnotatedElement, ClassModel, ConstructorParam, EnumModel, FieldDescriptor, TypeKind, TypeRef, UnitModel

logger = logging.getLogger(__name__)

SERIALIZABLE_TRIGGER = "json_serializable"
ENUM_TRIGGER = "json_enum"

KEY_MARKERS = {"JsonKey", "json_key"}

# Field options kept as source expressions instead of literal values
_EXPRESSION_OPTIONS = {"default_value", "from_json", "to_json"}

_ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}

_SIMPLE_TYPES: dict[str, TypeRef] = {
    "int": TypeRef(TypeKind.PRIMITIVE, "int"),
    "float": TypeRef(TypeKind.PRIMITIVE, "float"),
    "str": TypeRef(TypeKind.PRIMITIVE, "str"),
    "bool": TypeRef(TypeKind.PRIMITIVE, "bool"),
    "Any": TypeRef(TypeKind.ANY, "Any"),
    "object": TypeRef(TypeKind.ANY, "object"),
    "datetime": TypeRef(TypeKind.DATETIME, "datetime"),
    "date": TypeRef(TypeKind.DATE, "date"),
    "Decimal": TypeRef(TypeKind.DECIMAL, "Decimal"),
    "UUID": TypeRef(TypeKind.UUID, "UUID"),
}

# Generic container name -> (kind, runtime constructor name)
_CONTAINERS: dict[str, tuple[TypeKind, str]] = {
    "list": (TypeKind.LIST, "list"),
    "List": (TypeKind.LIST, "list"),
    "Sequence": (TypeKind.LIST, "list"),
    "Iterable": (TypeKind.LIST, "list"),
    "set": (TypeKind.SET, "set"),
    "Set": (TypeKind.SET, "set"),
    "frozenset": (TypeKind.SET, "frozenset"),
    "FrozenSet": (TypeKind.SET, "frozenset"),
    "tuple": (TypeKind.TUPLE, "tuple"),
    "Tuple": (TypeKind.TUPLE, "tuple"),
    "dict": (TypeKind.DICT, "dict"),
    "Dict": (TypeKind.DICT, "dict"),
    "Mapping": (TypeKind.DICT, "dict"),
}


def _simple_name(node: ast.expr) -> str | None:
    """Name of a Name or the last part of an Attribute (typing.Any -> Any)."""
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def _parse_string_annotation(text: str, element: str) -> ast.expr:
    try:
        return ast.parse(text, mode="eval").body
    except SyntaxError as e:
        raise InvalidGenerationSourceError(f"Failed to parse annotation \"{text}\": {e.msg}", element=element) from e


def _decorator_name(node: ast.expr) -> str | None:
    if isinstance(node, ast.Call):
        return _simple_name(node.func)
    return _simple_name(node)


def _literal_keywords(call: ast.Call, element: str, expression_options: set[str] = frozenset()) -> dict[str, Any]:
    """Decode the keyword arguments of a marker call."""
    if call.args:
        raise ConfigurationError("Options must be passed as keyword arguments.", element=element)
    options: dict[str, Any] = {}
    for keyword in call.keywords:
        if keyword.arg is None:
            raise ConfigurationError("Options cannot be unpacked with **.", element=element)
        if keyword.arg in expression_options:
            options[keyword.arg] = ast.unparse(keyword.value)
            continue
        try:
            options[keyword.arg] = ast.literal_eval(keyword.value)
        except ValueError as e:
            raise ConfigurationError(f'Option "{keyword.arg}" must be a literal value.', element=element) from e
    return options


@dataclass
class _FieldAnnotation:
    type_ref: TypeRef
    is_final: bool = False
    is_class_var: bool = False
    override: FieldOverride | None = None


class SourceModelReader:
    """Reads the classes and enums of one Python module."""

    def read(self, path: str, source: str) -> UnitModel:
        """Build the semantic model of a unit.

        Args:
            path: Path of the unit, recorded on the model
            source: Source text snapshot

        Returns:
            The unit model

        Raises:
            InvalidGenerationSourceError: If the source cannot be parsed
            ConfigurationError: If marker options are malformed
        """
        try:
            tree = ast.parse(source)
        except SyntaxError as e:
            raise InvalidGenerationSourceError(f"Failed to parse Python code: {e}", element=path) from e

        class_nodes = [n for n in tree.body if isinstance(n, ast.ClassDef)]
        self._enum_names = {n.name for n in class_nodes if self._is_enum(n)}

        classes: list[ClassModel] = []
        enums: list[EnumModel] = []
        annotated: list[AnnotatedElement] = []

        for node in class_nodes:
            triggers = {_decorator_name(d) for d in node.decorator_list}
            if node.name in self._enum_names:
                enum_model = self._read_enum(node)
                enums.append(enum_model)
                if ENUM_TRIGGER in triggers:
                    annotated.append(AnnotatedElement(ENUM_TRIGGER, enum_model))
                continue

            class_model = self._read_class(node)
            classes.append(class_model)
            if SERIALIZABLE_TRIGGER in triggers:
                annotated.append(AnnotatedElement(SERIALIZABLE_TRIGGER, class_model))

        logger.debug("Read %s: %d classes, %d enums, %d annotated", path, len(classes), len(enums), len(annotated))
        return UnitModel(path=path, source=source, classes=tuple(classes), enums=tuple(enums), annotated=tuple(annotated))

    def _is_enum(self, node: ast.ClassDef) -> bool:
        return any(_simple_name(base) in _ENUM_BASES for base in node.bases)

    def _read_enum(self, node: ast.ClassDef) -> EnumModel:
        members = []
        for item in node.body:
            if not isinstance(item, ast.Assign) or len(item.targets) != 1 or not isinstance(item.targets[0], ast.Name):
                continue
            name = item.targets[0].id
            if name.startswith("_"):
                continue
            try:
                value = ast.literal_eval(item.value)
            except ValueError:
                # auto() and computed values serialize as the member name
                value = name
            members.append((name, value))
        return EnumModel(name=node.name, members=tuple(members))

    def _read_class(self, node: ast.ClassDef) -> ClassModel:
        type_params = self._type_params(node)
        override = None
        is_dataclass = False
        is_frozen = False
        for decorator in node.decorator_list:
            name = _decorator_name(decorator)
            if name == SERIALIZABLE_TRIGGER and isinstance(decorator, ast.Call):
                override = ClassOverride.from_dict(_literal_keywords(decorator, node.name), element=node.name)
            elif name == "dataclass":
                is_dataclass = True
                if isinstance(decorator, ast.Call):
                    options = {k.arg: k.value for k in decorator.keywords}
                    frozen = options.get("frozen")
                    is_frozen = isinstance(frozen, ast.Constant) and frozen.value is True

        fields: dict[str, FieldDescriptor] = {}
        params: list[ConstructorParam] = []
        init_node = None
        setters = self._property_setters(node)

        for item in node.body:
            if isinstance(item, ast.AnnAssign) and isinstance(item.target, ast.Name):
                annotation = self._read_annotation(item.annotation, type_params, f"{node.name}.{item.target.id}")
                if annotation.is_class_var:
                    continue
                name = item.target.id
                default_expr, has_default, in_init = self._dataclass_default(item.value)
                fields[name] = FieldDescriptor(
                    name=name,
                    type_ref=annotation.type_ref,
                    is_public=not name.startswith("_"),
                    is_final=annotation.is_final or is_frozen,
                    default_expr=default_expr,
                    override=annotation.override,
                )
                if is_dataclass and in_init:
                    params.append(ConstructorParam(name, has_default))
            elif isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)):
                if item.name == "__init__":
                    init_node = item
                elif any(_decorator_name(d) == "property" for d in item.decorator_list) and item.name not in fields:
                    annotation = self._read_annotation(item.returns, type_params, f"{node.name}.{item.name}")
                    has_setter = item.name in setters
                    fields[item.name] = FieldDescriptor(
                        name=item.name,
                        type_ref=annotation.type_ref,
                        is_public=not item.name.startswith("_"),
                        is_final=not has_setter,
                        has_setter=has_setter,
                        override=annotation.override,
                    )
            elif isinstance(item, ast.Assign) and self._is_setter_only_property(item.value):
                for target in item.targets:
                    if isinstance(target, ast.Name):
                        fields[target.id] = FieldDescriptor(name=target.id, is_public=not target.id.startswith("_"), has_getter=False)

        if init_node is not None and not is_dataclass:
            params = self._read_init(init_node, type_params, node.name, fields)

        return ClassModel(
            name=node.name,
            fields=tuple(fields.values()),
            constructor_params=tuple(params),
            type_params=type_params,
            supertype=self._supertype(node),
            override=override,
        )

    def _read_init(self, init_node: ast.FunctionDef, type_params: tuple[str, ...], class_name: str, fields: dict[str, FieldDescriptor]) -> list[ConstructorParam]:
        """Read constructor parameters and `self.x` attributes from __init__."""
        args = init_node.args
        positional = (args.posonlyargs + args.args)[1:]
        first_default = len(args.posonlyargs + args.args) - 1 - len(args.defaults)
        params = [ConstructorParam(arg.arg, index >= first_default) for index, arg in enumerate(positional)]
        params += [ConstructorParam(arg.arg, default is not None) for arg, default in zip(args.kwonlyargs, args.kw_defaults)]
        annotations = {arg.arg: arg.annotation for arg in positional + args.kwonlyargs}

        for statement in ast.walk(init_node):
            target = None
            annotation_node = None
            if isinstance(statement, ast.AnnAssign):
                target, annotation_node = statement.target, statement.annotation
            elif isinstance(statement, ast.Assign) and len(statement.targets) == 1:
                target = statement.targets[0]
                if isinstance(statement.value, ast.Name):
                    annotation_node = annotations.get(statement.value.id)
            if not (isinstance(target, ast.Attribute) and isinstance(target.value, ast.Name) and target.value.id == "self"):
                continue
            name = target.attr
            if name in fields:
                continue
            annotation = self._read_annotation(annotation_node, type_params, f"{class_name}.{name}")
            fields[name] = FieldDescriptor(
                name=name,
                type_ref=annotation.type_ref,
                is_public=not name.startswith("_"),
                is_final=annotation.is_final,
                override=annotation.override,
            )
        return params

    def _dataclass_default(self, value: ast.expr | None) -> tuple[str | None, bool, bool]:
        """Return (default expression, has default, is init parameter) of a class-level field."""
        if value is None:
            return None, False, True
        if isinstance(value, ast.Call) and _simple_name(value.func) == "field":
            options = {k.arg: k.value for k in value.keywords if k.arg}
            init = options.get("init")
            in_init = not (isinstance(init, ast.Constant) and init.value is False)
            if "default" in options:
                return ast.unparse(options["default"]), True, in_init
            return None, "default_factory" in options, in_init
        return ast.unparse(value), True, True

    def _property_setters(self, node: ast.ClassDef) -> set[str]:
        setters = set()
        for item in node.body:
            if isinstance(item, ast.FunctionDef):
                for decorator in item.decorator_list:
                    if isinstance(decorator, ast.Attribute) and decorator.attr == "setter":
                        setters.add(item.name)
        return setters

    def _is_setter_only_property(self, value: ast.expr) -> bool:
        if not (isinstance(value, ast.Call) and _simple_name(value.func) == "property"):
            return False
        keywords = {k.arg for k in value.keywords}
        has_getter = "fget" in keywords or (value.args and not (isinstance(value.args[0], ast.Constant) and value.args[0].value is None))
        has_setter = "fset" in keywords or len(value.args) > 1
        return bool(has_setter and not has_getter)

    def _type_params(self, node: ast.ClassDef) -> tuple[str, ...]:
        names = [p.name for p in getattr(node, "type_params", [])]
        for base in node.bases:
            if isinstance(base, ast.Subscript) and _simple_name(base.value) == "Generic":
                elements = base.slice.elts if isinstance(base.slice, ast.Tuple) else [base.slice]
                names.extend(e.id for e in elements if isinstance(e, ast.Name) and e.id not in names)
        return tuple(names)

    def _supertype(self, node: ast.ClassDef) -> str | None:
        for base in node.bases:
            base_name = _simple_name(base.value if isinstance(base, ast.Subscript) else base)
            if base_name not in ("Generic", "object"):
                return ast.unparse(base)
        return None

    def _read_annotation(self, node: ast.expr | None, type_params: tuple[str, ...], element: str) -> _FieldAnnotation:
        """Unwrap ClassVar/Final/Annotated and resolve the remaining type."""
        if node is None:
            return _FieldAnnotation(TypeRef(TypeKind.ANY))
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            node = _parse_string_annotation(node.value, element)

        if isinstance(node, ast.Subscript):
            wrapper = _simple_name(node.value)
            if wrapper == "ClassVar":
                return _FieldAnnotation(TypeRef(TypeKind.ANY), is_class_var=True)
            if wrapper == "Final":
                inner = self._read_annotation(node.slice, type_params, element)
                inner.is_final = True
                return inner
            if wrapper == "Annotated" and isinstance(node.slice, ast.Tuple):
                inner = self._read_annotation(node.slice.elts[0], type_params, element)
                for metadata in node.slice.elts[1:]:
                    if isinstance(metadata, ast.Call) and _simple_name(metadata.func) in KEY_MARKERS:
                        options = _literal_keywords(metadata, element, _EXPRESSION_OPTIONS)
                        inner.override = FieldOverride.from_dict(options, element=element)
                return inner
        if _simple_name(node) in ("ClassVar",):
            return _FieldAnnotation(TypeRef(TypeKind.ANY), is_class_var=True)
        if _simple_name(node) == "Final":
            return _FieldAnnotation(TypeRef(TypeKind.ANY), is_final=True)
        return _FieldAnnotation(self._resolve_type(node, type_params, element))

    def _resolve_type(self, node: ast.expr, type_params: tuple[str, ...], element: str) -> TypeRef:
        if isinstance(node, ast.Constant):
            if node.value is None:
                return TypeRef(TypeKind.ANY, "None", is_nullable=True)
            if isinstance(node.value, str):
                return self._resolve_type(_parse_string_annotation(node.value, element), type_params, element)

        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self._resolve_union(self._flatten_union(node), type_params, element)

        if isinstance(node, ast.Subscript):
            name = _simple_name(node.value)
            args = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
            if name == "Optional":
                return self._resolve_type(args[0], type_params, element).with_nullable()
            if name == "Union":
                return self._resolve_union(args, type_params, element)
            if name in _CONTAINERS:
                kind, constructor = _CONTAINERS[name]
                if kind is TypeKind.TUPLE and len(args) == 2 and isinstance(args[1], ast.Constant) and args[1].value is Ellipsis:
                    args = args[:1]
                return TypeRef(kind, constructor, tuple(self._resolve_type(a, type_params, element) for a in args))
            base = self._resolve_type(node.value, type_params, element)
            return TypeRef(base.kind, base.name, tuple(self._resolve_type(a, type_params, element) for a in args))

        name = _simple_name(node)
        if name is None:
            return TypeRef(TypeKind.ANY)
        if name in type_params:
            return TypeRef(TypeKind.TYPE_PARAM, name)
        if name in _SIMPLE_TYPES:
            return _SIMPLE_TYPES[name]
        if name in _CONTAINERS:
            kind, constructor = _CONTAINERS[name]
            return TypeRef(kind, constructor)
        if name in self._enum_names:
            return TypeRef(TypeKind.ENUM, name)
        return TypeRef(TypeKind.CLASS, name)

    def _flatten_union(self, node: ast.expr) -> list[ast.expr]:
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self._flatten_union(node.left) + self._flatten_union(node.right)
        return [node]

    def _resolve_union(self, members: list[ast.expr], type_params: tuple[str, ...], element: str) -> TypeRef:
        is_nullable = any(isinstance(m, ast.Constant) and m.value is None or _simple_name(m) == "None" for m in members)
        others = [m for m in members if not (isinstance(m, ast.Constant) and m.value is None or _simple_name(m) == "None")]
        if len(others) == 1:
            return self._resolve_type(others[0], type_params, element).with_nullable(is_nullable)
        # Unions of several types have no single conversion; values pass through
        return TypeRef(TypeKind.ANY, "Any", is_nullable=is_nullable)


@dataclass(frozen=True)
class ClassLocation:
    """Where a class declaration sits in a source snapshot.

    Offsets are character offsets into the snapshot text.
    """

    name: str
    start_offset: int  # the `class` keyword (decorators excluded)
    end_offset: int  # end of the last body statement
    body_indent: str
    method_names: frozenset[str]
    newline: str = "\n"


def _split_lines(source: str) -> list[str]:
    """Split lines on \\n, \\r\\n and \\r only, the line breaks ast counts."""
    return io.StringIO(source, newline="").readlines()


def _line_offsets(lines: list[str]) -> list[int]:
    offsets = [0]
    for line in lines:
        offsets.append(offsets[-1] + len(line))
    return offsets


def _char_offset(lines: list[str], line_offsets: list[int], lineno: int, col: int) -> int:
    """Convert an ast (1-based line, UTF-8 byte column) position to a character offset."""
    line = lines[lineno - 1]
    return line_offsets[lineno - 1] + len(line.encode("utf-8")[:col].decode("utf-8"))


def locate_class(source: str, name: str) -> ClassLocation:
    """Locate a top-level class declaration by name.

    Raises:
        ClassNotFoundError: If no top-level class has that name, its body shares the
            `class` line, or the source does not parse
    """
    try:
        tree = ast.parse(source)
    except SyntaxError as e:
        raise ClassNotFoundError(f"Cannot locate class {name}: {e}", element=name) from e

    for node in tree.body:
        if isinstance(node, ast.ClassDef) and node.name == name:
            lines = _split_lines(source)
            line_offsets = _line_offsets(lines)
            first = node.body[0]
            first_line = lines[first.lineno - 1]
            if first_line.encode("utf-8")[: first.col_offset].strip():
                raise ClassNotFoundError(f"Class {name} has a single-line body; members cannot be added to it.", element=name)
            class_line = lines[node.lineno - 1]
            newline = class_line[len(class_line.rstrip("\r\n")) :] or "\n"
            indent = first_line[: len(first_line) - len(first_line.lstrip())]
            methods = frozenset(item.name for item in node.body if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)))
            return ClassLocation(
                name=name,
                start_offset=_char_offset(lines, line_offsets, node.lineno, node.col_offset),
                end_offset=_char_offset(lines, line_offsets, node.end_lineno, node.end_col_offset),
                body_indent=indent,
                method_names=methods,
                newline=newline,
            )
    raise ClassNotFoundError(f"Class {name} was not found in the source.", element=name)
