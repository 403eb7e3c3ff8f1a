"""Kubernetes TypeScript types generator.

Generates typed declarations from the Kubernetes OpenAPI (swagger.json) document.
Produces one `.d.ts` module per API group/version plus an `index.d.ts` barrel
under types/v<release>/.

Usage:
    python k8s_types_gen.py --api v1.30 --patch 0
    python k8s_types_gen.py --file swagger.json --patch 1 --beta 2
"""

import argparse
import json
import posixpath
import re
import shutil
import sys
import urllib.request
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from collections.abc import Iterator
from typing import NamedTuple

PROJECT_ROOT = Path(__file__).resolve().parent
ASSETS_DIR = PROJECT_ROOT / "assets"
DEFAULT_OUTPUT_ROOT = PROJECT_ROOT / "types"
DEFAULT_API_REF = "master"
DEFAULT_TIMEOUT_SECONDS = 60.0
SWAGGER_URL_TEMPLATE = (
    "https://raw.githubusercontent.com/kubernetes/kubernetes/"
    "{ref}/api/openapi-spec/swagger.json"
)


# ===--- CLI config contracts ---=== #


@dataclass(frozen=True)
class GenerateConfig:
    api_ref: str
    file: Path | None
    patch: int
    beta: int | None
    output_root: Path
    timeout: float


@dataclass(frozen=True)
class DiscoveryConfig:
    command: str
    api_ref: str
    file: Path | None
    timeout: float


VALID_ERROR_CODES = {
    "INVALID_API_REF",
    "INVALID_PATCH",
    "INVALID_BETA",
    "INVALID_TIMEOUT",
    "CONFLICT_GENERATE_DISCOVERY",
    "PATH_NOT_FOUND",
    "UNVERSIONED_API",
}
_API_REF_RE = re.compile(r"^(master|v?\d+\.\d+(\.\d+)?(-[0-9A-Za-z.]+)?)$")


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


def validate_api_ref(raw: str) -> str:
    if _API_REF_RE.match(raw):
        return raw
    raise ConfigError(
        "INVALID_API_REF",
        f"Invalid Kubernetes API version: {raw}",
        "Use a release such as 1.30, v1.30 or v1.30.2, or 'master'.",
    )


def validate_patch(value: int) -> int:
    if value < 0:
        raise ConfigError(
            "INVALID_PATCH",
            f"Patch version must not be negative: {value}",
            "Pass --patch 0 for the first release of a Kubernetes minor version.",
        )
    return value


def validate_beta(value: int | None) -> int | None:
    if value is None:
        return None
    if value < 0:
        raise ConfigError(
            "INVALID_BETA",
            f"Beta number must not be negative: {value}",
            "Beta releases start at --beta 1; --beta 0 means a stable release.",
        )
    # --beta 0 is a stable release.
    return value or None


def validate_timeout(value: float) -> float:
    if value <= 0:
        raise ConfigError(
            "INVALID_TIMEOUT",
            f"Timeout must be positive: {value}",
            "Pass --timeout in seconds, for example --timeout 30.",
        )
    return value


def validate_path_exists(
    path: Path | None, flag: str, suggestion: str | None = None
) -> Path:
    if path is None:
        raise ConfigError(
            "PATH_NOT_FOUND",
            f"{flag} is required: no path provided.",
            suggestion or f"Pass the path explicitly: {flag} /path/to/resource",
        )
    if path.exists():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Path for {flag} does not exist: {path}",
        suggestion or "Provide an existing path for this flag.",
    )


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate TypeScript types for the Kubernetes API"
    )

    parser.add_argument(
        "-a", "--api", type=str, default=DEFAULT_API_REF, help="Kubernetes API version"
    )
    parser.add_argument(
        "-f", "--file", type=Path, default=None, help="Path to local swagger.json file"
    )
    parser.add_argument(
        "-p",
        "--patch",
        type=int,
        default=0,
        help="Patch version of generated types",
    )
    parser.add_argument("--beta", type=int, default=None, help="Create a beta release")
    parser.add_argument("--output-root", type=Path, default=DEFAULT_OUTPUT_ROOT)
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_SECONDS)
    parser.add_argument("--list-modules", action="store_true", default=False)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def validate_config(args: argparse.Namespace) -> GenerateConfig | DiscoveryConfig:
    api_ref = validate_api_ref(args.api)
    timeout = validate_timeout(args.timeout)
    file = (
        validate_path_exists(
            args.file,
            "--file",
            "Download a swagger.json first, or drop --file to fetch it:\n"
            "  --api v1.30",
        )
        if args.file is not None
        else None
    )

    if args.list_modules:
        if args.patch != 0 or args.beta:
            raise ConfigError(
                "CONFLICT_GENERATE_DISCOVERY",
                "--patch and --beta cannot be combined with --list-modules.",
                "Choose either generate mode or --list-modules.",
            )
        return DiscoveryConfig(
            command="list-modules",
            api_ref=api_ref,
            file=file,
            timeout=timeout,
        )

    return GenerateConfig(
        api_ref=api_ref,
        file=file,
        patch=validate_patch(args.patch),
        beta=validate_beta(args.beta),
        output_root=args.output_root,
        timeout=timeout,
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig | DiscoveryConfig:
    return validate_config(parse_args(argv))


# ===--- Generation errors ---=== #


class GenerationError(Exception):
    """Base class for every error that aborts a generation run.

    Attributes:
        kind: Stable error kind reported at the CLI boundary.
        definition: Definition name being processed when the error was
            raised, or None for document-level failures.
        message: Human-readable description without the definition prefix.
    """

    kind = "GenerationError"

    def __init__(self, message: str, definition: str | None = None):
        super().__init__(message)
        self.message = message
        self.definition = definition

    def __str__(self) -> str:
        if self.definition is None:
            return self.message
        return f"{self.definition}: {self.message}"


class SchemaReferenceError(GenerationError):
    kind = "ReferenceError"

    def __init__(self, target: str, definition: str | None = None):
        super().__init__(f"dangling reference to undefined name '{target}'", definition)
        self.target = target


class CyclicReferenceError(GenerationError):
    kind = "CyclicReferenceError"

    def __init__(self, chain: tuple[str, ...], definition: str | None = None):
        super().__init__(
            "reference cycle without array or object indirection: "
            + " -> ".join(chain),
            definition,
        )
        self.chain = chain


class UnsupportedSchemaError(GenerationError):
    kind = "UnsupportedSchemaError"


class NamingCollisionError(GenerationError):
    kind = "NamingCollisionError"


# ===--- Schema nodes ---=== #

REF_PREFIX = "#/definitions/"

PATCH_STRATEGIES = {"merge", "retainKeys", "replace"}
LIST_TYPES = {"atomic", "set", "map"}
MAP_TYPES = {"atomic", "granular"}
COMPOSITE_OPERATORS = ("allOf", "oneOf", "anyOf")
PRIMITIVE_SCHEMA_TYPES = {"string", "integer", "number", "boolean"}

# Keys that describe a node without changing its shape.
_DESCRIPTIVE_KEYS = {"description", "default", "title", "example", "nullable"}


class GroupVersionKind(NamedTuple):
    group: str
    version: str
    kind: str


@dataclass(frozen=True)
class KubernetesExtensions:
    """Kubernetes `x-kubernetes-*` annotations attached to one schema node.

    Stored parsed but uninterpreted; the extension interpreter functions turn
    them into facts for the emitter.
    """

    group_version_kinds: tuple[GroupVersionKind, ...] = ()
    patch_strategy: tuple[str, ...] = ()
    patch_merge_key: str | None = None
    list_type: str | None = None
    list_map_keys: tuple[str, ...] = ()
    map_type: str | None = None
    int_or_string: bool = False
    preserve_unknown_fields: bool = False


NO_EXTENSIONS = KubernetesExtensions()


@dataclass(frozen=True)
class PrimitiveSchema:
    type: str
    format: str | None = None
    description: str | None = None
    extensions: KubernetesExtensions = NO_EXTENSIONS


@dataclass(frozen=True)
class ArraySchema:
    items: "SchemaNode"
    description: str | None = None
    extensions: KubernetesExtensions = NO_EXTENSIONS


@dataclass(frozen=True)
class ObjectSchema:
    properties: tuple[tuple[str, "SchemaNode"], ...] = ()
    required: frozenset[str] = frozenset()
    additional_properties: "SchemaNode | None" = None
    description: str | None = None
    extensions: KubernetesExtensions = NO_EXTENSIONS


@dataclass(frozen=True)
class ReferenceSchema:
    target: str
    description: str | None = None
    extensions: KubernetesExtensions = NO_EXTENSIONS


@dataclass(frozen=True)
class CompositeSchema:
    operator: str
    operands: tuple["SchemaNode", ...]
    description: str | None = None
    extensions: KubernetesExtensions = NO_EXTENSIONS


@dataclass(frozen=True)
class AnySchema:
    description: str | None = None
    extensions: KubernetesExtensions = NO_EXTENSIONS


SchemaNode = (
    PrimitiveSchema
    | ArraySchema
    | ObjectSchema
    | ReferenceSchema
    | CompositeSchema
    | AnySchema
)


def _parse_group_version_kinds(raw: object, path: str) -> tuple[GroupVersionKind, ...]:
    if not isinstance(raw, list):
        raise UnsupportedSchemaError(
            f"{path}: x-kubernetes-group-version-kind must be a list"
        )
    entries: list[GroupVersionKind] = []
    for entry in raw:
        if not isinstance(entry, dict) or "version" not in entry or "kind" not in entry:
            raise UnsupportedSchemaError(
                f"{path}: malformed x-kubernetes-group-version-kind entry {entry!r}"
            )
        entries.append(
            GroupVersionKind(
                str(entry.get("group", "")), str(entry["version"]), str(entry["kind"])
            )
        )
    return tuple(entries)


def parse_extensions(raw: dict, path: str) -> KubernetesExtensions:
    """Parse the `x-kubernetes-*` keys of one raw schema node.

    Raises:
        UnsupportedSchemaError: An annotation carries a value outside the
            Kubernetes vocabulary (unknown list type, patch strategy, ...).
    """
    if not any(key.startswith("x-kubernetes-") for key in raw):
        return NO_EXTENSIONS

    gvks: tuple[GroupVersionKind, ...] = ()
    if "x-kubernetes-group-version-kind" in raw:
        gvks = _parse_group_version_kinds(raw["x-kubernetes-group-version-kind"], path)

    patch_strategy: tuple[str, ...] = ()
    raw_strategy = raw.get("x-kubernetes-patch-strategy")
    if raw_strategy:
        parts = [part.strip() for part in str(raw_strategy).split(",")]
        unknown = [part for part in parts if part not in PATCH_STRATEGIES and part != "none"]
        if unknown:
            raise UnsupportedSchemaError(
                f"{path}: unknown x-kubernetes-patch-strategy {', '.join(unknown)}"
            )
        patch_strategy = tuple(part for part in parts if part != "none")

    list_type = raw.get("x-kubernetes-list-type")
    if list_type is not None and list_type not in LIST_TYPES:
        raise UnsupportedSchemaError(
            f"{path}: unknown x-kubernetes-list-type {list_type!r}"
        )

    map_type = raw.get("x-kubernetes-map-type")
    if map_type is not None and map_type not in MAP_TYPES:
        raise UnsupportedSchemaError(f"{path}: unknown x-kubernetes-map-type {map_type!r}")

    return KubernetesExtensions(
        group_version_kinds=gvks,
        patch_strategy=patch_strategy,
        patch_merge_key=raw.get("x-kubernetes-patch-merge-key"),
        list_type=list_type,
        list_map_keys=tuple(raw.get("x-kubernetes-list-map-keys", ())),
        map_type=map_type,
        int_or_string=bool(raw.get("x-kubernetes-int-or-string", False)),
        preserve_unknown_fields=bool(
            raw.get("x-kubernetes-preserve-unknown-fields", False)
        ),
    )


def parse_schema_node(raw: object, path: str = "$") -> SchemaNode:
    """Convert one raw JSON schema object into a typed SchemaNode.

    Args:
        raw: Decoded JSON value for the node.
        path: JSON path of the node inside its definition, e.g. "$.properties.spec".

    Returns:
        The SchemaNode variant matching the node's shape keywords.

    Raises:
        UnsupportedSchemaError: The node has no defined mapping (type lists,
            unknown types, arrays without items, mixed composites, ...).
    """
    if not isinstance(raw, dict):
        raise UnsupportedSchemaError(f"{path}: schema must be an object, got {raw!r}")

    description = raw.get("description")
    extensions = parse_extensions(raw, path)

    if "$ref" in raw:
        ref = raw["$ref"]
        if not isinstance(ref, str) or not ref.startswith(REF_PREFIX):
            raise UnsupportedSchemaError(f"{path}: unsupported $ref {ref!r}")
        return ReferenceSchema(ref[len(REF_PREFIX) :], description, extensions)

    operators = [op for op in COMPOSITE_OPERATORS if op in raw]
    if operators:
        if len(operators) > 1:
            raise UnsupportedSchemaError(
                f"{path}: cannot combine {' and '.join(operators)}"
            )
        operator = operators[0]
        shape_keys = {
            key
            for key in raw
            if key != operator
            and key not in _DESCRIPTIVE_KEYS
            and not key.startswith("x-")
        }
        if shape_keys:
            raise UnsupportedSchemaError(
                f"{path}: {operator} combined with {', '.join(sorted(shape_keys))}"
            )
        raw_operands = raw[operator]
        if not isinstance(raw_operands, list) or not raw_operands:
            raise UnsupportedSchemaError(f"{path}: {operator} needs at least one schema")
        operands = tuple(
            parse_schema_node(operand, f"{path}.{operator}[{index}]")
            for index, operand in enumerate(raw_operands)
        )
        return CompositeSchema(operator, operands, description, extensions)

    schema_type = raw.get("type")
    if isinstance(schema_type, list):
        raise UnsupportedSchemaError(f"{path}: type lists are not supported")

    if schema_type == "object" or (
        schema_type is None and ("properties" in raw or "additionalProperties" in raw)
    ):
        properties = raw.get("properties", {})
        if not isinstance(properties, dict):
            raise UnsupportedSchemaError(f"{path}: properties must be an object")
        parsed_properties = tuple(
            (name, parse_schema_node(prop, f"{path}.properties.{name}"))
            for name, prop in properties.items()
        )
        additional = raw.get("additionalProperties")
        if additional is True:
            additional_node: SchemaNode | None = AnySchema()
        elif additional is None or additional is False:
            additional_node = None
        else:
            additional_node = parse_schema_node(
                additional, f"{path}.additionalProperties"
            )
        return ObjectSchema(
            properties=parsed_properties,
            required=frozenset(raw.get("required", ())),
            additional_properties=additional_node,
            description=description,
            extensions=extensions,
        )

    if schema_type == "array":
        if "items" not in raw:
            raise UnsupportedSchemaError(f"{path}: array without items")
        if isinstance(raw["items"], list):
            raise UnsupportedSchemaError(f"{path}: tuple-typed arrays are not supported")
        return ArraySchema(
            parse_schema_node(raw["items"], f"{path}.items"), description, extensions
        )

    if schema_type in PRIMITIVE_SCHEMA_TYPES:
        return PrimitiveSchema(schema_type, raw.get("format"), description, extensions)

    if schema_type is None:
        return AnySchema(description, extensions)

    raise UnsupportedSchemaError(f"{path}: unsupported type {schema_type!r}")


# ===--- Schema store ---=== #


class SchemaStore:
    """Read-only index of every definition in one schema document.

    Built once per run; definitions keep the order of the source document.
    """

    def __init__(self, api_version: str, definitions: tuple[tuple[str, SchemaNode], ...]):
        self.api_version = api_version
        self._definitions = definitions
        self._index = dict(definitions)

    @classmethod
    def from_document(cls, document: dict) -> "SchemaStore":
        if not isinstance(document, dict):
            raise UnsupportedSchemaError("schema document must be a JSON object")
        info = document.get("info")
        version = info.get("version") if isinstance(info, dict) else None
        if not isinstance(version, str) or not version:
            raise UnsupportedSchemaError("schema document has no info.version")
        raw_definitions = document.get("definitions", {})
        if not isinstance(raw_definitions, dict):
            raise UnsupportedSchemaError("schema document definitions must be an object")

        parsed: list[tuple[str, SchemaNode]] = []
        for name, raw in raw_definitions.items():
            try:
                node = parse_schema_node(raw)
            except GenerationError as err:
                err.definition = name
                raise
            parsed.append((name, node))
        return cls(version, tuple(parsed))

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._definitions)

    def resolve(self, name: str) -> SchemaNode:
        try:
            return self._index[name]
        except KeyError:
            raise SchemaReferenceError(name) from None

    def all_definitions(self) -> tuple[tuple[str, SchemaNode], ...]:
        return self._definitions


# ===--- Extension interpreter ---=== #

CORE_GROUP_MODULE = "core"


@dataclass(frozen=True)
class ListPolicy:
    """Merge semantics of a list or map property during partial updates.

    Documentation only; never changes the generated type shape. type is
    "atomic" when x-kubernetes-list-type is absent; type_declared tells the
    two apart.
    """

    type: str = "atomic"
    merge_key: str | None = None
    map_keys: tuple[str, ...] = ()
    patch_strategy: tuple[str, ...] = ()
    type_declared: bool = False
    map_type: str | None = None


DEFAULT_LIST_POLICY = ListPolicy()


def identities_of(node: SchemaNode) -> tuple[GroupVersionKind, ...]:
    if not isinstance(node, ObjectSchema):
        return ()
    return node.extensions.group_version_kinds


def identity_of(node: SchemaNode) -> GroupVersionKind | None:
    """Return the single resource identity of an object node, if it has one.

    Shared types such as DeleteOptions list one identity per API group; they
    are not owned by any single group/version and report None.
    """
    gvks = identities_of(node)
    if not gvks:
        return None
    group_versions = {(gvk.group, gvk.version) for gvk in gvks}
    if len(group_versions) > 1:
        return None
    return gvks[0]


def list_policy_of(node: SchemaNode) -> ListPolicy:
    ext = node.extensions
    if ext is NO_EXTENSIONS:
        return DEFAULT_LIST_POLICY
    return ListPolicy(
        type=ext.list_type or "atomic",
        merge_key=ext.patch_merge_key,
        map_keys=ext.list_map_keys,
        patch_strategy=ext.patch_strategy,
        type_declared=ext.list_type is not None,
        map_type=ext.map_type,
    )


def api_version_of(gvk: GroupVersionKind) -> str:
    if gvk.group == "":
        return gvk.version
    return f"{gvk.group}/{gvk.version}"


# ===--- Resolved type expressions ---=== #


@dataclass(frozen=True)
class NamedRef:
    definition: str


@dataclass(frozen=True)
class Primitive:
    name: str
    format: str | None = None


@dataclass(frozen=True)
class Literal:
    value: str


@dataclass(frozen=True)
class ArrayOf:
    element: "TypeExpr"


@dataclass(frozen=True)
class MappingOf:
    value: "TypeExpr"


@dataclass(frozen=True)
class UnionOf:
    members: tuple["TypeExpr", ...]


@dataclass(frozen=True)
class IntersectionOf:
    members: tuple["TypeExpr", ...]


@dataclass(frozen=True)
class ObjectField:
    name: str
    type: "TypeExpr"
    optional: bool
    description: str | None = None
    list_policy: ListPolicy = DEFAULT_LIST_POLICY


@dataclass(frozen=True)
class ObjectLiteral:
    fields: tuple[ObjectField, ...]


@dataclass(frozen=True)
class Opaque:
    """A cross-module reference re-expressed without an import edge."""

    definition: str


TypeExpr = (
    NamedRef
    | Primitive
    | Literal
    | ArrayOf
    | MappingOf
    | UnionOf
    | IntersectionOf
    | ObjectLiteral
    | Opaque
)

UNKNOWN = Primitive("unknown")


def iter_named_refs(expr: TypeExpr) -> Iterator[NamedRef]:
    """Yield every NamedRef in expr, depth-first in field order."""
    if isinstance(expr, NamedRef):
        yield expr
    elif isinstance(expr, ArrayOf):
        yield from iter_named_refs(expr.element)
    elif isinstance(expr, MappingOf):
        yield from iter_named_refs(expr.value)
    elif isinstance(expr, (UnionOf, IntersectionOf)):
        for member in expr.members:
            yield from iter_named_refs(member)
    elif isinstance(expr, ObjectLiteral):
        for obj_field in expr.fields:
            yield from iter_named_refs(obj_field.type)


# ===--- Type resolver ---=== #

PRIMITIVE_TYPE_MAP = {
    "string": "string",
    "integer": "number",
    "number": "number",
    "boolean": "boolean",
}

INT_OR_STRING_FORMAT = "int-or-string"
INT_OR_STRING = UnionOf((Primitive("number"), Primitive("string")))

SHAPE_INTERFACE = "interface"
SHAPE_ALIAS = "alias"

@dataclass(frozen=True)
class ResolutionContext:
    """Explicit resolution state threaded through TypeResolver.resolve.

    Attributes:
        definition: Top-level definition being resolved; named in errors.
        visiting: Reference names on the current bare chain, outermost first.
        indirect: True once an array element or object property has been
            entered. References below an indirection legally close cycles.
    """

    definition: str
    visiting: tuple[str, ...] = ()
    indirect: bool = False

    def enter(self, name: str) -> "ResolutionContext":
        return ResolutionContext(self.definition, self.visiting + (name,), self.indirect)

    def through_indirection(self) -> "ResolutionContext":
        return ResolutionContext(self.definition, (), True)


@dataclass(frozen=True)
class ResolvedDefinition:
    """Resolution result for one top-level definition.

    Attributes:
        name: Definition name from the source document.
        expr: Normalized type expression for the definition body.
        shape: SHAPE_INTERFACE or SHAPE_ALIAS.
        bases: Definition names an interface extends (allOf over references);
            empty for plain object interfaces and aliases.
        description: Definition description, if any.
        identity: Single resource identity, or None.
    """

    name: str
    expr: TypeExpr
    shape: str
    bases: tuple[str, ...] = ()
    description: str | None = None
    identity: GroupVersionKind | None = None


def _normalize(members: list[TypeExpr]) -> tuple[TypeExpr, ...]:
    unique: list[TypeExpr] = []
    for member in members:
        if member not in unique:
            unique.append(member)
    return tuple(unique)


class TypeResolver:
    """Maps schema nodes to resolved type expressions.

    References are never inlined; cycle checking follows only the bare
    chain of references and composite operands of the node being resolved.
    """

    def __init__(self, store: SchemaStore):
        self.store = store

    def resolve(self, node: SchemaNode, context: ResolutionContext) -> TypeExpr:
        if isinstance(node, ReferenceSchema):
            return self._resolve_reference(node, context)
        if isinstance(node, PrimitiveSchema):
            return self._resolve_primitive(node, context)
        if isinstance(node, ArraySchema):
            return ArrayOf(self.resolve(node.items, context.through_indirection()))
        if isinstance(node, ObjectSchema):
            return self._resolve_object(node, context)
        if isinstance(node, CompositeSchema):
            return self._resolve_composite(node, context)
        if isinstance(node, AnySchema):
            if node.extensions.int_or_string:
                return INT_OR_STRING
            return UNKNOWN
        raise UnsupportedSchemaError(
            f"no mapping for schema node {type(node).__name__}", context.definition
        )

    def resolve_definition(self, name: str) -> ResolvedDefinition:
        node = self.store.resolve(name)
        context = ResolutionContext(definition=name, visiting=(name,))
        identity = identity_of(node)
        expr = self.resolve(node, context)

        if identity is not None and isinstance(expr, ObjectLiteral):
            single_kind = len({gvk.kind for gvk in identities_of(node)}) == 1
            expr = _narrow_resource_literals(expr, identity, single_kind)

        bases = self._interface_bases(node)
        if bases:
            return ResolvedDefinition(
                name, expr, SHAPE_INTERFACE, bases, node.description, identity
            )
        shape = SHAPE_INTERFACE if isinstance(expr, ObjectLiteral) else SHAPE_ALIAS
        return ResolvedDefinition(name, expr, shape, (), node.description, identity)

    def _resolve_reference(
        self, node: ReferenceSchema, context: ResolutionContext
    ) -> TypeExpr:
        if node.target not in self.store:
            raise SchemaReferenceError(node.target, context.definition)
        if not context.indirect:
            self._check_bare_chain(node.target, context)
        return NamedRef(node.target)

    def _check_bare_chain(self, name: str, context: ResolutionContext) -> None:
        if name in context.visiting:
            raise CyclicReferenceError(context.visiting + (name,), context.definition)
        inner = context.enter(name)
        for target in _bare_reference_targets(self.store.resolve(name)):
            if target not in self.store:
                raise SchemaReferenceError(target, context.definition)
            self._check_bare_chain(target, inner)

    def _resolve_primitive(
        self, node: PrimitiveSchema, context: ResolutionContext
    ) -> TypeExpr:
        if node.format == INT_OR_STRING_FORMAT or node.extensions.int_or_string:
            return INT_OR_STRING
        try:
            return Primitive(PRIMITIVE_TYPE_MAP[node.type], node.format)
        except KeyError:
            raise UnsupportedSchemaError(
                f"no mapping for primitive type {node.type!r}", context.definition
            ) from None

    def _resolve_object(
        self, node: ObjectSchema, context: ResolutionContext
    ) -> TypeExpr:
        inner = context.through_indirection()
        if not node.properties:
            if node.additional_properties is not None:
                return MappingOf(self.resolve(node.additional_properties, inner))
            if node.extensions.preserve_unknown_fields:
                return MappingOf(UNKNOWN)
            return ObjectLiteral(())

        fields = tuple(
            ObjectField(
                name=prop_name,
                type=self.resolve(prop, inner),
                optional=prop_name not in node.required,
                description=prop.description,
                list_policy=list_policy_of(prop),
            )
            for prop_name, prop in node.properties
        )
        literal = ObjectLiteral(fields)
        if node.additional_properties is not None:
            return IntersectionOf(
                (literal, MappingOf(self.resolve(node.additional_properties, inner)))
            )
        return literal

    def _resolve_composite(
        self, node: CompositeSchema, context: ResolutionContext
    ) -> TypeExpr:
        members = _normalize([self.resolve(op, context) for op in node.operands])
        if len(members) == 1:
            return members[0]
        if node.operator == "allOf":
            return IntersectionOf(members)
        if node.operator in ("oneOf", "anyOf"):
            return UnionOf(members)
        raise UnsupportedSchemaError(
            f"no mapping for composite operator {node.operator!r}", context.definition
        )

    def _interface_bases(self, node: SchemaNode) -> tuple[str, ...]:
        if not isinstance(node, CompositeSchema) or node.operator != "allOf":
            return ()
        if not all(isinstance(op, ReferenceSchema) for op in node.operands):
            return ()
        targets = tuple(dict.fromkeys(op.target for op in node.operands))
        if len(targets) < 2:
            return ()
        if not all(self._is_interface_shaped(target) for target in targets):
            return ()
        return targets

    def _is_interface_shaped(self, name: str) -> bool:
        node = self.store.resolve(name)
        if isinstance(node, ObjectSchema):
            if node.properties:
                return node.additional_properties is None
            return (
                node.additional_properties is None
                and not node.extensions.preserve_unknown_fields
            )
        return bool(self._interface_bases(node))


def _bare_reference_targets(node: SchemaNode) -> Iterator[str]:
    if isinstance(node, ReferenceSchema):
        yield node.target
    elif isinstance(node, CompositeSchema):
        for operand in node.operands:
            yield from _bare_reference_targets(operand)


def _narrow_resource_literals(
    expr: ObjectLiteral, identity: GroupVersionKind, single_kind: bool = True
) -> ObjectLiteral:
    literals = {"apiVersion": api_version_of(identity)}
    if single_kind:
        literals["kind"] = identity.kind
    fields = []
    for obj_field in expr.fields:
        if obj_field.name in literals and obj_field.type == Primitive("string"):
            obj_field = ObjectField(
                name=obj_field.name,
                type=Literal(literals[obj_field.name]),
                optional=obj_field.optional,
                description=obj_field.description,
                list_policy=obj_field.list_policy,
            )
        fields.append(obj_field)
    return ObjectLiteral(tuple(fields))


# ===--- Module assignment ---=== #


class ModuleKey(NamedTuple):
    group: str
    version: str | None

    @property
    def path(self) -> str:
        if self.version is None:
            return self.group
        return f"{self.group}/{self.version}"

    def __str__(self) -> str:
        return self.path


META_MODULE = ModuleKey("meta", None)


def module_for_identity(gvk: GroupVersionKind) -> ModuleKey:
    return ModuleKey(gvk.group or CORE_GROUP_MODULE, gvk.version)


def referenced_definitions(resolved: ResolvedDefinition) -> tuple[str, ...]:
    names = [ref.definition for ref in iter_named_refs(resolved.expr)]
    names.extend(resolved.bases)
    return tuple(dict.fromkeys(names))


def assign_modules(
    resolved: tuple[ResolvedDefinition, ...],
) -> dict[str, ModuleKey]:
    """Place every definition in exactly one module.

    Resources with a single identity own their group/version module. Every
    other definition is reached by a breadth-first search that starts from
    all resources at once: a definition first reached from exactly one
    module joins it. A definition reached from several modules at the same
    distance is shared and goes to META_MODULE, unless it references a
    definition placed in a group module; then it joins one of its nearest
    consumers (a consumer owning such a dependency first, ties broken by
    module path), so META_MODULE never imports from a group module. The
    consumer modules (not the assignment) propagate to the next level.
    Definitions no resource reaches go to META_MODULE.

    Args:
        resolved: Resolved definitions in source order.

    Returns:
        Mapping of definition name to its module.
    """
    edges = {d.name: referenced_definitions(d) for d in resolved}
    assignment: dict[str, ModuleKey] = {}
    shared: dict[str, frozenset[ModuleKey]] = {}
    frontier: dict[str, frozenset[ModuleKey]] = {}
    for definition in resolved:
        if definition.identity is not None:
            module = module_for_identity(definition.identity)
            assignment[definition.name] = module
            frontier[definition.name] = frozenset({module})

    while frontier:
        reached: dict[str, set[ModuleKey]] = {}
        for name, consumers in frontier.items():
            for target in edges.get(name, ()):
                if target in assignment:
                    continue
                reached.setdefault(target, set()).update(consumers)
        frontier = {}
        for target, consumers in reached.items():
            if len(consumers) == 1:
                assignment[target] = next(iter(consumers))
            else:
                assignment[target] = META_MODULE
                shared[target] = frozenset(consumers)
            frontier[target] = frozenset(consumers)

    # Moving one shared definition out of meta can pull its shared referrers.
    changed = True
    while changed:
        changed = False
        for definition in resolved:
            consumers = shared.get(definition.name)
            if consumers is None or assignment[definition.name] != META_MODULE:
                continue
            dependencies = {
                assignment[target] for target in edges[definition.name] if target in assignment
            } - {META_MODULE}
            if not dependencies:
                continue
            candidates = sorted(consumers & dependencies or consumers, key=lambda k: k.path)
            assignment[definition.name] = candidates[0]
            changed = True

    for definition in resolved:
        assignment.setdefault(definition.name, META_MODULE)
    return assignment


# ===--- Declaration naming ---=== #

TS_RESERVED = {
    "any",
    "boolean",
    "break",
    "case",
    "catch",
    "class",
    "const",
    "continue",
    "debugger",
    "default",
    "delete",
    "do",
    "else",
    "enum",
    "export",
    "extends",
    "false",
    "finally",
    "for",
    "function",
    "if",
    "import",
    "in",
    "instanceof",
    "never",
    "new",
    "null",
    "number",
    "object",
    "return",
    "string",
    "super",
    "switch",
    "symbol",
    "this",
    "throw",
    "true",
    "try",
    "typeof",
    "undefined",
    "unknown",
    "var",
    "void",
    "while",
    "with",
}

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_NON_IDENTIFIER_CHARS_RE = re.compile(r"[^A-Za-z0-9_$]")


def to_identifier(name: str) -> str:
    ident = _NON_IDENTIFIER_CHARS_RE.sub("_", name)
    if not ident or ident[0].isdigit():
        ident = f"_{ident}"
    if ident in TS_RESERVED:
        ident = f"{ident}_"
    return ident


def to_pascal(segment: str) -> str:
    parts = re.split(r"[^A-Za-z0-9]+", segment)
    return "".join(part[:1].upper() + part[1:] for part in parts if part)


def assign_declaration_names(
    resolved: tuple[ResolvedDefinition, ...],
    modules: dict[str, ModuleKey],
) -> dict[str, str]:
    """Give every definition a declaration name unique within its module.

    The short name is the last dotted segment of the definition name. In
    source order, the first definition keeps it; later ones append the
    PascalCased trailing segments of their own path, one more segment at a
    time, until the name is free.

    Raises:
        NamingCollisionError: Every suffix of the definition path is taken.
    """
    taken: dict[ModuleKey, set[str]] = defaultdict(set)
    names: dict[str, str] = {}
    for definition in resolved:
        module = modules[definition.name]
        segments = definition.name.split(".")
        base = to_identifier(segments[-1])
        prefix = segments[:-1]
        candidate = base
        depth = 0
        while candidate in taken[module]:
            depth += 1
            if depth > len(prefix):
                raise NamingCollisionError(
                    f"cannot disambiguate declaration name '{base}' in module "
                    f"{module.path}",
                    definition.name,
                )
            candidate = base + "".join(to_pascal(s) for s in prefix[-depth:])
        taken[module].add(candidate)
        names[definition.name] = candidate
    return names


# ===--- Declaration emitter ---=== #

DIAG_IMPORT_CYCLE_BREAK = "import-cycle-break"


@dataclass(frozen=True)
class Symbol:
    module: ModuleKey
    name: str

    def __str__(self) -> str:
        return f"{self.module.path}.{self.name}"


@dataclass(frozen=True)
class Diagnostic:
    """A fallback taken by the emitter that a human should review."""

    kind: str
    definition: str
    message: str


@dataclass(frozen=True)
class Declaration:
    name: str
    definition: str
    expr: TypeExpr
    shape: str
    bases: tuple[str, ...] = ()
    description: str | None = None
    identity: GroupVersionKind | None = None


@dataclass(frozen=True)
class ModuleImport:
    """Named imports from one other module.

    Attributes:
        module: Module the names come from.
        specifier: Relative import path, e.g. "../meta".
        names: (declaration name, local alias or None), sorted by name.
    """

    module: ModuleKey
    specifier: str
    names: tuple[tuple[str, str | None], ...]


@dataclass(frozen=True)
class Module:
    """One emitted output module.

    Attributes:
        key: Group/version identity of the module.
        declarations: Declarations in source definition order.
        imports: Imports sorted by module path.
        local_names: Definition name -> identifier used inside this module,
            covering both local declarations and imported names.
    """

    key: ModuleKey
    declarations: tuple[Declaration, ...]
    imports: tuple[ModuleImport, ...]
    local_names: dict[str, str]

    @property
    def file_path(self) -> str:
        return f"{self.key.path}.d.ts"


@dataclass(frozen=True)
class EmissionResult:
    modules: tuple[Module, ...]
    symbols: dict[str, Symbol]
    diagnostics: tuple[Diagnostic, ...]


def relative_specifier(source: ModuleKey, target: ModuleKey) -> str:
    start = posixpath.dirname(source.path) or "."
    specifier = posixpath.relpath(target.path, start)
    if not specifier.startswith("."):
        specifier = f"./{specifier}"
    return specifier


def module_namespace(key: ModuleKey) -> str:
    namespace = re.sub(r"[^A-Za-z0-9]+", "_", key.path).strip("_")
    if not namespace or namespace[0].isdigit():
        namespace = f"_{namespace}"
    return namespace


def _map_refs(expr: TypeExpr, fn) -> TypeExpr:
    if isinstance(expr, NamedRef):
        return fn(expr)
    if isinstance(expr, ArrayOf):
        return ArrayOf(_map_refs(expr.element, fn))
    if isinstance(expr, MappingOf):
        return MappingOf(_map_refs(expr.value, fn))
    if isinstance(expr, UnionOf):
        return UnionOf(tuple(_map_refs(m, fn) for m in expr.members))
    if isinstance(expr, IntersectionOf):
        return IntersectionOf(tuple(_map_refs(m, fn) for m in expr.members))
    if isinstance(expr, ObjectLiteral):
        return ObjectLiteral(
            tuple(
                ObjectField(
                    name=f.name,
                    type=_map_refs(f.type, fn),
                    optional=f.optional,
                    description=f.description,
                    list_policy=f.list_policy,
                )
                for f in expr.fields
            )
        )
    return expr


def _reaches(graph: dict[ModuleKey, set[ModuleKey]], start: ModuleKey, goal: ModuleKey) -> bool:
    stack = [start]
    seen = {start}
    while stack:
        node = stack.pop()
        if node == goal:
            return True
        for neighbor in graph.get(node, ()):
            if neighbor not in seen:
                seen.add(neighbor)
                stack.append(neighbor)
    return False


class ImportGraph:
    """Acyclic module import graph grown one edge at a time."""

    def __init__(self):
        self.edges: dict[ModuleKey, set[ModuleKey]] = defaultdict(set)

    def try_add(self, source: ModuleKey, target: ModuleKey) -> bool:
        """Add source -> target unless it would close a cycle."""
        if source == target or target in self.edges[source]:
            return True
        if _reaches(self.edges, target, source):
            return False
        self.edges[source].add(target)
        return True


def emit_modules(resolved: tuple[ResolvedDefinition, ...]) -> EmissionResult:
    """Group resolved definitions into modules with acyclic imports.

    Cross-module references are accepted in source order. A reference whose
    import edge would close a cycle between modules is replaced by an Opaque
    expression and reported as an import-cycle-break Diagnostic; interfaces
    that lose an extends base that way fall back to an alias intersection.

    Args:
        resolved: Resolved definitions in source order.

    Returns:
        EmissionResult with modules sorted by path.

    Raises:
        NamingCollisionError: Declaration or import names cannot be made
            unique.
    """
    modules = assign_modules(resolved)
    names = assign_declaration_names(resolved, modules)
    symbols = {name: Symbol(modules[name], names[name]) for name in names}

    graph = ImportGraph()
    diagnostics: list[Diagnostic] = []
    needed: dict[ModuleKey, dict[str, None]] = defaultdict(dict)
    declarations: dict[ModuleKey, list[Declaration]] = defaultdict(list)

    for definition in resolved:
        source = modules[definition.name]

        def link(ref: NamedRef) -> TypeExpr:
            target = symbols[ref.definition].module
            if graph.try_add(source, target):
                if target != source:
                    needed[source][ref.definition] = None
                return ref
            diagnostics.append(
                Diagnostic(
                    DIAG_IMPORT_CYCLE_BREAK,
                    definition.name,
                    f"reference to {symbols[ref.definition]} from module "
                    f"{source.path} would create an import cycle; "
                    "emitted as an opaque type",
                )
            )
            return Opaque(ref.definition)

        expr = _map_refs(definition.expr, link)
        shape = definition.shape
        bases = definition.bases
        if bases and isinstance(expr, IntersectionOf):
            if any(isinstance(member, Opaque) for member in expr.members):
                shape = SHAPE_ALIAS
                bases = ()

        declarations[source].append(
            Declaration(
                name=names[definition.name],
                definition=definition.name,
                expr=expr,
                shape=shape,
                bases=bases,
                description=definition.description,
                identity=definition.identity,
            )
        )

    emitted: list[Module] = []
    for key in sorted(declarations, key=lambda k: k.path):
        local_names = {d.definition: d.name for d in declarations[key]}
        imports = _plan_imports(key, tuple(needed[key]), symbols, local_names)
        emitted.append(
            Module(
                key=key,
                declarations=tuple(declarations[key]),
                imports=imports,
                local_names=local_names,
            )
        )

    return EmissionResult(tuple(emitted), symbols, tuple(diagnostics))


def _plan_imports(
    key: ModuleKey,
    imported: tuple[str, ...],
    symbols: dict[str, Symbol],
    local_names: dict[str, str],
) -> tuple[ModuleImport, ...]:
    """Resolve imported definitions to named imports, aliasing clashes.

    Mutates local_names to add the identifier of every imported definition.
    """
    by_module: dict[ModuleKey, list[str]] = defaultdict(list)
    for definition in imported:
        by_module[symbols[definition].module].append(definition)

    used = set(local_names.values())
    imports: list[ModuleImport] = []
    for target in sorted(by_module, key=lambda k: k.path):
        entries: list[tuple[str, str | None]] = []
        for definition in sorted(by_module[target], key=lambda d: symbols[d].name):
            name = symbols[definition].name
            alias = None
            if name in used:
                alias = to_pascal(module_namespace(target)) + name
                if alias in used:
                    raise NamingCollisionError(
                        f"imported name '{name}' from {target.path} clashes "
                        f"with '{alias}' in module {key.path}",
                        definition,
                    )
            local = alias or name
            used.add(local)
            local_names[definition] = local
            entries.append((name, alias))
        imports.append(
            ModuleImport(
                module=target,
                specifier=relative_specifier(key, target),
                names=tuple(entries),
            )
        )
    return tuple(imports)


# ===--- TypeScript rendering ---=== #

_HEADER_BORDER: str = "// x-------------------------------------------x //"
_INDENT = "  "


def format_file_header(api_version: str, module_label: str) -> list[str]:
    """Return comment-block lines for a generated file header.

    Output format:
        // x-------------------------------------------x //
        // | Kubernetes types for TypeScript
        // | Generated by kubernetes-types-gen
        // | Source: Kubernetes API v1.30.0
        // | Module: core/v1
        // x-------------------------------------------x //

    Raises:
        ValueError: If api_version is empty.
    """
    if not api_version:
        raise ValueError("api_version must not be empty")
    return [
        _HEADER_BORDER,
        "// | Kubernetes types for TypeScript",
        "// | Generated by kubernetes-types-gen",
        f"// | Source: Kubernetes API {api_version}",
        f"// | Module: {module_label}",
        _HEADER_BORDER,
    ]


def format_jsdoc(description: str | None, tags: list[str], indent: str) -> list[str]:
    if not description and not tags:
        return []
    body: list[str] = []
    if description:
        body.extend(line.rstrip() for line in description.strip().splitlines())
    if description and tags:
        body.append("")
    body.extend(tags)
    lines = [f"{indent}/**"]
    for line in body:
        line = line.replace("*/", "*\\/")
        lines.append(f"{indent} * {line}" if line else f"{indent} *")
    lines.append(f"{indent} */")
    return lines


def _formatted_primitive(expr: TypeExpr) -> Primitive | None:
    while isinstance(expr, (ArrayOf, MappingOf)):
        expr = expr.element if isinstance(expr, ArrayOf) else expr.value
    return expr if isinstance(expr, Primitive) and expr.format else None


def field_tags(obj_field: ObjectField) -> list[str]:
    tags: list[str] = []
    primitive = _formatted_primitive(obj_field.type)
    if primitive is not None:
        tags.append(f"@format {primitive.format}")
    policy = obj_field.list_policy
    if policy.type_declared:
        tags.append(f"@listType {policy.type}")
    if policy.map_keys:
        tags.append(f"@listMapKeys {', '.join(policy.map_keys)}")
    if policy.map_type:
        tags.append(f"@mapType {policy.map_type}")
    if policy.patch_strategy:
        tags.append(f"@patchStrategy {','.join(policy.patch_strategy)}")
    if policy.merge_key:
        tags.append(f"@patchMergeKey {policy.merge_key}")
    return tags


def format_property_name(name: str) -> str:
    if _IDENTIFIER_RE.match(name):
        return name
    return "'" + name.replace("\\", "\\\\").replace("'", "\\'") + "'"


def render_fields(
    fields: tuple[ObjectField, ...], names: dict[str, str], depth: int
) -> list[str]:
    indent = _INDENT * depth
    lines: list[str] = []
    for obj_field in fields:
        lines.extend(format_jsdoc(obj_field.description, field_tags(obj_field), indent))
        marker = "?" if obj_field.optional else ""
        rendered = render_type(obj_field.type, names, depth)
        lines.append(f"{indent}{format_property_name(obj_field.name)}{marker}: {rendered};")
    return lines


def render_type(expr: TypeExpr, names: dict[str, str], depth: int = 0) -> str:
    """Render a type expression as TypeScript source.

    Args:
        expr: Expression to render.
        names: Definition name -> identifier visible in the current module.
        depth: Indentation depth of the line the expression starts on.
    """
    if isinstance(expr, NamedRef):
        return names[expr.definition]
    if isinstance(expr, Primitive):
        return expr.name
    if isinstance(expr, Literal):
        return "'" + expr.value.replace("\\", "\\\\").replace("'", "\\'") + "'"
    if isinstance(expr, Opaque):
        return f"unknown /* opaque: {expr.definition} */"
    if isinstance(expr, ArrayOf):
        element = render_type(expr.element, names, depth)
        if isinstance(expr.element, (UnionOf, IntersectionOf, Opaque)):
            return f"({element})[]"
        if isinstance(expr.element, ObjectLiteral) and expr.element.fields:
            return f"Array<{element}>"
        return f"{element}[]"
    if isinstance(expr, MappingOf):
        return f"{{[key: string]: {render_type(expr.value, names, depth)}}}"
    if isinstance(expr, UnionOf):
        return " | ".join(render_type(m, names, depth) for m in expr.members)
    if isinstance(expr, IntersectionOf):
        parts = []
        for member in expr.members:
            rendered = render_type(member, names, depth)
            if isinstance(member, UnionOf):
                rendered = f"({rendered})"
            parts.append(rendered)
        return " & ".join(parts)
    if isinstance(expr, ObjectLiteral):
        if not expr.fields:
            return "{}"
        lines = ["{"]
        lines.extend(render_fields(expr.fields, names, depth + 1))
        lines.append(f"{_INDENT * depth}}}")
        return "\n".join(lines)
    raise TypeError(f"cannot render {type(expr).__name__}")


def render_declaration(declaration: Declaration, names: dict[str, str]) -> list[str]:
    lines = format_jsdoc(declaration.description, [], "")
    if declaration.shape == SHAPE_INTERFACE:
        heading = f"export interface {declaration.name}"
        if declaration.bases:
            heading += " extends " + ", ".join(names[b] for b in declaration.bases)
        fields = (
            declaration.expr.fields
            if isinstance(declaration.expr, ObjectLiteral)
            else ()
        )
        if not fields:
            lines.append(f"{heading} {{}}")
            return lines
        lines.append(f"{heading} {{")
        lines.extend(render_fields(fields, names, 1))
        lines.append("}")
        return lines
    lines.append(f"export type {declaration.name} = {render_type(declaration.expr, names)};")
    return lines


def format_import_block(imports: tuple[ModuleImport, ...]) -> list[str]:
    lines: list[str] = []
    for imp in imports:
        if not imp.names:
            raise ValueError(f"ModuleImport for module '{imp.module.path}' has no names")
        rendered = ", ".join(
            name if alias is None else f"{name} as {alias}" for name, alias in imp.names
        )
        lines.append(f"import {{{rendered}}} from '{imp.specifier}';")
    return lines


def assemble_module_source(api_version: str, module: Module) -> str:
    """Assemble the complete `.d.ts` source for one module.

    File structure:
        <header_comment_block>
                                    <- blank line
        <import_block>              <- omitted with its blank line if empty
                                    <- blank line
        <declaration>               <- declarations separated by blank lines
                                    <- trailing newline
    """
    parts: list[str] = list(format_file_header(api_version, module.key.path))
    if module.imports:
        parts.append("")
        parts.extend(format_import_block(module.imports))
    for declaration in module.declarations:
        parts.append("")
        parts.extend(render_declaration(declaration, module.local_names))
    return "\n".join(parts) + "\n"


def assemble_index_source(api_version: str, modules: tuple[Module, ...]) -> str:
    """Assemble `index.d.ts`: one namespace re-export per module.

    Raises:
        NamingCollisionError: Two module paths map to the same namespace.
    """
    parts: list[str] = list(format_file_header(api_version, "index"))
    parts.append("")
    seen: dict[str, ModuleKey] = {}
    for module in modules:
        namespace = module_namespace(module.key)
        if namespace in seen:
            raise NamingCollisionError(
                f"modules {seen[namespace].path} and {module.key.path} share "
                f"the index namespace '{namespace}'"
            )
        seen[namespace] = module.key
        parts.append(f"export * as {namespace} from './{module.key.path}';")
    return "\n".join(parts) + "\n"


# ===--- Generation driver ---=== #

INDEX_FILE = "index.d.ts"


@dataclass(frozen=True)
class GeneratedFile:
    path: str
    text: str


@dataclass(frozen=True)
class GenerationStats:
    """Counts for the summary report.

    Attributes:
        definitions: Definitions in the source document.
        resources: Definitions with a single resource identity.
        interfaces: Interface-shaped declarations.
        aliases: Alias-shaped declarations.
        renamed: Declarations whose name needed a disambiguating suffix.
        modules: Emitted modules, excluding the index.
    """

    definitions: int
    resources: int
    interfaces: int
    aliases: int
    renamed: int
    modules: int


@dataclass(frozen=True)
class GenerationResult:
    """In-memory output of one generation run.

    Attributes:
        api_version: info.version of the source document, unmodified.
        files: One GeneratedFile per module in path order, then index.d.ts.
        symbols: Definition name -> (module, declaration name).
        diagnostics: Fallbacks that need review, in source order.
        stats: Counts for the summary report.
        modules: Emitted modules in path order.
    """

    api_version: str
    files: tuple[GeneratedFile, ...]
    symbols: dict[str, Symbol]
    diagnostics: tuple[Diagnostic, ...]
    stats: GenerationStats
    modules: tuple[Module, ...] = field(default=())


def resolve_all(store: SchemaStore) -> tuple[ResolvedDefinition, ...]:
    resolver = TypeResolver(store)
    resolved: list[ResolvedDefinition] = []
    for name, _node in store.all_definitions():
        try:
            resolved.append(resolver.resolve_definition(name))
        except GenerationError as err:
            if err.definition is None:
                err.definition = name
            raise
    return tuple(resolved)


def generate(document: dict | SchemaStore) -> GenerationResult:
    """Generate the complete declaration file set for one schema document.

    Pure: performs no I/O. Any GenerationError aborts the whole run, so a
    caller either receives every file or none.

    Args:
        document: Decoded swagger.json, or an already built SchemaStore.

    Returns:
        GenerationResult with module files and index.d.ts.

    Raises:
        SchemaReferenceError: A $ref names an undefined definition.
        CyclicReferenceError: A reference cycle has no array/object indirection.
        UnsupportedSchemaError: A schema shape has no defined mapping.
        NamingCollisionError: Names cannot be made unique.
    """
    store = document if isinstance(document, SchemaStore) else SchemaStore.from_document(document)
    resolved = resolve_all(store)
    emission = emit_modules(resolved)

    files = [
        GeneratedFile(module.file_path, assemble_module_source(store.api_version, module))
        for module in emission.modules
    ]
    files.append(
        GeneratedFile(INDEX_FILE, assemble_index_source(store.api_version, emission.modules))
    )

    declarations = [d for m in emission.modules for d in m.declarations]
    stats = GenerationStats(
        definitions=len(store),
        resources=sum(1 for d in resolved if d.identity is not None),
        interfaces=sum(1 for d in declarations if d.shape == SHAPE_INTERFACE),
        aliases=sum(1 for d in declarations if d.shape == SHAPE_ALIAS),
        renamed=sum(
            1
            for d in declarations
            if d.name != to_identifier(d.definition.split(".")[-1])
        ),
        modules=len(emission.modules),
    )
    return GenerationResult(
        api_version=store.api_version,
        files=tuple(files),
        symbols=emission.symbols,
        diagnostics=emission.diagnostics,
        stats=stats,
        modules=emission.modules,
    )


# ===--- Release versioning ---=== #

_API_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)(?:\.\d+)?")


def release_version(api_version: str, patch: int, beta: int | None = None) -> str:
    """Derive the generated package version from the source API version.

    Only MAJOR.MINOR of the API version is kept; the patch number belongs to
    the generated package, e.g. ("v1.30.2", 1, 2) -> "1.30.1-beta.2".

    Raises:
        ConfigError: UNVERSIONED_API when api_version carries no MAJOR.MINOR
            (the master branch reports "unversioned").
    """
    match = _API_VERSION_RE.match(api_version)
    if match is None:
        raise ConfigError(
            "UNVERSIONED_API",
            f"Cannot derive a release version from API version '{api_version}'.",
            "Pass --api with a release such as v1.30, or --file with a "
            "document from a tagged release.",
        )
    version = f"{match.group(1)}.{match.group(2)}.{patch}"
    if beta:
        version += f"-beta.{beta}"
    return version


def destination_path(output_root: Path, version: str) -> Path:
    return Path(output_root) / f"v{version}"


# ===--- Document retrieval ---=== #


def normalize_api_ref(api_ref: str) -> str:
    ref = api_ref
    if re.match(r"^\d", ref):
        ref = f"v{ref}"
    if re.match(r"^v\d+\.\d+$", ref):
        ref = f"{ref}.0"
    return ref


def swagger_url(api_ref: str) -> str:
    return SWAGGER_URL_TEMPLATE.format(ref=normalize_api_ref(api_ref))


def fetch_api_document(api_ref: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> dict:
    """Download swagger.json for a Kubernetes release tag or branch.

    Raises:
        OSError: Network failure (urllib.error.URLError is an OSError).
        json.JSONDecodeError: The response is not JSON.
    """
    request = urllib.request.Request(swagger_url(api_ref), method="GET")
    with urllib.request.urlopen(request, timeout=timeout) as response:
        return json.loads(response.read().decode("utf-8"))


def load_api_document(path: Path) -> dict:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def load_document(config: GenerateConfig | DiscoveryConfig) -> dict:
    if config.file is not None:
        return load_api_document(config.file)
    return fetch_api_document(config.api_ref, config.timeout)


def document_source_label(config: GenerateConfig | DiscoveryConfig) -> str:
    if config.file is not None:
        return str(config.file)
    return swagger_url(config.api_ref)


# ===--- Package writer ---=== #

PACKAGE_MANIFEST = "package.json"
PACKAGE_README = "README.md"


@dataclass(frozen=True)
class FileWriteResult:
    """Result of writing a single generated file.

    Attributes:
        filename: Path relative to the package root, e.g. "core/v1.d.ts".
        path: Absolute path of the written file.
        line_count: Number of newline characters in the written content.
        byte_count: Number of bytes written (UTF-8 encoded).
    """

    filename: str
    path: Path
    line_count: int
    byte_count: int


@dataclass(frozen=True)
class PackageWriteResult:
    """Result of writing the complete generated package.

    files is ordered: declaration files in GenerationResult order, then
    package.json and README.md.
    """

    output_dir: Path
    files: tuple[FileWriteResult, ...]

    @property
    def total_lines(self) -> int:
        """Sum of line_count across all written files."""
        return sum(f.line_count for f in self.files)


def write_file(output_dir: Path, relative_path: str, content: str) -> FileWriteResult:
    """Write one file below output_dir, creating parent directories.

    Raises:
        OSError: Propagated directly if the filesystem write fails.
    """
    file_path = Path(output_dir) / relative_path
    file_path.parent.mkdir(parents=True, exist_ok=True)
    data = content.encode("utf-8")
    file_path.write_bytes(data)
    return FileWriteResult(
        filename=relative_path,
        path=file_path.resolve(),
        line_count=content.count("\n"),
        byte_count=len(data),
    )


def build_package_manifest(template: str, version: str) -> str:
    manifest = json.loads(template)
    manifest["version"] = version
    return json.dumps(manifest, indent=2) + "\n"


def write_package(
    output_dir: Path,
    result: GenerationResult,
    version: str,
    assets_dir: Path = ASSETS_DIR,
) -> PackageWriteResult:
    """Write every generated file plus package.json and README.md.

    Only called after generate() has returned, so a failed run never touches
    output_dir.

    Args:
        output_dir: Release directory, usually from destination_path.
        result: Complete generation result.
        version: Release version stored in package.json.
        assets_dir: Directory holding the package.json template and README.md.

    Raises:
        OSError: Propagated directly from any read or write failure.
        json.JSONDecodeError: The package.json template is malformed.
    """
    files: list[FileWriteResult] = []
    for generated in result.files:
        files.append(write_file(output_dir, generated.path, generated.text))

    template = (Path(assets_dir) / PACKAGE_MANIFEST).read_text(encoding="utf-8")
    files.append(
        write_file(output_dir, PACKAGE_MANIFEST, build_package_manifest(template, version))
    )

    readme_target = Path(output_dir) / PACKAGE_README
    shutil.copyfile(Path(assets_dir) / PACKAGE_README, readme_target)
    readme = readme_target.read_text(encoding="utf-8")
    files.append(
        FileWriteResult(
            filename=PACKAGE_README,
            path=readme_target.resolve(),
            line_count=readme.count("\n"),
            byte_count=len(readme.encode("utf-8")),
        )
    )

    return PackageWriteResult(output_dir=Path(output_dir), files=tuple(files))


# ===--- Discovery ---=== #


@dataclass(frozen=True)
class ModuleSummary:
    """One row of the --list-modules table.

    Attributes:
        path: Module path, e.g. "apps/v1" or "meta".
        resources: Declarations carrying a resource identity.
        declarations: All declarations in the module.
        imports: Modules this module imports from, by path.
    """

    path: str
    resources: int
    declarations: int
    imports: tuple[str, ...]


def gather_module_summaries(result: GenerationResult) -> list[ModuleSummary]:
    return [
        ModuleSummary(
            path=module.key.path,
            resources=sum(1 for d in module.declarations if d.identity is not None),
            declarations=len(module.declarations),
            imports=tuple(imp.module.path for imp in module.imports),
        )
        for module in result.modules
    ]


def format_modules_table(summaries: list[ModuleSummary], api_version: str) -> str:
    """Return the complete --list-modules output as a string.

    Output format:

        3 modules in Kubernetes API v1.30.0:

          apps/v1    4 resources   12 declarations   imports: core/v1, meta
          core/v1   20 resources   95 declarations   imports: meta
          meta       0 resources   31 declarations
    """
    lines = [f"{len(summaries)} modules in Kubernetes API {api_version}:", ""]
    path_width = max((len(s.path) for s in summaries), default=0)
    for s in summaries:
        row = (
            f"  {s.path.ljust(path_width)}  {s.resources:>4} resources"
            f"  {s.declarations:>5} declarations"
        )
        if s.imports:
            row += f"   imports: {', '.join(s.imports)}"
        lines.append(row)
    lines.append("")
    return "\n".join(lines)


def run_discovery(config: DiscoveryConfig) -> None:
    """Generate in memory and print the module table; writes nothing.

    Raises:
        GenerationError: Propagated from generate().
        OSError: Document retrieval failure.
    """
    document = load_document(config)
    result = generate(document)
    output = format_modules_table(gather_module_summaries(result), result.api_version)
    print(output, end="")


# ===--- Summary report ---=== #


@dataclass(frozen=True)
class GenerationSummary:
    """Complete, immutable data for the post-generation console report.

    Attributes:
        release_label: Generated package version, e.g. "v1.30.0".
        source_label: Source API string, e.g. "Kubernetes API v1.30.2".
        output_dir: Output directory path as string.
        stats: Counts from GenerationResult.stats.
        diagnostics: Number of fallbacks that need review.
        files: Ordered write results from PackageWriteResult.files.
    """

    release_label: str
    source_label: str
    output_dir: str
    stats: GenerationStats
    diagnostics: int
    files: tuple[FileWriteResult, ...]


def build_generation_summary(
    result: GenerationResult,
    version: str,
    write_result: PackageWriteResult,
) -> GenerationSummary:
    return GenerationSummary(
        release_label=f"v{version}",
        source_label=f"Kubernetes API {result.api_version}",
        output_dir=str(write_result.output_dir),
        stats=result.stats,
        diagnostics=len(result.diagnostics),
        files=write_result.files,
    )


def format_generation_summary(summary: GenerationSummary) -> str:
    """Render a GenerationSummary as a multi-section console string.

    The "needs review" line appears only when diagnostics were recorded.
    Line counts use thousands separators. Returns a string with exactly one
    trailing newline.
    """
    stats = summary.stats
    lines: list[str] = [f"Kubernetes types {summary.release_label} generated:", ""]
    lines.append(f"  Source:     {summary.source_label}")
    lines.append(f"  Output:     {summary.output_dir}")
    lines.append("")
    lines.append("  Declarations:")
    lines.append(f"    {'Definitions:':<14}{stats.definitions:>6}")
    lines.append(f"    {'Resources:':<14}{stats.resources:>6}")
    lines.append(f"    {'Interfaces:':<14}{stats.interfaces:>6}")
    lines.append(f"    {'Aliases:':<14}{stats.aliases:>6}")
    lines.append(f"    {'Renamed:':<14}{stats.renamed:>6}")
    lines.append(f"    {'Modules:':<14}{stats.modules:>6}")
    if summary.diagnostics:
        lines.append("")
        lines.append(
            f"  Needs review: {summary.diagnostics} import cycle(s) broken with opaque types"
        )

    lines.append("")
    lines.append("  Files written:")
    name_width = max((len(f.filename) for f in summary.files), default=0)
    for file_result in summary.files:
        lines.append(
            f"    {file_result.filename:<{name_width}}  {file_result.line_count:>6,} lines"
        )

    total_lines = sum(f.line_count for f in summary.files)
    lines.append("")
    lines.append(f"  Total: {total_lines:,} lines across {len(summary.files)} files")
    lines.append("")
    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="")


def print_diagnostics(diagnostics: tuple[Diagnostic, ...]) -> None:
    for diagnostic in diagnostics:
        print(
            f"Warning [{diagnostic.kind}] {diagnostic.definition}: {diagnostic.message}",
            file=sys.stderr,
        )


# ===--- Main generation ---=== #


def run_generate(config: GenerateConfig) -> PackageWriteResult:
    """Execute the complete pipeline: load -> generate -> version -> write.

    Raises:
        GenerationError: Any core failure; nothing has been written.
        ConfigError: UNVERSIONED_API; nothing has been written.
        OSError: Retrieval or filesystem failure.
        json.JSONDecodeError: The document is not JSON.
    """
    print(f"Loading: {document_source_label(config)}")
    document = load_document(config)

    store = SchemaStore.from_document(document)
    print(f"  Document: Kubernetes API {store.api_version}, {len(store)} definitions")
    version = release_version(store.api_version, config.patch, config.beta)

    result = generate(store)
    print(
        f"  Generated: {result.stats.modules} modules, "
        f"{result.stats.interfaces} interfaces, {result.stats.aliases} aliases"
    )
    print_diagnostics(result.diagnostics)

    output_dir = destination_path(config.output_root, version)
    write_result = write_package(output_dir, result, version)
    print(
        f"  Written: {len(write_result.files)} files, "
        f"{write_result.total_lines} lines to {write_result.output_dir}"
    )

    print_generation_summary(build_generation_summary(result, version, write_result))
    return write_result


def main(argv: list[str] | None = None):
    try:
        config = build_config(argv)
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err

    try:
        if isinstance(config, DiscoveryConfig):
            run_discovery(config)
        else:
            run_generate(config)
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err
    except GenerationError as err:
        location = f" in {err.definition}" if err.definition else ""
        print(f"Generation error [{err.kind}]{location}: {err.message}", file=sys.stderr)
        raise SystemExit(1) from err
    except (OSError, json.JSONDecodeError) as err:
        print(f"Error: {err}", file=sys.stderr)
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
