from collections.abc import Callable

import pytest

import k8s_types_gen as gen

_Resolver = Callable[[dict], tuple[gen.ResolvedDefinition, ...]]


def _ref(name: str) -> dict:
    return {"$ref": f"#/definitions/{name}"}


def _resource(group: str, version: str, kind: str, properties: dict | None = None) -> dict:
    return {
        "type": "object",
        "properties": properties or {},
        "x-kubernetes-group-version-kind": [
            {"group": group, "version": version, "kind": kind}
        ],
    }


# ===--- Module assignment ---=== #


def test_module_key_paths() -> None:
    assert gen.ModuleKey("apps", "v1").path == "apps/v1"
    assert gen.META_MODULE.path == "meta"
    assert gen.module_for_identity(gen.GroupVersionKind("", "v1", "Pod")).path == "core/v1"


def test_assign_modules_identity_owns_its_group_version(make_resolved: _Resolver) -> None:
    resolved = make_resolved({"com.example.v1.Widget": _resource("example.com", "v1", "Widget")})

    modules = gen.assign_modules(resolved)

    assert modules["com.example.v1.Widget"] == gen.ModuleKey("example.com", "v1")


def test_assign_modules_follows_nearest_single_consumer(make_resolved: _Resolver) -> None:
    resolved = make_resolved(
        {
            "a.Pod": _resource("", "v1", "Pod", {"spec": _ref("a.PodSpec")}),
            "a.PodSpec": {"properties": {"containers": {"type": "array", "items": _ref("a.Container")}}},
            "a.Container": {"properties": {"name": {"type": "string"}}},
        }
    )

    modules = gen.assign_modules(resolved)

    assert modules["a.PodSpec"] == gen.ModuleKey("core", "v1")
    assert modules["a.Container"] == gen.ModuleKey("core", "v1")


def test_assign_modules_tie_without_group_dependency_goes_to_meta(make_resolved: _Resolver) -> None:
    resolved = make_resolved(
        {
            "a.Pod": _resource("", "v1", "Pod", {"metadata": _ref("m.ObjectMeta")}),
            "b.Job": _resource("batch", "v1", "Job", {"metadata": _ref("m.ObjectMeta")}),
            "m.ObjectMeta": {"properties": {"owner": _ref("m.OwnerReference")}},
            "m.OwnerReference": {"properties": {"uid": {"type": "string"}}},
        }
    )

    modules = gen.assign_modules(resolved)

    assert modules["m.ObjectMeta"] == gen.META_MODULE
    assert modules["m.OwnerReference"] == gen.META_MODULE


def _shared_pod_template_definitions() -> dict:
    return {
        "b.Job": _resource("batch", "v1", "Job", {"template": _ref("a.PodTemplateSpec")}),
        "a.PodTemplate": _resource("", "v1", "PodTemplate", {"template": _ref("a.PodTemplateSpec")}),
        "a.Pod": _resource("", "v1", "Pod", {"spec": _ref("a.PodSpec")}),
        "a.PodTemplateSpec": {"properties": {"spec": _ref("a.PodSpec")}},
        "a.PodSpec": {"properties": {"hostname": {"type": "string"}}},
    }


def test_assign_modules_shared_type_depending_on_group_joins_that_consumer(
    make_resolved: _Resolver,
) -> None:
    resolved = make_resolved(_shared_pod_template_definitions())

    modules = gen.assign_modules(resolved)

    assert modules["a.PodSpec"] == gen.ModuleKey("core", "v1")
    assert modules["a.PodTemplateSpec"] == gen.ModuleKey("core", "v1")


def test_emit_modules_shared_type_depending_on_group_needs_no_cycle_break(
    make_resolved: _Resolver,
) -> None:
    emission = gen.emit_modules(make_resolved(_shared_pod_template_definitions()))

    assert emission.diagnostics == ()
    batch = next(m for m in emission.modules if m.key.path == "batch/v1")
    assert batch.imports == (
        gen.ModuleImport(gen.ModuleKey("core", "v1"), "../core/v1", (("PodTemplateSpec", None),)),
    )


def test_assign_modules_shared_chain_follows_its_group_dependency(make_resolved: _Resolver) -> None:
    resolved = make_resolved(
        {
            "a.Pod": _resource("", "v1", "Pod", {"spec": _ref("a.PodSpec")}),
            "b.Job": _resource("batch", "v1", "Job", {"outer": _ref("m.Outer")}),
            "c.Ingress": _resource("networking.k8s.io", "v1", "Ingress", {"outer": _ref("m.Outer")}),
            "m.Outer": {"properties": {"inner": _ref("m.Inner")}},
            "m.Inner": {"properties": {"spec": _ref("a.PodSpec")}},
            "a.PodSpec": {"properties": {"hostname": {"type": "string"}}},
        }
    )

    modules = gen.assign_modules(resolved)

    assert modules["m.Inner"] == gen.ModuleKey("batch", "v1")
    assert modules["m.Outer"] == gen.ModuleKey("batch", "v1")


def test_assign_modules_nearer_consumer_wins_over_farther(make_resolved: _Resolver) -> None:
    resolved = make_resolved(
        {
            "b.Deployment": _resource("apps", "v1", "Deployment", {"spec": _ref("b.DeploymentSpec")}),
            "b.DeploymentSpec": {"properties": {"template": _ref("a.PodSpec")}},
            "a.Pod": _resource("", "v1", "Pod", {"spec": _ref("a.PodSpec")}),
            "a.PodSpec": {"properties": {"name": {"type": "string"}}},
        }
    )

    modules = gen.assign_modules(resolved)

    assert modules["a.PodSpec"] == gen.ModuleKey("core", "v1")
    assert modules["b.DeploymentSpec"] == gen.ModuleKey("apps", "v1")


def test_assign_modules_unreferenced_shared_type_goes_to_meta(make_resolved: _Resolver) -> None:
    resolved = make_resolved({"m.Status": {"properties": {"code": {"type": "integer"}}}})

    assert gen.assign_modules(resolved)["m.Status"] == gen.META_MODULE


# ===--- Naming ---=== #


def test_to_identifier_sanitizes_and_avoids_reserved_words() -> None:
    assert gen.to_identifier("JSONSchemaProps") == "JSONSchemaProps"
    assert gen.to_identifier("Foo-Bar") == "Foo_Bar"
    assert gen.to_identifier("1Thing") == "_1Thing"
    assert gen.to_identifier("object") == "object_"


def test_assign_declaration_names_first_seen_keeps_plain_name(make_resolved: _Resolver) -> None:
    resolved = make_resolved(
        {
            "io.k8s.apimachinery.pkg.apis.meta.v1.Status": {"type": "object"},
            "io.k8s.api.storage.v1beta1.Status": {"type": "object"},
        }
    )
    modules = gen.assign_modules(resolved)

    names = gen.assign_declaration_names(resolved, modules)

    assert names["io.k8s.apimachinery.pkg.apis.meta.v1.Status"] == "Status"
    assert names["io.k8s.api.storage.v1beta1.Status"] == "StatusV1beta1"


def test_assign_declaration_names_extends_suffix_until_unique(make_resolved: _Resolver) -> None:
    resolved = make_resolved(
        {
            "a.foo.v1.Status": {"type": "object"},
            "a.bar.v1.Status": {"type": "object"},
            "a.baz.v1.Status": {"type": "object"},
        }
    )
    modules = gen.assign_modules(resolved)

    names = gen.assign_declaration_names(resolved, modules)

    assert names == {
        "a.foo.v1.Status": "Status",
        "a.bar.v1.Status": "StatusV1",
        "a.baz.v1.Status": "StatusBazV1",
    }


def test_assign_declaration_names_same_name_in_different_modules_is_not_renamed(
    make_resolved: _Resolver,
) -> None:
    resolved = make_resolved(
        {
            "a.v1.Scale": _resource("autoscaling", "v1", "Scale"),
            "b.v1.Scale": _resource("apps", "v1", "Scale"),
        }
    )
    modules = gen.assign_modules(resolved)

    names = gen.assign_declaration_names(resolved, modules)

    assert names == {"a.v1.Scale": "Scale", "b.v1.Scale": "Scale"}


def test_assign_declaration_names_exhausted_suffixes_raise(make_resolved: _Resolver) -> None:
    resolved = make_resolved({"x.Status": {"type": "object"}, "Status": {"type": "object"}})
    modules = gen.assign_modules(resolved)

    with pytest.raises(gen.NamingCollisionError) as exc_info:
        gen.assign_declaration_names(resolved, modules)

    assert exc_info.value.definition == "Status"


# ===--- Imports and cycle breaking ---=== #


def test_relative_specifier_between_modules() -> None:
    core = gen.ModuleKey("core", "v1")
    apps = gen.ModuleKey("apps", "v1")

    assert gen.relative_specifier(core, gen.META_MODULE) == "../meta"
    assert gen.relative_specifier(apps, core) == "../core/v1"
    assert gen.relative_specifier(gen.META_MODULE, core) == "./core/v1"
    assert gen.relative_specifier(core, gen.ModuleKey("core", "v2")) == "./v2"


def test_import_graph_refuses_cycle_closing_edge() -> None:
    graph = gen.ImportGraph()
    a, b, c = (gen.ModuleKey(name, "v1") for name in "abc")

    assert graph.try_add(a, b)
    assert graph.try_add(b, c)
    assert not graph.try_add(c, a)
    assert graph.try_add(a, a)


def test_emit_modules_imports_cross_module_references(make_resolved: _Resolver) -> None:
    resolved = make_resolved(
        {
            "a.Pod": _resource("", "v1", "Pod", {"metadata": _ref("m.ObjectMeta")}),
            "b.Job": _resource("batch", "v1", "Job", {"metadata": _ref("m.ObjectMeta")}),
            "m.ObjectMeta": {"properties": {"name": {"type": "string"}}},
        }
    )

    emission = gen.emit_modules(resolved)

    by_path = {m.key.path: m for m in emission.modules}
    assert list(by_path) == ["batch/v1", "core/v1", "meta"]
    core = by_path["core/v1"]
    assert core.imports == (
        gen.ModuleImport(gen.META_MODULE, "../meta", (("ObjectMeta", None),)),
    )
    assert core.local_names["m.ObjectMeta"] == "ObjectMeta"
    assert emission.diagnostics == ()


def test_emit_modules_aliases_import_clashing_with_local_name(make_resolved: _Resolver) -> None:
    resolved = make_resolved(
        {
            "a.v1.Status": _resource("", "v1", "Status", {"detail": _ref("m.v1.Status")}),
            "b.v1.Job": _resource("batch", "v1", "Job", {"detail": _ref("m.v1.Status")}),
            "m.v1.Status": {"properties": {"code": {"type": "integer"}}},
        }
    )

    emission = gen.emit_modules(resolved)

    core = next(m for m in emission.modules if m.key.path == "core/v1")
    assert core.imports[0].names == (("Status", "MetaStatus"),)
    assert core.local_names["m.v1.Status"] == "MetaStatus"
    assert core.local_names["a.v1.Status"] == "Status"


def test_emit_modules_breaks_import_cycle_with_opaque_and_diagnostic(
    make_resolved: _Resolver,
) -> None:
    resolved = make_resolved(
        {
            "a.A": _resource("a.io", "v1", "A", {"b": _ref("b.B")}),
            "b.B": _resource("b.io", "v1", "B", {"a": _ref("a.A")}),
        }
    )

    emission = gen.emit_modules(resolved)

    by_path = {m.key.path: m for m in emission.modules}
    assert by_path["a.io/v1"].imports[0].module == gen.ModuleKey("b.io", "v1")
    assert by_path["b.io/v1"].imports == ()
    field_type = by_path["b.io/v1"].declarations[0].expr.fields[0].type
    assert field_type == gen.Opaque("a.A")
    assert emission.diagnostics == (
        gen.Diagnostic(
            gen.DIAG_IMPORT_CYCLE_BREAK,
            "b.B",
            "reference to a.io/v1.A from module b.io/v1 would create an import "
            "cycle; emitted as an opaque type",
        ),
    )


def test_emit_modules_interface_losing_base_becomes_alias(make_resolved: _Resolver) -> None:
    resolved = make_resolved(
        {
            "a.A": _resource("a.io", "v1", "A", {"b": _ref("b.B")}),
            "b.B": _resource("b.io", "v1", "B", {"both": _ref("b.Both")}),
            "b.Both": {"allOf": [_ref("a.A"), _ref("b.B")]},
        }
    )

    emission = gen.emit_modules(resolved)

    both = next(d for m in emission.modules for d in m.declarations if d.definition == "b.Both")
    assert both.shape == gen.SHAPE_ALIAS
    assert both.bases == ()
    assert len(emission.diagnostics) == 1


# ===--- Rendering ---=== #


def test_format_file_header_rejects_empty_version() -> None:
    with pytest.raises(ValueError):
        gen.format_file_header("", "core/v1")


def test_format_file_header_uses_fixed_symmetric_border() -> None:
    lines = gen.format_file_header("v1.30.2", "core/v1")

    border = "// x-------------------------------------------x //"
    assert lines[0] == border
    assert lines[-1] == border
    assert "// | Source: Kubernetes API v1.30.2" in lines
    assert "// | Module: core/v1" in lines


def test_format_jsdoc_escapes_comment_terminator_and_separates_tags() -> None:
    lines = gen.format_jsdoc("Matches */ terminators.\n\nSecond.", ["@listType set"], "  ")

    assert lines == [
        "  /**",
        "   * Matches *\\/ terminators.",
        "   *",
        "   * Second.",
        "   *",
        "   * @listType set",
        "   */",
    ]


def test_format_jsdoc_empty_is_no_lines() -> None:
    assert gen.format_jsdoc(None, [], "") == []


def test_field_tags_for_annotated_list_and_format() -> None:
    policy = gen.ListPolicy(
        type="map",
        merge_key="name",
        map_keys=("name",),
        patch_strategy=("merge",),
        type_declared=True,
    )
    list_field = gen.ObjectField("containers", gen.ArrayOf(gen.NamedRef("C")), False, None, policy)
    time_field = gen.ObjectField("at", gen.Primitive("string", "date-time"), True)

    assert gen.field_tags(list_field) == [
        "@listType map",
        "@listMapKeys name",
        "@patchStrategy merge",
        "@patchMergeKey name",
    ]
    assert gen.field_tags(time_field) == ["@format date-time"]


def test_field_tags_omit_list_type_when_not_declared() -> None:
    policy = gen.ListPolicy(merge_key="uid", patch_strategy=("merge",))
    refs_field = gen.ObjectField("owners", gen.ArrayOf(gen.NamedRef("O")), True, None, policy)

    assert gen.field_tags(refs_field) == ["@patchStrategy merge", "@patchMergeKey uid"]


def test_field_tags_render_map_type() -> None:
    policy = gen.ListPolicy(map_type="granular")
    labels_field = gen.ObjectField(
        "labels", gen.MappingOf(gen.Primitive("string")), True, None, policy
    )

    assert gen.field_tags(labels_field) == ["@mapType granular"]


@pytest.mark.parametrize(
    "expr",
    [
        gen.ArrayOf(gen.Primitive("number", "int64")),
        gen.MappingOf(gen.Primitive("number", "int64")),
        gen.ArrayOf(gen.MappingOf(gen.Primitive("number", "int64"))),
    ],
)
def test_field_tags_format_looks_through_arrays_and_mappings(expr: gen.TypeExpr) -> None:
    assert gen.field_tags(gen.ObjectField("sizes", expr, True)) == ["@format int64"]


def test_field_tags_no_format_for_unformatted_element() -> None:
    field_ = gen.ObjectField("names", gen.ArrayOf(gen.Primitive("string")), True)

    assert gen.field_tags(field_) == []


def test_format_property_name_quotes_non_identifiers() -> None:
    assert gen.format_property_name("apiVersion") == "apiVersion"
    assert gen.format_property_name("$ref") == "$ref"
    assert gen.format_property_name("x-kubernetes-list-type") == "'x-kubernetes-list-type'"


@pytest.mark.parametrize(
    ("expr", "expected"),
    [
        (gen.Primitive("string", "byte"), "string"),
        (gen.Literal("apps/v1"), "'apps/v1'"),
        (gen.NamedRef("m.Time"), "Time"),
        (gen.ArrayOf(gen.NamedRef("m.Time")), "Time[]"),
        (gen.ArrayOf(gen.INT_OR_STRING), "(number | string)[]"),
        (gen.MappingOf(gen.Primitive("string")), "{[key: string]: string}"),
        (gen.ArrayOf(gen.MappingOf(gen.Primitive("string"))), "{[key: string]: string}[]"),
        (
            gen.IntersectionOf((gen.NamedRef("m.Time"), gen.INT_OR_STRING)),
            "Time & (number | string)",
        ),
        (gen.ObjectLiteral(()), "{}"),
        (gen.Opaque("a.A"), "unknown /* opaque: a.A */"),
    ],
)
def test_render_type(expr: gen.TypeExpr, expected: str) -> None:
    assert gen.render_type(expr, {"m.Time": "Time"}) == expected


def test_render_type_inline_object_literal_is_indented() -> None:
    expr = gen.ArrayOf(
        gen.ObjectLiteral(
            (
                gen.ObjectField("name", gen.Primitive("string"), False),
                gen.ObjectField("value", gen.Primitive("string"), True),
            )
        )
    )

    assert gen.render_type(expr, {}, depth=1) == (
        "Array<{\n    name: string;\n    value?: string;\n  }>"
    )


def test_render_declaration_interface_with_bases() -> None:
    declaration = gen.Declaration(
        name="Both",
        definition="x.Both",
        expr=gen.IntersectionOf((gen.NamedRef("x.A"), gen.NamedRef("x.B"))),
        shape=gen.SHAPE_INTERFACE,
        bases=("x.A", "x.B"),
        description="Both shapes.",
    )

    lines = gen.render_declaration(declaration, {"x.A": "A", "x.B": "MetaB"})

    assert lines == ["/**", " * Both shapes.", " */", "export interface Both extends A, MetaB {}"]


def test_render_declaration_alias() -> None:
    declaration = gen.Declaration(
        name="IntOrString",
        definition="x.IntOrString",
        expr=gen.INT_OR_STRING,
        shape=gen.SHAPE_ALIAS,
    )

    assert gen.render_declaration(declaration, {}) == [
        "export type IntOrString = number | string;"
    ]


def test_format_import_block_renders_aliases() -> None:
    imports = (
        gen.ModuleImport(gen.META_MODULE, "../meta", (("ObjectMeta", None), ("Status", "MetaStatus"))),
    )

    assert gen.format_import_block(imports) == [
        "import {ObjectMeta, Status as MetaStatus} from '../meta';"
    ]


def test_format_import_block_rejects_empty_names() -> None:
    with pytest.raises(ValueError):
        gen.format_import_block((gen.ModuleImport(gen.META_MODULE, "../meta", ()),))


def test_assemble_index_source_rejects_namespace_collision() -> None:
    modules = tuple(
        gen.Module(key=gen.ModuleKey(group, "v1"), declarations=(), imports=(), local_names={})
        for group in ("a-b", "a.b")
    )

    with pytest.raises(gen.NamingCollisionError):
        gen.assemble_index_source("v1.30.2", modules)
