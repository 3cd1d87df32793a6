import pytest

from parser import parse_js
from scoping import (
    LEXICAL_ITERATION_PHASES,
    DefinitionKind,
    IterationPhase,
    ReferenceFlag,
    ScopeAnalysisError,
    ScopeType,
    analyze,
)


def _analyze(source: str, *, module: bool = False, **options):
    source_type = "module" if module else "script"
    parsed = parse_js(source, source_type=source_type, tolerant=False)
    options.setdefault("source_type", source_type)
    return parsed.ast, analyze(parsed.ast, **options)


def _scopes_of_type(manager, scope_type):
    return [scope for scope in manager.scopes if scope.type == scope_type]


def _all_references(manager):
    for scope in manager.scopes:
        yield from scope.references


def _is_ancestor_or_self(candidate, scope):
    while scope is not None:
        if scope is candidate:
            return True
        scope = scope.upper
    return False


SAMPLE = """
var counter = 0;
function outer(a, {b, c: [d]}) {
  let local = a + b;
  {
    const inner = d;
    var hoisted = inner;
  }
  for (let i of [local]) { counter += i; }
  return function named() { return named, hoisted; };
}
class Shape extends Object { area() { return Shape; } }
try { outer(); } catch (err) { err; }
"""


def test_every_variable_has_a_definition():
    _, manager = _analyze(SAMPLE)
    for scope in manager.scopes:
        for name, variable in scope.variables.items():
            if name == "arguments" and scope.type == ScopeType.FUNCTION:
                continue
            assert variable.defs, f"{variable.name} in {scope.type} has no definition"
            assert variable.scope is scope


def test_references_resolve_to_enclosing_scopes():
    _, manager = _analyze(SAMPLE)
    resolved = [ref for ref in _all_references(manager) if ref.resolved is not None]
    assert resolved
    for ref in resolved:
        assert _is_ancestor_or_self(ref.resolved.scope, ref.from_scope)
        assert ref in ref.resolved.references


def test_all_scopes_are_closed():
    _, manager = _analyze(SAMPLE)
    assert all(scope.is_closed for scope in manager.scopes)
    assert manager.global_scope is manager.scopes[0]


def test_analysis_is_repeatable():
    def shape(manager):
        return [
            (
                scope.type,
                sorted(
                    (name, tuple(d.kind for d in var.defs), len(var.references))
                    for name, var in scope.variables.items()
                ),
                len(scope.through),
            )
            for scope in manager.scopes
        ]

    _, first = _analyze(SAMPLE)
    _, second = _analyze(SAMPLE)
    assert shape(first) == shape(second)


@pytest.mark.parametrize("ecma_version", [5, 6])
def test_var_in_block_hoists_to_function(ecma_version):
    ast, manager = _analyze(
        "function f() { { var x = 1; } return x; }", ecma_version=ecma_version
    )
    function_scope = manager.acquire(ast["body"][0])

    assert "x" in function_scope.variables
    assert all("x" not in scope.variables for scope in _scopes_of_type(manager, ScopeType.BLOCK))
    refs = function_scope.variables["x"].references
    assert [ref.flag for ref in refs] == [ReferenceFlag.WRITE, ReferenceFlag.READ]


def test_let_in_block_is_invisible_outside_at_es6():
    ast, manager = _analyze("{ let y = 1; } y;", ecma_version=6)
    block_scope = manager.acquire(ast["body"][0])

    assert block_scope.type == ScopeType.BLOCK
    assert "y" in block_scope.variables
    assert "y" not in manager.global_scope.variables
    unresolved = [ref for ref in manager.global_scope.through if ref.name == "y"]
    assert len(unresolved) == 1 and unresolved[0].resolved is None


def test_let_in_block_falls_back_to_enclosing_scope_at_es5():
    ast, manager = _analyze("{ let y = 1; } y;", ecma_version=5)

    assert manager.acquire(ast["body"][0]) is None
    assert [scope.type for scope in manager.scopes] == [ScopeType.GLOBAL]
    variable = manager.global_scope.variables["y"]
    assert len(variable.references) == 2
    assert manager.global_scope.through == []


def test_for_of_let_uses_tdz_and_iteration_scopes():
    ast, manager = _analyze("let arr = [1]; for (let i of arr) { console.log(i); }")
    loop = ast["body"][1]

    tdz_scope, iteration_scope = manager.acquire_all(loop)
    assert tdz_scope.type == ScopeType.TDZ
    assert iteration_scope.type == ScopeType.BLOCK
    assert iteration_scope.upper is manager.global_scope
    assert tdz_scope.upper is manager.global_scope
    assert manager.acquire(loop) is iteration_scope
    assert manager.acquire(loop, inner=True) is iteration_scope

    bound = [
        scope.variables["i"]
        for scope in manager.scopes
        if scope.type != ScopeType.TDZ and "i" in scope.variables
    ]
    assert len(bound) == 1
    i_var = bound[0]
    assert i_var.scope is iteration_scope
    assert [ref.flag for ref in i_var.references] == [ReferenceFlag.WRITE, ReferenceFlag.READ]
    assert i_var.references[0].write_expr is loop["right"]
    assert i_var.references[0].init
    assert tdz_scope.variables["i"].defs[0].kind == DefinitionKind.TDZ
    assert tdz_scope.variables["i"].references == []

    arr_refs = manager.global_scope.variables["arr"].references
    read = [ref for ref in arr_refs if ref.is_read()]
    assert len(read) == 1
    assert read[0].is_read_only()
    assert read[0].from_scope is tdz_scope


def test_for_of_right_hand_side_sees_tdz_binding():
    ast, manager = _analyze("let i = []; for (let i of i) {}")
    tdz_scope = manager.acquire_all(ast["body"][1])[0]

    refs = tdz_scope.variables["i"].references
    assert len(refs) == 1 and refs[0].is_read_only()
    assert len(manager.global_scope.variables["i"].references) == 1


def test_lexical_iteration_phases_are_ordered():
    assert LEXICAL_ITERATION_PHASES[0] is IterationPhase.MATERIALIZE_TDZ
    assert LEXICAL_ITERATION_PHASES.index(IterationPhase.CLOSE_TDZ) < LEXICAL_ITERATION_PHASES.index(
        IterationPhase.MATERIALIZE_ITERATION
    )
    assert LEXICAL_ITERATION_PHASES[-1] is IterationPhase.CLOSE_ITERATION


def test_for_in_var_writes_from_right_hand_side():
    ast, manager = _analyze("for (var k in obj) { k; }", ecma_version=5)
    loop = ast["body"][0]

    assert manager.acquire_all(loop) is None
    refs = manager.global_scope.variables["k"].references
    assert refs[0].is_write_only()
    assert refs[0].write_expr is loop["right"]


def test_for_in_let_is_not_materialized_at_es5():
    ast, manager = _analyze("for (let k in obj) {}", ecma_version=5)

    assert manager.acquire_all(ast["body"][0]) is None
    assert "k" in manager.global_scope.variables


def test_for_in_bare_target_may_create_implicit_global():
    _, manager = _analyze("for (k in obj) {}")

    assert "k" in manager.global_scope.implicit.variables


def test_for_statement_let_gets_one_scope():
    ast, manager = _analyze("for (let i = 0; i < 3; i++) {}")
    loop_scope = manager.acquire(ast["body"][0])

    assert loop_scope.type == ScopeType.BLOCK
    flags = [ref.flag for ref in loop_scope.variables["i"].references]
    assert flags == [ReferenceFlag.WRITE, ReferenceFlag.READ, ReferenceFlag.RW]


def test_for_statement_var_gets_no_scope():
    ast, manager = _analyze("for (var i = 0; i < 3; i++) {}")

    assert manager.acquire_all(ast["body"][0]) is None
    assert "i" in manager.global_scope.variables


def test_parameter_destructuring():
    ast, manager = _analyze("function f(a, {b, c: [d]}) {}")
    function_scope = manager.acquire(ast["body"][0])

    assert set(function_scope.variables) == {"a", "b", "d", "arguments"}
    assert function_scope.variables["arguments"].defs == []
    for name, index in (("a", 0), ("b", 1), ("d", 1)):
        definition = function_scope.variables[name].defs[0]
        assert definition.kind == DefinitionKind.PARAMETER
        assert definition.index == index
        assert definition.node is ast["body"][0]


def test_arguments_is_bound_in_function_scope():
    ast, manager = _analyze("function f() { arguments = []; return arguments.length; }")
    function_scope = manager.acquire(ast["body"][0])

    variable = function_scope.variables["arguments"]
    assert [ref.flag for ref in variable.references] == [ReferenceFlag.WRITE, ReferenceFlag.READ]
    assert "arguments" not in manager.global_scope.variables
    assert manager.global_scope.implicit.variables == {}
    assert manager.global_scope.through == []
    assert function_scope.is_arguments_materialized()


def test_arrow_function_reads_enclosing_arguments():
    ast, manager = _analyze("function f() { return () => arguments[0]; }")
    function_scope = manager.acquire(ast["body"][0])
    arrow_scope = function_scope.child_scopes[0]

    assert "arguments" not in arrow_scope.variables
    assert not arrow_scope.is_arguments_materialized()
    ref = arrow_scope.references[0]
    assert ref.resolved is function_scope.variables["arguments"]
    assert not ref.resolved.stack


def test_unused_arguments_is_not_materialized():
    ast, manager = _analyze("function f(a) { return a; } function g() { eval(''); }")

    assert not manager.acquire(ast["body"][0]).is_arguments_materialized()
    assert manager.acquire(ast["body"][1]).is_arguments_materialized()


def test_block_bodied_arrow_reads_its_own_prologue():
    _, manager = _analyze("var g = () => { 'use strict'; y = 1; }; var h = () => z = 1;")
    arrow_scopes = _scopes_of_type(manager, ScopeType.FUNCTION)

    assert [scope.is_strict for scope in arrow_scopes] == [True, False]
    assert set(manager.global_scope.implicit.variables) == {"z"}


def test_arguments_at_top_level_stays_global():
    _, manager = _analyze("arguments;")

    assert "arguments" not in manager.global_scope.variables
    assert [ref.name for ref in manager.global_scope.through] == ["arguments"]


def test_parameter_defaults_are_read_in_function_scope():
    ast, manager = _analyze("function f(a = fallback) { return a; }")
    function_scope = manager.acquire(ast["body"][0])

    assert "a" in function_scope.variables
    fallback = next(ref for ref in function_scope.references if ref.name == "fallback")
    assert fallback.resolved is None
    assert fallback in manager.global_scope.through


def test_declaration_destructuring_marks_partial_writes():
    _, manager = _analyze("var {p, q: [r]} = source, plain = 1;")
    variables = manager.global_scope.variables

    for name in ("p", "r"):
        write = variables[name].references[0]
        assert write.is_write_only()
        assert write.partial
        assert not write.init
        assert variables[name].defs[0].declaration_kind == "var"
        assert variables[name].defs[0].index == 0
    plain_write = variables["plain"].references[0]
    assert plain_write.init and not plain_write.partial
    assert variables["plain"].defs[0].index == 1


def test_sloppy_assignment_creates_implicit_global():
    _, manager = _analyze("function f() { x = 1; }")
    global_scope = manager.global_scope

    variable = global_scope.variables["x"]
    assert variable.defs[0].kind == DefinitionKind.VARIABLE
    assert global_scope.implicit.variables["x"] is variable
    assert variable.references[0].is_write()


@pytest.mark.parametrize(
    "source, options",
    [
        ('"use strict"; x = 1;', {}),
        ("function f() { 'use strict'; x = 1; }", {}),
        ('"use strict"; x = 1;', {"directive": True}),
        ("x = 1;", {"implied_strict": True}),
        ("x = 1;", {"source_type": "module"}),
    ],
)
def test_strict_assignment_stays_unresolved(source, options):
    _, manager = _analyze(source, module=options.get("source_type") == "module", **options)
    global_scope = manager.global_scope

    assert "x" not in global_scope.variables
    assert global_scope.implicit.variables == {}
    through = [ref for ref in global_scope.through if ref.name == "x"]
    assert len(through) == 1
    assert through[0].is_write() and through[0].resolved is None


def test_destructuring_assignment_offers_each_name():
    _, manager = _analyze("[a, , ...rest] = list; ({k: v} = obj);")

    assert set(manager.global_scope.implicit.variables) == {"a", "rest", "v"}


def test_compound_assignment_is_read_write():
    ast, manager = _analyze("var a = 0; a += 2; a++;")
    refs = manager.global_scope.variables["a"].references

    assert [ref.flag for ref in refs] == [ReferenceFlag.WRITE, ReferenceFlag.RW, ReferenceFlag.RW]
    assert refs[1].write_expr is ast["body"][1]["expression"]["right"]
    assert refs[2].write_expr is None


def test_member_expression_property_is_not_a_reference():
    _, manager = _analyze("var o, k; o.p; o[k];")

    names = [ref.name for ref in manager.global_scope.references]
    assert names == ["o", "o", "k"]


def test_labels_are_not_references():
    _, manager = _analyze("outer: for (;;) { break outer; continue outer; }")

    assert all(ref.name != "outer" for ref in _all_references(manager))


def test_function_declaration_name_is_bound_in_enclosing_scope():
    ast, manager = _analyze("function f() {}")

    assert manager.global_scope.variables["f"].defs[0].kind == DefinitionKind.FUNCTION_NAME
    assert "f" not in manager.acquire(ast["body"][0]).variables


def test_named_function_expression_gets_name_scope():
    ast, manager = _analyze("var g = function h() { return h; };")
    function_node = ast["body"][0]["declarations"][0]["init"]

    name_scope, function_scope = manager.acquire_all(function_node)
    assert name_scope.type == ScopeType.FUNCTION_EXPRESSION_NAME
    assert name_scope.function_expression_scope
    assert function_scope.upper is name_scope
    assert manager.acquire(function_node) is function_scope
    assert manager.release(function_node) is manager.global_scope

    h_ref = function_scope.references[0]
    assert h_ref.resolved is name_scope.variables["h"]
    assert "h" not in manager.global_scope.variables


def test_class_scope_binds_name_after_heritage():
    ast, manager = _analyze("class A extends A {} ")
    class_scope = manager.acquire(ast["body"][0])

    heritage = next(ref for ref in manager.global_scope.references if ref.name == "A")
    assert heritage.resolved is manager.global_scope.variables["A"]
    assert class_scope.variables["A"].defs[0].kind == DefinitionKind.CLASS_NAME


def test_class_expression_name_is_only_inside():
    _, manager = _analyze("var K = class Inner { m() { return Inner; } };")
    class_scope = _scopes_of_type(manager, ScopeType.CLASS)[0]

    assert "Inner" not in manager.global_scope.variables
    assert len(class_scope.variables["Inner"].references) == 1


def test_catch_clause_binds_parameter():
    ast, manager = _analyze("try {} catch (e) { e; }", ecma_version=5)
    catch_node = ast["body"][0]["handler"]
    catch_scope = manager.acquire(catch_node)

    assert catch_scope.type == ScopeType.CATCH
    variable = catch_scope.variables["e"]
    assert variable.defs[0].kind == DefinitionKind.CATCH_CLAUSE
    assert variable.defs[0].node is catch_node
    assert len(variable.references) == 1


def test_switch_scope_at_es6():
    ast, manager = _analyze("switch (a) { case 1: let z; }")
    switch_scope = manager.acquire(ast["body"][0])

    assert switch_scope.type == ScopeType.SWITCH
    assert "z" in switch_scope.variables
    assert [ref.name for ref in manager.global_scope.references] == ["a"]


def test_direct_eval_marks_variable_scope():
    ast, manager = _analyze("function f() { { eval('1'); } }")
    function_scope = manager.acquire(ast["body"][0])

    assert function_scope.direct_call_to_eval_scope
    assert function_scope.dynamic
    assert manager.global_scope.dynamic
    block_scope = function_scope.child_scopes[0]
    assert not block_scope.direct_call_to_eval_scope


def test_ignore_eval_option():
    ast, manager = _analyze("function f() { eval('1'); }", ignore_eval=True)

    assert not manager.acquire(ast["body"][0]).direct_call_to_eval_scope


def test_eval_scope_closes_dynamically_unless_optimistic():
    source = "function f(p) { eval(''); return p; }"

    ast, manager = _analyze(source)
    function_scope = manager.acquire(ast["body"][0])
    p_ref = next(ref for ref in function_scope.references if ref.name == "p")
    assert p_ref.resolved is None
    assert p_ref in manager.global_scope.through

    ast, manager = _analyze(source, optimistic=True)
    function_scope = manager.acquire(ast["body"][0])
    p_ref = next(ref for ref in function_scope.references if ref.name == "p")
    assert p_ref.resolved is function_scope.variables["p"]


def test_with_scope_is_dynamic():
    source = "var x; with (obj) { x; }"

    ast, manager = _analyze(source)
    with_scope = manager.acquire(ast["body"][1])
    assert with_scope.type == ScopeType.WITH
    assert not with_scope.is_static()
    assert manager.global_scope.variables["x"].references == []

    _, manager = _analyze(source, optimistic=True)
    assert len(manager.global_scope.variables["x"].references) == 1


def test_this_expression_marks_variable_scope():
    ast, manager = _analyze("function f() { if (1) { this.x = 1; } } g();")

    assert manager.acquire(ast["body"][0]).this_found
    assert not manager.global_scope.this_found


def test_import_outside_module_aborts():
    tree = {
        "type": "Program",
        "sourceType": "script",
        "body": [
            {
                "type": "ImportDeclaration",
                "specifiers": [
                    {"type": "ImportDefaultSpecifier", "local": {"type": "Identifier", "name": "x"}}
                ],
                "source": {"type": "Literal", "value": "m", "raw": "'m'"},
            }
        ],
    }
    with pytest.raises(ScopeAnalysisError):
        analyze(tree)


def test_import_requires_es6():
    parsed = parse_js("import x from 'm';", source_type="module", tolerant=False)
    with pytest.raises(ScopeAnalysisError, match="ES6 module"):
        analyze(parsed.ast, ecma_version=5, source_type="module")


def test_module_scope_holds_imports():
    ast, manager = _analyze(
        "import a, { b as c } from 'm'; export { c }; export { d } from 'n';",
        module=True,
    )
    global_scope, module_scope = manager.scopes

    assert manager.acquire(ast) is global_scope
    assert manager.acquire(ast, inner=True) is module_scope
    assert manager.release(ast, inner=True) is global_scope
    assert manager.release(ast) is None
    assert set(module_scope.variables) == {"a", "c"}
    assert all(
        v.defs[0].kind == DefinitionKind.IMPORT_BINDING for v in module_scope.variables.values()
    )
    assert [ref.name for ref in module_scope.references] == ["c"]
    assert all(ref.name != "d" for ref in _all_references(manager))


def test_export_default_expression_is_visited():
    _, manager = _analyze("const value = 1; export default value;", module=True)
    module_scope = manager.scopes[1]

    assert len(module_scope.variables["value"].references) == 2


def test_resolve_returns_reference_for_identifier():
    ast, manager = _analyze("var a; a;")
    identifier = ast["body"][1]["expression"]

    reference = manager.global_scope.resolve(identifier)
    assert reference is not None and reference.identifier is identifier
    assert manager.global_scope.is_used_name("a")
    assert not manager.global_scope.is_used_name("b")
