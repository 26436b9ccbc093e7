"""Tests for the pattern catalog."""

from astralis.parser import dedupe_matches, sweep_lines
from astralis.patterns import CODE_PATTERNS


def first_match(code: str):
    """Return the first surviving match for *code*."""
    lines = code.split("\n")
    matches = dedupe_matches(sweep_lines(lines))
    assert matches, f"nothing matched: {code!r}"
    return matches[0]


class TestCatalog:
    """Tests for catalog ordering."""

    def test_sorted_by_priority(self):
        priorities = [p.priority for p in CODE_PATTERNS]
        assert priorities == sorted(priorities, reverse=True)

    def test_equal_priority_keeps_declaration_order(self):
        names = [p.name for p in CODE_PATTERNS]
        assert names.index("useState") < names.index("useEffect")

    def test_names_are_unique(self):
        names = [p.name for p in CODE_PATTERNS]
        assert len(names) == len(set(names))


class TestImports:
    """Tests for import grouping."""

    def test_consecutive_imports_group(self):
        raw = first_match("import a from 'a';\nimport b from 'b';\n\nconst x = 1;")
        assert raw.pattern_name == "imports"
        assert (raw.match.line_start, raw.match.line_end) == (1, 2)
        assert raw.match.label == "IMPORTS"

    def test_multiline_import(self):
        code = "import {\n  a,\n  b,\n} from 'x';\nimport c from 'c';"
        raw = first_match(code)
        assert (raw.match.line_start, raw.match.line_end) == (1, 5)

    def test_python_imports(self):
        raw = first_match("import os\nfrom pathlib import Path\nx = 1")
        assert raw.pattern_name == "imports"
        assert raw.match.line_end == 2


class TestDeclarations:
    """Tests for interfaces, classes, functions and routes."""

    def test_interface_members_become_rows(self):
        code = "interface User {\n  id: number;\n  name?: string;\n}"
        raw = first_match(code)
        assert raw.match.label == "Interface: User"
        assert raw.match.line_end == 4
        assert [s.code_ref for s in raw.match.logic_steps] == ["id: number", "name: string"]

    def test_class_block(self):
        raw = first_match("class Loader:\n    def run(self):\n        pass\nx = 1")
        assert raw.match.label == "Class: Loader"
        assert raw.match.line_end == 3

    def test_route(self):
        raw = first_match("router.get('/users/:id', (req, res) => {\n  res.send(1);\n});")
        assert raw.pattern_name == "route"
        assert raw.match.label == "GET /users/:id"
        assert raw.match.shape == "hexagon"
        assert raw.match.color == "purple"
        assert raw.match.line_end == 3

    def test_component_claims_signature_only(self):
        raw = first_match("export default function Profile() {\n  return null;\n}")
        assert raw.match.label == "Component: Profile"
        assert raw.match.shape == "rounded"
        assert raw.match.color == "cyan"
        assert raw.match.line_end == 1

    def test_plain_function_claims_body(self):
        raw = first_match("function add(a, b) {\n  return a + b;\n}")
        assert raw.match.label == "Function: add"
        assert raw.match.color == "green"
        assert raw.match.line_end == 3

    def test_python_function(self):
        raw = first_match("def load(path):\n    return path\n\nx = 1")
        assert raw.match.label == "Function: load"
        assert raw.match.line_end == 2

    def test_async_function_with_fetch_is_api(self):
        code = "const loadUsers = async () => {\n  const r = await fetch('/api');\n};"
        raw = first_match(code)
        assert raw.match.label == "API: loadUsers"
        assert raw.match.line_end == 3

    def test_async_handler(self):
        raw = first_match("async function handleSubmit(e) {\n  e.preventDefault();\n}")
        assert raw.match.label == "Handler: handleSubmit"

    def test_async_def(self):
        raw = first_match("async def sync_all():\n    await run()\n")
        assert raw.match.label == "Async: sync_all"
        assert raw.match.line_end == 2


class TestDataAndHooks:
    """Tests for queries, state, effects and custom hooks."""

    def test_prisma_query_spans_object_literal(self):
        code = "const user = await prisma.user.findUnique({\n  where: { id },\n});"
        raw = first_match(code)
        assert raw.pattern_name == "dataQuery"
        assert raw.match.label == "Prisma: user.findUnique"
        assert raw.match.line_end == 3

    def test_django_query(self):
        raw = first_match("users = User.objects.filter(active=True)")
        assert raw.match.label == "Query: User.filter"

    def test_use_state(self):
        raw = first_match("const [count, setCount] = useState(0);")
        assert raw.match.label == "useState: count"
        assert raw.match.color == "green"

    def test_multiline_use_state(self):
        raw = first_match("const [form, setForm] = useState({\n  name: '',\n});")
        assert raw.match.line_end == 3

    def test_use_effect(self):
        raw = first_match("useEffect(() => {\n  load();\n}, []);")
        assert raw.match.label == "useEffect"
        assert (raw.match.line_start, raw.match.line_end) == (1, 3)
        assert raw.match.shape == "hexagon"

    def test_custom_hook(self):
        raw = first_match("const navigate = useNavigate();")
        assert raw.match.label == "Hook: useNavigate"


class TestDecisions:
    """Tests for guards, if blocks, switches and try blocks."""

    def test_guard_returning_null(self):
        raw = first_match("if (!user) return null;")
        match = raw.match
        assert match.is_decision
        assert match.label == "Is user logged out?"
        assert match.shape == "diamond"
        assert match.color == "red"
        assert match.yes_branch.label == "Return Null"
        assert match.yes_branch.line_start == 1

    def test_guard_returning_jsx(self):
        raw = first_match("if (loading) return <Spinner />;")
        assert raw.match.yes_branch.label == "Return JSX"

    def test_python_guard(self):
        raw = first_match("if not user: return None")
        assert raw.match.label == "Is user logged out?"
        assert raw.match.yes_branch.label == "Return Null"

    def test_if_block(self):
        raw = first_match("if (user.isAdmin) {\n  setRole('admin');\n}")
        match = raw.match
        assert match.is_decision
        assert match.color == "orange"
        assert match.label == "Is user admin?"
        assert (match.line_start, match.line_end) == (1, 3)
        assert match.yes_branch.label == "Update State"
        assert (match.yes_branch.line_start, match.yes_branch.line_end) == (2, 2)

    def test_if_block_condition_with_call(self):
        raw = first_match("if (isValid(form)) {\n  throw new Error('x');\n}")
        assert raw.match.yes_branch.label == "Throw Error"

    def test_single_line_if_block_branch_range(self):
        raw = first_match("if (ready) { go(); }")
        branch = raw.match.yes_branch
        assert (branch.line_start, branch.line_end) == (1, 1)

    def test_python_if_block(self):
        raw = first_match("if count > 3:\n    raise ValueError()\nx = 1")
        assert raw.match.line_end == 2
        assert raw.match.yes_branch.label == "Throw Error"

    def test_switch_has_no_branch(self):
        code = "switch (action.type) {\n  case 'add':\n    return 1;\n  default:\n    return 0;\n}"
        raw = first_match(code)
        assert raw.match.is_decision
        assert raw.match.condition == "Which case matches action.type?"
        assert raw.match.yes_branch is None
        assert raw.match.line_end == 6

    def test_try_block(self):
        code = "try {\n  run();\n} catch (err) {\n  log(err);\n}"
        raw = first_match(code)
        assert raw.match.label == "Try Block"
        assert raw.match.line_end == 5


class TestRenderAndExports:
    """Tests for render, declarations and exports."""

    def test_return_jsx(self):
        raw = first_match("return (\n  <div>hi</div>\n);")
        assert raw.match.label == "RENDER"
        assert raw.match.line_end == 3

    def test_const_declaration(self):
        raw = first_match("const router = Router();")
        assert raw.match.label == "router = Router()"

    def test_exports(self):
        assert first_match("export default App;").match.label == "Export Default"
        assert first_match("export { a, b };").match.label == "Named Exports"
