"""Tests for the line sweep, dedupe and graph assembly."""

from astralis.analyzer import analyze
from astralis.gaps import uncovered_lines
from astralis.models import FlowNode, PatternMatch
from astralis.parser import (
    SUB_FLOW_MIN_SPAN,
    GraphAssembler,
    RawMatch,
    branch_color,
    dedupe_matches,
    parse_code,
    parse_sub_nodes,
    sweep_lines,
)


def _raw(index: int, start: int, end: int, name: str = "x", **kwargs) -> RawMatch:
    return RawMatch(index, name, PatternMatch(
        label=kwargs.pop("label", name),
        subtitle=None,
        shape=kwargs.pop("shape", "rectangle"),
        color=kwargs.pop("color", "blue"),
        line_start=start,
        line_end=end,
        code_snippet="",
        **kwargs,
    ))


class TestSweep:
    """Tests for sweep_lines."""

    def test_skips_blank_and_comment_lines(self):
        lines = ["", "// import x from 'y';", "# import os", "import a from 'a';"]
        matches = sweep_lines(lines)
        assert [m.index for m in matches] == [3]

    def test_first_pattern_claims_line(self):
        matches = sweep_lines(["const [a, setA] = useState(0);"])
        assert len(matches) == 1
        assert matches[0].pattern_name == "useState"

    def test_unmatched_lines_produce_nothing(self):
        assert sweep_lines(["plain text", "more text"]) == []


class TestDedupe:
    """Tests for dedupe_matches."""

    def test_nested_match_dropped(self):
        kept = dedupe_matches([_raw(0, 1, 5), _raw(2, 3, 3), _raw(6, 7, 7)])
        assert [(r.match.line_start, r.match.line_end) for r in kept] == [(1, 5), (7, 7)]

    def test_overlap_decided_by_start_line(self):
        kept = dedupe_matches([_raw(0, 1, 3), _raw(3, 4, 9)])
        assert len(kept) == 2

    def test_empty(self):
        assert dedupe_matches([]) == []


class TestGraphAssembler:
    """Tests for GraphAssembler."""

    def test_sequential_edges(self):
        assembler = GraphAssembler()
        assembler.assemble([_raw(0, 1, 1, "a"), _raw(1, 2, 2, "b"), _raw(2, 3, 3, "c")])
        assert [n.id for n in assembler.nodes] == ["n1", "n2", "n3"]
        assert [(e.id, e.source, e.target, e.label) for e in assembler.edges] == [
            ("e1", "n1", "n2", ""),
            ("e2", "n2", "n3", ""),
        ]

    def test_decision_gets_yes_node_and_no_edge(self):
        from astralis.models import Branch

        decision = _raw(
            1, 2, 2, "guardClause",
            label="Is user logged out?",
            shape="diamond",
            color="red",
            is_decision=True,
            condition="Is user logged out?",
            yes_branch=Branch("Return Null", 2, 2, "return null"),
        )
        assembler = GraphAssembler()
        assembler.assemble([_raw(0, 1, 1, "a"), decision, _raw(2, 3, 3, "c")])

        labels = {n.id: n.label for n in assembler.nodes}
        assert labels == {"n1": "a", "n2": "Is user logged out?", "n3": "Return Null", "n4": "c"}
        yes_node = assembler.nodes[2]
        assert yes_node.subtitle == "Early Exit"
        assert yes_node.color == "red"
        assert assembler.branch_ids == ["n3"]

        edges = [(e.source, e.target, e.label, e.source_handle) for e in assembler.edges]
        assert ("n2", "n3", "YES", "yes") in edges
        assert ("n1", "n2", "", None) in edges
        assert ("n2", "n4", "NO", "no") in edges
        assert len(edges) == 3

    def test_logic_table_defaults(self):
        assembler = GraphAssembler()
        assembler.assemble([_raw(0, 1, 1, "a")])
        row = assembler.nodes[0].logic_table[0]
        assert (row.step, row.trigger, row.output) == ("1", "Execution", "Continue")

    def test_branch_color(self):
        assert branch_color("Return JSX") == "red"
        assert branch_color("Update State") == "green"
        assert branch_color("Render list") == "cyan"
        assert branch_color("Navigate home") == "purple"
        assert branch_color("Execute Block") == "blue"


class TestParseCode:
    """Tests for parse_code on realistic sources."""

    def test_component(self, component_source):
        result, branch_ids = parse_code(component_source, "UserList.tsx", "tsx")
        labels = [n.label for n in result.nodes]
        assert labels == [
            "IMPORTS",
            "Interface: User",
            "Component: UserList",
            "useState: users",
            "useState: loading",
            "Hook: useNavigate",
            "useEffect",
            "API: fetchUsers",
            "Is loading?",
            "Return JSX",
            "RENDER",
        ]
        assert branch_ids == ["n10"]
        assert result.total_lines == 32

        by_id = {n.id: n for n in result.nodes}
        assert (by_id["n2"].line_start, by_id["n2"].line_end) == (4, 7)
        assert (by_id["n7"].line_start, by_id["n7"].line_end) == (14, 16)
        assert (by_id["n8"].line_start, by_id["n8"].line_end) == (18, 23)
        assert (by_id["n11"].line_start, by_id["n11"].line_end) == (27, 31)

        no_edges = [e for e in result.edges if e.label == "NO"]
        assert [(e.source, e.target) for e in no_edges] == [("n9", "n11")]

    def test_route(self, route_source):
        result, _ = parse_code(route_source, "auth_routes.ts", "typescript")
        assert [n.label for n in result.nodes] == ["router = Router()", "POST /login", "Export Default"]
        route = result.nodes[1]
        assert (route.line_start, route.line_end) == (3, 10)

    def test_python(self, python_source):
        result, _ = parse_code(python_source, "loader.py", "python")
        assert [n.label for n in result.nodes] == ["IMPORTS", "Function: load", "Class: Loader"]
        assert [(n.line_start, n.line_end) for n in result.nodes] == [(1, 2), (4, 7), (9, 11)]

    def test_empty_source(self):
        result, branch_ids = parse_code("", "empty.ts", "typescript")
        assert result.nodes == []
        assert result.edges == []
        assert result.total_lines == 1
        assert branch_ids == []


ORDERS_JS = """const loadOrders = async () => {
  try {
    const res = await fetch('/api/orders', {
      method: 'GET',
    });
    setOrders(
      await res.json()
    );
  } catch (err) {
    console.error(err);
  }
};"""

SYNC_PY = """async def sync_orders(url):
    try:
        resp = await httpx.AsyncClient().get(url)
        if not resp:
            return None
        logger.info("synced")
    except Exception:
        logger.exception("failed")"""


class TestSubFlows:
    """Tests for drill-down sub-flows of long routes and async functions."""

    def test_parse_sub_nodes_javascript_body(self):
        lines = ORDERS_JS.split("\n")
        children, edges = parse_sub_nodes(lines, 2, 11)

        assert [c.label for c in children] == [
            "Try Block", "API: res", "setOrders", "Catch Error", "Log Error",
        ]
        assert [c.id for c in children] == ["sub1", "sub2", "sub3", "sub4", "sub5"]
        assert [(c.line_start, c.line_end) for c in children] == [
            (2, 2), (3, 5), (6, 8), (9, 9), (10, 10),
        ]
        assert [(c.shape, c.color) for c in children[:2]] == [("rounded", "orange"), ("hexagon", "purple")]
        assert [(e.id, e.source, e.target) for e in edges] == [
            ("se1", "sub1", "sub2"),
            ("se2", "sub2", "sub3"),
            ("se3", "sub3", "sub4"),
            ("se4", "sub4", "sub5"),
        ]

    def test_parse_sub_nodes_python_body(self):
        lines = SYNC_PY.split("\n")
        children, edges = parse_sub_nodes(lines, 2, 8)

        assert [c.label for c in children] == [
            "Try Block", "API: resp", "If: !resp", "Log", "Catch Error", "Log Error",
        ]
        decision = children[2]
        assert decision.is_decision
        assert decision.condition == "Is resp missing?"
        assert decision.shape == "diamond"
        assert len(edges) == 5

    def test_empty_body(self):
        assert parse_sub_nodes(["", "}"], 1, 2) == ([], [])

    def test_long_async_function_gets_children(self):
        result, _ = parse_code(ORDERS_JS, "orders.ts", "typescript")
        assert len(result.nodes) == 1
        node = result.nodes[0]
        assert node.label == "API: loadOrders"
        assert len(node.children) == 5
        assert node.next_section_label is None

    def test_short_async_function_has_no_children(self):
        source = "\n".join([
            "const load = async () => {",
            "  const a = 1;",
            "  const b = 2;",
            "  const c = 3;",
            "  console.log(a, b, c);",
            "};",
        ])
        result, _ = parse_code(source, "load.ts", "typescript")
        node = result.nodes[0]
        assert node.line_end - node.line_start == SUB_FLOW_MIN_SPAN
        assert node.children == []
        assert node.child_edges == []

    def test_route_children_end_with_next_section(self, route_source):
        result, _ = parse_code(route_source, "auth_routes.ts", "typescript")
        route = result.nodes[1]

        assert [c.label for c in route.children] == [
            "Const: variable", "If: !email", "Const: user", "→ Export Default",
        ]
        assert [c.line_start for c in route.children] == [4, 5, 8, 10]
        assert route.children[1].condition == "Is email missing?"
        assert route.children[-1].subtitle == "Next Section"
        assert [(e.source, e.target) for e in route.child_edges] == [
            ("sub1", "sub2"), ("sub2", "sub3"), ("sub3", "sub4"),
        ]
        assert route.next_section_label == "Export Default"

    def test_children_do_not_change_top_level_flow(self, route_source):
        result = analyze(route_source, "auth_routes.ts", "typescript")
        assert uncovered_lines(result) == []

        top_ids = {n.id for n in result.nodes}
        assert not any(n.id.startswith("sub") for n in result.nodes)
        assert all(e.source in top_ids and e.target in top_ids for e in result.edges)

    def test_assembler_without_lines_skips_sub_flows(self):
        assembler = GraphAssembler()
        node = assembler.add_node(_raw(0, 1, 20, "route").match, "route", "Next")
        assert node.children == []
        assert node.next_section_label is None

    def test_default_logic_row_carries_lines(self):
        assembler = GraphAssembler()
        node = assembler.add_node(_raw(0, 3, 6).match, "x")
        row = node.logic_table[0]
        assert (row.line_start, row.line_end) == (3, 6)
        assert row.to_dict()["lineStart"] == 3
        assert row.to_dict()["lineEnd"] == 6

    def test_sub_flow_serialization(self, route_source):
        result, _ = parse_code(route_source, "auth_routes.ts", "typescript")
        data = result.nodes[1].to_dict()

        assert [c["id"] for c in data["children"]] == ["sub1", "sub2", "sub3", "sub4"]
        assert [e["id"] for e in data["childEdges"]] == ["se1", "se2", "se3"]
        assert data["nextSectionLabel"] == "Export Default"
        assert "children" not in result.nodes[0].to_dict()

        restored = FlowNode.from_dict(data)
        assert restored.to_dict() == data
