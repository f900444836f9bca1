from vardec.services.languages.base import ScopeRange, VariableUsage
from vardec.services.liveness import (
    Document,
    compute_decisions,
    is_anchor_line,
    straddles,
)


def _whole(document: Document):
    return lambda line: ScopeRange(0, document.line_count - 1)


def test_declaration_is_first_use():
    usage = VariableUsage(name="v", declared_at=3)

    assert usage.used_at == [3]

    usage.add_use(5)
    usage.add_use(5)
    assert usage.used_at == [3, 5]


def test_anchor_is_last_line_of_blank_run():
    document = Document.from_text("a\n\n  \nb\n\nc")

    anchors = [line for line in range(document.line_count) if is_anchor_line(document, line)]

    # Whitespace-only lines count as blank.
    assert anchors == [2, 4]


def test_trailing_blank_lines_have_no_anchor():
    document = Document.from_text("a\nb\n\n\n")

    assert not any(is_anchor_line(document, line) for line in range(document.line_count))


def test_straddles_needs_uses_on_both_sides_within_scope():
    usage = VariableUsage(name="v", declared_at=0, used_at=[0, 4, 9])

    assert straddles(usage, 2, ScopeRange(0, 9))
    assert not straddles(usage, 2, ScopeRange(0, 3))
    assert not straddles(usage, 2, ScopeRange(1, 9))
    assert not straddles(usage, 9, ScopeRange(0, 9))
    # Uses on the line itself count as "before".
    assert straddles(usage, 4, ScopeRange(0, 9))


def test_compute_decisions_picks_straddling_variables():
    document = Document.from_text("a\n\n\nb\n\nc")
    usages = [
        VariableUsage(name="v1", declared_at=0, used_at=[0, 3]),
        VariableUsage(name="v2", declared_at=3, used_at=[3]),
        VariableUsage(name="v3", declared_at=0, used_at=[0, 5]),
    ]

    decisions = compute_decisions(document, usages, _whole(document))

    assert [(d.line, d.names) for d in decisions] == [
        (2, ["v1", "v3"]),
        (4, ["v3"]),
    ]
    assert [v.remaining_uses for v in decisions[0].variables] == [1, 1]


def test_every_listed_variable_straddles_its_line():
    document = Document.from_text("x\n\ny\n\nz\n\nw")
    usages = [
        VariableUsage(name="a", declared_at=0, used_at=[0, 2, 6]),
        VariableUsage(name="b", declared_at=2, used_at=[2, 4]),
        VariableUsage(name="c", declared_at=4, used_at=[4]),
    ]
    scope_lookup = _whole(document)

    decisions = compute_decisions(document, usages, scope_lookup)

    by_name = {u.name: u for u in usages}
    assert decisions
    for decision in decisions:
        for name in decision.names:
            assert straddles(by_name[name], decision.line, scope_lookup(decision.line))


def test_empty_set_produces_no_decision():
    document = Document.from_text("a\n\nb")
    usages = [VariableUsage(name="v", declared_at=2, used_at=[2])]

    assert compute_decisions(document, usages, _whole(document)) == []


def test_line_without_scope_is_skipped():
    document = Document.from_text("a\n\nb")
    usages = [VariableUsage(name="v", declared_at=0, used_at=[0, 2])]

    assert compute_decisions(document, usages, lambda line: None) == []


def test_scope_limits_uses():
    document = Document.from_text("a\nb\n\nc\nd")
    usages = [VariableUsage(name="v", declared_at=0, used_at=[0, 4])]

    # The scope around the gap only covers lines 1-3, so neither use counts.
    decisions = compute_decisions(document, usages, lambda line: ScopeRange(1, 3))

    assert decisions == []


def test_shadowed_names_are_listed_once():
    document = Document.from_text("a\n\nb")
    usages = [
        VariableUsage(name="x", declared_at=0, used_at=[0, 2]),
        VariableUsage(name="x", declared_at=0, used_at=[0, 2]),
    ]

    decisions = compute_decisions(document, usages, _whole(document))

    assert [d.names for d in decisions] == [["x"]]


def test_indent_comes_from_next_line():
    document = Document.from_text("a\n\n\tb\n\n  \tc", tab_size=4)
    usages = [VariableUsage(name="v", declared_at=0, used_at=[0, 2, 4])]

    decisions = compute_decisions(document, usages, _whole(document))

    assert [(d.line, d.indent) for d in decisions] == [(1, 4), (3, 6)]


def test_tab_size_is_respected():
    document = Document.from_text("\tfoo", tab_size=8)

    assert document.indentation(0) == 8


def test_crlf_line_endings():
    document = Document.from_text("a\r\n\r\nb\r\n")

    assert document.lines == ["a", "", "b", ""]
    assert is_anchor_line(document, 1)


def test_decisions_are_deterministic():
    document = Document.from_text("a\n\nb\n\nc")
    usages = [
        VariableUsage(name="p", declared_at=0, used_at=[0, 2, 4]),
        VariableUsage(name="q", declared_at=0, used_at=[0, 4]),
    ]

    first = compute_decisions(document, usages, _whole(document))
    second = compute_decisions(document, usages, _whole(document))

    assert first == second
