"""
Property-based tests for ignore rule loading and resolution.

**Feature: nested-ignore-files**
"""

import tempfile
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from flagref.core.file_collector import FileCollector
from flagref.core.ignore_rules import Decision, IgnoreRuleEngine

# =============================================================================
# Strategies for generating test data
# =============================================================================

name_chars = st.sampled_from(list("abcdefghijklmnopqrstuvwxyz0123456789_-"))

simple_name = st.text(name_chars, min_size=1, max_size=12)

# Exclude control characters, surrogates and line separators
comment_line = st.builds(
    lambda content: f"#{content}",
    content=st.text(st.characters(blacklist_categories=["Cc", "Cs", "Zl", "Zp"]), max_size=40),
)

blank_line = st.sampled_from(["", " ", "\t", "   "])


@st.composite
def ignore_file_content(draw):
    """
    Generate ignore file content mixing patterns, comments and blank lines.

    Returns:
        tuple: (content, patterns in file order)
    """
    lines = []
    patterns = []
    for _ in range(draw(st.integers(min_value=0, max_value=15))):
        kind = draw(st.sampled_from(["pattern", "negation", "comment", "blank"]))
        if kind == "pattern":
            pattern = draw(simple_name)
            lines.append(pattern)
            patterns.append(pattern)
        elif kind == "negation":
            pattern = "!" + draw(simple_name)
            lines.append(pattern)
            patterns.append(pattern)
        elif kind == "comment":
            lines.append(draw(comment_line))
        else:
            lines.append(draw(blank_line))
    return "\n".join(lines), patterns


# =============================================================================
# Property Tests
# =============================================================================


@settings(max_examples=50, deadline=None)
@given(data=ignore_file_content())
def test_only_pattern_lines_become_rules(data):
    """
    **Property: Comment and blank lines are skipped**

    The loaded rules correspond one to one, in order, with the pattern lines.
    """
    content, patterns = data

    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        spec_file = root / ".gitignore"
        spec_file.write_text(content, encoding="utf-8")
        rules = IgnoreRuleEngine(spec_file, root).load()

    assert [("!" if r.is_negation else "") + r.pattern for r in rules] == patterns


@settings(max_examples=50, deadline=None)
@given(name=simple_name, negate_first=st.booleans())
def test_first_matching_rule_decides(name, negate_first):
    """
    **Property: First match wins**

    With a negation and a plain rule for the same name, the earlier one decides.
    """
    lines = [f"!{name}", name] if negate_first else [name, f"!{name}"]

    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        spec_file = root / ".gitignore"
        spec_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
        engine = IgnoreRuleEngine(spec_file, root, case_sensitive=True)
        engine.load()

        decision = engine.resolve(root / name)

    assert decision is (Decision.ACCEPT if negate_first else Decision.IGNORE)


@settings(max_examples=30, deadline=None)
@given(depth=st.integers(min_value=1, max_value=4), name=simple_name)
def test_deepest_ignore_file_wins(depth, name):
    """
    **Property: Rank precedence**

    A negation in the deepest directory re-includes a file ignored at the root.
    """
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp).resolve()
        deepest = root.joinpath(*[f"d{i}" for i in range(depth)])
        deepest.mkdir(parents=True)
        (root / ".gitignore").write_text("*.txt\n", encoding="utf-8")
        (deepest / ".ignore").write_text(f"!{name}.txt\n", encoding="utf-8")
        (deepest / f"{name}.txt").write_text("x", encoding="utf-8")
        (root / f"{name}.txt").write_text("x", encoding="utf-8")

        files = FileCollector(case_sensitive=True).collect(root)

    assert files == [deepest / f"{name}.txt"]
