"""
Transform registry tests

Tests registration, lookup, freezing, error conversion and the built-in
Mermaid and math transforms.
"""

import pytest

from mdstream.lib.transforms import TransformRegistry, math_transform, mermaid_transform
from mdstream.models.transforms import (
    RegistryFrozenError,
    TransformCategory,
    TransformError,
)


def upper(content):
    return f"<div>{content.upper()}</div>"


class TestRegistration:
    """Test registering and looking up transforms"""

    def test_builtin_tags(self):
        """Default registry serves mermaid and the math tags"""
        registry = TransformRegistry()
        assert registry.tags() == ["latex", "math", "mermaid", "tex"]

    def test_builtin_categories(self):
        """Built-ins provide the diagram and math capabilities"""
        registry = TransformRegistry()
        assert registry.categories() == {TransformCategory.DIAGRAM, TransformCategory.MATH}

    def test_empty_registry(self):
        """builtins=False starts empty"""
        registry = TransformRegistry(builtins=False)
        assert registry.tags() == []
        assert registry.get("mermaid") is None

    def test_lookup_case_insensitive(self):
        """Tags are normalized to lowercase"""
        registry = TransformRegistry(builtins=False)
        registry.register("Shout", priority=1, transform=upper)
        assert registry.get("SHOUT").tag == "shout"
        assert registry.apply("shout", "hi") == "<div>HI</div>"

    def test_aliases(self):
        """Aliases resolve to the same rule"""
        registry = TransformRegistry(builtins=False)
        rule = registry.register("shout", priority=1, transform=upper, aliases=("yell",))
        assert registry.get("yell") is rule
        assert rule.tags == ("shout", "yell")

    def test_register_replaces(self):
        """Registering a tag again replaces the earlier transform"""
        registry = TransformRegistry(builtins=False)
        registry.register("x", priority=10, transform=lambda c: "first")
        registry.register("x", priority=1, transform=lambda c: "second")
        assert registry.apply("x", "") == "second"
        assert len(registry.rules_list()) == 1

    def test_rules_ordered_by_priority(self):
        """rules_list() puts higher priority first"""
        registry = TransformRegistry(builtins=False)
        registry.register("low", priority=1, transform=upper)
        registry.register("high", priority=50, transform=upper)
        registry.register("mid", priority=10, transform=upper)
        assert [r.tag for r in registry.rules_list()] == ["high", "mid", "low"]

    def test_invalid_tag(self):
        """Empty tags and tags with whitespace are rejected"""
        registry = TransformRegistry(builtins=False)
        with pytest.raises(ValueError):
            registry.register("", priority=1, transform=upper)
        with pytest.raises(ValueError):
            registry.register("two words", priority=1, transform=upper)

    def test_frozen_registry(self):
        """No registration after freeze()"""
        registry = TransformRegistry()
        registry.freeze()
        with pytest.raises(RegistryFrozenError):
            registry.register("late", priority=1, transform=upper)
        assert registry.get("late") is None


class TestApply:
    """Test transform application and error conversion"""

    def test_unknown_tag(self):
        """Applying an unregistered tag raises TransformError"""
        registry = TransformRegistry(builtins=False)
        with pytest.raises(TransformError) as info:
            registry.apply("nope", "x")
        assert info.value.tag == "nope"

    def test_exception_converted(self):
        """Any exception from a transform becomes TransformError"""
        def broken(content):
            raise KeyError("missing")

        registry = TransformRegistry(builtins=False)
        registry.register("broken", priority=1, transform=broken)
        with pytest.raises(TransformError) as info:
            registry.apply("broken", "x")
        assert "KeyError" in info.value.reason
        assert isinstance(info.value.__cause__, KeyError)

    def test_transform_error_passes_through(self):
        """TransformError raised by a transform keeps its reason"""
        def picky(content):
            raise TransformError("picky", "not today")

        registry = TransformRegistry(builtins=False)
        registry.register("picky", priority=1, transform=picky)
        with pytest.raises(TransformError, match="not today"):
            registry.apply("picky", "x")

    def test_non_string_result(self):
        """A transform must return text"""
        registry = TransformRegistry(builtins=False)
        registry.register("bad", priority=1, transform=lambda c: None)
        with pytest.raises(TransformError, match="NoneType"):
            registry.apply("bad", "x")

    def test_apply_is_repeatable(self):
        """Applying twice gives the same fragment"""
        registry = TransformRegistry()
        first = registry.apply("mermaid", "graph TD;\nA-->B;\n")
        assert registry.apply("mermaid", "graph TD;\nA-->B;\n") == first


class TestBuiltinTransforms:
    """Test Mermaid and math fragments"""

    def test_mermaid_escapes_source(self):
        """Diagram text is escaped in both element and attribute"""
        fragment = mermaid_transform('A["<b>"]-->B\n')
        assert '<div class="mermaid">A["&lt;b&gt;"]--&gt;B</div>' in fragment
        assert 'data-mermaid-source="A[&quot;&lt;b&gt;&quot;]--&gt;B"' in fragment
        assert "<b>" not in fragment

    def test_mermaid_empty(self):
        """Empty diagram is an error"""
        with pytest.raises(TransformError):
            mermaid_transform("  \n")

    def test_view_toggle(self):
        """Both fragments carry a View button and a hidden raw copy, never pre/code"""
        for fragment, raw in (
            (mermaid_transform("graph TD;\nA-->B;\n"), "mermaid-raw"),
            (math_transform("a < b"), "latex-raw"),
        ):
            assert 'onclick="toggleBlockView(this)"' in fragment
            assert 'title="Toggle rendered/raw view">View</button>' in fragment
            assert f'<div class="{raw} block-raw" hidden>' in fragment
            assert "<pre" not in fragment
            assert "<code" not in fragment
        assert '<div class="latex-raw block-raw" hidden>a &lt; b</div>' in math_transform("a < b")

    def test_math_inline(self):
        """Single-line TeX renders in inline mode"""
        fragment = math_transform("x^2\n")
        assert 'class="latex-math math-inline"' in fragment
        assert 'data-latex="x^2"' in fragment

    def test_math_display_environment(self):
        r"""\begin environments switch to display mode"""
        fragment = math_transform("\\begin{align}a &= b\\end{align}")
        assert "math-display" in fragment
        assert "&amp;" in fragment

    def test_math_forced_display(self):
        """display=True always uses display mode"""
        assert "math-display" in math_transform("x", display=True)

    def test_math_empty(self):
        """Empty equation is an error"""
        with pytest.raises(TransformError):
            math_transform("")
