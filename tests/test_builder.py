"""Tests for graph building."""

import pytest

from graph.model import EdgeKind, ModuleKind, ModulePath
from scanner.builder import analyze_path, build_graph, exclude_modules, matches_any
from scanner.errors import (
    CircularModule,
    ModuleFileNotFound,
    RustSyntaxError,
    SourceReadError,
    UnitEnumerationError,
)


def _edges(graph):
    return {(str(e.source), str(e.target)) for e in graph.edges}


def _modules(graph):
    return {str(path) for path in graph.module_paths()}


def _build(crate_dir, name="demo"):
    return build_graph(name, crate_dir / "src" / "lib.rs")


class TestBuildGraph:
    """Tests for build_graph."""

    def test_sample_crate(self, sample_crate):
        """Test the checked-in sample crate end to end."""
        graph = _build(sample_crate, "sample")

        assert _modules(graph) == {"crate", "alpha", "alpha::delta", "beta", "gamma"}
        assert _edges(graph) == {
            ("crate", "alpha"),
            ("crate", "beta"),
            ("crate", "gamma"),
            ("alpha", "alpha::delta"),
            ("beta", "alpha"),
            ("beta", "gamma"),
            ("gamma", "crate"),
        }
        assert not graph.has_diagnostics()
        assert graph.frozen

    def test_sample_kinds(self, sample_crate):
        """Test module kinds and edge kinds."""
        graph = _build(sample_crate, "sample")
        root, alpha = ModulePath.root(), ModulePath.parse("alpha")
        delta = ModulePath.parse("alpha::delta")

        assert graph.get_module(root).kind is ModuleKind.ROOT
        assert graph.get_module(alpha).kind is ModuleKind.EXTERNAL
        assert graph.get_module(alpha).source_file.name == "alpha.rs"
        assert graph.get_module(delta).kind is ModuleKind.INLINE
        assert graph.get_module(delta).source_file is None

        # the declaration edge wins over the re-export's import edge
        assert graph.get_edge(alpha, delta).kind is EdgeKind.DECLARATION
        assert graph.get_edge(ModulePath.parse("beta"), alpha).kind is EdgeKind.IMPORT

    def test_root_only(self, make_crate):
        """Test a crate without any modules."""
        crate = make_crate({"src/lib.rs": "pub fn answer() -> u32 { 42 }\n"})

        graph = _build(crate)

        assert _modules(graph) == {"crate"}
        assert graph.edges == set()
        assert not graph.has_diagnostics()

    def test_cycle(self, make_crate):
        """Test that mutual imports keep both edges."""
        crate = make_crate({
            "src/lib.rs": "mod a;\nmod b;\n",
            "src/a.rs": "use crate::b::B;\npub struct A;\n",
            "src/b.rs": "use crate::a::A;\npub struct B;\n",
        })

        graph = _build(crate)

        assert ("a", "b") in _edges(graph)
        assert ("b", "a") in _edges(graph)

    def test_no_self_edges(self, make_crate):
        """Test that imports from the module itself are dropped."""
        crate = make_crate({
            "src/lib.rs": "mod a;\nuse self::a::Thing;\nuse crate::Root;\npub struct Root;\n",
            "src/a.rs": "use self::Thing as Other;\nuse crate::a::Thing;\npub struct Thing;\n",
        })

        graph = _build(crate)

        assert all(e.source != e.target for e in graph.edges)
        assert _edges(graph) == {("crate", "a")}

    def test_external_crates_are_ignored(self, make_crate):
        """Test that std and third-party imports add nothing."""
        crate = make_crate({
            "src/lib.rs": "use std::collections::HashMap;\nuse serde::Serialize;\nuse ::log;\n",
        })

        assert _build(crate).edges == set()

    def test_syntax_error_in_child(self, make_crate):
        """Test that a broken file is reported and the rest is still analyzed."""
        crate = make_crate({
            "src/lib.rs": "mod good;\nmod bad;\n",
            "src/good.rs": "use crate::bad;\n",
            "src/bad.rs": "mod never;\nfn broken( {\n",
        })

        graph = _build(crate)

        assert _modules(graph) == {"crate", "good", "bad"}
        assert _edges(graph) == {("crate", "good"), ("crate", "bad"), ("good", "bad")}
        assert [type(d) for d in graph.diagnostics] == [RustSyntaxError]
        assert "bad.rs" in str(graph.diagnostics[0])

    def test_syntax_error_in_root(self, make_crate):
        """Test that a broken root yields a root-only graph with a diagnostic."""
        crate = make_crate({
            "src/lib.rs": "mod a;\nfn broken( {\n",
            "src/a.rs": "",
        })

        graph = _build(crate)

        assert _modules(graph) == {"crate"}
        assert graph.edges == set()
        assert graph.has_diagnostics()

    def test_unreadable_root(self, tmp_path):
        """Test that a missing root file is fatal for the crate."""
        with pytest.raises(SourceReadError):
            build_graph("demo", tmp_path / "src" / "lib.rs")

    def test_missing_module_file(self, make_crate):
        """Test that an unresolvable declaration is reported and skipped."""
        crate = make_crate({"src/lib.rs": "mod present;\nmod ghost;\n", "src/present.rs": ""})

        graph = _build(crate)

        assert _modules(graph) == {"crate", "present"}
        assert len(graph.diagnostics) == 1
        error = graph.diagnostics[0]
        assert isinstance(error, ModuleFileNotFound)
        assert "ghost.rs" in str(error)
        assert "mod.rs" in str(error)

    def test_nested_files(self, make_crate):
        """Test foo.rs owning foo/ and mod.rs owning its directory."""
        crate = make_crate({
            "src/lib.rs": "mod a;\nmod m;\n",
            "src/a.rs": "mod b;\n",
            "src/a/b.rs": "mod c;\n",
            "src/a/b/c.rs": "use super::super::super::m::M;\n",
            "src/m/mod.rs": "mod n;\npub struct M;\n",
            "src/m/n.rs": "",
        })

        graph = _build(crate)

        assert _modules(graph) == {"crate", "a", "a::b", "a::b::c", "m", "m::n"}
        assert ("a::b::c", "m") in _edges(graph)
        assert not graph.has_diagnostics()

    def test_inline_module_with_file_child(self, make_crate):
        """Test that inline modules look up children in their own directory."""
        crate = make_crate({
            "src/lib.rs": "mod outer {\n    pub mod inner;\n    pub struct X;\n}\n",
            "src/outer/inner.rs": "use super::X;\n",
        })

        graph = _build(crate)

        assert _modules(graph) == {"crate", "outer", "outer::inner"}
        assert ("outer::inner", "outer") in _edges(graph)
        assert graph.get_module(ModulePath.parse("outer::inner")).source_file.name == "inner.rs"

    def test_path_attribute(self, make_crate):
        """Test #[path] overrides and the directory owned by such files."""
        crate = make_crate({
            "src/lib.rs": '#[path = "impls/unix.rs"]\nmod sys;\n',
            "src/impls/unix.rs": "mod helper;\n",
            "src/impls/helper.rs": "",
        })

        graph = _build(crate)

        assert _modules(graph) == {"crate", "sys", "sys::helper"}
        assert graph.get_module(ModulePath.parse("sys")).source_file.name == "unix.rs"
        assert not graph.has_diagnostics()

    def test_path_attribute_to_missing_file(self, make_crate):
        """Test that a dangling #[path] keeps the module and reports the read error."""
        crate = make_crate({"src/lib.rs": '#[path = "nowhere.rs"]\nmod sys;\n'})

        graph = _build(crate)

        assert _modules(graph) == {"crate", "sys"}
        assert [type(d) for d in graph.diagnostics] == [SourceReadError]

    def test_path_attribute_loading_itself(self, make_crate):
        """Test that a file reloaded by its own #[path] is reported, not followed."""
        crate = make_crate({
            "src/lib.rs": "mod a;\n",
            "src/a.rs": '#[path = "a.rs"]\nmod again;\n',
        })

        graph = _build(crate)

        assert _modules(graph) == {"crate", "a"}
        assert _edges(graph) == {("crate", "a")}
        assert len(graph.diagnostics) == 1
        error = graph.diagnostics[0]
        assert isinstance(error, CircularModule)
        assert "a::again" in str(error)
        assert "a.rs" in str(error)

    def test_path_attribute_loading_an_ancestor(self, make_crate):
        """Test a #[path] loop through the crate root."""
        crate = make_crate({
            "src/lib.rs": "mod a;\n",
            "src/a.rs": "mod b;\n",
            "src/a/b.rs": '#[path = "../lib.rs"]\nmod back;\n',
        })

        graph = _build(crate)

        assert _modules(graph) == {"crate", "a", "a::b"}
        assert [type(d) for d in graph.diagnostics] == [CircularModule]

    def test_same_file_on_separate_branches(self, make_crate):
        """Test that one file may back modules on different branches."""
        crate = make_crate({
            "src/lib.rs": '#[path = "shared.rs"]\nmod one;\n#[path = "shared.rs"]\nmod two;\n',
            "src/shared.rs": "pub struct Shared;\n",
        })

        graph = _build(crate)

        assert _modules(graph) == {"crate", "one", "two"}
        assert not graph.has_diagnostics()

    def test_duplicate_declaration(self, make_crate):
        """Test that a module declared twice appears once."""
        crate = make_crate({"src/lib.rs": "mod a;\nmod a;\n", "src/a.rs": ""})

        graph = _build(crate)

        assert _modules(graph) == {"crate", "a"}
        assert len(graph.edges) == 1

    def test_import_of_sibling_by_top_level_name(self, make_crate):
        """Test 2018-style paths naming a top-level module."""
        crate = make_crate({
            "src/lib.rs": "mod a;\nmod b;\n",
            "src/a.rs": "pub struct A;\n",
            "src/b.rs": "use a::A;\n",
        })

        assert ("b", "a") in _edges(_build(crate))


class TestExclusion:
    """Tests for module exclusion patterns."""

    def test_matches_any(self):
        """Test fnmatch patterns over rendered paths."""
        patterns = ["legacy", "*::generated"]
        assert matches_any(ModulePath.parse("legacy"), patterns)
        assert matches_any(ModulePath.parse("a::b::generated"), patterns)
        assert not matches_any(ModulePath.parse("legacy::v1"), patterns)
        assert not matches_any(ModulePath.root(), patterns)

    def test_exclude_tests(self, make_crate):
        """Test that tests modules take their subtree and edges along."""
        crate = make_crate({
            "src/lib.rs": (
                "mod a;\nmod tests_util;\n"
                "#[cfg(test)]\nmod tests {\n    mod helpers;\n    use crate::a;\n}\n"
            ),
            "src/a.rs": "#[cfg(test)]\nmod tests {\n    use super::*;\n}\n",
            "src/tests_util.rs": "",
            "src/tests/helpers.rs": "",
        })
        graph = _build(crate)
        assert "tests::helpers" in _modules(graph)

        filtered = exclude_modules(graph, [], exclude_tests=True)

        assert _modules(filtered) == {"crate", "a", "tests_util"}
        assert _edges(filtered) == {("crate", "a"), ("crate", "tests_util")}

    def test_patterns_and_tests_combined(self, make_crate):
        """Test that patterns apply alongside the tests shortcut."""
        crate = make_crate({
            "src/lib.rs": "mod a;\nmod legacy;\nmod tests {}\n",
            "src/a.rs": "",
            "src/legacy.rs": "",
        })

        filtered = exclude_modules(_build(crate), ["legacy"], exclude_tests=True)

        assert _modules(filtered) == {"crate", "a"}

    def test_no_patterns_returns_same_graph(self, sample_crate):
        """Test that an empty pattern list is a no-op."""
        graph = _build(sample_crate, "sample")
        assert exclude_modules(graph, []) is graph


class TestAnalyzePath:
    """Tests for analyze_path."""

    def test_single_crate(self, sample_crate):
        """Test analyzing one package."""
        analysis = analyze_path(sample_crate)

        assert [g.unit_name for g in analysis.graphs] == ["sample"]
        assert len(analysis.graphs[0].edges) == 7
        assert not analysis.has_diagnostics

    def test_workspace(self, tmp_path, make_crate):
        """Test that every member is analyzed in order and errors are collected."""
        make_crate({
            "Cargo.toml": '[workspace]\nmembers = ["one", "two", "gone"]\n',
            "one/Cargo.toml": '[package]\nname = "one"\n',
            "one/src/lib.rs": "mod a;\n#[cfg(test)]\nmod tests;\n",
            "one/src/a.rs": "",
            "one/src/tests.rs": "use crate::a;\n",
            "two/Cargo.toml": '[package]\nname = "two"\n',
            "two/src/main.rs": "mod missing;\nfn main() {}\n",
        }, name="ws")

        analysis = analyze_path(tmp_path / "ws", exclude_tests=True)

        assert [g.unit_name for g in analysis.graphs] == ["one", "two"]
        assert _modules(analysis.graphs[0]) == {"crate", "a"}
        assert _modules(analysis.graphs[1]) == {"crate"}
        assert analysis.has_diagnostics
        kinds = [type(d) for d in analysis.diagnostics]
        assert kinds == [UnitEnumerationError, ModuleFileNotFound]

    def test_nothing_found(self, tmp_path):
        """Test that an empty directory is fatal."""
        with pytest.raises(UnitEnumerationError):
            analyze_path(tmp_path)
