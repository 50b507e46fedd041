from __future__ import annotations

from pathlib import Path
import tempfile
import textwrap
import unittest

from material_tools.dependency_resolver import DependencyResolver, module_id, parse_module_graph
from material_tools.errors import CyclicDependencyError, UnknownModuleError

from tests.fixtures import entry_source

MODULES = {
    "core": [],
    "icon": [],
    "tooltip": [],
    "button": ["icon"],
    "menu": ["button", "tooltip"],
    "toolbar": ["icon"],
}


class ModuleIdTests(unittest.TestCase):
    def test_strips_namespace_prefixes(self) -> None:
        self.assertEqual(module_id("material.components.tooltip"), "tooltip")
        self.assertEqual(module_id("material.core"), "core")

    def test_submodules_fold_into_parent(self) -> None:
        self.assertEqual(module_id("material.core.theming.palette"), "core")
        self.assertEqual(module_id("material.components.menu.extra"), "menu")

    def test_external_modules_have_no_id(self) -> None:
        for name in ("ng", "ngAria", "ngMaterial", "ngAnimate"):
            with self.subTest(name=name):
                self.assertIsNone(module_id(name))


class ParseModuleGraphTests(unittest.TestCase):
    def test_collects_declarations_in_source_order(self) -> None:
        graph = parse_module_graph(entry_source(MODULES))

        self.assertEqual(graph.modules, ("core", "icon", "tooltip", "button", "menu", "toolbar"))
        self.assertEqual(graph.dependencies("menu"), ("button", "tooltip"))
        self.assertEqual(graph.dependencies("core"), ())

    def test_ignores_lookups_without_dependency_list(self) -> None:
        source = textwrap.dedent(
            """
            angular.module("material.core", ["ngAria"]);
            angular.module('material.core').directive('mdFoo', Foo);
            angular
              .module('material.components.chips', [
                'material.core',
                'material.components.autocomplete'
              ]);
            """
        )
        graph = parse_module_graph(source)

        self.assertEqual(graph.modules, ("core", "chips"))
        self.assertEqual(graph.dependencies("chips"), ("core", "autocomplete"))


class DependencyResolverTests(unittest.TestCase):
    def setUp(self) -> None:
        self.resolver = DependencyResolver()
        self.graph = parse_module_graph(entry_source(MODULES))

    def assertTopological(self, ordered: list[str]) -> None:
        for position, module in enumerate(ordered):
            for dependency in self.graph.dependencies(module):
                self.assertIn(dependency, ordered[:position], f"{dependency} must precede {module}")

    def test_single_module_includes_core_first(self) -> None:
        self.assertEqual(self.resolver.order(self.graph, ["tooltip"]), ["core", "tooltip"])

    def test_closure_is_topologically_ordered(self) -> None:
        ordered = self.resolver.order(self.graph, ["menu"])

        self.assertEqual(ordered, ["core", "icon", "button", "tooltip", "menu"])
        self.assertTopological(ordered)

    def test_every_subset_is_topological_without_duplicates(self) -> None:
        names = list(MODULES)
        for mask in range(1, 1 << len(names)):
            requested = [name for bit, name in enumerate(names) if mask & (1 << bit)]
            with self.subTest(requested=requested):
                ordered = self.resolver.order(self.graph, requested)
                self.assertEqual(len(ordered), len(set(ordered)))
                self.assertEqual(ordered[0], "core")
                self.assertTrue(set(requested) <= set(ordered))
                self.assertTopological(ordered)

    def test_none_selects_every_module(self) -> None:
        ordered = self.resolver.order(self.graph)

        self.assertEqual(sorted(ordered), sorted(MODULES))
        self.assertTopological(ordered)

    def test_accepts_qualified_names(self) -> None:
        ordered = self.resolver.order(self.graph, ["material.components.toolbar", " icon "])

        self.assertEqual(ordered, ["core", "icon", "toolbar"])

    def test_unknown_requested_module(self) -> None:
        with self.assertRaises(UnknownModuleError) as ctx:
            self.resolver.order(self.graph, ["datepicker"])

        self.assertEqual(ctx.exception.module, "datepicker")
        self.assertIn("tooltip", str(ctx.exception))

    def test_undeclared_dependency(self) -> None:
        graph = parse_module_graph(
            "angular.module('material.core', []);\n"
            "angular.module('material.components.chips', ['material.components.autocomplete']);\n"
        )

        with self.assertRaises(UnknownModuleError) as ctx:
            self.resolver.order(graph, ["chips"])

        self.assertEqual(ctx.exception.module, "autocomplete")
        self.assertEqual(ctx.exception.required_by, "chips")

    def test_cycle_is_reported(self) -> None:
        graph = parse_module_graph(
            "angular.module('material.core', []);\n"
            "angular.module('material.components.a', ['material.components.b']);\n"
            "angular.module('material.components.b', ['material.components.a']);\n"
        )

        with self.assertRaises(CyclicDependencyError) as ctx:
            self.resolver.order(graph, ["a"])

        self.assertEqual(ctx.exception.cycle, ["a", "b", "a"])

    def test_resolve_reads_entry_file(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            entry = Path(temp_dir) / "angular-material.js"
            entry.write_text(entry_source(MODULES))

            self.assertEqual(self.resolver.resolve(entry, ["button"]), ["core", "icon", "button"])


if __name__ == "__main__":
    unittest.main()
