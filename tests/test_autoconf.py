from __future__ import annotations

from pathlib import Path
from typing import List
import unittest

from buildgen.dist_source import DistSource
from buildgen.errors import ConfigError, SourceUnavailable
from buildgen.nodes import AutoconfNode

from .support import build_graph, describe, make_context, write_node


class FakeDistSource(DistSource):
    def __init__(self, base: Path, *, missing: bool = False) -> None:
        self.base = base
        self.missing = missing
        self.requests: List[str] = []

    def fetch(self, identifier: str) -> Path:
        self.requests.append(identifier)
        if self.missing:
            raise SourceUnavailable(identifier, "network unreachable")
        return self.base / "zlib-0123456789"


class AutoconfTests(unittest.TestCase):
    def test_emits_stamp_rule_and_user_target_only(self) -> None:
        graph = build_graph(
            [
                describe("cc_library", "//deps:x", headers=["x.h"]),
                describe("cc_library", "//deps:y", headers=["y.h"]),
                describe(
                    "autoconf",
                    "//third_party/zlib:zlib",
                    dependencies=["//deps:x", "//deps:y"],
                    configure_args=["--static"],
                    configure_env={"CFLAGS": "-O2 -g"},
                ),
            ]
        )
        makefile = write_node(graph, "//third_party/zlib:zlib")
        self.assertEqual(
            [rule.target for rule in makefile.rules],
            [".gen-files/third_party/zlib/zlib.done", "third_party/zlib/zlib"],
        )

        stamp = makefile.rule(".gen-files/third_party/zlib/zlib.done")
        self.assertEqual(stamp.prerequisites, ["deps/x.h", "deps/y.h"])
        build_dir = ".gen-obj/third_party/zlib/zlib.build"
        self.assertEqual(
            stamp.commands,
            [
                f"@rm -rf {build_dir} && mkdir -p {build_dir} .gen-files/third_party/zlib/zlib",
                f"cp -R third_party/zlib/. {build_dir}",
                f"cd {build_dir} && CFLAGS='-O2 -g' ./configure "
                "--prefix=$(CURDIR)/.gen-files/third_party/zlib/zlib --static",
                f"$(MAKE) -C {build_dir}",
                f"$(MAKE) -C {build_dir} install",
                "@mkdir -p $(@D) && touch $@",
            ],
        )
        self.assertEqual(makefile.rule("third_party/zlib/zlib").prerequisites, [stamp.target])
        self.assertEqual(makefile.install_rule.commands, [])

    def _assert_every_recipe_waits(self, makefile, stamp: str) -> None:
        recipes = [rule for rule in makefile.rules if rule.commands]
        self.assertTrue(recipes)
        for rule in recipes:
            self.assertIn(stamp, rule.prerequisites, rule.target)

    def test_dependents_wait_for_the_stamp(self) -> None:
        graph = build_graph(
            [
                describe("autoconf", "//third_party/zlib:zlib"),
                describe("cc_binary", "//app:main", sources=["main.c"], dependencies=["//third_party/zlib:zlib"]),
            ]
        )
        makefile = write_node(graph, "//app:main")
        stamp = ".gen-files/third_party/zlib/zlib.done"
        self._assert_every_recipe_waits(makefile, stamp)
        self.assertEqual(makefile.rule(".gen-pkg/app/main").prerequisites, [".gen-obj/app/main.c.o", stamp])

    def test_sourceless_links_wait_for_the_stamp(self) -> None:
        stamp = ".gen-files/third_party/z.done"
        graph = build_graph(
            [
                describe("cc_library", "//lib:l", sources=["l.c"]),
                describe("autoconf", "//third_party:z"),
                describe(
                    "cc_binary",
                    "//app:main",
                    dependencies=["//lib:l", "//third_party:z"],
                    ldflags=["-L{{paths.genfile_dir}}/third_party/z/lib", "-lz"],
                ),
                describe("cc_shared_library", "//app:plugin", dependencies=["//third_party:z"]),
            ]
        )
        binary = write_node(graph, "//app:main")
        self._assert_every_recipe_waits(binary, stamp)
        link = binary.rule(".gen-pkg/app/main")
        self.assertEqual(link.prerequisites, [".gen-obj/lib/l.c.o", stamp])
        self.assertTrue(link.commands[-1].endswith("-L.gen-files/third_party/z/lib -lz"))

        shared = write_node(graph, "//app:plugin")
        self._assert_every_recipe_waits(shared, stamp)
        self.assertEqual(shared.rule(".gen-pkg/app/libplugin.so").prerequisites, [stamp])

    def test_objects_behind_the_package_stay_hidden(self) -> None:
        graph = build_graph(
            [
                describe("cc_library", "//base:core", sources=["core.c"]),
                describe("autoconf", "//third_party:z", dependencies=["//base:core"]),
                describe("cc_binary", "//app:main", sources=["main.c"], dependencies=["//third_party:z"]),
            ]
        )
        makefile = write_node(graph, "//app:main")
        self.assertEqual(
            makefile.rule(".gen-pkg/app/main").prerequisites,
            [".gen-obj/app/main.c.o", ".gen-files/third_party/z.done"],
        )

    def test_make_targets_and_local_source(self) -> None:
        graph = build_graph(
            [describe("autoconf", "//pkg:tool", source="upstream", make_targets=["all", "check"])]
        )
        makefile = write_node(graph, "//pkg:tool")
        commands = makefile.rule(".gen-files/pkg/tool.done").commands
        self.assertIn("cp -R pkg/upstream/. .gen-obj/pkg/tool.build", commands)
        self.assertIn("$(MAKE) -C .gen-obj/pkg/tool.build all check", commands)

    def test_source_url_is_fetched_through_dist_source(self) -> None:
        root = Path("/workspace")
        fake = FakeDistSource(root / ".gen-src")
        context = make_context(root, dist_source=fake)
        graph = build_graph(
            [
                describe(
                    "autoconf",
                    "//third_party:zlib",
                    source_url="https://example.com/zlib.git",
                    source_revision="v1.3",
                )
            ],
            context,
        )
        self.assertEqual(fake.requests, ["https://example.com/zlib.git#v1.3"])
        node = graph.node(graph.nodes[0].target)
        assert isinstance(node, AutoconfNode)
        self.assertEqual(node.source_dir, ".gen-src/zlib-0123456789")

    def test_unavailable_source_names_the_target(self) -> None:
        context = make_context(dist_source=FakeDistSource(Path("/tmp"), missing=True))
        with self.assertRaises(SourceUnavailable) as ctx:
            build_graph([describe("autoconf", "//third_party:zlib", source_url="https://example.com/zlib.git")], context)
        self.assertEqual(str(ctx.exception.target), "//third_party:zlib")
        self.assertIn("network unreachable", str(ctx.exception))

    def test_conflicting_source_attributes(self) -> None:
        context = make_context(dist_source=FakeDistSource(Path("/tmp")))
        with self.assertRaises(ConfigError):
            build_graph(
                [describe("autoconf", "//pkg:a", source="src", source_url="https://example.com/a.git")],
                context,
            )
        with self.assertRaises(ConfigError):
            build_graph([describe("autoconf", "//pkg:a", source_revision="abc")], context)
        with self.assertRaises(ConfigError):
            build_graph([describe("autoconf", "//pkg:a", source_url="https://example.com/a.git")])


if __name__ == "__main__":
    unittest.main()
