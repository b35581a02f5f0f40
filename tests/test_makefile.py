from __future__ import annotations

import unittest

from buildgen.errors import ConfigError
from buildgen.makefile import Makefile


class MakefileTests(unittest.TestCase):
    def test_rules_serialize_in_insertion_order(self) -> None:
        makefile = Makefile(header="Generated file")
        makefile.write_head("vars", lambda lines: lines.append("CC := cc"))
        second = makefile.start_rule("b.o", ["b.c"])
        second.write_command("$(CC) -c b.c -o $@")
        makefile.start_rule("a.o", ["a.c", "a.h"]).write_command("$(CC) -c a.c -o $@")

        text = makefile.serialize()
        self.assertTrue(text.startswith("# Generated file\n"))
        self.assertIn("CC := cc\n", text)
        self.assertIn("b.o: b.c\n\t$(CC) -c b.c -o $@\n", text)
        self.assertLess(text.index("b.o:"), text.index("a.o:"))
        self.assertLess(text.index("a.o:"), text.index("install:"))
        self.assertTrue(text.endswith(".PHONY: install\n"))

    def test_head_written_once_per_key(self) -> None:
        makefile = Makefile()
        calls: list[str] = []

        def writer(lines: list[str]) -> None:
            calls.append("called")
            lines.append("LIBDIR := $(PREFIX)/lib")

        self.assertTrue(makefile.write_head("shared", writer))
        self.assertFalse(makefile.write_head("shared", writer))
        self.assertEqual(calls, ["called"])
        self.assertEqual(makefile.serialize().count("LIBDIR := $(PREFIX)/lib"), 1)

    def test_duplicate_rule_is_rejected(self) -> None:
        makefile = Makefile()
        makefile.start_rule("out.o")
        with self.assertRaises(ConfigError):
            makefile.start_rule("out.o")
        with self.assertRaises(ConfigError):
            makefile.start_rule("install")

    def test_prerequisites_are_deduplicated(self) -> None:
        makefile = Makefile()
        rule = makefile.start_rule("out", ["a", "b", "a"])
        rule.add_prerequisites(["b", "c"])
        self.assertEqual(rule.prerequisites, ["a", "b", "c"])

    def test_install_rule_collects_contributions(self) -> None:
        makefile = Makefile()
        makefile.start_rule("bin/tool", ["tool.o"])
        makefile.install_rule.add_prerequisite("bin/tool")
        makefile.install_rule.write_command("install -m 0755 bin/tool $(DESTDIR)$(BINDIR)/tool")
        self.assertIs(makefile.rule("install"), makefile.install_rule)
        self.assertIn("install: bin/tool\n\tinstall -m 0755", makefile.serialize())

    def test_dangling_prerequisites(self) -> None:
        makefile = Makefile()
        makefile.start_rule("app", ["app.o", "missing.o"])
        makefile.start_rule("app.o", ["app.c"])
        makefile.add_phony("all")
        makefile.start_rule("all", ["app"])
        self.assertEqual(makefile.dangling_prerequisites(["app.c"]), [("app", "missing.o")])


if __name__ == "__main__":
    unittest.main()
