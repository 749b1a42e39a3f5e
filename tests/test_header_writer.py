"""Header file output tests: preamble placement, naming, and partial writes."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ghidra_bindings.catalog.model import (
    FunctionSignature,
    Parameter,
    StaticCatalog,
    Symbol,
    SymbolKind,
)
from ghidra_bindings.header.writer import header_path_for, write_header
from ghidra_bindings.synthesis.declarations import CatalogIntegrityError, SynthesisOptions

PREAMBLE = "typedef struct Player Player;\nstruct Player {\n    int hp;\n};\n\n"


def _catalog(extra_symbols=()):
    return StaticCatalog(
        program_name="game.exe",
        symbol_list=[
            Symbol("g_player", "14000a000", SymbolKind.LABEL),
            Symbol("caseD_1", "14000b000", SymbolKind.LABEL),
            Symbol("Damage", "140001000", SymbolKind.FUNCTION),
            *extra_symbols,
        ],
        data_types={"14000a000": "Player"},
        functions={
            "140001000": FunctionSignature(
                symbol=Symbol("Damage", "140001000", SymbolKind.FUNCTION),
                return_type="void",
                calling_convention="__fastcall",
                parameters=(Parameter("Player *", "target"), Parameter("int", "amount")),
            )
        },
        type_definitions=PREAMBLE,
    )


class WriteHeaderTests(unittest.TestCase):
    def test_writes_preamble_then_declarations(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            summary = write_header(_catalog(), Path(tmp))
            content = summary.path.read_text(encoding="utf-8")

        self.assertEqual(summary.path.name, "game.exe.h")
        self.assertEqual(
            content,
            PREAMBLE
            + "Player* g_player = (Player*)0x14000a000;\n"
            + "void (__fastcall *Damage)(Player * target, int amount) = "
            + "(void (__fastcall *)(Player * target, int amount))0x140001000;\n",
        )
        self.assertEqual(summary.stats.labels, 1)
        self.assertEqual(summary.stats.functions, 1)
        self.assertEqual(summary.stats.skipped_unbacked, 1)

    def test_creates_missing_output_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "nested" / "out"
            summary = write_header(_catalog(), target)
            self.assertTrue(summary.path.exists())
            self.assertEqual(summary.path, header_path_for(target, "game.exe"))

    def test_output_is_byte_identical_across_runs(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            first = write_header(_catalog(), Path(tmp) / "a").path.read_bytes()
            second = write_header(_catalog(), Path(tmp) / "b").path.read_bytes()
        self.assertEqual(first, second)

    def test_integrity_error_leaves_partial_file_and_closes_handle(self) -> None:
        catalog = _catalog(extra_symbols=[Symbol("Ghost", "140009000", SymbolKind.FUNCTION)])
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(CatalogIntegrityError):
                write_header(catalog, Path(tmp))
            path = Path(tmp) / "game.exe.h"
            content = path.read_text(encoding="utf-8")
        self.assertTrue(content.startswith(PREAMBLE))
        self.assertIn("Player* g_player = (Player*)0x14000a000;\n", content)
        self.assertNotIn("Ghost", content)

    def test_sanitize_option_is_applied(self) -> None:
        catalog = StaticCatalog(
            program_name="p",
            symbol_list=[Symbol("Engine::g_tick", "10", SymbolKind.LABEL)],
            data_types={"10": "uint"},
        )
        with tempfile.TemporaryDirectory() as tmp:
            summary = write_header(catalog, Path(tmp), options=SynthesisOptions(sanitize_names=True))
            content = summary.path.read_text(encoding="utf-8")
        self.assertEqual(content, "uint* Engine__g_tick = (uint*)0x10;\n")

    def test_log_callback_reports_each_declaration_and_summary(self) -> None:
        log = mock.Mock()
        with tempfile.TemporaryDirectory() as tmp:
            write_header(_catalog(), Path(tmp), log_callback=log)
        messages = [call.args[0] for call in log.call_args_list]
        self.assertEqual(messages[0], "label g_player @ 14000a000")
        self.assertEqual(messages[1], "function Damage @ 140001000")
        self.assertTrue(messages[-1].startswith("Wrote 2 declarations to "))


if __name__ == "__main__":
    unittest.main()
