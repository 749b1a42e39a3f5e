from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..catalog.model import SymbolCatalog
from ..synthesis.declarations import (
    DeclarationSynthesizer,
    SynthesisOptions,
    SynthesisStats,
)


@dataclass
class HeaderSummary:
    path: Path
    stats: SynthesisStats


def header_path_for(output_dir: Path, program_name: str) -> Path:
    return Path(output_dir) / f"{program_name}.h"


def write_header(
    catalog: SymbolCatalog,
    output_dir: Path,
    *,
    options: Optional[SynthesisOptions] = None,
    log_callback: Optional[Callable[[str], None]] = None,
) -> HeaderSummary:
    """
    Write ``<program>.h``: the type-definition preamble followed by one
    address-bound declaration per eligible symbol, in catalog order.

    Lines are written as they are produced. A ``CatalogIntegrityError`` aborts
    the run and leaves the partial file in place.
    """
    output_dir = Path(output_dir).expanduser()
    output_dir.mkdir(parents=True, exist_ok=True)
    path = header_path_for(output_dir, catalog.program_name)
    synthesizer = DeclarationSynthesizer(catalog, options)

    with open(path, "w", encoding="utf-8", newline="\n") as handle:
        handle.write(catalog.type_definitions)
        for symbol, line in synthesizer.iter_declarations():
            handle.write(line + "\n")
            if log_callback:
                log_callback(f"{symbol.kind.value} {symbol.name} @ {symbol.address}")

    stats = synthesizer.stats
    if log_callback:
        log_callback(
            f"Wrote {stats.emitted} declarations to {path} "
            f"({stats.labels} labels, {stats.functions} functions, {stats.skipped} skipped)"
        )
    return HeaderSummary(path=path, stats=stats)
