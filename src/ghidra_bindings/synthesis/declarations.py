from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

from ..catalog.model import (
    FunctionSignature,
    Parameter,
    Symbol,
    SymbolCatalog,
    SymbolKind,
    TypedLabel,
)

LABEL_TEMPLATE = "{type}* {name} = ({type}*){address};"
FUNCTION_TEMPLATE = (
    "{ret} ({cc} *{name})({args}) = ({ret} ({cc} *)({args})){address};"
)
IDENTIFIER_INVALID_RE = re.compile(r"[^A-Za-z0-9_]")


class CatalogIntegrityError(RuntimeError):
    """Raised when a function symbol has no function record at its address."""


@dataclass(frozen=True)
class SynthesisOptions:
    sanitize_names: bool = False


@dataclass
class SynthesisStats:
    labels: int = 0
    functions: int = 0
    skipped_external: int = 0
    skipped_unbacked: int = 0
    skipped_other: int = 0

    @property
    def emitted(self) -> int:
        return self.labels + self.functions

    @property
    def skipped(self) -> int:
        return self.skipped_external + self.skipped_unbacked + self.skipped_other


def sanitize_identifier(name: str) -> str:
    """Map a Ghidra symbol name (``ns::foo``, ``??_7Bar@@6B@``) onto a C identifier."""
    cleaned = IDENTIFIER_INVALID_RE.sub("_", name)
    if not cleaned or cleaned[0].isdigit():
        cleaned = "_" + cleaned
    return cleaned


def address_literal(address: str) -> str:
    return f"0x{address}"


def build_argument_list(parameters: Sequence[Parameter]) -> str:
    if not parameters:
        return "void"
    return ", ".join(f"{param.data_type} {param.name}" for param in parameters)


def synthesize_label(
    label: TypedLabel, address: str, options: Optional[SynthesisOptions] = None
) -> str:
    """
    Render ``T* name = (T*)0xADDR;`` for a typed data label.

    ``address`` is the catalog-formatted address text, without the ``0x``.
    """
    options = options or SynthesisOptions()
    name = sanitize_identifier(label.name) if options.sanitize_names else label.name
    return LABEL_TEMPLATE.format(
        type=label.data_type, name=name, address=address_literal(address)
    )


def synthesize_function(
    fn: FunctionSignature, address: str, options: Optional[SynthesisOptions] = None
) -> str:
    """
    Render a function-pointer variable bound to the function's entry point.

    The calling convention sits between ``(`` and ``*`` in both the declared
    type and the cast; an empty convention leaves ``( *name)``.
    """
    options = options or SynthesisOptions()
    name = sanitize_identifier(fn.name) if options.sanitize_names else fn.name
    return FUNCTION_TEMPLATE.format(
        ret=fn.return_type,
        cc=fn.calling_convention,
        name=name,
        args=build_argument_list(fn.parameters),
        address=address_literal(address),
    )


class DeclarationSynthesizer:
    """Walks a catalog in enumeration order and yields one line per eligible symbol."""

    def __init__(
        self, catalog: SymbolCatalog, options: Optional[SynthesisOptions] = None
    ) -> None:
        self.catalog = catalog
        self.options = options or SynthesisOptions()
        self.stats = SynthesisStats()

    def declaration_for(self, symbol: Symbol) -> Optional[str]:
        if symbol.is_external:
            self.stats.skipped_external += 1
            return None

        if symbol.kind is SymbolKind.LABEL:
            data_type = self.catalog.data_type_at(symbol.address)
            # Jump-table labels have a symbol but no defined data.
            if data_type is None:
                self.stats.skipped_unbacked += 1
                return None
            self.stats.labels += 1
            return synthesize_label(
                TypedLabel(symbol=symbol, data_type=data_type),
                self.catalog.format_address(symbol.address),
                self.options,
            )

        if symbol.kind is SymbolKind.FUNCTION:
            function = self.catalog.function_at(symbol.address)
            if function is None:
                raise CatalogIntegrityError(
                    f"No function record at {symbol.address} for symbol {symbol.name}"
                )
            self.stats.functions += 1
            return synthesize_function(
                function, self.catalog.format_address(symbol.address), self.options
            )

        self.stats.skipped_other += 1
        return None

    def iter_declarations(self) -> Iterator[Tuple[Symbol, str]]:
        self.stats = SynthesisStats()
        for symbol in self.catalog.symbols():
            line = self.declaration_for(symbol)
            if line is not None:
                yield symbol, line
