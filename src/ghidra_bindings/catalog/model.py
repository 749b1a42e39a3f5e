from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Protocol, Tuple


class SymbolKind(str, Enum):
    LABEL = "label"
    FUNCTION = "function"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SymbolKind":
        value = (raw or "").strip().lower()
        for kind in cls:
            if kind.value == value:
                return kind
        return cls.OTHER


@dataclass(frozen=True)
class Symbol:
    name: str
    address: str
    kind: SymbolKind
    is_external: bool = False


@dataclass(frozen=True)
class Parameter:
    data_type: str
    name: str


@dataclass(frozen=True)
class TypedLabel:
    symbol: Symbol
    data_type: str

    @property
    def name(self) -> str:
        return self.symbol.name


@dataclass(frozen=True)
class FunctionSignature:
    symbol: Symbol
    return_type: str
    calling_convention: str = ""
    parameters: Tuple[Parameter, ...] = ()

    @property
    def name(self) -> str:
        return self.symbol.name


class SymbolCatalog(Protocol):
    """Read-only view over one analysed program."""

    @property
    def program_name(self) -> str: ...

    @property
    def type_definitions(self) -> str: ...

    def symbols(self) -> Iterator[Symbol]: ...

    def data_type_at(self, address: str) -> Optional[str]: ...

    def function_at(self, address: str) -> Optional[FunctionSignature]: ...

    def format_address(self, address: str) -> str: ...


@dataclass
class StaticCatalog:
    """
    In-memory catalog, read-only by convention.

    Built by the JSON loader from an exported Ghidra catalog, or directly by
    tests. Symbols keep the order they were given in.
    """

    program_name: str
    symbol_list: List[Symbol] = field(default_factory=list)
    data_types: Dict[str, str] = field(default_factory=dict)
    functions: Dict[str, FunctionSignature] = field(default_factory=dict)
    type_definitions: str = ""
    meta: Dict[str, object] = field(default_factory=dict)

    def symbols(self) -> Iterator[Symbol]:
        return iter(tuple(self.symbol_list))

    def data_type_at(self, address: str) -> Optional[str]:
        return self.data_types.get(address)

    def function_at(self, address: str) -> Optional[FunctionSignature]:
        return self.functions.get(address)

    def format_address(self, address: str) -> str:
        # Ghidra's Address.toString() is already bare hex; keep its padding.
        return address.strip()
