from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from .model import FunctionSignature, Parameter, StaticCatalog, Symbol, SymbolKind

# Ghidra reports these when no explicit convention was applied.
PLACEHOLDER_CONVENTIONS = {"unknown", "default"}


class CatalogFormatError(ValueError):
    """Raised when a catalog JSON document does not match the export schema."""


class ParameterRecord(BaseModel):
    name: str = ""
    dataType: str


class FunctionRecord(BaseModel):
    name: str
    address: str
    callingConvention: Optional[str] = None
    returnType: str = "void"
    parameters: List[ParameterRecord] = Field(default_factory=list)


class SymbolRecord(BaseModel):
    name: str
    qualifiedName: Optional[str] = None
    address: str
    kind: str = "other"
    external: bool = False
    dataType: Optional[str] = None


class CatalogDocument(BaseModel):
    meta: Dict[str, Any] = Field(default_factory=dict)
    typeDefinitions: str = ""
    symbols: List[SymbolRecord] = Field(default_factory=list)
    functions: List[FunctionRecord] = Field(default_factory=list)


def normalize_convention(raw: Optional[str]) -> str:
    value = (raw or "").strip()
    if value.lower() in PLACEHOLDER_CONVENTIONS:
        return ""
    return value


def build_catalog(payload: Dict[str, object]) -> StaticCatalog:
    try:
        document = CatalogDocument.model_validate(payload)
    except ValidationError as exc:
        raise CatalogFormatError(f"Invalid catalog document: {exc}") from exc

    symbols: List[Symbol] = []
    data_types: Dict[str, str] = {}
    for record in document.symbols:
        symbol = Symbol(
            name=record.qualifiedName or record.name,
            address=record.address,
            kind=SymbolKind.parse(record.kind),
            is_external=record.external,
        )
        symbols.append(symbol)
        if symbol.kind is SymbolKind.LABEL and record.dataType:
            data_types.setdefault(record.address, record.dataType)

    functions: Dict[str, FunctionSignature] = {}
    for record in document.functions:
        functions[record.address] = FunctionSignature(
            symbol=Symbol(
                name=record.name,
                address=record.address,
                kind=SymbolKind.FUNCTION,
            ),
            return_type=record.returnType,
            calling_convention=normalize_convention(record.callingConvention),
            parameters=tuple(
                Parameter(data_type=param.dataType, name=param.name)
                for param in record.parameters
            ),
        )

    program = str(document.meta.get("program") or "program")
    return StaticCatalog(
        program_name=program,
        symbol_list=symbols,
        data_types=data_types,
        functions=functions,
        type_definitions=document.typeDefinitions,
        meta=dict(document.meta),
    )


def load_catalog(path: Path) -> StaticCatalog:
    with open(path, "r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise CatalogFormatError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise CatalogFormatError(f"{path} must contain a JSON object")
    return build_catalog(payload)
