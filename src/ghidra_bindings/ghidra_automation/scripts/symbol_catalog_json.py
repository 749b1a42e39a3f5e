# -*- coding: utf-8 -*-
# symbol_catalog_json.py
# Exports the symbol table, label data types, function signatures and the
# DataTypeWriter preamble as a catalog JSON for header generation.
#@category Symbol

from ghidra.program.model.data import DataTypeWriter, DataUtilities
from ghidra.program.model.symbol import SymbolType
from java.io import StringWriter

import json
import os
import time

OUTPUT_FILE = os.environ.get(
    "BINDINGS_CATALOG_JSON",
    os.path.join(os.environ.get("TEMP", "."), "bindings_catalog.json"),
)
INCLUDE_TYPES = os.environ.get("BINDINGS_INCLUDE_TYPES", "1") not in ("0", "false", "no")


def symbol_kind(symbol):
    symbol_type = symbol.getSymbolType()
    if symbol_type == SymbolType.LABEL:
        return "label"
    if symbol_type == SymbolType.FUNCTION:
        return "function"
    return "other"


def write_type_definitions():
    dtm = currentProgram.getDataTypeManager()
    buffer = StringWriter()
    writer = DataTypeWriter(dtm, buffer)
    writer.write(dtm, monitor)
    return buffer.toString()


def collect_symbols():
    records = []
    symbol_table = currentProgram.getSymbolTable()
    for symbol in symbol_table.getAllSymbols(False):
        kind = symbol_kind(symbol)
        data_type = None
        if kind == "label" and not symbol.isExternal():
            data = DataUtilities.getDataAtAddress(currentProgram, symbol.getAddress())
            if data is not None:
                data_type = data.getDataType().getName()
        records.append(
            {
                "name": symbol.getName(),
                "qualifiedName": symbol.getName(True),
                "address": str(symbol.getAddress()),
                "kind": kind,
                "external": bool(symbol.isExternal()),
                "dataType": data_type,
            }
        )
    return records


def collect_functions():
    records = []
    fm = currentProgram.getFunctionManager()
    for fn in fm.getFunctions(True):
        if fn.isExternal():
            continue
        parameters = []
        for argument in fn.getSignature().getArguments():
            parameters.append(
                {
                    "name": argument.getName(),
                    "dataType": argument.getDataType().getName(),
                }
            )
        records.append(
            {
                "name": fn.getName(),
                "address": str(fn.getEntryPoint()),
                "callingConvention": fn.getCallingConventionName() or "",
                "returnType": fn.getReturnType().getName(),
                "parameters": parameters,
            }
        )
    return records


def main():
    payload = {
        "meta": {
            "program": currentProgram.getName(),
            "executablePath": currentProgram.getExecutablePath(),
            "timestamp": int(time.time()),
        },
        "typeDefinitions": write_type_definitions() if INCLUDE_TYPES else "",
        "symbols": collect_symbols(),
        "functions": collect_functions(),
    }
    parent = os.path.dirname(OUTPUT_FILE)
    if parent and not os.path.exists(parent):
        os.makedirs(parent)
    with open(OUTPUT_FILE, "w") as handle:
        json.dump(payload, handle, indent=2)
    println("Symbol catalog written to {}".format(OUTPUT_FILE))


if __name__ == "__main__":
    main()
