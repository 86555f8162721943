from quasilisp.lang.expander import macroexpand, macroexpand_1, macroexpand_all
from quasilisp.lang.macro import MacroDefinition, MacroRegistry

__all__ = [
    "MacroDefinition",
    "MacroRegistry",
    "macroexpand",
    "macroexpand_1",
    "macroexpand_all",
]
