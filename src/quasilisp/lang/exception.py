import functools
import os
import sys
import traceback
from enum import Enum
from types import TracebackType
from typing import Any, ClassVar, Optional

import attr

from quasilisp.lang import keyword as kw
from quasilisp.lang import map as lmap
from quasilisp.lang.interfaces import IExceptionInfo, IPersistentMap
from quasilisp.lang.obj import lrepr
from quasilisp.lang.source import form_location

DEFAULT_FILENAME = "NO_SOURCE_PATH"

_KIND = kw.keyword("kind")
_FILE = kw.keyword("file")
_FORM = kw.keyword("form")
_LINE = kw.keyword("line")
_COL = kw.keyword("col")
_END_LINE = kw.keyword("end-line")
_END_COL = kw.keyword("end-col")


class ErrorKind(Enum):
    MACROEXPANSION = kw.keyword("macroexpansion")
    UNKNOWN_MACRO = kw.keyword("unknown-macro")
    ARITY_MISMATCH = kw.keyword("arity-mismatch")
    ILLEGAL_SPLICE = kw.keyword("illegal-splice")
    EXPANSION_DEPTH_EXCEEDED = kw.keyword("expansion-depth-exceeded")
    MACRO_USED_AS_VALUE = kw.keyword("macro-used-as-value")
    EVALUATION = kw.keyword("evaluation")


@attr.define(str=False)
class MacroexpansionException(IExceptionInfo):
    """Base class for every error raised while expanding a form.

    `form` is the offending form (its reader metadata supplies the source location
    reported in `data`, if there is any) and `details` carries additional
    keyword-keyed context specific to the kind of error."""

    msg: str
    form: Any = None
    filename: str = DEFAULT_FILENAME
    details: IPersistentMap = lmap.EMPTY

    kind: ClassVar[ErrorKind] = ErrorKind.MACROEXPANSION

    @property
    def data(self) -> IPersistentMap:
        d: dict[kw.Keyword, Any] = {_KIND: self.kind.value, _FILE: self.filename}
        if self.form is not None:
            d[_FORM] = self.form
            loc = form_location(self.form)
            if loc:
                d[_LINE] = loc.line
                d[_COL] = loc.col
                d[_END_LINE] = loc.end_line
                d[_END_COL] = loc.end_col
        return lmap.map(d).cons(self.details)

    def __str__(self):
        return f"{self.msg} {lrepr(self.data)}"


@attr.define(str=False)
class UnknownMacro(MacroexpansionException):
    kind: ClassVar[ErrorKind] = ErrorKind.UNKNOWN_MACRO


@attr.define(str=False)
class ArityMismatch(MacroexpansionException):
    kind: ClassVar[ErrorKind] = ErrorKind.ARITY_MISMATCH


@attr.define(str=False)
class IllegalSplice(MacroexpansionException):
    kind: ClassVar[ErrorKind] = ErrorKind.ILLEGAL_SPLICE


@attr.define(str=False)
class ExpansionDepthExceeded(MacroexpansionException):
    kind: ClassVar[ErrorKind] = ErrorKind.EXPANSION_DEPTH_EXCEEDED


@attr.define(str=False)
class MacroUsedAsValue(MacroexpansionException):
    kind: ClassVar[ErrorKind] = ErrorKind.MACRO_USED_AS_VALUE


@attr.define(str=False)
class EvaluationError(MacroexpansionException):
    """Raised by the reference evaluator when a construction expression or macro
    body cannot be evaluated."""

    kind: ClassVar[ErrorKind] = ErrorKind.EVALUATION


@functools.singledispatch
def format_exception(  # pylint: disable=unused-argument
    e: Optional[BaseException],
    tp: Optional[type[BaseException]] = None,
    tb: Optional[TracebackType] = None,
) -> list[str]:
    """Format an exception into something readable, returning a list of newline
    terminated strings.

    For the majority of Python exceptions, this will just be the result from calling
    `traceback.format_exception`. Expansion errors get a custom report."""
    if isinstance(e, BaseException):
        if tp is None:
            tp = type(e)
        if tb is None:
            tb = e.__traceback__
    return traceback.format_exception(tp, e, tb)


@format_exception.register(MacroexpansionException)
def format_macroexpansion_exception(  # pylint: disable=unused-argument
    e: MacroexpansionException,
    tp: Optional[type[Exception]] = None,
    tb: Optional[TracebackType] = None,
) -> list[str]:
    """Format an expansion error as a list of newline-terminated strings."""
    context_exc: Optional[BaseException] = e.__cause__

    lines = [os.linesep]
    if context_exc is not None:
        lines.append(f"  exception: {type(context_exc)} from {type(e)}{os.linesep}")
        lines.append(f"    message: {e.msg}: {context_exc}{os.linesep}")
    else:
        lines.append(f"  exception: {type(e)}{os.linesep}")
        lines.append(f"    message: {e.msg}{os.linesep}")
    lines.append(f"       kind: {lrepr(e.kind.value)}{os.linesep}")
    if e.form is not None:
        lines.append(f"       form: {lrepr(e.form)}{os.linesep}")
    for k, v in e.details.items():
        lines.append(f"{lrepr(k):>11}: {lrepr(v)}{os.linesep}")
    lines.append(f"   location: {e.filename}:{form_location(e.form)}{os.linesep}")
    return lines


def print_exception(
    e: Optional[BaseException],
    tp: Optional[type[BaseException]] = None,
    tb: Optional[TracebackType] = None,
) -> None:
    """Print the given exception `e` using the expander's own exception formatting."""
    print("".join(format_exception(e, tp, tb)), file=sys.stderr)
