"""Structural annotations produced by the reader for syntax quoted templates.

The reader converts the `` ` ``, `~` and `~@` reader macros into these wrappers
rather than into ordinary lists, so a template can never be confused with code
that merely happens to call a function named `unquote`."""

from typing import Any

import attr
from typing_extensions import Unpack

from quasilisp.lang.interfaces import ILispObject
from quasilisp.lang.obj import PrintSettings, lrepr


@attr.frozen(repr=False)
class SyntaxQuote(ILispObject):
    """A syntax quoted template (`` `form ``)."""

    form: Any

    def _lrepr(self, **kwargs: Unpack[PrintSettings]) -> str:
        return f"`{lrepr(self.form, **kwargs)}"


@attr.frozen(repr=False)
class Unquote(ILispObject):
    """A sub-form of a template evaluated and substituted as a single element
    (`~form`)."""

    form: Any

    def _lrepr(self, **kwargs: Unpack[PrintSettings]) -> str:
        return f"~{lrepr(self.form, **kwargs)}"


@attr.frozen(repr=False)
class UnquoteSplicing(ILispObject):
    """A sub-form of a template evaluated to a sequence whose elements are spliced
    into the enclosing list or vector (`~@form`)."""

    form: Any

    def _lrepr(self, **kwargs: Unpack[PrintSettings]) -> str:
        return f"~@{lrepr(self.form, **kwargs)}"


def syntax_quote(form) -> SyntaxQuote:
    return SyntaxQuote(form)


def unquote(form) -> Unquote:
    return Unquote(form)


def unquote_splicing(form) -> UnquoteSplicing:
    return UnquoteSplicing(form)
