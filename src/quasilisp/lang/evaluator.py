"""A minimal evaluator for construction expressions and macro bodies.

The evaluator runs the expressions produced by the syntax quote expander and the
bodies of macros defined from forms. It supports only `quote`, `if`, `do` and
`let*` as special forms plus calls to Python callables; anything else is the
business of the host language. It never expands macros: callers must pass forms
which have already been fully macroexpanded."""

import functools
from collections import ChainMap
from collections.abc import Mapping
from decimal import Decimal
from fractions import Fraction
from typing import TYPE_CHECKING, Any, Callable, Optional

from quasilisp.lang import keyword as kw
from quasilisp.lang import list as llist
from quasilisp.lang import map as lmap
from quasilisp.lang import symbol as sym
from quasilisp.lang import vector as vec
from quasilisp.lang.core import CORE_FNS, CORE_NS
from quasilisp.lang.exception import (
    DEFAULT_FILENAME,
    EvaluationError,
    MacroexpansionException,
    MacroUsedAsValue,
)
from quasilisp.lang.obj import lrepr
from quasilisp.lang.quasiquote import Resolver, syntax_quote
from quasilisp.lang.template import SyntaxQuote, Unquote, UnquoteSplicing
from quasilisp.lang.typing import ReaderForm
from quasilisp.util import Maybe, partition

if TYPE_CHECKING:
    from quasilisp.lang.macro import MacroRegistry

_DO = sym.symbol("do")
_IF = sym.symbol("if")
_LET = sym.symbol("let*")
_QUOTE = sym.symbol("quote")

Env = ChainMap[sym.Symbol, Any]


class Evaluator:
    """Evaluate forms against a set of global values (by default the functions of
    the `quasilisp.core` namespace) and optional local bindings.

    If a registry is given, any attempt to take the value of a symbol naming a
    macro raises MacroUsedAsValue."""

    __slots__ = ("_filename", "_globals", "_registry", "_resolver")

    def __init__(
        self,
        registry: Optional["MacroRegistry"] = None,
        globals: Optional[Mapping[sym.Symbol, Any]] = None,  # pylint: disable=redefined-builtin
        filename: Optional[str] = None,
        resolver: Optional[Resolver] = None,
    ) -> None:
        self._filename = Maybe(filename).or_else_get(DEFAULT_FILENAME)
        self._globals: Mapping[sym.Symbol, Any] = ChainMap(
            dict(Maybe(globals).or_else_get({})), CORE_FNS
        )
        self._registry = registry
        self._resolver = resolver

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def registry(self) -> Optional["MacroRegistry"]:
        return self._registry

    @property
    def resolver(self) -> Optional[Resolver]:
        return self._resolver

    def evaluate(
        self, form: ReaderForm, env: Optional[Mapping[sym.Symbol, Any]] = None
    ) -> Any:
        """Evaluate `form` with the local bindings in `env`."""
        return _eval_form(form, self, ChainMap(dict(Maybe(env).or_else_get({}))))

    def resolve_symbol(self, form: sym.Symbol, env: Env) -> Any:
        if form in env:
            return env[form]
        if self._registry is not None and self._registry.is_macro(form):
            raise MacroUsedAsValue(
                f"Can't take value of a macro: {form}",
                form=form,
                filename=self._filename,
            )
        try:
            return self._globals[form]
        except KeyError:
            pass
        if form.ns is None:
            core_sym = sym.symbol(form.name, ns=CORE_NS)
            if core_sym in self._globals:
                return self._globals[core_sym]
        raise self.error(f"Unable to resolve symbol: {form}", form)

    def error(self, msg: str, form: Any) -> EvaluationError:
        return EvaluationError(msg, form=form, filename=self._filename)


@functools.singledispatch
def _eval_form(form: Any, ev: Evaluator, env: Env) -> Any:
    raise ev.error(f"Unexpected form type {type(form)}", form)


@_eval_form.register(bool)
@_eval_form.register(Decimal)
@_eval_form.register(float)
@_eval_form.register(Fraction)
@_eval_form.register(int)
@_eval_form.register(kw.Keyword)
@_eval_form.register(str)
@_eval_form.register(type(None))
def _eval_const(form: Any, _: Evaluator, __: Env) -> Any:
    return form


@_eval_form.register(sym.Symbol)
def _eval_symbol(form: sym.Symbol, ev: Evaluator, env: Env) -> Any:
    return ev.resolve_symbol(form, env)


@_eval_form.register(vec.PersistentVector)
def _eval_vector(form: vec.PersistentVector, ev: Evaluator, env: Env) -> Any:
    return vec.vector([_eval_form(e, ev, env) for e in form])


@_eval_form.register(lmap.PersistentMap)
def _eval_map(form: lmap.PersistentMap, ev: Evaluator, env: Env) -> Any:
    return lmap.PersistentMap.from_coll(
        [(_eval_form(k, ev, env), _eval_form(v, ev, env)) for k, v in form.items()]
    )


@_eval_form.register(SyntaxQuote)
def _eval_syntax_quote(form: SyntaxQuote, ev: Evaluator, env: Env) -> Any:
    construction = syntax_quote(form.form, resolver=ev.resolver, filename=ev.filename)
    return _eval_form(construction, ev, env)


@_eval_form.register(Unquote)
@_eval_form.register(UnquoteSplicing)
def _eval_unquote(form: Any, ev: Evaluator, _: Env) -> Any:
    raise ev.error("Unquote is only valid inside a syntax quote", form)


def _eval_quote(form: llist.PersistentList, ev: Evaluator, _: Env) -> Any:
    if len(form) != 2:
        raise ev.error("quote forms must have exactly one argument", form)
    return form[1]


def _eval_if(form: llist.PersistentList, ev: Evaluator, env: Env) -> Any:
    nelems = len(form)
    if nelems not in (3, 4):
        raise ev.error("if forms must have a test, then, and optional else", form)
    test = _eval_form(form[1], ev, env)
    if test is not None and test is not False:
        return _eval_form(form[2], ev, env)
    if nelems == 4:
        return _eval_form(form[3], ev, env)
    return None


def _eval_do(form: llist.PersistentList, ev: Evaluator, env: Env) -> Any:
    result = None
    for body_form in form.rest:
        result = _eval_form(body_form, ev, env)
    return result


def _eval_let(form: llist.PersistentList, ev: Evaluator, env: Env) -> Any:
    if len(form) < 2:
        raise ev.error("let forms must have bindings vector and 0 or more body forms", form)

    bindings = form[1]
    if not isinstance(bindings, vec.PersistentVector):
        raise ev.error("let bindings must be a vector", bindings)
    elif len(bindings) % 2 != 0:
        raise ev.error("let bindings must appear in name-value pairs", bindings)

    let_env = env.new_child()
    for name, value in partition(bindings, 2):
        if not isinstance(name, sym.Symbol):
            raise ev.error("let binding name must be a symbol", name)
        let_env[name] = _eval_form(value, ev, let_env)

    return _eval_do(form.rest, ev, let_env)


_SPECIAL_FORM_EVALUATORS: Mapping[sym.Symbol, Callable[..., Any]] = {
    _DO: _eval_do,
    _IF: _eval_if,
    _LET: _eval_let,
    _QUOTE: _eval_quote,
}


@_eval_form.register(llist.PersistentList)
def _eval_list(form: llist.PersistentList, ev: Evaluator, env: Env) -> Any:
    if form.is_empty:
        return form

    head = form.first
    if isinstance(head, sym.Symbol):
        eval_special_form = _SPECIAL_FORM_EVALUATORS.get(head)
        if eval_special_form is not None:
            return eval_special_form(form, ev, env)

    f = _eval_form(head, ev, env)
    args = [_eval_form(arg, ev, env) for arg in form.rest]
    if not callable(f):
        raise ev.error(f"{lrepr(f)} is not a function", form)

    try:
        return f(*args)
    except MacroexpansionException:
        raise
    except Exception as e:
        raise ev.error(f"error occurred calling {lrepr(head)}", form) from e
