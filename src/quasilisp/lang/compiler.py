from collections.abc import Iterable, Mapping
from typing import Any, Optional

from quasilisp.lang import keyword as kw
from quasilisp.lang import list as llist
from quasilisp.lang import map as lmap
from quasilisp.lang import symbol as sym
from quasilisp.lang import vector as vec
from quasilisp.lang.evaluator import Evaluator
from quasilisp.lang.exception import DEFAULT_FILENAME, MacroexpansionException
from quasilisp.lang.expander import ExpanderContext, SpecialForm, expander_opts
from quasilisp.lang.macro import FORM_SYM, MacroRegistry, ParamPattern
from quasilisp.lang.typing import ExpanderOpts, ReaderForm
from quasilisp.util import Maybe

DEFMACRO = sym.symbol("defmacro")

_NAME = kw.keyword("name")


class CompilerContext:
    """Pair an expander and an evaluator which share one macro registry, so forms
    can be expanded and then evaluated as separate steps."""

    __slots__ = ("_ectx", "_evaluator", "_filename", "_registry")

    def __init__(
        self,
        registry: Optional[MacroRegistry] = None,
        filename: Optional[str] = None,
        opts: Optional[ExpanderOpts] = None,
        globals: Optional[Mapping[sym.Symbol, Any]] = None,  # pylint: disable=redefined-builtin
    ) -> None:
        self._filename = Maybe(filename).or_else_get(DEFAULT_FILENAME)
        self._registry = Maybe(registry).or_else(MacroRegistry)
        self._ectx = ExpanderContext(self._registry, filename=self._filename, opts=opts)
        self._evaluator = Evaluator(
            registry=self._registry, globals=globals, filename=self._filename
        )

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def registry(self) -> MacroRegistry:
        return self._registry

    @property
    def expander_context(self) -> ExpanderContext:
        return self._ectx

    @property
    def evaluator(self) -> Evaluator:
        return self._evaluator


def compiler_opts(max_expansion_depth: Optional[int] = None) -> ExpanderOpts:
    """Return a map of compiler options with defaults applied."""
    return expander_opts(max_expansion_depth=max_expansion_depth)


def _flatmap_forms(forms: Iterable[ReaderForm]) -> Iterable[ReaderForm]:
    """Flatmap over an iterable of forms, unrolling any top-level `do` forms"""
    for form in forms:
        if (
            isinstance(form, llist.PersistentList)
            and not form.is_empty
            and form.first == SpecialForm.DO
        ):
            yield from _flatmap_forms(form.rest)
        else:
            yield form


def _is_defmacro(form: ReaderForm) -> bool:
    return (
        isinstance(form, llist.PersistentList)
        and not form.is_empty
        and form.first == DEFMACRO
    )


def _define_macro(form: llist.PersistentList, ctx: CompilerContext) -> sym.Symbol:
    """Register the macro defined by a `(defmacro name doc? [params] body...)`
    form. The body is fully macroexpanded once, when the macro is defined."""
    elems = list(form.rest)
    if not elems or not isinstance(elems[0], sym.Symbol):
        raise MacroexpansionException(
            "defmacro requires a name symbol", form=form, filename=ctx.filename
        )
    name = elems.pop(0)

    doc: Optional[str] = None
    if elems and isinstance(elems[0], str):
        doc = elems.pop(0)

    if not elems or not isinstance(elems[0], vec.PersistentVector):
        raise MacroexpansionException(
            "defmacro requires a parameter vector",
            form=form,
            filename=ctx.filename,
            details=lmap.map({_NAME: name}),
        )
    params = elems.pop(0)

    try:
        pattern = ParamPattern.from_form(params)
    except ValueError as e:
        raise MacroexpansionException(
            f"invalid defmacro form: {e}", form=form, filename=ctx.filename
        ) from e

    ectx = ctx.expander_context
    with ectx.new_locals((FORM_SYM, *pattern.names)):
        body = [ectx.expand_full(e) for e in elems]
    ctx.registry.defmacro_body(name, pattern, *body, evaluator=ctx.evaluator, doc=doc)
    return name


_sentinel = object()


def eval_form(
    form: ReaderForm,
    ctx: CompilerContext,
    env: Optional[Mapping[sym.Symbol, Any]] = None,
) -> Any:
    """Fully macroexpand the given form and then evaluate the expansion, returning
    the result of evaluation.

    Top-level `do` forms are unrolled so that a macro defined by one of its
    `defmacro` forms may be used by the forms following it. `defmacro` forms
    evaluate to the name of the new macro."""
    last = _sentinel
    for unrolled_form in _flatmap_forms([form]):
        if _is_defmacro(unrolled_form):
            last = _define_macro(unrolled_form, ctx)  # type: ignore[arg-type]
            continue
        expanded = ctx.expander_context.expand_full(unrolled_form)
        last = ctx.evaluator.evaluate(expanded, env)

    # An empty top-level `do` has no forms to evaluate
    return None if last is _sentinel else last


def eval_forms(
    forms: Iterable[ReaderForm],
    ctx: CompilerContext,
    env: Optional[Mapping[sym.Symbol, Any]] = None,
) -> Any:
    """Expand and evaluate each form in turn, returning the value of the last."""
    last = None
    for form in forms:
        last = eval_form(form, ctx, env)
    return last
