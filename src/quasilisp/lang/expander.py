import collections
import contextlib
import functools
import logging
import os
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Optional

from quasilisp.lang import keyword as kw
from quasilisp.lang import list as llist
from quasilisp.lang import map as lmap
from quasilisp.lang import symbol as sym
from quasilisp.lang import vector as vec
from quasilisp.lang.exception import (
    DEFAULT_FILENAME,
    ExpansionDepthExceeded,
    MacroexpansionException,
    MacroUsedAsValue,
)
from quasilisp.lang.interfaces import IMeta, IWithMeta
from quasilisp.lang.macro import AMPERSAND, MacroDefinition, MacroRegistry
from quasilisp.lang.obj import lrepr
from quasilisp.lang.template import SyntaxQuote, Unquote, UnquoteSplicing
from quasilisp.lang.typing import ExpanderOpts, ReaderForm
from quasilisp.logconfig import TRACE
from quasilisp.util import Maybe, partition, timed

logger = logging.getLogger(__name__)

# Expander options
MAX_EXPANSION_DEPTH = kw.keyword("max-expansion-depth")

DEFAULT_MAX_EXPANSION_DEPTH = 1000

_MACRO = kw.keyword("macro")
_STEPS = kw.keyword("steps")


class SpecialForm:
    CATCH = sym.symbol("catch")
    DEF = sym.symbol("def")
    DO = sym.symbol("do")
    FINALLY = sym.symbol("finally")
    FN = sym.symbol("fn*")
    IF = sym.symbol("if")
    LET = sym.symbol("let*")
    LETFN = sym.symbol("letfn*")
    LOOP = sym.symbol("loop*")
    QUOTE = sym.symbol("quote")
    RECUR = sym.symbol("recur")
    SET_BANG = sym.symbol("set!")
    THROW = sym.symbol("throw")
    TRY = sym.symbol("try")
    VAR = sym.symbol("var")


SPECIAL_FORMS = frozenset(
    v for v in vars(SpecialForm).values() if isinstance(v, sym.Symbol)
)


def get_max_expansion_depth() -> int:
    """Get the default bound on successive macro expansion steps along any one
    chain of expansions."""
    return int(
        os.getenv("QUASILISP_MAX_EXPANSION_DEPTH", str(DEFAULT_MAX_EXPANSION_DEPTH))
    )


def expander_opts(max_expansion_depth: Optional[int] = None) -> ExpanderOpts:
    """Return a map of expander options with defaults applied."""
    return lmap.map(
        {
            MAX_EXPANSION_DEPTH: Maybe(max_expansion_depth).or_else(
                get_max_expansion_depth
            ),
        }
    )


class ExpanderContext:
    """Context for expanding forms against a macro registry.

    A context tracks the lexical locals in scope at the form currently being
    expanded (locals shadow macros of the same name) and the number of macro
    expansion steps taken on the way to that form. Each expansion of a form and
    of the forms nested in its expansion counts against the bound, but sibling
    forms do not count against one another. Contexts must not be
    shared between threads, but any number of contexts may share one registry."""

    __slots__ = (
        "_depth",
        "_filename",
        "_locals",
        "_max_depth",
        "_registry",
        "_steps",
    )

    def __init__(
        self,
        registry: MacroRegistry,
        filename: Optional[str] = None,
        opts: Optional[ExpanderOpts] = None,
    ) -> None:
        self._filename = Maybe(filename).or_else_get(DEFAULT_FILENAME)
        self._registry = registry
        self._locals: collections.deque[frozenset[sym.Symbol]] = collections.deque([])
        self._depth = 0
        self._steps = 0

        opts = Maybe(opts).or_else(expander_opts)
        max_depth = opts.val_at(MAX_EXPANSION_DEPTH)
        if max_depth is None:
            max_depth = get_max_expansion_depth()
        if max_depth < 1:
            raise ValueError(f"Maximum expansion depth must be at least 1: {max_depth}")
        self._max_depth = max_depth

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def registry(self) -> MacroRegistry:
        return self._registry

    @property
    def max_expansion_depth(self) -> int:
        return self._max_depth

    @property
    def steps(self) -> int:
        """Return the length of the longest chain of expansion steps taken for the
        current top-level form."""
        return self._steps

    @contextlib.contextmanager
    def new_locals(self, names: Iterable[sym.Symbol]):
        """Bring `names` into scope as lexical locals for the with-block."""
        self._locals.append(frozenset(names))
        try:
            yield
        finally:
            self._locals.pop()

    def is_local(self, s: sym.Symbol) -> bool:
        return s.ns is None and any(s in frame for frame in self._locals)

    def macro_named(self, s: Any) -> Optional[MacroDefinition]:
        """Return the definition of the macro named by the symbol `s`, unless `s`
        names a special form or a local in scope."""
        if not isinstance(s, sym.Symbol) or s in SPECIAL_FORMS or self.is_local(s):
            return None
        return self._registry.lookup(s)

    def macro_for(self, form: Any) -> Optional[MacroDefinition]:
        """Return the macro definition for the form if it is a macro call."""
        if isinstance(form, llist.PersistentList) and not form.is_empty:
            return self.macro_named(form.first)
        return None

    def _reset(self) -> None:
        self._depth = 0
        self._steps = 0

    @contextlib.contextmanager
    def expansion_scope(self):
        """Restore the expansion depth on exit from the with-block, so that steps
        taken expanding one form and its children are not counted against the
        forms which follow it."""
        depth = self._depth
        try:
            yield
        finally:
            self._depth = depth

    def record_step(self, form: ReaderForm) -> None:
        self._depth += 1
        self._steps = max(self._steps, self._depth)
        if self._depth > self._max_depth:
            raise ExpansionDepthExceeded(
                f"Exceeded the maximum of {self._max_depth} macro expansion steps",
                form=form,
                filename=self._filename,
                details=lmap.map({_STEPS: self._depth}),
            )

    def expand_once(self, form: ReaderForm) -> ReaderForm:
        """Expand `form` one time if it is a macro call, returning the unevaluated
        expansion, which may itself be a macro call. Return any other form
        unchanged. Child forms are not expanded."""
        self._reset()
        definition = self.macro_for(form)
        if definition is None:
            return form
        self.record_step(form)
        return _apply_macro(definition, form, self)  # type: ignore[arg-type]

    def expand(self, form: ReaderForm) -> ReaderForm:
        """Repeatedly expand `form` as by `expand_once` until it is no longer a
        macro call. Child forms are not expanded."""
        self._reset()
        return _expand_head(form, self)

    def expand_full(self, form: ReaderForm) -> ReaderForm:
        """Expand `form` and every child form until no macro calls remain.

        Any error aborts the expansion of the entire form."""
        self._reset()
        with timed(
            lambda ns: logger.log(
                TRACE,
                f"Expanded form in {ns / 1_000_000:.3f}ms ({self._steps} steps)",
            )
        ):
            return _expand_form(form, self)


def _with_call_meta(original: llist.PersistentList, expanded: ReaderForm) -> ReaderForm:
    """Carry the metadata of the macro call (such as its source location) over to
    the expansion."""
    if isinstance(expanded, IWithMeta) and isinstance(original, IMeta) and original.meta:
        old_meta = expanded.meta
        return expanded.with_meta(
            old_meta.cons(original.meta) if old_meta else original.meta
        )
    return expanded


def _apply_macro(
    definition: MacroDefinition, form: llist.PersistentList, ctx: ExpanderContext
) -> ReaderForm:
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, f"Expanding macro {definition.name}: {lrepr(form)}")
    try:
        expanded = definition.expand(form)
    except MacroexpansionException as e:
        if e.filename == DEFAULT_FILENAME:
            e.filename = ctx.filename
        raise
    except Exception as e:
        raise MacroexpansionException(
            "error occurred during macroexpansion",
            form=form,
            filename=ctx.filename,
            details=lmap.map({_MACRO: definition.name}),
        ) from e
    return _with_call_meta(form, expanded)


def _expand_head(form: ReaderForm, ctx: ExpanderContext) -> ReaderForm:
    while (definition := ctx.macro_for(form)) is not None:
        ctx.record_step(form)
        form = _apply_macro(definition, form, ctx)  # type: ignore[arg-type]
    return form


@functools.singledispatch
def _expand_form(form: Any, _: ExpanderContext) -> Any:
    return form


@_expand_form.register(vec.PersistentVector)
def _expand_vector(form: vec.PersistentVector, ctx: ExpanderContext) -> Any:
    return vec.vector([_expand_form(e, ctx) for e in form], meta=form.meta)


@_expand_form.register(lmap.PersistentMap)
def _expand_map(form: lmap.PersistentMap, ctx: ExpanderContext) -> Any:
    return lmap.PersistentMap.from_coll(
        [(_expand_form(k, ctx), _expand_form(v, ctx)) for k, v in form.items()],
        meta=form.meta,
    )


def _expand_template(form: Any, ctx: ExpanderContext, depth: int = 1) -> Any:
    """Expand the code inside a syntax quoted template.

    Only unquoted sub-forms are code; the rest of the template is data and is
    rebuilt as it is. `depth` is the number of enclosing syntax quotes which have
    not been unquoted."""
    if isinstance(form, (Unquote, UnquoteSplicing)):
        if depth == 1:
            return type(form)(_expand_form(form.form, ctx))
        return type(form)(_expand_template(form.form, ctx, depth - 1))
    elif isinstance(form, SyntaxQuote):
        return SyntaxQuote(_expand_template(form.form, ctx, depth + 1))
    elif isinstance(form, llist.PersistentList):
        return llist.list([_expand_template(e, ctx, depth) for e in form], meta=form.meta)
    elif isinstance(form, vec.PersistentVector):
        return vec.vector([_expand_template(e, ctx, depth) for e in form], meta=form.meta)
    elif isinstance(form, lmap.PersistentMap):
        return lmap.PersistentMap.from_coll(
            [
                (_expand_template(k, ctx, depth), _expand_template(v, ctx, depth))
                for k, v in form.items()
            ],
            meta=form.meta,
        )
    return form


@_expand_form.register(SyntaxQuote)
def _expand_syntax_quote(form: SyntaxQuote, ctx: ExpanderContext) -> Any:
    return SyntaxQuote(_expand_template(form.form, ctx))


################
# Special Forms
################


def _binding_names(target: Any) -> Iterable[sym.Symbol]:
    """Return the local names bound by a binding target, which may be a symbol or
    a (possibly nested) destructuring vector or map."""
    if isinstance(target, sym.Symbol):
        if target != AMPERSAND:
            yield target
    elif isinstance(target, vec.PersistentVector):
        for elem in target:
            yield from _binding_names(elem)
    elif isinstance(target, lmap.PersistentMap):
        for k, v in target.items():
            if isinstance(k, kw.Keyword):
                if isinstance(v, vec.PersistentVector):
                    yield from (
                        sym.symbol(s.name) for s in v if isinstance(s, sym.Symbol)
                    )
                elif k.name == "as" and isinstance(v, sym.Symbol):
                    yield v
            else:
                yield from _binding_names(k)


def _expand_rest(form: llist.PersistentList, ctx: ExpanderContext) -> Any:
    """Expand every element after the head of a special form."""
    return llist.list(
        [form.first, *(_expand_form(e, ctx) for e in form.rest)], meta=form.meta
    )


def _expand_body(body: Iterable[Any], ctx: ExpanderContext) -> list[Any]:
    return [_expand_form(e, ctx) for e in body]


def _expand_quote(form: llist.PersistentList, _: ExpanderContext) -> Any:
    return form


def _expand_def(form: llist.PersistentList, ctx: ExpanderContext) -> Any:
    if len(form) < 3:
        return form
    return llist.list(
        [form.first, form[1], *_expand_body(form[2:], ctx)], meta=form.meta
    )


def _expand_let(form: llist.PersistentList, ctx: ExpanderContext) -> Any:
    """Expand `let*` and `loop*` forms. Each binding is in scope for the
    initializers of later bindings and for the body."""
    if len(form) < 2:
        return _expand_rest(form, ctx)

    bindings = form[1]
    if not isinstance(bindings, vec.PersistentVector) or len(bindings) % 2 != 0:
        return _expand_rest(form, ctx)

    with contextlib.ExitStack() as stack:
        new_bindings = []
        for name, value in partition(bindings, 2):
            new_bindings.extend((name, _expand_form(value, ctx)))
            stack.enter_context(ctx.new_locals(_binding_names(name)))
        return llist.list(
            [
                form.first,
                vec.vector(new_bindings, meta=bindings.meta),
                *_expand_body(form[2:], ctx),
            ],
            meta=form.meta,
        )


def _expand_letfn(form: llist.PersistentList, ctx: ExpanderContext) -> Any:
    """Expand `letfn*` forms. Every function name is in scope for every function
    body and for the body of the form."""
    if len(form) < 2:
        return _expand_rest(form, ctx)

    bindings = form[1]
    if not isinstance(bindings, vec.PersistentVector) or len(bindings) % 2 != 0:
        return _expand_rest(form, ctx)

    names = [name for name, _ in partition(bindings, 2)]
    with ctx.new_locals(n for name in names for n in _binding_names(name)):
        new_bindings = []
        for name, value in partition(bindings, 2):
            new_bindings.extend((name, _expand_form(value, ctx)))
        return llist.list(
            [
                form.first,
                vec.vector(new_bindings, meta=bindings.meta),
                *_expand_body(form[2:], ctx),
            ],
            meta=form.meta,
        )


def _expand_fn_arity(arity: Any, ctx: ExpanderContext) -> Any:
    """Expand one arity of a function, as `([params] body...)`."""
    if not isinstance(arity, llist.PersistentList) or arity.is_empty:
        return _expand_form(arity, ctx)
    params = arity.first
    if not isinstance(params, vec.PersistentVector):
        return _expand_form(arity, ctx)
    with ctx.new_locals(_binding_names(params)):
        return llist.list([params, *_expand_body(arity.rest, ctx)], meta=arity.meta)


def _expand_fn(form: llist.PersistentList, ctx: ExpanderContext) -> Any:
    """Expand `fn*` forms, which may be single arity as `(fn* name? [params]
    body...)` or multi-arity as `(fn* name? ([params] body...) ...)`."""
    elems = list(form.rest)
    prefix: list[Any] = [form.first]
    names: list[sym.Symbol] = []
    if elems and isinstance(elems[0], sym.Symbol):
        names.append(elems[0])
        prefix.append(elems.pop(0))

    with ctx.new_locals(names):
        if elems and isinstance(elems[0], vec.PersistentVector):
            params = elems[0]
            with ctx.new_locals(_binding_names(params)):
                return llist.list(
                    [*prefix, params, *_expand_body(elems[1:], ctx)], meta=form.meta
                )
        return llist.list(
            [*prefix, *(_expand_fn_arity(arity, ctx) for arity in elems)],
            meta=form.meta,
        )


def _expand_catch(form: llist.PersistentList, ctx: ExpanderContext) -> Any:
    """Expand `(catch ExceptionType name body...)` forms."""
    if len(form) < 3 or not isinstance(form[2], sym.Symbol):
        return _expand_rest(form, ctx)
    with ctx.new_locals([form[2]]):
        return llist.list(
            [form.first, form[1], form[2], *_expand_body(form[3:], ctx)],
            meta=form.meta,
        )


SpecialFormHandler = Callable[[llist.PersistentList, ExpanderContext], Any]
_SPECIAL_FORM_HANDLERS: Mapping[sym.Symbol, SpecialFormHandler] = {
    SpecialForm.CATCH: _expand_catch,
    SpecialForm.DEF: _expand_def,
    SpecialForm.DO: _expand_rest,
    SpecialForm.FINALLY: _expand_rest,
    SpecialForm.FN: _expand_fn,
    SpecialForm.IF: _expand_rest,
    SpecialForm.LET: _expand_let,
    SpecialForm.LETFN: _expand_letfn,
    SpecialForm.LOOP: _expand_let,
    SpecialForm.QUOTE: _expand_quote,
    SpecialForm.RECUR: _expand_rest,
    SpecialForm.SET_BANG: _expand_rest,
    SpecialForm.THROW: _expand_rest,
    SpecialForm.TRY: _expand_rest,
    SpecialForm.VAR: _expand_quote,
}


def _expand_invoke(form: llist.PersistentList, ctx: ExpanderContext) -> Any:
    """Expand an ordinary function call.

    The arguments of a function call are values, so a bare symbol naming a macro
    in argument position is an error: macros have no value to pass."""
    head = _expand_form(form.first, ctx)
    args = []
    for arg in form.rest:
        if ctx.macro_named(arg) is not None:
            raise MacroUsedAsValue(
                f"Can't take value of a macro: {arg}",
                form=arg,
                filename=ctx.filename,
                details=lmap.map({_MACRO: arg}),
            )
        args.append(_expand_form(arg, ctx))
    return llist.list([head, *args], meta=form.meta)


@_expand_form.register(llist.PersistentList)
def _expand_list(form: llist.PersistentList, ctx: ExpanderContext) -> Any:
    with ctx.expansion_scope():
        expanded = _expand_head(form, ctx)
        if not isinstance(expanded, llist.PersistentList):
            return _expand_form(expanded, ctx)
        if expanded.is_empty:
            return expanded

        head = expanded.first
        if isinstance(head, sym.Symbol) and not ctx.is_local(head):
            handle_special_form = _SPECIAL_FORM_HANDLERS.get(head)
            if handle_special_form is not None:
                return handle_special_form(expanded, ctx)

        return _expand_invoke(expanded, ctx)


def macroexpand_1(
    form: ReaderForm,
    registry: MacroRegistry,
    filename: Optional[str] = None,
    opts: Optional[ExpanderOpts] = None,
) -> ReaderForm:
    """Macroexpand form one time. Returns the macroexpanded form. The return
    value may still represent a macro. Does not macroexpand child forms."""
    return ExpanderContext(registry, filename=filename, opts=opts).expand_once(form)


def macroexpand(
    form: ReaderForm,
    registry: MacroRegistry,
    filename: Optional[str] = None,
    opts: Optional[ExpanderOpts] = None,
) -> ReaderForm:
    """Repeatedly macroexpand form as by macroexpand_1 until form no longer
    represents a macro. Returns the expanded form. Does not macroexpand child
    forms."""
    return ExpanderContext(registry, filename=filename, opts=opts).expand(form)


def macroexpand_all(
    form: ReaderForm,
    registry: MacroRegistry,
    filename: Optional[str] = None,
    opts: Optional[ExpanderOpts] = None,
) -> ReaderForm:
    """Fully macroexpand form and all of its child forms. The returned form
    contains no macro calls."""
    return ExpanderContext(registry, filename=filename, opts=opts).expand_full(form)
