from collections.abc import Iterable
from itertools import chain
from typing import Callable, Optional

from quasilisp.lang import list as llist
from quasilisp.lang import map as lmap
from quasilisp.lang import symbol as sym
from quasilisp.lang import vector as vec
from quasilisp.lang.core import CORE_NS
from quasilisp.lang.exception import DEFAULT_FILENAME, IllegalSplice
from quasilisp.lang.gensym import GensymEnvironment
from quasilisp.lang.template import SyntaxQuote, Unquote, UnquoteSplicing
from quasilisp.lang.typing import LispForm, ReaderForm
from quasilisp.util import Maybe

Resolver = Callable[[sym.Symbol], sym.Symbol]

_QUOTE = sym.symbol("quote")

_APPLY = sym.symbol("apply", ns=CORE_NS)
_CONCAT = sym.symbol("concat", ns=CORE_NS)
_HASH_MAP = sym.symbol("hash-map", ns=CORE_NS)
_LIST = sym.symbol("list", ns=CORE_NS)
_VECTOR = sym.symbol("vector", ns=CORE_NS)


class SyntaxQuoteContext:
    """State for a single top-level syntax quote expansion."""

    __slots__ = ("_filename", "_gensym_env", "_resolve")

    def __init__(
        self,
        resolver: Optional[Resolver] = None,
        gensym_env: Optional[GensymEnvironment] = None,
        filename: Optional[str] = None,
    ) -> None:
        self._filename = Maybe(filename).or_else_get(DEFAULT_FILENAME)
        self._gensym_env = Maybe(gensym_env).or_else(GensymEnvironment)
        self._resolve = Maybe(resolver).or_else_get(lambda x: x)

    @property
    def filename(self) -> str:
        return self._filename

    @property
    def gensym_env(self) -> GensymEnvironment:
        return self._gensym_env

    def resolve(self, s: sym.Symbol) -> sym.Symbol:
        return self._resolve(s)

    def illegal_splice(self, form: UnquoteSplicing, msg: str) -> IllegalSplice:
        return IllegalSplice(msg, form=form, filename=self._filename)


def _expand_syntax_quote(
    ctx: SyntaxQuoteContext, form: Iterable[ReaderForm]
) -> list[LispForm]:
    """Expand the elements of a syntax quoted collection to handle unquoting and
    unquote-splicing.

    The unquoted form ~x becomes:
        (quasilisp.core/list x)

    The unquote-spliced form ~@x becomes
        x

    All other forms are recursively processed as by _process_syntax_quoted_form
    and are returned as:
        (quasilisp.core/list form)"""
    expanded: list[LispForm] = []

    for elem in form:
        if isinstance(elem, Unquote):
            expanded.append(llist.l(_LIST, elem.form))
        elif isinstance(elem, UnquoteSplicing):
            expanded.append(elem.form)
        else:
            expanded.append(llist.l(_LIST, _process_syntax_quoted_form(ctx, elem)))

    return expanded


def _check_map_entries(ctx: SyntaxQuoteContext, form: lmap.PersistentMap) -> None:
    for k, v in form.items():
        for elem in (k, v):
            if isinstance(elem, UnquoteSplicing):
                raise ctx.illegal_splice(
                    elem, "Cannot splice into a map key or value position"
                )


def _process_syntax_quoted_form(ctx: SyntaxQuoteContext, form: ReaderForm) -> LispForm:
    """Post-process syntax quoted forms to generate forms that can be assembled
    into the correct types at runtime.

    Lists are turned into:
        (quasilisp.core/apply
         quasilisp.core/list
         (quasilisp.core/concat [& rest]))

    Vectors are turned into:
        (quasilisp.core/apply
         quasilisp.core/vector
         (quasilisp.core/concat [& rest]))

    Maps are turned into:
        (quasilisp.core/apply
         quasilisp.core/hash-map
         (quasilisp.core/concat [& rest]))

    The child forms (called rest above) are processed by _expand_syntax_quote.

    Symbols are quoted; auto-gensym symbols are first replaced by the symbol
    generated for them in this expansion. All other forms are self-evaluating
    and are passed through without modification."""
    lconcat = lambda v: llist.list(v).cons(_CONCAT)
    if isinstance(form, Unquote):
        return form.form
    elif isinstance(form, UnquoteSplicing):
        raise ctx.illegal_splice(form, "Cannot splice outside collection")
    elif isinstance(form, SyntaxQuote):
        inner = syntax_quote(
            form.form, resolver=ctx.resolve, filename=ctx.filename
        )
        return _process_syntax_quoted_form(ctx, inner)
    elif isinstance(form, llist.PersistentList):
        return llist.l(_APPLY, _LIST, lconcat(_expand_syntax_quote(ctx, form)))
    elif isinstance(form, vec.PersistentVector):
        return llist.l(_APPLY, _VECTOR, lconcat(_expand_syntax_quote(ctx, form)))
    elif isinstance(form, lmap.PersistentMap):
        _check_map_entries(ctx, form)
        flat_kvs = list(chain.from_iterable(form.items()))
        return llist.l(_APPLY, _HASH_MAP, lconcat(_expand_syntax_quote(ctx, flat_kvs)))
    elif isinstance(form, sym.Symbol):
        if form.is_auto_gensym:
            return llist.l(_QUOTE, ctx.gensym_env.resolve(form))
        return llist.l(_QUOTE, ctx.resolve(form))
    else:
        return form


def syntax_quote(
    form: ReaderForm,
    resolver: Optional[Resolver] = None,
    gensym_env: Optional[GensymEnvironment] = None,
    filename: Optional[str] = None,
) -> LispForm:
    """Return the construction expression for the syntax quoted template `form`.

    Evaluating the returned form rebuilds the template with each unquoted sub-form
    replaced by its value and each unquote-spliced sub-form replaced by the
    elements of its value. Sub-forms are evaluated left to right, in the order
    they appear in the template.

    Every call uses a fresh gensym environment unless one is given, so each call
    produces new names for the template's auto-gensym symbols.

    `resolver`, if given, is applied to every symbol in the template which is not
    an auto-gensym symbol (to namespace qualify it, for instance)."""
    ctx = SyntaxQuoteContext(resolver=resolver, gensym_env=gensym_env, filename=filename)
    return _process_syntax_quoted_form(ctx, form)
