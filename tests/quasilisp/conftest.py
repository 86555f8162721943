import pytest

from quasilisp.lang import list as llist
from quasilisp.lang import symbol as sym
from quasilisp.lang import vector as vec
from quasilisp.lang.compiler import CompilerContext
from quasilisp.lang.evaluator import Evaluator
from quasilisp.lang.macro import MacroRegistry
from quasilisp.lang.template import syntax_quote, unquote, unquote_splicing


@pytest.fixture
def registry() -> MacroRegistry:
    """A registry holding a handful of common macros, defined both as Python
    transformers and as syntax quote templates."""
    r = MacroRegistry()

    # (when test & body) => (if test (do ~@body) nil)
    r.defmacro_body(
        "when",
        vec.v(sym.symbol("test"), sym.symbol("&"), sym.symbol("body")),
        syntax_quote(
            llist.l(
                sym.symbol("if"),
                unquote(sym.symbol("test")),
                llist.l(sym.symbol("do"), unquote_splicing(sym.symbol("body"))),
                None,
            )
        ),
    )

    # (or2 a b) => (let* [x# a] (if x# x# b))
    r.defmacro_body(
        "or2",
        vec.v(sym.symbol("a"), sym.symbol("b")),
        syntax_quote(
            llist.l(
                sym.symbol("let*"),
                vec.v(sym.symbol("x#"), unquote(sym.symbol("a"))),
                llist.l(
                    sym.symbol("if"),
                    sym.symbol("x#"),
                    sym.symbol("x#"),
                    unquote(sym.symbol("b")),
                ),
            )
        ),
    )

    @r.defmacro()
    def unless(form, test, *body):
        return llist.l(sym.symbol("when"), llist.l(sym.symbol("not"), test), *body)

    @r.defmacro()
    def forever(form):
        return llist.l(sym.symbol("forever"))

    return r


@pytest.fixture
def evaluator(registry: MacroRegistry) -> Evaluator:
    return Evaluator(registry=registry)


@pytest.fixture
def compiler_ctx(registry: MacroRegistry) -> CompilerContext:
    return CompilerContext(
        registry=registry,
        filename="<Compiler Test Input>",
        globals={sym.symbol("not"): lambda x: x is None or x is False},
    )
