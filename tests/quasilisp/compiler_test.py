import pytest

from quasilisp.lang import list as llist
from quasilisp.lang import symbol as sym
from quasilisp.lang import vector as vec
from quasilisp.lang.compiler import (
    CompilerContext,
    compiler_opts,
    eval_form,
    eval_forms,
)
from quasilisp.lang.exception import (
    ExpansionDepthExceeded,
    MacroexpansionException,
    MacroUsedAsValue,
)
from quasilisp.lang.expander import MAX_EXPANSION_DEPTH
from quasilisp.lang.macro import MacroRegistry
from quasilisp.lang.template import syntax_quote, unquote, unquote_splicing

DEFMACRO = sym.symbol("defmacro")
DO = sym.symbol("do")
IF = sym.symbol("if")
LET = sym.symbol("let*")


def s(name: str) -> sym.Symbol:
    return sym.symbol(name)


def test_compiler_opts():
    assert 5 == compiler_opts(max_expansion_depth=5).val_at(MAX_EXPANSION_DEPTH)


def test_context_creates_registry():
    ctx = CompilerContext()
    assert isinstance(ctx.registry, MacroRegistry)
    assert ctx.registry is ctx.expander_context.registry
    assert ctx.registry is ctx.evaluator.registry
    assert "NO_SOURCE_PATH" == ctx.filename


class TestEvalForm:
    def test_macro_expansion(self, compiler_ctx: CompilerContext):
        assert 1 == eval_form(llist.l(s("when"), True, 1), compiler_ctx)
        assert None is eval_form(llist.l(s("when"), False, 1), compiler_ctx)

    def test_macro_arguments_are_not_evaluated(self, compiler_ctx: CompilerContext):
        # the untaken branch refers to an unbound symbol
        assert None is eval_form(llist.l(s("unless"), True, s("unbound")), compiler_ctx)

    def test_hygienic_binding(self, compiler_ctx: CompilerContext):
        # the user's `x` is not captured by the binding the macro introduces
        assert 2 == eval_form(
            llist.l(
                LET,
                vec.v(s("x"), 2),
                llist.l(s("or2"), False, s("x")),
            ),
            compiler_ctx,
        )
        assert 3 == eval_form(llist.l(s("or2"), 3, s("unbound")), compiler_ctx)

    def test_env(self, compiler_ctx: CompilerContext):
        assert 5 == eval_form(llist.l(s("when"), s("x"), s("x")), compiler_ctx, {s("x"): 5})

    def test_macro_used_as_value(self, compiler_ctx: CompilerContext):
        with pytest.raises(MacroUsedAsValue):
            eval_form(llist.l(s("map"), s("when"), vec.v(1, 2)), compiler_ctx)

    def test_expansion_depth(self, registry: MacroRegistry):
        ctx = CompilerContext(registry, opts=compiler_opts(max_expansion_depth=10))
        with pytest.raises(ExpansionDepthExceeded):
            eval_form(llist.l(s("forever")), ctx)

    def test_empty_do(self, compiler_ctx: CompilerContext):
        assert None is eval_form(llist.l(DO), compiler_ctx)


class TestDefmacro:
    def test_defmacro(self, compiler_ctx: CompilerContext):
        name = eval_form(
            llist.l(
                DEFMACRO,
                s("my-if"),
                "Like if, spelled differently.",
                vec.v(s("test"), s("then"), s("else")),
                syntax_quote(
                    llist.l(
                        IF, unquote(s("test")), unquote(s("then")), unquote(s("else"))
                    )
                ),
            ),
            compiler_ctx,
        )
        assert s("my-if") == name
        definition = compiler_ctx.registry.lookup(s("my-if"))
        assert "Like if, spelled differently." == definition.doc
        assert "then" == eval_form(
            llist.l(s("my-if"), True, "then", s("unbound")), compiler_ctx
        )

    def test_defmacro_then_use_in_same_do(self, compiler_ctx: CompilerContext):
        assert llist.l(2, 1) == eval_form(
            llist.l(
                DO,
                llist.l(
                    DEFMACRO,
                    s("swap-args"),
                    vec.v(s("f"), s("a"), s("b")),
                    llist.l(s("list"), s("f"), s("b"), s("a")),
                ),
                llist.l(s("swap-args"), s("list"), 1, 2),
            ),
            compiler_ctx,
        )

    def test_defmacro_body_may_use_macros(self, compiler_ctx: CompilerContext):
        eval_form(
            llist.l(
                DEFMACRO,
                s("maybe-wrap"),
                vec.v(s("flag"), s("x")),
                llist.l(
                    s("when"),
                    s("flag"),
                    syntax_quote(vec.v(unquote(s("x")))),
                ),
            ),
            compiler_ctx,
        )
        assert vec.v(1) == eval_form(llist.l(s("maybe-wrap"), True, 1), compiler_ctx)

    def test_defmacro_params_shadow_macros(self, compiler_ctx: CompilerContext):
        eval_form(
            llist.l(
                DEFMACRO,
                s("shadowing"),
                vec.v(s("when")),
                syntax_quote(llist.l(s("list"), unquote(s("when")))),
            ),
            compiler_ctx,
        )
        assert llist.l(7) == eval_form(llist.l(s("shadowing"), 7), compiler_ctx)

    def test_defmacro_splice(self, compiler_ctx: CompilerContext):
        eval_forms(
            [
                llist.l(
                    DEFMACRO,
                    s("my-do"),
                    vec.v(sym.symbol("&"), s("body")),
                    syntax_quote(llist.l(DO, unquote_splicing(s("body")))),
                ),
            ],
            compiler_ctx,
        )
        assert 3 == eval_forms([llist.l(s("my-do"), 1, 2, 3)], compiler_ctx)

    @pytest.mark.parametrize(
        "form",
        [
            llist.l(DEFMACRO),
            llist.l(DEFMACRO, "name", vec.v()),
            llist.l(DEFMACRO, s("m")),
            llist.l(DEFMACRO, s("m"), llist.l(s("a"))),
            llist.l(DEFMACRO, s("m"), vec.v(s("a"), sym.symbol("&"))),
        ],
    )
    def test_invalid_defmacro(self, compiler_ctx: CompilerContext, form):
        with pytest.raises(MacroexpansionException):
            eval_form(form, compiler_ctx)
