import pytest

from quasilisp.lang import keyword as kw
from quasilisp.lang import list as llist
from quasilisp.lang import map as lmap
from quasilisp.lang import quasiquote as qq
from quasilisp.lang import symbol as sym
from quasilisp.lang import vector as vec
from quasilisp.lang.core import CORE_NS
from quasilisp.lang.evaluator import Evaluator
from quasilisp.lang.exception import ErrorKind, EvaluationError, IllegalSplice
from quasilisp.lang.gensym import GensymEnvironment
from quasilisp.lang.template import (
    SyntaxQuote,
    syntax_quote,
    unquote,
    unquote_splicing,
)

QUOTE = sym.symbol("quote")
APPLY = sym.symbol("apply", ns=CORE_NS)
CONCAT = sym.symbol("concat", ns=CORE_NS)
HASH_MAP = sym.symbol("hash-map", ns=CORE_NS)
LIST = sym.symbol("list", ns=CORE_NS)
VECTOR = sym.symbol("vector", ns=CORE_NS)


@pytest.fixture
def ev() -> Evaluator:
    return Evaluator()


def eval_template(ev: Evaluator, template, **bindings):
    return ev.evaluate(
        syntax_quote(template), {sym.symbol(k): v for k, v in bindings.items()}
    )


class TestConstructionExpressions:
    @pytest.mark.parametrize(
        "v", [1, 1.5, "str", None, True, False, kw.keyword("kw")]
    )
    def test_atoms_are_self_evaluating(self, v):
        assert v == qq.syntax_quote(v)

    def test_symbols_are_quoted(self):
        assert llist.l(QUOTE, sym.symbol("a")) == qq.syntax_quote(sym.symbol("a"))

    def test_unquote_at_root(self):
        assert sym.symbol("x") == qq.syntax_quote(unquote(sym.symbol("x")))

    def test_list(self):
        assert llist.l(
            APPLY,
            LIST,
            llist.l(
                CONCAT,
                llist.l(LIST, 1),
                llist.l(LIST, sym.symbol("x")),
                sym.symbol("xs"),
            ),
        ) == qq.syntax_quote(
            llist.l(1, unquote(sym.symbol("x")), unquote_splicing(sym.symbol("xs")))
        )

    def test_empty_list(self):
        assert llist.l(APPLY, LIST, llist.l(CONCAT)) == qq.syntax_quote(llist.l())

    def test_vector(self):
        assert llist.l(
            APPLY,
            VECTOR,
            llist.l(CONCAT, llist.l(LIST, llist.l(QUOTE, sym.symbol("a")))),
        ) == qq.syntax_quote(vec.v(sym.symbol("a")))

    def test_map(self):
        assert llist.l(
            APPLY,
            HASH_MAP,
            llist.l(
                CONCAT,
                llist.l(LIST, kw.keyword("a")),
                llist.l(LIST, sym.symbol("x")),
            ),
        ) == qq.syntax_quote(lmap.map({kw.keyword("a"): unquote(sym.symbol("x"))}))

    def test_resolver_applies_to_plain_symbols(self):
        def resolve(s: sym.Symbol) -> sym.Symbol:
            return s if s.ns is not None else sym.symbol(s.name, ns="user")

        assert llist.l(QUOTE, sym.symbol("a", ns="user")) == qq.syntax_quote(
            sym.symbol("a"), resolver=resolve
        )
        assert llist.l(QUOTE, sym.symbol("a", ns="other")) == qq.syntax_quote(
            sym.symbol("a", ns="other"), resolver=resolve
        )

        expr = qq.syntax_quote(sym.symbol("a#"), resolver=resolve)
        assert QUOTE == expr.first
        assert expr[1].ns is None
        assert expr[1].name.startswith("a_")

    def test_unquoted_forms_are_not_resolved(self):
        def resolve(s: sym.Symbol) -> sym.Symbol:
            return sym.symbol(s.name, ns="user")

        assert sym.symbol("x") == qq.syntax_quote(
            unquote(sym.symbol("x")), resolver=resolve
        )

    def test_shared_gensym_environment(self):
        env = GensymEnvironment()
        e1 = qq.syntax_quote(sym.symbol("x#"), gensym_env=env)
        e2 = qq.syntax_quote(sym.symbol("x#"), gensym_env=env)
        assert e1 == e2

    def test_fresh_gensym_environment_per_call(self):
        assert qq.syntax_quote(sym.symbol("x#")) != qq.syntax_quote(sym.symbol("x#"))


class TestIllegalSplice:
    def test_splice_at_root(self):
        with pytest.raises(IllegalSplice) as e:
            qq.syntax_quote(unquote_splicing(sym.symbol("xs")))

        assert ErrorKind.ILLEGAL_SPLICE.value == e.value.data.val_at(
            kw.keyword("kind")
        )

    def test_splice_in_map_value(self):
        with pytest.raises(IllegalSplice):
            qq.syntax_quote(
                lmap.map({kw.keyword("a"): unquote_splicing(sym.symbol("xs"))})
            )

    def test_splice_in_map_key(self):
        with pytest.raises(IllegalSplice):
            qq.syntax_quote(lmap.map({unquote_splicing(sym.symbol("xs")): 1}))

    def test_splice_in_nested_map(self):
        with pytest.raises(IllegalSplice):
            qq.syntax_quote(
                vec.v(lmap.map({kw.keyword("a"): unquote_splicing(sym.symbol("xs"))}))
            )


class TestQuotingIdentity:
    @pytest.mark.parametrize(
        "template",
        [
            1,
            "str",
            None,
            kw.keyword("kw"),
            sym.symbol("a"),
            sym.symbol("a", ns="some.ns"),
            llist.l(),
            vec.v(),
            lmap.EMPTY,
            llist.l(sym.symbol("a"), 1, "b", None),
            vec.v(sym.symbol("a"), llist.l(sym.symbol("b"), vec.v())),
            lmap.map(
                {
                    kw.keyword("a"): llist.l(sym.symbol("b")),
                    sym.symbol("c"): vec.v(1, 2),
                }
            ),
            llist.l(sym.symbol("if"), llist.l(), vec.v(lmap.map({1: llist.l(2)}))),
        ],
    )
    def test_quoting_identity(self, ev: Evaluator, template):
        assert template == eval_template(ev, template)

    def test_collection_kinds_are_preserved(self, ev: Evaluator):
        result = eval_template(ev, llist.l(vec.v(1), llist.l(2), lmap.map({3: 4})))
        assert isinstance(result, llist.PersistentList)
        assert isinstance(result[0], vec.PersistentVector)
        assert isinstance(result[1], llist.PersistentList)
        assert isinstance(result[2], lmap.PersistentMap)


class TestUnquote:
    def test_unquote_substitutes_value(self, ev: Evaluator):
        assert llist.l(1, 2, 3) == eval_template(
            ev, llist.l(1, unquote(sym.symbol("x")), 3), x=2
        )

    def test_unquote_in_vector(self, ev: Evaluator):
        assert vec.v(1, 2, 3) == eval_template(
            ev, vec.v(1, unquote(sym.symbol("x")), 3), x=2
        )

    def test_unquote_in_map(self, ev: Evaluator):
        assert lmap.map({kw.keyword("a"): 2, 3: kw.keyword("b")}) == eval_template(
            ev,
            lmap.map(
                {
                    kw.keyword("a"): unquote(sym.symbol("x")),
                    unquote(sym.symbol("y")): kw.keyword("b"),
                }
            ),
            x=2,
            y=3,
        )

    def test_unquote_evaluates_expressions(self, ev: Evaluator):
        assert llist.l(sym.symbol("a"), llist.l(1, 2)) == eval_template(
            ev,
            llist.l(
                sym.symbol("a"),
                unquote(llist.l(sym.symbol("list"), 1, sym.symbol("x"))),
            ),
            x=2,
        )

    def test_unquoted_collection_is_inserted_as_one_element(self, ev: Evaluator):
        assert llist.l(1, llist.l(2, 3), 4) == eval_template(
            ev, llist.l(1, unquote(sym.symbol("xs")), 4), xs=llist.l(2, 3)
        )

    def test_unquoted_forms_evaluate_left_to_right(self):
        calls = []

        def tick(v):
            calls.append(v)
            return v

        ev = Evaluator(globals={sym.symbol("tick"): tick})
        result = ev.evaluate(
            syntax_quote(
                llist.l(
                    unquote(llist.l(sym.symbol("tick"), 1)),
                    vec.v(unquote(llist.l(sym.symbol("tick"), 2))),
                    unquote_splicing(
                        llist.l(sym.symbol("list"), llist.l(sym.symbol("tick"), 3))
                    ),
                )
            )
        )
        assert llist.l(1, vec.v(2), 3) == result
        assert [1, 2, 3] == calls


class TestUnquoteSplicing:
    def test_splice_flattens_one_level(self, ev: Evaluator):
        assert llist.l(1, 2, 3, 4) == eval_template(
            ev, llist.l(1, unquote_splicing(sym.symbol("xs")), 4), xs=llist.l(2, 3)
        )

    def test_splice_in_vector(self, ev: Evaluator):
        assert vec.v(1, 2, 3, 4) == eval_template(
            ev, vec.v(1, unquote_splicing(sym.symbol("xs")), 4), xs=vec.v(2, 3)
        )

    def test_splice_nested_collections_are_not_flattened(self, ev: Evaluator):
        assert llist.l(1, vec.v(2), 3) == eval_template(
            ev,
            llist.l(1, unquote_splicing(sym.symbol("xs"))),
            xs=llist.l(vec.v(2), 3),
        )

    @pytest.mark.parametrize("empty", [llist.l(), vec.v(), None])
    def test_splice_empty_sequence(self, ev: Evaluator, empty):
        assert llist.l(1, 4) == eval_template(
            ev, llist.l(1, unquote_splicing(sym.symbol("xs")), 4), xs=empty
        )

    def test_splice_only_element(self, ev: Evaluator):
        assert llist.l() == eval_template(
            ev, llist.l(unquote_splicing(sym.symbol("xs"))), xs=llist.l()
        )

    def test_splice_non_sequence(self, ev: Evaluator):
        with pytest.raises(EvaluationError):
            eval_template(ev, llist.l(1, unquote_splicing(sym.symbol("xs"))), xs=5)


class TestAutoGensym:
    def test_gensym_stable_within_one_instantiation(self, ev: Evaluator):
        result = eval_template(
            ev,
            llist.l(
                sym.symbol("let*"),
                vec.v(sym.symbol("x#"), 1),
                vec.v(sym.symbol("x#"), llist.l(sym.symbol("x#"))),
            ),
        )
        name = result[1][0]
        assert not name.is_auto_gensym
        assert name.name.startswith("x_")
        assert name == result[2][0]
        assert name == result[2][1][0]

    def test_gensym_fresh_across_instantiations(self, ev: Evaluator):
        template = syntax_quote(llist.l(sym.symbol("x#")))
        first = ev.evaluate(template)
        second = ev.evaluate(template)
        assert first[0] != second[0]

    def test_distinct_markers_get_distinct_names(self, ev: Evaluator):
        markers = [sym.symbol(f"v{i}#") for i in range(10)]
        result = eval_template(ev, vec.v(*markers, *markers))
        assert 10 == len(set(result))
        assert list(result[:10]) == list(result[10:])

    def test_gensym_avoids_user_symbols(self, ev: Evaluator):
        result = eval_template(ev, vec.v(sym.symbol("x"), sym.symbol("x#")))
        assert result[0] != result[1]

    def test_unquoted_symbols_are_not_renamed(self, ev: Evaluator):
        x = sym.symbol("x#")
        result = eval_template(ev, llist.l(unquote(sym.symbol("v"))), v=x)
        assert llist.l(x) == result


class TestNestedSyntaxQuote:
    def test_nested_syntax_quote_produces_construction_form(self, ev: Evaluator):
        assert llist.l(QUOTE, sym.symbol("a")) == eval_template(
            ev, SyntaxQuote(sym.symbol("a"))
        )

    def test_twice_evaluated_nested_syntax_quote(self, ev: Evaluator):
        inner = eval_template(ev, SyntaxQuote(llist.l(sym.symbol("a"), 1)))
        assert llist.l(sym.symbol("a"), 1) == ev.evaluate(inner)
