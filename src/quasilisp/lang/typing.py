from decimal import Decimal
from fractions import Fraction
from typing import Union

from quasilisp.lang import keyword as kw
from quasilisp.lang import list as llist
from quasilisp.lang import map as lmap
from quasilisp.lang import symbol as sym
from quasilisp.lang import vector as vec
from quasilisp.lang.interfaces import IPersistentMap
from quasilisp.lang.template import SyntaxQuote, Unquote, UnquoteSplicing

ExpanderOpts = IPersistentMap[kw.Keyword, Union[bool, int]]

LispForm = Union[
    bool,
    int,
    float,
    Fraction,
    Decimal,
    kw.Keyword,
    llist.PersistentList,
    lmap.PersistentMap,
    None,
    str,
    sym.Symbol,
    vec.PersistentVector,
]
TemplateForm = Union[SyntaxQuote, Unquote, UnquoteSplicing]
ReaderForm = Union[LispForm, TemplateForm]
