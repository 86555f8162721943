from typing import Any, Optional

import attr

from quasilisp.lang import keyword as kw
from quasilisp.lang.interfaces import IMeta

# The reader attaches these keys to the metadata of every form it reads which
# supports metadata
READER_LINE_KW = kw.keyword("line", ns="quasilisp.lang.reader")
READER_COL_KW = kw.keyword("col", ns="quasilisp.lang.reader")
READER_END_LINE_KW = kw.keyword("end-line", ns="quasilisp.lang.reader")
READER_END_COL_KW = kw.keyword("end-col", ns="quasilisp.lang.reader")


@attr.frozen
class Location:
    line: Optional[int] = None
    col: Optional[int] = None
    end_line: Optional[int] = None
    end_col: Optional[int] = None

    def __bool__(self):
        return (
            self.line is not None
            or self.col is not None
            or self.end_line is not None
            or self.end_col is not None
        )

    def __str__(self):
        if self.line is None:
            return "NO_SOURCE_LINE"
        if self.end_line is not None and self.end_line != self.line:
            return f"{self.line}-{self.end_line}"
        if self.col is not None:
            return f"{self.line}:{self.col}"
        return str(self.line)


def form_location(form: Any) -> Location:
    """Return the source location the reader recorded for `form`, if any."""
    if isinstance(form, IMeta) and form.meta:
        return Location(
            form.meta.val_at(READER_LINE_KW),
            form.meta.val_at(READER_COL_KW),
            form.meta.val_at(READER_END_LINE_KW),
            form.meta.val_at(READER_END_COL_KW),
        )
    return Location()
