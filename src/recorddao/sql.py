"""
SQL placeholder processing.

Query templates use `?` for every bound parameter and `\\?` for a literal
question mark (the PostgreSQL JSON `?` operator, for instance). Templates
are scanned once, left to right:

    template + args -> tokenize -> expand sequences -> marker style -> sql, params

Quoted literals are copied verbatim and never hold placeholders. Sequence
arguments are expanded into one marker per element, so

    expand_placeholders('a=? AND b IN (?)', (5, [1, 2, 3]))

returns `('a=? AND b IN (?,?,?)', (5, 1, 2, 3))`.

Main entry points:
- `expand_placeholders()` - caller templates with variadic arguments
- `standardize_placeholders()` - engine-generated `?` statements
- `check_bound_count()` - final marker/value agreement check
"""
import re
from collections.abc import Sequence
from typing import Any

from recorddao.exceptions import ArgumentMismatchError

__all__ = [
    'expand_placeholders',
    'standardize_placeholders',
    'check_bound_count',
    'make_placeholders',
    'is_expandable',
    'PARAMSTYLE_MARKERS',
]

PARAMSTYLE_MARKERS = {
    'qmark': '?',
    'format': '%s',
}

_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<escaped>\\\?)
    |(?P<qmark>\?)
    |(?P<percent>%)
""", re.VERBOSE)


def _marker(paramstyle: str) -> str:
    try:
        return PARAMSTYLE_MARKERS[paramstyle]
    except KeyError:
        raise ValueError(f'Unsupported paramstyle: {paramstyle}. '
                         f'Available: {list(PARAMSTYLE_MARKERS)}') from None


def is_expandable(arg: Any) -> bool:
    """Check if an argument expands into a marker group.
    """
    return isinstance(arg, Sequence) and not isinstance(arg, (str, bytes, bytearray, memoryview))


def make_placeholders(count: int, paramstyle: str = 'qmark') -> str:
    """Comma-joined markers for `count` parameters.

    >>> make_placeholders(3)
    '?,?,?'
    >>> make_placeholders(2, 'format')
    '%s,%s'
    """
    return ','.join([_marker(paramstyle)] * count)


def expand_placeholders(template: str, args: Sequence[Any] = (),
                        paramstyle: str = 'qmark') -> tuple[str, tuple]:
    """Expand a `?` template and its arguments into a positional statement.

    Each real placeholder consumes the next argument. A sequence argument
    becomes `m,m,...` with one marker per element, flattened one level
    only; an empty sequence renders `NULL`. In `format` style literal
    percent signs are doubled.

    >>> expand_placeholders('a=? AND b IN (?) AND c=\\\\?', (5, [1, 2, 3]))
    ('a=? AND b IN (?,?,?) AND c=?', (5, 1, 2, 3))
    >>> expand_placeholders("x LIKE 'a?%' AND y=?", (1,), 'format')
    ("x LIKE 'a?%%' AND y=%s", (1,))

    Raises ArgumentMismatchError when the placeholder and argument counts
    disagree.
    """
    marker = _marker(paramstyle)
    double_percent = paramstyle == 'format'

    parts: list[str] = []
    params: list[Any] = []
    consumed = 0
    last_end = 0

    for match in _TOKENIZE.finditer(template):
        start, end = match.span()
        parts.append(template[last_end:start])
        last_end = end

        kind = match.lastgroup
        text = match.group(0)

        if kind == 'string':
            parts.append(text.replace('%', '%%') if double_percent else text)
        elif kind == 'escaped':
            parts.append('?')
        elif kind == 'percent':
            parts.append('%%' if double_percent else '%')
        else:
            if consumed >= len(args):
                raise ArgumentMismatchError(
                    f'Query has more placeholders than the {len(args)} supplied arguments')
            arg = args[consumed]
            consumed += 1
            if not is_expandable(arg):
                parts.append(marker)
                params.append(arg)
            elif len(arg) == 0:
                parts.append('NULL')
            else:
                parts.append(make_placeholders(len(arg), paramstyle))
                params.extend(arg)

    parts.append(template[last_end:])

    if consumed != len(args):
        raise ArgumentMismatchError(
            f'Query has {consumed} placeholders but {len(args)} arguments were supplied')

    return ''.join(parts), tuple(params)


def standardize_placeholders(sql: str, paramstyle: str = 'qmark') -> str:
    """Convert an engine-generated `?` statement to the driver's markers.

    >>> standardize_placeholders('UPDATE t SET a=? WHERE id=?', 'format')
    'UPDATE t SET a=%s WHERE id=%s'
    """
    marker = _marker(paramstyle)
    if paramstyle == 'qmark':
        return sql

    def replace(match: re.Match) -> str:
        kind = match.lastgroup
        text = match.group(0)
        if kind == 'string':
            return text.replace('%', '%%')
        if kind == 'percent':
            return '%%'
        if kind == 'qmark':
            return marker
        return text

    return _TOKENIZE.sub(replace, sql)


def count_markers(sql: str) -> int:
    """Count bare `?` markers outside quoted literals."""
    return sum(1 for m in _TOKENIZE.finditer(sql) if m.lastgroup in {'qmark', 'escaped'})


def check_bound_count(sql: str, params: Sequence[Any], paramstyle: str = 'qmark') -> None:
    """Verify the driver will see as many markers as bound values.

    Only `qmark` drivers are checked: there a literal `?` produced from
    `\\?` outside quotes reads as one more parameter marker.
    """
    if paramstyle != 'qmark':
        return
    count = count_markers(sql)
    if count != len(params):
        raise ArgumentMismatchError(
            f'Statement has {count} placeholders but {len(params)} bound values')


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
