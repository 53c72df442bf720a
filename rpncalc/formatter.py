"""
Renders the stack and the variable table in the session's display mode.
"""
from rich.table import Table

from rpncalc.keywords import CATEGORIES
from rpncalc.session import Mode
from rpncalc.values import Assignment, Code, Number, String, Variable

_PREFIXED = {Mode.HEX: hex, Mode.BIN: bin, Mode.OCT: oct}


def format_number(number, mode):
    exact = number.exact
    if not exact.is_finite():
        return str(exact)
    if mode is not Mode.DEC:
        return _PREFIXED[mode](number.integer())
    if exact.is_zero():
        return '0'
    if exact == exact.to_integral_value():
        # 'f' keeps every digit of 1E+5000 without going through int.
        return format(exact.to_integral_value(), 'f')
    return format(exact.normalize(), 'f')


def format_bytes(data, mode):
    if mode is Mode.HEX:
        return '0x' + data.hex()
    if mode is Mode.BIN:
        return '0b' + ''.join('{:08b}'.format(b) for b in data)
    if mode is Mode.OCT:
        return '[%s]' % ' '.join(oct(b) for b in data)
    return '[%s]' % ' '.join(str(b) for b in data)


def _body_word(cell, mode):
    if isinstance(cell, Assignment):
        return cell.name + '='
    if isinstance(cell, (Code, Variable)):
        return cell.name
    return format_value(cell, mode)


def format_value(value, mode):
    """
    Returns the text for one cell, or None for cells that render as nothing
    (operators left unreduced, unresolved variables).
    """
    if isinstance(value, Number):
        return format_number(value, mode)
    if isinstance(value, String):
        return format_bytes(value.data, mode)
    if isinstance(value, Assignment):
        return value.name
    if isinstance(value, Code) and value.is_macro:
        return '{%s}' % ' '.join(_body_word(cell, mode) for cell in value.body)
    return None


def _join(parts, vertical):
    if not parts:
        return ''
    separator = '\n' if vertical else ', '
    return '[ ' + separator.join(parts) + ' ]'


def render_stack(stack, mode=Mode.DEC, vertical=False):
    parts = [format_value(value, mode) for value in stack]
    return _join([p for p in parts if p is not None], vertical)


def render_variables(variables, mode=Mode.DEC, vertical=False):
    parts = []
    for name in sorted(variables):
        text = format_value(variables[name], mode)
        if text is not None:
            parts.append('%s:%s' % (name, text))
    return _join(parts, vertical)


def keyword_table(registry):
    """ A rich table of every keyword, grouped by category. """
    table = Table(title="Keywords", show_header=True, header_style="bold")
    table.add_column("Keyword", style="green", min_width=8)
    table.add_column("Kind")
    table.add_column("Description", min_width=30)

    for category in CATEGORIES:
        for entry in registry.entries():
            if entry.category == category:
                table.add_row(entry.name, category, entry.doc)
    return table
