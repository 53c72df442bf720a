"""
Turns a line of input into stack cells.

The :class:`Parser` only knows how to chop text into whitespace-separated
words; :func:`classify` decides what each word is.
"""
import decimal
import re

from rpncalc.values import Assignment, Code, Number, Variable

BASE_PREFIXES = {'0x': 16, '0d': 10, '0o': 8, '0b': 2}

_DECIMAL_LITERAL = re.compile(r'[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
_LOOKS_NUMERIC = re.compile(r'[+-]?\.?\d')


class Parser:
    """
    Very simple parser -- not much more than a few primitives useful for
    consuming an input string one word at a time.

    The parser is stateful, in as much as each instance thereof is given an
    initial string to operate on, and calls to parse_whatever will advance
    the parser's position within that string, if necessary (thus, the next
    call will start from where the previous left off).

    The parse_* methods raise :exc:`StopIteration` when the string has been
    completely consumed; at that point, the current :class:`Parser` instance
    may be thrown away and a fresh one made for the next line.
    """
    def __init__(self, text):
        self.text = text
        self.pos = 0

    @property
    def is_finished(self):
        return self.pos >= len(self.text)

    def _consume(self, pattern):
        """
        Consume (advancing self.pos) some characters based on a regex. The
        regex is applied to a slice of self.text starting from self.pos and
        ending at the end of the string.

        Note that matches are only ever expected at the start of the string
        slice.
        """
        if self.is_finished:
            raise StopIteration()
        found = re.match(pattern, self.text[self.pos:])
        if found is None:
            return None
        self.pos += found.end()
        return found.group()

    def parse_whitespace(self):
        return self._consume(r'\s*')

    def parse_word(self):
        return self._consume(r'\S+')

    def next_word(self):
        self.parse_whitespace()
        return self.parse_word()

    def words(self):
        ret = []
        while True:
            try:
                ret.append(self.next_word())
            except StopIteration:
                return ret


def get_base(word):
    """
    Returns the base a numeric `word` is written in, or 0 when it is not
    written as a number at all.

    A two-character prefix (``0x``, ``0d``, ``0o``, ``0b``, after an
    optional sign) only counts when at least one digit follows it.
    """
    digits = word.lstrip('+-')
    prefix = digits[:2].lower()
    if prefix in BASE_PREFIXES and len(digits) > 2:
        return BASE_PREFIXES[prefix]
    if _LOOKS_NUMERIC.match(word):
        return 10
    return 0


def parse_number(word, base):
    """
    Returns a :class:`Number`, or None if `word` cannot be read in `base`.
    """
    negative = word.startswith('-')
    digits = word.lstrip('+-')
    if digits[:2].lower() in BASE_PREFIXES and len(digits) > 2:
        digits = digits[2:]
        if base == 10:
            found = _DECIMAL_LITERAL.match(digits)
            value = decimal.Decimal(digits) if found else None
        else:
            try:
                value = decimal.Decimal(int(digits, base))
            except ValueError:
                value = None
        if value is None:
            return None
        return Number(-value if negative else value)

    if _DECIMAL_LITERAL.match(word) is None:
        return None
    return Number(decimal.Decimal(word))


def assignment_target(word):
    """ ``x=`` names the target ``x``; anything else gives None. """
    if len(word) > 1 and word.endswith('='):
        name = word[:-1]
        if name.isidentifier():
            return name
    return None


def classify_one(word, registry):
    """
    Returns the cell for `word`, or None for a word that looks like a number
    but isn't one. Such words are dropped without complaint.
    """
    base = get_base(word)
    if base:
        return parse_number(word, base)

    name = assignment_target(word)
    if name is not None:
        return Assignment(name)
    if word in registry:
        return Code(word)
    return Variable(word)


def classify(words, registry):
    """
    Classifies every word of a line. Returns the cells, in order, and the
    names the line assigns to.
    """
    cells = []
    assigned = []
    for word in words:
        cell = classify_one(word, registry)
        if cell is None:
            continue
        if isinstance(cell, Assignment):
            assigned.append(cell.name)
        cells.append(cell)
    return cells, assigned


def tokenize(text, registry):
    return classify(Parser(text).words(), registry)
