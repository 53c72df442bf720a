"""
Stack cells. Every cell on the calculator's stack is one of the classes in
this module, and they are all immutable: operators build new cells rather
than editing old ones, so a cell may safely sit in the stack, the variable
table and a macro body at the same time.

The ``repr`` of each cell is its debug rendering (``7:Number``,
``x:Variable``...), which is what the trace output prints.
"""
import decimal

NUMBER = 'NUMBER'
VARIABLE = 'VARIABLE'
STRING = 'STRING'
ASSIGNMENT = 'ASSIGNMENT'
CODE = 'CODE'

UINT64_MAX = 2 ** 64 - 1


class Value:
    kind = None

    def __eq__(self, other):
        return type(self) is type(other) and self._key() == other._key()

    def __hash__(self):
        return hash((self.kind, self._key()))

    def _key(self):
        raise NotImplementedError


class Number(Value):
    """
    An exact decimal number.

    Arithmetic works on :attr:`exact`. Anything that needs a machine float
    (the trig and log words, ``pow``) has to ask for one explicitly through
    :meth:`approx`, and boxes its answer back up with :meth:`from_float`;
    precision lost there stays lost.
    """
    kind = NUMBER

    def __init__(self, exact):
        if not isinstance(exact, decimal.Decimal):
            exact = decimal.Decimal(exact)
        self.exact = exact

    @classmethod
    def from_float(cls, approximation):
        # repr gives the shortest string that round-trips, so pi stays pi
        # rather than its full binary expansion. 'inf' and 'nan' read back too.
        return cls(decimal.Decimal(repr(approximation)))

    @classmethod
    def from_bool(cls, flag):
        return TRUE if flag else FALSE

    def approx(self):
        """ Lossy narrowing to a 64-bit float. """
        return float(self.exact)

    def integer(self):
        """ Truncates toward zero. """
        if not self.exact.is_finite():
            raise ValueError('cannot truncate %s' % self.exact)
        return int(self.exact)

    def unsigned(self):
        """ Truncates, then clamps into [0, 2**64 - 1]. """
        return min(max(self.integer(), 0), UINT64_MAX)

    def _key(self):
        return self.exact

    def __repr__(self):
        return '%s:Number' % self.exact


TRUE = Number(1)
FALSE = Number(0)


class Variable(Value):
    """ A name to be looked up in the variable table when reduced. """
    kind = VARIABLE

    def __init__(self, name):
        self.name = name

    def _key(self):
        return self.name

    def __repr__(self):
        return '%s:Variable' % self.name


class String(Value):
    """ Raw bytes, as produced by the byte-order words (``hnl``, ``hns``). """
    kind = STRING

    def __init__(self, data):
        self.data = bytes(data)

    def _key(self):
        return self.data

    def __repr__(self):
        return '%s:String' % self.data.hex()


class Assignment(Value):
    """ ``name=``: binds whatever sits just below it to ``name``. """
    kind = ASSIGNMENT

    def __init__(self, name):
        self.name = name

    def _key(self):
        return self.name

    def __repr__(self):
        return '%s:Assignment' % self.name


class Code(Value):
    """
    An operator invocation. With a ``body`` it is a macro: reducing it
    splices the body into the stack in its place.
    """
    kind = CODE

    def __init__(self, name, body=None):
        self.name = name
        self.body = tuple(body) if body is not None else None

    @property
    def is_macro(self):
        return self.body is not None

    def _key(self):
        return self.name, self.body

    def __repr__(self):
        if self.body:
            return '%s:Code%r' % (self.name, list(self.body))
        return '%s:Code' % self.name
