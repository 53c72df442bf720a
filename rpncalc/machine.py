"""
The calculator's evaluator.

Input is classified into cells and appended to one persistent list, the
stack. ``session.ip`` splits it in two: cells below the cursor are reduced
(numbers, byte strings, references nobody could resolve), cells from the
cursor on are still pending. :meth:`Machine.reduce` walks the cursor to the
end of the list, and every word it meets works on the reduced cells just
below it, counted from the top.
"""
import decimal
import inspect
import math
import struct

from rpncalc import formatter
from rpncalc.keywords import (ASSIGNMENT, CONSTANT, MACRO_SITE, META, OPERATOR,
                              Builtin, Macro)
from rpncalc.parser import tokenize
from rpncalc.session import Mode, Session
from rpncalc.values import (Assignment, Code, Number, String, Value, Variable,
                            UINT64_MAX)


class CalcError(Exception): pass
class StackUnderflow(CalcError): pass
class BadOperand(CalcError): pass
class UnknownWord(CalcError): pass
class StepLimitExceeded(CalcError): pass


# Faults that only spoil the cell being reduced.
CELL_FAULTS = (StackUnderflow, BadOperand, ArithmeticError, ValueError,
               struct.error)


def _word(name, category=OPERATOR):
    """
    Creates a decorator that adds a .word member to its given func, which may
    then be inspected for by the :class:`Machine`'s __init__ method. Note that
    if you already have an instance of :class:`Machine`, it's too late to
    decorate and you should call its :meth:`Machine.add_stackmethod`
    instead.
    """
    def decorator(func):
        func.word = name
        func.category = category
        return func
    return decorator


def _number(cell):
    if not isinstance(cell, Number):
        raise BadOperand('not a number: %r' % (cell,))
    return cell


def exact(cell):
    return _number(cell).exact


def integer(cell):
    return _number(cell).integer()


def unsigned(cell):
    return _number(cell).unsigned()


def approx(cell):
    return _number(cell).approx()


def any_cell(cell):
    return cell


def _box(ret):
    if isinstance(ret, Value):
        return ret
    if isinstance(ret, bool):
        return Number.from_bool(ret)
    if isinstance(ret, float):
        return Number.from_float(ret)
    if isinstance(ret, bytes):
        return String(ret)
    return Number(ret)


def _truncated_rem(a, b):
    r = abs(a) % abs(b)
    return -r if a < 0 else r


def _rounded(a, rounding):
    return a.to_integral_value(rounding=rounding)


def _sign(a):
    return (a > 0) - (a < 0)


def _factorial(n):
    return math.prod(range(1, n + 1))


def _shift_count(n):
    return min(max(n, 0), UINT64_MAX)


def _network_to_host(cell):
    if isinstance(cell, String):
        return int.from_bytes(cell.data, 'big', signed=True)
    return _number(cell)


class Machine:
    """
    A stack machine for one calculator session. The words themselves are
    its ``@_word`` methods plus whatever :meth:`add_stackmethod` was handed
    in ``__init__``; all state lives in :attr:`session`.
    """
    def __init__(self, session=None, on_help=None):
        self.session = session if session is not None else Session()
        self.on_help = on_help
        self.diagnostics = []

        # Add decorated member words
        for name, method in inspect.getmembers(self, inspect.ismethod):
            if hasattr(method, 'word'):
                self.session.registry.register(
                    method.word, method.category, method,
                    inspect.getdoc(method) or '')

        # Arithmetic
        self.add_stackmethod('+', lambda b, a: a + b, doc='Add')
        self.add_stackmethod('-', lambda b, a: a - b, doc='Subtract')
        self.add_stackmethod('*', lambda b, a: a * b, doc='Multiply')
        self.add_stackmethod('/', lambda b, a: a / b, doc='Divide')
        self.add_stackmethod('%', lambda b, a: _truncated_rem(a, b), integer,
                             doc='Remainder of the integer parts')
        self.add_stackmethod('++', lambda a: a + 1, doc='Increment')
        self.add_stackmethod('--', lambda a: a - 1, doc='Decrement')
        self.add_stackmethod('!', lambda a: -a, doc='Negate')

        # Bitwise
        self.add_stackmethod('&', lambda b, a: a & b, integer, doc='Bitwise AND')
        self.add_stackmethod('|', lambda b, a: a | b, integer, doc='Bitwise OR')
        self.add_stackmethod('^', lambda b, a: a ^ b, integer, doc='Bitwise XOR')
        self.add_stackmethod('~', lambda a: ~a, integer, doc='Bitwise NOT')
        self.add_stackmethod('<<', lambda b, a: a << _shift_count(b), integer,
                             doc='Shift left')
        self.add_stackmethod('>>', lambda b, a: a >> _shift_count(b), integer,
                             doc='Shift right')

        # Boolean
        self.add_stackmethod('&&', lambda b, a: bool(a and b), unsigned,
                             doc='Boolean AND')
        self.add_stackmethod('||', lambda b, a: bool(a or b), unsigned,
                             doc='Boolean OR')
        self.add_stackmethod('^^', lambda b, a: bool(a) != bool(b), unsigned,
                             doc='Boolean XOR')

        # Comparison
        self.add_stackmethod('!=', lambda b, a: a != b, doc='Not equal to')
        self.add_stackmethod('<', lambda b, a: a < b, doc='Less than')
        self.add_stackmethod('<=', lambda b, a: a <= b, doc='Less than or equal to')
        self.add_stackmethod('==', lambda b, a: a == b, doc='Equal to')
        self.add_stackmethod('>', lambda b, a: a > b, doc='Greater than')
        self.add_stackmethod('>=', lambda b, a: a >= b,
                             doc='Greater than or equal to')

        # Trigonometry, logarithms and powers go through floats.
        for word, func, doc in (('acos', math.acos, 'Arc cosine'),
                                ('asin', math.asin, 'Arc sine'),
                                ('atan', math.atan, 'Arc tangent'),
                                ('cos', math.cos, 'Cosine'),
                                ('cosh', math.cosh, 'Hyperbolic cosine'),
                                ('sin', math.sin, 'Sine'),
                                ('sinh', math.sinh, 'Hyperbolic sine'),
                                ('tanh', math.tanh, 'Hyperbolic tangent'),
                                ('sqrt', math.sqrt, 'Square root'),
                                ('ln', math.log, 'Natural logarithm'),
                                ('log', math.log10, 'Base 10 logarithm')):
            self.add_stackmethod(word, lambda a, func=func: func(a), approx,
                                 doc=doc)
        for word in ('pow', '**', 'exp'):
            self.add_stackmethod(word, lambda b, a: math.pow(a, b), approx,
                                 doc='Raise a number to a power')
        self.add_stackmethod('fact', _factorial, integer, doc='Factorial')

        # Numeric utilities
        self.add_stackmethod(
            'ceil', lambda a: _rounded(a, decimal.ROUND_CEILING), doc='Ceiling')
        self.add_stackmethod(
            'floor', lambda a: _rounded(a, decimal.ROUND_FLOOR), doc='Floor')
        self.add_stackmethod(
            'round', lambda a: _rounded(a, decimal.ROUND_HALF_UP), doc='Round')
        self.add_stackmethod(
            'ip', lambda a: _rounded(a, decimal.ROUND_DOWN), doc='Integer part')
        self.add_stackmethod(
            'fp', lambda a: a - _rounded(a, decimal.ROUND_DOWN),
            doc='Fractional part')
        self.add_stackmethod('sign', _sign, doc='Push -1, 0 or 1 by sign')
        self.add_stackmethod('abs', lambda a: abs(a), doc='Absolute value')
        self.add_stackmethod('max', lambda b, a: max(a, b), doc='Maximum')
        self.add_stackmethod('min', lambda b, a: min(a, b), doc='Minimum')

        # Byte order
        self.add_stackmethod('hnl', lambda a: struct.pack('>q', a), integer,
                             doc='Host to network long')
        self.add_stackmethod('hns', lambda a: struct.pack('>i', a), integer,
                             doc='Host to network short')
        self.add_stackmethod('nhl', _network_to_host, any_cell,
                             doc='Network to host long')
        self.add_stackmethod('nhs', _network_to_host, any_cell,
                             doc='Network to host short')

        # Constants
        self.add_stackmethod('e', lambda: math.e, category=CONSTANT, doc='Push e')
        self.add_stackmethod('pi', lambda: math.pi, category=CONSTANT,
                             doc='Push pi')
        self.add_stackmethod('rand', lambda: self.session.random.random(),
                             category=CONSTANT, doc='Push a random number in [0, 1)')

    @property
    def stack(self):
        return self.session.stack

    @property
    def variables(self):
        return self.session.variables

    @property
    def registry(self):
        return self.session.registry

    # -- diagnostics ------------------------------------------------------

    def warn(self, message):
        self.diagnostics.append(message)
        self.session.console.print(message, style='yellow', markup=False)

    def _trace(self, message):
        if self.session.debug:
            self.session.console.print(message, style='dim', markup=False)

    # -- stack primitives, all relative to the cursor ----------------------

    def _need(self, n):
        if self.session.ip < n:
            raise StackUnderflow('stack underflow')

    def _peek(self, depth=0):
        self._need(depth + 1)
        return self.stack[self.session.ip - 1 - depth]

    def _pop(self):
        self._need(1)
        self.session.ip -= 1
        return self.stack.pop(self.session.ip)

    def _drop(self, n):
        self._need(n)
        del self.stack[self.session.ip - n:self.session.ip]
        self.session.ip -= n

    def _push(self, val):
        self.stack.insert(self.session.ip, val)
        self.session.ip += 1

    def _push_all(self, ls):
        for val in ls:
            self._push(val)

    def _peek_count(self):
        """ Reads the count on top of the stack without consuming it. """
        n = integer(self._peek())
        if n < 0:
            raise BadOperand('negative count: %d' % n)
        return n

    def _peek_pending(self, what):
        if self.session.ip >= len(self.stack):
            raise BadOperand('%s needs something after it' % what)
        return self.stack[self.session.ip]

    def _splice_pending(self, cells):
        ip = self.session.ip
        self.stack[ip:ip] = cells

    # -- words ------------------------------------------------------------

    def add_stackmethod(self, word, func, narrow=exact, category=OPERATOR,
                        doc=''):
        """
        Turns a given function `func` into a stack-consumer.

        The function will get its arguments from the stack automatically, in
        the order they pop off (so from the stack [1, 2] the call to a
        two-argument function will be func(2, 1)), each one passed through
        `narrow` first. The function's return value goes back on the stack
        as a single cell.

        Nothing is popped until `func` has returned, so a function that
        raises leaves its operands where they were.
        """
        num_args = func.__code__.co_argcount - len(func.__defaults__ or ())
        def stack_helper():
            self._need(num_args)
            args = [narrow(self._peek(depth)) for depth in range(num_args)]
            ret = _box(func(*args))
            self._drop(num_args)
            self._push(ret)
        self.session.registry.register(word, category, stack_helper, doc)

    @_word('=', ASSIGNMENT)
    def _bare_assignment(self):
        """ Assign a variable, e.g. '1024 x=' """
        raise BadOperand("assignment needs a name, e.g. '1024 x='")

    @_word('macro', MACRO_SITE)
    def _define_macro(self):
        """ Define a macro, e.g. 'macro kib 1024 *' """
        name_cell = self._peek_pending('macro')
        if isinstance(name_cell, Code):
            valid = not name_cell.is_macro
        else:
            valid = isinstance(name_cell, Variable)
        if not valid:
            raise BadOperand('not a macro name: %r' % (name_cell,))
        ip = self.session.ip
        body = self.stack[ip + 1:]
        del self.stack[ip:]

        name = name_cell.name
        self.registry.define_macro(name)
        self.variables[name] = Code(name, body)
        self._trace('Defining macro: %s as %r' % (name, body))

    @_word('cla')
    def _clear_all(self):
        """ Clear the stack and variables """
        self.session.clear_stack()
        self.session.clear_variables()

    @_word('clr')
    def _clear_stack(self):
        """ Clear the stack """
        self.session.clear_stack()

    @_word('clv')
    def _clear_variables(self):
        """ Clear the variables """
        self.session.clear_variables()

    @_word('hex')
    def _hex(self):
        """ Switch display mode to hexadecimal """
        self.session.mode = Mode.HEX

    @_word('dec')
    def _dec(self):
        """ Switch display mode to decimal (default) """
        self.session.mode = Mode.DEC

    @_word('bin')
    def _bin(self):
        """ Switch display mode to binary """
        self.session.mode = Mode.BIN

    @_word('oct')
    def _oct(self):
        """ Switch display mode to octal """
        self.session.mode = Mode.OCT

    @_word('depth')
    def _depth(self):
        """ Push the number of reduced values below this word """
        self._push(Number(self.session.ip))

    @_word('drop')
    def _drop_one(self):
        """ Drop the top item """
        self._drop(1)

    @_word('dropn')
    def _drop_n(self):
        """ Drop n items, e.g. '1 2 3 2 dropn' """
        n = self._peek_count()
        self._drop(n + 1)

    @_word('dup')
    def _dup(self):
        """ Duplicate the top item """
        self._push(self._peek())

    @_word('dupn')
    def _dup_n(self):
        """ Duplicate the top n items in order """
        n = self._peek_count()
        self._need(n + 1)
        ip = self.session.ip
        copies = self.stack[ip - 1 - n:ip - 1]
        self._drop(1)
        self._push_all(copies)

    @_word('pick')
    def _pick(self):
        """ Copy the item at absolute index n (0 is the bottom) """
        n = self._peek_count()
        if n >= self.session.ip - 1:
            raise BadOperand('pick index out of range: %d' % n)
        self._drop(1)
        self._push(self.stack[n])

    def _rotate(self, n):
        self._drop(1)
        ip = self.session.ip
        if ip == 0 or n % ip == 0:
            return
        n %= ip
        self.stack[:ip] = self.stack[ip - n:ip] + self.stack[:ip - n]

    @_word('roll')
    def _roll(self):
        """ Roll the stack upwards by n: the top n items go to the bottom """
        self._rotate(integer(self._peek()))

    @_word('rolld')
    def _roll_down(self):
        """ Roll the stack downwards by n """
        self._rotate(-integer(self._peek()))

    @_word('repeat')
    def _repeat(self):
        """ Repeat the next item n times, e.g. '3 repeat +' """
        n = self._peek_count()
        template = self._peek_pending('repeat')
        self._drop(1)
        del self.stack[self.session.ip]
        self._splice_pending([template] * n)

    @_word('swap')
    def _swap(self):
        """ Swap the top 2 items """
        self._need(2)
        b = self._pop()
        a = self._pop()
        self._push_all((b, a))

    @_word('stack', META)
    def _toggle_vertical(self):
        """ Toggle the stack display between horizontal and vertical """
        self.session.vertical = not self.session.vertical

    @_word('debug', META)
    def _toggle_debug(self):
        """ Toggle debug tracing """
        self.session.debug = not self.session.debug
        self.session.console.print('Toggling debug mode', style='dim')

    @_word('vars', META)
    def _show_variables(self):
        """ Print the variables """
        self.session.console.print(
            formatter.render_variables(self.variables, self.session.mode,
                                       self.session.vertical) or 'no variables',
            markup=False)

    @_word('help', META)
    def _help(self):
        """ Print the help message """
        if self.on_help is not None:
            self.on_help()
        else:
            self.session.console.print(formatter.keyword_table(self.registry))

    @_word('exit', META)
    def _exit(self):
        """ Exit the calculator """
        self.session.exit = True

    # -- evaluation -------------------------------------------------------

    def eval(self, text=''):
        """
        Reads one line and reduces it. Returns the rendered stack; when the
        line failed as a whole, the failure is appended after ' ? '.
        """
        self.diagnostics = []
        try:
            self.interpret_line(text)
        except CalcError as e:
            return self.render() + ' ? ' + str(e)
        return self.render()

    def interpret_line(self, text):
        """
        Like :meth:`eval`, but raises :exc:`UnknownWord` or
        :exc:`StepLimitExceeded` instead of returning them. Either way the
        rest of the failed line has been thrown away.
        """
        cells, assigned = tokenize(text, self.registry)
        self._trace('Parsed: %r' % cells)
        self.session.declared.update(assigned)
        self.stack.extend(cells)
        self.reduce()

    def render(self):
        return formatter.render_stack(self.stack, self.session.mode,
                                      self.session.vertical)

    def reduce(self):
        session = self.session
        steps = 0
        with decimal.localcontext(session.context):
            while session.ip < len(self.stack):
                steps += 1
                if steps > session.config.max_steps:
                    del self.stack[session.ip:]
                    raise StepLimitExceeded(
                        'gave up after %d steps' % session.config.max_steps)

                cell = self.stack[session.ip]
                if session.debug:
                    self._trace('Evaluating: %r with variables: %r'
                                % (cell, self.variables))
                try:
                    self.reduce_one(cell)
                except UnknownWord:
                    del self.stack[session.ip:]
                    raise
                except CELL_FAULTS as e:
                    self.warn('Recovered in %r: %s' % (cell, e))
                if session.debug:
                    self._trace('Evaluated as: %r' % self.stack)

    def reduce_one(self, cell):
        """ Reduces the pending cell under the cursor by one step. """
        session = self.session
        if isinstance(cell, (Number, String)):
            session.ip += 1
        elif isinstance(cell, Variable):
            self.reduce_variable(cell)
        elif isinstance(cell, Assignment):
            del self.stack[session.ip]
            self.variables[cell.name] = self._pop()
        elif isinstance(cell, Code):
            self.reduce_code(cell)
        else:
            raise BadOperand('unknown cell: %r' % (cell,))

    def reduce_variable(self, cell):
        bound = self.variables.get(cell.name)
        if bound is None:
            self.session.ip += 1
            if cell.name in self.session.declared:
                self.warn('The variable %s is used before it is assigned'
                          % cell.name)
            else:
                self.warn("The variable %s doesn't exist" % cell.name)
            return
        # Re-examined on the next step, so a macro bound here gets expanded.
        self.stack[self.session.ip] = bound

    def reduce_code(self, cell):
        del self.stack[self.session.ip]
        if cell.is_macro:
            self._splice_pending(cell.body)
            return

        target = self.registry.resolve(cell.name, self.variables)
        if isinstance(target, Builtin):
            target.func()
        elif isinstance(target, Macro):
            self._trace('Encountered user-defined macro %s -> %r'
                        % (target.name, list(target.body)))
            self._splice_pending(target.body)
        elif cell.name in self.variables:
            self._splice_pending([self.variables[cell.name]])
        else:
            raise UnknownWord('undefined word: %s' % cell.name)
