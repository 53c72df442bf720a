"""
Implements a Reverse Polish Notation calculator, i.e., an object capable of
keeping a stack of numbers between lines of input and reducing every operator
it is given against that stack, until explicitly told otherwise.

Usage should be as simple as:
    >>> import rpncalc
    >>> rpncalc.Machine().eval("3 4 +")
    '[ 7 ]'

The stack, the variables, any macros and the display mode all persist from
one call to the next:
    >>> m = rpncalc.Machine()
    >>> m.eval("macro sq dup *")
    ''
    >>> m.eval("5 sq hex")
    '[ 0x19 ]'

A line that cannot be finished (say, it names a word nobody defined) returns
whatever stack it left behind, followed by ' ? ' and what went wrong.
"""
from rpncalc.machine import (BadOperand, CalcError, Machine, StackUnderflow,
                             StepLimitExceeded, UnknownWord)
from rpncalc.parser import Parser, classify, tokenize
from rpncalc.session import Config, Mode, Session
from rpncalc.values import (FALSE, TRUE, Assignment, Code, Number, String,
                            Variable)
