"""
Long-lived calculator state: display mode and toggles, the stack with its
cursor, variables and the keyword registry. A :class:`Session` lives for the
whole interactive run and is never written anywhere.
"""
import decimal
import random
from enum import Enum

from rich.console import Console

from rpncalc.keywords import KeywordRegistry


class Mode(str, Enum):
    """ Numeral base the stack is rendered in. """
    DEC = 'dec'
    HEX = 'hex'
    BIN = 'bin'
    OCT = 'oct'


class Config():
    """ Knobs a host may set before a session starts. """
    def __init__(self, precision=64, max_steps=100000, seed=None,
                 prompt='> ', debug=False):
        self.precision = precision
        self.max_steps = max_steps
        self.seed = seed
        self.prompt = prompt
        self.debug = debug


class Session():
    def __init__(self, config=None, console=None):
        if config is None:
            config = Config()
        if console is None:
            console = Console(stderr=True, highlight=False)
        self.config = config
        self.console = console

        self.mode = Mode.DEC
        self.vertical = False
        self.debug = config.debug
        self.exit = False

        # Cells below ip are reduced; the rest are still pending.
        self.stack = []
        self.ip = 0

        self.variables = {}
        self.declared = set()
        self.registry = KeywordRegistry()

        self.context = decimal.Context(prec=config.precision)
        self.random = random.Random(config.seed)

    def clear_stack(self):
        """ Drops every reduced cell. Cells still pending are kept. """
        del self.stack[:self.ip]
        self.ip = 0

    def clear_variables(self):
        self.variables.clear()
        self.declared.clear()
        self.registry.forget_macros()
