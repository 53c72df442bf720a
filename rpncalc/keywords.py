"""
The keyword registry: every name the classifier should turn into a
:class:`~rpncalc.values.Code` cell rather than a variable reference.

Builtins are registered once when a :class:`~rpncalc.machine.Machine` is
built; user macros are added as they are defined and shadow any builtin of
the same name from then on.
"""
from rpncalc.values import Code

OPERATOR = 'operator'
CONSTANT = 'constant'
MACRO_SITE = 'macro-definition-site'
ASSIGNMENT = 'assignment'
META = 'meta'
MACRO = 'macro'

CATEGORIES = (OPERATOR, CONSTANT, MACRO_SITE, ASSIGNMENT, META, MACRO)


class Builtin:
    """ Resolution of a name to one of the machine's own words. """
    def __init__(self, name, func):
        self.name = name
        self.func = func

    def __repr__(self):
        return 'Builtin(%r)' % self.name


class Macro:
    """ Resolution of a name to a captured, not yet reduced, body. """
    def __init__(self, name, body):
        self.name = name
        self.body = tuple(body)

    def __repr__(self):
        return 'Macro(%r, %r)' % (self.name, list(self.body))


class Entry:
    def __init__(self, name, category, func=None, doc=''):
        self.name = name
        self.category = category
        self.func = func
        self.doc = doc


class KeywordRegistry:
    """
    Maps names to :class:`Entry` objects. Lookups are exact and
    case-sensitive.

    A macro shadowing a builtin keeps the builtin's entry aside, so that
    clearing the user's macros (``clv``, ``cla``) brings the builtin back.
    """
    def __init__(self):
        self._entries = {}
        self._shadowed = {}

    def __contains__(self, name):
        return name in self._entries

    def __iter__(self):
        return iter(sorted(self._entries))

    def __len__(self):
        return len(self._entries)

    def register(self, name, category, func=None, doc=''):
        if category not in CATEGORIES:
            raise ValueError('unknown keyword category: %s' % category)
        entry = Entry(name, category, func, doc)
        current = self._entries.get(name)
        if current is not None and current.category == MACRO and category != MACRO:
            self._shadowed[name] = entry
        else:
            self._entries[name] = entry

    def category(self, name):
        return self._entries[name].category

    def entries(self):
        return [self._entries[name] for name in self]

    def define_macro(self, name):
        current = self._entries.get(name)
        if current is not None and current.category != MACRO:
            self._shadowed[name] = current
        self._entries[name] = Entry(name, MACRO, doc='user macro')

    def macros(self):
        return [name for name in self if self._entries[name].category == MACRO]

    def forget_macros(self):
        for name in self.macros():
            del self._entries[name]
        self._entries.update(self._shadowed)
        self._shadowed = {}

    def resolve(self, name, variables):
        """
        Returns a :class:`Builtin` or :class:`Macro` for `name`, or None
        when the name is not a keyword at all.

        A macro's body lives in the variable table (macros and variables
        share one namespace), so that is consulted for :data:`MACRO`
        entries.
        """
        entry = self._entries.get(name)
        if entry is None:
            return None
        if entry.category == MACRO:
            bound = variables.get(name)
            if isinstance(bound, Code) and bound.is_macro:
                return Macro(name, bound.body)
            return None
        return Builtin(name, entry.func)
