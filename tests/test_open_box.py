"""
Tests the rpncalc.Machine as an open box, i.e., with some knowledge of its
internals and the ability to dig into them.
"""
import decimal

import pytest
import rpncalc
from rpncalc import Code, Config, Mode, Number, Session, String, Variable
from rpncalc.keywords import MACRO


def numbers(m):
    return [cell.exact for cell in m.stack]


class TestOpenBoxCalculator():
    def test_blank_line(self):
        m = rpncalc.Machine()
        ret = m.eval("")

        assert ret == ''
        assert not m.stack

    def test_number_to_stack(self):
        m = rpncalc.Machine()
        ret = m.eval("42")

        assert ret == '[ 42 ]'
        assert m.stack == [Number(42)]
        assert m.session.ip == 1

    def test_negative_number(self):
        m = rpncalc.Machine()
        m.eval('-12')

        assert numbers(m) == [-12]

    def test_two_numbers(self):
        m = rpncalc.Machine()
        ret = m.eval('1 2')

        assert ret == '[ 1, 2 ]'
        assert numbers(m) == [1, 2]

    def test_simple_math(self):
        for oper, expected in {'+': 24, '-': 16, '*': 80, '/': 5}.items():
            m = rpncalc.Machine()
            m.eval('20 4 ' + oper)

            assert numbers(m) == [expected]

    def test_add(self):
        assert rpncalc.Machine().eval('3 4 +') == '[ 7 ]'

    def test_decimal_is_exact(self):
        m = rpncalc.Machine()

        assert m.eval('0.1 0.2 +') == '[ 0.3 ]'

    def test_division(self):
        m = rpncalc.Machine()
        m.eval('10 4 /')
        assert numbers(m) == [decimal.Decimal('2.5')]

        m = rpncalc.Machine()
        ret = m.eval('1 3 /')
        assert ret.startswith('[ 0.3333333333')

    def test_precision_is_configurable(self):
        m = rpncalc.Machine(Session(config=Config(precision=5)))
        m.eval('1 3 /')

        assert numbers(m) == [decimal.Decimal('0.33333')]

    def test_remainder_truncates(self):
        m = rpncalc.Machine()
        m.eval('7 2 % -7 2 % 7.9 2 %')

        assert numbers(m) == [1, -1, 1]

    def test_unary(self):
        m = rpncalc.Machine()
        m.eval('5 ++ 5 -- 5 ! 5 ~')

        assert numbers(m) == [6, 4, -5, -6]

    def test_bitwise(self):
        m = rpncalc.Machine()
        m.eval('12 10 & 12 10 | 12 10 ^ 1 4 << 256 4 >>')

        assert numbers(m) == [8, 14, 6, 16, 16]

    def test_comparisons(self):
        m = rpncalc.Machine()
        m.eval('3 4 < 4 3 < 3 3 == 3 3 != 3 3 <= 4 3 > 3 4 >=')

        assert m.stack == [rpncalc.TRUE, rpncalc.FALSE, rpncalc.TRUE,
                           rpncalc.FALSE, rpncalc.TRUE, rpncalc.TRUE,
                           rpncalc.FALSE]

    def test_boolean(self):
        m = rpncalc.Machine()
        m.eval('1 0 && 2 3 && 1 0 || 0 0 || 1 1 ^^ 0 1 ^^')

        assert numbers(m) == [0, 1, 1, 0, 0, 1]

    def test_boolean_negatives_are_false(self):
        m = rpncalc.Machine()
        m.eval('-1 1 &&')

        assert numbers(m) == [0]

    def test_transcendental(self):
        m = rpncalc.Machine()
        m.eval('0 cos 0 sin 100 log 1 ln 2 3 pow 2 10 ** 2 sqrt')

        assert numbers(m)[:6] == [1, 0, 2, 0, 8, 1024]
        assert m.stack[6] == Number('1.4142135623730951')

    def test_exp_is_power(self):
        m = rpncalc.Machine()
        m.eval('2 8 exp')

        assert numbers(m) == [256]

    def test_factorial_is_exact(self):
        m = rpncalc.Machine()
        ret = m.eval('25 fact')

        assert ret == '[ 15511210043330985984000000 ]'

        m = rpncalc.Machine()
        m.eval('0 fact')
        assert numbers(m) == [1]

    def test_huge_integers_render(self):
        for line in ('2000 fact', '1e5000'):
            ret = rpncalc.Machine().eval(line)

            assert ret.startswith('[ ') and ret.endswith(' ]')
            assert len(ret) > 4300

        assert rpncalc.Machine().eval('1e5000') == '[ 1' + '0' * 5000 + ' ]'

    def test_overflowing_float_result_renders(self):
        assert rpncalc.Machine().eval('1e400 sqrt') == '[ Infinity ]'

    def test_constants(self):
        m = rpncalc.Machine()
        ret = m.eval('pi e')

        assert ret == '[ 3.141592653589793, 2.718281828459045 ]'

    def test_rand(self):
        m = rpncalc.Machine(Session(config=Config(seed=7)))
        m.eval('rand rand')
        first = numbers(m)

        m = rpncalc.Machine(Session(config=Config(seed=7)))
        m.eval('rand rand')

        assert numbers(m) == first
        assert all(0 <= x < 1 for x in first)

    def test_numeric_utilities(self):
        m = rpncalc.Machine()
        m.eval('2.5 ceil 2.5 floor 2.5 round -2.5 ip -2.5 fp -3 sign -3 abs 2 7 max 2 7 min')

        assert numbers(m) == [3, 2, 3, -2, decimal.Decimal('-0.5'), -1, 3, 7, 2]

    def test_byte_order(self):
        m = rpncalc.Machine()
        m.eval('1 hnl 258 hns')

        assert m.stack == [String(b'\x00' * 7 + b'\x01'),
                           String(b'\x00\x00\x01\x02')]
        assert m.eval('hex') == '[ 0x0000000000000001, 0x00000102 ]'

        m.eval('nhs swap nhl')
        assert numbers(m) == [258, 1]

    def test_prefixed_input(self):
        m = rpncalc.Machine()
        m.eval('0x10 0b101 0o17 0d12')

        assert numbers(m) == [16, 5, 15, 12]

    def test_bad_number_is_dropped(self):
        m = rpncalc.Machine()
        m.eval('1 12abc 2')

        assert numbers(m) == [1, 2]
        assert not m.diagnostics

    def test_multi_eval(self):
        m = rpncalc.Machine()
        m.eval('12 34')

        assert numbers(m) == [12, 34]

        m.eval('+')
        assert numbers(m) == [46]
        assert m.session.ip == 1

    def test_multiline_eval(self):
        m = rpncalc.Machine()
        m.eval('1 2\n+')

        assert numbers(m) == [3]


class TestDisplay():
    def test_modes(self):
        m = rpncalc.Machine()

        assert m.eval('255 hex') == '[ 0xff ]'
        assert m.eval('bin') == '[ 0b11111111 ]'
        assert m.eval('oct') == '[ 0o377 ]'
        assert m.eval('dec') == '[ 255 ]'

    def test_mode_switch_is_idempotent(self):
        m = rpncalc.Machine()
        ret = m.eval('5 hex hex')

        assert ret == '[ 0x5 ]'
        assert m.session.mode is Mode.HEX
        assert m.stack == [Number(5)]

    def test_hex_truncates(self):
        m = rpncalc.Machine()

        assert m.eval('7.9 -7.9 hex') == '[ 0x7, -0x7 ]'

    def test_vertical(self):
        m = rpncalc.Machine()
        ret = m.eval('1 2 stack')

        assert ret == '[ 1\n2 ]'
        assert m.session.vertical

        assert m.eval('stack') == '[ 1, 2 ]'


class TestStackWords():
    def test_dup(self):
        m = rpncalc.Machine()
        ret = m.eval('5 dup')

        assert ret == '[ 5, 5 ]'

    def test_drop(self):
        m = rpncalc.Machine()
        m.eval('1 2 drop')

        assert numbers(m) == [1]

    def test_dropn(self):
        m = rpncalc.Machine()
        m.eval('1 2 3 2 dropn')

        assert numbers(m) == [1]

    def test_dupn(self):
        m = rpncalc.Machine()
        m.eval('1 2 3 2 dupn')

        assert numbers(m) == [1, 2, 3, 2, 3]

    def test_pick_is_absolute(self):
        m = rpncalc.Machine()
        m.eval('10 20 30 0 pick')

        assert numbers(m) == [10, 20, 30, 10]

        m.eval('2 pick')
        assert numbers(m) == [10, 20, 30, 10, 30]

    def test_pick_out_of_range(self):
        m = rpncalc.Machine()
        m.eval('10 20 5 pick')

        assert numbers(m) == [10, 20, 5]
        assert 'pick index out of range: 5' in m.diagnostics[0]

    def test_roll(self):
        m = rpncalc.Machine()
        m.eval('1 2 3 4 1 roll')

        assert numbers(m) == [4, 1, 2, 3]

        m = rpncalc.Machine()
        m.eval('1 2 3 4 6 roll')
        assert numbers(m) == [3, 4, 1, 2]

    def test_rolld(self):
        m = rpncalc.Machine()
        m.eval('1 2 3 4 1 rolld')

        assert numbers(m) == [2, 3, 4, 1]

    def test_roll_undoes_rolld(self):
        m = rpncalc.Machine()
        m.eval('1 2 3 4 5 3 roll 3 rolld')

        assert numbers(m) == [1, 2, 3, 4, 5]

    def test_repeat(self):
        m = rpncalc.Machine()
        m.eval('1 2 3 2 repeat +')

        assert numbers(m) == [6]

        m = rpncalc.Machine()
        m.eval('3 repeat 7')
        assert numbers(m) == [7, 7, 7]

    def test_repeat_needs_something(self):
        m = rpncalc.Machine()
        m.eval('3 repeat')

        assert numbers(m) == [3]
        assert m.diagnostics

    def test_swap(self):
        m = rpncalc.Machine()
        m.eval('5 12 swap')

        assert numbers(m) == [12, 5]

    def test_depth_reports_cursor(self):
        """ depth counts the reduced values below it, not the whole line. """
        m = rpncalc.Machine()
        m.eval('1 2 depth 3 4')

        assert numbers(m) == [1, 2, 2, 3, 4]

        m.eval('depth')
        assert numbers(m)[-1] == 5

    def test_two_operand_underflow(self):
        for oper in ['+', '-', '*', '/', '%', 'swap', '<', '&&', 'pow']:
            m = rpncalc.Machine()
            ret = m.eval('1 ' + oper)

            assert ret == '[ 1 ]'
            assert numbers(m) == [1]
            assert 'stack underflow' in m.diagnostics[0]

    def test_underflow_continues(self):
        m = rpncalc.Machine()
        ret = m.eval('drop 1 2 +')

        assert ret == '[ 3 ]'
        assert len(m.diagnostics) == 1

    def test_division_by_zero(self):
        m = rpncalc.Machine()
        m.eval('1 0 / 5')

        assert numbers(m) == [1, 0, 5]
        assert m.diagnostics

    def test_domain_error(self):
        m = rpncalc.Machine()
        m.eval('2 acos')

        assert numbers(m) == [2]
        assert m.diagnostics


class TestClearing():
    def test_cla(self):
        m = rpncalc.Machine()
        m.eval('1 x= macro sq dup *')
        m.eval('1 2 3 cla')

        assert m.eval('') == ''
        assert not m.stack
        assert not m.variables
        assert m.session.ip == 0
        assert 'sq' not in m.registry

    def test_clr(self):
        m = rpncalc.Machine()
        m.eval('1 x=')
        m.eval('1 2 clr')

        assert not m.stack
        assert m.session.ip == 0
        assert 'x' in m.variables

    def test_clr_keeps_the_rest_of_the_line(self):
        m = rpncalc.Machine()
        m.eval('1 2 clr 3')

        assert numbers(m) == [3]

    def test_clv(self):
        m = rpncalc.Machine()
        m.eval('1 x= 2')
        m.eval('clv')

        assert numbers(m) == [2]
        assert not m.variables


class TestVariables():
    def test_round_trip(self):
        m = rpncalc.Machine()
        m.eval('1024 x=')

        assert m.eval('') == ''
        assert m.variables['x'] == Number(1024)

        assert m.eval('x') == '[ 1024 ]'

    def test_assignment_consumes_operand(self):
        m = rpncalc.Machine()
        m.eval('1 2 y= y y +')

        assert numbers(m) == [1, 4]

    def test_unbound_variable(self):
        m = rpncalc.Machine()
        ret = m.eval('nope 1')

        assert ret == '[ 1 ]'
        assert m.stack == [Variable('nope'), Number(1)]
        assert "nope doesn't exist" in m.diagnostics[0]

    def test_used_before_assigned(self):
        m = rpncalc.Machine()
        m.eval('x 5 x=')

        assert 'used before it is assigned' in m.diagnostics[0]
        assert m.variables['x'] == Number(5)

    def test_bare_assignment(self):
        m = rpncalc.Machine()
        m.eval('5 =')

        assert numbers(m) == [5]
        assert 'needs a name' in m.diagnostics[0]

    def test_assignment_underflow(self):
        m = rpncalc.Machine()
        m.eval('x=')

        assert not m.stack
        assert 'x' not in m.variables
        assert 'stack underflow' in m.diagnostics[0]


class TestMacros():
    def test_macro(self):
        m = rpncalc.Machine()
        ret = m.eval('macro sq dup *')

        assert ret == ''
        assert m.registry.category('sq') == MACRO
        assert m.variables['sq'] == Code('sq', [Code('dup'), Code('*')])

        assert m.eval('5 sq') == '[ 25 ]'

    def test_macro_captures_rest_of_line(self):
        m = rpncalc.Machine()
        m.eval('1 2 macro kib 1024 *')

        assert numbers(m) == [1, 2]

        m.eval('kib')
        assert numbers(m) == [1, 2048]

    def test_macro_uses_later_macro(self):
        m = rpncalc.Machine()
        m.eval('macro a b 1 +')
        m.eval('macro b 5')

        assert m.eval('a') == '[ 6 ]'

    def test_macro_shadows_builtin(self):
        m = rpncalc.Machine()
        m.eval('macro dup 7')

        assert m.eval('1 dup') == '[ 1, 7 ]'

        m.eval('clv')
        assert m.eval('clr 1 dup') == '[ 1, 1 ]'

    def test_macro_needs_a_name(self):
        m = rpncalc.Machine()
        m.eval('macro')

        assert 'needs something after it' in m.diagnostics[0]

        m.eval('macro 5 1')
        assert 'not a macro name' in m.diagnostics[0]
        assert numbers(m) == [5, 1]

    def test_unknown_word(self):
        m = rpncalc.Machine()
        m.eval('macro sq dup *')
        ret = m.eval('2 sq clv sq 3')

        assert ret == '[ 4 ] ? undefined word: sq'
        assert numbers(m) == [4]
        assert m.session.ip == 1

        # The session carries on.
        assert m.eval('1 +') == '[ 5 ]'

    def test_unknown_word_raises(self):
        m = rpncalc.Machine()
        m.eval('macro sq dup *')

        with pytest.raises(rpncalc.UnknownWord) as excinfo:
            m.interpret_line('clv sq')

        assert 'sq' in str(excinfo.value)

    def test_runaway_macro(self):
        m = rpncalc.Machine(Session(config=Config(max_steps=200)))
        m.eval('macro f f')
        ret = m.eval('1 f 2')

        assert 'gave up after 200 steps' in ret
        assert numbers(m) == [1]


class TestMeta():
    def test_exit(self):
        m = rpncalc.Machine()
        m.eval('1 exit')

        assert m.session.exit
        assert numbers(m) == [1]

    def test_debug(self):
        m = rpncalc.Machine()
        m.eval('debug')

        assert m.session.debug
        assert m.eval('1 2 +') == '[ 3 ]'
        m.eval('debug')
        assert not m.session.debug

    def test_help(self):
        called = []
        m = rpncalc.Machine(on_help=lambda: called.append(True))
        ret = m.eval('1 help')

        assert called
        assert ret == '[ 1 ]'

    def test_every_keyword_has_a_description(self):
        m = rpncalc.Machine()

        for entry in m.registry.entries():
            assert entry.doc, entry.name


class TestSession():
    def test_defaults(self):
        session = Session()

        assert session.mode is Mode.DEC
        assert session.stack == [] and session.ip == 0
        assert session.context.prec == 64
        assert session.config.max_steps == 100000
        assert not session.debug and not session.exit

    def test_debug_comes_from_config(self):
        assert Session(Config(debug=True)).debug

    def test_clear_stack_keeps_pending_cells(self):
        session = Session()
        session.stack = [rpncalc.Number(1), rpncalc.Number(2), rpncalc.Number(3)]
        session.ip = 2

        session.clear_stack()

        assert session.stack == [rpncalc.Number(3)]
        assert session.ip == 0
