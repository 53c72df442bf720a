""" Allows ``python -m rpncalc``. """
from rpncalc.repl import app

app(prog_name='rpncalc')
