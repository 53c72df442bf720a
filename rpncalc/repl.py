"""
Command line front end for the calculator.

    rpncalc                        # interactive, prompts on stdin
    rpncalc --in sums.rpn          # read lines from a file
    rpncalc --out result.txt -g    # write stacks to a file, trace on stderr

Type "exit" or input an end of file (Ctrl+D) to quit.
"""
import readline  # noqa: F401
import sys
from contextlib import ExitStack
from typing import Optional

import typer

from rpncalc import formatter
from rpncalc.machine import Machine
from rpncalc.session import Config, Session

STDIN = 'stdin'
STDOUT = 'stdout'

app = typer.Typer(name='rpncalc', help='Reverse Polish Notation calculator',
                  add_completion=False)


def prompt_lines(prompt):
    """ Lines typed at the terminal, until end of file. """
    while True:
        try:
            yield input(prompt)
        except EOFError:
            return


def file_lines(source):
    for line in source:
        yield line.rstrip('\n')


def run(machine, lines, out):
    """
    Feeds `lines` to `machine` one at a time and writes the stack after
    each one. Stops early once a line has asked to exit.
    """
    session = machine.session
    for line in lines:
        out.write(machine.eval(line) + '\n')
        if session.debug:
            out.write(formatter.render_variables(
                session.variables, session.mode, session.vertical) + '\n')
        out.flush()
        if session.exit:
            break


@app.command()
def main(input_path: str = typer.Option(
             STDIN, '--in',
             help="Input file, or 'stdin' for interactive use"),
         output_path: str = typer.Option(
             STDOUT, '--out', help="Output file, or 'stdout'"),
         debug: bool = typer.Option(
             False, '--debug', '-g',
             help='Trace every reduction step on stderr'),
         precision: int = typer.Option(
             64, '--precision', envvar='RPNCALC_PRECISION',
             help='Decimal digits of exact arithmetic'),
         max_steps: int = typer.Option(
             100000, '--max-steps', envvar='RPNCALC_MAX_STEPS',
             help='Reduction steps allowed per line'),
         seed: Optional[int] = typer.Option(
             None, '--seed', envvar='RPNCALC_SEED', help="Seed for 'rand'"),
         prompt: str = typer.Option(
             '> ', '--prompt', envvar='RPNCALC_PROMPT',
             help='Prompt shown on interactive input')):
    """ Read lines of RPN and print the stack after each one. """
    config = Config(precision=precision, max_steps=max_steps, seed=seed,
                    prompt=prompt, debug=debug)
    session = Session(config)
    machine = Machine(session)
    if session.debug:
        session.console.print('input: %s, output: %s'
                              % (input_path, output_path),
                              style='dim', markup=False)

    with ExitStack() as files:
        try:
            if input_path == STDIN:
                source = None
            else:
                source = files.enter_context(open(input_path))
            if output_path == STDOUT:
                out = sys.stdout
            else:
                out = files.enter_context(open(output_path, 'w'))
        except OSError as e:
            session.console.print('[red]Error:[/red] %s' % e)
            raise typer.Exit(1)

        if source is None:
            lines = prompt_lines(config.prompt)
        else:
            lines = file_lines(source)
        run(machine, lines, out)


if __name__ == '__main__':
    app()
