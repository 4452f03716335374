#!/usr/bin/env python3
"""
calcsimp Command-Line Interface

Provides an interactive REPL, one-shot evaluation and a pipe/filter mode.

Usage:
    calcsimp                         # Start REPL
    calcsimp -e "x + 2x + 3"         # Simplify one expression
    calcsimp -e "x + x" --trace      # Show what each pass did
    echo "1 + a + 2" | calcsimp      # Filter mode

REPL Commands:
    :help              Show help
    :spaced on|off     Toggle spaced output (a + b vs a+b)
    :trace on|off      Toggle pass tracing
    :debug on|off      Toggle raw tree output
    :rounds N          Number of simplification sweeps per input
    :passes            List the passes in order
    :quit              Exit
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .folding import FoldOverflowError
from .parser import ParseError, parse_infix
from .simplifier import Simplifier

# Try to import readline for better REPL experience
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False

logger = logging.getLogger(__name__)

ON_WORDS = ("on", "true", "1")
OFF_WORDS = ("off", "false", "0")


class CalcCompleter:
    """Tab completer for the calcsimp REPL."""

    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":spaced", ":trace", ":debug",
        ":rounds", ":passes",
    ]

    TOGGLE_OPTIONS = ["on", "off"]

    def __init__(self, repl: 'CalcREPL'):
        self.repl = repl
        self.matches: list = []

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)

        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> list:
        """Get list of matches for the current input."""
        line = line.lstrip()

        for toggle in (":spaced ", ":trace ", ":debug "):
            if line.startswith(toggle):
                return [t for t in self.TOGGLE_OPTIONS if t.startswith(text)]

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        return []


def count_parens(text: str) -> int:
    """Count unbalanced parentheses. Returns >0 if more open than close."""
    depth = 0
    for c in text:
        if c == '(':
            depth += 1
        elif c == ')':
            depth -= 1
    return depth


def _parse_toggle(arg: str, current: bool) -> bool:
    arg = arg.lower()
    if arg in ON_WORDS:
        return True
    if arg in OFF_WORDS:
        return False
    return not current


class CalcREPL:
    """Interactive REPL for calcsimp."""

    def __init__(self, simplifier: Optional[Simplifier] = None, history: bool = True):
        self.simplifier = simplifier or Simplifier()
        self.spaced = True
        self.trace = False
        self.debug = False
        self.verbose = False
        self.rounds = 1
        self.running = True
        self.counter = 0
        self.multi_line_buffer = ""
        self.history_file: Optional[Path] = None

        # Set up readline history and completion
        if HAS_READLINE and history:
            self.history_file = Path.home() / ".calcsimp_history"
            try:
                readline.read_history_file(self.history_file)
            except (FileNotFoundError, OSError):
                pass
            readline.set_history_length(1000)

            self.completer = CalcCompleter(self)
            readline.set_completer(self.completer.complete)
            readline.parse_and_bind("tab: complete")
            readline.set_completer_delims(" \t\n")

    def save_history(self):
        """Save readline history."""
        if HAS_READLINE and self.history_file is not None:
            try:
                readline.write_history_file(self.history_file)
            except OSError as e:
                logger.warning("Could not save history to %s: %s", self.history_file, e)

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None.
        """
        parts = line[1:].split(None, 1)
        if not parts:
            return "Unknown command. Type :help for help."

        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd in ("quit", "exit", "q"):
            self.running = False
            return None

        elif cmd == "spaced":
            self.spaced = _parse_toggle(arg, self.spaced)
            return f"Spaced output {'enabled' if self.spaced else 'disabled'}"

        elif cmd == "trace":
            self.trace = _parse_toggle(arg, self.trace)
            return f"Tracing {'enabled' if self.trace else 'disabled'}"

        elif cmd == "debug":
            self.debug = _parse_toggle(arg, self.debug)
            return f"Debug output {'enabled' if self.debug else 'disabled'}"

        elif cmd == "rounds":
            if not arg:
                return f"Rounds: {self.rounds}"
            try:
                rounds = int(arg)
            except ValueError:
                return f"Error: not a number: {arg}"
            if rounds < 1:
                return "Error: rounds must be at least 1"
            self.rounds = rounds
            return f"Rounds set to: {self.rounds}"

        elif cmd == "passes":
            return " -> ".join(self.simplifier.pass_names())

        else:
            return f"Unknown command: {cmd}. Type :help for help."

    def help_text(self) -> str:
        """Return help text."""
        return """calcsimp REPL Commands:
  :help              Show this help
  :spaced on|off     Toggle spaced output (a + b vs a+b)
  :trace on|off      Toggle pass tracing
  :debug on|off      Toggle raw tree output
  :rounds N          Simplification sweeps per input (default 1)
  :passes            List the passes in order
  :quit              Exit

Syntax:
  x + 2x - 3         Sums, differences, products (juxtaposition too)
  a / b              Division, as a * b^-1
  a ^ b ^ c          Right-associative power tower
  n!                 Factorial
  # comment          Ignored
"""

    def simplify(self, text: str):
        """Parse and simplify `text`. Returns (input tree, result, traces)."""
        tree = parse_infix(text)
        result = tree
        traces = []
        for _ in range(self.rounds):
            if self.trace:
                result, trace_obj = self.simplifier.run(result, trace=True)
                traces.append(trace_obj)
            else:
                result = self.simplifier.run(result)
        return tree, result, traces

    def process_line(self, line: str) -> Optional[str]:
        """
        Process a single line of input.

        Returns the result to print, or None.
        """
        line = line.strip()

        # Empty line or comment
        if not line or line.startswith("#"):
            return None

        # Command
        if line.startswith(":"):
            return self.handle_command(line)

        try:
            tree, result, traces = self.simplify(line)
        except (ParseError, FoldOverflowError) as e:
            return f"Error: {e}"

        output = result.format(spaced=self.spaced)
        lines = []
        if self.debug:
            lines.append(f"dbg: {tree!r} = {result!r}")
            lines.append(f"dbg: => {tree} = {result}")
        for trace_obj in traces:
            lines.append(trace_obj.format("chain"))
        if self.verbose:
            lines.append(f"out[{self.counter}]: {output}")
        else:
            lines.append(output)
        self.counter += 1
        return "\n".join(lines)

    def run(self):
        """Run the REPL loop."""
        print("calcsimp - symbolic simplifying calculator")
        print("Type :help for help, :quit to exit")
        print()

        while self.running:
            try:
                prompt = "...... " if self.multi_line_buffer else "calc> "
                line = input(prompt)

                # Handle multi-line input
                if self.multi_line_buffer:
                    self.multi_line_buffer += " " + line
                else:
                    self.multi_line_buffer = line

                paren_count = count_parens(self.multi_line_buffer)
                if paren_count > 0:
                    continue
                elif paren_count < 0:
                    print("Error: Unbalanced parentheses (too many closing)")
                    self.multi_line_buffer = ""
                    continue

                complete_input = self.multi_line_buffer
                self.multi_line_buffer = ""

                result = self.process_line(complete_input)
                if result:
                    print(result)

            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                if self.multi_line_buffer:
                    print("\nInput cancelled")
                    self.multi_line_buffer = ""
                else:
                    print()
                continue

        self.save_history()


class Runner:
    """Runs calcsimp outside the interactive loop."""

    def __init__(self, repl: Optional[CalcREPL] = None):
        self.repl = repl or CalcREPL(history=False)

    def run_expression(self, expr_str: str) -> int:
        """
        Simplify a single expression.

        Returns:
            Exit code (0 for success)
        """
        result = self.repl.process_line(expr_str)
        if result:
            print(result)
            if result.startswith("Error"):
                return 1
        return 0

    def run_stdin(self) -> int:
        """
        Read expressions from stdin, one per line, and simplify them.

        Returns:
            Exit code (0 for success)
        """
        status = 0
        for lineno, line in enumerate(sys.stdin, 1):
            result = self.repl.process_line(line)
            if not result:
                continue
            if result.startswith("Error"):
                print(f"<stdin>:{lineno}: {result}", file=sys.stderr)
                status = 1
            else:
                print(result)
        return status


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="calcsimp",
        description="calcsimp - symbolic simplifying calculator",
        epilog="Examples:\n"
               "  calcsimp                         Start REPL\n"
               "  calcsimp -e 'x + 2x + 3'         Simplify one expression\n"
               "  calcsimp -e 'x + x' --trace      Show each pass\n"
               "  echo '1 + a + 2' | calcsimp      Filter mode\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "-e", "--expr",
        help="Simplify a single expression instead of starting the REPL"
    )

    parser.add_argument(
        "-c", "--compact",
        action="store_true",
        help="Compact output (a+b instead of a + b)"
    )

    parser.add_argument(
        "-t", "--trace",
        action="store_true",
        help="Show the tree after each pass"
    )

    parser.add_argument(
        "-r", "--rounds",
        type=int,
        default=1,
        help="Simplification sweeps per expression (default: 1)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Number the outputs"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Debug logging and raw tree output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.rounds < 1:
        parser.error("--rounds must be at least 1")

    interactive = not args.expr and sys.stdin.isatty()
    repl = CalcREPL(history=interactive)
    repl.spaced = not args.compact
    repl.trace = args.trace
    repl.debug = args.debug
    repl.verbose = args.verbose
    repl.rounds = args.rounds

    runner = Runner(repl)

    if args.expr:
        sys.exit(runner.run_expression(args.expr))

    elif not sys.stdin.isatty():
        # Pipe/filter mode (stdin is not a terminal)
        sys.exit(runner.run_stdin())

    else:
        repl.run()


if __name__ == "__main__":
    main()
