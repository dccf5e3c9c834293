#!/usr/bin/env python3
"""
symcalc Command-Line Interface

Runs the calculator interactively, over .calc scripts or as a stdin filter.

Usage:
    symcalc                           # Start REPL
    symcalc script.calc               # Run script
    symcalc -e "2 + 3 * 4"            # Evaluate expression
    symcalc -p 10 -e "x * (1 + 2)"    # Ten simplifier passes
    echo "(1 .. 2) + 3" | symcalc     # Filter mode

Script Format (.calc files):
    #!/usr/bin/env symcalc
    :passes 10

    2 + 3 * 4
    lowercase("AB")
    :convert 5 m ft

REPL Commands:
    :help                     Show help
    :passes N                 Set the number of simplifier passes
    :fixpoint on|off          Stop simplifying once a pass changes nothing
    :errors                   Show errors from the last evaluation
    :undefined                List unknown functions in the last result
    :functions                List built-in functions
    :convert VALUE UNIT TARGET  Convert a value (number or expression) between units
    :quit                     Exit
"""

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .engine import Calculator
from .errors import ErrorList, SymcalcError
from .expr import Expr, format_expr

# readline is unavailable on some platforms
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

logger = logging.getLogger(__name__)


class SymcalcCompleter:
    """Tab completer for the symcalc REPL."""

    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":passes", ":fixpoint", ":errors", ":undefined",
        ":functions", ":convert",
    ]

    FIXPOINT_OPTIONS = ["on", "off"]

    def __init__(self, repl: 'SymcalcREPL'):
        self.repl = repl
        self.matches: List[str] = []

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)

        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> List[str]:
        line = line.lstrip()

        if line.startswith(":fixpoint "):
            return [o for o in self.FIXPOINT_OPTIONS if o.startswith(text)]

        # Unit names after :convert VALUE
        if line.startswith(":convert ") and len(line.split()) >= 2:
            return [u for u in self.repl.calc.unit_table.names() if u.startswith(text)]

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        # In expression context, complete function names
        if text:
            return [name + "(" for name in self.repl.calc.function_table.names()
                    if name.startswith(text) and name[0].isalpha()]

        return []


# A string literal, possibly still open at the end of the text
_STRING_LITERAL = re.compile(r'"(?:\\.|[^"\\])*"?')


def count_parens(text: str) -> int:
    """Net number of open parentheses outside string literals."""
    bare = _STRING_LITERAL.sub("", text)
    return bare.count("(") - bare.count(")")


class SymcalcREPL:
    """Interactive REPL for symcalc."""

    def __init__(self, calc: Optional[Calculator] = None, quiet: bool = False):
        self.calc = calc if calc is not None else Calculator()
        self.quiet = quiet
        self.running = True
        self.failed = False
        self.last_result: Optional[Expr] = None
        self.last_errors = ErrorList()

        if HAS_READLINE:
            self._init_readline()

    def _init_readline(self):
        self.history_file = Path.home() / ".symcalc_history"
        if self.history_file.exists():
            try:
                readline.read_history_file(self.history_file)
            except OSError:
                logger.debug("Could not read %s", self.history_file)
        readline.set_history_length(500)

        self.completer = SymcalcCompleter(self)
        readline.set_completer(self.completer.complete)
        readline.set_completer_delims(" \t\n,(")
        readline.parse_and_bind("tab: complete")

    def save_history(self):
        """Save readline history."""
        if HAS_READLINE:
            try:
                readline.write_history_file(self.history_file)
            except OSError:
                logger.debug("Could not write %s", self.history_file)

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None. Sets self.failed when the
        command could not be carried out.
        """
        self.failed = False
        parts = line[1:].split(None, 1)
        if not parts:
            self.failed = True
            return "Unknown command. Type :help for help."

        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd in ("quit", "exit", "q"):
            self.running = False
            return None

        elif cmd == "passes":
            if not arg:
                return f"Passes: {self.calc.passes}"
            try:
                self.calc.with_passes(int(arg))
            except ValueError:
                self.failed = True
                return "Error: Usage: :passes N (a non-negative integer)"
            return f"Passes set to: {self.calc.passes}"

        elif cmd == "fixpoint":
            if arg.lower() in ("on", "true", "1"):
                self.calc.with_fixpoint(True)
            elif arg.lower() in ("off", "false", "0"):
                self.calc.with_fixpoint(False)
            else:
                self.calc.with_fixpoint(not self.calc.stop_at_fixpoint)
            return f"Fixpoint detection {'enabled' if self.calc.stop_at_fixpoint else 'disabled'}"

        elif cmd == "errors":
            if not self.last_errors:
                return "No errors"
            return "\n".join(self.last_errors.messages())

        elif cmd == "undefined":
            if self.last_result is None:
                return "Nothing evaluated yet"
            names = self.calc.undefined_functions(self.last_result)
            if not names:
                return "No undefined functions"
            return "Undefined: " + ", ".join(names)

        elif cmd == "functions":
            return ", ".join(self.calc.function_table.names())

        elif cmd == "convert":
            args = arg.split()
            if len(args) != 3:
                self.failed = True
                return "Error: Usage: :convert VALUE UNIT TARGET"
            try:
                return str(self.calc.convert(args[0], args[1], args[2]))
            except (SymcalcError, ValueError, ZeroDivisionError) as e:
                self.failed = True
                return f"Error: {e}"

        else:
            self.failed = True
            return f"Unknown command: {cmd}. Type :help for help."

    def help_text(self) -> str:
        """Return help text."""
        return """symcalc REPL Commands:
  :help                       Show this help
  :passes N                   Set the number of simplifier passes
  :fixpoint on|off            Stop simplifying once a pass changes nothing
  :errors                     Show errors from the last evaluation
  :undefined                  List unknown functions in the last result
  :functions                  List built-in functions
  :convert VALUE UNIT TARGET  Convert a value, e.g. :convert 100 degC degF
  :quit                       Exit

Syntax:
  2 + 3 * 4                   Arithmetic (+ - * / % ^)
  -x ^ 2                      Prefix minus binds looser than ^
  f(x, 1)                     Function call
  (1, 2, 3)                   Vector
  1 .. 2   1 ..^ 2            Intervals (also ^.. and ^..^)
  "text"                      String literal
"""

    def process_line(self, line: str) -> Optional[str]:
        """
        Process a single line of input.

        Returns the result to print, or None.
        """
        line = line.strip()
        self.failed = False

        # Empty line or comment
        if not line or line.startswith("#"):
            return None

        if line.startswith(":"):
            return self.handle_command(line)

        try:
            result, errors = self.calc.evaluate(line)
        except (SymcalcError, ValueError) as e:
            self.failed = True
            return f"Error: {e}"

        self.last_result = result
        self.last_errors = errors
        output = format_expr(result)
        if errors and not self.quiet:
            output += "".join(f"\n  ! {message}" for message in errors.messages())
        return output

    def read_input(self) -> str:
        """Read one entry, prompting for more while parentheses are open."""
        text = input("calc> ")
        while count_parens(text) > 0:
            text += "\n" + input("...... ")
        return text

    def run(self):
        """Run the REPL loop."""
        print(f"symcalc {__version__} - symbolic calculator")
        print("Type :help for help, :quit to exit")
        print()

        while self.running:
            try:
                text = self.read_input()
            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                # Ctrl+C drops the pending entry
                print("\nInput cancelled")
                continue

            if count_parens(text) < 0:
                print("Error: Too many closing parentheses")
                continue

            result = self.process_line(text)
            if result:
                print(result)

        self.save_history()


class ScriptRunner:
    """Runs symcalc scripts, one-shot expressions and stdin filters."""

    REPORTING_COMMANDS = (":convert", ":errors", ":undefined", ":functions", ":help")

    def __init__(self, calc: Optional[Calculator] = None, quiet: bool = False):
        self.repl = SymcalcREPL(calc, quiet=quiet)

    def run_script(self, path: Path, quiet: bool = False) -> int:
        """
        Run a script file.

        Args:
            path: Path to the script
            quiet: If True, don't print expression results

        Returns:
            Exit code (0 for success)
        """
        try:
            lines = path.read_text().splitlines()
        except OSError as e:
            print(f"Error reading {path}: {e}", file=sys.stderr)
            return 1

        for lineno, line in enumerate(lines, 1):
            line = line.strip()

            # Skip empty lines, comments, and shebang
            if not line or line.startswith("#"):
                continue

            result = self.repl.process_line(line)
            if self.repl.failed:
                print(f"{path}:{lineno}: {result}", file=sys.stderr)
                return 1
            # Setting confirmations are not echoed in script mode
            if result and not quiet:
                if not line.startswith(":") or line.split()[0] in self.REPORTING_COMMANDS:
                    print(result)

            if not self.repl.running:
                break

        return 0

    def run_expression(self, expr_str: str) -> int:
        """
        Evaluate a single expression.

        Returns:
            Exit code (0 for success)
        """
        result = self.repl.process_line(expr_str)
        if result:
            print(result, file=sys.stderr if self.repl.failed else sys.stdout)
        return 1 if self.repl.failed else 0

    def run_stdin(self) -> int:
        """
        Read expressions from stdin and evaluate them.

        Returns:
            Exit code (0 for success)
        """
        for line in sys.stdin:
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            result = self.repl.process_line(line)
            if self.repl.failed:
                print(result, file=sys.stderr)
                return 1
            if result:
                print(result)

        return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="symcalc",
        description="symcalc - symbolic calculator with units and intervals",
        epilog="Examples:\n"
               "  symcalc                          Start REPL\n"
               "  symcalc script.calc              Run script\n"
               "  symcalc -e '2 + 3 * 4'           Evaluate expression\n"
               "  symcalc -p 10 -f -e 'x*(1+2)'    Ten passes, stop at fixpoint\n"
               "  echo '(1 .. 2) + 3' | symcalc    Filter mode\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "script",
        nargs="?",
        help="Script file to run (.calc)"
    )

    parser.add_argument(
        "-e", "--expr",
        help="Evaluate a single expression"
    )

    parser.add_argument(
        "-p", "--passes",
        type=int,
        default=5,
        help="Number of simplifier passes (default: 5)"
    )

    parser.add_argument(
        "-f", "--fixpoint",
        action="store_true",
        help="Stop simplifying once a pass changes nothing"
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (suppress non-essential output)"
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=LOG_LEVELS,
        help="Logging level (default: WARNING)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(levelname)s %(name)s: %(message)s")

    if args.passes < 0:
        parser.error("--passes must be non-negative")

    calc = Calculator(passes=args.passes, stop_at_fixpoint=args.fixpoint)
    runner = ScriptRunner(calc, quiet=args.quiet)

    if args.script:
        sys.exit(runner.run_script(Path(args.script), quiet=args.quiet))

    elif args.expr:
        sys.exit(runner.run_expression(args.expr))

    elif not sys.stdin.isatty():
        # Pipe/filter mode (stdin is not a terminal)
        sys.exit(runner.run_stdin())

    else:
        runner.repl.run()


if __name__ == "__main__":
    main()
