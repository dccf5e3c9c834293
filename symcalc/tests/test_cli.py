"""Tests for CLI module."""

import subprocess
import sys

from symcalc import Calculator
from symcalc.cli import SymcalcREPL, SymcalcCompleter, ScriptRunner, count_parens


def run_cli(*args, input=None):
    return subprocess.run(
        [sys.executable, "-m", "symcalc.cli", *args],
        capture_output=True,
        text=True,
        input=input,
    )


class TestREPLCommands:
    """Tests for REPL command handling."""

    def test_help_command(self):
        """Help command returns help text."""
        repl = SymcalcREPL()
        result = repl.handle_command(":help")
        assert ":passes" in result
        assert ":convert" in result

    def test_passes_command(self):
        """Passes command sets the pass count."""
        repl = SymcalcREPL()
        result = repl.handle_command(":passes 2")
        assert repl.calc.passes == 2
        assert "2" in result

    def test_passes_invalid(self):
        """A non-numeric pass count is an error."""
        repl = SymcalcREPL()
        result = repl.handle_command(":passes many")
        assert result.startswith("Error")
        assert repl.failed

    def test_fixpoint_command(self):
        """Fixpoint command toggles early stopping."""
        repl = SymcalcREPL()
        assert "enabled" in repl.handle_command(":fixpoint on")
        assert repl.calc.stop_at_fixpoint
        assert "disabled" in repl.handle_command(":fixpoint off")
        assert not repl.calc.stop_at_fixpoint
        repl.handle_command(":fixpoint")
        assert repl.calc.stop_at_fixpoint

    def test_errors_command(self):
        """Errors command shows errors from the last evaluation."""
        repl = SymcalcREPL()
        assert repl.handle_command(":errors") == "No errors"
        repl.process_line("1 / 0")
        assert "Division by zero" in repl.handle_command(":errors")

    def test_undefined_command(self):
        """Undefined command lists unknown functions in the last result."""
        repl = SymcalcREPL()
        repl.process_line("frob(1, 2)")
        assert repl.handle_command(":undefined") == "Undefined: frob"

    def test_functions_command(self):
        """Functions command lists the library."""
        result = SymcalcREPL().handle_command(":functions")
        assert "lowercase" in result

    def test_convert_command(self):
        """Convert command converts between units."""
        repl = SymcalcREPL()
        assert repl.handle_command(":convert 100 degC degF") == "212 degF"
        assert repl.handle_command(":convert 5 m ft") == "6250/381 ft"

    def test_convert_expression(self):
        """Convert accepts an expression as the value."""
        repl = SymcalcREPL()
        assert repl.handle_command(":convert 2*x m ft") == "(* (* 2 x) 1250/381) ft"

    def test_convert_errors(self):
        """Bad conversions report errors."""
        repl = SymcalcREPL()
        assert repl.handle_command(":convert 5 m s").startswith("Error")
        assert repl.handle_command(":convert 5 m").startswith("Error")
        assert repl.handle_command(":convert 5 bogus m").startswith("Error")

    def test_quit_command(self):
        """Quit command stops the REPL."""
        repl = SymcalcREPL()
        repl.handle_command(":quit")
        assert not repl.running

    def test_unknown_command(self):
        """Unknown commands are reported."""
        repl = SymcalcREPL()
        assert "Unknown" in repl.handle_command(":frobnicate")
        assert repl.failed


class TestProcessLine:
    """Tests for expression evaluation in the REPL."""

    def test_expression(self):
        """Expressions print as s-expressions."""
        repl = SymcalcREPL()
        assert repl.process_line("2 + 3 * 4") == "14"
        assert repl.process_line("x * (1 + 2)") == "(* 3 x)"

    def test_errors_shown(self):
        """Simplifier errors follow the result."""
        repl = SymcalcREPL()
        result = repl.process_line("1 / 0")
        assert result.splitlines()[0] == "(/ 1 0)"
        assert "Division by zero" in result
        assert not repl.failed

    def test_quiet_hides_errors(self):
        """Quiet mode shows only the result."""
        repl = SymcalcREPL(quiet=True)
        assert repl.process_line("1 / 0") == "(/ 1 0)"

    def test_parse_error(self):
        """Parse errors are reported, not raised."""
        repl = SymcalcREPL()
        assert repl.process_line("1 +").startswith("Error")
        assert repl.failed

    def test_comments_and_blank_lines(self):
        """Comments and blank lines produce nothing."""
        repl = SymcalcREPL()
        assert repl.process_line("# note") is None
        assert repl.process_line("   ") is None

    def test_custom_calculator(self):
        """The REPL uses the calculator it is given."""
        repl = SymcalcREPL(Calculator(passes=1))
        assert repl.process_line("2 * (x + 3)") == "(+ (* 2 x) (* 2 3))"


class TestHelpers:
    """Tests for completion and paren counting."""

    def test_count_parens(self):
        """count_parens ignores parens in strings."""
        assert count_parens("f(x") == 1
        assert count_parens("f(x))") == -1
        assert count_parens('f("(")') == 0

    def test_complete_commands(self):
        """Commands complete after a colon."""
        completer = SymcalcCompleter(SymcalcREPL())
        assert completer._get_matches(":pa", ":pa") == [":passes"]

    def test_complete_functions(self):
        """Function names complete in expressions."""
        completer = SymcalcCompleter(SymcalcREPL())
        assert completer._get_matches("lower", "lower") == ["lowercase("]

    def test_complete_fixpoint(self):
        """Fixpoint options complete."""
        completer = SymcalcCompleter(SymcalcREPL())
        assert completer._get_matches("o", ":fixpoint o") == ["on", "off"]


class TestScriptRunner:
    """Tests for ScriptRunner."""

    def test_run_script(self, tmp_path, capsys):
        """Scripts print results and skip settings confirmations."""
        script = tmp_path / "test.calc"
        script.write_text("#!/usr/bin/env symcalc\n:passes 10\n\n2 + 3 * 4\n:convert 5 m ft\n")
        assert ScriptRunner().run_script(script) == 0
        assert capsys.readouterr().out.splitlines() == ["14", "6250/381 ft"]

    def test_run_script_error(self, tmp_path, capsys):
        """A failing line stops the script with its location."""
        script = tmp_path / "bad.calc"
        script.write_text("1 + 1\n1 +\n2\n")
        assert ScriptRunner().run_script(script) == 1
        captured = capsys.readouterr()
        assert captured.out.splitlines() == ["2"]
        assert "bad.calc:2:" in captured.err

    def test_missing_script(self, tmp_path):
        """A missing script is an error."""
        assert ScriptRunner().run_script(tmp_path / "missing.calc") == 1


class TestCLI:
    """Tests for CLI entry point."""

    def test_expression(self):
        """-e evaluates one expression."""
        result = run_cli("-e", "2 + 3 * 4")
        assert result.returncode == 0
        assert result.stdout.strip() == "14"

    def test_passes_flag(self):
        """-p sets the number of passes."""
        result = run_cli("-p", "1", "-e", "2 * (x + 3)")
        assert result.stdout.strip() == "(+ (* 2 x) (* 2 3))"

    def test_parse_error_exit_code(self):
        """A parse error exits non-zero."""
        result = run_cli("-e", "1 +")
        assert result.returncode == 1
        assert "Error" in result.stderr

    def test_stdin(self):
        """Piped input is evaluated line by line."""
        result = run_cli(input='(1 .. 2) + 3\nlowercase("AB")\n')
        assert result.returncode == 0
        assert result.stdout.splitlines() == ["(.. 4 5)", '"ab"']

    def test_version(self):
        """--version prints the version."""
        result = run_cli("--version")
        assert result.returncode == 0
        assert "0.1.0" in result.stdout
