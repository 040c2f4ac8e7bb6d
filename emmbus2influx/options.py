"""Parser for short and long options given on the command line or in a config file."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from typing import Any

from emmbus2influx.optionspec import (
    ArgRequired,
    ArgType,
    MissingOptionsError,
    Option,
    OptionError,
    check_duplicates,
    help_width,
)

_LONG_MAX = 2**63 - 1


def _is_noise(ch: str) -> bool:
    return ch <= " "


def _take_name(text: str, start: int) -> tuple[str, int]:
    """Read an option name up to whitespace or '='; return it and the end position."""
    end = start
    while end < len(text) and not _is_noise(text[end]) and text[end] != "=":
        end += 1
    return text[start:end], end


class OptionParser:
    """Parses options from a config file and then from the command line.

    Config file lines hold ``LONGOPT`` or ``LONGOPT=value``; blank lines and
    lines starting with ``#`` are skipped, and reading stops at the first
    line that starts with ``[``.
    """

    def __init__(
        self,
        options: Sequence[Option],
        config_file: str | None = None,
        help_top: str | None = None,
        help_bottom: str | None = None,
    ) -> None:
        self.options = list(options)
        check_duplicates(self.options)
        self.config_file = config_file
        self.help_top = help_top
        self.help_bottom = help_bottom
        self.help_width = help_width(self.options)
        self.prog_name = ""
        self.line_num = 0
        self.allow_optional_args = False
        self.optional_args: list[str] = []
        self.processed: list[int] = [0] * len(self.options)

    # ------------------------------------------------------------------ parsing

    def parse(self, argv: Sequence[str], allow_optional_args: bool = False) -> list[str]:
        """Parse the config file and ``argv[1:]``; return the arguments without dashes.

        Raises OptionError for invalid input and MissingOptionsError when a
        required option was given neither in the file nor on the command line.
        """
        argv = list(argv)
        self.prog_name = os.path.basename(argv[0]) if argv and argv[0] else ""
        self.allow_optional_args = allow_optional_args
        self.optional_args = []
        self.processed = [0] * len(self.options)

        self._parse_config_file()
        for arg in argv[1:]:
            self._parse_arg(arg)

        missing = [
            opt for index, opt in enumerate(self.options)
            if opt.required and not self.processed[index]
        ]
        if missing:
            raise MissingOptionsError(missing)
        return list(self.optional_args)

    def _parse_config_file(self) -> None:
        self.line_num = 0
        if not self.config_file:
            return
        try:
            fh = open(self.config_file, encoding="utf-8", errors="replace")
        except OSError:
            return
        try:
            with fh:
                for line in fh:
                    self.line_num += 1
                    line = line.rstrip("\n")
                    if line.startswith("["):
                        break
                    self._parse_arg(line)
        finally:
            self.line_num = 0

    def _error(self, message: str) -> OptionError:
        return OptionError(f"{self.prog_name}: {message}")

    def _find_long(self, name: str) -> int | None:
        for index, opt in enumerate(self.options):
            if opt.long is not None and opt.long == name:
                return index
        return None

    def _find_short(self, char: str) -> int | None:
        for index, opt in enumerate(self.options):
            if opt.short is not None and opt.short == char:
                return index
        return None

    def _parse_arg(self, arg: str) -> None:
        if not arg:
            return
        if arg.startswith("--"):
            self._parse_long(arg)
        elif arg.startswith("-"):
            self._parse_short(arg)
        elif self.line_num > 0:
            self._parse_config_line(arg)
        elif not self.allow_optional_args:
            raise self._error(f"Invalid argument '{arg}'")
        else:
            self.optional_args.append(arg)

    def _parse_long(self, arg: str) -> None:
        name, pos = _take_name(arg, 2)
        has_value = pos < len(arg) and arg[pos] == "="
        if has_value:
            pos += 1
        index = self._find_long(name)
        if index is None:
            raise self._error(f"Invalid option --{name}")
        option = self.options[index]
        if has_value and option.arg is ArgRequired.NO:
            raise self._error(f"Option --{name} does not require an argument")
        self._handle_value(index, f"--{name}", arg[pos:])

    def _parse_short(self, arg: str) -> None:
        if len(arg) < 2:
            raise self._error("Invalid option -")
        char = arg[1]
        rest = arg[2:]
        index = self._find_short(char)
        if index is None:
            raise self._error(f"Invalid option -{char}")
        option = self.options[index]
        if rest and not _is_noise(rest[0]) and option.arg is ArgRequired.NO:
            if rest[0] == "-" and option.target is not None:
                # "-f-" lowers a flag, e.g. to undo a flag set in the config file
                self._bump(option, -1)
                self._run_callback(option, f"-{char}", "-")
                self.processed[index] += 1
                return
            raise self._error(f"Option -{char} does not require an argument")
        self._handle_value(index, f"-{char}", rest)

    def _parse_config_line(self, line: str) -> None:
        stripped = line.lstrip("".join(chr(c) for c in range(1, 33)))
        if not stripped or stripped.startswith("#"):
            return
        name, pos = _take_name(stripped, 0)
        if pos < len(stripped) and stripped[pos] == "=":
            pos += 1
        while pos < len(stripped) and _is_noise(stripped[pos]):
            pos += 1
        index = self._find_long(name)
        if index is None:
            raise self._error(
                f"Invalid option '{name}' in line {self.line_num} of {self.config_file}"
            )
        self._handle_value(index, f"--{name}", stripped[pos:])

    # ------------------------------------------------------------------ values

    @staticmethod
    def _bump(option: Option, delta: int) -> None:
        current = getattr(option.target, option.dest) or 0
        setattr(option.target, option.dest, current + delta)

    def _run_callback(self, option: Option, name: str, arg: str) -> None:
        if option.callback is None:
            return
        result = option.callback(self, arg)
        if result:
            raise self._error(f"Option {name} was rejected ({result})")

    def _handle_value(self, index: int, name: str, arg: str) -> None:
        option = self.options[index]
        if not arg or _is_noise(arg[0]):
            if option.arg is ArgRequired.REQUIRED:
                raise self._error(f"Option {name} requires an argument")
            if option.target is not None and option.type is not ArgType.STR:
                self._bump(option, 1)
            self._run_callback(option, name, arg)
            self.processed[index] += 1
            return

        while arg and _is_noise(arg[-1]):
            arg = arg[:-1]

        value_set = False
        if option.type is ArgType.STR:
            if option.target is not None:
                setattr(option.target, option.dest, arg)
                value_set = True
        elif option.type is ArgType.INT:
            if not all("0" <= ch <= "9" for ch in arg):
                raise self._error(f"Option {name} requires a numeric argument, found '{arg}'")
            value = int(arg)
            if value > _LONG_MAX:
                raise self._error(f"Option {name} requires an integer argument, got '{arg}'")
            if option.target is not None:
                setattr(option.target, option.dest, value)
                value_set = True

        if not value_set and option.callback is None:
            print(
                f"{self.prog_name}: option {option.short or ''} {option.long} has no target "
                "value and no callback and will therefore be ignored",
                file=sys.stderr,
            )
        self._run_callback(option, name, arg)
        self.processed[index] += 1

    # ------------------------------------------------------------------ help

    def help_line(self, option: Option) -> str:
        """One help line for an option, with its current value if it is to be shown."""
        line = f"{option.label():<{self.help_width}} {option.help}"
        if option.show_default and option.target is not None:
            value: Any = getattr(option.target, option.dest, None)
            if option.type is ArgType.STR:
                if value:
                    line += f" ({value})"
            elif value is not None:
                line += f" ({value})"
        return line

    def format_help(self) -> str:
        """The full help text."""
        parts = []
        if self.help_top:
            parts.append(self.help_top)
        parts.append(f"Usage: {self.prog_name} [OPTION]...\n")
        parts.extend(self.help_line(opt) + "\n" for opt in self.options)
        if self.help_bottom:
            parts.append(self.help_bottom)
        return "".join(parts)

    def show_help(self, arg: str | None = None) -> None:
        """Print the help and exit with status 1; usable as an option callback."""
        sys.stdout.write(self.format_help())
        sys.stdout.flush()
        raise SystemExit(1)