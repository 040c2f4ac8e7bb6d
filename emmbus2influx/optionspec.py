"""Option descriptions shared by the command-line and config-file parser."""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any


class ArgRequired(enum.Enum):
    """Whether an option takes an argument."""

    NO = "no"
    OPTIONAL = "optional"
    REQUIRED = "required"


class ArgType(enum.Enum):
    """Type of the value an option stores."""

    NONE = "none"
    STR = "str"
    INT = "int"


class OptionError(Exception):
    """An option definition or an option given by the user is invalid."""


class MissingOptionsError(OptionError):
    """One or more required options were not given."""

    def __init__(self, options: Sequence[Option]) -> None:
        self.options = list(options)
        names = ", ".join(opt.label().strip() for opt in self.options)
        plural = "s" if len(self.options) > 1 else ""
        super().__init__(
            f"the following required option{plural} have not been specified: {names}"
        )


@dataclass
class Option:
    """One option: its names, argument rules, where its value goes and its help.

    ``target`` and ``dest`` name the attribute that receives the value
    (``setattr(target, dest, value)``); ``callback`` is called after the
    value has been stored, with the parser and the raw argument.
    """

    short: str | None = None
    long: str | None = None
    arg: ArgRequired = ArgRequired.NO
    type: ArgType = ArgType.NONE
    required: bool = False
    show_default: bool = False
    target: Any = None
    dest: str | None = None
    callback: Callable[[Any, str], Any] | None = None
    help: str = ""

    def __post_init__(self) -> None:
        if self.short is not None and len(self.short) != 1:
            raise ValueError(f"short option must be a single character, got {self.short!r}")
        if self.short is None and not self.long:
            raise ValueError("an option needs a short or a long name")
        if (self.target is None) != (self.dest is None):
            raise ValueError("target and dest must be given together")

    @property
    def has_short(self) -> bool:
        return self.short is not None and self.short > " "

    def label(self) -> str:
        """The left column of the option's help line, e.g. ``  -v, --verbose[=]``."""
        parts = ["  "]
        if self.has_short:
            parts.append(f"-{self.short}")
        if self.long:
            if self.has_short:
                parts.append(", ")
            parts.append(f"--{self.long}")
            if self.arg is ArgRequired.OPTIONAL:
                parts.append("[=]")
            elif self.arg is ArgRequired.REQUIRED:
                parts.append("=")
        return "".join(parts)


def help_width(options: Iterable[Option]) -> int:
    """Width of the left help column wide enough for every option."""
    width = 0
    for opt in options:
        size = 5
        if opt.short is not None:
            size += 3
        if opt.long:
            size += len(opt.long) + 2
            if opt.short is not None:
                size += 2
            if opt.arg is ArgRequired.OPTIONAL:
                size += 2
            elif opt.arg is ArgRequired.REQUIRED:
                size += 1
        width = max(width, size)
    return width


def check_duplicates(options: Sequence[Option]) -> None:
    """Raise OptionError if two options share a short or a long name."""
    seen_short: dict[str, int] = {}
    seen_long: dict[str, int] = {}
    for index, opt in enumerate(options):
        if opt.short is not None:
            if opt.short in seen_short:
                first = options[seen_short[opt.short]]
                raise OptionError(
                    f"duplicate short option, entry number {index}, "
                    f"({opt.short} {first.short}) ({opt.long} {first.long})"
                )
            seen_short[opt.short] = index
        if opt.long:
            if opt.long in seen_long:
                raise OptionError(
                    f"duplicate long option, entry number {index}, ({opt.long})"
                )
            seen_long[opt.long] = index