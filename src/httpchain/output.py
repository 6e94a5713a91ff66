"""Diagnostics channel with strict stderr discipline.

Everything the pipeline reports (retry notices, token refreshes,
request/response logs) goes to stderr through a :class:`rich.console.Console`
so it never mixes with data a caller writes to stdout.  Colour follows the
`NO_COLOR <https://no-color.org/>`_ convention and ``TERM=dumb``.

Interceptors fetch the process-wide :class:`OutputManager` with
:func:`get_output`; applications replace it with :func:`set_output` to turn
on verbose diagnostics or to silence the pipeline.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable
from typing import IO, Any, Optional

from rich.console import Console
from rich.markup import escape


class OutputManager:
    """Where pipeline diagnostics are written and how loudly.

    Args:
        no_color: Print plain text with no colour or Rich markup.
        quiet: Drop informational messages (request/response logs included).
            Warnings and errors are still printed.
        verbose: Also print debug messages such as retry decisions.
        file: Stream to write to; defaults to ``sys.stderr``.
    """

    def __init__(
        self,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
        file: Optional[IO[str]] = None,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._file = file
        self._console = Console(
            file=file or sys.stderr,
            no_color=self._no_color,
            stderr=file is None,
            highlight=False,
            soft_wrap=True,
        )

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(escape(message), message)

    def warning(self, message: str) -> None:
        self._emit(f"[yellow]Warning:[/yellow] {escape(message)}", f"Warning: {message}")

    def error(self, message: str) -> None:
        self._emit(f"[bold red]Error:[/bold red] {escape(message)}", f"Error: {message}")

    def debug(self, message: str) -> None:
        """Print *message* with a ``[debug]`` prefix, in verbose mode only."""
        if self._verbose:
            self._emit(f"[dim]\\[debug] {escape(message)}[/dim]", f"[debug] {message}")

    def block(self, title: str, fields: Iterable[tuple[str, Any]]) -> None:
        """Print a titled list of ``- name: value`` lines as one info message.

        Used for request and response logs so a multi-line entry is never
        interleaved with output from another thread.
        """
        if self._quiet:
            return
        lines = [f"- {name}: {value}" for name, value in fields]
        plain = "\n".join([f"{title}:", *lines])
        markup = "\n".join([f"[bold]{escape(title)}:[/bold]", *(escape(line) for line in lines)])
        self._emit(markup, plain)

    def _emit(self, markup: str, plain: str) -> None:
        if self._no_color:
            print(plain, file=self._file or sys.stderr, flush=True)
        else:
            self._console.print(markup)


def _should_disable_color() -> bool:
    """NO_COLOR (any value, even empty) or TERM=dumb turn colour off."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the process-wide :class:`OutputManager`, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager; the next :func:`get_output` builds a fresh default."""
    global _output
    _output = None
