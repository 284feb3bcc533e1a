#!/usr/bin/env python3
"""
histpick.py - Interactive picker that re-runs a command from your shell history

**How it fits together**

The tool is three small stages run one after the other:

1.  **Load:** The first history file found under $HOME (`.bash_history`, then
    `.zsh_history`) is read, zsh EXTENDED_HISTORY prefixes (": <epoch>:<dur>;")
    are stripped, blank lines dropped, and the list is reversed and
    de-duplicated so the most recent occurrence of every command comes first.
2.  **Pick:** A Textual app shows the list. Every key press is classified into
    an event (`classify_key`) and fed to `handle_event`, a pure
    `(state, event) -> state` function. The app only ever draws
    `render_model(state)`, so the whole selection logic is testable without
    a terminal.
3.  **Launch:** The chosen command is split on spaces (double quotes group
    words, nothing else is special) and the current process is replaced with
    it via `os.execvp`. Textual has already restored the terminal by then.

Usage
-----
    histpick                # browse everything
    histpick docker run     # start with the query "docker run"
    histpick -f ~/.zsh_history.bak
"""

from __future__ import annotations

import argparse
import errno
import os
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Iterable, Iterator, Mapping, Sequence

from rich.console import Console
from rich.markup import escape
from rich.text import Text as RichText
from rich.theme import Theme
from textual import events
from textual.app import App, ComposeResult
from textual.widgets import Static

from zsh_lexer import highlight_command

__version__ = "0.1.0"

# ============================================================================
# CONFIGURATION & CONSTANTS
# ============================================================================

CUSTOM_THEME = Theme({
    "info": "#61AFEF",
    "success": "#98C379",
    "warning": "#E5C07B",
    "error": "#E06C75",
})

console = Console(stderr=True, theme=CUSTOM_THEME)

# Candidate files under $HOME, first existing one wins
HISTORY_FILES = [".bash_history", ".zsh_history"]

# zsh EXTENDED_HISTORY: ": 1610000000:0;ls -la"
EXTENDED_PREFIX = ":"
EXTENDED_SEPARATOR = ";"

TITLE = "histpick"
HELP_TEXT = " (Press 'q' to quit, ↑↓ to navigate, Enter to select)"
HIGHLIGHT_SYMBOL = ">> "


class Config:
    """Configuration for history discovery and key classification"""

    @property
    def history_files(self) -> list[str]:
        """→ File names searched under the home directory, in priority order"""
        return list(HISTORY_FILES)

    @property
    def quit_keys(self) -> frozenset[str]:
        return frozenset({"q", "escape"})

    @property
    def next_keys(self) -> frozenset[str]:
        return frozenset({"down", "j"})

    @property
    def previous_keys(self) -> frozenset[str]:
        return frozenset({"up", "k"})

    @property
    def confirm_keys(self) -> frozenset[str]:
        return frozenset({"enter"})

    @property
    def backspace_keys(self) -> frozenset[str]:
        return frozenset({"backspace"})


CONFIG = Config()

# ============================================================================
# ERRORS
# ============================================================================


class HistpickError(Exception):
    """Fatal startup error; reported by main() before any UI is shown."""


class HomeNotSetError(HistpickError):
    def __init__(self):
        super().__init__("HOME isn't set")


class HistoryReadError(HistpickError):
    def __init__(self, path: Path, cause: OSError):
        super().__init__(f"Error reading history file '{path}': {cause.strerror or cause}")
        self.path = path
        self.cause = cause


# ============================================================================
# HISTORY LOADING
# ============================================================================


def resolve_home(environ: Mapping[str, str] | None = None) -> Path:
    """→ Returns $HOME as a Path, raising HomeNotSetError when it is missing or empty"""
    if environ is None:
        environ = os.environ
    home = environ.get("HOME")
    if not home:
        raise HomeNotSetError()
    return Path(home)


def _exists(path: Path) -> bool:
    # An unsearchable directory counts as "no such file"
    try:
        return path.exists()
    except OSError:
        return False


def find_history_file(home: Path, candidates: Iterable[str]) -> Path | None:
    """→ Returns the first candidate that exists under `home`, or None"""
    for name in candidates:
        path = home / name
        if _exists(path):
            return path
    return None


def normalize_history_line(line: str) -> str:
    """→ Strips a zsh extended-history prefix, leaving plain lines untouched"""
    if line.startswith(EXTENDED_PREFIX) and EXTENDED_SEPARATOR in line:
        return line.split(EXTENDED_SEPARATOR, 1)[1]
    return line


def parse_history(lines: Iterable[str]) -> list[str]:
    """→ Turns raw chronological lines into a most-recent-first, duplicate-free command list"""
    commands = [normalize_history_line(line) for line in lines]
    commands = [cmd for cmd in commands if cmd.strip()]
    # dict keeps first insertion, which after reversing is the latest occurrence
    return list(dict.fromkeys(reversed(commands)))


def read_history_file(path: Path) -> list[str]:
    """→ File I/O: Reads the history file and returns its lines"""
    try:
        with path.open("r", encoding="utf-8", errors="ignore", newline="") as f:
            text = f.read()
    except OSError as e:
        raise HistoryReadError(path, e) from e
    # Only "\n" ends an entry; other Unicode line breaks belong to the command
    return [line.removesuffix("\r") for line in text.split("\n")]


def load_history_file(path: Path | None) -> list[str]:
    """→ Loads one history file; a missing file is an empty history"""
    if path is None or not _exists(path):
        return []
    return parse_history(read_history_file(path))


def load_history(home: Path, candidates: Iterable[str] = HISTORY_FILES) -> list[str]:
    """→ Loads the first existing candidate history file under `home`.

    Histories of different shells are never merged. Returns an empty list when
    no candidate exists; raises HistoryReadError when the file cannot be read.
    """
    return load_history_file(find_history_file(home, candidates))


# ============================================================================
# EVENTS
# ============================================================================


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class MoveDown:
    pass


@dataclass(frozen=True)
class MoveUp:
    pass


@dataclass(frozen=True)
class AppendChar:
    char: str


@dataclass(frozen=True)
class Backspace:
    pass


@dataclass(frozen=True)
class Confirm:
    pass


@dataclass(frozen=True)
class Ignored:
    """A key with no meaning to the picker."""


Event = Quit | MoveDown | MoveUp | AppendChar | Backspace | Confirm | Ignored


def classify_key(key: str, character: str | None, config: Config = CONFIG) -> Event:
    """→ Maps a Textual key name (and its printable character) to a picker event.

    Quit and navigation keys are checked before text input, so `q`, `j` and `k`
    navigate instead of being typed into the query.
    """
    if key in config.quit_keys:
        return Quit()
    if key in config.next_keys:
        return MoveDown()
    if key in config.previous_keys:
        return MoveUp()
    if key in config.confirm_keys:
        return Confirm()
    if key in config.backspace_keys:
        return Backspace()
    if character and character.isprintable():
        return AppendChar(character)
    return Ignored()


# ============================================================================
# FILTERING & SELECTION
# ============================================================================


def filter_commands(commands: Sequence[str], query: str) -> list[int]:
    """→ Indices of commands containing `query`, case-insensitively, in original order"""
    if not query:
        return list(range(len(commands)))
    needle = query.lower()
    return [i for i, cmd in enumerate(commands) if needle in cmd.lower()]


@dataclass(frozen=True)
class SessionState:
    """One immutable snapshot of the picker session.

    `filtered` holds indices into `history`; `cursor` indexes into `filtered`
    and is None exactly when `filtered` is empty. Once `terminated` is set,
    `result` is the chosen command or None for "no selection".
    """

    history: tuple[str, ...]
    query: str = ""
    filtered: tuple[int, ...] = ()
    cursor: int | None = None
    terminated: bool = False
    result: str | None = None

    @property
    def selected_command(self) -> str | None:
        if self.cursor is None or self.cursor >= len(self.filtered):
            return None
        return self.history[self.filtered[self.cursor]]


def _with_query(state: SessionState, query: str) -> SessionState:
    filtered = tuple(filter_commands(state.history, query))
    return replace(state, query=query, filtered=filtered, cursor=0 if filtered else None)


def initialize(history: Iterable[str], seed_query: str = "") -> SessionState:
    """→ Builds the first session state, pre-filtered by `seed_query`"""
    return _with_query(SessionState(history=tuple(history)), seed_query)


def _moved(state: SessionState, step: int) -> SessionState:
    if not state.filtered:
        return state
    if state.cursor is None:
        return replace(state, cursor=0)
    return replace(state, cursor=(state.cursor + step) % len(state.filtered))


def handle_event(state: SessionState, event: Event) -> SessionState:
    """→ Returns the state that follows `event`; terminated states never change"""
    if state.terminated:
        return state
    if isinstance(event, Quit):
        return replace(state, terminated=True, result=None)
    if isinstance(event, MoveDown):
        return _moved(state, 1)
    if isinstance(event, MoveUp):
        return _moved(state, -1)
    if isinstance(event, AppendChar):
        return _with_query(state, state.query + event.char)
    if isinstance(event, Backspace):
        return _with_query(state, state.query[:-1])
    if isinstance(event, Confirm):
        return replace(state, terminated=True, result=state.selected_command)
    return state


@dataclass(frozen=True)
class RenderModel:
    """Everything the UI needs to draw one frame."""

    query: str
    items: tuple[str, ...]
    highlighted: int | None
    filtered_count: int
    total_count: int

    @property
    def status(self) -> str:
        return f"{self.filtered_count} of {self.total_count} commands"

    def rows(self) -> Iterator[tuple[str, bool]]:
        for i, item in enumerate(self.items):
            yield item, i == self.highlighted


def render_model(state: SessionState) -> RenderModel:
    items = tuple(state.history[i] for i in state.filtered)
    return RenderModel(
        query=state.query,
        items=items,
        highlighted=state.cursor,
        filtered_count=len(items),
        total_count=len(state.history),
    )


def scroll_offset(offset: int, highlighted: int | None, height: int) -> int:
    """→ First visible row, moved as little as possible to keep `highlighted` on screen"""
    if highlighted is None or height <= 0:
        return 0
    if highlighted < offset:
        return highlighted
    if highlighted >= offset + height:
        return highlighted - height + 1
    return offset


# ============================================================================
# LAUNCHING
# ============================================================================


def parse_command_string(command: str) -> tuple[str, list[str]]:
    """→ Splits a command into (program, args).

    Spaces separate words and a double quote toggles whether spaces do so.
    Quotes are dropped; there is no escaping and an unmatched quote runs to
    the end of the string. Single quotes are ordinary characters.
    """
    parts: list[str] = []
    current = ""
    in_quotes = False

    for c in command:
        if c == '"':
            in_quotes = not in_quotes
        elif c == " " and not in_quotes:
            if current:
                parts.append(current)
                current = ""
        else:
            current += c

    if current:
        parts.append(current)

    program = parts[0] if parts else ""
    return program, parts[1:]


def launch(
    program: str,
    args: Sequence[str],
    execvp: Callable[[str, list[str]], object] | None = None,
) -> None:
    """→ Replaces the current process with `program`; does not return on success.

    Raises OSError when the program cannot be executed.
    """
    if execvp is None:
        execvp = os.execvp
    if not program:
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), program)
    # Anything buffered would be lost with the old process image
    sys.stdout.flush()
    sys.stderr.flush()
    execvp(program, [program, *args])


# ============================================================================
# USER INTERFACE
# ============================================================================


class SearchBox(Static):
    """The query line."""

    BORDER_TITLE = "Search"

    DEFAULT_CSS = """
    SearchBox {
        height: 3;
        padding: 0 1;
        border: round #56B6C2;
        border-title-color: #56B6C2;
    }
    """


class CommandList(Static):
    """The filtered commands, scrolled so the highlighted row is always visible."""

    BORDER_TITLE = "Command History"

    DEFAULT_CSS = """
    CommandList {
        height: 1fr;
        padding: 0 1;
        border: round #61AFEF;
        border-title-color: #61AFEF;
    }
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.top_row = 0
        self.last_model: RenderModel | None = None

    def show(self, model: RenderModel) -> None:
        self.last_model = model
        height = self.content_size.height
        self.top_row = scroll_offset(self.top_row, model.highlighted, height)
        rows = list(model.rows())[self.top_row : self.top_row + max(height, 0)]

        lines: list[RichText] = []
        for command, is_highlighted in rows:
            if is_highlighted:
                line = RichText(HIGHLIGHT_SYMBOL) + highlight_command(command)
                line.stylize("bold on #3A3F4C")
            else:
                line = RichText(" " * len(HIGHLIGHT_SYMBOL) + command)
            lines.append(line)
        self.update(RichText("\n", no_wrap=True, overflow="ellipsis").join(lines))

    def on_resize(self, event: events.Resize) -> None:
        if self.last_model is not None:
            self.show(self.last_model)


class HistoryPickerApp(App[str | None]):
    """Shows the history list and exits with the chosen command (or None)."""

    CSS = """
    #title {
        height: 1;
        width: 100%;
        text-align: center;
    }
    #status {
        height: 1;
        width: 100%;
        text-align: center;
        text-style: dim;
    }
    """

    def __init__(self, state: SessionState, config: Config = CONFIG, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.state = state
        self.key_config = config

    def compose(self) -> ComposeResult:
        title = RichText.assemble((TITLE, "bold"), HELP_TEXT)
        yield Static(title, id="title")
        yield SearchBox(id="search")
        yield CommandList(id="commands")
        yield Static(id="status")

    def on_mount(self):
        self.show_state()

    def show_state(self) -> None:
        model = render_model(self.state)
        self.query_one(SearchBox).update(RichText(model.query))
        self.query_one(CommandList).show(model)
        self.query_one("#status", Static).update(model.status)

    def on_key(self, event: events.Key) -> None:
        picker_event = classify_key(event.key, event.character, self.key_config)
        if isinstance(picker_event, Ignored):
            return
        event.stop()
        event.prevent_default()
        self.state = handle_event(self.state, picker_event)
        if self.state.terminated:
            self.exit(self.state.result)
        else:
            self.show_state()


# ============================================================================
# MAIN
# ============================================================================


def _console_print(string="", *args, **kwargs) -> None:
    """→ Safe console printing with fallback"""
    try:
        console.print(string, *args, **kwargs)
    except Exception:
        print(string, *args, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="histpick",
        description="Search your shell history and run the selected command again",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    ap.add_argument(
        "words",
        nargs="*",
        help="Initial search query (words are joined by spaces)",
    )
    ap.add_argument(
        "-f",
        "--file",
        metavar="PATH",
        type=Path,
        help="Read this history file instead of searching $HOME",
    )
    ap.add_argument(
        "--print",
        action="store_true",
        help="Print the selected command instead of running it",
    )
    ap.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def main(argv: list[str] | None = None) -> int:
    """→ Main: load history, run the picker, then launch the chosen command"""
    args = build_parser().parse_args(argv)

    try:
        if args.file is not None:
            history = load_history_file(args.file.expanduser())
        else:
            history = load_history(resolve_home(), CONFIG.history_files)
    except HistpickError as e:
        _console_print(f"[error]Error:[/error] {escape(str(e))}")
        return 1

    state = initialize(history, " ".join(args.words))
    selected = HistoryPickerApp(state).run()

    if selected is None:
        return 0

    if args.print:
        sys.stdout.write(selected + "\n")
        sys.stdout.flush()
        return 0

    program, program_args = parse_command_string(selected)
    try:
        launch(program, program_args)
    except OSError as e:
        _console_print(f"[error]Failed to exec:[/error] {escape(str(e))}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
