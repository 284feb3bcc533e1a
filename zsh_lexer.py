# ============================================================================
# COMMAND LEXER
# ============================================================================

from __future__ import annotations

from pygments.lexer import RegexLexer, include
from pygments.token import (
    Comment,
    Error,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Token,
)
from rich.style import Style
from rich.syntax import Syntax, SyntaxTheme
from rich.text import Text as RichText

# Define custom token types so Rich and Pygments know about them
Name.Argument = Token.Name.Argument


class ZshLexer(RegexLexer):
    """
    A single-line lexer for commands recalled from bash or zsh history.

    The first word of every pipeline stage is the program; everything after it
    is split into flags, redirections, quoted strings, variables and plain
    arguments. Use like so:
    ```python
    text = highlight_command("git log --oneline | head -5")
    ```
    """

    name = "Shell history command"
    aliases = ["histcmd"]
    filenames: list[str] = []

    tokens = {
        "quoting": [
            (r"\\.", String.Escape),
            (r"\$\(", String.Interpol, "subshell"),
            (r"`[^`]*`?", String.Backtick),
            (r"\$\{[^}]*\}?", Name.Variable),
            (r"\$[a-zA-Z0-9_@*#?$!-]+", Name.Variable),
            (r"'[^']*'?", String.Single),
            (r'"(?:\\.|[^"\\])*"?', String.Double),
        ],
        "root": [
            (r"\s+", Text),
            (r"#.*$", Comment),
            # Prefixes keep the lexer in command position
            (r"(sudo|time|nohup|exec|env|command|builtin)\b", Keyword),
            (r"(if|then|else|elif|fi|for|while|until|do|done|case|esac)\b", Keyword.Reserved),
            (r"[a-zA-Z_][a-zA-Z0-9_]*=\S*", Name.Variable),
            (r"&&|\|\||[;|&]", Operator),
            (r"[0-9]*(?:>>|<<<|<<|>|<)", Operator),
            (r"[(){}]", Punctuation),
            include("quoting"),
            (r"[^\s;&|<>(){}'\"`$\\]+", Name.Function, "args"),
            (r".", Error),
        ],
        "args": [
            (r"\s+", Text),
            (r"&&|\|\||[;|&]", Operator, "#pop"),
            (r"(?=\))", Text, "#pop"),
            (r"[0-9]*(?:>>|<<<|<<|>&|<&|>|<)", Operator),
            (r"#.*$", Comment),
            (r"--?[a-zA-Z0-9][\w-]*", Name.Attribute),
            (r"=", Operator),
            (r"\b[0-9]+\b", Number.Integer),
            include("quoting"),
            (r"[^\s;&|<>()='\"`$\\]+", Name.Argument),
            (r"[($\\]", Punctuation),
        ],
        "subshell": [
            (r"\)", String.Interpol, "#pop"),
            include("root"),
        ],
    }


class PickerTheme(SyntaxTheme):
    """Rich syntax theme for the picker list; transparent so row highlights show through."""

    _RED = "#E06C75"
    _GREEN = "#98C379"
    _YELLOW = "#E5C07B"
    _ORANGE = "#D19A66"
    _PURPLE = "#C678DD"
    _CYAN = "#56B6C2"
    _BLUE = "#61AFEF"
    _GRAY = "#5C6370"

    default_style = Style()

    styles = {
        Name.Function: Style(color=_GREEN, bold=True),  # git, curl
        Name.Attribute: Style(color=_ORANGE),  # --long, -l
        Name.Argument: Style(),  # a filename
        Name.Variable: Style(color=_PURPLE),  # $PATH, FOO=bar
        Number: Style(color=_CYAN),
        Keyword: Style(color=_RED, bold=True),  # sudo, env
        Keyword.Reserved: Style(color=_RED, italic=True),
        Operator: Style(color=_BLUE),  # | && >
        Punctuation: Style(color=_BLUE),
        Comment: Style(color=_GRAY, italic=True),
        String: Style(color=_YELLOW),
        String.Escape: Style(color=_PURPLE),
        String.Interpol: Style(color=_PURPLE, bold=True),
        Error: Style(color=_RED),
        Text: Style(),
    }

    @classmethod
    def get_style_for_token(cls, t):
        # Fall back through parent token types, e.g. String.Single -> String
        while t is not None:
            if t in cls.styles:
                return cls.styles[t]
            t = t.parent
        return cls.default_style

    @classmethod
    def get_background_style(cls):
        return Style()


def highlight_command(command: str) -> RichText:
    """→ Returns `command` as rich Text coloured by ZshLexer"""
    text = Syntax(command, ZshLexer(), theme=PickerTheme()).highlight(command)
    text.rstrip()
    return text
