"""Split a command line into tokens, expanding variables on the way."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum

from minishell.env import ShellState

__all__ = ["TokenType", "Token", "UnclosedQuoteError", "tokenize"]

_SPACES = " \t\n\v\f\r"
_WORD_STOPS = "|<>&()"
_SPACE_RUN = re.compile(r"[ \t\n\v\f\r]+")


class TokenType(IntEnum):
    """Kinds of token the lexer produces."""

    WORD = 0
    PIPE = 1
    OR = 2
    HASHTAG = 3
    NOT_DEFINE = 4
    AMBIGUOUS = 5
    REDIRECT_IN = 6
    REDIRECT_OUT = 7
    APPEND_OUT = 8
    HERE_DOC = 9
    BACKGROUND = 10
    AND = 11
    LPR = 12
    RPR = 13
    DQUOTE = 14
    SQUOTE = 15
    END = 16


_FILE_REDIRECTIONS = frozenset(
    {TokenType.REDIRECT_OUT, TokenType.APPEND_OUT, TokenType.REDIRECT_IN}
)


@dataclass(frozen=True)
class Token:
    """One token of a command line."""

    type: TokenType
    value: str


class UnclosedQuoteError(ValueError):
    """Raised when a command line ends inside a quoted section."""

    def __init__(self, quote: str) -> None:
        super().__init__(f"Syntax error: unclosed quote '{quote}'")
        self.quote = quote


def _is_name_char(char: str) -> bool:
    return char.isascii() and (char.isalnum() or char == "_")


def _split_words(text: str) -> list[str]:
    return [word for word in _SPACE_RUN.split(text) if word]


@dataclass
class _Lexer:
    line: str
    state: ShellState
    pos: int = 0
    tokens: list[Token] = field(default_factory=list)
    quote: str = ""
    # Both flags stay raised for the rest of the line once set.
    seen_double_quote: bool = False
    status_expanded: bool = False

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.line[index] if index < len(self.line) else ""

    def add(self, kind: TokenType, value: str) -> None:
        self.tokens.append(Token(kind, value))

    def run(self) -> list[Token]:
        while self.pos < len(self.line):
            self.skip_spaces()
            self.special()
            self.word()
        if self.quote:
            raise UnclosedQuoteError(self.quote)
        self.add(TokenType.END, "")
        return self.tokens

    def skip_spaces(self) -> None:
        while self.pos < len(self.line) and self.line[self.pos] in _SPACES:
            self.pos += 1

    def special(self) -> None:
        char, following = self.peek(), self.peek(1)
        if char == "(":
            self.add(TokenType.LPR, " ( ")
            self.pos += 1
            return
        if char == ")":
            self.add(TokenType.RPR, " ) ")
            self.pos += 1
            return
        value = char
        if char == "|":
            kind = TokenType.OR if following == "|" else TokenType.PIPE
        elif char == "&":
            if following == "&":
                kind, value = TokenType.AND, "&&"
                self.pos += 1
            else:
                kind = TokenType.BACKGROUND
        elif char == "<":
            if following == "<":
                kind = TokenType.HERE_DOC
                self.pos += 1
            elif following == "#":
                kind = TokenType.HASHTAG
            else:
                kind = TokenType.REDIRECT_IN
        elif char == ">":
            if following == ">":
                kind = TokenType.APPEND_OUT
                self.pos += 1
            elif following == "#":
                kind = TokenType.HASHTAG
            else:
                kind = TokenType.REDIRECT_OUT
        else:
            return
        self.add(kind, value)
        self.pos += 1

    def word(self) -> None:
        buffer: list[str] = []
        while self.pos < len(self.line):
            char = self.line[self.pos]
            if not self.quote and (char in _SPACES or char in _WORD_STOPS):
                break
            if self.quote_or_escape(char, buffer):
                continue
            if char == "$" and self.peek(1) != "" and self.quote != "'":
                self.pos += 1
                if self.expand(buffer):
                    return
                continue
            buffer.append(char)
            self.pos += 1
        if buffer:
            self.add(TokenType.WORD, "".join(buffer))

    def quote_or_escape(self, char: str, buffer: list[str]) -> bool:
        if char == "\\" and self.peek(1) != "":
            buffer.append(self.peek(1))
            self.pos += 2
            return True
        if char in "\"'" and (not self.quote or char == self.quote):
            if char == '"':
                self.seen_double_quote = True
            self.quote = "" if self.quote else char
            self.pos += 1
            return True
        return False

    def expand(self, buffer: list[str]) -> bool:
        """Expand the ``$`` reference at the cursor.

        Returns True when the word being built must be abandoned.
        """
        start = self.pos
        first = self.peek()
        if first == "$":
            buffer.extend(str(self.state.pid))
            self.pos += 1
            return False
        if first == "?":
            buffer.extend(str(self.state.exit_status))
            self.state.exit_status = 0
            self.status_expanded = True
            self.pos += 1
        while self.pos < len(self.line) and _is_name_char(self.line[self.pos]):
            self.pos += 1
        if self.pos == start:
            buffer.append("$")
            return False
        value = self.state.env.get(self.line[start:self.pos]) or ""
        if (
            (" " in value or value == "")
            and self.tokens
            and self.tokens[-1].type in _FILE_REDIRECTIONS
        ):
            self.add(TokenType.AMBIGUOUS, "?")
            print("minishell: ambiguous redirect")
            return True
        if self.status_expanded:
            return False
        if self.seen_double_quote or not any(ch in _SPACES for ch in value):
            buffer.extend(value)
            return False
        for word in _split_words(value):
            self.add(TokenType.WORD, word)
        return True


def tokenize(line: str, state: ShellState) -> list[Token]:
    """Turn ``line`` into tokens, always ending with an ``END`` token.

    Variables are looked up in ``state.env``; ``$?`` reads and then resets
    ``state.exit_status``. Raises :class:`UnclosedQuoteError` when a quote
    is left open.
    """
    return _Lexer(line, state).run()