"""Check token streams for syntax errors and group them into commands."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Optional, Sequence

from minishell.lexer import Token, TokenType

__all__ = ["ShellSyntaxError", "Redirection", "Command", "check_syntax", "parse"]

_UNSUPPORTED = frozenset(
    {TokenType.OR, TokenType.AND, TokenType.LPR, TokenType.BACKGROUND, TokenType.RPR}
)
_CONTROL = frozenset(
    {TokenType.AND, TokenType.OR, TokenType.PIPE, TokenType.BACKGROUND}
)
_REDIRECTIONS = frozenset(
    {
        TokenType.REDIRECT_IN,
        TokenType.REDIRECT_OUT,
        TokenType.APPEND_OUT,
        TokenType.HERE_DOC,
    }
)
_OPERATORS = frozenset({TokenType.PIPE, TokenType.AND, TokenType.OR})
_SAME_TWICE = frozenset({TokenType.AND, TokenType.OR, TokenType.BACKGROUND})

_NEWLINE_ERROR = "minishell: syntax error near unexpected token newline"


class ShellSyntaxError(ValueError):
    """Raised when a token stream is not a valid command line."""


@dataclass
class Redirection:
    """A redirection attached to a command."""

    type: TokenType
    filename: str


@dataclass
class Command:
    """One simple command of a pipeline."""

    argv: list[str] = field(default_factory=list)
    redirections: list[Redirection] = field(default_factory=list)
    heredocs: list[Redirection] = field(default_factory=list)
    operator: Optional[TokenType] = None
    fdin: int = 0
    fdout: int = 1


def _type_at(tokens: Sequence[Token], index: int) -> Optional[TokenType]:
    if index < 0:
        return None
    if index >= len(tokens):
        return TokenType.END
    return tokens[index].type


def check_syntax(tokens: Sequence[Token]) -> None:
    """Raise :class:`ShellSyntaxError` if ``tokens`` hold a syntax error."""
    count = len(tokens)
    for index, token in enumerate(tokens):
        kind = token.type
        if kind == TokenType.END:
            return
        following = _type_at(tokens, index + 1)
        if kind == TokenType.NOT_DEFINE:
            raise ShellSyntaxError("")
        if kind in _UNSUPPORTED:
            raise ShellSyntaxError(f"Syntax error: undefined token '{token.value}'")
        if (
            kind == TokenType.PIPE
            and _type_at(tokens, index - 1) != TokenType.AMBIGUOUS
            and following == TokenType.END
        ):
            raise ShellSyntaxError(
                f"Syntax error: undefined token 111 '{token.value}'"
            )
        if (
            kind in _REDIRECTIONS
            and following != TokenType.WORD
            and following != TokenType.AMBIGUOUS
        ):
            raise ShellSyntaxError(
                f"Syntax error: near unexpected token 2 '{token.value}'"
            )
        unexpected = (
            (kind == following and kind != TokenType.WORD)
            or (index == 0 and kind in _CONTROL)
            or (index == count - 1 and kind in _CONTROL)
            or (kind in _SAME_TWICE and following == kind)
        )
        if unexpected:
            raise ShellSyntaxError(f"Syntax error: unexpected token '{token.value}'")


def _is_parenthesis(tokens: Sequence[Token], index: int) -> bool:
    kind = tokens[index].type
    return (kind == TokenType.LPR and _type_at(tokens, index + 1) == TokenType.WORD) or (
        kind == TokenType.RPR
        and _type_at(tokens, index - 1) == TokenType.WORD
        and index > 1
    )


def parse(tokens: Sequence[Token]) -> list[Command]:
    """Group ``tokens`` into commands separated by operators.

    A command is kept if it has arguments; the last one is also kept when
    any redirection or parenthesis appeared earlier on the line.
    """
    commands: list[Command] = []
    current = Command()
    has_args = False
    marked = False
    index = 0
    while index < len(tokens) and tokens[index].type != TokenType.END:
        token = tokens[index]
        kind = token.type
        if kind == TokenType.WORD:
            current.argv.append(token.value)
            has_args = True
        elif kind in _OPERATORS:
            commands.append(current)
            current = Command(operator=kind)
            has_args = False
        elif kind in _REDIRECTIONS:
            if _type_at(tokens, index + 1) == TokenType.END:
                raise ShellSyntaxError(_NEWLINE_ERROR)
            index += 1
            redirection = Redirection(kind, tokens[index].value)
            if kind == TokenType.HERE_DOC:
                current.heredocs.append(redirection)
            else:
                current.redirections.append(redirection)
            marked = True
        elif _is_parenthesis(tokens, index):
            marked = True
        elif kind != TokenType.AMBIGUOUS:
            print(_NEWLINE_ERROR, file=sys.stderr)
        index += 1
    if has_args or marked:
        commands.append(current)
    return commands