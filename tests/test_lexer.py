import pytest

from minishell.env import Environment, ShellState
from minishell.lexer import Token, TokenType, UnclosedQuoteError, tokenize


def make_state(*entries, exit_status=0, pid=0):
    return ShellState(
        env=Environment.from_strings(entries), exit_status=exit_status, pid=pid
    )


def words(tokens):
    return [t.value for t in tokens if t.type is TokenType.WORD]


def types(tokens):
    return [t.type for t in tokens]


def test_simple_words():
    tokens = tokenize("echo hello", make_state())
    assert tokens == [
        Token(TokenType.WORD, "echo"),
        Token(TokenType.WORD, "hello"),
        Token(TokenType.END, ""),
    ]


@pytest.mark.parametrize("line", ["", "   ", "ls -l", "a|b", "'x y'", "> f"])
def test_always_ends_with_end_token(line):
    tokens = tokenize(line, make_state())
    assert tokens[-1] == Token(TokenType.END, "")
    assert all(t.type is not TokenType.END for t in tokens[:-1])


def test_operators_and_redirections():
    tokens = tokenize("a | b > c >> d < e << f", make_state())
    assert types(tokens) == [
        TokenType.WORD,
        TokenType.PIPE,
        TokenType.WORD,
        TokenType.REDIRECT_OUT,
        TokenType.WORD,
        TokenType.APPEND_OUT,
        TokenType.WORD,
        TokenType.REDIRECT_IN,
        TokenType.WORD,
        TokenType.HERE_DOC,
        TokenType.WORD,
        TokenType.END,
    ]
    assert words(tokens) == ["a", "b", "c", "d", "e", "f"]


def test_operators_need_no_spaces():
    tokens = tokenize("cat<in>out", make_state())
    assert types(tokens) == [
        TokenType.WORD,
        TokenType.REDIRECT_IN,
        TokenType.WORD,
        TokenType.REDIRECT_OUT,
        TokenType.WORD,
        TokenType.END,
    ]


def test_double_bar_gives_or_then_pipe():
    tokens = tokenize("a||b", make_state())
    assert types(tokens) == [
        TokenType.WORD,
        TokenType.OR,
        TokenType.PIPE,
        TokenType.WORD,
        TokenType.END,
    ]


def test_and_and_background():
    assert tokenize("a && b", make_state())[1] == Token(TokenType.AND, "&&")
    assert tokenize("a & b", make_state())[1] == Token(TokenType.BACKGROUND, "&")


def test_parentheses():
    tokens = tokenize("(a)", make_state())
    assert tokens == [
        Token(TokenType.LPR, " ( "),
        Token(TokenType.WORD, "a"),
        Token(TokenType.RPR, " ) "),
        Token(TokenType.END, ""),
    ]


def test_redirect_followed_by_hash():
    tokens = tokenize(">#", make_state())
    assert tokens == [
        Token(TokenType.HASHTAG, ">"),
        Token(TokenType.WORD, "#"),
        Token(TokenType.END, ""),
    ]


def test_quotes_keep_spaces_and_operators():
    tokens = tokenize("echo \"a | b\" 'c > d'", make_state())
    assert words(tokens) == ["echo", "a | b", "c > d"]
    assert TokenType.PIPE not in types(tokens)


def test_empty_quotes_give_no_word():
    assert words(tokenize('echo ""', make_state())) == ["echo"]


def test_backslash_escapes_next_character():
    assert words(tokenize(r"a\ b", make_state())) == ["a b"]


def test_variable_expansion():
    state = make_state("HOME=/home/user")
    assert words(tokenize("cd $HOME", state)) == ["cd", "/home/user"]
    assert words(tokenize('"$HOME/x"', state)) == ["/home/user/x"]


def test_single_quotes_prevent_expansion():
    state = make_state("HOME=/home/user")
    assert words(tokenize("'$HOME'", state)) == ["$HOME"]


def test_unset_variable_gives_no_word():
    assert words(tokenize("echo $NOPE", make_state())) == ["echo"]


def test_unquoted_value_with_spaces_is_split():
    state = make_state("V=x y")
    assert words(tokenize("echo abc$V", state)) == ["echo", "x", "y"]


def test_quoted_value_with_spaces_is_not_split():
    state = make_state("V=x y")
    assert words(tokenize('echo "$V"', state)) == ["echo", "x y"]


def test_double_quote_seen_earlier_disables_splitting():
    state = make_state("V=x y")
    assert words(tokenize('"" $V', state)) == ["x y"]


def test_dollar_without_name_is_literal():
    state = make_state()
    assert words(tokenize("$", state)) == ["$"]
    assert words(tokenize("$-", state)) == ["$-"]


def test_exit_status_expansion_resets_status():
    state = make_state(exit_status=42)
    assert words(tokenize("echo $?", state)) == ["echo", "42"]
    assert state.exit_status == 0


def test_exit_status_expansion_suppresses_later_variables():
    state = make_state("HOME=/home/user", exit_status=7)
    assert words(tokenize("$? $HOME", state)) == ["7"]


def test_pid_expansion():
    state = make_state(pid=4321)
    assert words(tokenize("$$", state)) == [str(state.pid)]


def test_ambiguous_redirect(capsys):
    tokens = tokenize("echo > $NOPE", make_state())
    assert tokens == [
        Token(TokenType.WORD, "echo"),
        Token(TokenType.REDIRECT_OUT, ">"),
        Token(TokenType.AMBIGUOUS, "?"),
        Token(TokenType.END, ""),
    ]
    assert capsys.readouterr().out == "minishell: ambiguous redirect\n"


def test_redirect_to_variable_without_spaces_is_fine():
    tokens = tokenize("> $F", make_state("F=out.txt"))
    assert tokens[1] == Token(TokenType.WORD, "out.txt")


@pytest.mark.parametrize("line, quote", [('echo "abc', '"'), ("echo 'abc", "'")])
def test_unclosed_quote(line, quote):
    with pytest.raises(UnclosedQuoteError) as info:
        tokenize(line, make_state())
    assert info.value.quote == quote
    assert str(info.value) == f"Syntax error: unclosed quote '{quote}'"