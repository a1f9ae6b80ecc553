# minishell

A small interactive shell. It reads a command line, splits it into
tokens while expanding variables, checks the syntax, groups the tokens
into commands, and runs them as a pipeline of builtins and external
programs.

## Features

- Pipelines joined with `|`
- File redirections `<`, `>` and `>>`
- Single and double quotes, and backslash escapes
- Expansion of `$NAME`, `$?` and `$$`
  - `$?` gives the last exit status and then resets it to 0
  - `$$` gives the `pid` field of the shell state (0 unless set)
- An unquoted expansion that holds whitespace is split into several words
- An expansion that is empty or holds a space right after a redirection
  is reported as `minishell: ambiguous redirect`
- Builtins: `echo` (with `-n`), `cd` (with `-`, `~` and `--`), `pwd`,
  `export` (with `NAME=value`, `NAME+=value` and bare `NAME`), `unset`,
  `env` and `exit`
- Programs are looked up on `PATH`, or on
  `/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin` when
  `PATH` is not set; a name holding `/` is used as a path

Before running a line, the shell prints a description of the commands
it parsed: their arguments, file descriptors and redirections.

## Installing

```
pip install .
```

## Running

Start the interactive shell:

```
minishell
```

The prompt is `minishell> ` (in green). Press Ctrl-D at the prompt to
leave, or run `exit` with an optional numeric status. Ctrl-C abandons
the current line and sets the exit status to 130.

## Using it from Python

```python
from minishell.env import Environment, ShellState
from minishell.shell import run_line

state = ShellState(env=Environment.from_strings(["HOME=/tmp", "PATH=/usr/bin:/bin"]))
run_line(state, "export GREETING=hello")
run_line(state, "echo $GREETING world > out.txt")
print(state.exit_status)
```

`run_line` returns the exit status; `exit` raises
`minishell.builtins.ExitShell`, whose `status` attribute holds the code.

The stages can be used on their own:

- `minishell.lexer.tokenize(line, state)` turns a line into `Token`s,
  ending with an `END` token; it raises `UnclosedQuoteError` when a quote
  is left open.
- `minishell.parser.check_syntax(tokens)` raises `ShellSyntaxError` on a
  syntax error, and `minishell.parser.parse(tokens)` returns a list of
  `Command`s with their `argv`, `redirections` and `heredocs`.
- `minishell.executor.execute(state, commands)` opens the redirections,
  runs the commands and returns the new exit status;
  `minishell.executor.find_path(command, environ)` locates a program.
- `minishell.builtins` holds the builtins, for example `echo(argv)`,
  which returns the text `echo` would print.
- `minishell.env.Environment` is the ordered list of variables, and
  `ShellState` holds it together with the exit status.

## What it does not do

- `||`, `&&`, `&`, `(` and `)` are recognised but reported as syntax
  errors; there are no lists, background jobs or subshells.
- Here-documents (`<<`) are parsed and kept on each command, but never
  read or fed to the command.
- Builtins that run as a stage of a pipeline work on a copy of the shell
  state, so `cd`, `export` or `unset` there do not change the shell.
- There is no globbing, no command substitution and no script mode: the
  shell only reads lines interactively.

## Testing

```
pip install ".[test]"
pytest
```