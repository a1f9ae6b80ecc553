import pytest

from minishell.env import Environment, ShellState


@pytest.fixture
def env():
    return Environment.from_strings(["HOME=/home/user", "PATH=/bin:/usr/bin", "EMPTY="])


def test_from_strings_keeps_order(env):
    assert list(env.items()) == [
        ("HOME", "/home/user"),
        ("PATH", "/bin:/usr/bin"),
        ("EMPTY", ""),
    ]


def test_from_strings_splits_at_first_equals():
    env = Environment.from_strings(["A=b=c"])
    assert env.get("A") == "b=c"


def test_entry_without_equals_has_no_value():
    env = Environment.from_strings(["FLAG"])
    assert env.contains("FLAG")
    assert env.get("FLAG") is None


def test_get_requires_exact_name(env):
    assert env.get("HOM") is None
    assert env.get("HOMEX") is None
    assert env.get("HOME") == "/home/user"


def test_set_replaces_in_place(env):
    env.set("PATH", "/sbin")
    assert list(env) == ["HOME", "PATH", "EMPTY"]
    assert env.get("PATH") == "/sbin"


def test_set_new_variable_goes_first(env):
    env.set("NEW", "x")
    assert list(env)[0] == "NEW"
    assert len(env) == 4


def test_append_to_existing(env):
    env.append("PATH", ":/opt")
    assert env.get("PATH") == "/bin:/usr/bin:/opt"


def test_append_creates_missing():
    env = Environment()
    env.append("X", "abc")
    assert env.get("X") == "abc"


def test_append_to_valueless_variable_keeps_no_value():
    env = Environment.from_strings(["FLAG"])
    env.append("FLAG", "more")
    assert env.get("FLAG") is None


def test_declare_new_gets_empty_value():
    env = Environment()
    env.declare("VAR")
    assert env.get("VAR") == ""
    assert "VAR" in env


def test_declare_existing_keeps_value(env):
    env.declare("HOME")
    assert env.get("HOME") == "/home/user"
    assert len(env) == 3


def test_update_only_changes_existing(env):
    env.update("HOME", "/tmp")
    env.update("OLDPWD", "/somewhere")
    assert env.get("HOME") == "/tmp"
    assert not env.contains("OLDPWD")


def test_unset_removes_variable(env):
    env.unset("PATH")
    assert list(env) == ["HOME", "EMPTY"]
    env.unset("MISSING")
    assert len(env) == 2


def test_sort_orders_by_name():
    env = Environment.from_strings(["b=2", "_=x", "A=1", "a=3"])
    env.sort()
    names = list(env)
    assert names == sorted(names)
    assert env.get("a") == "3"


def test_to_strings_round_trip(env):
    strings = env.to_strings()
    again = Environment.from_strings(strings)
    assert list(again.items()) == list(env.items())


def test_to_strings_skips_valueless():
    env = Environment.from_strings(["FLAG", "A=1"])
    assert env.to_strings() == ["A=1"]


def test_shell_state_defaults():
    state = ShellState()
    assert state.exit_status == 0
    assert len(state.env) == 0
    other = ShellState()
    other.env.set("X", "1")
    assert not state.env.contains("X")