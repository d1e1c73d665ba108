import os

from spillcache.cache import Cache
from spillcache.cli import main
from spillcache.exceptions import ParserError
from spillcache.executor import Executor
from spillcache.parser import CommandParser

import pytest

#-------------FIXTURES----------------
@pytest.fixture
def executor(tmp_path):
    cache = Cache(path=tmp_path / "cache", fsync=False)
    return Executor(cache, CommandParser())

#-------------PARSER----------------
def test_parse_quoted_arguments():
    parser = CommandParser()
    assert parser.parse('SET greeting "hello world" 30') == ("set", ["greeting", "hello world", "30"])
    assert parser.parse("get 'my key'") == ("get", ["my key"])

@pytest.mark.parametrize("command", ["", "flushall", "get", "set k", "keys extra"])
def test_parse_errors(command):
    with pytest.raises(ParserError):
        CommandParser().parse(command)

def test_parse_optional_arguments():
    parser = CommandParser()
    assert parser.parse("set k v") == ("set", ["k", "v"])
    assert parser.parse("reset") == ("reset", [])
    assert parser.parse("RESET k") == ("reset", ["k"])
    assert parser.parse('get ""') == ("get", [""])

def test_parse_error_shows_usage():
    with pytest.raises(ParserError, match=r"usage is 'set key value \[ttl\]'"):
        CommandParser().parse("set a b c d")
    with pytest.raises(ParserError, match="expected one of: del, get"):
        CommandParser().parse("flushall")

#-------------COMMANDS----------------
def test_set_and_get(executor):
    assert executor.execute("set key1 value1") == "OK"
    assert executor.execute("get key1") == "value1"

def test_get_no_existence(executor):
    assert executor.execute("get key1") == "(nil)"

def test_keys(executor):
    assert executor.execute("KEYS") == "(empty)"
    executor.execute("SET key1 value1")
    executor.execute("SET key2 value2")
    assert sorted(executor.execute("KEYS").split()) == ["key1", "key2"]

def test_del(executor):
    executor.execute("SET key1 value1")
    assert executor.execute("DEL key1") == "(integer) 1"
    assert executor.execute("DEL key1") == "(integer) 0"

def test_reset(executor):
    executor.execute("SET key1 value1")
    executor.execute("SET key2 value2")
    assert executor.execute("RESET key1") == "OK"
    assert executor.execute("KEYS") == "key2"
    assert executor.execute("RESET") == "OK"
    assert executor.execute("KEYS") == "(empty)"

def test_size_and_stats(executor):
    assert executor.execute("SIZE") == "(integer) 0"
    executor.execute("SET key1 value1")
    assert executor.execute("SIZE") != "(integer) 0"
    assert "sets: 1" in executor.execute("STATS")

def test_errors_are_reported(executor):
    assert executor.execute("GET").startswith("ERROR:")
    assert executor.execute("SET k v not-a-number").startswith("ERROR:")
    assert executor.execute("SET k v -3") == "ERROR: ttl must be a finite number >= 0, got -3.0"
    assert executor.execute("SET k v inf") == "ERROR: ttl must be a finite number >= 0, got inf"
    assert executor.execute("KEYS") == "(empty)"

def test_entry_too_big(tmp_path):
    cache = Cache(path=tmp_path / "cache", max_size=20, fsync=False)
    executor = Executor(cache, CommandParser())
    assert executor.execute("SET key " + "x" * 50).startswith("ERROR: Entry 'key' is")

#-------------CLI----------------
def test_cli_single_commands(tmp_path, capsys):
    path = str(tmp_path / "cache")
    assert main(["--path", path, "set", "greeting", "hello world"]) == 0
    assert main(["--path", path, "get", "greeting"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["OK", "hello world"]
    assert len(os.listdir(path)) == 1

def test_cli_reports_errors(tmp_path, capsys):
    assert main(["--path", str(tmp_path / "cache"), "bogus"]) == 1
    assert capsys.readouterr().out.startswith("ERROR:")

def test_cli_reads_stdin(tmp_path, capsys, monkeypatch):
    import io
    monkeypatch.setattr("sys.stdin", io.StringIO("set a 1\nget a\n\nexit\nget a\n"))
    assert main(["--path", str(tmp_path / "cache")]) == 0
    assert capsys.readouterr().out.splitlines() == ["OK", "1"]
