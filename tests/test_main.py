"""Tests for the command-line entry point with the UI and exec faked out."""

import pytest

import histpick


class FakeApp:
    """Stands in for HistoryPickerApp; records the initial state and returns a preset pick."""

    instances: list["FakeApp"] = []
    result: str | None = None

    def __init__(self, state, *args, **kwargs):
        self.state = state
        FakeApp.instances.append(self)

    def run(self):
        return FakeApp.result


@pytest.fixture
def fake_app(monkeypatch):
    FakeApp.instances = []
    FakeApp.result = None
    monkeypatch.setattr(histpick, "HistoryPickerApp", FakeApp)
    return FakeApp


@pytest.fixture
def launches(monkeypatch):
    calls = []
    monkeypatch.setattr(histpick, "launch", lambda program, args: calls.append((program, args)))
    return calls


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


class TestMain:
    def test_quit_exits_zero_without_launch(self, home, fake_app, launches):
        (home / ".bash_history").write_text("ls\n")
        assert histpick.main([]) == 0
        assert launches == []

    def test_no_history_file(self, home, fake_app, launches):
        assert histpick.main([]) == 0
        state = fake_app.instances[0].state
        assert state.history == ()
        assert histpick.render_model(state).status == "0 of 0 commands"
        assert launches == []

    def test_words_become_seed_query(self, home, fake_app, launches):
        (home / ".bash_history").write_text("ls\ncd /tmp\nls -la\nls\n")
        histpick.main(["ls", "-"])
        state = fake_app.instances[0].state
        assert state.query == "ls -"
        assert [state.history[i] for i in state.filtered] == ["ls -la"]

    def test_selection_is_launched(self, home, fake_app, launches):
        (home / ".zsh_history").write_text(': 1:0;git commit -m "fix bug"\n')
        fake_app.result = 'git commit -m "fix bug"'
        assert histpick.main([]) == 0
        assert launches == [("git", ["commit", "-m", "fix bug"])]

    def test_launch_failure_exits_one(self, home, fake_app, monkeypatch, capsys):
        def failing(program, args):
            raise FileNotFoundError(2, "No such file or directory", program)

        monkeypatch.setattr(histpick, "launch", failing)
        fake_app.result = "nope --flag"
        assert histpick.main([]) == 1
        err = capsys.readouterr().err
        assert "Failed to exec" in err
        assert "No such file or directory" in err

    def test_print_writes_selection_instead_of_launching(self, home, fake_app, launches, capsys):
        fake_app.result = "echo hi"
        assert histpick.main(["--print"]) == 0
        assert capsys.readouterr().out == "echo hi\n"
        assert launches == []

    def test_explicit_file(self, tmp_path, fake_app, launches, monkeypatch):
        monkeypatch.delenv("HOME", raising=False)
        path = tmp_path / "saved_history"
        path.write_text("one\ntwo\n")
        assert histpick.main(["-f", str(path)]) == 0
        assert fake_app.instances[0].state.history == ("two", "one")

    def test_missing_home_is_fatal(self, fake_app, launches, monkeypatch, capsys):
        monkeypatch.delenv("HOME", raising=False)
        assert histpick.main([]) == 1
        assert "HOME isn't set" in capsys.readouterr().err
        assert fake_app.instances == []

    def test_unreadable_history_is_fatal(self, home, fake_app, launches, capsys):
        (home / ".bash_history").mkdir()
        assert histpick.main([]) == 1
        assert "Error reading history file" in capsys.readouterr().err
        assert fake_app.instances == []

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            histpick.main(["--version"])
        assert excinfo.value.code == 0
        assert histpick.__version__ in capsys.readouterr().out
