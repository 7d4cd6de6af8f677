"""Tests for shortcut and workflow-suggestion derivation."""

from autoflow.patterns.miner import mine
from autoflow.patterns.rules import Shortcut, derive_shortcuts, derive_suggestions


def _names(shortcuts):
    return [s.name for s in shortcuts]


class TestShortcuts:
    def test_alias_for_frequent_program(self):
        report = mine(["git status"] * 5 + ["docker ps"] * 4)
        shortcuts = derive_shortcuts(report)
        assert _names(shortcuts) == ["g"]
        assert shortcuts[0].render() == "alias g='git'"

    def test_python_variants(self):
        report = mine(["python3 app.py"] * 6)
        [shortcut] = derive_shortcuts(report)
        assert shortcut.render() == "alias py='python3'"

    def test_function_for_frequent_sequence(self):
        history = ["git add .", "git commit -m x"] * 3
        shortcuts = derive_shortcuts(mine(history), threshold=100)
        assert _names(shortcuts) == ["gac"]
        assert "gac() {" in shortcuts[0].render()
        assert 'git add "$@" && git commit' in shortcuts[0].render()

    def test_cd_then_ls(self):
        history = ["cd src", "ls"] * 3
        assert "cdl" in _names(derive_shortcuts(mine(history), threshold=100))

    def test_below_threshold(self):
        assert derive_shortcuts(mine(["git status"] * 4)) == []

    def test_unmatched_commands_get_nothing(self):
        assert derive_shortcuts(mine(["terraform plan"] * 10)) == []

    def test_render_function(self):
        s = Shortcut("cdl", "function", 'cd "$@" && ls -la', "Change directory and list contents", "", 3)
        assert s.render() == '\n# Change directory and list contents\ncdl() {\n    cd "$@" && ls -la\n}'


class TestSuggestions:
    def test_git_sequence_suggests_deploy(self):
        history = ["git add .", "git commit -m wip"] * 3
        [suggestion] = derive_suggestions(mine(history))
        assert suggestion.workflow == "deploy-sequence"
        assert suggestion.count == 3
        assert "Usage: autoflow create deploy-sequence" in suggestion.render()

    def test_one_suggestion_per_rule(self):
        history = ["make", "make test"] * 4 + ["npm run build", "npm run test"] * 3
        suggestions = derive_suggestions(mine(history))
        assert [s.workflow for s in suggestions] == ["build-and-test"]
        assert suggestions[0].pattern == "make → make test"

    def test_docker(self):
        history = ["docker build -t app .", "docker run app"] * 3
        assert [s.workflow for s in derive_suggestions(mine(history))] == ["docker-deploy"]

    def test_threshold(self):
        history = ["git add .", "git commit"] * 2
        assert derive_suggestions(mine(history)) == []
