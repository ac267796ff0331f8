"""
Tests for the rule runner.

Test Coverage:
    - Configuration from code and environment
    - Fatal initialization failures
    - Full runs: loading, firing, index and execution log
    - Session disposal on every path
"""

import json
import logging

import pytest
from pydantic import ValidationError

from factbridge.config import RunnerConfig
from factbridge.interface.runner import InitializationError, RuleRunner


class TestRunnerConfig:
    """Tests for RunnerConfig."""

    def test_defaults(self):
        config = RunnerConfig(rules_path=" rules/ ")
        assert config.rules_path == "rules/"
        assert not config.log_enabled
        assert config.max_fires is None

    def test_rules_path_required(self):
        with pytest.raises(ValidationError):
            RunnerConfig(rules_path="")

    def test_max_fires_positive(self):
        with pytest.raises(ValidationError):
            RunnerConfig(rules_path="rules", max_fires=0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FACTBRIDGE_RULES_PATH", "rules/main.json")
        monkeypatch.setenv("FACTBRIDGE_LOG_PATH", "logs/run")
        monkeypatch.setenv("FACTBRIDGE_MAX_FIRES", "50")

        config = RunnerConfig.from_env()
        assert config.rules_path == "rules/main.json"
        assert config.log_enabled
        assert config.max_fires == 50

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("FACTBRIDGE_RULES_PATH", "rules/main.json")
        monkeypatch.delenv("FACTBRIDGE_LOG_PATH", raising=False)
        monkeypatch.delenv("FACTBRIDGE_MAX_FIRES", raising=False)

        config = RunnerConfig.from_env(rules_path="other.json")
        assert config.rules_path == "other.json"
        assert not config.log_enabled

    def test_from_env_missing(self, monkeypatch):
        monkeypatch.delenv("FACTBRIDGE_RULES_PATH", raising=False)
        with pytest.raises(ValidationError):
            RunnerConfig.from_env()

    def test_runner_overrides(self):
        base = RunnerConfig(rules_path="rules")
        runner = RuleRunner(base, log_path="logs/run")
        assert runner.config.rules_path == "rules"
        assert runner.config.log_path == "logs/run"

    def test_runner_overrides_validated(self):
        base = RunnerConfig(rules_path="rules")
        with pytest.raises(ValidationError):
            RuleRunner(base, max_fires=0)
        with pytest.raises(ValidationError):
            RuleRunner(base, log_file="x")


class TestInitialize:
    """Initialization failures are fatal."""

    def test_compile_errors_logged(self, write_rules, caplog):
        path = write_rules("bad.json", rules=[
            {"name": "a", "then": "rule_helpers:does_not_exist"},
            {"name": "b", "then": "rule_helpers:NOT_CALLABLE"},
        ])
        runner = RuleRunner(rules_path=str(path))

        with caplog.at_level(logging.ERROR):
            with pytest.raises(InitializationError):
                runner.initialize()

        errors = [record for record in caplog.records if record.levelno == logging.ERROR]
        assert len(errors) == 2
        assert not runner.initialized

    def test_rule_module_import_failure(self, write_rules):
        path = write_rules("bad.json", rules=[{"name": "a", "then": "failing_rule_module:run"}])
        runner = RuleRunner(rules_path=str(path))

        with pytest.raises(InitializationError):
            runner.initialize()
        assert not runner.initialized

    def test_log_directory_not_creatable(self, token_rules, tmp_path):
        (tmp_path / "blocker").write_text("")
        runner = RuleRunner(rules_path=str(token_rules), log_path=str(tmp_path / "blocker" / "run"))

        with pytest.raises(InitializationError):
            runner.initialize()
        assert not runner.initialized

    def test_bare_log_name_accepted(self, token_rules):
        runner = RuleRunner(rules_path=str(token_rules), log_path="run")
        runner.initialize()
        assert runner.initialized

    def test_log_directory_created(self, token_rules, tmp_path):
        runner = RuleRunner(rules_path=str(token_rules), log_path=str(tmp_path / "logs" / "run"))
        runner.initialize()
        assert (tmp_path / "logs").is_dir()

    def test_process_before_initialize(self, token_rules, sample_document):
        runner = RuleRunner(rules_path=str(token_rules))
        with pytest.raises(InitializationError):
            runner.process(sample_document)


@pytest.mark.integration
class TestProcess:
    """Full runs over the sample document."""

    @pytest.fixture
    def runner(self, token_rules, tmp_path):
        runner = RuleRunner(rules_path=str(token_rules), log_path=str(tmp_path / "logs" / "run"))
        runner.initialize()
        return runner

    def test_run(self, runner, sample_document, caplog):
        with caplog.at_level(logging.INFO):
            result = runner.process(sample_document)

        # Four tokens and the sentence load; punctuation is dropped and a note added
        assert result.loaded == 5
        assert result.rules_fired == 5
        assert result.fact_count == 5
        assert "Firing rules now!" in caplog.text
        assert "There are 5 facts." in caplog.text

    def test_index_follows_rules(self, runner, sample_document, caplog):
        with caplog.at_level(logging.WARNING):
            result = runner.process(sample_document)

        tokens = result.index.get("Token")
        assert [token["form"] for token in tokens] == ["The", "dog", "barks"]
        assert [token["lemma"] for token in tokens] == ["the", "dog", "barks"]
        assert len(result.index.get("Sentence")) == 1
        assert len(result.index) == 4
        assert "Cannot add fact to index, not a node" in caplog.text

    def test_execution_log_written(self, runner, sample_document, tmp_path):
        result = runner.process(sample_document)

        assert result.log_path == tmp_path / "logs" / "run.log"
        events = json.loads(result.log_path.read_text(encoding="utf-8"))["events"]
        rules = {event["rule_name"] for event in events if event["rule_name"]}
        assert rules == {"drop-punctuation", "lemmatize", "note-sentence"}
        assert [event["event_type"] for event in events[:5]] == ["inserted"] * 5

    def test_runs_are_independent(self, runner, sample_document):
        """A second run starts from a fresh session and index."""
        first = runner.process(sample_document)
        second = runner.process(sample_document)

        assert first.index is not second.index
        assert second.loaded == 5
        # Lemmas were set on the shared nodes by the first run
        assert second.rules_fired == 2

    def test_no_log_configured(self, token_rules, sample_document):
        runner = RuleRunner(rules_path=str(token_rules))
        runner.initialize()
        assert runner.process(sample_document).log_path is None

    def test_max_fires(self, token_rules, sample_document):
        runner = RuleRunner(rules_path=str(token_rules), max_fires=2)
        runner.initialize()
        assert runner.process(sample_document).rules_fired == 2

    def test_session_disposed(self, runner, sample_document, monkeypatch):
        sessions = []
        new_session = runner.rule_set.new_session

        def capture():
            session = new_session()
            sessions.append(session)
            return session

        monkeypatch.setattr(runner.rule_set, "new_session", capture)
        runner.process(sample_document)
        assert sessions[0].disposed

    def test_session_disposed_on_rule_error(self, write_rules, sample_document, monkeypatch):
        path = write_rules("explode.json", rules=[{"name": "explode", "then": "rule_helpers:explode"}])
        runner = RuleRunner(rules_path=str(path))
        runner.initialize()

        sessions = []
        new_session = runner.rule_set.new_session

        def capture():
            session = new_session()
            sessions.append(session)
            return session

        monkeypatch.setattr(runner.rule_set, "new_session", capture)
        with pytest.raises(RuntimeError):
            runner.process(sample_document)
        assert sessions[0].disposed
