import json
import tempfile
import os
import pytest
from unittest.mock import patch
from deployment_lifecycle.cli import load_failures, main
from deployment_lifecycle.failure import FailureReporter
from deployment_lifecycle.models import Failure


def write_json(data):
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        json.dump(data, f)
        return f.name


class TestCLIFileOperations:
    """Test loading failure records from real files."""

    def test_load_failures_valid_json(self):
        temp_path = write_json([
            {"arn": "arn:task/1", "polls": 2, "reason": "RESOURCE:MEMORY"},
            {"arn": "arn:task/2"}
        ])
        try:
            reporter = load_failures(temp_path)
            assert isinstance(reporter, FailureReporter)
            assert reporter.fail_map == {"arn:task/1": 2, "arn:task/2": 1}
            assert reporter.reasons == {"arn:task/1": "RESOURCE:MEMORY"}
        finally:
            os.unlink(temp_path)

    @pytest.mark.asyncio
    async def test_loaded_reporter_reports_failures(self):
        temp_path = write_json([{"arn": "arn:task/1", "reason": "MISSING"}])
        try:
            reporter = load_failures(temp_path)
            assert await reporter.report() == [Failure("arn:task/1", "MISSING")]
            assert await reporter.report() == []
        finally:
            os.unlink(temp_path)

    def test_load_failures_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            load_failures("non_existent_file.json")

    def test_load_failures_invalid_json(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            f.write("invalid json content")
            temp_path = f.name
        try:
            with pytest.raises(json.JSONDecodeError):
                load_failures(temp_path)
        finally:
            os.unlink(temp_path)

    def test_load_failures_missing_arn(self):
        temp_path = write_json([{"polls": 1}])
        try:
            with pytest.raises(KeyError):
                load_failures(temp_path)
        finally:
            os.unlink(temp_path)


class TestCLIArgumentParsing:
    """Test CLI argument parsing without running a deployment."""

    def test_help_displays_correctly(self):
        with patch('sys.argv', ['deployment-lifecycle', '--help']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 0

    def test_run_help_displays_correctly(self):
        with patch('sys.argv', ['deployment-lifecycle', 'run', '--help']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 0

    def test_missing_command_fails(self):
        with patch('sys.argv', ['deployment-lifecycle']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code != 0

    def test_missing_required_arguments_fails(self):
        with patch('sys.argv', ['deployment-lifecycle', 'run']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code != 0

        with patch('sys.argv', ['deployment-lifecycle', 'run', '--task-definition', 'svc:7']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code != 0

    def test_invalid_argument_values_fail(self):
        with patch('sys.argv', ['deployment-lifecycle', '--log-level', 'INVALID', 'run',
                                '--task-definition', 'svc:7', '--desired-count', '5']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code != 0

        with patch('sys.argv', ['deployment-lifecycle', 'run', '--task-definition', 'svc:7',
                                '--desired-count', 'five']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code != 0


class TestCLIRun:
    """End-to-end runs of the CLI."""

    def test_run_healthy_deployment(self, capsys):
        with patch('sys.argv', ['deployment-lifecycle', '--log-level', 'warning', 'run',
                                '--task-definition', 'svc:7', '--desired-count', '5', '--token', 'tok-1']):
            main()

        output = json.loads(capsys.readouterr().out)
        deployment = output["deployment"]
        assert deployment["id"] == "tok-1"
        assert deployment["status"] == "completed"
        assert deployment["health"] == "healthy"
        assert deployment["desired_task_count"] == 5
        assert deployment["end_time"] is not None
        assert [h["event"] for h in output["history"]] == ["created", "in_progress", "completed"]

    def test_run_with_persistent_failure(self, capsys):
        temp_path = write_json([{"arn": "arn:task/1", "polls": 2, "reason": "CannotPullContainerError"}])
        try:
            with patch('sys.argv', ['deployment-lifecycle', 'run', '--task-definition', 'svc:7',
                                    '--desired-count', '2', '--failures', temp_path]):
                main()
        finally:
            os.unlink(temp_path)

        deployment = json.loads(capsys.readouterr().out)["deployment"]
        assert deployment["health"] == "unhealthy"
        assert deployment["failed_instances"] == [{"arn": "arn:task/1", "reason": "CannotPullContainerError"}]

    def test_run_with_empty_task_definition_exits(self, capsys):
        with patch('sys.argv', ['deployment-lifecycle', 'run', '--task-definition', '',
                                '--desired-count', '5']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 1
        assert "Error: task definition should not be empty" in capsys.readouterr().out

    def test_run_with_missing_failures_file_exits(self, capsys):
        with patch('sys.argv', ['deployment-lifecycle', 'run', '--task-definition', 'svc:7',
                                '--desired-count', '5', '--failures', 'non_existent_file.json']):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 1
        assert capsys.readouterr().out.startswith("Error:")
