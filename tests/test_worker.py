"""Job worker tests: handlers, runner and the Celery task."""

from unittest.mock import MagicMock, patch

import pytest
from celery.exceptions import Retry
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.dialects import postgresql

from irondb.config import Settings
from irondb.models.enums import JobStatus
from irondb.tasks.handlers import InvalidJobError, bulk_insert, rpc_trigger
from irondb.tasks.jobs import JobRunner, process_job


@pytest.fixture
def people_table(test_engine):
    """A caller-defined table for bulk inserts."""
    with test_engine.begin() as conn:
        conn.execute(text("CREATE TABLE people (id INTEGER PRIMARY KEY, name TEXT, age INTEGER)"))
    return "people"


def _count(engine, table: str) -> int:
    with engine.connect() as conn:
        return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one()


def _mock_engine(resolved=("public", "refresh_stats")):
    """Engine double whose connection resolves one catalog function."""
    engine = MagicMock()
    conn = engine.begin.return_value.__enter__.return_value
    conn.dialect.identifier_preparer = postgresql.dialect().identifier_preparer
    conn.execute.return_value.first.return_value = resolved
    return engine, conn


class TestBulkInsert:
    """Tests for the bulk_insert handler."""

    def test_inserts_rows_in_chunks(self, test_engine, people_table):
        rows = [{"name": f"p{i}", "age": 20 + i} for i in range(5)]
        result = bulk_insert(
            test_engine,
            {"table": people_table, "rows": rows},
            Settings(bulk_insert_chunk_size=2),
        )

        assert result == {"status": "success", "rows_written": 5}
        assert _count(test_engine, people_table) == 5

    def test_empty_rows_succeed_without_database(self):
        engine = MagicMock()
        result = bulk_insert(engine, {"table": "people", "rows": []}, Settings())

        assert result == {"status": "success", "rows_written": 0}
        engine.begin.assert_not_called()

    def test_unknown_table(self, test_engine):
        with pytest.raises(InvalidJobError, match="Unknown table"):
            bulk_insert(test_engine, {"table": "nope", "rows": [{"a": 1}]}, Settings())

    def test_unknown_column_writes_nothing(self, test_engine, people_table):
        rows = [{"name": "x", "shoe_size": 9}]
        with pytest.raises(InvalidJobError, match="shoe_size"):
            bulk_insert(test_engine, {"table": people_table, "rows": rows}, Settings())
        assert _count(test_engine, people_table) == 0

    def test_mismatched_row_keys(self, test_engine, people_table):
        rows = [{"name": "a"}, {"name": "b", "age": 3}]
        with pytest.raises(InvalidJobError, match="same columns"):
            bulk_insert(test_engine, {"table": people_table, "rows": rows}, Settings())

    def test_failure_rolls_back_whole_job(self, test_engine, people_table):
        rows = [{"id": 1, "name": "a"}, {"id": 1, "name": "dup"}, {"id": 2, "name": "b"}]
        with pytest.raises(IntegrityError):
            bulk_insert(
                test_engine,
                {"table": people_table, "rows": rows},
                Settings(bulk_insert_chunk_size=1),
            )
        assert _count(test_engine, people_table) == 0


class TestRpcTrigger:
    """Tests for the rpc_trigger handler."""

    def test_calls_resolved_function_once_with_bound_param(self):
        engine, conn = _mock_engine()
        result = rpc_trigger(
            engine, {"functionName": "refresh_stats", "params": {"days": 7}}, Settings()
        )

        assert result == {"status": "success", "function": "public.refresh_stats"}
        calls = [c for c in conn.execute.call_args_list if "refresh_stats\"(" in c.args[0].text]
        assert len(calls) == 1
        stmt, params = calls[0].args
        assert stmt.text == 'SELECT "public"."refresh_stats"(:params)'
        assert params == {"params": '{"days": 7}'}

    def test_without_params_binds_null(self):
        engine, conn = _mock_engine()
        rpc_trigger(engine, {"functionName": "public.refresh_stats"}, Settings())

        stmt, params = conn.execute.call_args_list[-1].args
        assert stmt.text == 'SELECT "public"."refresh_stats"(:params)'
        assert params == {"params": None}

    @pytest.mark.parametrize(
        "name",
        ["refresh_stats(); DROP TABLE users; --", "a.b.c", "1abc", "", "pg catalog.x"],
    )
    def test_rejects_non_identifier_names(self, name):
        engine = MagicMock()
        with pytest.raises(InvalidJobError):
            rpc_trigger(engine, {"functionName": name}, Settings())
        engine.begin.assert_not_called()

    def test_allowlist_rejects_other_functions(self):
        engine = MagicMock()
        settings = Settings(rpc_allowed_functions=["refresh_stats"])
        with pytest.raises(InvalidJobError, match="not allowed"):
            rpc_trigger(engine, {"functionName": "drop_everything"}, settings)
        engine.begin.assert_not_called()

    def test_unknown_function(self):
        engine, _ = _mock_engine(resolved=None)
        with pytest.raises(InvalidJobError, match="Unknown function"):
            rpc_trigger(engine, {"functionName": "missing_fn"}, Settings())


class TestJobRunner:
    """Tests for status transitions."""

    def test_success_transitions_once(self, test_engine, people_table):
        transitions = []
        runner = JobRunner(
            test_engine,
            on_transition=lambda job_id, status: transitions.append((job_id, status)),
        )

        result = runner.run("job-1", "bulk_insert", {"table": people_table, "rows": [{"name": "a"}]})

        assert result["rows_written"] == 1
        assert transitions == [("job-1", JobStatus.PROCESSING), ("job-1", JobStatus.SUCCESS)]

    def test_unknown_task_type(self):
        runner = JobRunner(MagicMock(), on_transition=lambda *_: None)
        with pytest.raises(InvalidJobError, match="Unknown task type"):
            runner.run("job-2", "send_emails", {})

    def test_handler_errors_propagate_without_success(self):
        transitions = []
        runner = JobRunner(
            MagicMock(),
            on_transition=lambda job_id, status: transitions.append(status),
        )
        with pytest.raises(InvalidJobError):
            runner.run("job-3", "rpc_trigger", {"functionName": "bad name"})
        assert transitions == [JobStatus.PROCESSING]


class TestProcessJobTask:
    """Tests for the Celery task wrapper."""

    def test_success(self, test_engine, people_table):
        with patch("irondb.tasks.jobs.get_worker_engine", return_value=test_engine):
            result = process_job.apply(
                args=["bulk_insert", {"table": people_table, "rows": [{"name": "a"}]}]
            )

        assert result.state == "SUCCESS"
        assert result.result == {"status": "success", "rows_written": 1}

    def test_empty_bulk_insert_is_success(self):
        with patch("irondb.tasks.jobs.get_worker_engine", return_value=MagicMock()):
            result = process_job.apply(args=["bulk_insert", {"table": "people", "rows": []}])

        assert result.state == "SUCCESS"
        assert result.result["rows_written"] == 0

    def test_invalid_job_fails_without_retry(self):
        with (
            patch("irondb.tasks.jobs.get_worker_engine", return_value=MagicMock()),
            patch("irondb.tasks.jobs.record_failed_job") as mock_record,
            patch.object(process_job, "retry") as mock_retry,
        ):
            result = process_job.apply(args=["rpc_trigger", {"functionName": "x; --"}])

        assert result.state == "FAILURE"
        mock_retry.assert_not_called()
        mock_record.assert_called_once()

    def test_transient_error_is_retried(self):
        with (
            patch("irondb.tasks.jobs.get_worker_engine", return_value=MagicMock()),
            patch("irondb.tasks.jobs.JobRunner.run", side_effect=RuntimeError("db down")),
            patch("irondb.tasks.jobs.record_failed_job") as mock_record,
            patch.object(process_job, "retry", side_effect=Retry()) as mock_retry,
        ):
            process_job.apply(args=["rpc_trigger", {"functionName": "refresh_stats"}])

        mock_retry.assert_called_once()
        mock_record.assert_not_called()

    def test_exhausted_retries_record_failure(self):
        with (
            patch("irondb.tasks.jobs.get_worker_engine", return_value=MagicMock()),
            patch("irondb.tasks.jobs.JobRunner.run", side_effect=RuntimeError("db down")),
            patch("irondb.tasks.jobs.record_failed_job") as mock_record,
        ):
            result = process_job.apply(
                args=["rpc_trigger", {"functionName": "refresh_stats"}],
                retries=process_job.max_retries,
            )

        assert result.state == "FAILURE"
        job_id, task_type, payload, error = mock_record.call_args.args
        assert task_type == "rpc_trigger"
        assert error == "db down"

    def test_failure_log_outage_keeps_original_error(self):
        with (
            patch("irondb.tasks.jobs.get_worker_engine", return_value=MagicMock()),
            patch("irondb.tasks.jobs.JobRunner.run", side_effect=RuntimeError("db down")),
            patch(
                "irondb.tasks.jobs.record_failed_job",
                side_effect=RedisConnectionError("redis unreachable"),
            ) as mock_record,
        ):
            result = process_job.apply(
                args=["rpc_trigger", {"functionName": "refresh_stats"}],
                retries=process_job.max_retries,
            )

        mock_record.assert_called_once()
        assert result.state == "FAILURE"
        assert isinstance(result.result, RuntimeError)
        assert str(result.result) == "db down"
