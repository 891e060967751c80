"""Tests for logging setup, formatters and context."""

import asyncio
import json
import logging

import pytest

from core.logging import (
    ConsoleFormatter,
    JSONFormatter,
    LoggedClass,
    clear_log_context,
    generate_run_id,
    get_log_context,
    log_exception,
    set_log_context,
    setup_logging,
)
from core.logging.setup import get_log_file_path
from core.errors import GatewayError


@pytest.fixture(autouse=True)
def cleanup():
    """Clean up log context and root handlers after each test."""
    clear_log_context()
    yield
    clear_log_context()
    logging.getLogger().handlers.clear()


def make_record(msg="hello", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="test", level=level, pathname=__file__, lineno=10,
        msg=msg, args=(), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestSetupLogging:

    def test_creates_file_in_domain_date_structure(self, tmp_path):
        setup_logging(stage="backfill", domain="appdata", log_dir=tmp_path)

        log_files = list(tmp_path.rglob("*.log"))
        assert len(log_files) == 1
        assert (tmp_path / "appdata").exists()
        assert log_files[0].name.startswith("appdata_backfill_")

    def test_file_and_console_handlers(self, tmp_path):
        setup_logging(stage="backfill", domain="appdata", log_dir=tmp_path)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 2

    def test_reinit_does_not_duplicate_handlers(self, tmp_path):
        setup_logging(log_dir=tmp_path)
        setup_logging(log_dir=tmp_path)

        assert len(logging.getLogger().handlers) == 2

    def test_suppresses_noisy_loggers(self, tmp_path):
        setup_logging(log_dir=tmp_path, suppress_noisy=True)

        assert logging.getLogger("aiohttp").level == logging.WARNING
        assert logging.getLogger("asyncpg").level == logging.WARNING

    def test_sets_context(self, tmp_path):
        setup_logging(stage="backfill", domain="appdata", log_dir=tmp_path, run_id="r-1")

        ctx = get_log_context()
        assert ctx == {"domain": "appdata", "stage": "backfill", "run_id": "r-1"}

    def test_json_lines_written_to_file(self, tmp_path):
        setup_logging(stage="backfill", domain="appdata", log_dir=tmp_path)
        logging.getLogger("test").info("ok 0 abcd", extra={"item_index": 0})
        for handler in logging.getLogger().handlers:
            handler.flush()

        log_file = next(tmp_path.rglob("*.log"))
        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        entry = next(line for line in lines if line["msg"] == "ok 0 abcd")
        assert entry["item_index"] == 0
        assert entry["stage"] == "backfill"

    def test_console_output(self, tmp_path, capsys):
        setup_logging(stage="backfill", log_dir=tmp_path, console_level=logging.INFO)
        logging.getLogger("test").info("Done. Have 3 total.")

        captured = capsys.readouterr()
        assert "Done. Have 3 total." in captured.out
        assert "[backfill]" in captured.out


class TestLogFilePath:

    def test_instance_id_appended(self, tmp_path):
        path = get_log_file_path(tmp_path, domain="appdata", stage="backfill", instance_id="p42")
        assert path.name.endswith("_p42.log")
        assert path.parent.parent == tmp_path / "appdata"

    def test_no_domain_or_stage(self, tmp_path):
        path = get_log_file_path(tmp_path)
        assert path.name.startswith("pipeline_")


class TestFormatters:

    def test_json_formatter_redacts_url_query(self):
        record = make_record(url="https://gw.example/ipfs/x?token=secret")
        entry = json.loads(JSONFormatter().format(record))

        assert "secret" not in entry["url"]

    def test_json_formatter_skips_unknown_extras(self):
        record = make_record(not_a_field="x", cid="bafybei")
        entry = json.loads(JSONFormatter().format(record))

        assert entry["cid"] == "bafybei"
        assert "not_a_field" not in entry

    def test_console_formatter_includes_message(self):
        set_log_context(stage="backfill")
        line = ConsoleFormatter().format(make_record("err 1 ff ipfs fetch: status 504"))

        assert line.endswith("[backfill] - err 1 ff ipfs fetch: status 504")


class TestContext:

    @pytest.mark.asyncio
    async def test_context_propagates_to_tasks(self):
        set_log_context(stage="backfill")

        async def read_stage():
            return get_log_context()["stage"]

        assert await asyncio.create_task(read_stage()) == "backfill"

    def test_run_id_format(self):
        run_id = generate_run_id()
        assert run_id.startswith("r-")
        assert len(run_id.split("-")) == 4


class TestLogHelpers:

    def test_log_exception_adds_category(self, caplog):
        logger = logging.getLogger("test.helpers")
        error = GatewayError("status 404, body ''", status_code=404)

        with caplog.at_level(logging.WARNING, logger="test.helpers"):
            log_exception(logger, error, "fetch failed", level=logging.WARNING,
                          include_traceback=False)

        record = caplog.records[-1]
        assert record.error_category == "permanent"
        assert record.error_message.startswith("status 404")

    def test_logged_class_adds_base_url(self, caplog):
        class Client(LoggedClass):
            def __init__(self):
                self.base_url = "https://ipfs.io"
                super().__init__()

        client = Client()
        with caplog.at_level(logging.DEBUG):
            client._log(logging.DEBUG, "hello", cid="bafy")

        record = caplog.records[-1]
        assert record.url == "https://ipfs.io"
        assert record.cid == "bafy"
