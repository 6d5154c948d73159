"""
Integration tests for the operator commands.
"""

import json
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

from ingest_queue.commands import dead_letter as dead_letter_cmd
from ingest_queue.commands import drain as drain_cmd
from ingest_queue.queue.gateway import enqueue
from ingest_queue.types.job import JobContext, JobResult


def _read_json(capsys) -> dict:
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


class TestDrainCommand:
    """Tests for ingest-drain argument handling."""

    def test_defaults_from_settings(self):
        args = drain_cmd.build_parser().parse_args([])

        assert args.limit >= 1
        assert args.max_loops >= 1

    def test_parses_options(self):
        args = drain_cmd.build_parser().parse_args(["--limit", "5", "--max-loops", "2"])

        assert (args.limit, args.max_loops) == (5, 2)

    @pytest.mark.parametrize("argv", [["--limit", "0"], ["--max-loops", "0"]])
    def test_rejects_non_positive_values(self, argv, capsys):
        assert drain_cmd.main(argv) == 2
        assert "must be >= 1" in capsys.readouterr().err


class TestDeadLetterCommand:
    """Tests for ingest-dead-letter."""

    @pytest_asyncio.fixture
    async def dead_lettered(self, dispatcher, registry, make_envelope, test_settings):
        @registry.register("test.event")
        async def handler(context: JobContext) -> JobResult:
            return JobResult(success=False, error="rejected", retryable=False)

        job_ids = [
            (await enqueue(make_envelope(), settings=test_settings)).job_id for _ in range(2)
        ]
        await dispatcher.drain()
        return job_ids

    def test_parses_requeue_job_id(self):
        job_id = uuid4()
        args = dead_letter_cmd.build_parser().parse_args(["requeue", "--job-id", str(job_id)])

        assert args.command == "requeue"
        assert args.job_id == job_id

    def test_requires_subcommand(self):
        with pytest.raises(SystemExit):
            dead_letter_cmd.build_parser().parse_args([])

    async def test_list(self, dead_lettered, capsys, test_tenant_id):
        args = dead_letter_cmd.build_parser().parse_args(
            ["list", "--tenant-id", test_tenant_id, "--include-payload"]
        )

        assert await dead_letter_cmd._list(args) == 0

        document = _read_json(capsys)
        assert document["event"] == "dead_letter_list"
        assert document["count"] == 2
        assert {UUID(job["id"]) for job in document["jobs"]} == set(dead_lettered)
        assert all("payload" in job for job in document["jobs"])

    async def test_requeue_one(self, dead_lettered, capsys):
        args = dead_letter_cmd.build_parser().parse_args(
            ["requeue", "--job-id", str(dead_lettered[0])]
        )

        assert await dead_letter_cmd._requeue(args) == 0
        assert _read_json(capsys)["requeued"] is True

        # Already pending now
        assert await dead_letter_cmd._requeue(args) == 1
        assert _read_json(capsys)["requeued"] is False

    async def test_requeue_many(self, dead_lettered, capsys):
        args = dead_letter_cmd.build_parser().parse_args(["requeue"])

        assert await dead_letter_cmd._requeue(args) == 0

        document = _read_json(capsys)
        assert document["event"] == "dead_letter_requeue_many"
        assert document["tenant_id"] == "all"
        assert document["requeued_count"] == 2
