"""
Unit tests for the ``octetpost`` command line.
"""

from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Any

import httpx
import pytest

from octetpost import cli
from octetpost.client import AsyncPostClient
from octetpost.core.transport import HttpxTransport

URL = "https://api.example.com/ingest"


@pytest.fixture
def routed_to(monkeypatch: pytest.MonkeyPatch) -> Any:
    """Route CLI transfers to a mock endpoint and record the client settings."""
    created: list[AsyncPostClient] = []

    def _route(handler: Any) -> list[AsyncPostClient]:
        def _factory(**kwargs: Any) -> AsyncPostClient:
            transport = HttpxTransport(transport=httpx.MockTransport(handler))
            client = AsyncPostClient(transport=transport, **kwargs)
            created.append(client)
            return client

        monkeypatch.setattr(cli, "AsyncPostClient", _factory)
        return created

    return _route


class TestCLI:
    def test_no_command_prints_help(self, capsysbinary: pytest.CaptureFixture[bytes]) -> None:
        assert cli.main([]) == 2
        assert b"usage: octetpost" in capsysbinary.readouterr().err

    def test_posts_file_and_writes_output(
        self, tmp_path: Path, routed_to: Any, endpoint: Any
    ) -> None:
        routed_to(endpoint)
        data = tmp_path / "payload.bin"
        data.write_bytes(b"\x00\x01binary")
        out = tmp_path / "response.bin"
        rc = cli.main(["post", URL, "--data-file", str(data), "--output", str(out)])
        assert rc == 0
        assert out.read_bytes() == b"echo:\x00\x01binary"
        assert endpoint.last_request.content == b"\x00\x01binary"

    def test_reads_stdin_and_writes_stdout(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsysbinary: pytest.CaptureFixture[bytes],
        routed_to: Any,
        endpoint: Any,
    ) -> None:
        routed_to(endpoint)

        class _Stdin:
            buffer = io.BytesIO(b"from-stdin")

        monkeypatch.setattr(sys, "stdin", _Stdin())
        assert cli.main(["post", URL]) == 0
        assert capsysbinary.readouterr().out == b"echo:from-stdin"

    def test_failure_reported_on_stderr(
        self,
        tmp_path: Path,
        capsysbinary: pytest.CaptureFixture[bytes],
        routed_to: Any,
        endpoint_factory: Any,
    ) -> None:
        routed_to(endpoint_factory(status_code=500))
        data = tmp_path / "payload.bin"
        data.write_bytes(b"x")
        assert cli.main(["post", URL, "--data-file", str(data)]) == 1
        err = capsysbinary.readouterr().err
        assert b"octetpost: Unexpected http status code from server: 500" in err

    @pytest.mark.security
    def test_plain_http_requires_flag(
        self, tmp_path: Path, routed_to: Any, endpoint: Any
    ) -> None:
        routed_to(endpoint)
        data = tmp_path / "payload.bin"
        data.write_bytes(b"x")
        plain = "http://localhost:8080/ingest"
        assert cli.main(["post", plain, "--data-file", str(data)]) == 1
        assert endpoint.requests == []
        out = tmp_path / "out.bin"
        rc = cli.main(
            ["post", plain, "--data-file", str(data), "--output", str(out), "--allow-http"]
        )
        assert rc == 0
        assert out.read_bytes() == b"echo:x"

    def test_timeout_overrides_applied(
        self, tmp_path: Path, routed_to: Any, endpoint: Any
    ) -> None:
        created = routed_to(endpoint)
        data = tmp_path / "payload.bin"
        data.write_bytes(b"x")
        out = tmp_path / "out.bin"
        rc = cli.main(
            [
                "post",
                URL,
                "--data-file",
                str(data),
                "--output",
                str(out),
                "--connect-timeout",
                "3",
                "--timeout",
                "7",
            ]
        )
        assert rc == 0
        policy = created[0].policy
        assert policy.connect_timeout_seconds == 3.0
        assert policy.total_timeout_seconds == 7.0

    def test_inconsistent_timeouts_rejected(
        self, tmp_path: Path, capsysbinary: pytest.CaptureFixture[bytes]
    ) -> None:
        data = tmp_path / "payload.bin"
        data.write_bytes(b"x")
        rc = cli.main(
            ["post", URL, "--data-file", str(data), "--connect-timeout", "10", "--timeout", "1"]
        )
        assert rc == 1
        assert capsysbinary.readouterr().err.startswith(b"octetpost: ")

    def test_missing_data_file(
        self, tmp_path: Path, capsysbinary: pytest.CaptureFixture[bytes]
    ) -> None:
        rc = cli.main(["post", URL, "--data-file", str(tmp_path / "absent.bin")])
        assert rc == 1
        assert b"octetpost: " in capsysbinary.readouterr().err
