"""Integration tests for the `voter-intake ingest` CLI commands.

The database layer and the ingest service are mocked; these tests cover the
command's argument handling and reporting.
"""

import uuid
from io import BytesIO
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from openpyxl import load_workbook
from typer.testing import CliRunner

from tests.helpers import build_xlsx, voter_row
from voter_intake.cli.app import app
from voter_intake.lib.intake import EXPECTED_HEADERS, FormatError
from voter_intake.schemas.ingest import (
    ChunkFailure,
    IngestPreview,
    IngestResult,
    RowOutcome,
    ValidationIssueResponse,
)

runner = CliRunner()


def _mock_user(role: str = "submitter", *, is_active: bool = True) -> MagicMock:
    user = MagicMock()
    user.id = uuid.uuid4()
    user.role = role
    user.is_active = is_active
    return user


def _result(**overrides) -> IngestResult:
    defaults = {
        "batch_id": uuid.uuid4(),
        "status": "completed",
        "mode": "submit",
        "total_parsed": 2,
        "total_errors": 1,
        "total_duplicates": 0,
        "total_inserted": 1,
        "total_skipped": 0,
        "row_outcomes": [
            RowOutcome(row_number=2, outcome="inserted", submission_id=uuid.uuid4()),
            RowOutcome(row_number=3, outcome="validation_error", errors=["Name is required"]),
        ],
        "validation_issues": [ValidationIssueResponse(row_number=3, field="Name", message="Name is required")],
    }
    defaults.update(overrides)
    return IngestResult(**defaults)


def _patch_database():
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = AsyncMock()
    return (
        patch("voter_intake.core.database.init_engine"),
        patch("voter_intake.core.database.dispose_engine", new_callable=AsyncMock),
        patch("voter_intake.core.database.get_session_factory", return_value=factory),
    )


def _write_upload(tmp_path: Path) -> Path:
    path = tmp_path / "ward7.xlsx"
    path.write_bytes(build_xlsx([voter_row(1), voter_row(2, Name="")]))
    return path


class TestIngestFile:
    def test_reports_summary(self, tmp_path: Path) -> None:
        upload = _write_upload(tmp_path)
        init, dispose, factory = _patch_database()
        with (
            init,
            dispose,
            factory,
            patch("voter_intake.services.auth_service.get_user_by_username", new_callable=AsyncMock) as get_user,
            patch("voter_intake.services.ingest_service.ingest", new_callable=AsyncMock) as ingest,
        ):
            get_user.return_value = _mock_user()
            ingest.return_value = _result()
            result = runner.invoke(app, ["ingest", "file", str(upload), "--as", "submitter1"])

        assert result.exit_code == 0, result.output
        assert "Ingest completed" in result.output
        assert "Inserted:       1" in result.output
        assert "row 3 Name: Name is required" in result.output
        kwargs = ingest.await_args.kwargs
        assert kwargs["batch_name"] == "ward7"
        assert kwargs["file_name"] == "ward7.xlsx"
        assert kwargs["mode"] == "submit"

    def test_options_forwarded(self, tmp_path: Path) -> None:
        upload = _write_upload(tmp_path)
        init, dispose, factory = _patch_database()
        with (
            init,
            dispose,
            factory,
            patch("voter_intake.services.auth_service.get_user_by_username", new_callable=AsyncMock) as get_user,
            patch("voter_intake.services.ingest_service.ingest", new_callable=AsyncMock) as ingest,
        ):
            get_user.return_value = _mock_user()
            ingest.return_value = _result(mode="draft")
            result = runner.invoke(
                app,
                [
                    "ingest",
                    "file",
                    str(upload),
                    "--as",
                    "submitter1",
                    "--batch-name",
                    "Ward 7 drive",
                    "--mode",
                    "draft",
                    "--chunk-size",
                    "25",
                ],
            )

        assert result.exit_code == 0, result.output
        kwargs = ingest.await_args.kwargs
        assert (kwargs["batch_name"], kwargs["mode"], kwargs["chunk_size"]) == ("Ward 7 drive", "draft", 25)

    def test_partial_run_exits_nonzero(self, tmp_path: Path) -> None:
        upload = _write_upload(tmp_path)
        failure = ChunkFailure(kind="persist_error", chunk_index=1, committed_rows=100, message="connection reset")
        init, dispose, factory = _patch_database()
        with (
            init,
            dispose,
            factory,
            patch("voter_intake.services.auth_service.get_user_by_username", new_callable=AsyncMock) as get_user,
            patch("voter_intake.services.ingest_service.ingest", new_callable=AsyncMock) as ingest,
        ):
            get_user.return_value = _mock_user()
            ingest.return_value = _result(status="partial", failure=failure)
            result = runner.invoke(app, ["ingest", "file", str(upload), "--as", "submitter1"])

        assert result.exit_code == 1
        assert "Stopped at chunk 2" in result.output

    def test_format_error(self, tmp_path: Path) -> None:
        upload = _write_upload(tmp_path)
        init, dispose, factory = _patch_database()
        with (
            init,
            dispose,
            factory,
            patch("voter_intake.services.auth_service.get_user_by_username", new_callable=AsyncMock) as get_user,
            patch("voter_intake.services.ingest_service.ingest", new_callable=AsyncMock) as ingest,
        ):
            get_user.return_value = _mock_user()
            ingest.side_effect = FormatError("Missing required columns: Name")
            result = runner.invoke(app, ["ingest", "file", str(upload), "--as", "submitter1"])

        assert result.exit_code == 1
        assert "Missing required columns" in result.output

    def test_unknown_user(self, tmp_path: Path) -> None:
        upload = _write_upload(tmp_path)
        init, dispose, factory = _patch_database()
        with (
            init,
            dispose as dispose_mock,
            factory,
            patch("voter_intake.services.auth_service.get_user_by_username", new_callable=AsyncMock) as get_user,
            patch("voter_intake.services.ingest_service.ingest", new_callable=AsyncMock) as ingest,
        ):
            get_user.return_value = None
            result = runner.invoke(app, ["ingest", "file", str(upload), "--as", "ghost"])

        assert result.exit_code == 1
        assert "no active user 'ghost'" in result.output
        ingest.assert_not_awaited()
        dispose_mock.assert_awaited_once()

    def test_dry_run_stores_nothing(self, tmp_path: Path) -> None:
        upload = _write_upload(tmp_path)
        checked = IngestPreview(
            mode="submit",
            total_parsed=2,
            total_errors=1,
            total_duplicates=0,
            total_ready=1,
            row_outcomes=[
                RowOutcome(row_number=2, outcome="ready"),
                RowOutcome(row_number=3, outcome="validation_error", errors=["Name is required"]),
            ],
            validation_issues=[ValidationIssueResponse(row_number=3, field="Name", message="Name is required")],
        )
        init, dispose, factory = _patch_database()
        with (
            init,
            dispose,
            factory,
            patch("voter_intake.services.auth_service.get_user_by_username", new_callable=AsyncMock) as get_user,
            patch("voter_intake.services.ingest_service.ingest", new_callable=AsyncMock) as ingest,
            patch("voter_intake.services.ingest_service.preview", new_callable=AsyncMock) as preview,
        ):
            get_user.return_value = _mock_user()
            preview.return_value = checked
            result = runner.invoke(app, ["ingest", "file", str(upload), "--as", "submitter1", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "Ready:          1" in result.output
        assert "row 3 Name: Name is required" in result.output
        assert preview.await_args.kwargs["mode"] == "submit"
        ingest.assert_not_awaited()

    def test_bad_mode(self, tmp_path: Path) -> None:
        upload = _write_upload(tmp_path)
        result = runner.invoke(app, ["ingest", "file", str(upload), "--as", "submitter1", "--mode", "publish"])
        assert result.exit_code == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["ingest", "file", str(tmp_path / "absent.xlsx"), "--as", "submitter1"])
        assert result.exit_code != 0


class TestTemplateCommand:
    def test_writes_template(self, tmp_path: Path) -> None:
        output = tmp_path / "template.xlsx"

        result = runner.invoke(app, ["ingest", "template", str(output)])

        assert result.exit_code == 0, result.output
        sheet = load_workbook(BytesIO(output.read_bytes())).active
        assert tuple(cell.value for cell in sheet[1]) == EXPECTED_HEADERS
