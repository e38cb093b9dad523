"""Tests for invoice_sync.drive_client."""

from __future__ import annotations

from unittest.mock import MagicMock

import httplib2
import pytest

from invoice_sync.drive_client import DriveClient
from invoice_sync.errors import MissingDestination
from invoice_sync.models import ExtractedFile, SourceAttachment
from tests.conftest import FakeDrive


def files(*names: str) -> list[ExtractedFile]:
    return [
        ExtractedFile(name=name, path=name, mime_type="text/plain", content=name.encode())
        for name in names
    ]


@pytest.fixture
def drive(settings, credentials) -> DriveClient:
    return DriveClient(settings, credentials)


class TestDistribute:
    def test_uploads_everything_in_order(self, drive: DriveClient, fake_drive: FakeDrive):
        results = drive.distribute(files("a.txt", "b.txt", "c.txt"), "folder-xyz")

        assert [r.original_name for r in results] == ["a.txt", "b.txt", "c.txt"]
        assert [r.remote_id for r in results] == ["drive-a.txt", "drive-b.txt", "drive-c.txt"]
        assert results[0].remote_link == "https://drive.example.com/a.txt"
        assert results[0].size == len(b"a.txt")
        assert sorted(fake_drive.uploads) == ["a.txt", "b.txt", "c.txt"]

    def test_request_carries_metadata_and_media(self, drive: DriveClient, fake_drive: FakeDrive):
        attachment = SourceAttachment(name="scan.pdf", mime_type="application/pdf", content=b"%PDF")

        drive.distribute([attachment], "folder-xyz")

        request = fake_drive.request_for("scan.pdf")
        assert request.body == {
            "name": "scan.pdf",
            "mimeType": "application/pdf",
            "parents": ["folder-xyz"],
        }
        assert request.fields == "id, webViewLink"
        assert request.media_body.mimetype() == "application/pdf"
        assert request.media_body.getbytes(0, request.media_body.size()) == b"%PDF"

    @pytest.mark.parametrize("failing", ["f1.txt", "f3.txt", "f5.txt"])
    def test_one_failure_is_skipped(self, drive: DriveClient, fake_drive: FakeDrive, failing: str):
        names = [f"f{i}.txt" for i in range(1, 6)]
        fake_drive.reject.add(failing)

        outcome = drive.distribute_batch(files(*names), "folder-xyz")

        expected = [name for name in names if name != failing]
        assert [r.original_name for r in outcome.succeeded] == expected
        assert [f.name for f in outcome.failed] == [failing]

    def test_missing_id_is_a_failure(self, drive: DriveClient, fake_drive: FakeDrive):
        fake_drive.missing_id.add("b.txt")

        outcome = drive.distribute_batch(files("a.txt", "b.txt"), "folder-xyz")

        assert [r.original_name for r in outcome.succeeded] == ["a.txt"]
        assert outcome.failed[0].reason == "No file ID returned"

    @pytest.mark.parametrize(
        "error", [ConnectionResetError("reset by peer"), httplib2.ServerNotFoundError("no host")]
    )
    def test_transport_error_is_a_failure(self, drive: DriveClient, fake_drive: FakeDrive, error):
        fake_drive.failures["b.txt"] = error

        results = drive.distribute(files("a.txt", "b.txt", "c.txt"), "folder-xyz")

        assert [r.original_name for r in results] == ["a.txt", "c.txt"]

    def test_name_for_controls_uploaded_name(self, drive: DriveClient, fake_drive: FakeDrive):
        attachment = SourceAttachment(name="scan.pdf", mime_type="application/pdf", content=b"%PDF")

        results = drive.distribute([attachment], "folder-xyz", name_for=lambda item: "renamed.pdf")

        assert fake_drive.uploads == ["renamed.pdf"]
        assert results[0].original_name == "scan.pdf"
        assert results[0].uploaded_name == "renamed.pdf"
        assert results[0].mime_type == "application/pdf"
        assert results[0].path is None

    def test_archive_members_keep_their_path(self, drive: DriveClient, fake_drive: FakeDrive):
        members = [
            ExtractedFile(name="x/report.pdf", path="x/report.pdf", mime_type="application/pdf", content=b"1"),
            ExtractedFile(name="y/report.pdf", path="y/report.pdf", mime_type="application/pdf", content=b"2"),
        ]

        results = drive.distribute(members, "folder-xyz")

        assert sorted(fake_drive.uploads) == ["x/report.pdf", "y/report.pdf"]
        assert [r.to_dict()["path"] for r in results] == ["x/report.pdf", "y/report.pdf"]

    @pytest.mark.parametrize("folder_id", [None, "", "  "])
    def test_missing_destination(self, drive: DriveClient, credentials: MagicMock, folder_id):
        with pytest.raises(MissingDestination):
            drive.distribute(files("a.txt"), folder_id)
        credentials.get_credentials.assert_not_called()

    def test_empty_batch_skips_auth(self, drive: DriveClient, credentials: MagicMock):
        assert drive.distribute([], "folder-xyz") == []
        credentials.get_credentials.assert_not_called()
