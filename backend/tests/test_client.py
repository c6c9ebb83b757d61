"""Tests for the HTTP client, upload widget and preview modal.

The client talks to the real app in-process through FastAPI's TestClient.
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from familyshare.client import (
    ApiError,
    LocalFile,
    PageBody,
    PreviewKind,
    PreviewModal,
    UploadState,
    UploadWidget,
)
from familyshare.client.formatting import file_icon, format_date, format_file_size
from familyshare.files.schemas import FileDescriptor


def _png(name="photo.png", size=32):
    return LocalFile(name=name, content=b"\x89PNG" + b"\x00" * size, content_type="image/png")


def _text(name="notes.txt", text="hello family\n"):
    return LocalFile(name=name, content=text.encode(), content_type="text/plain")


def _descriptor(file_id, mime="image/png", name=None):
    ext = {"image/png": "png", "application/pdf": "pdf", "text/plain": "txt"}.get(mime, "bin")
    return FileDescriptor(
        id=file_id,
        file_name=f"{file_id}.{ext}",
        original_name=name,
        size=1,
        type=mime,
        uploaded_at=datetime(2024, 7, 1, tzinfo=timezone.utc),
        url=f"/uploads/{file_id}.{ext}",
    )


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


# ---------------------------------------------------------------------------
# FileShareClient
# ---------------------------------------------------------------------------

class TestFileShareClient:
    def test_upload_and_list(self, share_client):
        result = share_client.upload(_png())

        files = share_client.list_files()
        assert [f.id for f in files] == [result.id]
        assert files[0].original_name == "photo.png"

    def test_upload_reports_progress_to_completion(self, share_client):
        events = []
        file = _png(size=200_000)

        share_client.upload(file, on_progress=lambda sent, total: events.append((sent, total)))

        assert events
        assert events[-1] == (file.size, file.size)
        sent = [s for s, _ in events]
        assert sent == sorted(sent)

    def test_rejection_raises_with_server_message(self, share_client):
        bad = LocalFile(name="a.zip", content=b"PK", content_type="application/zip")

        with pytest.raises(ApiError) as exc_info:
            share_client.upload(bad)

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "File type not allowed."

    def test_delete_unknown_raises_404(self, share_client):
        with pytest.raises(ApiError) as exc_info:
            share_client.delete("does-not-exist")
        assert exc_info.value.status_code == 404

    def test_fetch_text_round_trip(self, share_client):
        result = share_client.upload(_text(text="line one\nline two\n"))
        assert share_client.fetch_text(result.url) == "line one\nline two\n"

    def test_local_file_from_path(self, tmp_path):
        path = tmp_path / "recipe.md"
        path.write_text("# Pie\n")

        file = LocalFile.from_path(path)

        assert file.name == "recipe.md"
        assert file.content_type == "text/markdown"
        assert file.size == 6

    def test_network_error_becomes_api_error(self):
        import httpx
        from familyshare.client import FileShareClient

        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        http = httpx.Client(base_url="http://family.test", transport=httpx.MockTransport(refuse))
        client = FileShareClient(http=http)

        with pytest.raises(ApiError) as exc_info:
            client.list_files()
        assert exc_info.value.status_code is None
        assert exc_info.value.message == "Failed to list files"


# ---------------------------------------------------------------------------
# UploadWidget
# ---------------------------------------------------------------------------

class TestUploadWidget:
    def test_initial_state(self, share_client):
        widget = UploadWidget(share_client)
        assert widget.files == []
        assert widget.statuses == {}
        assert widget.is_loading is True

    def test_refresh_replaces_list(self, share_client):
        share_client.upload(_png("a.png"))
        widget = UploadWidget(share_client)

        widget.refresh()

        assert len(widget.files) == 1
        assert widget.is_loading is False

    def test_refresh_failure_keeps_stale_list(self):
        client = MagicMock()
        client.list_files.side_effect = ApiError("Failed to list files", 500)
        widget = UploadWidget(client)
        widget.files = [_descriptor("old")]

        widget.refresh()

        assert [f.id for f in widget.files] == ["old"]
        assert widget.is_loading is False

    def test_successful_drop_prepends_and_marks_success(self, share_client):
        widget = UploadWidget(share_client)
        widget.files = [_descriptor("existing")]

        statuses = widget.drop([_png("new.png")])

        assert statuses["new.png"].state == UploadState.SUCCESS
        assert statuses["new.png"].progress == 100
        assert statuses["new.png"].message == "Upload complete!"
        assert widget.files[0].original_name == "new.png"
        assert widget.files[1].id == "existing"

    def test_success_status_cleared_after_delay(self, share_client):
        clock = FakeClock()
        widget = UploadWidget(share_client, clear_delay=2.0, clock=clock)
        widget.drop([_png("a.png")])

        clock.now += 1.0
        assert widget.prune_statuses() == []
        assert "a.png" in widget.statuses

        clock.now += 1.0
        assert widget.prune_statuses() == ["a.png"]
        assert widget.statuses == {}
        assert len(widget.files) == 1

    def test_next_drop_clears_expired_success(self, share_client):
        clock = FakeClock()
        widget = UploadWidget(share_client, clear_delay=2.0, clock=clock)
        widget.drop([_png("a.png")])

        clock.now += 2.0
        statuses = widget.drop([_png("b.png")])

        assert "a.png" not in statuses
        assert statuses["b.png"].state == UploadState.SUCCESS

    def test_refresh_clears_expired_success(self, share_client):
        clock = FakeClock()
        widget = UploadWidget(share_client, clear_delay=2.0, clock=clock)
        widget.drop([_png("a.png")])

        clock.now += 0.5
        widget.refresh()
        assert "a.png" in widget.statuses

        clock.now += 1.5
        widget.refresh()
        assert widget.statuses == {}
        assert len(widget.files) == 1

    def test_server_error_persists(self, share_client, store, monkeypatch):
        monkeypatch.setattr(store, "put", MagicMock(side_effect=OSError("disk full")))
        clock = FakeClock()
        widget = UploadWidget(share_client, clock=clock)

        widget.drop([_png("a.png")])
        clock.now += 60
        widget.prune_statuses()

        status = widget.statuses["a.png"]
        assert status.state == UploadState.ERROR
        assert status.message == "Upload failed."
        assert status.progress == 0
        assert widget.files == []

    def test_retry_after_error_overwrites_status(self, share_client, store, monkeypatch):
        widget = UploadWidget(share_client)
        original_put = store.put
        monkeypatch.setattr(store, "put", MagicMock(side_effect=OSError("disk full")))
        widget.drop([_png("a.png")])
        monkeypatch.setattr(store, "put", original_put)

        widget.drop([_png("a.png")])

        assert widget.statuses["a.png"].state == UploadState.SUCCESS

    def test_prefilter_rejects_without_request(self):
        client = MagicMock()
        widget = UploadWidget(client)
        big = LocalFile(name="big.png", content=b"x" * (10 * 1024 * 1024 + 1), content_type="image/png")
        zipped = LocalFile(name="a.zip", content=b"PK", content_type="application/zip")

        statuses = widget.drop([big, zipped])

        client.upload.assert_not_called()
        assert statuses["big.png"].message == "File too large. Max size is 10MB."
        assert statuses["a.zip"].message == "File type not allowed."
        assert all(s.state == UploadState.ERROR for s in statuses.values())

    def test_parallel_drop_uploads_everything(self, share_client):
        widget = UploadWidget(share_client, max_workers=4)
        files = [_png(f"p{i}.png") for i in range(5)]

        statuses = widget.drop(files, parallel=True)

        assert all(s.state == UploadState.SUCCESS for s in statuses.values())
        assert len(widget.files) == 5
        assert len(share_client.list_files()) == 5

    def test_progress_updates_while_uploading(self):
        widget = UploadWidget(MagicMock())
        observed = []

        def fake_upload(file, on_progress):
            on_progress(50, 100)
            observed.append(widget.statuses[file.name].progress)
            on_progress(100, 100)
            observed.append(widget.statuses[file.name].progress)
            raise ApiError("Upload failed", 500)

        widget._client.upload.side_effect = fake_upload
        widget.drop([_png("a.png")])

        assert observed == [50, 99]
        assert widget.statuses["a.png"].state == UploadState.ERROR

    def test_delete_success_removes_locally(self, share_client):
        widget = UploadWidget(share_client)
        widget.drop([_png("a.png"), _png("b.png")])
        target = widget.files[0].id

        assert widget.delete(target) is True
        assert target not in [f.id for f in widget.files]
        assert target not in [f.id for f in share_client.list_files()]

    def test_delete_failure_keeps_local_entry(self, share_client):
        widget = UploadWidget(share_client)
        widget.files = [_descriptor("ghost")]

        assert widget.delete("ghost") is False
        assert [f.id for f in widget.files] == ["ghost"]
        assert widget.delete_errors["ghost"] == "File not found or already deleted"

    def test_status_label(self, share_client):
        widget = UploadWidget(share_client)
        widget.drop([_png("a.png")])
        assert widget.statuses["a.png"].label == "Upload complete!"


# ---------------------------------------------------------------------------
# PreviewModal
# ---------------------------------------------------------------------------

class TestPreviewModal:
    @pytest.mark.parametrize("mime,kind", [
        ("image/jpeg", PreviewKind.IMAGE),
        ("application/pdf", PreviewKind.PDF),
        ("application/msword", PreviewKind.UNSUPPORTED),
        ("application/octet-stream", PreviewKind.UNSUPPORTED),
    ])
    def test_content_kind(self, mime, kind):
        modal = PreviewModal(MagicMock())
        modal.open(_descriptor("x", mime=mime))
        assert modal.content().kind == kind

    def test_closed_modal_has_no_content(self):
        modal = PreviewModal(MagicMock())
        assert modal.content() is None
        assert modal.header() is None

    def test_text_is_fetched(self, share_client):
        uploaded = share_client.upload(_text(text="bring snacks"))
        file = next(f for f in share_client.list_files() if f.id == uploaded.id)
        modal = PreviewModal(share_client)

        modal.open(file)

        content = modal.content()
        assert content.kind == PreviewKind.TEXT
        assert content.text == "bring snacks"
        assert content.loading is False
        assert content.error is None

    def test_text_fetch_failure_sets_error(self):
        client = MagicMock()
        client.fetch_text.side_effect = ApiError("Failed to load file content", 404)
        modal = PreviewModal(client)

        modal.open(_descriptor("x", mime="text/plain"))

        content = modal.content()
        assert content.error == "Failed to load file content"
        assert content.text is None

    def test_scroll_locked_while_open(self):
        page = PageBody()
        modal = PreviewModal(MagicMock(), page=page)

        modal.open(_descriptor("x"))
        assert page.overflow == "hidden"

        modal.close()
        assert page.overflow == "unset"

    def test_scroll_restored_on_context_exit(self):
        page = PageBody()
        with pytest.raises(RuntimeError):
            with PreviewModal(MagicMock(), page=page) as modal:
                modal.open(_descriptor("x"))
                raise RuntimeError("render failed")
        assert page.overflow == "unset"

    def test_escape_closes_and_notifies(self):
        on_close = MagicMock()
        modal = PreviewModal(MagicMock(), on_close=on_close)
        modal.open(_descriptor("x"))

        assert modal.handle_key("Escape") is True
        assert modal.is_open is False
        on_close.assert_called_once()

    def test_arrow_keys_call_navigation(self):
        on_next, on_previous = MagicMock(), MagicMock()
        modal = PreviewModal(MagicMock())
        modal.open(_descriptor("x"), on_next=on_next, on_previous=on_previous)

        modal.handle_key("ArrowRight")
        modal.handle_key("ArrowLeft")

        on_next.assert_called_once()
        on_previous.assert_called_once()

    def test_arrow_keys_without_callbacks_do_nothing(self):
        modal = PreviewModal(MagicMock())
        modal.open(_descriptor("x"))
        assert modal.handle_key("ArrowRight") is False

    def test_keys_ignored_while_closed(self):
        on_next = MagicMock()
        modal = PreviewModal(MagicMock())
        modal.open(_descriptor("x"), on_next=on_next)
        modal.close()

        assert modal.handle_key("ArrowRight") is False
        assert modal.handle_key("Escape") is False
        on_next.assert_not_called()

    def test_widget_navigation_wraps(self):
        widget = UploadWidget(MagicMock())
        widget.files = [_descriptor("a"), _descriptor("b"), _descriptor("c")]

        modal = widget.open_preview("c")
        assert modal.position() == "3 of 3"

        modal.handle_key("ArrowRight")
        assert modal.file.id == "a"
        assert modal.position() == "1 of 3"

        modal.handle_key("ArrowLeft")
        modal.handle_key("ArrowLeft")
        assert modal.file.id == "b"

    def test_single_file_has_no_navigation(self):
        widget = UploadWidget(MagicMock())
        widget.files = [_descriptor("only")]

        modal = widget.open_preview("only")

        assert modal.on_next is None
        assert modal.on_previous is None

    def test_open_preview_unknown_id(self):
        widget = UploadWidget(MagicMock())
        with pytest.raises(KeyError):
            widget.open_preview("nope")

    def test_header_includes_size_and_position(self):
        widget = UploadWidget(MagicMock())
        widget.files = [_descriptor("a", name="beach.png"), _descriptor("b")]

        header = widget.open_preview("a").header()

        assert header.startswith("beach.png • 1 Bytes • ")
        assert header.endswith("1 of 2")


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

class TestFormatting:
    @pytest.mark.parametrize("size,expected", [
        (0, "0 Bytes"),
        (1, "1 Bytes"),
        (1023, "1023 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1024 * 1024, "1 MB"),
        (int(2.5 * 1024 * 1024), "2.5 MB"),
        (1024 * 1024 + 1024 * 10, "1.01 MB"),
        (3 * 1024 ** 3, "3 GB"),
        (2048 * 1024 ** 3, "2048 GB"),
    ])
    def test_format_file_size(self, size, expected):
        assert format_file_size(size) == expected

    def test_format_date_accepts_iso_string(self):
        value = datetime(2024, 7, 1, 10, 0, tzinfo=timezone.utc)
        assert format_date("2024-07-01T10:00:00Z") == format_date(value)

    def test_file_icon(self):
        assert file_icon("image/png") == "🖼️"
        assert file_icon("application/pdf") == "📄"
        assert file_icon("text/plain") == "📝"
        assert file_icon("application/vnd.openxmlformats-officedocument.wordprocessingml.document") == "📄"
        assert file_icon("application/zip") == "📁"
