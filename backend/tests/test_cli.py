"""Tests for the familyshare command line front end."""
from familyshare.cli import build_parser, main
from familyshare.client import LocalFile


def test_upload_then_list(share_client, tmp_path, capsys):
    photo = tmp_path / "beach.png"
    photo.write_bytes(b"\x89PNG\r\n")

    assert main(["upload", str(photo)], client=share_client) == 0
    assert "✓ beach.png: Upload complete!" in capsys.readouterr().out

    assert main(["list"], client=share_client) == 0
    out = capsys.readouterr().out
    assert "Uploaded Files (1)" in out
    assert "beach.png" in out


def test_upload_rejected_type_fails(share_client, tmp_path, capsys):
    archive = tmp_path / "stuff.zip"
    archive.write_bytes(b"PK\x03\x04")

    assert main(["upload", str(archive)], client=share_client) == 1
    assert "✗ stuff.zip: File type not allowed." in capsys.readouterr().out


def test_upload_missing_path_fails(share_client, tmp_path):
    assert main(["upload", str(tmp_path / "nope.png")], client=share_client) == 1


def test_list_empty(share_client, capsys):
    assert main(["list"], client=share_client) == 0
    assert "No files uploaded yet." in capsys.readouterr().out


def test_delete(share_client, capsys):
    result = share_client.upload(LocalFile("a.png", b"\x89PNG", "image/png"))

    assert main(["delete", result.id], client=share_client) == 0
    assert share_client.list_files() == []

    assert main(["delete", result.id], client=share_client) == 1
    assert "File not found" in capsys.readouterr().err


def test_show_text(share_client, capsys):
    result = share_client.upload(LocalFile("todo.txt", b"water the plants", "text/plain"))

    assert main(["show", result.id], client=share_client) == 0
    out = capsys.readouterr().out
    assert "todo.txt" in out
    assert "water the plants" in out


def test_show_unknown(share_client, capsys):
    assert main(["show", "missing"], client=share_client) == 1


def test_parser_serve_options():
    args = build_parser().parse_args(["serve", "--port", "9000"])
    assert args.command == "serve"
    assert args.port == 9000
