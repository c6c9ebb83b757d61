"""Command line front end for the family share.

Usage:
    familyshare serve
    familyshare upload photo.jpg notes.md [--parallel]
    familyshare list
    familyshare delete <id>
    familyshare show <id>
"""
import argparse
import logging
import sys
from typing import List, Optional

from familyshare.client import FileShareClient, LocalFile, PreviewKind, UploadState, UploadWidget
from familyshare.client.api import DEFAULT_BASE_URL
from familyshare.client.formatting import file_icon, format_date, format_file_size

logger = logging.getLogger(__name__)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from familyshare.config import get_config

    config = get_config()
    uvicorn.run(
        "familyshare.main:app",
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_level=config.server.log_level,
    )
    return 0


def _print_files(widget: UploadWidget) -> None:
    print(f"Uploaded Files ({len(widget.files)})")
    if not widget.files:
        print("No files uploaded yet.")
        return
    for f in widget.files:
        print(
            f"{file_icon(f.type)} {f.display_name}  "
            f"{format_file_size(f.size)} • {format_date(f.uploaded_at)}  [{f.id}]"
        )


def _upload(widget: UploadWidget, args: argparse.Namespace) -> int:
    try:
        files = [LocalFile.from_path(p) for p in args.paths]
    except OSError as e:
        print(f"Cannot read file: {e}", file=sys.stderr)
        return 1

    statuses = widget.drop(files, parallel=args.parallel)
    failed = 0
    for name, status in statuses.items():
        mark = "✓" if status.state == UploadState.SUCCESS else "✗"
        print(f"{mark} {name}: {status.label}")
        if status.state == UploadState.ERROR:
            failed += 1
    return 1 if failed else 0


def _delete(widget: UploadWidget, args: argparse.Namespace) -> int:
    if widget.delete(args.file_id):
        print(f"Deleted {args.file_id}")
        return 0
    print(f"Delete failed: {widget.delete_errors.get(args.file_id)}", file=sys.stderr)
    return 1


def _show(widget: UploadWidget, args: argparse.Namespace) -> int:
    widget.refresh()
    try:
        modal = widget.open_preview(args.file_id)
    except KeyError:
        print(f"No file with id {args.file_id}", file=sys.stderr)
        return 1

    with modal:
        content = modal.content()
        print(modal.header())
        if content.kind == PreviewKind.TEXT:
            print(content.error or content.text)
        elif content.kind == PreviewKind.UNSUPPORTED:
            print("Preview not available. Download:", content.download_url)
        else:
            print(f"{content.kind.value} preview: {content.url}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="familyshare", description="Share files with your family")
    parser.add_argument("--url", default=DEFAULT_BASE_URL, help="server address for client commands")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the web server")
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)

    upload = sub.add_parser("upload", help="upload one or more files")
    upload.add_argument("paths", nargs="+")
    upload.add_argument("--parallel", action="store_true", help="upload files concurrently")

    sub.add_parser("list", help="list uploaded files")

    delete = sub.add_parser("delete", help="delete an uploaded file")
    delete.add_argument("file_id")

    show = sub.add_parser("show", help="preview an uploaded file")
    show.add_argument("file_id")
    return parser


def main(argv: Optional[List[str]] = None, client: Optional[FileShareClient] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    if args.command == "serve":
        return _serve(args)

    client = client or FileShareClient(base_url=args.url)
    with client:
        widget = UploadWidget(client)
        if args.command == "upload":
            return _upload(widget, args)
        if args.command == "list":
            widget.refresh()
            _print_files(widget)
            return 0
        if args.command == "delete":
            return _delete(widget, args)
        return _show(widget, args)


if __name__ == "__main__":
    sys.exit(main())
