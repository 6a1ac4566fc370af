"""Command-line uploader for a running converter server.

    pptpdf convert deck.pptx notes.ppt --server http://localhost:3000 -o out/

Collects the files into a FileSelection (same de-duplication rules as the
browser), posts them to /convert and saves the one-time download.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import httpx

from .selection import FileSelection
from .zip_utils import zip_member_names


logger = logging.getLogger(__name__)

DEFAULT_SERVER = "http://localhost:3000"
# Upload + sequential conversion of a big batch can take minutes.
DEFAULT_TIMEOUT = 30 * 60.0


class ClientError(Exception):
    pass


def _error_message(resp: httpx.Response) -> str:
    try:
        return resp.json().get("error") or resp.text
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"


def convert_selection(
    selection: FileSelection,
    out_dir: Path,
    server: str = DEFAULT_SERVER,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.Client] = None,
) -> Path:
    """Upload the selection, download the result into out_dir and return its path."""
    if not len(selection):
        raise ClientError("Pick one or more .ppt or .pptx files.")

    own_client = client is None
    if client is None:
        client = httpx.Client(base_url=server, timeout=timeout)
    handles = []
    try:
        for f in selection:
            handles.append(f.path.open("rb"))
        files = [("file", (f.name, fh)) for f, fh in zip(selection, handles)]
        resp = client.post("/convert", files=files)
        if resp.status_code != 200:
            raise ClientError(_error_message(resp))
        payload = resp.json()
        if not payload.get("downloadUrl"):
            raise ClientError("Conversion succeeded but no download link returned.")

        out_dir.mkdir(parents=True, exist_ok=True)
        dest = out_dir / Path(payload.get("filename") or "converted.pdf").name
        with client.stream("GET", payload["downloadUrl"]) as download:
            if download.status_code != 200:
                download.read()
                raise ClientError(_error_message(download))
            with dest.open("wb") as fh:
                for chunk in download.iter_bytes():
                    fh.write(chunk)
        return dest
    finally:
        for fh in handles:
            fh.close()
        if own_client:
            client.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pptpdf", description="Convert PowerPoint files to PDF via a ppt2pdf server.")
    sub = parser.add_subparsers(dest="command", required=True)

    conv = sub.add_parser("convert", help="upload presentations and download the PDF (or ZIP of PDFs)")
    conv.add_argument("files", nargs="+", type=Path)
    conv.add_argument("--server", default=DEFAULT_SERVER, help=f"server base URL (default: {DEFAULT_SERVER})")
    conv.add_argument("-o", "--out-dir", type=Path, default=Path("."), help="where to save the result")
    conv.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT)
    conv.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")

    missing = [p for p in args.files if not p.is_file()]
    for p in missing:
        logger.error("Not a file: %s", p)
    if missing:
        return 2

    selection = FileSelection()
    selection.add(args.files)
    skipped = len(args.files) - len(selection)
    if skipped:
        logger.warning("Skipped %d duplicate or non-.ppt/.pptx file(s)", skipped)

    try:
        dest = convert_selection(selection, args.out_dir, server=args.server, timeout=args.timeout)
    except (ClientError, httpx.HTTPError) as e:
        logger.error("Conversion failed: %s", e)
        return 1

    logger.info("Saved %s", dest)
    if dest.suffix.lower() == ".zip":
        for name in zip_member_names(dest):
            logger.info("  %s", name)
    return 0


if __name__ == "__main__":
    sys.exit(main())
