from __future__ import annotations
import mimetypes
from pathlib import PurePosixPath, PureWindowsPath

GENERIC_MIME = {"", "application/octet-stream"}


def safe_file_name(name: str | None) -> str:
    """Last path component only; browsers on Windows may send 'C:\\x\\y.png'."""
    if not name:
        return ""
    base = PureWindowsPath(PurePosixPath(name).name).name.strip()
    return "" if base in (".", "..") else base


def resolve_mime(file_name: str, content_type: str | None) -> str:
    ct = (content_type or "").split(";", 1)[0].strip().lower()
    if ct not in GENERIC_MIME:
        return ct
    guessed, _ = mimetypes.guess_type(file_name)
    return (guessed or "application/octet-stream").lower()


def parse_accept(accept: str) -> list[str]:
    return [tok.strip().lower() for tok in accept.split(",") if tok.strip()]


def accepts(accept: str, file_name: str, content_type: str | None = None) -> bool:
    """
    Same matching a browser applies to <input type=file accept=...>:
    '.ext' tokens match the file extension, 'type/*' the major type and
    'type/sub' the exact MIME type. An empty filter accepts anything.
    """
    tokens = parse_accept(accept)
    if not tokens:
        return True
    suffix = PurePosixPath(file_name.lower()).suffix
    mime = resolve_mime(file_name, content_type)
    major = mime.split("/", 1)[0]
    for tok in tokens:
        if tok.startswith("."):
            if suffix == tok:
                return True
        elif tok.endswith("/*"):
            if major == tok[:-2]:
                return True
        elif tok == mime:
            return True
    return False
