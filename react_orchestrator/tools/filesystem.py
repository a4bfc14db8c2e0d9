"""
Filesystem tools

Read, write, append, list and inspect files on the local machine. Paths
are used as given (relative paths resolve against the process working
directory); no sandboxing is applied.
"""

import base64
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from .registry import ToolParameter, ToolRegistry

logger = logging.getLogger(__name__)

Encoding = Literal["utf-8", "ascii", "base64", "hex"]


def _decode(data: bytes, encoding: str) -> str:
    if encoding == "base64":
        return base64.b64encode(data).decode("ascii")
    if encoding == "hex":
        return data.hex()
    return data.decode(encoding)


def _encode(content: str, encoding: str) -> bytes:
    if encoding == "base64":
        return base64.b64decode(content)
    if encoding == "hex":
        return bytes.fromhex(content)
    return content.encode(encoding)


def _timestamp(value: float) -> str:
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()


def read_file(params: dict) -> dict:
    path = Path(params["path"])
    encoding = params.get("encoding", "utf-8")
    content = _decode(path.read_bytes(), encoding)
    return {"path": str(path), "encoding": encoding, "content": content}


def write_file(params: dict) -> dict:
    path = Path(params["path"])
    content = params["content"]
    if params.get("create_directories", True):
        path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_encode(content, params.get("encoding", "utf-8")))
    logger.info(f"Wrote {len(content)} characters to {path}")
    return {"path": str(path), "written": len(content)}


def append_file(params: dict) -> dict:
    path = Path(params["path"])
    content = params["content"]
    with path.open("ab") as f:
        f.write(_encode(content, params.get("encoding", "utf-8")))
    return {"path": str(path), "appended": len(content)}


def list_directory(params: dict) -> dict:
    path = Path(params["path"])
    entries = sorted(path.iterdir(), key=lambda p: p.name)
    if not params.get("detailed", False):
        return {"path": str(path), "entries": [p.name for p in entries]}

    detailed = []
    for entry in entries:
        stat = entry.stat()
        detailed.append({
            "name": entry.name,
            "is_directory": entry.is_dir(),
            "size": stat.st_size,
            "modified_at": _timestamp(stat.st_mtime),
        })
    return {"path": str(path), "entries": detailed}


def file_info(params: dict) -> dict:
    path = Path(params["path"])
    stat = path.stat()
    return {
        "path": str(path),
        "name": path.name,
        "extension": path.suffix,
        "size": stat.st_size,
        "size_kb": round(stat.st_size / 1024, 2),
        "is_file": path.is_file(),
        "is_directory": path.is_dir(),
        "modified_at": _timestamp(stat.st_mtime),
        "accessed_at": _timestamp(stat.st_atime),
    }


def _format_read(result: dict) -> str:
    return f"{result['path']} ({len(result['content'])} characters):\n{result['content']}"


def _format_listing(result: dict) -> str:
    lines = []
    for entry in result["entries"]:
        if isinstance(entry, dict):
            kind = "[DIR]" if entry["is_directory"] else "[FILE]"
            lines.append(f"{kind} {entry['name']} ({entry['size'] / 1024:.2f} KB)")
        else:
            lines.append(entry)
    return f"Directory contents ({result['path']}):\n" + "\n".join(lines)


def _format_info(result: dict) -> str:
    return (
        f"Path: {result['path']}\n"
        f"Size: {result['size_kb']} KB\n"
        f"Type: {'directory' if result['is_directory'] else 'file'}\n"
        f"Modified: {result['modified_at']}"
    )


def _path_param(description: str) -> ToolParameter:
    return ToolParameter(name="path", type="string", description=description, required=True)


def _encoding_param() -> ToolParameter:
    return ToolParameter(
        name="encoding",
        type="string",
        description='File encoding: "utf-8" (default), "ascii", "base64" or "hex"',
        schema=Encoding,
    )


def register(registry: ToolRegistry) -> None:
    registry.register(
        name="read_file",
        description="Reads the contents of a file.",
        parameters=[_path_param("Path of the file to read"), _encoding_param()],
        handler=read_file,
        formatter=_format_read,
    )
    registry.register(
        name="write_file",
        description="Creates or overwrites a file, creating parent directories if needed.",
        parameters=[
            _path_param("Path of the file to write"),
            ToolParameter(name="content", type="string", description="Content to write", required=True),
            _encoding_param(),
            ToolParameter(
                name="create_directories",
                type="boolean",
                description="Create missing parent directories (default: true)",
            ),
        ],
        handler=write_file,
        formatter=lambda r: f"Wrote {r['written']} characters to {r['path']}",
    )
    registry.register(
        name="append_file",
        description="Appends content to the end of a file, creating it if it does not exist.",
        parameters=[
            _path_param("Path of the file to append to"),
            ToolParameter(name="content", type="string", description="Content to append", required=True),
            _encoding_param(),
        ],
        handler=append_file,
        formatter=lambda r: f"Appended {r['appended']} characters to {r['path']}",
    )
    registry.register(
        name="list_directory",
        description="Lists the files and subdirectories of a directory.",
        parameters=[
            _path_param("Directory to list"),
            ToolParameter(
                name="detailed",
                type="boolean",
                description="Include size and modification time (default: false)",
            ),
        ],
        handler=list_directory,
        formatter=_format_listing,
    )
    registry.register(
        name="file_info",
        description="Returns size, type and timestamps of a file or directory.",
        parameters=[_path_param("Path to inspect")],
        handler=file_info,
        formatter=_format_info,
    )
