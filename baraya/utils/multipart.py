"""
Typed builder for multipart/form-data requests.

Field names are declared once at the call site; files are opened only
for the duration of a send via `open_parts()`.
"""

import os
from contextlib import contextmanager, ExitStack
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

FILE_URI_PREFIX = "file://"

EXTENSION_BY_MIME = {
    "image/png": ".png",
    "image/webp": ".webp",
}
DEFAULT_EXTENSION = ".jpg"


def uri_to_path(uri: str) -> str:
    """Strip a file:// prefix so the uri can be opened as a local path."""
    if uri.startswith(FILE_URI_PREFIX):
        return uri[len(FILE_URI_PREFIX):]
    return uri


def extension_for(mime_type: Optional[str]) -> str:
    """File extension for an image mime type; jpeg for anything unknown."""
    if not mime_type:
        return DEFAULT_EXTENSION
    for marker, ext in EXTENSION_BY_MIME.items():
        if marker.split("/")[1] in mime_type:
            return ext
    return DEFAULT_EXTENSION


@dataclass(frozen=True)
class FilePart:
    name: str
    path: str
    filename: str
    content_type: str


@dataclass
class MultipartRequest:
    """Named scalar fields plus at most one file per field name."""
    fields: Dict[str, str] = field(default_factory=dict)
    files: List[FilePart] = field(default_factory=list)

    def add_field(self, name: str, value) -> "MultipartRequest":
        """Add a scalar field; None values are skipped."""
        if value is None:
            return self
        self.fields[name] = str(value)
        return self

    def add_file(
        self,
        name: str,
        uri: str,
        filename: str,
        content_type: str = "image/jpeg",
    ) -> "MultipartRequest":
        self.files = [f for f in self.files if f.name != name]
        self.files.append(FilePart(name=name, path=uri_to_path(uri), filename=filename, content_type=content_type))
        return self

    def has_file(self, name: str) -> bool:
        return any(f.name == name for f in self.files)

    @contextmanager
    def open_parts(self) -> Iterator[Tuple[Dict[str, str], Dict[str, tuple]]]:
        """
        Open the file parts for sending.

        Yields:
            (data, files) in the shape requests expects
        """
        with ExitStack() as stack:
            files = {}
            for part in self.files:
                if not os.path.isfile(part.path):
                    raise FileNotFoundError(f"Upload file not found: {part.path}")
                handle = stack.enter_context(open(part.path, "rb"))
                files[part.name] = (part.filename, handle, part.content_type)
            yield dict(self.fields), files
