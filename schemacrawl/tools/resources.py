"""Input and output resources for operations."""

import io
import os
import sys
import tempfile
import zipfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from importlib import resources as importlib_resources
from pathlib import Path
from typing import IO, Iterator, TextIO, Union

PathLike = Union[str, Path]


class InputResource(ABC):
    """Something text can be read from."""

    @abstractmethod
    def open_reader(self, encoding: str = "utf-8") -> TextIO:
        """Open a new text reader; the caller closes it."""
        pass

    def read_text(self, encoding: str = "utf-8") -> str:
        with self.open_reader(encoding) as reader:
            return reader.read()

    @property
    def description(self) -> str:
        return repr(self)


class FileInputResource(InputResource):
    def __init__(self, path: PathLike):
        self.path = Path(path)

    def open_reader(self, encoding: str = "utf-8") -> TextIO:
        return open(self.path, "r", encoding=encoding)

    def __repr__(self) -> str:
        return f"FileInputResource({self.path})"


class StringInputResource(InputResource):
    def __init__(self, text: str = ""):
        self.text = text

    def open_reader(self, encoding: str = "utf-8") -> TextIO:
        return io.StringIO(self.text)

    def __repr__(self) -> str:
        return f"StringInputResource(length={len(self.text)})"


class PackageInputResource(InputResource):
    """Resource bundled inside an installed package."""

    def __init__(self, name: str, package: str = "schemacrawl.resources"):
        self.name = name
        self.package = package

    def _traversable(self):
        resource = importlib_resources.files(self.package)
        for part in self.name.strip("/").split("/"):
            resource = resource.joinpath(part)
        return resource

    def exists(self) -> bool:
        try:
            return self._traversable().is_file()
        except (ModuleNotFoundError, FileNotFoundError):
            return False

    def open_reader(self, encoding: str = "utf-8") -> TextIO:
        return self._traversable().open("r", encoding=encoding)

    def __repr__(self) -> str:
        return f"PackageInputResource({self.package}:{self.name})"


class CompressedFileInputResource(InputResource):
    """Reads one named entry of a zip archive."""

    def __init__(self, path: PathLike, entry_name: str):
        self.path = Path(path)
        self.entry_name = entry_name

    def read_bytes(self) -> bytes:
        """Read the entry.

        Raises:
            OSError: If the archive cannot be read
            zipfile.BadZipFile: If the file is not a zip archive
            KeyError: If the archive has no such entry
        """
        with zipfile.ZipFile(self.path) as archive:
            return archive.read(self.entry_name)

    def open_reader(self, encoding: str = "utf-8") -> TextIO:
        return io.StringIO(self.read_bytes().decode(encoding))

    def __repr__(self) -> str:
        return f"CompressedFileInputResource({self.path}!{self.entry_name})"


class OutputResource(ABC):
    """Something text can be written to."""

    @abstractmethod
    @contextmanager
    def open_writer(self, encoding: str = "utf-8") -> Iterator[TextIO]:
        """Context manager yielding a text writer."""
        pass

    @property
    def description(self) -> str:
        return repr(self)


def _atomic_write(path: Path, data: bytes) -> None:
    """Write a file through a temporary sibling that replaces it once complete."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


class FileOutputResource(OutputResource):
    def __init__(self, path: PathLike):
        self.path = Path(path)

    @contextmanager
    def open_writer(self, encoding: str = "utf-8") -> Iterator[TextIO]:
        buffer = io.StringIO()
        yield buffer
        _atomic_write(self.path, buffer.getvalue().encode(encoding))

    def __repr__(self) -> str:
        return f"FileOutputResource({self.path})"


class ConsoleOutputResource(OutputResource):
    """Standard output, which is flushed but never closed."""

    @contextmanager
    def open_writer(self, encoding: str = "utf-8") -> Iterator[TextIO]:
        yield sys.stdout
        sys.stdout.flush()

    def __repr__(self) -> str:
        return "ConsoleOutputResource()"


class WriterOutputResource(OutputResource):
    """A caller-owned stream, left open after writing."""

    def __init__(self, writer: IO[str]):
        self.writer = writer

    @contextmanager
    def open_writer(self, encoding: str = "utf-8") -> Iterator[TextIO]:
        yield self.writer
        self.writer.flush()

    def __repr__(self) -> str:
        return f"WriterOutputResource({self.writer!r})"


class StringOutputResource(WriterOutputResource):
    """Collects output in memory."""

    def __init__(self):
        super().__init__(io.StringIO())

    def getvalue(self) -> str:
        return self.writer.getvalue()

    def __repr__(self) -> str:
        return "StringOutputResource()"


class CompressedFileOutputResource(OutputResource):
    """Writes text as the single named entry of a new zip archive."""

    def __init__(self, path: PathLike, entry_name: str):
        self.path = Path(path)
        self.entry_name = entry_name

    @contextmanager
    def open_writer(self, encoding: str = "utf-8") -> Iterator[TextIO]:
        buffer = io.StringIO()
        yield buffer
        archive = io.BytesIO()
        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(self.entry_name, buffer.getvalue().encode(encoding))
        _atomic_write(self.path, archive.getvalue())

    def __repr__(self) -> str:
        return f"CompressedFileOutputResource({self.path}!{self.entry_name})"
