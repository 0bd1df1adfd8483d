import base64
import zipfile
import zlib
from pathlib import Path
from typing import List, Union

from tuyu.Lib.Exceptions import NotAnArchive, EntryNotFound


class ArchiveReader:
    """
    Read-only access to a zip container (.apk, .xapk).

    Use it as a context manager so the file handle is released on every path:

        with ArchiveReader(path) as archive:
            data = archive.read_entry("manifest.json")
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        try:
            self._zipfile = zipfile.ZipFile(self.path)
        except (zipfile.BadZipFile, OSError) as e:
            raise NotAnArchive(self.path, str(e)) from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self._zipfile.close()

    def names(self) -> List[str]:
        return self._zipfile.namelist()

    def read_entry(self, entry_name: str) -> bytes:
        try:
            return self._zipfile.read(entry_name)
        except KeyError as e:
            raise EntryNotFound(self.path, entry_name) from e
        except (zipfile.BadZipFile, zlib.error, OSError) as e:
            raise NotAnArchive(self.path, f"corrupt entry {entry_name}: {e}") from e

    def read_text(self, entry_name: str, encoding: str = "utf-8") -> str:
        return self.read_entry(entry_name).decode(encoding)

    def read_entry_base64(self, entry_name: str) -> str:
        return base64.b64encode(self.read_entry(entry_name)).decode("ascii")
