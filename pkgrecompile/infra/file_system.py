"""
File system infrastructure for pkgrecompile.

Provides the small set of disk primitives the rest of the package uses:
- Existence and type checks
- Text reads and atomic text writes (write to temp, then rename)
- Moves, copies and directory creation

Every other layer talks to the disk through a FileSystem instance so that
it can be swapped or wrapped in tests.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Union
import logging

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FileSystem:
    """
    Thin wrapper around pathlib/os for the operations pkgrecompile needs.

    Example:
        fs = FileSystem()
        if fs.exists(path / "package.json"):
            data = fs.read_text(path / "package.json")
    """

    def resolve(self, path: PathLike, *parts: str) -> Path:
        """Return an absolute, normalized path (symlinks are not followed)."""
        joined = Path(path).joinpath(*parts).expanduser()
        return Path(os.path.abspath(joined))

    def exists(self, path: PathLike) -> bool:
        return os.path.exists(path)

    def is_file(self, path: PathLike) -> bool:
        return os.path.isfile(path)

    def is_dir(self, path: PathLike) -> bool:
        return os.path.isdir(path)

    def is_symlink(self, path: PathLike) -> bool:
        return os.path.islink(path)

    def list_dir(self, path: PathLike) -> List[str]:
        """List entry names of a directory, sorted for deterministic walks."""
        return sorted(os.listdir(path))

    def read_text(self, path: PathLike) -> str:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()

    def write_text(self, path: PathLike, contents: str) -> None:
        """
        Write text atomically.

        The contents go to a temp file in the same directory which is then
        renamed over the target, so readers never observe a partial file.
        """
        path = Path(path)
        self.ensure_dir(path.parent)

        fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp"
        )

        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(contents)

            os.replace(temp_path, path)

        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def move(self, source: PathLike, destination: PathLike) -> None:
        self.ensure_dir(Path(destination).parent)
        shutil.move(str(source), str(destination))

    def copy(self, source: PathLike, destination: PathLike) -> None:
        self.ensure_dir(Path(destination).parent)
        shutil.copyfile(source, destination)

    def ensure_dir(self, path: PathLike) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)
