"""Per-instance temporary directories."""

import atexit
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from embedded_kafka.diagnostics import Sink, null_sink
from embedded_kafka.errors import FilesystemError


class Workspace:
    """
    A temp directory owned by exactly one broker instance.

    The directory is removed when remove() is called or, failing that, when
    the interpreter exits.
    """

    def __init__(self, path: Path, sink: Optional[Sink] = None):
        self.path = path
        self._sink = sink or null_sink
        self._removed = False

    @property
    def removed(self) -> bool:
        return self._removed

    def remove(self) -> None:
        """Delete the directory tree. Calling it again is a no-op."""
        if self._removed:
            return
        self._removed = True
        atexit.unregister(self.remove)
        shutil.rmtree(self.path, ignore_errors=True)
        self._sink("workspace.removed", path=self.path)

    def __fspath__(self) -> str:
        return str(self.path)

    def __repr__(self) -> str:
        return f"Workspace({str(self.path)!r})"


def create_workspace(prefix: str = "kafka-",
                     parent: Optional[Union[str, Path]] = None,
                     sink: Optional[Sink] = None) -> Workspace:
    """
    Create a uniquely named directory and register it for cleanup at exit.

    Raises:
        FilesystemError: If the directory cannot be created
    """
    try:
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))
    except OSError as exc:
        raise FilesystemError(f"Could not create workspace with prefix {prefix!r}: {exc}") from exc

    workspace = Workspace(path, sink=sink)
    atexit.register(workspace.remove)
    (sink or null_sink)("workspace.created", path=path)
    return workspace
