from pathlib import Path
from typing import List, Optional, TextIO, Union

DEFAULT_BUFFER_SIZE = 131072  # 128KB


class BufferedWriter:
    """
    Buffered text file writer.

    Accumulates writes and hands them to the file in large chunks. The file is
    written in place; an interrupted run leaves an incomplete document behind.
    """

    def __init__(
        self,
        path: Union[str, Path],
        encoding: str = "utf-8",
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        self.path = Path(path)
        self.encoding = encoding
        self.buffer_size = buffer_size
        self._buffer: List[str] = []
        self._current_size = 0
        self._file: Optional[TextIO] = None

    def __enter__(self):
        self._file = open(self.path, "w", encoding=self.encoding, newline="\n")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            self.flush()
        finally:
            if self._file:
                self._file.close()
                self._file = None

    def write(self, data: str) -> int:
        self._buffer.append(data)
        self._current_size += len(data)
        if self._current_size >= self.buffer_size:
            self.flush()
        return len(data)

    def flush(self):
        if not self._buffer:
            if self._file:
                self._file.flush()
            return

        content = "".join(self._buffer)
        self._buffer = []
        self._current_size = 0

        if self._file:
            self._file.write(content)
            self._file.flush()
