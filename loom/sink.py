"""Общий выходной поток результатов с последовательной записью."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)


class ResultSink:
    """Единственный разделяемый поток, в который пишут все задачи.

    Запись идёт под замком, после каждой записи — flush, чтобы `tail -f`
    видел данные сразу. Разделители между результатами не добавляются.
    """

    def __init__(self, stream: BinaryIO, path: str = "") -> None:
        self._stream = stream
        self._lock = threading.Lock()
        self.path = path
        self.writes = 0
        self.bytes_written = 0

    @classmethod
    def open(cls, path: str | Path, append: bool = False) -> "ResultSink":
        """Открыть файл результатов; без append содержимое обрезается."""
        mode = "ab" if append else "wb"
        logger.debug("Открытие %s (режим %s)", path, mode)
        return cls(open(path, mode), path=str(path))

    @property
    def closed(self) -> bool:
        return self._stream.closed

    def write(self, text: str) -> bool:
        """Дописать текст одной задачи. Возвращает False при ошибке ввода-вывода."""
        data = text.encode("ascii", errors="replace")
        with self._lock:
            if self._stream.closed:
                raise ValueError(f"result sink {self.path!r} is closed")
            try:
                self._stream.write(data)
                self._stream.flush()
            except OSError as exc:
                logger.error("Ошибка записи в %s: %s", self.path, exc)
                return False
            self.writes += 1
            self.bytes_written += len(data)
        return True

    def close(self) -> None:
        with self._lock:
            if not self._stream.closed:
                self._stream.close()

    def __enter__(self) -> "ResultSink":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<ResultSink {self.path!r} writes={self.writes}>"
