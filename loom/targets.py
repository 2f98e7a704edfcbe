"""Загрузка и дедупликация списка целей."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


class TargetFileError(Exception):
    """Файл целей отсутствует или не читается."""

    def __init__(self, path: str | Path, reason: str) -> None:
        super().__init__(f"File {path} {reason}")
        self.path = str(path)


def dedupe_targets(lines: Iterable[str]) -> list[str]:
    """Очистить строки и убрать дубли без учёта регистра.

    Пустые строки отбрасываются. При совпадении побеждает первая встреченная
    цель: сохраняются и её позиция, и её написание.

    Args:
        lines: Сырые строки файла целей.

    Returns:
        Упорядоченный список уникальных целей.
    """
    seen: set[str] = set()
    targets: list[str] = []

    for line in lines:
        target = line.strip()
        if not target:
            continue
        key = target.upper()
        if key in seen:
            logger.debug("Дубль цели пропущен: %s", target)
            continue
        seen.add(key)
        targets.append(target)

    return targets


def load_targets(path: str | Path) -> list[str]:
    """Прочитать файл целей и вернуть уникальные цели в порядке файла."""
    p = Path(path)
    if not p.is_file():
        raise TargetFileError(p, "does not exist")

    try:
        text = p.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise TargetFileError(p, f"cannot be read: {exc}") from exc

    targets = dedupe_targets(text.splitlines())
    logger.debug("Загружено целей из %s: %d", p, len(targets))
    return targets
