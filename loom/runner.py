"""Параллельный запуск команды по всем целям через ThreadPoolExecutor."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from loom.command import CommandSpawnError, invoke_command
from loom.models import RunConfig, RunSummary, TaskFailure
from loom.sink import ResultSink

logger = logging.getLogger(__name__)

Invoker = Callable[..., str]


def as_record(result: str) -> str:
    """Непустой результат задачи — одна запись, завершённая переводом строки."""
    return f"{result}\n" if result else ""


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


class PendingCounter:
    """Счётчик незавершённых задач: уменьшение и проверка на ноль атомарны."""

    def __init__(self, total: int) -> None:
        if total < 0:
            raise ValueError("total must be >= 0")
        self._remaining = total
        self._lock = threading.Lock()

    @property
    def remaining(self) -> int:
        with self._lock:
            return self._remaining

    def decrement(self) -> int:
        """Уменьшить счётчик и вернуть новое значение.

        Ноль возвращается ровно одному вызывающему — тому, кто завершил прогон.
        """
        with self._lock:
            if self._remaining == 0:
                raise RuntimeError("pending counter is already zero")
            self._remaining -= 1
            return self._remaining


class FanOutRunner:
    """Движок: одна задача на цель, не больше `threads` одновременно.

    Экземпляр одноразовый: IDLE → RUNNING → COMPLETED, обратно пути нет.
    Порядок завершения задач (а значит, и записи) не совпадает с порядком целей.
    """

    def __init__(
        self,
        config: RunConfig,
        sink: ResultSink,
        invoke: Invoker = invoke_command,
        on_complete: Optional[Callable[[RunSummary], None]] = None,
    ) -> None:
        self.config = config
        self.sink = sink
        self._invoke = invoke
        self._on_complete = on_complete
        self._state = RunState.IDLE
        self._state_lock = threading.Lock()
        self._summary_lock = threading.Lock()
        self._completed = threading.Event()
        self._counter: Optional[PendingCounter] = None

    @property
    def state(self) -> RunState:
        return self._state

    def run(self, targets: Iterable[str]) -> RunSummary:
        """Выполнить команду для каждой цели и дождаться завершения всех задач.

        Args:
            targets: Упорядоченные уникальные цели.

        Returns:
            Итог прогона: сколько записано, какие задачи упали.
        """
        with self._state_lock:
            if self._state is not RunState.IDLE:
                raise RuntimeError(f"runner is {self._state.value}, cannot run again")
            self._state = RunState.RUNNING

        targets = list(targets)
        summary = RunSummary(total=len(targets))
        self._counter = PendingCounter(len(targets))

        if not targets:
            self._mark_completed(summary)
            return self._notify(summary)

        # шаблон общий для всех задач и только читается
        template = tuple(self.config.arguments_template)
        logger.info("Запуск %d целей, потоков: %d", len(targets), self.config.threads)

        with ThreadPoolExecutor(
            max_workers=self.config.threads, thread_name_prefix="loom"
        ) as executor:
            for target in targets:
                executor.submit(self._run_one, target, template, summary)
            self._completed.wait()

        return self._notify(summary)

    def _run_one(self, target: str, template: Sequence[str], summary: RunSummary) -> None:
        """Одна задача: вызвать команду, записать результат, отметиться в счётчике."""
        arguments = list(template)
        arguments[-1] = target
        try:
            result = self._invoke(
                self.config.script,
                arguments,
                dry_run=self.config.dry_run,
                verbose=self.config.verbose,
            )
            if self.sink.write(as_record(result)):
                with self._summary_lock:
                    summary.written += 1
                logger.debug("[%s] записано %d символов", target, len(result))
            else:
                self._record_failure(summary, target, "result write failed")
        except CommandSpawnError as exc:
            logger.error("[%s] ошибка: %s", target, exc)
            self._record_failure(summary, target, str(exc))
        except Exception as exc:
            logger.exception("[%s] непредвиденная ошибка", target)
            self._record_failure(summary, target, f"{type(exc).__name__}: {exc}")
        finally:
            if self._counter.decrement() == 0:
                self._mark_completed(summary)

    def _record_failure(self, summary: RunSummary, target: str, error: str) -> None:
        with self._summary_lock:
            summary.failures.append(TaskFailure(target=target, error=error))

    def _mark_completed(self, summary: RunSummary) -> None:
        """Вызывается ровно один раз — задачей, обнулившей счётчик."""
        summary.finished_at = datetime.now(timezone.utc)
        self._state = RunState.COMPLETED
        logger.info(
            "Готово: записано %d из %d, ошибок %d",
            summary.written, summary.total, len(summary.failures),
        )
        self._completed.set()

    def _notify(self, summary: RunSummary) -> RunSummary:
        # on_complete всегда в вызывающем потоке: его исключение доходит до run()
        if self._on_complete is not None:
            self._on_complete(summary)
        return summary


def run_targets(
    targets: Iterable[str],
    config: RunConfig,
    sink: ResultSink,
    invoke: Invoker = invoke_command,
) -> RunSummary:
    """Запустить команду по всем целям и собрать итог."""
    return FanOutRunner(config, sink, invoke=invoke).run(targets)
