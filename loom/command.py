"""Запуск внешней команды для одной цели и захват её stdout."""

from __future__ import annotations

import logging
import subprocess
import threading
from typing import Callable, Optional, Sequence

import click

logger = logging.getLogger(__name__)

StderrSink = Callable[[str], None]


class CommandSpawnError(Exception):
    """Процесс не удалось запустить: нет файла, нет прав и т.п."""

    def __init__(self, command: str, cause: OSError) -> None:
        super().__init__(f"cannot start {command!r}: {cause}")
        self.command = command
        self.cause = cause


def _echo_stderr(line: str) -> None:
    click.echo(line, err=True)


def build_command_line(command: str, arguments: Sequence[str]) -> str:
    """Склеить команду и аргументы через один пробел.

    Экранирования нет: аргумент с пробелом превратится в несколько аргументов
    дочернего процесса.
    """
    return f"{command} {' '.join(arguments)}"


def invoke_command(
    command: str,
    arguments: Sequence[str],
    dry_run: bool = False,
    verbose: bool = False,
    stderr_sink: Optional[StderrSink] = None,
) -> str:
    """Запустить команду и вернуть её stdout.

    Args:
        command: Исполняемый файл.
        arguments: Аргументы; цель стоит в последнем слоте.
        dry_run: Не запускать процесс, вернуть пустую строку.
        verbose: Напечатать собранную командную строку в stderr.
        stderr_sink: Куда пересылать строки stderr (по умолчанию — stderr родителя).

    Returns:
        Накопленный stdout без пробельных символов по краям.

    Raises:
        CommandSpawnError: Процесс не запустился.
    """
    command_line = build_command_line(command, arguments)
    if verbose:
        click.echo(command_line, err=True)

    if dry_run:
        return ""

    argv = [command, *" ".join(arguments).split()]
    try:
        process = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        raise CommandSpawnError(command, exc) from exc

    forward = stderr_sink or _echo_stderr
    pump = threading.Thread(
        target=_pump_stderr, args=(process.stderr, forward), daemon=True
    )
    pump.start()

    chunks: list[str] = []
    with process:
        for line in process.stdout:
            chunks.append(line.rstrip("\r\n") + "\n")
        returncode = process.wait()
        # join до закрытия пайпов: весь stderr уже переслан
        pump.join()

    logger.debug("%s завершился с кодом %d", command_line, returncode)
    return "".join(chunks).strip()


def _pump_stderr(stream, forward: StderrSink) -> None:
    failed = False
    for line in stream:
        # пайп дочитывается до EOF в любом случае, иначе процесс встанет
        if failed:
            continue
        try:
            forward(line.rstrip("\r\n"))
        except Exception as exc:
            failed = True
            logger.warning("Пересылка stderr остановлена: %s", exc)
