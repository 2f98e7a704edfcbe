"""CLI точка входа LOOM: команда `loom`."""

from __future__ import annotations

import logging
import sys

import click
from pydantic import ValidationError

from loom.models import DEFAULT_OUTPUT_FILE, DEFAULT_TARGET_FILE, DEFAULT_THREADS, RunConfig
from loom.runner import run_targets
from loom.sink import ResultSink
from loom.targets import TargetFileError, load_targets

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--script", "-s", required=True, help="Скрипт, вызываемый для каждой цели")
@click.option("--args", "-a", "extra_args", default=None,
              help="Аргумент скрипта, ставится перед целью")
@click.option("--threads", "-n", default=DEFAULT_THREADS, show_default=True,
              type=click.IntRange(min=1), help="Предел одновременных процессов")
@click.option("--dry-run", "-m", is_flag=True,
              help="Показать команды, но не запускать их")
@click.option("--append", is_flag=True,
              help="Дописывать в выходной файл вместо перезаписи")
@click.option("--output-file", "-o", default=DEFAULT_OUTPUT_FILE, show_default=True,
              help="Файл результатов")
@click.option("--target", "-t", "target_file", default=DEFAULT_TARGET_FILE, show_default=True,
              help="Файл со списком IP или имён хостов")
@click.option("--verbose", "-v", is_flag=True, help="Сообщать обо всём, что делаем")
def cli(
    script: str,
    extra_args: str | None,
    threads: int,
    dry_run: bool,
    append: bool,
    output_file: str,
    target_file: str,
    verbose: bool,
) -> None:
    """LOOM — запуск скрипта по списку целей с ограничением параллелизма."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = RunConfig(
            script=script,
            extra_args=extra_args,
            threads=threads,
            dry_run=dry_run,
            append=append,
            output_file=output_file,
            target_file=target_file,
            verbose=verbose,
        )
    except ValidationError as exc:
        raise click.UsageError(str(exc))

    try:
        targets = load_targets(config.target_file)
    except TargetFileError as exc:
        raise click.ClickException(str(exc))

    if verbose:
        click.echo(f"Целей: {len(targets)}  потоков: {config.threads}", err=True)

    with ResultSink.open(config.output_file, append=config.append) as sink:
        summary = run_targets(targets, config, sink)

    for failure in summary.failures:
        click.echo(f"FAILED {failure.target}: {failure.error}", err=True)
    if not summary.ok:
        sys.exit(1)
