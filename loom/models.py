"""Модели данных LOOM: RunConfig, TaskFailure, RunSummary."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_OUTPUT_FILE = "results.csv"
DEFAULT_TARGET_FILE = "targets.txt"
DEFAULT_THREADS = 4


class RunConfig(BaseModel):
    """Разрешённая конфигурация прогона — собирается один раз при старте."""

    script: str = Field(..., min_length=1, description="Команда, вызываемая для каждой цели")
    extra_args: Optional[str] = Field(None, description="Аргумент, подставляемый перед целью")
    threads: int = Field(DEFAULT_THREADS, ge=1, description="Предел одновременных вызовов")
    dry_run: bool = Field(False, description="Только собрать команду, не запускать")
    append: bool = Field(False, description="Дописывать в выходной файл, а не обрезать")
    output_file: str = Field(DEFAULT_OUTPUT_FILE, description="Файл результатов")
    target_file: str = Field(DEFAULT_TARGET_FILE, description="Файл со списком целей")
    verbose: bool = Field(False, description="Печатать собранные командные строки")

    model_config = {"frozen": True}

    @field_validator("output_file", mode="before")
    @classmethod
    def _blank_output_is_default(cls, value: Optional[str]) -> str:
        if value is None or not str(value).strip():
            return DEFAULT_OUTPUT_FILE
        return value

    @property
    def arguments_template(self) -> list[str]:
        """Шаблон аргументов: последний слот зарезервирован под цель."""
        arguments = [self.extra_args] if self.extra_args else []
        arguments.append("")
        return arguments


class TaskFailure(BaseModel):
    """Задача, которая не смогла отдать результат."""

    target: str = Field(..., description="Цель, на которой упала задача")
    error: str = Field(..., description="Текст ошибки")


class RunSummary(BaseModel):
    """Итог прогона по всем целям."""

    total: int = Field(0, ge=0, description="Число диспетчеризованных задач")
    written: int = Field(0, ge=0, description="Число записей в выходной поток")
    failures: list[TaskFailure] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return not self.failures
