"""Configuration models and helpers for the vibe timer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional

from .paths import get_db_path

BACKENDS = ("sqlite", "memory")


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration shared by the CLI and the web dashboard."""

    db_path: Path = field(default_factory=get_db_path)
    backend: str = "sqlite"
    refresh_interval: timedelta = timedelta(seconds=1)
    host: str = "127.0.0.1"
    port: int = 8765

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ValueError(
                f"Unknown backend {self.backend!r}; expected one of {', '.join(BACKENDS)}"
            )

    @classmethod
    def from_options(
        cls,
        db_path: Optional[Path] = None,
        *,
        ephemeral: bool = False,
        backend: Optional[str] = None,
        refresh_seconds: float = 1.0,
    ) -> "TrackerSettings":
        resolved_backend = "memory" if ephemeral else (backend or "sqlite")
        return cls(
            db_path=Path(db_path) if db_path else get_db_path(),
            backend=resolved_backend,
            refresh_interval=timedelta(seconds=refresh_seconds),
        )
