"""
=================
Trendline Drawer Configuration
=================

Immutable settings for the drag gesture, the interference monitor and the
external triggers. Defaults match the chart layout the tool was written for:
a 1000 px leftward drag at y=500 spread over 30 minutes.

A JSON file can override any value:

    {
        "simulate": false,
        "log_level": "INFO",
        "drag": {"start_x": 1500, "end_x": 500, "y": 500,
                 "total_duration_ms": 1800000, "step": 0.7},
        "monitor": {"threshold": 20, "restart_delay_ms": 3000},
        "triggers": {"signal_source": "pynput", "draw_chord": "cmd+p"}
    }
"""
from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Iterator, Optional, Union
import json
import math

from .errors import ConfigError

SIGNAL_SOURCES = ("pynput", "stdin", "none")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _count_steps(distance: float, step: float) -> int:
    # round first so 1000 / 0.5 stays 2000 instead of 2000.0000000001 -> 2001
    return math.ceil(round(abs(distance) / step, 9))


@dataclass(frozen=True)
class DragPath:
    """
    One concrete traversal: from start_x to end_x along a fixed y.

    The pointer starts at start_x, so the first movement is already one step
    away from it; the last movement is clamped onto end_x.
    """
    start_x: float
    end_x: float
    y: float
    step: float
    total_duration_ms: float

    @property
    def distance(self) -> float:
        return abs(self.start_x - self.end_x)

    @property
    def step_count(self) -> int:
        return _count_steps(self.distance, self.step)

    @property
    def delay_per_step_ms(self) -> float:
        count = self.step_count
        if count == 0:
            return 0.0
        return self.total_duration_ms / count

    def positions(self) -> Iterator[float]:
        """Yield the x coordinate of every movement, in order."""
        direction = -1 if self.end_x < self.start_x else 1
        count = self.step_count
        for i in range(1, count + 1):
            x = self.start_x + direction * self.step * i
            if i == count or (x - self.end_x) * direction > 0:
                x = self.end_x
            yield x


@dataclass(frozen=True)
class DragConfig:
    """
    Gesture settings.

    start_x, end_x, y: fixed drag line in screen coordinates
    total_duration_ms: traversal time, independent of distance
    step: pixels advanced per movement (fractions allowed)
    settle_ms: pause after moving to the fixed start
    click_gap_ms / focus_settle_ms: pauses around the two focus clicks
    min_end_x: lowest end coordinate for a drag resumed mid-screen
    """
    start_x: float = 1500
    end_x: float = 500
    y: float = 500
    total_duration_ms: float = 30 * 60 * 1000
    step: float = 0.7
    settle_ms: float = 500
    click_gap_ms: float = 100
    focus_settle_ms: float = 500
    min_end_x: float = 10

    def __post_init__(self):
        if self.step <= 0:
            raise ConfigError(f"drag.step must be positive, got {self.step}")
        if self.total_duration_ms < 0:
            raise ConfigError(f"drag.total_duration_ms must be >= 0, got {self.total_duration_ms}")
        for name in ("settle_ms", "click_gap_ms", "focus_settle_ms"):
            if getattr(self, name) < 0:
                raise ConfigError(f"drag.{name} must be >= 0")

    @property
    def distance(self) -> float:
        return abs(self.start_x - self.end_x)

    @property
    def span(self) -> float:
        """Signed horizontal travel; positive for a leftward drag."""
        return self.start_x - self.end_x

    @property
    def step_count(self) -> int:
        return self.default_path().step_count

    @property
    def delay_per_step_ms(self) -> float:
        return self.default_path().delay_per_step_ms

    def default_path(self) -> DragPath:
        return DragPath(self.start_x, self.end_x, self.y, self.step, self.total_duration_ms)

    def resumed_path(self, start_x: float, y: float) -> DragPath:
        """Path for a drag resumed from an arbitrary pointer position."""
        end_x = start_x - self.span
        if self.span > 0:
            end_x = max(end_x, self.min_end_x)
        return DragPath(start_x, end_x, y, self.step, self.total_duration_ms)


@dataclass(frozen=True)
class MonitorConfig:
    """
    Interference monitor settings.

    max_restarts: cap on consecutive automatic restarts; None = unbounded
    """
    period_ms: float = 100
    threshold: int = 20
    restart_delay_ms: float = 3000
    max_restarts: Optional[int] = None

    def __post_init__(self):
        if self.period_ms <= 0:
            raise ConfigError(f"monitor.period_ms must be positive, got {self.period_ms}")
        if self.threshold < 0:
            raise ConfigError(f"monitor.threshold must be >= 0, got {self.threshold}")
        if self.restart_delay_ms < 0:
            raise ConfigError(f"monitor.restart_delay_ms must be >= 0, got {self.restart_delay_ms}")
        if self.max_restarts is not None and self.max_restarts < 0:
            raise ConfigError(f"monitor.max_restarts must be >= 0, got {self.max_restarts}")


@dataclass(frozen=True)
class TriggerConfig:
    startup_delay_ms: float = 3000
    chord_delay_ms: float = 5000
    signal_source: str = "pynput"
    terminate_chord: str = "esc"
    draw_chord: str = "cmd+p"
    debounce_ms: float = 1000

    def __post_init__(self):
        if self.signal_source not in SIGNAL_SOURCES:
            raise ConfigError(
                f"triggers.signal_source must be one of {', '.join(SIGNAL_SOURCES)}, "
                f"got {self.signal_source!r}"
            )
        if self.startup_delay_ms < 0 or self.chord_delay_ms < 0:
            raise ConfigError("trigger delays must be >= 0")
        for name in ("terminate_chord", "draw_chord"):
            if not parse_chord(getattr(self, name)):
                raise ConfigError(f"triggers.{name} is empty")


@dataclass(frozen=True)
class AppConfig:
    drag: DragConfig = field(default_factory=DragConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    triggers: TriggerConfig = field(default_factory=TriggerConfig)
    simulate: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")


def parse_chord(chord: str) -> frozenset:
    """'cmd+p' -> frozenset({'cmd', 'p'})"""
    return frozenset(part.strip().lower() for part in chord.split("+") if part.strip())


def _build_section(cls, data, section: str):
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be an object")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {', '.join(unknown)}")
    try:
        return cls(**data)
    except TypeError as e:
        raise ConfigError(f"Invalid '{section}' section: {e}") from e


def config_from_dict(data: dict) -> AppConfig:
    """Build an AppConfig from parsed JSON, raising ConfigError on bad input."""
    if not isinstance(data, dict):
        raise ConfigError("Config root must be an object")
    sections = {"drag": DragConfig, "monitor": MonitorConfig, "triggers": TriggerConfig}
    unknown = sorted(set(data) - set(sections) - {"simulate", "log_level"})
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    kwargs = {name: _build_section(cls, data.get(name, {}), name) for name, cls in sections.items()}
    if "simulate" in data:
        if not isinstance(data["simulate"], bool):
            raise ConfigError(f"'simulate' must be true or false, got {data['simulate']!r}")
        kwargs["simulate"] = data["simulate"]
    if "log_level" in data:
        kwargs["log_level"] = str(data["log_level"]).upper()
    return AppConfig(**kwargs)


def load_config(path: Union[str, Path, None] = None) -> AppConfig:
    """
    Load configuration from a JSON file.

    Args:
        path: JSON file; None returns the defaults

    Raises:
        ConfigError if the file is missing, malformed or holds invalid values
    """
    if path is None:
        return AppConfig()
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
    return config_from_dict(data)


def with_drag_overrides(config: AppConfig, **overrides) -> AppConfig:
    """Return a copy of config with the non-None drag values replaced."""
    values = {k: v for k, v in overrides.items() if v is not None}
    if not values:
        return config
    return replace(config, drag=replace(config.drag, **values))
