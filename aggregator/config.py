"""Settings shared by the CLI and the stream service.

Precedence: dataclass defaults < YAML file (--config) < explicit CLI flags.

YAML layout (every key optional):

    window_seconds: 60
    output: text          # text | json
    on_error: skip        # skip | warn | abort
    kafka:
      bootstrap_servers: localhost:9092
      input_topic: hit-commands
      output_topic: hit-results
      group_id: hit-aggregator
"""

from dataclasses import dataclass, replace
from pathlib import Path

import yaml

from aggregator.engine import ERROR_POLICIES, SKIP
from aggregator.formatting import OUTPUT_FORMATS, TEXT
from aggregator.window import DEFAULT_WINDOW_SECONDS

_TOP_LEVEL_FIELDS = ("window_seconds", "output", "on_error", "kafka")
_KAFKA_FIELDS = ("bootstrap_servers", "input_topic", "output_topic", "group_id")


@dataclass(frozen=True)
class Settings:
    window_seconds: int = DEFAULT_WINDOW_SECONDS
    output_format: str = TEXT
    on_error: str = SKIP
    bootstrap_servers: str = "localhost:9092"
    input_topic: str = "hit-commands"
    output_topic: str = "hit-results"
    group_id: str = "hit-aggregator"


def load_settings(path: str | Path | None = None) -> Settings:
    """Read *path* (if given) on top of the defaults and validate the result."""
    settings = Settings()
    if path is None:
        return settings

    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path) as f:
        definition = yaml.safe_load(f) or {}

    if not isinstance(definition, dict):
        raise ValueError(f"{path.name}: top level must be a mapping")
    for key in definition:
        if key not in _TOP_LEVEL_FIELDS:
            raise ValueError(f"{path.name}: unknown field '{key}'")

    values = {}
    if "window_seconds" in definition:
        values["window_seconds"] = definition["window_seconds"]
    if "output" in definition:
        values["output_format"] = definition["output"]
    if "on_error" in definition:
        values["on_error"] = definition["on_error"]

    kafka = definition.get("kafka") or {}
    if not isinstance(kafka, dict):
        raise ValueError(f"{path.name}: 'kafka' must be a mapping")
    for key, value in kafka.items():
        if key not in _KAFKA_FIELDS:
            raise ValueError(f"{path.name}: unknown kafka field '{key}'")
        values[key] = str(value)

    return validate(replace(settings, **values), source=path.name)


def apply_overrides(settings: Settings, **overrides) -> Settings:
    """Overlay CLI flags; None means the flag was not given."""
    given = {k: v for k, v in overrides.items() if v is not None}
    return validate(replace(settings, **given), source="command line")


def validate(settings: Settings, source: str = "settings") -> Settings:
    window = settings.window_seconds
    # bool is an int subclass; "window_seconds: yes" is not a window.
    if isinstance(window, bool) or not isinstance(window, int) or window < 1:
        raise ValueError(f"{source}: window_seconds must be a positive integer, got {window!r}")
    if settings.output_format not in OUTPUT_FORMATS:
        raise ValueError(
            f"{source}: output must be one of {', '.join(OUTPUT_FORMATS)}, "
            f"got {settings.output_format!r}"
        )
    if settings.on_error not in ERROR_POLICIES:
        raise ValueError(
            f"{source}: on_error must be one of {', '.join(ERROR_POLICIES)}, "
            f"got {settings.on_error!r}"
        )
    return settings
