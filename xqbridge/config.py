"""
Configuration loading from config.yaml.

Uses typed dataclasses throughout so the rest of the app gets IDE
completion and type-checker support without touching raw dicts.
"""

from __future__ import annotations

import logging
import logging.handlers
from dataclasses import dataclass, field
from pathlib import Path

import yaml

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ScriptsConfig:
    position: str = "./engine/position.py"
    search: str = "./engine/search.py"
    book: str | None = None   # optional opening book, loaded last

    def load_order(self) -> list[Path]:
        """Scripts in the order they must run: position before search, book last."""
        paths = [Path(self.position), Path(self.search)]
        if self.book:
            paths.append(Path(self.book))
        return paths


@dataclass
class EngineConfig:
    scripts: ScriptsConfig = field(default_factory=ScriptsConfig)
    hash_level: int = 15       # transposition table holds 2**hash_level entries
    max_depth: int = 64        # effectively unbounded; the time limit stops the search
    time_limit_ms: int = 900
    reentrant: bool = False    # True only if the engine tolerates concurrent searches


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str | None = "./logs/xqbridge.log"


@dataclass
class WebConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class Config:
    engine: EngineConfig = field(default_factory=EngineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    web: WebConfig = field(default_factory=WebConfig)

    @property
    def log_file_path(self) -> Path | None:
        return Path(self.logging.file) if self.logging.file else None


def load_config(path: str | Path = "config.yaml") -> Config:
    """
    Load and validate config.yaml.

    Relative script paths are resolved against the config file's directory.

    Raises:
        FileNotFoundError: config.yaml is missing.
        ValueError: required fields are absent or invalid.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {cfg_path.resolve()}\n"
            "Copy config.example.yaml to config.yaml and point engine.scripts at your engine."
        )

    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        engine_raw = raw.get("engine") or {}
        scripts_raw = engine_raw.get("scripts") or {}
        base_dir = cfg_path.parent
        scripts = ScriptsConfig(
            position=_resolve(base_dir, scripts_raw.get("position", ScriptsConfig.position)),
            search=_resolve(base_dir, scripts_raw.get("search", ScriptsConfig.search)),
            book=_resolve(base_dir, scripts_raw["book"]) if scripts_raw.get("book") else None,
        )
        engine_cfg = EngineConfig(
            scripts=scripts,
            hash_level=int(engine_raw.get("hash_level", 15)),
            max_depth=int(engine_raw.get("max_depth", 64)),
            time_limit_ms=int(engine_raw.get("time_limit_ms", 900)),
            reentrant=bool(engine_raw.get("reentrant", False)),
        )

        logging_raw = raw.get("logging") or {}
        logging_cfg = LoggingConfig(
            level=str(logging_raw.get("level", "INFO")).upper(),
            file=logging_raw.get("file", LoggingConfig.file),
        )

        web_raw = raw.get("web") or {}
        web_cfg = WebConfig(
            host=str(web_raw.get("host", "127.0.0.1")),
            port=int(web_raw.get("port", 8000)),
        )

        config = Config(engine=engine_cfg, logging=logging_cfg, web=web_cfg)
        _validate(config)
        return config

    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"Invalid config.yaml structure: {exc}") from exc


def _resolve(base_dir: Path, value: object) -> str:
    p = Path(str(value))
    return str(p if p.is_absolute() else base_dir / p)


def _validate(config: Config) -> None:
    engine = config.engine
    if not 1 <= engine.hash_level <= 24:
        raise ValueError("engine.hash_level must be between 1 and 24")
    if engine.max_depth < 1:
        raise ValueError("engine.max_depth must be >= 1")
    if engine.time_limit_ms <= 0:
        raise ValueError("engine.time_limit_ms must be > 0")
    if not engine.scripts.position or not engine.scripts.search:
        raise ValueError("engine.scripts needs both 'position' and 'search'")
    if config.logging.level not in _LOG_LEVELS:
        raise ValueError(
            f"logging.level must be one of {_LOG_LEVELS}, got '{config.logging.level}'"
        )
    if not 0 < config.web.port < 65536:
        raise ValueError("web.port must be a valid TCP port")


def configure_logging(config: Config) -> None:
    """Console logging plus a rotating log file (2 MB x 3) when logging.file is set."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_file = config.log_file_path
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8",
            )
        )
    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        handlers=handlers,
    )
