"""
Engine factory.

create_engine() is the single entry point for building the script-backed
engine runtime from configuration.

To plug in a different kind of engine (e.g. an in-process object):
  1. Implement EngineCapabilities in xqbridge/engines/<name>.py
  2. Hand EngineAdapter its load steps and a capabilities factory
"""

from __future__ import annotations

from xqbridge.config import EngineConfig
from xqbridge.engines.base import (
    FILE_LEFT,
    NULL_MOVE,
    RANK_TOP,
    EngineCapabilities,
    EngineError,
    LoadStep,
)
from xqbridge.engines.script import (
    ScriptCapabilities,
    ScriptEngine,
    capabilities_from_namespace,
    load_script,
)

__all__ = [
    "FILE_LEFT",
    "RANK_TOP",
    "NULL_MOVE",
    "EngineCapabilities",
    "EngineError",
    "LoadStep",
    "ScriptCapabilities",
    "ScriptEngine",
    "capabilities_from_namespace",
    "load_script",
    "create_engine",
]


def create_engine(engine_cfg: EngineConfig) -> ScriptEngine:
    """Build a ScriptEngine that loads the configured scripts in their fixed order."""
    return ScriptEngine(engine_cfg.scripts.load_order(), reentrant=engine_cfg.reentrant)
