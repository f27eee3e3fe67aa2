"""
Script-backed engine: the engine ships as plain Python script files.

Scripts are executed in order into one shared namespace, the same way a page
loads position.js before search.js onto a shared global object. Later
scripts see every name the earlier ones defined.

Names looked up in the namespace once loading has finished:
  Position   class with a from_fen(fen) method
  Search     class built as Search(position, hash_level), exposing
             search_main(depth, millis) -> packed move
  src, dst   accessors on a packed move
  file_x, rank_y   (optional) square -> engine column / row

Any of the four required names missing means the engine is unavailable.
"""

from __future__ import annotations

import asyncio
import logging
import runpy
from pathlib import Path
from typing import Any

from xqbridge.engines.base import EngineCapabilities, EngineError, LoadStep

logger = logging.getLogger(__name__)

_REQUIRED = ("Position", "Search", "src", "dst")


def _exec_script(path: Path, namespace: dict[str, Any]) -> None:
    if not path.is_file():
        raise FileNotFoundError(f"Engine script not found: {path.resolve()}")
    result = runpy.run_path(str(path), init_globals=namespace)
    namespace.update(
        (name, value) for name, value in result.items() if not name.startswith("__")
    )


async def load_script(path: str | Path, namespace: dict[str, Any]) -> None:
    """
    Execute one engine script into namespace, off the event loop thread.

    Raises:
        EngineError(kind="load_failure"): the script is missing or raised while running.
    """
    script = Path(path)
    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(None, _exec_script, script, namespace)
    except Exception as exc:
        logger.error("Failed to load engine script %s: %s", script, exc)
        raise EngineError("load_failure", f"Failed to load {script}", cause=exc) from exc
    logger.debug("Loaded engine script %s", script)


class ScriptCapabilities(EngineCapabilities):
    """EngineCapabilities over the names a set of scripts left in a namespace."""

    def __init__(self, namespace: dict[str, Any], reentrant: bool = False) -> None:
        self._ns = namespace
        self._reentrant = reentrant

    @property
    def reentrant(self) -> bool:
        return self._reentrant

    def make_position(self, fen: str) -> Any:
        pos = self._ns["Position"]()
        pos.from_fen(fen)
        return pos

    def search(self, position: Any, hash_level: int, depth: int, millis: int) -> int:
        searcher = self._ns["Search"](position, hash_level)
        return searcher.search_main(depth, millis)

    def src(self, mv: int) -> int:
        return self._ns["src"](mv)

    def dst(self, mv: int) -> int:
        return self._ns["dst"](mv)

    def file_x(self, sq: int) -> int:
        fn = self._ns.get("file_x")
        return fn(sq) if callable(fn) else super().file_x(sq)

    def rank_y(self, sq: int) -> int:
        fn = self._ns.get("rank_y")
        return fn(sq) if callable(fn) else super().rank_y(sq)


def capabilities_from_namespace(
    namespace: dict[str, Any], reentrant: bool = False
) -> ScriptCapabilities | None:
    """Return capabilities if every required name is present and callable, else None."""
    missing = [name for name in _REQUIRED if not callable(namespace.get(name))]
    if missing:
        logger.warning("Engine namespace is missing %s", ", ".join(missing))
        return None
    return ScriptCapabilities(namespace, reentrant=reentrant)


class ScriptEngine:
    """
    Owns the namespace an engine's scripts are loaded into.

    load_steps() hands the loader one step per script, in load order;
    capabilities() is only meaningful once those steps have all succeeded.
    """

    def __init__(self, scripts: list[Path], reentrant: bool = False) -> None:
        self._scripts = list(scripts)
        self._reentrant = reentrant
        self.namespace: dict[str, Any] = {}

    @property
    def scripts(self) -> list[Path]:
        return list(self._scripts)

    def load_steps(self) -> list[LoadStep]:
        def _step(path: Path) -> LoadStep:
            async def run() -> None:
                await load_script(path, self.namespace)
            return run

        return [_step(p) for p in self._scripts]

    def capabilities(self) -> ScriptCapabilities | None:
        return capabilities_from_namespace(self.namespace, reentrant=self._reentrant)
