"""
Element registry - discovers, loads, caches, and hot-reloads YAML element definitions.
"""

import logging
import threading
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Optional

import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")

# Packaged definitions
ELEMENTS_DIR = Path(__file__).parent


class ElementChangeHandler(FileSystemEventHandler):
    """
    Watchdog handler that queues changed files for reload.

    Runs on the observer thread, so it only records the path; the owner of
    the listeners applies the reload with ``ElementRegistry.apply_pending``.
    """

    def __init__(self, registry: "ElementRegistry"):
        self.registry = registry

    def on_modified(self, event):
        if not event.is_directory and event.src_path.endswith(YAML_SUFFIXES):
            self.registry.queue_reload(event.src_path)

    def on_created(self, event):
        if not event.is_directory and event.src_path.endswith(YAML_SUFFIXES):
            self.registry.queue_reload(event.src_path)


class ElementRegistry:
    """
    Central registry for particle and art definitions.

    Usage:
        registry = ElementRegistry()
        registry.load_all()

        rain = registry.get('archetypes', 'raindrop')
        house = registry.get('art', 'house')

    Files are keyed by (kind, name) from their path: ``archetypes/raindrop.yaml``
    becomes ('archetypes', 'raindrop'). Later paths override earlier ones, so a
    user directory can be layered over the packaged defaults.
    """

    def __init__(self, paths: Optional[list] = None):
        if paths is None:
            paths = [ELEMENTS_DIR]

        self.paths = [Path(p) for p in paths]
        self._elements: dict[str, dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._listeners: list[Callable[[str, str], None]] = []
        # Paths changed on disk, in arrival order, waiting for apply_pending()
        self._pending: dict[str, None] = {}
        self._observers: list = []
        self._watching = False

    def load_all(self) -> None:
        """Discover and load all YAML files from element paths."""
        with self._lock:
            self._elements.clear()
            for base_path in self.paths:
                if not base_path.exists():
                    logger.debug("Element path %s does not exist", base_path)
                    continue
                for suffix in YAML_SUFFIXES:
                    for yaml_file in sorted(base_path.rglob(f"*{suffix}")):
                        self._load_file(yaml_file)

    def _load_file(self, file_path: Path) -> Optional[dict]:
        """Load a single YAML file and register its contents."""
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, OSError) as e:
            logger.warning("Failed to load %s: %s", file_path, e)
            return None

        if not isinstance(data, dict):
            return None

        kind, name = self._parse_path(file_path)
        self._elements.setdefault(kind, {})[name] = data
        return data

    def _parse_path(self, file_path: Path) -> tuple[str, str]:
        """
        Parse file path to extract kind and name.

        Args:
            file_path: Path like /path/to/elements/art/house.yaml

        Returns:
            Tuple of (kind, name) e.g., ('art', 'house')
        """
        for base_path in self.paths:
            try:
                rel_path = file_path.relative_to(base_path)
            except ValueError:
                continue
            parts = rel_path.parts
            if len(parts) >= 2:
                return parts[0], rel_path.stem
            if len(parts) == 1:
                return "root", rel_path.stem

        return file_path.parent.name, file_path.stem

    def get(self, kind: str, name: str) -> Optional[dict]:
        """Element definition for (kind, name), or None if not found."""
        with self._lock:
            return self._elements.get(kind, {}).get(name)

    def get_all(self, kind: str) -> dict[str, Any]:
        with self._lock:
            return dict(self._elements.get(kind, {}))

    def list_kinds(self) -> list[str]:
        with self._lock:
            return list(self._elements.keys())

    def list_names(self, kind: str) -> list[str]:
        with self._lock:
            return list(self._elements.get(kind, {}).keys())

    def reload(self, file_path: str) -> None:
        """Reload a single element file and notify listeners."""
        path = Path(file_path)
        kind, name = self._parse_path(path)

        with self._lock:
            self._load_file(path)

        # Notify outside the lock
        self._notify_listeners(kind, name)

    def queue_reload(self, file_path: str) -> None:
        """Record a changed file; safe to call from any thread."""
        with self._lock:
            self._pending[str(file_path)] = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return bool(self._pending)

    def apply_pending(self) -> int:
        """Reload every queued file on the calling thread. Returns how many were applied."""
        with self._lock:
            if not self._pending:
                return 0
            paths = list(self._pending)
            self._pending.clear()
        for path in paths:
            self.reload(path)
        return len(paths)

    def on_change(self, callback: Callable[[str, str], None]) -> None:
        """Register a callback called with (kind, name) when an element changes."""
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[str, str], None]) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _notify_listeners(self, kind: str, name: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(kind, name)
            except Exception:
                logger.exception("Listener error on %s/%s", kind, name)

    def start_watching(self) -> None:
        """Start watching element directories for changes."""
        if self._watching:
            return

        for base_path in self.paths:
            if not base_path.exists():
                continue
            observer = Observer()
            observer.daemon = True
            observer.schedule(ElementChangeHandler(self), str(base_path), recursive=True)
            observer.start()
            self._observers.append(observer)

        self._watching = True
        logger.info("Watching %d element path(s) for changes", len(self._observers))

    def stop_watching(self) -> None:
        for observer in self._observers:
            observer.stop()
            observer.join()
        self._observers.clear()
        self._watching = False

    @property
    def watching(self) -> bool:
        return self._watching

    def __contains__(self, key: tuple[str, str]) -> bool:
        """Check if an element exists: ('art', 'house') in registry"""
        kind, name = key
        return self.get(kind, name) is not None


@lru_cache(maxsize=1)
def default_registry() -> ElementRegistry:
    """Shared registry over the packaged element definitions."""
    registry = ElementRegistry()
    registry.load_all()
    return registry
