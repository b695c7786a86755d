"""Tests for the YAML element registry."""

import threading

import pytest

from weathr.elements.registry import ELEMENTS_DIR, ElementChangeHandler, ElementRegistry
from weathr.simulation.engine import ParticleEngine
from weathr.widget.compositor import FrameCompositor


@pytest.fixture
def user_dir(tmp_path):
    (tmp_path / "archetypes").mkdir()
    (tmp_path / "art").mkdir()
    return tmp_path


class TestPackagedElements:
    """Tests against the shipped definitions."""

    def test_kinds(self, registry):
        assert {"archetypes", "art"} <= set(registry.list_kinds())

    def test_art_present(self, registry):
        for name in ("house", "sun", "moon", "ground"):
            assert ("art", name) in registry

    def test_every_particle_has_a_definition(self, registry):
        names = set(registry.list_names("archetypes"))
        assert {"raindrop", "snowflake", "hailstone", "lightning", "cloud", "fog", "bird", "leaf", "airplane"} <= names

    def test_missing_element(self, registry):
        assert registry.get("art", "castle") is None
        assert ("art", "castle") not in registry


class TestLayering:
    """Tests for user directories layered over the packaged ones."""

    def test_later_path_overrides(self, user_dir):
        (user_dir / "archetypes" / "raindrop.yaml").write_text("cap: 5\n")
        registry = ElementRegistry([ELEMENTS_DIR, user_dir])
        registry.load_all()
        assert registry.get("archetypes", "raindrop") == {"cap": 5}
        assert registry.get("archetypes", "snowflake")["cap"] == 3000

    def test_missing_path_is_skipped(self, tmp_path):
        registry = ElementRegistry([tmp_path / "nowhere"])
        registry.load_all()
        assert registry.list_kinds() == []

    def test_invalid_yaml_is_ignored(self, user_dir):
        (user_dir / "art" / "broken.yaml").write_text("pattern: [unclosed\n")
        (user_dir / "art" / "list.yaml").write_text("- just\n- a list\n")
        registry = ElementRegistry([user_dir])
        registry.load_all()
        assert registry.get("art", "broken") is None
        assert registry.get("art", "list") is None

    def test_get_all(self, user_dir):
        (user_dir / "art" / "tree.yaml").write_text("pattern: '^'\n")
        registry = ElementRegistry([user_dir])
        registry.load_all()
        assert registry.get_all("art") == {"tree": {"pattern": "^"}}


class TestReload:
    """Tests for change notification."""

    def test_reload_notifies(self, user_dir):
        path = user_dir / "art" / "tree.yaml"
        path.write_text("pattern: '^'\n")
        registry = ElementRegistry([user_dir])
        registry.load_all()
        seen = []
        registry.on_change(lambda kind, name: seen.append((kind, name)))

        path.write_text("pattern: 'A'\n")
        registry.reload(str(path))

        assert seen == [("art", "tree")]
        assert registry.get("art", "tree") == {"pattern": "A"}

    def test_listener_errors_do_not_propagate(self, user_dir):
        path = user_dir / "art" / "tree.yaml"
        path.write_text("pattern: '^'\n")
        registry = ElementRegistry([user_dir])
        seen = []

        def broken(kind, name):
            raise RuntimeError("listener failed")

        registry.on_change(broken)
        registry.on_change(lambda kind, name: seen.append(name))
        registry.reload(str(path))
        assert seen == ["tree"]

    def test_handler_ignores_other_files(self, user_dir):
        registry = ElementRegistry([user_dir])
        seen = []
        registry.on_change(lambda kind, name: seen.append(name))
        handler = ElementChangeHandler(registry)

        class Event:
            is_directory = False
            src_path = str(user_dir / "art" / "notes.txt")

        handler.on_modified(Event())
        assert seen == []

    def test_handler_queues_without_notifying(self, user_dir):
        path = user_dir / "art" / "tree.yaml"
        path.write_text("pattern: '^'\n")
        registry = ElementRegistry([user_dir])
        registry.load_all()
        seen = []
        registry.on_change(lambda kind, name: seen.append(name))
        handler = ElementChangeHandler(registry)

        class Event:
            is_directory = False
            src_path = str(path)

        path.write_text("pattern: 'A'\n")
        handler.on_modified(Event())
        handler.on_modified(Event())

        assert seen == []
        assert registry.pending
        assert registry.get("art", "tree") == {"pattern": "^"}

        assert registry.apply_pending() == 1
        assert seen == ["tree"]
        assert registry.get("art", "tree") == {"pattern": "A"}
        assert not registry.pending
        assert registry.apply_pending() == 0

    def test_pending_applied_on_calling_thread(self, user_dir):
        path = user_dir / "art" / "tree.yaml"
        path.write_text("pattern: '^'\n")
        registry = ElementRegistry([user_dir])
        threads = []
        registry.on_change(lambda kind, name: threads.append(threading.current_thread()))

        worker = threading.Thread(target=registry.queue_reload, args=(str(path),))
        worker.start()
        worker.join()

        assert threads == []
        registry.apply_pending()
        assert threads == [threading.current_thread()]

    def test_watching_lifecycle(self, user_dir):
        registry = ElementRegistry([user_dir])
        registry.start_watching()
        try:
            assert registry.watching
        finally:
            registry.stop_watching()
        assert not registry.watching


class TestListeners:
    """Tests for registering and removing change listeners."""

    def test_remove_listener(self, user_dir):
        registry = ElementRegistry([user_dir])
        seen = []

        def listener(kind, name):
            seen.append(name)

        registry.on_change(listener)
        assert registry.listener_count == 1
        registry.remove_listener(listener)
        registry.remove_listener(listener)
        assert registry.listener_count == 0

        registry.reload(str(user_dir / "art" / "tree.yaml"))
        assert seen == []

    def test_engine_close_detaches_archetypes(self, user_dir):
        registry = ElementRegistry([user_dir])
        engine = ParticleEngine(seed=0, registry=registry)
        assert registry.listener_count == len(engine.archetypes)
        engine.close()
        assert registry.listener_count == 0

    def test_compositor_close_detaches(self, user_dir):
        registry = ElementRegistry([user_dir])
        engine = ParticleEngine(seed=0, registry=registry)
        compositor = FrameCompositor(20, 10, registry=registry, archetypes=engine.archetypes)
        assert registry.listener_count == len(engine.archetypes) + 1
        compositor.close()
        assert registry.listener_count == len(engine.archetypes)

    def test_compositor_detaches_its_own_archetypes(self, user_dir):
        registry = ElementRegistry([user_dir])
        compositor = FrameCompositor(20, 10, registry=registry)
        compositor.close()
        assert registry.listener_count == 0

    def test_repeated_sessions_do_not_accumulate(self, user_dir):
        registry = ElementRegistry([user_dir])
        for _ in range(3):
            engine = ParticleEngine(seed=0, registry=registry)
            compositor = FrameCompositor(20, 10, registry=registry, archetypes=engine.archetypes)
            compositor.close()
            engine.close()
        assert registry.listener_count == 0
