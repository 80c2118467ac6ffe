"""
Test Configuration File

Unified setup for Python path, avoiding sys.path.insert in each test file.
Provides singleton isolation and the fakes-backed session container.
"""

import sys
from pathlib import Path

import pytest

# Add the src directory to the Python path
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def _isolate_singletons(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Fresh EventBus/ConfigService per test, user directories sandboxed"""
    from core.event_bus import EventBus
    from services.config_service import ConfigService

    base = tmp_path / "user-config"
    # Set for Windows/Mac/Linux to avoid platform differences leaking to real user directories
    monkeypatch.setenv("APPDATA", str(base))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(base))

    EventBus.reset_instance()
    ConfigService.reset_instance()
    yield
    EventBus.reset_instance()
    ConfigService.reset_instance()


@pytest.fixture
def config(tmp_path: Path):
    """Isolated configuration with short timers"""
    from services.config_service import ConfigService

    config = ConfigService(str(tmp_path / "config.yaml"))
    config.set("session.stop_delay_ms", 20)
    config.set("session.load_retry_delay_ms", 0)
    config.set("playlist.retry_delay_ms", 0)
    config.set("metadata.image_retry_delay_ms", 0)
    return config


@pytest.fixture
def engines():
    """Every audio engine created by engine_factory, in creation order"""
    return []


@pytest.fixture
def engine_factory(engines):
    from fakes import FakeAudioEngine

    def factory():
        engine = FakeAudioEngine()
        engines.append(engine)
        return engine

    return factory


@pytest.fixture
def video_source():
    from fakes import FakeVideoSource

    return FakeVideoSource()


@pytest.fixture
def image_loader():
    from fakes import FakeImageLoader

    return FakeImageLoader()


@pytest.fixture
def network():
    from core.network_status import NetworkMonitor

    return NetworkMonitor()


@pytest.fixture
def container(config, engine_factory, video_source, image_loader, network):
    from app.container_factory import AppContainerFactory

    container = AppContainerFactory.create_for_testing(
        engine_factory,
        video_source,
        image_loader=image_loader,
        network=network,
    )
    yield container
    container.cleanup()


@pytest.fixture
def events(container):
    from fakes import EventRecorder

    return EventRecorder(container.event_bus)
