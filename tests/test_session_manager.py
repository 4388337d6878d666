import pytest

from ekyte_tools.browser.base import BrowserLaunchError
from ekyte_tools.browser.session import BrowserSessionManager
from ekyte_tools.config import BrowserConfig
from fakes import FakeClock, FakeLauncher


def _manager(launcher: FakeLauncher, clock: FakeClock, **overrides) -> BrowserSessionManager:
    config = BrowserConfig(headless=True, **overrides)
    return BrowserSessionManager(config, launcher=launcher, clock=clock)


def test_session_is_launched_lazily_and_reused() -> None:
    launcher, clock = FakeLauncher(), FakeClock()
    manager = _manager(launcher, clock)

    assert launcher.launches == 0
    first = manager.ensure_session()
    second = manager.ensure_session()

    assert first is second
    assert launcher.launches == 1
    assert manager.is_live


def test_new_page_gets_viewport_and_timeouts() -> None:
    manager = _manager(FakeLauncher(), FakeClock(), viewport_width=800, viewport_height=600)

    page = manager.ensure_session()

    assert page.viewport == {"width": 800, "height": 600}
    assert page.default_timeout == 30_000
    assert page.default_navigation_timeout == 30_000
    assert page.context.viewport == {"width": 800, "height": 600}


def test_closed_page_is_replaced_by_an_open_page_of_the_same_browser() -> None:
    launcher = FakeLauncher()
    manager = _manager(launcher, FakeClock())
    page = manager.ensure_session()
    spare = page.context.new_page()
    page.close()

    replacement = manager.ensure_session()

    assert replacement is spare
    assert launcher.launches == 1


def test_idle_session_is_relaunched_on_next_use() -> None:
    launcher, clock = FakeLauncher(), FakeClock()
    manager = _manager(launcher, clock, idle_timeout=60)
    first = manager.ensure_session()

    clock.advance(61)
    second = manager.ensure_session()

    assert second is not first
    assert launcher.launches == 2
    assert launcher.browsers[0].connected is False
    assert launcher.drivers[0].stopped is True


def test_activity_within_threshold_keeps_session() -> None:
    launcher, clock = FakeLauncher(), FakeClock()
    manager = _manager(launcher, clock, idle_timeout=60)
    manager.ensure_session()

    for _ in range(3):
        clock.advance(50)
        manager.ensure_session()

    assert launcher.launches == 1


def test_reap_if_idle_closes_only_after_threshold() -> None:
    launcher, clock = FakeLauncher(), FakeClock()
    manager = _manager(launcher, clock, idle_timeout=60)
    manager.ensure_session()

    clock.advance(30)
    assert manager.reap_if_idle() is False
    clock.advance(31)
    assert manager.reap_if_idle() is True

    assert not manager.is_live
    assert manager.page is None
    assert manager.status().live is False


def test_disconnect_resets_state_and_next_call_relaunches() -> None:
    launcher = FakeLauncher()
    manager = _manager(launcher, FakeClock())
    manager.ensure_session()

    launcher.browsers[0].crash()

    assert manager.page is None
    manager.ensure_session()
    assert launcher.launches == 2
    assert launcher.drivers[0].stopped is True


def test_launch_failure_is_classified() -> None:
    launcher = FakeLauncher()
    launcher.error = RuntimeError("chromium missing")
    manager = _manager(launcher, FakeClock())

    with pytest.raises(BrowserLaunchError, match="chromium missing"):
        manager.ensure_session()


def test_close_is_idempotent() -> None:
    launcher = FakeLauncher()
    manager = _manager(launcher, FakeClock())
    manager.ensure_session()

    manager.close()
    manager.close()

    assert launcher.drivers[0].stopped is True
    assert not manager.is_live


def test_status_reports_idle_time_and_url() -> None:
    clock = FakeClock()
    manager = _manager(FakeLauncher(), clock)
    page = manager.ensure_session()
    page.visit("https://app.ekyte.com/#/home")
    clock.advance(5)

    status = manager.status()

    assert status.live is True
    assert status.launches == 1
    assert status.idle_seconds == 5
    assert status.page_url == "https://app.ekyte.com/#/home"


def test_reaper_stops_the_driver_left_by_a_disconnect() -> None:
    launcher = FakeLauncher()
    manager = _manager(launcher, FakeClock())
    manager.ensure_session()
    launcher.browsers[0].crash()

    assert manager.reap_if_idle() is True
    assert launcher.drivers[0].stopped is True
    assert manager.reap_if_idle() is False
