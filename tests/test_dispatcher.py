from pathlib import Path
from typing import Optional

from ekyte_tools.browser.session import BrowserSessionManager
from ekyte_tools.config import ToolsConfig
from ekyte_tools.models import ErrorKind
from ekyte_tools.tools.dispatcher import CATALOGUE, ActionDispatcher, describe_tools
from fakes import FakeClock, FakeLauncher


def _config(tmp_path: Path) -> ToolsConfig:
    return ToolsConfig.model_validate(
        {
            "artifacts": {"root": str(tmp_path / "artifacts")},
            "browser": {"headless": True, "settle_timeout": 1, "settle_fallback": 0.5},
        }
    )


def _dispatcher(
    tmp_path: Path,
    launcher: Optional[FakeLauncher] = None,
    opened: Optional[list[str]] = None,
    open_result: bool = True,
) -> tuple[ActionDispatcher, FakeLauncher]:
    launcher = launcher or FakeLauncher(elements={"#email": [""], "button": ["Go"]})

    def open_url(url: str) -> bool:
        if opened is not None:
            opened.append(url)
        return open_result

    session = BrowserSessionManager(_config(tmp_path).browser, launcher=launcher, clock=FakeClock())
    return ActionDispatcher(session, _config(tmp_path), open_url=open_url), launcher


def test_catalogue_matches_tool_names() -> None:
    assert set(CATALOGUE) == {
        "navigate",
        "screenshot",
        "click",
        "type",
        "getContent",
        "newTab",
        "openInSystemBrowser",
        "navigateAndScreenshot",
        "login",
        "loginAndNavigate",
        "processNotifications",
        "exploreSection",
        "manageTask",
        "analyzeMetrics",
        "smartSearch",
    }


def test_schemas_use_camel_case_names() -> None:
    schemas = {entry["name"]: entry["inputSchema"] for entry in describe_tools()}

    properties = schemas["loginAndNavigate"]["properties"]
    assert {"email", "password", "targetUrl", "screenshotPath", "fullPage"} <= set(properties)
    assert "maxNotifications" in schemas["processNotifications"]["properties"]


def test_unknown_tool_is_rejected_without_touching_the_browser(tmp_path: Path) -> None:
    dispatcher, launcher = _dispatcher(tmp_path)

    result = dispatcher.call("teleport", {"url": "https://example.com"}, request_id=7)

    assert result.success is False
    assert result.id == 7
    assert result.error is not None
    assert result.error.kind == ErrorKind.VALIDATION_ERROR
    assert launcher.launches == 0


def test_invalid_url_fails_validation_before_launch(tmp_path: Path) -> None:
    dispatcher, launcher = _dispatcher(tmp_path)

    for url in ("not a url", "example.com/path", "https://"):
        result = dispatcher.call("navigate", {"url": url})
        assert result.error is not None
        assert result.error.kind == ErrorKind.VALIDATION_ERROR

    assert launcher.launches == 0


def test_missing_arguments_fail_validation(tmp_path: Path) -> None:
    dispatcher, launcher = _dispatcher(tmp_path)

    result = dispatcher.call("click", {})

    assert result.error is not None
    assert result.error.kind == ErrorKind.VALIDATION_ERROR
    assert "selector" in result.error.message
    assert launcher.launches == 0


def test_consecutive_navigations_reuse_the_page(tmp_path: Path) -> None:
    dispatcher, launcher = _dispatcher(tmp_path)

    first = dispatcher.call("navigate", {"url": "https://example.com/a"})
    page = dispatcher.session.page
    second = dispatcher.call("navigate", {"url": "https://example.com/b"})

    assert first.success and second.success
    assert second.data == {"url": "https://example.com/b"}
    assert dispatcher.session.page is page
    assert launcher.launches == 1
    assert page.gotos == [
        ("https://example.com/a", "networkidle"),
        ("https://example.com/b", "networkidle"),
    ]


def test_navigation_failure_is_page_load_failed(tmp_path: Path) -> None:
    launcher = FakeLauncher(fail_urls=("https://down.example/",))
    dispatcher, _ = _dispatcher(tmp_path, launcher)

    result = dispatcher.call("navigate", {"url": "https://down.example/"})

    assert result.error is not None
    assert result.error.kind == ErrorKind.PAGE_LOAD_FAILED
    assert "down.example" in result.error.message


def test_settle_falls_back_to_short_sleep_when_network_stays_busy(tmp_path: Path) -> None:
    launcher = FakeLauncher(network_idle=False)
    dispatcher, _ = _dispatcher(tmp_path, launcher)

    assert dispatcher.call("navigate", {"url": "https://example.com"}).success

    assert dispatcher.session.page.sleeps == [500]


def test_screenshot_appends_png_once_and_uses_screenshots_dir(tmp_path: Path) -> None:
    dispatcher, _ = _dispatcher(tmp_path)
    screenshots = tmp_path / "artifacts" / "screenshots"

    plain = dispatcher.call("screenshot", {"path": "out"})
    with_png = dispatcher.call("screenshot", {"path": "done.png"})
    upper = dispatcher.call("screenshot", {"path": "photo.JPG", "fullPage": True})

    assert plain.data["path"] == str(screenshots / "out.png")
    assert with_png.data["path"] == str(screenshots / "done.png")
    assert upper.data["path"] == str(screenshots / "photo.JPG")
    assert (screenshots / "out.png").exists()
    assert dispatcher.session.page.screenshots[-1][1] is True
    assert set(plain.data) == {"path", "currentUrl", "title"}


def test_absolute_screenshot_path_is_kept(tmp_path: Path) -> None:
    dispatcher, _ = _dispatcher(tmp_path)
    target = tmp_path / "elsewhere" / "shot"

    result = dispatcher.call("screenshot", {"path": str(target)})

    assert result.data["path"] == str(target) + ".png"
    assert Path(result.data["path"]).exists()


def test_click_missing_element_reports_selector(tmp_path: Path) -> None:
    dispatcher, _ = _dispatcher(tmp_path)

    result = dispatcher.call("click", {"selector": "#missing"})

    assert result.error is not None
    assert result.error.kind == ErrorKind.ELEMENT_NOT_FOUND
    assert result.error.selectors == ["#missing"]


def test_type_fills_the_field(tmp_path: Path) -> None:
    dispatcher, _ = _dispatcher(tmp_path)

    result = dispatcher.call("type", {"selector": "#email", "text": "user@test.io"})

    assert result.success
    assert dispatcher.session.page.filled == {"#email": "user@test.io"}


def test_get_content_returns_full_html(tmp_path: Path) -> None:
    html = "<html>" + "x" * 50_000 + "</html>"
    dispatcher, _ = _dispatcher(tmp_path, FakeLauncher(html=html))

    result = dispatcher.call("getContent")

    assert result.data == {"content": html}


def test_new_tab_keeps_tracking_the_primary_page(tmp_path: Path) -> None:
    dispatcher, _ = _dispatcher(tmp_path)
    dispatcher.call("navigate", {"url": "https://example.com/primary"})
    primary = dispatcher.session.page

    result = dispatcher.call("newTab", {"url": "https://example.com/tab"})

    assert result.data == {"url": "https://example.com/tab"}
    tab = primary.context.pages[-1]
    assert tab is not primary
    assert tab.in_front is True
    assert tab.viewport == {"width": 1280, "height": 720}
    assert dispatcher.session.page is primary
    assert primary.url == "https://example.com/primary"


def test_open_in_system_browser_does_not_need_a_session(tmp_path: Path) -> None:
    opened: list[str] = []
    dispatcher, launcher = _dispatcher(tmp_path, opened=opened)

    result = dispatcher.call("openInSystemBrowser", {"url": "https://app.ekyte.com"})

    assert result.success
    assert opened == ["https://app.ekyte.com"]
    assert launcher.launches == 0


def test_open_in_system_browser_failure_is_internal_error(tmp_path: Path) -> None:
    dispatcher, _ = _dispatcher(tmp_path, open_result=False)

    result = dispatcher.call("openInSystemBrowser", {"url": "https://app.ekyte.com"})

    assert result.error is not None
    assert result.error.kind == ErrorKind.INTERNAL_ERROR


def test_navigate_and_screenshot_waits_for_dom_content(tmp_path: Path) -> None:
    dispatcher, _ = _dispatcher(tmp_path)

    result = dispatcher.call(
        "navigateAndScreenshot", {"url": "https://example.com", "path": "home"}
    )

    assert result.success
    assert result.data["url"] == "https://example.com"
    assert result.data["path"].endswith("home.png")
    assert dispatcher.session.page.gotos == [("https://example.com", "domcontentloaded")]


def test_launch_failure_is_internal_error(tmp_path: Path) -> None:
    launcher = FakeLauncher()
    launcher.error = RuntimeError("Executable doesn't exist")
    dispatcher, _ = _dispatcher(tmp_path, launcher)

    result = dispatcher.call("navigate", {"url": "https://example.com"})

    assert result.error is not None
    assert result.error.kind == ErrorKind.INTERNAL_ERROR
    assert "Executable" in result.error.message


def test_manage_task_requirements_are_validated(tmp_path: Path) -> None:
    dispatcher, launcher = _dispatcher(tmp_path)
    base = {"email": "a@b.c", "password": "pw", "screenshotPath": "task"}

    missing_id = dispatcher.call("manageTask", {**base, "action": "open"})
    missing_comment = dispatcher.call("manageTask", {**base, "action": "comment", "taskId": "1"})
    missing_status = dispatcher.call(
        "manageTask", {**base, "action": "update_status", "taskId": "1"}
    )
    bad_action = dispatcher.call("manageTask", {**base, "action": "delete"})

    for result in (missing_id, missing_comment, missing_status, bad_action):
        assert result.error is not None
        assert result.error.kind == ErrorKind.VALIDATION_ERROR
    assert launcher.launches == 0


def test_empty_password_is_rejected(tmp_path: Path) -> None:
    dispatcher, _ = _dispatcher(tmp_path)

    result = dispatcher.call("login", {"email": "a@b.c", "password": ""})

    assert result.error is not None
    assert result.error.kind == ErrorKind.VALIDATION_ERROR
    assert "password" in result.error.message.lower()


def test_new_tab_is_closed_when_its_navigation_fails(tmp_path: Path) -> None:
    launcher = FakeLauncher(fail_urls=("https://down.test/",))
    dispatcher, _ = _dispatcher(tmp_path, launcher)
    dispatcher.call("navigate", {"url": "https://example.com/primary"})
    primary = dispatcher.session.page

    result = dispatcher.call("newTab", {"url": "https://down.test/"})

    assert result.error is not None
    assert result.error.kind == ErrorKind.PAGE_LOAD_FAILED
    tab = primary.context.pages[-1]
    assert tab is not primary
    assert tab.closed is True
    assert dispatcher.session.page is primary


def test_click_and_type_accept_a_per_call_timeout(tmp_path: Path) -> None:
    dispatcher, _ = _dispatcher(tmp_path)

    dispatcher.call("click", {"selector": "button", "timeout": 1.5})
    dispatcher.call("type", {"selector": "#email", "text": "a@b.c"})

    assert dispatcher.session.page.timeouts == [("button", 1500.0), ("#email", 30000.0)]


def test_non_positive_timeout_is_rejected(tmp_path: Path) -> None:
    dispatcher, launcher = _dispatcher(tmp_path)

    result = dispatcher.call("click", {"selector": "button", "timeout": 0})

    assert result.error is not None
    assert result.error.kind == ErrorKind.VALIDATION_ERROR
    assert launcher.launches == 0
