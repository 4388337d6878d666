from pathlib import Path

from ekyte_tools.browser.selectors import SelectorTarget
from ekyte_tools.config import ToolsConfig, load_config


def test_defaults_point_at_ekyte() -> None:
    config = ToolsConfig()

    assert config.app.login_url == "https://app.ekyte.com/login"
    assert config.browser.wait_until == "networkidle"
    assert config.browser.idle_timeout == 1800
    assert config.artifacts.screenshots_dir == Path("./ekyte") / "screenshots"
    assert config.app.password is None


def test_load_config_reads_env_file(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "EKYTE_TOOLS_APP__EMAIL=env@example.com",
                "EKYTE_TOOLS_APP__PASSWORD=from-env",
                "EKYTE_TOOLS_BROWSER__HEADLESS=true",
                "EKYTE_TOOLS_BROWSER__WAIT_UNTIL=domcontentloaded",
            ]
        )
    )

    config = load_config(env_file=env_path)

    assert config.app.email == "env@example.com"
    assert config.app.password is not None
    assert config.app.password.get_secret_value() == "from-env"
    assert config.browser.headless is True
    assert config.browser.wait_until == "domcontentloaded"


def test_load_config_prioritises_overrides(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "EKYTE_TOOLS_APP__EMAIL=env@example.com",
                "EKYTE_TOOLS_BROWSER__PAGE_TIMEOUT=12",
                "EKYTE_TOOLS_BROWSER__HEADLESS=false",
            ]
        )
    )

    config_path = tmp_path / "tools.yaml"
    config_path.write_text(
        "\n".join(
            [
                "browser:",
                "  page_timeout: 45",
                "  headless: false",
                "artifacts:",
                f"  root: {tmp_path / 'out'}",
            ]
        )
    )

    config = load_config(config_path, env_file=env_path, browser={"headless": True})

    assert config.browser.page_timeout == 45
    assert config.browser.headless is True
    assert config.app.email == "env@example.com"
    assert config.artifacts.root == tmp_path / "out"


def test_selector_table_can_be_overridden_from_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "tools.yaml"
    config_path.write_text(
        "\n".join(
            [
                "app:",
                "  selectors:",
                "    submit_button:",
                "      - 'button#enter'",
            ]
        )
    )

    config = load_config(config_path)

    table = config.app.selectors
    assert table.candidates(SelectorTarget.SUBMIT_BUTTON) == ["button#enter"]
    assert table.candidates(SelectorTarget.EMAIL_INPUT)[0] == 'input[type="email"]'


def test_artifacts_ensure_creates_directories(tmp_path: Path) -> None:
    config = load_config(artifacts={"root": str(tmp_path / "artifacts")})

    config.artifacts.ensure()

    assert (tmp_path / "artifacts" / "screenshots").is_dir()
    assert (tmp_path / "artifacts" / "data").is_dir()
