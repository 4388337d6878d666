import json
from pathlib import Path

from ekyte_tools.session_log import SessionRecorder


def test_steps_are_numbered_in_order() -> None:
    recorder = SessionRecorder()

    recorder.add_step("Open login page", True)
    recorder.add_step("Fill email", False, error="not found")
    third = recorder.add_step("Screenshot", True, details={"path": "a.png"})

    assert [step.step for step in recorder.log.steps] == [1, 2, 3]
    assert third.details == {"path": "a.png"}
    assert [step.action for step in recorder.log.failed_steps] == ["Fill email"]


def test_learnings_are_not_duplicated() -> None:
    recorder = SessionRecorder()

    recorder.add_learning("The interface offers filters")
    recorder.add_learning("The interface offers filters")

    assert recorder.log.learnings == ["The interface offers filters"]


def test_save_writes_json_layout(tmp_path: Path) -> None:
    recorder = SessionRecorder()
    recorder.log.scenario = "login"
    recorder.add_step("Navigate", True, details={"url": "https://x.test"})
    recorder.add_screenshot("/tmp/out.png")
    recorder.add_learning("The page shows a task list")

    path = recorder.save(tmp_path / "data")

    assert path.parent == tmp_path / "data"
    assert path.name == f"session-{recorder.log.timestamp}.json"
    payload = json.loads(path.read_text())
    assert set(payload) == {"timestamp", "scenario", "steps", "screenshots", "learnings"}
    assert payload["steps"][0]["step"] == 1
    assert payload["steps"][0]["success"] is True
    assert payload["screenshots"] == ["/tmp/out.png"]
    assert payload["learnings"] == ["The page shows a task list"]
