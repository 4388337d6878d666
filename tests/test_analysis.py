from ekyte_tools.analysis import PREVIEW_LENGTH, analyze_content, learnings_from


def test_detects_task_table_with_filters() -> None:
    html = (
        '<html><body><app-root ng-version="15">'
        '<div class="filtro"></div>'
        "<table><tbody><tr><td>Tarefa 1</td></tr><tr><td>task 2</td></tr></tbody></table>"
        "<button>Salvar</button><button>Cancelar</button>"
        "<script></script></app-root></body></html>"
    )

    analysis = analyze_content(html)

    assert analysis["hasTable"] is True
    assert analysis["hasFilters"] is True
    assert analysis["hasAngular"] is True
    assert analysis["taskCount"] == 2
    assert analysis["buttonCount"] == 2
    assert analysis["scriptCount"] == 1
    assert analysis["contentLength"] == len(html)
    assert learnings_from(analysis) == [
        "The page shows a task list",
        "The interface offers filters",
        "Tasks are rendered as a table",
        "The application renders client-side with Angular",
    ]


def test_plain_page_has_no_learnings() -> None:
    analysis = analyze_content("<html><body><p>Hello</p></body></html>")

    assert learnings_from(analysis) == []
    assert analysis["hasButtons"] is False


def test_preview_is_truncated() -> None:
    analysis = analyze_content("a" * (PREVIEW_LENGTH + 100))

    assert len(analysis["contentPreview"]) == PREVIEW_LENGTH
