import pytest

from src.application.use_cases.manage_history import DeleteHistoryUseCase, ListHistoryUseCase
from src.domain.errors import InvalidParameter, NotFound
from src.infrastructure.database.repositories.history_repository import HistoryRepository


@pytest.fixture
def repo():
    return HistoryRepository(None)


def _record(repo, user_id, image_id, operation_type="invert"):
    return repo.create(
        user_id=user_id,
        image_id=image_id,
        operation_type=operation_type,
        parameters={},
        result_storage_path=f"{user_id}/{image_id}.png",
        source_image_id="img_root",
        root_image_id="img_root",
    )


def test_list_is_newest_first_and_paginated(repo):
    user = "history-pagination"
    created = [_record(repo, user, f"img_{i}") for i in range(5)]

    page = ListHistoryUseCase(repo).execute(user, limit=2, offset=1)

    assert page.total == 5
    assert [h.id for h in page.entries] == [created[3].id, created[2].id]


def test_list_filters_by_image(repo):
    user = "history-filter"
    _record(repo, user, "img_a")
    wanted = _record(repo, user, "img_b")

    page = ListHistoryUseCase(repo).execute(user, image_id="img_b")

    assert page.total == 1
    assert page.entries[0].id == wanted.id


def test_list_only_returns_own_entries(repo):
    _record(repo, "history-owner", "img_a")
    page = ListHistoryUseCase(repo).execute("history-someone-else")
    assert page.total == 0
    assert page.entries == []


def test_list_rejects_bad_paging(repo):
    with pytest.raises(InvalidParameter):
        ListHistoryUseCase(repo).execute("history-paging", limit=0)
    with pytest.raises(InvalidParameter):
        ListHistoryUseCase(repo).execute("history-paging", offset=-1)


def test_get_foreign_entry_is_not_found(repo):
    entry = _record(repo, "history-get-owner", "img_a")
    assert ListHistoryUseCase(repo).get("history-get-owner", entry.id).id == entry.id
    with pytest.raises(NotFound):
        ListHistoryUseCase(repo).get("history-get-other", entry.id)


def test_delete_removes_only_the_ledger_row(repo):
    user = "history-delete"
    entry = _record(repo, user, "img_a")

    assert DeleteHistoryUseCase(repo).execute(user, entry.id) is True
    assert repo.get(entry.id) is None
    with pytest.raises(NotFound):
        DeleteHistoryUseCase(repo).execute(user, entry.id)
