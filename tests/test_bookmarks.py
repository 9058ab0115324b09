import pytest

from learnledger.bookmarks import add_bookmark, remove_bookmark, list_bookmarks
from learnledger.errors import NotFound
from learnledger.projects import delete_project
from learnledger.utils import atomic

from conftest import COMPANY, FREELANCER, OTHER, seed_project


def test_add_bookmark_once_per_project(ctx):
    project = seed_project()

    with atomic():
        first, created = add_bookmark(FREELANCER.upper().replace('0X', '0x'), project['id'])
    assert created is True
    assert first['walletAddress'] == FREELANCER

    with atomic():
        again, created = add_bookmark(FREELANCER, project['id'])
    assert created is False
    assert again['bookmarkId'] == first['bookmarkId']
    assert len(list_bookmarks(FREELANCER)) == 1


def test_bookmark_unknown_project(ctx):
    with pytest.raises(NotFound):
        add_bookmark(FREELANCER, 999)


def test_list_bookmarks_newest_first_and_per_wallet(ctx):
    older = seed_project(prize='10')
    newer = seed_project(prize='20')
    with atomic():
        add_bookmark(FREELANCER, older['id'])
        add_bookmark(FREELANCER, newer['id'])
        add_bookmark(OTHER, older['id'])

    listed = list_bookmarks(FREELANCER)
    assert [item['project']['id'] for item in listed] == [newer['id'], older['id']]
    assert listed[0]['project']['prizeAmount'] == '20.00'
    assert [item['project']['id'] for item in list_bookmarks(OTHER)] == [older['id']]


def test_remove_bookmark_is_idempotent(ctx):
    project = seed_project()
    with atomic():
        add_bookmark(FREELANCER, project['id'])

    with atomic():
        assert remove_bookmark(FREELANCER, project['id']) is True
    with atomic():
        assert remove_bookmark(FREELANCER, project['id']) is False
    assert list_bookmarks(FREELANCER) == []


def test_bookmarks_of_deleted_projects_are_skipped(ctx):
    project = seed_project()
    with atomic():
        add_bookmark(FREELANCER, project['id'])
        delete_project(project['id'], COMPANY)

    assert list_bookmarks(FREELANCER) == []
