import pytest

from filedb.archive import ArchiveFileMap
from filedb.exceptions import UnknownToken


def test_tokens_are_dense():
    archive_map = ArchiveFileMap()
    locators = [f'data{_}.rda' for _ in range(5)]

    tokens = [archive_map.add(_) for _ in locators]

    assert tokens == list(range(5))
    assert len(archive_map) == 5
    for token, locator in zip(tokens, locators):
        assert archive_map.resolve(token) == locator

    with pytest.raises(UnknownToken) as excinfo:
        archive_map.resolve(5)

    assert excinfo.value.token == 5
    assert excinfo.value.size == 5


def test_invalid_tokens():
    archive_map = ArchiveFileMap(['data0.rda'])

    for token in (-1, 1, '0', None, True):
        with pytest.raises(UnknownToken):
            archive_map.resolve(token)

    assert 0 in archive_map
    assert -1 not in archive_map


def test_same_locator_gets_new_token():
    archive_map = ArchiveFileMap()

    assert archive_map.add('data0.rda') == 0
    assert archive_map.add('data0.rda') == 1
    assert list(archive_map) == [(0, 'data0.rda'), (1, 'data0.rda')]
    assert archive_map.locators == ('data0.rda', 'data0.rda')
