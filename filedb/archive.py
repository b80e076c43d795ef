"""
Archive source index: it keeps track of the archives the files of a file
system come from.

The tokens are handed out sequentially starting from zero and are never
reused, so a token stays valid for the whole life of the map.
"""
import logging
from typing import Iterable, Iterator, List, Tuple

from .exceptions import UnknownToken


logger = logging.getLogger(__name__)


class ArchiveFileMap:

    def __init__(self, locators: Iterable[str] = ()):
        self._locators: List[str] = []

        for locator in locators:
            self.add(locator)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self._locators!r})>'

    def __len__(self):
        return len(self._locators)

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        return iter(enumerate(self._locators))

    def __contains__(self, token) -> bool:
        return self._is_valid(token)

    def _is_valid(self, token) -> bool:
        return isinstance(token, int) and not isinstance(token, bool) and 0 <= token < len(self._locators)

    @property
    def locators(self) -> Tuple[str, ...]:
        return tuple(self._locators)

    def add(self, locator: str) -> int:
        '''Register a new archive and return the token assigned to it.'''
        token = len(self._locators)
        self._locators.append(str(locator))

        logger.debug('archive \'%s\' registered with token %d', locator, token)

        return token

    def resolve(self, token: int) -> str:
        if not self._is_valid(token):
            raise UnknownToken(token, len(self._locators))

        return self._locators[token]
