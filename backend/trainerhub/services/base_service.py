"""
Base service class.
Services contain business logic and coordinate repositories.
"""

from abc import ABC
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession


class BaseService(ABC):
    """Base service class for all services."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[AsyncSession]:
        """
        Commit everything written inside the block, or roll all of it back.
        Repositories only flush, so every write in the block shares one transaction.
        """
        try:
            yield self.session
            await self.session.commit()
        except BaseException:
            await self.session.rollback()
            raise
