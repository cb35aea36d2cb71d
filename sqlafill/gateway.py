"""Persistence gateway: unit-of-work operations on the SQLAlchemy session.

Related entities are saved through the session cascades of the root entity,
only the root has to be persisted explicitly.
"""

from typing import Any

import sqlafill


class PersistenceGateway:
    def __init__(self, session=None) -> None:
        self._session = session

    @property
    def session(self):
        if self._session is not None:
            return self._session
        return sqlafill.DB.session

    def persist(self, entity: Any) -> None:
        if entity not in self.session:
            self.session.add(entity)

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def no_autoflush(self):
        """
        :return: context manager that disables autoflush while entities are being filled
        """
        return self.session.no_autoflush
