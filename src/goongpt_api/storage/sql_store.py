"""SQLAlchemy backed store for hosted deployments."""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from goongpt_api.core.errors import StoreUnavailableError
from goongpt_api.models import KeyValueEntry
from goongpt_api.storage.base import JsonValue, KeyValueStore, decode_value, encode_value

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class SqlKeyValueStore(KeyValueStore):
    """Stores documents as rows of the `kv_entry` table.

    `add` relies on the primary key to reject duplicates and
    `compare_and_set` is a conditional UPDATE, so both are atomic even when
    several processes share the database.
    """

    def __init__(self, namespace: str, session_factory: SessionFactory) -> None:
        super().__init__(namespace)
        self._session_factory = session_factory

    def get(self, key: str) -> JsonValue | None:
        try:
            with self._session_factory() as db:
                raw = db.execute(
                    select(KeyValueEntry.value).where(
                        KeyValueEntry.namespace == self.namespace,
                        KeyValueEntry.key == key,
                    )
                ).scalar_one_or_none()
        except SQLAlchemyError as err:
            logger.error("kv get failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err
        return decode_value(raw)

    def set(self, key: str, value: JsonValue) -> None:
        try:
            with self._session_factory() as db:
                entry = db.get(KeyValueEntry, (self.namespace, key))
                if entry is None:
                    db.add(KeyValueEntry(namespace=self.namespace, key=key, value=encode_value(value)))
                else:
                    entry.value = encode_value(value)
                db.commit()
        except SQLAlchemyError as err:
            logger.error("kv set failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err

    def delete(self, key: str) -> None:
        try:
            with self._session_factory() as db:
                db.execute(
                    delete(KeyValueEntry).where(
                        KeyValueEntry.namespace == self.namespace,
                        KeyValueEntry.key == key,
                    )
                )
                db.commit()
        except SQLAlchemyError as err:
            logger.error("kv delete failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err

    def add(self, key: str, value: JsonValue) -> bool:
        try:
            with self._session_factory() as db:
                db.add(KeyValueEntry(namespace=self.namespace, key=key, value=encode_value(value)))
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    return False
                return True
        except SQLAlchemyError as err:
            logger.error("kv add failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err

    def compare_and_set(self, key: str, expected: JsonValue, value: JsonValue) -> bool:
        try:
            with self._session_factory() as db:
                result = db.execute(
                    update(KeyValueEntry)
                    .where(
                        KeyValueEntry.namespace == self.namespace,
                        KeyValueEntry.key == key,
                        KeyValueEntry.value == encode_value(expected),
                    )
                    .values(value=encode_value(value))
                    .execution_options(synchronize_session=False)
                )
                db.commit()
                return result.rowcount == 1
        except SQLAlchemyError as err:
            logger.error("kv compare_and_set failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err

    def clear(self) -> None:
        try:
            with self._session_factory() as db:
                db.execute(delete(KeyValueEntry).where(KeyValueEntry.namespace == self.namespace))
                db.commit()
        except SQLAlchemyError as err:
            logger.error("kv clear failed in %s: %s", self.namespace, err)
            raise StoreUnavailableError() from err
