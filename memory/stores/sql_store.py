"""The SQLite database that holds save slots."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from memory.schemas import Base

logger = logging.getLogger("npc.persistence")


class SQLStore:
    """Opens (and if needed creates) the save database at ``db_path``.

    Several processes may share one file, e.g. a game and the CLI inspecting
    its saves, so writers wait up to ``lock_timeout`` seconds for the lock.
    """

    def __init__(self, db_path: Path, lock_timeout: float = 5.0) -> None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self.engine = create_engine(
            f"sqlite+pysqlite:///{db_path}",
            connect_args={"timeout": lock_timeout},
        )
        Base.metadata.create_all(self.engine)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.debug("Opened save database %s", db_path)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """One transaction: committed when the block exits, rolled back if it raises."""
        with self._sessions.begin() as sess:
            yield sess

    def close(self) -> None:
        self.engine.dispose()
