"""
Record store: whole-collection get/put, plus a staged multi-collection commit.

A collection is an ordered list of record dicts, each with an 'id'. The
store only promises that one put replaces one collection; Transaction
builds multi-collection commits on top of that with a compensating
rollback.
"""

import copy
import fcntl
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

import yaml

from .errors import ConsistencyError, PersistenceError
from .schema import validate_collection

logger = logging.getLogger(__name__)

CUSTOMERS = "customers"
VEHICLES = "vehicles"
SPARE_PARTS = "spare_parts"
VENDORS = "vendors"
VENDOR_PAYMENTS = "vendor_payments"
VISITS = "visits"
SEQUENCES = "sequences"

COLLECTIONS = (
    CUSTOMERS,
    VEHICLES,
    SPARE_PARTS,
    VENDORS,
    VENDOR_PAYMENTS,
    VISITS,
    SEQUENCES,
)

Records = List[Dict[str, Any]]


class RecordStore:
    """
    Base store. Subclasses implement get and put.

    lock() serializes writers. It is re-entrant so a service holding the
    lock can call another service that takes it again.
    """

    def __init__(self):
        self._lock = threading.RLock()

    def get(self, collection: str) -> Records:
        """All records in a collection, or [] if it was never written."""
        raise NotImplementedError

    def put(self, collection: str, records: Records) -> bool:
        """Replace a whole collection. Returns False if the write failed."""
        raise NotImplementedError

    @contextmanager
    def lock(self) -> Iterator[None]:
        with self._lock:
            yield

    @contextmanager
    def transaction(self) -> Iterator["Transaction"]:
        """
        Hold the store lock and stage writes.

        Nothing is written until Transaction.commit(). Leaving the block
        without committing discards the staged records.
        """
        with self.lock():
            yield Transaction(self)


class MemoryStore(RecordStore):
    """In-process store, used by tests and as a scratch store."""

    def __init__(self, data: Optional[Dict[str, Records]] = None):
        super().__init__()
        self._data: Dict[str, Records] = copy.deepcopy(data) if data else {}

    def get(self, collection: str) -> Records:
        return copy.deepcopy(self._data.get(collection, []))

    def put(self, collection: str, records: Records) -> bool:
        self._data[collection] = copy.deepcopy(list(records))
        return True


class YamlStore(RecordStore):
    """
    One YAML file per collection inside a directory.

    Writes go to a temp file that is renamed over the old one, so readers
    never see a half-written collection. Each write is checked against the
    collection schema and refused if invalid. lock() also takes an
    advisory flock on the directory so separate processes serialize.
    """

    LOCK_FILE = ".lock"

    def __init__(self, directory: Union[str, Path], validate: bool = True):
        super().__init__()
        self.directory = Path(directory)
        self.validate = validate
        self._depth = 0
        self._lock_fp = None

    def path(self, collection: str) -> Path:
        return self.directory / f"{collection}.yaml"

    def get(self, collection: str) -> Records:
        path = self.path(collection)
        if not path.exists():
            return []
        with open(path, "r") as fp:
            data = yaml.load(fp, Loader=yaml.SafeLoader)
        return data or []

    def put(self, collection: str, records: Records) -> bool:
        records = list(records)
        if self.validate:
            errors = validate_collection(collection, records)
            if errors:
                for error in errors:
                    logger.error("Refusing to write %s: %s", collection, error)
                return False

        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{collection}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w") as fp:
                yaml.dump(
                    records,
                    fp,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
            os.replace(tmp_name, self.path(collection))
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to write %s: %s", self.path(collection), e)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False
        return True

    @contextmanager
    def lock(self) -> Iterator[None]:
        with self._lock:
            if self._depth == 0:
                self.directory.mkdir(parents=True, exist_ok=True)
                self._lock_fp = open(self.directory / self.LOCK_FILE, "a")
                fcntl.flock(self._lock_fp, fcntl.LOCK_EX)
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
                if self._depth == 0:
                    fcntl.flock(self._lock_fp, fcntl.LOCK_UN)
                    self._lock_fp.close()
                    self._lock_fp = None


class Transaction:
    """
    Staged writes across collections, applied by commit().

    Reads see staged records first, so a transaction can build on its own
    changes. If a put fails part way, collections already written are put
    back to their snapshot.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self._staged: Dict[str, Records] = {}

    def get(self, collection: str) -> Records:
        if collection in self._staged:
            return copy.deepcopy(self._staged[collection])
        return self.store.get(collection)

    def put(self, collection: str, records: Records) -> None:
        self._staged[collection] = copy.deepcopy(list(records))

    @property
    def staged(self) -> List[str]:
        return list(self._staged)

    def commit(self) -> None:
        """
        Write every staged collection.

        Raises:
            PersistenceError: a put failed and earlier puts were rolled back
            ConsistencyError: a put failed and the rollback failed too
        """
        snapshots = {name: self.store.get(name) for name in self._staged}
        written: List[str] = []

        for name, records in self._staged.items():
            if self.store.put(name, records):
                written.append(name)
                continue

            logger.error("Commit failed writing %s, rolling back %s", name, written)
            stuck = [w for w in reversed(written) if not self.store.put(w, snapshots[w])]
            if stuck:
                raise ConsistencyError(stuck)
            raise PersistenceError(name)

        self._staged.clear()
