import logging
from datetime import datetime, timezone
from typing import Any, Dict

import pydantic
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError
from pymongo.write_concern import WriteConcern

from vrise_intake.config import Settings
from vrise_intake.db.models import RECORD_MODELS, Record, SubmissionKind
from vrise_intake.exceptions import PersistenceError, ValidationError

logger = logging.getLogger(__name__)


def _describe_errors(error: pydantic.ValidationError) -> str:
    parts = []
    for err in error.errors():
        field = ".".join(str(loc) for loc in err["loc"])
        parts.append(f"{field}: {err['msg']}")
    return "; ".join(parts)


class RecordStore:
    """Append-only MongoDB store for submission records.

    Each kind of record lives in its own collection. The store only ever
    inserts; there is no update or delete path.
    """

    def __init__(self, db: Database, client: MongoClient = None):
        self.db = db
        self.client = client
        self._write_concern = WriteConcern(w="majority")

    def create(self, kind: SubmissionKind, fields: Dict[str, Any]) -> Record:
        """Insert a new record of ``kind`` and return it with its id and timestamps.

        Raises:
            ValidationError: ``fields`` break a record constraint (e.g. a
                message longer than 1000 characters).
            PersistenceError: MongoDB did not acknowledge the write.
        """
        model = RECORD_MODELS[kind]
        now = datetime.now(timezone.utc)
        try:
            record = model(**fields, created_at=now, updated_at=now)
        except pydantic.ValidationError as e:
            raise ValidationError(_describe_errors(e), fields=[str(err["loc"][0]) for err in e.errors()]) from e

        collection = self.db[model.collection].with_options(write_concern=self._write_concern)
        try:
            result = collection.insert_one(record.to_document())
        except PyMongoError as e:
            logger.error(f"Failed to insert {kind.value} record: {str(e)}")
            raise PersistenceError(f"Failed to store {kind.value} record") from e

        return record.model_copy(update={"id": str(result.inserted_id)})

    def ping(self):
        """Round-trip to the server; raises PersistenceError if it is unreachable."""
        try:
            self.db.command("ping")
        except PyMongoError as e:
            raise PersistenceError(f"MongoDB is unreachable: {str(e)}") from e

    def close(self):
        if self.client is not None:
            self.client.close()


def connect_store(settings: Settings) -> RecordStore:
    """Build the store from the configured connection string.

    The client connects lazily; call :meth:`RecordStore.ping` to check the
    server is actually reachable.
    """
    client = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=5000)
    db = client.get_default_database(default=settings.mongodb_database)
    logger.info(f"Using MongoDB database '{db.name}'")
    return RecordStore(db, client=client)
