"""
MongoDB access for the storefront.

The client is created once by the application and handed to request
handlers as a ``DocumentStore``. pymongo connects lazily, so constructing
the store never blocks on the network.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from pymongo import MongoClient

from schemas import Record

logger = structlog.get_logger()


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = {}
    for k, v in doc.items():
        if isinstance(v, ObjectId):
            out[k] = str(v)
        elif isinstance(v, datetime):
            out[k] = v.isoformat()
        elif isinstance(v, list):
            out[k] = [serialize_doc(i) if isinstance(i, dict) else i for i in v]
        else:
            out[k] = v
    if "_id" in out:
        out["id"] = out.pop("_id")
    return out


class DocumentStore:

    def __init__(self, db, client: Optional[MongoClient] = None):
        self._db = db
        self._client = client

    @property
    def name(self) -> str:
        return self._db.name

    def create_document(self, collection_name: str, data: Record) -> Dict[str, Any]:
        """Insert a validated record and return the stored document, ``_id`` included."""
        doc = data.to_document()
        res = self._db[collection_name].insert_one(doc)
        doc["_id"] = res.inserted_id
        logger.info("Document created", collection=collection_name, document_id=str(res.inserted_id))
        return doc

    def get_documents(self, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return list(self._db[collection_name].find(filter_dict or {}))

    def list_collection_names(self) -> List[str]:
        return self._db.list_collection_names()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


def connect(database_url: str, database_name: str) -> DocumentStore:
    client = MongoClient(database_url)
    logger.info("MongoDB client created", database=database_name)
    return DocumentStore(client[database_name], client=client)
