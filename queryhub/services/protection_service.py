import logging
import os
import secrets
import string
import time
from typing import Dict, List, Optional
from queryhub.config import Settings, settings as default_settings
from queryhub.models.records import ProtectionEntry, QueryType
from queryhub.services.duplicate_index import utc_now
from queryhub.services.json_store import JsonDocument
from queryhub.utils.exceptions import DuplicateError, NotFoundError, ValidationError
from queryhub.utils.normalize import mask_value, normalize

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def empty_protection_list() -> Dict:
    return {"users": [], "lastUpdated": utc_now()}


def new_protection_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"protected-{int(time.time() * 1000)}-{suffix}"


class ProtectionRegistry:
    """Deny list of identities that must never be looked up or stored"""

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.document = JsonDocument(
            os.path.join(config.data_dir, config.protection_file), empty_protection_list
        )
        logger.info("ProtectionRegistry initialized")

    async def initialize(self) -> None:
        await self.document.ensure_exists()

    async def _entries(self) -> List[ProtectionEntry]:
        data = await self.document.read()
        entries = []
        for raw in data.get("users", []):
            try:
                entries.append(ProtectionEntry.model_validate(raw))
            except ValueError as e:
                logger.error(f"Skipping malformed protection entry {raw.get('id')}: {str(e)}")
        return entries

    @staticmethod
    def _matches(entry: Dict, query_type: QueryType, normalized: str) -> bool:
        if entry.get("type") != query_type.value:
            return False
        return normalize(query_type, entry.get("value", "")) == normalized

    async def is_protected(self, query_type: QueryType, value: str) -> bool:
        query_type = QueryType(query_type)
        normalized = normalize(query_type, value)
        data = await self.document.read()
        return any(self._matches(entry, query_type, normalized) for entry in data.get("users", []))

    async def add(
        self, query_type: QueryType, value: str, reason: str = "", added_by: str = "admin"
    ) -> ProtectionEntry:
        query_type = QueryType(query_type)
        normalized = normalize(query_type, value)
        if not normalized:
            raise ValidationError("Type and value are required")

        timestamp = utc_now()
        entry = ProtectionEntry(
            id=new_protection_id(),
            type=query_type,
            value=normalized,
            original_value=str(value).strip(),
            reason=reason or "",
            added_by=added_by or "admin",
            created_at=timestamp,
        )

        def _apply(data: Dict):
            users = data.setdefault("users", [])
            if any(self._matches(user, query_type, normalized) for user in users):
                return None, False
            users.append(entry.to_document())
            data["lastUpdated"] = timestamp
            return data, True

        if not await self.document.mutate(_apply):
            logger.warning(f"{query_type.value} already protected: {mask_value(query_type, value)}")
            raise DuplicateError()

        logger.info(f"Added protection for {query_type.value}: {mask_value(query_type, value)}")
        return entry

    async def update(
        self, entry_id: str, reason: Optional[str] = None, value: Optional[str] = None
    ) -> ProtectionEntry:
        timestamp = utc_now()

        def _apply(data: Dict):
            users = data.setdefault("users", [])
            for position, user in enumerate(users):
                if user.get("id") != entry_id:
                    continue
                if reason is not None:
                    user["reason"] = reason
                if value is not None:
                    query_type = QueryType(user["type"])
                    normalized = normalize(query_type, value)
                    if not normalized:
                        raise ValidationError("Value must not be empty")
                    clash = any(
                        other.get("id") != entry_id and self._matches(other, query_type, normalized)
                        for other in users
                    )
                    if clash:
                        raise DuplicateError()
                    user["value"] = normalized
                    user["originalValue"] = str(value).strip()
                user["updatedAt"] = timestamp
                users[position] = user
                data["lastUpdated"] = timestamp
                return data, user
            return None, None

        updated = await self.document.mutate(_apply)
        if updated is None:
            raise NotFoundError("Protected user", entry_id)

        logger.info(f"Updated protection ID: {entry_id}")
        return ProtectionEntry.model_validate(updated)

    async def delete(self, entry_id: str) -> ProtectionEntry:
        def _apply(data: Dict):
            users = data.setdefault("users", [])
            for position, user in enumerate(users):
                if user.get("id") == entry_id:
                    removed = users.pop(position)
                    data["lastUpdated"] = utc_now()
                    return data, removed
            return None, None

        removed = await self.document.mutate(_apply)
        if removed is None:
            raise NotFoundError("Protected user", entry_id)

        logger.info(f"Removed protection ID: {entry_id}")
        return ProtectionEntry.model_validate(removed)

    async def search(self, term: Optional[str] = None) -> List[ProtectionEntry]:
        entries = await self._entries()
        if not term:
            return entries

        needle = term.lower()
        return [
            entry
            for entry in entries
            if needle in entry.value.lower()
            or needle in entry.reason.lower()
            or needle in entry.type.value.lower()
        ]

    async def stats(self) -> Dict:
        data = await self.document.read()
        users = data.get("users", [])
        stats = {"total": len(users)}
        for query_type in QueryType:
            stats[query_type.value] = sum(1 for user in users if user.get("type") == query_type.value)
        stats["lastUpdated"] = data.get("lastUpdated")
        return stats
