"""Company records stored with sensitive identifiers encrypted at rest."""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from accountform.core.exceptions import ResourceNotFoundError
from accountform.validation.sanitize import sanitize_input
from core.encryption import FieldCipher, hash_value
from core.logging_utils import sanitize_identifier

logger = logging.getLogger(__name__)

ENCRYPTED_FIELDS = ("siren", "siret", "tvaIntracom")


class SecureCompanyRepository:
    def __init__(self, cipher: FieldCipher):
        self._cipher = cipher
        self._records: dict[str, dict[str, Any]] = {}

    def create(self, data: dict[str, Any]) -> dict[str, Any]:
        """Sanitize, encrypt and store a record; returns the stored form."""
        sanitized = {
            name: sanitize_input(value) if isinstance(value, str) else value
            for name, value in data.items()
            if value is not None
        }
        record = {
            name: self._cipher.encrypt(value) if name in ENCRYPTED_FIELDS else value
            for name, value in sanitized.items()
        }
        record["integrity_hash"] = hash_value(json.dumps(sanitized, sort_keys=True))

        record["id"] = uuid.uuid4().hex
        record["created_at"] = datetime.now(timezone.utc).isoformat()
        self._records[record["id"]] = record

        logger.info(
            "Company record stored for SIRET %s",
            sanitize_identifier(data.get("siret")),
        )
        return dict(record)

    def get(self, record_id: str) -> dict[str, Any]:
        """Return the decrypted record.

        Raises:
            ResourceNotFoundError: If no record has this id
        """
        record = self._records.get(record_id)
        if record is None:
            raise ResourceNotFoundError("Company record", record_id)

        decrypted = dict(record)
        for name in ENCRYPTED_FIELDS:
            if name in decrypted:
                decrypted[name] = self._cipher.decrypt(decrypted[name])
        decrypted.pop("integrity_hash", None)
        return decrypted

    def encrypted_fields(self, record: dict[str, Any]) -> list[str]:
        return [name for name in ENCRYPTED_FIELDS if name in record]

    def __len__(self) -> int:
        return len(self._records)
