"""
Record codec: one persisted record per cache entry

A record is a UTF-8 JSON object
    {"key": str, "value": base64 str, "expires_at": int (unix ms)}
A "size" field written by older writers is ignored, the size of an entry is
always the byte length of the record as it sits in storage.
"""
from dataclasses import dataclass
import base64
import binascii
import json

from spillcache.exceptions import CorruptRecord


@dataclass(frozen=True)
class Record:
    key: str
    value: bytes
    expires_at: int


class JsonRecordCodec:
    name = "json"

    def encode(self, record: Record) -> bytes:
        payload = {
            "key": record.key,
            "value": base64.b64encode(record.value).decode("ascii"),
            "expires_at": int(record.expires_at),
        }
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")

    def decode(self, data: bytes) -> Record:
        """
        Decode raw record bytes, raise CorruptRecord on anything that is not a well-formed record
        """
        try:
            payload = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise CorruptRecord(f"Record is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise CorruptRecord("Record is not a JSON object")

        key = payload.get("key")
        expires_at = payload.get("expires_at")
        value = payload.get("value")
        if not isinstance(key, str):
            raise CorruptRecord("Record has no string 'key'")
        # bool is an int subclass, reject it explicitly
        if not isinstance(expires_at, int) or isinstance(expires_at, bool):
            raise CorruptRecord(f"Record '{key}' has no integer 'expires_at'")
        if not isinstance(value, str):
            raise CorruptRecord(f"Record '{key}' has no encoded 'value'")

        try:
            raw = base64.b64decode(value.encode("ascii"), validate=True)
        except (UnicodeEncodeError, binascii.Error) as e:
            raise CorruptRecord(f"Record '{key}' has an undecodable value: {e}") from e
        return Record(key=key, value=raw, expires_at=expires_at)
