import json
import logging
import os
import re
import tempfile
from typing import Any, Dict, Optional, Protocol

from .errors import ConfigValidationError
from .schemas import SettingsPayload, StoredConnectionConfig

LOG = logging.getLogger(__name__)

IDENTIFIER_RE = re.compile(r"[A-Za-z0-9_\-]+")
REQUIRED_FIELDS = ("projectId", "dataset", "table", "serviceAccountJson")


def validate_identifier(name: str) -> bool:
    return bool(name) and IDENTIFIER_RE.fullmatch(name) is not None


def redact(config: StoredConnectionConfig) -> Dict[str, Any]:
    """Non-secret view of the stored connection; the credential blob never leaves the server."""
    return {
        "projectId": config.project_id,
        "dataset": config.dataset,
        "table": config.table,
        "isConfigured": True,
    }


def _from_document(doc: Any) -> Optional[StoredConnectionConfig]:
    if not isinstance(doc, dict):
        return None
    if not all(isinstance(doc.get(k), str) and doc.get(k) for k in REQUIRED_FIELDS):
        return None
    return StoredConnectionConfig(
        project_id=doc["projectId"].strip(),
        dataset=doc["dataset"].strip(),
        table=doc["table"].strip(),
        service_account_json=doc["serviceAccountJson"],
    )


def config_from_payload(payload: SettingsPayload) -> StoredConnectionConfig:
    """Validate a settings submission and build the record to persist.

    All four fields must be present and non-blank, and the service account
    blob must parse as JSON. Identifier fields are trimmed; the blob is kept
    verbatim.
    """
    identifiers = [payload.project_id, payload.dataset, payload.table]
    if not all(v and v.strip() for v in identifiers) or not payload.service_account_json:
        raise ConfigValidationError("All fields are required.")
    try:
        json.loads(payload.service_account_json)
    except ValueError:
        raise ConfigValidationError("Service account JSON is invalid.")
    return StoredConnectionConfig(
        project_id=payload.project_id.strip(),
        dataset=payload.dataset.strip(),
        table=payload.table.strip(),
        service_account_json=payload.service_account_json,
    )


class ConfigRepository(Protocol):
    def read(self) -> Optional[StoredConnectionConfig]: ...

    def write(self, config: StoredConnectionConfig) -> None: ...


class JsonFileConfigRepository:
    """Single-record JSON document on local disk, replaced wholesale on every save."""

    def __init__(self, path: str):
        self.path = path

    def read(self) -> Optional[StoredConnectionConfig]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                doc = json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            LOG.warning(f"ignoring unreadable connection config {self.path}: {e}")
            return None
        return _from_document(doc)

    def write(self, config: StoredConnectionConfig) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".bigquery-config-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(config.model_dump(by_alias=True), fh, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        LOG.info(f"saved connection config for project={config.project_id} dataset={config.dataset} table={config.table}")


class InMemoryConfigRepository:
    def __init__(self, config: Optional[StoredConnectionConfig] = None):
        self.config = config
        self.writes = 0

    def read(self) -> Optional[StoredConnectionConfig]:
        return self.config

    def write(self, config: StoredConnectionConfig) -> None:
        self.config = config
        self.writes += 1
