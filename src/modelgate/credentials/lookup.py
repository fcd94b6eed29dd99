"""Provider credential lookup.

The access resolver only needs to know *which* providers a user holds keys
for, never the keys themselves. Stores implementing :class:`ProviderKeyLookup`
answer that question fresh on every call and raise ``ProviderLookupError``
when their backing store cannot be read.

The YAML store keeps per-user keys in a single file::

    users:
      user-123:
        providers:
          openai:
            api_key: "sk-..."
          anthropic:
            api_key: "sk-ant-..."

Entries with an empty key or an unresolved ``${...}`` placeholder are ignored.
"""

from __future__ import annotations

import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Protocol, Union

import yaml

from modelgate.catalog.schemas import normalize_provider
from modelgate.exceptions import ProviderLookupError

ProviderSet = FrozenSet[str]

DEFAULT_CREDENTIALS_PATH = Path.home() / ".modelgate" / "credentials.yaml"


class ProviderKeyLookup(Protocol):
    """Interface consumed by the model access service."""

    def list_providers(self, user_id: str) -> ProviderSet:
        """Return the providers ``user_id`` holds credentials for.

        Raises:
            ProviderLookupError: If the credential store is unreachable.
        """


def _is_usable_key(api_key: Any) -> bool:
    if not isinstance(api_key, str) or not api_key.strip():
        return False
    cleaned = api_key.strip()
    # Unresolved env var placeholders do not count as credentials
    return not (cleaned.startswith("${") and cleaned.endswith("}"))


class InMemoryProviderKeyLookup:
    """Process-local lookup keyed by user id. Useful for tests and demos."""

    def __init__(self, keys: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self._lock = threading.Lock()
        self._providers: Dict[str, ProviderSet] = {}
        for user_id, providers in (keys or {}).items():
            self.set_providers(user_id, providers)

    def set_providers(self, user_id: str, providers: Iterable[str]) -> None:
        normalized = frozenset(normalize_provider(p) for p in providers if normalize_provider(p))
        with self._lock:
            self._providers[user_id] = normalized

    def list_providers(self, user_id: str) -> ProviderSet:
        with self._lock:
            return self._providers.get(user_id, frozenset())


class YamlProviderKeyStore:
    """Store and query per-user provider keys in a YAML file.

    The file is re-read on every lookup so that keys added by another
    process are picked up without a restart.
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_CREDENTIALS_PATH) -> None:
        self.path = Path(path).expanduser()
        self._write_lock = threading.Lock()

    def list_providers(self, user_id: str) -> ProviderSet:
        user_cfg = self._user_config(self._load(), user_id)
        providers = user_cfg.get("providers", {})
        if not isinstance(providers, dict):
            return frozenset()
        return frozenset(
            normalize_provider(name)
            for name, cfg in providers.items()
            if isinstance(cfg, dict) and _is_usable_key(cfg.get("api_key"))
        )

    def save_api_key(self, user_id: str, provider: str, api_key: str) -> None:
        """Persist ``api_key`` under users.<user_id>.providers.<provider>.api_key."""
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValueError("User id must be a non-empty string")
        cleaned_provider = normalize_provider(provider)
        if not cleaned_provider:
            raise ValueError("Provider name must be a non-empty string")
        if not isinstance(api_key, str) or not api_key.strip():
            raise ValueError("API key must be a non-empty string")
        if " " in api_key.strip():
            raise ValueError("API key should not contain spaces")

        with self._write_lock:
            data = self._load()
            users = data.setdefault("users", {})
            if not isinstance(users, dict):
                users = {}
                data["users"] = users
            user_cfg = users.setdefault(user_id, {})
            if not isinstance(user_cfg, dict):
                user_cfg = {}
                users[user_id] = user_cfg
            providers = user_cfg.setdefault("providers", {})
            if not isinstance(providers, dict):
                providers = {}
                user_cfg["providers"] = providers
            providers[cleaned_provider] = {"api_key": api_key.strip()}
            self._write(data)

    def delete(self, user_id: str, provider: str) -> None:
        """Remove the stored key for ``provider``; a no-op when absent."""
        cleaned_provider = normalize_provider(provider)
        with self._write_lock:
            data = self._load()
            providers = self._user_config(data, user_id).get("providers")
            if isinstance(providers, dict) and cleaned_provider in providers:
                del providers[cleaned_provider]
                self._write(data)

    # Internal helpers -------------------------------------------------
    @staticmethod
    def _user_config(data: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        users = data.get("users", {})
        if not isinstance(users, dict):
            return {}
        user_cfg = users.get(user_id, {})
        return user_cfg if isinstance(user_cfg, dict) else {}

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ProviderLookupError(
                message=f"Credential file {self.path} contains invalid YAML", cause=exc
            ) from exc
        except OSError as exc:
            raise ProviderLookupError(
                message=f"Unable to read {self.path}", cause=exc
            ) from exc

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ProviderLookupError(message=f"Credential file {self.path} must contain a mapping")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        """Atomically replace the credential file with owner-only permissions."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self.path.parent), prefix="credentials-", suffix=".yaml.tmp"
        )
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            with tmp_path.open("w", encoding="utf-8") as fh:
                yaml.safe_dump(data, fh, default_flow_style=False, sort_keys=False)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        finally:
            tmp_path.unlink(missing_ok=True)


__all__ = [
    "DEFAULT_CREDENTIALS_PATH",
    "InMemoryProviderKeyLookup",
    "ProviderKeyLookup",
    "ProviderSet",
    "YamlProviderKeyStore",
]
