"""
Policy catalog: read-only lookup from policy name to policy terms.

Bundled policies are stored as YAML under ``clearclaim/policies/data`` and
validated into frozen :class:`PolicyData` models on first use.
"""

import logging
from collections.abc import Iterable, Mapping
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..core.models import PolicyData
from ..exceptions import ConfigurationError, PolicyNotFoundError

logger = logging.getLogger(__name__)

DATA_PACKAGE = "clearclaim.policies.data"


def normalize_policy_name(name: str) -> str:
    """Lookup key for a policy name: trimmed and lower-cased."""
    return name.strip().lower()


class PolicyCatalog:
    """
    Immutable mapping of policy names (and aliases) to policy terms.

    Lookups ignore case and surrounding whitespace.
    """

    def __init__(
        self,
        policies: Mapping[str, PolicyData],
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        self._display_names: list[str] = list(policies)
        self._policies: dict[str, PolicyData] = {
            normalize_policy_name(name): policy for name, policy in policies.items()
        }
        for alias, target in (aliases or {}).items():
            key = normalize_policy_name(target)
            if key not in self._policies:
                raise ConfigurationError(
                    f"Alias '{alias}' points to unknown policy '{target}'"
                )
            self._policies[normalize_policy_name(alias)] = self._policies[key]

    def get(self, name: str | None) -> PolicyData | None:
        """Get a policy by name or alias, or None when unknown."""
        if not name:
            return None
        return self._policies.get(normalize_policy_name(name))

    def require(self, name: str | None) -> PolicyData:
        """Get a policy by name, raising PolicyNotFoundError when unknown."""
        policy = self.get(name)
        if policy is None:
            accepted = " or ".join(f'"{n}"' for n in self._display_names)
            raise PolicyNotFoundError(
                f"Invalid policy name: {name}. Must be {accepted}",
                details={"policy_name": name, "accepted": self._display_names},
            )
        return policy

    def names(self) -> list[str]:
        """Canonical policy names, in load order."""
        return list(self._display_names)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __len__(self) -> int:
        return len(self._display_names)

    @classmethod
    def from_documents(cls, documents: Iterable[dict[str, Any]]) -> "PolicyCatalog":
        """
        Build a catalog from parsed policy documents.

        Each document holds ``names`` (canonical name first, then aliases)
        and a ``policy`` mapping in the PolicyData shape.
        """
        policies: dict[str, PolicyData] = {}
        aliases: dict[str, str] = {}
        for doc in documents:
            names = doc.get("names") or []
            if not names:
                raise ConfigurationError("Policy document is missing 'names'")
            try:
                policy = PolicyData.model_validate(doc.get("policy") or {})
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid policy data for '{names[0]}': {e}",
                    details={"policy_name": names[0]},
                ) from e
            policies[names[0]] = policy
            for alias in names[1:]:
                aliases[alias] = names[0]
        return cls(policies, aliases)

    @classmethod
    def from_directory(cls, directory: str | Path) -> "PolicyCatalog":
        """Load every ``*.yaml`` policy file in a directory."""
        paths = sorted(Path(directory).glob("*.yaml"))
        documents = []
        for path in paths:
            with open(path, encoding="utf-8") as f:
                documents.append(yaml.safe_load(f) or {})
        logger.debug("Loaded %d policy files from %s", len(documents), directory)
        return cls.from_documents(documents)

    @classmethod
    def bundled(cls) -> "PolicyCatalog":
        """Load the policies shipped with the package."""
        documents = []
        data_dir = resources.files(DATA_PACKAGE)
        for entry in sorted(data_dir.iterdir(), key=lambda p: p.name):
            if entry.name.endswith(".yaml"):
                documents.append(yaml.safe_load(entry.read_text(encoding="utf-8")) or {})
        return cls.from_documents(documents)


_default_catalog: PolicyCatalog | None = None


def get_default_catalog() -> PolicyCatalog:
    """Get the catalog of bundled policies."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = PolicyCatalog.bundled()
        logger.info("Policy catalog loaded: %s", ", ".join(_default_catalog.names()))
    return _default_catalog
