from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from exchange_access.errors import RegistryConfigError
from exchange_contracts import (
    AccessScope,
    CapabilityCategory,
    CapabilityDescriptor,
    CapabilityScope,
    RequiredScope,
    ResourceKind,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: tuple[CapabilityCategory, ...] = (
    CapabilityCategory(name="org", title="Organization Management"),
    CapabilityCategory(name="user", title="User Management"),
    CapabilityCategory(name="node", title="Node Management"),
    CapabilityCategory(name="service", title="Service Management"),
    CapabilityCategory(name="deployment", title="Deployment Policy Management"),
    CapabilityCategory(name="test", title="Testing & Validation"),
)

_ANY = RequiredScope.ANY_AUTHENTICATED

DEFAULT_CAPABILITIES: tuple[CapabilityDescriptor, ...] = (
    CapabilityDescriptor(
        "list-orgs", "org", _ANY, "List organizations interactively", "Lists accessible orgs"
    ),
    CapabilityDescriptor(
        "list-a-orgs", "org", _ANY, "List organizations via API", "Lists accessible orgs"
    ),
    CapabilityDescriptor(
        "can-i-list-orgs", "org", _ANY, "Check organization listing permissions"
    ),
    CapabilityDescriptor(
        "list-users",
        "user",
        AccessScope.OWN_ORG,
        "List users in organization",
        resource=ResourceKind.USERS,
    ),
    CapabilityDescriptor(
        "list-a-users",
        "user",
        AccessScope.OWN_ORG,
        "List users via API",
        resource=ResourceKind.USERS,
    ),
    CapabilityDescriptor("list-user", "user", _ANY, "Show current user info"),
    CapabilityDescriptor("list-a-user", "user", _ANY, "Show current user info via API"),
    CapabilityDescriptor("can-i-list-users", "user", _ANY, "Check user listing permissions"),
    CapabilityDescriptor(
        "list-a-org-nodes",
        "node",
        AccessScope.OWN_ORG,
        "List all nodes in organization",
        resource=ResourceKind.NODES,
    ),
    CapabilityDescriptor(
        "list-a-user-nodes",
        "node",
        _ANY,
        "List nodes for specific user",
        "Lists own nodes or specified user's nodes",
    ),
    CapabilityDescriptor(
        "monitor-nodes", "node", _ANY, "Real-time node monitoring", "Monitors own nodes"
    ),
    CapabilityDescriptor(
        "list-a-user-services",
        "service",
        _ANY,
        "List services for specific user",
        "Lists own services or specified user's services",
    ),
    CapabilityDescriptor(
        "can-i-list-services", "service", _ANY, "Check service listing permissions"
    ),
    CapabilityDescriptor(
        "list-a-user-deployment",
        "deployment",
        _ANY,
        "List deployment policies for user",
        "Lists own deployment policies or specified user's",
    ),
    CapabilityDescriptor("test-credentials", "test", _ANY, "Test and validate credentials"),
    CapabilityDescriptor("test-hzn", "test", _ANY, "Test CLI installation"),
)


def parse_required_scope(value: object) -> CapabilityScope:
    if isinstance(value, (AccessScope, RequiredScope)):
        return value
    normalized = str(value).strip().lower()
    for scope_type in (RequiredScope, AccessScope):
        try:
            return scope_type(normalized)
        except ValueError:
            continue
    raise ValueError(f"unknown required scope '{value}'")


class CapabilityRegistry:
    """
    Static table of administrative operations and the scope each one needs.

    Entries are validated when the registry is built. Invalid entries are
    kept aside in ``rejected`` instead of failing the whole registry.
    """

    def __init__(
        self,
        capabilities: Iterable[CapabilityDescriptor] = DEFAULT_CAPABILITIES,
        categories: tuple[CapabilityCategory, ...] = DEFAULT_CATEGORIES,
        rejected: Iterable[RegistryConfigError] = (),
    ) -> None:
        self._categories = categories
        self._by_name: dict[str, CapabilityDescriptor] = {}
        rejected_list = list(rejected)
        category_names = {category.name for category in categories}
        for descriptor in capabilities:
            problem = self._validate(descriptor, category_names)
            if problem is not None:
                rejected_list.append(RegistryConfigError(descriptor.name, problem))
                continue
            self._by_name[descriptor.name] = descriptor
        self._rejected = tuple(rejected_list)
        for error in self._rejected:
            logger.warning("%s", error)

    def _validate(self, descriptor: CapabilityDescriptor, category_names: set[str]) -> str | None:
        if descriptor.name.strip() == "":
            return "name must not be empty"
        if descriptor.name in self._by_name:
            return "duplicate capability name"
        if descriptor.category not in category_names:
            return f"unknown category '{descriptor.category}'"
        if not isinstance(descriptor.required_scope, (AccessScope, RequiredScope)):
            return f"unknown required scope '{descriptor.required_scope}'"
        return None

    @property
    def categories(self) -> tuple[CapabilityCategory, ...]:
        return self._categories

    @property
    def capabilities(self) -> tuple[CapabilityDescriptor, ...]:
        return tuple(self._by_name.values())

    @property
    def rejected(self) -> tuple[RegistryConfigError, ...]:
        return self._rejected

    def get(self, name: str) -> CapabilityDescriptor | None:
        return self._by_name.get(name)

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> CapabilityRegistry:
        categories_payload = payload.get("categories")
        categories = DEFAULT_CATEGORIES
        if isinstance(categories_payload, list):
            categories = tuple(
                CapabilityCategory(
                    name=str(item["name"]),
                    title=str(item.get("title", item["name"])),
                )
                for item in categories_payload
                if isinstance(item, Mapping) and "name" in item
            )

        descriptors: list[CapabilityDescriptor] = []
        rejected: list[RegistryConfigError] = []
        capabilities_payload = payload.get("capabilities", [])
        if not isinstance(capabilities_payload, list):
            raise RegistryConfigError("<registry>", "'capabilities' must be a list")
        for index, item in enumerate(capabilities_payload):
            if not isinstance(item, Mapping):
                rejected.append(RegistryConfigError(f"#{index}", "entry is not an object"))
                continue
            name = str(item.get("name", f"#{index}"))
            try:
                required_scope = parse_required_scope(item.get("required_scope", ""))
                resource = (
                    ResourceKind(str(item["resource"]))
                    if item.get("resource") is not None
                    else None
                )
            except ValueError as exc:
                rejected.append(RegistryConfigError(name, str(exc)))
                continue
            descriptors.append(
                CapabilityDescriptor(
                    name=name,
                    category=str(item.get("category", "")),
                    required_scope=required_scope,
                    description=str(item.get("description", "")),
                    notes=str(item.get("notes", "")),
                    resource=resource,
                )
            )
        return cls(capabilities=descriptors, categories=categories, rejected=rejected)

    @classmethod
    def from_file(cls, registry_path: str) -> CapabilityRegistry:
        path = Path(registry_path)
        raw = path.read_text(encoding="utf-8")
        if path.suffix.lower() in {".yaml", ".yml"}:
            try:
                import yaml  # type: ignore[import-untyped]
            except ImportError as exc:  # pragma: no cover - env-dependent
                raise RuntimeError(
                    "YAML registry files require PyYAML. Install with: pip install pyyaml"
                ) from exc
            try:
                loaded = yaml.safe_load(raw)
            except yaml.YAMLError as exc:
                raise RegistryConfigError("<registry>", f"invalid YAML: {exc}") from exc
        else:
            try:
                loaded = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise RegistryConfigError("<registry>", f"invalid JSON: {exc}") from exc
        if not isinstance(loaded, dict):
            raise RegistryConfigError("<registry>", "registry file must deserialize to an object")
        return cls.from_payload(loaded)
