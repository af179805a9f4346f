"""
HTMA Reference Range Registry
=============================
Holds every ReferenceRangeVersion and the pointer to the active one.

This module:
- Loads the canonical TEI range table from htma/data at startup
- Validates ranges before anything is stored (fail fast)
- Serializes activation/deprecation behind one lock
- Swaps the whole registry state in a single assignment

This module MUST NOT:
- Edit an existing version record in place
- Allow more than one active version
- Live as a module-level global (pass the registry by reference)
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from ..config import RANGES_FILE
from ..errors import RangeConfigurationError, VersionNotFoundError
from ..shared.versions import REFERENCE_STANDARD
from .models import (
    AdditionalElementReference,
    MineralRange,
    RangeChange,
    RatioRange,
    ReferenceRangeVersion,
    ToxicElementReference,
)
from .versioning import is_valid_version_id, validate_reference_range

logger = logging.getLogger("htma.ranges")

INITIAL_VERSION_ID = "1.0.0"
INITIAL_VERSION_NAME = "TEI Standard Ranges (Initial)"


class _RegistryState(NamedTuple):
    versions: Mapping[str, ReferenceRangeVersion]
    active_id: Optional[str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> datetime:
    """Naive datetimes are taken as UTC."""
    if value is None:
        return _utcnow()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _validate_table(
    version_id: str,
    mineral_ranges: Sequence[MineralRange],
    ratio_ranges: Sequence[RatioRange],
) -> None:
    errors = []
    seen = set()
    for rng in mineral_ranges:
        if rng.symbol in seen:
            errors.append(f"{rng.symbol}: duplicate mineral symbol")
        seen.add(rng.symbol)
        valid, error = validate_reference_range(rng.min_ideal, rng.max_ideal)
        if not valid:
            errors.append(f"{rng.symbol}: {error}")

    seen = set()
    for rng in ratio_ranges:
        if rng.name in seen:
            errors.append(f"{rng.name}: duplicate ratio name")
        seen.add(rng.name)
        valid, error = validate_reference_range(rng.min_ideal, rng.max_ideal)
        if not valid:
            errors.append(f"{rng.name}: {error}")

    if not mineral_ranges:
        errors.append("mineral range table is empty")

    if errors:
        for error in errors:
            logger.error(f"VALIDATION_ERROR: version {version_id}: {error}")
        raise RangeConfigurationError(f"Invalid reference ranges for version {version_id}: " + "; ".join(errors))


class ReferenceRangeRegistry:
    """
    Versioned reference range store.

    Reads never take the lock: they grab the current state tuple once and
    work from that immutable view.
    """

    def __init__(
        self,
        toxic_references: Iterable[ToxicElementReference] = (),
        additional_references: Iterable[AdditionalElementReference] = (),
    ):
        self._lock = Lock()
        self._state = _RegistryState(MappingProxyType({}), None)
        self.toxic_references: Tuple[ToxicElementReference, ...] = tuple(toxic_references)
        self.additional_references: Tuple[AdditionalElementReference, ...] = tuple(additional_references)

    def __len__(self) -> int:
        return len(self._state.versions)

    def __contains__(self, version_id: str) -> bool:
        return version_id in self._state.versions

    # ------------------------------------------------------------
    # Authoring
    # ------------------------------------------------------------

    def create_version(
        self,
        version: str,
        name: str,
        mineral_ranges: Sequence[Union[MineralRange, Dict[str, Any]]],
        ratio_ranges: Optional[Sequence[Union[RatioRange, Dict[str, Any]]]] = None,
        standard: str = REFERENCE_STANDARD,
        effective_date: Optional[datetime] = None,
        supersedes: Optional[str] = None,
        changes: Sequence[Union[RangeChange, Dict[str, Any]]] = (),
        created_by: str = "system",
        notes: Optional[str] = None,
    ) -> ReferenceRangeVersion:
        """
        Register a new, inactive version.

        Ratio ranges default to those of the superseded version, or the
        active one. Raises RangeConfigurationError on any invalid input.
        """
        if not is_valid_version_id(version):
            raise RangeConfigurationError(f"Invalid version id '{version}': expected MAJOR.MINOR.PATCH")

        minerals = tuple(r if isinstance(r, MineralRange) else MineralRange(**r) for r in mineral_ranges)
        state = self._state
        if ratio_ranges is None:
            base_id = supersedes or state.active_id
            if base_id is None or base_id not in state.versions:
                raise RangeConfigurationError(f"Version {version} has no ratio ranges and nothing to inherit them from")
            ratios = state.versions[base_id].ratio_ranges
        else:
            ratios = tuple(r if isinstance(r, RatioRange) else RatioRange(**r) for r in ratio_ranges)

        _validate_table(version, minerals, ratios)

        record = ReferenceRangeVersion(
            version=version,
            name=name,
            standard=standard,
            created_at=_utcnow(),
            effective_date=_as_utc(effective_date),
            supersedes=supersedes,
            changes=tuple(c if isinstance(c, RangeChange) else RangeChange(**c) for c in changes),
            created_by=created_by,
            notes=notes,
            is_active=False,
            mineral_ranges=minerals,
            ratio_ranges=ratios,
        )

        with self._lock:
            current = self._state
            if version in current.versions:
                raise RangeConfigurationError(f"Version {version} already exists")
            if supersedes is not None and supersedes not in current.versions:
                raise RangeConfigurationError(f"Version {version} supersedes unknown version {supersedes}")
            versions = dict(current.versions)
            versions[version] = record
            self._state = _RegistryState(MappingProxyType(versions), current.active_id)

        logger.info(f"Created reference range version {version} ({name})")
        return record

    # ------------------------------------------------------------
    # Activation (critical section)
    # ------------------------------------------------------------

    def activate(self, version_id: str, at: Optional[datetime] = None) -> ReferenceRangeVersion:
        """
        Make version_id the single active version.

        The previously active version is replaced by a deprecated copy.
        """
        at = _as_utc(at)
        with self._lock:
            current = self._state
            if version_id not in current.versions:
                raise VersionNotFoundError(version_id)

            versions = dict(current.versions)
            previous_id = current.active_id
            if previous_id is not None and previous_id != version_id:
                versions[previous_id] = versions[previous_id].model_copy(
                    update={"is_active": False, "deprecated_at": at}
                )
            activated = versions[version_id].model_copy(
                update={"is_active": True, "deprecated_at": None}
            )
            versions[version_id] = activated
            self._state = _RegistryState(MappingProxyType(versions), version_id)

        logger.info(f"Activated reference range version {version_id} (previous: {previous_id})")
        return activated

    def deprecate(self, version_id: str, at: Optional[datetime] = None) -> ReferenceRangeVersion:
        """Deprecating the active version leaves no version active."""
        at = _as_utc(at)
        with self._lock:
            current = self._state
            if version_id not in current.versions:
                raise VersionNotFoundError(version_id)

            versions = dict(current.versions)
            deprecated = versions[version_id].model_copy(
                update={"is_active": False, "deprecated_at": at}
            )
            versions[version_id] = deprecated
            active_id = None if current.active_id == version_id else current.active_id
            self._state = _RegistryState(MappingProxyType(versions), active_id)

        logger.warning(f"Deprecated reference range version {version_id}")
        return deprecated

    def activate_effective(self, now: Optional[datetime] = None) -> Optional[ReferenceRangeVersion]:
        """
        Activate the newest non-deprecated version whose effective date
        has been reached. No-op when it is already active.
        """
        now = _as_utc(now)
        candidates = [
            v for v in self.versions()
            if v.effective_date <= now and v.deprecated_at is None
        ]
        if not candidates:
            return None
        newest = candidates[0]
        if newest.is_active:
            return newest
        return self.activate(newest.version, at=now)

    # ------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------

    def active(self) -> Optional[ReferenceRangeVersion]:
        state = self._state
        if state.active_id is None:
            return None
        return state.versions[state.active_id]

    def find(self, version_id: str) -> Optional[ReferenceRangeVersion]:
        return self._state.versions.get(version_id)

    def get(self, version_id: str) -> ReferenceRangeVersion:
        version = self.find(version_id)
        if version is None:
            raise VersionNotFoundError(version_id)
        return version

    def resolve(self, version_id: Optional[str] = None) -> ReferenceRangeVersion:
        """Pinned version if given, else the active one."""
        if version_id is not None:
            return self.get(version_id)
        version = self.active()
        if version is None:
            raise RangeConfigurationError("No active reference range version")
        return version

    def versions(self) -> List[ReferenceRangeVersion]:
        """All versions, newest effective date first."""
        return sorted(self._state.versions.values(), key=lambda v: v.effective_date, reverse=True)

    def history(self, version_id: str) -> List[ReferenceRangeVersion]:
        """The version and everything it supersedes, newest first."""
        versions = self._state.versions
        chain = []
        seen = set()
        current = versions.get(version_id)
        while current is not None and current.version not in seen:
            chain.append(current)
            seen.add(current.version)
            current = versions.get(current.supersedes) if current.supersedes else None
        return chain


# ============================================================
# LOADER
# ============================================================

def load_range_file(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Read the canonical range table JSON."""
    path = Path(path) if path else RANGES_FILE
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load reference ranges from {path}: {e}")
        raise RangeConfigurationError(f"Cannot load reference ranges from {path}: {e}") from e


def load_default_registry(path: Optional[Union[str, Path]] = None) -> ReferenceRangeRegistry:
    """
    Build a registry holding the canonical table as version 1.0.0, active.
    """
    data = load_range_file(path)
    try:
        registry = ReferenceRangeRegistry(
            toxic_references=[ToxicElementReference(**e) for e in data.get("toxic_elements", [])],
            additional_references=[AdditionalElementReference(**e) for e in data.get("additional_elements", [])],
        )
        effective = data.get("effective_date")
        registry.create_version(
            version=data.get("version", INITIAL_VERSION_ID),
            name=data.get("name", INITIAL_VERSION_NAME),
            standard=data.get("standard", REFERENCE_STANDARD),
            effective_date=datetime.fromisoformat(effective) if effective else None,
            mineral_ranges=[MineralRange(**m) for m in data["minerals"]],
            ratio_ranges=[RatioRange(**r) for r in data["ratios"]],
            notes=data.get("notes"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RangeConfigurationError(f"Malformed reference range file: {e}") from e

    registry.activate(data.get("version", INITIAL_VERSION_ID))
    logger.info(
        f"Loaded {len(data['minerals'])} mineral ranges and {len(data['ratios'])} ratio ranges "
        f"(version {data.get('version', INITIAL_VERSION_ID)})"
    )
    return registry
