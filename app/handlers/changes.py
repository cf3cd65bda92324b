"""
Change detection: field-level diffs between an entity's stored state and a
proposed update, formatted for humans.

Everything here is pure. Relationship names must already be resolved in the
snapshot and in connect payloads, e.g. ``{"connect": {"id": 3, "name": "Léa"}}``.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.core.constants import BOOLEAN_LABELS, DATE_FORMAT, EMPTY_MARKER, REMOVED_MARKER
from app.utils.serialization import canonical_json


class FieldKind(str, Enum):
    TEXT = "text"
    ENUM = "enum"
    BOOLEAN = "boolean"
    DATE = "date"
    RELATIONSHIP = "relationship"


@dataclass(frozen=True)
class TrackedField:
    name: str
    label: str
    kind: FieldKind = FieldKind.TEXT
    choices: Mapping[str, str] = field(default_factory=dict)


SEX_LABELS = {"male": "Mâle", "female": "Femelle"}
MEDIA_STATUS_LABELS = {"pending": "En attente", "approved": "Approuvée", "rejected": "Rejetée"}

TRACKED_FIELDS: Dict[str, Tuple[TrackedField, ...]] = {
    "dog": (
        TrackedField("name", "Nom"),
        TrackedField("sex", "Sexe", FieldKind.ENUM, SEX_LABELS),
        TrackedField("birthday", "Anniversaire", FieldKind.DATE),
        TrackedField("breed", "Race"),
        TrackedField("coat", "Robe"),
        TrackedField("owner", "Humain", FieldKind.RELATIONSHIP),
    ),
    "owner": (
        TrackedField("name", "Nom"),
        TrackedField("email", "Email"),
        TrackedField("phone", "Téléphone"),
    ),
    "media": (
        TrackedField("status", "Statut", FieldKind.ENUM, MEDIA_STATUS_LABELS),
        TrackedField("is_featured", "Photo principale", FieldKind.BOOLEAN),
        TrackedField("dog", "Chien", FieldKind.RELATIONSHIP),
    ),
}


@dataclass(frozen=True)
class ChangeRecord:
    """One changed field, tagged with the kind of value it holds."""
    field: str
    label: str
    kind: FieldKind
    old_value: Any
    new_value: Any
    display_old: str
    display_new: str
    removed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "field_label": self.label,
            "kind": self.kind.value,
            "old_value": _jsonable(self.old_value),
            "new_value": _jsonable(self.new_value),
            "display_old": self.display_old,
            "display_new": self.display_new,
            "removed": self.removed,
        }


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _jsonable(value: Any) -> Any:
    value = _plain(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return date.fromisoformat(value[:10])
    return None


def _ref_id(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get("id")
    return value


def _canonical(spec: TrackedField, value: Any) -> str:
    value = _plain(value)
    if spec.kind == FieldKind.DATE:
        parsed = _as_date(value)
        value = parsed.isoformat() if parsed else value
    elif spec.kind == FieldKind.RELATIONSHIP:
        value = _ref_id(value)
    return canonical_json(value)


def format_value(spec: TrackedField, value: Any) -> str:
    """Human-readable rendering of a raw field value."""
    value = _plain(value)
    if value is None or value == "":
        return EMPTY_MARKER

    if spec.kind == FieldKind.RELATIONSHIP:
        if isinstance(value, dict):
            return str(value.get("name") or value.get("id") or EMPTY_MARKER)
        return str(value)
    if spec.kind == FieldKind.BOOLEAN:
        return BOOLEAN_LABELS[bool(value)]
    if spec.kind == FieldKind.ENUM:
        return spec.choices.get(value, str(value))
    if spec.kind == FieldKind.DATE:
        parsed = _as_date(value)
        return parsed.strftime(DATE_FORMAT) if parsed else str(value)
    return str(value)


def _record(spec: TrackedField, old: Any, new: Any, removed: bool = False) -> ChangeRecord:
    return ChangeRecord(
        field=spec.name,
        label=spec.label,
        kind=spec.kind,
        old_value=old,
        new_value=new,
        display_old=format_value(spec, old),
        display_new=REMOVED_MARKER if removed else format_value(spec, new),
        removed=removed,
    )


def diff(entity_kind: str, old_snapshot: Optional[Mapping[str, Any]], proposed: Mapping[str, Any]) -> List[ChangeRecord]:
    """
    Compare tracked fields of ``proposed`` against ``old_snapshot``.

    Only fields present in ``proposed`` are considered, in the fixed order of
    the entity's tracked field list. Untracked keys are ignored.
    """
    old_snapshot = old_snapshot or {}
    changes: List[ChangeRecord] = []

    for spec in TRACKED_FIELDS.get(entity_kind, ()):
        if spec.name not in proposed:
            continue

        old = _plain(old_snapshot.get(spec.name))
        new = _plain(proposed[spec.name])

        if spec.kind == FieldKind.RELATIONSHIP and isinstance(new, dict) and ("connect" in new or "disconnect" in new):
            target = new.get("connect")
            if target:
                if _ref_id(target) != _ref_id(old):
                    changes.append(_record(spec, old, target))
                continue
            new = None

        if new is None:
            if old not in (None, ""):
                changes.append(_record(spec, old, None, removed=True))
            continue

        if _canonical(spec, old) != _canonical(spec, new):
            changes.append(_record(spec, old, new))

    return changes


def creation_changes(entity_kind: str, snapshot: Mapping[str, Any]) -> List[ChangeRecord]:
    """Changes describing a new entity: every non-empty tracked field."""
    proposed = {k: v for k, v in snapshot.items() if v is not None}
    return diff(entity_kind, {}, proposed)


def summarize(entity_kind: str, display_name: str, changes: List[ChangeRecord]) -> str:
    """``"{name}: {label}: {old} → {new}, ..."``, or just the name when nothing changed."""
    if not changes:
        return display_name
    parts = [f"{c.label}: {c.display_old} → {c.display_new}" for c in changes]
    return f"{display_name}: {', '.join(parts)}"


def entity_display_name(entity_kind: str, name: Optional[str], dog_name: Optional[str] = None) -> str:
    if entity_kind == "media":
        if dog_name:
            return f"Photo de {dog_name}"
        return name or "Photo sans nom"
    return name or "Sans nom"
