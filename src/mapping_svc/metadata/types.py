"""Metadata types - built class metadata and the artifacts it is built from."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from ..driver.types import InheritanceType, MappingKind
from ..errors import MetadataStateError

if TYPE_CHECKING:
    from ..reflection.service import ReflectionHandle


class BindingState(str, Enum):
    """Lifecycle of a metadata object."""
    UNBOUND = "unbound"                    # Being constructed
    CONSTRUCTED = "constructed"            # Mapping populated, no reflection yet
    REFLECTION_BOUND = "reflection_bound"  # Safe to hand out


@dataclass(frozen=True, slots=True)
class GeneratedArtifact:
    """
    The compiled mapping of one class, as written to (or read from) the artifact store.

    The payload is plain data so it can round-trip through YAML.
    """
    class_name: str
    fingerprint: str
    payload: dict[str, Any]
    path: Path | None = None

    @property
    def kind(self) -> MappingKind:
        return MappingKind(self.payload["kind"])

    @property
    def parent_class_name(self) -> str | None:
        return self.payload.get("parent")


@dataclass(frozen=True, slots=True)
class FieldMetadata:
    """A compiled scalar field."""
    name: str
    column: str
    type: str = "string"
    id: bool = False
    nullable: bool = False
    unique: bool = False
    length: int | None = None
    declared_in: str = ""  # Class that declared the field

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FieldMetadata:
        return cls(
            name=data["name"],
            column=data["column"],
            type=data.get("type", "string"),
            id=data.get("id", False),
            nullable=data.get("nullable", False),
            unique=data.get("unique", False),
            length=data.get("length"),
            declared_in=data.get("declared_in", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "column": self.column,
            "type": self.type,
            "id": self.id,
            "nullable": self.nullable,
            "unique": self.unique,
            "length": self.length,
            "declared_in": self.declared_in,
        }


@dataclass(frozen=True, slots=True)
class AssociationMetadata:
    """A compiled association to another mapped class."""
    name: str
    target: str
    type: str
    mapped_by: str | None = None
    inversed_by: str | None = None
    join_column: str | None = None
    declared_in: str = ""

    @property
    def is_owning_side(self) -> bool:
        return self.mapped_by is None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssociationMetadata:
        return cls(
            name=data["name"],
            target=data["target"],
            type=data["type"],
            mapped_by=data.get("mapped_by"),
            inversed_by=data.get("inversed_by"),
            join_column=data.get("join_column"),
            declared_in=data.get("declared_in", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "target": self.target,
            "type": self.type,
            "mapped_by": self.mapped_by,
            "inversed_by": self.inversed_by,
            "join_column": self.join_column,
            "declared_in": self.declared_in,
        }


class ClassMetadata:
    """
    The built mapping description of exactly one class.

    Construction populates the compiled mapping from a generated artifact
    and links the (already built) parent metadata. The reflection handle is
    attached afterwards with ``wakeup_reflection``; until then the object
    must not leave the factory.

    Equality is identity: one instance per class per factory.
    """
    kind: ClassVar[MappingKind]

    def __init__(
        self,
        class_name: str,
        parent: ClassMetadata | None = None,
        artifact: GeneratedArtifact | None = None,
    ):
        self.state = BindingState.UNBOUND
        self.class_name = class_name
        self.parent = parent
        self.artifact = artifact

        self.table_name: str | None = None
        self.root_class_name = class_name
        self.inheritance_type = InheritanceType.NONE
        self.discriminator_column: str | None = None
        self.discriminator_value: str | None = None
        self.discriminator_map: dict[str, str] = {}
        self.read_only = False
        self.fields: dict[str, FieldMetadata] = {}
        self.associations: dict[str, AssociationMetadata] = {}
        self._reflection: ReflectionHandle | None = None

        if artifact is not None:
            self._populate(artifact.payload)
        self.state = BindingState.CONSTRUCTED

    def _populate(self, payload: dict[str, Any]) -> None:
        self.table_name = payload.get("table")
        self.root_class_name = payload.get("root") or self.class_name
        self.inheritance_type = InheritanceType(payload.get("inheritance", InheritanceType.NONE.value))
        self.read_only = payload.get("read_only", False)

        disc = payload.get("discriminator") or {}
        self.discriminator_column = disc.get("column")
        self.discriminator_value = disc.get("value")
        self.discriminator_map = dict(disc.get("map") or {})

        for field_data in payload.get("fields", []):
            fm = FieldMetadata.from_dict(field_data)
            self.fields[fm.name] = fm
        for assoc_data in payload.get("associations", []):
            am = AssociationMetadata.from_dict(assoc_data)
            self.associations[am.name] = am

    # ------------------------------------------------------------------
    # Reflection binding
    # ------------------------------------------------------------------

    def wakeup_reflection(self, handle: ReflectionHandle) -> None:
        """Attach the reflection handle. Allowed exactly once, after construction."""
        if self.state is BindingState.UNBOUND:
            raise MetadataStateError(f"{self.class_name}: cannot bind reflection before construction")
        if self.state is BindingState.REFLECTION_BOUND:
            raise MetadataStateError(f"{self.class_name}: reflection is already bound")
        self._reflection = handle
        self.state = BindingState.REFLECTION_BOUND

    @property
    def is_bound(self) -> bool:
        return self.state is BindingState.REFLECTION_BOUND

    @property
    def reflection(self) -> ReflectionHandle:
        if self._reflection is None:
            raise MetadataStateError(f"{self.class_name}: reflection is not bound")
        return self._reflection

    def new_instance(self) -> Any:
        """Create an uninitialized instance of the mapped class."""
        return self.reflection.new_instance()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def parent_class_name(self) -> str | None:
        return self.parent.class_name if self.parent is not None else None

    @property
    def identifier(self) -> list[str]:
        return [f.name for f in self.fields.values() if f.id]

    @property
    def is_root(self) -> bool:
        return self.root_class_name == self.class_name

    @property
    def is_in_hierarchy(self) -> bool:
        return self.inheritance_type is not InheritanceType.NONE

    def has_field(self, name: str) -> bool:
        return name in self.fields

    def has_association(self, name: str) -> bool:
        return name in self.associations

    def is_inherited(self, name: str) -> bool:
        """Whether a field or association was declared by an ancestor."""
        member = self.fields.get(name) or self.associations.get(name)
        return member is not None and member.declared_in not in ("", self.class_name)

    def ancestors(self) -> list[ClassMetadata]:
        """Parent metadata chain, nearest first."""
        chain = []
        current = self.parent
        while current is not None:
            chain.append(current)
            current = current.parent
        return chain

    def to_dict(self) -> dict[str, Any]:
        return {
            "class_name": self.class_name,
            "kind": self.kind.value,
            "parent": self.parent_class_name,
            "root": self.root_class_name,
            "table": self.table_name,
            "inheritance": self.inheritance_type.value,
            "discriminator": {
                "column": self.discriminator_column,
                "value": self.discriminator_value,
                "map": dict(self.discriminator_map),
            },
            "read_only": self.read_only,
            "identifier": self.identifier,
            "fields": [f.to_dict() for f in self.fields.values()],
            "associations": [a.to_dict() for a in self.associations.values()],
            "state": self.state.value,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.class_name} ({self.state.value})>"


class EntityMetadata(ClassMetadata):
    """Metadata of a class stored in its own (or its hierarchy's) table."""
    kind = MappingKind.ENTITY


class MappedSuperclassMetadata(ClassMetadata):
    """Metadata of a non-queryable base class that contributes mapped fields."""
    kind = MappingKind.MAPPED_SUPERCLASS


class EmbeddableMetadata(ClassMetadata):
    """Metadata of a value object stored inline in its owner's table."""
    kind = MappingKind.EMBEDDABLE


METADATA_TYPES: dict[MappingKind, type[ClassMetadata]] = {
    MappingKind.ENTITY: EntityMetadata,
    MappingKind.MAPPED_SUPERCLASS: MappedSuperclassMetadata,
    MappingKind.EMBEDDABLE: EmbeddableMetadata,
}
