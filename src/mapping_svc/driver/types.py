"""Mapping types - raw per-class mapping facts as read from a mapping source."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class MappingKind(str, Enum):
    """What a mapped class is, and which metadata variant represents it."""
    ENTITY = "entity"
    MAPPED_SUPERCLASS = "mapped_superclass"
    EMBEDDABLE = "embeddable"


class InheritanceType(str, Enum):
    """How an entity hierarchy is laid out in tables."""
    NONE = "none"
    SINGLE_TABLE = "single_table"        # Whole hierarchy in the root's table
    JOINED = "joined"                    # One table per class, joined on the id
    TABLE_PER_CLASS = "table_per_class"  # One self-contained table per concrete class


class AssociationType(str, Enum):
    """Cardinality of an association between two mapped classes."""
    ONE_TO_ONE = "one_to_one"
    MANY_TO_ONE = "many_to_one"
    ONE_TO_MANY = "one_to_many"
    MANY_TO_MANY = "many_to_many"


@dataclass(frozen=True, slots=True)
class FieldMapping:
    """A persistent scalar attribute and the column it is stored in."""
    name: str
    column: str
    type: str = "string"
    id: bool = False
    nullable: bool = False
    unique: bool = False
    length: int | None = None


@dataclass(frozen=True, slots=True)
class AssociationMapping:
    """A reference from one mapped class to another."""
    name: str
    target: str
    type: str = AssociationType.MANY_TO_ONE.value
    mapped_by: str | None = None    # Inverse side: name of the owning association on the target
    inversed_by: str | None = None  # Owning side: name of the inverse association on the target
    join_column: str | None = None


@dataclass(frozen=True, slots=True)
class DiscriminatorMapping:
    """Discriminator settings for an entity inheritance hierarchy."""
    column: str | None = None
    value: str | None = None
    # value -> class name, only meaningful on the hierarchy root
    map: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ClassMapping:
    """
    Raw mapping facts for one class.

    Only the class's own declarations live here; inherited fields and
    associations are merged in when the metadata is generated.
    """
    class_name: str
    kind: MappingKind = MappingKind.ENTITY
    table: str | None = None
    inheritance: InheritanceType | None = None
    discriminator: DiscriminatorMapping | None = None
    fields: tuple[FieldMapping, ...] = ()
    associations: tuple[AssociationMapping, ...] = ()
    read_only: bool = False
    extends: str | None = None

    @property
    def short_name(self) -> str:
        return self.class_name.rsplit(".", 1)[-1]
