"""Metadata generator - compiles raw mapping facts into artifact payloads."""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import asdict
from typing import Any

from ..driver.base import MappingDriver
from ..driver.types import AssociationType, ClassMapping, InheritanceType, MappingKind
from ..errors import MappingInconsistencyError
from .types import ClassMetadata

logger = logging.getLogger(__name__)

# Bump when the payload layout changes so stale artifacts are regenerated
GENERATOR_VERSION = "1"

DEFAULT_DISCRIMINATOR_COLUMN = "dtype"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def default_table_name(class_name: str) -> str:
    """``app.models.OrderLine`` -> ``order_line``."""
    return _CAMEL_BOUNDARY.sub("_", class_name.rsplit(".", 1)[-1]).lower()


class ClassMetadataGenerator:
    """
    Turns the mapping a class declares, plus its already-built parent
    metadata, into the complete compiled mapping of that class.

    Inherited fields and associations come first and keep the name of the
    class that declared them; the table and discriminator settings are
    resolved against the hierarchy root.
    """

    def __init__(self, driver: MappingDriver):
        self.driver = driver

    def fingerprint(self, class_name: str, parent: ClassMetadata | None) -> str:
        """Hash of everything a generated payload depends on."""
        mapping = self.driver.load_mapping(class_name)
        return self._fingerprint(mapping, parent)

    @staticmethod
    def _fingerprint(mapping: ClassMapping, parent: ClassMetadata | None) -> str:
        if parent is None:
            parent_key = None
        elif parent.artifact is not None:
            parent_key = parent.artifact.fingerprint
        else:
            parent_key = parent.class_name
        material = json.dumps(
            {"version": GENERATOR_VERSION, "mapping": asdict(mapping), "parent": parent_key},
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(material.encode("utf-8")).hexdigest()

    def generate(self, class_name: str, parent: ClassMetadata | None) -> dict[str, Any]:
        """
        Compile the payload for a class.

        Raises:
            MappingInconsistencyError: If the mapping is malformed or contradicts its parent
        """
        mapping = self.driver.load_mapping(class_name)
        self._check_kind(mapping, parent)

        fields = self._compile_fields(mapping, parent)
        associations = self._compile_associations(mapping, parent)
        layout = self._compile_layout(mapping, parent)

        logger.debug(
            f"Generated metadata for {class_name}: {len(fields)} fields, "
            f"{len(associations)} associations"
        )
        return {
            "class_name": class_name,
            "kind": mapping.kind.value,
            "parent": parent.class_name if parent is not None else None,
            **layout,
            "read_only": mapping.read_only or (parent.read_only if parent is not None else False),
            "fields": fields,
            "associations": associations,
            "fingerprint": self._fingerprint(mapping, parent),
        }

    @staticmethod
    def _check_kind(mapping: ClassMapping, parent: ClassMetadata | None) -> None:
        if parent is not None and parent.kind is MappingKind.EMBEDDABLE and mapping.kind is not MappingKind.EMBEDDABLE:
            raise MappingInconsistencyError(
                mapping.class_name, f"cannot extend embeddable '{parent.class_name}'"
            )
        if mapping.kind is MappingKind.EMBEDDABLE:
            if parent is not None and parent.kind is not MappingKind.EMBEDDABLE:
                raise MappingInconsistencyError(
                    mapping.class_name, f"embeddable cannot extend {parent.kind.value} '{parent.class_name}'"
                )
            if mapping.associations:
                raise MappingInconsistencyError(mapping.class_name, "embeddables cannot declare associations")
            if any(f.id for f in mapping.fields):
                raise MappingInconsistencyError(mapping.class_name, "embeddables cannot declare an identifier")

    @staticmethod
    def _compile_fields(mapping: ClassMapping, parent: ClassMetadata | None) -> list[dict[str, Any]]:
        compiled = [f.to_dict() for f in parent.fields.values()] if parent is not None else []
        names = {f["name"] for f in compiled}
        inherited_associations = set(parent.associations) if parent is not None else set()
        columns = {f["column"]: f["name"] for f in compiled}

        for fm in mapping.fields:
            if fm.name in names:
                origin = "inherited" if parent is not None and fm.name in parent.fields else "duplicate"
                raise MappingInconsistencyError(mapping.class_name, f"{origin} field '{fm.name}' is redeclared")
            if fm.name in inherited_associations:
                raise MappingInconsistencyError(
                    mapping.class_name, f"field '{fm.name}' clashes with an inherited association"
                )
            if fm.column in columns:
                raise MappingInconsistencyError(
                    mapping.class_name,
                    f"column '{fm.column}' of field '{fm.name}' is already used by '{columns[fm.column]}'",
                )
            names.add(fm.name)
            columns[fm.column] = fm.name
            compiled.append({
                "name": fm.name,
                "column": fm.column,
                "type": fm.type,
                "id": fm.id,
                "nullable": fm.nullable,
                "unique": fm.unique,
                "length": fm.length,
                "declared_in": mapping.class_name,
            })
        return compiled

    @staticmethod
    def _compile_associations(mapping: ClassMapping, parent: ClassMetadata | None) -> list[dict[str, Any]]:
        compiled = [a.to_dict() for a in parent.associations.values()] if parent is not None else []
        names = {a["name"] for a in compiled} | {f.name for f in mapping.fields}
        if parent is not None:
            names |= set(parent.fields)

        valid_types = {t.value for t in AssociationType}
        for am in mapping.associations:
            if am.name in names:
                raise MappingInconsistencyError(mapping.class_name, f"association '{am.name}' is declared twice")
            if not am.target:
                raise MappingInconsistencyError(mapping.class_name, f"association '{am.name}' has no target")
            if am.type not in valid_types:
                raise MappingInconsistencyError(
                    mapping.class_name, f"association '{am.name}' has unknown type '{am.type}'"
                )
            if am.mapped_by and am.inversed_by:
                raise MappingInconsistencyError(
                    mapping.class_name,
                    f"association '{am.name}' cannot set both mapped_by and inversed_by",
                )
            if am.type == AssociationType.ONE_TO_MANY.value and not am.mapped_by:
                raise MappingInconsistencyError(
                    mapping.class_name, f"one_to_many association '{am.name}' requires mapped_by"
                )
            names.add(am.name)
            compiled.append({
                "name": am.name,
                "target": am.target,
                "type": am.type,
                "mapped_by": am.mapped_by,
                "inversed_by": am.inversed_by,
                "join_column": am.join_column,
                "declared_in": mapping.class_name,
            })
        return compiled

    @staticmethod
    def _nearest_entity(parent: ClassMetadata | None) -> ClassMetadata | None:
        current = parent
        while current is not None:
            if current.kind is MappingKind.ENTITY:
                return current
            current = current.parent
        return None

    def _compile_layout(self, mapping: ClassMapping, parent: ClassMetadata | None) -> dict[str, Any]:
        """Table, root, inheritance and discriminator settings."""
        disc = mapping.discriminator
        if mapping.kind is not MappingKind.ENTITY:
            return {
                "root": mapping.class_name,
                "table": None,
                "inheritance": InheritanceType.NONE.value,
                "discriminator": {"column": None, "value": None, "map": {}},
            }

        entity_parent = self._nearest_entity(parent)
        if entity_parent is None:
            inheritance = mapping.inheritance or InheritanceType.NONE
            column = disc.column if disc else None
            disc_map = dict(disc.map) if disc else {}
            if inheritance is not InheritanceType.NONE and column is None:
                column = DEFAULT_DISCRIMINATOR_COLUMN
            root = mapping.class_name
            table = mapping.table or default_table_name(mapping.class_name)
        else:
            inheritance = entity_parent.inheritance_type
            if inheritance is InheritanceType.NONE:
                raise MappingInconsistencyError(
                    mapping.class_name,
                    f"extends entity '{entity_parent.class_name}' which declares no inheritance type",
                )
            if mapping.inheritance is not None and mapping.inheritance is not inheritance:
                raise MappingInconsistencyError(
                    mapping.class_name,
                    f"inheritance type '{mapping.inheritance.value}' differs from "
                    f"'{inheritance.value}' declared by '{entity_parent.root_class_name}'",
                )
            column = entity_parent.discriminator_column
            disc_map = dict(entity_parent.discriminator_map)
            root = entity_parent.root_class_name
            if inheritance is InheritanceType.SINGLE_TABLE:
                if mapping.table and mapping.table != entity_parent.table_name:
                    raise MappingInconsistencyError(
                        mapping.class_name,
                        f"single_table hierarchy stores everything in '{entity_parent.table_name}'",
                    )
                table = entity_parent.table_name
            else:
                table = mapping.table or default_table_name(mapping.class_name)

        value = disc.value if disc else None
        if value is None and inheritance is not InheritanceType.NONE:
            value = next((k for k, v in disc_map.items() if v == mapping.class_name), None)
        if value is not None and disc_map and value not in disc_map:
            raise MappingInconsistencyError(
                mapping.class_name, f"discriminator value '{value}' is not in the discriminator map"
            )

        return {
            "root": root,
            "table": table,
            "inheritance": inheritance.value,
            "discriminator": {"column": column, "value": value, "map": disc_map},
        }
