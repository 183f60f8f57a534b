"""
Pydantic models for the Metadata API.

Provides response models for the metadata introspection endpoints.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FieldModel(BaseModel):
    """A mapped scalar field."""

    name: str = Field(..., description="Attribute name")
    column: str = Field(..., description="Column the attribute is stored in")
    type: str = Field("string", description="Mapping type")
    id: bool = Field(False, description="Part of the identifier")
    nullable: bool = False
    unique: bool = False
    length: int | None = None
    declared_in: str = Field("", description="Class that declared the field")


class AssociationModel(BaseModel):
    """A mapped association."""

    name: str
    target: str = Field(..., description="Target class name")
    type: str = Field(..., description="one_to_one | many_to_one | one_to_many | many_to_many")
    mapped_by: str | None = None
    inversed_by: str | None = None
    join_column: str | None = None
    declared_in: str = ""


class DiscriminatorModel(BaseModel):
    """Discriminator settings of an inheritance hierarchy."""

    column: str | None = None
    value: str | None = None
    map: dict[str, str] = Field(default_factory=dict)


class ClassMetadataModel(BaseModel):
    """Full metadata of one class."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "class_name": "app.models.Employee",
                "kind": "entity",
                "parent": "app.models.Person",
                "root": "app.models.Person",
                "table": "employee",
                "inheritance": "joined",
                "discriminator": {"column": "type", "value": "employee", "map": {}},
                "read_only": False,
                "identifier": ["id"],
                "fields": [],
                "associations": [],
                "state": "reflection_bound",
            }
        }
    )

    class_name: str
    kind: str
    parent: str | None = None
    root: str
    table: str | None = None
    inheritance: str = "none"
    discriminator: DiscriminatorModel = Field(default_factory=DiscriminatorModel)
    read_only: bool = False
    identifier: list[str] = Field(default_factory=list)
    fields: list[FieldModel] = Field(default_factory=list)
    associations: list[AssociationModel] = Field(default_factory=list)
    state: str

    @classmethod
    def from_metadata(cls, data: dict[str, Any]) -> "ClassMetadataModel":
        return cls.model_validate(data)


class ClassSummaryModel(BaseModel):
    """Summary of one class for listings."""

    class_name: str
    kind: str
    parent: str | None = None
    table: str | None = None


class MetadataListResponse(BaseModel):
    """Response for listing all metadata."""

    classes: list[ClassSummaryModel]
    total: int


class MetadataStatusResponse(BaseModel):
    """Whether a class is cached and whether it is mapped at all."""

    class_name: str
    loaded: bool = Field(..., description="Metadata is already built and cached")
    transient: bool = Field(..., description="Class is excluded from mapping")


class FactoryStatsResponse(BaseModel):
    """Factory cache statistics."""

    loaded: int
    definitions: int
    hits: int
    misses: int
    hit_rate_percent: float
    definitions_built: int
    metadata_built: int
