from pydantic import BaseModel, ConfigDict, Field, model_validator


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    row: int
    column: int


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_byte: int
    end_byte: int
    start_point: Position
    end_point: Position

    @property
    def line(self) -> int:
        return self.start_point.row + 1

    @property
    def column(self) -> int:
        return self.start_point.column + 1


class TextEdit(BaseModel):
    """Replacement of the half-open byte range ``[start, end)``.

    ``start == end`` is an insertion, an empty ``replacement`` a deletion.
    """

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)
    replacement: str = ""

    @model_validator(mode="after")
    def _check_range(self) -> "TextEdit":
        if self.end < self.start:
            raise ValueError(f"Edit range is inverted: [{self.start}, {self.end})")
        return self

    def overlaps(self, other: "TextEdit") -> bool:
        return self.start < other.end and other.start < self.end


class FixSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    edits: tuple[TextEdit, ...] = ()
    imports: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.edits)


class ResourceMethod(BaseModel):
    """A static method whose result holds an open resource until closed."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str
    resource_type: str
    imports: tuple[str, ...] = ()

    @property
    def owner_simple_name(self) -> str:
        return self.owner.rsplit(".", 1)[-1]


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    check_name: str
    severity: str
    message: str
    path: str
    location: Location
    fix: FixSet | None = None

    @property
    def fixable(self) -> bool:
        return self.fix is not None
