"""
Pydantic schemas for pipeline configuration and destinations
"""

from pydantic import BaseModel, Discriminator, Field, Tag, TypeAdapter, field_validator
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Union
import enum


Record = Dict[str, Any]

# (record) -> Iterable[Record] | AsyncIterable[Record]
RecordGenerator = Callable[[Record], Any]


class SinkKind(str, enum.Enum):
    """Sink kinds understood by the dispatcher"""
    POSTGRES = "postgres"
    MSSQL = "mssql"
    HTTP = "http"
    STDOUT = "stdout"


RELATIONAL_KINDS = (SinkKind.POSTGRES, SinkKind.MSSQL)


class RelationalSetup(BaseModel):
    """Target table for a relational bulk insert.

    ``connection`` is either a SQLAlchemy URL string or a mapping with
    host/port/user/password/database (and optionally driver). When omitted
    the adapter falls back to ``settings.DATABASE_URL``.
    """

    connection: Optional[Union[str, Dict[str, Any]]] = None
    table: str = Field(..., min_length=1, max_length=255)


class HttpSetup(BaseModel):
    """Target endpoint for HTTP delivery"""

    url: str = Field(..., min_length=1, max_length=2048)
    method: str = "POST"
    headers: Dict[str, str] = Field(default_factory=dict)
    params: Dict[str, Any] = Field(default_factory=dict)
    timeout: Optional[float] = Field(None, gt=0)

    @field_validator("method")
    @classmethod
    def upper_method(cls, v):
        return v.strip().upper()


class DestinationBase(BaseModel):
    """
    Fields shared by every destination.

    ``batch_size`` stays unset until the pipeline normalizes the
    configuration; ``record_generator`` expands one source record into zero
    or more output records for this destination only.
    """

    name: Optional[str] = None
    batch_size: Optional[int] = Field(None, gt=0, alias="batchSize")
    record_generator: Optional[RecordGenerator] = Field(
        None, alias="recordGenerator", exclude=True
    )

    class Config:
        populate_by_name = True

    @field_validator("type", mode="before", check_fields=False)
    @classmethod
    def kind_value(cls, v):
        if isinstance(v, SinkKind):
            return v.value
        return v

    @property
    def label(self) -> str:
        """Name used in log lines"""
        return self.name or str(self.type)


class PostgresDestination(DestinationBase):
    type: Literal["postgres"] = "postgres"
    setup: RelationalSetup


class MssqlDestination(DestinationBase):
    type: Literal["mssql"] = "mssql"
    setup: RelationalSetup


class HttpDestination(DestinationBase):
    type: Literal["http"] = "http"
    setup: HttpSetup


class ConsoleDestination(DestinationBase):
    """Fallback sink. Also absorbs any type the dispatcher does not know."""

    type: str = SinkKind.STDOUT.value
    setup: Optional[Dict[str, Any]] = None


def _destination_tag(value: Any) -> str:
    """Pick the union member for a raw dict or an already-built destination"""
    if isinstance(value, dict):
        kind = value.get("type")
    else:
        kind = getattr(value, "type", None)
    if isinstance(kind, SinkKind):
        kind = kind.value
    if kind in (SinkKind.POSTGRES.value, SinkKind.MSSQL.value, SinkKind.HTTP.value):
        return kind
    return SinkKind.STDOUT.value


Destination = Annotated[
    Union[
        Annotated[PostgresDestination, Tag(SinkKind.POSTGRES.value)],
        Annotated[MssqlDestination, Tag(SinkKind.MSSQL.value)],
        Annotated[HttpDestination, Tag(SinkKind.HTTP.value)],
        Annotated[ConsoleDestination, Tag(SinkKind.STDOUT.value)],
    ],
    Discriminator(_destination_tag),
]

_destination_adapter = TypeAdapter(Destination)


def parse_destination(data: Any) -> DestinationBase:
    """Validate a single destination (dict or model)"""
    return _destination_adapter.validate_python(data)


class PipelineConfig(BaseModel):
    """
    Pipeline configuration.

    Built once by the caller, normalized in place by the pipeline before
    the first record is read.
    """

    destinations: List[Destination] = Field(default_factory=list)
    verbose: bool = False

    @field_validator("destinations", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        """Absent destinations mean the console fallback"""
        if v is None:
            return []
        return v
