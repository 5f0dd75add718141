import datetime
import typing

from sqlglot import exp


class _NoDefault:
    pass


NO_DEFAULT = _NoDefault()


class Field:
    _duckdb_type: str = ""

    def __init__(self, *, nullable: bool = False, default: typing.Any = NO_DEFAULT, primary_key: bool = False):
        self.nullable = nullable
        self.default = default
        self.primary_key = primary_key

    @property
    def duckdb_type(self) -> str:
        return self._duckdb_type

    def column_ddl(self, name: str) -> str:
        col = f"{exp.to_identifier(name, quoted=True).sql(dialect='duckdb')} {self.duckdb_type}"
        if not self.nullable:
            col += " NOT NULL"
        if self.primary_key:
            col += " PRIMARY KEY"
        if self.default is not NO_DEFAULT:
            # Expressions such as exp.CurrentTimestamp() render as-is, plain values as literals
            col += f" DEFAULT {exp.convert(self.default).sql(dialect='duckdb')}"
        return col


class String(Field):
    _duckdb_type = "VARCHAR"

    def __init__(
        self,
        *,
        nullable: bool = False,
        default: str | exp.Expression | _NoDefault = NO_DEFAULT,
        primary_key: bool = False,
    ):
        super().__init__(nullable=nullable, default=default, primary_key=primary_key)


class Int(Field):
    _duckdb_type = "INTEGER"

    def __init__(
        self,
        *,
        nullable: bool = False,
        default: int | exp.Expression | _NoDefault = NO_DEFAULT,
        primary_key: bool = False,
    ):
        super().__init__(nullable=nullable, default=default, primary_key=primary_key)


class Long(Field):
    _duckdb_type = "BIGINT"

    def __init__(
        self,
        *,
        nullable: bool = False,
        default: int | exp.Expression | _NoDefault = NO_DEFAULT,
        primary_key: bool = False,
    ):
        super().__init__(nullable=nullable, default=default, primary_key=primary_key)


class Float(Field):
    _duckdb_type = "DOUBLE"

    def __init__(self, *, nullable: bool = False, default: float | exp.Expression | _NoDefault = NO_DEFAULT):
        super().__init__(nullable=nullable, default=default)


class Bool(Field):
    _duckdb_type = "BOOLEAN"

    def __init__(self, *, nullable: bool = False, default: bool | exp.Expression | _NoDefault = NO_DEFAULT):
        super().__init__(nullable=nullable, default=default)


_NAIVE_TIMESTAMP_TYPES = {"s": "TIMESTAMP_S", "ms": "TIMESTAMP_MS", "us": "TIMESTAMP"}


class Timestamp(Field):
    """Timestamp column; DuckDB only stores timezone-aware values at microsecond precision."""

    def __init__(
        self,
        *,
        unit: str = "us",
        timezone: bool = True,
        nullable: bool = False,
        default: datetime.datetime | exp.Expression | _NoDefault = NO_DEFAULT,
    ):
        super().__init__(nullable=nullable, default=default)
        if unit not in _NAIVE_TIMESTAMP_TYPES:
            raise ValueError(f"Unsupported timestamp unit {unit!r}, expected one of s, ms, us")
        if timezone and unit != "us":
            raise ValueError("Timezone-aware timestamps only support the 'us' unit")
        self.unit = unit
        self.timezone = timezone

    @property
    def duckdb_type(self) -> str:
        if self.timezone:
            return "TIMESTAMPTZ"
        return _NAIVE_TIMESTAMP_TYPES[self.unit]


class SchemaMeta(type):
    _fields: dict[str, Field]

    def __new__(mcs, name: str, bases: tuple, namespace: dict):
        cls = super().__new__(mcs, name, bases, namespace)
        if name != "Schema":
            field_dict = {}
            for key, value in namespace.items():
                if isinstance(value, Field):
                    field_dict[key] = value
            cls._fields = field_dict
        return cls


class Schema(metaclass=SchemaMeta):
    _fields: dict[str, Field] = {}

    @classmethod
    def fields(cls) -> dict[str, Field]:
        return cls._fields

    @classmethod
    def create_table_ddl(cls, table_name: str, *, if_not_exists: bool = False) -> str:
        columns = [field.column_ddl(name) for name, field in cls._fields.items()]
        exists = "IF NOT EXISTS " if if_not_exists else ""
        table = exp.to_identifier(table_name, quoted=True).sql(dialect="duckdb")
        return f"CREATE TABLE {exists}{table} ({', '.join(columns)})"
