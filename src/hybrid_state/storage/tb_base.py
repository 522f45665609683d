from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from ..state.state_types import normalize_state


class Base(DeclarativeBase):
    """
    Base class for SQLAlchemy models with hybrid state columns.
    """
    pass


class StateToken(TypeDecorator):
    """
    A SQLAlchemy TypeDecorator for state columns.

    Accepts plain strings and ``Enum`` members on assignment and always
    stores the normalized string token. When ``enumtype`` is given, results
    are converted back to members of that enum.

    :param enumtype: Optional Enum class to use for result conversion.
    :type enumtype: Type[Enum]
    """
    impl = String
    cache_ok = True

    def __init__(self, enumtype=None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enumtype = enumtype

    def process_bind_param(self, value, dialect):
        return normalize_state(value)

    def process_result_value(self, value, dialect):
        if value is None or self.enumtype is None:
            return value
        return self.enumtype(value)

    @property
    def python_type(self):
        return self.enumtype if self.enumtype is not None else str
