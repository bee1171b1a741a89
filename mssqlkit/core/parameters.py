"""Named, typed and directional statement parameters."""

import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, Optional, Union, overload

from typing_extensions import Self

from mssqlkit.core.values import DataType, infer_data_type
from mssqlkit.exceptions import DuplicateParameterError, SQLBuilderError

__all__ = (
    "Parameter",
    "ParameterDirection",
    "ParameterSet",
    "build_in_clause",
    "param",
)

_NAME_PREFIXES: Final = ":@"
_INVALID_NAME_CHARS: Final = re.compile(r"\W")


class ParameterDirection(str, Enum):
    """Whether a parameter supplies a value, receives one, or carries a return code."""

    IN = "in"
    OUT = "out"
    IN_OUT = "in_out"
    RETURN_VALUE = "return_value"

    def __str__(self) -> str:
        return self.value

    @property
    def is_output(self) -> bool:
        return self is not ParameterDirection.IN


@dataclass
class Parameter:
    """A value bound to a ``:name`` placeholder.

    The data type is inferred from ``value`` when not supplied. A leading ``:`` or
    ``@`` on the name is stripped.
    """

    name: str
    value: Any = None
    data_type: Optional[DataType] = None
    direction: ParameterDirection = ParameterDirection.IN

    def __post_init__(self) -> None:
        self.name = self.name.lstrip(_NAME_PREFIXES)
        if not self.name:
            msg = "Parameter name must not be empty"
            raise SQLBuilderError(msg)
        if self.data_type is None:
            self.data_type = infer_data_type(self.value)

    @property
    def key(self) -> str:
        """Case-insensitive lookup key."""
        return self.name.lower()

    @property
    def placeholder(self) -> str:
        return f":{self.name}"


def param(
    name: str,
    value: Any = None,
    data_type: Optional[DataType] = None,
    direction: ParameterDirection = ParameterDirection.IN,
) -> Parameter:
    """Shorthand for :class:`Parameter`."""
    return Parameter(name, value, data_type, direction)


class ParameterSet:
    """Ordered collection of parameters with case-insensitive unique names.

    Insertion order is bind order. A set belongs to one statement; build a fresh one
    per operation.
    """

    __slots__ = ("_parameters",)

    def __init__(self, parameters: "Optional[Iterable[Parameter]]" = None) -> None:
        self._parameters: list[Parameter] = []
        for parameter in parameters or ():
            self.append(parameter)

    @classmethod
    def from_mapping(cls, values: "Mapping[str, Any]") -> Self:
        """Build a set of ``IN`` parameters from ``{name: value}``, keeping mapping order."""
        return cls(Parameter(name, value) for name, value in values.items())

    def add(
        self,
        name: str,
        value: Any = None,
        data_type: Optional[DataType] = None,
        direction: ParameterDirection = ParameterDirection.IN,
    ) -> Parameter:
        """Create and append a parameter.

        Raises:
            DuplicateParameterError: If the name is already present.

        Returns:
            The new parameter.
        """
        return self.append(Parameter(name, value, data_type, direction))

    def append(self, parameter: Parameter) -> Parameter:
        if parameter.key in self:
            raise DuplicateParameterError([parameter.name])
        self._parameters.append(parameter)
        return parameter

    def merge(self, other: "Optional[Iterable[Parameter]]") -> "ParameterSet":
        """Return a new set holding this set's parameters followed by ``other``'s.

        Raises:
            DuplicateParameterError: If any name appears in both sets (case-insensitive).
        """
        others = list(other or ())
        collisions = [p.name for p in others if p.key in self]
        if collisions:
            raise DuplicateParameterError(collisions)
        return ParameterSet([*self._parameters, *others])

    def get(self, name: str, default: Any = None) -> Any:
        """Return the value of parameter ``name`` or ``default``."""
        parameter = self.find(name)
        return default if parameter is None else parameter.value

    def find(self, name: str) -> Optional[Parameter]:
        key = name.lstrip(_NAME_PREFIXES).lower()
        return next((p for p in self._parameters if p.key == key), None)

    def outputs(self) -> "ParameterSet":
        """Parameters whose direction returns a value."""
        return ParameterSet(p for p in self._parameters if p.direction.is_output)

    @property
    def names(self) -> "list[str]":
        return [p.name for p in self._parameters]

    @property
    def values(self) -> "list[Any]":
        return [p.value for p in self._parameters]

    def to_dict(self) -> "dict[str, Any]":
        return {p.name: p.value for p in self._parameters}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.find(name) is not None

    def __iter__(self) -> Iterator[Parameter]:
        return iter(self._parameters)

    def __len__(self) -> int:
        return len(self._parameters)

    def __bool__(self) -> bool:
        return bool(self._parameters)

    @overload
    def __getitem__(self, key: int) -> Parameter: ...
    @overload
    def __getitem__(self, key: str) -> Parameter: ...
    def __getitem__(self, key: "Union[int, str]") -> Parameter:
        if isinstance(key, int):
            return self._parameters[key]
        parameter = self.find(key)
        if parameter is None:
            raise KeyError(key)
        return parameter

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterSet):
            return NotImplemented
        return self._parameters == other._parameters

    def __repr__(self) -> str:
        return f"ParameterSet({self._parameters!r})"


def build_in_clause(field_name: str, values: "Sequence[Any]") -> "tuple[str, ParameterSet]":
    """Build ``field IN (:fieldIn0, :fieldIn1, ...)`` with one parameter per value.

    Characters that cannot appear in a placeholder name (for example the dot in
    ``c.Id``) are replaced by ``_`` in the generated names. Collisions with other
    parameters of the statement surface when the sets are merged.

    Args:
        field_name: Column expression to test.
        values: Values for the list, bound in order.

    Raises:
        SQLBuilderError: If ``values`` is empty.

    Returns:
        The SQL fragment and its parameters.
    """
    if not values:
        msg = f"IN clause for {field_name!r} needs at least one value"
        raise SQLBuilderError(msg)
    prefix = _INVALID_NAME_CHARS.sub("_", field_name)
    parameters = ParameterSet(Parameter(f"{prefix}In{index}", value) for index, value in enumerate(values))
    placeholders = ", ".join(p.placeholder for p in parameters)
    return f"{field_name} IN ({placeholders})", parameters
