"""Cascading option providers for select fields.

A provider holds a table of rows, one (value, label) pair per field. Field
``j`` only offers rows whose earlier fields match the current selection, so
a set of selects can narrow each other down (country -> region -> city).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from typing import Any

logger = logging.getLogger(__name__)

NON_WORD_CHARACTERS = " \t\n\f\r\\||!\"£$%&/()='?^[]+*@#<>,;.:-_"
_TOKEN_SEPARATORS = re.compile("[" + re.escape(NON_WORD_CHARACTERS) + "]+")


def _trim_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def match_label(label: str | None, search: str | None) -> bool:
    """True if any word of ``label`` starts with ``search``, ignoring case."""
    if not search:
        return True
    if label is None:
        return False
    search = search.lower()
    return any(
        token.startswith(search) for token in _TOKEN_SEPARATORS.split(label.lower()) if token
    )


class DefaultOptionProvider:
    """Option provider over an in-memory row table.

    Mutators only mark the provider dirty; options and the validity of the
    current selection are recomputed on the next read, in a single pass over
    the rows. When two rows share a value for a field, the option keeps its
    first position and takes the label of the last row.
    """

    def __init__(
        self,
        name: str,
        field_count: int,
        values_array: Sequence[Sequence[Any]],
        labels_array: Sequence[Sequence[str | None]],
    ) -> None:
        if field_count < 1:
            msg = f"field_count must be positive, got {field_count}"
            raise ValueError(msg)
        if len(values_array) != len(labels_array):
            msg = (
                f"Option provider {name!r} has {len(values_array)} value rows "
                f"but {len(labels_array)} label rows"
            )
            raise ValueError(msg)
        for i, (value_row, label_row) in enumerate(zip(values_array, labels_array, strict=True)):
            if len(value_row) != field_count or len(label_row) != field_count:
                msg = f"Row {i} of option provider {name!r} does not have {field_count} fields"
                raise ValueError(msg)
        self.name = name
        self.field_count = field_count
        self._values_array: list[list[Any]] = [list(row) for row in values_array]
        self._labels_array: list[list[str | None]] = [list(row) for row in labels_array]
        self._values: list[Any] = [None] * field_count
        self._label_search: list[str | None] = [None] * field_count
        self._options: list[dict[Any, str | None]] = [{} for _ in range(field_count)]
        self._needs_validation = True

    @classmethod
    def create(
        cls, name: str, values: Sequence[Any], labels: Sequence[str | None]
    ) -> DefaultOptionProvider:
        """Single-field provider from parallel value and label lists."""
        return cls(name, 1, [[v] for v in values], [[label] for label in labels])

    @classmethod
    def from_objects(
        cls,
        name: str,
        objects: Iterable[Any],
        *attribute_names: str,
        text_format: Callable[[Any], str] | None = None,
    ) -> DefaultOptionProvider:
        """One row per object, one field per attribute.

        Labels are the attribute values as text, or ``text_format(obj)`` for
        every field when a formatter is given.
        """
        if not attribute_names:
            msg = "At least one attribute name is required"
            raise ValueError(msg)
        values_array: list[list[Any]] = []
        labels_array: list[list[str | None]] = []
        for obj in objects:
            short_name = text_format(obj) if text_format is not None else None
            values: list[Any] = []
            labels: list[str | None] = []
            for attribute in attribute_names:
                try:
                    value = getattr(obj, attribute)
                except AttributeError as exc:
                    logger.warning("Could not access property: %s", attribute)
                    msg = f"Could not access property: {attribute}"
                    raise ValueError(msg) from exc
                values.append(value)
                if text_format is None:
                    labels.append(None if value is None else str(value))
                else:
                    labels.append(short_name)
            values_array.append(values)
            labels_array.append(labels)
        return cls(name, len(attribute_names), values_array, labels_array)

    def append_row(self, values: Sequence[Any], labels: Sequence[str | None]) -> None:
        if len(values) != self.field_count or len(labels) != self.field_count:
            msg = f"Row does not have {self.field_count} fields"
            raise ValueError(msg)
        self._values_array.append(list(values))
        self._labels_array.append(list(labels))
        self._needs_validation = True

    @property
    def row_count(self) -> int:
        return len(self._values_array)

    def set_value(self, index: int, value: Any) -> None:
        self._values[index] = value
        self._needs_validation = True

    def get_value(self, index: int) -> Any:
        self._validate()
        return self._values[index]

    def set_label_search(self, index: int, search: str | None) -> None:
        self._label_search[index] = _trim_to_none(search)
        self._needs_validation = True

    def get_label_search(self, index: int) -> str | None:
        return self._label_search[index]

    def get_options(self, index: int) -> dict[Any, str | None]:
        """Value -> label options currently offered for field ``index``, in row order."""
        self._validate()
        return self._options[index]

    def _validate(self) -> None:
        if not self._needs_validation:
            return
        self._needs_validation = False
        for options in self._options:
            options.clear()

        # Only a prefix of the fields may be set: everything after the first
        # None is cleared.
        found_none = False
        for j in range(self.field_count):
            if found_none:
                self._values[j] = None
            elif self._values[j] is None:
                found_none = True

        max_matching_index = -1
        for value_row, label_row in zip(self._values_array, self._labels_array, strict=True):
            matching = True
            for j in range(self.field_count):
                cell_value = value_row[j]
                cell_label = label_row[j]
                if matching and match_label(cell_label, self._label_search[j]):
                    self._options[j][cell_value] = cell_label
                value = self._values[j]
                if matching and value is not None and value == cell_value:
                    max_matching_index = max(max_matching_index, j)
                else:
                    matching = False

        for j in range(max_matching_index + 1, self.field_count):
            self._values[j] = None
