"""Environment-backed configuration for the edit bridge.

Keys are case-insensitive and read on every call, so tests can change the
environment between lookups. Empty and whitespace-only values count as unset.
A default of None makes a key required.
"""

import logging
import os

_TRUTHY = ("true", "1", "yes", "on")


class HelperConfig:
    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _read(self, key: str, default):
        """Return (raw, None) when the key is set, else (None, default).

        Raises:
            ValueError: If the key is unset and required.
        """
        name = key.upper()
        raw = os.getenv(name)
        if raw is not None and raw.strip():
            return raw.strip(), None
        if default is None:
            raise ValueError(f"Environment variable '{name}' is not set.")
        return None, default

    def get_string_val(self, key: str, default: str | None = None) -> str:
        raw, fallback = self._read(key, default)
        return fallback if raw is None else raw

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read an int, or a float when the value contains a dot.

        Raises:
            ValueError: If the key is unset and required, or not a number.
        """
        raw, fallback = self._read(key, default)
        if raw is None:
            return fallback
        try:
            return float(raw) if "." in raw else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        raw, fallback = self._read(key, default)
        return fallback if raw is None else raw.lower() in _TRUTHY

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a bracketed list such as "[qdrant,memory]" or "[12, 14]".

        Args:
            key (str): Environment variable name.
            default (list | None): Returned when the key is unset.
            separator (str): Element delimiter.
            element_type (type): Callable applied to each stripped element.

        Returns:
            list: The elements, with blank ones dropped.

        Raises:
            ValueError: If the key is unset and required, the brackets are missing,
                or an element cannot be converted.
        """
        raw, fallback = self._read(key, default)
        if raw is None:
            return fallback
        if not (raw.startswith("[") and raw.endswith("]")):
            raise ValueError(
                f"Environment variable '{key.upper()}' must look like "
                f"'[elem1{separator}elem2{separator}...]'. Got: '{raw}'"
            )
        try:
            return [element_type(part.strip()) for part in raw[1:-1].split(separator) if part.strip()]
        except ValueError as e:
            raise ValueError(
                f"Environment variable '{key.upper()}' has an element that is not a {element_type.__name__}: {e}"
            )

    def get_logger(self) -> logging.Logger:
        return self._logger
