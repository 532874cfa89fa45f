"""
Generic base YAML loader with per-path caching and pydantic validation.

Provides ``BaseYamlLoader[T]``, the base class of ``ConfigLoader`` and
``GroupRegistryLoader``.  Centralises:

- Per-path caching of the parsed YAML document via a class-level dict
  (each subclass gets its own)
- File existence checks
- YAML parsing with dict-type validation
- Pydantic ``model_validate`` dispatch

Subclasses set ``_model_class`` and may override ``_select()`` to pick
the part of the document that holds the model.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, ClassVar, Generic, TypeVar

import yaml
from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


class BaseYamlLoader(Generic[T]):
    """Generic base for YAML loaders with per-path caching.

    The cache holds raw documents, not models, so that one file can be
    validated into several models (e.g. several component sections).
    """

    _model_class: type[T]  # Set by each subclass
    _cache: ClassVar[dict[str, dict[str, Any]]] = {}
    _logger: ClassVar[logging.Logger]

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        cls._cache = {}
        cls._logger = logging.getLogger(cls.__module__)

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the document cache (useful in tests)."""
        cls._cache.clear()

    def load(self, path: Path) -> T:
        """Load and validate a model from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            TypeError: If the YAML root is not a mapping.
            yaml.YAMLError: If the file contains invalid YAML.
            pydantic.ValidationError: If the YAML does not match the schema.
        """
        key = str(path.resolve())
        raw = self._cache.get(key)
        if raw is None:
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {path}")
            with open(path) as fh:
                raw = self._as_mapping(yaml.safe_load(fh), str(path))
            self._cache[key] = raw
        else:
            self._logger.debug("%s cache hit: %s", type(self).__name__, key)

        model = self._model_class.model_validate(self._select(raw))
        self._log_loaded(model, key)
        return model

    def load_from_string(self, yaml_str: str) -> T:
        """Load and validate a model from a YAML string (convenience for testing)."""
        raw = self._as_mapping(yaml.safe_load(yaml_str), "YAML string")
        return self._model_class.model_validate(self._select(raw))

    def _select(self, raw: dict[str, Any]) -> Any:
        """Return the part of the document to validate.  Defaults to all of it."""
        return raw

    def _log_loaded(self, model: T, key: str) -> None:
        self._logger.debug("Loaded %s from %s", type(self).__name__, key)

    @staticmethod
    def _as_mapping(raw: Any, source: str) -> dict[str, Any]:
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise TypeError(
                f"Expected YAML mapping at root of {source}, "
                f"got {type(raw).__name__}"
            )
        return raw
