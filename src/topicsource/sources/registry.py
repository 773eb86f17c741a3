"""Registry of data source classes.

Sources are registered under their `name` and built from `SourceConfig`
entries. Third-party packages expose their sources through the
``topicsource.sources`` entry point group::

    [project.entry-points."topicsource.sources"]
    mysource = "my_package.source:MySource"
"""

from __future__ import annotations

from importlib.metadata import entry_points
from typing import Dict, List, Optional, Type

from topicsource.config import SourceConfig
from topicsource.exceptions import RegistryError
from topicsource.logging import get_logger
from topicsource.sources.base import DataSource
from topicsource.sources.static_source import StaticDataSource

logger = get_logger(__name__)

ENTRY_POINT_GROUP = "topicsource.sources"


class SourceRegistry:
    """Maps source names to `DataSource` subclasses."""

    def __init__(self) -> None:
        self._classes: Dict[str, Type[DataSource]] = {}

    def register(self, source_class: Type[DataSource], name: Optional[str] = None) -> None:
        """Register a data source class.

        Raises
        ------
        RegistryError
            If another class is already registered under the same name.
        """
        if not isinstance(source_class, type) or not issubclass(source_class, DataSource):
            raise RegistryError(f"{source_class!r} is not a DataSource subclass")
        key = name or source_class.name
        existing = self._classes.get(key)
        if existing is not None and existing is not source_class:
            raise RegistryError(
                f"Data source '{key}' already registered as {existing.__qualname__}"
            )
        self._classes[key] = source_class

    def get(self, name: str) -> Type[DataSource]:
        try:
            return self._classes[name]
        except KeyError:
            available = ", ".join(self.names()) or "none"
            raise RegistryError(f"Unknown data source '{name}'. Available: {available}") from None

    def names(self) -> List[str]:
        return sorted(self._classes)

    def __contains__(self, name: object) -> bool:
        return name in self._classes

    def create(self, config: SourceConfig) -> DataSource:
        """Instantiate the source named by `config.name`."""
        return self.get(config.name).from_config(config)

    def load_entry_points(self, group: str = ENTRY_POINT_GROUP) -> List[str]:
        """Register sources advertised through package entry points.

        Entry points that fail to load are logged and skipped. Returns the
        names that were registered.
        """
        loaded: List[str] = []
        for ep in entry_points(group=group):
            try:
                source_class = ep.load()
                self.register(source_class, name=ep.name)
            except Exception as exc:
                logger.warning("entry_point_skipped", entry_point=ep.name, error=str(exc))
                continue
            loaded.append(ep.name)
        return loaded


def default_registry() -> SourceRegistry:
    """Registry with the built-in sources."""
    registry = SourceRegistry()
    registry.register(StaticDataSource)
    return registry
