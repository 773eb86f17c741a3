"""Plugin contract for supplying topics and data to a search host."""

from topicsource.exceptions import (
    ConfigError,
    FetchError,
    FetchErrorKind,
    InitializationError,
    RegistryError,
    TopicSourceError,
)
from topicsource.models import Data, NewQuestionInput, Topic
from topicsource.sources import DataSource

__all__ = [
    "ConfigError",
    "Data",
    "DataSource",
    "FetchError",
    "FetchErrorKind",
    "InitializationError",
    "NewQuestionInput",
    "RegistryError",
    "Topic",
    "TopicSourceError",
]
