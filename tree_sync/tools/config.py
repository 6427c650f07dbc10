"""
Interface to configuration as persisted in .yaml file.
"""
from __future__ import annotations

from logging import Logger
from typing import Any

from pydantic import BaseModel, field_validator

from ..core import MemoryStore, RestStore, Session
from ..core.utils import join_path, split_path
from .yaml_model import BaseYamlModel

__all__ = [
    "Config",
    "InstanceConfig",
]


class InstanceConfig(BaseModel):
    """
    Encapsulates info for a store instance.
    """

    url: str
    """Base URL of the store"""

    token: str | None = None
    """Auth token, if required by the store"""

    root_path: str = ""
    """Location within the store which schemas and patches apply to"""

    debug: bool = False
    """Log registrations, events and writes"""

    @field_validator("url")
    def validate_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"url must be http or https: '{value}'")
        return value.rstrip("/")

    @field_validator("root_path", mode="before")
    def validate_root_path(cls, value: Any) -> Any:
        if not isinstance(value, str):
            # let pydantic handle type error
            return value
        return join_path(split_path(value))

    def create_store(self, *, logger: Logger) -> RestStore:
        """
        Get store connection from this instance's fields.
        """
        return RestStore(
            self.url,
            token=self.token,
            stream_path=self.root_path,
            logger=logger,
        )

    def create_session(
        self, store: RestStore | MemoryStore, *, logger: Logger
    ) -> Session:
        """
        Get session rooted at this instance's root path.
        """
        return Session(
            store.ref(self.root_path), debug=self.debug, logger=logger
        )


class Config(BaseYamlModel):
    """
    Encapsulates configuration for use in tools.
    """

    instances: dict[str, InstanceConfig]
    """
    Mapping of instance names to configs.
    """
