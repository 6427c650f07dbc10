"""
Interface to create models with associated .yaml storage, and to load
schema and patch documents.
"""

import json
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import BaseModel

__all__ = [
    "BaseYamlModel",
    "load_document",
]


class BaseYamlModel(BaseModel):
    """
    Base pydantic model with additional functionality to load to and dump from
    .yaml file.
    """

    @classmethod
    def load_yaml(cls, file: Path) -> Self:
        """
        Load model from .yaml file.
        """
        model = load_document(file)

        if not isinstance(model, dict):
            raise ValueError(f"Invalid yaml contents: {model}")

        return cls(**model)

    def dump_yaml(self, file: Path):
        """
        Dump model to .yaml file.
        """
        model = self.model_dump(by_alias=True, exclude_none=True)
        model_yaml = yaml.safe_dump(
            model, default_flow_style=False, sort_keys=False
        )
        file.write_text(model_yaml)


def load_document(file: Path) -> Any:
    """
    Load a .json file, or a .yaml file for any other extension.
    """
    if not file.is_file():
        raise ValueError(f"file does not exist: '{file}'")

    with file.open() as fh:
        if file.suffix == ".json":
            return json.load(fh)
        return yaml.safe_load(fh)
