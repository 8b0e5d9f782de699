"""Workspace package model for monotrack."""

from pathlib import Path
from typing import Optional
from pydantic import Field, field_validator
from .base import MonotrackBaseModel
from ..utils.name_validator import validate_package_name


class Package(MonotrackBaseModel):
    """A package of the monorepo with its on-disk location."""

    name: str = Field(description="Declared package name")
    path: Path = Field(description="Package directory as declared (relative to root or absolute)")
    canonical_path: Path = Field(description="Absolute package directory, symlinks resolved")
    version: Optional[str] = Field(default=None, description="Declared package version")
    manifest: Optional[Path] = Field(
        default=None, description="Manifest file the package was read from"
    )

    @field_validator("name")
    @classmethod
    def validate_name_field(cls, v: str) -> str:
        """Validate package name meets naming requirements."""
        validate_package_name(v)
        return v
