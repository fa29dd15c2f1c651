from __future__ import annotations

import array
import os
from os import PathLike
from typing import Any, Generic, TypeVar, overload

from .types import T

# Helpers


@overload
def fsdecode_if_pathlike(path: PathLike[Any]) -> str: ...
@overload
def fsdecode_if_pathlike(path: T) -> T: ...
def fsdecode_if_pathlike(path: Any) -> Any:
    if isinstance(path, PathLike):
        return os.fsdecode(path)  # str

    return path


def split_shapefile_path(path: str | PathLike[Any]) -> str:
    """Returns the shapefile base name, dropping a trailing .shp/.shx
    (either case). Other extensions are kept, so "roads.v2" stays intact."""
    path = fsdecode_if_pathlike(path)
    base, ext = os.path.splitext(path)
    if ext.lower() in (".shp", ".shx"):
        return base
    return path


def constituent_path(base: str, ext: str) -> str:
    """Returns base.ext, or base.EXT if only the upper case file exists."""
    lower = f"{base}.{ext.lower()}"
    if os.path.exists(lower):
        return lower
    upper = f"{base}.{ext.upper()}"
    if os.path.exists(upper):
        return upper
    return lower


# Begin

ARR_TYPE = TypeVar("ARR_TYPE", int, float)


# In Python 3.12 we can do:
# class _Array(array.array[ARR_TYPE], Generic[ARR_TYPE]):
class _Array(array.array, Generic[ARR_TYPE]):  # type: ignore[type-arg]
    """Converts python tuples to lists of the appropriate type.
    Used as scratch space for position arrays while reading records."""

    def __repr__(self) -> str:
        return str(self.tolist())
