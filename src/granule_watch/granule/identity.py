"""Filename identity extraction.

Classifies an arriving filename into the file type it represents and the
granule it belongs to, using an ordered, immutable tuple of file type specs
built from configuration.
"""

import logging
import os
import re
from typing import Iterable, Tuple, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from granule_watch.errors import MissingIdGroup, NoPatternMatch

if TYPE_CHECKING:
    from granule_watch.schemas import InternalConfig

__all__ = ['FileTypeSpec', 'IdentityExtractor', 'build_file_type_specs']

logger = logging.getLogger(__name__)


class FileTypeSpec(BaseModel):
    """One file type of a granule: its name, id pattern and whether it is required."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    id_pattern: re.Pattern
    required: bool = True


def build_file_type_specs(config: "InternalConfig") -> Tuple[FileTypeSpec, ...]:
    """Compile the configured file types, preserving their priority order."""
    return tuple(
        FileTypeSpec(name=ft.name, id_pattern=re.compile(ft.pattern), required=ft.required)
        for ft in config.file_types
    )


class IdentityExtractor:
    """Maps filenames to ``(type_name, granule_id)``.

    Specs are tried in priority order. A spec matches when its pattern is found
    anywhere in the base filename (anchor it with ``^`` to key on a prefix);
    the first matching spec names the type.

    The granule id is built from *every* match the pattern produces against
    the filename, concatenating the text captured by the ``id`` group in order
    of occurrence. Some filename schemes spread the id over repeated token
    positions, and a pattern with a single ``id`` group then captures one
    fragment per match::

        pattern  (?:^NPP_GMTCO_|(?<=\\d))(?P<id>_?[A-Z]\\d)
        filename NPP_GMTCO_A1_B2_C3_D4.h5
        matches  "A1", "_B2", "_C3", "_D4"  ->  id "A1_B2_C3_D4"

    Pure: the result depends only on the specs and the input string.
    """

    def __init__(self, specs: Iterable[FileTypeSpec]):
        self.specs = tuple(specs)
        names = [s.name for s in self.specs]
        if len(names) != len(set(names)):
            raise ValueError(f"File type names must be unique: {names}")

    @classmethod
    def from_config(cls, config: "InternalConfig") -> "IdentityExtractor":
        return cls(build_file_type_specs(config))

    @property
    def required_types(self) -> frozenset:
        return frozenset(s.name for s in self.specs if s.required)

    def classify(self, filename: str) -> Tuple[str, str]:
        """Classify a filename.

        Parameters
        ----------
        filename : str
            File name or path. Only the base name is classified.

        Returns
        -------
        tuple of (str, str)
            ``(type_name, granule_id)``

        Raises
        ------
        NoPatternMatch
            If no spec's pattern matches the filename.
        MissingIdGroup
            If the matching pattern captured an empty id.
        """
        name = os.path.basename(filename)

        for spec in self.specs:
            if spec.id_pattern.search(name) is None:
                continue
            fragments = [
                m.group("id") for m in spec.id_pattern.finditer(name)
                if m.group("id")
            ]
            granule_id = "".join(fragments)
            if not granule_id:
                raise MissingIdGroup(name, spec.name)
            return spec.name, granule_id

        raise NoPatternMatch(name)
