"""
PIN Reference Dataset Module.

This module provides the read-only lookup tables the reconciliation engine
checks addresses against:

    - exact table: 6-digit PIN -> district / state / region
    - fallback table: first PIN digit -> acceptable state or authority names
    - district aliases: alternative spellings counted as a district match

A dataset is built once and never modified. The default instance uses the
built-in tables; ``from_yaml`` loads a replacement with the same shape so a
deployment (or a test) can swap in its own tables.

YAML shape:

    entries:
      - {pincode: "560001", region: South, state: Karnataka, district: Bangalore}
    fallback:
      "5": [Karnataka, Telangana]
    aliases:
      Bangalore: [Bengaluru]
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

import yaml

from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.exceptions import ReferenceDataError
from . import tables

logger = get_logger(__name__)


class Region(str, Enum):
    """Macro postal region of India."""

    NORTH = "North"
    SOUTH = "South"
    EAST = "East"
    WEST = "West"


# First PIN digit -> macro region
DIGIT_REGIONS = MappingProxyType({
    '1': Region.NORTH,
    '2': Region.NORTH,
    '3': Region.WEST,
    '4': Region.WEST,
    '5': Region.SOUTH,
    '6': Region.SOUTH,
    '7': Region.EAST,
    '8': Region.EAST,
    '9': Region.EAST,
})

# Digits whose range also covers military postal authorities
MILITARY_DIGITS = frozenset({'9'})


def region_for_digit(digit: str) -> Optional[Region]:
    """Return the macro region for a first PIN digit, or None for '0' and non-digits."""
    return DIGIT_REGIONS.get(digit)


@dataclass(frozen=True)
class ReferenceEntry:
    """
    One row of the exact PIN table.

    Attributes:
        pincode: 6-digit PIN string.
        region: Macro region.
        state: State name as it appears in addresses.
        district: District name as it appears in addresses.
    """
    pincode: str
    region: Region
    state: str
    district: str


class ReferenceDataset:
    """
    Immutable PIN reference tables.

    Example:
        >>> dataset = ReferenceDataset.default()
        >>> dataset.lookup_exact("560001").district
        'Bangalore'
        >>> dataset.lookup_fallback("6")
        ('Tamil Nadu', 'Kerala', 'Puducherry', 'Lakshadweep')
    """

    def __init__(
        self,
        entries: Iterable[ReferenceEntry],
        fallback: Mapping[str, Iterable[str]],
        aliases: Optional[Mapping[str, Iterable[str]]] = None
    ) -> None:
        self._entries: Mapping[str, ReferenceEntry] = MappingProxyType(
            {entry.pincode: entry for entry in entries}
        )
        self._fallback: Mapping[str, Tuple[str, ...]] = MappingProxyType(
            {str(digit): tuple(tokens) for digit, tokens in fallback.items()}
        )
        self._aliases: Mapping[str, Tuple[str, ...]] = MappingProxyType(
            {district: tuple(names) for district, names in (aliases or {}).items()}
        )

    @classmethod
    def default(cls) -> 'ReferenceDataset':
        """Build the dataset from the built-in tables."""
        return cls.from_mapping({
            'entries': [
                {'pincode': pin, 'region': region, 'state': state, 'district': district}
                for pin, region, state, district in tables.EXACT_ENTRIES
            ],
            'fallback': tables.REGION_FALLBACK,
            'aliases': tables.DISTRICT_ALIASES,
        })

    @classmethod
    def from_mapping(cls, data: Dict[str, Any], source: str = "<mapping>") -> 'ReferenceDataset':
        """
        Build a dataset from plain dictionaries.

        Raises:
            ReferenceDataError: If an entry is missing a field, has a PIN that
                is not 6 digits, or names an unknown region.
        """
        if not isinstance(data, dict):
            raise ReferenceDataError(source, "top level must be a mapping")

        entries = []
        for raw in data.get('entries') or []:
            try:
                pincode = str(raw['pincode'])
                entry = ReferenceEntry(
                    pincode=pincode,
                    region=Region(str(raw['region']).capitalize()),
                    state=str(raw['state']),
                    district=str(raw['district']),
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ReferenceDataError(source, f"bad entry {raw!r}: {e}")

            if len(pincode) != 6 or not pincode.isdigit():
                raise ReferenceDataError(source, f"PIN must be 6 digits: {pincode!r}")
            entries.append(entry)

        fallback = data.get('fallback') or {}
        aliases = data.get('aliases') or {}
        if not isinstance(fallback, dict) or not isinstance(aliases, dict):
            raise ReferenceDataError(source, "'fallback' and 'aliases' must be mappings")

        return cls(entries, fallback, aliases)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'ReferenceDataset':
        """
        Load a dataset from a YAML file.

        Raises:
            ReferenceDataError: If the file is missing or malformed.
        """
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ReferenceDataError(str(path), str(e))

        dataset = cls.from_mapping(data, source=str(path))
        logger.info(f"Loaded PIN reference dataset from {path} ({len(dataset)} exact entries)")
        return dataset

    def lookup_exact(self, pin: str) -> Optional[ReferenceEntry]:
        return self._entries.get(pin)

    def lookup_fallback(self, first_digit: str) -> Optional[Tuple[str, ...]]:
        return self._fallback.get(first_digit)

    def district_aliases(self, district: str) -> Tuple[str, ...]:
        return self._aliases.get(district, ())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, pin: object) -> bool:
        return pin in self._entries


def load_configured_dataset() -> ReferenceDataset:
    """Return the dataset named by ``reference.dataset_path``, or the built-in one."""
    from config import get_config

    path = get_config("reference.dataset_path")
    if path:
        return ReferenceDataset.from_yaml(path)
    return ReferenceDataset.default()
