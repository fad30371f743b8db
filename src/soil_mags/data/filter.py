# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
import warnings
from typing import Any, Callable, Dict, List, Mapping

# Third-Party Imports
import pandas as pd

# Local Imports
from soil_mags import constants
from soil_mags.data.join import field_values
from soil_mags.utils.errors import EmptyResultWarning

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('soil_mags')

Mask = Callable[[pd.DataFrame], pd.Series]

# ==================================== PREDICATES ==================================== #

class Predicate:
    """
    A pure per-record boolean condition over a record set.

    Predicates compose with `&` (logical AND). Calling a predicate on a
    DataFrame returns a boolean Series aligned with its index.
    """

    def __init__(self, mask: Mask, description: str) -> None:
        self._mask = mask
        self.description = description

    def __call__(self, records: pd.DataFrame) -> pd.Series:
        return self._mask(records).fillna(False).astype(bool)

    def __and__(self, other: "Predicate") -> "Predicate":
        return Predicate(
            lambda df: self(df) & other(df),
            f"({self.description}) AND ({other.description})"
        )

    def __repr__(self) -> str:
        return f"Predicate({self.description})"


def _field_values(records: pd.DataFrame, field: str) -> pd.Series:
    """Values of `field`, source-qualified columns coalesced; all absent if missing."""
    try:
        return field_values(records, field)
    except KeyError:
        logger.warning(f"Field '{field}' not in record set; treating as absent")
        return pd.Series(constants.ABSENT, index=records.index, dtype=object)


def by_field(field: str, substring: str) -> Predicate:
    """True where `field` is present and contains `substring` (case-sensitive)."""
    def mask(df: pd.DataFrame) -> pd.Series:
        values = _field_values(df, field)
        present = values.notna()
        contains = values.where(present, '').astype(str).str.contains(
            substring, regex=False
        )
        return present & contains

    return Predicate(mask, f"{field} contains {substring!r}")


def by_rank(rank: str, substring: str) -> Predicate:
    """Substring match on a taxonomic rank column (e.g. 'class')."""
    if rank not in constants.RANKS:
        raise ValueError(f"Unknown rank '{rank}', expected one of {constants.RANKS}")
    return by_field(rank, substring)


def by_site(substring: str, field: str = 'site') -> Predicate:
    """Substring match on the site name."""
    return by_field(field, substring)


def by_assembly_type(assembly_type: str) -> Predicate:
    """Exact match on the assembly type ('Individual' or 'Combined')."""
    def mask(df: pd.DataFrame) -> pd.Series:
        values = _field_values(df, 'assembly_type')
        return values.notna() & (values == assembly_type)

    return Predicate(mask, f"assembly_type == {assembly_type!r}")

# ==================================== FUNCTIONS ===================================== #

def filter_records(records: pd.DataFrame, *predicates: Predicate) -> pd.DataFrame:
    """
    Select the records matching every predicate.

    The source is left untouched; a new DataFrame with the original index is
    returned. An empty selection is valid and only emits `EmptyResultWarning`.

    Args:
        records:    Record set to filter.
        predicates: Predicates combined with logical AND.

    Returns:
        Filtered copy of `records`.
    """
    keep = pd.Series(True, index=records.index)
    for predicate in predicates:
        keep &= predicate(records)

    subset = records.loc[keep].copy()
    if subset.empty:
        description = " AND ".join(p.description for p in predicates) or "no predicates"
        warnings.warn(
            f"No records match {description}", EmptyResultWarning, stacklevel=2
        )
    logger.debug(f"Filter kept {len(subset)}/{len(records)} records")
    return subset


def predicates_from_spec(spec: Mapping[str, Any]) -> List[Predicate]:
    """
    Build predicates from a subset specification.

    Keys are rank names, 'site', 'assembly_type' or any other field name;
    values are the substring (or exact type) to match.
    """
    predicates = []
    for field, value in spec.items():
        if field in constants.RANKS:
            predicates.append(by_rank(field, str(value)))
        elif field == 'site':
            predicates.append(by_site(str(value)))
        elif field == 'assembly_type':
            predicates.append(by_assembly_type(str(value)))
        else:
            predicates.append(by_field(field, str(value)))
    return predicates


def select_subsets(
    records: pd.DataFrame,
    subset_specs: Mapping[str, Mapping[str, Any]]
) -> Dict[str, pd.DataFrame]:
    """Build each named subset independently from the same record set."""
    subsets = {}
    for name, spec in subset_specs.items():
        subsets[name] = filter_records(records, *predicates_from_spec(spec or {}))
        logger.info(f"Subset '{name}': {len(subsets[name])} records")
    return subsets
