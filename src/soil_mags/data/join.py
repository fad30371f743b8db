# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
import warnings
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

# Third-Party Imports
import pandas as pd

# Local Imports
from soil_mags import constants
from soil_mags.utils.errors import EmptyResultWarning

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('soil_mags')

# ================================= DEFAULT VALUES =================================== #

# Join key column(s) of each source; never renamed
JOIN_KEYS: Dict[str, Tuple[str, ...]] = {
    constants.SOURCE_ASSEMBLY: (constants.JOIN_KEY,),
    constants.SOURCE_METAGENOME: (constants.JOIN_KEY,),
    constants.SOURCE_CHEMISTRY: (constants.CHEMISTRY_JOIN_KEY,),
}

# Suffixes for any overlap left between two frames passed to `outer_join`
OVERLAP_SUFFIXES: Tuple[str, str] = ('.left', '.right')

# ==================================== FUNCTIONS ===================================== #

def qualified_name(column: str, source: str) -> str:
    """Disambiguated name of `column` coming from `source`, e.g. 'site.assembly'."""
    return f"{column}.{source}"


def provenance_column(source: str) -> str:
    return f"in_{source}"


def merge_schemas(
    frames: Mapping[str, pd.DataFrame],
    keys: Mapping[str, Iterable[str]] = JOIN_KEYS
) -> Tuple[Dict[str, pd.DataFrame], Dict[str, Dict[str, str]]]:
    """
    Disambiguate same-named columns across sources before joining.

    A column of a source is renamed to '<column>.<source>' when it is not one
    of that source's join keys and any other source has a column of the same
    name. Both (or all) sides are renamed, so no source silently wins.

    Args:
        frames: Mapping of source name to its record set.
        keys:   Mapping of source name to its join key column(s).

    Returns:
        Tuple of (renamed frames, {source: {old column: new column}}).
    """
    columns = {source: set(df.columns) for source, df in frames.items()}
    renamed: Dict[str, pd.DataFrame] = {}
    rename_map: Dict[str, Dict[str, str]] = {}

    for source, df in frames.items():
        source_keys = set(keys.get(source, ()))
        others = set().union(*(
            cols for other, cols in columns.items() if other != source
        ))
        mapping = {
            col: qualified_name(col, source)
            for col in df.columns
            if col not in source_keys and col in others
        }
        renamed[source] = df.rename(columns=mapping)
        rename_map[source] = mapping
        if mapping:
            logger.debug(f"Disambiguated {source} columns: {mapping}")

    return renamed, rename_map


def outer_join(
    left: pd.DataFrame,
    right: pd.DataFrame,
    left_on: str,
    right_on: Optional[str] = None
) -> pd.DataFrame:
    """
    Full outer join with exact, case-sensitive key equality.

    Duplicate keys produce the cross product of their rows. Rows whose key is
    absent never match anything and are kept unmatched.

    Args:
        left:     Left record set.
        right:    Right record set.
        left_on:  Key column in `left`.
        right_on: Key column in `right`, defaults to `left_on`.

    Returns:
        New DataFrame with a fresh RangeIndex.
    """
    right_on = right_on or left_on
    left_null = left[left_on].isna()
    right_null = right[right_on].isna()

    merged = pd.merge(
        left.loc[~left_null],
        right.loc[~right_null],
        how='outer',
        left_on=left_on,
        right_on=right_on,
        suffixes=OVERLAP_SUFFIXES,
    )
    unmatched = [df for df in (left.loc[left_null], right.loc[right_null]) if not df.empty]
    if not unmatched:
        return merged.reset_index(drop=True)

    columns = list(merged.columns)
    parts = [merged] if not merged.empty else []
    return pd.concat(parts + unmatched, ignore_index=True).reindex(columns=columns)


def resolve_column(
    df: pd.DataFrame,
    name: str,
    sources: Sequence[str] = constants.SOURCES
) -> str:
    """
    Find `name` in a (possibly combined) record set.

    Returns `name` itself when present, otherwise the first qualified
    '<name>.<source>' column in `sources` order.

    Raises:
        KeyError: If neither form is present.
    """
    if name in df.columns:
        return name
    for source in sources:
        qualified = qualified_name(name, source)
        if qualified in df.columns:
            return qualified
    raise KeyError(f"Column {name!r} not found in record set")


def field_values(
    df: pd.DataFrame,
    name: str,
    sources: Sequence[str] = constants.SOURCES
) -> pd.Series:
    """
    Values of field `name` with every absent value as None.

    When `name` itself is not a column, its qualified '<name>.<source>'
    columns are coalesced: each row takes the first present value in
    `sources` order, so a metagenome-only row keeps its metagenome site.

    Raises:
        KeyError: If neither form is present.
    """
    if name in df.columns:
        values = df[name]
    else:
        qualified = [
            qualified_name(name, source) for source in sources
            if qualified_name(name, source) in df.columns
        ]
        if not qualified:
            raise KeyError(f"Column {name!r} not found in record set")
        values = df[qualified[0]].astype(object)
        for column in qualified[1:]:
            values = values.where(values.notna(), df[column].astype(object))
    return pd.Series(
        [constants.ABSENT if pd.isna(value) else value for value in values],
        index=df.index, dtype=object, name=name
    )


def join(
    assembly: pd.DataFrame,
    metagenome: pd.DataFrame,
    chemistry: pd.DataFrame
) -> pd.DataFrame:
    """
    Combine the three normalized record sets into one denormalized record set.

    assembly ⟗ metagenome on 'sample_name', then ⟗ chemistry on
    'sample_name' == 'genomics_sample_id'. Shared non-key columns are renamed
    by `merge_schemas`. Boolean 'in_<source>' columns record which sources
    contributed to each row.

    Args:
        assembly:   Normalized genome assembly records.
        metagenome: Normalized metagenome records.
        chemistry:  Normalized soil chemistry records.

    Returns:
        Combined record set.
    """
    frames = {
        constants.SOURCE_ASSEMBLY: assembly,
        constants.SOURCE_METAGENOME: metagenome,
        constants.SOURCE_CHEMISTRY: chemistry,
    }
    frames = {
        source: df.assign(**{provenance_column(source): True})
        for source, df in frames.items()
    }
    renamed, rename_map = merge_schemas(frames)
    n_renamed = sum(len(mapping) for mapping in rename_map.values())
    if n_renamed:
        logger.info(f"Disambiguated {n_renamed} shared columns by source suffix")

    combined = outer_join(
        renamed[constants.SOURCE_ASSEMBLY],
        renamed[constants.SOURCE_METAGENOME],
        constants.JOIN_KEY
    )
    combined = outer_join(
        combined,
        renamed[constants.SOURCE_CHEMISTRY],
        constants.JOIN_KEY,
        constants.CHEMISTRY_JOIN_KEY
    )
    for source in frames:
        flag = provenance_column(source)
        combined[flag] = combined[flag].eq(True)

    if combined.empty:
        warnings.warn("Join produced no records", EmptyResultWarning, stacklevel=2)
    logger.info(
        f"Combined {len(assembly)} assembly, {len(metagenome)} metagenome and "
        f"{len(chemistry)} chemistry records into {len(combined)} rows"
    )
    return combined
