# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Union

# Third-Party Imports
import pandas as pd

# Local Imports
from soil_mags import constants
from soil_mags.config import DEFAULT_CONFIG
from soil_mags.taxonomy import (
    DEFAULT_RANK_SCHEMA, SampleNameSchema, add_rank_columns, add_sample_name_columns,
    normalize_chemistry_key
)
from soil_mags.utils.errors import SchemaMismatchError
from soil_mags.utils.progress import format_task_desc, get_progress_bar

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('soil_mags')

Location = Union[str, Path]

# ===================================== READERS ====================================== #

class TableReader(Protocol):
    """Anything that can turn a source location into a DataFrame of raw strings."""

    def read(self, location: Location, sep: str) -> pd.DataFrame:
        ...


class FileTableReader:
    """
    Reads delimited text files from the local filesystem.

    Every column is read as `str`; empty cells become NaN. A zero-byte file
    yields an empty DataFrame with no columns.
    """

    def __init__(self, base_dir: Optional[Location] = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else None

    def _resolve(self, location: Location) -> Path:
        path = Path(location)
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path
        return path

    def read(self, location: Location, sep: str = ',') -> pd.DataFrame:
        path = self._resolve(location)
        if not path.exists():
            raise FileNotFoundError(f"Metadata file not found: {path}")
        try:
            df = pd.read_csv(path, sep=sep, dtype=str)
        except pd.errors.EmptyDataError:
            logger.debug(f"Empty metadata file: {path}")
            return pd.DataFrame()
        df.columns = df.columns.str.strip()
        return df.loc[:, ~df.columns.str.startswith('Unnamed')]


@dataclass(frozen=True)
class SourceTables:
    """The three normalized record sets."""
    assembly: pd.DataFrame
    metagenome: pd.DataFrame
    chemistry: pd.DataFrame

# ===================================== HELPERS ====================================== #

def sample_name_schema(config: Optional[Dict] = None) -> SampleNameSchema:
    """Build the sample name schema from the 'identifiers' config section."""
    ids = (config or DEFAULT_CONFIG).get("identifiers", {})
    return SampleNameSchema(
        boilerplate=ids.get("boilerplate", constants.SAMPLE_NAME_BOILERPLATE),
        site_separator=ids.get("site_separator", constants.SITE_SEPARATOR),
        suffix_pattern=ids.get("sample_suffix_pattern", constants.SAMPLE_NAME_SUFFIX_PATTERN),
    )


def _identifier(config: Optional[Dict], key: str, default: str) -> str:
    return (config or DEFAULT_CONFIG).get("identifiers", {}).get(key, default)


def _drop_columns(config: Optional[Dict], source: str, default: List[str]) -> List[str]:
    return (config or DEFAULT_CONFIG).get("drop_columns", {}).get(source, default)


def _empty_records(columns: Iterable[str]) -> pd.DataFrame:
    return pd.DataFrame({col: pd.Series(dtype=object) for col in columns})


def _prepare_columns(
    df: pd.DataFrame,
    source: str,
    location: Location,
    column_map: Mapping[str, str],
    required: Iterable[str],
    drop: Iterable[str]
) -> pd.DataFrame:
    """Drop irrelevant columns, rename to normalized names, check required columns."""
    df = df.drop(columns=[col for col in drop if col in df.columns])
    df = df.rename(columns={old: new for old, new in column_map.items() if old in df.columns})

    missing = set(required) - set(df.columns)
    if missing:
        raise SchemaMismatchError(source, missing, str(location))
    return df


def _coerce_numeric(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    df = df.copy()
    for col in columns:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors='coerce')
    return df

# ===================================== LOADERS ====================================== #

def load_assembly_metadata(
    location: Location,
    reader: Optional[TableReader] = None,
    config: Optional[Dict] = None
) -> pd.DataFrame:
    """
    Load the comma-delimited genome assembly (MAG) metadata.

    Args:
        location: Source location passed to the reader.
        reader:   Table reader, defaults to `FileTableReader`.
        config:   Configuration dictionary.

    Returns:
        One row per genome bin with decomposed sample name and taxonomy.

    Raises:
        SchemaMismatchError:      If a required column is missing.
        MalformedIdentifierError: If a genome name has no site/sample separator.
    """
    reader = reader or FileTableReader()
    source = constants.SOURCE_ASSEMBLY
    schema = sample_name_schema(config)

    raw = reader.read(location, sep=',')
    if raw.columns.empty:
        return _empty_records(
            constants.ASSEMBLY_REQUIRED_COLUMNS + list(schema.columns)
            + ['assembly_type'] + list(DEFAULT_RANK_SCHEMA.ranks)
        )

    df = _prepare_columns(
        raw, source, location,
        column_map=constants.ASSEMBLY_COLUMN_MAP,
        required=constants.ASSEMBLY_REQUIRED_COLUMNS,
        drop=_drop_columns(config, source, constants.ASSEMBLY_DROP_COLUMNS)
    )
    df = add_sample_name_columns(
        df, 'genome_name', schema, source,
        combined_label=_identifier(
            config, "combined_assembly_label", constants.COMBINED_ASSEMBLY_LABEL
        )
    )
    df = add_rank_columns(df, 'taxonomy_lineage', DEFAULT_RANK_SCHEMA)
    df = _coerce_numeric(df, constants.ASSEMBLY_NUMERIC_COLUMNS)

    logger.info(f"Loaded {len(df)} {source} records from {location}")
    return df.reset_index(drop=True)


def load_metagenome_metadata(
    location: Location,
    reader: Optional[TableReader] = None,
    config: Optional[Dict] = None
) -> pd.DataFrame:
    """
    Load the tab-delimited metagenome annotation metadata.

    Rows whose genome name contains a configured noise pattern (re-annotation
    duplicates, unrelated plots) are excluded before names are decomposed.
    """
    reader = reader or FileTableReader()
    source = constants.SOURCE_METAGENOME
    schema = sample_name_schema(config)
    noise_patterns = (config or DEFAULT_CONFIG).get("metagenome", {}).get(
        "noise_patterns", constants.METAGENOME_NOISE_PATTERNS
    )

    raw = reader.read(location, sep='\t')
    if raw.columns.empty:
        return _empty_records(constants.METAGENOME_REQUIRED_COLUMNS + list(schema.columns))

    df = _prepare_columns(
        raw, source, location,
        column_map=constants.METAGENOME_COLUMN_MAP,
        required=constants.METAGENOME_REQUIRED_COLUMNS,
        drop=_drop_columns(config, source, constants.METAGENOME_DROP_COLUMNS)
    )

    noise = pd.Series(False, index=df.index)
    for pattern in noise_patterns:
        noise |= df['genome_name'].str.contains(pattern, regex=False, na=False)
    if noise.any():
        logger.info(f"Excluded {int(noise.sum())} noise {source} records")
    df = df.loc[~noise]

    df = add_sample_name_columns(df, 'genome_name', schema, source)
    df = _coerce_numeric(df, constants.METAGENOME_NUMERIC_COLUMNS)

    logger.info(f"Loaded {len(df)} {source} records from {location}")
    return df.reset_index(drop=True)


def load_chemistry_metadata(
    location: Location,
    reader: Optional[TableReader] = None,
    config: Optional[Dict] = None
) -> pd.DataFrame:
    """Load the tab-delimited soil chemistry metadata and normalize its join key."""
    reader = reader or FileTableReader()
    source = constants.SOURCE_CHEMISTRY
    suffix = _identifier(config, "chemistry_key_suffix", constants.CHEMISTRY_KEY_SUFFIX)

    raw = reader.read(location, sep='\t')
    if raw.columns.empty:
        return _empty_records(constants.CHEMISTRY_REQUIRED_COLUMNS)

    df = _prepare_columns(
        raw, source, location,
        column_map=constants.CHEMISTRY_COLUMN_MAP,
        required=constants.CHEMISTRY_REQUIRED_COLUMNS,
        drop=_drop_columns(config, source, constants.CHEMISTRY_DROP_COLUMNS)
    )
    df = df.copy()
    df[constants.CHEMISTRY_JOIN_KEY] = df[constants.CHEMISTRY_JOIN_KEY].map(
        lambda key: normalize_chemistry_key(key, suffix)
    ).astype(object)
    df = _coerce_numeric(df, constants.CHEMISTRY_NUMERIC_COLUMNS)

    logger.info(f"Loaded {len(df)} {source} records from {location}")
    return df.reset_index(drop=True)


LOADERS: Dict[str, Callable[..., pd.DataFrame]] = {
    constants.SOURCE_ASSEMBLY: load_assembly_metadata,
    constants.SOURCE_METAGENOME: load_metagenome_metadata,
    constants.SOURCE_CHEMISTRY: load_chemistry_metadata,
}


def load_sources(
    locations: Mapping[str, Location],
    reader: Optional[TableReader] = None,
    config: Optional[Dict] = None,
    concurrent: bool = True,
    verbose: bool = False
) -> SourceTables:
    """
    Load the assembly, metagenome and chemistry sources.

    The three loads are independent and may run on a thread pool. The first
    failure is re-raised unchanged and no partial result is returned.

    Args:
        locations:  Mapping of source name ('assembly', 'metagenome',
                    'chemistry') to location.
        reader:     Table reader shared by all loaders.
        config:     Configuration dictionary.
        concurrent: Load the sources on a thread pool.
        verbose:    Log each load instead of showing a progress bar.

    Returns:
        SourceTables with the three normalized record sets.
    """
    reader = reader or FileTableReader()
    missing = [source for source in constants.SOURCES if source not in locations]
    if missing:
        raise KeyError(f"No location given for sources: {missing}")

    tables: Dict[str, pd.DataFrame] = {}

    def _load(source: str) -> pd.DataFrame:
        if verbose:
            logger.info(f"Loading {source} metadata from {locations[source]}")
        return LOADERS[source](locations[source], reader, config)

    with get_progress_bar(transient=True) as progress:
        task = progress.add_task(
            format_task_desc("Loading metadata sources"), total=len(constants.SOURCES)
        )
        if concurrent:
            with ThreadPoolExecutor(max_workers=len(constants.SOURCES)) as executor:
                future_to_source = {
                    executor.submit(_load, source): source for source in constants.SOURCES
                }
                try:
                    for future in as_completed(future_to_source):
                        tables[future_to_source[future]] = future.result()
                        progress.update(task, advance=1)
                except Exception as e:
                    logger.error(
                        f"Loading {future_to_source[future]} metadata failed: {e!r}"
                    )
                    for pending in future_to_source:
                        pending.cancel()
                    raise
        else:
            for source in constants.SOURCES:
                tables[source] = _load(source)
                progress.update(task, advance=1)

    return SourceTables(**tables)
