# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

# Third-Party Imports
import pandas as pd

# Local Imports
from soil_mags import constants
from soil_mags.utils.errors import MalformedIdentifierError

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('soil_mags')

# ===================================== SCHEMAS ====================================== #

@dataclass(frozen=True)
class RankSchema:
    """
    Declarative description of a prefixed taxonomy lineage.

    Attributes:
        ranks:     Ordered rank names, coarsest first.
        prefixes:  Mapping of rank name to its lineage prefix (e.g. 'd__').
        separator: Separator between ranks in the lineage string.
    """
    ranks: Tuple[str, ...] = constants.RANKS
    prefixes: Dict[str, str] = field(
        default_factory=lambda: dict(constants.RANK_PREFIXES)
    )
    separator: str = constants.LINEAGE_SEPARATOR

    def prefix(self, rank: str) -> str:
        return self.prefixes.get(rank, '')


@dataclass(frozen=True)
class SampleNameSchema:
    """
    Stages used to split a composite genome/sample name.

    "<boilerplate><site> - <site_id>_<subplot>-<layer>-<date><suffix>"
    """
    boilerplate: str = constants.SAMPLE_NAME_BOILERPLATE
    site_separator: str = constants.SITE_SEPARATOR
    suffix_pattern: str = constants.SAMPLE_NAME_SUFFIX_PATTERN
    site_id_separator: str = constants.SITE_ID_SEPARATOR
    field_separator: str = constants.SAMPLE_FIELD_SEPARATOR
    fields: Tuple[str, ...] = constants.SAMPLE_FIELDS

    @property
    def columns(self) -> Tuple[str, ...]:
        return ('site', 'sample_name', 'site_id') + tuple(self.fields)


DEFAULT_RANK_SCHEMA = RankSchema()
DEFAULT_SAMPLE_NAME_SCHEMA = SampleNameSchema()

# ==================================== FUNCTIONS ===================================== #

def is_absent(value) -> bool:
    """True for None/NaN/NA scalars."""
    if isinstance(value, str):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _present_or_absent(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return constants.ABSENT
    return value


def decompose_lineage(
    lineage: Optional[str],
    schema: RankSchema = DEFAULT_RANK_SCHEMA
) -> Dict[str, Optional[str]]:
    """
    Split a prefixed lineage string into its ordered rank fields.

    The first occurrence of each rank prefix is removed wherever it appears,
    then the remainder is split on the separator. Fields are positional:
    missing trailing ranks and empty segments are absent.

    Args:
        lineage: Raw lineage, e.g. 'd__Bacteria;p__Pseudomonadota;...;s__'.
        schema:  Rank schema describing ranks, prefixes and separator.

    Returns:
        Dictionary mapping every rank in the schema to a name or None.
    """
    n_ranks = len(schema.ranks)
    if is_absent(lineage):
        return {rank: constants.ABSENT for rank in schema.ranks}

    stripped = str(lineage)
    for rank in schema.ranks:
        prefix = schema.prefix(rank)
        if prefix:
            stripped = stripped.replace(prefix, '', 1)

    parts = stripped.split(schema.separator)
    if len(parts) > n_ranks:
        logger.debug(
            f"Lineage has {len(parts)} segments, keeping first {n_ranks}: {lineage!r}"
        )
    parts = (parts + [''] * n_ranks)[:n_ranks]
    return {
        rank: _present_or_absent(value) for rank, value in zip(schema.ranks, parts)
    }


def compose_lineage(
    ranks: Dict[str, Optional[str]],
    schema: RankSchema = DEFAULT_RANK_SCHEMA
) -> str:
    """Rebuild a prefixed lineage string from rank fields (absent -> empty)."""
    return schema.separator.join(
        schema.prefix(rank) + ('' if is_absent(ranks.get(rank)) else str(ranks[rank]))
        for rank in schema.ranks
    )


def decompose_sample_name(
    name: Optional[str],
    schema: SampleNameSchema = DEFAULT_SAMPLE_NAME_SCHEMA,
    source: str = constants.SOURCE_ASSEMBLY
) -> Dict[str, Optional[str]]:
    """
    Split a composite genome/sample name into site and sample sub-fields.

    Steps:
    1. Strip the leading boilerplate phrase
    2. Split on the first site separator into site and sample name
    3. Strip the trailing suffix pattern from the sample name
    4. Split the sample name into site ID and the rest
    5. Split the rest into the remaining sample fields

    Only steps 1-2 are mandatory; later steps leave missing fields absent.

    Args:
        name:   Raw composite name.
        schema: Sample name schema.
        source: Source name used in error messages.

    Returns:
        Dictionary with 'site', 'sample_name', 'site_id' and the schema fields.

    Raises:
        MalformedIdentifierError: If the name is empty, has no site separator or
                                  leaves an empty sample name.
    """
    if is_absent(name) or not str(name).strip():
        raise MalformedIdentifierError(source, name, "identifier is empty")

    text = str(name).strip()
    if schema.boilerplate and text.startswith(schema.boilerplate):
        text = text[len(schema.boilerplate):]

    if schema.site_separator not in text:
        raise MalformedIdentifierError(
            source, name, f"no {schema.site_separator!r} separator between site and sample"
        )
    site, sample_name = text.split(schema.site_separator, 1)
    if schema.suffix_pattern:
        sample_name = re.sub(schema.suffix_pattern, '', sample_name.strip())
    sample_name = sample_name.strip()
    if not sample_name:
        raise MalformedIdentifierError(source, name, "sample name is empty")

    site_id, sep, rest = sample_name.partition(schema.site_id_separator)
    n_fields = len(schema.fields)
    values = rest.split(schema.field_separator, n_fields - 1) if sep and rest else []
    values = (values + [''] * n_fields)[:n_fields]

    decomposed = {
        'site': _present_or_absent(site.strip()),
        'sample_name': sample_name,
        'site_id': _present_or_absent(site_id),
    }
    decomposed.update({
        name_: _present_or_absent(value) for name_, value in zip(schema.fields, values)
    })
    return decomposed


def normalize_chemistry_key(
    key: Optional[str],
    suffix: str = constants.CHEMISTRY_KEY_SUFFIX
) -> Optional[str]:
    """Strip the fixed composite-sample suffix from a chemistry sample ID."""
    if is_absent(key):
        return constants.ABSENT
    key = str(key).strip()
    if suffix and key.endswith(suffix):
        key = key[:-len(suffix)]
    return key or constants.ABSENT


def assembly_type(
    sample_name: Optional[str],
    label: str = constants.COMBINED_ASSEMBLY_LABEL
) -> str:
    return (
        constants.ASSEMBLY_TYPE_COMBINED
        if sample_name == label else
        constants.ASSEMBLY_TYPE_INDIVIDUAL
    )

# ================================ FRAME OPERATIONS ================================== #

def add_rank_columns(
    df: pd.DataFrame,
    lineage_column: str = 'taxonomy_lineage',
    schema: RankSchema = DEFAULT_RANK_SCHEMA
) -> pd.DataFrame:
    """Return a copy of `df` with one column per rank decomposed from the lineage."""
    ranks = pd.DataFrame(
        [decompose_lineage(value, schema) for value in df[lineage_column]],
        index=df.index,
        columns=list(schema.ranks),
        dtype=object
    )
    out = df.drop(columns=[r for r in schema.ranks if r in df.columns])
    return pd.concat([out, ranks], axis=1)


def add_sample_name_columns(
    df: pd.DataFrame,
    name_column: str = 'genome_name',
    schema: SampleNameSchema = DEFAULT_SAMPLE_NAME_SCHEMA,
    source: str = constants.SOURCE_ASSEMBLY,
    combined_label: Optional[str] = None
) -> pd.DataFrame:
    """
    Return a copy of `df` with the sample name decomposed into its sub-fields.

    Args:
        df:             Source records.
        name_column:    Column holding the composite name.
        schema:         Sample name schema.
        source:         Source name used in error messages.
        combined_label: If given, an 'assembly_type' column is derived from the
                        decomposed sample name.
    """
    columns = list(schema.columns)
    parts = pd.DataFrame(
        [decompose_sample_name(value, schema, source) for value in df[name_column]],
        index=df.index,
        columns=columns,
        dtype=object
    )
    out = df.drop(columns=[c for c in columns if c in df.columns])
    out = pd.concat([out, parts], axis=1)
    if combined_label is not None:
        out['assembly_type'] = out['sample_name'].map(
            lambda s: assembly_type(s, combined_label)
        ).astype(object)
    return out
