# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from dataclasses import asdict, dataclass
from typing import Dict, Hashable, List, Optional, Sequence

# Third-Party Imports
import numpy as np
import pandas as pd

# Local Imports
from soil_mags import constants
from soil_mags.data.join import field_values

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('soil_mags')

GroupKey = Optional[Hashable]

# ==================================== CLASSES ======================================= #

@dataclass(frozen=True)
class GroupStats:
    """
    Descriptive statistics of the present values of one group.

    Attributes:
        min:   Minimum, or None if the group has no present values.
        max:   Maximum, or None if the group has no present values.
        mean:  Mean, or None if the group has no present values.
        count: Number of present values.
    """
    min: Optional[float]
    max: Optional[float]
    mean: Optional[float]
    count: int

    @property
    def defined(self) -> bool:
        return self.count > 0

    def to_dict(self) -> Dict[str, object]:
        return {**asdict(self), 'defined': self.defined}

# ===================================== HELPERS ====================================== #

def _describe(values: pd.Series) -> GroupStats:
    present = values.dropna().to_numpy(dtype=float)
    if present.size == 0:
        return GroupStats(None, None, None, 0)
    return GroupStats(
        min=float(np.min(present)),
        max=float(np.max(present)),
        mean=float(np.mean(present)),
        count=int(present.size),
    )


def _values(records: pd.DataFrame, field: str) -> pd.Series:
    try:
        return field_values(records, field)
    except KeyError:
        logger.warning(f"Field '{field}' not in record set; treating as absent")
        return pd.Series(constants.ABSENT, index=records.index, dtype=object)

# ==================================== FUNCTIONS ===================================== #

def group_count(records: pd.DataFrame, field: str) -> Dict[GroupKey, int]:
    """
    Count records per value of `field`.

    Absent values form their own group keyed by `None`, so the counts always
    sum to `len(records)`.

    Args:
        records: Record set.
        field:   Grouping field (source-qualified columns are coalesced).

    Returns:
        Dictionary of group key to count, largest present groups first and
        the absent group last.
    """
    values = _values(records, field)
    absent = values.isna()
    counts: Dict[GroupKey, int] = {
        key: int(n) for key, n in values[~absent].value_counts().items()
    }
    if absent.any():
        counts[constants.ABSENT] = int(absent.sum())
    return counts


def novel_candidates(records: pd.DataFrame, ranks: Sequence[str]) -> pd.DataFrame:
    """
    Records lacking a resolved name at ANY of `ranks`.

    Each rank is tested independently: a resolved family does not hide an
    unresolved genus.
    """
    novel = pd.Series(False, index=records.index)
    for rank in ranks:
        novel |= _values(records, rank).isna()
    return records.loc[novel].copy()


def summary_stats(
    records: pd.DataFrame,
    value_field: str,
    group_field: str
) -> Dict[GroupKey, GroupStats]:
    """
    Min, max, mean and count of the present numeric values of `value_field`
    per group of `group_field`.

    Non-numeric values count as absent. Groups without present values get
    `count == 0` and None statistics.
    """
    values = pd.to_numeric(_values(records, value_field), errors='coerce')
    groups = _values(records, group_field)
    absent = groups.isna()

    stats: Dict[GroupKey, GroupStats] = {
        key: _describe(group)
        for key, group in values[~absent].groupby(groups[~absent], sort=False)
    }
    if absent.any():
        stats[constants.ABSENT] = _describe(values[absent])
    return stats


def novelty_by_rank(records: pd.DataFrame, ranks: Sequence[str]) -> pd.DataFrame:
    """Number and fraction of records without a name at each rank."""
    total = len(records)
    rows = []
    for rank in ranks:
        n_absent = int(_values(records, rank).isna().sum())
        rows.append({
            'rank': rank,
            'absent': n_absent,
            'present': total - n_absent,
            'fraction_absent': n_absent / total if total else np.nan,
        })
    return pd.DataFrame(rows, columns=['rank', 'absent', 'present', 'fraction_absent'])


def rank_by_site(
    records: pd.DataFrame,
    rank: str,
    site_field: str = 'site'
) -> pd.DataFrame:
    """Cross-tabulate a rank against sites; absent rank values are their own row."""
    ranks = _values(records, rank).astype(object).fillna(f"<{rank} absent>")
    sites = _values(records, site_field).astype(object).fillna("<site absent>")
    return pd.crosstab(ranks, sites, rownames=[rank], colnames=[site_field])


def counts_to_frame(counts: Dict[GroupKey, int], field: str) -> pd.DataFrame:
    """Rows of (group, count) for rendering or writing."""
    return pd.DataFrame(
        [{field: key, 'count': n} for key, n in counts.items()],
        columns=[field, 'count']
    )


def stats_to_frame(stats: Dict[GroupKey, GroupStats], group_field: str) -> pd.DataFrame:
    """Rows of (group, min, max, mean, count, defined) for rendering or writing."""
    columns: List[str] = [group_field, 'min', 'max', 'mean', 'count', 'defined']
    return pd.DataFrame(
        [{group_field: key, **s.to_dict()} for key, s in stats.items()],
        columns=columns
    )
