# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

# Third-Party Imports
import pandas as pd
from skbio import TreeNode

# Local Imports
from soil_mags import constants
from soil_mags.config import DEFAULT_CONFIG, merge_config
from soil_mags.data.filter import select_subsets
from soil_mags.data.join import join
from soil_mags.data.load import SourceTables, TableReader, load_sources
from soil_mags.stats.aggregate import (
    counts_to_frame, group_count, novel_candidates, novelty_by_rank, stats_to_frame,
    summary_stats
)
from soil_mags.tree import prune_to_records, read_tree, tip_labels, write_newick

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('soil_mags')

ALL_RECORDS = 'all'

# ==================================================================================== #

class AnalysisResults:
    """Container for the values derived in one analysis session."""
    def __init__(self):
        self.sources: Optional[SourceTables] = None
        self.combined: Optional[pd.DataFrame] = None
        self.subsets: Dict[str, pd.DataFrame] = {}
        self.trees: Dict[str, TreeNode] = {}
        self.counts: Dict[str, Dict[str, Dict[Any, int]]] = {}
        self.novel: Dict[str, pd.DataFrame] = {}
        self.novelty: Dict[str, pd.DataFrame] = {}
        self.stats: Dict[str, Dict[str, Any]] = {}


def _safe_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9._-]", "_", str(name))


class MagAnalysis:
    """
    Runs load → join → subset → {prune, aggregate} over one configuration.

    Every stage takes the previous stage's values and returns new ones; no
    stage modifies its inputs.
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        reader: Optional[TableReader] = None
    ) -> None:
        self.config = merge_config(DEFAULT_CONFIG, config or {})
        self.reader = reader
        self.analysis = self.config["analysis"]
        self.results = AnalysisResults()

    # ------------------------------------------------------------------ stages
    def load(self) -> SourceTables:
        inputs = self.config["inputs"]
        locations = {source: inputs.get(source) for source in constants.SOURCES}
        missing = [source for source, location in locations.items() if location is None]
        if missing:
            raise ValueError(f"No input configured for sources: {missing}")
        return load_sources(
            locations,
            reader=self.reader,
            config=self.config,
            concurrent=self.config["loading"].get("concurrent", True),
            verbose=self.config.get("verbose", False)
        )

    def combine(self, sources: SourceTables) -> pd.DataFrame:
        return join(sources.assembly, sources.metagenome, sources.chemistry)

    def select(self, combined: pd.DataFrame) -> Dict[str, pd.DataFrame]:
        subsets = {ALL_RECORDS: combined}
        subsets.update(select_subsets(combined, self.config.get("subsets") or {}))
        return subsets

    def prune_trees(
        self,
        tree: TreeNode,
        subsets: Dict[str, pd.DataFrame]
    ) -> Dict[str, TreeNode]:
        label_field = self.analysis.get("tree_label_field", constants.DEFAULT_TREE_LABEL_FIELD)
        trees = {}
        for name, records in subsets.items():
            trees[name] = prune_to_records(tree, records, label_field)
            logger.info(f"Tree for '{name}': {len(tip_labels(trees[name]))} tips")
        return trees

    def summarize(self, name: str, records: pd.DataFrame) -> None:
        ranks = self.analysis.get("novelty_ranks", constants.DEFAULT_NOVELTY_RANKS)
        group_field = self.analysis.get("summary_group_field", "site")

        self.results.counts[name] = {
            field: group_count(records, field)
            for field in self.analysis.get("group_fields", constants.DEFAULT_GROUP_FIELDS)
        }
        self.results.novel[name] = novel_candidates(records, ranks)
        self.results.novelty[name] = novelty_by_rank(records, ranks)
        self.results.stats[name] = {
            field: summary_stats(records, field, group_field)
            for field in self.analysis.get("summary_fields", constants.DEFAULT_SUMMARY_FIELDS)
        }

    # --------------------------------------------------------------------- run
    def run(self) -> AnalysisResults:
        """Execute every stage and return the populated results."""
        results = self.results
        results.sources = self.load()
        results.combined = self.combine(results.sources)
        results.subsets = self.select(results.combined)

        tree_path = self.config["inputs"].get("tree")
        if tree_path is not None:
            results.trees = self.prune_trees(read_tree(tree_path), results.subsets)
        else:
            logger.info("No tree configured; skipping pruning")

        for name, records in results.subsets.items():
            self.summarize(name, records)
        return results

    def write(self, output_dir: Optional[Union[str, Path]] = None) -> Path:
        """
        Write the combined records, subsets, pruned trees and aggregate tables.

        Layout:
            <output_dir>/combined.tsv
            <output_dir>/subsets/<name>.tsv
            <output_dir>/trees/<name>.nwk
            <output_dir>/tables/<name>/...
        """
        output_dir = output_dir or self.config["project"].get("output_dir")
        if output_dir is None:
            raise ValueError("No output directory given or configured")
        output_dir = Path(output_dir)
        results = self.results
        if results.combined is None:
            raise RuntimeError("Nothing to write; call run() first")

        for sub in ("subsets", "trees", "tables"):
            (output_dir / sub).mkdir(parents=True, exist_ok=True)

        results.combined.to_csv(output_dir / "combined.tsv", sep='\t', index=False)
        group_field = self.analysis.get("summary_group_field", "site")

        for name, records in results.subsets.items():
            safe = _safe_name(name)
            records.to_csv(output_dir / "subsets" / f"{safe}.tsv", sep='\t', index=False)

            table_dir = output_dir / "tables" / safe
            table_dir.mkdir(parents=True, exist_ok=True)
            for field, counts in results.counts.get(name, {}).items():
                counts_to_frame(counts, field).to_csv(
                    table_dir / f"counts_{_safe_name(field)}.tsv", sep='\t', index=False
                )
            for field, stats in results.stats.get(name, {}).items():
                stats_to_frame(stats, group_field).to_csv(
                    table_dir / f"stats_{_safe_name(field)}_by_{_safe_name(group_field)}.tsv",
                    sep='\t', index=False
                )
            if name in results.novelty:
                results.novelty[name].to_csv(table_dir / "novelty.tsv", sep='\t', index=False)
            if name in results.novel:
                results.novel[name].to_csv(
                    table_dir / "novel_candidates.tsv", sep='\t', index=False
                )

        for name, tree in results.trees.items():
            write_newick(tree, output_dir / "trees" / f"{_safe_name(name)}.nwk")

        logger.info(f"Wrote results to '{output_dir}'")
        return output_dir
