# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import io
import logging
import warnings
from collections import Counter
from pathlib import Path
from typing import Iterable, List, Union

# Third-Party Imports
import pandas as pd
from skbio import TreeNode

# Local Imports
from soil_mags import constants
from soil_mags.data.join import resolve_column
from soil_mags.utils.errors import EmptyResultWarning

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger('soil_mags')

# ===================================== READ/WRITE =================================== #

def _check_unique_tips(tree: TreeNode) -> TreeNode:
    duplicates = [
        label for label, n in Counter(tip_labels(tree)).items() if n > 1
    ]
    if duplicates:
        raise ValueError(f"Tree has duplicate tip labels: {sorted(duplicates)[:10]}")
    return tree


def parse_newick(text: str) -> TreeNode:
    """Parse a Newick string; underscores in labels are kept as-is."""
    tree = TreeNode.read(io.StringIO(text), format='newick', convert_underscores=False)
    return _check_unique_tips(tree)


def read_tree(path: Union[str, Path]) -> TreeNode:
    """
    Read a rooted Newick tree (e.g. GTDB-Tk output) from disk.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError:        If tip labels are not unique.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Tree file not found: {path}")
    tree = TreeNode.read(str(path), format='newick', convert_underscores=False)
    logger.info(f"Loaded tree with {len(tip_labels(tree))} tips from {path}")
    return _check_unique_tips(tree)


def write_newick(tree: TreeNode, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tree.write(str(path), format='newick')
    logger.debug(f"Wrote tree with {len(tip_labels(tree))} tips to '{path}'")
    return path

# ===================================== HELPERS ====================================== #

def tip_labels(tree: TreeNode) -> List[str]:
    """Labels of all named tips, the tree itself included when it is a single tip."""
    return [node.name for node in tree.tips(include_self=True) if node.name is not None]


def is_empty_tree(tree: TreeNode) -> bool:
    return tree.is_tip() and tree.name is None

# ===================================== PRUNING ====================================== #

def prune(tree: TreeNode, keep_labels: Iterable[str]) -> TreeNode:
    """
    Induced subtree on the tips whose label is in `keep_labels`.

    Uses `TreeNode.shear`, which works on a copy: tips not kept are removed
    and internal nodes left with a single child are collapsed into that
    child, adding their branch length to the child's. The result does not
    depend on the order of `keep_labels` and the input tree is not modified.

    Labels that are not tips of the tree are ignored and their number is
    logged. If nothing is kept, an empty tree (childless, unnamed node) is
    returned.

    Args:
        tree:        Source tree.
        keep_labels: Tip labels to retain.

    Returns:
        New pruned tree.
    """
    keep = set(keep_labels)
    tips = set(tip_labels(tree))
    missing = keep - tips
    if missing:
        logger.info(
            f"{len(missing)} of {len(keep)} requested labels are not tips of the tree"
        )

    keep &= tips
    if not keep:
        warnings.warn("Pruning retained no tips", EmptyResultWarning, stacklevel=2)
        return TreeNode()
    if tree.is_tip():
        return tree.copy()

    pruned = tree.shear(keep)
    logger.debug(f"Pruned tree to {len(tip_labels(pruned))} tips")
    return pruned


def prune_to_records(
    tree: TreeNode,
    records: pd.DataFrame,
    label_field: str = constants.DEFAULT_TREE_LABEL_FIELD
) -> TreeNode:
    """Prune `tree` to the tips labelled by `label_field` of `records`."""
    try:
        labels = records[resolve_column(records, label_field)].dropna().astype(str)
    except KeyError:
        logger.warning(f"Field '{label_field}' not in record set; no tips kept")
        labels = pd.Series([], dtype=object)
    return prune(tree, set(labels))
