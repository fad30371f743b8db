"""
Soil MAG Analysis Pipeline
----------------------------------------------------------------------------------------
Combines soil metagenome-assembled genome (MAG) metadata with metagenome annotation
and soil chemistry metadata, builds taxonomic/site subsets, prunes the phylogenetic
tree to each subset and writes summary tables for the reporting layer.
"""
# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import argparse
import sys
import traceback
from pathlib import Path

# Third-Party Imports
import pandas as pd

# Local Imports
parent_dir = Path(__file__).resolve().parents[0]
sys.path.append(str(parent_dir))

from soil_mags import constants
from soil_mags.config import get_config
from soil_mags.logger import logging_options, setup_logging
from soil_mags.pipeline import MagAnalysis
from soil_mags.utils.errors import PipelineError

# ========================== INITIALIZATION & CONFIGURATION ========================== #

pd.set_option('display.max_colwidth', None)

# =================================== MAIN WORKFLOW ================================== #

class SoilMagWorkflow:
    def __init__(self, config_path: Path = constants.DEFAULT_CONFIG) -> None:
        self.config = get_config(config_path)
        project_config = self.config.get("project", {})
        self.output_dir = Path(project_config.get("output_dir") or "output")
        log_dir = project_config.get("log_dir") or self.output_dir / "logs"
        self.logger = setup_logging(log_dir, **logging_options(self.config))

    def run(self) -> None:
        """Execute the workflow based on configuration settings."""
        try:
            self.logger.info("Starting soil MAG analysis")
            analysis = MagAnalysis(self.config)
            results = analysis.run()
            analysis.write(self.output_dir)
            self.logger.info(
                f"Analysis completed: {len(results.combined)} combined records, "
                f"{len(results.subsets)} subsets, {len(results.trees)} pruned trees"
            )
        except Exception as e:
            self.logger.error(f"Workflow execution failed: {e}\n"
                              f"Traceback: {traceback.format_exc()}")
            raise PipelineError("Workflow aborted due to errors") from e


def main(config_path: Path = constants.DEFAULT_CONFIG) -> None:
    """Run the entire workflow."""
    workflow = SoilMagWorkflow(config_path)
    workflow.run()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the soil MAG analysis.")
    parser.add_argument(
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG,
        help="Path to the configuration file.",
    )
    args = parser.parse_args()
    main(args.config)
