"""End-to-end tests for the analysis runner and its logging."""

import logging

import pandas as pd
import pytest

from conftest import InMemoryReader
from soil_mags import constants
from soil_mags.data.filter import by_rank, filter_records
from soil_mags.logger import MANAGED_LOGGERS, logging_options, setup_logging
from soil_mags.pipeline import ALL_RECORDS, MagAnalysis
from soil_mags.stats.aggregate import novel_candidates
from soil_mags.tree import tip_labels
from soil_mags.utils.errors import PipelineError


@pytest.fixture
def reset_logger():
    yield
    logging.captureWarnings(False)
    for name in MANAGED_LOGGERS:
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True


@pytest.fixture
def analysis_config(source_files):
    return {
        "inputs": {source: path for source, path in source_files.items()},
        "subsets": {
            "toolik": {"site": "Toolik"},
            "gamma": {"class": "Gammaproteobacteria"},
        },
    }


def test_run_builds_named_subsets(analysis_config):
    results = MagAnalysis(analysis_config).run()

    assert len(results.combined) == 6
    assert set(results.subsets) == {ALL_RECORDS, "toolik", "gamma"}
    assert results.subsets[ALL_RECORDS] is results.combined
    assert sorted(results.subsets["toolik"]["bin_id"]) == ["TOOL_bin1", "TOOL_bin2"]
    assert list(results.subsets["gamma"]["bin_id"]) == ["TOOL_bin1"]

    assert sorted(tip_labels(results.trees["toolik"])) == ["TOOL_bin1", "TOOL_bin2"]
    assert tip_labels(results.trees["gamma"]) == ["TOOL_bin1"]

    counts = results.counts[ALL_RECORDS]["site"]
    assert sum(counts.values()) == len(results.combined)
    assert "TOOL_bin1" in set(results.novel["toolik"]["bin_id"])
    assert list(results.novelty["gamma"]["rank"]) == constants.DEFAULT_NOVELTY_RANKS


def test_run_without_tree(analysis_config):
    analysis_config["inputs"]["tree"] = None
    results = MagAnalysis(analysis_config).run()
    assert results.trees == {}
    assert ALL_RECORDS in results.stats


def test_write_outputs(analysis_config, tmp_path):
    analysis = MagAnalysis(analysis_config)
    analysis.run()
    out = analysis.write(tmp_path / "out")

    assert (out / "combined.tsv").exists()
    for name in (ALL_RECORDS, "toolik", "gamma"):
        assert (out / "subsets" / f"{name}.tsv").exists()
        assert (out / "trees" / f"{name}.nwk").exists()
        assert (out / "tables" / name / "novelty.tsv").exists()
        assert (out / "tables" / name / "novel_candidates.tsv").exists()
        assert (out / "tables" / name / "counts_site.tsv").exists()
        assert (out / "tables" / name / "stats_total_bases_by_site.tsv").exists()

    combined = pd.read_csv(out / "combined.tsv", sep="\t")
    assert len(combined) == 6


def test_write_before_run(analysis_config, tmp_path):
    with pytest.raises(RuntimeError):
        MagAnalysis(analysis_config).write(tmp_path)


def test_missing_input_location():
    with pytest.raises(ValueError, match="chemistry"):
        MagAnalysis({"inputs": {"assembly": "a", "metagenome": "m"}}).load()


def test_single_genome_end_to_end():
    assembly = pd.DataFrame([{
        "Genome Name / Sample Name": "Site A - S1_P1-O-20200101",
        "Bin ID": "bin1",
        "GTDB Taxonomy Lineage": (
            "d__Bacteria;p__Pseudomonadota;c__Gammaproteobacteria;"
            "o__Burkholderiales;f__;g__;s__"
        ),
        "Bin Completeness": "90",
        "Total Number of Bases": "1000",
        "Gene Count": "10",
    }])
    reader = InMemoryReader({"a": assembly, "m": pd.DataFrame(), "c": pd.DataFrame()})
    config = {
        "inputs": {"assembly": "a", "metagenome": "m", "chemistry": "c"},
        "loading": {"concurrent": False},
    }

    results = MagAnalysis(config, reader=reader).run()
    record = results.sources.assembly.iloc[0]

    assert record["domain"] == "Bacteria"
    assert record["phylum"] == "Pseudomonadota"
    assert record["class"] == "Gammaproteobacteria"
    assert record["order"] == "Burkholderiales"
    assert pd.isna(record["family"])
    assert pd.isna(record["genus"])
    assert pd.isna(record["species"])
    assert record["site"] == "Site A"
    assert record["site_id"] == "S1"
    assert record["subplot"] == "P1"
    assert record["layer"] == "O"
    assert record["collection_date"] == "20200101"

    gamma = filter_records(results.combined, by_rank("class", "Gammaproteobacteria"))
    assert list(gamma["bin_id"]) == ["bin1"]
    assert list(novel_candidates(gamma, ["family"])["bin_id"]) == ["bin1"]


def test_setup_logging_writes_file(tmp_path, reset_logger):
    setup_logging(tmp_path / "logs", log_filename="run.log")
    logger = setup_logging(tmp_path / "logs", log_filename="run.log")
    assert logger is logging.getLogger(constants.LOGGER_NAME)
    logger.debug("debug detail")
    for handler in logger.handlers:
        handler.flush()

    assert len(logger.handlers) == 2
    assert "debug detail" in (tmp_path / "logs" / "run.log").read_text()


def test_empty_results_reach_the_log(tmp_path, reset_logger):
    logger = setup_logging(tmp_path, log_filename="run.log")
    filter_records(pd.DataFrame({"class": ["Terriglobia"]}), by_rank("class", "Bacilli"))
    for handler in logger.handlers:
        handler.flush()

    text = (tmp_path / "run.log").read_text()
    assert "EmptyResultWarning" in text
    assert "No records match" in text


def test_logging_options():
    config = {"logging": {"console_level": "WARNING", "backup_count": 1, "other": 1}}
    assert logging_options(config) == {"console_level": "WARNING", "backup_count": 1}
    assert logging_options({}) == {}


def test_workflow_wraps_failures(tmp_path, reset_logger):
    from run import SoilMagWorkflow

    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "project:\n"
        "  output_dir: ./out\n"
        "inputs:\n"
        "  assembly: ./missing.csv\n"
        "  metagenome: ./missing.tsv\n"
        "  chemistry: ./missing_chemistry.tsv\n"
    )
    workflow = SoilMagWorkflow(config_path)

    with pytest.raises(PipelineError) as excinfo:
        workflow.run()
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)
    assert (tmp_path / "out" / "logs").is_dir()


def test_workflow_writes_results(tmp_path, source_files, reset_logger):
    from run import SoilMagWorkflow

    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "project:\n"
        "  output_dir: ./results\n"
        "inputs:\n"
        f"  assembly: ./{source_files['assembly'].name}\n"
        f"  metagenome: ./{source_files['metagenome'].name}\n"
        f"  chemistry: ./{source_files['chemistry'].name}\n"
        f"  tree: ./{source_files['tree'].name}\n"
        "subsets:\n"
        "  toolik:\n"
        "    site: Toolik\n"
    )
    SoilMagWorkflow(config_path).run()

    assert (tmp_path / "results" / "combined.tsv").exists()
    assert (tmp_path / "results" / "trees" / "toolik.nwk").exists()


def test_unknown_log_level(tmp_path, reset_logger):
    with pytest.raises(ValueError, match="logging.console_level"):
        setup_logging(tmp_path, console_level="VERBOSE")
    assert not list(tmp_path.iterdir())
